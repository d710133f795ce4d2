import asyncio

import pytest

from operations.console.call import (
    CallSetup,
    DeviceSelection,
    SimulatedTransport,
    VideoCall,
    format_duration,
)
from operations.console.media import (
    NO_DEVICE_MESSAGE,
    PERMISSION_DENIED_MESSAGE,
    AudioLevelMeter,
    InvalidStateError,
    MediaError,
    SimulatedMediaDevices,
)
from operations.console.timers import AsyncioScheduler


def all_tracks(devices):
    return [t for s in devices.streams for t in s.get_tracks()]


def assert_released(devices):
    assert all(not t.live for t in all_tracks(devices))
    assert all(t.stop_calls <= 1 for t in all_tracks(devices))
    assert [ctx.close_calls for ctx in devices.audio_contexts] == [1] * len(devices.audio_contexts)


@pytest.mark.parametrize('seconds, label', [(0, '00:00'), (65, '01:05'), (3600, '60:00'), (-4, '00:00')])
def test_format_duration(seconds, label):
    assert format_duration(seconds) == label


class TestCallSetup:
    def test_permission_denied_is_reported_once(self, scheduler):
        devices = SimulatedMediaDevices(error=MediaError(MediaError.NOT_ALLOWED))
        setup = CallSetup(devices, scheduler)
        assert setup.start() is False
        assert setup.error == PERMISSION_DENIED_MESSAGE
        assert setup.toaster.errors() == [PERMISSION_DENIED_MESSAGE]
        assert not setup.ready
        scheduler.advance(10)
        assert devices.capture_requests == 1

    def test_missing_device_message(self, scheduler):
        setup = CallSetup(SimulatedMediaDevices(devices=[]), scheduler)
        assert setup.start() is False
        assert setup.error == NO_DEVICE_MESSAGE

    def test_first_devices_are_preselected(self, scheduler):
        setup = CallSetup(SimulatedMediaDevices(), scheduler)
        assert setup.start()
        assert (setup.camera, setup.microphone) == ('cam-1', 'mic-1')
        assert [d.device_id for d in setup.cameras] == ['cam-1', 'cam-2']
        assert setup.ready

    def test_meter_samples_each_frame(self, scheduler):
        devices = SimulatedMediaDevices(levels=lambda: [100] * 128)
        setup = CallSetup(devices, scheduler)
        setup.start()
        scheduler.advance(0.1)
        assert setup.meter.level == 100

    def test_switching_camera_releases_previous_preview(self, scheduler):
        devices = SimulatedMediaDevices()
        setup = CallSetup(devices, scheduler)
        setup.start()
        first = setup.stream
        setup.select_camera('cam-2')
        assert not first.active
        assert setup.stream.get_video_tracks()[0].device_id == 'cam-2'
        assert devices.audio_contexts[0].state == 'closed'

    def test_confirm_releases_preview_and_returns_choice(self, scheduler):
        devices = SimulatedMediaDevices()
        setup = CallSetup(devices, scheduler)
        setup.start()
        setup.select_microphone('mic-2')
        assert setup.confirm() == DeviceSelection('cam-1', 'mic-2')
        setup.cancel()
        assert_released(devices)
        assert scheduler.pending() == 0

    def test_starting_again_releases_previous_preview(self, scheduler):
        devices = SimulatedMediaDevices()
        setup = CallSetup(devices, scheduler)
        assert setup.start()
        first = setup.stream
        assert setup.start()
        assert not first.active
        assert len(devices.streams) == 2
        setup.cancel()
        assert_released(devices)
        assert scheduler.pending() == 0

    def test_device_change_after_confirm_opens_nothing(self, scheduler):
        devices = SimulatedMediaDevices()
        setup = CallSetup(devices, scheduler)
        setup.start()
        setup.confirm()
        setup.select_camera('cam-2')
        setup.select_microphone('mic-2')
        assert setup.start() is False
        assert setup.stream is None
        assert len(devices.streams) == 1
        assert devices.capture_requests == 1
        assert_released(devices)
        assert scheduler.pending() == 0

    def test_toggles_flip_preview_tracks(self, scheduler):
        setup = CallSetup(SimulatedMediaDevices(), scheduler)
        setup.start()
        assert setup.toggle_camera() is False
        assert setup.toggle_camera() is True
        assert setup.toggle_microphone() is False


class TestVideoCall:
    @pytest.fixture
    def call(self, scheduler):
        devices = SimulatedMediaDevices()
        transport = SimulatedTransport(scheduler)
        ended = []
        call = VideoCall(devices, transport, scheduler, room='room-42', peer_name='Dr. Khan',
                         selection=DeviceSelection('cam-2', 'mic-1'), on_end=ended.append)
        call.ended = ended
        return call

    def test_peer_joins_and_timer_runs(self, call, scheduler):
        assert call.start()
        assert call.state == VideoCall.CONNECTING
        assert call.local_stream.get_video_tracks()[0].device_id == 'cam-2'
        scheduler.advance(1.5)
        assert call.state == VideoCall.CONNECTING
        scheduler.advance(0.5)
        assert call.state == VideoCall.CONNECTED
        assert call.toaster.last.message == 'Dr. Khan joined the call'
        scheduler.advance(3)
        assert call.duration_label == '00:03'

    def test_mute_and_camera(self, call):
        call.start()
        assert call.toggle_mute() is True
        assert call.muted
        assert call.toggle_camera() is True
        assert call.camera_off
        assert call.toggle_mute() is False
        assert not call.muted

    def test_screen_share_reverts_when_source_ends(self, call):
        call.start()
        assert call.toggle_screen_share()
        screen = call.screen_stream
        assert call.transport.sending is screen
        screen.get_video_tracks()[0].end()
        assert not call.screen_sharing
        assert call.transport.sending is call.local_stream

    def test_end_releases_everything_once(self, call, scheduler):
        call.start()
        call.toggle_screen_share()
        scheduler.advance(4)
        call.end()
        call.end()
        assert call.state == VideoCall.ENDED
        assert call.ended == [2]
        assert call.transport.connected is False
        assert_released(call.devices)
        assert scheduler.pending() == 0
        scheduler.advance(5)
        assert call.duration == 2

    def test_hang_up_before_peer_joins(self, call, scheduler):
        call.start()
        call.end()
        scheduler.advance(5)
        assert call.state == VideoCall.ENDED
        assert call.toaster.history == []
        assert call.ended == [0]

    def test_capture_failure_ends_call(self, scheduler):
        devices = SimulatedMediaDevices(error=MediaError(MediaError.NOT_READABLE))
        transport = SimulatedTransport(scheduler)
        call = VideoCall(devices, transport, scheduler, room='r', peer_name='p')
        assert call.start() is False
        assert call.state == VideoCall.ENDED
        assert call.toaster.errors() == ['Could not access camera/microphone. Please check your device settings.']


def test_asyncio_scheduler_runs_and_cancels():
    fired = []

    async def scenario():
        timers = AsyncioScheduler()
        timers.call_later(0.01, lambda: fired.append('once'))
        cancelled = timers.call_later(0.01, lambda: fired.append('never'))
        cancelled.cancel()
        ticker = timers.call_every(0.01, lambda: fired.append('tick'))
        await asyncio.sleep(0.055)
        ticker.cancel()
        count = fired.count('tick')
        await asyncio.sleep(0.03)
        return count

    ticks = asyncio.run(scenario())
    assert 'once' in fired and 'never' not in fired
    assert ticks >= 2
    assert fired.count('tick') == ticks


def test_audio_context_closes_once(scheduler):
    devices = SimulatedMediaDevices()
    stream = devices.get_user_media()
    meter = AudioLevelMeter(devices, stream, scheduler)
    meter.start()
    meter.stop()
    meter.stop()
    assert meter.context.close_calls == 1
    with pytest.raises(InvalidStateError):
        meter.context.close()
