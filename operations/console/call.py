"""
Consultation call session: device setup and the call itself.

:class:`CallSetup` runs the pre-call screen: it asks for camera and
microphone, lists devices, shows a self preview with a live microphone
meter and lets the user switch devices. Confirming or cancelling releases
the preview; the call captures its own stream with the chosen devices.

:class:`VideoCall` owns the in-call state. Media transport is behind
:class:`CallTransport`; :class:`SimulatedTransport` stands in for a real
peer connection, with the remote side joining after a fixed delay.

Whatever way a call or setup ends, every track is stopped and the audio
context is closed exactly once.
"""
from __future__ import annotations

import abc
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from .media import (
    AUDIO_INPUT,
    VIDEO_INPUT,
    AudioLevelMeter,
    DeviceInfo,
    MediaDevices,
    MediaError,
    MediaStream,
    permission_message,
)
from .timers import Scheduler, TimerHandle
from .toasts import Toaster

logger = logging.getLogger(__name__)

PEER_JOIN_DELAY = 2.0
TICK_INTERVAL = 1.0


def format_duration(seconds: int) -> str:
    """``mm:ss``; minutes keep counting past 59."""
    minutes, secs = divmod(max(0, int(seconds)), 60)
    return f"{minutes:02d}:{secs:02d}"


class CallTransport(abc.ABC):
    """Carries the local stream to the remote participant."""

    @abc.abstractmethod
    def connect(self, room: str, stream: MediaStream, on_peer_joined: Callable[[], None]) -> None:
        ...

    @abc.abstractmethod
    def replace_video(self, stream: MediaStream) -> None:
        """Send video from ``stream`` (camera or shared screen)."""

    @abc.abstractmethod
    def disconnect(self) -> None:
        ...


class SimulatedTransport(CallTransport):
    """No network: the peer "joins" ``join_delay`` seconds after connecting."""

    def __init__(self, scheduler: Scheduler, join_delay: float = PEER_JOIN_DELAY):
        self._scheduler = scheduler
        self.join_delay = join_delay
        self.room: Optional[str] = None
        self.sending: Optional[MediaStream] = None
        self.connected = False
        self._join: Optional[TimerHandle] = None

    def connect(self, room, stream, on_peer_joined):
        self.room = room
        self.sending = stream
        self.connected = True
        self._join = self._scheduler.call_later(self.join_delay, on_peer_joined)

    def replace_video(self, stream):
        self.sending = stream

    def disconnect(self):
        if self._join is not None:
            self._join.cancel()
        self.connected = False
        self.sending = None


@dataclass(frozen=True)
class DeviceSelection:
    camera: Optional[str]
    microphone: Optional[str]


class CallSetup:
    def __init__(self, devices: MediaDevices, scheduler: Scheduler, toaster: Optional[Toaster] = None):
        self.devices = devices
        self.scheduler = scheduler
        self.toaster = toaster or Toaster()
        self.stream: Optional[MediaStream] = None
        self.meter: Optional[AudioLevelMeter] = None
        self.cameras: list[DeviceInfo] = []
        self.microphones: list[DeviceInfo] = []
        self.camera: Optional[str] = None
        self.microphone: Optional[str] = None
        self.error: Optional[str] = None
        self.closed = False

    @property
    def ready(self) -> bool:
        return self.stream is not None and self.error is None and not self.closed

    def start(self) -> bool:
        """Request capture and start the preview.

        A refusal leaves ``error`` set to the remediation text; nothing is
        retried until the user asks again with :meth:`start`.
        """
        if self.closed:
            return False
        self.error = None
        self._close_preview()
        try:
            self._open_preview()
        except MediaError as exc:
            self.error = permission_message(exc)
            self.toaster.error(self.error)
            logger.info("media capture refused: %s", exc.name)
            return False
        found = self.devices.enumerate_devices()
        self.cameras = [d for d in found if d.kind == VIDEO_INPUT]
        self.microphones = [d for d in found if d.kind == AUDIO_INPUT]
        if self.camera is None and self.cameras:
            self.camera = self.cameras[0].device_id
        if self.microphone is None and self.microphones:
            self.microphone = self.microphones[0].device_id
        return True

    def _open_preview(self) -> None:
        stream = self.devices.get_user_media(video=self.camera or True, audio=self.microphone or True)
        self.stream = stream
        self.meter = AudioLevelMeter(self.devices, stream, self.scheduler)
        self.meter.start()

    def _close_preview(self) -> None:
        if self.meter is not None:
            self.meter.stop()
            self.meter = None
        if self.stream is not None:
            self.stream.stop_all()
            self.stream = None

    def select_camera(self, device_id: str) -> None:
        self.camera = device_id
        self._restart()

    def select_microphone(self, device_id: str) -> None:
        self.microphone = device_id
        self._restart()

    def _restart(self) -> None:
        if self.closed:
            return
        self._close_preview()
        try:
            self._open_preview()
        except MediaError as exc:
            self.error = permission_message(exc)
            self.toaster.error(self.error)

    def toggle_camera(self) -> bool:
        return _toggle(self.stream, video=True)

    def toggle_microphone(self) -> bool:
        return _toggle(self.stream, video=False)

    def confirm(self) -> DeviceSelection:
        """Release the preview and hand the chosen devices to the call."""
        selection = DeviceSelection(self.camera, self.microphone)
        self.close()
        return selection

    def cancel(self) -> None:
        self.close()

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._close_preview()


def _toggle(stream: Optional[MediaStream], *, video: bool) -> bool:
    """Flip the first video (or audio) track; returns the new enabled state."""
    if stream is None:
        return False
    tracks = stream.get_video_tracks() if video else stream.get_audio_tracks()
    if not tracks:
        return False
    tracks[0].enabled = not tracks[0].enabled
    return tracks[0].enabled


class VideoCall:
    CONNECTING = 'calling'
    CONNECTED = 'connected'
    ENDED = 'ended'

    def __init__(self, devices: MediaDevices, transport: CallTransport, scheduler: Scheduler, *,
                 room: str, peer_name: str, selection: Optional[DeviceSelection] = None,
                 toaster: Optional[Toaster] = None, on_end: Optional[Callable[[int], None]] = None):
        self.devices = devices
        self.transport = transport
        self.scheduler = scheduler
        self.room = room
        self.peer_name = peer_name
        self.selection = selection or DeviceSelection(None, None)
        self.toaster = toaster or Toaster()
        self.on_end = on_end
        self.state: Optional[str] = None
        self.duration = 0
        self.local_stream: Optional[MediaStream] = None
        self.screen_stream: Optional[MediaStream] = None
        self.meter: Optional[AudioLevelMeter] = None
        self._timer: Optional[TimerHandle] = None

    @property
    def duration_label(self) -> str:
        return format_duration(self.duration)

    @property
    def screen_sharing(self) -> bool:
        return self.screen_stream is not None

    @property
    def muted(self) -> bool:
        tracks = self.local_stream.get_audio_tracks() if self.local_stream else []
        return bool(tracks) and not tracks[0].enabled

    @property
    def camera_off(self) -> bool:
        tracks = self.local_stream.get_video_tracks() if self.local_stream else []
        return bool(tracks) and not tracks[0].enabled

    def start(self) -> bool:
        try:
            self.local_stream = self.devices.get_user_media(
                video=self.selection.camera or True, audio=self.selection.microphone or True,
            )
        except MediaError as exc:
            self.toaster.error(permission_message(exc))
            self.end()
            return False
        self.meter = AudioLevelMeter(self.devices, self.local_stream, self.scheduler)
        self.meter.start()
        self.state = self.CONNECTING
        self.transport.connect(self.room, self.local_stream, self._peer_joined)
        return True

    def _peer_joined(self) -> None:
        if self.state != self.CONNECTING:
            return
        self.state = self.CONNECTED
        self.toaster.success(f"{self.peer_name} joined the call")
        self._timer = self.scheduler.call_every(TICK_INTERVAL, self._tick)

    def _tick(self) -> None:
        self.duration += 1

    def toggle_mute(self) -> bool:
        """Returns True when the microphone is now muted."""
        return not _toggle(self.local_stream, video=False)

    def toggle_camera(self) -> bool:
        """Returns True when the camera is now off."""
        return not _toggle(self.local_stream, video=True)

    def toggle_screen_share(self) -> bool:
        """Start or stop sharing; returns whether the screen is now shared."""
        if self.state == self.ENDED:
            return False
        if self.screen_stream is not None:
            self._stop_screen_share()
            return False
        try:
            screen = self.devices.get_display_media()
        except MediaError:
            self.toaster.error('Could not share screen')
            return False
        self.screen_stream = screen
        for track in screen.get_video_tracks():
            track.on_ended(self._stop_screen_share)
        self.transport.replace_video(screen)
        return True

    def _stop_screen_share(self) -> None:
        screen, self.screen_stream = self.screen_stream, None
        if screen is None:
            return
        screen.stop_all()
        if self.state != self.ENDED and self.local_stream is not None:
            self.transport.replace_video(self.local_stream)

    def end(self) -> None:
        """Hang up. Releases everything the call holds; later calls do nothing."""
        if self.state == self.ENDED:
            return
        self.state = self.ENDED
        if self._timer is not None:
            self._timer.cancel()
        if self.meter is not None:
            self.meter.stop()
        self._stop_screen_share()
        if self.local_stream is not None:
            self.local_stream.stop_all()
        self.transport.disconnect()
        logger.info("call in %s ended after %s", self.room, self.duration_label)
        if self.on_end is not None:
            self.on_end(self.duration)
