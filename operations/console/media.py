"""
Local media for consultation calls.

Models the pieces a call screen holds: capture tracks grouped in a stream,
the device list, and an audio context feeding a level meter. The device
backend sits behind :class:`MediaDevices`; :class:`SimulatedMediaDevices`
is the in-process implementation used when no real capture is available.

Release rules: every track of a stream is stopped when the stream is
released, and an audio context may be closed only once; closing it a
second time raises :class:`InvalidStateError`.
"""
from __future__ import annotations

import abc
import itertools
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from .timers import Scheduler, TimerHandle

logger = logging.getLogger(__name__)

AUDIO = 'audio'
VIDEO = 'video'
VIDEO_INPUT = 'videoinput'
AUDIO_INPUT = 'audioinput'

PERMISSION_DENIED_MESSAGE = (
    'Permission denied. Please allow camera and microphone access in your browser settings.'
)
NO_DEVICE_MESSAGE = 'No camera or microphone found on your device.'
DEVICE_ERROR_MESSAGE = 'Could not access camera/microphone. Please check your device settings.'

_ids = itertools.count(1)


class MediaError(Exception):
    """Capture failure, named like the browser's DOMException names."""
    NOT_ALLOWED = 'NotAllowedError'
    NOT_FOUND = 'NotFoundError'
    NOT_READABLE = 'NotReadableError'

    def __init__(self, name: str, message: str = ''):
        super().__init__(message or name)
        self.name = name


class InvalidStateError(Exception):
    pass


def permission_message(error: MediaError) -> str:
    """Remediation text shown to the user for a capture failure."""
    if error.name in (MediaError.NOT_ALLOWED, 'PermissionDeniedError'):
        return PERMISSION_DENIED_MESSAGE
    if error.name == MediaError.NOT_FOUND:
        return NO_DEVICE_MESSAGE
    return DEVICE_ERROR_MESSAGE


@dataclass(frozen=True)
class DeviceInfo:
    device_id: str
    kind: str
    label: str


class MediaTrack:
    def __init__(self, kind: str, label: str = '', device_id: str = ''):
        self.id = f"track-{next(_ids)}"
        self.kind = kind
        self.label = label
        self.device_id = device_id
        self.enabled = True
        self.ready_state = 'live'
        self.stop_calls = 0
        self._ended_callbacks: List[Callable[[], None]] = []

    def on_ended(self, callback: Callable[[], None]) -> None:
        self._ended_callbacks.append(callback)

    def stop(self) -> None:
        """Stop capture. Unlike :meth:`end`, this does not fire ``ended``."""
        self.stop_calls += 1
        self.ready_state = 'ended'

    def end(self) -> None:
        """The source went away (e.g. the user stopped sharing from the OS)."""
        if self.ready_state == 'ended':
            return
        self.ready_state = 'ended'
        for callback in list(self._ended_callbacks):
            callback()

    @property
    def live(self) -> bool:
        return self.ready_state == 'live'

    def __repr__(self):
        return f"<MediaTrack {self.kind} {self.label!r} {self.ready_state}>"


class MediaStream:
    def __init__(self, tracks: Sequence[MediaTrack] = ()):
        self.id = f"stream-{next(_ids)}"
        self._tracks = list(tracks)

    def get_tracks(self) -> List[MediaTrack]:
        return list(self._tracks)

    def get_audio_tracks(self) -> List[MediaTrack]:
        return [t for t in self._tracks if t.kind == AUDIO]

    def get_video_tracks(self) -> List[MediaTrack]:
        return [t for t in self._tracks if t.kind == VIDEO]

    def stop_all(self) -> None:
        for track in self._tracks:
            if track.live:
                track.stop()

    @property
    def active(self) -> bool:
        return any(t.live for t in self._tracks)


class Analyser:
    """Frequency-domain view of a stream's audio."""

    def __init__(self, source: Callable[[], Sequence[int]], fft_size: int = 256):
        self.fft_size = fft_size
        self._source = source

    @property
    def frequency_bin_count(self) -> int:
        return self.fft_size // 2

    def get_byte_frequency_data(self) -> List[int]:
        data = list(self._source())[:self.frequency_bin_count]
        return data + [0] * (self.frequency_bin_count - len(data))


class AudioContext(abc.ABC):
    def __init__(self):
        self.state = 'running'
        self.close_calls = 0

    @abc.abstractmethod
    def create_analyser(self, stream: MediaStream) -> Analyser:
        ...

    def close(self) -> None:
        if self.state == 'closed':
            raise InvalidStateError('Cannot close a closed AudioContext')
        self.close_calls += 1
        self.state = 'closed'


class MediaDevices(abc.ABC):
    """Capture backend: what ``navigator.mediaDevices`` offers a page."""

    @abc.abstractmethod
    def get_user_media(self, *, video=True, audio=True) -> MediaStream:
        """``video``/``audio`` are ``True`` or a device id to capture from."""

    @abc.abstractmethod
    def enumerate_devices(self) -> List[DeviceInfo]:
        ...

    @abc.abstractmethod
    def get_display_media(self) -> MediaStream:
        ...

    @abc.abstractmethod
    def create_audio_context(self) -> AudioContext:
        ...


class SimulatedAudioContext(AudioContext):
    def __init__(self, levels: Optional[Callable[[], Sequence[int]]] = None):
        super().__init__()
        self._levels = levels or (lambda: [0] * 128)

    def create_analyser(self, stream: MediaStream) -> Analyser:
        if self.state == 'closed':
            raise InvalidStateError('AudioContext is closed')
        return Analyser(self._levels)


@dataclass
class SimulatedMediaDevices(MediaDevices):
    """In-process devices; ``error`` makes every capture request fail with it."""
    devices: List[DeviceInfo] = field(default_factory=lambda: [
        DeviceInfo('cam-1', VIDEO_INPUT, 'Integrated Camera'),
        DeviceInfo('cam-2', VIDEO_INPUT, 'USB Camera'),
        DeviceInfo('mic-1', AUDIO_INPUT, 'Built-in Microphone'),
        DeviceInfo('mic-2', AUDIO_INPUT, 'Headset Microphone'),
    ])
    error: Optional[MediaError] = None
    levels: Optional[Callable[[], Sequence[int]]] = None
    streams: List[MediaStream] = field(default_factory=list)
    audio_contexts: List[AudioContext] = field(default_factory=list)
    capture_requests: int = 0

    def _device(self, kind: str, wanted) -> DeviceInfo:
        candidates = [d for d in self.devices if d.kind == kind]
        if isinstance(wanted, str):
            candidates = [d for d in candidates if d.device_id == wanted]
        if not candidates:
            raise MediaError(MediaError.NOT_FOUND, f'No {kind} device')
        return candidates[0]

    def get_user_media(self, *, video=True, audio=True) -> MediaStream:
        self.capture_requests += 1
        if self.error is not None:
            raise self.error
        tracks = []
        if video:
            cam = self._device(VIDEO_INPUT, video)
            tracks.append(MediaTrack(VIDEO, cam.label, cam.device_id))
        if audio:
            mic = self._device(AUDIO_INPUT, audio)
            tracks.append(MediaTrack(AUDIO, mic.label, mic.device_id))
        stream = MediaStream(tracks)
        self.streams.append(stream)
        return stream

    def enumerate_devices(self) -> List[DeviceInfo]:
        return list(self.devices)

    def get_display_media(self) -> MediaStream:
        stream = MediaStream([MediaTrack(VIDEO, 'Screen', 'screen')])
        self.streams.append(stream)
        return stream

    def create_audio_context(self) -> AudioContext:
        ctx = SimulatedAudioContext(self.levels)
        self.audio_contexts.append(ctx)
        return ctx


class AudioLevelMeter:
    """Microphone level for the UI, sampled once per display frame.

    The level is the mean of the analyser's frequency bins (0..255). The
    meter owns its audio context: :meth:`stop` cancels the frame loop and
    closes the context, and is safe to call more than once.
    """

    def __init__(self, devices: MediaDevices, stream: MediaStream, scheduler: Scheduler,
                 on_level: Optional[Callable[[float], None]] = None):
        self.level = 0.0
        self._scheduler = scheduler
        self._on_level = on_level
        self._context = devices.create_audio_context()
        self._analyser = self._context.create_analyser(stream)
        self._frame: Optional[TimerHandle] = None
        self._stopped = False

    @property
    def context(self) -> AudioContext:
        return self._context

    def start(self) -> None:
        self._sample()

    def _sample(self) -> None:
        if self._stopped:
            return
        data = self._analyser.get_byte_frequency_data()
        self.level = sum(data) / len(data) if data else 0.0
        if self._on_level is not None:
            self._on_level(self.level)
        self._frame = self._scheduler.request_frame(self._sample)

    def stop(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        if self._frame is not None:
            self._frame.cancel()
        self._context.close()
