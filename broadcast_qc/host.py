"""
Host Module - Playback Host Contract

The playback host (mpv) decodes, renders and runs the filter graph. This
system only reads a handful of its properties, reacts to its events, and
issues a small set of commands. `Host` is that contract; `SimulatedHost`
(simhost.py) and `MpvIpcHost` (ipc.py) implement it.

Property readers below encode the host's fallback chains:
- framerate: container-fps -> fps -> 25
- channel count: audio-params/channels (if an integer) -> audio-params/channel-count -> 0
- viewport: osd-dimensions -> placeholder size
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

from broadcast_qc.layout import SafeMargins


# =============================================================================
# PROPERTY AND EVENT NAMES
# =============================================================================

PROP_TIME_POS = 'time-pos'
PROP_DURATION = 'duration'
PROP_PAUSE = 'pause'
PROP_CONTAINER_FPS = 'container-fps'
PROP_FPS = 'fps'
PROP_OSD_DIMENSIONS = 'osd-dimensions'
PROP_PERCENT_POS = 'percent-pos'
PROP_TRACK_LIST = 'track-list'
PROP_AUDIO_CHANNELS = 'audio-params/channels'
PROP_AUDIO_CHANNEL_COUNT = 'audio-params/channel-count'
PROP_AUDIO_CODEC = 'audio-codec-name'
PROP_AUDIO_SAMPLERATE = 'audio-params/samplerate'

EVENT_FILE_LOADED = 'file-loaded'
EVENT_END_FILE = 'end-file'

DEFAULT_FPS: float = 25.0

PropertyCallback = Callable[[str, Any], None]


class Timer(ABC):
    """Handle of a scheduled callback."""

    @abstractmethod
    def kill(self) -> None:
        """Cancel the callback; killing twice is harmless."""

    @property
    @abstractmethod
    def active(self) -> bool:
        """True until the callback has run or been killed."""


class Host(ABC):
    """
    Contract of the playback host.

    All callbacks are invoked on the host's single event-loop thread.
    """

    # -- properties and events ---------------------------------------------

    @abstractmethod
    def get_property(self, name: str) -> Any:
        """Return the native property value, or None when unavailable."""

    @abstractmethod
    def observe_property(self, name: str, callback: PropertyCallback) -> None:
        """Call callback(name, value) whenever the property changes."""

    @abstractmethod
    def unobserve_property(self, callback: PropertyCallback) -> None:
        """Remove every observation registered with callback."""

    @abstractmethod
    def register_event(self, name: str, callback: Callable[[], None]) -> None:
        """Call callback() when the named host event fires."""

    @abstractmethod
    def register_script_message(self, name: str, callback: Callable[..., None]) -> None:
        """Call callback(*args) when an external client sends the message."""

    # -- timers -------------------------------------------------------------

    @abstractmethod
    def add_timeout(self, delay: float, callback: Callable[[], None]) -> Timer:
        """Run callback once, `delay` seconds from now, on a later tick."""

    @abstractmethod
    def now(self) -> float:
        """Monotonic clock in seconds."""

    # -- commands -----------------------------------------------------------

    @abstractmethod
    def set_overlay_content(self, res_x: int, res_y: int, data: str) -> None:
        """Replace the overlay with ASS events rendered at res_x x res_y."""

    @abstractmethod
    def clear_overlay(self) -> None:
        """Remove the overlay."""

    @abstractmethod
    def show_message(self, text: str, duration: float) -> None:
        """Show a transient on-screen message."""

    @abstractmethod
    def clear_audio_filters(self) -> None:
        """Remove every audio filter."""

    @abstractmethod
    def append_audio_filter(self, descriptor: str) -> None:
        """Append one filter to the audio filter chain."""


# =============================================================================
# SNAPSHOTS
# =============================================================================

@dataclass(frozen=True)
class PlaybackClock:
    """Read-only view of the host's playback clock."""
    time_position: Optional[float]
    duration: Optional[float]
    paused: bool


@dataclass(frozen=True)
class AudioTrackDescriptor:
    """Active audio track, queried per command and never cached."""
    channel_count: int
    track_count: int
    codec_name: str
    sample_rate: int


# =============================================================================
# READERS
# =============================================================================

def _number_or_none(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def read_playback_clock(host: Host) -> PlaybackClock:
    return PlaybackClock(
        time_position=_number_or_none(host.get_property(PROP_TIME_POS)),
        duration=_number_or_none(host.get_property(PROP_DURATION)),
        paused=bool(host.get_property(PROP_PAUSE)),
    )


def read_framerate(host: Host) -> float:
    """container-fps, then fps, then 25."""
    for name in (PROP_CONTAINER_FPS, PROP_FPS):
        value = _number_or_none(host.get_property(name))
        if value is not None and value > 0:
            return value
    return DEFAULT_FPS


def read_percent_position(host: Host) -> float:
    value = _number_or_none(host.get_property(PROP_PERCENT_POS))
    return value if value is not None else 0.0


def read_viewport(
    host: Host,
    placeholder: Tuple[int, int] = (1920, 1080)
) -> Tuple[int, int, SafeMargins]:
    """
    Viewport size and safe-area margins.

    Parameters:
        host: Playback host
        placeholder: Size used until the host reports osd-dimensions

    Returns:
        Tuple of (width, height, margins)
    """
    dims = host.get_property(PROP_OSD_DIMENSIONS)
    return viewport_from_dimensions(dims, placeholder)


def viewport_from_dimensions(
    dims: Optional[Dict],
    placeholder: Tuple[int, int] = (1920, 1080)
) -> Tuple[int, int, SafeMargins]:
    if not isinstance(dims, dict):
        return placeholder[0], placeholder[1], SafeMargins()
    width = _number_or_none(dims.get('w'))
    height = _number_or_none(dims.get('h'))
    if not width or not height:
        return placeholder[0], placeholder[1], SafeMargins()
    return int(width), int(height), SafeMargins.from_osd_dimensions(dims)


def read_channel_count(host: Host) -> int:
    """
    Channel count of the active audio track.

    audio-params/channels may hold a layout name such as '5.1', '7.1' or
    '5.1(side)' rather than a number; the numeric channel-count property
    is the fallback. Layout names that look like decimals are not channel
    counts ('5.1' is six channels).
    """
    value = _channel_number(host.get_property(PROP_AUDIO_CHANNELS))
    if value is None:
        value = _channel_number(host.get_property(PROP_AUDIO_CHANNEL_COUNT))
    if value is None:
        return 0
    return value


def _channel_number(value: Any) -> Optional[int]:
    """Integer, integral float or all-digit string, else None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def read_track_count(host: Host) -> int:
    """Number of audio tracks in the loaded file."""
    tracks = host.get_property(PROP_TRACK_LIST) or []
    return sum(1 for track in tracks
               if isinstance(track, dict) and track.get('type') == 'audio')


def read_audio_track(host: Host) -> AudioTrackDescriptor:
    codec = host.get_property(PROP_AUDIO_CODEC)
    sample_rate = _number_or_none(host.get_property(PROP_AUDIO_SAMPLERATE))
    return AudioTrackDescriptor(
        channel_count=read_channel_count(host),
        track_count=read_track_count(host),
        codec_name=str(codec) if codec else 'unknown',
        sample_rate=int(sample_rate) if sample_rate else 0,
    )
