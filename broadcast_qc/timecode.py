"""
Timecode Module - SMPTE Timecode Formatting

Converts a playback position in seconds into a SMPTE timecode address
(HH:MM:SS:FF, or HH:MM:SS;FF for drop-frame) and formats human-readable
durations for the info block.

DESIGN CONSTRAINTS:
- Idempotent: the same (seconds, fps) always yields the same string
- Missing or negative positions give the sentinel, never an exception
- Frame index = floor(seconds * nominal_fps + 0.5), drop-frame adjusted,
  then decomposed by the rounded rate into hours/minutes/seconds/frames
"""

import math
from dataclasses import dataclass
from typing import Optional

from broadcast_qc.dropframe import compute_dropframe_count
from broadcast_qc.framerate import FramerateProfile, classify_framerate
from broadcast_qc.params import FramerateParams


# =============================================================================
# CONSTANTS
# =============================================================================

TIMECODE_SENTINEL: str = "--:--:--:--"
DURATION_SENTINEL: str = "--:--"

SECONDS_PER_MINUTE: int = 60
SECONDS_PER_HOUR: int = 3600


@dataclass(frozen=True)
class TimecodeValue:
    """
    A decomposed timecode address.

    Invariants: 0 <= frames < rounded fps, 0 <= seconds < 60, 0 <= minutes < 60.
    Hours are not wrapped at 24.
    """
    hours: int
    minutes: int
    seconds: int
    frames: int
    drop_frame: bool
    separator: str

    def __str__(self) -> str:
        return (f"{self.hours:02d}:{self.minutes:02d}:{self.seconds:02d}"
                f"{self.separator}{self.frames:02d}")


# =============================================================================
# CORE FUNCTIONS
# =============================================================================

def _valid_position(seconds) -> bool:
    if seconds is None or isinstance(seconds, bool):
        return False
    try:
        value = float(seconds)
    except (TypeError, ValueError):
        return False
    return math.isfinite(value) and value >= 0


def seconds_to_frame_count(seconds: float, profile: FramerateProfile) -> int:
    """Nominal frame count at a position, rounded half up."""
    return int(math.floor(float(seconds) * profile.nominal_fps + 0.5))


def decompose_frames(frame_count: int, profile: FramerateProfile) -> TimecodeValue:
    """
    Split a (drop-frame adjusted) frame count into timecode fields.

    Parameters:
        frame_count: Timecode-visible frame count
        profile: Framerate profile providing rounded rate and separator

    Returns:
        TimecodeValue
    """
    fps = profile.rounded_fps
    frames_per_hour = fps * SECONDS_PER_HOUR
    frames_per_min = fps * SECONDS_PER_MINUTE

    hours, remainder = divmod(frame_count, frames_per_hour)
    minutes, remainder = divmod(remainder, frames_per_min)
    secs, frames = divmod(remainder, fps)

    return TimecodeValue(
        hours=int(hours),
        minutes=int(minutes),
        seconds=int(secs),
        frames=int(frames),
        drop_frame=profile.drop_frame,
        separator=profile.separator,
    )


def seconds_to_timecode(
    seconds: Optional[float],
    fps,
    params: FramerateParams = FramerateParams()
) -> Optional[TimecodeValue]:
    """
    Convert a playback position into a TimecodeValue.

    Parameters:
        seconds: Playback position in seconds (None or negative -> None)
        fps: Frame rate from host metadata
        params: Framerate classification parameters

    Returns:
        TimecodeValue, or None when the position is missing or invalid
    """
    if not _valid_position(seconds):
        return None

    profile = classify_framerate(fps, params)
    total_frames = seconds_to_frame_count(seconds, profile)

    if profile.drop_frame:
        total_frames = compute_dropframe_count(total_frames, profile.rounded_fps)

    return decompose_frames(total_frames, profile)


def format_timecode(
    seconds: Optional[float],
    fps,
    params: FramerateParams = FramerateParams()
) -> str:
    """
    Format a playback position as a SMPTE timecode string.

    Examples:
        format_timecode(3601, 25)            -> '01:00:01:00'
        format_timecode(1800 / 29.97, 29.97) -> '00:01:00;02'
        format_timecode(None, 25)            -> '--:--:--:--'
    """
    value = seconds_to_timecode(seconds, fps, params)
    if value is None:
        return TIMECODE_SENTINEL
    return str(value)


def format_duration(seconds: Optional[float]) -> str:
    """
    Format a duration as H:MM:SS (at least one hour) or M:SS.

    Parameters:
        seconds: Duration in seconds

    Returns:
        Formatted string, '--:--' when missing or negative
    """
    if not _valid_position(seconds):
        return DURATION_SENTINEL

    whole = int(math.floor(float(seconds)))
    hours, remainder = divmod(whole, SECONDS_PER_HOUR)
    mins, secs = divmod(remainder, SECONDS_PER_MINUTE)

    if hours > 0:
        return f"{hours}:{mins:02d}:{secs:02d}"
    return f"{mins}:{secs:02d}"
