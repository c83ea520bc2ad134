"""
Drop-Frame Module - SMPTE 12M-1 Frame Number Compensation

Drop-frame timecode skips frame NUMBERS (never real frames) at the start of
every minute except minutes 00, 10, 20, 30, 40 and 50, so that the
timecode address of an NTSC-rate stream tracks wall-clock time.

Drop pattern by rounded rate:
    24, 30 fps: 2 numbers per minute
    48, 60 fps: 4 numbers per minute
   120 fps:     8 numbers per minute

FORMULA:
    framesPer10Min = rounded_fps * 600
    blocks         = total_frames // framesPer10Min
    remainder      = total_frames %  framesPer10Min
    dropped        = blocks * dropPerMinute * 9
                   + (remainder // (rounded_fps * 60)) * dropPerMinute
    adjusted       = total_frames + dropped

The adjusted count is monotonically non-decreasing in total_frames.
"""

import warnings
from typing import Dict

import numpy as np

from broadcast_qc.framerate import FramerateWarning


# =============================================================================
# CONSTANTS
# =============================================================================

DROP_FRAMES_PER_MINUTE: Dict[int, int] = {
    24: 2,
    30: 2,
    48: 4,
    60: 4,
    120: 8,
}

DEFAULT_DROP_PER_MINUTE: int = 2

# Minutes 0, 10, 20, 30, 40, 50 keep all frame numbers
DROPPING_MINUTES_PER_BLOCK: int = 9


# =============================================================================
# CORE FUNCTIONS
# =============================================================================

def drop_frames_per_minute(rounded_fps: int) -> int:
    """
    Number of frame numbers skipped at each dropping minute.

    Unexpected rates warn and use 2, the 29.97 pattern.
    """
    try:
        return DROP_FRAMES_PER_MINUTE[rounded_fps]
    except KeyError:
        warnings.warn(
            f"Unexpected drop-frame rate {rounded_fps}, using "
            f"{DEFAULT_DROP_PER_MINUTE} frame drop",
            FramerateWarning,
            stacklevel=2,
        )
        return DEFAULT_DROP_PER_MINUTE


def compute_dropped_numbers(total_frames: int, rounded_fps: int) -> int:
    """
    Count frame numbers skipped up to total_frames.

    Parameters:
        total_frames: Nominal frame count from elapsed time (>= 0)
        rounded_fps: Rounded drop-frame rate (24, 30, 48, 60, 120)

    Returns:
        Number of skipped frame numbers

    Raises:
        ValueError: If total_frames is negative or rounded_fps is not positive
    """
    if total_frames < 0:
        raise ValueError(f"total_frames must be non-negative, got {total_frames}")
    if rounded_fps <= 0:
        raise ValueError(f"rounded_fps must be positive, got {rounded_fps}")

    drop_per_min = drop_frames_per_minute(rounded_fps)
    frames_per_min = rounded_fps * 60
    frames_per_10min = rounded_fps * 600

    ten_min_blocks, remaining_frames = divmod(int(total_frames), frames_per_10min)
    dropped = ten_min_blocks * drop_per_min * DROPPING_MINUTES_PER_BLOCK

    # Minute 0 of the block keeps its numbers; floor() already yields 0 there
    remaining_minutes = remaining_frames // frames_per_min
    dropped += drop_per_min * remaining_minutes

    return dropped


def compute_dropframe_count(total_frames: int, rounded_fps: int) -> int:
    """
    Apply drop-frame compensation to a nominal frame count.

    CONTRACT:
    - Output >= input, non-decreasing in total_frames
    - Deterministic, no shared state

    Parameters:
        total_frames: Nominal frame count from elapsed time
        rounded_fps: Rounded drop-frame rate

    Returns:
        Timecode-visible frame count
    """
    return int(total_frames) + compute_dropped_numbers(total_frames, rounded_fps)


def compute_dropframe_offsets(frame_counts: np.ndarray, rounded_fps: int) -> np.ndarray:
    """
    Vectorised compute_dropped_numbers for diagnostics and plots.

    Parameters:
        frame_counts: Array of non-negative nominal frame counts
        rounded_fps: Rounded drop-frame rate

    Returns:
        int64 array of skipped frame numbers, same shape as frame_counts
    """
    counts = np.asarray(frame_counts, dtype=np.int64)
    if counts.size and counts.min() < 0:
        raise ValueError("frame counts must be non-negative")

    drop_per_min = drop_frames_per_minute(rounded_fps)
    frames_per_min = rounded_fps * 60
    frames_per_10min = rounded_fps * 600

    blocks = counts // frames_per_10min
    remaining_minutes = (counts % frames_per_10min) // frames_per_min

    return (blocks * drop_per_min * DROPPING_MINUTES_PER_BLOCK
            + remaining_minutes * drop_per_min).astype(np.int64)
