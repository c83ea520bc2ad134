"""
Framerate Module - NTSC Rate Classification

Classifies a (possibly imprecise) frame rate reported by the host into a
FramerateProfile: the integer rate used for timecode arithmetic, whether
drop-frame counting applies, and the separator used before the frame field.

DESIGN CONSTRAINTS:
- Deterministic: same fps -> same profile
- Never raises for bad input; falls back to 25 fps NDF with a warning
- Tolerance scales with the nominal rate so noisy high-rate metadata
  still classifies, while 24.000/30.000/60.000 stay non-drop-frame
"""

import math
import warnings
from dataclasses import dataclass
from typing import Optional, Tuple

from broadcast_qc.params import FramerateParams


# =============================================================================
# CONSTANTS
# =============================================================================

DF_SEPARATOR: str = ';'
NDF_SEPARATOR: str = ':'

# (decimal label, exact rational, rounded rate) for every NTSC-derived rate
NTSC_RATES: Tuple[Tuple[float, float, int], ...] = (
    (23.976, 24000 / 1001, 24),
    (29.97, 30000 / 1001, 30),
    (47.952, 48000 / 1001, 48),
    (59.94, 60000 / 1001, 60),
    (119.88, 120000 / 1001, 120),
)


class FramerateWarning(UserWarning):
    """Non-fatal framerate problem; a safe default was substituted."""


@dataclass(frozen=True)
class FramerateProfile:
    """
    Timecode parameters derived from a frame rate.

    Attributes:
        nominal_fps: Rate used to convert seconds into frames
        rounded_fps: Integer frames-per-second of the timecode address
        drop_frame: True for NTSC-derived rates
        separator: ';' for drop-frame, ':' otherwise
    """
    nominal_fps: float
    rounded_fps: int
    drop_frame: bool
    separator: str

    @property
    def label(self) -> str:
        return 'DF' if self.drop_frame else 'NDF'


# =============================================================================
# CLASSIFICATION
# =============================================================================

def ntsc_tolerance(nominal: float, params: FramerateParams = FramerateParams()) -> float:
    """Absolute tolerance for matching against a nominal NTSC rate."""
    return max(params.min_tolerance, params.rel_tolerance * nominal)


def fallback_profile(params: FramerateParams = FramerateParams()) -> FramerateProfile:
    return FramerateProfile(
        nominal_fps=float(params.fallback_fps),
        rounded_fps=params.fallback_fps,
        drop_frame=False,
        separator=NDF_SEPARATOR,
    )


def _coerce_fps(fps) -> Optional[float]:
    if fps is None or isinstance(fps, bool):
        return None
    try:
        value = float(fps)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value) or value <= 0:
        return None
    return value


def classify_framerate(
    fps,
    params: FramerateParams = FramerateParams()
) -> FramerateProfile:
    """
    Classify a frame rate into a FramerateProfile.

    CONTRACT:
    - NTSC-derived rates (23.976, 29.97, 47.952, 59.94, 119.88) -> drop-frame,
      rounded to 24/30/48/60/120, separator ';'
    - Any other positive rate -> non-drop-frame, floor(fps + 0.5), separator ':'
    - None, non-numeric, non-finite or <= 0 -> 25 fps NDF plus FramerateWarning

    A rate matches an NTSC entry if it lies within the rate-scaled tolerance
    of the decimal label, or within rational_tolerance of the exact N/1001
    value.

    Parameters:
        fps: Frames per second from container or stream metadata
        params: Tolerance parameters

    Returns:
        FramerateProfile for the input
    """
    value = _coerce_fps(fps)
    if value is None:
        warnings.warn(
            f"Invalid framerate {fps!r}, defaulting to {params.fallback_fps} fps NDF",
            FramerateWarning,
            stacklevel=2,
        )
        return fallback_profile(params)

    for label, exact, rounded in NTSC_RATES:
        if (abs(value - label) < ntsc_tolerance(label, params)
                or abs(value - exact) < params.rational_tolerance):
            return FramerateProfile(
                nominal_fps=value,
                rounded_fps=rounded,
                drop_frame=True,
                separator=DF_SEPARATOR,
            )

    return FramerateProfile(
        nominal_fps=value,
        rounded_fps=max(1, int(math.floor(value + 0.5))),
        drop_frame=False,
        separator=NDF_SEPARATOR,
    )
