"""
Loudness Module - Loudness Normalisation Stage Builder

Builds the loudness-normalisation stage from a named LoudnessProfile.

KNOWN LIMITATION:
The stage is a single-pass, linear-mode approximation (ITU-R BS.1770
integrated loudness target, -1 dBTP true-peak ceiling, 11 LU loudness
range). It is monitoring grade only. Delivery-grade EBU R128 / ATSC A/85
compliance needs the two-pass measure-then-normalise process, which this
module does not perform.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from broadcast_qc.params import LoudnessParams


NONE_PROFILE_NAME: str = 'none'


@dataclass(frozen=True)
class LoudnessProfile:
    name: str
    target_lufs: float

    @property
    def enabled(self) -> bool:
        return self.name != NONE_PROFILE_NAME and self.target_lufs != 0

    def describe(self) -> str:
        """'EBU_R128 (-23.0 LUFS)' or 'NONE'."""
        if not self.enabled:
            return self.name.upper()
        return f"{self.name.upper()} ({self.target_lufs:.1f} LUFS)"


@dataclass(frozen=True)
class LoudnessStage:
    """
    Loudness-normalisation filter stage.

    Attributes:
        integrated_lufs: Integrated loudness target
        true_peak_dbtp: True-peak ceiling
        loudness_range_lu: Loudness range target
        measured_threshold: Gating threshold passed with the pinned measurements
        linear: Linear (single gain) normalisation
    """
    integrated_lufs: float
    true_peak_dbtp: float = -1.0
    loudness_range_lu: float = 11.0
    measured_threshold: float = -24.0
    linear: bool = True


def loudness_profiles(params: LoudnessParams = LoudnessParams()) -> Tuple[LoudnessProfile, ...]:
    """Profiles in cycling order."""
    return tuple(LoudnessProfile(name, float(target)) for name, target in params.targets)


def get_loudness_profile(name: str, params: LoudnessParams = LoudnessParams()) -> LoudnessProfile:
    """
    Look up a profile by name.

    Raises:
        KeyError: If the name is not in the table
    """
    for profile in loudness_profiles(params):
        if profile.name == name:
            return profile
    raise KeyError(f"Unknown loudness profile: {name}")


def initial_loudness_profile(params: LoudnessParams = LoudnessParams()) -> LoudnessProfile:
    return get_loudness_profile(NONE_PROFILE_NAME, params)


def next_loudness_profile(
    current: LoudnessProfile,
    params: LoudnessParams = LoudnessParams()
) -> LoudnessProfile:
    """
    Next profile in the table order, wrapping around.

    With the default table: none -> ebu_r128 -> atsc -> podcast -> none.
    A profile missing from the table restarts the cycle at its first entry.
    """
    profiles = loudness_profiles(params)
    names = [p.name for p in profiles]
    if current.name not in names:
        return profiles[0]
    return profiles[(names.index(current.name) + 1) % len(profiles)]


def build_loudness_stage(
    profile: LoudnessProfile,
    params: LoudnessParams = LoudnessParams()
) -> Optional[LoudnessStage]:
    """
    Build the normalisation stage for a profile.

    Parameters:
        profile: Active loudness profile
        params: True-peak, range and threshold settings

    Returns:
        LoudnessStage, or None for the 'none' profile
    """
    if not profile.enabled:
        return None
    return LoudnessStage(
        integrated_lufs=profile.target_lufs,
        true_peak_dbtp=params.true_peak_dbtp,
        loudness_range_lu=params.loudness_range_lu,
        measured_threshold=params.measured_threshold,
        linear=True,
    )
