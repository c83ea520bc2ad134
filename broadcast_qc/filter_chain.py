"""
Filter Chain Module

A FilterChain is an ordered, immutable sequence of structured stage
descriptors (pan stage, then loudness stage). Stages are only turned into
the host's textual lavfi form by `serialize_stage`, at the moment the chain
is submitted.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

import numpy as np

from broadcast_qc.loudness import LoudnessStage
from broadcast_qc.routing import PanStage


Stage = Union[PanStage, LoudnessStage]

GAIN_DECIMALS: int = 6
UNITY_TOLERANCE: float = 1e-9


@dataclass(frozen=True)
class FilterChain:
    stages: Tuple[Stage, ...] = ()

    @classmethod
    def from_stages(
        cls,
        pan: Optional[PanStage],
        loudness: Optional[LoudnessStage]
    ) -> 'FilterChain':
        """Pan stage first, loudness stage second; absent stages are skipped."""
        return cls(tuple(stage for stage in (pan, loudness) if stage is not None))

    @property
    def is_empty(self) -> bool:
        return not self.stages

    @property
    def pan_stage(self) -> Optional[PanStage]:
        return next((s for s in self.stages if isinstance(s, PanStage)), None)

    @property
    def loudness_stage(self) -> Optional[LoudnessStage]:
        return next((s for s in self.stages if isinstance(s, LoudnessStage)), None)

    def to_descriptors(self) -> List[str]:
        return [serialize_stage(stage) for stage in self.stages]


# =============================================================================
# SERIALISATION
# =============================================================================

def pan_channel_expression(gains: np.ndarray) -> str:
    """
    Expression of one output channel, e.g. '0.577350*c0+0.577350*c2'.

    A single unity gain is written as the bare input ('c3'); a silent output
    as '0'.
    """
    members = [(int(i), float(g)) for i, g in enumerate(gains) if g != 0.0]
    if not members:
        return "0"
    if len(members) == 1 and abs(members[0][1] - 1.0) < UNITY_TOLERANCE:
        return f"c{members[0][0]}"
    return "+".join(f"{gain:.{GAIN_DECIMALS}f}*c{index}" for index, gain in members)


def serialize_pan_stage(stage: PanStage) -> str:
    left = pan_channel_expression(stage.matrix[0])
    right = pan_channel_expression(stage.matrix[1])
    return f"lavfi=[pan=stereo|c0={left}|c1={right}]"


def serialize_loudness_stage(stage: LoudnessStage) -> str:
    # measured_* pinned to the targets so loudnorm applies a single linear gain
    options = [
        f"I={stage.integrated_lufs:.1f}",
        f"TP={stage.true_peak_dbtp:.1f}",
        f"LRA={stage.loudness_range_lu:g}",
        f"measured_I={stage.integrated_lufs:.1f}",
        f"measured_LRA={stage.loudness_range_lu:g}",
        f"measured_TP={stage.true_peak_dbtp:.1f}",
        f"measured_thresh={stage.measured_threshold:.1f}",
        f"linear={'true' if stage.linear else 'false'}",
    ]
    return f"lavfi=[loudnorm={':'.join(options)}]"


def serialize_stage(stage: Stage) -> str:
    if isinstance(stage, PanStage):
        return serialize_pan_stage(stage)
    if isinstance(stage, LoudnessStage):
        return serialize_loudness_stage(stage)
    raise TypeError(f"Unknown filter stage: {stage!r}")
