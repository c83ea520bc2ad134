"""
Routing Module - Channel Routing Planner and Downmix Matrix Builder

Maps the input channels of the active audio track onto two output
channels (left, right) as a linear pan matrix.

ROUTING MODES:
- DefaultRouting: pass-through for <= 2 channels, all-channel downmix above
- StereoPair(n): left = input 2(n-1), right = input 2(n-1)+1
- Solo(n): left = right = input n-1
- AllChannelDownmix: even inputs -> left, odd inputs -> right

DOWNMIX GAIN:
Each member of a group of size N contributes with gain 1/sqrt(N), so the
squared gains of every output row sum to 1 and total output power equals
total input power. A group of one passes through at unity; an empty group
is silent.

Channels are 1-indexed for users and 0-indexed in matrices.
"""

import math
from dataclasses import dataclass
from typing import Optional, Union

import numpy as np


# =============================================================================
# ROUTING MODES
# =============================================================================

@dataclass(frozen=True)
class DefaultRouting:
    name = 'default'


@dataclass(frozen=True)
class StereoPair:
    pair_index: int
    name = 'stereo_pair'


@dataclass(frozen=True)
class Solo:
    channel_index: int
    name = 'solo'


@dataclass(frozen=True)
class AllChannelDownmix:
    name = 'sum_all'


RoutingMode = Union[DefaultRouting, StereoPair, Solo, AllChannelDownmix]


class ChannelRangeError(ValueError):
    """Requested channels are not present in the active track."""

    def __init__(self, message: str, channel_count: int) -> None:
        super().__init__(message)
        self.channel_count = channel_count


@dataclass(frozen=True)
class PanStage:
    """
    Pan-matrix filter stage.

    Attributes:
        matrix: (2, channel_count) float64 gains; row 0 = left, row 1 = right
    """
    matrix: np.ndarray

    @property
    def channel_count(self) -> int:
        return int(self.matrix.shape[1])

    def __eq__(self, other) -> bool:
        if not isinstance(other, PanStage):
            return NotImplemented
        return (self.matrix.shape == other.matrix.shape
                and bool(np.array_equal(self.matrix, other.matrix)))

    def __hash__(self) -> int:
        return hash((self.matrix.shape, self.matrix.tobytes()))


# =============================================================================
# MATRIX BUILDERS
# =============================================================================

def _empty_matrix(channel_count: int) -> np.ndarray:
    return np.zeros((2, channel_count), dtype=np.float64)


def build_stereo_pair_matrix(left: int, right: int, channel_count: int) -> np.ndarray:
    """Route input `left` to output L and input `right` to output R (0-based)."""
    matrix = _empty_matrix(channel_count)
    matrix[0, left] = 1.0
    matrix[1, right] = 1.0
    return matrix


def build_downmix_matrix(channel_count: int) -> np.ndarray:
    """
    Power-preserving even/odd downmix to stereo.

    CONTRACT:
    - Input: channel_count >= 1
    - Output: (2, channel_count) matrix
    - Row 0 holds the even inputs (0, 2, 4, ...), row 1 the odd inputs
    - Every non-zero gain in a row equals 1/sqrt(group size)
    - Sum of squared gains per non-empty row == 1

    Parameters:
        channel_count: Number of input channels

    Returns:
        Gain matrix

    Raises:
        ChannelRangeError: If channel_count < 1
    """
    if channel_count < 1:
        raise ChannelRangeError(
            f"Cannot downmix {channel_count} channels", channel_count
        )

    matrix = _empty_matrix(channel_count)
    for row, parity in ((0, 0), (1, 1)):
        members = list(range(parity, channel_count, 2))
        if not members:
            continue
        matrix[row, members] = 1.0 / math.sqrt(len(members))
    return matrix


# =============================================================================
# PLANNER
# =============================================================================

def plan_pan_stage(mode: RoutingMode, channel_count: int) -> Optional[PanStage]:
    """
    Compute the pan stage for a routing mode.

    Parameters:
        mode: Requested routing mode
        channel_count: Channels in the active audio track

    Returns:
        PanStage, or None when no pan stage applies (default routing of a
        mono or stereo source)

    Raises:
        ChannelRangeError: If the mode needs channels the track lacks
    """
    if isinstance(mode, StereoPair):
        n = mode.pair_index
        left = 2 * (n - 1)
        right = left + 1
        if n < 1 or 2 * n > channel_count:
            raise ChannelRangeError(
                f"Pair {n} not available ({channel_count} channels)", channel_count
            )
        return PanStage(build_stereo_pair_matrix(left, right, channel_count))

    if isinstance(mode, Solo):
        n = mode.channel_index
        if n < 1 or n > channel_count:
            raise ChannelRangeError(
                f"CH{n} not available ({channel_count} channels)", channel_count
            )
        return PanStage(build_stereo_pair_matrix(n - 1, n - 1, channel_count))

    if isinstance(mode, AllChannelDownmix):
        return PanStage(build_downmix_matrix(channel_count))

    if isinstance(mode, DefaultRouting):
        if channel_count <= 2:
            return None
        return PanStage(build_downmix_matrix(channel_count))

    raise TypeError(f"Unknown routing mode: {mode!r}")


def describe_routing(mode: RoutingMode) -> str:
    """Short upper-case label of a routing mode for messages."""
    if isinstance(mode, StereoPair):
        left = 2 * (mode.pair_index - 1) + 1
        return f"CH{left}+{left + 1} (Pair {mode.pair_index})"
    if isinstance(mode, Solo):
        return f"SOLO CH{mode.channel_index}"
    if isinstance(mode, AllChannelDownmix):
        return "SUM_ALL"
    return "DEFAULT"
