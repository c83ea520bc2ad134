"""
Channel Routing Tests

Tests for pan matrices: stereo pairs, solo channels and power-preserving
downmix.
"""

import math
import sys
from pathlib import Path

import numpy as np
import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from broadcast_qc.routing import (
    AllChannelDownmix,
    ChannelRangeError,
    DefaultRouting,
    PanStage,
    Solo,
    StereoPair,
    build_downmix_matrix,
    describe_routing,
    plan_pan_stage,
)


class TestDownmixMatrix:
    """Tests for build_downmix_matrix."""

    def test_six_channels(self):
        """Test 5.1: three inputs per side at 1/sqrt(3)."""
        matrix = build_downmix_matrix(6)
        g = 1.0 / math.sqrt(3)
        expected = np.array([
            [g, 0, g, 0, g, 0],
            [0, g, 0, g, 0, g],
        ])
        np.testing.assert_allclose(matrix, expected)

    @pytest.mark.parametrize("channels", [2, 3, 4, 5, 6, 7, 8, 16])
    def test_power_preserved(self, channels):
        """Test that squared gains of each output row sum to 1."""
        matrix = build_downmix_matrix(channels)
        np.testing.assert_allclose(np.sum(matrix ** 2, axis=1), [1.0, 1.0])

    def test_odd_count(self):
        """Test five channels: three left, two right."""
        matrix = build_downmix_matrix(5)
        np.testing.assert_allclose(matrix[0, [0, 2, 4]], 1 / math.sqrt(3))
        np.testing.assert_allclose(matrix[1, [1, 3]], 1 / math.sqrt(2))

    def test_mono_right_silent(self):
        """Test one channel: unity left, silent right."""
        matrix = build_downmix_matrix(1)
        np.testing.assert_array_equal(matrix, [[1.0], [0.0]])

    def test_no_channels(self):
        """Test that zero channels cannot be downmixed."""
        with pytest.raises(ChannelRangeError):
            build_downmix_matrix(0)


class TestPlanPanStage:
    """Tests for plan_pan_stage."""

    def test_stereo_pair(self):
        """Test pair 2 of 8 channels routes inputs 3+4."""
        stage = plan_pan_stage(StereoPair(2), 8)
        assert stage.channel_count == 8
        assert stage.matrix[0, 2] == 1.0
        assert stage.matrix[1, 3] == 1.0
        assert stage.matrix.sum() == 2.0

    def test_solo(self):
        """Test that solo feeds one input to both outputs."""
        stage = plan_pan_stage(Solo(5), 6)
        np.testing.assert_array_equal(stage.matrix[:, 4], [1.0, 1.0])
        assert stage.matrix.sum() == 2.0

    def test_pair_out_of_range(self):
        """Test pair 3 on a 4-channel track."""
        with pytest.raises(ChannelRangeError) as info:
            plan_pan_stage(StereoPair(3), 4)
        assert str(info.value) == "Pair 3 not available (4 channels)"
        assert info.value.channel_count == 4

    def test_solo_out_of_range(self):
        """Test solo 7 on a 6-channel track."""
        with pytest.raises(ChannelRangeError) as info:
            plan_pan_stage(Solo(7), 6)
        assert str(info.value) == "CH7 not available (6 channels)"

    def test_index_below_one(self):
        """Test that zero indices are rejected."""
        with pytest.raises(ChannelRangeError):
            plan_pan_stage(StereoPair(0), 8)
        with pytest.raises(ChannelRangeError):
            plan_pan_stage(Solo(0), 8)

    def test_range_error_is_value_error(self):
        """Test that callers catching ValueError see range errors."""
        assert issubclass(ChannelRangeError, ValueError)

    @pytest.mark.parametrize("channels", [0, 1, 2])
    def test_default_passthrough(self, channels):
        """Test no pan stage for mono and stereo."""
        assert plan_pan_stage(DefaultRouting(), channels) is None

    def test_default_downmixes_multichannel(self):
        """Test that default routing of 6 channels is the downmix."""
        stage = plan_pan_stage(DefaultRouting(), 6)
        assert stage == PanStage(build_downmix_matrix(6))

    def test_explicit_downmix(self):
        """Test that AllChannelDownmix applies even to stereo."""
        stage = plan_pan_stage(AllChannelDownmix(), 2)
        np.testing.assert_array_equal(stage.matrix, np.eye(2))


class TestPanStage:
    """Tests for PanStage value semantics."""

    def test_equality_and_hash(self):
        """Test that equal matrices give equal, hashable stages."""
        a = PanStage(build_downmix_matrix(4))
        b = PanStage(build_downmix_matrix(4))
        assert a == b
        assert hash(a) == hash(b)
        assert a != PanStage(build_downmix_matrix(6))

    def test_describe(self):
        """Test routing labels used in messages."""
        assert describe_routing(StereoPair(3)) == "CH5+6 (Pair 3)"
        assert describe_routing(Solo(2)) == "SOLO CH2"
        assert describe_routing(DefaultRouting()) == "DEFAULT"
