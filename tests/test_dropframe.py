"""
Drop-Frame Calculator Tests

Tests for SMPTE drop-frame compensation at every supported rate.
"""

import sys
from pathlib import Path

import numpy as np
import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from broadcast_qc.dropframe import (
    compute_dropframe_count,
    compute_dropframe_offsets,
    compute_dropped_numbers,
    drop_frames_per_minute,
)
from broadcast_qc.framerate import FramerateWarning, classify_framerate


class TestDropFramesPerMinute:
    """Tests for the drop pattern per rounded rate."""

    def test_known_rates(self):
        """Test drop counts of all NTSC rates."""
        assert drop_frames_per_minute(24) == 2
        assert drop_frames_per_minute(30) == 2
        assert drop_frames_per_minute(48) == 4
        assert drop_frames_per_minute(60) == 4
        assert drop_frames_per_minute(120) == 8

    def test_unknown_rate_warns(self):
        """Test that an unexpected rate warns and uses 2."""
        with pytest.warns(FramerateWarning):
            assert drop_frames_per_minute(25) == 2


class TestDropFrameCount:
    """Tests for compute_dropframe_count."""

    def test_first_minute_untouched(self):
        """Test that frames before the first minute boundary are not shifted."""
        for n in (0, 1, 29, 1799):
            assert compute_dropframe_count(n, 30) == n

    def test_first_dropping_minute(self):
        """Test the first drop at 29.97: frame 1800 -> 1802."""
        assert compute_dropframe_count(1800, 30) == 1802

    def test_ninth_minute(self):
        """Test that nine minutes drop 18 numbers at 30 fps."""
        assert compute_dropped_numbers(9 * 1800, 30) == 18

    def test_complete_block(self):
        """Test that a complete 10-minute block drops 9 * dropPerMinute."""
        assert compute_dropped_numbers(18000, 30) == 18
        assert compute_dropped_numbers(36000, 60) == 36
        assert compute_dropped_numbers(72000, 120) == 72

    def test_rate_specific_drops(self):
        """Test the first drop at 59.94 and 119.88."""
        assert compute_dropframe_count(3600, 60) == 3604
        assert compute_dropframe_count(7200, 120) == 7208
        assert compute_dropframe_count(2880, 48) == 2884

    def test_output_never_below_input(self):
        """Test that compensation only adds numbers."""
        for n in range(0, 40000, 997):
            assert compute_dropframe_count(n, 30) >= n

    def test_monotonic(self):
        """Test that the adjusted count is non-decreasing."""
        counts = [compute_dropframe_count(n, 30) for n in range(0, 20000)]
        assert all(b >= a for a, b in zip(counts, counts[1:]))

    def test_negative_raises(self):
        """Test that negative frame counts are rejected."""
        with pytest.raises(ValueError):
            compute_dropframe_count(-1, 30)


class TestVectorisedOffsets:
    """Tests for compute_dropframe_offsets."""

    def test_matches_scalar(self):
        """Test that the vectorised form agrees with the scalar one."""
        counts = np.arange(0, 60000, 123)
        offsets = compute_dropframe_offsets(counts, 30)
        expected = np.array([compute_dropped_numbers(int(n), 30) for n in counts])
        np.testing.assert_array_equal(offsets, expected)

    def test_shape_and_dtype(self):
        """Test output shape and integer dtype."""
        offsets = compute_dropframe_offsets(np.array([0, 1800, 3600]), 30)
        assert offsets.shape == (3,)
        assert offsets.dtype == np.int64
        np.testing.assert_array_equal(offsets, [0, 2, 4])

    def test_negative_raises(self):
        """Test that negative frame counts are rejected."""
        with pytest.raises(ValueError):
            compute_dropframe_offsets(np.array([0, -5]), 30)


class TestHighRateDropPattern:
    """
    47.952 and 119.88 drop-frame.

    Some drop-frame formulations treat 47.952 as 48 fps non-drop and give
    48 fps two drops per minute. Here 47.952 is drop-frame with four drops
    per minute, and 119.88 drops eight.
    """

    def test_47_952_is_drop_frame(self):
        """Test that 47.952 classifies as 48 fps drop-frame with four drops."""
        profile = classify_framerate(47.952)
        assert profile.drop_frame
        assert profile.rounded_fps == 48
        assert profile.separator == ';'
        assert drop_frames_per_minute(profile.rounded_fps) == 4

    def test_48_first_minute_drops_four(self):
        """Test that frame 2880 at 48 fps becomes 2884, not 2882."""
        assert compute_dropframe_count(2880, 48) == 2884

    def test_48_complete_block(self):
        """Test that a 10-minute block at 48 fps drops 36 numbers."""
        assert compute_dropped_numbers(28800, 48) == 36

    def test_120_complete_block(self):
        """Test that a 10-minute block at 120 fps drops 72 numbers."""
        assert compute_dropped_numbers(72000, 120) == 72

    def test_minute_term_within_block(self):
        """Test that minute m of the first block has dropped 2 * m numbers."""
        for minute in range(10):
            assert compute_dropped_numbers(minute * 1800, 30) == 2 * minute
            assert compute_dropped_numbers(minute * 2880, 48) == 4 * minute
