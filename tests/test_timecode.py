"""
Timecode Formatter Tests

Tests for position -> timecode conversion, drop-frame boundaries and
sentinel handling.
"""

import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from broadcast_qc.framerate import classify_framerate
from broadcast_qc.timecode import (
    DURATION_SENTINEL,
    TIMECODE_SENTINEL,
    TimecodeValue,
    decompose_frames,
    format_duration,
    format_timecode,
    seconds_to_frame_count,
    seconds_to_timecode,
)


class TestNonDropFrame:
    """Tests for integer-rate timecode."""

    def test_zero(self):
        """Test the origin."""
        assert format_timecode(0.0, 25) == "00:00:00:00"

    def test_one_hour_one_second(self):
        """Test 3601 s at 25 fps."""
        assert format_timecode(3601, 25) == "01:00:01:00"

    def test_frame_field(self):
        """Test frame numbers inside a second."""
        assert format_timecode(1.0 + 12 / 25, 25) == "00:00:01:12"

    def test_rounds_half_up(self):
        """Test that positions are rounded to the nearest frame."""
        assert format_timecode(0.024, 25) == "00:00:00:01"
        assert format_timecode(0.016, 25) == "00:00:00:00"

    def test_hours_not_wrapped(self):
        """Test that hours keep counting past 24."""
        assert format_timecode(25 * 3600, 25) == "25:00:00:00"


class TestDropFrame:
    """Tests for drop-frame timecode at 29.97."""

    def test_first_minute_boundary(self):
        """Test that frame 1800 shows as 00:01:00;02."""
        assert format_timecode(1800 / 29.97, 29.97) == "00:01:00;02"

    def test_last_frame_before_boundary(self):
        """Test that frame 1799 shows as 00:00:59;29."""
        assert format_timecode(1799 / 29.97, 29.97) == "00:00:59;29"

    def test_separator(self):
        """Test that drop-frame uses ';' before the frames field."""
        value = seconds_to_timecode(10.0, 29.97)
        assert value.separator == ';'
        assert value.drop_frame
        assert str(value).count(';') == 1

    def test_tenth_minute_kept(self):
        """Test that minute 10 starts at frame 00 (no drop)."""
        value = seconds_to_timecode(17982 / 29.97, 29.97)
        assert (value.minutes, value.seconds, value.frames) == (10, 0, 0)

    def test_frames_never_dropped_numbers(self):
        """Test that dropping minutes never show frames 00 and 01."""
        for frame in range(1790, 1810):
            value = seconds_to_timecode(frame / 29.97, 29.97)
            if value.seconds == 0 and value.minutes % 10 != 0:
                assert value.frames >= 2

    def test_59_94_drops_four(self):
        """Test the first dropping minute at 59.94."""
        assert format_timecode(3600 / 59.94, 59.94) == "00:01:00;04"


class TestSentinel:
    """Tests for missing or invalid positions."""

    @pytest.mark.parametrize("seconds", [None, -1.0, float('nan'), float('inf'), "x"])
    def test_invalid_positions(self, seconds):
        """Test that invalid positions give the sentinel."""
        assert seconds_to_timecode(seconds, 25) is None
        assert format_timecode(seconds, 25) == TIMECODE_SENTINEL

    def test_sentinel_text(self):
        """Test the sentinel form."""
        assert TIMECODE_SENTINEL == "--:--:--:--"


class TestDecomposition:
    """Tests for frame decomposition."""

    def test_field_ranges(self):
        """Test field invariants over a range of positions."""
        profile = classify_framerate(30000 / 1001)
        for seconds in range(0, 7200, 37):
            value = seconds_to_timecode(seconds + 0.3, 30000 / 1001)
            assert 0 <= value.frames < profile.rounded_fps
            assert 0 <= value.seconds < 60
            assert 0 <= value.minutes < 60

    def test_decompose(self):
        """Test decompose_frames directly."""
        profile = classify_framerate(25)
        assert decompose_frames(90025, profile) == TimecodeValue(1, 0, 1, 0, False, ':')

    def test_frame_count(self):
        """Test seconds_to_frame_count uses the nominal rate."""
        profile = classify_framerate(29.97)
        assert seconds_to_frame_count(60.0, profile) == 1798

    def test_idempotent(self):
        """Test that the same input always gives the same string."""
        results = {format_timecode(123.456, 23.976) for _ in range(5)}
        assert len(results) == 1


class TestFormatDuration:
    """Tests for format_duration."""

    def test_minutes_seconds(self):
        """Test M:SS below one hour."""
        assert format_duration(0) == "0:00"
        assert format_duration(65.9) == "1:05"

    def test_hours(self):
        """Test H:MM:SS from one hour."""
        assert format_duration(3600) == "1:00:00"
        assert format_duration(3725) == "1:02:05"

    def test_missing(self):
        """Test the duration sentinel."""
        assert format_duration(None) == DURATION_SENTINEL
        assert format_duration(-3) == DURATION_SENTINEL
