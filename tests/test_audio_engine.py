"""
Audio Routing Engine Tests

Tests for the routing/loudness state machine: transitions, failure
atomicity, deferred chain submission and file load/unload.
"""

import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from broadcast_qc.audio_engine import AudioRoutingEngine
from broadcast_qc.filter_chain import FilterChain
from broadcast_qc.host import (
    PROP_AUDIO_CHANNEL_COUNT,
    PROP_AUDIO_CHANNELS,
    PROP_AUDIO_CODEC,
    PROP_AUDIO_SAMPLERATE,
    PROP_TRACK_LIST,
    read_channel_count,
)
from broadcast_qc.routing import AllChannelDownmix, DefaultRouting, Solo, StereoPair
from broadcast_qc.simhost import SimulatedHost


DOWNMIX_6CH = ("lavfi=[pan=stereo|c0=0.577350*c0+0.577350*c2+0.577350*c4"
               "|c1=0.577350*c1+0.577350*c3+0.577350*c5]")
EBU_FILTER = ("lavfi=[loudnorm=I=-23.0:TP=-1.0:LRA=11:measured_I=-23.0:"
              "measured_LRA=11:measured_TP=-1.0:measured_thresh=-24.0:linear=true]")


def make_host(channels=6, tracks=1):
    return SimulatedHost({
        PROP_AUDIO_CHANNELS: channels,
        PROP_TRACK_LIST: [{'type': 'video'}] + [{'type': 'audio'}] * tracks,
        PROP_AUDIO_CODEC: 'pcm_s24le',
        PROP_AUDIO_SAMPLERATE: 48000,
    })


class TestTransitions:
    """Successful routing commands."""

    def test_pair(self):
        """Test pair 3 on six channels."""
        host = make_host(6)
        engine = AudioRoutingEngine(host)
        result = engine.pair(3)

        assert result.ok
        assert host.messages[-1] == ("EMB AUDIO: CH5+6 (Pair 3)", 2.0)
        assert engine.context.mode == StereoPair(3)

        host.tick()
        assert host.filter_commands == [('clr',), ('add', "lavfi=[pan=stereo|c0=c4|c1=c5]")]

    def test_solo(self):
        """Test the solo confirmation."""
        host = make_host(6)
        engine = AudioRoutingEngine(host)
        engine.solo(4)
        assert host.messages[-1][0] == "SOLO: CH4 (mono→L+R)"
        assert engine.context.mode == Solo(4)

    def test_downmix(self):
        """Test explicit sum of all channels."""
        host = make_host(6)
        engine = AudioRoutingEngine(host)
        engine.downmix()
        host.tick()
        assert host.messages[-1][0] == "SUM ALL: 6ch → Stereo (RMS normalised sum)"
        assert host.audio_filters == [DOWNMIX_6CH]
        assert engine.context.mode == AllChannelDownmix()

    def test_reset_stereo(self):
        """Test reset on a stereo source leaves an empty chain."""
        host = make_host(2)
        engine = AudioRoutingEngine(host)
        engine.pair(1)
        engine.reset()
        host.tick()
        assert host.messages[-1][0] == "RESET: Mono/Stereo – Default routing"
        assert host.audio_filters == []
        assert engine.context.chain.is_empty

    def test_reset_multichannel_keeps_loudness(self):
        """Test reset keeps the loudness profile and reports it."""
        host = make_host(6)
        engine = AudioRoutingEngine(host)
        engine.toggle_loudness()
        engine.solo(1)
        engine.reset()
        host.tick()

        assert engine.context.loudness.name == 'ebu_r128'
        assert host.messages[-1][0] == ("RESET: 6ch → Stereo (RMS normalised sum)\n"
                                        "Loudness: EBU_R128 (-23.0 LUFS)")
        assert host.audio_filters == [DOWNMIX_6CH, EBU_FILTER]

    def test_reset_multiple_tracks(self):
        """Test the longer notice for files with several audio tracks."""
        host = make_host(2, tracks=3)
        engine = AudioRoutingEngine(host)
        engine.reset()
        text, duration = host.messages[-1]
        assert text.splitlines() == [
            "RESET: Multiple audio tracks (3)",
            "Switch tracks with '#' or merge in ffmpeg",
            "Active track: 2 channels",
        ]
        assert duration == 2.5

    def test_channel_layout_name_falls_back(self):
        """Test that a layout name defers to the numeric channel count."""
        host = make_host('5.1(side)')
        host.set_property(PROP_AUDIO_CHANNEL_COUNT, 6)
        engine = AudioRoutingEngine(host)
        assert engine.pair(3).ok

    def test_decimal_looking_layout_falls_back(self):
        """Test that '5.1' counts six channels, not five."""
        host = make_host('5.1')
        host.set_property(PROP_AUDIO_CHANNEL_COUNT, 6)
        assert read_channel_count(host) == 6

        engine = AudioRoutingEngine(host)
        assert engine.pair(3).ok
        assert engine.solo(6).ok
        assert engine.downmix().ok
        host.tick()
        assert host.filter_commands[-1] == ('add', DOWNMIX_6CH)

    def test_seven_one_layout(self):
        """Test that '7.1' counts eight channels."""
        host = make_host('7.1')
        host.set_property(PROP_AUDIO_CHANNEL_COUNT, 8)
        assert read_channel_count(host) == 8
        assert AudioRoutingEngine(host).pair(4).ok

    def test_digit_string(self):
        """Test that an all-digit channels value is used directly."""
        host = make_host('6')
        assert read_channel_count(host) == 6

    def test_integral_float_count(self):
        """Test that a float channel-count such as 8.0 is accepted."""
        host = make_host('7.1')
        host.set_property(PROP_AUDIO_CHANNEL_COUNT, 8.0)
        assert read_channel_count(host) == 8

    def test_no_channel_information(self):
        """Test that a layout name without a numeric count reads as zero."""
        assert read_channel_count(make_host('5.1')) == 0


class TestLoudnessToggle:
    """Tests for toggle_loudness."""

    def test_cycle_messages(self):
        """Test the profile named in each confirmation."""
        host = make_host(2)
        engine = AudioRoutingEngine(host)
        texts = [engine.toggle_loudness().message for _ in range(4)]
        assert texts == [
            "Loudness: EBU_R128 (-23.0 LUFS)",
            "Loudness: ATSC (-24.0 LUFS)",
            "Loudness: PODCAST (-16.0 LUFS)",
            "Loudness: NONE",
        ]

    def test_keeps_routing(self):
        """Test that the routing stage survives a loudness change."""
        host = make_host(6)
        engine = AudioRoutingEngine(host)
        engine.pair(1)
        result = engine.toggle_loudness()
        host.tick()

        assert result.message == "Loudness: EBU_R128 (-23.0 LUFS)\nRouting: CH1+2 (Pair 1)"
        assert host.audio_filters == ["lavfi=[pan=stereo|c0=c0|c1=c1]", EBU_FILTER]

    def test_stage_dropped_at_none(self):
        """Test that cycling back to none removes the loudness stage."""
        host = make_host(2)
        engine = AudioRoutingEngine(host)
        for _ in range(4):
            engine.toggle_loudness()
        host.tick()
        assert host.audio_filters == []


class TestFailedTransitions:
    """A failed transition leaves everything unchanged."""

    def test_pair_out_of_range(self):
        """Test pair 3 on a four-channel track."""
        host = make_host(4)
        engine = AudioRoutingEngine(host)
        engine.pair(1)
        host.tick()
        before = (engine.context.mode, engine.context.loudness, engine.context.chain)
        commands = list(host.filter_commands)

        result = engine.pair(3)
        assert not result.ok
        assert result.message == "ERROR: Pair 3 not available (4 channels)"
        assert host.messages[-1] == (result.message, 2.0)
        assert (engine.context.mode, engine.context.loudness, engine.context.chain) == before
        assert host.pending_timers == 0

        host.run_until_idle()
        assert host.filter_commands == commands

    def test_solo_out_of_range(self):
        """Test solo beyond the channel count."""
        host = make_host(2)
        engine = AudioRoutingEngine(host)
        result = engine.solo(3)
        assert not result.ok
        assert result.message == "ERROR: CH3 not available (2 channels)"
        assert engine.context.mode == DefaultRouting()

    def test_toggle_with_stale_routing(self):
        """Test that the loudness profile does not advance when the routing no longer fits."""
        host = make_host(6)
        engine = AudioRoutingEngine(host)
        engine.pair(3)
        host.tick()

        host.set_property(PROP_AUDIO_CHANNELS, 2)
        result = engine.toggle_loudness()
        assert not result.ok
        assert engine.context.loudness.name == 'none'
        assert engine.context.mode == StereoPair(3)


class TestSubmission:
    """Deferred, coalesced chain submission."""

    def test_nothing_submitted_until_tick(self):
        """Test that a command only schedules the submission."""
        host = make_host(6)
        engine = AudioRoutingEngine(host)
        engine.pair(1)
        assert engine.submission_pending
        assert host.filter_commands == []

    def test_burst_submits_latest_once(self):
        """Test that several commands in one tick apply once with the last state."""
        host = make_host(6)
        engine = AudioRoutingEngine(host)
        engine.pair(1)
        engine.solo(2)
        engine.downmix()
        assert host.pending_timers == 1

        host.tick()
        assert engine.submit_count == 1
        assert host.filter_commands == [('clr',), ('add', DOWNMIX_6CH)]
        assert engine.submitted == engine.context.chain

    def test_flush_now(self):
        """Test that flush() submits immediately and cancels the timer."""
        host = make_host(6)
        engine = AudioRoutingEngine(host)
        engine.solo(6)
        engine.flush()
        assert host.audio_filters == ["lavfi=[pan=stereo|c0=c5|c1=c5]"]
        assert host.run_until_idle() == 0
        assert engine.submit_count == 1


class TestFileEvents:
    """File load and unload."""

    def test_file_loaded_resets_silently(self):
        """Test Default + none on a new file, without a message."""
        host = make_host(6)
        engine = AudioRoutingEngine(host)
        engine.toggle_loudness()
        engine.pair(2)
        host.tick()
        messages = len(host.messages)

        engine.on_file_loaded()
        host.tick()
        assert engine.context.mode == DefaultRouting()
        assert engine.context.loudness.name == 'none'
        assert host.audio_filters == [DOWNMIX_6CH]
        assert len(host.messages) == messages

    def test_end_file_clears_immediately(self):
        """Test that unloading cancels the pending submission and clears filters."""
        host = make_host(6)
        engine = AudioRoutingEngine(host)
        engine.pair(1)
        engine.on_end_file()

        assert host.pending_timers == 0
        assert host.filter_commands == [('clr',)]
        assert engine.submitted == FilterChain()


class TestAudioInfo:
    """Tests for show_audio_info."""

    def test_info_block(self):
        """Test every line of the info block."""
        host = make_host(6, tracks=2)
        engine = AudioRoutingEngine(host)
        engine.solo(2)
        info = engine.show_audio_info()
        assert info.splitlines() == [
            "Audio Info:",
            "Tracks: 2",
            "Channels: 6",
            "Codec: pcm_s24le",
            "Sample Rate: 48000 Hz",
            "Active Mode: SOLO",
            "Loudness Target: NONE",
        ]
        assert host.messages[-1] == (info, 4.0)

    def test_missing_properties(self):
        """Test defaults before any audio is decoded."""
        engine = AudioRoutingEngine(SimulatedHost())
        info = engine.show_audio_info()
        assert "Channels: 0" in info
        assert "Codec: unknown" in info
        assert "Sample Rate: 0 Hz" in info
