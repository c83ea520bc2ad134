"""
Audio Engine Module - Filter Chain Applier and Mode State Machine

States: DefaultRouting, StereoPair(n), Solo(n), AllChannelDownmix, each
combined with the current LoudnessProfile. Transitions happen only on
explicit commands (reset, pair, solo, downmix, toggle_loudness) and on
file load / unload.

Every transition:
1. plans the pan stage for the requested routing mode
2. builds the loudness stage from the resulting loudness profile
3. replaces the whole filter chain (clear, then append each stage)
4. shows a confirmation message

A transition that fails validation changes nothing: routing mode, loudness
profile and the host's filter chain all stay as they were.

Chain submission is deferred to the next host tick and coalesced, so
several commands in one tick submit once, with the latest state.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from broadcast_qc.filter_chain import FilterChain
from broadcast_qc.host import AudioTrackDescriptor, Host, Timer, read_audio_track
from broadcast_qc.loudness import (
    LoudnessProfile,
    build_loudness_stage,
    initial_loudness_profile,
    next_loudness_profile,
)
from broadcast_qc.params import DEFAULT_PARAMS, SuiteParams
from broadcast_qc.routing import (
    AllChannelDownmix,
    ChannelRangeError,
    DefaultRouting,
    RoutingMode,
    Solo,
    StereoPair,
    describe_routing,
    plan_pan_stage,
)


@dataclass
class RoutingContext:
    """
    Audio routing session state.

    Attributes:
        mode: Active routing mode
        loudness: Active loudness profile
        chain: Filter chain describing mode + loudness
    """
    mode: RoutingMode = field(default_factory=DefaultRouting)
    loudness: LoudnessProfile = field(default_factory=initial_loudness_profile)
    chain: FilterChain = field(default_factory=FilterChain)


@dataclass(frozen=True)
class TransitionResult:
    ok: bool
    message: str
    chain: FilterChain


class AudioRoutingEngine:

    def __init__(self, host: Host, params: SuiteParams = DEFAULT_PARAMS) -> None:
        self.host = host
        self.params = params
        self.context = RoutingContext(loudness=initial_loudness_profile(params.loudness))
        self.submitted: Optional[FilterChain] = None
        self.submit_count: int = 0
        self._flush_timer: Optional[Timer] = None

    # =========================================================================
    # COMMANDS
    # =========================================================================

    def reset(self) -> TransitionResult:
        """Back to default routing, keeping the loudness profile."""
        return self._transition(DefaultRouting(), self.context.loudness)

    def pair(self, pair_index: int) -> TransitionResult:
        return self._transition(StereoPair(pair_index), self.context.loudness)

    def solo(self, channel_index: int) -> TransitionResult:
        return self._transition(Solo(channel_index), self.context.loudness)

    def downmix(self) -> TransitionResult:
        return self._transition(AllChannelDownmix(), self.context.loudness)

    def toggle_loudness(self) -> TransitionResult:
        """Advance the loudness profile and re-derive the chain for the current routing."""
        profile = next_loudness_profile(self.context.loudness, self.params.loudness)
        return self._transition(self.context.mode, profile, loudness_changed=True)

    def show_audio_info(self) -> str:
        track = read_audio_track(self.host)
        info = "\n".join([
            "Audio Info:",
            f"Tracks: {track.track_count}",
            f"Channels: {track.channel_count}",
            f"Codec: {track.codec_name}",
            f"Sample Rate: {track.sample_rate} Hz",
            f"Active Mode: {self.context.mode.name.upper()}",
            f"Loudness Target: {self.context.loudness.name.upper()}",
        ])
        self.host.show_message(info, self.params.messages.audio_info)
        return info

    # =========================================================================
    # HOST EVENTS
    # =========================================================================

    def on_file_loaded(self) -> FilterChain:
        """Reset to Default + none and apply the default chain without a message."""
        self.context = RoutingContext(loudness=initial_loudness_profile(self.params.loudness))
        channel_count = read_audio_track(self.host).channel_count
        chain = FilterChain.from_stages(plan_pan_stage(DefaultRouting(), channel_count), None)
        self.context.chain = chain
        self._request_submit()
        return chain

    def on_end_file(self) -> None:
        """Cancel any pending submission and clear the host's filter chain."""
        self._cancel_flush()
        self.context.chain = FilterChain()
        self.host.clear_audio_filters()
        self.submitted = FilterChain()

    # =========================================================================
    # STATE MACHINE
    # =========================================================================

    def _transition(
        self,
        mode: RoutingMode,
        loudness: LoudnessProfile,
        loudness_changed: bool = False
    ) -> TransitionResult:
        track = read_audio_track(self.host)

        try:
            pan = plan_pan_stage(mode, track.channel_count)
        except ChannelRangeError as exc:
            message = f"ERROR: {exc}"
            self.host.show_message(message, self.params.messages.routing)
            return TransitionResult(False, message, self.context.chain)

        chain = FilterChain.from_stages(pan, build_loudness_stage(loudness, self.params.loudness))

        self.context.mode = mode
        self.context.loudness = loudness
        self.context.chain = chain
        self._request_submit()

        message, duration = self._confirmation(mode, loudness, chain, track, loudness_changed)
        self.host.show_message(message, duration)
        return TransitionResult(True, message, chain)

    def _confirmation(
        self,
        mode: RoutingMode,
        loudness: LoudnessProfile,
        chain: FilterChain,
        track: AudioTrackDescriptor,
        loudness_changed: bool
    ):
        duration = self.params.messages.routing
        lines: List[str] = []

        if loudness_changed:
            lines.append(f"Loudness: {loudness.describe()}")
            if not isinstance(mode, DefaultRouting):
                lines.append(f"Routing: {describe_routing(mode)}")
            return "\n".join(lines), duration

        if isinstance(mode, StereoPair):
            lines.append(f"EMB AUDIO: {describe_routing(mode)}")
        elif isinstance(mode, Solo):
            lines.append(f"SOLO: CH{mode.channel_index} (mono→L+R)")
        elif isinstance(mode, AllChannelDownmix):
            lines.append(f"SUM ALL: {track.channel_count}ch → Stereo (RMS normalised sum)")
        else:
            if track.track_count > 1:
                lines.append(f"RESET: Multiple audio tracks ({track.track_count})")
                lines.append("Switch tracks with '#' or merge in ffmpeg")
                lines.append(f"Active track: {track.channel_count} channels")
                duration = self.params.messages.reset_multitrack
            elif chain.pan_stage is None:
                lines.append("RESET: Mono/Stereo – Default routing")
            else:
                lines.append(f"RESET: {track.channel_count}ch → Stereo (RMS normalised sum)")

        if chain.loudness_stage is not None:
            lines.append(f"Loudness: {loudness.describe()}")
        return "\n".join(lines), duration

    # =========================================================================
    # SUBMISSION
    # =========================================================================

    @property
    def submission_pending(self) -> bool:
        return self._flush_timer is not None and self._flush_timer.active

    def _request_submit(self) -> None:
        if self.submission_pending:
            return
        self._cancel_flush()
        self._flush_timer = self.host.add_timeout(0, self.flush)

    def _cancel_flush(self) -> None:
        if self._flush_timer is not None:
            self._flush_timer.kill()
            self._flush_timer = None

    def flush(self) -> FilterChain:
        """
        Submit the current chain to the host now.

        Descriptors are serialised before the host chain is cleared, so the
        host never sees a half-built chain.
        """
        self._cancel_flush()
        chain = self.context.chain
        descriptors = chain.to_descriptors()

        self.host.clear_audio_filters()
        for descriptor in descriptors:
            self.host.append_audio_filter(descriptor)

        self.submitted = chain
        self.submit_count += 1
        return chain
