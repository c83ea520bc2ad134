"""
Timecode Engine Module

Ties the timecode pipeline together for one host:

    FramerateClassifier -> DropFrameCalculator -> TimecodeFormatter
        -> OverlayLayoutEngine -> overlay text -> host

The engine owns a DisplayContext (display mode, countdown toggle, last
submitted overlay). Only the engine's own command handlers mutate it.
"""

from dataclasses import dataclass
from typing import Optional

from broadcast_qc.framerate import classify_framerate
from broadcast_qc.host import (
    Host,
    read_framerate,
    read_percent_position,
    read_playback_clock,
    read_viewport,
)
from broadcast_qc.layout import (
    DisplayMode,
    compute_overlay_layout,
    enabled_info_metrics,
    next_display_mode,
)
from broadcast_qc.overlay import OverlayFrame, render_overlay_text
from broadcast_qc.params import DEFAULT_PARAMS, SuiteParams
from broadcast_qc.scheduler import UpdateScheduler
from broadcast_qc.timecode import seconds_to_timecode


@dataclass
class DisplayContext:
    """
    Session state of the timecode overlay.

    Attributes:
        mode: Current display mode, persists for the session
        show_countdown: Remaining-time line enabled
        last_overlay: Most recently submitted overlay text (None when cleared)
    """
    mode: DisplayMode
    show_countdown: bool
    last_overlay: Optional[str] = None


class TimecodeEngine:

    def __init__(self, host: Host, params: SuiteParams = DEFAULT_PARAMS) -> None:
        self.host = host
        self.params = params
        self.context = DisplayContext(
            mode=DisplayMode(params.overlay.mode),
            show_countdown=params.overlay.show_countdown,
        )
        self.scheduler = UpdateScheduler(host, self.render, params.scheduler)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self) -> None:
        """Start rendering for a newly loaded stream."""
        self.context.last_overlay = None
        self.scheduler.start(enabled=self.context.mode is not DisplayMode.OFF)

    def stop(self) -> None:
        """Stream unloaded: cancel pending renders and clear the overlay."""
        self.scheduler.stop()
        self.context.last_overlay = None

    # =========================================================================
    # RENDER
    # =========================================================================

    def render(self) -> Optional[str]:
        """
        Recompute timecode and layout from the host and submit the overlay.

        Returns:
            The submitted overlay text, or None when nothing was submitted
        """
        if self.context.mode is DisplayMode.OFF:
            return None

        overlay_params = self.params.overlay
        width, height, margins = read_viewport(
            self.host,
            (overlay_params.placeholder_width, overlay_params.placeholder_height),
        )

        clock = read_playback_clock(self.host)
        fps = read_framerate(self.host)
        profile = classify_framerate(fps, self.params.framerate)
        timecode = seconds_to_timecode(clock.time_position, fps, self.params.framerate)

        layout = compute_overlay_layout(
            width,
            height,
            margins,
            self.context.mode,
            overlay_params,
            enabled_info_metrics(overlay_params, self.context.show_countdown),
        )
        frame = OverlayFrame(
            timecode=timecode,
            profile=profile,
            time_position=clock.time_position,
            duration=clock.duration,
            percent_position=read_percent_position(self.host),
        )

        text = render_overlay_text(layout, frame, overlay_params)
        self.host.set_overlay_content(width, height, text)
        self.context.last_overlay = text
        return text

    # =========================================================================
    # COMMANDS
    # =========================================================================

    def cycle_display_mode(self) -> DisplayMode:
        """full -> tc_only -> minimal -> off -> full"""
        mode = next_display_mode(self.context.mode)
        self.context.mode = mode
        self.host.show_message(
            f"Timecode Display: {mode.value.upper()}",
            self.params.messages.display_mode,
        )
        if mode is DisplayMode.OFF:
            self.context.last_overlay = None
        self.scheduler.set_enabled(mode is not DisplayMode.OFF)
        return mode

    def toggle_countdown(self) -> bool:
        self.context.show_countdown = not self.context.show_countdown
        self.host.show_message(
            f"Countdown: {'ON' if self.context.show_countdown else 'OFF'}",
            self.params.messages.countdown,
        )
        self.scheduler.request_update()
        return self.context.show_countdown
