"""
Scheduler Module - Coalescing Render Scheduler

Single-threaded, cooperative, event-driven. Host notifications set a
pending flag; the first one also schedules a single deferred render
callback, so a burst of notifications within one host tick produces one
recompute and one overlay submission.

CONTRACT:
- At most one live timer at any moment; an existing timer is killed
  before a replacement is created
- Paused: position changes are ignored; unpausing requests a render
- Disabled (display mode off): position is unobserved, the pending timer
  is cancelled and the overlay cleared
- stop() (stream unload): every timer cancelled, every observation
  removed, overlay cleared
"""

from typing import Any, Callable, Optional

from broadcast_qc.host import (
    PROP_OSD_DIMENSIONS,
    PROP_PAUSE,
    PROP_TIME_POS,
    Host,
    Timer,
    read_playback_clock,
)
from broadcast_qc.params import SchedulerParams


class UpdateScheduler:
    """
    Debounces host notifications into render calls.

    Attributes:
        pending: A render has been requested and not yet run
        paused: Last pause state reported by the host
        enabled: Position updates are wanted (display mode is not off)
        running: Between start() and stop()
        render_count: Number of renders run since construction
    """

    def __init__(
        self,
        host: Host,
        render: Callable[[], Any],
        params: SchedulerParams = SchedulerParams()
    ) -> None:
        self.host = host
        self.render = render
        self.params = params

        self.pending: bool = False
        self.paused: bool = False
        self.enabled: bool = True
        self.running: bool = False
        self.render_count: int = 0

        self._timer: Optional[Timer] = None
        self._last_render: Optional[float] = None

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self, enabled: bool = True) -> None:
        """Subscribe to host notifications and request the first render."""
        if self.running:
            self.stop(clear=False)

        self.running = True
        self.enabled = enabled
        self.paused = read_playback_clock(self.host).paused

        self.host.observe_property(PROP_PAUSE, self.on_pause_change)
        self.host.observe_property(PROP_OSD_DIMENSIONS, self.on_dimensions_change)
        if enabled:
            self.host.observe_property(PROP_TIME_POS, self.on_time_change)
            self.request_update()

    def stop(self, clear: bool = True) -> None:
        """Cancel timers and unsubscribe; clears the overlay by default."""
        self._cancel_timer()
        self.pending = False
        self.running = False
        self._last_render = None

        self.host.unobserve_property(self.on_time_change)
        self.host.unobserve_property(self.on_pause_change)
        self.host.unobserve_property(self.on_dimensions_change)

        if clear:
            self.host.clear_overlay()

    def set_enabled(self, enabled: bool) -> None:
        """
        Switch position-driven rendering on or off.

        Turning it on resubscribes and requests a render; turning it off
        unsubscribes, cancels the pending render and clears the overlay.
        """
        if enabled == self.enabled:
            if enabled:
                self.request_update()
            return

        self.enabled = enabled
        if not self.running:
            return

        if enabled:
            self.host.observe_property(PROP_TIME_POS, self.on_time_change)
            self.request_update()
        else:
            self.host.unobserve_property(self.on_time_change)
            self._cancel_timer()
            self.pending = False
            self.host.clear_overlay()

    # =========================================================================
    # SCHEDULING
    # =========================================================================

    @property
    def has_timer(self) -> bool:
        return self._timer is not None and self._timer.active

    def request_update(self) -> None:
        """Mark a render pending; schedule it unless one is already scheduled."""
        if not self.running or not self.enabled:
            return
        self.pending = True
        if self.has_timer:
            return
        self._schedule()

    def _schedule(self) -> None:
        self._cancel_timer()
        delay = 0.0
        if self.params.refresh_interval > 0 and self._last_render is not None:
            delay = max(0.0, self._last_render + self.params.refresh_interval - self.host.now())
        self._timer = self.host.add_timeout(delay, self._on_timer)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.kill()
            self._timer = None

    def _on_timer(self) -> None:
        self._timer = None
        if not (self.pending and self.running and self.enabled):
            return
        self.pending = False
        self._last_render = self.host.now()
        self.render_count += 1
        self.render()

    # =========================================================================
    # HOST NOTIFICATIONS
    # =========================================================================

    def on_time_change(self, name: str, value: Any) -> None:
        if self.paused:
            return
        self.request_update()

    def on_pause_change(self, name: str, value: Any) -> None:
        self.paused = bool(value)
        if not self.paused:
            self.request_update()

    def on_dimensions_change(self, name: str, value: Any) -> None:
        if value:
            self.request_update()
