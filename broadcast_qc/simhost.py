"""
Simulated Host Module

Deterministic in-process implementation of the Host contract with a
virtual clock. Used by the test suite and by `cli.py --demo`.

Ticks: a zero-delay timeout never runs inside the callback that created
it. `tick()` runs the timers that were already due when it started, so
several property changes made between two ticks are delivered before any
deferred render runs, as on a real host.
"""

import heapq
import itertools
from typing import Any, Callable, Dict, List, Optional, Tuple

from broadcast_qc.host import (
    EVENT_END_FILE,
    EVENT_FILE_LOADED,
    Host,
    PropertyCallback,
    Timer,
)


class SimulatedTimer(Timer):

    def __init__(self, due: float, callback: Callable[[], None]) -> None:
        self.due = due
        self.callback = callback
        self._active = True

    def kill(self) -> None:
        self._active = False

    @property
    def active(self) -> bool:
        return self._active

    def fire(self) -> None:
        if not self._active:
            return
        self._active = False
        self.callback()


class SimulatedHost(Host):
    """
    In-memory host recording every command it receives.

    Attributes:
        overlay: Current (res_x, res_y, data) or None when cleared
        overlay_updates: Every set_overlay_content call, in order
        messages: Every (text, duration) shown
        audio_filters: Current filter chain
        filter_commands: Log of ('clr',) / ('add', descriptor) commands
    """

    def __init__(self, properties: Optional[Dict[str, Any]] = None) -> None:
        self._properties: Dict[str, Any] = dict(properties or {})
        self._observers: List[Tuple[str, PropertyCallback]] = []
        self._events: Dict[str, List[Callable[[], None]]] = {}
        self._script_messages: Dict[str, List[Callable[..., None]]] = {}
        self._timers: List[Tuple[float, int, SimulatedTimer]] = []
        self._sequence = itertools.count()
        self._clock = 0.0

        self.overlay: Optional[Tuple[int, int, str]] = None
        self.overlay_updates: List[Tuple[int, int, str]] = []
        self.overlay_clears = 0
        self.messages: List[Tuple[str, float]] = []
        self.audio_filters: List[str] = []
        self.filter_commands: List[Tuple[str, ...]] = []

    # =========================================================================
    # HOST CONTRACT
    # =========================================================================

    def get_property(self, name: str) -> Any:
        return self._properties.get(name)

    def observe_property(self, name: str, callback: PropertyCallback) -> None:
        self._observers.append((name, callback))

    def unobserve_property(self, callback: PropertyCallback) -> None:
        self._observers = [(n, cb) for n, cb in self._observers if cb != callback]

    def register_event(self, name: str, callback: Callable[[], None]) -> None:
        self._events.setdefault(name, []).append(callback)

    def register_script_message(self, name: str, callback: Callable[..., None]) -> None:
        self._script_messages.setdefault(name, []).append(callback)

    def add_timeout(self, delay: float, callback: Callable[[], None]) -> Timer:
        timer = SimulatedTimer(self._clock + max(0.0, float(delay)), callback)
        heapq.heappush(self._timers, (timer.due, next(self._sequence), timer))
        return timer

    def now(self) -> float:
        return self._clock

    def set_overlay_content(self, res_x: int, res_y: int, data: str) -> None:
        self.overlay = (res_x, res_y, data)
        self.overlay_updates.append(self.overlay)

    def clear_overlay(self) -> None:
        self.overlay = None
        self.overlay_clears += 1

    def show_message(self, text: str, duration: float) -> None:
        self.messages.append((text, duration))

    def clear_audio_filters(self) -> None:
        self.audio_filters = []
        self.filter_commands.append(('clr',))

    def append_audio_filter(self, descriptor: str) -> None:
        self.audio_filters.append(descriptor)
        self.filter_commands.append(('add', descriptor))

    # =========================================================================
    # DRIVING THE SIMULATION
    # =========================================================================

    def set_property(self, name: str, value: Any) -> None:
        """Change a property and notify its observers synchronously."""
        self._properties[name] = value
        for observed, callback in list(self._observers):
            if observed == name:
                callback(name, value)

    def update_properties(self, values: Dict[str, Any]) -> None:
        for name, value in values.items():
            self.set_property(name, value)

    def is_observed(self, name: str) -> bool:
        return any(observed == name for observed, _ in self._observers)

    def emit_event(self, name: str) -> None:
        for callback in list(self._events.get(name, [])):
            callback()

    def send_script_message(self, name: str, *args: str) -> None:
        for callback in list(self._script_messages.get(name, [])):
            callback(*args)

    def load_file(self, properties: Optional[Dict[str, Any]] = None) -> None:
        """Replace the file properties and fire file-loaded."""
        if properties:
            self._properties.update(properties)
        self.emit_event(EVENT_FILE_LOADED)

    def end_file(self) -> None:
        self.emit_event(EVENT_END_FILE)

    @property
    def pending_timers(self) -> int:
        return sum(1 for _, _, timer in self._timers if timer.active)

    def tick(self) -> int:
        """
        Run the timers already due at the current time.

        Returns:
            Number of callbacks run
        """
        due = []
        while self._timers and self._timers[0][0] <= self._clock:
            due.append(heapq.heappop(self._timers)[2])
        ran = 0
        for timer in due:
            if timer.active:
                timer.fire()
                ran += 1
        return ran

    def run_until_idle(self, max_ticks: int = 100) -> int:
        """Tick until no timer is due at the current time."""
        total = 0
        for _ in range(max_ticks):
            if not any(t.active and d <= self._clock for d, _, t in self._timers):
                break
            total += self.tick()
        return total

    def advance(self, seconds: float) -> int:
        """
        Move the virtual clock forward, firing timers in due order.

        Returns:
            Number of callbacks run
        """
        target = self._clock + float(seconds)
        total = 0
        while True:
            self._timers = [entry for entry in self._timers if entry[2].active]
            heapq.heapify(self._timers)
            if not self._timers or self._timers[0][0] > target:
                break
            self._clock = max(self._clock, self._timers[0][0])
            total += self.tick()
        self._clock = target
        return total
