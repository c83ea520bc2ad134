"""
IPC Module - mpv JSON-IPC Host

Implements the Host contract against a running mpv over its JSON IPC
socket (`mpv --input-ipc-server=/tmp/mpv.sock`).

PROTOCOL:
Newline-delimited JSON in both directions.
- Request:  {"command": [...], "request_id": N}
- Reply:    {"request_id": N, "error": "success", "data": ...}
- Event:    {"event": "property-change", "id": K, "name": ..., "data": ...}
            {"event": "client-message", "args": [name, arg, ...]}
            {"event": "file-loaded"}, {"event": "end-file", ...}

THREADING:
None. One event loop multiplexes the socket (selectors) and the timer
heap. Events that arrive while a synchronous request waits for its reply
are queued and dispatched afterwards, so callbacks never nest.

Commands sent for the overlay, messages and audio filters do not wait for
their reply; an error reply is reported as an IpcWarning.
"""

import heapq
import itertools
import json
import selectors
import socket
import time
import warnings
from collections import deque
from typing import Any, Callable, Deque, Dict, List, Optional, Set, Tuple

from broadcast_qc.host import Host, PropertyCallback, Timer


OVERLAY_ID = 63
RECV_SIZE = 65536
DEFAULT_TIMEOUT = 1.0

# Upper bound on one select() wait when no timer is pending
IDLE_POLL_INTERVAL = 0.5


class IpcWarning(UserWarning):
    """mpv rejected a command."""


class IpcTimer(Timer):

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


class MpvIpcHost(Host):
    """
    mpv host reached over a unix-domain JSON IPC socket.

    Attributes:
        timeout: Seconds to wait for the reply of a synchronous request
        running: The event loop is active
    """

    def __init__(self, sock: socket.socket, timeout: float = DEFAULT_TIMEOUT) -> None:
        self._sock = sock
        self._sock.setblocking(False)
        self.timeout = timeout
        self.running = False

        self._selector = selectors.DefaultSelector()
        self._selector.register(self._sock, selectors.EVENT_READ)
        self._buffer = b''
        self._closed = False

        self._request_ids = itertools.count(1)
        self._observe_ids = itertools.count(1)
        self._replies: Dict[int, Dict[str, Any]] = {}
        self._awaiting: Dict[int, str] = {}
        self._abandoned: Set[int] = set()
        self._events: Deque[Dict[str, Any]] = deque()

        self._observers: Dict[int, Tuple[str, PropertyCallback]] = {}
        self._event_handlers: Dict[str, List[Callable[[], None]]] = {}
        self._script_messages: Dict[str, List[Callable[..., None]]] = {}

        self._timers: List[Tuple[float, int, IpcTimer]] = []
        self._timer_sequence = itertools.count()

    @classmethod
    def connect(cls, path: str, timeout: float = DEFAULT_TIMEOUT) -> 'MpvIpcHost':
        """
        Connect to mpv's IPC socket.

        Raises:
            ConnectionError: If the socket cannot be reached
        """
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        sock.settimeout(timeout)
        try:
            sock.connect(path)
        except OSError as exc:
            sock.close()
            raise ConnectionError(f"Cannot connect to mpv IPC socket {path}: {exc}") from exc
        return cls(sock, timeout=timeout)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.running = False
        try:
            self._selector.unregister(self._sock)
        except (KeyError, ValueError):
            pass
        self._selector.close()
        self._sock.close()

    # =========================================================================
    # TRANSPORT
    # =========================================================================

    def _send(self, command: List[Any]) -> int:
        if self._closed:
            raise ConnectionError("mpv IPC connection is closed")
        request_id = next(self._request_ids)
        line = json.dumps({"command": command, "request_id": request_id}) + "\n"
        try:
            self._sock.setblocking(True)
            self._sock.sendall(line.encode('utf-8'))
        except OSError as exc:
            raise ConnectionError(f"mpv IPC send failed: {exc}") from exc
        finally:
            if not self._closed:
                self._sock.setblocking(False)
        return request_id

    def post(self, command: List[Any]) -> int:
        """Send a command without waiting for its reply."""
        request_id = self._send(command)
        self._awaiting[request_id] = str(command[0])
        return request_id

    def request(self, command: List[Any], timeout: Optional[float] = None) -> Dict[str, Any]:
        """
        Send a command and wait for its reply.

        Returns:
            The reply message

        Raises:
            TimeoutError: If no reply arrives in time
            ConnectionError: If mpv closes the connection
        """
        request_id = self._send(command)
        deadline = time.monotonic() + (self.timeout if timeout is None else timeout)

        while request_id not in self._replies:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                self._abandoned.add(request_id)
                raise TimeoutError(f"mpv IPC request timed out: {command[0]}")
            self._poll(remaining)

        return self._replies.pop(request_id)

    def _poll(self, timeout: float) -> None:
        for _key, _mask in self._selector.select(max(0.0, timeout)):
            self._read()

    def _read(self) -> None:
        try:
            chunk = self._sock.recv(RECV_SIZE)
        except BlockingIOError:
            return
        except OSError as exc:
            raise ConnectionError(f"mpv IPC receive failed: {exc}") from exc
        if not chunk:
            self.running = False
            raise ConnectionError("mpv closed the IPC connection")

        self._buffer += chunk
        while b"\n" in self._buffer:
            line, self._buffer = self._buffer.split(b"\n", 1)
            if line.strip():
                self._route(line)

    def _route(self, line: bytes) -> None:
        try:
            message = json.loads(line.decode('utf-8', errors='replace'))
        except json.JSONDecodeError:
            warnings.warn(f"Ignoring malformed IPC line: {line[:80]!r}", IpcWarning)
            return
        if not isinstance(message, dict):
            return

        if 'event' in message:
            self._events.append(message)
            return

        request_id = message.get('request_id')
        if request_id in self._awaiting:
            name = self._awaiting.pop(request_id)
            if message.get('error') != 'success':
                warnings.warn(f"mpv rejected {name}: {message.get('error')}", IpcWarning)
        elif request_id in self._abandoned:
            self._abandoned.discard(request_id)
        elif request_id is not None:
            self._replies[request_id] = message

    # =========================================================================
    # EVENT LOOP
    # =========================================================================

    def dispatch_events(self) -> int:
        """Deliver queued events to their callbacks."""
        count = 0
        while self._events:
            self._dispatch(self._events.popleft())
            count += 1
        return count

    def _dispatch(self, message: Dict[str, Any]) -> None:
        event = message.get('event')

        if event == 'property-change':
            entry = self._observers.get(message.get('id'))
            if entry is not None:
                name, callback = entry
                callback(name, message.get('data'))
            return

        if event == 'client-message':
            args = [str(a) for a in message.get('args') or []]
            if not args:
                return
            for callback in list(self._script_messages.get(args[0], [])):
                callback(*args[1:])
            return

        for callback in list(self._event_handlers.get(event, [])):
            callback()

    def run_due_timers(self) -> int:
        """Run the timers due now; timers they create wait for the next pass."""
        now = self.now()
        due = []
        while self._timers and self._timers[0][0] <= now:
            due.append(heapq.heappop(self._timers)[2])
        ran = 0
        for timer in due:
            if timer.active:
                timer.fire()
                ran += 1
        return ran

    def _next_timeout(self) -> float:
        while self._timers and not self._timers[0][2].active:
            heapq.heappop(self._timers)
        if not self._timers:
            return IDLE_POLL_INTERVAL
        return min(IDLE_POLL_INTERVAL, max(0.0, self._timers[0][0] - self.now()))

    def run_once(self, timeout: Optional[float] = None) -> None:
        """One loop pass: wait for input or the next timer, then dispatch."""
        if self._events:
            timeout = 0.0
        self._poll(self._next_timeout() if timeout is None else timeout)
        self.dispatch_events()
        self.run_due_timers()

    def run(self) -> None:
        """Run until stop() is called or mpv closes the connection."""
        self.running = True
        try:
            while self.running:
                self.run_once()
        except ConnectionError:
            if self.running:
                raise

    def stop(self) -> None:
        self.running = False

    # =========================================================================
    # HOST CONTRACT
    # =========================================================================

    def get_property(self, name: str) -> Any:
        reply = self.request(["get_property", name])
        if reply.get('error') != 'success':
            return None
        return reply.get('data')

    def observe_property(self, name: str, callback: PropertyCallback) -> None:
        observe_id = next(self._observe_ids)
        self._observers[observe_id] = (name, callback)
        self.post(["observe_property", observe_id, name])

    def unobserve_property(self, callback: PropertyCallback) -> None:
        for observe_id, (_name, cb) in list(self._observers.items()):
            if cb == callback:
                del self._observers[observe_id]
                self.post(["unobserve_property", observe_id])

    def register_event(self, name: str, callback: Callable[[], None]) -> None:
        self._event_handlers.setdefault(name, []).append(callback)

    def register_script_message(self, name: str, callback: Callable[..., None]) -> None:
        self._script_messages.setdefault(name, []).append(callback)

    def add_timeout(self, delay: float, callback: Callable[[], None]) -> Timer:
        timer = IpcTimer(self.now() + max(0.0, float(delay)), callback)
        heapq.heappush(self._timers, (timer.due, next(self._timer_sequence), timer))
        return timer

    def now(self) -> float:
        return time.monotonic()

    def set_overlay_content(self, res_x: int, res_y: int, data: str) -> None:
        self.post(["osd-overlay", OVERLAY_ID, "ass-events", data, int(res_x), int(res_y)])

    def clear_overlay(self) -> None:
        self.post(["osd-overlay", OVERLAY_ID, "none", ""])

    def show_message(self, text: str, duration: float) -> None:
        self.post(["show-text", text, int(round(duration * 1000))])

    def clear_audio_filters(self) -> None:
        self.post(["af", "clr", ""])

    def append_audio_filter(self, descriptor: str) -> None:
        self.post(["af", "add", descriptor])
