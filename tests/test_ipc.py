"""
IPC Host Tests

Tests for the JSON IPC host against an in-process socket pair standing in
for mpv.
"""

import json
import socket
import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from broadcast_qc.ipc import OVERLAY_ID, IpcWarning, MpvIpcHost


@pytest.fixture
def pair():
    """(host, peer): the peer end plays mpv."""
    ours, peer = socket.socketpair()
    peer.settimeout(1.0)
    host = MpvIpcHost(ours, timeout=0.2)
    yield host, peer
    host.close()
    peer.close()


def send(peer, *messages):
    peer.sendall(b"".join(json.dumps(m).encode('utf-8') + b"\n" for m in messages))


def read_commands(peer, count):
    buffer = b""
    while buffer.count(b"\n") < count:
        buffer += peer.recv(65536)
    return [json.loads(line) for line in buffer.split(b"\n") if line.strip()]


class TestRequests:
    """Synchronous requests."""

    def test_get_property(self, pair):
        """Test a property read answered by request_id."""
        host, peer = pair
        send(peer, {"request_id": 1, "error": "success", "data": 29.97})
        assert host.get_property("container-fps") == 29.97

        sent = read_commands(peer, 1)
        assert sent == [{"command": ["get_property", "container-fps"], "request_id": 1}]

    def test_unavailable_property(self, pair):
        """Test that an error reply reads as None."""
        host, peer = pair
        send(peer, {"request_id": 1, "error": "property unavailable"})
        assert host.get_property("duration") is None

    def test_timeout(self, pair):
        """Test that a missing reply raises TimeoutError."""
        host, _ = pair
        with pytest.raises(TimeoutError):
            host.get_property("time-pos")

    def test_late_reply_after_timeout_is_dropped(self, pair):
        """Test that a reply to a timed-out request is not kept."""
        host, peer = pair
        with pytest.raises(TimeoutError):
            host.get_property("time-pos")

        send(peer, {"request_id": 1, "error": "success", "data": 5.0})
        host.run_once(timeout=0.5)
        assert host._replies == {}
        assert host._abandoned == set()

        send(peer, {"request_id": 2, "error": "success", "data": 25.0})
        assert host.get_property("container-fps") == 25.0
        assert host._replies == {}

    def test_events_queued_during_request(self, pair):
        """Test that events arriving before the reply are delivered later."""
        host, peer = pair
        loaded = []
        host.register_event("file-loaded", lambda: loaded.append(True))

        send(peer, {"event": "file-loaded"}, {"request_id": 1, "error": "success", "data": 6})
        assert host.get_property("audio-params/channel-count") == 6
        assert loaded == []

        assert host.dispatch_events() == 1
        assert loaded == [True]


class TestCommands:
    """Fire-and-forget commands."""

    def test_overlay_and_message(self, pair):
        """Test the wire form of overlay and message commands."""
        host, peer = pair
        host.set_overlay_content(1920, 1080, "{\\an5}TC")
        host.clear_overlay()
        host.show_message("Countdown: OFF", 1.0)

        commands = [m["command"] for m in read_commands(peer, 3)]
        assert commands == [
            ["osd-overlay", OVERLAY_ID, "ass-events", "{\\an5}TC", 1920, 1080],
            ["osd-overlay", OVERLAY_ID, "none", ""],
            ["show-text", "Countdown: OFF", 1000],
        ]

    def test_audio_filters(self, pair):
        """Test clear then append."""
        host, peer = pair
        host.clear_audio_filters()
        host.append_audio_filter("lavfi=[pan=stereo|c0=c0|c1=c1]")

        commands = [m["command"] for m in read_commands(peer, 2)]
        assert commands == [["af", "clr", ""], ["af", "add", "lavfi=[pan=stereo|c0=c0|c1=c1]"]]

    def test_rejected_command_warns(self, pair):
        """Test that an error reply to a posted command warns."""
        host, peer = pair
        host.append_audio_filter("lavfi=[bogus]")
        send(peer, {"request_id": 1, "error": "invalid parameter"})
        with pytest.warns(IpcWarning, match="af"):
            host.run_once(timeout=0.5)

    def test_malformed_line_warns(self, pair):
        """Test that a non-JSON line is skipped with a warning."""
        host, peer = pair
        peer.sendall(b"not json\n")
        with pytest.warns(IpcWarning):
            host.run_once(timeout=0.5)


class TestEvents:
    """Event delivery through run_once."""

    def test_property_change(self, pair):
        """Test that property-change events reach the observer by id."""
        host, peer = pair
        seen = []
        host.observe_property("time-pos", lambda name, value: seen.append((name, value)))
        assert read_commands(peer, 1)[0]["command"] == ["observe_property", 1, "time-pos"]

        send(peer, {"event": "property-change", "id": 1, "name": "time-pos", "data": 12.5})
        host.run_once(timeout=0.5)
        assert seen == [("time-pos", 12.5)]

    def test_unobserve(self, pair):
        """Test that unobserving stops delivery and tells mpv."""
        host, peer = pair
        seen = []
        callback = lambda name, value: seen.append(value)
        host.observe_property("pause", callback)
        host.unobserve_property(callback)
        commands = [m["command"] for m in read_commands(peer, 2)]
        assert commands[1] == ["unobserve_property", 1]

        send(peer, {"event": "property-change", "id": 1, "name": "pause", "data": True})
        host.run_once(timeout=0.5)
        assert seen == []

    def test_client_message(self, pair):
        """Test script messages with arguments."""
        host, peer = pair
        received = []
        host.register_script_message("pair", lambda *args: received.append(args))

        send(peer, {"event": "client-message", "args": ["pair", "3"]})
        host.run_once(timeout=0.5)
        assert received == [("3",)]


class TestTimers:
    """Timer heap."""

    def test_zero_delay_runs_next_pass(self, pair):
        """Test that a timer created by a callback waits for the next pass."""
        host, _ = pair
        order = []

        def first():
            order.append("first")
            host.add_timeout(0, lambda: order.append("second"))

        host.add_timeout(0, first)
        assert host.run_due_timers() == 1
        assert order == ["first"]
        assert host.run_due_timers() == 1
        assert order == ["first", "second"]

    def test_killed_timer(self, pair):
        """Test that a killed timer never runs."""
        host, _ = pair
        order = []
        timer = host.add_timeout(0, lambda: order.append("x"))
        timer.kill()
        assert host.run_due_timers() == 0
        assert not timer.active


class TestConnection:
    """Connection lifecycle."""

    def test_run_returns_when_mpv_exits(self, pair):
        """Test that run() ends quietly when the peer closes."""
        host, peer = pair
        peer.close()
        host.run()
        assert host.running is False

    def test_connect_missing_socket(self, tmp_path):
        """Test connecting to a socket that does not exist."""
        with pytest.raises(ConnectionError):
            MpvIpcHost.connect(str(tmp_path / "missing.sock"))

    def test_send_after_close(self, pair):
        """Test that commands on a closed host raise ConnectionError."""
        host, _ = pair
        host.close()
        with pytest.raises(ConnectionError):
            host.show_message("x", 1.0)
