"""
Session Module

Wires both engines to one host: file-loaded / end-file events and the
script messages of the control surface.

Script messages are registered under every command name and alias, plus
one generic message (CONTROL_MESSAGE) whose first argument is the full
command text, e.g. `script-message broadcast-qc pair:3`.
"""

from typing import Any

from broadcast_qc.audio_engine import AudioRoutingEngine
from broadcast_qc.commands import CommandDispatcher
from broadcast_qc.host import EVENT_END_FILE, EVENT_FILE_LOADED, Host
from broadcast_qc.params import DEFAULT_PARAMS, SuiteParams, validate_params
from broadcast_qc.timecode_engine import TimecodeEngine


CONTROL_MESSAGE = 'broadcast-qc'


class BroadcastSession:

    def __init__(self, host: Host, params: SuiteParams = DEFAULT_PARAMS) -> None:
        validate_params(params)
        self.host = host
        self.params = params
        self.timecode = TimecodeEngine(host, params)
        self.audio = AudioRoutingEngine(host, params)
        self.dispatcher = CommandDispatcher(self.audio, self.timecode)
        self.file_loaded = False
        self._installed = False

    def install(self) -> None:
        """Register event and script-message handlers with the host."""
        if self._installed:
            return
        self._installed = True

        self.host.register_event(EVENT_FILE_LOADED, self.on_file_loaded)
        self.host.register_event(EVENT_END_FILE, self.on_end_file)

        for name in self.dispatcher.names():
            self.host.register_script_message(name, self._message_handler(name))
        self.host.register_script_message(CONTROL_MESSAGE, self.handle_command)

    def _message_handler(self, name: str):
        def handler(*args: Any) -> None:
            self.dispatcher.dispatch(name, *args)
        return handler

    def handle_command(self, text: str = '', *args: Any) -> bool:
        return self.dispatcher.dispatch(text, *args)

    # =========================================================================
    # HOST EVENTS
    # =========================================================================

    def on_file_loaded(self) -> None:
        self.file_loaded = True
        self.audio.on_file_loaded()
        self.timecode.start()

    def on_end_file(self) -> None:
        self.file_loaded = False
        self.timecode.stop()
        self.audio.on_end_file()
