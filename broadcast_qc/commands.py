"""
Commands Module - Inbound Control Surface

Named commands from key bindings or external scripted control, mapped 1:1
onto engine operations through a dispatch table keyed by command name.

Accepted forms:
    'reset'               no argument
    'pair:3'              argument after a colon
    ('pair', '3')         argument as a separate script-message argument

Names from the original scripts are accepted as aliases
(toggle_loudness, show_audio_info, cycle_mode, toggle_countdown).

Malformed commands (unknown name, missing or non-integer argument,
argument outside its range) are dropped: nothing changes and no message is
shown. `dispatch` reports them by returning False.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

from broadcast_qc.audio_engine import AudioRoutingEngine
from broadcast_qc.timecode_engine import TimecodeEngine


# =============================================================================
# COMMAND TABLE
# =============================================================================

CMD_RESET = 'reset'
CMD_PAIR = 'pair'
CMD_SOLO = 'solo'
CMD_DOWNMIX = 'downmix'
CMD_TOGGLE_LOUDNESS = 'toggleLoudness'
CMD_SHOW_AUDIO_INFO = 'showAudioInfo'
CMD_CYCLE_DISPLAY_MODE = 'cycleDisplayMode'
CMD_TOGGLE_COUNTDOWN = 'toggleCountdown'

# Inclusive argument ranges of the numeric commands
ARGUMENT_RANGES: Dict[str, Tuple[int, int]] = {
    CMD_PAIR: (1, 8),
    CMD_SOLO: (1, 16),
}

ALIASES: Dict[str, str] = {
    'toggle_loudness': CMD_TOGGLE_LOUDNESS,
    'show_audio_info': CMD_SHOW_AUDIO_INFO,
    'cycle_mode': CMD_CYCLE_DISPLAY_MODE,
    'toggle_countdown': CMD_TOGGLE_COUNTDOWN,
    'sum_all': CMD_DOWNMIX,
}

COMMAND_NAMES: Tuple[str, ...] = (
    CMD_RESET,
    CMD_PAIR,
    CMD_SOLO,
    CMD_DOWNMIX,
    CMD_TOGGLE_LOUDNESS,
    CMD_SHOW_AUDIO_INFO,
    CMD_CYCLE_DISPLAY_MODE,
    CMD_TOGGLE_COUNTDOWN,
)


@dataclass(frozen=True)
class Command:
    name: str
    argument: Optional[int] = None


def canonical_name(name: str) -> Optional[str]:
    name = name.strip()
    if name in COMMAND_NAMES:
        return name
    return ALIASES.get(name)


def _parse_int(text: str) -> Optional[int]:
    text = text.strip()
    if not text or not text.lstrip('+-').isdigit():
        return None
    return int(text)


def parse_command(text: str, *args: Any) -> Optional[Command]:
    """
    Parse a command name plus optional argument.

    Parameters:
        text: Command name, optionally with ':<argument>'
        *args: Further script-message arguments; the first one is used as
            the argument when the name carries none

    Returns:
        Command, or None when the command is malformed
    """
    if not isinstance(text, str):
        return None

    raw_name, _, raw_arg = text.partition(':')
    name = canonical_name(raw_name)
    if name is None:
        return None

    if not raw_arg and args:
        raw_arg = str(args[0])

    if name not in ARGUMENT_RANGES:
        return Command(name)

    argument = _parse_int(raw_arg)
    if argument is None:
        return None
    low, high = ARGUMENT_RANGES[name]
    if not low <= argument <= high:
        return None
    return Command(name, argument)


# =============================================================================
# DISPATCHER
# =============================================================================

class CommandDispatcher:
    """
    Dispatch table from command name to engine operation.

    Attributes:
        handlers: Canonical command name -> callable(argument)
        dropped: Number of malformed commands dropped
    """

    def __init__(self, audio: AudioRoutingEngine, timecode: TimecodeEngine) -> None:
        self.audio = audio
        self.timecode = timecode
        self.dropped = 0
        self.handlers: Dict[str, Callable[[Optional[int]], Any]] = {
            CMD_RESET: lambda _: audio.reset(),
            CMD_PAIR: audio.pair,
            CMD_SOLO: audio.solo,
            CMD_DOWNMIX: lambda _: audio.downmix(),
            CMD_TOGGLE_LOUDNESS: lambda _: audio.toggle_loudness(),
            CMD_SHOW_AUDIO_INFO: lambda _: audio.show_audio_info(),
            CMD_CYCLE_DISPLAY_MODE: lambda _: timecode.cycle_display_mode(),
            CMD_TOGGLE_COUNTDOWN: lambda _: timecode.toggle_countdown(),
        }

    def dispatch(self, text: str, *args: Any) -> bool:
        """
        Run one command.

        Returns:
            True if the command was well formed and dispatched, False if it
            was dropped
        """
        command = parse_command(text, *args)
        if command is None:
            self.dropped += 1
            return False
        self.handlers[command.name](command.argument)
        return True

    def names(self) -> Tuple[str, ...]:
        """Every accepted name, canonical names first."""
        return COMMAND_NAMES + tuple(ALIASES)
