"""
Parameters Module - All Tunable Constants

These parameters control engine behavior. Engine modules never import the
root config module; every value they need arrives through one of these
dataclasses.

USAGE:
    from broadcast_qc.params import SuiteParams, DEFAULT_PARAMS

    # Use default parameters
    params = DEFAULT_PARAMS

    # Create custom parameters
    custom = SuiteParams(
        overlay=OverlayParams(tc_rel_size=0.08),
        scheduler=SchedulerParams(refresh_interval=0.05)
    )
"""

from dataclasses import dataclass, field
from typing import Dict, Tuple


# =============================================================================
# PARAMETER GROUPS
# =============================================================================

@dataclass(frozen=True)
class FramerateParams:
    """
    Framerate classification tolerances.

    Attributes:
        rel_tolerance: Tolerance as a fraction of the nominal NTSC rate
            (default 0.0004, i.e. ~0.012 at 29.97 and ~0.048 at 119.88)
        min_tolerance: Absolute floor for the scaled tolerance (default 0.01)
        rational_tolerance: Tolerance against the exact N/1001 rational (default 0.001)
        fallback_fps: Rate substituted for missing or invalid input (default 25)
    """
    rel_tolerance: float = 0.0004
    min_tolerance: float = 0.01
    rational_tolerance: float = 0.001
    fallback_fps: int = 25


@dataclass(frozen=True)
class OverlayParams:
    """
    Overlay geometry, colours and content toggles.

    All sizes are fractions of the viewport so the layout follows window and
    fullscreen changes.

    Attributes:
        mode: Initial display mode name ('full', 'tc_only', 'minimal', 'off')
        safe_margin: Inner safe-area margin as a fraction of min(width, height)
        tc_rel_size: Timecode font size relative to viewport height
        tc_border_rel: Timecode outline thickness relative to viewport height
        info_rel_size: Info text size relative to viewport height
        bar_height_rel: Progress bar height relative to viewport height
        bar_gap_rel: Gap between timecode baseline and progress bar
        bar_width_frac: Progress bar width as a fraction of the safe width
        df_suffix_scale: DF/NDF suffix size relative to the timecode font
        info_line_spacing: Info line height relative to the info font
        show_elapsed, show_countdown, show_duration, show_fps: Info block toggles
        placeholder_width, placeholder_height: Viewport assumed before the
            host reports real dimensions
        colours: RGB hex strings keyed by element
        opacity: 0.0 (transparent) to 1.0 (opaque) keyed by element
    """
    mode: str = 'full'
    safe_margin: float = 0.03
    tc_rel_size: float = 0.065
    tc_border_rel: float = 0.003
    info_rel_size: float = 0.022
    bar_height_rel: float = 0.010
    bar_gap_rel: float = 0.005
    bar_width_frac: float = 0.6
    df_suffix_scale: float = 0.3
    info_line_spacing: float = 1.15
    show_elapsed: bool = True
    show_countdown: bool = True
    show_duration: bool = True
    show_fps: bool = True
    placeholder_width: int = 1920
    placeholder_height: int = 1080
    colours: Dict[str, str] = field(default_factory=lambda: {
        'tc_fg': 'FFFFFF',
        'tc_border': '000000',
        'info_fg': 'FFFF00',
        'bar_fg': '00FF00',
        'bar_bg': '404040',
    })
    opacity: Dict[str, float] = field(default_factory=lambda: {
        'tc_fg': 1.00,
        'info_fg': 1.00,
        'bar_fg': 0.95,
        'bar_bg': 0.35,
    })


@dataclass(frozen=True)
class SchedulerParams:
    """
    Update scheduler parameters.

    Attributes:
        refresh_interval: Minimum seconds between two renders (default 0.0,
            every deferred render runs on the next host tick)
    """
    refresh_interval: float = 0.0


@dataclass(frozen=True)
class LoudnessParams:
    """
    Loudness normalisation targets.

    The order of `targets` is the cycling order of toggleLoudness.

    Attributes:
        targets: (name, target LUFS) pairs; a target of 0 disables the stage
        true_peak_dbtp: True-peak ceiling (default -1.0 dBTP)
        loudness_range_lu: Loudness range target (default 11 LU)
        measured_threshold: Gating threshold handed to the single-pass filter
    """
    targets: Tuple[Tuple[str, float], ...] = (
        ('none', 0.0),
        ('ebu_r128', -23.0),
        ('atsc', -24.0),
        ('podcast', -16.0),
    )
    true_peak_dbtp: float = -1.0
    loudness_range_lu: float = 11.0
    measured_threshold: float = -24.0

    def get_table(self) -> Dict[str, float]:
        """Get targets as dictionary keyed by profile name."""
        return dict(self.targets)


@dataclass(frozen=True)
class MessageParams:
    """
    Durations (seconds) of transient host messages.

    Attributes:
        routing: Routing and loudness confirmations (default 2.0)
        reset_multitrack: Reset notice on files with several audio tracks
        audio_info: showAudioInfo block (default 4.0)
        display_mode: Display-mode change notice (default 1.5)
        countdown: Countdown toggle notice (default 1.0)
    """
    routing: float = 2.0
    reset_multitrack: float = 2.5
    audio_info: float = 4.0
    display_mode: float = 1.5
    countdown: float = 1.0


@dataclass
class SuiteParams:
    """
    Complete parameter set aggregating all groups.

    Example usage:
        params = SuiteParams()  # All defaults
        params = SuiteParams(scheduler=SchedulerParams(refresh_interval=0.04))
    """
    framerate: FramerateParams = field(default_factory=FramerateParams)
    overlay: OverlayParams = field(default_factory=OverlayParams)
    scheduler: SchedulerParams = field(default_factory=SchedulerParams)
    loudness: LoudnessParams = field(default_factory=LoudnessParams)
    messages: MessageParams = field(default_factory=MessageParams)

    def to_dict(self) -> Dict:
        """
        Export all parameters as a flat dictionary for JSON serialization.

        Returns:
            Dictionary with all parameter values
        """
        return {
            # Framerate params
            'fps_rel_tolerance': self.framerate.rel_tolerance,
            'fps_min_tolerance': self.framerate.min_tolerance,
            'fps_rational_tolerance': self.framerate.rational_tolerance,
            'fallback_fps': self.framerate.fallback_fps,

            # Overlay params
            'mode': self.overlay.mode,
            'safe_margin': self.overlay.safe_margin,
            'tc_rel_size': self.overlay.tc_rel_size,
            'tc_border_rel': self.overlay.tc_border_rel,
            'info_rel_size': self.overlay.info_rel_size,
            'bar_height_rel': self.overlay.bar_height_rel,
            'bar_gap_rel': self.overlay.bar_gap_rel,
            'bar_width_frac': self.overlay.bar_width_frac,
            'show_elapsed': self.overlay.show_elapsed,
            'show_countdown': self.overlay.show_countdown,
            'show_duration': self.overlay.show_duration,
            'show_fps': self.overlay.show_fps,
            'colours': dict(self.overlay.colours),
            'opacity': dict(self.overlay.opacity),

            # Scheduler params
            'refresh_interval': self.scheduler.refresh_interval,

            # Loudness params
            'loudness_targets': self.loudness.get_table(),
            'loudness_order': [name for name, _ in self.loudness.targets],
            'true_peak_dbtp': self.loudness.true_peak_dbtp,
            'loudness_range_lu': self.loudness.loudness_range_lu,
        }


# Default parameter instance
DEFAULT_PARAMS = SuiteParams()

VALID_MODES: Tuple[str, ...] = ('full', 'tc_only', 'minimal', 'off')


def _is_rgb_hex(value: str) -> bool:
    if not isinstance(value, str) or len(value) != 6:
        return False
    try:
        int(value, 16)
    except ValueError:
        return False
    return True


def validate_params(params: SuiteParams) -> bool:
    """
    Validate parameters for consistency.

    Parameters:
        params: SuiteParams instance to validate

    Returns:
        True if parameters are valid

    Raises:
        ValueError: If parameters are invalid
    """
    # Framerate tolerances
    if params.framerate.rel_tolerance < 0 or params.framerate.min_tolerance < 0:
        raise ValueError("framerate tolerances must be non-negative")
    if params.framerate.rational_tolerance < 0:
        raise ValueError("rational_tolerance must be non-negative")
    if params.framerate.fallback_fps <= 0:
        raise ValueError("fallback_fps must be positive")

    # Overlay geometry
    overlay = params.overlay
    if overlay.mode not in VALID_MODES:
        raise ValueError(f"mode must be one of {VALID_MODES}, got {overlay.mode!r}")
    if not (0.0 <= overlay.safe_margin < 0.5):
        raise ValueError("safe_margin must be in [0, 0.5)")
    for name in ('tc_rel_size', 'info_rel_size', 'bar_height_rel'):
        if getattr(overlay, name) <= 0:
            raise ValueError(f"{name} must be positive")
    if overlay.tc_border_rel < 0 or overlay.bar_gap_rel < 0:
        raise ValueError("tc_border_rel and bar_gap_rel must be non-negative")
    if not (0.0 < overlay.bar_width_frac <= 1.0):
        raise ValueError("bar_width_frac must be in (0, 1]")
    if overlay.placeholder_width <= 0 or overlay.placeholder_height <= 0:
        raise ValueError("placeholder dimensions must be positive")
    for key, value in overlay.colours.items():
        if not _is_rgb_hex(value):
            raise ValueError(f"colour {key} must be a 6-digit RGB hex string, got {value!r}")
    for key, value in overlay.opacity.items():
        if not (0.0 <= value <= 1.0):
            raise ValueError(f"opacity {key} must be in [0, 1]")

    # Scheduler
    if params.scheduler.refresh_interval < 0:
        raise ValueError("refresh_interval must be non-negative")

    # Loudness table
    names = [name for name, _ in params.loudness.targets]
    if not names:
        raise ValueError("loudness targets must not be empty")
    if len(set(names)) != len(names):
        raise ValueError("loudness target names must be unique")
    if 'none' not in names:
        raise ValueError("loudness targets must include 'none'")
    for name, target in params.loudness.targets:
        if target > 0:
            raise ValueError(f"loudness target {name} must be <= 0 LUFS, got {target}")

    return True


# Validate default parameters on import
validate_params(DEFAULT_PARAMS)
