"""
Layout Module - Responsive Overlay Geometry

Pure function of (viewport size, host safe-area margins, display mode)
producing pixel positions and sizes for every overlay element. Nothing here
touches the host or retains state; the layout is recomputed whenever the
viewport changes and never persisted.

LAYOUT RULES:
- Safe area = viewport - host margins - safe_margin * min(w, h)
- Progress bar: bar_width_frac of the safe width, centred, flush with the
  bottom of the safe area
- Main timecode: bottom-centre anchor, baseline bar_gap above the bar
- DF/NDF suffix: df_suffix_scale of the timecode font
- Info block: top-left of the safe area, one line per enabled metric
- Minimal mode: a single small timecode in the top-left corner
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Sequence, Tuple

from broadcast_qc.params import OverlayParams


# =============================================================================
# CONSTANTS
# =============================================================================

TC_FONT_RANGE: Tuple[int, int] = (16, 160)
INFO_FONT_RANGE: Tuple[int, int] = (12, 96)
BORDER_RANGE: Tuple[int, int] = (0, 8)
BAR_HEIGHT_RANGE: Tuple[int, int] = (2, 32)

# ASS numpad alignments
ALIGN_TOP_LEFT: int = 7
ALIGN_BOTTOM_CENTRE: int = 2

INFO_METRICS: Tuple[str, ...] = ('elapsed', 'remaining', 'total', 'framerate')


class DisplayMode(Enum):
    FULL = 'full'
    TC_ONLY = 'tc_only'
    MINIMAL = 'minimal'
    OFF = 'off'


DISPLAY_MODE_ORDER: Tuple[DisplayMode, ...] = (
    DisplayMode.FULL,
    DisplayMode.TC_ONLY,
    DisplayMode.MINIMAL,
    DisplayMode.OFF,
)


def next_display_mode(mode: DisplayMode) -> DisplayMode:
    """full -> tc_only -> minimal -> off -> full"""
    index = DISPLAY_MODE_ORDER.index(mode)
    return DISPLAY_MODE_ORDER[(index + 1) % len(DISPLAY_MODE_ORDER)]


# =============================================================================
# GEOMETRY TYPES
# =============================================================================

@dataclass(frozen=True)
class SafeMargins:
    """Host-reported insets (letterbox bars, panscan) in pixels."""
    left: int = 0
    right: int = 0
    top: int = 0
    bottom: int = 0

    @classmethod
    def from_osd_dimensions(cls, dims: Optional[Dict]) -> 'SafeMargins':
        """Build from an mpv osd-dimensions map (keys ml, mr, mt, mb)."""
        if not dims:
            return cls()
        return cls(
            left=int(dims.get('ml') or 0),
            right=int(dims.get('mr') or 0),
            top=int(dims.get('mt') or 0),
            bottom=int(dims.get('mb') or 0),
        )


@dataclass(frozen=True)
class Rect:
    left: int
    top: int
    right: int
    bottom: int

    @property
    def width(self) -> int:
        return self.right - self.left

    @property
    def height(self) -> int:
        return self.bottom - self.top


@dataclass(frozen=True)
class TextAnchor:
    x: int
    y: int
    font_size: int
    alignment: int


@dataclass(frozen=True)
class OverlayLayout:
    """
    Pixel geometry for one render.

    Elements that the display mode hides are None (or empty for the info
    block).
    """
    viewport_width: int
    viewport_height: int
    mode: DisplayMode
    safe_area: Rect
    border_width: int
    timecode: Optional[TextAnchor] = None
    df_suffix_size: int = 0
    progress_bar: Optional[Rect] = None
    info_lines: Tuple[Tuple[str, TextAnchor], ...] = ()
    corner_timecode: Optional[TextAnchor] = None

    @property
    def is_empty(self) -> bool:
        return (self.timecode is None and self.progress_bar is None
                and not self.info_lines and self.corner_timecode is None)


# =============================================================================
# HELPERS
# =============================================================================

def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _clamp(value: int, bounds: Tuple[int, int]) -> int:
    lo, hi = bounds
    return max(lo, min(hi, value))


def enabled_info_metrics(params: OverlayParams, show_countdown: Optional[bool] = None) -> Tuple[str, ...]:
    """
    Info metrics switched on by the parameters.

    Parameters:
        params: Overlay parameters with the show_* toggles
        show_countdown: Session override of params.show_countdown

    Returns:
        Metric names in display order
    """
    countdown = params.show_countdown if show_countdown is None else show_countdown
    toggles = {
        'elapsed': params.show_elapsed,
        'remaining': countdown,
        'total': params.show_duration,
        'framerate': params.show_fps,
    }
    return tuple(name for name in INFO_METRICS if toggles[name])


# =============================================================================
# LAYOUT
# =============================================================================

def compute_safe_area(
    viewport_width: int,
    viewport_height: int,
    margins: SafeMargins,
    safe_margin: float
) -> Rect:
    """
    Inset the viewport by host margins plus the relative safe margin.

    The result never inverts: a fully consumed axis collapses to zero size.
    """
    margin = _round_half_up(min(viewport_width, viewport_height) * safe_margin)
    left = margins.left + margin
    top = margins.top + margin
    right = max(left, viewport_width - margins.right - margin)
    bottom = max(top, viewport_height - margins.bottom - margin)
    return Rect(left, top, right, bottom)


def compute_overlay_layout(
    viewport_width: int,
    viewport_height: int,
    margins: SafeMargins,
    mode: DisplayMode,
    params: OverlayParams = OverlayParams(),
    enabled_metrics: Optional[Sequence[str]] = None
) -> OverlayLayout:
    """
    Compute the overlay layout for a viewport and display mode.

    CONTRACT:
    - Pure: same inputs -> same layout
    - All sizes derive from viewport height and the relative parameters,
      clamped to fixed pixel ranges
    - Off mode yields an empty layout

    Parameters:
        viewport_width: Viewport width in pixels (> 0)
        viewport_height: Viewport height in pixels (> 0)
        margins: Host safe-area margins
        mode: Current display mode
        params: Overlay parameters
        enabled_metrics: Info block metrics (None = derive from params)

    Returns:
        OverlayLayout

    Raises:
        ValueError: If the viewport is not positive
    """
    if viewport_width <= 0 or viewport_height <= 0:
        raise ValueError(
            f"viewport must be positive, got {viewport_width}x{viewport_height}"
        )

    if enabled_metrics is None:
        enabled_metrics = enabled_info_metrics(params)

    h = viewport_height
    safe = compute_safe_area(viewport_width, viewport_height, margins, params.safe_margin)

    tc_font = _clamp(_round_half_up(h * params.tc_rel_size), TC_FONT_RANGE)
    info_font = _clamp(_round_half_up(h * params.info_rel_size), INFO_FONT_RANGE)
    border = _clamp(_round_half_up(h * params.tc_border_rel), BORDER_RANGE)
    bar_height = _clamp(_round_half_up(h * params.bar_height_rel), BAR_HEIGHT_RANGE)
    bar_gap = _round_half_up(h * params.bar_gap_rel)

    base = OverlayLayout(
        viewport_width=viewport_width,
        viewport_height=viewport_height,
        mode=mode,
        safe_area=safe,
        border_width=border,
    )

    if mode is DisplayMode.OFF:
        return base

    if mode is DisplayMode.MINIMAL:
        corner = TextAnchor(safe.left, safe.top, info_font, ALIGN_TOP_LEFT)
        return OverlayLayout(
            viewport_width=viewport_width,
            viewport_height=viewport_height,
            mode=mode,
            safe_area=safe,
            border_width=border,
            corner_timecode=corner,
        )

    centre_x = safe.left + safe.width // 2
    bar_width = int(math.floor(safe.width * params.bar_width_frac))
    bar_left = centre_x - bar_width // 2
    bar_top = max(safe.top, safe.bottom - bar_height)
    progress_bar = Rect(bar_left, bar_top, bar_left + bar_width, safe.bottom)

    timecode = TextAnchor(centre_x, bar_top - bar_gap, tc_font, ALIGN_BOTTOM_CENTRE)
    df_suffix = max(1, int(math.floor(tc_font * params.df_suffix_scale)))

    info_lines: Tuple[Tuple[str, TextAnchor], ...] = ()
    if mode is DisplayMode.FULL:
        line_height = int(math.floor(info_font * params.info_line_spacing))
        info_lines = tuple(
            (metric, TextAnchor(safe.left, safe.top + i * line_height, info_font, ALIGN_TOP_LEFT))
            for i, metric in enumerate(enabled_metrics)
        )

    return OverlayLayout(
        viewport_width=viewport_width,
        viewport_height=viewport_height,
        mode=mode,
        safe_area=safe,
        border_width=border,
        timecode=timecode,
        df_suffix_size=df_suffix,
        progress_bar=progress_bar,
        info_lines=info_lines,
    )
