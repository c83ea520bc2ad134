"""
broadcast-qc - Configuration

User-facing option defaults for the timecode overlay and the audio routing
engine. Every default value includes rationale.

cli.py turns these into a SuiteParams (broadcast_qc/params.py); engine
modules never import this file.
"""

from typing import Dict, List, Tuple

# =============================================================================
# TIMECODE DISPLAY
# =============================================================================

# Initial display mode: 'full', 'tc_only', 'minimal' or 'off'
# Why: 'full' shows timecode, progress bar and info block at once, which is
#      what a QC operator wants when a file is first opened
MODE: str = 'full'

# Minimum seconds between two overlay renders
# Why: 0 renders on the next host tick after a change, so the frame counter
#      never lags; raise it (e.g. 0.04) on slow machines to cap the rate
REFRESH_INTERVAL: float = 0.0

# Info block lines
# Why: elapsed, remaining, total and framerate are the four values checked
#      against a delivery spec sheet; each can be hidden individually
SHOW_ELAPSED: bool = True
SHOW_COUNTDOWN: bool = True
SHOW_DURATION: bool = True
SHOW_FPS: bool = True

# =============================================================================
# OVERLAY GEOMETRY (fractions of the viewport)
# =============================================================================

# Inner safe-area margin as a fraction of min(width, height)
# Why: 3% keeps text clear of the picture edge on consumer displays that
#      overscan, without wasting screen space on a monitor
SAFE_MARGIN: float = 0.03

# Timecode font size relative to viewport height
# Why: 6.5% of 1080 ≈ 70 px, readable from a few metres on a grading monitor
TC_REL_SIZE: float = 0.065

# Timecode outline thickness relative to viewport height
# Why: ≈ 3 px at 1080p keeps white digits legible over bright picture
TC_BORDER_REL: float = 0.003

# Info text size relative to viewport height
# Why: ≈ 24 px at 1080p, secondary to the timecode but still legible
INFO_REL_SIZE: float = 0.022

# Progress bar height and its gap to the timecode baseline
# Why: ≈ 11 px bar and ≈ 5 px gap at 1080p; thin enough not to cover
#      picture content, thick enough to read position at a glance
BAR_HEIGHT_REL: float = 0.010
BAR_GAP_REL: float = 0.005

# Progress bar width as a fraction of the safe width
# Why: 60% centred leaves the lower corners free for burnt-in captions
BAR_WIDTH_FRAC: float = 0.6

# =============================================================================
# COLOURS AND OPACITY
# =============================================================================

# RGB hex colours per overlay element
# Why: white timecode on black outline is the broadcast burn-in convention;
#      yellow info text and green progress stand apart from it
COLOURS: Dict[str, str] = {
    'tc_fg': 'FFFFFF',
    'tc_border': '000000',
    'info_fg': 'FFFF00',
    'bar_fg': '00FF00',
    'bar_bg': '404040',
}

# Opacity per element, 0.0 (transparent) to 1.0 (opaque)
# Why: text stays fully opaque for legibility; the bar background is mostly
#      transparent so the picture under it can still be judged
OPACITY: Dict[str, float] = {
    'tc_fg': 1.00,
    'info_fg': 1.00,
    'bar_fg': 0.95,
    'bar_bg': 0.35,
}

# =============================================================================
# LOUDNESS
# =============================================================================

# Loudness targets (LUFS) in toggleLoudness cycling order
# Why: EBU R128 (-23) is the European broadcast target, ATSC A/85 (-24) the
#      US one, -16 the common streaming / podcast level; 'none' must come
#      first so a freshly loaded file plays unprocessed
LOUDNESS_TARGETS: List[Tuple[str, float]] = [
    ('none', 0.0),
    ('ebu_r128', -23.0),
    ('atsc', -24.0),
    ('podcast', -16.0),
]

# True-peak ceiling (dBTP)
# Why: -1 dBTP is the ceiling both R128 and A/85 ask for
TRUE_PEAK_DBTP: float = -1.0

# Loudness range target (LU)
# Why: 11 LU is ffmpeg loudnorm's default and suits mixed programme material
LOUDNESS_RANGE_LU: float = 11.0

# =============================================================================
# OUTPUT PARAMETERS
# =============================================================================

# JSON schema version
# Why: Enables backward compatibility checks when the report format changes
SCHEMA_VERSION: str = "1.0.0"

# Plot DPI for saved figures
# Why: 100 DPI produces reasonable file sizes while maintaining readability
PLOT_DPI: int = 100

# Plot figure size (width, height) in inches
# Why: 12x4 fits a drop-frame step plot over an hour without crowding
PLOT_FIGSIZE: tuple = (12, 4)

# Playback positions (seconds) tabulated in timecode reports
# Why: covers the first drop (1 min), the first kept minute (10 min) and the
#      hour rollover, where drop-frame errors show up first
REPORT_TIMECODE_POSITIONS: List[float] = [0.0, 59.0, 60.0, 61.0, 599.0, 600.0, 3599.0, 3600.0]

# Time span of drop-frame offset plots (seconds)
# Why: one hour holds six complete 10-minute blocks
REPORT_DROPFRAME_SPAN_SEC: float = 3600.0

# =============================================================================
# IPC
# =============================================================================

# Seconds to wait for mpv to answer a synchronous request
# Why: mpv answers local IPC requests in well under a millisecond; one
#      second only trips when mpv is hung or gone
IPC_TIMEOUT: float = 1.0
