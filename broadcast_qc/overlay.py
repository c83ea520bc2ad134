"""
Overlay Module - ASS Serialisation at the Host Boundary

Turns an OverlayLayout plus the values of one render (timecode, clock,
framerate, progress) into the ASS event text accepted by the host's
overlay command. Geometry decisions live in layout.py; this module only
writes tags.
"""

from dataclasses import dataclass
from typing import List, Optional

from broadcast_qc.framerate import FramerateProfile
from broadcast_qc.layout import OverlayLayout, Rect, TextAnchor
from broadcast_qc.params import OverlayParams
from broadcast_qc.timecode import TIMECODE_SENTINEL, TimecodeValue, format_duration


@dataclass(frozen=True)
class OverlayFrame:
    """
    Values shown by one render.

    Attributes:
        timecode: Current timecode, None when the position is unknown
        profile: Framerate profile of the stream
        time_position: Playback position in seconds
        duration: Stream duration in seconds
        percent_position: Playback progress 0-100
    """
    timecode: Optional[TimecodeValue]
    profile: FramerateProfile
    time_position: Optional[float]
    duration: Optional[float]
    percent_position: float = 0.0


# =============================================================================
# TAG HELPERS
# =============================================================================

def opacity_to_alpha(opacity: float) -> str:
    """Convert opacity (0-1) to inverted libass alpha hex (00 opaque, FF clear)."""
    opacity = max(0.0, min(1.0, float(opacity)))
    return f"{int((1.0 - opacity) * 255 + 0.5):02X}"


def rgb_to_bgr(rgb_hex: str) -> str:
    return rgb_hex[4:6] + rgb_hex[2:4] + rgb_hex[0:2]


def ass_colour(rgb_hex: str, opacity: float) -> str:
    return f"\\1c&H{rgb_to_bgr(rgb_hex)}&\\1a&H{opacity_to_alpha(opacity)}&"


def ass_border(rgb_hex: str, width_px: int) -> str:
    return f"\\bord{int(width_px)}\\3c&H{rgb_to_bgr(rgb_hex)}&\\3a&H00&"


def _rect_event(rect: Rect, colour: str) -> str:
    path = (f"m {rect.left} {rect.top} l {rect.right} {rect.top} "
            f"{rect.right} {rect.bottom} {rect.left} {rect.bottom}")
    return f"{{\\an7\\pos(0,0)\\bord0\\shad0{colour}\\p1}}{path}{{\\p0}}"


def _text_event(anchor: TextAnchor, tags: str, text: str) -> str:
    return (f"{{\\an{anchor.alignment}\\pos({anchor.x},{anchor.y})"
            f"\\fs{anchor.font_size}{tags}}}{text}")


# =============================================================================
# ELEMENTS
# =============================================================================

def _info_text(metric: str, frame: OverlayFrame) -> str:
    if metric == 'elapsed':
        return f"ELAPSED: {format_duration(frame.time_position)}"
    if metric == 'remaining':
        if frame.duration is None or frame.time_position is None:
            return f"REMAIN:  -{format_duration(None)}"
        remaining = max(0.0, frame.duration - frame.time_position)
        return f"REMAIN:  -{format_duration(remaining)}"
    if metric == 'total':
        return f"TOTAL:   {format_duration(frame.duration)}"
    if metric == 'framerate':
        return f"{frame.profile.nominal_fps:.2f} fps ({frame.profile.label})"
    raise ValueError(f"Unknown info metric: {metric}")


def progress_fill_width(bar: Rect, percent_position: float) -> int:
    """Width of the filled part of the progress bar, clamped to the bar."""
    fraction = max(0.0, min(100.0, float(percent_position or 0.0))) / 100.0
    return int(bar.width * fraction + 0.5)


def build_overlay_events(
    layout: OverlayLayout,
    frame: OverlayFrame,
    params: OverlayParams = OverlayParams()
) -> List[str]:
    """
    Build the ASS events for one render.

    Parameters:
        layout: Geometry from compute_overlay_layout
        frame: Values to display
        params: Colours and opacities

    Returns:
        List of ASS event strings in drawing order (bar, timecode, info)
    """
    colours = params.colours
    opacity = params.opacity
    events: List[str] = []

    tc_text = str(frame.timecode) if frame.timecode is not None else TIMECODE_SENTINEL

    bar = layout.progress_bar
    if bar is not None and frame.duration and frame.duration > 0 and bar.width > 0:
        events.append(_rect_event(bar, ass_colour(colours['bar_bg'], opacity['bar_bg'])))
        fill = progress_fill_width(bar, frame.percent_position)
        if fill > 0:
            filled = Rect(bar.left, bar.top, bar.left + fill, bar.bottom)
            events.append(_rect_event(filled, ass_colour(colours['bar_fg'], opacity['bar_fg'])))

    if layout.timecode is not None:
        tags = (ass_colour(colours['tc_fg'], opacity['tc_fg'])
                + ass_border(colours['tc_border'], layout.border_width)
                + "\\shad2")
        suffix = f"{{\\fs{layout.df_suffix_size}}} {frame.profile.label}"
        events.append(_text_event(layout.timecode, tags, tc_text + suffix))

    info_tags = ass_colour(colours['info_fg'], opacity['info_fg']) + "\\bord2\\shad1"
    for metric, anchor in layout.info_lines:
        events.append(_text_event(anchor, info_tags, _info_text(metric, frame)))

    if layout.corner_timecode is not None:
        tags = ass_colour(colours['tc_fg'], opacity['tc_fg']) + "\\bord2"
        events.append(_text_event(layout.corner_timecode, tags, tc_text))

    return events


def render_overlay_text(
    layout: OverlayLayout,
    frame: OverlayFrame,
    params: OverlayParams = OverlayParams()
) -> str:
    """Serialise one render as newline-separated ASS events."""
    return "\n".join(build_overlay_events(layout, frame, params))
