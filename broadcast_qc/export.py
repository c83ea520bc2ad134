"""
Export Module

Generate JSON reports and diagnostic plots for routing plans and timecode
tables. All outputs follow a versioned schema for consistency.
"""

import numpy as np
import json
from pathlib import Path
from typing import Dict, List, Any, Optional, Sequence
import matplotlib
matplotlib.use('Agg')  # Non-interactive backend
import matplotlib.pyplot as plt

import config
from broadcast_qc.dropframe import compute_dropframe_offsets
from broadcast_qc.filter_chain import serialize_loudness_stage, serialize_pan_stage
from broadcast_qc.framerate import classify_framerate
from broadcast_qc.loudness import build_loudness_stage, loudness_profiles
from broadcast_qc.params import DEFAULT_PARAMS, SuiteParams
from broadcast_qc.routing import (
    AllChannelDownmix,
    ChannelRangeError,
    DefaultRouting,
    RoutingMode,
    Solo,
    StereoPair,
    describe_routing,
    plan_pan_stage,
)
from broadcast_qc.timecode import format_timecode


class NumpyEncoder(json.JSONEncoder):
    """JSON encoder that handles numpy types."""
    def default(self, obj):
        if isinstance(obj, np.integer):
            return int(obj)
        elif isinstance(obj, np.floating):
            return float(obj)
        elif isinstance(obj, np.ndarray):
            return obj.tolist()
        elif isinstance(obj, np.bool_):
            return bool(obj)
        return super().default(obj)


def report_modes(channel_count: int) -> List[RoutingMode]:
    """Routing modes covered by a report: default, downmix, every pair and solo."""
    modes: List[RoutingMode] = [DefaultRouting(), AllChannelDownmix()]
    pair_count = max(1, channel_count // 2)
    modes.extend(StereoPair(n) for n in range(1, pair_count + 1))
    modes.extend(Solo(n) for n in range(1, max(1, channel_count) + 1))
    return modes


def create_routing_report(
    channel_count: int,
    params: SuiteParams = DEFAULT_PARAMS,
    modes: Optional[Sequence[RoutingMode]] = None
) -> Dict:
    """
    Create the routing plan report for a channel count.

    Parameters:
        channel_count: Channels of the audio track
        params: Parameters (loudness table)
        modes: Routing modes to plan; default: report_modes(channel_count)

    Returns:
        Report dict ready for JSON serialization. Modes the track cannot
        satisfy carry an 'error' entry instead of a matrix.
    """
    if modes is None:
        modes = report_modes(channel_count)

    plans = []
    for mode in modes:
        entry: Dict[str, Any] = {
            'mode': mode.name,
            'label': describe_routing(mode),
        }
        try:
            stage = plan_pan_stage(mode, channel_count)
        except ChannelRangeError as exc:
            entry['error'] = str(exc)
            plans.append(entry)
            continue

        if stage is None:
            entry['matrix'] = None
            entry['filter'] = None
        else:
            entry['matrix'] = stage.matrix
            entry['filter'] = serialize_pan_stage(stage)
            # Power check: squared gains per output row
            entry['row_power'] = np.sum(stage.matrix ** 2, axis=1)
        plans.append(entry)

    loudness = []
    for profile in loudness_profiles(params.loudness):
        stage = build_loudness_stage(profile, params.loudness)
        loudness.append({
            'name': profile.name,
            'target_lufs': profile.target_lufs,
            'filter': serialize_loudness_stage(stage) if stage is not None else None,
        })

    return {
        'schema_version': config.SCHEMA_VERSION,
        'channel_count': channel_count,
        'routing': plans,
        'loudness': loudness,
    }


def create_timecode_table(
    fps: float,
    seconds_list: Sequence[float],
    params: SuiteParams = DEFAULT_PARAMS
) -> Dict:
    """
    Create a table of formatted timecodes for a frame rate.

    Parameters:
        fps: Frame rate
        seconds_list: Playback positions in seconds
        params: Parameters (framerate tolerances)

    Returns:
        Dict with the classified profile and one row per position
    """
    profile = classify_framerate(fps, params.framerate)
    rows = []
    for seconds in seconds_list:
        rows.append({
            'seconds': float(seconds),
            'timecode': format_timecode(seconds, fps, params.framerate),
        })

    return {
        'schema_version': config.SCHEMA_VERSION,
        'fps': float(fps),
        'profile': {
            'nominal_fps': profile.nominal_fps,
            'rounded_fps': profile.rounded_fps,
            'drop_frame': profile.drop_frame,
            'separator': profile.separator,
        },
        'rows': rows,
    }


def save_json(data: Dict, output_path: Path) -> None:
    """
    Save data as JSON with pretty printing.

    Parameters:
        data: Dictionary to save
        output_path: Path to output file
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, 'w') as f:
        json.dump(data, f, indent=2, cls=NumpyEncoder, ensure_ascii=False)


def plot_pan_matrix(
    matrix: np.ndarray,
    output_path: Path,
    title: str = "Pan Matrix"
) -> None:
    """
    Plot a pan matrix as a heat map of gains.

    Parameters:
        matrix: (2, channel_count) gain matrix
        output_path: Path to save plot
        title: Plot title
    """
    channel_count = matrix.shape[1]
    fig, ax = plt.subplots(figsize=(max(4.0, 0.8 * channel_count + 2.0), 3.0))

    image = ax.imshow(matrix, cmap='viridis', vmin=0.0, vmax=1.0, aspect='auto')
    for row in range(matrix.shape[0]):
        for col in range(channel_count):
            gain = matrix[row, col]
            if gain:
                ax.text(col, row, f"{gain:.3f}", ha='center', va='center',
                        color='white' if gain < 0.6 else 'black', fontsize=8)

    ax.set_xticks(range(channel_count))
    ax.set_xticklabels([f"CH{i + 1}" for i in range(channel_count)], fontsize=9)
    ax.set_yticks([0, 1])
    ax.set_yticklabels(['L', 'R'], fontsize=9)
    ax.set_title(title, fontsize=12, fontweight='bold')
    fig.colorbar(image, ax=ax, label='Gain')

    plt.tight_layout()

    output_path.parent.mkdir(parents=True, exist_ok=True)
    plt.savefig(output_path, dpi=config.PLOT_DPI, bbox_inches='tight')
    plt.close(fig)


def plot_dropframe_offsets(
    rounded_fps: int,
    duration_sec: float,
    output_path: Path,
    title: str = "Drop-Frame Offsets"
) -> None:
    """
    Plot skipped frame numbers against elapsed time.

    Parameters:
        rounded_fps: Rounded drop-frame rate (24, 30, 48, 60, 120)
        duration_sec: Time span to plot
        output_path: Path to save plot
        title: Plot title
    """
    frame_counts = np.arange(0, int(duration_sec * rounded_fps) + 1, rounded_fps)
    offsets = compute_dropframe_offsets(frame_counts, rounded_fps)
    minutes = frame_counts / (rounded_fps * 60.0)

    fig, ax = plt.subplots(figsize=config.PLOT_FIGSIZE)
    ax.step(minutes, offsets, where='post', color='red', linewidth=1.5,
            label=f"{rounded_fps} fps DF")

    # Minutes that keep all frame numbers
    for minute in range(0, int(minutes[-1]) + 1 if len(minutes) else 0, 10):
        ax.axvline(minute, color='gray', alpha=0.4, linestyle=':', linewidth=1)

    ax.set_xlabel('Elapsed time (minutes)', fontsize=10)
    ax.set_ylabel('Skipped frame numbers', fontsize=10)
    ax.set_title(title, fontsize=12, fontweight='bold')
    ax.legend(loc='upper left', fontsize=9)
    ax.grid(True, alpha=0.3)

    plt.tight_layout()

    output_path.parent.mkdir(parents=True, exist_ok=True)
    plt.savefig(output_path, dpi=config.PLOT_DPI, bbox_inches='tight')
    plt.close(fig)


def export_all_outputs(
    channel_count: int,
    output_dir: Path,
    name: str,
    params: SuiteParams = DEFAULT_PARAMS,
    fps_list: Sequence[float] = (29.97,),
    generate_plots: bool = True
) -> List[Path]:
    """
    Export routing report, timecode tables and plots.

    Parameters:
        channel_count: Channels of the audio track
        output_dir: Output directory path
        name: Report name (for filenames)
        params: Parameters used
        fps_list: Frame rates to tabulate
        generate_plots: Whether to generate plot files

    Returns:
        List of paths to created files
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    created_files = []

    report = create_routing_report(channel_count, params)
    report['params'] = params.to_dict()
    report_path = output_dir / f"{name}_routing.json"
    save_json(report, report_path)
    created_files.append(report_path)

    tables = [
        create_timecode_table(fps, config.REPORT_TIMECODE_POSITIONS, params)
        for fps in fps_list
    ]
    tables_path = output_dir / f"{name}_timecode.json"
    save_json({'schema_version': config.SCHEMA_VERSION, 'tables': tables}, tables_path)
    created_files.append(tables_path)

    if generate_plots:
        for index, plan in enumerate(report['routing']):
            if plan.get('matrix') is None:
                continue
            plot_path = output_dir / f"{name}_pan_{index:02d}_{plan['mode']}.png"
            plot_pan_matrix(
                np.asarray(plan['matrix']),
                plot_path,
                title=f"{plan['label']}: {channel_count} channels"
            )
            created_files.append(plot_path)

        for table in tables:
            profile = table['profile']
            if not profile['drop_frame']:
                continue
            plot_path = output_dir / f"{name}_dropframe_{profile['rounded_fps']}.png"
            plot_dropframe_offsets(
                profile['rounded_fps'],
                config.REPORT_DROPFRAME_SPAN_SEC,
                plot_path,
                title=f"Drop-Frame Offsets: {profile['nominal_fps']:.3f} fps"
            )
            created_files.append(plot_path)

    return created_files


def print_routing_summary(report: Dict) -> None:
    """
    Print concise routing summary to console.

    Parameters:
        report: Report dict from create_routing_report
    """
    print(f"\n{'='*60}")
    print(f"Routing Plan: {report['channel_count']} channels")
    print(f"{'='*60}")
    for plan in report['routing']:
        if 'error' in plan:
            print(f"  {plan['label']:<20} ERROR: {plan['error']}")
        elif plan['filter'] is None:
            print(f"  {plan['label']:<20} (no pan stage)")
        else:
            print(f"  {plan['label']:<20} {plan['filter']}")
    print(f"{'='*60}\n")
