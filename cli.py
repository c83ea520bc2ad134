#!/usr/bin/env python3
"""
broadcast-qc - Command Line Interface

Main entry point for timecode conversion, routing plans, reports, a
simulated demo session and live attachment to mpv over JSON IPC.
"""

import argparse
import sys
from dataclasses import fields, replace
from pathlib import Path
from typing import Dict, List, Optional

import config
from broadcast_qc import export
from broadcast_qc.commands import parse_command, CMD_DOWNMIX, CMD_PAIR, CMD_RESET, CMD_SOLO
from broadcast_qc.filter_chain import FilterChain
from broadcast_qc.framerate import classify_framerate
from broadcast_qc.host import (
    PROP_AUDIO_CHANNEL_COUNT,
    PROP_AUDIO_CODEC,
    PROP_AUDIO_SAMPLERATE,
    PROP_CONTAINER_FPS,
    PROP_DURATION,
    PROP_OSD_DIMENSIONS,
    PROP_PAUSE,
    PROP_PERCENT_POS,
    PROP_TIME_POS,
    PROP_TRACK_LIST,
)
from broadcast_qc.ipc import MpvIpcHost
from broadcast_qc.loudness import build_loudness_stage, get_loudness_profile
from broadcast_qc.params import (
    LoudnessParams,
    MessageParams,
    OverlayParams,
    SchedulerParams,
    SuiteParams,
    validate_params,
)
from broadcast_qc.routing import (
    AllChannelDownmix,
    ChannelRangeError,
    DefaultRouting,
    RoutingMode,
    Solo,
    StereoPair,
    plan_pan_stage,
)
from broadcast_qc.session import BroadcastSession
from broadcast_qc.simhost import SimulatedHost
from broadcast_qc.timecode import format_timecode


# =============================================================================
# PARAMETERS
# =============================================================================

def _parse_value(text: str, default):
    if isinstance(default, bool):
        lowered = text.strip().lower()
        if lowered in ('1', 'true', 'yes', 'on'):
            return True
        if lowered in ('0', 'false', 'no', 'off'):
            return False
        raise ValueError(f"Expected a boolean, got {text!r}")
    if isinstance(default, int):
        return int(text)
    if isinstance(default, float):
        return float(text)
    return text


def build_params(overrides: Optional[List[str]] = None) -> SuiteParams:
    """
    Build parameters from config.py plus key=value overrides.

    Override keys are OverlayParams / SchedulerParams field names
    (e.g. mode=tc_only, refresh_interval=0.04), or colour.<element> and
    opacity.<element>.

    Raises:
        ValueError: On unknown keys, unparseable values or inconsistent
            parameters
    """
    overlay = OverlayParams(
        mode=config.MODE,
        safe_margin=config.SAFE_MARGIN,
        tc_rel_size=config.TC_REL_SIZE,
        tc_border_rel=config.TC_BORDER_REL,
        info_rel_size=config.INFO_REL_SIZE,
        bar_height_rel=config.BAR_HEIGHT_REL,
        bar_gap_rel=config.BAR_GAP_REL,
        bar_width_frac=config.BAR_WIDTH_FRAC,
        show_elapsed=config.SHOW_ELAPSED,
        show_countdown=config.SHOW_COUNTDOWN,
        show_duration=config.SHOW_DURATION,
        show_fps=config.SHOW_FPS,
        colours=dict(config.COLOURS),
        opacity=dict(config.OPACITY),
    )
    scheduler = SchedulerParams(refresh_interval=config.REFRESH_INTERVAL)
    loudness = LoudnessParams(
        targets=tuple((name, float(target)) for name, target in config.LOUDNESS_TARGETS),
        true_peak_dbtp=config.TRUE_PEAK_DBTP,
        loudness_range_lu=config.LOUDNESS_RANGE_LU,
    )

    overlay_fields = {f.name for f in fields(OverlayParams)} - {'colours', 'opacity'}
    scheduler_fields = {f.name for f in fields(SchedulerParams)}

    for item in overrides or []:
        key, sep, value = item.partition('=')
        key = key.strip()
        if not sep:
            raise ValueError(f"Option must be key=value, got {item!r}")

        if key.startswith('colour.'):
            colours = dict(overlay.colours)
            colours[key.split('.', 1)[1]] = value.strip().upper()
            overlay = replace(overlay, colours=colours)
        elif key.startswith('opacity.'):
            opacity = dict(overlay.opacity)
            opacity[key.split('.', 1)[1]] = float(value)
            overlay = replace(overlay, opacity=opacity)
        elif key in overlay_fields:
            overlay = replace(overlay, **{key: _parse_value(value, getattr(overlay, key))})
        elif key in scheduler_fields:
            scheduler = replace(scheduler, **{key: _parse_value(value, getattr(scheduler, key))})
        else:
            raise ValueError(f"Unknown option: {key}")

    params = SuiteParams(
        overlay=overlay,
        scheduler=scheduler,
        loudness=loudness,
        messages=MessageParams(),
    )
    validate_params(params)
    return params


# =============================================================================
# MODES
# =============================================================================

def parse_routing_mode(text: str) -> RoutingMode:
    """
    Parse 'default', 'downmix', 'pair:N' or 'solo:N'.

    Raises:
        ValueError: If the mode is malformed
    """
    if text.strip() == 'default':
        return DefaultRouting()
    command = parse_command(text)
    if command is None:
        raise ValueError(f"Invalid routing mode: {text!r}")
    if command.name == CMD_RESET:
        return DefaultRouting()
    if command.name == CMD_DOWNMIX:
        return AllChannelDownmix()
    if command.name == CMD_PAIR:
        return StereoPair(command.argument)
    if command.name == CMD_SOLO:
        return Solo(command.argument)
    raise ValueError(f"Not a routing mode: {text!r}")


def run_timecode(seconds_list: List[float], fps: float, params: SuiteParams) -> bool:
    profile = classify_framerate(fps, params.framerate)
    print(f"Frame rate: {profile.nominal_fps:.3f} fps -> {profile.rounded_fps} {profile.label}")
    for seconds in seconds_list:
        print(f"  {seconds:>12.3f}s  {format_timecode(seconds, fps, params.framerate)}")
    return True


def run_route(
    channel_count: int,
    mode_text: str,
    loudness_name: str,
    params: SuiteParams
) -> bool:
    try:
        mode = parse_routing_mode(mode_text)
        profile = get_loudness_profile(loudness_name, params.loudness)
    except (ValueError, KeyError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return False

    try:
        pan = plan_pan_stage(mode, channel_count)
    except ChannelRangeError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return False

    chain = FilterChain.from_stages(pan, build_loudness_stage(profile, params.loudness))
    if chain.is_empty:
        print("(empty filter chain)")
    for descriptor in chain.to_descriptors():
        print(descriptor)
    return True


def run_report(
    channel_count: int,
    output_dir: Path,
    fps_list: List[float],
    params: SuiteParams,
    generate_plots: bool = True,
    verbose: bool = False
) -> bool:
    try:
        created_files = export.export_all_outputs(
            channel_count,
            output_dir,
            f"ch{channel_count}",
            params=params,
            fps_list=fps_list,
            generate_plots=generate_plots,
        )
    except (OSError, ValueError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        if verbose:
            import traceback
            traceback.print_exc()
        return False

    export.print_routing_summary(export.create_routing_report(channel_count, params))
    print(f"Created {len(created_files)} output files in {output_dir}")
    if verbose:
        for path in created_files:
            print(f"  {path}")
    return True


# Scripted demo session: (seconds to advance, command or None)
DEMO_SCRIPT: List = [
    (0.0, None),
    (1.0, 'pair:2'),
    (1.0, 'toggleLoudness'),
    (1.0, 'solo:5'),
    (1.0, 'pair:4'),
    (1.0, 'cycleDisplayMode'),
    (1.0, 'toggleCountdown'),
    (1.0, 'showAudioInfo'),
    (1.0, 'reset'),
]

DEMO_FILE: Dict = {
    PROP_TIME_POS: 0.0,
    PROP_DURATION: 1800.0,
    PROP_PERCENT_POS: 0.0,
    PROP_PAUSE: False,
    PROP_CONTAINER_FPS: 29.97,
    PROP_OSD_DIMENSIONS: {'w': 1920, 'h': 1080, 'ml': 0, 'mr': 0, 'mt': 0, 'mb': 0},
    PROP_AUDIO_CHANNEL_COUNT: 6,
    PROP_AUDIO_CODEC: 'pcm_s24le',
    PROP_AUDIO_SAMPLERATE: 48000,
    PROP_TRACK_LIST: [{'id': 1, 'type': 'video'}, {'id': 1, 'type': 'audio'}],
}


def run_demo(params: SuiteParams, verbose: bool = False) -> bool:
    """
    Run a scripted session against the simulated host.

    Plays a 29.97 fps file with 6-channel audio for a few seconds and sends
    the routing and display commands, printing what the host receives.
    """
    print("Running demo session against a simulated host...")

    host = SimulatedHost()
    session = BroadcastSession(host, params)
    session.install()
    host.load_file(DEMO_FILE)
    host.run_until_idle()

    position = 0.0
    for step, command in DEMO_SCRIPT:
        # Play forward in frame-sized steps
        for _ in range(int(step * 30)):
            position += 1.0 / 29.97
            host.update_properties({
                PROP_TIME_POS: position,
                PROP_PERCENT_POS: 100.0 * position / DEMO_FILE[PROP_DURATION],
            })
            host.advance(1.0 / 29.97)

        if command is not None:
            print(f"\n> {command}")
            session.handle_command(command)
        host.run_until_idle()

        for text, duration in host.messages:
            print(f"  message ({duration:.1f}s): {text.replace(chr(10), ' | ')}")
        host.messages.clear()
        shown = session.timecode.context.last_overlay is not None
        print(f"  timecode: {format_timecode(position, 29.97, params.framerate) if shown else '(hidden)'}")
        for descriptor in host.audio_filters:
            print(f"  af: {descriptor}")
        if verbose and host.overlay is not None:
            print(f"  overlay: {len(host.overlay[2].splitlines())} events")

    host.end_file()
    print(f"\nDemo complete: {session.timecode.scheduler.render_count} renders, "
          f"{session.audio.submit_count} filter chain submissions")
    return True


def run_attach(socket_path: str, params: SuiteParams, verbose: bool = False) -> bool:
    """Run the session against a live mpv until it quits or Ctrl-C."""
    try:
        host = MpvIpcHost.connect(socket_path, timeout=config.IPC_TIMEOUT)
    except ConnectionError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return False

    session = BroadcastSession(host, params)
    session.install()
    print(f"Attached to mpv at {socket_path}")

    try:
        # A file may already be playing when we attach
        if host.get_property('path') is not None:
            session.on_file_loaded()
        host.run()
    except KeyboardInterrupt:
        print("\nDetaching")
    except (ConnectionError, TimeoutError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        if verbose:
            import traceback
            traceback.print_exc()
        return False
    finally:
        host.close()

    return True


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description='broadcast-qc - SMPTE timecode and audio routing for mpv',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Convert positions to timecode
  %(prog)s --timecode 60.06 3600 --fps 29.97

  # Print the filter chain for pair 2 of a 6-channel track at EBU R128
  %(prog)s --route 6 --mode pair:2 --loudness ebu_r128

  # Write routing / timecode reports and plots
  %(prog)s --report 8 --output reports/

  # Scripted session against a simulated host
  %(prog)s --demo

  # Attach to mpv started with --input-ipc-server=/tmp/mpv.sock
  %(prog)s --attach /tmp/mpv.sock --opt mode=tc_only
        """
    )

    actions = parser.add_mutually_exclusive_group(required=True)
    actions.add_argument(
        '--timecode',
        type=float,
        nargs='+',
        metavar='SECONDS',
        help='Format playback positions as timecode'
    )
    actions.add_argument(
        '--route',
        type=int,
        metavar='CHANNELS',
        help='Print the filter chain for a track with this many channels'
    )
    actions.add_argument(
        '--report',
        type=int,
        metavar='CHANNELS',
        help='Write JSON reports and plots for this many channels'
    )
    actions.add_argument(
        '--demo',
        action='store_true',
        help='Run a scripted session against a simulated host'
    )
    actions.add_argument(
        '--attach',
        type=str,
        metavar='SOCKET',
        help='Attach to mpv over its JSON IPC socket'
    )

    parser.add_argument(
        '--fps',
        type=float,
        nargs='+',
        default=None,
        help='Frame rate(s) for --timecode and --report (default: 25 / 29.97)'
    )
    parser.add_argument(
        '--mode',
        type=str,
        default='default',
        help="Routing mode for --route: default, downmix, pair:N, solo:N"
    )
    parser.add_argument(
        '--loudness',
        type=str,
        default='none',
        help=f"Loudness profile for --route ({', '.join(n for n, _ in config.LOUDNESS_TARGETS)})"
    )
    parser.add_argument(
        '--output', '-o',
        type=str,
        help='Output directory for --report'
    )
    parser.add_argument(
        '--no-plots',
        action='store_true',
        help='Skip plot generation'
    )
    parser.add_argument(
        '--opt',
        action='append',
        default=[],
        metavar='KEY=VALUE',
        help='Override an option from config.py (repeatable)'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Print verbose progress messages'
    )

    args = parser.parse_args()

    if args.report is not None and not args.output:
        parser.error("--report requires --output")

    try:
        params = build_params(args.opt)
    except ValueError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)

    if args.timecode is not None:
        fps = args.fps[0] if args.fps else 25.0
        success = run_timecode(args.timecode, fps, params)
    elif args.route is not None:
        success = run_route(args.route, args.mode, args.loudness, params)
    elif args.report is not None:
        success = run_report(
            args.report,
            Path(args.output),
            args.fps or [29.97],
            params,
            generate_plots=not args.no_plots,
            verbose=args.verbose,
        )
    elif args.demo:
        success = run_demo(params, args.verbose)
    else:
        success = run_attach(args.attach, params, args.verbose)

    sys.exit(0 if success else 1)


if __name__ == '__main__':
    main()
