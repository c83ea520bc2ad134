"""
broadcast-qc - Source Modules

This package contains the timecode and audio routing engines for an mpv
playback host:
- framerate: NTSC / drop-frame framerate classification
- dropframe: SMPTE drop-frame frame number compensation
- timecode: Playback position to timecode formatting
- layout: Responsive overlay geometry per display mode
- overlay: ASS overlay text for the host
- scheduler: Coalescing render scheduler
- timecode_engine: Timecode overlay session state and render cycle
- routing: Pan matrices for pair, solo and downmix routing
- loudness: Loudness normalisation profiles and stages
- filter_chain: Filter chain stages and lavfi serialisation
- audio_engine: Routing / loudness state machine
- commands: Named command dispatch
- session: Wiring of both engines to a host
- host, simhost, ipc: Host contract, simulated host, mpv JSON IPC host
- export: JSON reports and plot generation
"""

__version__ = "1.0.0"
