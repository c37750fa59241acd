#!/usr/bin/env python3
"""
CaptionPipe CLI - Command-line interface for caption burn-in and subtitle export.

Usage:
    captionpipe burn -i video.mp4 -t transcript.json -o output/
    captionpipe burn --config export.yaml
    captionpipe subtitles -t transcript.json -o subs.srt --mode phrase
    captionpipe info video.mp4
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
from pathlib import Path

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("captionpipe")


def setup_logging(verbose: bool = False, quiet: bool = False):
    """Configure logging based on verbosity settings."""
    if quiet:
        logging.getLogger().setLevel(logging.WARNING)
    elif verbose:
        logging.getLogger().setLevel(logging.DEBUG)


def build_config(args):
    """Load the export configuration and apply command-line overrides."""
    from captionpipe.core.config import ExportConfig

    if getattr(args, "config", None):
        logger.info(f"Loading configuration from: {args.config}")
        config = ExportConfig.from_file(args.config)
    else:
        config = ExportConfig()

    if getattr(args, "input", None):
        config.input_file = Path(args.input)
    if args.transcript:
        config.transcript_file = Path(args.transcript)
    if args.mode:
        config.mode = args.mode

    for key in ("max_words", "max_gap"):
        value = getattr(args, key, None)
        if value is not None:
            config.phrase_settings[key] = value

    if config.debug and not getattr(args, "quiet", False):
        logging.getLogger().setLevel(logging.DEBUG)

    return config


def cmd_burn(args):
    """Burn captions into a video."""
    from captionpipe.core.job import ExportJob
    from captionpipe.transcript import load_transcript
    from captionpipe.video.orchestrator import ExportOrchestrator

    config = build_config(args)

    if args.output:
        config.output_dir = Path(args.output)
    for key in ("format", "quality", "fps", "width", "height"):
        value = getattr(args, key)
        if value is not None:
            config.export_settings[key] = value
    if args.style:
        config.subtitle_settings["preset"] = args.style
    if args.font_size:
        config.subtitle_settings["font_size"] = args.font_size
    if args.no_emphasis:
        config.subtitle_settings["word_emphasis_enabled"] = False

    if config.input_file is None or config.transcript_file is None:
        logger.error("Both an input video (-i) and a transcript (-t) are required")
        sys.exit(1)

    # Validate config
    errors = config.validate()
    if errors:
        for error in errors:
            logger.error(error)
        sys.exit(1)

    if args.save_config:
        config.save(args.save_config)

    transcript = load_transcript(config.transcript_file)

    orchestrator = ExportOrchestrator(
        style=config.build_style(),
        mode=config.mode,
        settings=config.build_export_settings(),
        grouping=config.build_grouping(),
    )

    job = ExportJob()
    if not args.quiet:
        job.add_listener(_print_status())

    # First Ctrl-C cancels cooperatively, a second one interrupts
    def handle_interrupt(signum, frame):
        signal.signal(signal.SIGINT, signal.default_int_handler)
        if job.request_cancel():
            logger.warning("Cancelling export (press Ctrl-C again to abort)")

    previous_handler = signal.signal(signal.SIGINT, handle_interrupt)
    try:
        result = orchestrator.run(config.input_file, transcript, job=job)
    finally:
        signal.signal(signal.SIGINT, previous_handler)
        if not args.quiet:
            print(file=sys.stderr)

    if result.cancelled:
        logger.warning("Export cancelled, no output written")
        sys.exit(130)

    if not result.success:
        logger.error(f"Export failed: {result.error}")
        sys.exit(1)

    output_path = result.save(config.output_dir)
    logger.info(f"Output: {output_path}")


def _print_status():
    last = {"status": None}

    def listener(job):
        if job.status != last["status"]:
            last["status"] = job.status
            print(f"\r{job.status:<60}", end="", file=sys.stderr, flush=True)

    return listener


def cmd_subtitles(args):
    """Export subtitle files from a transcript."""
    from captionpipe.subtitles.formats import write_subtitles
    from captionpipe.transcript import load_transcript

    config = build_config(args)

    if config.transcript_file is None or not config.transcript_file.exists():
        logger.error(f"Transcript file not found: {config.transcript_file}")
        sys.exit(1)

    transcript = load_transcript(config.transcript_file)
    grouping = config.build_grouping()

    outputs = args.output or [str(config.transcript_file.with_suffix(".srt"))]
    for output in outputs:
        try:
            write_subtitles(transcript, output, mode=config.mode, grouping=grouping)
        except ValueError as e:
            logger.error(str(e))
            sys.exit(1)

    if args.print:
        print("\n" + Path(outputs[0]).read_text(encoding="utf-8"))


def cmd_info(args):
    """Display video file information."""
    from captionpipe.utils.ffmpeg import check_ffmpeg, get_video_info

    if not check_ffmpeg():
        logger.error("FFmpeg/FFprobe not found in PATH")
        sys.exit(1)

    for input_path in args.input:
        path = Path(input_path)

        if not path.exists():
            logger.error(f"File not found: {path}")
            continue

        try:
            info = get_video_info(path)

            print(f"\n{'='*60}")
            print(f"File: {path.name}")
            print(f"{'='*60}")
            print(f"Resolution: {info.resolution} ({'portrait' if info.is_vertical else 'landscape'})")
            print(f"FPS: {info.fps:.2f}")
            print(f"Duration: {info.duration:.2f}s ({info.duration/60:.1f}min)")
            print(f"Video Codec: {info.codec}")
            if info.bitrate:
                print(f"Bitrate: {info.bitrate/1_000_000:.1f} Mbps")
            if info.audio_codec:
                print(f"Audio Codec: {info.audio_codec}")
                if info.audio_sample_rate:
                    print(f"Audio Sample Rate: {info.audio_sample_rate} Hz")
            else:
                print("Audio: none")
            print()

        except Exception as e:
            logger.error(f"Error reading {path}: {e}")


def cmd_presets(args):
    """List available export and style presets."""
    from captionpipe.subtitles.style import STYLE_PRESETS
    from captionpipe.video.export import get_available_presets

    print("\nAvailable Export Presets:")
    print("=" * 60)

    for name, preset in get_available_presets().items():
        print(f"\n{name}:")
        print(f"  Name: {preset.name}")
        print(f"  Codec: {preset.codec}")
        print(f"  Container: {preset.container}")
        print(f"  Bitrate @1080p: {preset.video_bitrate((1920, 1080))}")
        print(f"  Audio: {preset.audio_codec} {preset.audio_bitrate}")

    print("\nAvailable Style Presets:")
    print("=" * 60)

    for name, style in STYLE_PRESETS.items():
        print(f"\n{name}:")
        print(f"  Font: {style.font_family} {style.font_size}px weight {style.font_weight}")
        print(f"  Color: {style.color}")
        print(f"  Background: {style.background_color}")
        if style.has_border:
            print(f"  Border: {style.border_width}px {style.border_color}")
        print(f"  Shadow: {style.drop_shadow_intensity}")


def _add_transcript_args(parser):
    parser.add_argument(
        "-t", "--transcript",
        help="Transcript JSON file ({\"text\", \"chunks\"})",
    )
    parser.add_argument(
        "--mode",
        choices=["word", "phrase"],
        help="Caption mode (default: phrase)",
    )
    parser.add_argument(
        "--max-words",
        type=int,
        help="Maximum words per phrase (default: 6)",
    )
    parser.add_argument(
        "--max-gap",
        type=float,
        help="Silence in seconds that always ends a phrase (default: 0.6)",
    )


def main():
    parser = argparse.ArgumentParser(
        description="CaptionPipe - Caption burn-in and subtitle export",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Burn phrase captions into a video
  captionpipe burn -i video.mp4 -t transcript.json -o output/ --mode phrase

  # Vertical WebM with the gold style preset
  captionpipe burn -i video.mp4 -t transcript.json --format webm --style gold

  # Export subtitle files only
  captionpipe subtitles -t transcript.json -o subs.srt subs.vtt

  # Get video info
  captionpipe info video.mp4

  # Use configuration file
  captionpipe burn --config export.yaml
        """,
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output",
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress non-error output",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # ==================== Burn Command ====================
    burn_parser = subparsers.add_parser(
        "burn",
        help="Burn captions into a video",
    )
    burn_parser.add_argument(
        "-i", "--input",
        help="Input video file",
    )
    _add_transcript_args(burn_parser)
    burn_parser.add_argument(
        "-o", "--output",
        help="Output directory (default: output)",
    )
    burn_parser.add_argument(
        "-c", "--config",
        help="Configuration file (YAML or JSON)",
    )
    burn_parser.add_argument(
        "--format",
        choices=["mp4", "webm"],
        help="Output container (default: mp4)",
    )
    burn_parser.add_argument(
        "--quality",
        choices=["low", "medium", "high", "very_high"],
        help="Bitrate tier (default: high)",
    )
    burn_parser.add_argument(
        "--fps",
        type=float,
        help="Output frame rate (default: 30)",
    )
    burn_parser.add_argument(
        "--width",
        type=int,
        help="Output width (default: source width)",
    )
    burn_parser.add_argument(
        "--height",
        type=int,
        help="Output height (default: source height)",
    )
    burn_parser.add_argument(
        "--style",
        help="Style preset (green, gold, subtitle, gamer)",
    )
    burn_parser.add_argument(
        "--font-size",
        type=int,
        help="Caption font size at the reference resolution",
    )
    burn_parser.add_argument(
        "--no-emphasis",
        action="store_true",
        help="Disable active-word emphasis",
    )
    burn_parser.add_argument(
        "--save-config",
        help="Write the effective configuration to this YAML/JSON file",
    )
    burn_parser.set_defaults(func=cmd_burn)

    # ==================== Subtitles Command ====================
    subs_parser = subparsers.add_parser(
        "subtitles",
        help="Export SRT/VTT/JSON files from a transcript",
    )
    _add_transcript_args(subs_parser)
    subs_parser.add_argument(
        "-o", "--output",
        nargs="+",
        help="Output files; format chosen by extension (.srt, .vtt, .json)",
    )
    subs_parser.add_argument(
        "-c", "--config",
        help="Configuration file (YAML or JSON)",
    )
    subs_parser.add_argument(
        "--print",
        action="store_true",
        help="Print the first exported file to console",
    )
    subs_parser.set_defaults(func=cmd_subtitles)

    # ==================== Info Command ====================
    info_parser = subparsers.add_parser(
        "info",
        help="Display video file information",
    )
    info_parser.add_argument(
        "input",
        nargs="+",
        help="Video files to analyze",
    )
    info_parser.set_defaults(func=cmd_info)

    # ==================== Presets Command ====================
    presets_parser = subparsers.add_parser(
        "presets",
        help="List available export and style presets",
    )
    presets_parser.set_defaults(func=cmd_presets)

    # Parse and execute
    args = parser.parse_args()

    setup_logging(
        verbose=getattr(args, 'verbose', False),
        quiet=getattr(args, 'quiet', False),
    )

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    args.func(args)


if __name__ == "__main__":
    main()
