#!/usr/bin/env python3
"""
Burn Captions Example

This example burns phrase captions with active-word emphasis into a video,
hides one phrase from the timeline and writes matching SRT/VTT files.

Usage:
    python examples/burn_captions.py input.mp4 transcript.json output/
"""

import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from captionpipe.core.job import ExportJob
from captionpipe.subtitles.formats import write_subtitles
from captionpipe.subtitles.style import get_preset
from captionpipe.transcript import (
    load_transcript,
    process_transcript_chunks,
    toggle_chunk_disabled,
)
from captionpipe.video.export import ExportSettings
from captionpipe.video.orchestrator import ExportOrchestrator


def main():
    if len(sys.argv) < 4:
        print("Usage: python burn_captions.py input.mp4 transcript.json output/")
        sys.exit(1)

    input_path = Path(sys.argv[1])
    transcript_path = Path(sys.argv[2])
    output_dir = Path(sys.argv[3])

    if not input_path.exists():
        print(f"Error: Input file not found: {input_path}")
        sys.exit(1)

    print(f"Processing: {input_path}")
    print(f"Output: {output_dir}")

    transcript = load_transcript(transcript_path)

    # Drop the second phrase from video and subtitle files alike
    if len(process_transcript_chunks(transcript, "phrase")) > 1:
        transcript = toggle_chunk_disabled(transcript, 1, mode="phrase")

    style = get_preset("gold").with_changes(font_size=24)

    orchestrator = ExportOrchestrator(
        style=style,
        mode="phrase",
        settings=ExportSettings(format="mp4", quality="high", fps=30),
    )

    job = ExportJob().add_listener(
        lambda j: print(f"\r{j.status:<60}", end="", flush=True)
    )

    print("\nRendering...")
    result = orchestrator.run(input_path, transcript, job=job)
    print()

    if not result.success:
        print(f"\nExport failed: {result.error or result.state.value}")
        sys.exit(1)

    video_path = result.save(output_dir)
    for suffix in (".srt", ".vtt"):
        write_subtitles(transcript, output_dir / f"captions{suffix}", mode="phrase")

    print(f"\nSuccess! Output saved to: {video_path}")


if __name__ == "__main__":
    main()
