"""
Subtitle file exporters.

Converts a transcript into SRT, WebVTT or JSON text. Chunks disabled in the
editor are removed from every export, matching the burned-in video.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Optional

from captionpipe.transcript.chunks import (
    Mode,
    PhraseGrouping,
    enabled_chunks,
    process_transcript_chunks,
)
from captionpipe.transcript.models import Transcript

logger = logging.getLogger(__name__)

_TIMESTAMP_RE = re.compile(r"^(\d+):(\d{2}):(\d{2})[,.](\d{3})$")
_JSON_TIMESTAMP_RE = re.compile(r"(\"timestamp\": )\[\s+(\S+)\s+(\S+)\s+\]", re.MULTILINE)


def _format_time(seconds: float, separator: str) -> str:
    total_ms = max(0, int(round(seconds * 1000)))
    hours, remainder = divmod(total_ms, 3600 * 1000)
    minutes, remainder = divmod(remainder, 60 * 1000)
    secs, millis = divmod(remainder, 1000)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}{separator}{millis:03d}"


def format_srt_time(seconds: float) -> str:
    """Format seconds as SRT timestamp (HH:MM:SS,mmm)."""
    return _format_time(seconds, ",")


def format_vtt_time(seconds: float) -> str:
    """Format seconds as WebVTT timestamp (HH:MM:SS.mmm)."""
    return _format_time(seconds, ".")


def parse_timestamp(value: str) -> float:
    """Parse an SRT or WebVTT timestamp back to seconds."""
    match = _TIMESTAMP_RE.match(value.strip())
    if not match:
        raise ValueError(f"Invalid subtitle timestamp: {value!r}")
    hours, minutes, secs, millis = (int(part) for part in match.groups())
    return hours * 3600 + minutes * 60 + secs + millis / 1000


def _blocks(transcript: Transcript, mode: Mode, grouping: Optional[PhraseGrouping]):
    chunks = enabled_chunks(process_transcript_chunks(transcript, mode, grouping))
    return sorted(chunks, key=lambda chunk: chunk.start)


def to_srt(
    transcript: Transcript,
    mode: Mode = "word",
    grouping: Optional[PhraseGrouping] = None,
) -> str:
    """Convert a transcript to SRT subtitle format."""
    lines = []
    for index, chunk in enumerate(_blocks(transcript, mode, grouping), 1):
        lines.append(f"{index}")
        lines.append(f"{format_srt_time(chunk.start)} --> {format_srt_time(chunk.end)}")
        lines.append(chunk.text.strip())
        lines.append("")
    return "\n".join(lines)


def to_vtt(
    transcript: Transcript,
    mode: Mode = "word",
    grouping: Optional[PhraseGrouping] = None,
) -> str:
    """Convert a transcript to WebVTT subtitle format."""
    lines = ["WEBVTT", ""]
    for index, chunk in enumerate(_blocks(transcript, mode, grouping), 1):
        lines.append(f"{index}")
        lines.append(f"{format_vtt_time(chunk.start)} --> {format_vtt_time(chunk.end)}")
        lines.append(chunk.text.strip())
        lines.append("")
    return "\n".join(lines)


def to_json(transcript: Transcript) -> str:
    """
    Dump the transcript as JSON.

    Disabled chunks are left out and ``text`` is rebuilt from the remaining
    ones; each timestamp pair is kept on a single line.
    """
    kept = [chunk for chunk in transcript.chunks if not chunk.disabled]
    data = transcript.with_chunks(kept).to_dict()
    dumped = json.dumps(data, indent=2, ensure_ascii=False)
    return _JSON_TIMESTAMP_RE.sub(r"\1[\2 \3]", dumped)


EXPORTERS = {
    ".srt": to_srt,
    ".vtt": to_vtt,
}


def write_subtitles(
    transcript: Transcript,
    output_path: Path | str,
    mode: Mode = "word",
    grouping: Optional[PhraseGrouping] = None,
) -> Path:
    """
    Write a transcript to disk, choosing the format from the file extension.

    Args:
        transcript: Transcript to export
        output_path: Target .srt, .vtt or .json path
        mode: "word" or "phrase" (ignored for JSON)
        grouping: Phrase boundary policy for phrase mode

    Returns:
        Path to the written file
    """
    output_path = Path(output_path)
    suffix = output_path.suffix.lower()

    if suffix == ".json":
        content = to_json(transcript)
    elif suffix in EXPORTERS:
        content = EXPORTERS[suffix](transcript, mode, grouping)
    else:
        raise ValueError(f"Unsupported subtitle format: {suffix}")

    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(content, encoding="utf-8")
    logger.info(f"Saved {suffix[1:].upper()} to: {output_path}")
    return output_path
