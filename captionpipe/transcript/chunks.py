"""
Transcript chunk processing.

Turns word-level transcript chunks into display units for the two caption
modes:

- ``word``: one display unit per transcript chunk
- ``phrase``: consecutive words grouped into short phrases, each keeping its
  word timings so the active word can be emphasized

Also provides the editing operations used by the transcript editor (text
replacement, enable/disable toggling, chunk insertion).
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from typing import Any, Literal, Optional

from captionpipe.exceptions import TranscriptError
from captionpipe.transcript.models import (
    ProcessedChunk,
    Transcript,
    TranscriptChunk,
    Word,
)

logger = logging.getLogger(__name__)

Mode = Literal["word", "phrase"]
MODES = ("word", "phrase")

SENTENCE_END = (".", "!", "?")


@dataclass(frozen=True)
class PhraseGrouping:
    """Boundary policy for grouping words into phrases."""
    max_words: int = 6
    max_gap: float = 0.6  # seconds of silence that always closes a phrase

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PhraseGrouping:
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


DEFAULT_GROUPING = PhraseGrouping()


def _check_mode(mode: str):
    if mode not in MODES:
        raise ValueError(f"Unknown caption mode '{mode}', expected one of {MODES}")


def _closes_phrase(
    current: list[int],
    chunks: list[TranscriptChunk],
    grouping: PhraseGrouping,
) -> bool:
    last = chunks[current[-1]]

    if len(current) >= grouping.max_words:
        return True

    if last.text.strip().endswith(SENTENCE_END):
        return True

    next_index = current[-1] + 1
    if next_index < len(chunks):
        gap = chunks[next_index].start - last.end
        if gap > grouping.max_gap:
            return True

    return False


def _build_phrase(indices: list[int], chunks: list[TranscriptChunk]) -> ProcessedChunk:
    words = [
        Word(text=chunks[i].text.strip(), timestamp=chunks[i].timestamp)
        for i in indices
    ]
    return ProcessedChunk(
        text=" ".join(word.text for word in words),
        timestamp=(words[0].start, words[-1].end),
        disabled=all(chunks[i].disabled for i in indices),
        words=words,
        source_indices=tuple(indices),
    )


def group_into_phrases(
    chunks: list[TranscriptChunk],
    grouping: PhraseGrouping = DEFAULT_GROUPING,
) -> list[ProcessedChunk]:
    """Group consecutive word chunks into phrases."""
    phrases: list[ProcessedChunk] = []
    current: list[int] = []

    for index in range(len(chunks)):
        current.append(index)
        if _closes_phrase(current, chunks, grouping):
            phrases.append(_build_phrase(current, chunks))
            current = []

    if current:
        phrases.append(_build_phrase(current, chunks))

    return phrases


def process_transcript_chunks(
    transcript: Transcript,
    mode: Mode,
    grouping: Optional[PhraseGrouping] = None,
) -> list[ProcessedChunk]:
    """
    Convert a transcript into ordered display units.

    Args:
        transcript: Transcript with word-level chunks
        mode: "word" or "phrase"
        grouping: Phrase boundary policy (phrase mode only)

    Returns:
        Display units in time order. In word mode ``words`` is None; in
        phrase mode a phrase is disabled only if all of its words are.
    """
    _check_mode(mode)

    if mode == "word":
        return [
            ProcessedChunk(
                text=chunk.text,
                timestamp=chunk.timestamp,
                disabled=chunk.disabled,
                source_indices=(index,),
            )
            for index, chunk in enumerate(transcript.chunks)
        ]

    return group_into_phrases(transcript.chunks, grouping or DEFAULT_GROUPING)


def enabled_chunks(chunks: list[ProcessedChunk]) -> list[ProcessedChunk]:
    """Drop display units that were removed from the timeline."""
    return [chunk for chunk in chunks if not chunk.disabled]


def find_active_chunk(
    chunks: list[ProcessedChunk],
    current_time: float,
) -> Optional[ProcessedChunk]:
    """Return the first display unit whose span contains ``current_time``."""
    for chunk in chunks:
        if chunk.is_active(current_time):
            return chunk
    return None


# ==================== Editing ====================

def _display_chunk(
    transcript: Transcript,
    index: int,
    mode: Mode,
    grouping: Optional[PhraseGrouping],
) -> ProcessedChunk:
    display = process_transcript_chunks(transcript, mode, grouping)
    if not 0 <= index < len(display):
        raise TranscriptError(
            f"Chunk index {index} out of range (0..{len(display) - 1})"
        )
    return display[index]


def replace_chunk_text(
    transcript: Transcript,
    index: int,
    text: str,
    mode: Mode,
    grouping: Optional[PhraseGrouping] = None,
) -> Transcript:
    """
    Replace the text of the display unit at ``index``.

    In phrase mode the edited words are spread over the phrase's word chunks
    in order; surplus words are appended to the last one and word chunks
    without a replacement keep their text.
    """
    target = _display_chunk(transcript, index, mode, grouping)
    chunks = list(transcript.chunks)

    if mode == "word":
        source = target.source_indices[0]
        chunks[source] = replace(chunks[source], text=text)
        return transcript.with_chunks(chunks)

    new_words = text.strip().split()
    sources = target.source_indices

    for word_index, source in enumerate(sources):
        if word_index == len(sources) - 1:
            new_text = " ".join(new_words[word_index:])
        elif word_index < len(new_words):
            new_text = new_words[word_index]
        else:
            new_text = ""

        chunks[source] = replace(chunks[source], text=new_text or chunks[source].text)

    return transcript.with_chunks(chunks)


def toggle_chunk_disabled(
    transcript: Transcript,
    index: int,
    mode: Mode,
    grouping: Optional[PhraseGrouping] = None,
) -> Transcript:
    """
    Toggle whether the display unit at ``index`` is part of the timeline.

    For a phrase, any disabled word means the whole phrase gets re-enabled;
    otherwise every word of the phrase is disabled.
    """
    target = _display_chunk(transcript, index, mode, grouping)
    chunks = list(transcript.chunks)

    currently_disabled = any(chunks[i].disabled for i in target.source_indices)
    for source in target.source_indices:
        chunks[source] = replace(chunks[source], disabled=not currently_disabled)

    logger.debug(
        f"{'Enabled' if currently_disabled else 'Disabled'} chunks {target.source_indices}"
    )
    return transcript.with_chunks(chunks)


def insert_chunk(
    transcript: Transcript,
    text: str,
    start: float,
    end: float,
) -> Transcript:
    """Insert a new chunk, keeping chunks sorted by start time."""
    if start >= end:
        raise TranscriptError("End time must be after start time")

    text = text.strip()
    if not text:
        raise TranscriptError("Subtitle text must not be empty")

    new_chunk = TranscriptChunk(text=text, timestamp=(float(start), float(end)))
    chunks = sorted([*transcript.chunks, new_chunk], key=lambda c: c.start)
    return transcript.with_chunks(chunks)


_SECONDS_RE = re.compile(r"^\d+(\.\d+)?$")
_MMSS_RE = re.compile(r"^(\d+):(\d+(?:\.\d+)?)$")
_HHMMSS_RE = re.compile(r"^(\d+):(\d+):(\d+(?:\.\d+)?)$")


def parse_time_input(value: str) -> Optional[float]:
    """
    Parse a user-entered time.

    Accepts plain seconds ("21"), minutes and seconds ("0:21") or hours,
    minutes and seconds ("1:02:03.5"). Returns None when unparseable.
    """
    value = value.strip()
    if not value:
        return None

    if _SECONDS_RE.match(value):
        return float(value)

    match = _MMSS_RE.match(value)
    if match:
        return int(match.group(1)) * 60 + float(match.group(2))

    match = _HHMMSS_RE.match(value)
    if match:
        return (
            int(match.group(1)) * 3600
            + int(match.group(2)) * 60
            + float(match.group(3))
        )

    return None
