"""
Transcript data model.

A transcript arrives from the speech recognizer as full text plus word-level
chunks. Edits never mutate a transcript in place: every operation returns a
new Transcript so preview and export always see a consistent snapshot.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Optional

from captionpipe.exceptions import TranscriptError

logger = logging.getLogger(__name__)

Timestamp = tuple[float, float]


@dataclass
class TranscriptChunk:
    """A single timestamped fragment, usually one recognized word."""
    text: str
    timestamp: Timestamp
    disabled: bool = False

    @property
    def start(self) -> float:
        return self.timestamp[0]

    @property
    def end(self) -> float:
        return self.timestamp[1]

    @property
    def duration(self) -> float:
        return self.end - self.start

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "timestamp": [self.start, self.end],
            "disabled": self.disabled,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TranscriptChunk:
        try:
            start, end = data["timestamp"]
            start, end = float(start), float(end)
        except (KeyError, TypeError, ValueError) as e:
            raise TranscriptError(f"Invalid chunk timestamp: {data!r}", cause=e)

        if end < start:
            raise TranscriptError(f"Chunk ends before it starts: {data!r}")

        return cls(
            text=str(data.get("text", "")),
            timestamp=(start, end),
            disabled=bool(data.get("disabled", False)),
        )


@dataclass
class Word:
    """A word inside a phrase chunk."""
    text: str
    timestamp: Timestamp

    @property
    def start(self) -> float:
        return self.timestamp[0]

    @property
    def end(self) -> float:
        return self.timestamp[1]

    def is_active(self, current_time: float) -> bool:
        return self.start <= current_time < self.end


@dataclass
class ProcessedChunk:
    """
    A display unit: one word chunk in word mode, a group of them in phrase mode.

    ``source_indices`` points back at the transcript chunks this unit was built
    from, so edits and toggles never have to search by timestamp.
    """
    text: str
    timestamp: Timestamp
    disabled: bool = False
    words: Optional[list[Word]] = None
    source_indices: tuple[int, ...] = ()

    @property
    def start(self) -> float:
        return self.timestamp[0]

    @property
    def end(self) -> float:
        return self.timestamp[1]

    @property
    def is_phrase(self) -> bool:
        return self.words is not None

    def is_active(self, current_time: float) -> bool:
        return self.start <= current_time < self.end


@dataclass
class Transcript:
    """Full transcript text plus its word-level chunks."""
    text: str = ""
    chunks: list[TranscriptChunk] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.chunks)

    @property
    def is_empty(self) -> bool:
        return not self.chunks

    def plain_text(self) -> str:
        """Space-joined text of the enabled chunks only."""
        return " ".join(chunk.text for chunk in self.chunks if not chunk.disabled)

    def with_chunks(self, chunks: list[TranscriptChunk]) -> Transcript:
        """Return a new transcript built from ``chunks`` with its text recomputed."""
        updated = replace(self, chunks=list(chunks))
        updated.text = updated.plain_text()
        return updated

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "chunks": [chunk.to_dict() for chunk in self.chunks],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Transcript:
        if not isinstance(data, dict) or not isinstance(data.get("chunks"), list):
            raise TranscriptError("Transcript must be an object with a 'chunks' list")

        chunks = sorted(
            (TranscriptChunk.from_dict(item) for item in data["chunks"]),
            key=lambda chunk: chunk.start,
        )
        text = data.get("text")
        if text is None:
            text = " ".join(chunk.text for chunk in chunks)
        return cls(text=str(text), chunks=chunks)


def load_transcript(path: Path | str) -> Transcript:
    """Load a transcript JSON file as produced by the recognizer."""
    path = Path(path)

    if not path.exists():
        raise TranscriptError(f"Transcript file not found: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise TranscriptError(f"Failed to parse transcript {path}: {e}", cause=e)

    transcript = Transcript.from_dict(data)
    logger.info(f"Loaded transcript with {len(transcript)} chunks from: {path}")
    return transcript
