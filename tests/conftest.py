from __future__ import annotations

from pathlib import Path

import pytest

from captionpipe.transcript.models import Transcript, TranscriptChunk


@pytest.fixture
def source_file(tmp_path) -> Path:
    path = tmp_path / "input.mp4"
    path.write_bytes(b"\x00")
    return path


@pytest.fixture
def two_chunk_transcript() -> Transcript:
    return Transcript(
        text="hi there",
        chunks=[
            TranscriptChunk(text="hi", timestamp=(0.0, 1.0)),
            TranscriptChunk(text="there", timestamp=(1.0, 2.0)),
        ],
    )


@pytest.fixture
def sentence_transcript() -> Transcript:
    words = ["Hello", "world,", "this", "is", "a", "test.", "Next", "one"]
    chunks = [
        TranscriptChunk(text=word, timestamp=(i * 0.5, (i + 1) * 0.5))
        for i, word in enumerate(words)
    ]
    return Transcript(text=" ".join(words), chunks=chunks)
