"""
Transcript model and chunk processing for word and phrase caption modes.
"""

from captionpipe.transcript.models import (
    Transcript,
    TranscriptChunk,
    Word,
    ProcessedChunk,
    load_transcript,
)
from captionpipe.transcript.chunks import (
    PhraseGrouping,
    process_transcript_chunks,
    enabled_chunks,
    find_active_chunk,
    replace_chunk_text,
    toggle_chunk_disabled,
    insert_chunk,
    parse_time_input,
)

__all__ = [
    "Transcript",
    "TranscriptChunk",
    "Word",
    "ProcessedChunk",
    "load_transcript",
    "PhraseGrouping",
    "process_transcript_chunks",
    "enabled_chunks",
    "find_active_chunk",
    "replace_chunk_text",
    "toggle_chunk_disabled",
    "insert_chunk",
    "parse_time_input",
]
