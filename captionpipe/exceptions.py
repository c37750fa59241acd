"""
Exceptions raised by the caption export pipeline.

Per-frame and per-track failures (DecodeFrameError, AudioDecodeError) are
recovered inside the orchestrator; everything that prevents the output from
being finalized is fatal.
"""

from __future__ import annotations

from typing import Optional


class CaptionPipeError(Exception):
    """Base class for all captionpipe errors."""

    def __init__(self, message: str, cause: Optional[Exception] = None):
        super().__init__(message)
        self.cause = cause


class ConfigurationError(CaptionPipeError):
    """Invalid or unreadable configuration."""
    pass


class TranscriptError(CaptionPipeError):
    """Malformed transcript data or an invalid transcript edit."""
    pass


class InputMissingError(CaptionPipeError):
    """No source video or an empty transcript was given to an export."""
    pass


class DecodeFrameError(CaptionPipeError):
    """A single video frame could not be decoded."""
    pass


class AudioDecodeError(CaptionPipeError):
    """The source audio track could not be decoded."""
    pass


class EncodeError(CaptionPipeError):
    """The encoder rejected a frame or could not be opened."""
    pass


class FinalizeError(CaptionPipeError):
    """The output container could not be flushed into a playable file."""
    pass


class ExportInProgressError(CaptionPipeError):
    """An export was started while another one is still running."""
    pass
