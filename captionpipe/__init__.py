"""
CaptionPipe - Caption burn-in and subtitle export for transcribed videos

Turns a word-level transcript into styled, word-highlighted captions burned
into the source video, and exports the same captions as SRT, WebVTT or JSON.
"""

__version__ = "0.1.0"

from captionpipe.transcript import Transcript, load_transcript
from captionpipe.subtitles.style import SubtitleStyle
from captionpipe.core.job import ExportJob, ExportResult, ExportState
from captionpipe.core.config import ExportConfig
from captionpipe.video.orchestrator import ExportOrchestrator

__all__ = [
    "Transcript",
    "load_transcript",
    "SubtitleStyle",
    "ExportJob",
    "ExportResult",
    "ExportState",
    "ExportConfig",
    "ExportOrchestrator",
    "__version__",
]
