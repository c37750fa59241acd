"""
Video export module.

Provides export presets, the media input/output layer and the caption
burn-in orchestrator.
"""

from captionpipe.video.export import (
    ExportPreset,
    ExportSettings,
    get_export_preset,
    get_available_presets,
)
from captionpipe.video.media import MediaInput, MediaOutput, FrameCursor
from captionpipe.video.orchestrator import ExportOrchestrator

__all__ = [
    "ExportPreset",
    "ExportSettings",
    "get_export_preset",
    "get_available_presets",
    "MediaInput",
    "MediaOutput",
    "FrameCursor",
    "ExportOrchestrator",
]
