"""
Caption styling, layout, rendering and subtitle file export.

Provides:
- Immutable caption styles and presets
- Resolution-independent caption layout with word emphasis
- Pillow-based frame rendering
- SRT / WebVTT / JSON exporters
"""

from captionpipe.subtitles.style import SubtitleStyle, STYLE_PRESETS, get_preset
from captionpipe.subtitles.layout import RenderPlan, layout_chunk
from captionpipe.subtitles.renderer import FrameRenderer
from captionpipe.subtitles.formats import to_srt, to_vtt, to_json, write_subtitles

__all__ = [
    "SubtitleStyle",
    "STYLE_PRESETS",
    "get_preset",
    "RenderPlan",
    "layout_chunk",
    "FrameRenderer",
    "to_srt",
    "to_vtt",
    "to_json",
    "write_subtitles",
]
