"""
Utility functions for the caption export pipeline.
"""

from captionpipe.utils.ffmpeg import (
    check_ffmpeg,
    get_ffmpeg_version,
    get_video_info,
)

from captionpipe.utils.fonts import (
    find_font_file,
    resolve_font_path,
)

__all__ = [
    # FFmpeg utilities
    "check_ffmpeg",
    "get_ffmpeg_version",
    "get_video_info",
    # Font utilities
    "find_font_file",
    "resolve_font_path",
]
