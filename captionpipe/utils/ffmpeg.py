"""
FFmpeg utility functions.

Provides helper functions for working with FFmpeg, including:
- Availability and version checks
- Video information extraction with FFprobe
"""

from __future__ import annotations

import json
import logging
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


def check_ffmpeg() -> bool:
    """
    Check if FFmpeg and FFprobe are available in the system PATH.

    Returns:
        True if both are available, False otherwise
    """
    return shutil.which("ffmpeg") is not None and shutil.which("ffprobe") is not None


def get_ffmpeg_version() -> Optional[str]:
    """
    Get the FFmpeg version string.

    Returns:
        Version string or None if FFmpeg is not available
    """
    try:
        result = subprocess.run(
            ["ffmpeg", "-version"],
            capture_output=True,
            text=True,
            check=True,
        )
    except (subprocess.CalledProcessError, FileNotFoundError):
        return None
    return result.stdout.split("\n")[0]


@dataclass
class VideoInfo:
    """Video file information from FFprobe."""
    width: int
    height: int
    fps: float
    duration: float
    codec: str
    bitrate: Optional[int]
    audio_codec: Optional[str]
    audio_sample_rate: Optional[int]
    format_name: str

    @property
    def resolution(self) -> str:
        return f"{self.width}x{self.height}"

    @property
    def is_vertical(self) -> bool:
        return self.height > self.width

    @property
    def has_audio(self) -> bool:
        return self.audio_codec is not None


def _parse_frame_rate(value: str) -> float:
    if "/" in value:
        num, den = value.split("/")
        return float(num) / float(den) if float(den) > 0 else 30.0
    return float(value)


def parse_probe_output(data: dict) -> VideoInfo:
    """Build VideoInfo from FFprobe's JSON output."""
    video_stream = None
    audio_stream = None

    for stream in data.get("streams", []):
        if stream.get("codec_type") == "video" and video_stream is None:
            video_stream = stream
        elif stream.get("codec_type") == "audio" and audio_stream is None:
            audio_stream = stream

    if not video_stream:
        raise RuntimeError("No video stream found")

    format_info = data.get("format", {})

    return VideoInfo(
        width=video_stream.get("width", 0),
        height=video_stream.get("height", 0),
        fps=_parse_frame_rate(video_stream.get("r_frame_rate", "30/1")),
        duration=float(format_info.get("duration", 0)),
        codec=video_stream.get("codec_name", "unknown"),
        bitrate=int(format_info["bit_rate"]) if format_info.get("bit_rate") else None,
        audio_codec=audio_stream.get("codec_name") if audio_stream else None,
        audio_sample_rate=int(audio_stream.get("sample_rate", 0)) if audio_stream else None,
        format_name=format_info.get("format_name", "unknown"),
    )


def get_video_info(path: Path | str) -> VideoInfo:
    """
    Get video file information using FFprobe.

    Raises:
        FileNotFoundError: If file doesn't exist
        RuntimeError: If FFprobe fails
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Video file not found: {path}")

    cmd = [
        "ffprobe",
        "-v", "quiet",
        "-print_format", "json",
        "-show_format",
        "-show_streams",
        str(path),
    ]
    logger.debug(f"Running FFprobe: {' '.join(cmd)}")

    result = subprocess.run(cmd, capture_output=True, text=True)

    if result.returncode != 0:
        raise RuntimeError(f"FFprobe failed: {result.stderr}")

    try:
        data = json.loads(result.stdout)
    except json.JSONDecodeError as e:
        raise RuntimeError(f"Failed to parse FFprobe output: {e}")

    return parse_probe_output(data)
