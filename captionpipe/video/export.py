"""
Export presets for captioned video output.

Supports:
- MP4 (H.264 video, AAC audio)
- WebM (VP9 video, Opus audio)
- Four quality tiers mapped to bitrates scaled with output resolution
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

logger = logging.getLogger(__name__)

FORMATS = ("mp4", "webm")
QUALITIES = ("low", "medium", "high", "very_high")

# Video bitrate (kbit/s) at the 1920x1080 reference size
VIDEO_BITRATES_1080P = {
    "low": 2_000,
    "medium": 4_000,
    "high": 8_000,
    "very_high": 16_000,
}

AUDIO_BITRATES = {
    "low": "96k",
    "medium": "128k",
    "high": "192k",
    "very_high": "256k",
}

REFERENCE_PIXELS = 1920 * 1080
MIN_VIDEO_BITRATE = 500


@dataclass
class ExportPreset:
    """Export preset configuration."""
    name: str
    format: str
    codec: str
    audio_codec: str
    mime_type: str
    quality: str = "high"
    pixel_format: str = "yuv420p"
    audio_sample_rate: int = 48000
    audio_extension: str = ".m4a"

    # Additional FFmpeg options
    extra_params: list[str] = field(default_factory=list)

    @property
    def container(self) -> str:
        return self.format

    @property
    def audio_bitrate(self) -> str:
        return AUDIO_BITRATES[self.quality]

    def video_bitrate(self, size: tuple[int, int]) -> str:
        """Bitrate for the given output size, e.g. ``"8000k"`` at 1080p high."""
        width, height = size
        factor = (width * height) / REFERENCE_PIXELS
        kbps = max(MIN_VIDEO_BITRATE, int(round(VIDEO_BITRATES_1080P[self.quality] * factor)))
        return f"{kbps}k"

    def to_ffmpeg_params(self) -> list[str]:
        """Extra FFmpeg parameters passed to the video writer."""
        return ["-pix_fmt", self.pixel_format] + list(self.extra_params)


def _mp4_preset(quality: str) -> ExportPreset:
    return ExportPreset(
        name=f"MP4 H.264 ({quality})",
        format="mp4",
        codec="libx264",
        audio_codec="aac",
        mime_type="video/mp4",
        quality=quality,
        audio_extension=".m4a",
        extra_params=["-movflags", "+faststart"],
    )


def _webm_preset(quality: str) -> ExportPreset:
    return ExportPreset(
        name=f"WebM VP9 ({quality})",
        format="webm",
        codec="libvpx-vp9",
        audio_codec="libopus",
        mime_type="video/webm",
        quality=quality,
        audio_extension=".ogg",
        extra_params=["-row-mt", "1"],
    )


def get_export_preset(format: str = "mp4", quality: str = "high") -> ExportPreset:
    """
    Get the preset for an output format and quality tier.

    Args:
        format: "mp4" or "webm"
        quality: "low", "medium", "high" or "very_high"

    Returns:
        ExportPreset
    """
    format = format.lower()
    quality = quality.lower()

    if format not in FORMATS:
        raise ValueError(f"Unsupported output format '{format}', expected one of {FORMATS}")
    if quality not in QUALITIES:
        raise ValueError(f"Unsupported quality '{quality}', expected one of {QUALITIES}")

    if format == "webm":
        return _webm_preset(quality)
    return _mp4_preset(quality)


def get_available_presets() -> dict[str, ExportPreset]:
    """Get all available export presets."""
    return {
        f"{fmt}_{quality}": get_export_preset(fmt, quality)
        for fmt in FORMATS
        for quality in QUALITIES
    }


def build_output_filename(format: str, now: Optional[datetime] = None) -> str:
    """File name with an embedded generation timestamp."""
    now = now or datetime.now()
    stamp = now.isoformat(timespec="milliseconds").replace(":", "-").replace(".", "-")
    return f"video_with_subtitles_{stamp}.{format}"


def even_size(size: tuple[int, int]) -> tuple[int, int]:
    """Round a frame size down to even dimensions (required by yuv420p)."""
    width, height = size
    return (max(2, width - width % 2), max(2, height - height % 2))


@dataclass
class ExportSettings:
    """
    User-selected export parameters.

    ``size`` is the output (width, height); None keeps the source size.
    """
    format: str = "mp4"
    quality: str = "high"
    fps: float = 30.0
    size: Optional[tuple[int, int]] = None

    def __post_init__(self):
        if self.fps <= 0:
            raise ValueError(f"fps must be positive, got {self.fps}")

    @property
    def preset(self) -> ExportPreset:
        return get_export_preset(self.format, self.quality)

    def output_size(self, source_size: tuple[int, int]) -> tuple[int, int]:
        return even_size(self.size or source_size)
