"""
Configuration management for caption exports.

Supports YAML and JSON configuration files with validation and defaults.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from captionpipe.exceptions import ConfigurationError
from captionpipe.subtitles.style import STYLE_PRESETS, SubtitleStyle
from captionpipe.transcript.chunks import MODES, PhraseGrouping
from captionpipe.video.export import FORMATS, QUALITIES, ExportSettings

logger = logging.getLogger(__name__)


# Default export settings: H.264 MP4 at 30fps, source resolution
DEFAULT_EXPORT_SETTINGS = {
    "format": "mp4",
    "quality": "high",
    "fps": 30,
    "width": None,
    "height": None,
}

# Default subtitle settings: any SubtitleStyle field, optionally on top of a preset
DEFAULT_SUBTITLE_SETTINGS = {
    "preset": None,
}

DEFAULT_PHRASE_SETTINGS = {
    "max_words": 6,
    "max_gap": 0.6,
}


@dataclass
class ExportConfig:
    """
    Configuration container for a caption export.

    Attributes:
        input_file: Source video path
        transcript_file: Transcript JSON path ({"text", "chunks"})
        output_dir: Directory for the exported video and subtitle files
        mode: "word" or "phrase" caption display
        export_settings: Container, quality tier, frame rate and output size
        subtitle_settings: Caption style fields and/or a style preset name
        phrase_settings: Phrase grouping limits
        debug: Enable debug logging
    """

    input_file: Optional[Path] = None
    transcript_file: Optional[Path] = None
    output_dir: Path = field(default_factory=lambda: Path("output"))
    mode: str = "phrase"

    export_settings: dict[str, Any] = field(
        default_factory=lambda: DEFAULT_EXPORT_SETTINGS.copy()
    )
    subtitle_settings: dict[str, Any] = field(
        default_factory=lambda: DEFAULT_SUBTITLE_SETTINGS.copy()
    )
    phrase_settings: dict[str, Any] = field(
        default_factory=lambda: DEFAULT_PHRASE_SETTINGS.copy()
    )

    debug: bool = False

    @classmethod
    def from_file(cls, path: Path | str) -> ExportConfig:
        """Load configuration from a YAML or JSON file."""
        path = Path(path)

        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(path, 'r') as f:
            try:
                if path.suffix in ('.yaml', '.yml'):
                    data = yaml.safe_load(f)
                elif path.suffix == '.json':
                    data = json.load(f)
                else:
                    raise ConfigurationError(f"Unsupported config format: {path.suffix}")
            except (yaml.YAMLError, json.JSONDecodeError) as e:
                raise ConfigurationError(f"Could not parse {path}: {e}", cause=e)

        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration must be a mapping: {path}")

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExportConfig:
        """Create configuration from a dictionary."""
        config = cls()

        if data.get("input_file"):
            config.input_file = Path(data["input_file"])

        if data.get("transcript_file"):
            config.transcript_file = Path(data["transcript_file"])

        if data.get("output_dir"):
            config.output_dir = Path(data["output_dir"])

        if "mode" in data:
            config.mode = data["mode"]

        # Merge settings (don't replace, update defaults)
        if data.get("export_settings"):
            config.export_settings.update(data["export_settings"])

        if data.get("subtitle_settings"):
            config.subtitle_settings.update(data["subtitle_settings"])

        if data.get("phrase_settings"):
            config.phrase_settings.update(data["phrase_settings"])

        if "debug" in data:
            config.debug = bool(data["debug"])

        return config

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to a dictionary."""
        return {
            "input_file": str(self.input_file) if self.input_file else None,
            "transcript_file": str(self.transcript_file) if self.transcript_file else None,
            "output_dir": str(self.output_dir),
            "mode": self.mode,
            "export_settings": self.export_settings,
            "subtitle_settings": self.subtitle_settings,
            "phrase_settings": self.phrase_settings,
            "debug": self.debug,
        }

    def save(self, path: Path | str):
        """Save configuration to a YAML or JSON file."""
        path = Path(path)

        with open(path, 'w') as f:
            if path.suffix in ('.yaml', '.yml'):
                yaml.dump(self.to_dict(), f, default_flow_style=False)
            elif path.suffix == '.json':
                json.dump(self.to_dict(), f, indent=2)
            else:
                raise ConfigurationError(f"Unsupported config format: {path.suffix}")

        logger.info(f"Configuration saved to: {path}")

    # ==================== Typed views ====================

    def build_style(self) -> SubtitleStyle:
        return SubtitleStyle.from_dict(self.subtitle_settings)

    def build_grouping(self) -> PhraseGrouping:
        return PhraseGrouping.from_dict(self.phrase_settings)

    def build_export_settings(self) -> ExportSettings:
        settings = self.export_settings
        width, height = settings.get("width"), settings.get("height")
        return ExportSettings(
            format=settings.get("format", "mp4"),
            quality=settings.get("quality", "high"),
            fps=float(settings.get("fps", 30)),
            size=(int(width), int(height)) if width and height else None,
        )

    def validate(self) -> list[str]:
        """
        Validate the configuration and return a list of errors.
        Returns an empty list if configuration is valid.
        """
        errors = []

        if self.input_file and not self.input_file.exists():
            errors.append(f"Input file not found: {self.input_file}")

        if self.transcript_file and not self.transcript_file.exists():
            errors.append(f"Transcript file not found: {self.transcript_file}")

        if self.mode not in MODES:
            errors.append(f"Invalid mode: {self.mode}")

        # Export settings
        if self.export_settings.get("format") not in FORMATS:
            errors.append(f"Invalid output format: {self.export_settings.get('format')}")

        if self.export_settings.get("quality") not in QUALITIES:
            errors.append(f"Invalid quality: {self.export_settings.get('quality')}")

        fps = self.export_settings.get("fps")
        if not isinstance(fps, (int, float)) or fps <= 0:
            errors.append(f"Invalid fps: {fps}")

        width = self.export_settings.get("width")
        height = self.export_settings.get("height")
        if (width is None) != (height is None):
            errors.append("Output width and height must be set together")
        elif width is not None and (int(width) <= 0 or int(height) <= 0):
            errors.append(f"Invalid output size: {width}x{height}")

        # Subtitle settings
        preset = self.subtitle_settings.get("preset")
        if preset and str(preset).lower() not in STYLE_PRESETS:
            errors.append(f"Unknown style preset: {preset}")

        unknown = set(self.subtitle_settings) - set(SubtitleStyle.__dataclass_fields__) - {"preset"}
        for key in sorted(unknown):
            errors.append(f"Unknown subtitle setting: {key}")

        # Phrase settings
        if int(self.phrase_settings.get("max_words", 0)) < 1:
            errors.append(f"Invalid phrase max_words: {self.phrase_settings.get('max_words')}")

        if float(self.phrase_settings.get("max_gap", 0)) <= 0:
            errors.append(f"Invalid phrase max_gap: {self.phrase_settings.get('max_gap')}")

        return errors
