"""
Subtitle style values, presets and color helpers.

SubtitleStyle is immutable: every change produces a new value, so a style
handed to an export can never be altered underneath it.
"""

from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass, replace
from typing import Any, Optional

from PIL import ImageColor

logger = logging.getLogger(__name__)

RGBA = tuple[int, int, int, int]

# Background values that mean "draw no background box"
TRANSPARENT_VALUES = ("", "transparent", "rgba(0, 0, 0, 0)", "rgba(0,0,0,0)")

# Text colors rendered as a chrome-like gradient instead of a flat fill
METALLIC_COLORS = ("#CCCCCC", "#C0C0C0")
METALLIC_STOPS = (
    (0.0, "#FFFFFF"),
    (0.5, "#CCCCCC"),
    (1.0, "#999999"),
)

FONT_FAMILIES = {
    "arial": "Arial, sans-serif",
    "roboto": "Roboto, sans-serif",
    "verdana": "Verdana, sans-serif",
    "helvetica": "Helvetica, Arial, sans-serif",
    "open_sans": "var(--font-open-sans), 'Open Sans', sans-serif",
}


@dataclass(frozen=True)
class SubtitleStyle:
    """Styling options for burned-in captions."""
    font_family: str = FONT_FAMILIES["arial"]
    font_size: int = 20
    font_weight: str = "600"
    color: str = "#FFFFFF"
    background_color: Optional[str] = "transparent"
    border_width: float = 0
    border_color: str = "#000000"
    drop_shadow_intensity: float = 0.5  # 0..1
    word_emphasis_enabled: bool = True

    @property
    def has_background(self) -> bool:
        return not is_transparent(self.background_color)

    @property
    def has_border(self) -> bool:
        return self.border_width > 0

    @property
    def is_metallic(self) -> bool:
        return self.color.upper() in METALLIC_COLORS

    @property
    def is_bold(self) -> bool:
        try:
            return int(self.font_weight) >= 600
        except ValueError:
            return str(self.font_weight).lower() == "bold"

    def with_changes(self, **changes) -> SubtitleStyle:
        """Return a copy of this style with the given fields replaced."""
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SubtitleStyle:
        """
        Build a style from a settings dictionary.

        A ``preset`` key starts from that preset; the remaining keys override it.
        """
        base = cls()
        preset_name = data.get("preset")
        if preset_name:
            base = get_preset(preset_name)

        overrides = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        if "drop_shadow_intensity" in overrides:
            overrides["drop_shadow_intensity"] = max(
                0.0, min(float(overrides["drop_shadow_intensity"]), 1.0)
            )
        return replace(base, **overrides)


STYLE_PRESETS: dict[str, SubtitleStyle] = {
    "green": SubtitleStyle(
        font_family=FONT_FAMILIES["roboto"],
        font_size=20,
        font_weight="600",
        color="#00FF41",
        background_color="#0B0B0B",
        border_width=0,
        border_color="#000000",
        drop_shadow_intensity=0.4,
    ),
    "gold": SubtitleStyle(
        font_family=FONT_FAMILIES["open_sans"],
        font_size=20,
        font_weight="600",
        color="#F4D35E",
        background_color="#1F1300",
        border_width=0,
        border_color="#000000",
        drop_shadow_intensity=0.4,
    ),
    "subtitle": SubtitleStyle(
        font_family=FONT_FAMILIES["arial"],
        font_size=20,
        font_weight="500",
        color="#FFFFFF",
        background_color="rgba(0, 0, 0, 0.75)",
        border_width=0,
        border_color="#000000",
        drop_shadow_intensity=0.3,
    ),
    "gamer": SubtitleStyle(
        font_family=FONT_FAMILIES["verdana"],
        font_size=24,
        font_weight="700",
        color="#94FBAB",
        background_color="#141414",
        border_width=0,
        border_color="#FF00FF",
        drop_shadow_intensity=0.6,
    ),
}


def get_preset(name: str) -> SubtitleStyle:
    """Look up a style preset by name."""
    preset = STYLE_PRESETS.get(name.lower())
    if preset is None:
        raise KeyError(
            f"Unknown style preset '{name}'. Available: {', '.join(STYLE_PRESETS)}"
        )
    return preset


# ==================== Colors ====================

_CSS_RGBA_RE = re.compile(
    r"^rgba?\(\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d+)\s*(?:,\s*([\d.]+)\s*)?\)$",
    re.IGNORECASE,
)


def is_transparent(color: Optional[str]) -> bool:
    """True for the values that mean "no background"."""
    if color is None:
        return True
    return color.strip().lower() in TRANSPARENT_VALUES


def parse_color(color: Any, opacity: float = 1.0) -> RGBA:
    """
    Parse a color into an RGBA tuple.

    Accepts hex (#rgb, #rrggbb, #rrggbbaa), CSS rgb()/rgba() with a 0..1 alpha,
    RGB(A) tuples and any name Pillow understands. ``opacity`` multiplies the
    resulting alpha.
    """
    if color is None:
        return (0, 0, 0, 0)

    alpha = 1.0

    if isinstance(color, (tuple, list)) and len(color) >= 3:
        r, g, b = color[:3]
        if len(color) >= 4:
            alpha = color[3] / 255
    elif isinstance(color, str):
        value = color.strip()
        match = _CSS_RGBA_RE.match(value)
        if is_transparent(value):
            return (0, 0, 0, 0)
        elif match:
            r, g, b = (int(match.group(i)) for i in (1, 2, 3))
            if match.group(4) is not None:
                alpha = float(match.group(4))
        elif value.startswith("#"):
            hex_color = value.lstrip("#")
            if len(hex_color) == 3:
                hex_color = "".join(ch * 2 for ch in hex_color)
            if len(hex_color) not in (6, 8):
                raise ValueError(f"Invalid hex color: {color}")
            r = int(hex_color[0:2], 16)
            g = int(hex_color[2:4], 16)
            b = int(hex_color[4:6], 16)
            if len(hex_color) == 8:
                alpha = int(hex_color[6:8], 16) / 255
        else:
            rgb = ImageColor.getrgb(value)
            r, g, b = rgb[:3]
            if len(rgb) == 4:
                alpha = rgb[3] / 255
    else:
        raise ValueError(f"Unsupported color value: {color!r}")

    alpha = max(0.0, min(alpha * opacity, 1.0))
    return (int(r), int(g), int(b), int(round(alpha * 255)))


def luminance(color: Any) -> float:
    """Perceived luminance in 0..1."""
    r, g, b, _ = parse_color(color)
    return (0.299 * r + 0.587 * g + 0.114 * b) / 255


def is_light_color(color: Any) -> bool:
    try:
        return luminance(color) > 0.5
    except ValueError:
        return False
