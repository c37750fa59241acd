"""
Frame renderer for burned-in captions.

Draws a RenderPlan with Pillow as caption-sized RGBA layers and
composites them over the covered region of a decoded video frame. Supports:
- Rounded background box
- Text stroke (outline)
- Flat fill or the vertical metallic gradient
- Soft drop shadow scaled with output resolution
- Per-word emphasis highlight
"""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Optional

import numpy as np
from PIL import Image, ImageDraw, ImageFilter, ImageFont

from captionpipe.subtitles.layout import (
    BoxPlan,
    RenderPlan,
    layout_chunk,
)
from captionpipe.subtitles.style import (
    METALLIC_STOPS,
    SubtitleStyle,
    parse_color,
)
from captionpipe.transcript.models import ProcessedChunk
from captionpipe.utils.fonts import resolve_font_path

logger = logging.getLogger(__name__)

GRADIENT_HALF_HEIGHT = 20
SHADOW_OFFSET = 2
SHADOW_BLUR_LINE = 4
SHADOW_BLUR_WORD = 5
MIN_SHADOW_BLUR = 2

# A drawn layer and the frame position of its top-left corner
Patch = tuple[Image.Image, tuple[int, int]]


def gradient_column(top: float, bottom: float, height: int) -> np.ndarray:
    """
    Vertical metallic gradient as an (height, 1, 3) uint8 array.

    Rows above ``top`` take the first stop, rows below ``bottom`` the last.
    """
    rows = np.arange(height, dtype=np.float32)
    span = max(bottom - top, 1e-6)
    t = np.clip((rows - top) / span, 0.0, 1.0)

    positions = [position for position, _ in METALLIC_STOPS]
    colors = np.array(
        [parse_color(color)[:3] for _, color in METALLIC_STOPS], dtype=np.float32
    )
    channels = [np.interp(t, positions, colors[:, c]) for c in range(3)]
    return np.stack(channels, axis=-1).reshape(height, 1, 3).astype(np.uint8)


def shadow_geometry(
    intensity: float, blur_factor: float, base_scale: float
) -> tuple[float, float]:
    """Drop shadow (blur, offset) in output pixels."""
    blur = max(MIN_SHADOW_BLUR, intensity * blur_factor * base_scale)
    return blur, SHADOW_OFFSET * base_scale


def composite_at(surface: Image.Image, layer: Image.Image, origin: tuple[int, int]):
    """Alpha-composite ``layer`` with its top-left corner at ``origin``, clipped."""
    x, y = origin
    left, top = max(0, -x), max(0, -y)
    if left >= layer.width or top >= layer.height:
        return
    if x >= surface.width or y >= surface.height:
        return
    surface.alpha_composite(layer, dest=(x + left, y + top), source=(left, top))


def patch_bounds(
    patches: list[Patch], frame_size: tuple[int, int]
) -> Optional[tuple[int, int, int, int]]:
    """Union of the patch rectangles clipped to the frame, or None if nothing shows."""
    if not patches:
        return None
    width, height = frame_size
    x0 = max(0, min(x for _, (x, _) in patches))
    y0 = max(0, min(y for _, (_, y) in patches))
    x1 = min(width, max(x + layer.width for layer, (x, _) in patches))
    y1 = min(height, max(y + layer.height for layer, (_, y) in patches))
    if x0 >= x1 or y0 >= y1:
        return None
    return x0, y0, x1, y1


class FrameRenderer:
    """
    Caption renderer backed by Pillow.

    One renderer is created per export and reused for every frame; fonts are
    loaded once per size.

    Example:
        renderer = FrameRenderer(style)
        frame = renderer.render_frame(frame, chunk, current_time=1.2, mode="phrase")
    """

    def __init__(
        self,
        style: Optional[SubtitleStyle] = None,
        font_path: Optional[Path | str] = None,
        font_dirs: Optional[list[Path]] = None,
    ):
        self.style = style or SubtitleStyle()
        if font_path is None:
            font_path = resolve_font_path(
                self.style.font_family, bold=self.style.is_bold, search_dirs=font_dirs
            )
        self.font_path = str(font_path) if font_path else None
        self._fonts: dict[int, ImageFont.FreeTypeFont] = {}
        self._cached_plan: Optional[RenderPlan] = None
        self._cached: list[Patch] = []

    def get_font(self, size: int) -> ImageFont.FreeTypeFont:
        font = self._fonts.get(size)
        if font is None:
            font = self._load_font(size)
            self._fonts[size] = font
        return font

    def _load_font(self, size: int):
        if self.font_path:
            try:
                return ImageFont.truetype(self.font_path, size)
            except OSError as e:
                logger.warning(f"Could not load font {self.font_path}: {e}")
                self.font_path = None
        return ImageFont.load_default(size=size)

    def measure(self, text: str, font_size: int) -> float:
        """Advance width of ``text`` at ``font_size``."""
        if not text:
            return 0.0
        return float(self.get_font(font_size).getlength(text))

    # ==================== Planning ====================

    def plan(
        self,
        chunk: ProcessedChunk,
        frame_size: tuple[int, int],
        current_time: Optional[float] = None,
        mode: str = "word",
    ) -> RenderPlan:
        return layout_chunk(
            chunk,
            self.style,
            frame_size,
            self.measure,
            current_time=current_time,
            mode=mode,
        )

    # ==================== Drawing ====================
    #
    # Every box and text run is drawn into its own layer sized to what it
    # covers, then composited at its offset.

    def _box_patch(self, box: BoxPlan) -> Optional[Patch]:
        fill = parse_color(box.color)
        if fill[3] == 0:
            return None
        x0, y0 = math.floor(box.x), math.floor(box.y)
        size = (
            math.ceil(box.x + box.width) - x0 + 1,
            math.ceil(box.y + box.height) - y0 + 1,
        )
        layer = Image.new("RGBA", size, (0, 0, 0, 0))
        radius = max(0, min(int(round(box.radius)), int(min(box.width, box.height) // 2)))
        left, top = box.x - x0, box.y - y0
        ImageDraw.Draw(layer).rounded_rectangle(
            (left, top, left + box.width, top + box.height),
            radius=radius,
            fill=fill,
        )
        return layer, (x0, y0)

    def _text_mask(
        self,
        size: tuple[int, int],
        text: str,
        position: tuple[float, float],
        font,
        stroke_width: int = 0,
    ) -> Image.Image:
        mask = Image.new("L", size, 0)
        ImageDraw.Draw(mask).text(
            position, text, font=font, fill=255, anchor="mm", stroke_width=stroke_width
        )
        return mask

    def _draw_shadow(
        self,
        surface: Image.Image,
        mask: Image.Image,
        blur: float,
        offset: float,
    ):
        opacity = min(1.0, self.style.drop_shadow_intensity)
        shifted = Image.new("L", surface.size, 0)
        shifted.paste(mask, (int(round(offset)), int(round(offset))))
        # Canvas-style blur is roughly twice the gaussian sigma
        shifted = shifted.filter(ImageFilter.GaussianBlur(radius=blur / 2))
        alpha = shifted.point(lambda value: int(value * opacity))
        shadow = Image.new("RGBA", surface.size, (0, 0, 0, 0))
        shadow.putalpha(alpha)
        surface.alpha_composite(shadow)

    def _fill_text(
        self,
        surface: Image.Image,
        mask: Image.Image,
        color: str,
        metallic: bool,
        center_y: float,
        base_scale: float,
    ):
        if metallic:
            half_height = GRADIENT_HALF_HEIGHT * base_scale
            column = gradient_column(
                center_y - half_height, center_y + half_height, surface.height
            )
            gradient = np.broadcast_to(column, (surface.height, surface.width, 3))
            layer = Image.fromarray(np.ascontiguousarray(gradient)).convert("RGBA")
            layer.putalpha(mask)
        else:
            rgba = parse_color(color)
            layer = Image.new("RGBA", surface.size, rgba)
            if rgba[3] < 255:
                mask = mask.point(lambda value: value * rgba[3] // 255)
            layer.putalpha(mask)
        surface.alpha_composite(layer)

    def _text_patch(
        self,
        text: str,
        center: tuple[float, float],
        font_size: int,
        color: str,
        metallic: bool,
        base_scale: float,
        shadow_blur_factor: float,
    ) -> Patch:
        style = self.style
        font = self.get_font(font_size)
        text = text.upper()

        stroke_width = 0
        if style.has_border:
            stroke_width = max(1, int(round(style.border_width * base_scale)))

        margin = stroke_width + 2
        shadow = None
        if style.drop_shadow_intensity > 0:
            shadow = shadow_geometry(
                style.drop_shadow_intensity, shadow_blur_factor, base_scale
            )
            blur, offset = shadow
            # Gaussian tail fades out within three sigma (sigma = blur / 2)
            margin += int(math.ceil(abs(offset) + 1.5 * blur))

        left, top, right, bottom = font.getbbox(text, anchor="mm", stroke_width=stroke_width)
        center_x, center_y = center
        x0 = math.floor(center_x + left) - margin
        y0 = math.floor(center_y + top) - margin
        size = (
            math.ceil(center_x + right) + margin - x0 + 1,
            math.ceil(center_y + bottom) + margin - y0 + 1,
        )
        local = (center_x - x0, center_y - y0)

        patch = Image.new("RGBA", size, (0, 0, 0, 0))
        fill_mask = self._text_mask(size, text, local, font)
        stroke_mask = None
        if stroke_width:
            stroke_mask = self._text_mask(size, text, local, font, stroke_width=stroke_width)

        if shadow is not None:
            blur, offset = shadow
            shadow_mask = stroke_mask if stroke_mask is not None else fill_mask
            self._draw_shadow(patch, shadow_mask, blur, offset)

        if stroke_mask is not None:
            self._fill_text(patch, stroke_mask, style.border_color, False, local[1], base_scale)

        self._fill_text(patch, fill_mask, color, metallic, local[1], base_scale)
        return patch, (x0, y0)

    def plan_patches(self, plan: RenderPlan) -> list[Patch]:
        """Draw a render plan as positioned layers, in painting order."""
        patches: list[Optional[Patch]] = []
        if plan.is_empty:
            return []

        if plan.background is not None:
            patches.append(self._box_patch(plan.background))

        for line in plan.lines:
            if line.words is None:
                patches.append(self._text_patch(
                    line.display_text,
                    (line.center_x, line.center_y),
                    plan.font_size,
                    self.style.color,
                    self.style.is_metallic,
                    plan.base_scale,
                    SHADOW_BLUR_LINE,
                ))
                continue

            for word in line.words:
                if word.highlight is not None:
                    patches.append(self._box_patch(word.highlight))
                patches.append(self._text_patch(
                    word.display_text,
                    (word.center_x, word.center_y),
                    word.font_size,
                    word.fill_color,
                    word.metallic,
                    plan.base_scale,
                    SHADOW_BLUR_WORD,
                ))

        return [patch for patch in patches if patch is not None]

    def _cached_patches(self, plan: RenderPlan) -> list[Patch]:
        # Consecutive frames of one caption share a plan until the active word changes
        if self._cached_plan is not None and self._cached_plan == plan:
            return self._cached
        self._cached_plan = plan
        self._cached = self.plan_patches(plan)
        return self._cached

    def draw_plan(self, surface: Image.Image, plan: RenderPlan) -> Image.Image:
        """Draw a render plan onto an RGBA surface."""
        for layer, origin in self.plan_patches(plan):
            composite_at(surface, layer, origin)
        return surface

    def render_overlay(
        self,
        chunk: ProcessedChunk,
        frame_size: tuple[int, int],
        current_time: Optional[float] = None,
        mode: str = "word",
    ) -> Image.Image:
        """Render a caption onto a new transparent surface of ``frame_size``."""
        surface = Image.new("RGBA", frame_size, (0, 0, 0, 0))
        plan = self.plan(chunk, frame_size, current_time=current_time, mode=mode)
        return self.draw_plan(surface, plan)

    def render_frame(
        self,
        frame: np.ndarray,
        chunk: Optional[ProcessedChunk],
        current_time: Optional[float] = None,
        mode: str = "word",
    ) -> np.ndarray:
        """
        Composite a caption over a decoded RGB frame.

        Only the region covered by the caption is converted and blended.

        Args:
            frame: (height, width, 3) uint8 array
            chunk: Active display unit, or None for no caption
            current_time: Playback time in seconds
            mode: "word" or "phrase"

        Returns:
            New (height, width, 3) uint8 array
        """
        if chunk is None:
            return frame

        height, width = frame.shape[:2]
        plan = self.plan(chunk, (width, height), current_time, mode)
        patches = self._cached_patches(plan)
        result = np.array(frame[:, :, :3], dtype=np.uint8)

        region = patch_bounds(patches, (width, height))
        if region is None:
            return result

        x0, y0, x1, y1 = region
        base = Image.fromarray(np.ascontiguousarray(result[y0:y1, x0:x1])).convert("RGBA")
        for layer, (x, y) in patches:
            composite_at(base, layer, (x - x0, y - y0))
        result[y0:y1, x0:x1] = np.asarray(base.convert("RGB"))
        return result
