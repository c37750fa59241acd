import warnings

import numpy as np
import pytest
from PIL import Image

from captionpipe.subtitles.layout import layout_chunk
from captionpipe.subtitles.renderer import (
    FrameRenderer,
    composite_at,
    gradient_column,
    patch_bounds,
    shadow_geometry,
)
from captionpipe.subtitles.style import SubtitleStyle
from captionpipe.transcript.models import ProcessedChunk, Word

FRAME_SIZE = (640, 360)

# 30px text at 640x360
LARGE = SubtitleStyle(font_size=60)


@pytest.fixture
def chunk():
    return ProcessedChunk(text="hello world", timestamp=(0.0, 1.0))


@pytest.fixture
def phrase():
    words = [Word("hello", (0.0, 0.5)), Word("world", (0.5, 1.0))]
    return ProcessedChunk(
        text="hello world", timestamp=(0.0, 1.0), words=words, source_indices=(0, 1)
    )


def blank_frame():
    width, height = FRAME_SIZE
    return np.zeros((height, width, 3), dtype=np.uint8)


def test_no_chunk_returns_frame_untouched():
    frame = blank_frame()
    assert FrameRenderer().render_frame(frame, None, 0.0) is frame


def test_caption_drawn_in_lower_part_of_frame(chunk):
    rendered = FrameRenderer(LARGE).render_frame(blank_frame(), chunk, 0.5)
    height = FRAME_SIZE[1]

    assert rendered.shape == (height, FRAME_SIZE[0], 3)
    assert rendered[: height // 2].max() == 0
    assert rendered[height // 2:].max() > 200


def test_overlay_is_transparent_outside_caption(chunk):
    overlay = FrameRenderer(LARGE).render_overlay(chunk, FRAME_SIZE, 0.5)

    assert overlay.mode == "RGBA"
    assert overlay.size == FRAME_SIZE
    alpha = np.array(overlay)[:, :, 3]
    assert alpha[:100].max() == 0
    assert alpha.max() == 255


def test_background_box_drawn_under_text(chunk):
    style = SubtitleStyle(background_color="#FF0000", drop_shadow_intensity=0)
    renderer = FrameRenderer(style)
    overlay = renderer.render_overlay(chunk, FRAME_SIZE, 0.5)

    plan = layout_chunk(chunk, style, FRAME_SIZE, renderer.measure)
    box = plan.background
    pixel = overlay.getpixel((int(box.x + 2), int(box.y + box.height / 2)))

    assert pixel == (255, 0, 0, 255)


def test_stroke_uses_border_color(chunk):
    style = LARGE.with_changes(border_width=12, border_color="#00FF00", drop_shadow_intensity=0)
    overlay = np.array(FrameRenderer(style).render_overlay(chunk, FRAME_SIZE, 0.5))

    opaque = overlay[overlay[:, :, 3] == 255]
    greens = (opaque[:, 1] == 255) & (opaque[:, 0] == 0)
    assert greens.any()


def test_border_width_zero_draws_no_stroke(chunk):
    style = LARGE.with_changes(border_width=0, border_color="#00FF00", drop_shadow_intensity=0)
    overlay = np.array(FrameRenderer(style).render_overlay(chunk, FRAME_SIZE, 0.5))

    visible = overlay[overlay[:, :, 3] > 0]
    assert len(visible) > 0
    assert (visible[:, :3] >= 250).all()


def test_drop_shadow_drawn(chunk):
    style = LARGE.with_changes(drop_shadow_intensity=1.0)
    overlay = np.array(FrameRenderer(style).render_overlay(chunk, FRAME_SIZE, 0.5))

    visible = overlay[overlay[:, :, 3] > 0]
    shadow = (visible[:, :3] <= 5).all(axis=1)
    assert shadow.any()


def test_zero_shadow_intensity_adds_no_shadow(chunk):
    style = LARGE.with_changes(drop_shadow_intensity=0)
    overlay = np.array(FrameRenderer(style).render_overlay(chunk, FRAME_SIZE, 0.5))

    visible = overlay[overlay[:, :, 3] > 0]
    assert (visible[:, :3] >= 250).all()


def test_shadow_geometry_scales_with_resolution():
    blur, offset = shadow_geometry(1.0, 4, base_scale=1.0)
    blur_2x, offset_2x = shadow_geometry(1.0, 4, base_scale=2.0)

    assert blur_2x == 2 * blur
    assert offset_2x == 2 * offset
    assert shadow_geometry(0.1, 4, base_scale=0.5)[0] == 2


def shadow_reach(frame_size):
    """Rows the shadow darkens below the caption on a white frame."""
    width, height = frame_size
    chunk = ProcessedChunk(text="hello world", timestamp=(0.0, 1.0))
    white = np.full((height, width, 3), 255, dtype=np.uint8)

    plain = FrameRenderer(LARGE.with_changes(drop_shadow_intensity=0))
    overlay = plain.render_overlay(chunk, frame_size, 0.5)
    text_rows = np.nonzero(np.array(overlay.getchannel("A")).any(axis=1))[0]

    shadowed = FrameRenderer(LARGE.with_changes(drop_shadow_intensity=1.0))
    dark_rows = np.nonzero((shadowed.render_frame(white, chunk, 0.5) < 250).any(axis=(1, 2)))[0]
    return dark_rows.max() - text_rows.max()


def test_shadow_reach_doubles_with_resolution():
    reach = shadow_reach((1920, 1080))
    reach_2x = shadow_reach((3840, 2160))

    assert reach > 0
    assert 1.4 * reach <= reach_2x <= 2.6 * reach


def test_emphasis_highlight_drawn(phrase):
    style = LARGE.with_changes(drop_shadow_intensity=0)
    renderer = FrameRenderer(style)
    overlay = renderer.render_overlay(phrase, FRAME_SIZE, current_time=0.2, mode="phrase")

    plan = layout_chunk(phrase, style, FRAME_SIZE, renderer.measure, 0.2, "phrase")
    box = plan.active_words[0].highlight
    r, g, b, a = overlay.getpixel((int(box.x + 1), int(box.y + box.height / 2)))

    # dark translucent box behind light text
    assert (r, g, b) == (0, 0, 0)
    assert 150 <= a <= 180


def test_metallic_text_uses_gradient(chunk):
    style = SubtitleStyle(color="#C0C0C0", drop_shadow_intensity=0, font_size=60)
    overlay = np.array(FrameRenderer(style).render_overlay(chunk, FRAME_SIZE, 0.5))

    opaque = overlay[overlay[:, :, 3] == 255][:, :3]
    assert len({tuple(pixel) for pixel in opaque}) > 1


def test_gradient_column_stops():
    column = gradient_column(10, 50, 60)

    assert column.shape == (60, 1, 3)
    assert tuple(column[0, 0]) == (255, 255, 255)
    assert tuple(column[30, 0]) == (204, 204, 204)
    assert tuple(column[-1, 0]) == (153, 153, 153)


def test_missing_font_file_falls_back_to_default(chunk, tmp_path):
    renderer = FrameRenderer(font_path=tmp_path / "missing.ttf")

    assert renderer.measure("HELLO", 24) > 0
    assert renderer.font_path is None


def test_fonts_cached_per_size():
    renderer = FrameRenderer()
    assert renderer.get_font(30) is renderer.get_font(30)


def test_render_frame_keeps_pixels_outside_caption(chunk):
    frame = np.array(Image.new("RGB", FRAME_SIZE, (10, 20, 30)))
    rendered = FrameRenderer().render_frame(frame, chunk, 0.5)

    assert tuple(rendered[0, 0]) == (10, 20, 30)


# ==================== Caption-sized layers ====================

def test_layers_cover_only_the_caption(phrase):
    renderer = FrameRenderer(LARGE.with_changes(background_color="#202020"))
    plan = renderer.plan(phrase, (1920, 1080), 0.2, "phrase")
    patches = renderer.plan_patches(plan)

    assert len(patches) >= 3
    for layer, _ in patches:
        assert layer.width < 1920 and layer.height < 1080 / 2

    x0, y0, x1, y1 = patch_bounds(patches, (1920, 1080))
    assert y0 > 1080 / 2
    assert (x1 - x0) * (y1 - y0) < 1920 * 1080 / 4


def test_render_frame_matches_overlay(chunk):
    style = LARGE.with_changes(drop_shadow_intensity=0)
    frame = np.full((FRAME_SIZE[1], FRAME_SIZE[0], 3), 90, dtype=np.uint8)
    renderer = FrameRenderer(style)

    with warnings.catch_warnings():
        warnings.simplefilter("error", DeprecationWarning)
        rendered = renderer.render_frame(frame, chunk, 0.5)

    base = Image.fromarray(frame).convert("RGBA")
    base.alpha_composite(renderer.render_overlay(chunk, FRAME_SIZE, 0.5))
    expected = np.array(base.convert("RGB"))
    assert np.abs(rendered.astype(int) - expected.astype(int)).max() <= 2


def test_unchanged_plan_reuses_layers(phrase, monkeypatch):
    renderer = FrameRenderer(LARGE)
    calls = []
    original = renderer.plan_patches
    monkeypatch.setattr(renderer, "plan_patches", lambda plan: calls.append(plan) or original(plan))

    frame = blank_frame()
    first = renderer.render_frame(frame, phrase, 0.1, "phrase")
    second = renderer.render_frame(frame, phrase, 0.3, "phrase")
    assert len(calls) == 1
    assert np.array_equal(first, second)

    renderer.render_frame(frame, phrase, 0.7, "phrase")
    assert len(calls) == 2


def test_composite_at_clips_negative_origin():
    surface = Image.new("RGBA", (4, 4), (0, 0, 0, 0))
    layer = Image.new("RGBA", (3, 3), (255, 0, 0, 255))

    composite_at(surface, layer, (-1, -2))
    composite_at(surface, layer, (10, 10))

    alpha = np.array(surface)[:, :, 3]
    assert alpha[0, 0] == 255 and alpha[0, 1] == 255
    assert alpha[1, 0] == 0
    assert alpha[:, 2:].max() == 0


def test_patch_bounds_empty():
    assert patch_bounds([], FRAME_SIZE) is None
