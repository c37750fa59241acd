"""
Caption layout engine.

Pure geometry: given a display unit, a style, the frame size and the current
playback time, compute where every line (and, with word emphasis, every word)
is drawn. Text measurement is injected so layout stays independent of any
drawing surface.

All sizes derive from a reference resolution (1080 px high for landscape,
1920 px for portrait) so captions keep the same visual weight at any output
size.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Callable, Optional

from captionpipe.subtitles.style import SubtitleStyle, is_light_color
from captionpipe.transcript.models import ProcessedChunk, Word

# measure(text, font_size) -> rendered width in pixels
TextMeasurer = Callable[[str, int], float]

REFERENCE_HEIGHT_LANDSCAPE = 1080
REFERENCE_HEIGHT_PORTRAIT = 1920
FONT_SCALE = 1.5

BASELINE_OFFSET_LANDSCAPE = 0.16
BASELINE_OFFSET_PORTRAIT = 0.08

MAX_WORDS_PER_LINE_LANDSCAPE = 6
MAX_WORDS_PER_LINE_PORTRAIT = 4
SPLIT_SEARCH_WINDOW = 2
SPLIT_PUNCTUATION = (",", ";", ":", ".", "!", "?")

LINE_GAP = 4
BACKGROUND_PADDING_X = 12
BACKGROUND_PADDING_Y = 8
BACKGROUND_RADIUS = 8

EMPHASIS_SCALE = 1.18
WORD_GAP_EM = 0.35
HIGHLIGHT_PADDING_X_EM = 0.15
HIGHLIGHT_PADDING_Y_EM = 0.08
HIGHLIGHT_RADIUS_EM = 0.35

# (highlight box color, highlighted text color)
EMPHASIS_ON_LIGHT_TEXT = ("rgba(0, 0, 0, 0.65)", "#FFFFFF")
EMPHASIS_ON_DARK_TEXT = ("rgba(255, 255, 255, 0.85)", "#000000")


@dataclass
class BoxPlan:
    """A rounded rectangle, top-left anchored."""
    x: float
    y: float
    width: float
    height: float
    radius: float
    color: str


@dataclass
class WordPlan:
    """Placement of a single word on an emphasis line."""
    text: str
    center_x: float
    center_y: float
    width: float  # scaled
    scale: float
    font_size: int
    fill_color: str
    active: bool = False
    metallic: bool = False
    highlight: Optional[BoxPlan] = None

    @property
    def display_text(self) -> str:
        return self.text.upper()


@dataclass
class LinePlan:
    """Placement of one caption line, centered on (center_x, center_y)."""
    text: str
    center_x: float
    center_y: float
    width: float
    words: Optional[list[WordPlan]] = None

    @property
    def display_text(self) -> str:
        return self.text.upper()


@dataclass
class RenderPlan:
    """Everything the renderer needs to draw one caption."""
    frame_size: tuple[int, int]
    font_size: int
    base_scale: float
    style: SubtitleStyle
    lines: list[LinePlan] = field(default_factory=list)
    background: Optional[BoxPlan] = None

    @property
    def is_empty(self) -> bool:
        return not self.lines

    @property
    def has_emphasis(self) -> bool:
        return any(line.words is not None for line in self.lines)

    @property
    def word_plans(self) -> list[WordPlan]:
        return [word for line in self.lines for word in (line.words or [])]

    @property
    def active_words(self) -> list[WordPlan]:
        return [word for word in self.word_plans if word.active]


@dataclass(frozen=True)
class FrameMetrics:
    """Resolution-relative scaling for one output frame size."""
    width: int
    height: int

    @property
    def is_vertical(self) -> bool:
        return self.height > self.width

    @property
    def base_scale(self) -> float:
        reference = (
            REFERENCE_HEIGHT_PORTRAIT if self.is_vertical else REFERENCE_HEIGHT_LANDSCAPE
        )
        return self.height / reference

    @property
    def max_words_per_line(self) -> int:
        if self.is_vertical:
            return MAX_WORDS_PER_LINE_PORTRAIT
        return MAX_WORDS_PER_LINE_LANDSCAPE

    @property
    def baseline_y(self) -> float:
        offset = BASELINE_OFFSET_PORTRAIT if self.is_vertical else BASELINE_OFFSET_LANDSCAPE
        return self.height - self.height * offset

    def font_size(self, style: SubtitleStyle) -> int:
        return max(1, round(style.font_size * self.base_scale * FONT_SCALE))


def find_split_point(tokens: list[str], max_words: int) -> Optional[int]:
    """
    Decide where to break a caption into two lines.

    Returns None when the caption fits on one line, otherwise the index of the
    first word of the second line. The break defaults to the midpoint and
    moves to just after the nearest punctuated word within the search window.
    """
    count = len(tokens)
    if count <= max_words:
        return None

    midpoint = math.ceil(count / 2)
    low = max(2, midpoint - SPLIT_SEARCH_WINDOW)
    high = min(count - 2, midpoint + SPLIT_SEARCH_WINDOW)

    candidates = [
        i for i in range(low, high + 1) if tokens[i].endswith(SPLIT_PUNCTUATION)
    ]
    if not candidates:
        return midpoint

    nearest = min(candidates, key=lambda i: (abs(i + 1 - midpoint), i))
    return nearest + 1


def split_lines(tokens: list[str], max_words: int) -> list[list[str]]:
    """Split caption tokens into one or two non-empty lines."""
    split_point = find_split_point(tokens, max_words)
    if split_point is None:
        return [tokens] if tokens else []
    return [tokens[:split_point], tokens[split_point:]]


def word_scale(
    word: Word,
    current_time: Optional[float],
    style: SubtitleStyle,
    mode: str,
) -> float:
    """Emphasis scale of a word at ``current_time`` (1.0 when not emphasized)."""
    if mode != "phrase" or not style.word_emphasis_enabled:
        return 1.0
    if current_time is None or not math.isfinite(current_time):
        return 1.0
    return EMPHASIS_SCALE if word.is_active(current_time) else 1.0


def emphasis_colors(style: SubtitleStyle) -> tuple[str, str]:
    """Highlight box and text colors contrasting with the base text color."""
    if is_light_color(style.color):
        return EMPHASIS_ON_LIGHT_TEXT
    return EMPHASIS_ON_DARK_TEXT


def _layout_emphasis_line(
    words: list[Word],
    center_x: float,
    center_y: float,
    font_size: int,
    style: SubtitleStyle,
    measure: TextMeasurer,
    current_time: float,
    mode: str,
) -> list[WordPlan]:
    gap = WORD_GAP_EM * font_size
    scales = [word_scale(word, current_time, style, mode) for word in words]
    base_widths = [measure(word.text.upper(), font_size) for word in words]
    scaled_widths = [w * s for w, s in zip(base_widths, scales)]
    total_width = sum(scaled_widths) + gap * max(0, len(words) - 1)

    highlight_color, highlight_text_color = emphasis_colors(style)
    padding_x = font_size * HIGHLIGHT_PADDING_X_EM
    padding_y = font_size * HIGHLIGHT_PADDING_Y_EM
    radius = font_size * HIGHLIGHT_RADIUS_EM

    plans: list[WordPlan] = []
    cursor = center_x - total_width / 2

    for word, scale, scaled_width in zip(words, scales, scaled_widths):
        word_center_x = cursor + scaled_width / 2
        active = scale > 1

        highlight = None
        if active:
            box_width = scaled_width + padding_x * 2
            box_height = font_size * scale + padding_y * 2
            highlight = BoxPlan(
                x=word_center_x - box_width / 2,
                y=center_y - box_height / 2,
                width=box_width,
                height=box_height,
                radius=radius,
                color=highlight_color,
            )

        plans.append(WordPlan(
            text=word.text,
            center_x=word_center_x,
            center_y=center_y,
            width=scaled_width,
            scale=scale,
            font_size=max(1, round(font_size * scale)),
            fill_color=highlight_text_color if active else style.color,
            active=active,
            metallic=style.is_metallic and not active,
            highlight=highlight,
        ))
        cursor += scaled_width + gap

    return plans


def layout_chunk(
    chunk: ProcessedChunk,
    style: SubtitleStyle,
    frame_size: tuple[int, int],
    measure: TextMeasurer,
    current_time: Optional[float] = None,
    mode: str = "word",
) -> RenderPlan:
    """
    Compute the render plan for one caption.

    Args:
        chunk: Display unit to draw
        style: Caption style
        frame_size: (width, height) of the output frame
        measure: Text width measurer for the render surface
        current_time: Playback time, used for word emphasis
        mode: "word" or "phrase"

    Returns:
        RenderPlan with line and, when emphasis applies, word placements
    """
    metrics = FrameMetrics(*frame_size)
    base_scale = metrics.base_scale
    font_size = metrics.font_size(style)
    plan = RenderPlan(
        frame_size=frame_size,
        font_size=font_size,
        base_scale=base_scale,
        style=style,
    )

    words = chunk.words if chunk.words else None
    tokens = [word.text for word in words] if words else chunk.text.split()
    token_lines = split_lines(tokens, metrics.max_words_per_line)
    if not token_lines:
        return plan

    center_x = metrics.width / 2
    baseline_y = metrics.baseline_y
    line_height = font_size
    line_gap = LINE_GAP * base_scale
    total_height = (
        len(token_lines) * line_height + max(0, len(token_lines) - 1) * line_gap
    )
    start_y = baseline_y - total_height / 2 + line_height / 2

    emphasize = (
        words is not None
        and mode == "phrase"
        and style.word_emphasis_enabled
        and current_time is not None
        and math.isfinite(current_time)
    )

    offset = 0
    for index, line_tokens in enumerate(token_lines):
        text = " ".join(line_tokens)
        line_y = start_y + index * (line_height + line_gap)
        line = LinePlan(
            text=text,
            center_x=center_x,
            center_y=line_y,
            width=measure(text.upper(), font_size),
        )
        if emphasize:
            line_words = words[offset:offset + len(line_tokens)]
            line.words = _layout_emphasis_line(
                line_words, center_x, line_y, font_size, style, measure,
                current_time, mode,
            )
        offset += len(line_tokens)
        plan.lines.append(line)

    if style.has_background:
        padding_x = BACKGROUND_PADDING_X * base_scale
        padding_y = BACKGROUND_PADDING_Y * base_scale
        max_width = max(line.width for line in plan.lines)
        plan.background = BoxPlan(
            x=center_x - max_width / 2 - padding_x,
            y=baseline_y - total_height / 2 - padding_y,
            width=max_width + padding_x * 2,
            height=total_height + padding_y * 2,
            radius=BACKGROUND_RADIUS * base_scale,
            color=style.background_color,
        )

    return plan
