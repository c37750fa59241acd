import pytest

from captionpipe.subtitles.layout import (
    EMPHASIS_ON_DARK_TEXT,
    EMPHASIS_ON_LIGHT_TEXT,
    EMPHASIS_SCALE,
    FrameMetrics,
    emphasis_colors,
    find_split_point,
    layout_chunk,
    split_lines,
    word_scale,
)
from captionpipe.subtitles.style import SubtitleStyle
from captionpipe.transcript.models import ProcessedChunk, Word

from tests.fakes import fixed_measure

LANDSCAPE = (1920, 1080)
PORTRAIT = (1080, 1920)


def make_phrase(texts, word_duration=0.5):
    words = [
        Word(text=text, timestamp=(i * word_duration, (i + 1) * word_duration))
        for i, text in enumerate(texts)
    ]
    return ProcessedChunk(
        text=" ".join(texts),
        timestamp=(words[0].start, words[-1].end),
        words=words,
        source_indices=tuple(range(len(texts))),
    )


EIGHT_WORDS = ["one", "two", "three", "four", "five", "six", "seven", "eight"]


# ==================== Metrics ====================

def test_landscape_metrics():
    metrics = FrameMetrics(*LANDSCAPE)

    assert not metrics.is_vertical
    assert metrics.base_scale == pytest.approx(1.0)
    assert metrics.font_size(SubtitleStyle()) == 30
    assert metrics.baseline_y == pytest.approx(1080 * 0.84)


def test_portrait_metrics():
    metrics = FrameMetrics(*PORTRAIT)

    assert metrics.is_vertical
    assert metrics.base_scale == pytest.approx(1.0)
    assert metrics.max_words_per_line < FrameMetrics(*LANDSCAPE).max_words_per_line


def test_font_scales_with_resolution():
    assert FrameMetrics(1280, 720).font_size(SubtitleStyle()) == 20


# ==================== Line splitting ====================

@pytest.mark.parametrize("count", [1, 4, 6])
def test_short_captions_never_split(count):
    assert find_split_point(EIGHT_WORDS[:count], 6) is None


@pytest.mark.parametrize("count", [7, 8, 11, 20])
def test_long_captions_split_in_two_and_reconstruct(count):
    tokens = [f"w{i}" for i in range(count)]
    lines = split_lines(tokens, 6)

    assert len(lines) == 2
    assert all(lines)
    assert " ".join(" ".join(line) for line in lines) == " ".join(tokens)


def test_split_defaults_to_midpoint():
    assert find_split_point(EIGHT_WORDS, 6) == 4


def test_split_moves_after_nearby_punctuation():
    tokens = ["one", "two", "three,", "four", "five", "six", "seven", "eight"]
    assert split_lines(tokens, 6) == [tokens[:3], tokens[3:]]


def test_split_ignores_punctuation_outside_window():
    tokens = ["one,", "two", "three", "four", "five", "six", "seven", "eight"]
    assert find_split_point(tokens, 6) == 4


def test_split_prefers_nearest_punctuation():
    tokens = ["a", "b", "c", "d.", "e", "f", "g,", "h", "i", "j"]
    # midpoint 5: a break after "d." (4) is closer than after "g," (7)
    assert find_split_point(tokens, 6) == 4


def test_split_tie_goes_to_earlier_break():
    tokens = ["a", "b", "c", "d.", "e", "f,", "g", "h", "i", "j"]
    assert find_split_point(tokens, 6) == 4


def test_portrait_splits_earlier_than_landscape():
    chunk = ProcessedChunk(text="one two three four five", timestamp=(0.0, 1.0))

    landscape = layout_chunk(chunk, SubtitleStyle(), LANDSCAPE, fixed_measure)
    portrait = layout_chunk(chunk, SubtitleStyle(), PORTRAIT, fixed_measure)

    assert len(landscape.lines) == 1
    assert len(portrait.lines) == 2


# ==================== Emphasis ====================

def test_word_scale_rule():
    word = Word("hello", (1.0, 2.0))
    style = SubtitleStyle()

    assert word_scale(word, 1.5, style, "phrase") == EMPHASIS_SCALE
    assert word_scale(word, 2.0, style, "phrase") == 1.0
    assert word_scale(word, 0.5, style, "phrase") == 1.0
    assert word_scale(word, 1.5, style, "word") == 1.0
    assert word_scale(word, None, style, "phrase") == 1.0
    assert word_scale(word, 1.5, style.with_changes(word_emphasis_enabled=False), "phrase") == 1.0


def test_exactly_one_active_word_in_long_phrase():
    chunk = make_phrase(EIGHT_WORDS)

    # inside the third word's span
    plan = layout_chunk(
        chunk, SubtitleStyle(), LANDSCAPE, fixed_measure, current_time=1.25, mode="phrase"
    )

    assert len(plan.lines) == 2
    assert len(plan.word_plans) == 8
    assert [w.text for w in plan.active_words] == ["three"]
    assert all(w.scale == 1.0 for w in plan.word_plans if not w.active)


def test_active_word_gets_highlight_and_scaled_width():
    chunk = make_phrase(["big", "word"])
    plan = layout_chunk(
        chunk, SubtitleStyle(), LANDSCAPE, fixed_measure, current_time=0.1, mode="phrase"
    )
    active, inactive = plan.word_plans

    assert active.active and active.highlight is not None
    assert active.scale == EMPHASIS_SCALE
    assert active.width == pytest.approx(fixed_measure("BIG", 30) * EMPHASIS_SCALE)
    assert active.highlight.width > active.width
    assert inactive.highlight is None
    assert active.center_x < inactive.center_x


def test_emphasis_line_is_centered():
    chunk = make_phrase(["alpha", "beta", "gamma"])
    plan = layout_chunk(
        chunk, SubtitleStyle(), LANDSCAPE, fixed_measure, current_time=0.7, mode="phrase"
    )
    words = plan.word_plans
    left = words[0].center_x - words[0].width / 2
    right = words[-1].center_x + words[-1].width / 2

    assert (left + right) / 2 == pytest.approx(LANDSCAPE[0] / 2)


def test_no_word_plans_without_emphasis():
    chunk = make_phrase(["alpha", "beta"])

    word_mode = layout_chunk(chunk, SubtitleStyle(), LANDSCAPE, fixed_measure, 0.2, "word")
    disabled = layout_chunk(
        chunk,
        SubtitleStyle(word_emphasis_enabled=False),
        LANDSCAPE,
        fixed_measure,
        0.2,
        "phrase",
    )

    assert not word_mode.has_emphasis
    assert not disabled.has_emphasis


def test_emphasis_colors_contrast_with_text():
    assert emphasis_colors(SubtitleStyle(color="#FFFFFF")) == EMPHASIS_ON_LIGHT_TEXT
    assert emphasis_colors(SubtitleStyle(color="#101010")) == EMPHASIS_ON_DARK_TEXT


# ==================== Background ====================

def test_background_box_wraps_widest_line():
    chunk = ProcessedChunk(text="short and a much longer tail here", timestamp=(0.0, 1.0))
    style = SubtitleStyle(background_color="#000000")

    plan = layout_chunk(chunk, style, LANDSCAPE, fixed_measure)
    widest = max(line.width for line in plan.lines)

    assert plan.background is not None
    assert plan.background.width == pytest.approx(widest + 24)
    assert plan.background.x + plan.background.width / 2 == pytest.approx(960)
    assert plan.background.height == pytest.approx(2 * 30 + 4 + 16)


def test_no_background_when_transparent():
    chunk = ProcessedChunk(text="hello", timestamp=(0.0, 1.0))
    plan = layout_chunk(chunk, SubtitleStyle(), LANDSCAPE, fixed_measure)

    assert plan.background is None


def test_empty_chunk_gives_empty_plan():
    chunk = ProcessedChunk(text="   ", timestamp=(0.0, 1.0))
    assert layout_chunk(chunk, SubtitleStyle(), LANDSCAPE, fixed_measure).is_empty
