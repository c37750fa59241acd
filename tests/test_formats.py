import json
from dataclasses import replace

import pytest

from captionpipe.subtitles.formats import (
    format_srt_time,
    format_vtt_time,
    parse_timestamp,
    to_json,
    to_srt,
    to_vtt,
    write_subtitles,
)
from captionpipe.transcript.models import Transcript, TranscriptChunk


def _srt_blocks(content):
    return [block.split("\n") for block in content.strip().split("\n\n")]


def test_two_chunk_srt(two_chunk_transcript):
    blocks = _srt_blocks(to_srt(two_chunk_transcript, "word"))

    assert len(blocks) == 2
    assert blocks[0] == ["1", "00:00:00,000 --> 00:00:01,000", "hi"]
    assert blocks[1] == ["2", "00:00:01,000 --> 00:00:02,000", "there"]


def test_vtt_has_header_and_dot_separator(two_chunk_transcript):
    content = to_vtt(two_chunk_transcript, "word")
    lines = content.split("\n")

    assert lines[0] == "WEBVTT"
    assert lines[1] == ""
    assert lines[2] == "1"
    assert lines[3] == "00:00:00.000 --> 00:00:01.000"


@pytest.mark.parametrize("seconds,expected", [
    (0, "00:00:00,000"),
    (1.5, "00:00:01,500"),
    (61.25, "00:01:01,250"),
    (3723.25, "01:02:03,250"),
])
def test_format_srt_time(seconds, expected):
    assert format_srt_time(seconds) == expected


def test_format_vtt_time():
    assert format_vtt_time(3723.25) == "01:02:03.250"


def test_timestamps_parse_back_within_a_millisecond():
    chunks = [
        TranscriptChunk("a", (0.0, 0.4567)),
        TranscriptChunk("b", (12.3456, 59.9994)),
        TranscriptChunk("c", (3599.999, 3725.1234)),
    ]
    transcript = Transcript(chunks=chunks)

    for exporter, separator in ((to_srt, ","), (to_vtt, ".")):
        timings = [
            line.split(" --> ")
            for line in exporter(transcript, "word").split("\n")
            if " --> " in line
        ]
        assert len(timings) == len(chunks)
        for (start, end), chunk in zip(timings, chunks):
            assert separator in start
            assert abs(parse_timestamp(start) - chunk.start) <= 0.001
            assert abs(parse_timestamp(end) - chunk.end) <= 0.001


def test_parse_timestamp_rejects_garbage():
    with pytest.raises(ValueError):
        parse_timestamp("1:2:3")


def test_disabled_chunks_absent_from_every_export(two_chunk_transcript):
    chunks = [two_chunk_transcript.chunks[0], replace(two_chunk_transcript.chunks[1], disabled=True)]
    transcript = two_chunk_transcript.with_chunks(chunks)

    assert "there" not in to_srt(transcript, "word")
    assert "there" not in to_vtt(transcript, "word")

    data = json.loads(to_json(transcript))
    assert [c["text"] for c in data["chunks"]] == ["hi"]
    assert data["text"] == "hi"


def test_phrase_mode_export(sentence_transcript):
    blocks = _srt_blocks(to_srt(sentence_transcript, "phrase"))

    assert len(blocks) == 2
    assert blocks[0][1] == "00:00:00,000 --> 00:00:03,000"
    assert blocks[0][2] == "Hello world, this is a test."


def test_json_keeps_timestamp_pairs_on_one_line(two_chunk_transcript):
    content = to_json(two_chunk_transcript)

    assert '"timestamp": [0.0, 1.0]' in content
    assert json.loads(content)["chunks"][1] == {
        "text": "there",
        "timestamp": [1.0, 2.0],
        "disabled": False,
    }


@pytest.mark.parametrize("suffix,marker", [
    (".srt", "00:00:00,000 --> 00:00:01,000"),
    (".vtt", "WEBVTT"),
    (".json", '"chunks"'),
])
def test_write_subtitles_picks_format(tmp_path, two_chunk_transcript, suffix, marker):
    path = write_subtitles(two_chunk_transcript, tmp_path / "out" / f"subs{suffix}")

    assert path.exists()
    assert marker in path.read_text(encoding="utf-8")


def test_write_subtitles_rejects_unknown_extension(tmp_path, two_chunk_transcript):
    with pytest.raises(ValueError):
        write_subtitles(two_chunk_transcript, tmp_path / "subs.txt")
