import json

import pytest

from captionpipe.core.config import ExportConfig
from captionpipe.exceptions import ConfigurationError
from captionpipe.transcript.chunks import PhraseGrouping


def test_defaults_are_valid():
    config = ExportConfig()

    assert config.mode == "phrase"
    assert config.export_settings["format"] == "mp4"
    assert config.validate() == []


def test_from_dict_merges_settings():
    config = ExportConfig.from_dict({
        "mode": "word",
        "export_settings": {"quality": "low"},
        "subtitle_settings": {"preset": "green", "font_size": 30},
        "phrase_settings": {"max_words": 4},
    })

    assert config.export_settings["quality"] == "low"
    assert config.export_settings["format"] == "mp4"
    assert config.export_settings["fps"] == 30
    assert config.phrase_settings == {"max_words": 4, "max_gap": 0.6}

    style = config.build_style()
    assert style.color == "#00FF41"
    assert style.font_size == 30
    assert config.build_grouping() == PhraseGrouping(max_words=4, max_gap=0.6)


def test_build_export_settings():
    config = ExportConfig.from_dict({
        "export_settings": {"format": "webm", "fps": 25, "width": 1080, "height": 1920},
    })
    settings = config.build_export_settings()

    assert settings.format == "webm"
    assert settings.fps == 25.0
    assert settings.size == (1080, 1920)
    assert settings.preset.mime_type == "video/webm"


def test_source_size_kept_without_width_and_height():
    settings = ExportConfig().build_export_settings()
    assert settings.size is None
    assert settings.output_size((1279, 721)) == (1278, 720)


@pytest.mark.parametrize("suffix", [".yaml", ".json"])
def test_save_and_load(tmp_path, suffix):
    config = ExportConfig.from_dict({
        "input_file": "input.mp4",
        "transcript_file": "transcript.json",
        "output_dir": "renders",
        "export_settings": {"quality": "very_high"},
        "debug": True,
    })
    path = tmp_path / f"export{suffix}"
    config.save(path)

    loaded = ExportConfig.from_file(path)

    assert loaded.to_dict() == config.to_dict()


def test_unsupported_format(tmp_path):
    path = tmp_path / "export.toml"
    path.write_text("mode = 'word'")

    with pytest.raises(ConfigurationError):
        ExportConfig.from_file(path)

    with pytest.raises(ConfigurationError):
        ExportConfig().save(path)


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        ExportConfig.from_file(tmp_path / "missing.yaml")


def test_malformed_file(tmp_path):
    path = tmp_path / "export.json"
    path.write_text("{not json")

    with pytest.raises(ConfigurationError):
        ExportConfig.from_file(path)


def test_validate_reports_every_problem(tmp_path):
    config = ExportConfig.from_dict({
        "input_file": str(tmp_path / "missing.mp4"),
        "mode": "karaoke",
        "export_settings": {"format": "avi", "quality": "ultra", "fps": 0, "width": 1280},
        "subtitle_settings": {"preset": "neon", "colour": "#FFF"},
        "phrase_settings": {"max_words": 0, "max_gap": -1},
    })

    errors = config.validate()

    assert len(errors) == 10
    assert any("Input file not found" in e for e in errors)
    assert "Invalid mode: karaoke" in errors
    assert "Output width and height must be set together" in errors
    assert "Unknown style preset: neon" in errors
    assert "Unknown subtitle setting: colour" in errors


def test_preset_names_are_case_insensitive():
    config = ExportConfig.from_dict({"subtitle_settings": {"preset": "Gold"}})

    assert config.validate() == []
    assert config.build_style().color == "#F4D35E"


def test_json_config_is_plain_data(tmp_path):
    path = tmp_path / "export.json"
    ExportConfig().save(path)

    data = json.loads(path.read_text())
    assert data["subtitle_settings"] == {"preset": None}
    assert data["input_file"] is None
