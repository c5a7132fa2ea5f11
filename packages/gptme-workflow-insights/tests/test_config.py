"""Tests for configuration loading and validation."""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from gptme_workflow_insights.config import CONFIG_ENV_VAR, InsightsConfig, ScoringConfig


def test_defaults():
    config = InsightsConfig()
    assert config.correlation.window == timedelta(hours=2)
    assert config.correlation.quick_fix_window == timedelta(minutes=15)
    assert config.struggles.min_run_length == 3
    assert config.struggles.struggle_commands == ["npm", "cargo", "git"]
    assert config.scoring.grade_bands[0] == (90.0, "A+")
    assert config.scoring.fallback_grade == "D"
    assert config.engine.max_workers == 2


def test_yaml_roundtrip(tmp_path):
    config = InsightsConfig.from_dict(
        {"correlation": {"window_minutes": 60}, "sessions": {"intense_min_tool_uses": 8}}
    )
    path = tmp_path / "config.yaml"
    config.to_yaml(path)
    loaded = InsightsConfig.from_yaml(path)
    assert loaded == config
    assert loaded.correlation.window == timedelta(hours=1)


def test_to_dict_uses_plain_lists():
    data = InsightsConfig().to_dict()
    assert data["scoring"]["grade_bands"][0] == [90.0, "A+"]


def test_empty_yaml_gives_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert InsightsConfig.load(path) == InsightsConfig()


def test_load_toml(tmp_path):
    path = tmp_path / "insights.toml"
    path.write_text('[struggles]\nmin_run_length = 4\n\n[engine]\nmax_workers = 1\n')
    config = InsightsConfig.load(path)
    assert config.struggles.min_run_length == 4
    assert config.engine.max_workers == 1


def test_load_from_env(tmp_path, monkeypatch):
    path = tmp_path / "env.yaml"
    path.write_text("correlation:\n  max_examples: 2\n")
    monkeypatch.setenv(CONFIG_ENV_VAR, str(path))
    assert InsightsConfig.load().correlation.max_examples == 2


def test_load_without_file(monkeypatch):
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    assert InsightsConfig.load() == InsightsConfig()


@pytest.mark.parametrize(
    "data",
    [
        {"correlation": {"window_minutes": 0}},
        {"struggles": {"min_run_length": 0}},
        {"sessions": {"refactor_deletion_ratio": 1.5}},
        {"scoring": {"copy_paste_good_ratio": 0.3, "copy_paste_fair_ratio": 0.2}},
        {"engine": {"max_workers": 0}},
    ],
)
def test_invalid_values_rejected(data):
    with pytest.raises(ValidationError):
        InsightsConfig.from_dict(data)


def test_grade_bands_sorted_descending():
    config = ScoringConfig(grade_bands=[(10.0, "low"), (90.0, "high"), (50.0, "mid")])
    assert [grade for _, grade in config.grade_bands] == ["high", "mid", "low"]
