"""Tests for settings loading (config.py)."""

from pathlib import Path

import pytest

from sondeanalysis.config import AnalysisSettings, load_settings, settings_path_from_env


def test_defaults():
    settings = AnalysisSettings()
    assert settings.mixed_layer_depth_hpa == 100.0
    assert settings.most_unstable_depth_hpa == 300.0
    assert settings.inflow_cape_min_jkg == 100.0
    assert settings.inflow_cin_min_jkg == -250.0
    assert settings.moisture_ratio_low == 8.0
    assert settings.moisture_ratio_high == 12.0
    assert settings.max_workers is None


def test_no_path_gives_defaults():
    assert load_settings(None) == AnalysisSettings()


def test_load_overrides(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text(
        "analysis:\n"
        "  inflow_cape_min_jkg: 50\n"
        "  plume_dt_step_c: 0.5\n"
        "  max_workers: 2\n"
    )
    settings = load_settings(path)
    assert settings.inflow_cape_min_jkg == 50.0
    assert settings.plume_dt_step_c == 0.5
    assert settings.max_workers == 2
    assert settings.mixed_layer_depth_hpa == 100.0


def test_missing_section_gives_defaults(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("other:\n  key: 1\n")
    assert load_settings(path) == AnalysisSettings()


def test_empty_file_gives_defaults(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("")
    assert load_settings(path) == AnalysisSettings()


def test_unknown_key_rejected(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("analysis:\n  mixed_layer_depht_hpa: 50\n")
    with pytest.raises(ValueError):
        load_settings(path)


def test_top_level_must_be_mapping(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("- 1\n- 2\n")
    with pytest.raises(ValueError):
        load_settings(path)


def test_section_must_be_mapping(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("analysis: 3\n")
    with pytest.raises(ValueError):
        load_settings(path)


def test_invalid_value_rejected(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("analysis:\n  plume_dt_step_c: 0\n")
    with pytest.raises(ValueError):
        load_settings(path)


def test_missing_file(tmp_path):
    with pytest.raises(OSError):
        load_settings(tmp_path / "nope.yaml")


def test_settings_path_from_env(monkeypatch):
    monkeypatch.setenv("SONDEANALYSIS_CONFIG", "/etc/sonde.yaml")
    assert settings_path_from_env() == Path("/etc/sonde.yaml")
    monkeypatch.delenv("SONDEANALYSIS_CONFIG")
    assert settings_path_from_env() is None
