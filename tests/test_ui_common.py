import json
from pathlib import Path

import pytest

import ui_common
from strategy_engine import StrategyInput, analyze


@pytest.fixture
def config_paths(tmp_path: Path, monkeypatch):
    paths = {
        "SETTINGS_PATH": tmp_path / "analyzer_settings.json",
        "LOCAL_SETTINGS_PATH": tmp_path / "local_settings.json",
        "SETTINGS_EXAMPLE": tmp_path / "analyzer_settings.example.json",
        "LOCAL_EXAMPLE": tmp_path / "local_settings.example.json",
    }
    for name, path in paths.items():
        monkeypatch.setattr(ui_common, name, path)
    return paths


def test_load_settings_copies_examples_and_merges_local(config_paths):
    config_paths["SETTINGS_EXAMPLE"].write_text(json.dumps({"currentPrice": 95000}), encoding="utf-8")
    config_paths["LOCAL_EXAMPLE"].write_text(json.dumps({"dark_mode": True}), encoding="utf-8")

    settings = ui_common.load_settings()

    assert settings == {"currentPrice": 95000, "dark_mode": True}
    assert config_paths["SETTINGS_PATH"].exists()
    assert config_paths["LOCAL_SETTINGS_PATH"].exists()


def test_load_settings_without_any_file_is_empty(config_paths):
    assert ui_common.load_settings() == {}


def test_save_settings_splits_local_keys(config_paths):
    payload = {"currentPrice": 100000, "commodity": "Gold", "dark_mode": True, "show_advanced": False}

    ui_common.save_settings(payload)

    strategy = json.loads(config_paths["SETTINGS_PATH"].read_text(encoding="utf-8"))
    local = json.loads(config_paths["LOCAL_SETTINGS_PATH"].read_text(encoding="utf-8"))
    assert strategy == {"currentPrice": 100000}
    assert local == {"commodity": "Gold", "dark_mode": True, "show_advanced": False}
    assert ui_common.load_settings() == payload


def test_save_settings_to_custom_path_keeps_payload_whole(tmp_path: Path):
    path = tmp_path / "nested" / "custom.json"
    ui_common.save_settings({"currentPrice": 1, "dark_mode": True}, path)
    assert ui_common.load_settings(path) == {"currentPrice": 1, "dark_mode": True}


@pytest.mark.parametrize("content", ["{not json", "[1, 2, 3]"])
def test_unreadable_settings_fall_back_to_empty(tmp_path: Path, content):
    path = tmp_path / "bad.json"
    path.write_text(content, encoding="utf-8")
    assert ui_common.load_settings(path) == {}


def test_prepare_defaults_uses_preset_for_requested_commodity():
    defaults = ui_common.prepare_defaults({"commodity": "Silver", "currentPrice": 120000}, "Gold")

    assert defaults["commodity"] == "Gold"
    assert defaults["currentPrice"] == 98000.0
    assert defaults["averageTradingDaysPerMonth"] == 20
    assert defaults["trendBias"] == "neutral"


def test_prepare_defaults_applies_saved_values_for_same_commodity():
    saved = {"commodity": "Silver", "currentPrice": "120000", "trendBias": "bullish", "atr": "oops", "dark_mode": 1}

    defaults = ui_common.prepare_defaults(saved)

    assert defaults["commodity"] == "Silver"
    assert defaults["currentPrice"] == 120000.0
    assert defaults["trendBias"] == "bullish"
    assert defaults["atr"] == 1000.0
    assert defaults["dark_mode"] is True


def test_prepare_defaults_unknown_commodity_falls_back_to_silver():
    defaults = ui_common.prepare_defaults({}, "Copper")
    assert defaults["commodity"] == ui_common.DEFAULT_COMMODITY
    assert defaults["minPrice"] == 70000.0


def test_every_preset_produces_a_valid_ladder():
    for name, preset in ui_common.COMMODITY_PRESETS.items():
        report = analyze(StrategyInput.from_mapping(preset))
        assert report.total_positions >= 1, name


def test_metric_cards_cover_every_scalar_metric():
    report = analyze(StrategyInput.from_mapping(ui_common.COMMODITY_PRESETS["Silver"]))
    keys = [card.key for card in ui_common.METRIC_CARDS]

    assert len(keys) == len(set(keys)) == 17
    for key in keys:
        assert hasattr(report, key)


def test_format_metric_by_kind():
    report = analyze(StrategyInput.from_mapping(ui_common.COMMODITY_PRESETS["Silver"]))
    cards = {card.key: card for card in ui_common.METRIC_CARDS}

    assert ui_common.format_metric(cards["total_positions"], report) == "21"
    assert ui_common.format_metric(cards["total_margin"], report) == "336,000.00"
    assert ui_common.format_metric(cards["estimated_roi"], report) == "55.56% / 166.67%"
    assert ui_common.format_metric(cards["net_roi"], report) == "47.22%"
    assert ui_common.format_metric(cards["win_prob"], report) == "70%"


def test_format_monthly_values():
    report = analyze(StrategyInput.from_mapping(ui_common.COMMODITY_PRESETS["Silver"]))

    assert ui_common.format_monthly("positions_entered_monthly", report) == "10"
    assert ui_common.format_monthly("monthly_profit", report) == "10,000.00"
    assert ui_common.format_monthly("trend_bias", report) == "Neutral"
