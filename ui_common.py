# -*- coding: utf-8 -*-
"""Shared UI utilities for the Streamlit analyzer page and the CLI."""

from __future__ import annotations

import json
import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import streamlit as st

from strategy_engine import TREND_MULTIPLIERS, StrategyReport, money

logger = logging.getLogger(__name__)


# ---------------------- Constants ----------------------

CONFIG_DIR = Path("config")
SETTINGS_PATH = CONFIG_DIR / "analyzer_settings.json"
LOCAL_SETTINGS_PATH = CONFIG_DIR / "local_settings.json"
SETTINGS_EXAMPLE = CONFIG_DIR / "analyzer_settings.example.json"
LOCAL_EXAMPLE = CONFIG_DIR / "local_settings.example.json"

LOCAL_KEYS = {"commodity", "dark_mode", "show_advanced"}

TREND_CHOICES = list(TREND_MULTIPLIERS)

# Form fields in display order: (key, label, kind)
FORM_FIELDS = [
    ("currentPrice", "Current Price", "float"),
    ("minPrice", "Min Price", "float"),
    ("buyInterval", "Buy Interval", "float"),
    ("sellInterval", "Sell Interval", "float"),
    ("marginPerLot", "Margin Per Lot", "float"),
    ("lotSize", "Lot Size", "float"),
    ("atr", "ATR", "float"),
    ("averageTradingDaysPerMonth", "Average Trading Days Per Month", "int"),
    ("trendBias", "Trend Bias", "choice"),
]

COMMODITY_PRESETS: dict[str, dict[str, Any]] = {
    "Silver": {
        "currentPrice": 110000,
        "minPrice": 70000,
        "buyInterval": 2000,
        "sellInterval": 2000,
        "marginPerLot": 16000,
        "lotSize": 1,
        "atr": 1000,
        "averageTradingDaysPerMonth": 20,
        "trendBias": "neutral",
    },
    "Gold": {
        "currentPrice": 98000,
        "minPrice": 80000,
        "buyInterval": 1000,
        "sellInterval": 1000,
        "marginPerLot": 12000,
        "lotSize": 1,
        "atr": 700,
        "averageTradingDaysPerMonth": 20,
        "trendBias": "neutral",
    },
    "Crude Oil": {
        "currentPrice": 6000,
        "minPrice": 4500,
        "buyInterval": 100,
        "sellInterval": 100,
        "marginPerLot": 9000,
        "lotSize": 1,
        "atr": 120,
        "averageTradingDaysPerMonth": 20,
        "trendBias": "neutral",
    },
}
DEFAULT_COMMODITY = "Silver"


# ---------------------- Metric cards ----------------------

@dataclass(frozen=True)
class MetricCard:
    key: str
    label: str
    description: str
    fmt: str = "money"  # money | count | pct | prob


METRIC_CARDS = [
    MetricCard("total_positions", "Total Positions", "Total Lots To Be Purchased Based On Drop Intervals.", "count"),
    MetricCard("total_margin", "Total Margin", "Total Margin Required To Hold All Positions."),
    MetricCard("average_buy_price", "Average Buy Price", "Average Cost Per Unit Across All Positions."),
    MetricCard("max_drawdown_per_lot", "Max Drawdown Per Lot", "Max Loss On One Lot If Price Hits Lowest Point."),
    MetricCard("total_max_drawdown", "Total Max Drawdown", "Worst-Case Loss Across All Lots."),
    MetricCard("total_capital_needed", "Total Capital Needed", "Combined Margin And Drawdown Capital Required."),
    MetricCard("capital_with_buffer", "Capital With Buffer", "Capital Including Additional Safety Reserve."),
    MetricCard("volatility_buffer", "Volatility Buffer", "Extra Capital To Protect Against Volatility (ATR-Based)."),
    MetricCard(
        "total_profit_on_full_cycle",
        "Total Profit On Full Cycle",
        "Total Profit Assuming All Lots Exit At Sell Intervals.",
    ),
    MetricCard("estimated_annual_return_low", "Estimated Annual Return Low", "Minimum Projected Annual Return."),
    MetricCard("estimated_annual_return_high", "Estimated Annual Return High", "High-Side Projected Annual Return."),
    MetricCard("estimated_roi", "Estimated ROI", "Return On Investment As A Percentage.", "pct"),
    MetricCard("breakeven_price", "Breakeven Price", "Price At Which Cumulative Profit = 0."),
    MetricCard("worst_case_loss", "Worst Case Loss", "Maximum Potential Loss In Adverse Scenario."),
    MetricCard("tax_adjusted_profit", "Tax Adjusted Profit", "Profit After Accounting For Tax."),
    MetricCard("net_roi", "Net ROI", "Net Return Percentage After Taxes.", "pct"),
    MetricCard("win_prob", "Win Probability", "Probability Of Strategy Resulting In Net Gain.", "prob"),
]

MONTHLY_FIELDS = [
    ("positions_entered_monthly", "Positions Entered Monthly"),
    ("profit_booked_monthly", "Profit Booked Monthly"),
    ("running_positions_monthly", "Running Positions Monthly"),
    ("monthly_profit", "Monthly Profit"),
    ("average_trading_days_per_month", "Average Trading Days Per Month"),
    ("trend_bias", "Trend Bias"),
]


def format_metric(card: MetricCard, report: StrategyReport) -> str:
    value = getattr(report, card.key)
    if card.fmt == "count":
        return f"{int(value):,}"
    if card.fmt == "pct":
        if isinstance(value, Mapping):
            return f"{value['low']} / {value['high']}"
        return str(value)
    if card.fmt == "prob":
        return f"{value:.0%}"
    return f"{money(value):,.2f}"


def format_monthly(key: str, report: StrategyReport) -> str:
    value = getattr(report.monthly_stats, key)
    if key == "monthly_profit":
        return f"{money(value):,.2f}"
    if key == "trend_bias":
        return str(value).capitalize()
    return f"{value:,}"


# ---------------------- Theme ----------------------

def apply_theme(dark_mode: bool) -> None:
    background = "#121212" if dark_mode else "#f4f6f8"
    text = "#f5f5f5" if dark_mode else "#1f2933"
    st.markdown(
        f"""
        <style>
        [data-testid='stAppViewContainer'] {{background: {background}; color: {text};}}
        [data-testid='stMetricValue'], [data-testid='stMetricLabel'] {{color: {text};}}
        </style>
        """,
        unsafe_allow_html=True,
    )


# ---------------------- Settings I/O ----------------------

def _read_json(path: Path) -> dict:
    """Read a JSON file and return its contents as a dict."""
    if not path.exists():
        return {}
    try:
        with path.open("r", encoding="utf-8") as fh:
            data = json.load(fh)
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Ignoring unreadable settings file %s: %s", path, exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring settings file %s: expected a JSON object", path)
        return {}
    return data


def _write_json(path: Path, data: dict) -> None:
    """Write a dict to a JSON file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as fh:
        json.dump(data, fh, ensure_ascii=False, indent=2)


def _example_for(path: Path) -> Path | None:
    """Return the corresponding .example.json for a given config path."""
    if path == SETTINGS_PATH:
        return SETTINGS_EXAMPLE
    if path == LOCAL_SETTINGS_PATH:
        return LOCAL_EXAMPLE
    return None


def _ensure_from_example(path: Path) -> None:
    if path.exists():
        return
    example = _example_for(path)
    if example and example.exists():
        path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(example, path)
        logger.info("Created %s from %s", path, example)


def load_settings(config_path: Path | None = None) -> dict:
    """Load settings from config JSON file(s).

    For the default path the analyzer form values and the local display
    preferences are merged from two files, each copied from its
    .example.json when missing.
    """
    path = config_path if config_path else SETTINGS_PATH
    _ensure_from_example(path)
    result = _read_json(path)

    if path == SETTINGS_PATH:
        _ensure_from_example(LOCAL_SETTINGS_PATH)
        result.update(_read_json(LOCAL_SETTINGS_PATH))

    return result


def save_settings(payload: dict, config_path: Path | None = None) -> None:
    """Save settings to config JSON file(s).

    For the default path the display keys (commodity, dark_mode,
    show_advanced) go to local_settings.json and the form values to
    analyzer_settings.json.
    """
    path = config_path if config_path else SETTINGS_PATH

    if path == SETTINGS_PATH:
        local_data = {k: v for k, v in payload.items() if k in LOCAL_KEYS}
        strategy_data = {k: v for k, v in payload.items() if k not in LOCAL_KEYS}
        _write_json(LOCAL_SETTINGS_PATH, local_data)
        _write_json(path, strategy_data)
    else:
        _write_json(path, payload)


def prepare_defaults(saved: dict, commodity: str | None = None) -> dict:
    """Merge a commodity preset with saved values, coercing each field to its kind.

    Saved form values only apply when they were saved for the same
    commodity; a value that does not coerce falls back to the preset.
    """
    name = commodity or saved.get("commodity") or DEFAULT_COMMODITY
    if name not in COMMODITY_PRESETS:
        logger.warning("Unknown commodity %r, using %s", name, DEFAULT_COMMODITY)
        name = DEFAULT_COMMODITY
    preset = COMMODITY_PRESETS[name]
    use_saved = saved.get("commodity", name) == name

    defaults: dict[str, Any] = {
        "commodity": name,
        "dark_mode": bool(saved.get("dark_mode", False)),
        "show_advanced": bool(saved.get("show_advanced", False)),
    }
    for key, _label, kind in FORM_FIELDS:
        fallback = preset[key]
        raw = saved.get(key, fallback) if use_saved else fallback
        try:
            if kind == "int":
                defaults[key] = int(raw)
            elif kind == "float":
                defaults[key] = float(raw)
            else:
                defaults[key] = raw if raw in TREND_CHOICES else fallback
        except (TypeError, ValueError):
            logger.warning("Invalid saved value for %s: %r", key, raw)
            defaults[key] = fallback
    return defaults
