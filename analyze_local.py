#!/usr/bin/env python3
"""Run the staggered-buy analyzer from the command line."""
from __future__ import annotations

import argparse
import json
import logging
import sys
import warnings
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from strategy_engine import (
    DegenerateInputWarning,
    StrategyReport,
    ValidationError,
    analyze,
    camel_case_keys,
    summarize,
)
from ui_common import COMMODITY_PRESETS, DEFAULT_COMMODITY, MONTHLY_FIELDS, TREND_CHOICES, format_monthly

logger = logging.getLogger(__name__)

# (flag, mapping key, type)
_NUMERIC_FLAGS = (
    ("--current-price", "currentPrice", float),
    ("--min-price", "minPrice", float),
    ("--buy-interval", "buyInterval", float),
    ("--sell-interval", "sellInterval", float),
    ("--margin-per-lot", "marginPerLot", float),
    ("--lot-size", "lotSize", float),
    ("--atr", "atr", float),
    ("--trading-days", "averageTradingDaysPerMonth", int),
)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Size a staggered-buy ladder and project its payoff.")
    parser.add_argument(
        "--params",
        type=Path,
        help="JSON file with a flat mapping of strategy parameters.",
    )
    parser.add_argument(
        "--commodity",
        choices=sorted(COMMODITY_PRESETS),
        default=DEFAULT_COMMODITY,
        help="Preset used for any parameter not given elsewhere.",
    )
    for flag, key, kind in _NUMERIC_FLAGS:
        parser.add_argument(flag, dest=key, type=kind, help=f"Override '{key}'.")
    parser.add_argument("--trend-bias", dest="trendBias", choices=TREND_CHOICES, help="Override 'trendBias'.")
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the full report as JSON instead of the text summary.",
    )
    parser.add_argument(
        "--output",
        type=Path,
        help="Optional JSON file that will receive the full report.",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity.",
    )
    return parser.parse_args(argv)


def load_params(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Parameter file '{path}' does not exist")
    with path.open("r", encoding="utf-8") as fh:
        data = json.load(fh)
    if not isinstance(data, dict):
        raise ValueError(f"Parameter file '{path}' must contain a JSON object")
    return data


def build_params(args: argparse.Namespace) -> Dict[str, Any]:
    """Preset, then parameter file, then explicit flags."""
    params: Dict[str, Any] = dict(COMMODITY_PRESETS[args.commodity])
    if args.params:
        params.update(camel_case_keys(load_params(args.params)))
    for _flag, key, _kind in _NUMERIC_FLAGS:
        value = getattr(args, key)
        if value is not None:
            params[key] = value
    if args.trendBias is not None:
        params["trendBias"] = args.trendBias
    return params


def render_summary(report: StrategyReport) -> str:
    lines = []
    for label, value in summarize(report).items():
        lines.append(f"{label:<24}{value:>16,}")
    lines.append(f"{'Estimated ROI':<24}{report.estimated_roi['low']:>8} - {report.estimated_roi['high']}")
    lines.append(f"{'Net ROI':<24}{report.net_roi:>16}")
    lines.append("")
    lines.append("Monthly forecast:")
    for key, label in MONTHLY_FIELDS:
        lines.append(f"  {label:<32}{format_monthly(key, report)}")
    if report.payoff_table:
        lines.append("")
        lines.append(f"{'Level':>5} {'Entry':>14} {'Cost':>12} {'Drawdown':>14} {'Return':>14}")
        for row in report.payoff_table:
            lines.append(
                f"{row.level:>5} {row.entry_price:>14,.2f} {row.cost:>12,.2f} "
                f"{row.drawdown:>14,.2f} {row.return_if_sold_at_target:>14,.2f}"
            )
    return "\n".join(lines)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=args.log_level, format="%(levelname)s %(name)s: %(message)s")

    params = build_params(args)
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", DegenerateInputWarning)
            report = analyze(params)
    except ValidationError as exc:
        print(str(exc), file=sys.stderr)
        return 2

    payload = report.to_dict()
    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        with args.output.open("w", encoding="utf-8") as fh:
            json.dump(payload, fh, indent=2)
        logger.info("Wrote report to %s", args.output)

    if args.json:
        print(json.dumps(payload, indent=2))
    else:
        print(render_summary(report))

    if report.degenerate:
        print("Min price is above the current price: no buy levels.", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
