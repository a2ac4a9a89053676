"""Staggered-buy strategy analyzer (closed-form, single-call).

- One buy level every ``buy_interval`` from the current price down to ``min_price``.
- Each filled level exits ``sell_interval`` higher; level i earns i intervals.
- Returns, win probability and tax are fixed assumptions, not estimates.
"""
from __future__ import annotations

import logging
import math
import warnings
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)

Number = float | int

TREND_MULTIPLIERS: Dict[str, float] = {
    "neutral": 1.0,
    "bullish": 1.3,
    "bearish": 0.7,
}

HIGH_RETURN_MULTIPLIER = 3
TAX_KEEP_RATIO = 0.85  # Flat 15% tax on the full-cycle profit.
WIN_PROBABILITY = 0.7
MAX_LEVELS = 100_000
UNDEFINED_PCT = "undefined"


class ValidationError(ValueError):
    """Raised when strategy inputs are missing, non-numeric or out of range."""

    def __init__(self, errors: List[str]) -> None:
        self.errors = list(errors)
        super().__init__("Invalid strategy input: " + "; ".join(self.errors))


class DegenerateInputWarning(UserWarning):
    """Inputs are valid but produce an empty ladder or an undefined ROI."""


# ---------------------- Number helpers ----------------------

MONEY_QUANT = Decimal("0.01")


def to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, int):
        return Decimal(value)
    return Decimal(str(value))


def money(value: Number) -> float:
    """Round a monetary amount half-up to cents."""
    return float(to_decimal(value).quantize(MONEY_QUANT, rounding=ROUND_HALF_UP))


def format_pct(numerator: Number, denominator: Number) -> str:
    """``numerator / denominator`` as a two-decimal percentage string."""
    if denominator == 0:
        return UNDEFINED_PCT
    return f"{(numerator / denominator) * 100:.2f}%"


def _coerce_number(value: Any, label: str) -> Number:
    if isinstance(value, bool):
        raise ValueError(f"'{label}' must be numeric, got {value!r}")
    if isinstance(value, str):
        stripped = value.strip()
        if stripped == "":
            raise ValueError(f"'{label}' must not be empty")
        try:
            value = int(stripped)
        except ValueError:
            try:
                value = float(stripped)
            except ValueError as exc:
                raise ValueError(f"'{label}' must be numeric, got {value!r}") from exc
    if isinstance(value, Decimal):
        value = float(value)
    if isinstance(value, int):
        return int(value)
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            raise ValueError(f"'{label}' must be finite, got {value!r}")
        return value
    raise ValueError(f"'{label}' must be numeric, got {value!r}")


# ---------------------- Input / output models ----------------------

_REQUIRED_FIELDS = ("current_price", "min_price", "buy_interval", "sell_interval", "margin_per_lot")

_CAMEL_ALIASES = {
    "currentPrice": "current_price",
    "minPrice": "min_price",
    "buyInterval": "buy_interval",
    "sellInterval": "sell_interval",
    "marginPerLot": "margin_per_lot",
    "lotSize": "lot_size",
    "averageTradingDaysPerMonth": "average_trading_days_per_month",
    "trendBias": "trend_bias",
}


def camel_case_keys(raw: Mapping[str, Any]) -> Dict[str, Any]:
    """Return ``raw`` with snake_case input names rewritten to camelCase."""
    snake_to_camel = {snake: camel for camel, snake in _CAMEL_ALIASES.items()}
    return {snake_to_camel.get(key, key): value for key, value in raw.items()}


@dataclass(frozen=True)
class StrategyInput:
    """Parameters of one staggered-buy ladder."""

    current_price: Number
    min_price: Number
    buy_interval: Number
    sell_interval: Number
    margin_per_lot: Number
    lot_size: Number = 1
    atr: Number = 1000
    average_trading_days_per_month: Number = 20
    trend_bias: str = "neutral"

    def __post_init__(self) -> None:
        cleaned, errors = _clean_fields({name: getattr(self, name) for name in self.__dataclass_fields__})
        if errors:
            raise ValidationError(errors)
        for name, value in cleaned.items():
            object.__setattr__(self, name, value)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "StrategyInput":
        """Build an input from a flat mapping of camelCase or snake_case keys.

        Numeric strings are coerced, unknown keys are ignored and every
        problem is reported in a single :class:`ValidationError`.
        """
        values: Dict[str, Any] = {}
        for key, value in raw.items():
            name = _CAMEL_ALIASES.get(key, key)
            if name in cls.__dataclass_fields__ and value is not None:
                values[name] = value

        errors = [f"'{name}' is required" for name in _REQUIRED_FIELDS if name not in values]
        _, field_errors = _clean_fields(values)
        errors.extend(field_errors)
        if errors:
            raise ValidationError(errors)
        return cls(**values)


def _clean_fields(values: Mapping[str, Any]) -> Tuple[Dict[str, Any], List[str]]:
    """Coerce and range-check whichever input fields are present."""
    cleaned: Dict[str, Any] = {}
    errors: List[str] = []
    for name, value in values.items():
        if name == "trend_bias":
            bias = value.strip().lower() if isinstance(value, str) else value
            if not isinstance(bias, str) or bias not in TREND_MULTIPLIERS:
                allowed = ", ".join(TREND_MULTIPLIERS)
                errors.append(f"'trend_bias' must be one of {allowed}, got {value!r}")
                continue
            cleaned[name] = bias
            continue
        try:
            number = _coerce_number(value, name)
        except ValueError as exc:
            errors.append(str(exc))
            continue
        if name == "atr":
            if number < 0:
                errors.append(f"'atr' must not be negative, got {number!r}")
                continue
        elif number <= 0:
            errors.append(f"'{name}' must be greater than zero, got {number!r}")
            continue
        cleaned[name] = number
    return cleaned, errors


@dataclass(frozen=True)
class PayoffRow:
    level: int
    entry_price: Number
    cost: Number
    drawdown: Number
    return_if_sold_at_target: Number

    def to_dict(self) -> Dict[str, Number]:
        return {
            "level": self.level,
            "entryPrice": self.entry_price,
            "cost": self.cost,
            "drawdown": self.drawdown,
            "returnIfSoldAtTarget": self.return_if_sold_at_target,
        }


@dataclass(frozen=True)
class BufferPoint:
    position: int
    buffer: Number

    def to_dict(self) -> Dict[str, Number]:
        return {"position": self.position, "buffer": self.buffer}


@dataclass(frozen=True)
class MonthlyStats:
    """Projected monthly entries, exits and booked profit."""

    positions_entered_monthly: int
    profit_booked_monthly: int
    running_positions_monthly: int
    monthly_profit: Number
    average_trading_days_per_month: Number
    trend_bias: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "positionsEnteredMonthly": self.positions_entered_monthly,
            "profitBookedMonthly": self.profit_booked_monthly,
            "runningPositionsMonthly": self.running_positions_monthly,
            "monthlyProfit": self.monthly_profit,
            "averageTradingDaysPerMonth": self.average_trading_days_per_month,
            "trendBias": self.trend_bias,
        }


@dataclass(frozen=True)
class StrategyReport:
    """Everything the analyzer derives from one :class:`StrategyInput`."""

    total_positions: int
    total_margin: Number
    average_buy_price: Number
    max_drawdown_per_lot: Number
    total_max_drawdown: Number
    total_capital_needed: Number
    capital_with_buffer: Number
    volatility_buffer: Number
    total_profit_on_full_cycle: Number
    estimated_annual_return_low: Number
    estimated_annual_return_high: Number
    estimated_roi: Mapping[str, str]
    breakeven_price: Number
    worst_case_loss: Number
    tax_adjusted_profit: Number
    net_roi: str
    win_prob: float
    monthly_stats: MonthlyStats
    payoff_table: Tuple[PayoffRow, ...] = field(default_factory=tuple)
    volatility_buffer_series: Tuple[BufferPoint, ...] = field(default_factory=tuple)
    degenerate: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready mapping keyed the way the browser front-end expects."""
        return {
            "totalPositions": self.total_positions,
            "totalMargin": self.total_margin,
            "averageBuyPrice": self.average_buy_price,
            "maxDrawdownPerLot": self.max_drawdown_per_lot,
            "totalMaxDrawdown": self.total_max_drawdown,
            "totalCapitalNeeded": self.total_capital_needed,
            "capitalWithBuffer": self.capital_with_buffer,
            "volatilityBuffer": self.volatility_buffer,
            "totalProfitOnFullCycle": self.total_profit_on_full_cycle,
            "estimatedAnnualReturnLow": self.estimated_annual_return_low,
            "estimatedAnnualReturnHigh": self.estimated_annual_return_high,
            "estimatedROI": dict(self.estimated_roi),
            "breakevenPrice": self.breakeven_price,
            "worstCaseLoss": self.worst_case_loss,
            "taxAdjustedProfit": self.tax_adjusted_profit,
            "netROI": self.net_roi,
            "winProb": self.win_prob,
            "payoffTable": [row.to_dict() for row in self.payoff_table],
            "volatilityBufferSeries": [point.to_dict() for point in self.volatility_buffer_series],
            "monthlyStats": self.monthly_stats.to_dict(),
            "degenerate": self.degenerate,
        }


# ---------------------- Analyzer ----------------------

def analyze(params: StrategyInput | Mapping[str, Any]) -> StrategyReport:
    """Size the ladder and project its payoff for one set of parameters.

    Accepts a :class:`StrategyInput` or a flat mapping (validated with
    :meth:`StrategyInput.from_mapping`). Raises :class:`ValidationError`
    before building any table, including for ladders longer than
    ``MAX_LEVELS`` or inputs too large to represent. A ``current_price``
    below ``min_price`` returns the empty report and issues
    :class:`DegenerateInputWarning`.

    Entry prices and drawdowns are computed in ``Decimal`` like the level
    count, so the lowest row lands exactly on ``min_price``.
    """
    if not isinstance(params, StrategyInput):
        params = StrategyInput.from_mapping(params)

    if params.current_price < params.min_price:
        message = (
            f"current_price {params.current_price!r} is below min_price {params.min_price!r}; "
            "no buy levels can be placed"
        )
        logger.warning(message)
        warnings.warn(message, DegenerateInputWarning, stacklevel=2)
        return _empty_report(params)

    try:
        levels = _level_count(params.current_price, params.min_price, params.buy_interval)
    except InvalidOperation as exc:
        raise ValidationError(
            ["'buy_interval' is too small for the price range: the ladder cannot be counted"]
        ) from exc
    if levels > MAX_LEVELS:
        raise ValidationError(
            [f"ladder has {levels + 1:,} buy levels; at most {MAX_LEVELS + 1:,} are supported, raise 'buy_interval'"]
        )

    try:
        return _build_report(params, levels)
    except (InvalidOperation, OverflowError) as exc:
        raise ValidationError([f"inputs are too large to analyze: {exc}"]) from exc


def _build_report(params: StrategyInput, levels: int) -> StrategyReport:
    current = to_decimal(params.current_price)
    minimum = to_decimal(params.min_price)
    interval = to_decimal(params.buy_interval)

    total_positions = levels + 1
    total_margin = total_positions * params.margin_per_lot

    lowest_entry = _to_number(current - levels * interval)
    average_buy_price = (params.current_price + lowest_entry) / 2
    max_drawdown_per_lot = average_buy_price - params.min_price
    total_max_drawdown = max_drawdown_per_lot * total_positions * params.lot_size

    volatility_buffer = params.atr * total_positions
    total_capital_needed = total_margin + total_max_drawdown
    capital_with_buffer = total_capital_needed + volatility_buffer

    profit_per_lot = params.sell_interval
    triangular = total_positions * (total_positions - 1) // 2
    total_profit_on_full_cycle = triangular * profit_per_lot * params.lot_size
    annual_low = total_profit_on_full_cycle
    annual_high = total_profit_on_full_cycle * HIGH_RETURN_MULTIPLIER

    if total_capital_needed == 0:
        message = "total capital needed is zero; ROI is undefined"
        logger.warning(message)
        warnings.warn(message, DegenerateInputWarning, stacklevel=3)

    estimated_roi = MappingProxyType(
        {
            "low": format_pct(annual_low, total_capital_needed),
            "high": format_pct(annual_high, total_capital_needed),
        }
    )
    tax_adjusted_profit = total_profit_on_full_cycle * TAX_KEEP_RATIO
    net_roi = format_pct(tax_adjusted_profit, total_capital_needed)

    payoff_table: List[PayoffRow] = []
    buffer_series: List[BufferPoint] = []
    for i in range(levels + 1):
        entry = current - i * interval
        payoff_table.append(
            PayoffRow(
                level=i,
                entry_price=_to_number(entry),
                cost=params.margin_per_lot,
                drawdown=_to_number(entry - minimum),
                return_if_sold_at_target=params.sell_interval * i * params.lot_size,
            )
        )
        buffer_series.append(BufferPoint(position=i + 1, buffer=params.atr * (i + 1)))

    monthly = _monthly_projection(params, total_positions, profit_per_lot)

    logger.debug(
        "Analyzed ladder: %d positions, capital %s, full-cycle profit %s",
        total_positions,
        total_capital_needed,
        total_profit_on_full_cycle,
    )
    return StrategyReport(
        total_positions=total_positions,
        total_margin=total_margin,
        average_buy_price=average_buy_price,
        max_drawdown_per_lot=max_drawdown_per_lot,
        total_max_drawdown=total_max_drawdown,
        total_capital_needed=total_capital_needed,
        capital_with_buffer=capital_with_buffer,
        volatility_buffer=volatility_buffer,
        total_profit_on_full_cycle=total_profit_on_full_cycle,
        estimated_annual_return_low=annual_low,
        estimated_annual_return_high=annual_high,
        estimated_roi=estimated_roi,
        breakeven_price=params.current_price,
        worst_case_loss=total_max_drawdown,
        tax_adjusted_profit=tax_adjusted_profit,
        net_roi=net_roi,
        win_prob=WIN_PROBABILITY,
        monthly_stats=monthly,
        payoff_table=tuple(payoff_table),
        volatility_buffer_series=tuple(buffer_series),
    )


def _to_number(value: Decimal) -> Number:
    if value == value.to_integral_value():
        return int(value)
    return float(value)


def _level_count(current_price: Number, min_price: Number, buy_interval: Number) -> int:
    # Decimal keeps (0.3 - 0.1) // 0.1 at 2 instead of float's 1.
    spread = to_decimal(current_price) - to_decimal(min_price)
    return int(spread // to_decimal(buy_interval))


def _monthly_projection(params: StrategyInput, total_positions: int, profit_per_lot: Number) -> MonthlyStats:
    atr_moves_per_month = (params.average_trading_days_per_month * params.atr) / params.buy_interval
    multiplier = TREND_MULTIPLIERS[params.trend_bias]
    entered = min(math.floor(atr_moves_per_month * multiplier), total_positions)
    booked = entered // 2
    return MonthlyStats(
        positions_entered_monthly=entered,
        profit_booked_monthly=booked,
        running_positions_monthly=entered - booked,
        monthly_profit=booked * profit_per_lot * params.lot_size,
        average_trading_days_per_month=params.average_trading_days_per_month,
        trend_bias=params.trend_bias,
    )


def _empty_report(params: StrategyInput) -> StrategyReport:
    return StrategyReport(
        total_positions=0,
        total_margin=0,
        average_buy_price=0,
        max_drawdown_per_lot=0,
        total_max_drawdown=0,
        total_capital_needed=0,
        capital_with_buffer=0,
        volatility_buffer=0,
        total_profit_on_full_cycle=0,
        estimated_annual_return_low=0,
        estimated_annual_return_high=0,
        estimated_roi=MappingProxyType({"low": UNDEFINED_PCT, "high": UNDEFINED_PCT}),
        breakeven_price=params.current_price,
        worst_case_loss=0,
        tax_adjusted_profit=0,
        net_roi=UNDEFINED_PCT,
        win_prob=WIN_PROBABILITY,
        monthly_stats=MonthlyStats(
            positions_entered_monthly=0,
            profit_booked_monthly=0,
            running_positions_monthly=0,
            monthly_profit=0,
            average_trading_days_per_month=params.average_trading_days_per_month,
            trend_bias=params.trend_bias,
        ),
        degenerate=True,
    )


def summarize(report: StrategyReport) -> Dict[str, Optional[Number]]:
    """Headline numbers rounded to cents, for logs and the command line."""
    return {
        "Total Positions": report.total_positions,
        "Total Capital Needed": money(report.total_capital_needed),
        "Capital With Buffer": money(report.capital_with_buffer),
        "Full-Cycle Profit": money(report.total_profit_on_full_cycle),
        "Tax-Adjusted Profit": money(report.tax_adjusted_profit),
        "Monthly Profit": money(report.monthly_stats.monthly_profit),
    }
