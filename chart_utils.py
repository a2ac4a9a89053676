"""Shared helpers for building payoff and volatility-buffer charts."""
from __future__ import annotations

from dataclasses import dataclass

import altair as alt
import pandas as pd

from strategy_engine import StrategyReport

default_height = 300

PAYOFF_COLUMNS = ['Level', 'Entry Price', 'Cost', 'Drawdown', 'Return At Target']
BUFFER_COLUMNS = ['Position', 'Buffer']


@dataclass
class AreaChartConfig:
    title: str
    color: str = '#8884d8'
    height: int = default_height
    dark: bool = False


def payoff_frame(report: StrategyReport) -> pd.DataFrame:
    """One row per buy level, highest entry price first."""
    rows = [
        {
            'Level': row.level,
            'Entry Price': row.entry_price,
            'Cost': row.cost,
            'Drawdown': row.drawdown,
            'Return At Target': row.return_if_sold_at_target,
        }
        for row in report.payoff_table
    ]
    return pd.DataFrame(rows, columns=PAYOFF_COLUMNS)


def buffer_frame(report: StrategyReport) -> pd.DataFrame:
    rows = [{'Position': point.position, 'Buffer': point.buffer} for point in report.volatility_buffer_series]
    return pd.DataFrame(rows, columns=BUFFER_COLUMNS)


def _area_chart(
    frame: pd.DataFrame,
    x_field: str,
    x_title: str,
    y_field: str,
    config: AreaChartConfig,
    tooltips: list[alt.Tooltip],
) -> alt.LayerChart:
    axis_color = '#e0e0e0' if config.dark else '#333333'
    base = alt.Chart(frame).encode(x=alt.X(f'{x_field}:Q', title=x_title, axis=alt.Axis(labelColor=axis_color)))

    area = base.mark_area(color=config.color, opacity=0.35, interpolate='monotone').encode(
        y=alt.Y(f'{y_field}:Q', title=y_field, axis=alt.Axis(labelColor=axis_color, format=',.0f')),
        tooltip=tooltips,
    )
    line = base.mark_line(color=config.color, strokeWidth=2, interpolate='monotone').encode(
        y=f'{y_field}:Q',
        tooltip=tooltips,
    )
    return alt.layer(area, line).properties(title=config.title, height=config.height).interactive()


def build_payoff_chart(frame: pd.DataFrame, config: AreaChartConfig) -> alt.LayerChart | None:
    """Return at target against entry price."""
    if frame.empty:
        return None
    tooltips = [
        alt.Tooltip('Level:Q', format='d'),
        alt.Tooltip('Entry Price:Q', format=',.2f'),
        alt.Tooltip('Drawdown:Q', format=',.2f'),
        alt.Tooltip('Return At Target:Q', format=',.2f'),
    ]
    return _area_chart(frame, 'Entry Price', 'Entry Price', 'Return At Target', config, tooltips)


def build_buffer_chart(frame: pd.DataFrame, config: AreaChartConfig) -> alt.LayerChart | None:
    """Cumulative ATR buffer against the number of open positions."""
    if frame.empty:
        return None
    tooltips = [
        alt.Tooltip('Position:Q', format='d'),
        alt.Tooltip('Buffer:Q', format=',.2f'),
    ]
    return _area_chart(frame, 'Position', 'Position', 'Buffer', config, tooltips)
