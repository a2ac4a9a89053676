import warnings

import altair as alt

from chart_utils import (
    BUFFER_COLUMNS,
    PAYOFF_COLUMNS,
    AreaChartConfig,
    buffer_frame,
    build_buffer_chart,
    build_payoff_chart,
    payoff_frame,
)
from strategy_engine import DegenerateInputWarning, StrategyInput, analyze


def _report(**overrides):
    params = dict(current_price=110000, min_price=70000, buy_interval=2000, sell_interval=2000, margin_per_lot=16000)
    params.update(overrides)
    return analyze(StrategyInput(**params))


def test_payoff_frame_has_one_row_per_level():
    report = _report()
    frame = payoff_frame(report)

    assert list(frame.columns) == PAYOFF_COLUMNS
    assert len(frame) == report.total_positions
    assert frame["Entry Price"].iloc[0] == 110000
    assert frame["Entry Price"].iloc[-1] == 70000
    assert frame["Return At Target"].is_monotonic_increasing


def test_buffer_frame_tracks_positions():
    frame = buffer_frame(_report(atr=500))

    assert list(frame.columns) == BUFFER_COLUMNS
    assert frame["Position"].tolist() == list(range(1, 22))
    assert frame["Buffer"].iloc[-1] == 500 * 21


def test_charts_are_built_for_a_valid_ladder():
    report = _report()
    config = AreaChartConfig(title="Payoff", dark=True)

    assert isinstance(build_payoff_chart(payoff_frame(report), config), alt.LayerChart)
    assert isinstance(build_buffer_chart(buffer_frame(report), config), alt.LayerChart)


def test_degenerate_report_has_empty_frames_and_no_charts():
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", DegenerateInputWarning)
        report = _report(current_price=100, min_price=150, buy_interval=10)

    payoff = payoff_frame(report)
    buffers = buffer_frame(report)
    assert payoff.empty and list(payoff.columns) == PAYOFF_COLUMNS
    assert buffers.empty
    assert build_payoff_chart(payoff, AreaChartConfig(title="Payoff")) is None
    assert build_buffer_chart(buffers, AreaChartConfig(title="Buffer")) is None
