# -*- coding: utf-8 -*-
import streamlit as st

from chart_utils import (
    AreaChartConfig,
    buffer_frame,
    build_buffer_chart,
    build_payoff_chart,
    payoff_frame,
)
from strategy_engine import ValidationError, analyze
from ui_common import (
    COMMODITY_PRESETS,
    FORM_FIELDS,
    METRIC_CARDS,
    MONTHLY_FIELDS,
    TREND_CHOICES,
    apply_theme,
    format_metric,
    format_monthly,
    load_settings,
    prepare_defaults,
    save_settings,
)

st.set_page_config(page_title="Strategy Analyzer", layout="wide")

saved = load_settings()
commodity_names = list(COMMODITY_PRESETS)

with st.sidebar:
    st.header("Display")
    dark_mode = st.toggle("Dark Mode", value=bool(saved.get("dark_mode", False)))
    saved_commodity = saved.get("commodity", commodity_names[0])
    commodity = st.selectbox(
        "Commodity",
        commodity_names,
        index=commodity_names.index(saved_commodity) if saved_commodity in commodity_names else 0,
    )

defaults = prepare_defaults(saved, commodity)
apply_theme(dark_mode)

st.title(f"💎 {commodity} Strategy Analyzer")
st.caption(
    "Staggered-buy ladder: one lot every buy interval from the current price down to the min price, "
    "each lot exiting one sell interval higher. Returns, win probability and the 15% tax are fixed assumptions."
)

with st.sidebar:
    st.header("Strategy Parameters")
    form: dict = {}
    advanced_keys = {"lotSize", "atr", "averageTradingDaysPerMonth", "trendBias"}
    for key, label, kind in FORM_FIELDS:
        if key in advanced_keys:
            continue
        form[key] = st.number_input(label, value=float(defaults[key]), step=1.0, format="%.2f", key=f"{commodity}_{key}")

    show_advanced = st.toggle("Show Advanced", value=defaults["show_advanced"], key="show_advanced")
    for key, label, kind in FORM_FIELDS:
        if key not in advanced_keys:
            continue
        if not show_advanced:
            # Hidden fields keep their saved or preset values.
            form[key] = defaults[key]
            continue
        widget_key = f"{commodity}_{key}"
        if kind == "choice":
            form[key] = st.selectbox(label, TREND_CHOICES, index=TREND_CHOICES.index(defaults[key]), key=widget_key)
        elif kind == "int":
            form[key] = st.number_input(label, value=int(defaults[key]), step=1, min_value=1, key=widget_key)
        else:
            form[key] = st.number_input(label, value=float(defaults[key]), step=1.0, format="%.2f", key=widget_key)

    if st.button("Save Settings", key="save_settings"):
        save_settings({**form, "commodity": commodity, "dark_mode": dark_mode, "show_advanced": show_advanced})
        st.success("Settings saved to config/.")

run = st.button("Analyze Strategy", type="primary", key="analyze")

if run:
    try:
        st.session_state["report"] = analyze(form)
        st.session_state["report_commodity"] = commodity
    except ValidationError as exc:
        st.session_state.pop("report", None)
        st.error("Invalid strategy input:")
        for message in exc.errors:
            st.markdown(f"- {message}")

report = st.session_state.get("report")

if report is not None and st.session_state.get("report_commodity") == commodity:
    if report.degenerate:
        st.warning("Min price is above the current price, so no buy levels can be placed. ROI is undefined.")

    st.subheader("📊 Strategy Insights")
    for start in range(0, len(METRIC_CARDS), 3):
        cols = st.columns(3)
        for col, card in zip(cols, METRIC_CARDS[start:start + 3]):
            col.metric(card.label, format_metric(card, report), help=card.description)

    st.markdown("---")
    st.subheader("📅 Monthly Strategy Forecast")
    monthly_cols = st.columns(len(MONTHLY_FIELDS))
    for col, (key, label) in zip(monthly_cols, MONTHLY_FIELDS):
        col.metric(label, format_monthly(key, report))

    payoff = payoff_frame(report)
    buffers = buffer_frame(report)

    payoff_chart = build_payoff_chart(payoff, AreaChartConfig(title="📈 Payoff Chart", dark=dark_mode))
    if payoff_chart is not None:
        st.altair_chart(payoff_chart, use_container_width=True)

    buffer_chart = build_buffer_chart(
        buffers, AreaChartConfig(title="📉 Volatility Buffer Chart", color="#82ca9d", dark=dark_mode)
    )
    if buffer_chart is not None:
        st.altair_chart(buffer_chart, use_container_width=True)

    if not payoff.empty:
        st.subheader("📋 Payoff Table")
        st.dataframe(payoff, use_container_width=True, hide_index=True, height=360)
        st.download_button(
            "Payoff CSV Download",
            data=payoff.to_csv(index=False).encode("utf-8-sig"),
            file_name=f"payoff_{commodity.lower().replace(' ', '_')}.csv",
            mime="text/csv",
        )
