"""
Delivery Performance Monitor — Interactive Dashboard

Run with:  streamlit run app.py
"""

import asyncio
import sys
from pathlib import Path

import plotly.graph_objects as go
import streamlit as st

sys.path.insert(0, str(Path(__file__).resolve().parent))

from delivery_dashboard.advisor import (
    GeminiProvider,
    RequestGuard,
    generate_executive_brief,
    get_conversational_insight,
    request_corrective_actions,
    run_guarded,
)
from delivery_dashboard.config import APP_TITLE, EXAMPLE_PROMPTS, KPI_REGISTRY, REGIONS
from delivery_dashboard.dashboard import (
    get_action_log_table,
    get_available_weeks,
    get_kpi_series,
    get_overall_metrics,
)
from delivery_dashboard.models import KpiName
from delivery_dashboard.simulator import generate_delivery_csv
from delivery_dashboard.state import (
    SessionState,
    append_chat,
    apply_action,
    apply_upload,
    apply_upload_error,
    brief_for_week,
    discard_brief,
    select_kpi,
    select_region,
    set_brief,
)

# ---------------------------------------------------------------------------
# Page config
# ---------------------------------------------------------------------------
st.set_page_config(
    page_title=APP_TITLE,
    page_icon="🚚",
    layout="wide",
    initial_sidebar_state="expanded",
)

RAG_COLORS = {
    "green": "#2ecc71",
    "amber": "#f39c12",
    "red": "#e74c3c",
    "grey": "#95a5a6",
}


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------
@st.cache_resource
def get_provider() -> GeminiProvider:
    return GeminiProvider()


@st.cache_data
def sample_csv() -> str:
    return generate_delivery_csv()


if "app_state" not in st.session_state:
    st.session_state.app_state = SessionState()
    st.session_state.guard = RequestGuard()
    st.session_state.recommendations = {}


def _set_state(new_state: SessionState) -> None:
    st.session_state.app_state = new_state


def _on_upload(uploaded_file) -> None:
    if uploaded_file is None:
        _set_state(apply_upload_error(st.session_state.app_state, "Please select a file first."))
        return
    try:
        csv_text = uploaded_file.getvalue().decode("utf-8-sig")
    except UnicodeDecodeError:
        _set_state(apply_upload_error(st.session_state.app_state, "Failed to read the file."))
        return
    _apply_csv(csv_text)


def _apply_csv(csv_text: str) -> None:
    new_state = apply_upload(st.session_state.app_state, csv_text)
    if not new_state.upload_status.is_error:
        st.session_state.recommendations = {}
    _set_state(new_state)


def _on_get_actions(alert) -> None:
    actions = asyncio.run(
        request_corrective_actions(alert, get_provider(), st.session_state.guard)
    )
    if actions is not None:
        st.session_state.recommendations[alert.identity] = actions


def _on_log_action(alert, action: str) -> None:
    _set_state(apply_action(st.session_state.app_state, alert, action))


def _on_generate_brief(week: int) -> None:
    state = st.session_state.app_state
    brief = asyncio.run(run_guarded(
        st.session_state.guard,
        f"brief:{week}",
        generate_executive_brief,
        list(state.kpi_data),
        state.alerts,
        week,
        get_provider(),
    ))
    if brief is not None:
        _set_state(set_brief(st.session_state.app_state, week, brief))


def _send_chat(prompt: str) -> None:
    state = append_chat(st.session_state.app_state, "user", prompt)
    _set_state(state)
    answer = asyncio.run(run_guarded(
        st.session_state.guard,
        "chat",
        get_conversational_insight,
        prompt,
        list(state.kpi_data),
        get_provider(),
    ))
    if answer is not None:
        _set_state(append_chat(st.session_state.app_state, "model", answer))


# ---------------------------------------------------------------------------
# Sidebar
# ---------------------------------------------------------------------------
st.sidebar.title(APP_TITLE)
st.sidebar.markdown("Weekly delivery KPIs by region")
st.sidebar.divider()

uploaded = st.sidebar.file_uploader("Delivery data (CSV)", type=["csv"])
st.sidebar.button("Upload & Process", on_click=_on_upload, args=(uploaded,), disabled=uploaded is None)
st.sidebar.button("Load sample data", on_click=_apply_csv, args=(sample_csv(),))

st.sidebar.caption(
    "**Required headers:** Order_Date, Delivery_Time, Store_Latitude, Store_Longitude.  \n"
    "**Optional headers for more KPIs:** Order_Accurate, Customer_Satisfaction, "
    "Agent_Rating, Order_Time, Pickup_Time."
)

state: SessionState = st.session_state.app_state

if state.upload_status is not None:
    if state.upload_status.is_error:
        st.sidebar.error(state.upload_status.message)
    else:
        st.sidebar.success(state.upload_status.message)

if state.has_data:
    st.sidebar.divider()
    kpi_options = [k.value for k in state.available_kpis]
    chosen_kpi = st.sidebar.radio(
        "Select KPI", kpi_options, index=kpi_options.index(state.selected_kpi.value)
    )
    region_options = [r.value for r in REGIONS]
    chosen_region = st.sidebar.radio(
        "Select Region", region_options, index=region_options.index(state.selected_region.value)
    )
    state = select_region(select_kpi(state, chosen_kpi), chosen_region)
    _set_state(state)


# ---------------------------------------------------------------------------
# Helper: metric card
# ---------------------------------------------------------------------------
def metric_card(label: str, value: str, color: str = "#3498db"):
    st.markdown(
        f"""
        <div style="background: linear-gradient(135deg, {color}22, {color}11);
                    border-left: 4px solid {color};
                    border-radius: 8px; padding: 16px; margin-bottom: 8px;">
            <div style="font-size: 13px; color: #888; font-weight: 600; text-transform: uppercase;">{label}</div>
            <div style="font-size: 28px; font-weight: 700; color: #222; margin: 4px 0;">{value}</div>
        </div>
        """,
        unsafe_allow_html=True,
    )


st.title(APP_TITLE)

metrics = get_overall_metrics(state)
cards = [
    (f"Overall {state.selected_kpi.value}", metrics["selected_kpi"]["value"], "#1abc9c"),
    ("Active Alerts", metrics["open_alerts"], RAG_COLORS["amber"]),
]
if KpiName.AVERAGE_AGENT_RATING in state.available_kpis:
    cards.append(("Avg. Agent Rating", f"{metrics['agent_rating']['value']} / 5", "#f1c40f"))
if KpiName.ORDER_PREP_TIME in state.available_kpis:
    prep = metrics["prep_time"]
    cards.append(("Avg. Prep Time", f"{prep['value']} {prep['unit']}", "#3498db"))

cols = st.columns(len(cards))
for col, (label, value, color) in zip(cols, cards):
    with col:
        metric_card(label, value, color)

if not state.has_data:
    st.info("Awaiting data. Upload a delivery data CSV file (or load the sample) to begin the analysis.")
    st.stop()

st.divider()

# ===========================================================================
# KPI trend + alerts
# ===========================================================================
chart_col, alerts_col = st.columns(2)

with chart_col:
    kpi = state.selected_kpi
    region = state.selected_region
    registry = KPI_REGISTRY[kpi]
    series = get_kpi_series(list(state.kpi_data), region, kpi)

    st.subheader(f"{kpi.value} — {region.value}")
    if series.empty:
        st.info(f"No {kpi.value} data for {region.value}.")
    else:
        fig = go.Figure()
        fig.add_trace(go.Scatter(
            x=series["week"],
            y=series["value"],
            name=kpi.value,
            mode="lines+markers",
            line=dict(color="#3498db", width=2),
            marker=dict(size=10, color=[RAG_COLORS[r] for r in series["rag"]]),
        ))
        fig.add_trace(go.Scatter(
            x=series["week"],
            y=series["target"],
            name="Target",
            mode="lines",
            line=dict(color="#e74c3c", width=2, dash="dash"),
        ))
        fig.update_layout(
            xaxis_title="Week",
            yaxis_title=registry["unit"],
            height=400,
            plot_bgcolor="rgba(0,0,0,0)",
            margin=dict(l=10, r=10, t=10, b=40),
        )
        st.plotly_chart(fig, use_container_width=True)

with alerts_col:
    alerts = state.alerts
    if not alerts:
        st.success("No active alerts. All regions are meeting their KPI targets.")
    else:
        st.subheader(f"Active KPI Alerts ({len(alerts)})")
        with st.container(height=420):
            for alert in alerts:
                unit = KPI_REGISTRY[alert.kpi]["unit"]
                st.markdown(
                    f"**{alert.region.value} — Week {alert.week}**  \n"
                    f"{alert.kpi.value} at :red[**{alert.value} {unit}**] (Target: {alert.target} {unit})"
                )
                recs = st.session_state.recommendations.get(alert.identity)
                if recs is None:
                    pending = st.session_state.guard.is_pending(alert.identity)
                    st.button(
                        "Analyzing..." if pending else "Get Actions",
                        key=f"get:{alert.identity}",
                        on_click=_on_get_actions,
                        args=(alert,),
                        disabled=pending,
                    )
                else:
                    for i, action in enumerate(recs):
                        a_col, b_col = st.columns([4, 1])
                        a_col.write(action)
                        b_col.button(
                            "Log Action",
                            key=f"log:{alert.identity}:{i}",
                            on_click=_on_log_action,
                            args=(alert, action),
                        )
                st.divider()

# ===========================================================================
# Action tracker
# ===========================================================================
st.subheader("Corrective Action Tracker")
actions_df = get_action_log_table(list(state.tracked_actions))
if actions_df.empty:
    st.caption("No actions have been logged yet.")
else:
    actions_df["change"] = actions_df.apply(
        lambda r: f"{r['previous_value']} → {r['new_value']} {'▲' if r['improved'] else '▼'}",
        axis=1,
    )
    st.dataframe(
        actions_df[["region", "week", "kpi", "action_taken", "change", "outcome", "timestamp"]],
        use_container_width=True,
        hide_index=True,
    )

st.divider()

# ===========================================================================
# Executive brief
# ===========================================================================
st.subheader("Automated Weekly Brief")
weeks = get_available_weeks(list(state.kpi_data))
brief_week = st.selectbox("Week", weeks, format_func=lambda w: f"Week {w}")

shown_brief = brief_for_week(state, brief_week)
if shown_brief is None:
    st.button(
        "Generate Report",
        on_click=_on_generate_brief,
        args=(brief_week,),
        disabled=st.session_state.guard.is_pending(f"brief:{brief_week}"),
    )
else:
    with st.container(border=True):
        st.markdown(shown_brief.content)
    d_col, c_col = st.columns([1, 5])
    d_col.button("Discard", on_click=lambda: _set_state(discard_brief(st.session_state.app_state)))
    c_col.download_button(
        "Download brief",
        data=shown_brief.content,
        file_name=f"delivery_brief_week_{shown_brief.week}.md",
        mime="text/markdown",
    )

st.divider()

# ===========================================================================
# AI playground
# ===========================================================================
st.subheader("AI Playground")

if not state.chat_messages:
    st.caption("Ask me anything about your data.")
    example_cols = st.columns(len(EXAMPLE_PROMPTS))
    for col, example in zip(example_cols, EXAMPLE_PROMPTS):
        col.button(example, on_click=_send_chat, args=(example,), key=f"example:{example}")

for message in state.chat_messages:
    with st.chat_message("user" if message.role == "user" else "assistant"):
        st.markdown(message.content)

prompt = st.chat_input(
    "Ask about trends, anomalies, or recommendations...",
    disabled=st.session_state.guard.is_pending("chat"),
)
if prompt and prompt.strip():
    _send_chat(prompt.strip())
    st.rerun()
