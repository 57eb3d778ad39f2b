"""
Protocol Risk Dashboard - Streamlit Application.

Risk analysis dashboard for DeFi protocols featuring:
- JSON protocol upload or the bundled demo protocol
- Six-category risk scoring (economic, governance, liquidity,
  composability, MEV, game theory)
- Findings explorer with attack vectors and mitigations
- Game-theoretic insights (Nash equilibria, dominant strategies)
- Scoring methodology and thresholds

Run with: streamlit run streamlit_app.py
"""

import streamlit as st
import pandas as pd
import json
import sys
import os
from typing import Dict, Any
import plotly.express as px
import plotly.graph_objects as go

# Add current directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from thresholds import (
    SEVERITY_SCALE,
    CATEGORY_WEIGHTS,
    ECONOMIC_THRESHOLDS,
    GOVERNANCE_THRESHOLDS,
    LIQUIDITY_THRESHOLDS,
    MEV_THRESHOLDS,
    GAME_THEORY_THRESHOLDS,
    COMPOSABILITY_THRESHOLDS,
)
from risk_types import MissingRequiredField, InvalidProtocolData
from protocol_score import score_protocol, get_report_findings, DEMO_PROTOCOL
from data_adapter import load_protocol_input, validate_protocol_data
from report_renderer import render_markdown, report_to_json
from risk_settings import __version__

# =============================================================================
# PAGE CONFIG
# =============================================================================

st.set_page_config(
    page_title="Protocol Risk Dashboard",
    page_icon="🛡️",
    layout="wide",
    initial_sidebar_state="expanded",
)

SEVERITY_COLORS = {
    "low": "#22c55e",
    "medium": "#06b6d4",
    "high": "#eab308",
    "critical": "#ef4444",
}


# =============================================================================
# SESSION STATE
# =============================================================================

def init_session_state():
    """Initialize session state variables."""
    defaults = {
        "protocol_data": None,
        "report": None,
        "analysis_run": False,
    }
    for key, value in defaults.items():
        if key not in st.session_state:
            st.session_state[key] = value


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def get_severity_color(severity: str) -> str:
    return SEVERITY_COLORS.get(severity, "#6b7280")


def format_usd(value) -> str:
    if value is None:
        return "N/A"
    if value >= 1e6:
        return f"${value / 1e6:,.1f}M"
    if value >= 1e3:
        return f"${value / 1e3:,.0f}k"
    return f"${value:,.0f}"


def thresholds_frame(table: Dict[str, Dict[str, Any]]) -> pd.DataFrame:
    return pd.DataFrame([
        {"Threshold": key, "Value": str(cfg["value"]), "Justification": cfg["justification"]}
        for key, cfg in table.items()
    ])


def run_analysis():
    data = st.session_state.get("protocol_data")
    if not data:
        st.warning("Load a protocol first.")
        return
    try:
        protocol = load_protocol_input(data)
    except (MissingRequiredField, InvalidProtocolData) as e:
        st.error(f"Invalid protocol data: {e}")
        return

    with st.spinner("Scoring protocol..."):
        st.session_state.report = score_protocol(protocol)
        st.session_state.analysis_run = True
    st.success("Analysis complete. Open the **Risk Score** tab.")


# =============================================================================
# TAB 0: CONFIGURATION
# =============================================================================

def render_tab_configuration():
    st.header("⚙️ Protocol Input")
    st.markdown("Load a protocol description for analysis.")

    method = st.radio("Input Method", ["Upload JSON", "Demo Protocol"], horizontal=True)

    if method == "Upload JSON":
        uploaded_file = st.file_uploader("Choose a JSON file", type=["json"])
        if uploaded_file is not None:
            try:
                st.session_state.protocol_data = json.load(uploaded_file)
            except json.JSONDecodeError as e:
                st.error(f"Error loading JSON: {e}")
                return
    else:
        st.session_state.protocol_data = DEMO_PROTOCOL.to_dict()

    data = st.session_state.get("protocol_data")
    if data:
        validation = validate_protocol_data(data)
        if validation["is_valid"]:
            st.success(f"✅ Loaded protocol: **{data.get('name', 'Unknown')}**")
        for error in validation["errors"]:
            st.error(error)
        for warning in validation["warnings"]:
            st.warning(warning)

        with st.expander("View Protocol Data", expanded=False):
            st.json(data)

    st.divider()

    col1, col2, col3 = st.columns([1, 2, 1])
    with col2:
        if st.button("🚀 Run Analysis", type="primary", use_container_width=True):
            run_analysis()


# =============================================================================
# TAB 1: RISK SCORE
# =============================================================================

def render_tab_risk_score():
    st.header("📊 Risk Score")

    if not st.session_state.get("analysis_run"):
        st.info("Run an analysis from the **Protocol Input** tab.")
        return

    report = st.session_state.report

    st.markdown(f"## {report.protocol}")
    st.caption(report.address)

    col1, col2, col3 = st.columns([1, 2, 1])
    with col2:
        color = get_severity_color(report.overall_severity)
        label = SEVERITY_SCALE[report.overall_severity]["label"]
        st.markdown(f"""
        <div style="text-align: center; padding: 20px; background-color: {color}; border-radius: 10px; color: white;">
            <h1 style="margin: 0;">{report.overall_score:.1f} / 10</h1>
            <h2 style="margin: 0;">{label} Risk</h2>
            <p style="margin: 5px 0 0 0;">{SEVERITY_SCALE[report.overall_severity]["description"]}</p>
        </div>
        """, unsafe_allow_html=True)

    st.markdown("")
    st.markdown(report.summary)

    st.divider()

    st.subheader("Category Breakdown")
    cols = st.columns(3)
    for i, (key, cat) in enumerate(report.categories.items()):
        with cols[i % 3]:
            cat_color = get_severity_color(cat.severity)
            st.markdown(f"""
            <div style="padding: 10px; border-left: 4px solid {cat_color}; margin-bottom: 10px;">
                <strong>{cat.name}</strong><br>
                <span style="font-size: 24px; color: {cat_color};">{cat.score:.1f}</span>
                <span>({cat.severity})</span><br>
                <small>Weight: {CATEGORY_WEIGHTS[key]['weight'] * 100:.0f}% | Findings: {len(cat.findings)}</small>
            </div>
            """, unsafe_allow_html=True)

    names = [cat.name for cat in report.categories.values()]
    scores = [cat.score for cat in report.categories.values()]

    col1, col2 = st.columns(2)
    with col1:
        fig = px.bar(
            x=names,
            y=scores,
            color=[cat.severity for cat in report.categories.values()],
            color_discrete_map=SEVERITY_COLORS,
            labels={"x": "Category", "y": "Risk Score", "color": "Severity"},
            title="Category Risk Scores",
        )
        fig.update_layout(yaxis_range=[0, 10], height=380)
        st.plotly_chart(fig, use_container_width=True)
    with col2:
        fig = go.Figure()
        fig.add_trace(go.Scatterpolar(
            r=scores + scores[:1],
            theta=names + names[:1],
            fill="toself",
            name=report.protocol,
        ))
        fig.update_layout(
            polar=dict(radialaxis=dict(visible=True, range=[0, 10])),
            showlegend=False,
            title="Risk Profile",
            height=380,
        )
        st.plotly_chart(fig, use_container_width=True)

    if report.recommendations:
        st.subheader("Top Recommendations")
        for i, rec in enumerate(report.recommendations, 1):
            st.markdown(f"{i}. {rec}")

    st.divider()
    col1, col2 = st.columns(2)
    with col1:
        st.download_button(
            "Download JSON",
            data=report_to_json(report),
            file_name="risk_report.json",
            mime="application/json",
        )
    with col2:
        st.download_button(
            "Download Markdown",
            data=render_markdown(report),
            file_name="risk_report.md",
            mime="text/markdown",
        )


# =============================================================================
# TAB 2: FINDINGS
# =============================================================================

def render_tab_findings():
    st.header("🔎 Findings")

    if not st.session_state.get("analysis_run"):
        st.info("Run an analysis first.")
        return

    report = st.session_state.report
    rows = get_report_findings(report)
    if not rows:
        st.success("No findings.")
        return

    df = pd.DataFrame(rows)
    categories = sorted(df["category"].unique())
    selected = st.multiselect("Categories", categories, default=categories)
    min_confidence = st.slider("Minimum confidence", 0.0, 1.0, 0.0, 0.05)

    filtered = df[df["category"].isin(selected) & (df["confidence"] >= min_confidence)]
    st.caption(f"{len(filtered)} of {len(df)} findings")
    st.dataframe(
        filtered[["category", "title", "confidence", "concept"]],
        use_container_width=True,
        hide_index=True,
    )

    for _, row in filtered.iterrows():
        with st.expander(f"{row['category']} - {row['title']} ({row['confidence']:.2f})"):
            st.markdown(row["description"])
            if row["attack_vector"]:
                st.markdown(f"**Attack vector:** {row['attack_vector']}")
            if row["mitigation"]:
                st.markdown(f"**Mitigation:** {row['mitigation']}")


# =============================================================================
# TAB 3: GAME THEORY
# =============================================================================

def render_tab_game_theory():
    st.header("♟️ Game-Theoretic Analysis")

    if not st.session_state.get("analysis_run"):
        st.info("Run an analysis first.")
        return

    report = st.session_state.report

    col1, col2 = st.columns(2)
    with col1:
        st.subheader("Nash Equilibria")
        if report.nash_equilibria:
            for eq in report.nash_equilibria:
                st.markdown(f"- {eq}")
        else:
            st.caption("None identified.")
    with col2:
        st.subheader("Dominant Strategies")
        if report.dominant_strategies:
            for strategy in report.dominant_strategies:
                st.markdown(f"- {strategy}")
        else:
            st.caption("None identified.")

    st.divider()
    for finding in report.categories["gameTheory"].findings:
        context = finding.game_theory.to_dict() if finding.game_theory else {}
        with st.expander(f"{finding.title} ({finding.confidence:.2f})"):
            st.markdown(finding.description)
            if finding.attack_vector:
                st.markdown(f"**Attack vector:** {finding.attack_vector}")
            if context:
                st.json(context)


# =============================================================================
# TAB 4: POOLS
# =============================================================================

def render_tab_pools():
    st.header("💱 Liquidity Pools")

    data = st.session_state.get("protocol_data") or {}
    try:
        protocol = load_protocol_input(data) if data else None
    except (MissingRequiredField, InvalidProtocolData) as e:
        st.error(str(e))
        return

    if protocol is None or not protocol.pools:
        st.info("No pool data supplied.")
        return

    df = pd.DataFrame([
        {
            "Pair": pool.pair,
            "Address": pool.address,
            "Liquidity": pool.liquidity,
            "Volume 24h": pool.volume24h,
            "Fee": pool.fees,
            "Turnover": pool.volume24h / (pool.liquidity or 1),
            "Fee APR %": (pool.volume24h * pool.fees * 365 / pool.liquidity * 100) if pool.liquidity else None,
        }
        for pool in protocol.pools
    ])

    col1, col2, col3 = st.columns(3)
    col1.metric("Pools", len(df))
    col2.metric("Total Liquidity", format_usd(df["Liquidity"].sum()))
    col3.metric("TVL", format_usd(protocol.tvl))

    fig = go.Figure()
    fig.add_trace(go.Bar(x=df["Pair"], y=df["Liquidity"], name="Liquidity"))
    fig.add_trace(go.Bar(x=df["Pair"], y=df["Volume 24h"], name="Volume 24h"))
    fig.update_layout(barmode="group", title="Liquidity vs Daily Volume", yaxis_title="USD", height=380)
    st.plotly_chart(fig, use_container_width=True)

    st.dataframe(df, use_container_width=True, hide_index=True)


# =============================================================================
# TAB 5: METHODOLOGY
# =============================================================================

def render_tab_methodology():
    st.header("📚 Scoring Methodology")

    st.markdown("""
    Each category analyzer applies fixed threshold rules to the supplied protocol data and
    produces a **0-10 risk score** (higher = riskier) with findings.

    - **Overall score** = weighted mean of category scores
    - **Overall severity** = the highest category severity
    - Missing sections degrade to low-confidence placeholder findings
    """)

    st.subheader("Severity Scale")
    st.dataframe(pd.DataFrame([
        {"Severity": cfg["label"], "Score Range": f"{cfg['min']} - {cfg['max']}", "Meaning": cfg["description"]}
        for cfg in SEVERITY_SCALE.values()
    ]), use_container_width=True, hide_index=True)

    st.subheader("Category Weights")
    st.dataframe(pd.DataFrame([
        {"Category": key, "Weight": f"{cfg['weight'] * 100:.0f}%", "Justification": cfg["justification"]}
        for key, cfg in CATEGORY_WEIGHTS.items()
    ]), use_container_width=True, hide_index=True)

    tables = [
        ("Economic", ECONOMIC_THRESHOLDS),
        ("Governance", GOVERNANCE_THRESHOLDS),
        ("Liquidity", LIQUIDITY_THRESHOLDS),
        ("MEV", MEV_THRESHOLDS),
        ("Game Theory", GAME_THEORY_THRESHOLDS),
        ("Composability", COMPOSABILITY_THRESHOLDS),
    ]
    for title, table in tables:
        with st.expander(f"{title} Thresholds"):
            st.dataframe(thresholds_frame(table), use_container_width=True, hide_index=True)


# =============================================================================
# MAIN APP
# =============================================================================

def main():
    init_session_state()

    with st.sidebar:
        st.title("🛡️ Protocol Risk Dashboard")

        data = st.session_state.get("protocol_data")
        if data:
            st.markdown(f"**Protocol:** {data.get('name', 'N/A')}")

            report = st.session_state.get("report")
            if report:
                color = get_severity_color(report.overall_severity)
                st.markdown(
                    f"**Score:** <span style='color:{color}'>{report.overall_score:.1f} "
                    f"({report.overall_severity})</span>",
                    unsafe_allow_html=True,
                )

        st.divider()
        st.caption(f"v{__version__}")

    tabs = st.tabs([
        "⚙️ Protocol Input",
        "📊 Risk Score",
        "🔎 Findings",
        "♟️ Game Theory",
        "💱 Pools",
        "📚 Methodology",
    ])

    with tabs[0]:
        render_tab_configuration()
    with tabs[1]:
        render_tab_risk_score()
    with tabs[2]:
        render_tab_findings()
    with tabs[3]:
        render_tab_game_theory()
    with tabs[4]:
        render_tab_pools()
    with tabs[5]:
        render_tab_methodology()


if __name__ == "__main__":
    main()
