"""Chart generation using Plotly."""

from typing import Any, Dict, List

import plotly.graph_objects as go

from ..engine.accumulator import SCALE

THEME = {
    "text": "#e8eaed",
    "text_secondary": "#9aa0a6",
    "grid": "rgba(30, 33, 36, 0.8)",
    "cyan": "#00d4ff",
    "cyan_fill": "rgba(0, 212, 255, 0.12)",
    "amber": "#ffab00",
    "red": "#ff5252",
    "green": "#00e676",
}

# Cycled for per-account traces
SERIES_COLORS = [THEME["cyan"], THEME["amber"], THEME["green"], THEME["red"], "#b388ff", "#80cbc4"]


def apply_dark_layout(fig: go.Figure, title: str, x_title: str, y_title: str, showlegend: bool = True) -> None:
    """Apply the dark chart layout shared by all ledger charts."""
    fig.update_layout(
        title={"text": title, "x": 0, "xanchor": "left", "font": {"size": 11, "color": THEME["text_secondary"]}},
        xaxis_title=x_title,
        yaxis_title=y_title,
        hovermode="x unified",
        template="plotly_dark",
        height=340,
        margin=dict(l=50, r=20, t=40, b=40),
        showlegend=showlegend,
        legend=dict(orientation="h", yanchor="bottom", y=1.02, xanchor="left", x=0, bgcolor="rgba(0,0,0,0)"),
        plot_bgcolor="rgba(8, 9, 10, 1)",
        paper_bgcolor="rgba(8, 9, 10, 1)",
        font={"color": THEME["text"], "size": 11},
        xaxis=dict(gridcolor=THEME["grid"], zerolinecolor=THEME["grid"]),
        yaxis=dict(gridcolor=THEME["grid"], zerolinecolor=THEME["grid"])
    )


def create_accumulator_chart(snapshots: List[Dict[str, Any]]) -> go.Figure:
    """Reward per share (unscaled) and total shares over time."""
    times = [s['t'] for s in snapshots]

    fig = go.Figure()

    fig.add_trace(go.Scatter(
        x=times,
        y=[s['acc_per_share'] / SCALE for s in snapshots],
        name='Reward per share',
        mode='lines+markers',
        line=dict(color=THEME["cyan"], width=2, shape='hv'),
        fill='tozeroy',
        fillcolor=THEME["cyan_fill"]
    ))

    fig.add_trace(go.Scatter(
        x=times,
        y=[s['total_shares'] for s in snapshots],
        name='Total shares',
        mode='lines',
        line=dict(color=THEME["amber"], width=2, dash='dot', shape='hv'),
        yaxis='y2'
    ))

    apply_dark_layout(fig, "Pool Accumulator", "Time", "Reward per share")
    fig.update_layout(yaxis2=dict(title="Shares", overlaying='y', side='right', showgrid=False))

    return fig


def create_pending_chart(snapshots: List[Dict[str, Any]]) -> go.Figure:
    """Pending reward per account after each step."""
    times = [s['t'] for s in snapshots]
    accounts = [key.split('.', 1)[1] for key in snapshots[0] if key.startswith('pending.')] if snapshots else []

    fig = go.Figure()

    for i, account in enumerate(accounts):
        fig.add_trace(go.Scatter(
            x=times,
            y=[s[f'pending.{account}'] for s in snapshots],
            name=account,
            mode='lines+markers',
            line=dict(color=SERIES_COLORS[i % len(SERIES_COLORS)], width=2)
        ))

    apply_dark_layout(fig, "Pending Rewards", "Time", "Reward")

    return fig
