# charts.py – figures Plotly
from __future__ import annotations

from datetime import datetime

import plotly.graph_objects as go

from progress_snapshots import normalize_pb_number


def _snapshot_day(raw: str | None) -> datetime | None:
    if not raw:
        return None
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return None


def history_points(snapshots: list[dict]) -> list[dict]:
    """Oldest-first points for the progress history chart."""
    points = []
    for snap in reversed(snapshots):
        day = _snapshot_day(snap.get("date"))
        if day is None:
            continue
        points.append(
            {
                "date": day,
                "progress": float(snap.get("overall_progress") or 0.0),
                "label": f"PB{normalize_pb_number(snap.get('pb_number'))}",
            }
        )
    return points


def progress_history(snapshots: list[dict], live_progress: float | None = None):
    points = history_points(snapshots)
    x = [p["date"] for p in points]
    y = [p["progress"] for p in points]
    labels = [p["label"] for p in points]
    deltas = [0.0] + [b - a for a, b in zip(y, y[1:])]

    fig = go.Figure()
    fig.add_bar(
        x=x,
        y=deltas,
        name="Progress gained %",
        opacity=0.55,
        marker_color="#2fc192",
        hovertemplate="%{x|%d %b %Y}<br>Gained: %{y:.2f}%<extra></extra>",
    )
    fig.add_trace(
        go.Scatter(
            x=x,
            y=y,
            name="Certified progress %",
            mode="lines+markers+text",
            text=labels,
            textposition="top center",
            line=dict(width=3, color="#4b6ff4"),
            marker=dict(size=7),
            hovertemplate="%{x|%d %b %Y}<br>%{text}: %{y:.2f}%<extra></extra>",
        )
    )
    if live_progress is not None and x:
        fig.add_hline(
            y=live_progress,
            line=dict(width=2, dash="dot", color="#e9c75f"),
            annotation_text=f"Live {live_progress:.2f}%",
            annotation_position="bottom right",
        )
    fig.update_layout(
        height=360,
        barmode="overlay",
        hovermode="x unified",
        margin=dict(l=12, r=40, t=10, b=34),
        paper_bgcolor="#11162d",
        plot_bgcolor="#11162d",
        font=dict(color="#e8eefc", size=13, family="Inter, 'Segoe UI', sans-serif"),
        legend=dict(orientation="h", yanchor="bottom", y=1.05, xanchor="left", x=0),
    )
    fig.update_yaxes(
        title="%",
        rangemode="tozero",
        range=[0, 105],
        gridcolor="rgba(255,255,255,0.08)",
        tickfont=dict(size=12),
    )
    fig.update_xaxes(
        showgrid=True,
        gridcolor="rgba(255,255,255,0.08)",
        tickfont=dict(size=12),
        tickformat="%d %b",
    )
    return fig
