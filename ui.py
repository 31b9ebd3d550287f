# ui.py - theming + small UI kit for the progress report page
import html

import streamlit as st


def inject_theme():
    css = """
    <style>
      :root{
        --bg:#0d1330;
        --card:#161d3a;
        --border:rgba(255,255,255,0.08);
        --text:#e8eefc;
        --muted:#9da8c6;
        --accent:#e9c75f;
        --accent-2:#2fc192;
        --accent-3:#4b6ff4;
        --radius:14px;
      }
      body, [data-testid="stAppViewContainer"], .main{
        background:var(--bg);
        color:var(--text);
        font-family:'DM Sans','Segoe UI',sans-serif;
        font-size:15px;
      }
      .block-container{ padding:18px 24px 40px 24px; }
      header,[data-testid="stToolbar"]{ background:transparent !important; }
      .card{
        background:linear-gradient(180deg, rgba(22,29,58,.96), rgba(13,19,48,.92));
        border:1px solid var(--border);
        border-radius:var(--radius);
        padding:14px 18px;
        margin-bottom:12px;
      }
      .card .label{ color:var(--muted); font-size:.82rem; text-transform:uppercase; letter-spacing:.3px; }
      .card .value{ font-size:1.6rem; font-weight:700; color:var(--text); }
      .bar{ height:12px; border-radius:6px; background:rgba(255,255,255,.08); overflow:hidden; margin-top:8px; }
      .bar > span{ display:block; height:100%; border-radius:6px; background:var(--accent-3); }
      .editing-banner{
        border:1px solid rgba(233,199,95,.45); background:rgba(233,199,95,.08);
        border-radius:10px; padding:8px 12px; margin:6px 0 12px; color:#f6e7b0;
      }
    </style>
    """
    st.markdown(css, unsafe_allow_html=True)


def progress_card(label: str, value: float, caption: str | None = None) -> None:
    width = max(0.0, min(100.0, float(value)))
    extra = f'<div class="label" style="margin-top:6px">{html.escape(caption)}</div>' if caption else ""
    st.markdown(
        f"""
        <div class="card">
          <div class="label">{html.escape(label)}</div>
          <div class="value">{value:.2f}%</div>
          <div class="bar"><span style="width:{width:.2f}%"></span></div>
          {extra}
        </div>
        """,
        unsafe_allow_html=True,
    )


def editing_banner(text: str) -> None:
    st.markdown(f'<div class="editing-banner">{html.escape(text)}</div>', unsafe_allow_html=True)
