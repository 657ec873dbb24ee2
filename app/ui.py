# =========================
# app/ui.py
# =========================
from __future__ import annotations

import html

import streamlit as st

from pipelines.reports import confidence_variant


def inject_theme() -> None:
    st.markdown(
        """
<style>
/* ============================================================
   MediChain theme
   - Light canvas + white cards
   - Blue primary, slate secondary, red destructive
   ============================================================ */

/* Hide Streamlit built-in multipage nav (we route ourselves) */
[data-testid="stSidebarNav"] { display: none !important; }

:root{
  --primary: 221 83% 53%;
  --primary-2: 222 47% 14%;
  --sidebar-text: 210 40% 92%;

  --canvas: #F8FAFC;
  --card: #FFFFFF;
  --border: rgba(15,23,42,0.10);
  --muted: rgba(15,23,42,0.55);
  --text: rgba(15,23,42,0.92);

  /* Badge tokens */
  --badge-primary: 221 83% 45%;
  --badge-primary-bg: 221 83% 95%;
  --badge-secondary: 215 16% 35%;
  --badge-secondary-bg: 215 16% 92%;
  --badge-destructive: 0 72% 45%;
  --badge-destructive-bg: 0 72% 95%;
}

.stApp { background: var(--canvas); }

.stApp, .stMarkdown, .stMarkdown p, .stCaption, .stText, label,
h1, h2, h3, h4, h5, h6, div[data-testid="stMarkdownContainer"] {
  color: var(--text) !important;
}

div.block-container {
  padding-top: 2.2rem;
  padding-bottom: 2.2rem;
}

div[data-testid="stTextInput"] input,
div[data-testid="stTextArea"] textarea {
  background: #FFFFFF !important;
  color: var(--text) !important;
  border: 1px solid var(--border) !important;
  border-radius: 12px !important;
}

/* Sidebar */
section[data-testid="stSidebar"]{
  background: hsl(var(--primary-2)) !important;
  border-right: 1px solid rgba(255,255,255,0.07);
}
section[data-testid="stSidebar"] *{
  color: hsl(var(--sidebar-text)) !important;
}
section[data-testid="stSidebar"] .stRadio div[role="radiogroup"] > label{
  background: rgba(255,255,255,0.03);
  border: 1px solid rgba(255,255,255,0.08);
  border-radius: 14px;
  padding: 10px 12px;
  margin-bottom: 8px;
}

/* Buttons */
.stButton>button{ border-radius: 12px; }
.stButton>button[kind="primary"]{
  background: hsl(var(--primary)) !important;
  border: 1px solid hsl(var(--primary)) !important;
  color: white !important;
}

/* Cards */
.mc-card{
  background: var(--card);
  border: 1px solid var(--border);
  border-radius: 16px;
  padding: 16px 16px;
  margin-bottom: 12px;
}
.mc-title{ font-weight: 800; font-size: 16px; margin-bottom: 2px; color: var(--text); }
.mc-sub{ color: var(--muted); font-size: 13px; margin-bottom: 0px; }

.mc-metric-label{ color: var(--muted); font-size: 13px; margin-bottom: 6px; }
.mc-metric-value{ font-size: 30px; font-weight: 900; color: var(--text); line-height: 1.0; }
.mc-metric-foot{ margin-top: 6px; color: var(--muted); font-size: 12px; }

/* Badges */
.mc-badge{
  display:inline-block;
  padding: 6px 10px;
  border-radius: 999px;
  font-size: 12px;
  font-weight: 800;
  border: 1px solid rgba(15,23,42,0.08);
}
.mc-badge-primary{ background: hsl(var(--badge-primary-bg)); color: hsl(var(--badge-primary)); }
.mc-badge-secondary{ background: hsl(var(--badge-secondary-bg)); color: hsl(var(--badge-secondary)); }
.mc-badge-destructive{ background: hsl(var(--badge-destructive-bg)); color: hsl(var(--badge-destructive)); }

/* Emergency banner */
.mc-emergency{
  background: hsl(var(--badge-destructive-bg));
  border: 2px solid hsl(var(--badge-destructive));
  border-radius: 16px;
  padding: 16px;
  margin-bottom: 12px;
}
.mc-emergency-title{ font-weight: 900; font-size: 18px; color: hsl(var(--badge-destructive)); }
</style>
        """,
        unsafe_allow_html=True,
    )


def _esc(x: str) -> str:
    """Escape any user/DB-provided strings before injecting into HTML."""
    return html.escape(str(x or ""), quote=True)


def card_open(title: str, subtitle: str = "") -> None:
    sub = f'<div class="mc-sub">{_esc(subtitle)}</div>' if subtitle else ""
    st.markdown(
        f'<div class="mc-card"><div class="mc-title">{_esc(title)}</div>{sub}',
        unsafe_allow_html=True,
    )


def card_close() -> None:
    st.markdown("</div>", unsafe_allow_html=True)


def confidence_badge(level: str) -> str:
    variant = confidence_variant(level)
    label = (level or "unknown").strip().capitalize()
    return f'<span class="mc-badge mc-badge-{variant}">{_esc(label)} confidence</span>'


def emergency_banner(message: str) -> None:
    st.markdown(
        f"""
<div class="mc-emergency">
  <div class="mc-emergency-title">Emergency warning</div>
  <div>{_esc(message)}</div>
</div>
        """,
        unsafe_allow_html=True,
    )


def metric_card(label: str, value: str, foot: str | None = None) -> None:
    """Plain-text metric card (everything is escaped)."""
    foot_html = f'<div class="mc-metric-foot">{_esc(foot)}</div>' if foot else ""
    st.markdown(
        f"""
<div class="mc-card">
  <div class="mc-metric-label">{_esc(label)}</div>
  <div class="mc-metric-value">{_esc(value)}</div>
  {foot_html}
</div>
        """,
        unsafe_allow_html=True,
    )
