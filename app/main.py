"""
app/main.py

MediChain: Streamlit entry point.
- Symptom checker open to everyone
- Sign in / sign up (patient, doctor, admin)
- Role dashboards
- Global theme injection

Run with:  streamlit run app/main.py
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import streamlit as st

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from app.state import current_session, init_state  # noqa: E402
from app.ui import inject_theme  # noqa: E402
from pipelines.config import get_settings  # noqa: E402
from storage.accounts import logout  # noqa: E402

settings = get_settings()
logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Page config
# ---------------------------------------------------------------------------
st.set_page_config(
    page_title="MediChain",
    page_icon="🩺",
    layout="wide",
    initial_sidebar_state="expanded",
)

init_state()
inject_theme()

session = current_session()

# ---------------------------------------------------------------------------
# Sidebar
# ---------------------------------------------------------------------------
st.sidebar.title("🩺 MediChain")
st.sidebar.markdown("Describe your symptoms, get AI-assisted guidance, keep your history.")
st.sidebar.divider()

if session.is_authenticated:
    st.sidebar.success(f"**{session.user.name}**\n\nRole: **{session.role}**")
    if st.sidebar.button("↩️ Sign out"):
        logout(session)
        st.session_state["intake"].reset()
        st.session_state["page"] = "checker"
        st.rerun()
else:
    st.sidebar.info("Not signed in")

st.sidebar.divider()

# ---------------------------------------------------------------------------
# Navigation options (role-based)
# ---------------------------------------------------------------------------
nav_options = [("Symptom Checker", "checker")]

if session.role == "patient":
    nav_options.append(("My Reports", "patient"))
elif session.role == "doctor":
    nav_options.append(("Patient Reports", "doctor"))
elif session.role == "admin":
    nav_options.append(("Admin Overview", "admin"))

if not session.is_authenticated:
    nav_options.append(("Sign in", "auth"))

labels = [x[0] for x in nav_options]
keys = [x[1] for x in nav_options]

try:
    current_idx = keys.index(st.session_state["page"])
except ValueError:
    current_idx = 0
    st.session_state["page"] = keys[0]

page_label = st.sidebar.radio("Navigate", options=labels, index=current_idx)
page_key = dict(nav_options)[page_label]
st.session_state["page"] = page_key

st.sidebar.divider()
st.sidebar.caption(
    f"Analysis provider: {settings.analysis_provider} · Store: {settings.store_backend}\n\n"
    "Not a substitute for professional medical advice."
)

# ---------------------------------------------------------------------------
# Page routing
# ---------------------------------------------------------------------------
if page_key == "checker":
    from app.pages.checker import render
elif page_key == "auth":
    from app.pages.auth import render
elif page_key == "patient":
    from app.pages.patient import render
elif page_key == "doctor":
    from app.pages.doctor import render
else:
    from app.pages.admin import render

render()
