"""
app/state.py

Per-browser-session objects kept in ``st.session_state``:
- ``session``  the explicit auth Session passed into every operation
- ``intake``   the IntakePipeline driving the symptom checker
- ``page``     current router key

The store and the text generator are process-wide singletons.
"""

from __future__ import annotations

import streamlit as st

from models.providers import get_generator
from pipelines.analysis import AnalysisRequester
from pipelines.intake import IntakePipeline
from storage.models import Session
from storage.repository import Store, get_store


def init_state() -> None:
    if "session" not in st.session_state:
        st.session_state["session"] = Session()
    if "intake" not in st.session_state:
        st.session_state["intake"] = IntakePipeline(AnalysisRequester(get_generator()), get_store())
    if "page" not in st.session_state:
        st.session_state["page"] = "checker"


def current_session() -> Session:
    return st.session_state["session"]


def current_intake() -> IntakePipeline:
    return st.session_state["intake"]


def store() -> Store:
    return get_store()


def go(page: str) -> None:
    st.session_state["page"] = page
    st.rerun()
