"""
app/pages/checker.py

Symptom checker (open to anonymous visitors)
- form -> consent -> emergency banner or analysis card
- signed-in users get the report saved plus JSON/PDF downloads
- anonymous results are shown but never saved

The page only drives the IntakePipeline; all rules live there.
"""

from __future__ import annotations

import asyncio
import logging

import streamlit as st

from app.renderers import render_analysis, render_downloads
from app.state import current_intake, current_session
from app.ui import card_close, card_open
from pipelines.errors import MediChainError
from pipelines.intake import IntakePipeline, IntakeState
from storage.models import Session

logger = logging.getLogger(__name__)

CONSENT_TEXT = (
    "I understand this tool provides AI-generated information, not a medical "
    "diagnosis, and that I should contact a healthcare professional or emergency "
    "services for urgent concerns. I have read and agree to the terms."
)


def _form(pipeline: IntakePipeline) -> None:
    with st.form("symptoms"):
        symptoms = st.text_area(
            "Describe your symptoms",
            placeholder="What are you feeling, since when, how severe?",
            height=140,
        )
        history = st.text_area(
            "Medical history (optional)",
            placeholder="Existing conditions, medications, allergies...",
            height=100,
        )
        submitted = st.form_submit_button(
            "Continue", type="primary", use_container_width=True, disabled=pipeline.busy
        )
    if submitted:
        try:
            pipeline.submit(symptoms, history)
        except MediChainError as e:
            st.error(e.user_message)
            return
        st.rerun()


def _consent(pipeline: IntakePipeline, session: Session) -> None:
    card_open("Before we continue", "Please read and acknowledge the disclaimer.")
    st.write(CONSENT_TEXT)
    agreed = st.checkbox("I have read and agree to the terms", key="consent_box")
    card_close()

    c1, c2 = st.columns(2)
    with c1:
        if st.button("Back", use_container_width=True):
            pipeline.reset()
            st.rerun()
    with c2:
        go = st.button("Get analysis", type="primary", use_container_width=True, disabled=not agreed)

    if go:
        pipeline.record_consent(agreed)
        try:
            with st.spinner("Analyzing your symptoms..."):
                asyncio.run(pipeline.run(session))
        except MediChainError as e:
            logger.info("Intake attempt ended with %s", e.__class__.__name__)
        st.session_state.pop("consent_box", None)
        st.rerun()


def _outcome(pipeline: IntakePipeline, session: Session) -> None:
    if pipeline.state is IntakeState.failed:
        st.error(pipeline.error.user_message if pipeline.error else "Something went wrong.")
    else:
        render_analysis(pipeline.result, emergency=pipeline.is_emergency)
        if pipeline.report is not None:
            st.success("Saved to your reports.")
            render_downloads(pipeline.report, session, key="latest")
        elif pipeline.error is not None:
            st.error(pipeline.error.user_message)
        elif not session.is_authenticated:
            st.caption("Sign in to save your results and download them.")

    if st.button("Start a new check", use_container_width=True):
        pipeline.reset()
        st.rerun()


def render() -> None:
    st.title("Symptom Checker")
    st.caption("Describe what you are experiencing to get AI-assisted guidance.")

    pipeline = current_intake()
    session = current_session()

    if pipeline.state is IntakeState.consent_pending:
        _consent(pipeline, session)
    elif pipeline.state in (IntakeState.complete, IntakeState.failed):
        _outcome(pipeline, session)
    else:
        _form(pipeline)
