"""
app/pages/patient.py

Patient dashboard: own report history with search / confidence filter / sort.
"""

from __future__ import annotations

import streamlit as st

from app.renderers import render_report
from app.state import current_session, go, store
from app.ui import metric_card
from pipelines.reports import query_reports, visible_reports


def history_controls(prefix: str) -> tuple[str, str, str]:
    """Search box, confidence filter and sort order; shared with the staff pages."""
    c1, c2, c3 = st.columns([2, 1, 1])
    with c1:
        search = st.text_input("Search", placeholder="Symptoms, conditions or name", key=f"{prefix}-search")
    with c2:
        confidence = st.selectbox("Confidence", ["all", "high", "medium", "low"], key=f"{prefix}-conf")
    with c3:
        sort_label = st.selectbox("Sort", ["Newest first", "Oldest first"], key=f"{prefix}-sort")
    return search, confidence, "desc" if sort_label == "Newest first" else "asc"


def render() -> None:
    session = current_session()
    if not session.has_role("patient"):
        st.warning("Please sign in as a patient.")
        return

    st.title(f"Hello, {session.user.name}")
    st.caption("Your previous symptom reports.")

    reports = visible_reports(session, store())

    c1, c2 = st.columns(2)
    with c1:
        metric_card("Reports", str(len(reports)))
    with c2:
        reviewed = sum(1 for r in reports if r.doctor_notes)
        metric_card("Reviewed by a doctor", str(reviewed))

    if st.button("New symptom check", type="primary"):
        go("checker")

    st.divider()
    search, confidence, sort = history_controls("patient")
    shown = query_reports(reports, search=search, confidence=confidence, sort=sort)

    if not shown:
        st.info("No reports match." if reports else "No reports yet.")
        return
    for i, report in enumerate(shown):
        render_report(report, session, key=f"patient-{i}")
