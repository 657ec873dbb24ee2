"""
app/pages/admin.py

Admin overview: user/report counts and the full report list (read-only).
"""

from __future__ import annotations

import streamlit as st

from app.pages.patient import history_controls
from app.renderers import render_report
from app.state import current_session, store
from app.ui import metric_card
from pipelines.reports import admin_overview, query_reports, visible_reports


def render() -> None:
    session = current_session()
    if not session.has_role("admin"):
        st.warning("Please sign in as an admin.")
        return

    st.title("Admin Overview")

    counts = admin_overview(session, store())
    c1, c2, c3 = st.columns(3)
    with c1:
        metric_card("Patients", str(counts["patients"]))
    with c2:
        metric_card("Doctors", str(counts["doctors"]))
    with c3:
        metric_card("Reports", str(counts["reports"]))

    st.divider()
    st.subheader("All reports")
    search, confidence, sort = history_controls("admin")
    shown = query_reports(visible_reports(session, store()), search=search, confidence=confidence, sort=sort)
    if not shown:
        st.info("No reports match.")
        return
    for i, report in enumerate(shown):
        render_report(report, session, key=f"admin-{i}", show_patient=True)
