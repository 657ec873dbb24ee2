"""
app/pages/doctor.py

Doctor dashboard
- patient-authored reports with search / filter / sort
- notes editor per report (compare-and-swap against the notes shown)
"""

from __future__ import annotations

import streamlit as st

from app.pages.patient import history_controls
from app.renderers import render_report
from app.state import current_session, store
from app.ui import metric_card
from pipelines.errors import MediChainError, StaleReportError
from pipelines.reports import annotate_report, patient_reports, query_reports
from storage.models import Report, Session


def _notes_editor(report: Report, session: Session, key: str) -> None:
    with st.form(f"notes-{key}"):
        notes = st.text_area("Doctor notes", value=report.doctor_notes or "", height=100)
        saved = st.form_submit_button("Save notes", type="primary")
    if not saved:
        return
    try:
        annotate_report(
            session, store(), report.user_id, report.date, notes, expected=report.doctor_notes
        )
    except StaleReportError as e:
        st.warning(e.user_message)
        return
    except MediChainError as e:
        st.error(e.user_message)
        return
    st.success("Notes saved.")
    st.rerun()


def render() -> None:
    session = current_session()
    if not session.has_role("doctor"):
        st.warning("Please sign in as a doctor.")
        return

    st.title("Patient Reports")
    st.caption(f"Signed in as Dr. {session.user.name}")

    reports = patient_reports(session, store())

    c1, c2 = st.columns(2)
    with c1:
        metric_card("Patient reports", str(len(reports)))
    with c2:
        pending = sum(1 for r in reports if not r.doctor_notes)
        metric_card("Awaiting notes", str(pending))

    st.divider()
    search, confidence, sort = history_controls("doctor")
    shown = query_reports(reports, search=search, confidence=confidence, sort=sort)

    if not shown:
        st.info("No reports match.")
        return
    for i, report in enumerate(shown):
        render_report(report, session, key=f"doctor-{i}", show_patient=True)
        _notes_editor(report, session, key=f"doctor-{i}")
