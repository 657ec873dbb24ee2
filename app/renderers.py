# app/renderers.py
from __future__ import annotations

import streamlit as st

from app.ui import card_close, card_open, confidence_badge, emergency_banner
from pipelines.errors import MediChainError
from storage.export import export_json, export_pdf
from storage.models import Report, Session


def render_analysis(result, emergency: bool = False) -> None:
    """
    Render an AnalysisResult as cards.
    Never shows raw JSON.
    """
    if emergency:
        emergency_banner(result.next_steps)

    card_open("Possible conditions", "AI-assisted, for information only.")
    st.markdown(confidence_badge(result.confidence_level), unsafe_allow_html=True)
    for condition in [c.strip() for c in result.possible_conditions.split(",") if c.strip()]:
        st.markdown(f"- {condition}")
    card_close()

    if not emergency:
        card_open("Recommended next steps")
        st.markdown(result.next_steps)
        card_close()

    if result.disclaimer:
        st.info(result.disclaimer)


def render_downloads(report: Report, session: Session, key: str) -> None:
    """JSON / PDF download buttons for a report the session can see."""
    c1, c2 = st.columns(2)
    with c1:
        try:
            st.download_button(
                "Download JSON",
                data=export_json(report, session),
                file_name=f"medichain-report-{report.user_id}.json",
                mime="application/json",
                key=f"json-{key}",
                use_container_width=True,
            )
        except MediChainError as e:
            st.error(e.user_message)
    with c2:
        try:
            st.download_button(
                "Download PDF",
                data=export_pdf(report, session),
                file_name=f"medichain-report-{report.user_id}.pdf",
                mime="application/pdf",
                key=f"pdf-{key}",
                use_container_width=True,
            )
        except MediChainError as e:
            st.error(e.user_message)


def render_report(report: Report, session: Session, key: str, show_patient: bool = False) -> None:
    """One stored report inside an expander."""
    title = f"{report.date[:16].replace('T', ' ')} · {report.confidence_level}"
    if show_patient:
        title = f"{report.user_name} · {title}"
    with st.expander(title):
        st.markdown(f"**Symptoms:** {report.symptoms}")
        if report.medical_history:
            st.markdown(f"**Medical history:** {report.medical_history}")
        st.markdown(confidence_badge(report.confidence_level), unsafe_allow_html=True)
        st.markdown(f"**Possible conditions:** {report.possible_conditions}")
        st.markdown(f"**Next steps:** {report.next_steps}")
        if report.doctor_notes:
            st.success(f"Doctor notes: {report.doctor_notes}")
        st.caption(report.disclaimer)
        render_downloads(report, session, key)
