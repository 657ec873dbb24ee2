"""
storage/export.py

Report export helpers: a JSON string or PDF bytes for one report.

Both exporters apply the same visibility rule as the dashboards: patients may
export their own reports, doctors and admins any report.

Dependencies
------------
- reportlab  (PDF generation)
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from io import BytesIO
from typing import Any
from xml.sax.saxutils import escape

from pipelines.errors import AccessDenied
from storage.models import Report, Session

logger = logging.getLogger(__name__)

EXPORT_DISCLAIMER = (
    "This document was generated by MediChain for informational purposes only. "
    "It is NOT a medical diagnosis and must NOT be used as a substitute for "
    "professional medical advice."
)


# ---------------------------------------------------------------------------
# Shared bundle
# ---------------------------------------------------------------------------


def _build_export_bundle(report: Report, session: Session) -> dict[str, Any]:
    """Assemble all exportable data for a report. Raises AccessDenied."""
    if not session.can_view(report):
        raise AccessDenied(f"{session!r} may not export report of user_id={report.user_id}")

    return {
        "exportGeneratedAt": datetime.now(tz=timezone.utc).isoformat(),
        "report": report.to_storage(),
        "disclaimer": EXPORT_DISCLAIMER,
    }


# ---------------------------------------------------------------------------
# JSON export
# ---------------------------------------------------------------------------


def export_json(report: Report, session: Session) -> str:
    """Pretty-printed JSON for *report* (camelCase keys)."""
    bundle = _build_export_bundle(report, session)
    logger.info("JSON export of report (%s, %s) by %r", report.user_id, report.date, session)
    return json.dumps(bundle, indent=2, ensure_ascii=False, default=str)


# ---------------------------------------------------------------------------
# PDF export
# ---------------------------------------------------------------------------


def _para(text: str | None) -> str:
    return escape(text or "").replace("\n", "<br/>")


def export_pdf(report: Report, session: Session) -> bytes:
    """
    Render *report* to PDF bytes with reportlab.

    Sections: metadata table, symptoms, medical history, analysis,
    doctor notes (if any), disclaimer.
    """
    try:
        from reportlab.lib import colors
        from reportlab.lib.pagesizes import LETTER
        from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
        from reportlab.lib.units import inch
        from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle
    except ImportError as exc:
        logger.error("reportlab is not installed: %s", exc)
        raise ImportError(
            "PDF export requires reportlab. Install it with: pip install reportlab"
        ) from exc

    bundle = _build_export_bundle(report, session)

    buf = BytesIO()
    doc = SimpleDocTemplate(
        buf,
        pagesize=LETTER,
        leftMargin=inch,
        rightMargin=inch,
        topMargin=inch,
        bottomMargin=inch,
        title="MediChain Symptom Report",
    )

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        "ReportTitle",
        parent=styles["Title"],
        fontSize=18,
        textColor=colors.HexColor("#1d4ed8"),
        spaceAfter=6,
    )
    heading_style = ParagraphStyle(
        "ReportHeading",
        parent=styles["Heading2"],
        fontSize=12,
        textColor=colors.HexColor("#1d4ed8"),
        spaceBefore=12,
        spaceAfter=4,
    )
    normal = styles["Normal"]
    small = ParagraphStyle("Small", parent=normal, fontSize=8, textColor=colors.grey)

    story = []

    # ---- Header ----
    story.append(Paragraph("MediChain Symptom Report", title_style))
    story.append(Paragraph(f"Generated: {bundle['exportGeneratedAt']}", small))
    story.append(Spacer(1, 0.15 * inch))

    # ---- Metadata ----
    story.append(Paragraph("Report Details", heading_style))
    meta_data = [
        ["Field", "Value"],
        ["Patient", report.user_name],
        ["Role", report.user_role],
        ["Submitted", report.date],
        ["Confidence", report.confidence_level],
    ]
    meta_table = Table(meta_data, colWidths=[2 * inch, 4.5 * inch])
    meta_table.setStyle(
        TableStyle([
            ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#1d4ed8")),
            ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, -1), 9),
            ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor("#eff6ff")]),
            ("GRID", (0, 0), (-1, -1), 0.5, colors.HexColor("#cccccc")),
            ("LEFTPADDING", (0, 0), (-1, -1), 6),
            ("RIGHTPADDING", (0, 0), (-1, -1), 6),
            ("TOPPADDING", (0, 0), (-1, -1), 4),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
        ])
    )
    story.append(meta_table)

    # ---- Input ----
    story.append(Paragraph("Symptoms", heading_style))
    story.append(Paragraph(_para(report.symptoms), normal))
    story.append(Paragraph("Medical History", heading_style))
    story.append(Paragraph(_para(report.medical_history) or "None provided.", normal))

    # ---- Analysis ----
    story.append(Paragraph("Possible Conditions", heading_style))
    story.append(Paragraph(_para(report.possible_conditions), normal))
    story.append(Paragraph("Recommended Next Steps", heading_style))
    story.append(Paragraph(_para(report.next_steps), normal))

    if report.doctor_notes:
        story.append(Paragraph("Doctor Notes", heading_style))
        story.append(Paragraph(_para(report.doctor_notes), normal))

    # ---- Disclaimer ----
    story.append(Spacer(1, 0.3 * inch))
    story.append(Paragraph(_para(report.disclaimer), small))
    story.append(Paragraph(_para(bundle["disclaimer"]), small))

    doc.build(story)
    logger.info("PDF export of report (%s, %s) by %r", report.user_id, report.date, session)
    return buf.getvalue()
