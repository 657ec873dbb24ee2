"""
pipelines/reports.py

Dashboard read side plus the one write path (doctor notes).

Visibility
----------
patient        own reports only
doctor, admin  every report; the "patient list" keeps patient-authored ones

Queries are pure in-memory transforms over the report list: free-text search,
confidence filter (case-insensitive), date sort. No pagination.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from pipelines.errors import AccessDenied
from storage.models import Report, Session, UserRole, parse_iso
from storage.repository import UNSET, Store

logger = logging.getLogger(__name__)

SORT_ORDERS = ("desc", "asc")

# ---------------------------------------------------------------------------
# Visibility
# ---------------------------------------------------------------------------


def _require_user(session: Session) -> None:
    if not session.is_authenticated:
        raise AccessDenied("login required")


def visible_reports(session: Session, store: Store) -> list[Report]:
    """Every report the session may see."""
    _require_user(session)
    return [r for r in store.list_reports() if session.can_view(r)]


def patient_reports(session: Session, store: Store) -> list[Report]:
    """Reports submitted by patients. Doctors and admins only."""
    if not session.has_role(UserRole.doctor.value, UserRole.admin.value):
        raise AccessDenied(f"patient list requires doctor or admin, not {session.role}")
    return [r for r in store.list_reports() if r.user_role == UserRole.patient.value]


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


def _matches(report: Report, needle: str) -> bool:
    return any(
        needle in (field or "").lower()
        for field in (report.symptoms, report.possible_conditions, report.user_name)
    )


def query_reports(
    reports: Iterable[Report],
    search: Optional[str] = None,
    confidence: Optional[str] = None,
    sort: str = "desc",
) -> list[Report]:
    """
    Filter and sort *reports*.

    Args:
        search:     Substring matched case-insensitively against symptoms,
                    possible conditions and user name. Blank means no search.
        confidence: Confidence level to keep (case-insensitive). ``None``,
                    blank or ``"all"`` keeps everything.
        sort:       ``"desc"`` (newest first) or ``"asc"``.
    """
    if sort not in SORT_ORDERS:
        raise ValueError(f"sort must be one of {SORT_ORDERS}, got {sort!r}")

    out = list(reports)

    needle = (search or "").strip().lower()
    if needle:
        out = [r for r in out if _matches(r, needle)]

    level = (confidence or "").strip().lower()
    if level and level != "all":
        out = [r for r in out if r.confidence_level.lower() == level]

    out.sort(key=lambda r: parse_iso(r.date), reverse=(sort == "desc"))
    return out


def confidence_variant(level: Optional[str]) -> str:
    """Badge variant for a confidence level: high/medium/anything else."""
    lvl = (level or "").strip().lower()
    if lvl == "high":
        return "primary"
    if lvl == "medium":
        return "secondary"
    return "destructive"


# ---------------------------------------------------------------------------
# Doctor notes
# ---------------------------------------------------------------------------


def annotate_report(
    session: Session,
    store: Store,
    user_id: str,
    date: str,
    notes: Optional[str],
    expected: Any = UNSET,
) -> Report:
    """
    Set the doctor notes on report ``(user_id, date)``.

    Pass ``expected`` (the notes as last read) to make the edit a
    compare-and-swap; a concurrent change then raises StaleReportError.
    Repeating the same edit is a no-op in effect.

    Raises:
        AccessDenied:     The session is not a doctor.
        ReportNotFound:   No report has that key.
        StaleReportError: ``expected`` no longer matches.
    """
    if not session.has_role(UserRole.doctor.value):
        raise AccessDenied(f"only doctors may edit notes, not {session.role}")
    cleaned = (notes or "").strip() or None
    report = store.update_doctor_notes(user_id, date, cleaned, expected=expected)
    logger.info("Doctor id=%s annotated report of user_id=%s", session.user.id, user_id)
    return report


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------


def admin_overview(session: Session, store: Store) -> dict[str, int]:
    """Counts of patients, doctors and reports. Admins only."""
    if not session.has_role(UserRole.admin.value):
        raise AccessDenied(f"overview requires admin, not {session.role}")
    users = store.list_users()
    return {
        "patients": sum(1 for u in users if u.role == UserRole.patient.value),
        "doctors": sum(1 for u in users if u.role == UserRole.doctor.value),
        "reports": len(store.list_reports()),
    }
