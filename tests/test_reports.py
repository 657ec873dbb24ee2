"""
Dashboard read side and doctor-note edit tests.

Run with: python -m pytest tests/test_reports.py -v
"""

from __future__ import annotations

import sys
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from pipelines.errors import AccessDenied, ReportNotFound, StaleReportError
from pipelines.reports import (
    admin_overview,
    annotate_report,
    confidence_variant,
    patient_reports,
    query_reports,
    visible_reports,
)
from storage.models import Report, Session, UserRecord
from storage.repository import InMemoryStore


def _report(user: UserRecord, date: str, symptoms: str, conditions: str, confidence: str) -> Report:
    return Report(
        symptoms=symptoms,
        possible_conditions=conditions,
        confidence_level=confidence,
        next_steps="Rest.",
        disclaimer="Not a diagnosis.",
        date=date,
        user_id=user.id,
        user_name=user.name,
        user_role=user.role,
    )


class ReportFixture(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryStore()
        self.alice = self.store.create_user("Alice", "alice@example.com", "patient", "x:y")
        self.bob = self.store.create_user("Bob", "bob@example.com", "patient", "x:y")
        self.doc = self.store.create_user("Dr Who", "doc@example.com", "doctor", "x:y")
        self.admin = self.store.create_user("Root", "root@example.com", "admin", "x:y")

        self.a1 = _report(self.alice, "2026-01-01T10:00:00+00:00", "Sore throat and cough", "Pharyngitis", "Medium")
        self.a2 = _report(self.alice, "2026-01-03T10:00:00+00:00", "Itchy eyes in spring", "Allergies", "low")
        self.b1 = _report(self.bob, "2026-01-02T10:00:00+00:00", "Stomach cramps after dinner", "Food poisoning", "HIGH")
        self.d1 = _report(self.doc, "2026-01-04T10:00:00+00:00", "Back ache from long shifts", "Muscle strain", "low")
        for r in (self.a1, self.b1, self.a2, self.d1):
            self.store.add_report(r)


class TestVisibility(ReportFixture):
    def test_patient_sees_only_own(self):
        reports = visible_reports(Session(self.alice), self.store)
        self.assertEqual({r.user_id for r in reports}, {self.alice.id})
        self.assertEqual(len(reports), 2)

    def test_doctor_sees_all(self):
        reports = visible_reports(Session(self.doc), self.store)
        self.assertEqual(len(reports), 4)

    def test_patient_list_only_patient_authored(self):
        reports = patient_reports(Session(self.doc), self.store)
        self.assertEqual(len(reports), 3)
        self.assertTrue(all(r.user_role == "patient" for r in reports))

    def test_patient_list_refused_for_patient(self):
        with self.assertRaises(AccessDenied):
            patient_reports(Session(self.alice), self.store)

    def test_anonymous_refused(self):
        with self.assertRaises(AccessDenied):
            visible_reports(Session(), self.store)

    def test_store_lists_newest_submission_first(self):
        self.assertEqual(self.store.list_reports()[0].key, self.d1.key)


class TestQuery(ReportFixture):
    def test_search_fields(self):
        all_reports = self.store.list_reports()
        self.assertEqual([r.key for r in query_reports(all_reports, search="THROAT")], [self.a1.key])
        self.assertEqual([r.key for r in query_reports(all_reports, search="food")], [self.b1.key])
        self.assertEqual(len(query_reports(all_reports, search="alice")), 2)

    def test_confidence_filter_case_insensitive(self):
        all_reports = self.store.list_reports()
        self.assertEqual([r.key for r in query_reports(all_reports, confidence="high")], [self.b1.key])
        self.assertEqual(len(query_reports(all_reports, confidence="LOW")), 2)
        self.assertEqual(len(query_reports(all_reports, confidence="all")), 4)

    def test_sort(self):
        all_reports = self.store.list_reports()
        asc = query_reports(all_reports, sort="asc")
        desc = query_reports(all_reports, sort="desc")
        self.assertEqual([r.key for r in asc], [self.a1.key, self.b1.key, self.a2.key, self.d1.key])
        self.assertEqual([r.key for r in desc], list(reversed([r.key for r in asc])))

    def test_bad_sort(self):
        with self.assertRaises(ValueError):
            query_reports([], sort="sideways")


class TestDoctorNotes(ReportFixture):
    def test_edit_changes_only_target(self):
        before = {r.key: r for r in self.store.list_reports()}
        annotate_report(Session(self.doc), self.store, self.alice.id, self.a1.date, "Looks viral.")

        after = {r.key: r for r in self.store.list_reports()}
        self.assertEqual(after[self.a1.key].doctor_notes, "Looks viral.")
        for key, report in before.items():
            if key != self.a1.key:
                self.assertEqual(after[key], report)

    def test_edit_is_idempotent(self):
        session = Session(self.doc)
        annotate_report(session, self.store, self.alice.id, self.a1.date, "Looks viral.")
        snapshot = self.store.list_reports()
        annotate_report(session, self.store, self.alice.id, self.a1.date, "Looks viral.")
        self.assertEqual(self.store.list_reports(), snapshot)

    def test_only_doctors_edit(self):
        for user in (self.alice, self.admin):
            with self.subTest(role=user.role), self.assertRaises(AccessDenied):
                annotate_report(Session(user), self.store, self.alice.id, self.a1.date, "hi")

    def test_unknown_report(self):
        with self.assertRaises(ReportNotFound):
            annotate_report(Session(self.doc), self.store, self.alice.id, "1999-01-01T00:00:00+00:00", "x")

    def test_compare_and_swap(self):
        session = Session(self.doc)
        annotate_report(session, self.store, self.alice.id, self.a1.date, "first", expected=None)
        with self.assertRaises(StaleReportError):
            annotate_report(session, self.store, self.alice.id, self.a1.date, "second", expected=None)
        self.assertEqual(self.store.find_report(self.alice.id, self.a1.date).doctor_notes, "first")
        annotate_report(session, self.store, self.alice.id, self.a1.date, "second", expected="first")
        self.assertEqual(self.store.find_report(self.alice.id, self.a1.date).doctor_notes, "second")


class TestAdminOverview(ReportFixture):
    def test_counts(self):
        self.assertEqual(
            admin_overview(Session(self.admin), self.store),
            {"patients": 2, "doctors": 1, "reports": 4},
        )

    def test_admin_only(self):
        with self.assertRaises(AccessDenied):
            admin_overview(Session(self.doc), self.store)


class TestConfidenceVariant(unittest.TestCase):
    def test_mapping(self):
        self.assertEqual(confidence_variant("High"), "primary")
        self.assertEqual(confidence_variant("medium"), "secondary")
        self.assertEqual(confidence_variant("low"), "destructive")
        self.assertEqual(confidence_variant("whatever"), "destructive")


if __name__ == "__main__":
    unittest.main()
