"""
Report export tests (JSON + PDF).

Run with: python -m pytest tests/test_export.py -v
"""

from __future__ import annotations

import json
import sys
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from pipelines.errors import AccessDenied
from storage.export import export_json, export_pdf
from storage.models import Report, Session, UserRecord

ALICE = UserRecord(id="1", name="Alice", email="alice@example.com", role="patient")
BOB = UserRecord(id="2", name="Bob", email="bob@example.com", role="patient")
DOC = UserRecord(id="3", name="Dr Who", email="doc@example.com", role="doctor")

REPORT = Report(
    symptoms="Sore throat & cough <3 days>",
    medical_history=None,
    possible_conditions="Pharyngitis",
    confidence_level="medium",
    next_steps="Rest and fluids.",
    disclaimer="Not a diagnosis.",
    date="2026-01-01T00:00:00+00:00",
    user_id="1",
    user_name="Alice",
    user_role="patient",
    doctor_notes="Likely viral.",
)


class TestExportJson(unittest.TestCase):
    def test_owner_export(self):
        bundle = json.loads(export_json(REPORT, Session(ALICE)))
        self.assertEqual(bundle["report"]["possibleConditions"], "Pharyngitis")
        self.assertEqual(bundle["report"]["doctorNotes"], "Likely viral.")
        self.assertIn("exportGeneratedAt", bundle)
        self.assertTrue(bundle["disclaimer"])

    def test_doctor_export(self):
        self.assertIn("Pharyngitis", export_json(REPORT, Session(DOC)))

    def test_other_patient_refused(self):
        with self.assertRaises(AccessDenied):
            export_json(REPORT, Session(BOB))

    def test_anonymous_refused(self):
        with self.assertRaises(AccessDenied):
            export_json(REPORT, Session())


class TestExportPdf(unittest.TestCase):
    def test_pdf_bytes(self):
        pdf = export_pdf(REPORT, Session(ALICE))
        self.assertIsInstance(pdf, bytes)
        self.assertTrue(pdf.startswith(b"%PDF"))

    def test_other_patient_refused(self):
        with self.assertRaises(AccessDenied):
            export_pdf(REPORT, Session(BOB))


if __name__ == "__main__":
    unittest.main()
