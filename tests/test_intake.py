"""
Intake pipeline (state machine) tests.

Run with: python -m pytest tests/test_intake.py -v
"""

from __future__ import annotations

import sys
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from pipelines.emergency import EMERGENCY_CONDITIONS
from pipelines.errors import (
    AnalysisRequestFailure,
    ConsentNotGiven,
    InputValidationError,
    InvalidTransition,
    ReportSaveFailure,
    SchemaViolation,
)
from pipelines.intake import IntakePipeline, IntakeState
from pipelines.schemas import AnalysisResult
from storage.models import Session, UserRecord
from storage.repository import InMemoryStore

RESULT = AnalysisResult(
    possible_conditions="Tension headache",
    confidence_level="low",
    next_steps="Rest.",
    disclaimer="Not a diagnosis.",
)

PATIENT = UserRecord(id="3", name="Jane Patient", email="patient@medichain.com", role="patient")


class FakeRequester:
    """Records calls and the order they happened in."""

    def __init__(self, result=RESULT, error=None, log=None):
        self.result = result
        self.error = error
        self.calls = []
        self.log = log if log is not None else []

    async def request_analysis(self, symptom_input):
        self.calls.append(symptom_input)
        self.log.append("request")
        if self.error is not None:
            raise self.error
        return self.result


def _clock():
    return "2026-01-02T03:04:05+00:00"


class FullDiskStore(InMemoryStore):
    def save(self, doc):
        raise OSError("disk full")


class TestIntakePipeline(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.store = InMemoryStore()
        self.requester = FakeRequester()
        self.pipeline = IntakePipeline(self.requester, self.store, clock=_clock)

    # -------------------------
    # Validation
    # -------------------------
    def test_ten_characters_accepted(self):
        self.pipeline.submit("a" * 10)
        self.assertIs(self.pipeline.state, IntakeState.consent_pending)

    def test_nine_characters_rejected_stays_idle(self):
        with self.assertRaises(InputValidationError) as ctx:
            self.pipeline.submit("a" * 9)
        self.assertIs(self.pipeline.state, IntakeState.idle)
        self.assertIn("10 characters", ctx.exception.user_message)
        self.assertEqual(
            self.pipeline.history,
            [IntakeState.idle, IntakeState.validating, IntakeState.idle],
        )

    def test_blank_history_becomes_none(self):
        symptom_input = self.pipeline.submit("Headache since morning", "   ")
        self.assertIsNone(symptom_input.medical_history)

    # -------------------------
    # Consent gate
    # -------------------------
    async def test_no_request_without_consent(self):
        self.pipeline.submit("Headache since morning")
        with self.assertRaises(ConsentNotGiven):
            await self.pipeline.run(Session(PATIENT))
        self.assertEqual(self.requester.calls, [])
        self.assertIs(self.pipeline.state, IntakeState.consent_pending)

    async def test_declined_consent_blocks(self):
        self.pipeline.submit("Headache since morning")
        self.pipeline.record_consent(False)
        with self.assertRaises(ConsentNotGiven):
            await self.pipeline.run(Session())
        self.assertEqual(self.requester.calls, [])

    async def test_consent_blocks_emergency_branch_too(self):
        self.pipeline.submit("Sudden chest pain at rest")
        with self.assertRaises(ConsentNotGiven):
            await self.pipeline.run(Session())
        self.assertIsNone(self.pipeline.result)

    async def test_run_before_submit(self):
        with self.assertRaises(InvalidTransition):
            await self.pipeline.run(Session())

    def test_consent_outside_pending(self):
        with self.assertRaises(InvalidTransition):
            self.pipeline.record_consent(True)

    # -------------------------
    # Branches
    # -------------------------
    async def test_emergency_bypasses_requester(self):
        self.pipeline.submit("I have severe CHEST PAIN and sweating")
        self.pipeline.record_consent(True)
        result = await self.pipeline.run(Session(PATIENT))

        self.assertEqual(self.requester.calls, [])
        self.assertEqual(result.possible_conditions, EMERGENCY_CONDITIONS)
        self.assertEqual(result.confidence_level, "High")
        self.assertTrue(self.pipeline.is_emergency)
        self.assertEqual(
            self.pipeline.history[-3:],
            [IntakeState.consent_pending, IntakeState.emergency, IntakeState.complete],
        )

    async def test_classifier_runs_before_request(self):
        log = []
        requester = FakeRequester(log=log)

        def classifier(text):
            log.append("classify")
            return False

        pipeline = IntakePipeline(requester, self.store, classifier=classifier, clock=_clock)
        pipeline.submit("Runny nose and sneezing")
        pipeline.record_consent(True)
        await pipeline.run(Session())
        self.assertEqual(log, ["classify", "request"])

    async def test_analysis_called_exactly_once(self):
        self.pipeline.submit("Runny nose and sneezing")
        self.pipeline.record_consent(True)
        result = await self.pipeline.run(Session(PATIENT))
        self.assertEqual(len(self.requester.calls), 1)
        self.assertEqual(result, RESULT)
        self.assertIs(self.pipeline.state, IntakeState.complete)
        self.assertFalse(self.pipeline.is_emergency)

    # -------------------------
    # Persistence
    # -------------------------
    async def test_report_persisted_with_session_user(self):
        self.pipeline.submit("Runny nose and sneezing", "Hay fever")
        self.pipeline.record_consent(True)
        await self.pipeline.run(Session(PATIENT))

        reports = self.store.list_reports()
        self.assertEqual(len(reports), 1)
        report = reports[0]
        self.assertEqual(report.user_id, "3")
        self.assertEqual(report.user_name, "Jane Patient")
        self.assertEqual(report.user_role, "patient")
        self.assertEqual(report.date, _clock())
        self.assertEqual(report.medical_history, "Hay fever")
        self.assertEqual(report.possible_conditions, "Tension headache")
        self.assertIsNone(report.doctor_notes)
        self.assertEqual(self.pipeline.report, report)

    async def test_anonymous_completes_without_persisting(self):
        self.pipeline.submit("Runny nose and sneezing")
        self.pipeline.record_consent(True)
        await self.pipeline.run(Session())
        self.assertIs(self.pipeline.state, IntakeState.complete)
        self.assertEqual(self.store.list_reports(), [])
        self.assertIsNone(self.pipeline.report)

    async def test_emergency_result_persisted(self):
        self.pipeline.submit("Seizure lasting two minutes")
        self.pipeline.record_consent(True)
        await self.pipeline.run(Session(PATIENT))
        self.assertEqual(self.store.list_reports()[0].possible_conditions, EMERGENCY_CONDITIONS)

    async def test_save_failure_keeps_result(self):
        pipeline = IntakePipeline(self.requester, FullDiskStore(), clock=_clock)
        pipeline.submit("Runny nose and sneezing")
        pipeline.record_consent(True)
        with self.assertRaises(ReportSaveFailure) as ctx:
            await pipeline.run(Session(PATIENT))
        self.assertIsInstance(ctx.exception.__cause__, OSError)
        self.assertIs(pipeline.state, IntakeState.complete)
        self.assertEqual(pipeline.result, RESULT)
        self.assertIsNone(pipeline.report)
        self.assertIs(pipeline.error, ctx.exception)
        self.assertIn("could not be saved", pipeline.error.user_message)

    async def test_duplicate_report_key_is_a_save_failure(self):
        self.pipeline.submit("Runny nose and sneezing")
        self.pipeline.record_consent(True)
        await self.pipeline.run(Session(PATIENT))

        self.pipeline.submit("Runny nose and sneezing again")
        self.pipeline.record_consent(True)
        with self.assertRaises(ReportSaveFailure):
            await self.pipeline.run(Session(PATIENT))
        self.assertEqual(len(self.store.list_reports()), 1)
        self.assertIsNotNone(self.pipeline.result)

    # -------------------------
    # Failure and re-entry
    # -------------------------
    async def test_request_failure(self):
        self.requester.error = AnalysisRequestFailure("down")
        self.pipeline.submit("Runny nose and sneezing")
        self.pipeline.record_consent(True)
        with self.assertRaises(AnalysisRequestFailure):
            await self.pipeline.run(Session(PATIENT))
        self.assertIs(self.pipeline.state, IntakeState.failed)
        self.assertIsInstance(self.pipeline.error, AnalysisRequestFailure)
        self.assertEqual(self.store.list_reports(), [])

    async def test_schema_violation_fails_attempt(self):
        self.requester.error = SchemaViolation("bad shape")
        self.pipeline.submit("Runny nose and sneezing")
        self.pipeline.record_consent(True)
        with self.assertRaises(SchemaViolation):
            await self.pipeline.run(Session(PATIENT))
        self.assertIs(self.pipeline.state, IntakeState.failed)

    async def test_unexpected_error_wrapped(self):
        self.requester.error = RuntimeError("bug")
        self.pipeline.submit("Runny nose and sneezing")
        self.pipeline.record_consent(True)
        with self.assertRaises(AnalysisRequestFailure):
            await self.pipeline.run(Session())
        self.assertIs(self.pipeline.state, IntakeState.failed)

    async def test_fresh_submission_after_failure(self):
        self.requester.error = AnalysisRequestFailure("down")
        self.pipeline.submit("Runny nose and sneezing")
        self.pipeline.record_consent(True)
        with self.assertRaises(AnalysisRequestFailure):
            await self.pipeline.run(Session())

        self.requester.error = None
        self.pipeline.submit("Runny nose and sneezing")
        self.assertFalse(self.pipeline.consent)
        self.assertIsNone(self.pipeline.error)
        self.pipeline.record_consent(True)
        await self.pipeline.run(Session())
        self.assertIs(self.pipeline.state, IntakeState.complete)
        self.assertEqual(len(self.requester.calls), 2)

    async def test_submit_refused_while_analyzing(self):
        pipeline = self.pipeline

        class ReentrantRequester(FakeRequester):
            async def request_analysis(inner_self, symptom_input):
                with self.assertRaises(InvalidTransition):
                    pipeline.submit("Another submission text")
                return await super().request_analysis(symptom_input)

        pipeline.requester = ReentrantRequester()
        pipeline.submit("Runny nose and sneezing")
        pipeline.record_consent(True)
        await pipeline.run(Session())
        self.assertIs(pipeline.state, IntakeState.complete)

    async def test_reset_returns_to_idle(self):
        self.pipeline.submit("Runny nose and sneezing")
        self.pipeline.record_consent(True)
        await self.pipeline.run(Session())
        self.pipeline.reset()
        self.assertIs(self.pipeline.state, IntakeState.idle)
        self.assertIsNone(self.pipeline.result)


if __name__ == "__main__":
    unittest.main()
