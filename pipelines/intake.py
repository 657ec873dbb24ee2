"""
pipelines/intake.py

The intake pipeline: one symptom submission driven through an explicit state
machine, independent of any UI.

    idle -> validating -> consent_pending -> emergency | analyzing -> complete | failed

- ``submit()``         validates the input (stays ``idle`` on failure)
- ``record_consent()`` the per-submission "I have read and agree" flag
- ``run()``            emergency screen first, otherwise exactly one analysis
                       request; commits a Report only when the session has a user

A new ``submit()`` starts a fresh attempt from ``idle``, ``complete`` or
``failed``; it is refused while an attempt is in flight.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Optional

from pydantic import ValidationError

from pipelines.analysis import AnalysisRequester
from pipelines.emergency import classify, emergency_result
from pipelines.errors import (
    AnalysisRequestFailure,
    ConsentNotGiven,
    InputValidationError,
    InvalidTransition,
    MediChainError,
    ReportSaveFailure,
)
from pipelines.schemas import AnalysisResult, SymptomInput
from storage.models import Report, Session, now_iso
from storage.repository import ReportStore

logger = logging.getLogger(__name__)


class IntakeState(str, Enum):
    idle = "idle"
    validating = "validating"
    consent_pending = "consent_pending"
    emergency = "emergency"
    analyzing = "analyzing"
    complete = "complete"
    failed = "failed"


_IN_FLIGHT = (IntakeState.validating, IntakeState.emergency, IntakeState.analyzing)


class IntakePipeline:
    """
    Drives one submission at a time.

    Args:
        requester:  Analysis requester used on the non-emergency branch.
        reports:    Where completed reports are committed. ``None`` disables
                    persistence entirely (anonymous-only checker).
        classifier: Emergency screen; ``True`` bypasses the requester.
        clock:      Returns the ISO timestamp stored as the report date.
    """

    def __init__(
        self,
        requester: AnalysisRequester,
        reports: Optional[ReportStore] = None,
        *,
        classifier: Callable[[str], bool] = classify,
        clock: Callable[[], str] = now_iso,
    ) -> None:
        self.requester = requester
        self.reports = reports
        self.classifier = classifier
        self.clock = clock

        self.state = IntakeState.idle
        self.history: list[IntakeState] = [IntakeState.idle]
        self._clear_attempt()

    # -------------------------
    # Helpers
    # -------------------------
    def _clear_attempt(self) -> None:
        self.symptom_input: Optional[SymptomInput] = None
        self.consent = False
        self.is_emergency = False
        self.result: Optional[AnalysisResult] = None
        self.error: Optional[MediChainError] = None
        self.report: Optional[Report] = None

    def _move(self, state: IntakeState) -> None:
        logger.debug("Intake state %s -> %s", self.state.value, state.value)
        self.state = state
        self.history.append(state)

    def _fail(self, error: MediChainError) -> None:
        self.error = error
        self._move(IntakeState.failed)

    @property
    def busy(self) -> bool:
        """True while an attempt is running; the form should be disabled."""
        return self.state in _IN_FLIGHT

    def reset(self) -> None:
        """Drop the current attempt and return to ``idle``."""
        if self.busy:
            raise InvalidTransition(f"cannot reset while {self.state.value}")
        self._clear_attempt()
        if self.state is not IntakeState.idle:
            self._move(IntakeState.idle)

    # -------------------------
    # Transitions
    # -------------------------
    def submit(self, symptoms: str, medical_history: Optional[str] = None) -> SymptomInput:
        """
        Start a new attempt with *symptoms* and optional *medical_history*.

        Raises:
            InvalidTransition:    If an attempt is still in flight.
            InputValidationError: If the symptoms are shorter than 10 characters.
                                  The pipeline is left in ``idle``.
        """
        if self.busy:
            raise InvalidTransition(f"cannot submit while {self.state.value}")

        self._clear_attempt()
        if self.state is not IntakeState.idle:
            self._move(IntakeState.idle)
        self._move(IntakeState.validating)

        try:
            symptom_input = SymptomInput(symptoms=symptoms or "", medical_history=medical_history)
        except ValidationError as e:
            self._move(IntakeState.idle)
            raise InputValidationError(f"symptoms failed validation ({e.error_count()} error(s))") from e

        self.symptom_input = symptom_input
        self._move(IntakeState.consent_pending)
        return symptom_input

    def record_consent(self, agreed: bool = True) -> None:
        if self.state is not IntakeState.consent_pending:
            raise InvalidTransition(f"consent is only recorded in consent_pending, not {self.state.value}")
        self.consent = bool(agreed)

    async def run(self, session: Session) -> AnalysisResult:
        """
        Produce the result for the pending submission.

        The emergency screen always runs before any remote call. On success the
        pipeline is ``complete`` and, if ``session.user`` is set, the report has
        been committed (available as ``self.report``).

        Raises:
            InvalidTransition:      If there is no submission waiting for consent.
            ConsentNotGiven:        If consent has not been recorded. State is unchanged.
            AnalysisRequestFailure: Provider call failed. State is ``failed``.
            SchemaViolation:        Provider answered in the wrong shape. State is ``failed``.
            ReportSaveFailure:      The report could not be stored. State stays
                                    ``complete`` with ``result`` set and ``report`` None.
        """
        if self.state is not IntakeState.consent_pending:
            raise InvalidTransition(f"cannot run from {self.state.value}")
        if not self.consent:
            raise ConsentNotGiven("analysis requested without consent")

        if self.classifier(self.symptom_input.symptoms):
            self.is_emergency = True
            self._move(IntakeState.emergency)
            result = emergency_result()
            logger.warning("Emergency phrases detected; model analysis bypassed.")
        else:
            self._move(IntakeState.analyzing)
            try:
                result = await self.requester.request_analysis(self.symptom_input)
            except MediChainError as exc:
                self._fail(exc)
                raise
            except Exception as exc:
                wrapped = AnalysisRequestFailure(f"Analysis failed: {exc.__class__.__name__}")
                self._fail(wrapped)
                raise wrapped from exc

        self.result = result
        self._move(IntakeState.complete)
        self._commit(session)
        return result

    def _commit(self, session: Session) -> None:
        if session.user is None or self.reports is None:
            logger.info("Anonymous result; nothing persisted.")
            return
        report = Report.from_submission(self.symptom_input, self.result, session.user, date=self.clock())
        try:
            self.reports.add_report(report)
        except Exception as exc:
            # the result stays displayable; only the save is reported as failed
            logger.exception("Failed to persist report for user_id=%s", session.user.id)
            self.error = ReportSaveFailure(f"Report save failed: {exc.__class__.__name__}")
            raise self.error from exc
        self.report = report
        logger.info("Committed report for user_id=%s", session.user.id)
