"""
pipelines/errors.py

Error taxonomy for MediChain.

Every error is scoped to a single user-initiated operation: the UI catches
:class:`MediChainError`, shows ``user_message`` and lets the user try again.
Nothing here is fatal to the process.
"""

from __future__ import annotations

GENERIC_ERROR_MESSAGE = "An unexpected error occurred. Please try again."


class MediChainError(Exception):
    """Base class for all domain errors."""

    user_message: str = GENERIC_ERROR_MESSAGE

    def __init__(self, message: str | None = None, *, user_message: str | None = None) -> None:
        super().__init__(message or user_message or self.user_message)
        if user_message is not None:
            self.user_message = user_message


class InputValidationError(MediChainError, ValueError):
    """Submitted input failed validation (e.g. symptoms too short)."""

    user_message = "Please describe your symptoms in at least 10 characters."


class ConsentNotGiven(MediChainError):
    """Analysis was requested before the disclaimer was acknowledged."""

    user_message = "You must read and agree to the terms before requesting an analysis."


class AnalysisRequestFailure(MediChainError):
    """The text-generation provider failed (network, auth, timeout, ...)."""


class SchemaViolation(MediChainError):
    """The model answered, but not in the AnalysisResult shape."""


class DuplicateUser(MediChainError):
    """Signup with an email that is already registered."""

    user_message = "An account with this email may already exist."


class InvalidTransition(MediChainError):
    """The intake state machine was driven out of order."""

    user_message = "An analysis is already in progress. Please wait for it to finish."


class AccessDenied(MediChainError, PermissionError):
    """The active session's role does not allow the operation."""

    user_message = "You do not have permission to do that."


class ReportNotFound(MediChainError, LookupError):
    """No report matches the ``(user_id, date)`` key."""

    user_message = "That report could not be found."


class StaleReportError(MediChainError):
    """Compare-and-swap on doctor notes lost against a concurrent edit."""

    user_message = "This report was updated by someone else. Reload it and try again."


class ReportSaveFailure(MediChainError):
    """The analysis completed but the report could not be persisted."""

    user_message = "Your results are shown below, but they could not be saved. Please try again later."
