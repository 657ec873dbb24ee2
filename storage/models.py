"""
storage/models.py

Pydantic v2 data models shared by the stores, the accounts layer and the UI.

These models describe the shape of records; persistence is handled by the
backends (storage/json_store.py, storage/db.py, storage/repository.py).
Serialised with ``by_alias=True`` they produce the camelCase JSON layout of the
stored key-value blobs (``userId``, ``possibleConditions``...).
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from pipelines.schemas import AnalysisResult, SymptomInput


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class UserRole(str, Enum):
    """The three roles a registered identity can hold."""
    patient = "patient"
    doctor = "doctor"
    admin = "admin"


def now_iso() -> str:
    """Return the current UTC time as an ISO-8601 string."""
    return datetime.now(tz=timezone.utc).isoformat()


def parse_iso(value: str) -> datetime:
    """Parse an ISO-8601 timestamp (``Z`` suffix accepted); naive values are UTC."""
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


# ---------------------------------------------------------------------------
# Domain models
# ---------------------------------------------------------------------------


class UserRecord(BaseModel):
    """A registered user as exposed to the application. Never carries the password."""
    model_config = ConfigDict(frozen=True, use_enum_values=True)

    id: str
    name: str
    email: str
    role: UserRole


class Report(BaseModel):
    """
    One persisted symptom submission: the input, the analysis and who sent it.

    ``(user_id, date)`` identifies a report. ``doctor_notes`` is the only field
    that changes after creation.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
    )

    symptoms: str
    medical_history: Optional[str] = None
    possible_conditions: str
    confidence_level: str
    next_steps: str
    disclaimer: str
    date: str = Field(description="ISO-8601 UTC timestamp of submission.")
    user_id: str
    user_name: str
    user_role: UserRole
    doctor_notes: Optional[str] = None

    @property
    def key(self) -> tuple[str, str]:
        return (self.user_id, self.date)

    @classmethod
    def from_submission(
        cls,
        symptom_input: SymptomInput,
        result: AnalysisResult,
        user: UserRecord,
        date: str | None = None,
    ) -> "Report":
        return cls(
            symptoms=symptom_input.symptoms,
            medical_history=symptom_input.medical_history,
            possible_conditions=result.possible_conditions,
            confidence_level=result.confidence_level,
            next_steps=result.next_steps,
            disclaimer=result.disclaimer,
            date=date or now_iso(),
            user_id=user.id,
            user_name=user.name,
            user_role=user.role,
        )

    def to_storage(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class Session:
    """
    The caller's authentication context, passed explicitly into every operation.

    An empty session (``user is None``) is an anonymous visitor.
    """

    def __init__(self, user: UserRecord | None = None) -> None:
        self.user = user

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def role(self) -> str | None:
        return self.user.role if self.user else None

    def has_role(self, *roles: str) -> bool:
        return self.user is not None and self.user.role in roles

    def can_view(self, report: Report) -> bool:
        """Patients see their own reports; doctors and admins see all of them."""
        if self.user is None:
            return False
        if self.user.role in (UserRole.doctor.value, UserRole.admin.value):
            return True
        return report.user_id == self.user.id

    def clear(self) -> None:
        self.user = None

    def __repr__(self) -> str:
        who = f"{self.user.id}:{self.user.role}" if self.user else "anonymous"
        return f"Session({who})"
