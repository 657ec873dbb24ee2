"""
storage/repository.py

Repository interfaces for users and reports, the shared document-store
implementation, demo seeding and the store factory.

Interfaces
----------
CredentialStore  create_user / find_user_by_email / get_password_blob / list_users
ReportStore      add_report / find_report / update_doctor_notes / list_reports

Backends
--------
InMemoryStore            (this module) tests and throwaway demos
JsonStore                (storage/json_store.py) one JSON document on disk
SqliteStore              (storage/db.py) SQLite with encrypted report payloads

Every backend serialises its own access with an RLock. Doctor-note edits are
compare-and-swap: pass ``expected`` (the notes you last read) and the update
fails with StaleReportError if someone else changed them in between.
"""

from __future__ import annotations

import copy
import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from pipelines.config import Settings, get_settings
from pipelines.errors import DuplicateUser, ReportNotFound, StaleReportError
from storage.crypto import hash_password
from storage.models import Report, UserRecord, UserRole

logger = logging.getLogger(__name__)


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"


UNSET: Any = _Unset()


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def check_expected_notes(report: Report, expected: Any) -> None:
    """Raise StaleReportError if *expected* is given and no longer matches."""
    if expected is UNSET:
        return
    if (report.doctor_notes or None) != (expected or None):
        raise StaleReportError(
            f"doctorNotes for report ({report.user_id}, {report.date}) changed concurrently"
        )


# ---------------------------------------------------------------------------
# Interfaces
# ---------------------------------------------------------------------------


class CredentialStore(ABC):
    """Users plus their write-only password blobs."""

    @abstractmethod
    def create_user(self, name: str, email: str, role: str, password_blob: str) -> UserRecord:
        """Insert a user. Raises DuplicateUser if the email is taken."""

    @abstractmethod
    def find_user_by_email(self, email: str) -> Optional[UserRecord]:
        ...

    @abstractmethod
    def get_password_blob(self, user_id: str) -> Optional[str]:
        ...

    @abstractmethod
    def list_users(self) -> list[UserRecord]:
        ...


class ReportStore(ABC):
    """Append-only reports; only ``doctor_notes`` may change."""

    @abstractmethod
    def add_report(self, report: Report) -> Report:
        """Append a report. Raises ValueError if ``(user_id, date)`` already exists."""

    @abstractmethod
    def find_report(self, user_id: str, date: str) -> Optional[Report]:
        ...

    @abstractmethod
    def update_doctor_notes(
        self, user_id: str, date: str, notes: Optional[str], *, expected: Any = UNSET
    ) -> Report:
        """Set ``doctor_notes`` on one report and return the updated record."""

    @abstractmethod
    def list_reports(self) -> list[Report]:
        """All reports, newest submission first."""


class Store(CredentialStore, ReportStore):
    """A backend that holds both users and reports."""

    @abstractmethod
    def is_initialized(self) -> bool:
        ...

    @abstractmethod
    def mark_initialized(self) -> None:
        ...


# ---------------------------------------------------------------------------
# Document store: the whole database is one dict
#   {"users": [...], "reports": [...], "initialized": bool}
# ---------------------------------------------------------------------------


def empty_document() -> dict:
    return {"users": [], "reports": []}


class DocumentStore(Store):
    """Store operations over a single JSON-shaped document (load, mutate, save)."""

    def __init__(self) -> None:
        self._lock = threading.RLock()

    @abstractmethod
    def load(self) -> dict:
        ...

    @abstractmethod
    def save(self, doc: dict) -> None:
        ...

    # -------------------------
    # Init flag
    # -------------------------
    def is_initialized(self) -> bool:
        with self._lock:
            return bool(self.load().get("initialized"))

    def mark_initialized(self) -> None:
        with self._lock:
            doc = self.load()
            doc["initialized"] = True
            self.save(doc)

    # -------------------------
    # Users
    # -------------------------
    @staticmethod
    def _public(u: dict) -> UserRecord:
        return UserRecord(id=u["id"], name=u["name"], email=u["email"], role=u["role"])

    def create_user(self, name: str, email: str, role: str, password_blob: str) -> UserRecord:
        email_norm = normalize_email(email)
        with self._lock:
            doc = self.load()
            users = doc.setdefault("users", [])
            if any(normalize_email(u.get("email", "")) == email_norm for u in users):
                raise DuplicateUser(f"Email already registered: {email_norm}")
            row = {
                "id": str(len(users) + 1),
                "name": name,
                "email": email_norm,
                "password": password_blob,
                "role": UserRole(role).value,
            }
            users.append(row)
            self.save(doc)
        logger.info("Created user id=%s role=%s", row["id"], row["role"])
        return self._public(row)

    def find_user_by_email(self, email: str) -> Optional[UserRecord]:
        email_norm = normalize_email(email)
        with self._lock:
            for u in self.load().get("users", []):
                if normalize_email(u.get("email", "")) == email_norm:
                    return self._public(u)
        return None

    def get_password_blob(self, user_id: str) -> Optional[str]:
        with self._lock:
            for u in self.load().get("users", []):
                if u.get("id") == user_id:
                    return u.get("password")
        return None

    def list_users(self) -> list[UserRecord]:
        with self._lock:
            return [self._public(u) for u in self.load().get("users", [])]

    # -------------------------
    # Reports
    # -------------------------
    def add_report(self, report: Report) -> Report:
        with self._lock:
            doc = self.load()
            reports = doc.setdefault("reports", [])
            for r in reports:
                if r.get("userId") == report.user_id and r.get("date") == report.date:
                    raise ValueError(f"Report ({report.user_id}, {report.date}) already exists")
            reports.insert(0, report.to_storage())
            self.save(doc)
        logger.info("Stored report for user_id=%s", report.user_id)
        return report

    def find_report(self, user_id: str, date: str) -> Optional[Report]:
        with self._lock:
            for r in self.load().get("reports", []):
                if r.get("userId") == user_id and r.get("date") == date:
                    return Report.model_validate(r)
        return None

    def update_doctor_notes(
        self, user_id: str, date: str, notes: Optional[str], *, expected: Any = UNSET
    ) -> Report:
        with self._lock:
            doc = self.load()
            reports = doc.get("reports", [])
            for i, r in enumerate(reports):
                if r.get("userId") == user_id and r.get("date") == date:
                    current = Report.model_validate(r)
                    check_expected_notes(current, expected)
                    updated = current.model_copy(update={"doctor_notes": notes or None})
                    reports[i] = updated.to_storage()
                    self.save(doc)
                    logger.info("Updated doctor notes on report (%s, %s)", user_id, date)
                    return updated
        raise ReportNotFound(f"No report for user_id={user_id} date={date}")

    def list_reports(self) -> list[Report]:
        with self._lock:
            return [Report.model_validate(r) for r in self.load().get("reports", [])]


class InMemoryStore(DocumentStore):
    """Document store kept in process memory."""

    def __init__(self) -> None:
        super().__init__()
        self._doc = empty_document()

    def load(self) -> dict:
        # callers mutate the loaded doc; hand out a copy so a failed write leaves no trace
        return copy.deepcopy(self._doc)

    def save(self, doc: dict) -> None:
        self._doc = copy.deepcopy(doc)


# ---------------------------------------------------------------------------
# Demo seeding
# ---------------------------------------------------------------------------

DEMO_PASSWORD = "password"

DEMO_USERS: list[tuple[str, str, str]] = [
    ("Admin User", "admin@medichain.com", UserRole.admin.value),
    ("Doctor Smith", "doctor@medichain.com", UserRole.doctor.value),
    ("Jane Patient", "patient@medichain.com", UserRole.patient.value),
]


def seed_demo_data(store: Store) -> None:
    """
    Populate three demo accounts and one demo report, then set the
    ``initialized`` flag. Does nothing if the store is already initialized.
    """
    if store.is_initialized():
        return

    for name, email, role in DEMO_USERS:
        if store.find_user_by_email(email) is None:
            store.create_user(name, email, role, hash_password(DEMO_PASSWORD))

    patient = store.find_user_by_email("patient@medichain.com")
    if patient is not None:
        yesterday = datetime.now(tz=timezone.utc) - timedelta(days=1)
        store.add_report(
            Report(
                symptoms="Headache and fatigue for 2 days.",
                possible_conditions="Common Cold, Influenza, Migraine",
                confidence_level="Medium",
                next_steps="Rest and drink fluids. See a doctor if symptoms worsen.",
                disclaimer="This is not a medical diagnosis.",
                date=yesterday.isoformat(),
                user_id=patient.id,
                user_name=patient.name,
                user_role=patient.role,
            )
        )

    store.mark_initialized()
    logger.info("Seeded demo accounts and report.")


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def open_store(settings: Settings, *, seed: bool = True) -> Store:
    """Open the backend named in *settings*, seeding demo data on first run."""
    backend = settings.store_backend
    if backend == "sqlite":
        from storage.db import SqliteStore

        store: Store = SqliteStore(settings.data_dir / "medichain.db")
    elif backend == "json":
        from storage.json_store import JsonStore

        store = JsonStore(settings.data_dir / "medichain.json")
    else:
        store = InMemoryStore()

    if seed:
        seed_demo_data(store)
    logger.info("Opened %s store", backend)
    return store


_STORE_SINGLETON: Optional[Store] = None


def get_store() -> Store:
    global _STORE_SINGLETON
    if _STORE_SINGLETON is None:
        _STORE_SINGLETON = open_store(get_settings())
    return _STORE_SINGLETON
