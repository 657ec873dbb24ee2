"""
storage/db.py

SQLite backend for MediChain users and reports.

Schema
------
users        registered identities (patient / doctor / admin)
credentials  password blob per user (never leaves this module except for verification)
reports      report metadata in the clear + encrypted medical payload
meta         key/value flags (``initialized``)

All medical content (symptoms, history, analysis, doctor notes) is stored only
inside reports.encrypted_blob, which is encrypted by storage.crypto before
being persisted. Metadata used for listing (user, date, confidence) is kept in
the clear.

Usage
-----
    from storage.db import SqliteStore
    store = SqliteStore(Path("data/medichain.db"))
"""

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Optional

from pipelines.errors import DuplicateUser, ReportNotFound
from storage.crypto import decrypt_json, encrypt_json
from storage.models import Report, UserRecord, UserRole, now_iso
from storage.repository import UNSET, Store, check_expected_notes, normalize_email

logger = logging.getLogger(__name__)

_PAYLOAD_FIELDS = (
    "symptoms",
    "medicalHistory",
    "possibleConditions",
    "nextSteps",
    "disclaimer",
    "doctorNotes",
)

_DDL = """
CREATE TABLE IF NOT EXISTS users (
    id          TEXT PRIMARY KEY,
    name        TEXT NOT NULL,
    email       TEXT NOT NULL UNIQUE,      -- lower-cased
    role        TEXT NOT NULL CHECK(role IN ('patient', 'doctor', 'admin')),
    created_at  TEXT NOT NULL              -- ISO-8601 UTC
);

CREATE TABLE IF NOT EXISTS credentials (
    user_id       TEXT PRIMARY KEY REFERENCES users(id) ON DELETE CASCADE,
    password_blob TEXT NOT NULL            -- "<hex_salt>:<hex_hash>"
);

CREATE TABLE IF NOT EXISTS reports (
    id               INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id          TEXT NOT NULL REFERENCES users(id),
    date             TEXT NOT NULL,        -- ISO-8601 UTC
    user_name        TEXT NOT NULL,
    user_role        TEXT NOT NULL,
    confidence_level TEXT NOT NULL,
    encrypted_blob   TEXT NOT NULL,        -- Fernet token from crypto.py
    UNIQUE(user_id, date)
);

CREATE TABLE IF NOT EXISTS meta (
    key   TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""


class SqliteStore(Store):
    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock = threading.RLock()
        self.init_db()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """
        Open a connection, commit on success, roll back on error, always close.

        :class:`sqlite3.Row` is set as the row_factory so rows behave like dicts.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self.path), check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys=ON;")
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def init_db(self) -> None:
        """Create all tables if they do not already exist (idempotent)."""
        with self._connect() as conn:
            conn.execute("PRAGMA journal_mode=WAL;")
            conn.executescript(_DDL)
        logger.info("Database initialised at %s", self.path)

    # ------------------------------------------------------------------
    # Init flag
    # ------------------------------------------------------------------

    def is_initialized(self) -> bool:
        with self._connect() as conn:
            row = conn.execute("SELECT value FROM meta WHERE key = 'initialized'").fetchone()
        return row is not None and row["value"] == "true"

    def mark_initialized(self) -> None:
        with self._lock, self._connect() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO meta (key, value) VALUES ('initialized', 'true')"
            )

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    @staticmethod
    def _user(row: sqlite3.Row) -> UserRecord:
        return UserRecord(id=row["id"], name=row["name"], email=row["email"], role=row["role"])

    def create_user(self, name: str, email: str, role: str, password_blob: str) -> UserRecord:
        email_norm = normalize_email(email)
        role = UserRole(role).value
        with self._lock, self._connect() as conn:
            conn.execute("BEGIN IMMEDIATE")
            if conn.execute("SELECT 1 FROM users WHERE email = ?", (email_norm,)).fetchone():
                raise DuplicateUser(f"Email already registered: {email_norm}")
            (count,) = conn.execute("SELECT COUNT(*) FROM users").fetchone()
            user_id = str(count + 1)
            conn.execute(
                "INSERT INTO users (id, name, email, role, created_at) VALUES (?, ?, ?, ?, ?)",
                (user_id, name, email_norm, role, now_iso()),
            )
            conn.execute(
                "INSERT INTO credentials (user_id, password_blob) VALUES (?, ?)",
                (user_id, password_blob),
            )
        logger.info("Created user id=%s role=%s", user_id, role)
        return UserRecord(id=user_id, name=name, email=email_norm, role=role)

    def find_user_by_email(self, email: str) -> Optional[UserRecord]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM users WHERE email = ?", (normalize_email(email),)
            ).fetchone()
        return self._user(row) if row else None

    def get_password_blob(self, user_id: str) -> Optional[str]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT password_blob FROM credentials WHERE user_id = ?", (user_id,)
            ).fetchone()
        return row["password_blob"] if row else None

    def list_users(self) -> list[UserRecord]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM users ORDER BY CAST(id AS INTEGER)").fetchall()
        return [self._user(r) for r in rows]

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    @staticmethod
    def _report(row: sqlite3.Row) -> Report:
        payload = decrypt_json(row["encrypted_blob"])
        return Report.model_validate(
            {
                **payload,
                "date": row["date"],
                "userId": row["user_id"],
                "userName": row["user_name"],
                "userRole": row["user_role"],
                "confidenceLevel": row["confidence_level"],
            }
        )

    @staticmethod
    def _payload(report: Report) -> dict[str, Any]:
        data = report.to_storage()
        return {k: data.get(k) for k in _PAYLOAD_FIELDS}

    def add_report(self, report: Report) -> Report:
        with self._lock, self._connect() as conn:
            try:
                conn.execute(
                    """
                    INSERT INTO reports
                        (user_id, date, user_name, user_role, confidence_level, encrypted_blob)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        report.user_id,
                        report.date,
                        report.user_name,
                        report.user_role,
                        report.confidence_level,
                        encrypt_json(self._payload(report)),
                    ),
                )
            except sqlite3.IntegrityError as exc:
                raise ValueError(f"Report ({report.user_id}, {report.date}) already exists") from exc
        logger.info("Stored report for user_id=%s", report.user_id)
        return report

    def find_report(self, user_id: str, date: str) -> Optional[Report]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM reports WHERE user_id = ? AND date = ?", (user_id, date)
            ).fetchone()
        return self._report(row) if row else None

    def update_doctor_notes(
        self, user_id: str, date: str, notes: Optional[str], *, expected: Any = UNSET
    ) -> Report:
        with self._lock, self._connect() as conn:
            # IMMEDIATE takes the write lock before the read, so the
            # compare-and-swap also holds against other processes.
            conn.execute("BEGIN IMMEDIATE")
            row = conn.execute(
                "SELECT * FROM reports WHERE user_id = ? AND date = ?", (user_id, date)
            ).fetchone()
            if row is None:
                raise ReportNotFound(f"No report for user_id={user_id} date={date}")

            current = self._report(row)
            check_expected_notes(current, expected)
            updated = current.model_copy(update={"doctor_notes": notes or None})
            conn.execute(
                "UPDATE reports SET encrypted_blob = ? WHERE id = ?",
                (encrypt_json(self._payload(updated)), row["id"]),
            )
        logger.info("Updated doctor notes on report (%s, %s)", user_id, date)
        return updated

    def list_reports(self) -> list[Report]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM reports ORDER BY id DESC").fetchall()
        return [self._report(r) for r in rows]
