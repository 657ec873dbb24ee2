"""
storage/accounts.py

Account business logic on top of a CredentialStore.

Responsibilities
----------------
- Sign-up with field validation (name, email, password, role).
- Password-based login returning an explicit ``Session``.
- Logout (clears the session in place).

The store never hands out password material except through
``get_password_blob``, and only this module calls it.
"""

import logging
import re

from pipelines.errors import DuplicateUser, InputValidationError
from storage.crypto import hash_password, verify_password
from storage.models import Session, UserRecord, UserRole
from storage.repository import CredentialStore, normalize_email

logger = logging.getLogger(__name__)

MIN_NAME_LENGTH = 2
MIN_PASSWORD_LENGTH = 6

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def _validate_signup(name: str, email: str, password: str, role: str) -> None:
    if len((name or "").strip()) < MIN_NAME_LENGTH:
        raise InputValidationError(
            "name too short",
            user_message=f"Name must be at least {MIN_NAME_LENGTH} characters.",
        )
    if not _EMAIL_RE.match(normalize_email(email)):
        raise InputValidationError(
            "invalid email", user_message="Please enter a valid email address."
        )
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise InputValidationError(
            "password too short",
            user_message=f"Password must be at least {MIN_PASSWORD_LENGTH} characters.",
        )
    if role not in {r.value for r in UserRole}:
        raise InputValidationError(f"invalid role {role!r}", user_message="Please choose a role.")


# ---------------------------------------------------------------------------
# Public auth API
# ---------------------------------------------------------------------------


def signup(store: CredentialStore, name: str, email: str, password: str, role: str) -> UserRecord:
    """
    Register a new user and return their ``UserRecord``.

    Args:
        store:    Credential backend.
        name:     Display name (at least two characters).
        email:    Login identifier (case-insensitive, stored lower-cased).
        password: Plaintext password (hashed before storage).
        role:     ``'patient'``, ``'doctor'`` or ``'admin'``.

    Raises:
        InputValidationError: If a field fails validation.
        DuplicateUser:        If the email is already registered. Nothing is written.
    """
    _validate_signup(name, email, password, role)

    if store.find_user_by_email(email) is not None:
        raise DuplicateUser(f"Email already registered: {normalize_email(email)}")

    user = store.create_user(name.strip(), email, role, hash_password(password))
    logger.info("Registered user id=%s (role=%s)", user.id, user.role)
    return user


def login(store: CredentialStore, email: str, password: str) -> Session | None:
    """Verify credentials and return a fresh ``Session``, or ``None`` on failure."""
    user = store.find_user_by_email(email)
    if user is None:
        logger.debug("login: unknown email")
        return None

    blob = store.get_password_blob(user.id)
    if blob is None or not verify_password(password, blob):
        logger.debug("login: wrong password for user id=%s", user.id)
        return None

    logger.info("Authenticated user id=%s (role=%s)", user.id, user.role)
    return Session(user)


def logout(session: Session) -> None:
    if session.user is not None:
        logger.info("Logged out user id=%s", session.user.id)
    session.clear()
