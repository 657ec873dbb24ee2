"""
storage/crypto.py

At-rest protection for the SQLite backend plus password hashing for all
backends.

Report payloads
---------------
Report medical fields (symptoms, history, analysis, doctor notes) are sealed
with Fernet before they reach the ``reports.encrypted_blob`` column. The key
comes from APP_DATA_KEY (output of ``Fernet.generate_key()``). Without it a
throwaway key is made for this process only and a warning is logged: reports
written in that mode cannot be read after a restart.

Passwords
---------
PBKDF2-HMAC-SHA256, 260 000 iterations, 16-byte random salt, stored as
``"<hex_salt>:<hex_hash>"``. Checked with ``hmac.compare_digest``.

Exports
-------
encrypt_json(payload) / decrypt_json(token)
hash_password(password) / verify_password(password, blob)
"""

import hashlib
import hmac
import json
import logging
import os
from functools import lru_cache

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Fernet key
# ---------------------------------------------------------------------------

DATA_KEY_ENV = "APP_DATA_KEY"


@lru_cache(maxsize=1)
def _get_fernet() -> Fernet:
    """One Fernet per process, keyed from APP_DATA_KEY or an ephemeral key."""
    configured = os.environ.get(DATA_KEY_ENV, "").strip()
    if configured:
        return Fernet(configured.encode())

    logger.warning(
        "%s is not set; report payloads are encrypted with a throwaway key "
        "and will be unreadable after this process exits.",
        DATA_KEY_ENV,
    )
    return Fernet(Fernet.generate_key())


# ---------------------------------------------------------------------------
# Report payloads
# ---------------------------------------------------------------------------


def encrypt_json(payload: dict) -> str:
    """Seal *payload* as a Fernet token (str, safe for a TEXT column)."""
    raw = json.dumps(payload, ensure_ascii=False, default=str).encode("utf-8")
    return _get_fernet().encrypt(raw).decode("ascii")


def decrypt_json(token: str) -> dict:
    """
    Open a token made by :func:`encrypt_json`.

    Raises InvalidToken when the key differs from the one used to seal it
    (e.g. APP_DATA_KEY changed, or the data was written with an ephemeral key).
    """
    try:
        raw = _get_fernet().decrypt(token.encode("ascii"))
    except InvalidToken:
        logger.error("Could not decrypt a report payload (wrong APP_DATA_KEY?).")
        raise
    return json.loads(raw.decode("utf-8"))


# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------

_ITERATIONS = 260_000
_HASH_ALG = "sha256"


def _pbkdf2(password: str, salt: bytes) -> bytes:
    return hashlib.pbkdf2_hmac(_HASH_ALG, password.encode("utf-8"), salt, _ITERATIONS)


def hash_password(password: str) -> str:
    """Return a ``"<hex_salt>:<hex_hash>"`` blob for *password*."""
    salt = os.urandom(16)
    return f"{salt.hex()}:{_pbkdf2(password, salt).hex()}"


def verify_password(password: str, blob: str) -> bool:
    """
    Verify *password* against a stored ``"<hex_salt>:<hex_hash>"`` blob.
    Uses ``hmac.compare_digest`` to prevent timing attacks.
    """
    try:
        hex_salt, hex_hash = blob.split(":", 1)
        salt = bytes.fromhex(hex_salt)
    except ValueError:
        return False
    return hmac.compare_digest(_pbkdf2(password, salt).hex(), hex_hash)
