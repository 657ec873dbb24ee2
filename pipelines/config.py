"""
pipelines/config.py

Runtime settings read from the environment (and an optional ``.env`` file).

Variables
---------
MEDICHAIN_STORE       json | sqlite | memory            (default: json)
MEDICHAIN_DATA_DIR    directory for json/sqlite files   (default: ./data)
ANALYSIS_PROVIDER     demo | openai | medgemma          (default: demo)
OPENAI_API_KEY        required for the openai provider (checked per attempt)
OPENAI_BASE_URL       optional endpoint override, read by the openai SDK
MODEL_NAME            hosted model name                 (default: gpt-4o-mini)
MEDGEMMA_MODEL        local HF model id                 (default: google/medgemma-4b-it)
LOG_LEVEL             logging level name                (default: INFO)

The Fernet key for SQLite payload encryption (APP_DATA_KEY) is read by
storage/crypto.py directly.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

STORE_BACKENDS = ("json", "sqlite", "memory")
ANALYSIS_PROVIDERS = ("demo", "openai", "medgemma")


@dataclass(frozen=True)
class Settings:
    store_backend: str = "json"
    data_dir: Path = Path("data")
    analysis_provider: str = "demo"
    openai_api_key: str = ""
    model_name: str = "gpt-4o-mini"
    medgemma_model: str = "google/medgemma-4b-it"
    log_level: str = "INFO"


def _choice(name: str, default: str, allowed: tuple[str, ...]) -> str:
    value = os.getenv(name, default).strip().lower() or default
    if value not in allowed:
        logger.warning("%s=%r is not one of %s; using %r.", name, value, allowed, default)
        return default
    return value


def load_settings() -> Settings:
    """Build a fresh :class:`Settings` from the current environment."""
    load_dotenv()
    return Settings(
        store_backend=_choice("MEDICHAIN_STORE", "json", STORE_BACKENDS),
        data_dir=Path(os.getenv("MEDICHAIN_DATA_DIR", "data")),
        analysis_provider=_choice("ANALYSIS_PROVIDER", "demo", ANALYSIS_PROVIDERS),
        openai_api_key=os.getenv("OPENAI_API_KEY", "").strip(),
        model_name=os.getenv("MODEL_NAME", "gpt-4o-mini").strip(),
        medgemma_model=os.getenv("MEDGEMMA_MODEL", "google/medgemma-4b-it").strip(),
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings (cached after the first call)."""
    return load_settings()
