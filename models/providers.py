"""
models/providers.py

Text-generation providers behind one tiny async interface:

    await generator.generate(prompt) -> str

- ``demo``     canned JSON, no network, no model (hosting-friendly)
- ``openai``   hosted chat completion (models/openai_runner.py)
- ``medgemma`` local transformers model (models/medgemma_runner.py)

Heavy providers are imported lazily so the demo path never loads torch.
"""

from __future__ import annotations

import json
import logging
from typing import Optional, Protocol

from pipelines.config import Settings, get_settings

logger = logging.getLogger(__name__)


class TextGenerator(Protocol):
    name: str

    async def generate(self, prompt: str) -> str: ...


class DemoGenerator:
    """Returns a fixed, schema-valid answer. Useful for testing the UI without an API key."""

    name = "demo"

    async def generate(self, prompt: str) -> str:
        return json.dumps(
            {
                "possibleConditions": "Viral upper respiratory infection, Seasonal allergies, Tension headache",
                "confidenceLevel": "low",
                "nextSteps": (
                    "Rest, stay hydrated and monitor your symptoms. "
                    "See a doctor if they last more than a few days or get worse."
                ),
                "disclaimer": "Demo only. This is not a medical diagnosis or a substitute for professional care.",
            },
            ensure_ascii=False,
        )


_generator: Optional[TextGenerator] = None


def build_generator(settings: Settings) -> TextGenerator:
    """Construct the provider named in *settings*."""
    provider = settings.analysis_provider
    if provider == "openai":
        from models.openai_runner import OpenAIGenerator

        return OpenAIGenerator(api_key=settings.openai_api_key, model=settings.model_name)
    if provider == "medgemma":
        from models.medgemma_runner import MedGemmaRunner

        return MedGemmaRunner(model_name=settings.medgemma_model)
    return DemoGenerator()


def get_generator() -> TextGenerator:
    """Module-level singleton (lazy-loaded by the app layer)."""
    global _generator
    if _generator is None:
        _generator = build_generator(get_settings())
        logger.info("Text generation provider: %s", _generator.name)
    return _generator
