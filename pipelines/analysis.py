"""
pipelines/analysis.py

The Analysis Requester: one outbound call to a text-generation provider per
submission, with the model's answer validated into :class:`AnalysisResult`.

Failure modes
-------------
- provider raised (network, auth, timeout...)  -> AnalysisRequestFailure
- provider answered in the wrong shape          -> SchemaViolation

There are no retries; each submission is exactly one attempt.
"""

from __future__ import annotations

import logging

from models.providers import TextGenerator
from pipelines.errors import AnalysisRequestFailure
from pipelines.postprocess import parse_model_output
from pipelines.prompts import build_prompt
from pipelines.schemas import AnalysisResult, SymptomInput

logger = logging.getLogger(__name__)


class AnalysisRequester:
    """Turns a :class:`SymptomInput` into a validated :class:`AnalysisResult`."""

    def __init__(self, generator: TextGenerator) -> None:
        self._generator = generator

    async def request_analysis(self, symptom_input: SymptomInput) -> AnalysisResult:
        prompt = build_prompt(symptom_input)
        try:
            raw = await self._generator.generate(prompt)
        except Exception as exc:
            logger.error(
                "Text generation failed (provider=%s): %s",
                getattr(self._generator, "name", "?"), exc.__class__.__name__,
            )
            raise AnalysisRequestFailure(f"Provider call failed: {exc}") from exc

        result = parse_model_output(raw)
        logger.info("Analysis received (confidence=%s)", result.confidence_level)
        return result
