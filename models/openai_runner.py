"""
models/openai_runner.py

Hosted text generation through the OpenAI chat-completions API.

One request per call: no retries and no schema-less fallback request. If the
call fails, the exception propagates to the requester, which reports a
generic failure to the user.

The client is the synchronous ``OpenAI`` one, run in a worker thread like
the local MedGemma runner. Each Streamlit rerun drives the pipeline through
its own ``asyncio.run`` loop, so nothing here may hold on to a loop.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from openai import OpenAI

from pipelines.prompts import RESPONSE_SCHEMA, SYSTEM_INSTRUCTIONS

logger = logging.getLogger(__name__)


class OpenAIGenerator:
    """Wraps the OpenAI client for the symptom-analysis prompt."""

    name = "openai"

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        temperature: float = 0.2,
        base_url: Optional[str] = None,
        client: Any = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        self.base_url = base_url
        self._client = client

    def _get_client(self) -> Any:
        if self._client is None:
            # checked per attempt so a missing key fails the analysis, not the app
            if not self.api_key:
                raise RuntimeError("OPENAI_API_KEY is not set.")
            self._client = OpenAI(api_key=self.api_key, base_url=self.base_url, max_retries=0)
        return self._client

    def generate_sync(self, prompt: str) -> str:
        """Returns assistant text (expected JSON)."""
        completion = self._get_client().chat.completions.create(
            model=self.model,
            temperature=self.temperature,
            messages=[
                {"role": "system", "content": SYSTEM_INSTRUCTIONS},
                {"role": "user", "content": prompt},
            ],
            response_format={"type": "json_schema", "json_schema": RESPONSE_SCHEMA},
        )
        content = completion.choices[0].message.content or ""
        logger.debug("OpenAI completion received (%d chars, model=%s)", len(content), self.model)
        return content

    async def generate(self, prompt: str) -> str:
        return await asyncio.to_thread(self.generate_sync, prompt)
