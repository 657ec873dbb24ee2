"""
models/medgemma_runner.py

Loads and runs a MedGemma instruction-tuned model locally for text-only
symptom analysis.

- Gemma3/MedGemma expects chat formatting (apply_chat_template).
- generate() is async; the blocking model call runs in a worker thread.

Auth:
- If the repo is gated, you must be logged in OR provide a token via:
  HUGGINGFACE_HUB_TOKEN or HF_TOKEN
"""

from __future__ import annotations

import asyncio
import logging
import os
import threading
from typing import Any, Dict, Optional

import torch
from transformers import AutoModelForCausalLM, AutoProcessor

from pipelines.prompts import SYSTEM_INSTRUCTIONS

logger = logging.getLogger(__name__)

DEFAULT_MODEL_NAME = "google/medgemma-4b-it"
MAX_NEW_TOKENS = 512


def _get_hf_token_optional() -> Optional[str]:
    """
    Return HF token if present. If the user already logged in via HF_HOME cache,
    Transformers may still work without passing token explicitly.
    """
    return os.environ.get("HUGGINGFACE_HUB_TOKEN") or os.environ.get("HF_TOKEN")


class MedGemmaRunner:
    """Wraps MedGemma for text triage inference (Gemma3 chat-template compatible)."""

    name = "medgemma"

    def __init__(self, model_name: str = DEFAULT_MODEL_NAME) -> None:
        self.model_name = model_name
        self.device: str = "cuda" if torch.cuda.is_available() else "cpu"
        # generate() on one model instance is not re-entrant
        self._lock = threading.Lock()
        logger.info("MedGemmaRunner: using device=%s", self.device)

        token = _get_hf_token_optional()

        logger.info("Loading processor for %s ...", model_name)
        self.processor = AutoProcessor.from_pretrained(
            model_name,
            trust_remote_code=True,
            token=token,  # ok if None
        )

        if self.device == "cuda":
            logger.info("Loading model for %s (fp16, device_map=auto) ...", model_name)
            self.model = AutoModelForCausalLM.from_pretrained(
                model_name,
                trust_remote_code=True,
                token=token,
                torch_dtype=torch.float16,
                device_map="auto",
            )
        else:
            logger.info("Loading model for %s (cpu fp32) ...", model_name)
            self.model = AutoModelForCausalLM.from_pretrained(
                model_name,
                trust_remote_code=True,
                token=token,
                torch_dtype=torch.float32,
            ).to("cpu")

        self.model.eval()
        logger.info("MedGemmaRunner: model loaded successfully.")

    def _get_model_device(self) -> torch.device:
        """
        device_map models don't always expose `.device` cleanly.
        This tries a few safe ways to retrieve the real device.
        """
        dev = getattr(self.model, "device", None)
        if isinstance(dev, torch.device):
            return dev
        if isinstance(dev, str):
            return torch.device(dev)
        return next(self.model.parameters()).device

    def _prepare_inputs(self, prompt: str) -> Dict[str, Any]:
        messages = [
            {"role": "system", "content": [{"type": "text", "text": SYSTEM_INSTRUCTIONS}]},
            {"role": "user", "content": [{"type": "text", "text": prompt}]},
        ]
        batch = self.processor.apply_chat_template(
            messages,
            add_generation_prompt=True,
            tokenize=True,
            return_dict=True,
            return_tensors="pt",
        )
        model_device = self._get_model_device()
        return {k: (v.to(model_device) if hasattr(v, "to") else v) for k, v in batch.items()}

    def generate_sync(self, prompt: str) -> str:
        """Run one greedy generation and return the decoded completion."""
        with self._lock:
            inputs = self._prepare_inputs(prompt)
            with torch.no_grad():
                output_ids = self.model.generate(
                    **inputs,
                    max_new_tokens=MAX_NEW_TOKENS,
                    do_sample=False,
                )

        input_len = int(inputs["input_ids"].shape[-1])
        generated_ids = output_ids[0][input_len:]
        return self.processor.decode(generated_ids, skip_special_tokens=True).strip()

    async def generate(self, prompt: str) -> str:
        return await asyncio.to_thread(self.generate_sync, prompt)
