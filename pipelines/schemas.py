"""
pipelines/schemas.py

Pydantic models for the symptom-analysis workflow:
- SymptomInput   (what the patient submits; transient)
- AnalysisResult (what the model, or the emergency branch, returns)

Field names on the wire are camelCase (``medicalHistory``,
``possibleConditions``...) so stored JSON uses the camelCase key layout;
Python code uses the snake_case attributes.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

MIN_SYMPTOMS_LENGTH = 10

CONFIDENCE_LEVELS = ("low", "medium", "high")


class SymptomInput(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    symptoms: str = Field(
        min_length=MIN_SYMPTOMS_LENGTH,
        description="Symptoms, including onset, duration and severity.",
    )
    medical_history: Optional[str] = Field(
        default=None,
        description="Pre-existing conditions and medications (optional).",
    )

    @field_validator("medical_history")
    @classmethod
    def _blank_history_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v


class AnalysisResult(BaseModel):
    """The typed contract every model response must satisfy."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    possible_conditions: str = Field(min_length=1)
    confidence_level: str = Field(min_length=1)
    next_steps: str = Field(min_length=1)
    disclaimer: str = Field(min_length=1)

    @field_validator("confidence_level")
    @classmethod
    def _known_confidence(cls, v: str) -> str:
        # Case is preserved ("High" and "high" are both fine); the value
        # itself must be one of the three levels.
        if v.lower() not in CONFIDENCE_LEVELS:
            raise ValueError(
                f"confidenceLevel must be one of {CONFIDENCE_LEVELS}, got {v!r}"
            )
        return v
