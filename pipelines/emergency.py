"""
pipelines/emergency.py

Keyword safety gate that runs before any model call.

High recall, low precision: a plain case-insensitive substring match against a
fixed list of critical-symptom phrases. This is a screen, not a medical
determination.
"""

from __future__ import annotations

from pipelines.schemas import AnalysisResult

EMERGENCY_PHRASES: tuple[str, ...] = (
    "chest pain",
    "loss of consciousness",
    "severe bleeding",
    "seizure",
    "paralysis",
    "slurred speech",
    "vision loss",
    "severe pain",
    "breathing difficulty",
    "difficulty breathing",
    "shortness of breath",
    "unconscious",
    "suicidal",
)

EMERGENCY_CONDITIONS = "Critical Symptoms Detected"
EMERGENCY_CONFIDENCE = "High"
EMERGENCY_NEXT_STEPS = (
    "Your symptoms may indicate a medical emergency. Call your local emergency "
    "number or go to the nearest emergency department immediately. "
    "Do not drive yourself if you are severely unwell."
)
EMERGENCY_DISCLAIMER = (
    "This alert was triggered automatically by keywords in your description. "
    "It is not a medical diagnosis. When in doubt, seek emergency care."
)


def matched_phrases(symptom_text: str) -> list[str]:
    """Return every configured phrase found in *symptom_text* (in list order)."""
    if not symptom_text:
        return []
    t = symptom_text.lower()
    return [p for p in EMERGENCY_PHRASES if p in t]


def classify(symptom_text: str) -> bool:
    """True if any emergency phrase occurs anywhere in *symptom_text*."""
    return bool(matched_phrases(symptom_text))


def emergency_result() -> AnalysisResult:
    """The fixed result shown instead of a model analysis."""
    return AnalysisResult(
        possible_conditions=EMERGENCY_CONDITIONS,
        confidence_level=EMERGENCY_CONFIDENCE,
        next_steps=EMERGENCY_NEXT_STEPS,
        disclaimer=EMERGENCY_DISCLAIMER,
    )
