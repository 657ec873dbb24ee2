# Prompt template and JSON schema for the symptom checker.
# The model gives preliminary insights only; it does NOT diagnose.

from __future__ import annotations

from pipelines.schemas import SymptomInput

SYSTEM_INSTRUCTIONS = """You are an AI-powered symptom checker designed to provide preliminary insights into a patient's symptoms and possible conditions.
You do NOT provide a medical diagnosis. Use cautious language ("may", "could", "possible").
Never give medication dosing.
Return ONLY a valid JSON object that matches the schema exactly. No markdown, no extra text.
"""

PROMPT_TEMPLATE = """Based on the provided symptoms and medical history, generate a list of possible medical conditions, a confidence level indication, recommended next steps, and a disclaimer.

Symptoms: {symptoms}
Medical History: {medical_history}

Schema:
{{
  "possibleConditions": "comma-separated list of possible conditions",
  "confidenceLevel": "low|medium|high",
  "nextSteps": "recommended next steps, e.g. consult a doctor or seek immediate attention",
  "disclaimer": "statement that this is not a substitute for professional medical advice"
}}
"""

RESPONSE_SCHEMA = {
    "name": "symptom_analysis",
    "strict": True,
    "schema": {
        "type": "object",
        "additionalProperties": False,
        "properties": {
            "possibleConditions": {
                "type": "string",
                "description": "Possible medical conditions based on the symptoms and history.",
            },
            "confidenceLevel": {
                "type": "string",
                "enum": ["low", "medium", "high"],
            },
            "nextSteps": {
                "type": "string",
                "description": "Recommended next steps for the patient.",
            },
            "disclaimer": {
                "type": "string",
                "description": "Not a substitute for professional medical advice.",
            },
        },
        "required": ["possibleConditions", "confidenceLevel", "nextSteps", "disclaimer"],
    },
}


def build_prompt(symptom_input: SymptomInput) -> str:
    """Interpolate the two user fields into the fixed template."""
    return PROMPT_TEMPLATE.format(
        symptoms=symptom_input.symptoms.strip(),
        medical_history=(symptom_input.medical_history or "None provided.").strip(),
    )
