"""
Model-output parsing tests.

Run with: python -m pytest tests/test_postprocess.py -v
"""

from __future__ import annotations

import json
import sys
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from pipelines.errors import SchemaViolation
from pipelines.postprocess import parse_model_output
from pipelines.prompts import build_prompt
from pipelines.schemas import SymptomInput

VALID = {
    "possibleConditions": "Common cold, Allergic rhinitis",
    "confidenceLevel": "medium",
    "nextSteps": "Rest and drink fluids.",
    "disclaimer": "Not a diagnosis.",
}


class TestParseModelOutput(unittest.TestCase):
    def test_plain_json(self):
        result = parse_model_output(json.dumps(VALID))
        self.assertEqual(result.possible_conditions, "Common cold, Allergic rhinitis")
        self.assertEqual(result.confidence_level, "medium")

    def test_fenced_json_with_chatter(self):
        raw = "Sure! Here you go:\n```json\n" + json.dumps(VALID) + "\n```\nStay well."
        self.assertEqual(parse_model_output(raw).next_steps, "Rest and drink fluids.")

    def test_braces_inside_strings(self):
        data = dict(VALID, nextSteps="Track symptoms {daily} and rest.")
        result = parse_model_output("prefix " + json.dumps(data))
        self.assertEqual(result.next_steps, "Track symptoms {daily} and rest.")

    def test_condition_list_joined(self):
        data = dict(VALID, possibleConditions=["Flu", "Cold"])
        self.assertEqual(parse_model_output(json.dumps(data)).possible_conditions, "Flu, Cold")

    def test_confidence_case_preserved(self):
        data = dict(VALID, confidenceLevel="High")
        self.assertEqual(parse_model_output(json.dumps(data)).confidence_level, "High")

    def test_labelled_sections(self):
        raw = (
            "**Possible Conditions:** Migraine, Tension headache\n"
            "**Confidence Level:** Low\n"
            "**Next Steps:** See a GP if it persists.\n"
            "**Disclaimer:** Not medical advice."
        )
        result = parse_model_output(raw)
        self.assertEqual(result.possible_conditions, "Migraine, Tension headache")
        self.assertEqual(result.confidence_level, "Low")
        self.assertEqual(result.disclaimer, "Not medical advice.")

    def test_empty_output(self):
        with self.assertRaises(SchemaViolation):
            parse_model_output("   ")

    def test_prose_only(self):
        with self.assertRaises(SchemaViolation):
            parse_model_output("I think you might have a cold.")

    def test_missing_field(self):
        data = dict(VALID)
        del data["nextSteps"]
        with self.assertRaises(SchemaViolation):
            parse_model_output(json.dumps(data))

    def test_unknown_confidence(self):
        data = dict(VALID, confidenceLevel="very sure")
        with self.assertRaises(SchemaViolation):
            parse_model_output(json.dumps(data))

    def test_blank_field(self):
        data = dict(VALID, disclaimer="   ")
        with self.assertRaises(SchemaViolation):
            parse_model_output(json.dumps(data))


class TestBuildPrompt(unittest.TestCase):
    def test_interpolates_both_fields(self):
        prompt = build_prompt(SymptomInput(symptoms="Sore throat for a week", medical_history="Asthma"))
        self.assertIn("Symptoms: Sore throat for a week", prompt)
        self.assertIn("Medical History: Asthma", prompt)

    def test_missing_history(self):
        prompt = build_prompt(SymptomInput(symptoms="Sore throat for a week"))
        self.assertIn("Medical History: None provided.", prompt)

    def test_user_braces_kept_verbatim(self):
        prompt = build_prompt(SymptomInput(symptoms="pain {left} side of head"))
        self.assertIn("pain {left} side of head", prompt)


if __name__ == "__main__":
    unittest.main()
