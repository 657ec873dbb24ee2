"""
Emergency screen tests.

Run with: python -m pytest tests/test_emergency.py -v
"""

from __future__ import annotations

import sys
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from pipelines.emergency import (
    EMERGENCY_CONDITIONS,
    EMERGENCY_PHRASES,
    classify,
    emergency_result,
    matched_phrases,
)


class TestClassify(unittest.TestCase):
    def test_chest_pain_flagged(self):
        self.assertTrue(classify("I have severe chest pain"))

    def test_mild_headache_not_flagged(self):
        self.assertFalse(classify("mild headache"))

    def test_every_phrase_any_case_any_position(self):
        for phrase in EMERGENCY_PHRASES:
            with self.subTest(phrase=phrase):
                self.assertTrue(classify(phrase))
                self.assertTrue(classify(phrase.upper()))
                self.assertTrue(classify(f"since yesterday {phrase.title()} and nausea"))

    def test_empty_and_none(self):
        self.assertFalse(classify(""))
        self.assertFalse(classify(None))

    def test_substring_match(self):
        # plain substring, no word boundaries
        self.assertTrue(classify("recurring seizures at night"))

    def test_matched_phrases_in_list_order(self):
        found = matched_phrases("Seizure then CHEST PAIN")
        self.assertEqual(found, ["chest pain", "seizure"])


class TestEmergencyResult(unittest.TestCase):
    def test_fixed_result(self):
        result = emergency_result()
        self.assertEqual(result.possible_conditions, EMERGENCY_CONDITIONS)
        self.assertEqual(result.confidence_level, "High")
        self.assertTrue(result.next_steps)
        self.assertTrue(result.disclaimer)


if __name__ == "__main__":
    unittest.main()
