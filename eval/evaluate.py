"""
eval/evaluate.py

Evaluation script for the MediChain emergency screen (and, optionally, the
configured analysis provider).

Loads labeled cases from eval/cases.json and runs the emergency classifier on
each, comparing its decision to the ``expected_emergency`` label.

Metrics computed:
  - Emergency Recall: fraction of true emergencies the classifier flagged
  - Escalation Rate:  fraction of all cases the classifier flagged
  - Accuracy:         fraction of cases where flag == label
  - Schema violations (``--analyze`` only): non-emergency cases whose model
    answer failed AnalysisResult validation

Usage:
  python -m eval.evaluate
  python -m eval.evaluate --analyze      # also call the configured provider
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional

from pipelines.emergency import classify, matched_phrases
from pipelines.errors import AnalysisRequestFailure, SchemaViolation

logger = logging.getLogger(__name__)

_CASES_PATH = Path(__file__).parent / "cases.json"

_CASES_SCHEMA_EXAMPLE = """
[
  {
    "symptoms": "Crushing chest pain spreading to my left arm.",
    "medical_history": "Hypertension.",
    "expected_emergency": true
  },
  ...
]
"""


def _load_cases(path: Path = _CASES_PATH) -> list[dict[str, Any]]:
    """Load eval cases from a JSON file."""
    if not path.exists():
        print(
            f"\n[MediChain Eval] {path} not found.\n"
            "Create it with the following schema:\n"
            f"{_CASES_SCHEMA_EXAMPLE}\n"
            "Then re-run: python -m eval.evaluate\n"
        )
        sys.exit(0)

    with path.open("r", encoding="utf-8") as f:
        cases: list[dict[str, Any]] = json.load(f)

    print(f"[MediChain Eval] Loaded {len(cases)} cases from {path}.")
    return cases


async def _analyze(requester, case: dict[str, Any]) -> Optional[str]:
    """Run one case through the requester; return an error label or None."""
    from pydantic import ValidationError

    from pipelines.schemas import SymptomInput

    try:
        symptom_input = SymptomInput(symptoms=case["symptoms"], medical_history=case.get("medical_history"))
    except ValidationError:
        return "INVALID_CASE"

    try:
        await requester.request_analysis(symptom_input)
    except SchemaViolation:
        return "SCHEMA_VIOLATION"
    except AnalysisRequestFailure:
        return "REQUEST_FAILED"
    return None


def evaluate_cases(cases: list[dict[str, Any]], requester=None) -> dict[str, Any]:
    """
    Score the classifier on *cases*.

    If *requester* is given, every case the classifier does not flag is also
    sent through it (one request each) and failures are counted.
    """
    rows: list[dict[str, Any]] = []
    for case in cases:
        flagged = classify(case["symptoms"])
        expected = bool(case["expected_emergency"])
        row = {
            "symptoms": case["symptoms"],
            "expected": expected,
            "flagged": flagged,
            "match": flagged == expected,
            "phrases": matched_phrases(case["symptoms"]),
            "error": None,
        }
        if requester is not None and not flagged:
            row["error"] = asyncio.run(_analyze(requester, case))
        rows.append(row)

    total = len(rows)
    emergencies = [r for r in rows if r["expected"]]
    caught = [r for r in emergencies if r["flagged"]]
    escalated = [r for r in rows if r["flagged"]]

    return {
        "rows": rows,
        "total": total,
        "emergency_recall": len(caught) / len(emergencies) if emergencies else float("nan"),
        "escalation_rate": len(escalated) / total if total else float("nan"),
        "accuracy": sum(1 for r in rows if r["match"]) / total if total else float("nan"),
        "schema_violations": sum(1 for r in rows if r["error"] == "SCHEMA_VIOLATION"),
        "request_failures": sum(1 for r in rows if r["error"] == "REQUEST_FAILED"),
        "invalid_cases": sum(1 for r in rows if r["error"] == "INVALID_CASE"),
        "emergencies": len(emergencies),
        "caught": len(caught),
        "escalated": len(escalated),
    }


def _print_report(metrics: dict[str, Any], analyzed: bool) -> None:
    header = f"{'Symptoms':<50} {'Expected':<10} {'Flagged':<10} {'Match':<8} {'Error'}"
    print("\n" + "=" * 100)
    print("MEDICHAIN EMERGENCY SCREEN EVALUATION")
    print("=" * 100)
    print(header)
    print("-" * 100)
    for r in metrics["rows"]:
        match_str = "✓" if r["match"] else "✗"
        print(
            f"{r['symptoms'][:48]:<50} {str(r['expected']):<10} {str(r['flagged']):<10} "
            f"{match_str:<8} {r['error'] or ''}"
        )

    total = metrics["total"]
    print("=" * 100)
    print(f"Total cases:        {total}")
    print(f"Accuracy:           {metrics['accuracy']:.1%}")
    print(
        f"Emergency recall:   {metrics['emergency_recall']:.1%}  "
        f"({metrics['caught']}/{metrics['emergencies']} emergencies flagged)"
    )
    print(
        f"Escalation rate:    {metrics['escalation_rate']:.1%}  "
        f"({metrics['escalated']}/{total} cases flagged)"
    )
    if analyzed:
        print(f"Schema violations:  {metrics['schema_violations']}")
        print(f"Request failures:   {metrics['request_failures']}")
        print(f"Invalid cases:      {metrics['invalid_cases']}")
    print("=" * 100)


def main(argv: Optional[list[str]] = None) -> None:
    """Run evaluation and print results table."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    parser = argparse.ArgumentParser(description="Evaluate the MediChain emergency screen.")
    parser.add_argument("--cases", type=Path, default=_CASES_PATH, help="Path to cases JSON.")
    parser.add_argument(
        "--analyze",
        action="store_true",
        help="Also send non-emergency cases to the configured analysis provider.",
    )
    args = parser.parse_args(argv)

    requester = None
    if args.analyze:
        from models.providers import get_generator
        from pipelines.analysis import AnalysisRequester

        requester = AnalysisRequester(get_generator())

    metrics = evaluate_cases(_load_cases(args.cases), requester=requester)
    _print_report(metrics, analyzed=args.analyze)


if __name__ == "__main__":
    main()
