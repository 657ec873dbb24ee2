import json
import logging
import re
from typing import Any, Dict, Optional

from pydantic import ValidationError

from pipelines.errors import SchemaViolation
from pipelines.schemas import AnalysisResult

logger = logging.getLogger(__name__)

# "Possible Conditions: ..." style answers (the plain-text format the prompt
# used before it asked for JSON). Label -> AnalysisResult alias.
_SECTION_LABELS = {
    "possible conditions": "possibleConditions",
    "confidence level": "confidenceLevel",
    "next steps": "nextSteps",
    "disclaimer": "disclaimer",
}
_SECTION_RE = re.compile(
    r"^\s*[*#\-\s]*(possible conditions|confidence level|next steps|disclaimer)\s*[*]*\s*:\s*[*]*\s*",
    re.IGNORECASE | re.MULTILINE,
)


def _extract_first_json_object(text: str) -> Optional[str]:
    """
    Extract the first {...} JSON object from a messy LLM output using a brace-matching scan.
    Returns the JSON string or None.
    """
    if not text:
        return None

    # Remove common markdown fences if present
    text = re.sub(r"```(?:json)?", "", text, flags=re.IGNORECASE).replace("```", "")

    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        c = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif c == "\\":
                escaped = True
            elif c == '"':
                in_string = False
            continue
        if c == '"':
            in_string = True
        elif c == "{":
            depth += 1
        elif c == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]

    return None


def _extract_sections(text: str) -> Dict[str, str]:
    """Split ``Label: value`` blocks into a dict keyed by the camelCase alias."""
    matches = list(_SECTION_RE.finditer(text or ""))
    out: Dict[str, str] = {}
    for i, m in enumerate(matches):
        end = matches[i + 1].start() if i + 1 < len(matches) else len(text)
        key = _SECTION_LABELS[m.group(1).lower()]
        value = text[m.end() : end].strip().strip("[]").strip()
        out.setdefault(key, value)
    return out


def _coerce_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    # Lists of conditions/steps are joined; everything else is left for
    # pydantic to accept or reject.
    out = dict(data)
    for k, v in data.items():
        if isinstance(v, list) and all(isinstance(x, str) for x in v):
            out[k] = ", ".join(x.strip() for x in v if x.strip())
    return out


def parse_model_output(raw_output: str) -> AnalysisResult:
    """
    Parse model output into AnalysisResult.
    - Tries to extract a JSON object from the output
    - Falls back to "Label: value" sections
    - Validates with Pydantic
    - Raises SchemaViolation if nothing usable is found (never returns a default)
    """
    if not raw_output or not raw_output.strip():
        raise SchemaViolation("Model returned an empty response.")

    data: Optional[Dict[str, Any]] = None

    json_str = _extract_first_json_object(raw_output)
    if json_str is not None:
        try:
            loaded = json.loads(json_str)
        except json.JSONDecodeError as e:
            logger.warning("Model output contained invalid JSON: %s", e)
        else:
            if isinstance(loaded, dict):
                data = loaded

    if data is None:
        sections = _extract_sections(raw_output)
        if not sections:
            raise SchemaViolation("No JSON object or labelled sections found in model output.")
        data = sections

    try:
        return AnalysisResult.model_validate(_coerce_fields(data))
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise SchemaViolation(f"Model output failed schema validation ({fields}).") from e
