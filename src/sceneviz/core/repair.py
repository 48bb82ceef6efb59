"""Best-effort coercion of model output into the answer JSON object.

Models are asked for bare JSON but routinely wrap it in code fences, prepend
prose, use JavaScript object syntax or stop mid-object at the token limit.
:func:`parse_model_output` undoes the common cases and raises
:class:`~sceneviz.exceptions.RepairError` for anything it cannot recover.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from sceneviz.exceptions import RepairError

logger = logging.getLogger(__name__)

_FENCE_OPEN = re.compile(r"```(?:json|javascript|js)?\s*", re.IGNORECASE)
_OUTER_OBJECT = re.compile(r"\{[\s\S]*\}")
_BARE_KEY = re.compile(r"([{,]\s*)([A-Za-z_][A-Za-z0-9_]*)\s*:")
_SINGLE_QUOTED = re.compile(r":\s*'([^'\\]*)'")
_TRAILING_COMMA = re.compile(r",\s*([}\]])")
_DOUBLE_COMMA = re.compile(r",\s*,")
_FRACTION = re.compile(r":\s*(-?\d+(?:\.\d+)?)\s*/\s*(\d+(?:\.\d+)?)")

# Prose longer than this with no JSON at all is kept as a text-only answer.
_MIN_TEXT_ONLY = 20


def strip_fences(text: str) -> str:
    """Remove markdown code fences anywhere in the output."""
    return _FENCE_OPEN.sub("", text).replace("```", "").strip()


def trim_to_object(text: str) -> str:
    """Drop everything before the first ``{`` and after the last ``}``."""
    first = text.find("{")
    last = text.rfind("}")
    if first == -1:
        return text
    if last < first:
        return text[first:]
    return text[first : last + 1]


def _evaluate_fraction(match: re.Match) -> str:
    numerator, denominator = float(match.group(1)), float(match.group(2))
    if denominator == 0:
        return match.group(0)
    return f": {numerator / denominator:.3f}"


def fix_common_errors(text: str) -> str:
    """Rewrite JavaScript-isms into JSON."""
    text = _BARE_KEY.sub(r'\1"\2":', text)
    text = _SINGLE_QUOTED.sub(r':"\1"', text)
    text = _DOUBLE_COMMA.sub(",", text)
    text = _TRAILING_COMMA.sub(r"\1", text)
    text = _FRACTION.sub(_evaluate_fraction, text)
    return text


def balance_brackets(text: str) -> str:
    """Close any brackets left open by a truncated response."""
    stack: list[str] = []
    in_string = False
    escaped = False
    for ch in text:
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in "{[":
            stack.append("}" if ch == "{" else "]")
        elif ch in "}]" and stack and stack[-1] == ch:
            stack.pop()

    if in_string:
        text += '"'
    text = text.rstrip().rstrip(",")
    return text + "".join(reversed(stack))


def _loads_object(text: str) -> dict[str, Any] | None:
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return None
    return data if isinstance(data, dict) else None


def parse_model_output(raw: str) -> dict[str, Any]:
    """Parse model output into a dict, repairing it if needed.

    Plain prose (no ``{`` at all) becomes ``{"text": ..., "visualization": None}``.
    """
    if not raw or not raw.strip():
        raise RepairError("Empty model output")

    cleaned = trim_to_object(strip_fences(raw))
    data = _loads_object(cleaned)
    if data is not None:
        return data

    if "{" not in raw:
        if len(raw.strip()) > _MIN_TEXT_ONLY:
            logger.info("Model returned prose only, using it as a text answer")
            return {"text": raw.strip(), "visualization": None}
        raise RepairError("No JSON object found in model output", raw=raw)

    match = _OUTER_OBJECT.search(raw)
    candidate = match.group(0) if match else raw[raw.find("{"):]
    data = _loads_object(candidate)
    if data is not None:
        return data

    repaired = balance_brackets(fix_common_errors(strip_fences(candidate)))
    data = _loads_object(repaired)
    if data is not None:
        logger.info("Repaired malformed model JSON (%d chars)", len(raw))
        return data

    # Truncated mid-object: the regex stopped at the last complete brace.
    tail = balance_brackets(fix_common_errors(strip_fences(raw[raw.find("{"):])))
    data = _loads_object(tail)
    if data is not None:
        logger.info("Recovered truncated model JSON (%d chars)", len(raw))
        return data

    raise RepairError("Model output is not recoverable JSON", raw=raw)


def answer_text(data: dict[str, Any], question: str) -> str:
    """Pick the explanation text, falling back to description/content."""
    text = data.get("text")
    if isinstance(text, str) and text.strip():
        return text.strip()
    if isinstance(text, (dict, list)):
        return json.dumps(text)
    for key in ("description", "content"):
        value = data.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
        if isinstance(value, (dict, list)):
            return json.dumps(value)
    return (
        f'Here is an explanation about "{question}". This visualization demonstrates '
        "key elements related to this topic with animated graphics."
    )
