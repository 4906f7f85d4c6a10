"""Turn raw generative-text output into structured budget drafts."""
import json
import logging
import re
from typing import Any, Dict, Mapping, Optional

from money_map.core.amounts import coerce_amount
from money_map.core.schemas import CATEGORIES, AIBudgetDraft, BudgetBreakdown

logger = logging.getLogger(__name__)

_CODE_BLOCK_PATTERN = re.compile(r"```(?:json)?\s*(.*?)\s*(?:```|$)", re.DOTALL | re.IGNORECASE)
_OBJECT_PATTERN = re.compile(r"\{.*\}", re.DOTALL)

# Keys models use interchangeably with the canonical category names.
CATEGORY_ALIASES: Dict[str, str] = {
    "transport": "transportation",
    "lodging": "accommodation",
    "misc": "miscellaneous",
    "other": "miscellaneous",
}


def strip_code_fences(raw_output: str) -> str:
    """Return the body of the first Markdown code fence, or the text unchanged."""

    match = _CODE_BLOCK_PATTERN.search(raw_output)
    if match is None:
        return raw_output.strip()
    return match.group(1).strip()


def extract_json_object(raw_output: Optional[str]) -> Optional[Dict[str, Any]]:
    """Extract the first top-level JSON object from LLM output.

    Code fences are stripped first, then the widest ``{...}`` span is parsed.
    Returns ``None`` when nothing parseable is found or the JSON is not an
    object.
    """
    if not raw_output or not raw_output.strip():
        return None

    text = strip_code_fences(raw_output)
    match = _OBJECT_PATTERN.search(text)
    if match is not None:
        text = match.group(0)

    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as exc:
        logger.warning("Failed to parse raw LLM output as JSON: %s", exc)
        return None

    if not isinstance(parsed, dict):
        logger.warning("LLM output parsed to %s, expected an object", type(parsed).__name__)
        return None
    return parsed


def _text_field(payload: Mapping[str, Any], key: str) -> str:
    value = payload.get(key)
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (list, tuple)):
        return " ".join(str(item).strip() for item in value if item is not None)
    return str(value)


def build_draft(payload: Mapping[str, Any], *, model: str) -> AIBudgetDraft:
    """Normalise a parsed JSON payload into an :class:`AIBudgetDraft`.

    Missing or non-numeric categories become 0 and every amount is rounded to
    the nearest integer.
    """
    amounts = {name: 0 for name in CATEGORIES}
    for key, value in payload.items():
        if not isinstance(key, str):
            continue
        name = key.strip().lower()
        name = CATEGORY_ALIASES.get(name, name)
        if name in amounts and not amounts[name]:
            amounts[name] = coerce_amount(value)

    return AIBudgetDraft(
        model=model,
        breakdown=BudgetBreakdown(**amounts),
        reported_total=coerce_amount(payload.get("total")),
        insights=_text_field(payload, "insights"),
        recommendations=_text_field(payload, "recommendations"),
    )


def has_budget_fields(payload: Mapping[str, Any]) -> bool:
    """True when the payload names the total or at least one category."""

    for key in payload:
        if not isinstance(key, str):
            continue
        name = key.strip().lower()
        if name == "total" or CATEGORY_ALIASES.get(name, name) in CATEGORIES:
            return True
    return False


def parse_budget_text(raw_output: Optional[str], *, model: str) -> Optional[AIBudgetDraft]:
    """Parse LLM text into a draft.

    Returns ``None`` when the text holds no JSON object or the object carries
    none of the budget fields.
    """

    payload = extract_json_object(raw_output)
    if payload is None or not has_budget_fields(payload):
        return None
    return build_draft(payload, model=model)
