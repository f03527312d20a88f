# recipe_api/services/normalizer.py
# Model reply -> ExtractionResult
# Total function: whatever the model sends back (prose, markdown fences, wrong types, missing
# fields) the caller gets a schema-valid result with total_time_minutes > 0.
#
# Parsing is two-stage best effort:
#   1) strict json.loads of the trimmed reply
#   2) repair: fenced ```json block, else first balanced {...} substring
#   neither works -> {} and every field takes its default

from __future__ import annotations
import json
import logging
import re
from typing import Any, Dict, Iterable, List, Optional

from recipe_api.core.config import settings
from recipe_api.models.schemas import ExtractionResult, Ingredient

log = logging.getLogger(__name__)

FENCE_RE = re.compile(r"```(?:json|JSON)?\s*(\{.*?\})\s*```", re.S)

OVEN_BONUS_MINUTES = 30


def _loads_object(text: str) -> Optional[Dict[str, Any]]:
    try:
        obj = json.loads(text)
    except (ValueError, TypeError):
        return None
    return obj if isinstance(obj, dict) else None


def first_balanced_object(text: str) -> Optional[str]:
    """Return the first {...} substring whose braces balance (ignores braces inside strings)."""
    start = text.find("{")
    while start != -1:
        depth = 0
        in_str = False
        escaped = False
        for i in range(start, len(text)):
            ch = text[i]
            if in_str:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_str = False
                continue
            if ch == '"':
                in_str = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    return text[start : i + 1]
        # unbalanced from here; try the next opening brace
        start = text.find("{", start + 1)
    return None


def parse_model_json(raw: str) -> Dict[str, Any]:
    text = (raw or "").strip()
    if not text:
        return {}

    obj = _loads_object(text)
    if obj is not None:
        return obj

    m = FENCE_RE.search(text)
    if m:
        obj = _loads_object(m.group(1))
        if obj is not None:
            log.info("Recovered JSON from fenced block in model reply")
            return obj

    candidate = first_balanced_object(text)
    if candidate:
        obj = _loads_object(candidate)
        if obj is not None:
            log.info("Recovered JSON object embedded in model reply")
            return obj

    log.warning("Model reply is not JSON; falling back to defaults (len=%d)", len(text))
    return {}


# --- field coercion ---

def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)


def _as_text(v: Any) -> str:
    if isinstance(v, str):
        return v
    return json.dumps(v, ensure_ascii=False)


def _text_list(v: Any) -> List[str]:
    return [_as_text(x) for x in v] if isinstance(v, list) else []


def _opt_text(v: Any) -> Optional[str]:
    if isinstance(v, str):
        return v
    if _is_number(v):
        return _as_text(v)
    return None


def _ingredient(item: Any) -> Ingredient:
    if not isinstance(item, dict):
        return Ingredient(name=_as_text(item))
    name = item.get("name")
    qty = item.get("quantity")
    return Ingredient(
        name=_as_text(name) if name else _as_text(item),
        quantity=qty if (_is_number(qty) or isinstance(qty, str)) else None,
        unit=_opt_text(item.get("unit")),
        notes=_opt_text(item.get("notes")),
    )


def _ingredients(v: Any) -> List[Ingredient]:
    return [_ingredient(x) for x in v] if isinstance(v, list) else []


# --- time estimation ---

def uses_oven(gadgets: Iterable[str], keywords: Optional[Iterable[str]] = None) -> bool:
    words = [k.lower() for k in (settings.OVEN_KEYWORDS if keywords is None else keywords) if k]
    return any(w in g.lower() for g in gadgets for w in words)


def estimate_total_minutes(steps: List[str], gadgets: List[str], keywords: Optional[Iterable[str]] = None) -> int:
    n = len(steps)
    if n <= 3:
        minutes = 25
    elif n <= 6:
        minutes = 45
    else:
        minutes = 75
    if uses_oven(gadgets, keywords):
        minutes += OVEN_BONUS_MINUTES
    return minutes


def _positive_minutes(v: Any) -> Optional[int]:
    if _is_number(v) and v == v and v not in (float("inf"), float("-inf")):
        minutes = int(round(v))
        if minutes > 0:
            return minutes
    return None


def _minutes(v: Any) -> Optional[int]:
    if _is_number(v) and v == v and v not in (float("inf"), float("-inf")):
        return int(round(v))
    return None


def normalize(raw: str, oven_keywords: Optional[Iterable[str]] = None) -> ExtractionResult:
    data = parse_model_json(raw)

    steps = _text_list(data.get("steps"))
    gadgets = _text_list(data.get("gadgets"))
    ingredients = _ingredients(data.get("ingredients"))

    total = _positive_minutes(data.get("total_time_minutes"))
    if total is None:
        total = estimate_total_minutes(steps, gadgets, oven_keywords)
        log.info("total_time_minutes missing/invalid; estimated %d min (%d steps)", total, len(steps))

    oven = _minutes(data.get("oven_time_minutes"))
    if oven is not None and oven > total:
        # kept as-is; the model's estimates are not guaranteed to be consistent
        log.debug("oven_time_minutes (%d) exceeds total_time_minutes (%d)", oven, total)

    return ExtractionResult(
        ingredients=ingredients,
        steps=steps,
        gadgets=gadgets,
        total_time_minutes=total,
        oven_time_minutes=oven,
    )
