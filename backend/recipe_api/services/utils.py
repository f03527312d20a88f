# recipe_api/services/utils.py
# Ingredient quantity utils
# - "1/2", "1,5", "½" -> float for serving-size scaling
# - scaled values go back to readable strings ("2", "3/4", "1.35")
# - anything that does not parse ("a pinch", "al gusto") is left untouched

from __future__ import annotations
import re
import unicodedata
from typing import List, Optional, Union

from recipe_api.models.schemas import Ingredient

_FRACTION_RE = re.compile(r"^(\d+)\s*/\s*(\d+)$")
_MIXED_RE = re.compile(r"^(\d+)\s+(\d+)\s*/\s*(\d+)$")   # "1 1/2"
_DECIMAL_RE = re.compile(r"^\d+(?:[.,]\d+)?$")

# common fractions shown instead of decimals
_COMMON_FRACTIONS = {
    0.25: "1/4",
    0.33: "1/3",
    0.5: "1/2",
    0.67: "2/3",
    0.75: "3/4",
}


def _nfkc(s: str) -> str:
    # "½" -> "1⁄2"; the fraction slash is then mapped to "/"
    return unicodedata.normalize("NFKC", s or "").replace("⁄", "/")


def parse_quantity(quantity: str) -> Optional[float]:
    s = _nfkc(quantity).strip()
    # "1½" normalizes to "11/2"; only space-separated mixed numbers are supported
    m = _MIXED_RE.match(s)
    if m:
        whole, num, den = (int(x) for x in m.groups())
        return whole + num / den if den else None
    m = _FRACTION_RE.match(s)
    if m:
        num, den = (int(x) for x in m.groups())
        return num / den if den else None
    if _DECIMAL_RE.match(s):
        return float(s.replace(",", "."))
    return None


def format_quantity(value: float) -> str:
    rounded = round(value, 2)
    if rounded == int(rounded):
        return str(int(rounded))
    for dec, frac in _COMMON_FRACTIONS.items():
        if abs(rounded - dec) < 0.01:
            return frac
    return str(rounded)


def _scale(q: Union[int, float, str, None], multiplier: float) -> Union[int, float, str, None]:
    if isinstance(q, bool) or q is None:
        return q
    if isinstance(q, (int, float)):
        scaled = round(q * multiplier, 2)
        return int(scaled) if scaled == int(scaled) else scaled
    parsed = parse_quantity(q)
    if parsed is None:
        return q
    return format_quantity(parsed * multiplier)


def scale_ingredients(ingredients: List[Ingredient], original_servings: float, desired_servings: float) -> List[Ingredient]:
    if original_servings <= 0 or desired_servings <= 0:
        return list(ingredients)
    multiplier = desired_servings / original_servings
    return [ing.model_copy(update={"quantity": _scale(ing.quantity, multiplier)}) for ing in ingredients]
