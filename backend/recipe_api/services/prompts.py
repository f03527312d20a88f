# recipe_api/services/prompts.py
# Prompt construction for recipe extraction.
# Pure functions: identical (raw_text, category, examples) -> byte-identical prompt.

from __future__ import annotations
import json
from typing import NamedTuple, Sequence

from recipe_api.models.schemas import ExampleRecipe

EXCERPT_CHARS = 200
DEFAULT_EXAMPLE_LIMIT = 3


class Prompt(NamedTuple):
    system: str
    user: str


SYSTEM_PROMPT = """You are a recipe analysis assistant. Your task is to extract structured information from raw recipe text and return it as valid JSON.

The JSON schema you must return is:
{
  "ingredients": [
    {
      "name": "string (required)",
      "quantity": "number or string (optional)",
      "unit": "string (optional)",
      "notes": "string (optional)"
    }
  ],
  "steps": ["string (ordered list of complete cooking instructions)"],
  "gadgets": ["string (list of kitchen tools/equipment needed)"],
  "total_time_minutes": number (REQUIRED, never null),
  "oven_time_minutes": number or null (only if an oven is used)
}

Recipes are usually written in Spanish, Catalan, French, Portuguese or English. Useful vocabulary:
- Techniques: sofreír/sofregir/faire revenir/refogar (saute), hornear/enfornar/cuire au four/assar (bake), hervir/bullir/bouillir/ferver (boil), freír/fregir/frire/fritar (fry), guisar/estofar/mijoter/estufar (stew), asar/rostir/rôtir/grelhar (roast/grill), batir/batre/fouetter/bater (whisk)
- Utensils: horno/forn/four/forno (oven), sartén/paella/poêle/frigideira (frying pan), olla/cassola/marmite/panela (pot), cazo/cassó/casserole/tacho (saucepan), batidora/batedora/mixeur/liquidificador (blender), cuchillo/ganivet/couteau/faca (knife)
- Units: g, kg, ml, cl, l, cucharada/cullerada/cuillère à soupe/colher de sopa (tablespoon), cucharadita/culleradeta/cuillère à café/colher de chá (teaspoon), taza/tassa/tasse/chávena (cup), pizca/pessic/pincée/pitada (pinch), diente/gra/gousse/dente (clove)

Rules:
- Extract all ingredients with their quantities and units if mentioned
- Break down the recipe into clear, ordered steps; each step is a complete imperative instruction
- List all kitchen tools/gadgets needed (e.g. "oven", "pan", "blender", "knife"), in the recipe's language
- total_time_minutes is MANDATORY: never return null for it. If the text gives no time, estimate it:
  - 1-3 steps: 15-30 minutes
  - 4-6 steps: 30-60 minutes
  - 7 or more steps: 60-120 minutes
  - add 20-40 minutes if an oven is used
- Only set oven_time_minutes if the recipe uses an oven; otherwise set it to null
- Return ONLY valid JSON, no additional text or markdown formatting
- If other information is missing, use empty arrays"""


def _excerpt(text: str, limit: int = EXCERPT_CHARS) -> str:
    t = (text or "").strip()
    return t if len(t) <= limit else t[:limit].rstrip() + "..."


def format_example(n: int, ex: ExampleRecipe) -> str:
    target = json.dumps(ex.target_json(), ensure_ascii=False)
    return f"Example {n}:\nText: {_excerpt(ex.raw_text)}\nJSON: {target}"


def build_prompt(
    raw_text: str,
    category: str,
    examples: Sequence[ExampleRecipe] = (),
    limit: int = DEFAULT_EXAMPLE_LIMIT,
) -> Prompt:
    parts = [f"Analyze this recipe for {category}:", raw_text.strip()]

    shown = list(examples)[: max(limit, 0)]
    if shown:
        block = "\n\n".join(format_example(i, ex) for i, ex in enumerate(shown, 1))
        parts.append(
            "EXAMPLES of similar recipes already extracted (follow the same output format):\n\n" + block
        )

    parts.append(
        "Extract the ingredients, steps, gadgets, and time estimates. "
        "Return the result as JSON matching the schema above."
    )
    return Prompt(system=SYSTEM_PROMPT, user="\n\n".join(parts))
