# recipe_api/services/retriever.py
# Few-shot example retrieval (RAG)
# - live recipes (same category, newest first) come first, static corpus fills the rest
# - never raises: a broken datastore just means zero live results

from __future__ import annotations
import logging
from typing import Dict, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from recipe_api.db.indexes import RECIPES
from recipe_api.db.models.recipe import RecipeRow
from recipe_api.models.schemas import ExampleRecipe
from recipe_api.services.examples import load_example_corpus

log = logging.getLogger(__name__)

# category -> words that show up in raw recipe text (es/ca/fr/pt)
CATEGORY_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "chicken": ("chicken", "pollo", "pollastre", "poulet", "frango"),
    "fish": ("fish", "pescado", "peix", "poisson", "peixe", "merluza", "bacalao"),
    "pork": ("pork", "cerdo", "porc", "porco", "lomo"),
    "seafood": ("seafood", "marisco", "fruits de mer", "moules", "gambas", "mejillones"),
    "beef": ("beef", "ternera", "vedella", "boeuf", "bœuf", "carne", "bife"),
    "beans_legumes": ("beans", "legumbres", "lentejas", "garbanzos", "alubias", "llegums", "feijão"),
    "desserts": ("dessert", "postre", "postres", "flan", "tarta", "gâteau", "bolo"),
}

# vegetable dishes match every example
MATCH_ALL = "vegetables"


def _keywords(category: str) -> Tuple[str, ...]:
    c = (category or "").strip().lower()
    return CATEGORY_KEYWORDS.get(c, (c,) if c else ())


def static_matches(corpus: Sequence[ExampleRecipe], category: str, limit: int) -> List[ExampleRecipe]:
    if limit <= 0:
        return []
    if (category or "").strip().lower() == MATCH_ALL:
        return list(corpus[:limit])
    words = _keywords(category)
    if not words:
        return []
    out: List[ExampleRecipe] = []
    for ex in corpus:
        text = ex.raw_text.lower()
        if any(w in text for w in words):
            out.append(ex)
            if len(out) >= limit:
                break
    return out


class ExampleRetriever:
    """Selects up to `limit` example recipes to show the model as few-shot context."""

    def __init__(self, db=None, corpus: Optional[Sequence[ExampleRecipe]] = None):
        self.db = db
        self._corpus = corpus

    @property
    def corpus(self) -> Sequence[ExampleRecipe]:
        if self._corpus is None:
            return load_example_corpus()
        return self._corpus

    async def _live_matches(self, category: str, limit: int) -> List[ExampleRecipe]:
        if self.db is None or limit <= 0:
            return []
        try:
            cursor = (
                self.db[RECIPES]
                .find({"main_protein": category}, {"_id": 0})
                .sort("created_at", -1)
                .limit(limit)
            )
            rows = await cursor.to_list(length=limit)
        except Exception:
            log.exception("Live example lookup failed (category=%s); using static examples", category)
            return []

        out: List[ExampleRecipe] = []
        for row in rows or []:
            try:
                rec = RecipeRow.model_validate(row)
            except ValidationError as e:
                log.debug("Skipping unusable recipe row: %s", e.errors()[:1])
                continue
            if rec.raw_text.strip():
                out.append(rec.to_example())
        return out

    async def find_similar(self, raw_text: str, category: str, limit: int) -> List[ExampleRecipe]:
        if limit <= 0:
            return []
        try:
            static = static_matches(self.corpus, category, limit)
        except Exception:
            log.exception("Static example matching failed (category=%s)", category)
            static = []
        live = await self._live_matches(category, limit)
        merged = (live + static)[:limit]
        log.info(
            "Retrieved %d examples for category=%s (live=%d, static=%d, text_len=%d)",
            len(merged), category, len(live), len(static), len(raw_text or ""),
        )
        return merged
