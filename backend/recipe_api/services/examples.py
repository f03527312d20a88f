# recipe_api/services/examples.py
# Static few-shot corpus bundled with the package (RAG fallback when the DB is empty/unset).
# Loaded once per path and never mutated afterwards: safe to share across requests.

from __future__ import annotations
import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Tuple

from pydantic import ValidationError

from recipe_api.core.config import settings
from recipe_api.models.schemas import ExampleRecipe

log = logging.getLogger(__name__)


@lru_cache(maxsize=None)
def load_example_corpus(path: str | None = None) -> Tuple[ExampleRecipe, ...]:
    """
    Read the example corpus (JSON array) and return it as an immutable tuple.
    - Missing/unreadable file -> empty corpus (retrieval then relies on the DB only)
    - Entries that do not fit ExampleRecipe are skipped one by one
    """
    src = Path(path or settings.EXAMPLES_PATH)
    try:
        data = json.loads(src.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        log.warning("Example corpus unavailable at %s: %s", src, e)
        return ()

    if not isinstance(data, list):
        log.warning("Example corpus at %s is not a JSON array; ignoring", src)
        return ()

    out = []
    for i, item in enumerate(data):
        try:
            out.append(ExampleRecipe.model_validate(item))
        except ValidationError as e:
            log.warning("Skipping example #%d in %s: %s", i, src, e.errors()[:1])
    log.info("Loaded %d example recipes from %s", len(out), src)
    return tuple(out)
