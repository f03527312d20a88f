# recipe_api/services/analyze.py
# Recipe extraction pipeline: validate -> retrieve examples -> build prompt -> call model -> normalize
# Steps run strictly in sequence per request; requests share nothing but the read-only corpus.

from __future__ import annotations
import logging
from typing import Iterable, Optional

from recipe_api.core.config import settings
from recipe_api.core.errors import InvalidRequest
from recipe_api.models.schemas import ExtractionResult
from recipe_api.services.model_client import OllamaClient
from recipe_api.services.normalizer import normalize
from recipe_api.services.prompts import build_prompt
from recipe_api.services.retriever import ExampleRetriever

log = logging.getLogger(__name__)


class RecipeAnalyzer:
    def __init__(
        self,
        retriever: ExampleRetriever,
        client: OllamaClient,
        *,
        example_limit: Optional[int] = None,
        oven_keywords: Optional[Iterable[str]] = None,
    ):
        self.retriever = retriever
        self.client = client
        self.example_limit = settings.RAG_EXAMPLE_LIMIT if example_limit is None else example_limit
        self.oven_keywords = list(oven_keywords) if oven_keywords is not None else None

    async def analyze(self, raw_text: Optional[str], category: Optional[str]) -> ExtractionResult:
        """
        Raw recipe text -> ExtractionResult.
        - blank rawText / mainProtein: InvalidRequest before any upstream call
        - model failures propagate (ModelUnavailable / ModelProtocolError)
        - malformed model output never propagates (normalizer defaults)
        """
        text = (raw_text or "").strip()
        cat = (category or "").strip()
        if not text or not cat:
            raise InvalidRequest("Missing required fields: rawText and mainProtein are required")

        examples = await self.retriever.find_similar(text, cat, self.example_limit)
        prompt = build_prompt(text, cat, examples, limit=self.example_limit)
        log.info("Analyzing recipe (category=%s, chars=%d, examples=%d)", cat, len(text), len(examples))

        reply = await self.client.call(prompt.system, prompt.user)
        result = normalize(reply, self.oven_keywords)
        log.info(
            "Extracted %d ingredients, %d steps, total=%d min",
            len(result.ingredients), len(result.steps), result.total_time_minutes,
        )
        return result
