#!/usr/bin/env python3

from __future__ import annotations

import json
import unittest
from typing import List, Tuple

from recipe_api.core.errors import InvalidRequest, ModelUnavailable
from recipe_api.models.schemas import ExampleRecipe
from recipe_api.services.analyze import RecipeAnalyzer


class FakeRetriever:
    def __init__(self, examples: List[ExampleRecipe] | None = None):
        self.examples = examples or []
        self.calls: List[Tuple[str, str, int]] = []

    async def find_similar(self, raw_text: str, category: str, limit: int) -> List[ExampleRecipe]:
        self.calls.append((raw_text, category, limit))
        return self.examples[:limit]


class FakeModel:
    def __init__(self, reply: str = "{}", error: Exception | None = None):
        self.reply = reply
        self.error = error
        self.prompts: List[Tuple[str, str]] = []

    async def call(self, system: str, user: str) -> str:
        self.prompts.append((system, user))
        if self.error is not None:
            raise self.error
        return self.reply


class RecipeAnalyzerTests(unittest.IsolatedAsyncioTestCase):
    async def test_blank_text_is_rejected_before_any_upstream_call(self) -> None:
        retriever, model = FakeRetriever(), FakeModel()
        analyzer = RecipeAnalyzer(retriever, model, example_limit=3)
        for raw, cat in (("   ", "chicken"), (None, "chicken"), ("Hervir agua", ""), ("Hervir agua", None)):
            with self.subTest(raw=raw, cat=cat):
                with self.assertRaises(InvalidRequest) as ctx:
                    await analyzer.analyze(raw, cat)
                self.assertEqual(ctx.exception.status_code, 400)
        self.assertEqual(retriever.calls, [])
        self.assertEqual(model.prompts, [])

    async def test_pipeline_uses_examples_and_normalizes_reply(self) -> None:
        example = ExampleRecipe(raw_text="Pollo al horno", steps=["Hornear"], gadgets=["horno"], total_time_minutes=50)
        retriever = FakeRetriever([example])
        model = FakeModel(json.dumps({"steps": ["Saltear pollo", "Hornear"], "gadgets": ["horno"]}))
        analyzer = RecipeAnalyzer(retriever, model, example_limit=2)

        result = await analyzer.analyze("  Saltear pollo 10 min, hornear 20 min ", "chicken")

        self.assertEqual(retriever.calls, [("Saltear pollo 10 min, hornear 20 min", "chicken", 2)])
        system, user = model.prompts[0]
        self.assertIn("Analyze this recipe for chicken:", user)
        self.assertIn("Example 1:", user)
        self.assertIn("Pollo al horno", user)
        self.assertEqual(result.total_time_minutes, 55)
        self.assertIsNone(result.oven_time_minutes)

    async def test_model_errors_propagate(self) -> None:
        analyzer = RecipeAnalyzer(FakeRetriever(), FakeModel(error=ModelUnavailable("slow", timed_out=True)))
        with self.assertRaises(ModelUnavailable):
            await analyzer.analyze("Hervir agua", "vegetables")

    async def test_oven_keywords_override(self) -> None:
        model = FakeModel(json.dumps({"steps": ["Hornear"], "gadgets": ["horno"]}))
        analyzer = RecipeAnalyzer(FakeRetriever(), model, oven_keywords=["oven"])
        result = await analyzer.analyze("Hornear", "desserts")
        self.assertEqual(result.total_time_minutes, 25)


if __name__ == "__main__":
    unittest.main()
