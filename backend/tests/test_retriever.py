#!/usr/bin/env python3

from __future__ import annotations

import json
import tempfile
import unittest
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List

from recipe_api.models.schemas import ExampleRecipe
from recipe_api.services.examples import load_example_corpus
from recipe_api.services.retriever import ExampleRetriever, static_matches


class FakeCursor:
    def __init__(self, rows: List[Dict[str, Any]]):
        self.rows = rows
        self.sort_args = None
        self.limit_n = None

    def sort(self, key: str, direction: int) -> "FakeCursor":
        self.sort_args = (key, direction)
        reverse = direction < 0
        self.rows = sorted(self.rows, key=lambda r: r.get(key) or datetime.min, reverse=reverse)
        return self

    def limit(self, n: int) -> "FakeCursor":
        self.limit_n = n
        self.rows = self.rows[:n]
        return self

    async def to_list(self, length: int) -> List[Dict[str, Any]]:
        return self.rows[:length]


class FakeCollection:
    def __init__(self, rows: List[Dict[str, Any]]):
        self.rows = rows
        self.queries: List[Dict[str, Any]] = []
        self.cursor: FakeCursor | None = None

    def find(self, query: Dict[str, Any], projection: Dict[str, Any] | None = None) -> FakeCursor:
        self.queries.append(query)
        matched = [r for r in self.rows if all(r.get(k) == v for k, v in query.items())]
        self.cursor = FakeCursor(matched)
        return self.cursor


class FakeDb(dict):
    pass


class BrokenDb:
    def __getitem__(self, name: str):
        raise ConnectionError("datastore unreachable")


def _ex(raw: str, title: str = "") -> ExampleRecipe:
    return ExampleRecipe(raw_text=raw, steps=["x"], total_time_minutes=10, title=title or raw[:10])


CORPUS = (
    _ex("Pollo al horno con patatas", "pollo"),
    _ex("Merluza en salsa verde", "merluza"),
    _ex("Poulet rôti du dimanche", "poulet"),
    _ex("Escalivada de verduras", "escalivada"),
    _ex("Chicken curry", "curry"),
)


def _row(raw: str, day: int, category: str = "chicken") -> Dict[str, Any]:
    return {
        "title": f"live-{day}",
        "main_protein": category,
        "raw_text": raw,
        "ingredients": [{"name": "pollo"}],
        "steps": ["Cocinar"],
        "gadgets": None,
        "total_time_minutes": 40,
        "oven_time_minutes": None,
        "created_at": datetime(2024, 1, day),
    }


class StaticMatchTests(unittest.TestCase):
    def test_keyword_match_is_case_insensitive_and_multilingual(self) -> None:
        titles = [e.title for e in static_matches(CORPUS, "Chicken", 10)]
        self.assertEqual(titles, ["pollo", "poulet", "curry"])

    def test_vegetables_match_everything_in_corpus_order(self) -> None:
        titles = [e.title for e in static_matches(CORPUS, "vegetables", 3)]
        self.assertEqual(titles, ["pollo", "merluza", "poulet"])

    def test_unknown_category_uses_its_own_name(self) -> None:
        self.assertEqual([e.title for e in static_matches(CORPUS, "escalivada", 5)], ["escalivada"])
        self.assertEqual(static_matches(CORPUS, "", 5), [])


class RetrieverTests(unittest.IsolatedAsyncioTestCase):
    async def test_static_only_without_db(self) -> None:
        retriever = ExampleRetriever(db=None, corpus=CORPUS)
        found = await retriever.find_similar("texto", "chicken", 2)
        self.assertEqual([e.title for e in found], ["pollo", "poulet"])

    async def test_live_results_come_first_newest_first(self) -> None:
        coll = FakeCollection([_row("old pollo", 1), _row("new pollo", 3), _row("merluza", 2, "fish")])
        retriever = ExampleRetriever(db=FakeDb(recipes=coll), corpus=CORPUS)

        found = await retriever.find_similar("texto", "chicken", 3)

        self.assertEqual([e.raw_text for e in found], ["new pollo", "old pollo", "Pollo al horno con patatas"])
        self.assertEqual(coll.queries, [{"main_protein": "chicken"}])
        self.assertEqual(coll.cursor.sort_args, ("created_at", -1))
        self.assertEqual(coll.cursor.limit_n, 3)
        self.assertEqual(found[0].gadgets, [])

    async def test_result_never_exceeds_limit(self) -> None:
        coll = FakeCollection([_row(f"pollo {d}", d) for d in range(1, 6)])
        retriever = ExampleRetriever(db=FakeDb(recipes=coll), corpus=CORPUS)
        for limit in (0, 1, 2, 4):
            with self.subTest(limit=limit):
                self.assertLessEqual(len(await retriever.find_similar("t", "chicken", limit)), limit)

    async def test_rows_without_raw_text_are_skipped(self) -> None:
        coll = FakeCollection([_row("", 2), _row("pollo guisado", 1)])
        retriever = ExampleRetriever(db=FakeDb(recipes=coll), corpus=())
        found = await retriever.find_similar("t", "chicken", 3)
        self.assertEqual([e.raw_text for e in found], ["pollo guisado"])

    async def test_fractional_stored_minutes_are_rounded(self) -> None:
        row = _row("pollo guisado", 1)
        row.update(total_time_minutes=40.6, oven_time_minutes=12.4)
        nan_row = _row("pollo asado", 2)
        nan_row.update(total_time_minutes=float("nan"))
        coll = FakeCollection([row, nan_row])
        retriever = ExampleRetriever(db=FakeDb(recipes=coll), corpus=())

        found = await retriever.find_similar("t", "chicken", 3)

        self.assertEqual([e.raw_text for e in found], ["pollo asado", "pollo guisado"])
        self.assertIsNone(found[0].total_time_minutes)
        self.assertEqual((found[1].total_time_minutes, found[1].oven_time_minutes), (41, 12))

    async def test_datastore_failure_degrades_to_static(self) -> None:
        retriever = ExampleRetriever(db=BrokenDb(), corpus=CORPUS)
        with self.assertLogs("recipe_api.services.retriever", level="ERROR"):
            found = await retriever.find_similar("t", "chicken", 3)
        self.assertEqual([e.title for e in found], ["pollo", "poulet", "curry"])

    async def test_datastore_failure_with_empty_corpus_is_empty(self) -> None:
        retriever = ExampleRetriever(db=BrokenDb(), corpus=())
        self.assertEqual(await retriever.find_similar("t", "fish", 3), [])


class CorpusLoaderTests(unittest.TestCase):
    def test_bundled_corpus_loads(self) -> None:
        corpus = load_example_corpus()
        self.assertGreater(len(corpus), 0)
        self.assertIsInstance(corpus, tuple)
        self.assertIs(corpus, load_example_corpus())

    def test_bad_entries_are_skipped_and_missing_file_is_empty(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "examples.json"
            path.write_text(json.dumps([{"raw_text": "ok"}, {"steps": "no raw text"}]), encoding="utf-8")
            corpus = load_example_corpus(str(path))
            self.assertEqual([e.raw_text for e in corpus], ["ok"])
            self.assertEqual(load_example_corpus(str(Path(temp_dir) / "missing.json")), ())


if __name__ == "__main__":
    unittest.main()
