# recipe_api/scripts/validate_examples.py
# Check the bundled few-shot corpus before shipping it:
#   python -m recipe_api.scripts.validate_examples [path]
import sys
from typing import List, Optional

from recipe_api.models.schemas import ExampleRecipe
from recipe_api.services.examples import load_example_corpus
from recipe_api.services.normalizer import uses_oven
from recipe_api.services.prompts import EXCERPT_CHARS
from recipe_api.services.retriever import CATEGORY_KEYWORDS, MATCH_ALL, static_matches


def _problems(ex: ExampleRecipe) -> List[str]:
    probs: List[str] = []
    if not ex.ingredients:
        probs.append("no-ingredients")
    if not ex.steps:
        probs.append("no-steps")
    if ex.total_time_minutes is None or ex.total_time_minutes <= 0:
        probs.append("no-total-time")
    if ex.oven_time_minutes is not None and not uses_oven(ex.gadgets):
        probs.append("oven-time-without-oven")
    if uses_oven(ex.gadgets) and ex.oven_time_minutes is None:
        probs.append("oven-without-oven-time")
    if len(ex.raw_text) < EXCERPT_CHARS // 2:
        probs.append(f"short-raw-text({len(ex.raw_text)})")
    return probs


def main(path: Optional[str] = None) -> int:
    corpus = load_example_corpus(path)
    bad = []
    for ex in corpus:
        p = _problems(ex)
        if p:
            bad.append((ex.title, p))
    print(f"checked: {len(corpus)}, issues: {len(bad)}")
    for title, probs in bad:
        print("-", title or "<untitled>", "=>", probs)

    # categories the static corpus cannot serve at all
    empty = [c for c in CATEGORY_KEYWORDS if c != MATCH_ALL and not static_matches(corpus, c, 1)]
    if empty:
        print("categories without examples:", ", ".join(empty))
    return 1 if bad or not corpus else 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1] if len(sys.argv) > 1 else None))
