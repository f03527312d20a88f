# recipe_api/api/routes_analyze.py
# Raw recipe text -> structured recipe (Ollama + few-shot examples), plus helpers the app calls around it

from __future__ import annotations

from fastapi import APIRouter, Depends

from recipe_api.core.deps import get_analyzer, get_model_client
from recipe_api.core.errors import InvalidRequest
from recipe_api.models.schemas import (
    SUPPORTED_LANGUAGES,
    AnalyzeRecipeIn,
    ExtractionResult,
    ScaleIngredientsIn,
    ScaleIngredientsOut,
    TranslateIn,
    TranslateOut,
)
from recipe_api.services.analyze import RecipeAnalyzer
from recipe_api.services.model_client import OllamaClient
from recipe_api.services.translate import translate_text
from recipe_api.services.utils import scale_ingredients

router = APIRouter(tags=["analyze"])


@router.post("/api/analyze-recipe", response_model=ExtractionResult)
async def analyze_recipe(
    payload: AnalyzeRecipeIn,
    analyzer: RecipeAnalyzer = Depends(get_analyzer),
):
    """
    {rawText, mainProtein} -> {ingredients, steps, gadgets, total_time_minutes, oven_time_minutes}
    400: missing/blank field, 504: model timed out, 500: any other failure
    """
    return await analyzer.analyze(payload.raw_text, payload.main_protein)


@router.post("/api/scale-ingredients", response_model=ScaleIngredientsOut)
async def scale(payload: ScaleIngredientsIn):
    # serving-size calculator; non-positive servings return the list unchanged
    return ScaleIngredientsOut(
        ingredients=scale_ingredients(payload.ingredients, payload.original_servings, payload.desired_servings)
    )


@router.post("/translate", response_model=TranslateOut)
async def translate(
    payload: TranslateIn,
    client: OllamaClient = Depends(get_model_client),
):
    if payload.target_language not in SUPPORTED_LANGUAGES:
        raise InvalidRequest(
            f"Unsupported target_language '{payload.target_language}'. Use one of: {', '.join(SUPPORTED_LANGUAGES)}"
        )
    return TranslateOut(translated_text=await translate_text(payload.text, payload.target_language, client))
