# recipe_api/core/deps.py
# Shared dependencies (FastAPI Depends). Tests swap these via app.dependency_overrides.
from __future__ import annotations

from fastapi import Depends

from recipe_api.core.config import Settings, settings
from recipe_api.db.init import get_db
from recipe_api.services.analyze import RecipeAnalyzer
from recipe_api.services.model_client import OllamaClient
from recipe_api.services.retriever import ExampleRetriever


def get_settings() -> Settings:
    return settings


def get_model_client(cfg: Settings = Depends(get_settings)) -> OllamaClient:
    return OllamaClient(cfg.OLLAMA_BASE_URL, cfg.OLLAMA_MODEL)


def get_retriever() -> ExampleRetriever:
    # db handle is None when MONGO_URI is unset or the startup connection failed
    return ExampleRetriever(db=get_db())


def get_analyzer(
    retriever: ExampleRetriever = Depends(get_retriever),
    client: OllamaClient = Depends(get_model_client),
    cfg: Settings = Depends(get_settings),
) -> RecipeAnalyzer:
    return RecipeAnalyzer(
        retriever,
        client,
        example_limit=cfg.RAG_EXAMPLE_LIMIT,
        oven_keywords=cfg.OVEN_KEYWORDS,
    )
