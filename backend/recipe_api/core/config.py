# recipe_api/core/config.py
# Environment loading (.env): model service, datastore, OCR/STT engines
from __future__ import annotations

import tempfile
from pathlib import Path
from typing import List, Optional

from pydantic_settings import BaseSettings

_PACKAGE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    APP_ENV: str = "development"  # "production" hides stack traces in error bodies
    LOG_LEVEL: str = "INFO"

    # Ollama (local LLM)
    OLLAMA_BASE_URL: str = "http://localhost:11434"
    OLLAMA_MODEL: str = "llama3.2:3b"
    MODEL_TIMEOUT_SECONDS: float = 120.0
    MODEL_MAX_RETRIES: int = 2
    MODEL_BACKOFF_SECONDS: float = 1.0

    # RAG
    RAG_EXAMPLE_LIMIT: int = 3
    EXAMPLES_PATH: str = str(_PACKAGE_DIR / "data" / "example_recipes.json")
    OVEN_KEYWORDS: List[str] = ["oven", "horno", "forn", "four", "forno"]

    # MongoDB; unset means static examples only
    MONGO_URI: Optional[str] = None
    MONGO_DB: str = "recipes"
    DB_INIT_RETRIES: int = 5

    # OCR / speech-to-text
    OCR_ENABLED: bool = True
    WHISPER_MODEL: str = "base"
    WHISPER_LOCAL_BIN: Optional[str] = None
    TRANSCRIBE_TIMEOUT_SECONDS: float = 300.0
    UPLOAD_DIR: str = tempfile.gettempdir()
    MAX_UPLOAD_BYTES: int = 25 * 1024 * 1024  # 25MB

    CORS_ORIGINS: List[str] = ["*"]

    class Config:
        env_file = ".env"

    @property
    def is_production(self) -> bool:
        return self.APP_ENV.lower() == "production"


settings = Settings()
