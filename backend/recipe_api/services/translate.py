# recipe_api/services/translate.py
# Text translation through the same Ollama model (used by the app to show recipes in es/ca/fr/en/pt)

from __future__ import annotations
import logging

from recipe_api.services.model_client import OllamaClient
from recipe_api.services.normalizer import parse_model_json

log = logging.getLogger(__name__)

LANGUAGE_NAMES = {
    "es": "Spanish",
    "ca": "Catalan",
    "fr": "French",
    "en": "English",
    "pt": "Portuguese",
}

TRANSLATE_PROMPT = (
    "You are a translator for cooking recipes. Translate the user's text into {language}.\n"
    "- Keep quantities, units and numbers unchanged.\n"
    "- Keep line breaks.\n"
    '- Return ONLY JSON: {{"translated_text": "..."}}'
)


async def translate_text(text: str, target_language: str, client: OllamaClient) -> str:
    if not (text or "").strip():
        return text
    language = LANGUAGE_NAMES.get(target_language, target_language)
    reply = await client.call(TRANSLATE_PROMPT.format(language=language), text)

    translated = parse_model_json(reply).get("translated_text")
    if not isinstance(translated, str) or not translated.strip():
        log.warning("Translation reply had no translated_text; returning original (lang=%s)", target_language)
        return text
    return translated
