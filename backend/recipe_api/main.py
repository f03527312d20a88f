# recipe_api/main.py
# FastAPI app init and router wiring
# Proxy between the mobile app and local engines: Ollama (LLM), Google Vision (OCR), Whisper (STT)

from __future__ import annotations

import logging
import traceback
from asyncio import sleep

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from recipe_api.api.routes_analyze import router as analyze_router
from recipe_api.api.routes_media import router as media_router
from recipe_api.core.config import settings
from recipe_api.core.errors import RecipeApiError
from recipe_api.db.indexes import ensure_indexes
from recipe_api.db.init import close_db, get_db, init_db
from recipe_api.services.examples import load_example_corpus

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger("recipe_api")

app = FastAPI(title="Recipe Extraction API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_body(message: str, exc: BaseException) -> dict:
    body = {"error": message}
    if not settings.is_production:
        body["details"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return body


@app.exception_handler(RecipeApiError)
async def recipe_api_error_handler(request: Request, exc: RecipeApiError):
    if exc.status_code >= 500:
        log.error("%s %s failed (%d): %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc.message, exc))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    # malformed bodies get the same {error} shape as our own 400s
    errors = exc.errors()
    first = errors[0] if errors else {}
    loc = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    msg = f"Invalid request: {loc + ': ' if loc else ''}{first.get('msg', 'malformed body')}"
    return JSONResponse(status_code=400, content={"error": msg})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    log.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content=_error_body(str(exc) or "Internal server error", exc))


@app.on_event("startup")
async def on_startup() -> None:
    load_example_corpus()

    # datastore is optional: without it retrieval uses the static examples only
    if not settings.MONGO_URI:
        log.info("MONGO_URI not set; few-shot retrieval uses static examples only")
        return

    db = None
    for i in range(settings.DB_INIT_RETRIES):
        try:
            db = await init_db()
            log.info("db ready")
            break
        except Exception as e:
            log.warning("db init retry %d: %s", i + 1, e)
            await sleep(1.0)
    if db is None:
        log.error("db init failed after %d retries; continuing with static examples", settings.DB_INIT_RETRIES)
        return

    try:
        await ensure_indexes(db)
        log.info("indexes ensured")
    except Exception as e:
        log.warning("ensure_indexes failed: %s", e)


@app.on_event("shutdown")
async def on_shutdown() -> None:
    await close_db()


@app.get("/")
async def root():
    return {"status": "ok"}


@app.get("/health")
async def health():
    ok = {
        "status": "ok",
        "ollama_url": settings.OLLAMA_BASE_URL,
        "model": settings.OLLAMA_MODEL,
        "whisper_model": settings.WHISPER_MODEL,
        "ocr_enabled": settings.OCR_ENABLED,
        "db": "skip",
    }
    db = get_db()
    if db is not None:
        try:
            await db.command("ping")
            ok["db"] = "ok"
        except Exception as e:
            ok["db"] = f"error: {e}"
    return ok


app.include_router(analyze_router)
app.include_router(media_router)
