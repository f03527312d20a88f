# recipe_api/db/init.py
# Mongo connection utils (motor, opened from on_event startup)
# The datastore is optional: without MONGO_URI retrieval falls back to the static example corpus.

from __future__ import annotations
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from recipe_api.core.config import settings

_client: AsyncIOMotorClient | None = None
_db: AsyncIOMotorDatabase | None = None


async def init_db(uri: Optional[str] = None, name: Optional[str] = None) -> AsyncIOMotorDatabase | None:
    # called once at startup; returns None when no datastore is configured
    global _client, _db
    if _db is not None:
        return _db

    uri = uri or settings.MONGO_URI
    if not uri:
        return None

    client = AsyncIOMotorClient(uri, serverSelectionTimeoutMS=5000)
    db = client[name or settings.MONGO_DB]
    try:
        # raises if the server is not reachable yet
        await db.command("ping")
    except Exception:
        client.close()
        raise

    _client, _db = client, db
    return _db


def get_db() -> AsyncIOMotorDatabase | None:
    # handle used by the retriever; None = not configured / not connected
    return _db


async def close_db() -> None:
    global _client, _db
    if _client:
        _client.close()
    _client = None
    _db = None
