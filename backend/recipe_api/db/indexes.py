# recipe_api/db/indexes.py
# Collection indexes. Call ensure_indexes() once from app startup.

from __future__ import annotations

from motor.motor_asyncio import AsyncIOMotorDatabase

RECIPES = "recipes"


async def ensure_indexes(db: AsyncIOMotorDatabase) -> None:
    # few-shot retrieval: category filter + newest first
    await db[RECIPES].create_index(
        [("main_protein", 1), ("created_at", -1)],
        name="main_protein_1_created_at_-1",
    )
