# recipe_api/db/models/recipe.py
# Stored recipe row (written by the mobile app's CRUD layer, read-only here)
from __future__ import annotations

import math
from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from recipe_api.models.schemas import ExampleRecipe, Ingredient


class RecipeRow(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str = ""
    main_protein: Optional[str] = None
    raw_text: str = ""
    ingredients: List[Ingredient] = Field(default_factory=list)
    steps: List[str] = Field(default_factory=list)
    gadgets: List[str] = Field(default_factory=list)
    total_time_minutes: Optional[int] = None
    oven_time_minutes: Optional[int] = None
    created_at: Optional[datetime] = None

    @field_validator("ingredients", "steps", "gadgets", mode="before")
    @classmethod
    def _v_list(cls, v: Any):
        # older rows may hold null instead of an empty array
        return v if isinstance(v, list) else []

    @field_validator("total_time_minutes", "oven_time_minutes", mode="before")
    @classmethod
    def _v_minutes(cls, v: Any):
        # stored as number | null; fractional minutes are rounded, NaN/inf treated as missing
        if isinstance(v, float):
            return int(round(v)) if math.isfinite(v) else None
        return v

    def to_example(self) -> ExampleRecipe:
        return ExampleRecipe(
            raw_text=self.raw_text,
            ingredients=self.ingredients,
            steps=self.steps,
            gadgets=self.gadgets,
            total_time_minutes=self.total_time_minutes,
            oven_time_minutes=self.oven_time_minutes,
            title=self.title or None,
            main_protein=self.main_protein,
        )
