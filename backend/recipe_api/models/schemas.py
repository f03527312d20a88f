# recipe_api/models/schemas.py
# Pydantic models: extraction domain (Ingredient/ExampleRecipe/ExtractionResult) + API in/out
# Wire names follow the mobile client (snake_case results, camelCase analyze request)

from __future__ import annotations
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

Quantity = Union[int, float, str]


class Ingredient(BaseModel):
    name: str
    quantity: Optional[Quantity] = None   # "a pinch" style values stay strings
    unit: Optional[str] = None
    notes: Optional[str] = None


class ExampleRecipe(BaseModel):
    # few-shot unit: static corpus entry or a row from the recipes collection
    raw_text: str
    ingredients: List[Ingredient] = Field(default_factory=list)
    steps: List[str] = Field(default_factory=list)
    gadgets: List[str] = Field(default_factory=list)
    total_time_minutes: Optional[int] = None
    oven_time_minutes: Optional[int] = None
    title: Optional[str] = None
    main_protein: Optional[str] = None

    def target_json(self) -> dict:
        """The output shape the model is expected to produce for this example."""
        return {
            "ingredients": [i.model_dump(exclude_none=True) for i in self.ingredients],
            "steps": list(self.steps),
            "gadgets": list(self.gadgets),
            "total_time_minutes": self.total_time_minutes,
            "oven_time_minutes": self.oven_time_minutes,
        }


class ExtractionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    ingredients: List[Ingredient] = Field(default_factory=list)
    steps: List[str] = Field(default_factory=list)
    gadgets: List[str] = Field(default_factory=list)
    total_time_minutes: int = Field(gt=0)
    oven_time_minutes: Optional[int] = None


# analyze-recipe input. Fields are optional here so a missing one gets our 400 body, not a 422
class AnalyzeRecipeIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    raw_text: Optional[str] = Field(default=None, alias="rawText")
    main_protein: Optional[str] = Field(default=None, alias="mainProtein")


class OcrPreprocessing(BaseModel):
    contrast: int = Field(default=0, ge=-100, le=100)
    brightness: int = Field(default=0, ge=-100, le=100)

    def is_noop(self) -> bool:
        return self.contrast == 0 and self.brightness == 0


class OcrWord(BaseModel):
    text: str
    confidence: float


class OcrResult(BaseModel):
    text: str
    language: str
    confidence: Optional[float] = None   # 0~100
    words: List[OcrWord] = Field(default_factory=list)


class OcrBatchResult(BaseModel):
    results: List[OcrResult] = Field(default_factory=list)
    total_images: int = 0
    successful: int = 0
    failed: int = 0


class TranscribeResult(BaseModel):
    text: str
    language: str
    model: str


class ScaleIngredientsIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ingredients: List[Ingredient] = Field(default_factory=list)
    original_servings: float = Field(alias="originalServings")
    desired_servings: float = Field(alias="desiredServings")


class ScaleIngredientsOut(BaseModel):
    ingredients: List[Ingredient] = Field(default_factory=list)


SUPPORTED_LANGUAGES = ("es", "ca", "fr", "en", "pt")


class TranslateIn(BaseModel):
    text: str = ""
    target_language: str

    @field_validator("target_language", mode="before")
    @classmethod
    def _v_lang(cls, v):
        return str(v or "").strip().lower()


class TranslateOut(BaseModel):
    translated_text: str
