from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from stylebook.schemas.analysis import WardrobeAnalysis


class ShoppingRecommendation(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    category: str
    item_type: str = Field(default="", alias="itemType")
    description: str = ""
    suggested_colors: list[str] = Field(default_factory=list, alias="suggestedColors")
    suggested_style: list[str] = Field(default_factory=list, alias="suggestedStyle")
    reasoning: str = ""
    pairs_with: list[str] = Field(default_factory=list, alias="pairsWith")
    priority: Literal["high", "medium", "low"] = "medium"

    @field_validator("category", mode="before")
    @classmethod
    def _lower_category(cls, value):
        return str(value).lower().strip() if value else "other"

    @field_validator("priority", mode="before")
    @classmethod
    def _normalize_priority(cls, value):
        if isinstance(value, str) and value.lower().strip() in ("high", "medium", "low"):
            return value.lower().strip()
        return "medium"

    @field_validator("suggested_colors", "suggested_style", "pairs_with", mode="before")
    @classmethod
    def _as_list(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return value


class RecommendationsResponse(BaseModel):
    recommendations: list[ShoppingRecommendation]
    wardrobe_analysis: WardrobeAnalysis
