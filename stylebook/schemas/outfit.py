from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

OUTFIT_SLOTS = ("top", "bottom", "shoes", "outerwear")


class WeatherInfo(BaseModel):
    temp: float | None = None  # Fahrenheit
    condition: str | None = None
    location: str | None = None


class OutfitSuggestion(BaseModel):
    """Per-slot free text from the AI; any slot may be missing."""

    top: str | None = None
    bottom: str | None = None
    shoes: str | None = None
    outerwear: str | None = None
    accessories: list[str] = Field(default_factory=list)

    @field_validator("top", "bottom", "shoes", "outerwear", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        # Models sometimes answer "null" or "none" as a string
        if value is None:
            return None
        text = str(value).strip()
        if not text or text.lower() in ("null", "none", "n/a"):
            return None
        return text

    @field_validator("accessories", mode="before")
    @classmethod
    def _accessory_list(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            return [value] if value.strip() else []
        if not isinstance(value, (list, tuple)):
            raise ValueError("accessories must be a list of strings")
        return [str(v) for v in value if v]


class GeneratedOutfit(BaseModel):
    """Validated outfit response from the AI text model."""

    model_config = ConfigDict(populate_by_name=True)

    outfit: OutfitSuggestion
    reasoning: str = ""
    tips: str = ""
    visual_prompt: str = Field(default="", alias="visualPrompt")
    style_notes: str | None = Field(default=None, alias="styleNotes")

    @field_validator("tips", mode="before")
    @classmethod
    def _join_tips(cls, value):
        if value is None:
            return ""
        if isinstance(value, list):
            return " ".join(str(v) for v in value)
        return value


class SelectedItemSnapshot(BaseModel):
    id: str
    image_url: str | None = None
    description: str = ""
    category: str
    colors: list[str] = Field(default_factory=list)
    style: list[str] = Field(default_factory=list)


class GenerateOutfitRequest(BaseModel):
    occasion: str | None = Field(None, max_length=100)
    weather: WeatherInfo | None = None
    anchor_item_id: UUID | None = None
    style: str | None = Field(None, max_length=100)


class RateOutfitRequest(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    worn_at: date | None = None


class OutfitResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    source_item_ids: list[str] = Field(default_factory=list)
    selected_items: list[SelectedItemSnapshot] = Field(default_factory=list)
    occasion: str | None = None
    weather: WeatherInfo | None = None
    ai_suggestion: dict = Field(default_factory=dict)
    image_url: str | None = None
    favorite: bool = False
    rating: int | None = None
    rated_at: datetime | None = None
    worn_at: date | None = None
    created_at: datetime


class OutfitListResponse(BaseModel):
    outfits: list[OutfitResponse]
    total: int
