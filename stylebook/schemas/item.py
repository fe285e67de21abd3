from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from stylebook.models.item import ItemCategory

IMAGE_URL_PREFIX = "/api/v1/images"

VALID_SEASONS = ("spring", "summer", "fall", "winter")


def image_url_for(path: str | None) -> str | None:
    """Public URL for a stored image key (``<user_id>/<filename>``)."""
    if not path:
        return None
    return f"{IMAGE_URL_PREFIX}/{path}"


class DetectedItem(BaseModel):
    """One garment found in a photo by the vision model."""

    category: ItemCategory = ItemCategory.other
    colors: list[str] = Field(default_factory=list)
    season: list[str] = Field(default_factory=list)
    style: list[str] = Field(default_factory=list)
    description: str = ""
    confidence: float = 0.5

    @field_validator("category", mode="before")
    @classmethod
    def _coerce_category(cls, value):
        if isinstance(value, str) and value.lower().strip() in ItemCategory.__members__:
            return value.lower().strip()
        return ItemCategory.other

    @field_validator("season", mode="before")
    @classmethod
    def _filter_seasons(cls, value):
        if not isinstance(value, list):
            return []
        seasons = [str(v).lower().strip() for v in value if v]
        return [s for s in seasons if s in VALID_SEASONS]

    @field_validator("colors", "style", mode="before")
    @classmethod
    def _clean_strings(cls, value):
        if not isinstance(value, list):
            return []
        return [str(v).strip() for v in value if v and str(v).strip()]

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, value):
        if isinstance(value, (int, float)) and not isinstance(value, bool) and 0 <= value <= 1:
            return float(value)
        return 0.5

    @field_validator("description", mode="before")
    @classmethod
    def _default_description(cls, value):
        return str(value).strip() if value else ""


class ItemAttributes(BaseModel):
    category: ItemCategory = ItemCategory.other
    colors: list[str] = Field(default_factory=list)
    season: list[str] = Field(default_factory=list)
    style: list[str] = Field(default_factory=list)
    description: str = ""
    favorite: bool = False

    @field_validator("season")
    @classmethod
    def _known_seasons(cls, value: list[str]) -> list[str]:
        unknown = [s for s in value if s not in VALID_SEASONS]
        if unknown:
            raise ValueError(f"Unknown season(s): {', '.join(unknown)}")
        return value


class ItemUpdate(BaseModel):
    category: ItemCategory | None = None
    colors: list[str] | None = None
    season: list[str] | None = None
    style: list[str] | None = None
    description: str | None = None
    favorite: bool | None = None
    in_laundry: bool | None = None

    @field_validator("season")
    @classmethod
    def _known_seasons(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return value
        unknown = [s for s in value if s not in VALID_SEASONS]
        if unknown:
            raise ValueError(f"Unknown season(s): {', '.join(unknown)}")
        return value


class ItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    image_path: str
    thumbnail_path: str | None = None
    category: str
    colors: list[str] = Field(default_factory=list)
    season: list[str] = Field(default_factory=list)
    style: list[str] = Field(default_factory=list)
    description: str = ""
    confidence: float = 1.0
    favorite: bool = False
    in_laundry: bool = False
    laundry_date: datetime | None = None
    created_at: datetime
    updated_at: datetime

    @computed_field
    @property
    def image_url(self) -> str:
        return image_url_for(self.image_path)

    @computed_field
    @property
    def thumbnail_url(self) -> str | None:
        return image_url_for(self.thumbnail_path)


class ItemListResponse(BaseModel):
    items: list[ItemResponse]
    total: int


class AnalyzedImage(BaseModel):
    """Result of analyzing one uploaded photo in a bulk request."""

    filename: str
    image_path: str | None = None
    thumbnail_path: str | None = None
    items: list[DetectedItem] = Field(default_factory=list)
    error: str | None = None


class BulkAnalyzeResponse(BaseModel):
    images: list[AnalyzedImage]
    total_detected: int
    failed: int


class DetectedItemSave(DetectedItem):
    image_path: str
    thumbnail_path: str | None = None
    favorite: bool = False


class BulkSaveRequest(BaseModel):
    items: list[DetectedItemSave] = Field(..., min_length=1)


class DeleteItemResponse(BaseModel):
    deleted: bool = True
    image_deleted: bool
