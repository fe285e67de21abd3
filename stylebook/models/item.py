import enum
import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stylebook.database import Base, JSONDocument

if TYPE_CHECKING:
    from stylebook.models.user import User


class ItemCategory(enum.StrEnum):
    top = "top"
    bottom = "bottom"
    shoes = "shoes"
    outerwear = "outerwear"
    accessory = "accessory"
    dress = "dress"
    suit = "suit"
    other = "other"


class ClothingItem(Base):
    __tablename__ = "clothing_items"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # Image paths. Several items detected in one photo share the same image_path.
    image_path: Mapped[str] = mapped_column(String(500), nullable=False, index=True)
    thumbnail_path: Mapped[str | None] = mapped_column(String(500))

    # Classification
    category: Mapped[str] = mapped_column(String(20), nullable=False, default=ItemCategory.other)
    colors: Mapped[list[str]] = mapped_column(JSONDocument, default=list)
    season: Mapped[list[str]] = mapped_column(JSONDocument, default=list)
    style: Mapped[list[str]] = mapped_column(JSONDocument, default=list)
    description: Mapped[str] = mapped_column(Text, default="")

    # AI metadata
    confidence: Mapped[float] = mapped_column(Float, default=1.0)
    ai_analysis: Mapped[dict | None] = mapped_column(JSONDocument)

    # User flags
    favorite: Mapped[bool] = mapped_column(Boolean, default=False)
    in_laundry: Mapped[bool] = mapped_column(Boolean, default=False)
    laundry_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="clothing_items")
