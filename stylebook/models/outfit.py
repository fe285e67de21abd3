import uuid
from datetime import date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Integer, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stylebook.database import Base, JSONDocument

if TYPE_CHECKING:
    from stylebook.models.user import User


class OutfitRecord(Base):
    """
    One generated outfit.

    ``selected_items`` is a denormalized snapshot taken at creation time
    (id, image_url, description, category, colors, style) and is never
    rewritten, so history and ratings stay meaningful after catalog edits.
    """

    __tablename__ = "outfit_records"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # Catalog item ids the AI was given
    source_item_ids: Mapped[list[str]] = mapped_column(JSONDocument, default=list)
    selected_items: Mapped[list[dict]] = mapped_column(JSONDocument, default=list)

    # Context
    occasion: Mapped[str | None] = mapped_column(String(100))
    # Format: {"temp": 68, "condition": "sunny", "location": "Austin"}
    weather: Mapped[dict | None] = mapped_column(JSONDocument)

    # Parsed AI response (slots, reasoning, tips, visual_prompt, style_notes)
    ai_suggestion: Mapped[dict] = mapped_column(JSONDocument, default=dict)

    # Filled in later by the image worker
    image_url: Mapped[str | None] = mapped_column(String(500))

    favorite: Mapped[bool] = mapped_column(Boolean, default=False)
    rating: Mapped[int | None] = mapped_column(Integer)
    rated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    worn_at: Mapped[date | None] = mapped_column(Date)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="outfits")
