import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stylebook.database import Base, JSONDocument

if TYPE_CHECKING:
    from stylebook.models.user import User


class PreferenceModel(Base):
    """
    Running statistics learned from outfit ratings.

    One row per user, created on the first rating and only ever updated
    incrementally. Every document column maps a key to its statistics:

    item_preferences:   {"<item id>": {"times_worn", "total_rating", "avg_rating", "success_rate"}}
    color_combinations: {"Blue-White": {"count", "total_rating", "avg_rating"}}
    style_pairings:     {"casual-minimalist": {...}}
    category_pairings:  {"bottom-shoes-top": {...}}
    """

    __tablename__ = "preference_models"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )

    item_preferences: Mapped[dict] = mapped_column(JSONDocument, default=dict)
    color_combinations: Mapped[dict] = mapped_column(JSONDocument, default=dict)
    style_pairings: Mapped[dict] = mapped_column(JSONDocument, default=dict)
    category_pairings: Mapped[dict] = mapped_column(JSONDocument, default=dict)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Relationship
    user: Mapped["User"] = relationship("User", back_populates="preference_model")
