import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, DateTime, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stylebook.database import Base

if TYPE_CHECKING:
    from stylebook.models.item import ClothingItem
    from stylebook.models.outfit import OutfitRecord
    from stylebook.models.preference import PreferenceModel


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    external_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    display_name: Mapped[str] = mapped_column(String(100), nullable=False)
    # Used to steer shopping suggestions; "neutral" when unset
    gender: Mapped[Optional[str]] = mapped_column(String(20))

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    last_login_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    clothing_items: Mapped[list["ClothingItem"]] = relationship(
        "ClothingItem", back_populates="user", cascade="all, delete-orphan"
    )
    outfits: Mapped[list["OutfitRecord"]] = relationship(
        "OutfitRecord", back_populates="user", cascade="all, delete-orphan"
    )
    preference_model: Mapped[Optional["PreferenceModel"]] = relationship(
        "PreferenceModel", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
