"""Initial schema

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-09-28

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("external_id", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("display_name", sa.String(100), nullable=False),
        sa.Column("gender", sa.String(20), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=True, server_default=sa.text("true")),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("external_id"),
        sa.UniqueConstraint("email"),
    )

    op.create_table(
        "clothing_items",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("image_path", sa.String(500), nullable=False),
        sa.Column("thumbnail_path", sa.String(500), nullable=True),
        sa.Column("category", sa.String(20), nullable=False, server_default="other"),
        sa.Column("colors", postgresql.JSONB(), nullable=True, server_default="[]"),
        sa.Column("season", postgresql.JSONB(), nullable=True, server_default="[]"),
        sa.Column("style", postgresql.JSONB(), nullable=True, server_default="[]"),
        sa.Column("description", sa.Text(), nullable=True, server_default=""),
        sa.Column("confidence", sa.Float(), nullable=True, server_default="1.0"),
        sa.Column("ai_analysis", postgresql.JSONB(), nullable=True),
        sa.Column("favorite", sa.Boolean(), nullable=True, server_default=sa.text("false")),
        sa.Column("in_laundry", sa.Boolean(), nullable=True, server_default=sa.text("false")),
        sa.Column("laundry_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_clothing_items_user_id", "clothing_items", ["user_id"])
    op.create_index("ix_clothing_items_image_path", "clothing_items", ["image_path"])

    op.create_table(
        "outfit_records",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("source_item_ids", postgresql.JSONB(), nullable=True, server_default="[]"),
        sa.Column("selected_items", postgresql.JSONB(), nullable=True, server_default="[]"),
        sa.Column("occasion", sa.String(100), nullable=True),
        sa.Column("weather", postgresql.JSONB(), nullable=True),
        sa.Column("ai_suggestion", postgresql.JSONB(), nullable=True, server_default="{}"),
        sa.Column("image_url", sa.String(500), nullable=True),
        sa.Column("favorite", sa.Boolean(), nullable=True, server_default=sa.text("false")),
        sa.Column("rating", sa.Integer(), nullable=True),
        sa.Column("rated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("worn_at", sa.Date(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_outfit_records_user_id", "outfit_records", ["user_id"])
    op.create_index(
        "ix_outfit_records_user_created", "outfit_records", ["user_id", "created_at"]
    )

    op.create_table(
        "preference_models",
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("item_preferences", postgresql.JSONB(), nullable=True, server_default="{}"),
        sa.Column("color_combinations", postgresql.JSONB(), nullable=True, server_default="{}"),
        sa.Column("style_pairings", postgresql.JSONB(), nullable=True, server_default="{}"),
        sa.Column("category_pairings", postgresql.JSONB(), nullable=True, server_default="{}"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("user_id"),
    )

    op.create_table(
        "daily_usage",
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("usage_date", sa.Date(), nullable=False),
        sa.Column("action_type", sa.String(50), nullable=False),
        sa.Column("count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("user_id", "usage_date", "action_type"),
    )


def downgrade() -> None:
    op.drop_table("daily_usage")
    op.drop_table("preference_models")
    op.drop_index("ix_outfit_records_user_created", table_name="outfit_records")
    op.drop_index("ix_outfit_records_user_id", table_name="outfit_records")
    op.drop_table("outfit_records")
    op.drop_index("ix_clothing_items_image_path", table_name="clothing_items")
    op.drop_index("ix_clothing_items_user_id", table_name="clothing_items")
    op.drop_table("clothing_items")
    op.drop_table("users")
