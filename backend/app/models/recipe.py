"""
Mom's Yums Backend - Recipe SQLAlchemy Model
==============================================

What:  ORM model representing the `recipes` table of the Supabase database.
How:   Inherits from the shared DeclarativeBase; Alembic migration 001 creates
       the same table.
Who:   RecipeService for CRUD and search.

Table notes:
    - user_id is the Supabase auth user (`sub` claim); there is no local
      users table, so it is a plain UUID column.
    - title / ingredients / instructions are NOT NULL and the service refuses
      blank values; ingredients and instructions are newline-delimited text.
    - image_url is '' when the recipe was typed in without a photo.
    - display_name is copied from the author's profile when the recipe is
      saved, so share pages can show "from <name>'s kitchen" without a join.

Index on (user_id, created_at DESC) serves the main query: "my recipes,
newest first".
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Recipe(Base):
    """
    A saved recipe.

    Lifecycle:
        1. Draft produced by /api/extract (never stored by the server)
        2. User reviews and saves → row created here
        3. Owner may edit (updated_at bumped) or delete it
        4. Anyone with the link can read it
    """

    __tablename__ = "recipes"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=text("gen_random_uuid()"),
    )

    # ── Ownership ─────────────────────────────────────────────────────────
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        nullable=False,
        comment="Supabase auth user id of the author",
    )
    display_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        default="",
        server_default=text("''"),
        comment="Author name shown on shared pages",
    )

    # ── Recipe content ────────────────────────────────────────────────────
    title: Mapped[str] = mapped_column(Text, nullable=False)
    ingredients: Mapped[str] = mapped_column(Text, nullable=False)
    instructions: Mapped[str] = mapped_column(Text, nullable=False)
    image_url: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
        server_default=text("''"),
        comment="/api/files/<relative path> of the card photo, or ''",
    )

    category_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("categories.id", ondelete="SET NULL"),
        nullable=True,
    )

    # ── Timestamps ────────────────────────────────────────────────────────
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        Index("idx_recipes_user_created", user_id, created_at.desc()),
    )

    def __repr__(self) -> str:
        return f"<Recipe(id={self.id}, title='{self.title[:30]}', user_id={self.user_id})>"
