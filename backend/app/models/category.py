"""
Mom's Yums Backend - Category SQLAlchemy Model
================================================

What:  ORM model for the read-only `categories` reference table.
How:   Rows are seeded by migration 001 (breakfast … other); the API only
       reads them. Recipes point at a category through `category_id`.
"""

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class Category(Base):
    """A recipe category shown as a filter chip and on recipe cards."""

    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    display_name: Mapped[str] = mapped_column(String(100), nullable=False)
    # Hex color used by the UI badge
    color: Mapped[str] = mapped_column(String(20), nullable=False, default="#6B7280")

    def __repr__(self) -> str:
        return f"<Category(id={self.id}, name='{self.name}')>"
