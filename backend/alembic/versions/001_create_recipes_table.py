"""Create categories and recipes tables

Revision ID: 001
Revises: None
Create Date: 2024-06-01 00:00:00.000000+00:00

What:  The recipe store: seeded `categories` reference table and the
       `recipes` table owned by Supabase auth users.
How:   PostgreSQL UUID keys and TIMESTAMP WITH TIME ZONE columns.

Rollback: downgrade() drops both tables (all recipes are lost).
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Kept literal: migrations must not change when app.models does
CATEGORY_SEED = [
    {"name": "breakfast", "display_name": "Breakfast", "color": "#F59E0B"},
    {"name": "lunch", "display_name": "Lunch", "color": "#10B981"},
    {"name": "dinner", "display_name": "Dinner", "color": "#EF4444"},
    {"name": "dessert", "display_name": "Dessert", "color": "#EC4899"},
    {"name": "snack", "display_name": "Snack", "color": "#8B5CF6"},
    {"name": "drink", "display_name": "Drink", "color": "#3B82F6"},
    {"name": "other", "display_name": "Other", "color": "#6B7280"},
]


def upgrade() -> None:
    categories = op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("display_name", sa.String(100), nullable=False),
        sa.Column("color", sa.String(20), nullable=False, server_default=sa.text("'#6B7280'")),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name", name="uq_categories_name"),
    )
    op.bulk_insert(categories, CATEGORY_SEED)

    op.create_table(
        "recipes",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            nullable=False,
            comment="Supabase auth user id of the author",
        ),
        sa.Column(
            "display_name",
            sa.String(255),
            nullable=False,
            server_default=sa.text("''"),
            comment="Author name shown on shared pages",
        ),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("ingredients", sa.Text(), nullable=False),
        sa.Column("instructions", sa.Text(), nullable=False),
        sa.Column(
            "image_url",
            sa.Text(),
            nullable=False,
            server_default=sa.text("''"),
            comment="/api/files/<relative path> of the card photo, or ''",
        ),
        sa.Column("category_id", sa.Integer(), nullable=True),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["category_id"],
            ["categories.id"],
            name="fk_recipes_category_id",
            ondelete="SET NULL",
        ),
        # Blank strings never reach the table, whatever client writes to it
        sa.CheckConstraint("length(trim(title)) > 0", name="ck_recipes_title_not_blank"),
        sa.CheckConstraint("length(trim(ingredients)) > 0", name="ck_recipes_ingredients_not_blank"),
        sa.CheckConstraint("length(trim(instructions)) > 0", name="ck_recipes_instructions_not_blank"),
    )

    op.create_index(
        "idx_recipes_user_created",
        "recipes",
        ["user_id", sa.text("created_at DESC")],
    )


def downgrade() -> None:
    op.drop_index("idx_recipes_user_created", table_name="recipes")
    op.drop_table("recipes")
    op.drop_table("categories")
