"""
Mom's Yums Backend - Recipe Service
=====================================

What:  Business logic for saved recipes: create, read, search, edit, delete,
       shared collections, share links and the category list.
How:   Async SQLAlchemy statements (equality filters, substring search and
       ordering only) against the Supabase Postgres database; images go
       through FileService.
Who:   Route handlers in routes/recipes.py and routes/collections.py.

Rules enforced here (not in the schemas):
    - title, ingredients and instructions are trimmed and must be non-empty
      on every insert and update (ValidationError → 400)
    - only the author may edit or delete a recipe (PermissionDeniedError → 403)
    - a category_id must reference an existing category (ValidationError)

Store failures are wrapped in DatabaseError and never retried.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy import desc, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import AuthUser
from app.config import Settings
from app.exceptions import (
    DatabaseError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from app.models.category import Category
from app.models.recipe import Recipe
from app.schemas.recipe import (
    CategoryResponse,
    CollectionResponse,
    RecipeCreate,
    RecipeListResponse,
    RecipeResponse,
    RecipeUpdate,
    ShareLinksResponse,
)
from app.services.file_service import FileService

logger = logging.getLogger(__name__)

TEXT_FIELDS = ("title", "ingredients", "instructions")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _database_error(operation: str, exc: Exception) -> DatabaseError:
    logger.error("Database error while trying to %s: %s", operation, str(exc), exc_info=True)
    return DatabaseError(
        message=f"Could not {operation}. Please try again.",
        context={"reason": str(exc), "error_type": type(exc).__name__},
    )


def _require_text(name: str, value: Optional[str]) -> str:
    stripped = (value or "").strip()
    if not stripped:
        raise ValidationError(
            message=f"The recipe {name} cannot be empty.",
            field=name,
        )
    return stripped


class RecipeService:
    """
    Recipe store operations.

    Stateless apart from its collaborators; every method receives the
    request's AsyncSession. Writes commit here so a failed commit surfaces
    as DatabaseError; get_db_session still rolls back on error and closes.
    """

    def __init__(self, settings: Settings, file_service: FileService):
        self.public_base_url = settings.public_base_url.rstrip("/")
        self.file_service = file_service

    # ── Helpers ───────────────────────────────────────────────────────────

    async def _get_or_404(self, db: AsyncSession, recipe_id: uuid.UUID) -> Recipe:
        try:
            result = await db.execute(select(Recipe).where(Recipe.id == recipe_id))
            recipe = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise _database_error("load the recipe", e)
        if recipe is None:
            raise NotFoundError(resource="Recipe", resource_id=str(recipe_id))
        return recipe

    async def _get_owned(self, db: AsyncSession, user: AuthUser, recipe_id: uuid.UUID) -> Recipe:
        recipe = await self._get_or_404(db, recipe_id)
        if recipe.user_id != user.id:
            logger.warning("User %s tried to modify recipe %s owned by %s", user.id, recipe_id, recipe.user_id)
            raise PermissionDeniedError(context={"recipe_id": str(recipe_id)})
        return recipe

    async def _check_category(self, db: AsyncSession, category_id: Optional[int]) -> None:
        if category_id is None:
            return
        try:
            category = await db.get(Category, category_id)
        except SQLAlchemyError as e:
            raise _database_error("check the category", e)
        if category is None:
            raise ValidationError(
                message=f"Category {category_id} does not exist.",
                field="category_id",
            )

    # ── Create ────────────────────────────────────────────────────────────

    async def create_recipe(
        self,
        db: AsyncSession,
        user: AuthUser,
        data: RecipeCreate,
        image_filename: Optional[str] = None,
        image_content: Optional[bytes] = None,
        content_length: Optional[int] = None,
    ) -> RecipeResponse:
        """
        Save a reviewed recipe, with its card photo when one is attached.

        Raises:
            ValidationError: blank field, bad image, unknown category
            FileStorageError: the image could not be written
            DatabaseError: the insert or commit failed (the stored image is removed)
        """
        fields = {name: _require_text(name, getattr(data, name)) for name in TEXT_FIELDS}
        await self._check_category(db, data.category_id)

        relative_path: Optional[str] = None
        if image_content:
            relative_path = await self.file_service.validate_and_store(
                filename=image_filename or "",
                content=image_content,
                content_length=content_length,
            )

        now = _utcnow()
        recipe = Recipe(
            id=uuid.uuid4(),
            user_id=user.id,
            display_name=user.display_name,
            image_url=self.file_service.public_url(relative_path) if relative_path else "",
            category_id=data.category_id,
            created_at=now,
            updated_at=now,
            **fields,
        )
        # Committed here, not in get_db_session, so a failed commit still
        # removes the stored image and reports a DatabaseError
        try:
            db.add(recipe)
            await db.commit()
        except SQLAlchemyError as e:
            if relative_path:
                await self.file_service.cleanup_file(relative_path)
            raise _database_error("save the recipe", e)

        logger.info("Recipe %s created by user %s", recipe.id, user.id)
        return RecipeResponse.model_validate(recipe)

    # ── Read ──────────────────────────────────────────────────────────────

    async def get_recipe(self, db: AsyncSession, recipe_id: uuid.UUID) -> RecipeResponse:
        """Public read used by the share page."""
        recipe = await self._get_or_404(db, recipe_id)
        return RecipeResponse.model_validate(recipe)

    async def list_recipes(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        search: Optional[str] = None,
        category_id: Optional[int] = None,
    ) -> RecipeListResponse:
        """
        The user's recipes, newest first.

        `search` matches title or ingredients, case-insensitive substring.
        """
        query = select(Recipe).where(Recipe.user_id == user_id)
        if search and search.strip():
            term = search.strip()
            query = query.where(
                or_(
                    Recipe.title.icontains(term, autoescape=True),
                    Recipe.ingredients.icontains(term, autoescape=True),
                )
            )
        if category_id is not None:
            query = query.where(Recipe.category_id == category_id)
        query = query.order_by(desc(Recipe.created_at))

        try:
            result = await db.execute(query)
            recipes = list(result.scalars().all())
        except SQLAlchemyError as e:
            raise _database_error("load your recipes", e)

        return RecipeListResponse(
            recipes=[RecipeResponse.model_validate(r) for r in recipes],
            total_count=len(recipes),
        )

    async def list_collection(self, db: AsyncSession, user_id: uuid.UUID) -> CollectionResponse:
        """Public view of a user's whole recipe box."""
        try:
            result = await db.execute(
                select(Recipe)
                .where(Recipe.user_id == user_id)
                .order_by(desc(Recipe.created_at))
            )
            recipes = list(result.scalars().all())
        except SQLAlchemyError as e:
            raise _database_error("load the recipe collection", e)

        return CollectionResponse(
            user_id=user_id,
            display_name=recipes[0].display_name if recipes else "",
            recipes=[RecipeResponse.model_validate(r) for r in recipes],
            total_count=len(recipes),
        )

    # ── Update / Delete ───────────────────────────────────────────────────

    async def update_recipe(
        self,
        db: AsyncSession,
        user: AuthUser,
        recipe_id: uuid.UUID,
        data: RecipeUpdate,
    ) -> RecipeResponse:
        """
        Partial edit by the owner. Only fields present in the request body
        are changed; `updated_at` is always bumped.
        """
        recipe = await self._get_owned(db, user, recipe_id)
        changes: Dict[str, object] = data.model_dump(exclude_unset=True)

        for name in TEXT_FIELDS:
            if name in changes:
                changes[name] = _require_text(name, changes[name])
        if changes.get("category_id") is not None:
            await self._check_category(db, changes["category_id"])

        for name, value in changes.items():
            setattr(recipe, name, value)
        recipe.updated_at = _utcnow()

        try:
            await db.commit()
        except SQLAlchemyError as e:
            raise _database_error("update the recipe", e)

        logger.info("Recipe %s updated (%s)", recipe_id, ", ".join(sorted(changes)) or "no fields")
        return RecipeResponse.model_validate(recipe)

    async def delete_recipe(self, db: AsyncSession, user: AuthUser, recipe_id: uuid.UUID) -> None:
        """Delete by the owner; the stored photo is removed best-effort."""
        recipe = await self._get_owned(db, user, recipe_id)
        image_path = self.file_service.relative_from_url(recipe.image_url)

        try:
            await db.delete(recipe)
            await db.commit()
        except SQLAlchemyError as e:
            raise _database_error("delete the recipe", e)

        if image_path:
            await self.file_service.cleanup_file(image_path)
        logger.info("Recipe %s deleted by user %s", recipe_id, user.id)

    # ── Sharing / reference data ──────────────────────────────────────────

    async def share_links(
        self,
        db: AsyncSession,
        user: AuthUser,
        recipe_id: Optional[uuid.UUID] = None,
    ) -> ShareLinksResponse:
        """Absolute URLs of the public collection page and, optionally, one recipe."""
        recipe_url = None
        if recipe_id is not None:
            recipe = await self._get_or_404(db, recipe_id)
            recipe_url = f"{self.public_base_url}/recipe/{recipe.id}"
        return ShareLinksResponse(
            collection_url=f"{self.public_base_url}/collection/{user.id}",
            recipe_url=recipe_url,
        )

    async def list_categories(self, db: AsyncSession) -> List[CategoryResponse]:
        try:
            result = await db.execute(select(Category).order_by(Category.id))
            categories = list(result.scalars().all())
        except SQLAlchemyError as e:
            raise _database_error("load categories", e)
        return [CategoryResponse.model_validate(c) for c in categories]
