"""
Mom's Yums Backend - Sharing Routes
=====================================

What:  Public recipe collections and share links.
How:   GET /api/collections/{user_id} is open to anyone with the link;
       GET /api/share builds the links for the signed-in user.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import AuthUser
from app.database import get_db_session
from app.dependencies import get_current_user, get_recipe_service
from app.schemas.recipe import CollectionResponse, ErrorResponse, ShareLinksResponse
from app.services.recipe_service import RecipeService

router = APIRouter(prefix="/api", tags=["Sharing"])


@router.get(
    "/collections/{user_id}",
    response_model=CollectionResponse,
    summary="A user's shared recipe collection (public)",
)
async def get_collection(
    user_id: uuid.UUID,
    db: AsyncSession = Depends(get_db_session),
    service: RecipeService = Depends(get_recipe_service),
) -> CollectionResponse:
    return await service.list_collection(db, user_id)


@router.get(
    "/share",
    response_model=ShareLinksResponse,
    responses={404: {"description": "Recipe not found", "model": ErrorResponse}},
    summary="Share links for my collection or one recipe",
)
async def get_share_links(
    recipe_id: Optional[uuid.UUID] = Query(default=None),
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    service: RecipeService = Depends(get_recipe_service),
) -> ShareLinksResponse:
    return await service.share_links(db, user, recipe_id=recipe_id)
