"""
Mom's Yums Backend - Recipe Routes
====================================

What:  CRUD and search for saved recipes, the category list and the
       stored-image file server.
How:   Thin handlers: parse the request, call RecipeService / FileService,
       return the schema. Ownership and field rules live in the service.

Route Inventory:
    GET    /api/recipes            own recipes (?search=&category_id=)
    POST   /api/recipes            save a reviewed recipe (multipart form)
    GET    /api/recipes/{id}       public recipe page
    PATCH  /api/recipes/{id}       edit (owner)
    DELETE /api/recipes/{id}       delete (owner)
    GET    /api/categories         category reference list
    GET    /api/files/{path}       stored recipe photo
"""

import logging
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, Response, UploadFile
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import AuthUser
from app.database import get_db_session
from app.dependencies import get_current_user, get_file_service, get_recipe_service
from app.schemas.recipe import (
    CategoryResponse,
    ErrorResponse,
    RecipeCreate,
    RecipeListResponse,
    RecipeResponse,
    RecipeUpdate,
)
from app.services.file_service import FileService
from app.services.recipe_service import RecipeService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Recipes"])


@router.get(
    "/recipes",
    response_model=RecipeListResponse,
    summary="List my recipes",
)
async def list_recipes(
    search: Optional[str] = Query(default=None, max_length=200, description="Text in title or ingredients"),
    category_id: Optional[int] = Query(default=None, description="Only this category"),
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    service: RecipeService = Depends(get_recipe_service),
) -> RecipeListResponse:
    return await service.list_recipes(db, user.id, search=search, category_id=category_id)


@router.post(
    "/recipes",
    status_code=201,
    response_model=RecipeResponse,
    responses={
        400: {"description": "Blank field or invalid image", "model": ErrorResponse},
        401: {"description": "Not signed in", "model": ErrorResponse},
    },
    summary="Save a recipe",
)
async def create_recipe(
    request: Request,
    title: str = Form(...),
    ingredients: str = Form(...),
    instructions: str = Form(...),
    category_id: Optional[int] = Form(default=None),
    image: Optional[UploadFile] = File(default=None, description="Card photo (optional)"),
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    service: RecipeService = Depends(get_recipe_service),
) -> RecipeResponse:
    """
    Save a recipe the user reviewed after extraction (or typed in).

    Sent as multipart form data so the card photo can travel with it.
    """
    data = RecipeCreate(
        title=title,
        ingredients=ingredients,
        instructions=instructions,
        category_id=category_id,
    )
    # One byte past the limit is enough for validate_size to reject it
    image_content = (
        await image.read(service.file_service.max_file_size + 1) if image is not None else None
    )
    content_length = request.headers.get("content-length")

    return await service.create_recipe(
        db,
        user,
        data,
        image_filename=image.filename if image is not None else None,
        image_content=image_content,
        content_length=int(content_length) if content_length and content_length.isdigit() else None,
    )


@router.get(
    "/recipes/{recipe_id}",
    response_model=RecipeResponse,
    responses={404: {"description": "Recipe not found", "model": ErrorResponse}},
    summary="Get a recipe (public)",
)
async def get_recipe(
    recipe_id: uuid.UUID,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
    service: RecipeService = Depends(get_recipe_service),
) -> RecipeResponse:
    result = await service.get_recipe(db, recipe_id)
    # Recipes can be edited, so shared caches only keep them briefly
    response.headers["Cache-Control"] = "public, max-age=60"
    return result


@router.patch(
    "/recipes/{recipe_id}",
    response_model=RecipeResponse,
    responses={
        400: {"description": "Blank field", "model": ErrorResponse},
        403: {"description": "Not the owner", "model": ErrorResponse},
        404: {"description": "Recipe not found", "model": ErrorResponse},
    },
    summary="Edit a recipe",
)
async def update_recipe(
    recipe_id: uuid.UUID,
    data: RecipeUpdate,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    service: RecipeService = Depends(get_recipe_service),
) -> RecipeResponse:
    return await service.update_recipe(db, user, recipe_id, data)


@router.delete(
    "/recipes/{recipe_id}",
    status_code=204,
    responses={
        403: {"description": "Not the owner", "model": ErrorResponse},
        404: {"description": "Recipe not found", "model": ErrorResponse},
    },
    summary="Delete a recipe",
)
async def delete_recipe(
    recipe_id: uuid.UUID,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    service: RecipeService = Depends(get_recipe_service),
) -> Response:
    await service.delete_recipe(db, user, recipe_id)
    return Response(status_code=204)


@router.get(
    "/categories",
    response_model=List[CategoryResponse],
    summary="List recipe categories",
)
async def list_categories(
    db: AsyncSession = Depends(get_db_session),
    service: RecipeService = Depends(get_recipe_service),
) -> List[CategoryResponse]:
    return await service.list_categories(db)


@router.get(
    "/files/{file_path:path}",
    summary="Serve a stored recipe photo",
    responses={
        200: {"description": "Image file"},
        404: {"description": "File not found", "model": ErrorResponse},
    },
)
async def serve_file(
    file_path: str,
    files: FileService = Depends(get_file_service),
) -> FileResponse:
    path = files.resolve(file_path)
    media_type = "image/png" if path.suffix == ".png" else "image/jpeg"
    return FileResponse(
        path=str(path),
        media_type=media_type,
        headers={"Cache-Control": "public, max-age=86400"},
    )
