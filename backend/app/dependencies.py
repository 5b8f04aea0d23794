"""
Mom's Yums Backend - FastAPI Dependencies
===========================================

What:  Providers injected into route handlers with Depends().
How:   Services are built once by create_app() and parked on app.state;
       these functions hand them out per request. Auth dependencies verify
       the Bearer token with the app's Settings.

Usage:
    @router.get("/api/recipes")
    async def list_recipes(
        user: AuthUser = Depends(get_current_user),
        service: RecipeService = Depends(get_recipe_service),
    ): ...
"""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.auth import AuthUser, decode_access_token
from app.config import Settings
from app.exceptions import AuthenticationError
from app.services.extraction_service import ExtractionService
from app.services.file_service import FileService
from app.services.recipe_service import RecipeService

# auto_error=False: a missing header becomes our 401, not FastAPI's 403
bearer_scheme = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_extraction_service(request: Request) -> ExtractionService:
    return request.app.state.extraction_service


def get_file_service(request: Request) -> FileService:
    return request.app.state.file_service


def get_recipe_service(request: Request) -> RecipeService:
    return request.app.state.recipe_service


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    settings: Settings = Depends(get_settings),
) -> AuthUser:
    """
    The signed-in user.

    Raises:
        AuthenticationError (401) when the header is missing or the token
        does not verify.
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError()
    return decode_access_token(credentials.credentials, settings)
