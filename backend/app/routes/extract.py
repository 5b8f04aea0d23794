"""
Mom's Yums Backend - Recipe Extraction Route
==============================================

What:  POST /api/extract: reads recipe card photos into an editable draft.
How:   Checks the image count, reads each file up to max_file_size (one
       byte more marks it as too large) and hands the ordered list to
       ExtractionService. Nothing is stored; the user reviews the draft and
       saves it through POST /api/recipes.
Who:   The scanner screen of the web client.

Error responses (handled by global exception handlers):
    HTTP 400: no images, too many images, oversized or undecodable image
    HTTP 401: missing or invalid access token
    HTTP 503: every backend failed (details.failures lists them)
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, File, UploadFile

from app.auth import AuthUser
from app.dependencies import get_current_user, get_extraction_service, get_file_service
from app.schemas.recipe import (
    ErrorResponse,
    ExtractedRecipe,
    ExtractionAttemptResponse,
    ExtractionResponse,
)
from app.services.extraction_service import ExtractionService
from app.services.file_service import FileService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Extraction"])


@router.post(
    "/extract",
    response_model=ExtractionResponse,
    responses={
        400: {"description": "Missing or unreadable image", "model": ErrorResponse},
        401: {"description": "Not signed in", "model": ErrorResponse},
        503: {"description": "No recipe reading service could read the card", "model": ErrorResponse},
    },
    summary="Read a recipe card",
    description=(
        "Upload one or more photos of a handwritten recipe card (JPEG or PNG, in "
        "page order). Returns a title / ingredients / instructions draft for review."
    ),
)
async def extract_recipe(
    images: List[UploadFile] = File(..., description="Recipe card photos, in page order"),
    user: AuthUser = Depends(get_current_user),
    service: ExtractionService = Depends(get_extraction_service),
    file_service: FileService = Depends(get_file_service),
) -> ExtractionResponse:
    service.validate_image_count(len(images))

    contents = []
    for image in images:
        data = await image.read(file_service.max_file_size + 1)
        file_service.validate_size(image.size, len(data))
        contents.append(data)

    logger.info(
        "Extraction request from user %s: %d image(s), %d bytes",
        user.id,
        len(contents),
        sum(len(c) for c in contents),
    )

    result = await service.extract(contents)

    return ExtractionResponse(
        recipe=ExtractedRecipe(**result.fields.as_dict()),
        complete=result.complete,
        message=result.message,
        warnings=result.warnings,
        attempts=[
            ExtractionAttemptResponse(
                backend=a.backend,
                profile=a.profile,
                image_count=a.image_count,
                succeeded=a.succeeded,
                missing_fields=a.missing_fields,
                error=a.error,
            )
            for a in result.attempts
        ],
    )
