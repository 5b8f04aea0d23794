"""
Mom's Yums Backend - Pydantic Request/Response Schemas
========================================================

What:  The API contract between the web client and the backend.
How:   FastAPI validates request bodies against these models, serializes
       responses through them and builds the OpenAPI docs from them.
Who:   Route handlers (return types) and RecipeService (update payloads).

Schemas stay separate from the SQLAlchemy models so the API never leaks
columns it should not (nothing internal is exposed today, but the seam is
kept).
"""

import uuid
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class RecipeCreate(BaseModel):
    """
    A reviewed draft the user wants to save.

    Sent as multipart form fields next to the optional image file, so the
    route builds this model itself instead of reading a JSON body.
    """

    title: str = Field(description="Recipe name")
    ingredients: str = Field(description="Newline-delimited ingredients")
    instructions: str = Field(description="Newline-delimited steps")
    category_id: Optional[int] = Field(default=None, description="Optional category")


class RecipeUpdate(BaseModel):
    """
    Partial edit; omitted fields are left untouched.

    Blank strings are not rejected here: RecipeService trims and checks
    every text field so JSON and form callers get the same 400 response.
    """

    title: Optional[str] = None
    ingredients: Optional[str] = None
    instructions: Optional[str] = None
    category_id: Optional[int] = None


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class CategoryResponse(BaseModel):
    id: int
    name: str
    display_name: str
    color: str

    model_config = {"from_attributes": True}


class RecipeResponse(BaseModel):
    """
    What:  Full representation of a saved recipe.
    Who:   Every recipe endpoint, including the public share page.
    """

    id: uuid.UUID = Field(description="Recipe identifier (UUID)")
    user_id: uuid.UUID = Field(description="Author's user id")
    display_name: str = Field(description="Author name shown on shared pages")
    title: str
    ingredients: str = Field(description="Newline-delimited ingredients")
    instructions: str = Field(description="Newline-delimited steps")
    image_url: str = Field(description="URL path of the card photo, or empty")
    category_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class RecipeListResponse(BaseModel):
    """Wrapper for list endpoints (own recipes and shared collections)."""

    recipes: List[RecipeResponse]
    total_count: int = Field(description="Number of recipes returned")


class CollectionResponse(RecipeListResponse):
    """A user's whole recipe box, as shown on the shared collection page."""

    user_id: uuid.UUID
    display_name: str = Field(description="Owner name, empty when the collection is empty")


class ShareLinksResponse(BaseModel):
    """Absolute links to the public pages of the web client."""

    collection_url: str
    recipe_url: Optional[str] = None


class ExtractedRecipe(BaseModel):
    title: str
    ingredients: str
    instructions: str


class ExtractionAttemptResponse(BaseModel):
    backend: str
    profile: str
    image_count: int
    succeeded: bool
    missing_fields: List[str] = Field(default_factory=list)
    error: Optional[str] = None


class ExtractionResponse(BaseModel):
    """
    What:  Draft returned by POST /api/extract.

    `complete` is False when some field could only be filled with a
    placeholder; `message` then tells the user to review before saving.
    `warnings` lists backend failures that were worked around.
    """

    recipe: ExtractedRecipe
    complete: bool
    message: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)
    attempts: List[ExtractionAttemptResponse] = Field(default_factory=list)


# ══════════════════════════════════════════════════════════════════════════
# Error / Health Models
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    """
    Standardized error body for every non-2xx response.

    Example:
        {
            "error": "invalid_image",
            "message": "The uploaded file is not a readable JPEG or PNG image.",
            "details": {"field": "images", "image_index": 1},
            "request_id": "550e8400-e29b-41d4-a716-446655440000"
        }
    """

    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Service and dependency status returned by GET /health."""

    status: str = Field(description="Overall status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    backends: Dict[str, str] = Field(
        description="Vision backend status by name: available, unavailable, not_configured"
    )
    uptime_seconds: float = Field(description="Seconds since service started")
