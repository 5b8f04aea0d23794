"""
Mom's Yums Backend - Google Cloud Vision OCR Backend
======================================================

What:  Secondary recipe reader: plain OCR through the Cloud Vision REST API.
How:   POST {"requests": [{"image": {"content": <base64>}, "features":
       [{"type": "TEXT_DETECTION", "maxResults": 1}]}]} with httpx. The first
       text annotation holds the full text of the card, which always goes
       through the line heuristics (OCR never returns structure).
Who:   Second strategy in the orchestrator list, used to backfill fields the
       vision-language model missed.

Only the first image of a request is sent; the API reads one image per
request entry and the orchestrator always narrows to one image here.
"""

import asyncio
import base64
import logging
from typing import Any, Dict, Optional, Sequence

import httpx

from app.config import Settings
from app.exceptions import BackendUnavailableError, ExtractionTimeoutError
from app.services.recipe_fields import RecipeFields
from app.services.recipe_parser import extract_sections
from app.services.vision_base import VisionBackend

logger = logging.getLogger(__name__)

MALFORMED_MESSAGE = "Google Vision returned a malformed response."


class GoogleVisionBackend(VisionBackend):
    """Cloud Vision TEXT_DETECTION over REST."""

    name = "google_vision"

    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None):
        super().__init__(settings)
        self.endpoint = settings.google_vision_endpoint
        self._client = client

    def is_configured(self) -> bool:
        return bool(self.settings.google_vision_api_key)

    def build_request(self, image: bytes) -> Dict[str, Any]:
        return {
            "requests": [
                {
                    "image": {"content": base64.b64encode(image).decode("ascii")},
                    "features": [{"type": "TEXT_DETECTION", "maxResults": 1}],
                }
            ]
        }

    async def _post(self, payload: Dict[str, Any]) -> httpx.Response:
        params = {"key": self.settings.google_vision_api_key}
        if self._client is not None:
            return await self._client.post(self.endpoint, params=params, json=payload)
        async with httpx.AsyncClient(timeout=self.settings.extraction_timeout_seconds) as client:
            return await client.post(self.endpoint, params=params, json=payload)

    async def _extract(self, images: Sequence[bytes]) -> RecipeFields:
        try:
            response = await self._post(self.build_request(images[0]))
        except httpx.TimeoutException:
            raise ExtractionTimeoutError(
                backend=self.name,
                timeout=self.settings.extraction_timeout_seconds,
            )
        except httpx.TransportError as e:
            logger.warning("Google Vision connection failed: %s", str(e))
            raise BackendUnavailableError(
                message="Could not reach the Google Vision service.",
                backend=self.name,
                retryable=True,
                context={"error_type": type(e).__name__},
            )

        if response.status_code != 200:
            logger.warning(
                "Google Vision returned HTTP %d: %s",
                response.status_code,
                response.text[:500],
            )
            raise BackendUnavailableError(
                message=f"Google Vision request failed with status {response.status_code}.",
                backend=self.name,
                retryable=response.status_code == 429 or response.status_code >= 500,
                context={"status_code": response.status_code},
            )

        try:
            body = response.json()
        except ValueError:
            raise BackendUnavailableError(message=MALFORMED_MESSAGE, backend=self.name)
        if not isinstance(body, dict):
            raise BackendUnavailableError(
                message=MALFORMED_MESSAGE,
                backend=self.name,
                context={"body_type": type(body).__name__},
            )

        try:
            return self.parse_response(body)
        except (AttributeError, TypeError, IndexError, KeyError) as e:
            logger.warning("Unexpected Google Vision response shape: %s", str(e))
            raise BackendUnavailableError(
                message=MALFORMED_MESSAGE,
                backend=self.name,
                context={"error_type": type(e).__name__},
            )

    def parse_response(self, body: Dict[str, Any]) -> RecipeFields:
        """
        Read the full-text annotation out of an images:annotate response.

        No annotations (a blank card) is a valid, empty reading; a per-image
        error object is a backend failure.
        """
        responses = body.get("responses") or [{}]
        first = responses[0] or {}
        if first.get("error"):
            error = first["error"]
            raise BackendUnavailableError(
                message=f"Google Vision could not read the image: {error.get('message', 'unknown error')}",
                backend=self.name,
                context={"code": error.get("code")},
            )

        annotations = first.get("textAnnotations") or []
        if not annotations:
            logger.info("Google Vision found no text in the image")
            return RecipeFields()

        full_text = annotations[0].get("description", "")
        return extract_sections(full_text)

    async def health_check(self) -> bool:
        """Fetches the API discovery document; annotate calls are billed."""
        if not self.is_configured():
            return False
        try:
            async with httpx.AsyncClient(timeout=self.settings.aux_timeout_seconds) as client:
                response = await client.get("https://vision.googleapis.com/$discovery/rest?version=v1")
            return response.status_code == 200
        except (httpx.HTTPError, asyncio.TimeoutError) as e:
            logger.warning("Google Vision health check failed: %s", str(e))
            return False
