"""
Mom's Yums Backend - Google Gemini Vision Backend
===================================================

What:  Alternative primary recipe reader using Google Gemini.
How:   Sends the JSON recipe prompt plus every image as inline data to
       GenerativeModel.generate_content_async(), then parses the reply the
       same way as the OpenAI backend.
Who:   Built by build_extraction_service() when VISION_LLM_PROVIDER=gemini.

Error translation:
    DeadlineExceeded                                → ExtractionTimeoutError
    ResourceExhausted / ServiceUnavailable / 5xx    → BackendUnavailableError (retryable)
    any other GoogleAPIError                        → BackendUnavailableError
    blocked or empty response (ValueError on .text) → BackendUnavailableError
"""

import asyncio
import logging
from typing import Any, List, Sequence

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions

from app.config import Settings
from app.exceptions import BackendUnavailableError, ExtractionTimeoutError
from app.services.recipe_fields import RecipeFields
from app.services.recipe_parser import parse_model_reply
from app.services.vision_base import RECIPE_PROMPT, VisionBackend, image_mime_type

logger = logging.getLogger(__name__)

RETRYABLE_ERRORS = (
    google_exceptions.ResourceExhausted,
    google_exceptions.ServiceUnavailable,
    google_exceptions.InternalServerError,
)


class GeminiVisionBackend(VisionBackend):
    """
    Gemini recipe extraction.

    The SDK keeps its API key in module-level state, so configure() runs
    once here; the model object is reused for every call.
    """

    name = "gemini"

    def __init__(self, settings: Settings):
        super().__init__(settings)
        if settings.gemini_api_key:
            genai.configure(api_key=settings.gemini_api_key)
        self.model = genai.GenerativeModel(settings.gemini_model)
        logger.info("GeminiVisionBackend initialized with model=%s", settings.gemini_model)

    def is_configured(self) -> bool:
        return bool(self.settings.gemini_api_key)

    def build_contents(self, images: Sequence[bytes]) -> List[Any]:
        contents: List[Any] = [RECIPE_PROMPT]
        for data in images:
            contents.append({"mime_type": image_mime_type(data), "data": data})
        return contents

    async def _extract(self, images: Sequence[bytes]) -> RecipeFields:
        try:
            response = await self.model.generate_content_async(
                self.build_contents(images),
                request_options={"timeout": self.settings.extraction_timeout_seconds},
            )
            text = response.text
        except google_exceptions.DeadlineExceeded:
            raise ExtractionTimeoutError(
                backend=self.name,
                timeout=self.settings.extraction_timeout_seconds,
            )
        except RETRYABLE_ERRORS as e:
            logger.warning("Gemini temporarily unavailable: %s", str(e))
            raise BackendUnavailableError(
                message="The Gemini vision service is temporarily unavailable.",
                backend=self.name,
                retryable=True,
                context={"error_type": type(e).__name__},
            )
        except google_exceptions.GoogleAPIError as e:
            logger.warning("Gemini request failed: %s", str(e))
            raise BackendUnavailableError(
                message="Gemini vision request failed.",
                backend=self.name,
                context={"error_type": type(e).__name__},
            )
        except ValueError as e:
            # .text raises when the candidate was blocked or has no parts
            logger.warning("Gemini returned no usable text: %s", str(e))
            raise BackendUnavailableError(
                message="Gemini returned no readable text for this image.",
                backend=self.name,
            )

        if not text or not text.strip():
            raise BackendUnavailableError(
                message="Gemini returned an empty reply.",
                backend=self.name,
            )
        return parse_model_reply(text)

    async def health_check(self) -> bool:
        """Looks the configured model up (no token cost)."""
        if not self.is_configured():
            return False
        try:
            await asyncio.wait_for(
                asyncio.to_thread(genai.get_model, f"models/{self.settings.gemini_model}"),
                timeout=self.settings.aux_timeout_seconds,
            )
            return True
        except (google_exceptions.GoogleAPIError, asyncio.TimeoutError) as e:
            logger.warning("Gemini health check failed: %s", str(e))
            return False
