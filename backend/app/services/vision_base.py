"""
Mom's Yums Backend - Abstract Vision Backend Interface
========================================================

What:  Abstract base class for the services that read a recipe card image.
How:   Concrete backends implement _extract() (one provider call) and
       health_check(). The shared extract() wraps every call with:
         1. a fixed asyncio timeout budget (ExtractionTimeoutError), and
         2. tenacity retries for retryable BackendUnavailableErrors. A
            timeout is never retried here; the next strategy takes over.
Who:   Called by ExtractionService once per strategy in its ordered list.

Implementations:
    - OpenAIVisionBackend   (openai_vision.py)  GPT-4 Vision, JSON prompt
    - GeminiVisionBackend   (gemini_vision.py)  Gemini, same JSON prompt
    - GoogleVisionBackend   (google_vision.py)  Cloud Vision TEXT_DETECTION

Contract:
    - extract() accepts a non-empty sequence of image byte buffers, already
      validated and preprocessed by the orchestrator.
    - It returns RecipeFields WITHOUT placeholders; empty fields mean "not
      read" so the orchestrator can backfill them from another backend.
    - Provider errors are translated to BackendUnavailableError /
      ExtractionTimeoutError; nothing else escapes.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Sequence

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from app.config import Settings
from app.exceptions import BackendUnavailableError, ExtractionTimeoutError
from app.services.recipe_fields import RecipeFields

logger = logging.getLogger(__name__)

# Instruction sent with every image to the vision-language backends
RECIPE_PROMPT = """Please analyze this handwritten recipe card and extract the following information in JSON format:
{
  "title": "Recipe name",
  "ingredients": "List of ingredients with measurements, one per line",
  "instructions": "Step-by-step cooking instructions, one step per line"
}

Please be as accurate as possible with the handwriting. If something is unclear, make your best guess.
If the recipe continues across several images, read them in order as one recipe.
Return ONLY the JSON object."""


PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, BackendUnavailableError) and exc.retryable


def image_mime_type(data: bytes) -> str:
    """Preprocessed images are JPEG; an unprocessed original may be PNG."""
    return "image/png" if data.startswith(PNG_SIGNATURE) else "image/jpeg"


class VisionBackend(ABC):
    """
    Abstract interface for image-to-recipe extraction providers.

    Subclasses set `name` and implement `is_configured`, `_extract` and
    `health_check`. The constructor receives the Settings object; backends
    never read configuration from anywhere else.
    """

    name: str = "vision"

    def __init__(self, settings: Settings):
        self.settings = settings

    @abstractmethod
    def is_configured(self) -> bool:
        """True when the backend has the credentials it needs."""
        ...

    @abstractmethod
    async def _extract(self, images: Sequence[bytes]) -> RecipeFields:
        """
        Make exactly one provider call.

        Raises:
            BackendUnavailableError: provider failed; `retryable` set for
                transport errors, HTTP 429 and 5xx responses.
        """
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """Lightweight reachability probe. Never raises."""
        ...

    async def extract(self, images: Sequence[bytes]) -> RecipeFields:
        """
        Read a recipe from `images` with timeout and bounded retries.

        Raises:
            ExtractionTimeoutError: the call exceeded the time budget
                (not retried, so one extract() costs at most one budget).
            BackendUnavailableError: provider failed on the last attempt.
        """
        retrying = AsyncRetrying(
            retry=retry_if_exception(_is_retryable),
            stop=stop_after_attempt(self.settings.retry_max_attempts),
            # min_wait * 2^n capped at max_wait, plus up to 1s of jitter
            wait=wait_exponential(
                multiplier=self.settings.retry_min_wait,
                max=self.settings.retry_max_wait,
            ) + wait_random(0, 1),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await self._timed_extract(images)
        raise BackendUnavailableError(backend=self.name)  # pragma: no cover

    async def _timed_extract(self, images: Sequence[bytes]) -> RecipeFields:
        timeout = self.settings.extraction_timeout_seconds
        start_time = time.perf_counter()
        try:
            fields = await asyncio.wait_for(self._extract(images), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("%s call exceeded %.0fs budget", self.name, timeout)
            raise ExtractionTimeoutError(backend=self.name, timeout=timeout)

        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            "%s read %d image(s) in %.0fms (title=%d, ingredients=%d, instructions=%d chars)",
            self.name,
            len(images),
            duration_ms,
            len(fields.title),
            len(fields.ingredients),
            len(fields.instructions),
        )
        return fields
