"""
Mom's Yums Backend - OpenAI Vision Backend
============================================

What:  Primary recipe reader: GPT-4 class vision model asked to return the
       recipe as a JSON object with title/ingredients/instructions.
How:   One chat completion per call through the official `openai` SDK
       (AsyncOpenAI). Every image is attached as a base64 data URL after the
       text instruction. The reply is parsed as JSON when it contains an
       object, otherwise through the line heuristics in recipe_parser.
Who:   Built by build_extraction_service() when VISION_LLM_PROVIDER=openai.

Error translation:
    openai.APITimeoutError         → ExtractionTimeoutError (not retried)
    openai.APIConnectionError      → BackendUnavailableError (retryable)
    openai.APIStatusError 429/5xx  → BackendUnavailableError (retryable)
    openai.APIStatusError other    → BackendUnavailableError
    empty completion               → BackendUnavailableError

The SDK's own retry loop is disabled (max_retries=0); retries are owned by
VisionBackend.extract() so the attempt count stays bounded by settings.
"""

import asyncio
import base64
import logging
from typing import Any, Dict, List, Optional, Sequence

import openai
from openai import AsyncOpenAI

from app.config import Settings
from app.exceptions import BackendUnavailableError, ExtractionTimeoutError
from app.services.recipe_fields import RecipeFields
from app.services.recipe_parser import parse_model_reply
from app.services.vision_base import RECIPE_PROMPT, VisionBackend, image_mime_type

logger = logging.getLogger(__name__)


class OpenAIVisionBackend(VisionBackend):
    """GPT-4 Vision recipe extraction."""

    name = "openai"

    def __init__(self, settings: Settings, client: Optional[AsyncOpenAI] = None):
        super().__init__(settings)
        self.model = settings.openai_model
        self._client = client

    @property
    def client(self) -> AsyncOpenAI:
        # Created lazily so an unconfigured backend never builds a client
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.settings.openai_api_key,
                timeout=self.settings.extraction_timeout_seconds,
                max_retries=0,
            )
        return self._client

    def is_configured(self) -> bool:
        return bool(self.settings.openai_api_key) or self._client is not None

    def build_messages(self, images: Sequence[bytes]) -> List[Dict[str, Any]]:
        """Single user turn: instruction text followed by every image."""
        content: List[Dict[str, Any]] = [{"type": "text", "text": RECIPE_PROMPT}]
        for data in images:
            encoded = base64.b64encode(data).decode("ascii")
            content.append({
                "type": "image_url",
                "image_url": {
                    "url": f"data:{image_mime_type(data)};base64,{encoded}",
                    "detail": "high",
                },
            })
        return [{"role": "user", "content": content}]

    async def _extract(self, images: Sequence[bytes]) -> RecipeFields:
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=self.build_messages(images),
                max_tokens=self.settings.openai_max_tokens,
                temperature=0,
            )
        except openai.APITimeoutError:
            raise ExtractionTimeoutError(
                backend=self.name,
                timeout=self.settings.extraction_timeout_seconds,
            )
        except openai.APIConnectionError as e:
            logger.warning("OpenAI connection failed: %s", str(e))
            raise BackendUnavailableError(
                message="Could not reach the OpenAI vision service.",
                backend=self.name,
                retryable=True,
                context={"error_type": type(e).__name__},
            )
        except openai.APIStatusError as e:
            logger.warning("OpenAI returned HTTP %d: %s", e.status_code, str(e))
            raise BackendUnavailableError(
                message=f"OpenAI vision request failed with status {e.status_code}.",
                backend=self.name,
                retryable=e.status_code == 429 or e.status_code >= 500,
                context={"status_code": e.status_code},
            )
        except openai.OpenAIError as e:
            logger.warning("OpenAI request failed: %s", str(e))
            raise BackendUnavailableError(
                message="OpenAI vision request failed.",
                backend=self.name,
                context={"error_type": type(e).__name__},
            )

        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            raise BackendUnavailableError(
                message="OpenAI returned an empty reply.",
                backend=self.name,
            )

        logger.debug("OpenAI reply (%d chars)", len(content))
        return parse_model_reply(content)

    async def health_check(self) -> bool:
        if not self.is_configured():
            return False
        try:
            await asyncio.wait_for(
                self.client.models.retrieve(self.model),
                timeout=self.settings.aux_timeout_seconds,
            )
            return True
        except (openai.OpenAIError, asyncio.TimeoutError) as e:
            logger.warning("OpenAI health check failed: %s", str(e))
            return False
