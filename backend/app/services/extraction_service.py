"""
Mom's Yums Backend - Extraction Orchestrator
==============================================

What:  Turns one or more recipe card photos into an editable
       {title, ingredients, instructions} draft.
How:   Validates every image, then walks an explicit, ordered list of
       ExtractionStrategy entries (backend + enhancement profile + image
       selection). Each successful reading is merged into the running result;
       the loop stops as soon as all three fields are good enough.
Who:   POST /api/extract (routes/extract.py).
When:  Once per scan; strategies run strictly one after another.

Strategy order:
    1. primary backend      DEFAULT profile     all images
    2. Google Vision OCR    VISION profile      first image
    3. primary backend      VISION profile      first image   (escalation)
    4. primary backend      AGGRESSIVE profile  first image   (escalation)

Outcomes:
    - every field present            → ExtractionResult(complete=True)
    - some field still missing       → ExtractionResult(complete=False) with
                                       placeholders and a soft warning message
    - no strategy produced anything  → BackendUnavailableError listing every
                                       failure; nothing is fabricated
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from app.config import Settings
from app.exceptions import BackendUnavailableError, ValidationError
from app.services.preprocessing import (
    AGGRESSIVE_PROFILE,
    DEFAULT_PROFILE,
    VISION_PROFILE,
    EnhancementProfile,
    preprocess_image,
    validate_image,
)
from app.services.recipe_fields import RecipeFields
from app.services.vision_base import VisionBackend

logger = logging.getLogger(__name__)

PARTIAL_RESULT_MESSAGE = (
    "Some parts of the recipe could not be read clearly. "
    "Please review and complete the missing fields before saving."
)

ALL_FAILED_MESSAGE = (
    "We could not read this recipe card right now. "
    "Please try again in a moment or type the recipe in by hand."
)

NOT_CONFIGURED_MESSAGE = "No recipe reading service is configured on the server."


@dataclass(frozen=True)
class ExtractionStrategy:
    """
    One step of the orchestrator's plan.

    Attributes:
        backend:           Backend to call
        profile:           Enhancement profile applied before the call
        first_image_only:  Narrow the input to the first image
        escalation:        Counts against settings.max_escalations
    """

    backend: VisionBackend
    profile: EnhancementProfile
    first_image_only: bool = False
    escalation: bool = False

    @property
    def label(self) -> str:
        return f"{self.backend.name}/{self.profile.name}"

    def select(self, images: Sequence[bytes]) -> List[bytes]:
        return list(images[:1]) if self.first_image_only else list(images)


@dataclass
class ExtractionAttempt:
    """Report of one strategy run, returned to the client for transparency."""

    backend: str
    profile: str
    image_count: int
    succeeded: bool
    missing_fields: List[str] = field(default_factory=list)
    error: Optional[str] = None


@dataclass
class ExtractionResult:
    """
    Final draft handed back to the user for review.

    `fields` never contains empty values (placeholders are substituted);
    `complete` records whether every field met its threshold before that.
    """

    fields: RecipeFields
    complete: bool
    attempts: List[ExtractionAttempt] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    message: Optional[str] = None


class ExtractionService:
    """
    Sequential strategy runner.

    Usage:
        service = build_extraction_service(settings)
        result = await service.extract([jpeg_bytes])
    """

    def __init__(
        self,
        settings: Settings,
        primary: VisionBackend,
        secondary: Optional[VisionBackend] = None,
    ):
        self.settings = settings
        self.primary = primary
        self.secondary = secondary

    def build_strategies(self) -> List[ExtractionStrategy]:
        """The ordered plan, minus any backend without credentials."""
        planned = [
            ExtractionStrategy(self.primary, DEFAULT_PROFILE),
        ]
        if self.secondary is not None:
            planned.append(
                ExtractionStrategy(self.secondary, VISION_PROFILE, first_image_only=True)
            )
        planned.extend([
            ExtractionStrategy(self.primary, VISION_PROFILE, first_image_only=True, escalation=True),
            ExtractionStrategy(self.primary, AGGRESSIVE_PROFILE, first_image_only=True, escalation=True),
        ])

        strategies = []
        for strategy in planned:
            if not strategy.backend.is_configured():
                logger.debug("Skipping %s: backend not configured", strategy.label)
                continue
            strategies.append(strategy)
        return strategies

    def validate_image_count(self, count: int) -> None:
        """Raises ValidationError for no images or more than allowed per scan."""
        if not count:
            raise ValidationError(
                message="Please add at least one photo of the recipe card.",
                field="images",
            )
        limit = self.settings.max_images_per_request
        if count > limit:
            raise ValidationError(
                message=f"A single scan accepts at most {limit} images.",
                field="images",
                context={"count": count, "limit": limit},
            )

    def validate_images(self, images: Sequence[bytes]) -> None:
        """
        Raises:
            ValidationError:    no images, or more than allowed per scan
            InvalidImageError:  an image does not decode as JPEG/PNG
        """
        self.validate_image_count(len(images))
        for index, data in enumerate(images):
            validate_image(data, index=index, max_pixels=self.settings.max_image_pixels)

    async def extract(self, images: Sequence[bytes]) -> ExtractionResult:
        """
        Read a recipe from `images`.

        Raises:
            ValidationError / InvalidImageError: before any backend is called
            BackendUnavailableError: every strategy failed (or none is configured)
        """
        self.validate_images(images)

        strategies = self.build_strategies()
        if not strategies:
            logger.error("Extraction requested but no vision backend is configured")
            raise BackendUnavailableError(message=NOT_CONFIGURED_MESSAGE)

        merged: Optional[RecipeFields] = None
        attempts: List[ExtractionAttempt] = []
        failures: List[str] = []
        escalations_used = 0

        for strategy in strategies:
            if strategy.escalation:
                if escalations_used >= self.settings.max_escalations:
                    logger.info("Escalation limit reached, not running %s", strategy.label)
                    continue
                escalations_used += 1

            selected = strategy.select(images)
            prepared = [
                await asyncio.to_thread(preprocess_image, data, strategy.profile)
                for data in selected
            ]

            try:
                candidate = await strategy.backend.extract(prepared)
            except BackendUnavailableError as e:
                logger.warning("Strategy %s failed: %s", strategy.label, e.message)
                failures.append(f"{strategy.backend.name}: {e.message}")
                attempts.append(ExtractionAttempt(
                    backend=strategy.backend.name,
                    profile=strategy.profile.name,
                    image_count=len(selected),
                    succeeded=False,
                    error=e.message,
                ))
                continue

            merged = candidate if merged is None else merged.merge(candidate)
            attempts.append(ExtractionAttempt(
                backend=strategy.backend.name,
                profile=strategy.profile.name,
                image_count=len(selected),
                succeeded=True,
                missing_fields=candidate.missing_fields(),
            ))

            if merged.is_complete:
                break
            logger.info(
                "Strategy %s left fields missing: %s",
                strategy.label,
                ", ".join(merged.missing_fields()),
            )

        if merged is None:
            logger.error("All %d extraction strategies failed", len(attempts))
            raise BackendUnavailableError(message=ALL_FAILED_MESSAGE, failures=failures)

        complete = merged.is_complete
        logger.info(
            "Extraction finished after %d attempt(s), complete=%s",
            len(attempts),
            complete,
        )
        return ExtractionResult(
            fields=merged.with_placeholders(),
            complete=complete,
            attempts=attempts,
            warnings=failures,
            message=None if complete else PARTIAL_RESULT_MESSAGE,
        )

    async def backend_status(self) -> Dict[str, str]:
        """
        Probe every backend: "available", "unavailable" or "not_configured".
        """
        backends = [self.primary] + ([self.secondary] if self.secondary else [])
        configured = [b for b in backends if b.is_configured()]
        results = await asyncio.gather(*(b.health_check() for b in configured))

        status = {b.name: "not_configured" for b in backends}
        for backend, ok in zip(configured, results):
            status[backend.name] = "available" if ok else "unavailable"
        return status


def build_extraction_service(settings: Settings) -> ExtractionService:
    """Wire the configured primary provider and the OCR fallback."""
    # Imported here so only the selected provider's SDK is initialised
    from app.services.google_vision import GoogleVisionBackend

    primary: VisionBackend
    if settings.vision_llm_provider == "gemini":
        from app.services.gemini_vision import GeminiVisionBackend
        primary = GeminiVisionBackend(settings)
    else:
        from app.services.openai_vision import OpenAIVisionBackend
        primary = OpenAIVisionBackend(settings)

    return ExtractionService(settings, primary=primary, secondary=GoogleVisionBackend(settings))
