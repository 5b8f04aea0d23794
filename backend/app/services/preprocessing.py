"""
Mom's Yums Backend - Image Preprocessing
==========================================

What:  Crops and enhances recipe card photos before they are sent to a
       vision backend, and validates that uploads decode at all.
How:   Pillow. The enhancement is a per-channel lookup table built from a
       linear contrast stretch around mid gray (128) plus a brightness offset,
       clamped to the byte range.
Who:   The extraction orchestrator picks an EnhancementProfile per strategy.

Pipeline (preprocess_image):
    decode ─▶ EXIF transpose ─▶ center crop 80% ─▶ upscale ─▶ contrast LUT ─▶ JPEG

The pipeline is best effort: if the bytes cannot be decoded or processed,
the original bytes are returned unchanged and a warning is logged.
Validation (validate_image) is the strict counterpart used up front.
"""

import io
import logging
from dataclasses import dataclass
from typing import List

from PIL import Image, ImageOps, UnidentifiedImageError

from app.exceptions import InvalidImageError

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = {"JPEG", "PNG"}

# Largest accepted photo; a 48MP phone camera stays under it
MAX_IMAGE_PIXELS = 50_000_000

# Share of each axis kept by crop_center; matches the capture viewfinder
CROP_FRACTION = 0.8


@dataclass(frozen=True)
class EnhancementProfile:
    """
    One set of enhancement parameters.

    Attributes:
        name:        Label used in logs and attempt reports
        scale:       Upscale factor applied after cropping
        contrast:    Contrast stretch factor around mid gray
        brightness:  Offset added after the stretch (0-255 scale)
        quality:     JPEG quality of the re-encoded image
    """

    name: str
    scale: float
    contrast: float
    brightness: int
    quality: int


DEFAULT_PROFILE = EnhancementProfile("default", scale=1.5, contrast=1.2, brightness=0, quality=90)
VISION_PROFILE = EnhancementProfile("vision", scale=2.0, contrast=1.5, brightness=10, quality=95)
AGGRESSIVE_PROFILE = EnhancementProfile("aggressive", scale=2.0, contrast=1.8, brightness=20, quality=95)

PROFILES = {
    profile.name: profile
    for profile in (DEFAULT_PROFILE, VISION_PROFILE, AGGRESSIVE_PROFILE)
}


def stretch_contrast(value: int, factor: float, brightness: int = 0) -> int:
    """
    Linear contrast stretch of one channel value, clamped to [0, 255].

    (value - 128) * factor + 128 + brightness
    """
    stretched = round((value - 128) * factor + 128 + brightness)
    return max(0, min(255, stretched))


def contrast_table(factor: float, brightness: int = 0) -> List[int]:
    """256-entry lookup table for Image.point()."""
    return [stretch_contrast(v, factor, brightness) for v in range(256)]


def validate_image(data: bytes, index: int = 0, max_pixels: int = MAX_IMAGE_PIXELS) -> str:
    """
    Ensure `data` decodes as a supported image.

    Returns:
        The Pillow format name ("JPEG" or "PNG").

    Raises:
        InvalidImageError when the payload is empty, truncated, not an
        image, an image format we do not accept, or larger than
        `max_pixels`.
    """
    if not data:
        raise InvalidImageError(message="Image payload is empty.", index=index)
    try:
        # load() decodes the pixel data, so truncated files fail here too
        with Image.open(io.BytesIO(data)) as image:
            image_format = image.format
            width, height = image.size
            if width * height > max_pixels:
                raise InvalidImageError(
                    message=(
                        f"Image is too large ({width}x{height}). "
                        "Please upload a smaller photo."
                    ),
                    index=index,
                    context={"width": width, "height": height, "max_pixels": max_pixels},
                )
            image.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError, ValueError) as e:
        raise InvalidImageError(index=index, context={"reason": str(e)})

    if image_format not in SUPPORTED_FORMATS:
        raise InvalidImageError(
            message=(
                f"Image format '{image_format}' is not supported. "
                "Please upload a JPEG or PNG photo."
            ),
            index=index,
            context={"format": image_format},
        )
    return image_format


def crop_center(image: Image.Image, fraction: float = CROP_FRACTION) -> Image.Image:
    """Keep the centered `fraction` of each axis, discarding the border."""
    width, height = image.size
    crop_w = max(1, int(width * fraction))
    crop_h = max(1, int(height * fraction))
    left = (width - crop_w) // 2
    top = (height - crop_h) // 2
    return image.crop((left, top, left + crop_w, top + crop_h))


def enhance(image: Image.Image, profile: EnhancementProfile) -> Image.Image:
    """Upscale and contrast-stretch an already cropped RGB image."""
    if profile.scale != 1:
        new_size = (
            max(1, round(image.width * profile.scale)),
            max(1, round(image.height * profile.scale)),
        )
        image = image.resize(new_size, Image.Resampling.LANCZOS)
    # RGB image: the 256-entry table is applied to each of the three bands
    table = contrast_table(profile.contrast, profile.brightness)
    return image.point(table * 3)


def preprocess_image(data: bytes, profile: EnhancementProfile = DEFAULT_PROFILE) -> bytes:
    """
    Crop, enhance and re-encode one image as JPEG.

    Never raises: any decode/processing failure returns `data` untouched.
    """
    try:
        with Image.open(io.BytesIO(data)) as source:
            image = ImageOps.exif_transpose(source).convert("RGB")
        image = crop_center(image)
        image = enhance(image, profile)

        buffer = io.BytesIO()
        image.save(buffer, format="JPEG", quality=profile.quality)
        processed = buffer.getvalue()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        logger.warning(
            "Preprocessing (%s) failed, sending original image: %s",
            profile.name,
            str(e),
        )
        return data

    logger.debug(
        "Preprocessed image with profile=%s: %d -> %d bytes",
        profile.name,
        len(data),
        len(processed),
    )
    return processed
