"""Visual generation: one image per provider call, assembled into a batch."""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum
from urllib.parse import urlparse

from advision.config import settings
from advision.errors import (
    InvalidImagePayload,
    MissingCredential,
    NoImagesGenerated,
    VisualGenerationFailed,
)
from advision.providers.base import ImageProvider
from advision.schemas import VisualAdRequest
from advision.services.visual_prompt import PromptSynthesisService

logger = logging.getLogger(__name__)


class CanvasSize(str, Enum):
    WIDE = "wide"
    TALL = "tall"
    SQUARE = "square"


PROVIDER_SIZES: dict[CanvasSize, str] = {
    CanvasSize.WIDE: "1792x1024",
    CanvasSize.TALL: "1024x1792",
    CanvasSize.SQUARE: "1024x1024",
}


def select_canvas_size(width: int, height: int) -> CanvasSize:
    """Nearest supported canvas by aspect ratio. Thresholds are strict."""
    ratio = width / height
    if ratio > 1.3:
        return CanvasSize.WIDE
    if ratio < 0.7:
        return CanvasSize.TALL
    return CanvasSize.SQUARE


def is_valid_image_payload(payload: str) -> bool:
    if payload.startswith("data:image/"):
        return True
    parsed = urlparse(payload)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def variation_prompt(prompt: str, index: int) -> str:
    # Diversity hint only; the first call uses the prompt as is.
    return prompt if index == 0 else f"{prompt} (variation {index + 1})"


class VisualGenerationService:
    def __init__(
        self,
        prompt_synthesis: PromptSynthesisService,
        image_provider_factory: Callable[[str], ImageProvider],
    ):
        self.prompt_synthesis = prompt_synthesis
        self.image_provider_factory = image_provider_factory

    async def generate(self, request: VisualAdRequest) -> list[str]:
        """
        Returns one payload per requested variation, or raises. Any single failed
        call aborts the batch; partial results are never returned.
        """
        credential = request.credential or settings.openai_api_key
        if not credential:
            raise MissingCredential("no image generation credential supplied")
        provider = self.image_provider_factory(credential)

        prompt = await self.prompt_synthesis.synthesize(request.prompt_request())

        canvas = select_canvas_size(request.width, request.height)
        size = PROVIDER_SIZES[canvas]
        count = min(request.number_of_variations, settings.max_variations)
        logger.info(
            "Generating %d visual variations at %s (%dx%d requested)",
            count,
            size,
            request.width,
            request.height,
        )

        images: list[str] = []
        for i in range(count):
            try:
                generated = await provider.generate_image(variation_prompt(prompt, i), size)
            except Exception as exc:
                logger.error("Image provider %s failed on variation %d: %s", provider.name, i + 1, exc)
                raise VisualGenerationFailed(i, "provider error") from exc

            payload = generated.payload
            if not payload:
                raise VisualGenerationFailed(i, "response did not contain an image")
            if not is_valid_image_payload(payload):
                raise InvalidImagePayload(i)
            images.append(payload)
            logger.info("Variation %d generated", i + 1)

        if not images:
            raise NoImagesGenerated("no images were generated")
        return images
