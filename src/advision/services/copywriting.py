"""Ad copy generation and refinement."""

from __future__ import annotations

import logging

from advision import prompts
from advision.errors import (
    CopyGenerationFailed,
    CopyRefinementFailed,
    EmptyCopyBatch,
    InvalidCopyResponse,
)
from advision.providers.base import TextProvider
from advision.schemas import AdCopy, CopyBatch, CopyRequest, validate_payload

logger = logging.getLogger(__name__)


class CopyGenerationService:
    """Generate N (headline, subheadline, CTA) variations from brand attributes."""

    def __init__(self, llm: TextProvider):
        self.llm = llm

    async def generate(self, request: CopyRequest) -> list[AdCopy]:
        """
        Returns whatever count the model produced. A count that differs from
        `request.number_of_variations` is logged, not raised; the caller reconciles.
        """
        prompt = prompts.GENERATE_AD_COPY.render(
            brand_style=request.brand_style,
            colors=request.colors,
            target_audience=request.target_audience,
            format=request.format,
            reference_text=request.reference_text,
            number_of_variations=request.number_of_variations,
        )
        logger.info("Generating %d copy variations (%s)", request.number_of_variations, request.format)

        try:
            res = await self.llm.generate_json(prompt)
        except Exception as exc:
            logger.error("Copy provider %s failed: %s", self.llm.name, exc)
            raise CopyGenerationFailed("copy provider error") from exc

        raw = (res.data or {}).get("variations")
        if not isinstance(raw, list):
            logger.error("Invalid copy response structure: %.200s", res.raw_text)
            raise InvalidCopyResponse("response is missing the variations list")
        if not raw:
            raise EmptyCopyBatch("response contained no variations")

        variations = validate_payload(CopyBatch, {"variations": raw}).variations
        if len(variations) != request.number_of_variations:
            logger.warning(
                "Copy model returned %d variations, but %d were requested",
                len(variations),
                request.number_of_variations,
            )
        return variations


class CopyRefinementService:
    """Rewrite an existing piece of ad copy following free-text instructions."""

    def __init__(self, llm: TextProvider):
        self.llm = llm

    async def refine(self, original_ad_copy: str, instructions: str) -> str:
        if not original_ad_copy.strip() or not instructions.strip():
            raise CopyRefinementFailed("original copy and instructions are required")

        prompt = prompts.REFINE_AD_COPY.render(
            original_ad_copy=original_ad_copy.strip(),
            instructions=instructions.strip(),
        )
        try:
            refined = await self.llm.generate_text(prompt)
        except Exception as exc:
            logger.error("Refinement provider %s failed: %s", self.llm.name, exc)
            raise CopyRefinementFailed("refinement provider error") from exc

        if not refined.strip():
            raise CopyRefinementFailed("model returned no refined copy")
        return refined.strip()
