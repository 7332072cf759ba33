"""Prompt synthesis: brand attributes + analysis + copy -> one image-model prompt."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from advision import prompts
from advision.errors import PromptGenerationFailed
from advision.providers.base import TextProvider
from advision.schemas import PromptRequest

logger = logging.getLogger(__name__)

PLACEHOLDER_HEADLINE = "Compelling Headline"
PLACEHOLDER_SUBHEADLINE = "Engaging Subheadline"
PLACEHOLDER_CTA = "Call to Action"
PLACEHOLDERS = (PLACEHOLDER_HEADLINE, PLACEHOLDER_SUBHEADLINE, PLACEHOLDER_CTA)


@dataclass(frozen=True)
class AdText:
    headline: str
    subheadline: str
    cta: str


def select_ad_text(request: PromptRequest) -> AdText:
    """Per field: explicit copy elements, then analyzed text, then a placeholder."""
    copy = request.copy_elements
    analyzed = request.analyzed_data.text_elements if request.analyzed_data else None

    def pick(field: str, placeholder: str) -> str:
        if copy is not None:
            return getattr(copy, field)
        if analyzed is not None and getattr(analyzed, field):
            return getattr(analyzed, field)
        return placeholder

    return AdText(
        headline=pick("headline", PLACEHOLDER_HEADLINE),
        subheadline=pick("subheadline", PLACEHOLDER_SUBHEADLINE),
        cta=pick("cta", PLACEHOLDER_CTA),
    )


def layout_guidance(request: PromptRequest) -> str:
    if request.analyzed_data and request.analyzed_data.layout_style:
        return request.analyzed_data.layout_style
    style = ", ".join(request.brand_style_words) or "clean"
    return f"A {style} composition suited to a {request.output_format or 'standard ad'} layout"


def font_guidance(request: PromptRequest) -> str:
    if request.analyzed_data and request.analyzed_data.font_style:
        return request.analyzed_data.font_style
    style = ", ".join(request.brand_style_words) or "modern"
    return f"Sharp, legible, modern typography matching a {style} brand"


def ensure_text_restated(prompt: str, text: AdText) -> str:
    """Append an explicit typography clause unless every text element already appears verbatim."""
    if all(part in prompt for part in (text.headline, text.subheadline, text.cta)):
        return prompt
    return (
        f'{prompt.rstrip()} Render the text exactly: headline "{text.headline}", '
        f'subheadline "{text.subheadline}", CTA "{text.cta}", with clear, modern typography.'
    )


class PromptSynthesisService:
    def __init__(self, llm: TextProvider):
        self.llm = llm

    async def synthesize(self, request: PromptRequest) -> str:
        text = select_ad_text(request)
        instruction = prompts.SYNTHESIZE_VISUAL_PROMPT.render(
            brand_colors=request.brand_colors,
            brand_style_words=request.brand_style_words,
            target_audience=request.target_audience,
            output_format=request.output_format,
            prompt_tweaks=request.prompt_tweaks,
            layout_guidance=layout_guidance(request),
            font_guidance=font_guidance(request),
            headline=text.headline,
            subheadline=text.subheadline,
            cta=text.cta,
        )

        try:
            res = await self.llm.generate_json(instruction)
        except Exception as exc:
            logger.error("Prompt provider %s failed: %s", self.llm.name, exc)
            raise PromptGenerationFailed("prompt provider error") from exc

        dalle_prompt = (res.data or {}).get("dallePrompt")
        if not isinstance(dalle_prompt, str) or not dalle_prompt.strip():
            logger.error("No prompt text in model output: %.200s", res.raw_text)
            raise PromptGenerationFailed("model returned no prompt text")

        final = ensure_text_restated(dalle_prompt.strip(), text)
        if any(p in final for p in PLACEHOLDERS):
            logger.warning("Image prompt contains placeholder text; copy/analysis data was incomplete")
        logger.debug("Image prompt: %s", final)
        return final
