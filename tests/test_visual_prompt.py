import logging

import pytest

from advision.errors import PromptGenerationFailed
from advision.schemas import AdCopy, AnalysisResult, PromptRequest, TextElements
from advision.services.visual_prompt import (
    PLACEHOLDERS,
    PromptSynthesisService,
    font_guidance,
    layout_guidance,
    select_ad_text,
)

from conftest import FakeTextProvider


def _request(**overrides):
    data = dict(
        brand_colors=["#FF5733", "#33C1FF"],
        brand_style_words=["modern", "playful"],
        target_audience="Young professionals",
        output_format="Instagram Post",
    )
    data.update(overrides)
    return PromptRequest(**data)


ANALYZED = AnalysisResult(
    font_style="Bold serif",
    layout_style="Asymmetrical layout with text overlay",
    text_elements=TextElements(headline="Analyzed Headline", subheadline=None, cta="Analyzed CTA"),
)
COPY = AdCopy(headline="Save Big", subheadline="Today Only", cta="Shop Now")


def test_placeholders_without_copy_or_analysis():
    text = select_ad_text(_request())
    assert (text.headline, text.subheadline, text.cta) == PLACEHOLDERS


def test_analyzed_text_fills_missing_fields_individually():
    text = select_ad_text(_request(analyzed_data=ANALYZED))
    assert text.headline == "Analyzed Headline"
    assert text.subheadline == "Engaging Subheadline"
    assert text.cta == "Analyzed CTA"


def test_copy_elements_take_priority_over_analysis():
    text = select_ad_text(_request(analyzed_data=ANALYZED, copy_elements=COPY))
    assert (text.headline, text.subheadline, text.cta) == ("Save Big", "Today Only", "Shop Now")


def test_guidance_prefers_analysis_then_infers():
    assert layout_guidance(_request(analyzed_data=ANALYZED)) == "Asymmetrical layout with text overlay"
    assert font_guidance(_request(analyzed_data=ANALYZED)) == "Bold serif"
    inferred = layout_guidance(_request())
    assert "modern, playful" in inferred
    assert "Instagram Post" in inferred
    assert "modern, playful" in font_guidance(_request())


async def test_prompt_without_inputs_contains_placeholders_and_warns(caplog):
    llm = FakeTextProvider([{"dallePrompt": "A vibrant flat illustration of a city at dusk."}])
    svc = PromptSynthesisService(llm)

    with caplog.at_level(logging.WARNING, logger="advision.services.visual_prompt"):
        prompt = await svc.synthesize(_request())

    for placeholder in ("Compelling Headline", "Engaging Subheadline", "Call to Action"):
        assert placeholder in prompt
    assert any("placeholder" in r.getMessage() for r in caplog.records)


async def test_prompt_with_copy_restates_copy_verbatim():
    llm = FakeTextProvider([{"dallePrompt": 'A sleek banner with the headline "Save Big".'}])
    svc = PromptSynthesisService(llm)

    prompt = await svc.synthesize(_request(copy_elements=COPY))

    for text in ("Save Big", "Today Only", "Shop Now"):
        assert text in prompt
    for placeholder in PLACEHOLDERS:
        assert placeholder not in prompt


async def test_prompt_left_untouched_when_model_already_restates_text():
    model_prompt = 'Poster: headline "Save Big", subheadline "Today Only", button "Shop Now".'
    llm = FakeTextProvider([{"dallePrompt": model_prompt}])

    prompt = await PromptSynthesisService(llm).synthesize(_request(copy_elements=COPY))
    assert prompt == model_prompt


async def test_instruction_carries_inputs_and_tweaks():
    llm = FakeTextProvider([{"dallePrompt": "x"}])

    await PromptSynthesisService(llm).synthesize(
        _request(copy_elements=COPY, analyzed_data=ANALYZED, prompt_tweaks="Use a beach background")
    )

    instruction = llm.prompts[0]
    assert '"Save Big"' in instruction
    assert "Analyzed Headline" not in instruction
    assert "Asymmetrical layout with text overlay" in instruction
    assert "Use a beach background" in instruction
    assert "#FF5733" in instruction


@pytest.mark.parametrize("reply", [None, {"dallePrompt": ""}, {"dallePrompt": "   "}, {"dallePrompt": 3}])
async def test_missing_prompt_text_raises(reply):
    svc = PromptSynthesisService(FakeTextProvider([reply]))
    with pytest.raises(PromptGenerationFailed):
        await svc.synthesize(_request())


async def test_provider_error_raises_prompt_failure():
    svc = PromptSynthesisService(FakeTextProvider([RuntimeError("503 unavailable")]))
    with pytest.raises(PromptGenerationFailed):
        await svc.synthesize(_request())
