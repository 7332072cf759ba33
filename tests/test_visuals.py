import pytest

from advision.errors import (
    InvalidImagePayload,
    MissingCredential,
    NoImagesGenerated,
    PromptGenerationFailed,
    VisualGenerationFailed,
)
from advision.formats import AVAILABLE_FORMATS, ad_size_for_format
from advision.schemas import VisualAdRequest
from advision.services import visuals as visuals_module
from advision.services.visual_prompt import PromptSynthesisService
from advision.services.visuals import (
    PROVIDER_SIZES,
    CanvasSize,
    VisualGenerationService,
    is_valid_image_payload,
    select_canvas_size,
)

from conftest import FakeImageProvider, FakeTextProvider


@pytest.mark.parametrize(
    "width, height, expected",
    [
        (2000, 1000, CanvasSize.WIDE),
        (1000, 2000, CanvasSize.TALL),
        (1000, 1000, CanvasSize.SQUARE),
        (1300, 1000, CanvasSize.SQUARE),
        (700, 1000, CanvasSize.SQUARE),
        (1301, 1000, CanvasSize.WIDE),
        (699, 1000, CanvasSize.TALL),
        (728, 90, CanvasSize.WIDE),
        (160, 600, CanvasSize.TALL),
    ],
)
def test_select_canvas_size(width, height, expected):
    assert select_canvas_size(width, height) is expected


def test_provider_sizes_cover_every_canvas():
    assert PROVIDER_SIZES[CanvasSize.WIDE] == "1792x1024"
    assert PROVIDER_SIZES[CanvasSize.TALL] == "1024x1792"
    assert PROVIDER_SIZES[CanvasSize.SQUARE] == "1024x1024"


def test_format_table_and_default():
    assert "Instagram Story" in AVAILABLE_FORMATS
    size = ad_size_for_format("Instagram Story")
    assert (size.width, size.height) == (1080, 1920)
    fallback = ad_size_for_format("Billboard")
    assert (fallback.width, fallback.height) == (1024, 1024)


@pytest.mark.parametrize(
    "payload, ok",
    [
        ("data:image/png;base64,AAAA", True),
        ("https://cdn.example.com/a.png", True),
        ("http://example.com/a.png", True),
        ("data:text/plain;base64,AAAA", False),
        ("ftp://example.com/a.png", False),
        ("/relative/a.png", False),
        ("AAAA", False),
    ],
)
def test_is_valid_image_payload(payload, ok):
    assert is_valid_image_payload(payload) is ok


def _request(**overrides):
    data = dict(
        brand_colors=["#FF5733", "#33C1FF"],
        brand_style_words=["modern"],
        target_audience="Young professionals",
        output_format="Facebook Post",
        width=1200,
        height=630,
        number_of_variations=3,
        credential="sk-test",
    )
    data.update(overrides)
    return VisualAdRequest(**data)


def _service(image_provider, prompt_replies=None):
    llm = FakeTextProvider(prompt_replies if prompt_replies is not None else [{"dallePrompt": "A bright poster"}])
    credentials = []

    def factory(key):
        credentials.append(key)
        return image_provider

    svc = VisualGenerationService(PromptSynthesisService(llm), factory)
    return svc, credentials


async def test_generates_one_image_per_call_with_diversity_suffix():
    provider = FakeImageProvider(["data:image/png;base64,AAA", "data:image/png;base64,BBB", "https://x.io/c.png"])
    svc, credentials = _service(provider)

    images = await svc.generate(_request())

    assert images == ["data:image/png;base64,AAA", "data:image/png;base64,BBB", "https://x.io/c.png"]
    assert credentials == ["sk-test"]
    prompts = [p for p, _ in provider.calls]
    assert "(variation" not in prompts[0]
    assert prompts[1].endswith("(variation 2)")
    assert prompts[2].endswith("(variation 3)")
    assert {size for _, size in provider.calls} == {"1792x1024"}


async def test_failing_call_aborts_without_partial_results():
    provider = FakeImageProvider(["data:image/png;base64,AAA", RuntimeError("boom"), "data:image/png;base64,CCC"])
    svc, _ = _service(provider)

    with pytest.raises(VisualGenerationFailed) as exc_info:
        await svc.generate(_request())

    assert exc_info.value.index == 1
    assert len(provider.calls) == 2
    assert "boom" not in exc_info.value.user_message


async def test_missing_payload_is_a_call_failure():
    provider = FakeImageProvider([None])
    svc, _ = _service(provider)

    with pytest.raises(VisualGenerationFailed) as exc_info:
        await svc.generate(_request(number_of_variations=1))
    assert exc_info.value.index == 0


async def test_invalid_payload_is_rejected():
    provider = FakeImageProvider(["data:image/png;base64,AAA", "not-an-image"])
    svc, _ = _service(provider)

    with pytest.raises(InvalidImagePayload) as exc_info:
        await svc.generate(_request(number_of_variations=2))
    assert exc_info.value.index == 1


async def test_prompt_failure_stops_before_any_image_call():
    provider = FakeImageProvider(["data:image/png;base64,AAA"])
    svc, _ = _service(provider, prompt_replies=[{"other": "x"}])

    with pytest.raises(PromptGenerationFailed):
        await svc.generate(_request(number_of_variations=1))
    assert provider.calls == []


async def test_missing_credential(monkeypatch):
    monkeypatch.setattr(visuals_module.settings, "openai_api_key", None)
    svc, credentials = _service(FakeImageProvider([]))

    with pytest.raises(MissingCredential):
        await svc.generate(_request(credential=None))
    assert credentials == []


async def test_falls_back_to_configured_credential(monkeypatch):
    monkeypatch.setattr(visuals_module.settings, "openai_api_key", "sk-from-env")
    svc, credentials = _service(FakeImageProvider(["data:image/png;base64,AAA"]))

    await svc.generate(_request(credential=None, number_of_variations=1))
    assert credentials == ["sk-from-env"]


async def test_zero_images_raises(monkeypatch):
    monkeypatch.setattr(visuals_module.settings, "max_variations", 0)
    svc, _ = _service(FakeImageProvider([]))

    with pytest.raises(NoImagesGenerated):
        await svc.generate(_request(number_of_variations=1))
