from __future__ import annotations

import json
from io import BytesIO
from typing import Any

import pytest
from PIL import Image

from advision.providers.base import GeneratedImage, StructuredResult
from advision.schemas import AdCopy, AnalysisResult
from advision.services.analysis import encode_data_uri
from advision.session import AnalysisStatus, SessionState, Step


class FakeTextProvider:
    """Queue of canned replies. Items may be dicts, None (unparseable), strings or exceptions."""

    name = "fake-text"

    def __init__(self, replies: list[Any] | None = None) -> None:
        self.replies = list(replies or [])
        self.prompts: list[str] = []

    def _next(self, prompt: str) -> Any:
        self.prompts.append(prompt)
        item = self.replies.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    async def generate_json(self, prompt: str) -> StructuredResult:
        item = self._next(prompt)
        raw = json.dumps(item) if item is not None else "sorry, no JSON here"
        return StructuredResult(data=item, provider=self.name, model="fake", raw_text=raw)

    async def generate_text(self, prompt: str) -> str:
        return self._next(prompt)


class FakeVisionProvider:
    name = "fake-vision"

    def __init__(self, reply: Any) -> None:
        self.reply = reply
        self.calls = 0

    async def analyze_image(self, image: Image.Image, instructions: str) -> StructuredResult:
        self.calls += 1
        if isinstance(self.reply, Exception):
            raise self.reply
        if isinstance(self.reply, StructuredResult):
            return self.reply
        return StructuredResult(data=self.reply, provider=self.name, model="fake", raw_text=json.dumps(self.reply))


class FakeImageProvider:
    name = "fake-image"

    def __init__(self, payloads: list[Any]) -> None:
        self.payloads = list(payloads)
        self.calls: list[tuple[str, str]] = []

    async def generate_image(self, prompt: str, size: str) -> GeneratedImage:
        self.calls.append((prompt, size))
        item = self.payloads.pop(0)
        if isinstance(item, Exception):
            raise item
        return GeneratedImage(payload=item, prompt_used=prompt, provider=self.name, model="fake")


def make_copies(n: int) -> list[AdCopy]:
    return [AdCopy(headline=f"Headline {i}", subheadline=f"Sub {i}", cta=f"CTA {i}") for i in range(1, n + 1)]


def copy_dicts(n: int) -> list[dict[str, str]]:
    return [c.model_dump() for c in make_copies(n)]


@pytest.fixture
def png_data_uri() -> str:
    buf = BytesIO()
    Image.new("RGB", (4, 4), (255, 0, 0)).save(buf, format="PNG")
    return encode_data_uri(buf.getvalue(), "image/png")


@pytest.fixture
def analysis_payload() -> dict[str, Any]:
    return {
        "colors": {
            "primary": "#FF5733",
            "secondary": "33c1ff",
            "background": "#ffffff",
            "palette": ["#FF5733", "#33C1FF", "#FFFFFF", "#000000", "#123456", "#654321"],
        },
        "styleKeywords": ["modern", "bold"],
        "fontStyle": "Clean sans-serif",
        "layoutStyle": "Centered composition",
        "textElements": {"headline": "Summer Sale", "subheadline": "Up to 50% off", "cta": "Buy Now"},
    }


@pytest.fixture
def ready_state(png_data_uri: str) -> SessionState:
    """A session sitting on the Generate step with every required field filled."""
    return SessionState(
        current_step=Step.GENERATE,
        reference_image=png_data_uri,
        primary_color="#FF5733",
        secondary_color="#33C1FF",
        brand_style_words=("modern", "playful"),
        target_audience="Young professionals",
        output_format="Instagram Post",
        number_of_variations=3,
        analysis_status=AnalysisStatus.DONE,
        analysis_result=AnalysisResult(layout_style="Split layout"),
    )
