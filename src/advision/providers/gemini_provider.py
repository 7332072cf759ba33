from __future__ import annotations

import json
from typing import Any

from PIL import Image

from advision.config import settings
from advision.providers.base import StructuredResult, call_with_retry


class GeminiProvider:
    name = "gemini"

    def __init__(self, api_key: str) -> None:
        # Imported lazily so the app can start without the dependency installed.
        from google import genai  # type: ignore

        self._genai = genai
        self.client = genai.Client(api_key=api_key)

    async def analyze_image(self, image: Image.Image, instructions: str) -> StructuredResult:
        """
        Ask the vision model for strict JSON describing the ad. The raw text is kept
        alongside the parsed object so callers can log what went wrong.
        """
        from google.genai import types  # type: ignore

        # The google-genai SDK accepts PIL Images directly in contents.
        contents: list[Any] = [instructions, image]

        resp = await call_with_retry(
            lambda: self.client.aio.models.generate_content(
                model=settings.gemini_vision_model,
                contents=contents,
                config=types.GenerateContentConfig(response_mime_type="application/json"),
            )
        )

        raw_text: str | None = getattr(resp, "text", None)
        return StructuredResult(
            data=_parse_jsonish(raw_text),
            provider=self.name,
            model=settings.gemini_vision_model,
            raw_text=raw_text,
        )

    async def generate_json(self, prompt: str) -> StructuredResult:
        from google.genai import types  # type: ignore

        resp = await call_with_retry(
            lambda: self.client.aio.models.generate_content(
                model=settings.gemini_text_model,
                contents=[prompt],
                config=types.GenerateContentConfig(response_mime_type="application/json"),
            )
        )
        raw_text: str | None = getattr(resp, "text", None)
        return StructuredResult(
            data=_parse_jsonish(raw_text),
            provider=self.name,
            model=settings.gemini_text_model,
            raw_text=raw_text,
        )

    async def generate_text(self, prompt: str) -> str:
        resp = await call_with_retry(
            lambda: self.client.aio.models.generate_content(
                model=settings.gemini_text_model,
                contents=[prompt],
            )
        )
        return (getattr(resp, "text", "") or "").strip()


def _strip_code_fences(text: str) -> str:
    s = text.strip()
    if s.startswith("```"):
        # Remove leading fence line
        first_nl = s.find("\n")
        if first_nl != -1:
            s = s[first_nl + 1 :]
        # Remove trailing fence
        if s.rstrip().endswith("```"):
            s = s.rstrip()[:-3]
    return s.strip()


def _parse_jsonish(raw_text: str | None) -> dict[str, Any] | None:
    if not raw_text:
        return None
    s = _strip_code_fences(raw_text)
    try:
        parsed = json.loads(s)
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None
