from __future__ import annotations

import json
import re
from typing import Any

from advision.config import settings
from advision.providers.base import GeneratedImage, StructuredResult, call_with_retry


class OpenAITextProvider:
    name = "openai"

    def __init__(self, api_key: str) -> None:
        from openai import AsyncOpenAI  # type: ignore

        # Retries are handled by call_with_retry.
        self.client = AsyncOpenAI(api_key=api_key, max_retries=0)

    async def generate_text(self, prompt: str) -> str:
        # The Responses API is the forward path; keep it minimal.
        resp = await call_with_retry(
            lambda: self.client.responses.create(
                model=settings.openai_text_model,
                input=prompt,
            )
        )
        return (getattr(resp, "output_text", "") or "").strip()

    async def generate_json(self, prompt: str) -> StructuredResult:
        """
        Ask for a single JSON object and parse it best-effort. Returns data=None
        (never raises) when the output cannot be parsed, so the caller decides
        which typed error applies.
        """
        text = await self.generate_text(prompt)
        return StructuredResult(
            data=_extract_json_object(text),
            provider=self.name,
            model=settings.openai_text_model,
            raw_text=text,
        )


class OpenAIImageProvider:
    name = "openai"

    def __init__(self, api_key: str) -> None:
        from openai import AsyncOpenAI  # type: ignore

        # Retries are handled by call_with_retry.
        self.client = AsyncOpenAI(api_key=api_key, max_retries=0)

    async def generate_image(self, prompt: str, size: str) -> GeneratedImage:
        """
        One image per call: dall-e-3 rejects n > 1. Prefer base64 so the image is
        self-contained; fall back to the hosted URL when that is all we get.
        """
        resp = await call_with_retry(
            lambda: self.client.images.generate(
                model=settings.openai_image_model,
                prompt=prompt,
                n=1,
                size=size,
                response_format="b64_json",
            )
        )

        data = getattr(resp, "data", None) or []
        first = data[0] if data else None
        payload: str | None = None
        meta: dict[str, Any] = {"size": size}
        if first is not None:
            b64 = getattr(first, "b64_json", None)
            url = getattr(first, "url", None)
            if b64:
                payload = f"data:image/png;base64,{b64}"
            elif url:
                payload = url
            revised = getattr(first, "revised_prompt", None)
            if revised:
                meta["revised_prompt"] = revised

        return GeneratedImage(
            payload=payload,
            prompt_used=prompt,
            provider=self.name,
            model=settings.openai_image_model,
            raw_metadata=meta,
        )


def _extract_json_object(text: str) -> dict[str, Any] | None:
    raw = (text or "").strip()
    if not raw:
        return None

    # Best-effort JSON extraction (handles accidental pre/post text).
    m = re.search(r"```(?:json)?\s*(\{.*?\})\s*```", raw, re.DOTALL | re.IGNORECASE)
    if m:
        raw = m.group(1).strip()
    else:
        start = raw.find("{")
        end = raw.rfind("}")
        if start != -1 and end != -1 and end > start:
            raw = raw[start : end + 1].strip()

    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None
