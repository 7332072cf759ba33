from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Protocol, TypeVar

from PIL import Image

from advision.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class GeneratedImage:
    # Data URI (data:image/...) or absolute URL, exactly as it will be rendered.
    payload: str | None
    prompt_used: str
    provider: str
    model: str
    raw_metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class StructuredResult:
    # Parsed JSON object, or None when the model output was not usable JSON.
    data: dict[str, Any] | None
    provider: str
    model: str
    raw_text: str | None


class VisionProvider(Protocol):
    name: str

    async def analyze_image(self, image: Image.Image, instructions: str) -> StructuredResult: ...


class TextProvider(Protocol):
    name: str

    async def generate_json(self, prompt: str) -> StructuredResult: ...

    async def generate_text(self, prompt: str) -> str: ...


class ImageProvider(Protocol):
    name: str

    async def generate_image(self, prompt: str, size: str) -> GeneratedImage: ...


async def call_with_retry(
    func: Callable[[], Awaitable[T]],
    max_retries: int | None = None,
    retry_codes: tuple[int, ...] = (503, 429),
    base_delay: float | None = None,
) -> T:
    """Retry a provider call on transient errors with exponential backoff."""
    attempts = max(1, max_retries if max_retries is not None else settings.provider_max_retries)
    delay = settings.provider_retry_base_delay if base_delay is None else base_delay
    for attempt in range(attempts):
        try:
            return await func()
        except Exception as e:
            status = getattr(e, "status_code", None) or getattr(e, "code", None)
            is_retryable = status in retry_codes

            if not is_retryable or attempt == attempts - 1:
                raise

            wait_time = delay * (2**attempt)
            logger.warning(
                "Provider error (attempt %d/%d), retrying in %.1fs: %s", attempt + 1, attempts, wait_time, e
            )
            await asyncio.sleep(wait_time)
    raise RuntimeError("unreachable")
