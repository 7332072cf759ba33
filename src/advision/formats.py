from __future__ import annotations

from dataclasses import dataclass

from advision.config import settings


@dataclass(frozen=True)
class AdSize:
    width: int
    height: int


AVAILABLE_FORMATS: list[str] = list(settings.ad_sizes)


def ad_size_for_format(output_format: str) -> AdSize:
    """Pixel size for a named output format; unknown names get the default size."""
    width, height = settings.ad_sizes.get(output_format, settings.default_ad_size)
    return AdSize(width=width, height=height)
