"""Request/response contracts for each model call.

Models use snake_case attributes and camelCase wire aliases, so provider JSON
(`numberOfVariations`, `dallePrompt`, ...) validates directly and
`model_dump(by_alias=True)` produces the same shape back.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from advision.errors import SchemaValidationError

HEX_RE = re.compile(r"^#[0-9a-fA-F]{6}$")
MAX_PALETTE = 5
MIN_VARIATIONS = 1
MAX_VARIATIONS = 10

M = TypeVar("M", bound=BaseModel)


class Contract(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def normalize_hex(value: Any) -> str | None:
    """Return `#RRGGBB` for hex-like input (the leading '#' is optional), else None."""
    if not isinstance(value, str):
        return None
    s = value.strip()
    if not s:
        return None
    if not s.startswith("#"):
        s = "#" + s
    if not HEX_RE.match(s):
        return None
    return s.upper()


def _clean_optional_text(value: Any) -> str | None:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


class TextElements(Contract):
    headline: str | None = None
    subheadline: str | None = None
    cta: str | None = None

    @field_validator("headline", "subheadline", "cta", mode="before")
    @classmethod
    def _clean(cls, v: Any) -> str | None:
        return _clean_optional_text(v)


class AnalysisResult(Contract):
    primary_color: str | None = Field(None, description="Hex code starting with #")
    secondary_color: str | None = Field(None, description="Hex code starting with #")
    background_color: str | None = Field(None, description="Hex code starting with #")
    palette: list[str] = Field(default_factory=list, description="Up to 5 hex codes, dominant first")
    style_keywords: list[str] = Field(default_factory=list)
    font_style: str | None = None
    layout_style: str | None = None
    text_elements: TextElements = Field(default_factory=TextElements)

    @field_validator("primary_color", "secondary_color", "background_color", mode="before")
    @classmethod
    def _coerce_hex(cls, v: Any) -> str | None:
        return normalize_hex(v)

    @field_validator("palette", mode="before")
    @classmethod
    def _coerce_palette(cls, v: Any) -> list[str]:
        if not isinstance(v, list):
            return []
        out: list[str] = []
        for item in v:
            h = normalize_hex(item)
            if h and h not in out:
                out.append(h)
        return out[:MAX_PALETTE]

    @field_validator("style_keywords", mode="before")
    @classmethod
    def _coerce_keywords(cls, v: Any) -> list[str]:
        if not isinstance(v, list):
            return []
        return [str(k).strip() for k in v if str(k).strip()]

    @field_validator("font_style", "layout_style", mode="before")
    @classmethod
    def _coerce_text(cls, v: Any) -> str | None:
        return _clean_optional_text(v)

    @field_validator("text_elements", mode="before")
    @classmethod
    def _coerce_elements(cls, v: Any) -> Any:
        return v if isinstance(v, (dict, TextElements)) else {}

    @classmethod
    def from_model_output(cls, data: dict[str, Any]) -> "AnalysisResult":
        """
        Normalize raw vision output. Accepts both the nested shape the prompt asks
        for (`colors: {primary, secondary, background, palette}`) and a flat one.
        Missing optional fields never raise.
        """
        colors = data.get("colors")
        if not isinstance(colors, dict):
            colors = {}
        return cls.model_validate(
            {
                "primaryColor": colors.get("primary", data.get("primaryColor")),
                "secondaryColor": colors.get("secondary", data.get("secondaryColor")),
                "backgroundColor": colors.get("background", data.get("backgroundColor")),
                "palette": colors.get("palette", data.get("palette")),
                "styleKeywords": data.get("styleKeywords"),
                "fontStyle": data.get("fontStyle"),
                "layoutStyle": data.get("layoutStyle"),
                "textElements": data.get("textElements"),
            }
        )


class AdCopy(Contract):
    headline: str = Field(..., min_length=1)
    subheadline: str = Field(..., min_length=1)
    cta: str = Field(..., min_length=1)

    @field_validator("headline", "subheadline", "cta", mode="before")
    @classmethod
    def _strip(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    def as_text(self) -> str:
        return f"Headline: {self.headline}\nSubheadline: {self.subheadline}\nCTA: {self.cta}"


class CopyRequest(Contract):
    brand_style: str = Field(..., min_length=1)
    colors: list[str] = Field(..., min_length=1)
    target_audience: str = Field(..., min_length=1)
    format: str = Field(..., min_length=1)
    reference_text: str | None = None
    number_of_variations: int = Field(..., ge=MIN_VARIATIONS, le=MAX_VARIATIONS, description="1-10 inclusive")


class CopyBatch(Contract):
    variations: list[AdCopy]


class PromptRequest(Contract):
    brand_colors: list[str] = Field(default_factory=list)
    brand_style_words: list[str] = Field(default_factory=list)
    target_audience: str = ""
    output_format: str = ""
    prompt_tweaks: str | None = None
    analyzed_data: AnalysisResult | None = None
    copy_elements: AdCopy | None = None

    @field_validator("prompt_tweaks", mode="before")
    @classmethod
    def _blank_tweaks(cls, v: Any) -> str | None:
        return _clean_optional_text(v)


class PromptResponse(Contract):
    dalle_prompt: str


class VisualAdRequest(PromptRequest):
    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)
    number_of_variations: int = Field(1, ge=MIN_VARIATIONS, le=MAX_VARIATIONS, description="1-10 inclusive")
    credential: str | None = Field(None, repr=False, exclude=True)

    def prompt_request(self) -> PromptRequest:
        return PromptRequest(**{name: getattr(self, name) for name in PromptRequest.model_fields})


@dataclass(frozen=True)
class GeneratedVariation:
    """One finished ad candidate: an image paired with its copy."""

    image: str
    copy: AdCopy

    def to_dict(self) -> dict[str, Any]:
        return {"image": self.image, "copy": self.copy.model_dump()}


def validate_payload(model: type[M], raw: Any) -> M:
    """Validate `raw` against `model`, raising SchemaValidationError for the first bad field."""
    try:
        return model.model_validate(raw)
    except ValidationError as exc:
        err = exc.errors()[0]
        field = ".".join(str(p) for p in err.get("loc", ())) or model.__name__
        raise SchemaValidationError(field, err.get("msg", "invalid value")) from exc
