"""Image analysis: reference ad in, structured style/color/text metadata out."""

from __future__ import annotations

import base64
import binascii
import logging
import re
from io import BytesIO

from PIL import Image, UnidentifiedImageError

from advision import prompts
from advision.errors import AnalysisFailed
from advision.providers.base import VisionProvider
from advision.schemas import MAX_PALETTE, AnalysisResult

logger = logging.getLogger(__name__)

ACCEPTED_MIME_TYPES = {"image/png", "image/jpeg", "image/jpg", "image/webp"}

_DATA_URI_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,(?P<data>.+)$", re.DOTALL)


def decode_data_uri(data_uri: str) -> tuple[str, bytes]:
    """Split `data:<mime>;base64,<data>` into (mime, bytes). Raises AnalysisFailed."""
    m = _DATA_URI_RE.match((data_uri or "").strip())
    if not m:
        raise AnalysisFailed("image must be a base64 data URI with a MIME type")
    mime = m.group("mime").lower()
    if mime not in ACCEPTED_MIME_TYPES:
        raise AnalysisFailed(f"unsupported image type {mime}")
    try:
        content = base64.b64decode(m.group("data"), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise AnalysisFailed("image data is not valid base64") from exc
    return mime, content


def encode_data_uri(content: bytes, mime: str) -> str:
    return f"data:{mime};base64,{base64.b64encode(content).decode('ascii')}"


class ImageAnalysisService:
    """Send the reference ad to a vision model and normalize what comes back."""

    def __init__(self, vision: VisionProvider):
        self.vision = vision

    async def analyze(self, data_uri: str) -> AnalysisResult:
        _, content = decode_data_uri(data_uri)
        try:
            image = Image.open(BytesIO(content))
            image.load()
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as exc:
            raise AnalysisFailed("image could not be decoded") from exc

        instructions = prompts.ANALYZE_IMAGE.render(max_palette=MAX_PALETTE)
        try:
            res = await self.vision.analyze_image(image, instructions)
        except Exception as exc:
            logger.error("Vision provider %s failed: %s", self.vision.name, exc)
            raise AnalysisFailed("vision provider error") from exc

        if not (res.raw_text or "").strip():
            raise AnalysisFailed("empty output")
        if res.data is None:
            logger.warning("Vision output was not JSON: %.200s", res.raw_text)
            raise AnalysisFailed("malformed JSON")

        result = AnalysisResult.from_model_output(res.data)
        logger.info(
            "Analyzed reference image with %s/%s: %d palette colors, %d keywords",
            res.provider,
            res.model,
            len(result.palette),
            len(result.style_keywords),
        )
        return result
