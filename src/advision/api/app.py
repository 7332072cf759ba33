from __future__ import annotations

from typing import Any

from fastapi import FastAPI, File, Form, HTTPException, UploadFile

from advision.config import configure_logging, settings
from advision.errors import AdGenError, SchemaValidationError
from advision.formats import AVAILABLE_FORMATS, ad_size_for_format
from advision.providers.base import TextProvider
from advision.providers.gemini_provider import GeminiProvider
from advision.providers.openai_provider import OpenAIImageProvider, OpenAITextProvider
from advision.services.analysis import ImageAnalysisService, encode_data_uri
from advision.services.copywriting import CopyGenerationService, CopyRefinementService
from advision.services.visual_prompt import PromptSynthesisService
from advision.services.visuals import VisualGenerationService
from advision.sessions import Session, SessionStore
from advision.wizard import AdWizard

configure_logging()

app = FastAPI(title="advision ad generator")

UPLOAD_CONTENT_TYPES = {"image/png", "image/jpeg", "image/jpg"}


def _get_gemini() -> GeminiProvider:
    if not settings.gemini_api_key:
        raise HTTPException(status_code=400, detail="GEMINI_API_KEY is not set")
    return GeminiProvider(api_key=settings.gemini_api_key)


def _get_text_provider() -> TextProvider:
    if settings.text_provider == "gemini":
        return _get_gemini()
    if not settings.openai_api_key:
        raise HTTPException(status_code=400, detail="OPENAI_API_KEY is not set")
    return OpenAITextProvider(api_key=settings.openai_api_key)


def _build_wizard() -> AdWizard:
    llm = _get_text_provider()
    return AdWizard(
        analysis=ImageAnalysisService(_get_gemini()),
        copywriter=CopyGenerationService(llm),
        visuals=VisualGenerationService(
            prompt_synthesis=PromptSynthesisService(llm),
            image_provider_factory=lambda key: OpenAIImageProvider(api_key=key),
        ),
        refiner=CopyRefinementService(llm),
    )


store = SessionStore(wizard_factory=_build_wizard)


def _read_session(session_id: str) -> Session:
    try:
        return store.read_session(session_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="session not found") from None


def _state_payload(session: Session, **extra: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {"session_id": session.session_id, "state": session.wizard.state.to_dict()}
    payload.update(extra)
    return payload


@app.get("/formats")
def list_formats() -> dict[str, Any]:
    formats = []
    for name in AVAILABLE_FORMATS:
        size = ad_size_for_format(name)
        formats.append({"name": name, "width": size.width, "height": size.height})
    return {"formats": formats, "default": settings.default_output_format}


@app.get("/sessions")
def list_sessions() -> dict[str, Any]:
    sessions = [
        {"session_id": s.session_id, "created_at": s.created_at, "current_step": int(s.wizard.state.current_step)}
        for s in store.list_sessions()
    ]
    return {"sessions": sessions}


@app.post("/sessions")
def create_session() -> dict[str, Any]:
    session = store.create_session()
    return _state_payload(session)


@app.get("/sessions/{session_id}")
def get_session(session_id: str) -> dict[str, Any]:
    return _state_payload(_read_session(session_id))


@app.delete("/sessions/{session_id}")
def delete_session(session_id: str) -> dict[str, Any]:
    _read_session(session_id)
    store.delete_session(session_id)
    return {"deleted": session_id}


@app.post("/sessions/{session_id}/image")
async def upload_reference_image(session_id: str, file: UploadFile = File(...)) -> dict[str, Any]:
    session = _read_session(session_id)
    content_type = (file.content_type or "").lower()
    if content_type not in UPLOAD_CONTENT_TYPES:
        raise HTTPException(status_code=400, detail="Please upload a PNG or JPG image.")
    content = await file.read()
    if not content:
        raise HTTPException(status_code=400, detail="uploaded file is empty")

    await session.wizard.upload_image(encode_data_uri(content, content_type))
    return _state_payload(session)


@app.delete("/sessions/{session_id}/image")
async def remove_reference_image(session_id: str) -> dict[str, Any]:
    session = _read_session(session_id)
    await session.wizard.upload_image(None)
    return _state_payload(session)


@app.post("/sessions/{session_id}/reference-text")
def set_reference_text(session_id: str, text: str = Form("")) -> dict[str, Any]:
    session = _read_session(session_id)
    session.wizard.set_reference_text(text)
    return _state_payload(session)


@app.post("/sessions/{session_id}/brand")
def set_brand_info(
    session_id: str,
    primary_color: str = Form(...),
    secondary_color: str = Form(...),
    target_audience: str = Form(""),
    style_words: list[str] = Form(default=[]),
) -> dict[str, Any]:
    session = _read_session(session_id)
    wizard = session.wizard
    try:
        wizard.set_brand_colors(primary_color, secondary_color)
    except SchemaValidationError as exc:
        raise HTTPException(status_code=400, detail=exc.user_message) from exc
    wizard.set_target_audience(target_audience)
    for word in style_words:
        wizard.add_style_word(word)
    return _state_payload(session)


@app.post("/sessions/{session_id}/style-words")
def add_style_word(session_id: str, word: str = Form(...)) -> dict[str, Any]:
    session = _read_session(session_id)
    session.wizard.add_style_word(word)
    return _state_payload(session)


@app.post("/sessions/{session_id}/style-words/delete")
def remove_style_word(session_id: str, word: str = Form(...)) -> dict[str, Any]:
    session = _read_session(session_id)
    session.wizard.remove_style_word(word)
    return _state_payload(session)


@app.post("/sessions/{session_id}/format")
def set_output_format(session_id: str, output_format: str = Form(...)) -> dict[str, Any]:
    session = _read_session(session_id)
    if output_format not in AVAILABLE_FORMATS:
        raise HTTPException(status_code=400, detail=f"unknown format '{output_format}'")
    session.wizard.set_output_format(output_format)
    return _state_payload(session)


@app.post("/sessions/{session_id}/settings")
def set_generation_settings(
    session_id: str,
    number_of_variations: int = Form(1),
    prompt_tweaks: str = Form(""),
) -> dict[str, Any]:
    session = _read_session(session_id)
    session.wizard.set_number_of_variations(int(number_of_variations))
    session.wizard.set_prompt_tweaks(prompt_tweaks)
    return _state_payload(session)


@app.post("/sessions/{session_id}/navigate")
def navigate(session_id: str, action: str = Form(...), step: int = Form(0)) -> dict[str, Any]:
    session = _read_session(session_id)
    wizard = session.wizard
    if action == "next":
        accepted = wizard.next_step()
    elif action == "previous":
        accepted = wizard.previous_step()
    elif action == "go_to":
        accepted = wizard.go_to(int(step))
    elif action == "start_over":
        accepted = wizard.start_over()
    else:
        raise HTTPException(status_code=400, detail="action must be next, previous, go_to or start_over")
    return _state_payload(session, accepted=accepted)


@app.post("/sessions/{session_id}/generate")
async def generate_ads(session_id: str, credential: str = Form("")) -> dict[str, Any]:
    # The credential is used for this request only and never stored in the session.
    session = _read_session(session_id)
    variations = await session.wizard.generate(credential=credential.strip() or None)
    return _state_payload(session, generated=variations is not None)


@app.post("/sessions/{session_id}/variations/{index}/refine")
async def refine_variation_copy(session_id: str, index: int, instructions: str = Form(...)) -> dict[str, Any]:
    session = _read_session(session_id)
    try:
        refined = await session.wizard.refine_copy(int(index), instructions)
    except SchemaValidationError as exc:
        raise HTTPException(status_code=404, detail=exc.user_message) from exc
    except AdGenError as exc:
        raise HTTPException(status_code=502, detail=exc.user_message) from exc
    return {"index": int(index), "refined_ad_copy": refined}


def main() -> None:
    import uvicorn

    uvicorn.run("advision.api.app:app", host="0.0.0.0", port=8000)
