"""JSON API endpoints that forward user intents into the editing session."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, File, Form, Request, UploadFile
from fastapi.responses import JSONResponse, Response

from routes.utils import format_entry, format_state, get_editor_session, get_session_id
from services import AppServices
from services.errors import EncodingError, SessionBusyError
from services.instructions import PRESETS, Instruction

api_router = APIRouter(prefix="/api")
logger = logging.getLogger(__name__)


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


@api_router.get("/health")
def health_check(request: Request) -> dict:
    services: AppServices = request.app.state.services
    return {"status": "ok", "ai_available": services.editor.available}


@api_router.get("/presets")
def list_presets() -> dict:
    return {"presets": list(PRESETS)}


@api_router.get("/session", name="api_session")
def session_state(request: Request) -> dict:
    return format_state(request, get_editor_session(request))


@api_router.post("/image")
async def upload_image(request: Request, image: Optional[UploadFile] = File(default=None)):
    session = get_editor_session(request)
    if not image or not image.filename:
        return _error("Please select an image.", 400)

    app_config = request.app.state.config
    allowed = {ext.lower() for ext in getattr(app_config, "ALLOWED_EXTENSIONS", [])}
    suffix = Path(image.filename).suffix.lower().lstrip(".")
    # Blob uploads carry no usable suffix; trust an image/* content type instead.
    declared_image = (image.content_type or "").startswith("image/")
    if allowed and suffix not in allowed and not declared_image:
        return _error("Unsupported file type. Use PNG, JPG, JPEG, GIF, or WEBP.", 400)

    payload = await image.read()
    max_size = int(getattr(app_config, "MAX_CONTENT_LENGTH", 0) or 0)
    if max_size and len(payload) > max_size:
        return _error("Uploaded file is too large.", 413)

    try:
        session.select_image(payload, mime_type=image.content_type, filename=image.filename)
    except SessionBusyError as exc:
        return _error(str(exc), 409)
    except EncodingError as exc:
        return _error(str(exc), 400)
    return format_state(request, session)


@api_router.post("/draft")
def update_draft(request: Request, text: str = Form(default="")) -> dict:
    session = get_editor_session(request)
    session.set_draft(text)
    return format_state(request, session)


@api_router.post("/edits")
async def create_edit(
    request: Request,
    instruction: str = Form(default=""),
    preset: str = Form(default=""),
):
    session = get_editor_session(request)
    if session.state.source is None:
        return _error("Upload an image first.", 400)
    if session.state.processing.is_processing:
        return _error("An edit is already in progress.", 409)

    try:
        resolved = (
            Instruction.from_preset(preset)
            if preset.strip()
            else Instruction.coerce(instruction or session.state.draft)
        )
    except ValueError as exc:
        return _error(str(exc), 400)
    if resolved.is_blank:
        return _error("Enter an edit instruction.", 400)

    entry = await session.run_edit(resolved)
    if entry is None:
        if session.state.last_error:
            return _error(session.state.last_error, 502)
        return _error("Edit was discarded.", 409)

    active_id = session.state.active_item.id if session.state.active_item else None
    return {
        "entry": format_entry(request, entry, active_id),
        "session": format_state(request, session),
    }


@api_router.post("/history/{entry_id}/activate")
def activate_entry(request: Request, entry_id: str):
    session = get_editor_session(request)
    if session.state.processing.is_processing:
        return _error("An edit is in progress.", 409)
    if not session.select_history_entry(entry_id):
        return _error("History entry not found.", 404)
    return format_state(request, session)


@api_router.get("/images/source", name="api_source_image")
def source_image(request: Request):
    source = get_editor_session(request).state.source
    if source is None:
        return _error("No image selected.", 404)
    return Response(content=source.data, media_type=source.mime_type)


@api_router.get("/images/{entry_id}", name="api_image_asset")
def image_asset(request: Request, entry_id: str):
    entry = get_editor_session(request).state.history.get(entry_id)
    if entry is None:
        return _error("Image not found.", 404)
    headers = {"Content-Disposition": f'inline; filename="{entry.id}.png"'}
    return Response(content=entry.edited.data, media_type=entry.edited.mime_type, headers=headers)


@api_router.get("/download")
def download(request: Request):
    session = get_editor_session(request)
    if session.state.processing.is_processing:
        return _error("An edit is in progress.", 409)
    target = session.download_target()
    if target is None:
        return _error("Nothing to download.", 404)
    headers = {"Content-Disposition": f'attachment; filename="{target.filename}"'}
    return Response(content=target.image.data, media_type=target.image.mime_type, headers=headers)


@api_router.post("/reset")
def reset(request: Request) -> dict:
    services: AppServices = request.app.state.services
    session_id = get_session_id(request)
    services.sessions.discard(session_id)
    logger.info("Session %s reset", session_id)
    return format_state(request, get_editor_session(request))
