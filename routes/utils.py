"""Shared helpers for session handling and response formatting."""

from __future__ import annotations

from uuid import uuid4

from starlette.requests import Request

from services import AppServices
from services.history import EditedImage
from services.session import EditorSession

SESSION_ID_KEY = "session_id"


def get_session_id(request: Request) -> str:
    # Create a stable session id for scoping the in-memory editor state.
    session_id = request.session.get(SESSION_ID_KEY)
    if not session_id:
        session_id = uuid4().hex
        request.session[SESSION_ID_KEY] = session_id
    return session_id


def get_editor_session(request: Request) -> EditorSession:
    services: AppServices = request.app.state.services
    return services.sessions.get(get_session_id(request))


def format_entry(request: Request, entry: EditedImage, active_id: str | None) -> dict:
    return {
        "id": entry.id,
        "prompt": entry.prompt,
        "timestamp": entry.timestamp,
        "created_at": entry.created_at.isoformat(),
        "edited_url": str(request.url_for("api_image_asset", entry_id=entry.id)),
        "is_active": entry.id == active_id,
    }


def format_state(request: Request, session: EditorSession) -> dict:
    state = session.state
    active_id = state.active_item.id if state.active_item else None
    source = None
    if state.source is not None:
        source = {
            "url": str(request.url_for("api_source_image")),
            "mime_type": state.source.mime_type,
            "filename": state.source.filename,
            "size": state.source.size,
        }
    return {
        "status": state.status.value,
        "processing": {
            "is_processing": state.processing.is_processing,
            "message": state.processing.message,
        },
        "source": source,
        "active_id": active_id,
        "draft": state.draft,
        "error": state.last_error,
        "history": [format_entry(request, entry, active_id) for entry in state.history],
    }
