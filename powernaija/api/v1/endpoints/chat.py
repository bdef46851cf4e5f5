"""Energy assistant chat endpoints."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from powernaija.api import deps
from powernaija.api.rate_limit import chat_rate_limit
from powernaija.core.config import Settings
from powernaija.models.user import User
from powernaija.schemas.chat import (
    ChatMessageResponse,
    ChatReply,
    ChatRequest,
    ChatSessionDetail,
    ChatSessionResponse,
    Translation,
)
from powernaija.schemas.common import envelope, paginated
from powernaija.services.chatbot import ChatBackend, ChatService

router = APIRouter()


def get_chat_service(
    db: Session = Depends(deps.get_db),
    settings: Settings = Depends(deps.get_settings),
    backend: ChatBackend | None = Depends(deps.get_chat_backend),
) -> ChatService:
    return ChatService(db, settings, backend)


@router.post("")
def chat(
    body: ChatRequest,
    service: ChatService = Depends(get_chat_service),
    current_user: User = Depends(deps.get_current_user),
    _: None = Depends(chat_rate_limit),
):
    """Send a message to the assistant, or translate text when ``translate`` is set."""
    if body.translate:
        return envelope(Translation(**service.translate(body.message, body.target_language)))

    reply = service.send_message(current_user.id, body.message, body.session_id, body.language)
    return envelope(ChatReply(**reply))


@router.get("/sessions")
def list_sessions(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    service: ChatService = Depends(get_chat_service),
    current_user: User = Depends(deps.get_current_user),
):
    rows, total = service.list_sessions(current_user.id, page, limit)
    sessions = [
        ChatSessionResponse(
            **ChatSessionResponse.model_validate(session).model_dump(exclude={"last_message"}),
            last_message=ChatMessageResponse.model_validate(last) if last else None,
        )
        for session, last in rows
    ]
    return paginated(sessions, page, limit, total)


@router.get("/sessions/{session_id}")
def get_session(
    session_id: str,
    service: ChatService = Depends(get_chat_service),
    current_user: User = Depends(deps.get_current_user),
):
    session = service.get_session(current_user.id, session_id)
    return envelope(ChatSessionDetail.model_validate(session))


@router.delete("/sessions/{session_id}")
def end_session(
    session_id: str,
    service: ChatService = Depends(get_chat_service),
    current_user: User = Depends(deps.get_current_user),
):
    service.end_session(current_user.id, session_id)
    return envelope(None, "Chat session ended")
