from datetime import datetime

from pydantic import Field

from .common import CamelModel
from .user import Language


class ChatRequest(CamelModel):
    """A chat message, or a translation request when ``translate`` is set."""

    message: str = Field(..., min_length=1, max_length=4000)
    session_id: str | None = None
    language: Language = "en"
    translate: bool = False
    target_language: Language = "en"


class ChatReply(CamelModel):
    session_id: str
    user_message: str
    ai_response: str
    language: str


class Translation(CamelModel):
    translated_text: str
    original_text: str
    target_language: str


class ChatMessageResponse(CamelModel):
    id: str
    role: str
    content: str
    created_at: datetime


class ChatSessionResponse(CamelModel):
    id: str
    title: str | None = None
    language: str
    is_active: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None
    last_message: ChatMessageResponse | None = None


class ChatSessionDetail(ChatSessionResponse):
    messages: list[ChatMessageResponse] = []
