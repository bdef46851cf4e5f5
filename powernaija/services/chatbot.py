"""
Energy assistant chat.

Provides a unified interface over OpenAI and Anthropic chat models, plus the
session/message bookkeeping around it.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone

import anthropic
import openai
from anthropic import Anthropic
from openai import OpenAI
from sqlalchemy.orm import Session

from powernaija.core.config import Settings
from powernaija.core.errors import BadRequestError, NotFoundError, ServiceUnavailableError
from powernaija.db.session import atomic
from powernaija.models.chat import ChatMessage, ChatSession
from powernaija.models.user import SUPPORTED_LANGUAGES

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are a helpful energy management assistant for a Nigerian electricity token platform called PowerNaija.

You can help users with:
- Token purchases and balance inquiries
- Usage tracking and tips for energy conservation
- Carbon credit information and monetization
- Billing questions and transaction history
- Technical support and troubleshooting

Key Nigerian companies supported:
- Ikeja Electric, Eko Electricity (EKEDC), Abuja Electric (AEDC)
- Kano Electric (KEDCO), Port Harcourt Electric (PHED)
- Enugu Electric (EEDC), Jos Electric (JED), Kaduna Electric
- Benin Electric (BEDC), Ibadan Electric (IBEDC)
- Lumos Nigeria and Arnergy Solar (renewable providers)

Be friendly, concise, and culturally aware of Nigerian context.
Keep responses under 200 words unless detailed explanation is needed."""

FALLBACK_REPLY = "Sorry, I could not process your request."


class ChatBackendError(Exception):
    """The chat model could not produce a reply."""


class ChatBackend(ABC):
    """Abstract base class for chat model backends."""

    @abstractmethod
    def _chat(
        self, system: str, messages: list[dict[str, str]], max_tokens: int, temperature: float
    ) -> str:
        pass

    def complete(self, message: str, history: list[dict[str, str]], language: str = "en") -> str:
        """Reply to ``message`` given prior turns, in the user's language."""
        system = f"{SYSTEM_PROMPT}\nRespond in {SUPPORTED_LANGUAGES.get(language, 'English')}."
        messages = [*history, {"role": "user", "content": message}]
        return self._chat(system, messages, max_tokens=500, temperature=0.7) or FALLBACK_REPLY

    def translate(self, text: str, target_language: str) -> str:
        target = SUPPORTED_LANGUAGES.get(target_language, "English")
        system = (
            f"You are a translation assistant. Translate the following text to {target}. "
            "Provide only the translation, no explanations."
        )
        return (
            self._chat(system, [{"role": "user", "content": text}], max_tokens=300, temperature=0.3)
            or text
        )


class OpenAIChatBackend(ChatBackend):
    """OpenAI GPT backend."""

    def __init__(self, api_key: str, model: str, timeout: float, max_retries: int):
        if not api_key:
            raise ValueError("OPENAI_API_KEY not set")
        self.client = OpenAI(api_key=api_key, timeout=timeout, max_retries=max_retries)
        self.model = model

    def _chat(self, system, messages, max_tokens, temperature):
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "system", "content": system}, *messages],
                max_tokens=max_tokens,
                temperature=temperature,
            )
        except openai.OpenAIError as e:
            raise ChatBackendError(str(e)) from e
        return response.choices[0].message.content or ""


class AnthropicChatBackend(ChatBackend):
    """Anthropic Claude backend."""

    def __init__(self, api_key: str, model: str, timeout: float, max_retries: int):
        if not api_key:
            raise ValueError("ANTHROPIC_API_KEY not set")
        self.client = Anthropic(api_key=api_key, timeout=timeout, max_retries=max_retries)
        self.model = model

    def _chat(self, system, messages, max_tokens, temperature):
        try:
            message = self.client.messages.create(
                model=self.model,
                system=system,
                messages=messages,
                max_tokens=max_tokens,
                temperature=temperature,
            )
        except anthropic.AnthropicError as e:
            raise ChatBackendError(str(e)) from e
        return "".join(block.text for block in message.content if block.type == "text")


def build_chat_backend(settings: Settings) -> ChatBackend | None:
    """Backend for ``CHAT_PROVIDER``, or None when its key is missing."""
    provider = settings.CHAT_PROVIDER.lower()
    try:
        if provider == "anthropic":
            return AnthropicChatBackend(
                settings.ANTHROPIC_API_KEY,
                settings.ANTHROPIC_CHAT_MODEL,
                settings.CHAT_TIMEOUT_SECONDS,
                settings.CHAT_MAX_RETRIES,
            )
        if provider == "openai":
            return OpenAIChatBackend(
                settings.OPENAI_API_KEY,
                settings.CHAT_MODEL,
                settings.CHAT_TIMEOUT_SECONDS,
                settings.CHAT_MAX_RETRIES,
            )
    except ValueError as e:
        logger.warning("Chat assistant disabled: %s", e)
        return None
    logger.warning("Chat assistant disabled: unknown provider %r", settings.CHAT_PROVIDER)
    return None


class ChatService:
    def __init__(self, db: Session, settings: Settings, backend: ChatBackend | None):
        self.db = db
        self.settings = settings
        self.backend = backend

    def _require_backend(self) -> ChatBackend:
        if self.backend is None:
            raise ServiceUnavailableError("Chat assistant is not configured")
        return self.backend

    def _add_message(self, session: ChatSession, role: str, content: str) -> ChatMessage:
        message = ChatMessage(
            session_id=session.id,
            role=role,
            content=content,
            created_at=datetime.now(timezone.utc),
        )
        self.db.add(message)
        return message

    def get_session(self, user_id: str, session_id: str) -> ChatSession:
        session = self.db.get(ChatSession, session_id)
        if not session or session.user_id != user_id:
            raise NotFoundError("Chat session not found")
        return session

    def get_or_create_session(self, user_id: str, language: str = "en") -> ChatSession:
        session = (
            self.db.query(ChatSession)
            .filter(ChatSession.user_id == user_id, ChatSession.is_active.is_(True))
            .order_by(ChatSession.created_at.desc())
            .first()
        )
        if session:
            return session
        with atomic(self.db):
            session = ChatSession(user_id=user_id, language=language, is_active=True)
            self.db.add(session)
        logger.info("New chat session created: %s for user %s", session.id, user_id)
        return session

    def recent_history(self, session_id: str) -> list[dict[str, str]]:
        recent = (
            self.db.query(ChatMessage)
            .filter(ChatMessage.session_id == session_id)
            .order_by(ChatMessage.created_at.desc())
            .limit(self.settings.CHAT_HISTORY_LIMIT)
            .all()
        )
        return [{"role": m.role, "content": m.content} for m in reversed(recent)]

    def send_message(
        self,
        user_id: str,
        message: str,
        session_id: str | None = None,
        language: str = "en",
    ) -> dict:
        backend = self._require_backend()
        if session_id:
            session = self.get_session(user_id, session_id)
            if not session.is_active:
                raise BadRequestError("Chat session has ended")
        else:
            session = self.get_or_create_session(user_id, language)

        history = self.recent_history(session.id)
        with atomic(self.db):
            self._add_message(session, "user", message)
            if not session.title:
                session.title = message[:60]

        try:
            reply = backend.complete(message, history, language)
        except ChatBackendError as e:
            logger.error("Chat completion failed for session %s: %s", session.id, e)
            raise ServiceUnavailableError("Failed to get chat response") from e

        with atomic(self.db):
            self._add_message(session, "assistant", reply)

        logger.info("Chat message exchanged in session %s", session.id)
        return {
            "session_id": session.id,
            "user_message": message,
            "ai_response": reply,
            "language": language,
        }

    def translate(self, text: str, target_language: str) -> dict:
        backend = self._require_backend()
        try:
            translated = backend.translate(text, target_language)
        except ChatBackendError as e:
            logger.error("Translation error: %s", e)
            translated = text
        return {
            "translated_text": translated,
            "original_text": text,
            "target_language": target_language,
        }

    def list_sessions(
        self, user_id: str, page: int = 1, limit: int = 20
    ) -> tuple[list[tuple[ChatSession, ChatMessage | None]], int]:
        query = self.db.query(ChatSession).filter(ChatSession.user_id == user_id)
        total = query.count()
        sessions = (
            query.order_by(ChatSession.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return [(session, self._last_message(session.id)) for session in sessions], total

    def _last_message(self, session_id: str) -> ChatMessage | None:
        return (
            self.db.query(ChatMessage)
            .filter(ChatMessage.session_id == session_id)
            .order_by(ChatMessage.created_at.desc())
            .first()
        )

    def end_session(self, user_id: str, session_id: str) -> ChatSession:
        with atomic(self.db):
            session = self.get_session(user_id, session_id)
            session.is_active = False
        logger.info("Chat session ended: %s", session_id)
        return session
