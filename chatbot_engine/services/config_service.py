from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID

from pydantic import ValidationError
from sqlalchemy.orm import Session

from chatbot_engine.logging_config import get_logger
from chatbot_engine.models import Chatbot
from chatbot_engine.schemas.chatbot_config import ChatbotConfig
from chatbot_engine.services.config_cache import ChatbotConfigCache

logger = get_logger("config_service")

# Columns an operator may change through update_chatbot.
EDITABLE_FIELDS = frozenset(
    name for name in ChatbotConfig.model_fields if name not in {"id", "user_id"}
) | {"description"}


class ChatbotNotFoundError(Exception):
    def __init__(self, chatbot_id):
        self.chatbot_id = chatbot_id
        super().__init__(f"Chatbot {chatbot_id} not found")


class ChatbotConfigError(Exception):
    """Stored or proposed chatbot settings do not validate."""


def load_chatbot_config(db: Session, chatbot_id: UUID) -> Optional[ChatbotConfig]:
    """Read the chatbot row and validate it into a snapshot. Invalid rows load as None."""
    row = db.query(Chatbot).filter(Chatbot.id == chatbot_id).first()
    if not row:
        return None
    try:
        return ChatbotConfig.from_row(row)
    except ValidationError as exc:
        logger.error(
            "Chatbot config failed validation",
            extra={"context": {"chatbot_id": str(chatbot_id), "errors": exc.errors(include_url=False)}},
        )
        return None


def get_chatbot_config(db: Session, cache: ChatbotConfigCache, chatbot_id: UUID) -> Optional[ChatbotConfig]:
    return cache.get(chatbot_id, lambda: load_chatbot_config(db, chatbot_id))


def update_chatbot(
    db: Session,
    cache: ChatbotConfigCache,
    chatbot_id: UUID,
    changes: dict[str, Any],
) -> ChatbotConfig:
    """
    Apply operator edits, re-validate the whole config and drop the cached copy.

    Raises ChatbotNotFoundError or ChatbotConfigError; nothing is written on error.
    """
    row = db.query(Chatbot).filter(Chatbot.id == chatbot_id).first()
    if not row:
        raise ChatbotNotFoundError(chatbot_id)

    unknown = sorted(set(changes) - EDITABLE_FIELDS)
    if unknown:
        raise ChatbotConfigError(f"Unknown or read-only fields: {', '.join(unknown)}")

    for name, value in changes.items():
        setattr(row, name, value)

    try:
        config = ChatbotConfig.from_row(row)
    except ValidationError as exc:
        db.rollback()
        raise ChatbotConfigError(str(exc)) from exc

    row.updated_at = datetime.now(timezone.utc)
    db.commit()
    cache.invalidate(chatbot_id)

    logger.info(
        "Chatbot config updated",
        extra={"context": {"chatbot_id": str(chatbot_id), "fields": sorted(changes)}},
    )
    return config
