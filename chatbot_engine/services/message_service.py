import uuid
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from chatbot_engine.models import ChatbotMessage


def save_message(
    db: Session,
    conversation_id: UUID,
    chatbot_id: UUID,
    direction: str,
    content: str,
    message_type: str = "text",
    **fields,
) -> ChatbotMessage:
    """Append one turn to the conversation log."""
    message = ChatbotMessage(
        id=uuid.uuid4(),
        conversation_id=conversation_id,
        chatbot_id=chatbot_id,
        direction=direction,
        content=content,
        type=message_type,
        timestamp=datetime.now(timezone.utc),
        **fields,
    )
    db.add(message)
    db.flush()
    return message


def get_conversation_history(
    db: Session,
    conversation_id: UUID,
    limit: int = 10,
    exclude_message_id: Optional[UUID] = None,
) -> list[ChatbotMessage]:
    """Last ``limit`` turns of a conversation, oldest first."""
    if limit <= 0:
        return []

    query = db.query(ChatbotMessage).filter(ChatbotMessage.conversation_id == conversation_id)
    if exclude_message_id is not None:
        query = query.filter(ChatbotMessage.id != exclude_message_id)

    rows = query.order_by(ChatbotMessage.timestamp.desc()).limit(limit).all()
    return list(reversed(rows))


def list_messages(db: Session, conversation_id: UUID, page: int = 1, limit: int = 50) -> list[ChatbotMessage]:
    """Transcript page, oldest first."""
    return (
        db.query(ChatbotMessage)
        .filter(ChatbotMessage.conversation_id == conversation_id)
        .order_by(ChatbotMessage.timestamp.asc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
