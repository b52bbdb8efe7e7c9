from datetime import datetime
from uuid import UUID

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from chatbot_engine.models import ChatbotConversation
from chatbot_engine.schemas.conversation import AnalyticsResponse
from chatbot_engine.services.state_machine import ConversationStatus


def get_chatbot_analytics(db: Session, chatbot_id: UUID, start: datetime, end: datetime) -> AnalyticsResponse:
    """Totals over conversations started between ``start`` and ``end`` (inclusive)."""
    total, messages, handed_off, average_rating = (
        db.query(
            func.count(ChatbotConversation.id),
            func.coalesce(func.sum(ChatbotConversation.message_count), 0),
            func.count(case((ChatbotConversation.status == ConversationStatus.HANDED_OFF.value, 1))),
            func.avg(ChatbotConversation.rating),
        )
        .filter(
            ChatbotConversation.chatbot_id == chatbot_id,
            ChatbotConversation.started_at.between(start, end),
        )
        .one()
    )

    total = int(total or 0)
    messages = int(messages or 0)
    handed_off = int(handed_off or 0)

    return AnalyticsResponse(
        total_conversations=total,
        total_messages=messages,
        handed_off=handed_off,
        handoff_rate=(handed_off / total) * 100 if total else 0.0,
        average_rating=float(average_rating) if average_rating is not None else 0.0,
        average_messages_per_conversation=messages / total if total else 0.0,
    )
