import uuid
from datetime import datetime, timezone
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from chatbot_engine.logging_config import get_logger
from chatbot_engine.models import ChatbotConversation, Contact
from chatbot_engine.schemas.chatbot_config import ChatbotConfig
from chatbot_engine.services import state_machine
from chatbot_engine.services.result import Result
from chatbot_engine.services.state_machine import ConversationStatus, InvalidTransitionError

logger = get_logger("conversation_service")


def _ensure_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def get_or_create_contact(db: Session, user_id: Optional[UUID], phone: str) -> Contact:
    """Find the owner's contact for this phone or create an unnamed one."""
    contact = db.query(Contact).filter(Contact.user_id == user_id, Contact.whatsapp_phone_number == phone).first()
    if contact:
        return contact

    try:
        with db.begin_nested():
            contact = Contact(
                id=uuid.uuid4(),
                user_id=user_id,
                whatsapp_phone_number=phone,
                created_at=datetime.now(timezone.utc),
            )
            db.add(contact)
            db.flush()
    except IntegrityError:
        contact = db.query(Contact).filter(Contact.user_id == user_id, Contact.whatsapp_phone_number == phone).first()
        if contact is None:
            raise
    return contact


def find_active_conversation(db: Session, chatbot_id: UUID, sender_phone: str) -> Optional[ChatbotConversation]:
    return (
        db.query(ChatbotConversation)
        .filter(
            ChatbotConversation.chatbot_id == chatbot_id,
            ChatbotConversation.sender_phone == sender_phone,
            ChatbotConversation.status == ConversationStatus.ACTIVE.value,
        )
        .first()
    )


def is_expired(conversation: ChatbotConversation, timeout_seconds: int, now: Optional[datetime] = None) -> bool:
    now = now or datetime.now(timezone.utc)
    elapsed = (now - _ensure_aware(conversation.started_at)).total_seconds()
    return elapsed > timeout_seconds


def expire_conversation(db: Session, conversation: ChatbotConversation, now: Optional[datetime] = None) -> None:
    new_status = state_machine.expire(ConversationStatus(conversation.status))
    conversation.status = new_status.value
    conversation.ended_at = now or datetime.now(timezone.utc)
    db.flush()
    logger.info(f"Conversation {conversation.id} expired")


def resolve_conversation(
    db: Session,
    config: ChatbotConfig,
    sender_phone: str,
    now: Optional[datetime] = None,
) -> Tuple[ChatbotConversation, bool]:
    """
    Return the sender's active conversation, opening a new one if needed.

    An active conversation older than ``config.conversation_timeout`` seconds is
    expired first. Returns (conversation, created).

    Creation races with other workers for the same sender are settled by the
    partial unique index on active conversations: the loser re-reads the
    winner's row instead of inserting a second one.
    """
    now = now or datetime.now(timezone.utc)

    conversation = find_active_conversation(db, config.id, sender_phone)
    if conversation and is_expired(conversation, config.conversation_timeout, now):
        expire_conversation(db, conversation, now)
        conversation = None

    if conversation:
        return conversation, False

    contact = get_or_create_contact(db, config.user_id, sender_phone)

    try:
        with db.begin_nested():
            conversation = ChatbotConversation(
                id=uuid.uuid4(),
                chatbot_id=config.id,
                contact_id=contact.id,
                sender_phone=sender_phone,
                status=ConversationStatus.ACTIVE.value,
                started_at=now,
                message_count=0,
                context={},
            )
            db.add(conversation)
            db.flush()
    except IntegrityError:
        winner = find_active_conversation(db, config.id, sender_phone)
        if winner is None:
            raise
        logger.info(
            "Concurrent conversation create, reusing existing",
            extra={"context": {"chatbot_id": str(config.id), "conversation_id": str(winner.id)}},
        )
        return winner, False

    # Release the unique-index lock so concurrent messages from this sender can proceed.
    db.commit()
    logger.info(
        "Conversation started",
        extra={"context": {"chatbot_id": str(config.id), "conversation_id": str(conversation.id)}},
    )
    return conversation, True


def touch_conversation(conversation: ChatbotConversation, now: Optional[datetime] = None) -> None:
    """Count one more turn on the conversation."""
    conversation.message_count = (conversation.message_count or 0) + 1
    conversation.last_message_at = now or datetime.now(timezone.utc)


def mark_handed_off(
    db: Session,
    conversation: ChatbotConversation,
    assignee_id: Optional[UUID] = None,
) -> ChatbotConversation:
    """Take the conversation out of automated handling. Raises InvalidTransitionError."""
    new_status = state_machine.hand_off(ConversationStatus(conversation.status))
    conversation.status = new_status.value
    conversation.handed_off_at = datetime.now(timezone.utc)
    if assignee_id is not None:
        conversation.handed_off_to_user = assignee_id
    db.flush()
    logger.info(f"Conversation {conversation.id} handed off to human")
    return conversation


def complete_conversation(db: Session, conversation_id: UUID) -> Result[ChatbotConversation]:
    """Operator ends an active conversation."""
    conversation = db.query(ChatbotConversation).filter(ChatbotConversation.id == conversation_id).first()
    if not conversation:
        return Result.failure(f"Conversation {conversation_id} not found", "not_found")

    try:
        new_status = state_machine.complete(ConversationStatus(conversation.status))
    except InvalidTransitionError as exc:
        return Result.failure(str(exc), "invalid_state")

    conversation.status = new_status.value
    conversation.ended_at = datetime.now(timezone.utc)
    db.commit()
    return Result.success(conversation)


def rate_conversation(
    db: Session,
    conversation_id: UUID,
    rating: int,
    feedback: Optional[str] = None,
) -> Result[ChatbotConversation]:
    if not isinstance(rating, int) or not 1 <= rating <= 5:
        raise ValueError("Rating must be between 1 and 5")

    conversation = db.query(ChatbotConversation).filter(ChatbotConversation.id == conversation_id).first()
    if not conversation:
        return Result.failure(f"Conversation {conversation_id} not found", "not_found")

    conversation.rating = rating
    if feedback is not None:
        conversation.feedback = feedback
    db.commit()
    return Result.success(conversation)


def get_conversation(db: Session, chatbot_id: UUID, conversation_id: UUID) -> Optional[ChatbotConversation]:
    return (
        db.query(ChatbotConversation)
        .filter(ChatbotConversation.id == conversation_id, ChatbotConversation.chatbot_id == chatbot_id)
        .first()
    )


def list_conversations(
    db: Session,
    chatbot_id: UUID,
    status: Optional[str] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
) -> Tuple[List[ChatbotConversation], int]:
    """
    One page of a bot's conversations, newest first, plus the total match count.

    ``status`` must be a known conversation status; ``search`` is a
    case-insensitive substring of the sender's phone number.
    """
    query = db.query(ChatbotConversation).filter(ChatbotConversation.chatbot_id == chatbot_id)
    if status:
        query = query.filter(ChatbotConversation.status == ConversationStatus(status).value)
    if search:
        query = query.filter(ChatbotConversation.sender_phone.ilike(f"%{search}%"))

    total = query.count()
    rows = query.order_by(ChatbotConversation.started_at.desc()).offset((page - 1) * limit).limit(limit).all()
    return rows, total
