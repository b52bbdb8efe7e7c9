import math
from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Body, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from chatbot_engine.database import get_db
from chatbot_engine.logging_config import get_logger
from chatbot_engine.models import Chatbot
from chatbot_engine.schemas.conversation import (
    AnalyticsResponse,
    ConversationPage,
    ConversationResponse,
    MessagePage,
    MessageResponse,
)
from chatbot_engine.schemas.inbound import DispatchResponse, InboundAck, InboundMessage, SimulatedMessageRequest
from chatbot_engine.services.analytics_service import get_chatbot_analytics
from chatbot_engine.services.chatbot_service import ChatbotEngine, process_inbound_message
from chatbot_engine.services.config_cache import ChatbotConfigCache
from chatbot_engine.services.config_service import ChatbotConfigError, ChatbotNotFoundError, update_chatbot
from chatbot_engine.services.conversation_service import get_conversation, list_conversations
from chatbot_engine.services.message_service import list_messages
from chatbot_engine.services.rate_limiter import RateLimiter
from chatbot_engine.services.redis_client import get_redis_client
from chatbot_engine.services.state_machine import ConversationStatus
from chatbot_engine.services.whatsapp_client import CapturingSender, WhatsAppCloudClient, WhatsAppSender

router = APIRouter(prefix="/chatbots", tags=["chatbots"])
logger = get_logger("chatbots_router")

# Never echoed back to API callers.
SECRET_FIELDS = {"ai_api_key", "webhook_headers"}


def get_config_cache() -> ChatbotConfigCache:
    return ChatbotConfigCache(get_redis_client())


def get_rate_limiter() -> RateLimiter:
    return RateLimiter(get_redis_client())


def get_whatsapp_sender() -> WhatsAppSender:
    return WhatsAppCloudClient()


@router.post("/{chatbot_id}/inbound", response_model=InboundAck, status_code=202)
def receive_inbound_message(
    chatbot_id: UUID,
    message: InboundMessage,
    background_tasks: BackgroundTasks,
    config_cache: ChatbotConfigCache = Depends(get_config_cache),
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
    sender: WhatsAppSender = Depends(get_whatsapp_sender),
):
    """Acknowledge the message now and process it after the response is sent."""
    background_tasks.add_task(
        process_inbound_message,
        chatbot_id,
        message.sender_phone,
        message.message_text,
        message.message_type,
        config_cache=config_cache,
        rate_limiter=rate_limiter,
        sender=sender,
    )
    logger.info(
        "Inbound message accepted",
        extra={"context": {"chatbot_id": str(chatbot_id), "sender": message.sender_phone}},
    )
    return InboundAck(accepted=True, chatbot_id=chatbot_id)


@router.post("/{chatbot_id}/test", response_model=DispatchResponse)
def dry_run_message(
    chatbot_id: UUID,
    request: SimulatedMessageRequest,
    db: Session = Depends(get_db),
    config_cache: ChatbotConfigCache = Depends(get_config_cache),
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
):
    """Run the full pipeline without delivering anything to WhatsApp."""
    if not db.query(Chatbot.id).filter(Chatbot.id == chatbot_id).first():
        raise HTTPException(status_code=404, detail=f"Chatbot {chatbot_id} not found")

    engine = ChatbotEngine(db, config_cache, rate_limiter, CapturingSender())
    outcome = engine.handle(chatbot_id, request.phone_number, request.message)
    db.commit()

    if outcome is None:
        return DispatchResponse(input=request.message)
    return DispatchResponse(
        input=request.message,
        kind=outcome.kind.value,
        response=outcome.text,
        conversation_id=outcome.conversation_id,
        sent=outcome.sent,
        provider_message_id=outcome.provider_message_id,
        error=outcome.error,
    )


@router.patch("/{chatbot_id}")
def patch_chatbot(
    chatbot_id: UUID,
    changes: dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    config_cache: ChatbotConfigCache = Depends(get_config_cache),
):
    try:
        config = update_chatbot(db, config_cache, chatbot_id, changes)
    except ChatbotNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except ChatbotConfigError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    return config.model_dump(mode="json", by_alias=True, exclude=SECRET_FIELDS)


@router.get("/{chatbot_id}/analytics", response_model=AnalyticsResponse)
def chatbot_analytics(
    chatbot_id: UUID,
    start: datetime = Query(...),
    end: datetime = Query(...),
    db: Session = Depends(get_db),
):
    if start > end:
        raise HTTPException(status_code=422, detail="start must not be after end")
    return get_chatbot_analytics(db, chatbot_id, start, end)


@router.get("/{chatbot_id}/conversations", response_model=ConversationPage)
def chatbot_conversations(
    chatbot_id: UUID,
    status: Optional[ConversationStatus] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
    db: Session = Depends(get_db),
):
    safe_page = max(1, int(page))
    safe_limit = max(1, min(int(limit), 100))

    rows, total = list_conversations(
        db,
        chatbot_id,
        status=status.value if status else None,
        search=search,
        page=safe_page,
        limit=safe_limit,
    )
    return ConversationPage(
        items=[ConversationResponse.model_validate(row) for row in rows],
        total=total,
        page=safe_page,
        limit=safe_limit,
        pages=math.ceil(total / safe_limit),
    )


@router.get("/{chatbot_id}/conversations/{conversation_id}/messages", response_model=MessagePage)
def conversation_messages(
    chatbot_id: UUID,
    conversation_id: UUID,
    page: int = 1,
    limit: int = 50,
    db: Session = Depends(get_db),
):
    if not get_conversation(db, chatbot_id, conversation_id):
        raise HTTPException(status_code=404, detail=f"Conversation {conversation_id} not found")

    safe_page = max(1, int(page))
    safe_limit = max(1, min(int(limit), 200))
    rows = list_messages(db, conversation_id, page=safe_page, limit=safe_limit)
    return MessagePage(
        items=[MessageResponse.model_validate(row) for row in rows],
        page=safe_page,
        limit=safe_limit,
    )
