from datetime import datetime
from typing import Any, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class RatingRequest(BaseModel):
    rating: int = Field(ge=1, le=5)
    feedback: Optional[str] = None


class ConversationResponse(BaseModel):
    id: UUID
    chatbot_id: UUID
    sender_phone: str
    status: str
    started_at: datetime
    ended_at: Optional[datetime] = None
    last_message_at: Optional[datetime] = None
    message_count: int = 0
    rating: Optional[int] = None
    feedback: Optional[str] = None

    model_config = {"from_attributes": True}


class AnalyticsResponse(BaseModel):
    total_conversations: int
    total_messages: int
    handed_off: int
    handoff_rate: float
    average_rating: float
    average_messages_per_conversation: float


class ConversationPage(BaseModel):
    items: List[ConversationResponse]
    total: int
    page: int
    limit: int
    pages: int


class MessageResponse(BaseModel):
    id: UUID
    conversation_id: UUID
    direction: str
    content: str
    type: Optional[str] = "text"
    is_ai_generated: Optional[bool] = False
    ai_provider: Optional[str] = None
    matched_rule: Optional[dict[str, Any]] = None
    status: Optional[str] = None
    error_code: Optional[str] = None
    whatsapp_message_id: Optional[str] = None
    timestamp: datetime

    model_config = {"from_attributes": True}


class MessagePage(BaseModel):
    items: List[MessageResponse]
    page: int
    limit: int
