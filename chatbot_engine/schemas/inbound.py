from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class InboundMessage(BaseModel):
    sender_phone: str = Field(min_length=1)
    message_text: str
    message_type: str = "text"
    timestamp: Optional[datetime] = None


class InboundAck(BaseModel):
    accepted: bool
    chatbot_id: UUID


class SimulatedMessageRequest(BaseModel):
    message: str = Field(min_length=1)
    phone_number: str = "test_user"


class DispatchResponse(BaseModel):
    input: str
    kind: Optional[str] = None
    response: Optional[str] = None
    conversation_id: Optional[UUID] = None
    sent: bool = False
    provider_message_id: Optional[str] = None
    error: Optional[str] = None
