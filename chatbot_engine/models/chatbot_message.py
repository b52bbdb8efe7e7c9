import uuid

from sqlalchemy import Boolean, Column, Float, ForeignKey, Integer, Text
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP, UUID
from sqlalchemy.orm import relationship

from chatbot_engine.database import Base


class ChatbotMessage(Base):
    __tablename__ = "chatbot_messages"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    conversation_id = Column(UUID(as_uuid=True), ForeignKey("chatbot_conversations.id"), nullable=False)
    chatbot_id = Column(UUID(as_uuid=True), ForeignKey("chatbots.id"), nullable=False)
    direction = Column(Text, nullable=False)  # incoming, outgoing
    content = Column(Text, nullable=False)
    type = Column(Text, default="text")  # text, image, video, audio, document, location, button, list

    is_ai_generated = Column(Boolean, default=False)
    ai_provider = Column(Text)
    ai_model = Column(Text)
    ai_tokens_used = Column(Integer, default=0)
    ai_latency = Column(Integer, default=0)  # ms

    # Recorded but never computed by the engine
    intent = Column(Text)
    intent_confidence = Column(Float)
    entities = Column(JSONB, default=list)

    matched_rule = Column(JSONB)
    response_time = Column(Integer, default=0)  # ms

    status = Column(Text, default="sent")  # sent, delivered, read, failed
    error = Column(Text)
    error_code = Column(Text)
    whatsapp_message_id = Column(Text)

    message_metadata = Column("metadata", JSONB, nullable=False, default=dict)
    timestamp = Column(TIMESTAMP(timezone=True), nullable=False)

    conversation = relationship("ChatbotConversation", back_populates="messages")
