import uuid

from sqlalchemy import Column, ForeignKey, Index, Integer, Text, text
from sqlalchemy.dialects.postgresql import ARRAY, JSONB, TIMESTAMP, UUID
from sqlalchemy.orm import relationship

from chatbot_engine.database import Base


class ChatbotConversation(Base):
    __tablename__ = "chatbot_conversations"
    __table_args__ = (
        # One active conversation per (bot, sender); concurrent creators lose on this index.
        Index(
            "uq_chatbot_conversations_active_sender",
            "chatbot_id",
            "whatsapp_phone_number",
            unique=True,
            postgresql_where=text("status = 'active'"),
        ),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    chatbot_id = Column(UUID(as_uuid=True), ForeignKey("chatbots.id"), nullable=False)
    contact_id = Column(UUID(as_uuid=True), ForeignKey("contacts.id"), nullable=False)
    sender_phone = Column("whatsapp_phone_number", Text, nullable=False)
    status = Column(Text, nullable=False, default="active")  # active, completed, handed-off, expired
    started_at = Column(TIMESTAMP(timezone=True), nullable=False)
    ended_at = Column(TIMESTAMP(timezone=True))
    last_message_at = Column(TIMESTAMP(timezone=True))
    message_count = Column(Integer, nullable=False, default=0)
    context = Column(JSONB, nullable=False, default=dict)
    sentiment = Column(Text, default="unknown")
    language = Column(Text, default="en")
    handed_off_to_user = Column(UUID(as_uuid=True))
    handed_off_at = Column(TIMESTAMP(timezone=True))
    rating = Column(Integer)
    feedback = Column(Text)
    tags = Column(ARRAY(Text), default=list)
    conversation_metadata = Column("metadata", JSONB, nullable=False, default=dict)

    chatbot = relationship("Chatbot", back_populates="conversations")
    contact = relationship("Contact")
    messages = relationship("ChatbotMessage", back_populates="conversation")
