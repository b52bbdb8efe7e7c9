import uuid

from sqlalchemy import Boolean, Column, Float, Integer, Text
from sqlalchemy.dialects.postgresql import ARRAY, JSONB, TIMESTAMP, UUID
from sqlalchemy.orm import relationship

from chatbot_engine.database import Base
from chatbot_engine.schemas.chatbot_config import DEFAULT_BUSINESS_HOURS


class Chatbot(Base):
    __tablename__ = "chatbots"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=False)
    description = Column(Text)
    user_id = Column(UUID(as_uuid=True), nullable=False)
    whatsapp_account_id = Column(Text, nullable=False)  # Cloud API phone_number_id
    is_active = Column(Boolean, default=True)
    mode = Column("type", Text, default="rule-based")  # rule-based, ai-powered, hybrid

    ai_provider = Column(Text)  # openai, anthropic, google, custom
    ai_model = Column(Text)
    ai_api_key = Column(Text)
    ai_system_prompt = Column(Text, default="You are a helpful assistant for WhatsApp customer support.")
    ai_temperature = Column(Float, default=0.7)
    ai_max_tokens = Column(Integer, default=500)
    webhook_url = Column(Text)
    webhook_headers = Column(JSONB, default=dict)

    rules = Column(JSONB, default=list)

    welcome_message = Column(Text, default="Hello! How can I help you today?")
    welcome_enabled = Column(Boolean, default=True)
    fallback_message = Column(Text, default="I'm sorry, I didn't understand that. Can you please rephrase?")
    fallback_enabled = Column(Boolean, default=True)

    business_hours_enabled = Column(Boolean, default=False)
    business_hours = Column(JSONB, default=lambda: dict(DEFAULT_BUSINESS_HOURS))
    out_of_office_message = Column(
        Text, default="We are currently offline. Our business hours are Monday-Friday, 9 AM - 6 PM."
    )
    timezone = Column(Text)  # IANA zone, e.g. Europe/Madrid

    conversation_timeout = Column(Integer, default=1800)  # seconds
    enable_context_memory = Column(Boolean, default=True)
    context_window_size = Column(Integer, default=10)

    human_handoff_enabled = Column(Boolean, default=True)
    human_handoff_keywords = Column(
        ARRAY(Text), default=lambda: ["speak to human", "talk to agent", "human support", "representative"]
    )
    human_handoff_message = Column(Text, default="Let me connect you with a human agent. Please wait a moment.")

    menu_enabled = Column(Boolean, default=True)
    menu_keyword = Column(Text, default="menu")
    menu_options = Column(JSONB, default=list)

    rate_limit_enabled = Column(Boolean, default=True)
    max_messages_per_user = Column(Integer, default=10)
    rate_limit_window = Column(Integer, default=60)  # seconds

    created_at = Column(TIMESTAMP(timezone=True))
    updated_at = Column(TIMESTAMP(timezone=True))

    conversations = relationship("ChatbotConversation", back_populates="chatbot")
