import uuid

from sqlalchemy import Column, Index, Text
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID

from chatbot_engine.database import Base


class Contact(Base):
    __tablename__ = "contacts"
    __table_args__ = (Index("uq_contacts_user_phone", "user_id", "whatsapp_phone_number", unique=True),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True))
    whatsapp_phone_number = Column(Text, nullable=False)
    name = Column(Text)
    created_at = Column(TIMESTAMP(timezone=True))
