"""Validated, immutable view of one chatbot's settings.

JSON columns on the ``chatbots`` row (rules, business hours, menu options) are
checked here once, when the snapshot is built, so the rest of the engine can
trust their shape.
"""

from enum import Enum
from typing import Any, Optional
from uuid import UUID
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator

from chatbot_engine.config import settings

HHMM_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class ChatbotMode(str, Enum):
    RULE_BASED = "rule-based"
    AI_POWERED = "ai-powered"
    HYBRID = "hybrid"


class AIProviderName(str, Enum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GOOGLE = "google"
    CUSTOM = "custom"


class MatchType(str, Enum):
    EXACT = "exact"
    CONTAINS = "contains"
    STARTS_WITH = "starts-with"
    ENDS_WITH = "ends-with"
    REGEX = "regex"


class Rule(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    trigger: str
    response: str
    match_type: MatchType = Field(default=MatchType.CONTAINS, alias="type")
    priority: int = 0

    @field_validator("match_type", mode="before")
    @classmethod
    def _unknown_match_type_is_contains(cls, value: Any) -> Any:
        if value in {m.value for m in MatchType} or isinstance(value, MatchType):
            return value
        return MatchType.CONTAINS

    @field_validator("priority", mode="before")
    @classmethod
    def _missing_priority_is_zero(cls, value: Any) -> Any:
        return 0 if value is None else value


DEFAULT_BUSINESS_HOURS = {
    "monday": {"start": "09:00", "end": "18:00", "enabled": True},
    "tuesday": {"start": "09:00", "end": "18:00", "enabled": True},
    "wednesday": {"start": "09:00", "end": "18:00", "enabled": True},
    "thursday": {"start": "09:00", "end": "18:00", "enabled": True},
    "friday": {"start": "09:00", "end": "18:00", "enabled": True},
    "saturday": {"start": "09:00", "end": "14:00", "enabled": False},
    "sunday": {"start": "09:00", "end": "14:00", "enabled": False},
}


class DaySchedule(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    start: str = Field(pattern=HHMM_PATTERN)
    end: str = Field(pattern=HHMM_PATTERN)
    enabled: bool = False


class BusinessHours(BaseModel):
    """Weekly schedule. A weekday left out of the stored JSON is closed."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    monday: Optional[DaySchedule] = None
    tuesday: Optional[DaySchedule] = None
    wednesday: Optional[DaySchedule] = None
    thursday: Optional[DaySchedule] = None
    friday: Optional[DaySchedule] = None
    saturday: Optional[DaySchedule] = None
    sunday: Optional[DaySchedule] = None

    @classmethod
    def standard(cls) -> "BusinessHours":
        return cls.model_validate(DEFAULT_BUSINESS_HOURS)

    def for_day(self, weekday: str) -> Optional[DaySchedule]:
        return getattr(self, weekday.lower())


class MenuOption(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    title: str
    description: Optional[str] = None


class ChatbotConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: UUID
    name: str = ""
    user_id: Optional[UUID] = None
    whatsapp_account_id: Optional[str] = None
    is_active: bool = True
    mode: ChatbotMode = ChatbotMode.RULE_BASED

    ai_provider: Optional[AIProviderName] = None
    ai_model: Optional[str] = None
    ai_api_key: Optional[str] = None
    ai_system_prompt: str = "You are a helpful assistant for WhatsApp customer support."
    ai_temperature: float = Field(default=0.7, ge=0, le=2)
    ai_max_tokens: int = Field(default=500, gt=0)
    webhook_url: Optional[str] = None
    webhook_headers: dict[str, str] = Field(default_factory=dict)

    rules: tuple[Rule, ...] = ()

    welcome_message: str = "Hello! How can I help you today?"
    welcome_enabled: bool = True
    fallback_message: str = "I'm sorry, I didn't understand that. Can you please rephrase?"
    fallback_enabled: bool = True

    business_hours_enabled: bool = False
    business_hours: BusinessHours = Field(default_factory=BusinessHours.standard)
    out_of_office_message: str = "We are currently offline. Our business hours are Monday-Friday, 9 AM - 6 PM."
    timezone: str = Field(default_factory=lambda: settings.default_timezone)

    conversation_timeout: int = Field(default=1800, ge=0)
    enable_context_memory: bool = True
    context_window_size: int = Field(default=10, ge=0)

    human_handoff_enabled: bool = True
    human_handoff_keywords: tuple[str, ...] = ("speak to human", "talk to agent", "human support", "representative")
    human_handoff_message: str = "Let me connect you with a human agent. Please wait a moment."

    menu_enabled: bool = True
    menu_keyword: str = "menu"
    menu_options: tuple[MenuOption, ...] = ()

    rate_limit_enabled: bool = True
    max_messages_per_user: int = Field(default=10, ge=0)
    rate_limit_window: int = Field(default_factory=lambda: settings.rate_limit_window_seconds, gt=0)

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"unknown timezone: {value}") from exc
        return value

    @field_validator("human_handoff_keywords")
    @classmethod
    def _drop_blank_keywords(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(keyword for keyword in value if keyword and keyword.strip())

    @classmethod
    def from_row(cls, row: Any) -> "ChatbotConfig":
        """Build a snapshot from a ``Chatbot`` row; NULL columns take model defaults."""
        data = {}
        for name in cls.model_fields:
            value = getattr(row, name, None)
            if value is not None:
                data[name] = value
        return cls.model_validate(data)
