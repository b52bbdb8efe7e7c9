from chatbot_engine.schemas.chatbot_config import (
    AIProviderName,
    BusinessHours,
    ChatbotConfig,
    ChatbotMode,
    DaySchedule,
    MatchType,
    MenuOption,
    Rule,
)
from chatbot_engine.schemas.conversation import (
    AnalyticsResponse,
    ConversationPage,
    ConversationResponse,
    MessagePage,
    MessageResponse,
    RatingRequest,
)
from chatbot_engine.schemas.inbound import DispatchResponse, InboundAck, InboundMessage, SimulatedMessageRequest

__all__ = [
    "AIProviderName",
    "AnalyticsResponse",
    "BusinessHours",
    "ChatbotConfig",
    "ChatbotMode",
    "ConversationPage",
    "ConversationResponse",
    "DaySchedule",
    "DispatchResponse",
    "InboundAck",
    "InboundMessage",
    "MatchType",
    "MenuOption",
    "MessagePage",
    "MessageResponse",
    "RatingRequest",
    "Rule",
    "SimulatedMessageRequest",
]
