from chatbot_engine.services.chatbot_service import ChatbotEngine, DispatchOutcome, OutcomeKind, process_inbound_message
from chatbot_engine.services.conversation_service import (
    complete_conversation,
    mark_handed_off,
    rate_conversation,
    resolve_conversation,
)

__all__ = [
    "ChatbotEngine",
    "DispatchOutcome",
    "OutcomeKind",
    "complete_conversation",
    "mark_handed_off",
    "process_inbound_message",
    "rate_conversation",
    "resolve_conversation",
]
