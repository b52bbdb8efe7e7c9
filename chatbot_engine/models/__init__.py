from chatbot_engine.models.chatbot import Chatbot
from chatbot_engine.models.chatbot_message import ChatbotMessage
from chatbot_engine.models.contact import Contact
from chatbot_engine.models.conversation import ChatbotConversation

__all__ = [
    "Chatbot",
    "ChatbotConversation",
    "ChatbotMessage",
    "Contact",
]
