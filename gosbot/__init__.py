"""Client for the bot.gosuslugi.ru chatbot socket."""

from gosbot.client.events import EventKind
from gosbot.client.messages import AnswerButton, ChatbotMessage, Clarification, ResultItem, Results
from gosbot.client.session import ChatbotSession, SessionState
from gosbot.client.token import acquire_token
from gosbot.shared.config import BotSettings
from gosbot.shared.errors import (
    AcquisitionError,
    ChatbotError,
    MalformedFrameError,
    RequestTimeoutError,
    SessionClosedError,
    TransportError,
)

# Short alias
Chatbot = ChatbotSession

__version__ = "0.1.0"

__all__ = [
    "AcquisitionError",
    "AnswerButton",
    "BotSettings",
    "Chatbot",
    "ChatbotError",
    "ChatbotMessage",
    "ChatbotSession",
    "Clarification",
    "EventKind",
    "MalformedFrameError",
    "RequestTimeoutError",
    "ResultItem",
    "Results",
    "SessionClosedError",
    "SessionState",
    "TransportError",
    "acquire_token",
]
