"""
Conversation engine - dialog state machine and NLU recognizer.
"""
from .dialog import (
    DialogState,
    SessionState,
    TurnResult,
    ConversationHandler,
    format_match_message,
)
from .nlu import (
    NluResult,
    NluService,
)

__all__ = [
    "DialogState",
    "SessionState",
    "TurnResult",
    "ConversationHandler",
    "format_match_message",
    "NluResult",
    "NluService",
]
