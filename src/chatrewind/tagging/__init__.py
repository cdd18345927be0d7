"""Rule-based conversation classification over static keyword tables."""

from .classifier import ClassifiedConversation, ConversationClassifier, MessageStat

__all__ = [
    "ClassifiedConversation",
    "ConversationClassifier",
    "MessageStat",
]
