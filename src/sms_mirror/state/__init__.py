"""Message cache, conversations and thread grouping."""

from .cache import Cache
from .conversation import Conversation, ConversationSummary
from .threads import Separator, ThreadBuilder, VisualThread, build_threads

__all__ = [
    "Cache",
    "Conversation",
    "ConversationSummary",
    "Separator",
    "ThreadBuilder",
    "VisualThread",
    "build_threads",
]
