from .service import ConversationMemoryService
from .state import ChatMessage, ConversationContext, ConversationMemory
from .store import InMemoryMemoryStore, MemoryStore, conversation_key

__all__ = [
    "ConversationMemoryService",
    "ChatMessage",
    "ConversationContext",
    "ConversationMemory",
    "InMemoryMemoryStore",
    "MemoryStore",
    "conversation_key",
]
