import threading
from abc import ABC, abstractmethod
from typing import Dict, Optional

from storymine.memory.state import ConversationMemory


def conversation_key(project_id: str, user_id: str) -> str:
    """Builds the store key for a (project, user) conversation."""
    return f"{project_id}:{user_id}"


class MemoryStore(ABC):
    """Where conversation memories live between turns."""

    @abstractmethod
    async def get(self, key: str) -> Optional[ConversationMemory]:
        """Returns the memory for `key`, or None when there is none."""

    @abstractmethod
    async def put(self, key: str, memory: ConversationMemory) -> None:
        """Stores or replaces the memory for `key`."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Removes the memory for `key`. Deleting a missing key is a no-op."""


class InMemoryMemoryStore(MemoryStore):
    """A process-local table of conversation memories."""

    def __init__(self):
        self._memories: Dict[str, ConversationMemory] = {}
        self._lock = threading.Lock()

    async def get(self, key: str) -> Optional[ConversationMemory]:
        with self._lock:
            return self._memories.get(key)

    async def put(self, key: str, memory: ConversationMemory) -> None:
        with self._lock:
            self._memories[key] = memory

    async def delete(self, key: str) -> None:
        with self._lock:
            self._memories.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._memories)
