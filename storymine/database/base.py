from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from storymine.memory.state import ChatMessage, ConversationContext
from storymine.models.corpus_models import CorpusRecord, ProjectMetadata


class CorpusSearch(ABC):
    """
    Searches the pre-analysed article corpus.

    An empty keyword list asks for a diverse, high-confidence sample; a
    non-empty one asks for records matching any of the keywords.
    """

    @abstractmethod
    async def search(self, keywords: List[str], limit: int) -> List[CorpusRecord]:
        pass


class ProjectRepository(ABC):
    """Looks up research projects."""

    @abstractmethod
    async def get_project(self, project_id: str) -> Optional[ProjectMetadata]:
        pass


class ConversationRepository(ABC):
    """Durable, best-effort storage of conversation transcripts."""

    @abstractmethod
    async def upsert_conversation(
        self,
        project_id: str,
        user_id: str,
        messages: List[ChatMessage],
        context: Optional[ConversationContext] = None,
    ) -> None:
        pass

    @abstractmethod
    async def delete_conversation(self, project_id: str) -> None:
        pass


def serialize_messages(messages: List[ChatMessage]) -> List[Dict[str, Any]]:
    return [msg.model_dump(mode="json") for msg in messages]
