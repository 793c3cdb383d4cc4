from .base import ConversationRepository, CorpusSearch, ProjectRepository
from .corpus import SqlCorpusSearch
from .manager import DatabaseManager
from .repositories import SqlConversationRepository, SqlProjectRepository

__all__ = [
    "ConversationRepository",
    "CorpusSearch",
    "ProjectRepository",
    "SqlCorpusSearch",
    "DatabaseManager",
    "SqlConversationRepository",
    "SqlProjectRepository",
]
