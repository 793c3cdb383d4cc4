from typing import List

from pydantic import BaseModel, Field

from storymine.memory.state import ChatMessage, ConversationContext
from storymine.models.corpus_models import CorpusRecord, ProjectMetadata


class RetrievalResult(BaseModel):
    """What the corpus returned for one turn, and how it was obtained."""

    keywords: List[str] = Field(default_factory=list)
    records: List[CorpusRecord] = Field(default_factory=list)
    # The keyword search came back empty and the diverse sample was used instead.
    used_fallback_sample: bool = False


class GenerationInput(BaseModel):
    """
    Everything a response strategy needs for one turn.

    Built fresh by the ContextAssembler and consumed once by the strategy chain.
    """

    user_message: str
    intent: str
    conversation_context: ConversationContext
    recent_messages: List[ChatMessage] = Field(default_factory=list)
    ranked_records: List[CorpusRecord] = Field(default_factory=list)
    omitted_record_count: int = 0
    project: ProjectMetadata
    search_keywords: List[str] = Field(default_factory=list)
    used_fallback_sample: bool = False
    conversation_summary: str = ""
