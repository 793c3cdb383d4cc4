from typing import Any, List, Optional, TypedDict

from storymine.memory.state import ConversationContext, ConversationMemory
from storymine.models.agent_models import AgentResponse
from storymine.models.corpus_models import ProjectMetadata
from storymine.models.generation import GenerationInput, RetrievalResult


class TurnState(TypedDict):
    """
    Represents the state of a single turn as it moves through the graph.
    Created at the start of `process_turn` and discarded at the end.
    """

    # -- Inputs --
    project_id: str
    user_id: str
    user_message: str
    project: ProjectMetadata
    memory: ConversationMemory

    # -- Analysis and retrieval --
    intent: Optional[str]
    search_keywords: List[str]
    retrieval: Optional[RetrievalResult]

    # -- Assembly --
    conversation_context: Optional[ConversationContext]
    generation_input: Optional[GenerationInput]

    # -- Generation --
    # The ChainOutcome from the response strategy chain.
    outcome: Optional[Any]

    # -- Final Output --
    response: Optional[AgentResponse]
