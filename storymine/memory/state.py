from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

Role = Literal["user", "assistant", "system"]
UserExpertise = Literal["novice", "intermediate", "expert"]
ConversationStage = Literal["opening", "exploration", "deep_dive", "synthesis"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ChatMessage(BaseModel):
    """Represents a single message in the conversation history."""

    role: Role
    content: str
    timestamp: datetime = Field(default_factory=_utcnow)


class ConversationContext(BaseModel):
    """
    A per-turn reading of where the conversation stands.

    Re-derived from the recent messages every turn and never accumulated,
    so the stage can move backwards between turns.
    """

    user_expertise: UserExpertise = "novice"
    conversation_stage: ConversationStage = "opening"
    research_focus: List[str] = Field(default_factory=list)
    user_intent: str = "general_exploration"


class ConversationMemory(BaseModel):
    """
    Represents the complete, canonical state of a conversation's memory.
    This is the "source of truth" managed by the ConversationMemoryService.
    """

    messages: List[ChatMessage] = Field(default_factory=list)
    research_focus: List[str] = Field(default_factory=list)
    context: Optional[ConversationContext] = None
    summary: str = ""
