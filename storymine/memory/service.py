import logging
from typing import Iterable, List, Optional

from storymine.llm import LLMService
from storymine.memory.state import ChatMessage, ConversationMemory, Role

logger = logging.getLogger(__name__)


class ConversationMemoryService:
    """
    Manages the lifecycle rules of a conversation's memory: appending turns,
    accumulating research focus labels and keeping the message log under its
    cap.

    The service holds no per-conversation state itself; the memory objects
    live in a MemoryStore and are passed in by the orchestrator.
    """

    def __init__(
        self,
        max_messages: int = 50,
        max_research_focus: int = 10,
        summarizer: Optional[LLMService] = None,
    ):
        """
        Initializes the memory service.

        Args:
            max_messages: The message count above which older turns are evicted.
            max_research_focus: How many research focus labels to keep.
            summarizer: Optional LLM service used to fold evicted turns into a
                        running summary.
        """
        if max_messages < 1:
            raise ValueError("max_messages must be at least 1.")
        if max_messages % 2 != 0:
            logger.warning("max_messages should ideally be an even number to capture full Q&A pairs.")

        self.max_messages = max_messages
        self.max_research_focus = max_research_focus
        self._summarizer = summarizer
        logger.info(f"MemoryService initialized with a cap of {max_messages} messages.")

    def append(self, memory: ConversationMemory, role: Role, content: str) -> ChatMessage:
        """Adds a new message to the end of the log."""
        message = ChatMessage(role=role, content=content)
        memory.messages.append(message)
        return message

    def derive_research_focus(self, memory: ConversationMemory, new_leads: Iterable[str]) -> List[str]:
        """
        Appends leads that are not already tracked (exact match) and keeps
        only the most recent `max_research_focus` of them.
        """
        for lead in new_leads:
            if not lead or lead in memory.research_focus:
                continue
            memory.research_focus.append(lead)

        overflow = len(memory.research_focus) - self.max_research_focus
        if overflow > 0:
            del memory.research_focus[:overflow]
        return memory.research_focus

    def evict_if_over_capacity(self, memory: ConversationMemory) -> List[ChatMessage]:
        """
        Drops the oldest non-system messages once the log exceeds the cap.

        All system messages are retained, together with the most recent
        `max_messages - system_count` other messages, in their original order.

        Returns:
            The evicted messages, oldest first.
        """
        if len(memory.messages) <= self.max_messages:
            return []

        system_count = sum(1 for msg in memory.messages if msg.role == "system")
        keep_others = max(self.max_messages - system_count, 0)
        other_indices = [i for i, msg in enumerate(memory.messages) if msg.role != "system"]
        kept_indices = set(other_indices[len(other_indices) - keep_others:]) if keep_others else set()

        retained: List[ChatMessage] = []
        dropped: List[ChatMessage] = []
        for i, msg in enumerate(memory.messages):
            if msg.role == "system" or i in kept_indices:
                retained.append(msg)
            else:
                dropped.append(msg)

        memory.messages = retained
        logger.info(f"Evicted {len(dropped)} messages; {len(retained)} remain.")
        return dropped

    async def summarize_evicted(self, memory: ConversationMemory, dropped: List[ChatMessage]) -> str:
        """
        Uses the summarizer LLM to fold evicted turns into the running summary.

        Summarization is best-effort: on failure the previous summary is kept.
        """
        if not dropped or self._summarizer is None:
            return memory.summary

        conversation_text = "\n".join(f"{msg.role}: {msg.content}" for msg in dropped)
        variables = {
            "previous_summary": memory.summary or "This is the beginning of the conversation.",
            "conversation_text": conversation_text,
        }
        try:
            memory.summary = (await self._summarizer.generate_text(variables)).strip()
        except Exception as e:
            logger.warning(f"Summarization of {len(dropped)} evicted messages failed: {e}")
        return memory.summary

    @staticmethod
    def get_recent(memory: ConversationMemory, n: int) -> List[ChatMessage]:
        """Returns the last `n` messages, oldest first."""
        if n <= 0:
            return []
        return list(memory.messages[-n:])
