import re
from typing import Any, Dict, List, Sequence

from storymine.analysis.intent import Intent
from storymine.memory.state import ChatMessage, ConversationContext, ConversationStage, UserExpertise
from storymine.models.corpus_models import CorpusRecord, ProjectMetadata
from storymine.models.generation import GenerationInput, RetrievalResult

_SYNTHESIS = re.compile(r"\b(summari[sz]e|summary|timeline|wrap (it )?up|put (it|this|these|them) together|recap|pull (it|this) together)\b")
_RESEARCH_VOCABULARY = (
    "archive", "archival", "microfilm", "primary source", "secondary source", "citation",
    "provenance", "corroborat", "cross-reference", "crosswalk", "byline", "dateline",
    "masthead", "editorial", "court record", "census",
)


class ContextAssembler:
    """
    Turns conversation memory, project metadata and retrieved records into
    the inputs a response strategy works from. Pure transforms only.
    """

    def __init__(self, window_size: int = 5, max_records: int = 12):
        self.window_size = window_size
        self.max_records = max_records

    # --- Conversation context ---

    def _stage(self, window: Sequence[ChatMessage], current_message: str, intent: str) -> ConversationStage:
        if _SYNTHESIS.search(current_message.lower()):
            return "synthesis"
        earlier_user_turns = sum(1 for msg in window if msg.role == "user")
        if intent == Intent.EXPAND_CURRENT.value or earlier_user_turns >= 3:
            return "deep_dive"
        if earlier_user_turns >= 1:
            return "exploration"
        return "opening"

    def _expertise(self, window: Sequence[ChatMessage], current_message: str) -> UserExpertise:
        texts = [msg.content.lower() for msg in window if msg.role == "user"] + [current_message.lower()]
        hits = sum(1 for text in texts for term in _RESEARCH_VOCABULARY if term in text)
        if hits >= 3:
            return "expert"
        if hits >= 1:
            return "intermediate"
        return "novice"

    def derive_context(
        self,
        messages: Sequence[ChatMessage],
        current_message: str,
        project: ProjectMetadata,
        intent: str,
        research_focus: Sequence[str] = (),
    ) -> ConversationContext:
        """
        Reads the conversation stage, user expertise and research focus from
        the last `window_size` messages plus the current one.

        The stage is re-derived every turn and may move backwards once
        earlier turns leave the window.
        """
        window = list(messages[-self.window_size:]) if self.window_size > 0 else []
        focus: List[str] = []
        for label in list(research_focus) + list(project.research_goals):
            if label and label not in focus:
                focus.append(label)

        return ConversationContext(
            user_expertise=self._expertise(window, current_message),
            conversation_stage=self._stage(window, current_message, intent),
            research_focus=focus,
            user_intent=intent,
        )

    # --- Generation input ---

    def build_generation_input(
        self,
        user_message: str,
        intent: str,
        conversation_context: ConversationContext,
        recent_messages: Sequence[ChatMessage],
        retrieval: RetrievalResult,
        project: ProjectMetadata,
        conversation_summary: str = "",
    ) -> GenerationInput:
        ranked = list(retrieval.records[: self.max_records])
        return GenerationInput(
            user_message=user_message,
            intent=intent,
            conversation_context=conversation_context,
            recent_messages=list(recent_messages[-self.window_size:]) if self.window_size > 0 else [],
            ranked_records=ranked,
            omitted_record_count=max(len(retrieval.records) - len(ranked), 0),
            project=project,
            search_keywords=list(retrieval.keywords),
            used_fallback_sample=retrieval.used_fallback_sample,
            conversation_summary=conversation_summary,
        )


# --- Prompt rendering ---

def render_records(records: Sequence[CorpusRecord], omitted_count: int = 0) -> str:
    """Formats ranked records as a numbered list for a prompt."""
    if not records:
        return "No matching articles were found in the archive."

    lines = []
    for index, record in enumerate(records, start=1):
        year = record.publication_date.year if record.publication_date else "undated"
        story_types = ", ".join(record.story_types) if record.story_types else "unclassified"
        lines.append(
            f"{index}. {record.title} ({year}; {story_types}; relevance: {record.relevance_score:.2f}; "
            f"documentary potential: {record.documentary_potential})"
        )
        if record.body_excerpt:
            lines.append(f"   Summary: {record.body_excerpt}")
    if omitted_count:
        lines.append(f"({omitted_count} more matching records omitted.)")
    return "\n".join(lines)


def render_history(messages: Sequence[ChatMessage]) -> str:
    history = "\n".join(f"{msg.role}: {msg.content}" for msg in messages if msg.role != "system").strip()
    return history if history else "No previous conversation history."


def build_prompt_variables(generation_input: GenerationInput, assistant_name: str = "Jordi") -> Dict[str, Any]:
    """The variables shared by every prompt template."""
    context = generation_input.conversation_context
    project = generation_input.project
    return {
        "assistant_name": assistant_name,
        "user_message": generation_input.user_message,
        "project_name": project.name,
        "project_description": project.description or "No description.",
        "research_goals": ", ".join(project.research_goals) or "None stated",
        "user_expertise": context.user_expertise,
        "conversation_stage": context.conversation_stage,
        "research_focus": ", ".join(context.research_focus) or "None yet",
        "user_intent": context.user_intent,
        "conversation_summary": generation_input.conversation_summary or "Nothing earlier.",
        "conversation_history": render_history(generation_input.recent_messages),
        "available_records": render_records(
            generation_input.ranked_records, generation_input.omitted_record_count
        ),
    }
