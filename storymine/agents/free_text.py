from __future__ import annotations
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from omegaconf import DictConfig

from storymine.agents.base import ResponseStrategy, StrategyResult, ValidationFailure
from storymine.llm import LLMService
from storymine.models.agent_models import AgentResponse, ConfidenceAssessment, ReasoningStep
from storymine.models.generation import GenerationInput
from storymine.workflows.context import build_prompt_variables

logger = logging.getLogger(__name__)

# Reasoning markers and the kind of step each one announces.
REASONING_MARKERS = {
    "✅": "evidence_review",  # check mark
    "\U0001F50D": "analysis",  # magnifying glass
    "\U0001F9E0": "synthesis",  # brain
}
# An optional U+FE0F variation selector may follow the marker.
_REASONING_LINE = re.compile(
    r"^[ \t]*(" + "|".join(REASONING_MARKERS) + r")\ufe0f?[ \t]*(.*?)[ \t]*$\n?", re.MULTILINE
)
_ARTIFACT_BLOCK = re.compile(r"\[Artifact:\s*([^\]]+?)\s+-\s+([^\]]+?)\s*\](.*?)\[/Artifact\]", re.DOTALL)
_FOLLOW_UP_LINE = re.compile(r"^[ \t]*follow[- ]?up:[ \t]*(.+?)[ \t]*$\n?", re.IGNORECASE | re.MULTILINE)
_LEAD_LINE = re.compile(r"^[ \t]*lead:[ \t]*(.+?)[ \t]*$\n?", re.IGNORECASE | re.MULTILINE)

STEP_CONFIDENCE = 0.6
DEFAULT_STEP_CONFIDENCE = 0.5


@dataclass
class ParsedFreeText:
    message: str
    reasoning: List[ReasoningStep] = field(default_factory=list)
    follow_up_questions: List[str] = field(default_factory=list)
    investigative_leads: List[str] = field(default_factory=list)
    artifacts: List[str] = field(default_factory=list)
    found_markers: bool = False


def parse_free_text_response(text: str) -> ParsedFreeText:
    """
    Splits a free-text model reply into message, reasoning and leads.

    Lines starting with a reasoning marker become reasoning steps,
    `[Artifact: TYPE - TITLE] ... [/Artifact]` blocks are removed from the
    message and kept as leads, and `Follow-up:` / `Lead:` lines are collected.
    Text without any markers is returned whole as the message with a single
    default reasoning step.
    """
    text = text or ""
    artifacts = [f"{kind.strip()}: {title.strip()}" for kind, title, _ in _ARTIFACT_BLOCK.findall(text)]
    remaining = _ARTIFACT_BLOCK.sub("", text)

    reasoning: List[ReasoningStep] = []
    for marker, description in _REASONING_LINE.findall(remaining):
        if not description:
            continue
        reasoning.append(
            ReasoningStep(
                step_number=len(reasoning) + 1,
                description=description,
                kind=REASONING_MARKERS[marker],
                confidence=STEP_CONFIDENCE,
            )
        )
    follow_ups = _FOLLOW_UP_LINE.findall(remaining)
    leads = _LEAD_LINE.findall(remaining)

    for pattern in (_REASONING_LINE, _FOLLOW_UP_LINE, _LEAD_LINE):
        remaining = pattern.sub("", remaining)
    message = re.sub(r"\n\s*\n+", "\n\n", remaining).strip()

    found_markers = bool(reasoning or follow_ups or leads or artifacts)
    if not reasoning:
        reasoning.append(
            ReasoningStep(
                step_number=1,
                description="Generated a free-text reply without explicit reasoning markers.",
                kind="synthesis",
                confidence=DEFAULT_STEP_CONFIDENCE,
            )
        )

    return ParsedFreeText(
        message=message,
        reasoning=reasoning,
        follow_up_questions=follow_ups,
        investigative_leads=leads + artifacts,
        artifacts=artifacts,
        found_markers=found_markers,
    )


class FreeTextGenerationStrategy(ResponseStrategy):
    """Asks the model for plain text and recovers the response structure from marker lines."""

    name = "free_text"

    def __init__(self, llm_service: LLMService, assistant_name: str = "Jordi"):
        self.llm_service = llm_service
        self.assistant_name = assistant_name

    @classmethod
    def from_config(
        cls,
        strategy_config: DictConfig,
        llm_config: DictConfig,
        prompts_base_path: Path,
        assistant_name: str = "Jordi",
    ) -> FreeTextGenerationStrategy:
        llm_service = LLMService.from_config(
            agent_prompts_dir=strategy_config.prompts_dir,
            provider_key=strategy_config.llm_provider_key,
            llm_config=llm_config,
            prompts_base_path=prompts_base_path,
        )
        return cls(llm_service, assistant_name=assistant_name)

    async def generate(self, generation_input: GenerationInput) -> StrategyResult:
        variables = build_prompt_variables(generation_input, self.assistant_name)
        raw_text = await self.llm_service.generate_text(variables)

        parsed = parse_free_text_response(raw_text)
        if not parsed.message:
            return ValidationFailure(self.name, ["Model reply contained no conversational text."])
        if not parsed.found_markers:
            logger.info("Free-text reply had no structure markers; using it verbatim.")

        limitations = ["Reasoning was recovered from unstructured text."]
        if not generation_input.ranked_records:
            limitations.append("No archive records were available for this reply.")

        return AgentResponse(
            message=parsed.message,
            reasoning_steps=parsed.reasoning,
            follow_up_questions=parsed.follow_up_questions,
            investigative_leads=parsed.investigative_leads,
            confidence_assessment=ConfidenceAssessment(
                overall=0.55 if parsed.found_markers else 0.45,
                reasoning="Free-text generation parsed into reasoning and leads.",
                limitations=limitations,
            ),
            data_sources_used=[record.title for record in generation_input.ranked_records[:3]],
        )
