from typing import List, Literal

from pydantic import BaseModel, Field

ReasoningKind = Literal["analysis", "synthesis", "hypothesis", "evidence_review", "conclusion"]


class ReasoningStep(BaseModel):
    """A single visible step in the assistant's reasoning."""

    step_number: int = Field(..., ge=1, description="1-based position of this step in the reasoning sequence.")
    description: str = Field(..., description="What was considered or concluded in this step.")
    kind: ReasoningKind = Field(
        "analysis",
        description="The nature of the step: analysis, synthesis, hypothesis, evidence_review or conclusion.",
    )
    confidence: float = Field(..., ge=0.0, le=1.0, description="Confidence in this step, between 0 and 1.")


class ConfidenceAssessment(BaseModel):
    """How much the assistant trusts its own reply, and why."""

    overall: float = Field(..., ge=0.0, le=1.0, description="Overall confidence in the reply, between 0 and 1.")
    reasoning: str = Field(..., description="Why the confidence is at this level.")
    limitations: List[str] = Field(
        default_factory=list,
        description="Known gaps or caveats, e.g. missing sources or thin coverage.",
    )


class AgentResponse(BaseModel):
    """
    The structured reply every response strategy must produce.

    The same model is bound to the language model as the structured-output
    schema, so the field descriptions double as instructions.
    """

    message: str = Field(
        ...,
        description="The conversational reply shown to the user. Calm, direct, and ending with a nudge or question.",
    )
    reasoning_steps: List[ReasoningStep] = Field(
        ...,
        description="The visible reasoning process, at least one step.",
    )
    follow_up_questions: List[str] = Field(
        default_factory=list,
        description="Questions the user could ask next to deepen the investigation.",
    )
    investigative_leads: List[str] = Field(
        default_factory=list,
        description="Short labels for promising research directions (people, places, events, themes).",
    )
    confidence_assessment: ConfidenceAssessment = Field(
        ...,
        description="Confidence in the reply and its limitations.",
    )
    data_sources_used: List[str] = Field(
        default_factory=list,
        description="Titles of the corpus records the reply draws on.",
    )


class FollowUpQuestions(BaseModel):
    """Structured-output schema for the follow-up question pass."""

    questions: List[str] = Field(
        ...,
        description="Three to five investigative follow-up questions, each a single sentence ending in a question mark.",
    )
