from typing import Dict

from storymine.agents.base import ResponseStrategy, StrategyResult
from storymine.analysis.intent import Intent
from storymine.models.agent_models import AgentResponse, ConfidenceAssessment, ReasoningStep
from storymine.models.generation import GenerationInput

CANNED_REPLIES: Dict[Intent, str] = {
    Intent.GREETING: (
        "Hey there. I can help you find and explore stories, or dig into something "
        "you're curious about. What's on your mind?"
    ),
    Intent.STORY_OVERVIEW: (
        "Right now I'm loaded with material from the Atlanta Journal-Constitution, mostly "
        "covering the 1940s and 1950s. Some of it's pretty wild: murders, scandals, missing "
        "persons, public cover-ups. Want to narrow it down?"
    ),
    Intent.MISSING_PERSONS: (
        "Plenty of eerie ones. A city councilman vanished on the way to a meeting in 1948, "
        "no body, no note. Should I dig into that one?"
    ),
    Intent.POLICE_CORRUPTION: (
        "I've seen some odd articles from the '50s involving beatings, bribes, and a few "
        "trials. Want me to start lining up a timeline?"
    ),
}
SHORT_CRIME_REPLY = (
    "That opens up a lot of possibilities. Want something sensational, tragic, or unresolved?"
)
GENERIC_REPLY = (
    "I can help you find and explore stories from the archive, or dig into something "
    "you're curious about. What's on your mind?"
)


class CannedReplyStrategy(ResponseStrategy):
    """
    Rule-based replies keyed by intent. Needs nothing but the intent label,
    so it always produces a response.
    """

    name = "canned"

    def _select_reply(self, generation_input: GenerationInput) -> str:
        intent = generation_input.intent
        if intent == Intent.CRIME.value and len(generation_input.user_message.split()) <= 3:
            return SHORT_CRIME_REPLY
        for known_intent, reply in CANNED_REPLIES.items():
            if known_intent.value == intent:
                return reply
        return ""

    async def generate(self, generation_input: GenerationInput) -> StrategyResult:
        reply = self._select_reply(generation_input)
        matched = bool(reply)

        return AgentResponse(
            message=reply or GENERIC_REPLY,
            reasoning_steps=[
                ReasoningStep(
                    step_number=1,
                    description=(
                        f"Detected intent '{generation_input.intent}' and used the matching conversational reply."
                        if matched
                        else "No specific reply for this request; inviting the user to pick a direction."
                    ),
                    kind="analysis",
                    confidence=0.7 if matched else 0.4,
                )
            ],
            follow_up_questions=["Want me to look for something sensational, tragic, or unresolved?"],
            investigative_leads=[],
            confidence_assessment=ConfidenceAssessment(
                overall=0.5 if matched else 0.3,
                reasoning="Rule-based reply chosen from the detected intent.",
                limitations=["No archive records were consulted for this reply."],
            ),
        )
