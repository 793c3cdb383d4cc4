import logging
import re
from typing import List, Optional

from storymine.agents.base import ResponseStrategy, StrategyResult
from storymine.analysis.intent import Intent
from storymine.exceptions import StrategyDeclined
from storymine.models.agent_models import AgentResponse, ConfidenceAssessment, ReasoningStep
from storymine.models.corpus_models import CorpusRecord
from storymine.models.generation import GenerationInput

logger = logging.getLogger(__name__)

MAX_MENTIONED_RECORDS = 3
_QUOTES = re.compile(r"[\"“”]")
_CRIME_TERMS = ("murder", "kill", "death", "found dead", "slain", "shot")
DIFFERENT_ANGLE_QUESTION = "Want to try a different angle, like a person, a place, or a specific year?"


def clean_title(title: str) -> str:
    """Removes quotation marks and surrounding whitespace from a headline."""
    return " ".join(_QUOTES.sub("", title or "").split())


def record_year(record: CorpusRecord, placeholder: str) -> str:
    return str(record.publication_date.year) if record.publication_date else placeholder


def _is_crime_record(record: CorpusRecord) -> bool:
    title = record.title.lower()
    return any(term in title for term in _CRIME_TERMS) or any("crime" in t.lower() for t in record.story_types)


class CorpusTemplateStrategy(ResponseStrategy):
    """
    Builds a reply directly from the top-ranked corpus records, without any
    language model.

    Pacing rule: at most three records are mentioned and the reply always
    closes with an open question, so the user picks the direction instead of
    receiving a dump of headlines.
    """

    name = "corpus_template"

    async def generate(self, generation_input: GenerationInput) -> StrategyResult:
        if generation_input.intent == Intent.GREETING.value:
            raise StrategyDeclined("Greetings are not answered from corpus records.")

        records = generation_input.ranked_records
        if not records:
            return self._no_records_response(generation_input)
        if generation_input.used_fallback_sample and generation_input.search_keywords:
            return self._fallback_sample_response(generation_input)

        top = records[:MAX_MENTIONED_RECORDS]
        intent = generation_input.intent
        if intent == Intent.CRIME.value:
            message, mentioned = self._crime_message(top)
        elif intent in (Intent.POLITICAL.value, Intent.POLICE_CORRUPTION.value):
            message, mentioned = self._political_message(top)
        else:
            total = len(records) + generation_input.omitted_record_count
            message, mentioned = self._general_message(top, total)

        return self._build_response(
            generation_input,
            message=message,
            mentioned=mentioned,
            overall=0.6 if mentioned else 0.4,
            reasoning=f"Reply drawn from {len(records)} ranked archive records without model generation.",
        )

    # --- Message variants ---

    def _crime_message(self, top: List[CorpusRecord]):
        crime_records = [record for record in top if _is_crime_record(record)]
        if not crime_records:
            return (
                "I don't see any obvious murder mysteries in what I'm finding right now. "
                "Want me to search for suspicious deaths or unexplained disappearances instead?",
                [],
            )

        first = crime_records[0]
        message = "I've got some intriguing unsolved cases from the Atlanta archives. "
        message += (
            f"There's a {record_year(first, 'unknown year')} case that really caught my attention: "
            f"{clean_title(first.title)}. "
        )
        if len(crime_records) > 1:
            message += "Plus a couple other mysterious deaths from that era. "
        message += "Want me to dig deeper into any of these?"
        return message, crime_records

    def _political_message(self, top: List[CorpusRecord]):
        first = top[0]
        message = "The political scene in 1940s-50s Atlanta had its share of drama. "
        message += f"One case from {record_year(first, 'that era')} involved {clean_title(first.title).lower()}. "
        message += "Should I pull more details on that one?"
        return message, [first]

    def _general_message(self, top: List[CorpusRecord], total: int):
        first = top[0]
        noun = "article" if total == 1 else "articles"
        message = f"I found {total} {noun} that might interest you. "
        message += f"One from {record_year(first, 'the period')} caught my eye: {clean_title(first.title)}. "
        if len(top) > 1:
            message += "There are a couple others from that era too. "
        message += "What angle interests you most?"
        return message, top

    def _fallback_sample_response(self, generation_input: GenerationInput) -> AgentResponse:
        first = generation_input.ranked_records[0]
        topic = ", ".join(generation_input.search_keywords[:3])
        message = (
            f"I'm not finding much on {topic} specifically. "
            f"The strongest story in the wider archive is a {record_year(first, 'period')} piece: "
            f"{clean_title(first.title)}. Want me to dig into that one, or try a different angle?"
        )
        return self._build_response(
            generation_input,
            message=message,
            mentioned=[first],
            overall=0.35,
            reasoning="No records matched the search terms; suggesting from the broader archive sample.",
            limitations=[f"No archive records matched: {topic}."],
            extra_follow_ups=[DIFFERENT_ANGLE_QUESTION],
        )

    def _no_records_response(self, generation_input: GenerationInput) -> AgentResponse:
        return AgentResponse(
            message=(
                "I'm not finding much on that specific angle right now. "
                "Want to try a different approach or topic?"
            ),
            reasoning_steps=[
                ReasoningStep(
                    step_number=1,
                    description="No relevant archive records were found for this request.",
                    kind="evidence_review",
                    confidence=0.8,
                )
            ],
            follow_up_questions=[DIFFERENT_ANGLE_QUESTION],
            investigative_leads=[],
            confidence_assessment=ConfidenceAssessment(
                overall=0.2,
                reasoning="Nothing in the archive could be retrieved for this request.",
                limitations=["The corpus search returned no records."],
            ),
        )

    # --- Assembly ---

    def _build_response(
        self,
        generation_input: GenerationInput,
        message: str,
        mentioned: List[CorpusRecord],
        overall: float,
        reasoning: str,
        limitations: Optional[List[str]] = None,
        extra_follow_ups: Optional[List[str]] = None,
    ) -> AgentResponse:
        records = generation_input.ranked_records
        steps = [
            ReasoningStep(
                step_number=1,
                description=f"Found {len(records)} relevant archive records.",
                kind="evidence_review",
                confidence=0.7,
            ),
            ReasoningStep(
                step_number=2,
                description=f"Selected {len(mentioned)} of the top-ranked records to mention.",
                kind="analysis",
                confidence=0.6,
            ),
            ReasoningStep(
                step_number=3,
                description="Generated a conversational reply that leaves the next direction to the user.",
                kind="synthesis",
                confidence=0.6,
            ),
        ]

        follow_ups = list(extra_follow_ups or [])
        if mentioned:
            follow_ups.append(f"Want me to dig deeper into {clean_title(mentioned[0].title)}?")
            follow_ups.append("Should I look for related coverage from the same year?")

        leads: List[str] = []
        for record in mentioned:
            for story_type in record.story_types:
                if story_type not in leads:
                    leads.append(story_type)

        return AgentResponse(
            message=message,
            reasoning_steps=steps,
            follow_up_questions=follow_ups,
            investigative_leads=leads,
            confidence_assessment=ConfidenceAssessment(
                overall=overall,
                reasoning=reasoning,
                limitations=(limitations or []) + ["Template reply; no model analysis of article content."],
            ),
            data_sources_used=[clean_title(record.title) for record in mentioned],
        )
