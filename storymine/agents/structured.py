from __future__ import annotations
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from omegaconf import DictConfig, OmegaConf

from storymine.agents.base import ResponseStrategy, StrategyResult
from storymine.llm import LLMService
from storymine.models.agent_models import AgentResponse, FollowUpQuestions
from storymine.models.generation import GenerationInput
from storymine.workflows.context import build_prompt_variables

logger = logging.getLogger(__name__)


class StructuredGenerationStrategy(ResponseStrategy):
    """
    Asks the language model for an AgentResponse directly, using tool-calling
    structured output. Highest quality, and the most likely to fail since it
    depends on an external provider.

    When a follow-up service is configured and the response offers fewer than
    `min_follow_up_questions`, a second structured call tops the list up to at
    most `max_follow_up_questions`. That second call is best-effort: if it
    fails, the primary response is returned as it was.
    """

    name = "structured"

    def __init__(
        self,
        llm_service: LLMService,
        assistant_name: str = "Jordi",
        structured_output_kwargs: Optional[Dict[str, Any]] = None,
        follow_up_service: Optional[LLMService] = None,
        min_follow_up_questions: int = 3,
        max_follow_up_questions: int = 5,
    ):
        self.llm_service = llm_service
        self.assistant_name = assistant_name
        self.structured_output_kwargs = structured_output_kwargs or {}
        self.follow_up_service = follow_up_service
        self.min_follow_up_questions = min_follow_up_questions
        self.max_follow_up_questions = max_follow_up_questions

    @classmethod
    def from_config(
        cls,
        strategy_config: DictConfig,
        llm_config: DictConfig,
        prompts_base_path: Path,
        assistant_name: str = "Jordi",
    ) -> StructuredGenerationStrategy:
        llm_service = LLMService.from_config(
            agent_prompts_dir=strategy_config.prompts_dir,
            provider_key=strategy_config.llm_provider_key,
            llm_config=llm_config,
            prompts_base_path=prompts_base_path,
        )
        structured_output = strategy_config.get("structured_output") or {}
        if isinstance(structured_output, DictConfig):
            structured_output = OmegaConf.to_container(structured_output, resolve=True)

        follow_up_config = strategy_config.get("follow_up")
        follow_up_service = None
        follow_up_limits: Dict[str, int] = {}
        if follow_up_config:
            follow_up_service = LLMService.from_config(
                agent_prompts_dir=follow_up_config.get("prompts_dir", "follow_up_questions"),
                provider_key=follow_up_config.get("llm_provider_key", strategy_config.llm_provider_key),
                llm_config=llm_config,
                prompts_base_path=prompts_base_path,
            )
            follow_up_limits = {
                "min_follow_up_questions": follow_up_config.get("min_questions", 3),
                "max_follow_up_questions": follow_up_config.get("max_questions", 5),
            }

        return cls(
            llm_service,
            assistant_name=assistant_name,
            structured_output_kwargs=structured_output,
            follow_up_service=follow_up_service,
            **follow_up_limits,
        )

    async def generate_follow_up_questions(
        self, generation_input: GenerationInput, response: AgentResponse
    ) -> List[str]:
        """
        Asks the follow-up service for investigative questions about the reply.

        Returns the response's own questions followed by the new, distinct
        ones, stopping once `max_follow_up_questions` is reached.

        Raises:
            ValueError: If no follow-up service is configured.
        """
        if self.follow_up_service is None:
            raise ValueError("No follow-up service configured for the structured strategy.")

        variables = build_prompt_variables(generation_input, self.assistant_name)
        variables["recent_response"] = response.message
        variables["existing_questions"] = (
            "\n".join(f"- {question}" for question in response.follow_up_questions) or "None."
        )
        generated = await self.follow_up_service.generate_structured(
            variables=variables,
            response_model=FollowUpQuestions,
            **self.structured_output_kwargs,
        )

        questions = list(response.follow_up_questions)
        for question in generated.questions:
            question = question.strip()
            if len(questions) >= self.max_follow_up_questions:
                break
            if question and question not in questions:
                questions.append(question)
        return questions

    async def generate(self, generation_input: GenerationInput) -> StrategyResult:
        variables = build_prompt_variables(generation_input, self.assistant_name)
        response = await self.llm_service.generate_structured(
            variables=variables,
            response_model=AgentResponse,
            **self.structured_output_kwargs,
        )

        if not response.investigative_leads:
            logger.warning("Structured response carries no investigative leads.")

        if self.follow_up_service is not None and len(response.follow_up_questions) < self.min_follow_up_questions:
            try:
                questions = await self.generate_follow_up_questions(generation_input, response)
            except Exception as e:
                logger.warning(f"Follow-up question generation failed; keeping the reply's own questions: {e}")
            else:
                logger.info(f"Follow-up pass raised the question count from {len(response.follow_up_questions)} to {len(questions)}.")
                response = response.model_copy(update={"follow_up_questions": questions})
        return response
