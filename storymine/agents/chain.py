import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Sequence

from omegaconf import DictConfig

from storymine.agents.base import ResponseStrategy, ValidationFailure
from storymine.agents.canned import CannedReplyStrategy
from storymine.agents.corpus_template import CorpusTemplateStrategy
from storymine.agents.free_text import FreeTextGenerationStrategy
from storymine.agents.structured import StructuredGenerationStrategy
from storymine.agents.validator import ResponseValidator
from storymine.exceptions import StrategyDeclined
from storymine.models.agent_models import AgentResponse, ConfidenceAssessment, ReasoningStep
from storymine.models.generation import GenerationInput

logger = logging.getLogger(__name__)

DEGRADED_CONFIDENCE = 0.2
KNOWN_STRATEGIES = frozenset(
    {
        StructuredGenerationStrategy.name,
        FreeTextGenerationStrategy.name,
        CorpusTemplateStrategy.name,
        CannedReplyStrategy.name,
    }
)


class ChainState(str, Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED_TERMINAL = "failed_terminal"


@dataclass(frozen=True)
class StrategyAttempt:
    strategy_name: str
    status: str  # "succeeded", "error", "timeout", "declined" or "rejected"
    detail: str = ""


@dataclass
class ChainOutcome:
    state: ChainState
    response: AgentResponse
    strategy_name: Optional[str] = None
    attempts: List[StrategyAttempt] = field(default_factory=list)


def degraded_response(attempts: Sequence[StrategyAttempt] = ()) -> AgentResponse:
    """The static reply returned when every strategy has failed, naming each failed attempt."""
    if attempts:
        failures = ", ".join(f"{attempt.strategy_name}: {attempt.status}" for attempt in attempts)
        description = f"Every response strategy failed ({failures}); returning a reduced-capability reply."
    else:
        description = "No response strategy is configured; returning a reduced-capability reply."
    return AgentResponse(
        message=(
            "I'm having trouble accessing my full capabilities right now, but I can still "
            "help you explore stories. What's on your mind?"
        ),
        reasoning_steps=[
            ReasoningStep(
                step_number=1,
                description=description,
                kind="analysis",
                confidence=0.1,
            )
        ],
        follow_up_questions=["Want to try asking about a specific person, place, or year?"],
        investigative_leads=[],
        confidence_assessment=ConfidenceAssessment(
            overall=DEGRADED_CONFIDENCE,
            reasoning="No response strategy produced a valid reply.",
            limitations=["Generation services are currently unavailable."],
        ),
    )


class ResponseStrategyChain:
    """
    Tries each strategy once, in order, until one yields a valid response.

    A strategy fails when it raises, exceeds the per-strategy timeout, returns
    a ValidationFailure or produces a response the validator rejects. When
    none is left, the chain ends in FAILED_TERMINAL with the degraded reply.
    """

    def __init__(
        self,
        strategies: Sequence[ResponseStrategy],
        validator: Optional[ResponseValidator] = None,
        timeout_seconds: Optional[float] = 45.0,
    ):
        self.strategies = list(strategies)
        self.validator = validator or ResponseValidator()
        self.timeout_seconds = timeout_seconds

    @property
    def strategy_names(self) -> List[str]:
        return [strategy.name for strategy in self.strategies]

    async def _attempt(self, strategy: ResponseStrategy, generation_input: GenerationInput):
        if self.timeout_seconds:
            return await asyncio.wait_for(strategy.generate(generation_input), timeout=self.timeout_seconds)
        return await strategy.generate(generation_input)

    async def run(self, generation_input: GenerationInput) -> ChainOutcome:
        attempts: List[StrategyAttempt] = []

        for strategy in self.strategies:
            try:
                result = await self._attempt(strategy, generation_input)
            except asyncio.TimeoutError:
                logger.warning(f"Strategy '{strategy.name}' timed out after {self.timeout_seconds}s.")
                attempts.append(StrategyAttempt(strategy.name, "timeout", f"{self.timeout_seconds}s"))
                continue
            except StrategyDeclined as e:
                logger.info(f"Strategy '{strategy.name}' declined: {e}")
                attempts.append(StrategyAttempt(strategy.name, "declined", str(e)))
                continue
            except Exception as e:
                logger.warning(f"Strategy '{strategy.name}' failed: {e}", exc_info=True)
                attempts.append(StrategyAttempt(strategy.name, "error", f"{type(e).__name__}: {e}"))
                continue

            failure = result if isinstance(result, ValidationFailure) else self.validator.validate(result, strategy.name)
            if failure is not None:
                logger.warning(f"Strategy '{strategy.name}' response rejected: {failure}")
                attempts.append(StrategyAttempt(strategy.name, "rejected", "; ".join(failure.violations)))
                continue

            attempts.append(StrategyAttempt(strategy.name, "succeeded"))
            logger.info(f"Strategy '{strategy.name}' produced the response.")
            return ChainOutcome(ChainState.SUCCEEDED, result, strategy.name, attempts)

        logger.error(f"All {len(self.strategies)} response strategies failed; returning degraded response.")
        return ChainOutcome(ChainState.FAILED_TERMINAL, degraded_response(attempts), None, attempts)


def build_strategies(
    assistant_config: DictConfig,
    llm_config: DictConfig,
    prompts_base_path: Path,
) -> List[ResponseStrategy]:
    """
    Instantiates the strategies named in `strategy_order`.

    LLM-backed strategies whose provider cannot be built (missing package,
    missing API key, bad parameters) are logged and left out of the chain.
    """
    assistant_name = assistant_config.get("name", "Jordi")
    strategies_config = assistant_config.get("strategies", {})
    strategies: List[ResponseStrategy] = []

    for name in assistant_config.get("strategy_order", []):
        if name not in KNOWN_STRATEGIES:
            raise ValueError(f"Unknown response strategy '{name}'. Known strategies: {sorted(KNOWN_STRATEGIES)}")
        try:
            if name == StructuredGenerationStrategy.name:
                strategies.append(
                    StructuredGenerationStrategy.from_config(
                        strategies_config[name], llm_config, prompts_base_path, assistant_name
                    )
                )
            elif name == FreeTextGenerationStrategy.name:
                strategies.append(
                    FreeTextGenerationStrategy.from_config(
                        strategies_config[name], llm_config, prompts_base_path, assistant_name
                    )
                )
            elif name == CorpusTemplateStrategy.name:
                strategies.append(CorpusTemplateStrategy())
            else:
                strategies.append(CannedReplyStrategy())
        except Exception as e:
            logger.warning(f"Response strategy '{name}' is unavailable and will be skipped: {e}")

    if not strategies:
        logger.warning("No response strategies configured; every turn will get the degraded response.")
    return strategies
