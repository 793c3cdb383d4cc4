from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Union

from storymine.models.agent_models import AgentResponse
from storymine.models.generation import GenerationInput


@dataclass(frozen=True)
class ValidationFailure:
    """A response that broke the structural contract, and why."""
    strategy_name: str
    violations: List[str] = field(default_factory=list)

    def __str__(self) -> str:
        return f"{self.strategy_name}: " + "; ".join(self.violations)


StrategyResult = Union[AgentResponse, ValidationFailure]


# --- Abstract Strategy ---
class ResponseStrategy(ABC):
    """
    One interchangeable way of producing an AgentResponse.

    Strategies are stateless given their GenerationInput and must never touch
    conversation memory. They may raise (including StrategyDeclined) or
    return a ValidationFailure; either way the chain moves on.
    """

    name: str = "strategy"

    @abstractmethod
    async def generate(self, generation_input: GenerationInput) -> StrategyResult:
        """Produces a response for the given turn."""
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
