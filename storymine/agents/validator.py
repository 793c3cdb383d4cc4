import math
from typing import Any, List, Optional

from storymine.agents.base import ValidationFailure
from storymine.models.agent_models import AgentResponse


def _in_unit_interval(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and 0.0 <= value <= 1.0


class ResponseValidator:
    """
    Checks a candidate response against the structural contract every
    strategy must satisfy before the response is accepted.
    """

    def validate(self, response: Any, strategy_name: str = "unknown") -> Optional[ValidationFailure]:
        """
        Validates a candidate response without modifying it.

        Args:
            response: The candidate produced by a strategy.
            strategy_name: Which strategy produced it, for reporting.

        Returns:
            None when the response is acceptable, otherwise a ValidationFailure
            listing every violation found.
        """
        if not isinstance(response, AgentResponse):
            return ValidationFailure(
                strategy_name,
                [f"Expected an AgentResponse, got {type(response).__name__}."],
            )

        violations: List[str] = []

        if not isinstance(response.message, str) or not response.message.strip():
            violations.append("Message is empty.")

        steps = response.reasoning_steps or []
        if len(steps) == 0:
            violations.append("At least one reasoning step is required.")
        for index, step in enumerate(steps, start=1):
            if not _in_unit_interval(getattr(step, "confidence", None)):
                violations.append(f"Reasoning step {index} has confidence outside [0, 1].")

        assessment = response.confidence_assessment
        if assessment is None or not _in_unit_interval(getattr(assessment, "overall", None)):
            violations.append("Overall confidence is missing or outside [0, 1].")

        if violations:
            return ValidationFailure(strategy_name, violations)
        return None
