from .agent_models import AgentResponse, ConfidenceAssessment, FollowUpQuestions, ReasoningStep
from .corpus_models import CorpusRecord, ProjectMetadata
from .generation import GenerationInput, RetrievalResult

__all__ = [
    "AgentResponse",
    "ConfidenceAssessment",
    "FollowUpQuestions",
    "ReasoningStep",
    "CorpusRecord",
    "ProjectMetadata",
    "GenerationInput",
    "RetrievalResult",
]
