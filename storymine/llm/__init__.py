from .llm_factory import LLMFactory
from .prompt_manager import PromptManager
from .llm_service import LLMService

__all__ = [
    "LLMFactory",
    "PromptManager",
    "LLMService",
]
