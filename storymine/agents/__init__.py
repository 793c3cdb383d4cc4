from .base import ResponseStrategy, StrategyResult, ValidationFailure
from .canned import CannedReplyStrategy
from .chain import ChainOutcome, ChainState, ResponseStrategyChain, StrategyAttempt, build_strategies, degraded_response
from .corpus_template import CorpusTemplateStrategy
from .free_text import FreeTextGenerationStrategy, parse_free_text_response
from .structured import StructuredGenerationStrategy
from .validator import ResponseValidator

__all__ = [
    "ResponseStrategy",
    "StrategyResult",
    "ValidationFailure",
    "CannedReplyStrategy",
    "ChainOutcome",
    "ChainState",
    "ResponseStrategyChain",
    "StrategyAttempt",
    "build_strategies",
    "degraded_response",
    "CorpusTemplateStrategy",
    "FreeTextGenerationStrategy",
    "parse_free_text_response",
    "StructuredGenerationStrategy",
    "ResponseValidator",
]
