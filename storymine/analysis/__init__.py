from .intent import DIVERSE_SAMPLE_INTENTS, INTENT_SEARCH_TERMS, Intent, classify_intent
from .keywords import extract_keywords

__all__ = [
    "DIVERSE_SAMPLE_INTENTS",
    "INTENT_SEARCH_TERMS",
    "Intent",
    "classify_intent",
    "extract_keywords",
]
