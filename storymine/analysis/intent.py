import re
from enum import Enum
from typing import Callable, Dict, List, Tuple


class Intent(str, Enum):
    GREETING = "greeting"
    STORY_OVERVIEW = "seeking_story_overview"
    POLICE_CORRUPTION = "seeking_police_corruption"
    CRIME = "seeking_crime_stories"
    MISSING_PERSONS = "seeking_missing_persons"
    POLITICAL = "seeking_political_stories"
    MILITARY = "seeking_military_stories"
    DOCUMENTARY = "seeking_documentary_content"
    DRAMATIC = "seeking_dramatic_stories"
    ALTERNATIVE = "seeking_alternative_story"
    EXPAND_CURRENT = "expanding_current_story"
    GENERAL_EXPLORATION = "general_exploration"


_GREETING = re.compile(r"^(hi|hello|hey|howdy|good (morning|afternoon|evening))( there)?\s*[.!?]*$")
_OVERVIEW = re.compile(
    r"what (kind|kinds|sort|sorts) of (stories|articles)|what (stories|articles) do you have|^what do you have\s*[.!?]*$"
)
_WORD = "\\b({})\\b"


def _words(*words: str) -> Callable[[str], bool]:
    pattern = re.compile(_WORD.format("|".join(words)))
    return lambda text: pattern.search(text) is not None


def _contains(*fragments: str) -> Callable[[str], bool]:
    return lambda text: any(fragment in text for fragment in fragments)


def _police_corruption(text: str) -> bool:
    return "police" in text and ("corrupt" in text or "brib" in text)


# Evaluated top to bottom; the first matching rule wins.
_RULES: List[Tuple[Intent, Callable[[str], bool]]] = [
    (Intent.GREETING, lambda text: _GREETING.match(text) is not None),
    (Intent.POLICE_CORRUPTION, _police_corruption),
    (Intent.CRIME, _contains("murder", "kill", "homicide", "crime")),
    (Intent.MISSING_PERSONS, _contains("disappear", "missing", "vanish")),
    (Intent.POLITICAL, _contains("political", "politics", "scandal")),
    (Intent.MILITARY, _contains("soldier", "military", "veteran")),
    (Intent.DOCUMENTARY, _contains("documentary", "film")),
    (Intent.DRAMATIC, _contains("dramatic", "drama")),
    # Topic rules come first so "what stories do you have on X" searches for X.
    (Intent.STORY_OVERVIEW, lambda text: _OVERVIEW.search(text) is not None),
    (Intent.ALTERNATIVE, _words("another", "different", "something else")),
    (Intent.EXPAND_CURRENT, _words("yes", "yeah", "yep", "sure", "tell me more", "go on", "dig")),
]

# Seed terms that bias corpus retrieval for topic intents.
INTENT_SEARCH_TERMS: Dict[Intent, List[str]] = {
    Intent.POLICE_CORRUPTION: ["police", "corruption"],
    Intent.CRIME: ["murder"],
    Intent.MISSING_PERSONS: ["missing"],
    Intent.POLITICAL: ["political", "scandal"],
    Intent.MILITARY: ["military", "soldier"],
}

# Intents that should be answered from the broad, high-confidence sample.
DIVERSE_SAMPLE_INTENTS = frozenset({Intent.GREETING, Intent.STORY_OVERVIEW})


def classify_intent(message: str) -> Intent:
    """
    Maps a user message to exactly one intent.

    The rules form an ordered cascade of substring and regex tests, so a
    message mentioning both police corruption and murder is classified as
    police corruption. Anything unmatched is general exploration.
    """
    if not isinstance(message, str):
        return Intent.GENERAL_EXPLORATION

    text = " ".join(message.lower().split())
    for intent, matches in _RULES:
        if matches(text):
            return intent
    return Intent.GENERAL_EXPLORATION
