import re
from typing import List

STOP_WORDS = frozenset(
    {
        "about", "above", "after", "again", "against", "also", "anything", "around",
        "been", "before", "being", "below", "between", "both", "could", "does",
        "doing", "down", "during", "each", "else", "every", "from", "further",
        "have", "having", "here", "into", "just", "kind", "know", "like", "look",
        "looking", "maybe", "more", "most", "much", "must", "need", "only", "other",
        "over", "please", "really", "same", "should", "show", "some", "something",
        "such", "tell", "than", "that", "their", "them", "then", "there", "these",
        "they", "thing", "things", "this", "those", "through", "under", "until",
        "very", "want", "what", "when", "where", "which", "while", "with", "would",
        "your", "yours", "you're", "stories", "story", "anyone", "find",
    }
)

_TOKEN_PATTERN = re.compile(r"[a-z0-9']+")


def extract_keywords(text: str, max_keywords: int = 8) -> List[str]:
    """
    Derives the salient search terms from free text.

    Tokens are lowercased, must be longer than 3 characters and must not be
    stop words. Duplicates are dropped and first-occurrence order is kept.
    No stemming and no ranking.

    Args:
        text: The raw user message.
        max_keywords: Upper bound on the number of returned terms.

    Returns:
        The extracted keywords, at most `max_keywords` of them.
    """
    if not text:
        return []

    keywords: List[str] = []
    seen = set()
    for token in _TOKEN_PATTERN.findall(text.lower()):
        token = token.strip("'")
        if len(token) <= 3 or token in STOP_WORDS or token in seen:
            continue
        seen.add(token)
        keywords.append(token)
        if len(keywords) >= max_keywords:
            break
    return keywords
