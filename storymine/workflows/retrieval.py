import logging
from typing import List

from storymine.analysis.intent import DIVERSE_SAMPLE_INTENTS, INTENT_SEARCH_TERMS, Intent
from storymine.analysis.keywords import extract_keywords
from storymine.database.base import CorpusSearch
from storymine.models.corpus_models import CorpusRecord
from storymine.models.generation import RetrievalResult

logger = logging.getLogger(__name__)


class CorpusRetriever:
    """
    Builds the corpus query for a turn and shields the turn from corpus failures.

    Errors from the search collaborator count as zero records. A keyword
    search that finds nothing is re-issued as a keyword-less request for the
    diverse high-confidence sample.
    """

    def __init__(
        self,
        corpus_search: CorpusSearch,
        max_keywords: int = 8,
        keyword_search_limit: int = 25,
        diverse_sample_limit: int = 15,
    ):
        self.corpus_search = corpus_search
        self.max_keywords = max_keywords
        self.keyword_search_limit = keyword_search_limit
        self.diverse_sample_limit = diverse_sample_limit

    def build_search_keywords(self, message: str, intent: Intent) -> List[str]:
        """Intent seed terms first, then the message's own keywords."""
        if intent in DIVERSE_SAMPLE_INTENTS:
            return []

        keywords: List[str] = []
        for term in INTENT_SEARCH_TERMS.get(intent, []) + extract_keywords(message, self.max_keywords):
            if term not in keywords:
                keywords.append(term)
        return keywords[: self.max_keywords]

    async def _safe_search(self, keywords: List[str], limit: int) -> List[CorpusRecord]:
        try:
            return list(await self.corpus_search.search(keywords, limit))
        except Exception as e:
            logger.warning(f"Corpus search for {keywords or 'diverse sample'} failed; treating as empty: {e}")
            return []

    async def retrieve(self, keywords: List[str]) -> RetrievalResult:
        if not keywords:
            records = await self._safe_search([], self.diverse_sample_limit)
            return RetrievalResult(keywords=[], records=records)

        records = await self._safe_search(keywords, self.keyword_search_limit)
        if records:
            logger.info(f"Corpus search for {keywords} returned {len(records)} records.")
            return RetrievalResult(keywords=keywords, records=records)

        logger.info(f"No records matched {keywords}; falling back to the diverse sample.")
        sample = await self._safe_search([], self.diverse_sample_limit)
        return RetrievalResult(keywords=keywords, records=sample, used_fallback_sample=True)
