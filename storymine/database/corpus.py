import asyncio
import logging
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from storymine.database.base import CorpusSearch
from storymine.database.schema import scout_analyses, source_articles
from storymine.models.corpus_models import CorpusRecord

logger = logging.getLogger(__name__)

EXCERPT_LENGTH = 500


class SqlCorpusSearch(CorpusSearch):
    """
    Corpus search over the scout analysis tables.

    The SQLAlchemy engine is synchronous; queries are dispatched to a worker
    thread so callers can await them.
    """

    def __init__(self, engine: Engine, excerpt_length: int = EXCERPT_LENGTH):
        self._engine = engine
        self.excerpt_length = excerpt_length

    def _base_query(self):
        return select(
            scout_analyses.c.id,
            scout_analyses.c.confidence,
            scout_analyses.c.narrative_strength,
            scout_analyses.c.documentary_potential,
            scout_analyses.c.story_types,
            source_articles.c.title,
            source_articles.c.content,
            source_articles.c.date,
            source_articles.c.publication,
        ).join(source_articles, scout_analyses.c.article_id == source_articles.c.id)

    def build_query(self, keywords: List[str], limit: int):
        """Builds the SELECT for a keyword search, or the diverse sample when no keywords are given."""
        query = self._base_query()
        if not keywords:
            return (
                query.where(
                    scout_analyses.c.is_interesting.is_(True),
                    scout_analyses.c.documentary_potential.in_(["YES", "MAYBE"]),
                )
                .order_by(scout_analyses.c.confidence.desc(), scout_analyses.c.narrative_strength.desc())
                .limit(limit)
            )

        searchable = [
            source_articles.c.title,
            source_articles.c.content,
            scout_analyses.c.reasoning,
            scout_analyses.c.story_types,
        ]
        conditions = [
            func.lower(func.coalesce(column, "")).contains(keyword.lower(), autoescape=True)
            for keyword in keywords
            for column in searchable
        ]
        return query.where(or_(*conditions)).order_by(scout_analyses.c.confidence.desc()).limit(limit)

    def _row_to_record(self, row: Mapping[str, Any]) -> CorpusRecord:
        content = row["content"] or ""
        story_types = [part.strip() for part in (row["story_types"] or "").split(",") if part.strip()]
        potential = (row["documentary_potential"] or "NO").upper()
        return CorpusRecord(
            id=str(row["id"]),
            title=row["title"] or "Untitled",
            body_excerpt=content[: self.excerpt_length],
            publication_date=_as_date(row["date"]),
            relevance_score=min(max(float(row["confidence"] or 0.0), 0.0), 1.0),
            documentary_potential=potential if potential in ("YES", "MAYBE", "NO") else "NO",
            narrative_strength=float(row["narrative_strength"] or 0.0),
            story_types=story_types,
            publication=row["publication"],
        )

    def _search_sync(self, keywords: List[str], limit: int) -> List[CorpusRecord]:
        query = self.build_query(keywords, limit)
        with self._engine.connect() as connection:
            rows = connection.execute(query).mappings().all()
        return [self._row_to_record(row) for row in rows]

    async def search(self, keywords: List[str], limit: int) -> List[CorpusRecord]:
        """
        Returns ranked corpus records.

        Raises:
            RuntimeError: If the database query fails.
        """
        try:
            return await asyncio.to_thread(self._search_sync, list(keywords), limit)
        except SQLAlchemyError as e:
            raise RuntimeError(f"Corpus search failed: {e}") from e

    def _stats_sync(self) -> Dict[str, Any]:
        with self._engine.connect() as connection:
            total = connection.execute(select(func.count()).select_from(source_articles)).scalar_one()
            analyzed = connection.execute(select(func.count()).select_from(scout_analyses)).scalar_one()
            interesting = connection.execute(
                select(func.count()).select_from(scout_analyses).where(scout_analyses.c.is_interesting.is_(True))
            ).scalar_one()
        return {
            "total_articles": total,
            "analyzed_articles": analyzed,
            "interesting_articles": interesting,
            "interesting_percentage": round(interesting / analyzed * 100, 1) if analyzed else 0.0,
        }

    async def corpus_stats(self) -> Dict[str, Any]:
        """Counts of imported, analysed and interesting articles."""
        try:
            return await asyncio.to_thread(self._stats_sync)
        except SQLAlchemyError as e:
            raise RuntimeError(f"Could not compute corpus statistics: {e}") from e


def _as_date(value: Any) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.fromisoformat(str(value)).date()
    except ValueError:
        return None
