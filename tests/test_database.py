from datetime import datetime

import pytest
from omegaconf import OmegaConf
from sqlalchemy import insert, inspect, select

from storymine.database import (
    DatabaseManager,
    SqlConversationRepository,
    SqlCorpusSearch,
    SqlProjectRepository,
)
from storymine.database.schema import conversations, projects, scout_analyses, source_articles
from storymine.database.strategy import PostgresConnectionStrategy, SqliteConnectionStrategy
from storymine.memory.state import ChatMessage, ConversationContext

ARTICLES = [
    # id, title, content, date, is_interesting, potential, confidence, strength, story types, reasoning
    ("a1", "Councilman Vanishes Before Meeting", "No trace was found.", datetime(1948, 3, 2), True, "YES", 0.9, 0.8, "mystery, politics", "Unresolved disappearance."),
    ("a2", "Grocer Slain on Auburn Avenue", "Police seek a suspect.", datetime(1946, 7, 9), True, "MAYBE", 0.7, 0.9, "crime", "Unsolved murder."),
    ("a3", "Church Bake Sale Raises $40", "A pleasant afternoon.", datetime(1951, 5, 1), False, "NO", 0.95, 0.1, "", "Routine."),
    ("a4", "Police Chief Accused of Taking Bribes", "100% of the precinct implicated.", None, True, "YES", 1.4, 0.6, "corruption", "Scandal."),
]


@pytest.fixture
def corpus_engine(sqlite_engine):
    with sqlite_engine.begin() as connection:
        for article_id, title, content, date, interesting, potential, confidence, strength, types, reasoning in ARTICLES:
            connection.execute(
                insert(source_articles).values(
                    id=article_id, title=title, content=content, date=date, publication="AJC"
                )
            )
            connection.execute(
                insert(scout_analyses).values(
                    id=f"s-{article_id}",
                    article_id=article_id,
                    is_interesting=interesting,
                    documentary_potential=potential,
                    confidence=confidence,
                    narrative_strength=strength,
                    story_types=types,
                    reasoning=reasoning,
                )
            )
    return sqlite_engine


class TestSqlCorpusSearch:
    @pytest.mark.asyncio
    async def test_keyword_search_matches_any_field(self, corpus_engine):
        search = SqlCorpusSearch(corpus_engine)

        records = await search.search(["murder"], 10)

        assert [r.title for r in records] == ["Grocer Slain on Auburn Avenue"]
        assert records[0].story_types == ["crime"]
        assert records[0].publication_date.year == 1946

    @pytest.mark.asyncio
    async def test_keyword_search_is_case_insensitive_and_ranked(self, corpus_engine):
        records = await SqlCorpusSearch(corpus_engine).search(["POLICE", "vanish"], 10)

        assert [r.id for r in records] == ["s-a4", "s-a1", "s-a2"]

    @pytest.mark.asyncio
    async def test_relevance_is_clamped(self, corpus_engine):
        records = await SqlCorpusSearch(corpus_engine).search(["bribes"], 10)
        assert records[0].relevance_score == 1.0
        assert records[0].publication_date is None

    @pytest.mark.asyncio
    async def test_wildcards_are_literal(self, corpus_engine):
        assert [r.id for r in await SqlCorpusSearch(corpus_engine).search(["100%"], 10)] == ["s-a4"]
        assert await SqlCorpusSearch(corpus_engine).search(["_"], 10) == []

    @pytest.mark.asyncio
    async def test_diverse_sample_only_has_interesting_records(self, corpus_engine):
        records = await SqlCorpusSearch(corpus_engine).search([], 2)

        assert [r.id for r in records] == ["s-a4", "s-a1"]
        assert all(r.documentary_potential in ("YES", "MAYBE") for r in records)

    @pytest.mark.asyncio
    async def test_excerpt_is_truncated(self, corpus_engine):
        records = await SqlCorpusSearch(corpus_engine, excerpt_length=5).search(["murder"], 1)
        assert records[0].body_excerpt == "Polic"

    @pytest.mark.asyncio
    async def test_database_errors_raise_runtime_error(self, tmp_path):
        from sqlalchemy import create_engine

        engine = create_engine(f"sqlite:///{tmp_path / 'empty.db'}")
        with pytest.raises(RuntimeError, match="Corpus search failed"):
            await SqlCorpusSearch(engine).search(["murder"], 5)

    @pytest.mark.asyncio
    async def test_corpus_stats(self, corpus_engine):
        stats = await SqlCorpusSearch(corpus_engine).corpus_stats()
        assert stats == {
            "total_articles": 4,
            "analyzed_articles": 4,
            "interesting_articles": 3,
            "interesting_percentage": 75.0,
        }


class TestSqlProjectRepository:
    @pytest.mark.asyncio
    async def test_get_project(self, sqlite_engine):
        with sqlite_engine.begin() as connection:
            connection.execute(
                insert(projects).values(
                    id="p1", title="Atlanta Noir", description=None, research_goals=["unsolved murders"]
                )
            )

        project = await SqlProjectRepository(sqlite_engine).get_project("p1")

        assert project.name == "Atlanta Noir"
        assert project.description == ""
        assert project.research_goals == ["unsolved murders"]

    @pytest.mark.asyncio
    async def test_comma_separated_goals(self, sqlite_engine):
        with sqlite_engine.begin() as connection:
            connection.execute(insert(projects).values(id="p2", title="Old row", research_goals="crime, politics"))

        project = await SqlProjectRepository(sqlite_engine).get_project("p2")

        assert project.research_goals == ["crime", "politics"]

    @pytest.mark.asyncio
    async def test_missing_project(self, sqlite_engine):
        assert await SqlProjectRepository(sqlite_engine).get_project("nope") is None


class TestSqlConversationRepository:
    @pytest.mark.asyncio
    async def test_upsert_keeps_one_row_per_user(self, sqlite_engine):
        repository = SqlConversationRepository(sqlite_engine)
        first = [ChatMessage(role="user", content="hi")]
        second = first + [ChatMessage(role="assistant", content="Hey there.")]

        await repository.upsert_conversation("p1", "u1", first)
        await repository.upsert_conversation("p1", "u1", second, ConversationContext(conversation_stage="exploration"))
        await repository.upsert_conversation("p1", "u2", first)

        with sqlite_engine.connect() as connection:
            rows = connection.execute(select(conversations).order_by(conversations.c.user_id)).mappings().all()
        assert [row["user_id"] for row in rows] == ["u1", "u2"]
        assert [m["content"] for m in rows[0]["messages"]] == ["hi", "Hey there."]
        assert rows[0]["context"]["conversation_stage"] == "exploration"

    @pytest.mark.asyncio
    async def test_delete_conversation_removes_every_row_for_project(self, sqlite_engine):
        repository = SqlConversationRepository(sqlite_engine)
        await repository.upsert_conversation("p1", "u1", [ChatMessage(role="user", content="hi")])
        await repository.upsert_conversation("p1", "u2", [ChatMessage(role="user", content="hi")])
        await repository.upsert_conversation("p2", "u1", [ChatMessage(role="user", content="hi")])

        await repository.delete_conversation("p1")
        await repository.delete_conversation("p1")

        with sqlite_engine.connect() as connection:
            remaining = connection.execute(select(conversations.c.project_id)).scalars().all()
        assert remaining == ["p2"]


class TestDatabaseManager:
    def test_sqlite_manager_creates_tables(self, tmp_path):
        manager = DatabaseManager(OmegaConf.create({"type": "sqlite", "params": {"db_path": str(tmp_path / "x.db")}}))
        manager.create_tables()
        try:
            assert manager.get_uri().endswith("x.db")
            assert "conversations" in inspect(manager.get_engine()).get_table_names()
        finally:
            manager.dispose()

    def test_unknown_type(self):
        with pytest.raises(NotImplementedError):
            DatabaseManager(OmegaConf.create({"type": "oracle", "params": {}}))

    def test_missing_type(self):
        with pytest.raises(ValueError):
            DatabaseManager(OmegaConf.create({"params": {}}))

    def test_postgres_uri(self):
        strategy = PostgresConnectionStrategy(host="db", port=5432, user="jordi", password="p@ss", dbname="storymine")
        assert strategy.get_uri() == "postgresql+psycopg2://jordi:p%40ss@db:5432/storymine"
        assert strategy.get_engine_options() == {"pool_pre_ping": True}

    def test_sqlite_uri(self):
        assert SqliteConnectionStrategy(db_path="local.db").get_uri() == "sqlite:///local.db"
