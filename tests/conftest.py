"""
Shared pytest fixtures.

Fakes stand in for the corpus, the repositories and the language models so
the orchestration logic can be tested without a database or a provider.
"""

from datetime import date
from typing import Dict, List, Optional

import pytest

from storymine.agents.base import ResponseStrategy
from storymine.database.base import ConversationRepository, CorpusSearch, ProjectRepository
from storymine.memory.state import ChatMessage, ConversationContext
from storymine.models.agent_models import AgentResponse, ConfidenceAssessment, ReasoningStep
from storymine.models.corpus_models import CorpusRecord, ProjectMetadata
from storymine.models.generation import GenerationInput


# ============================================================================
# Builders
# ============================================================================

def make_record(index: int, title: Optional[str] = None, **overrides) -> CorpusRecord:
    values = {
        "id": f"rec-{index}",
        "title": title or f"Headline number {index}",
        "body_excerpt": f"Body of article {index}.",
        "publication_date": date(1940 + index % 15, 1 + index % 12, 1),
        "relevance_score": max(0.0, 0.95 - index * 0.05),
        "documentary_potential": "YES",
        "narrative_strength": 0.7,
        "story_types": ["human interest"],
        "publication": "Atlanta Journal-Constitution",
    }
    values.update(overrides)
    return CorpusRecord(**values)


def make_response(message: str = "Here is what I found. Want more?", overall: float = 0.8, **overrides) -> AgentResponse:
    values = {
        "message": message,
        "reasoning_steps": [ReasoningStep(step_number=1, description="Looked at the records.", confidence=0.8)],
        "follow_up_questions": ["Want more?"],
        "investigative_leads": [],
        "confidence_assessment": ConfidenceAssessment(overall=overall, reasoning="Test response."),
    }
    values.update(overrides)
    return AgentResponse(**values)


# ============================================================================
# Fakes
# ============================================================================

class FakeCorpusSearch(CorpusSearch):
    """Returns `sample` for keyword-less requests and `matches` for everything else."""

    def __init__(self, matches=None, sample=None, error: Optional[Exception] = None):
        self.matches = list(matches or [])
        self.sample = list(sample or [])
        self.error = error
        self.calls: List[tuple] = []

    async def search(self, keywords, limit):
        self.calls.append((list(keywords), limit))
        if self.error is not None:
            raise self.error
        records = self.matches if keywords else self.sample
        return records[:limit]

    async def corpus_stats(self):
        return {"total_articles": 3, "analyzed_articles": 2, "interesting_articles": 1, "interesting_percentage": 50.0}


class FakeProjectRepository(ProjectRepository):
    def __init__(self, projects: Dict[str, ProjectMetadata]):
        self.projects = projects

    async def get_project(self, project_id):
        return self.projects.get(project_id)


class FakeConversationRepository(ConversationRepository):
    def __init__(self, error: Optional[Exception] = None):
        self.saved: Dict[tuple, List[ChatMessage]] = {}
        self.deleted: List[str] = []
        self.error = error

    async def upsert_conversation(self, project_id, user_id, messages, context=None):
        if self.error is not None:
            raise self.error
        self.saved[(project_id, user_id)] = list(messages)

    async def delete_conversation(self, project_id):
        if self.error is not None:
            raise self.error
        self.deleted.append(project_id)


class StaticStrategy(ResponseStrategy):
    """Returns a fixed result, or raises it when it is an exception."""

    def __init__(self, name: str, result):
        self.name = name
        self.result = result
        self.calls = 0

    async def generate(self, generation_input):
        self.calls += 1
        if isinstance(self.result, BaseException):
            raise self.result
        return self.result


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def project():
    return ProjectMetadata(
        project_id="proj-1",
        name="Atlanta Noir",
        description="Crime and corruption in postwar Atlanta.",
        research_goals=["unsolved murders"],
    )


@pytest.fixture
def records():
    return [make_record(i) for i in range(1, 11)]


@pytest.fixture
def generation_input_factory(project):
    def factory(**overrides) -> GenerationInput:
        values = {
            "user_message": "Tell me something interesting",
            "intent": "general_exploration",
            "conversation_context": ConversationContext(),
            "project": project,
        }
        values.update(overrides)
        return GenerationInput(**values)

    return factory


@pytest.fixture
def sqlite_engine(tmp_path):
    from sqlalchemy import create_engine

    from storymine.database.schema import metadata

    engine = create_engine(f"sqlite:///{tmp_path / 'storymine.db'}", connect_args={"check_same_thread": False})
    metadata.create_all(engine)
    yield engine
    engine.dispose()
