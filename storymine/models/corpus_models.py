from datetime import date
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

DocumentaryPotential = Literal["YES", "MAYBE", "NO"]


class CorpusRecord(BaseModel):
    """A read-only summary of one analysed newspaper article."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    body_excerpt: str = ""
    publication_date: Optional[date] = None
    relevance_score: float = Field(0.0, ge=0.0, le=1.0)
    documentary_potential: DocumentaryPotential = "NO"
    narrative_strength: float = 0.0
    story_types: List[str] = Field(default_factory=list)
    publication: Optional[str] = None


class ProjectMetadata(BaseModel):
    """The research project a conversation belongs to."""

    project_id: str
    name: str
    description: str = ""
    research_goals: List[str] = Field(default_factory=list)
