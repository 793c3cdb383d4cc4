"""
SQLAlchemy Core table definitions.

The corpus tables (`source_articles`, `scout_analyses`) and `projects` are
owned by the import pipeline and the web application; they are declared here
only so queries can be built against them. `conversations` holds the
best-effort transcript copies written by the assistant.
"""
from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    MetaData,
    String,
    Table,
    Text,
    func,
)

metadata = MetaData()

projects = Table(
    "projects",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("title", String(200), nullable=False),
    Column("description", Text, nullable=True),
    Column("research_goals", JSON, nullable=True),
)

source_articles = Table(
    "source_articles",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("title", Text, nullable=False),
    Column("content", Text, nullable=False, default=""),
    Column("date", DateTime, nullable=True),
    Column("publication", String(200), nullable=True),
)

scout_analyses = Table(
    "scout_analyses",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("article_id", String(64), ForeignKey("source_articles.id"), nullable=False),
    Column("is_interesting", Boolean, nullable=False, default=False),
    Column("documentary_potential", String(8), nullable=False, default="NO"),
    Column("confidence", Float, nullable=False, default=0.0),
    Column("narrative_strength", Float, nullable=False, default=0.0),
    Column("story_types", Text, nullable=True),
    Column("reasoning", Text, nullable=True),
)

conversations = Table(
    "conversations",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("project_id", String(64), nullable=False, index=True),
    Column("user_id", String(64), nullable=False, index=True),
    Column("messages", JSON, nullable=False),
    Column("context", JSON, nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)
