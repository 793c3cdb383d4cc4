import asyncio
import json
import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import delete, insert, select, update
from sqlalchemy.engine import Engine

from storymine.database.base import ConversationRepository, ProjectRepository, serialize_messages
from storymine.database.schema import conversations, projects
from storymine.memory.state import ChatMessage, ConversationContext
from storymine.models.corpus_models import ProjectMetadata

logger = logging.getLogger(__name__)


class SqlProjectRepository(ProjectRepository):
    """Reads project metadata from the `projects` table."""

    def __init__(self, engine: Engine):
        self._engine = engine

    def _get_sync(self, project_id: str) -> Optional[ProjectMetadata]:
        query = select(projects).where(projects.c.id == project_id)
        with self._engine.connect() as connection:
            row = connection.execute(query).mappings().first()
        if row is None:
            return None

        goals = row["research_goals"] or []
        if isinstance(goals, str):
            # Older rows store goals as a JSON string or a comma-separated list.
            try:
                goals = json.loads(goals)
            except ValueError:
                goals = [goal.strip() for goal in goals.split(",")]
        return ProjectMetadata(
            project_id=row["id"],
            name=row["title"],
            description=row["description"] or "",
            research_goals=[str(goal) for goal in goals if goal],
        )

    async def get_project(self, project_id: str) -> Optional[ProjectMetadata]:
        return await asyncio.to_thread(self._get_sync, project_id)


class SqlConversationRepository(ConversationRepository):
    """Stores one transcript row per (project, user) pair."""

    def __init__(self, engine: Engine):
        self._engine = engine

    def _upsert_sync(
        self,
        project_id: str,
        user_id: str,
        messages: List[ChatMessage],
        context: Optional[ConversationContext],
    ) -> None:
        payload = {
            "messages": serialize_messages(messages),
            "context": context.model_dump(mode="json") if context else {},
            "updated_at": datetime.now(timezone.utc),
        }
        with self._engine.begin() as connection:
            existing_id = connection.execute(
                select(conversations.c.id).where(
                    conversations.c.project_id == project_id,
                    conversations.c.user_id == user_id,
                )
            ).scalar()

            if existing_id is not None:
                connection.execute(
                    update(conversations).where(conversations.c.id == existing_id).values(**payload)
                )
            else:
                connection.execute(
                    insert(conversations).values(
                        id=uuid.uuid4().hex,
                        project_id=project_id,
                        user_id=user_id,
                        created_at=payload["updated_at"],
                        **payload,
                    )
                )

    async def upsert_conversation(
        self,
        project_id: str,
        user_id: str,
        messages: List[ChatMessage],
        context: Optional[ConversationContext] = None,
    ) -> None:
        await asyncio.to_thread(self._upsert_sync, project_id, user_id, messages, context)
        logger.debug(f"Saved {len(messages)} messages for project {project_id}, user {user_id}.")

    def _delete_sync(self, project_id: str) -> int:
        with self._engine.begin() as connection:
            result = connection.execute(delete(conversations).where(conversations.c.project_id == project_id))
        return result.rowcount

    async def delete_conversation(self, project_id: str) -> None:
        deleted = await asyncio.to_thread(self._delete_sync, project_id)
        logger.info(f"Deleted {deleted} stored conversations for project {project_id}.")
