from __future__ import annotations
import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from langgraph.graph import StateGraph, END
from omegaconf import DictConfig

from storymine.agents import ResponseStrategy, ResponseStrategyChain, ResponseValidator, build_strategies
from storymine.agents.corpus_template import DIFFERENT_ANGLE_QUESTION
from storymine.analysis.intent import classify_intent
from storymine.database import (
    ConversationRepository,
    CorpusSearch,
    DatabaseManager,
    ProjectRepository,
    SqlConversationRepository,
    SqlCorpusSearch,
    SqlProjectRepository,
)
from storymine.exceptions import ProjectNotFoundError
from storymine.llm import LLMService
from storymine.memory import (
    ConversationMemory,
    ConversationMemoryService,
    InMemoryMemoryStore,
    MemoryStore,
    conversation_key,
)
from storymine.models.agent_models import AgentResponse
from storymine.workflows.context import ContextAssembler
from storymine.workflows.retrieval import CorpusRetriever
from storymine.workflows.state import TurnState

logger = logging.getLogger(__name__)

FALLBACK_CONFIDENCE_CAP = 0.5


class ResearchAssistantOrchestrator:
    """
    Runs one conversational turn end to end, built using LangGraph.

    The graph is linear: analyze the message, retrieve corpus records,
    assemble the generation input, run the response strategy chain, update
    conversation memory and persist the transcript. Only a missing project
    is surfaced to the caller as an error; every other failure degrades into
    a valid AgentResponse.

    Turns for the same (project, user) pair must not be interleaved by the
    caller; turns for different pairs may run concurrently.
    """

    def __init__(
        self,
        corpus_search: CorpusSearch,
        project_repository: ProjectRepository,
        conversation_repository: ConversationRepository,
        strategies: Sequence[ResponseStrategy],
        memory_store: Optional[MemoryStore] = None,
        memory_service: Optional[ConversationMemoryService] = None,
        context_assembler: Optional[ContextAssembler] = None,
        retriever: Optional[CorpusRetriever] = None,
        strategy_timeout_seconds: Optional[float] = 45.0,
        persist_each_turn: bool = True,
    ):
        self.corpus_search = corpus_search
        self.project_repository = project_repository
        self.conversation_repository = conversation_repository
        self.memory_store = memory_store or InMemoryMemoryStore()
        self.memory_service = memory_service or ConversationMemoryService()
        self.context_assembler = context_assembler or ContextAssembler()
        self.retriever = retriever or CorpusRetriever(corpus_search)
        self.chain = ResponseStrategyChain(
            strategies, validator=ResponseValidator(), timeout_seconds=strategy_timeout_seconds
        )
        self.persist_each_turn = persist_each_turn

        self.workflow = self._build_graph()
        self.app = self.workflow.compile()

    @classmethod
    def from_config(
        cls,
        app_config: DictConfig,
        prompts_base_path: Path,
        database_key: str = "storymine",
        create_tables: bool = False,
    ) -> ResearchAssistantOrchestrator:
        assistant_config = app_config.agents.get("research_assistant")
        if not assistant_config:
            raise ValueError("Agent key 'research_assistant' not found in agents configuration.")

        db_config = app_config.databases.get(database_key)
        if db_config is None:
            raise ValueError(f"Database key '{database_key}' not found in databases configuration.")
        db_manager = DatabaseManager(db_config)
        if create_tables:
            db_manager.create_tables()
        engine = db_manager.get_engine()

        memory_config = assistant_config.get("memory", {})
        summarizer = None
        if memory_config.get("summarizer_llm_key"):
            try:
                summarizer = LLMService.from_config(
                    agent_prompts_dir=memory_config.get("summarizer_prompts_dir", "summarizer"),
                    provider_key=memory_config.summarizer_llm_key,
                    llm_config=app_config.llms,
                    prompts_base_path=prompts_base_path,
                )
            except Exception as e:
                logger.warning(f"Memory summarizer unavailable; evicted turns will not be summarized: {e}")

        retrieval_config = assistant_config.get("retrieval", {})
        corpus_search = SqlCorpusSearch(engine)

        return cls(
            corpus_search=corpus_search,
            project_repository=SqlProjectRepository(engine),
            conversation_repository=SqlConversationRepository(engine),
            strategies=build_strategies(assistant_config, app_config.llms, prompts_base_path),
            memory_store=InMemoryMemoryStore(),
            memory_service=ConversationMemoryService(
                max_messages=memory_config.get("max_messages", 50),
                max_research_focus=memory_config.get("max_research_focus", 10),
                summarizer=summarizer,
            ),
            context_assembler=ContextAssembler(
                window_size=assistant_config.get("context", {}).get("window_size", 5),
                max_records=retrieval_config.get("max_records_in_context", 12),
            ),
            retriever=CorpusRetriever(
                corpus_search,
                max_keywords=retrieval_config.get("max_keywords", 8),
                keyword_search_limit=retrieval_config.get("keyword_search_limit", 25),
                diverse_sample_limit=retrieval_config.get("diverse_sample_limit", 15),
            ),
            strategy_timeout_seconds=assistant_config.get("strategy_timeout_seconds", 45),
            persist_each_turn=assistant_config.get("persistence", {}).get("persist_each_turn", True),
        )

    def _build_graph(self) -> StateGraph:
        """Builds the LangGraph workflow."""
        graph = StateGraph(TurnState)

        graph.add_node("analyze", self.analyze_node)
        graph.add_node("retrieve", self.retrieve_node)
        graph.add_node("assemble", self.assemble_node)
        graph.add_node("generate", self.generate_node)
        graph.add_node("remember", self.remember_node)
        graph.add_node("persist", self.persist_node)

        graph.set_entry_point("analyze")
        graph.add_edge("analyze", "retrieve")
        graph.add_edge("retrieve", "assemble")
        graph.add_edge("assemble", "generate")
        graph.add_edge("generate", "remember")
        graph.add_edge("remember", "persist")
        graph.add_edge("persist", END)

        return graph

    # --- Graph nodes ---

    async def analyze_node(self, state: TurnState) -> Dict[str, Any]:
        """Classifies the message and derives the corpus search terms."""
        intent = classify_intent(state["user_message"])
        keywords = self.retriever.build_search_keywords(state["user_message"], intent)
        logger.info(f"Intent '{intent.value}', search keywords {keywords}.")
        return {"intent": intent.value, "search_keywords": keywords}

    async def retrieve_node(self, state: TurnState) -> Dict[str, Any]:
        retrieval = await self.retriever.retrieve(state["search_keywords"])
        return {"retrieval": retrieval}

    async def assemble_node(self, state: TurnState) -> Dict[str, Any]:
        """Builds the conversation context and the generation input."""
        memory = state["memory"]
        context = self.context_assembler.derive_context(
            messages=memory.messages,
            current_message=state["user_message"],
            project=state["project"],
            intent=state["intent"],
            research_focus=memory.research_focus,
        )
        generation_input = self.context_assembler.build_generation_input(
            user_message=state["user_message"],
            intent=state["intent"],
            conversation_context=context,
            recent_messages=memory.messages,
            retrieval=state["retrieval"],
            project=state["project"],
            conversation_summary=memory.summary,
        )
        return {"conversation_context": context, "generation_input": generation_input}

    async def generate_node(self, state: TurnState) -> Dict[str, Any]:
        """Runs the response strategy chain; the first valid response wins."""
        outcome = await self.chain.run(state["generation_input"])
        attempts = ", ".join(f"{a.strategy_name}={a.status}" for a in outcome.attempts) or "none"
        logger.info(f"Strategy chain ended in '{outcome.state.value}' ({attempts}).")

        response = self._apply_retrieval_caveats(outcome.response, state["retrieval"])
        return {"outcome": outcome, "response": response}

    async def remember_node(self, state: TurnState) -> Dict[str, Any]:
        """Records the turn in conversation memory and enforces the memory caps."""
        memory = state["memory"]
        response = state["response"]

        self.memory_service.append(memory, "user", state["user_message"])
        self.memory_service.append(memory, "assistant", response.message)
        self.memory_service.derive_research_focus(memory, response.investigative_leads)
        dropped = self.memory_service.evict_if_over_capacity(memory)
        if dropped:
            await self.memory_service.summarize_evicted(memory, dropped)
        memory.context = state["conversation_context"]

        await self.memory_store.put(conversation_key(state["project_id"], state["user_id"]), memory)
        return {"memory": memory}

    async def persist_node(self, state: TurnState) -> Dict[str, Any]:
        if self.persist_each_turn:
            await self._persist(state["project_id"], state["user_id"], state["memory"])
        return {}

    # --- Helpers ---

    @staticmethod
    def _apply_retrieval_caveats(response: AgentResponse, retrieval) -> AgentResponse:
        """
        Tempers a response when the keyword search found nothing and the
        records came from the diverse sample instead.
        """
        if retrieval is None or not retrieval.used_fallback_sample or not retrieval.keywords:
            return response

        assessment = response.confidence_assessment
        limitation = f"No archive records matched: {', '.join(retrieval.keywords)}."
        limitations = list(assessment.limitations)
        if not any(item.startswith("No archive records matched") for item in limitations):
            limitations.append(limitation)

        follow_ups = list(response.follow_up_questions)
        if DIFFERENT_ANGLE_QUESTION not in follow_ups:
            follow_ups.insert(0, DIFFERENT_ANGLE_QUESTION)

        return response.model_copy(
            update={
                "follow_up_questions": follow_ups,
                "confidence_assessment": assessment.model_copy(
                    update={
                        "overall": min(assessment.overall, FALLBACK_CONFIDENCE_CAP),
                        "limitations": limitations,
                    }
                ),
            }
        )

    async def _persist(self, project_id: str, user_id: str, memory: ConversationMemory) -> bool:
        try:
            await self.conversation_repository.upsert_conversation(
                project_id, user_id, list(memory.messages), memory.context
            )
            return True
        except Exception as e:
            logger.error(f"Error saving conversation for project {project_id}: {e}", exc_info=True)
            return False

    async def _load_memory(self, key: str) -> ConversationMemory:
        memory = await self.memory_store.get(key)
        if memory is None:
            memory = ConversationMemory()
            await self.memory_store.put(key, memory)
        return memory

    # --- Public interface ---

    async def process_turn(self, project_id: str, user_id: str, message: str) -> AgentResponse:
        """
        Produces the assistant's reply to one user message.

        Raises:
            ProjectNotFoundError: If the project does not exist.
        """
        logger.info(f"Processing message for project {project_id}")
        project = await self.project_repository.get_project(project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)

        memory = await self._load_memory(conversation_key(project_id, user_id))
        initial_state: TurnState = {
            "project_id": project_id,
            "user_id": user_id,
            "user_message": message or "",
            "project": project,
            "memory": memory,
            "intent": None,
            "search_keywords": [],
            "retrieval": None,
            "conversation_context": None,
            "generation_input": None,
            "outcome": None,
            "response": None,
        }
        final_state = await self.app.ainvoke(initial_state)
        return final_state["response"]

    async def get_memory(self, project_id: str, user_id: str) -> Optional[ConversationMemory]:
        return await self.memory_store.get(conversation_key(project_id, user_id))

    async def save_conversation(self, project_id: str, user_id: str) -> bool:
        """Flushes the in-memory transcript to the persistence gateway. Best-effort."""
        memory = await self.get_memory(project_id, user_id)
        if memory is None:
            return False
        return await self._persist(project_id, user_id, memory)

    async def clear_conversation(self, project_id: str, user_id: str) -> None:
        """Forgets a conversation in memory and, best-effort, in storage."""
        logger.info(f"Clearing memory for project {project_id}")
        await self.memory_store.delete(conversation_key(project_id, user_id))
        try:
            await self.conversation_repository.delete_conversation(project_id)
        except Exception as e:
            logger.error(f"Error deleting stored conversations for project {project_id}: {e}", exc_info=True)

    async def corpus_stats(self) -> Optional[Dict[str, Any]]:
        stats = getattr(self.corpus_search, "corpus_stats", None)
        if stats is None:
            return None
        try:
            return await stats()
        except Exception as e:
            logger.error(f"Error getting corpus stats: {e}")
            return None

    async def health_check(self) -> Dict[str, Dict[str, Any]]:
        """
        Checks every language model the response strategies depend on.

        Returns:
            A mapping from strategy name (with a ".follow_up" suffix for the
            follow-up question service) to its availability report. Rule-based
            strategies need no provider and are left out.
        """
        services: Dict[str, LLMService] = {}
        for strategy in self.chain.strategies:
            llm_service = getattr(strategy, "llm_service", None)
            if llm_service is not None:
                services[strategy.name] = llm_service
            follow_up_service = getattr(strategy, "follow_up_service", None)
            if follow_up_service is not None:
                services[f"{strategy.name}.follow_up"] = follow_up_service

        reports = await asyncio.gather(*(service.check_availability() for service in services.values()))
        for name, report in zip(services, reports):
            logger.info(f"Provider for '{name}' ({report['model']}): {'available' if report['available'] else 'unavailable'}")
        return dict(zip(services, reports))

    @property
    def strategy_names(self) -> List[str]:
        return self.chain.strategy_names
