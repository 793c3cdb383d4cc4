import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from langchain_core.language_models.fake_chat_models import FakeListChatModel
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage
from omegaconf import OmegaConf

from storymine.llm import LLMFactory, LLMService, PromptManager
from storymine.models.agent_models import AgentResponse
from storymine.utils.config_parser import DEFAULT_PROMPTS_DIR, load_app_config
from storymine.workflows.context import build_prompt_variables

from conftest import make_record, make_response

FAKE_CHAT_MODEL = "langchain_core.language_models.fake_chat_models.FakeListChatModel"


class TestLLMFactory:
    def _factory(self, providers):
        return LLMFactory(OmegaConf.create({"llm_providers": providers}))

    def test_requires_provider_mapping(self):
        with pytest.raises(ValueError):
            LLMFactory(OmegaConf.create({"something_else": {}}))

    def test_lists_available_providers(self):
        factory = LLMFactory(load_app_config().llms)
        providers = factory.get_available_providers()
        assert providers["ollama-mistral"] == "Mistral (local Ollama)"
        assert "openai-gpt-4o-mini" in providers

    def test_creates_client_and_drops_unset_params(self):
        factory = self._factory(
            {"fake": {"class": FAKE_CHAT_MODEL, "params": {"responses": ["hello"], "sleep": None}}}
        )
        client = factory.create_llm_client("fake")
        assert isinstance(client, FakeListChatModel)
        assert client.responses == ["hello"]

    def test_unknown_provider(self):
        with pytest.raises(ValueError, match="not found"):
            self._factory({"fake": {"class": FAKE_CHAT_MODEL, "params": {}}}).create_llm_client("other")

    def test_missing_class_or_params(self):
        with pytest.raises(ValueError, match="missing 'class' or 'params'"):
            self._factory({"fake": {"class": FAKE_CHAT_MODEL}}).create_llm_client("fake")

    def test_unimportable_module(self):
        with pytest.raises(ImportError):
            self._factory({"fake": {"class": "no_such_module.Chat", "params": {}}}).create_llm_client("fake")

    def test_missing_class(self):
        with pytest.raises(AttributeError):
            self._factory(
                {"fake": {"class": "langchain_core.language_models.fake_chat_models.Nope", "params": {}}}
            ).create_llm_client("fake")


class TestPromptManager:
    def test_loads_standard_prompts(self, tmp_path):
        (tmp_path / "agent").mkdir()
        (tmp_path / "agent" / "system.prompt").write_text("You are {assistant_name}.", encoding="utf-8")

        system, user = PromptManager(tmp_path).get_standard_prompts("agent")

        assert system == "You are {assistant_name}."
        assert user is None

    def test_missing_directories(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            PromptManager(tmp_path / "nope")
        with pytest.raises(FileNotFoundError):
            PromptManager(tmp_path).load_prompt("agent", "system.prompt")

    def test_few_shot_examples(self, tmp_path):
        (tmp_path / "agent").mkdir()
        manager = PromptManager(tmp_path)
        assert manager.get_few_shot_examples("agent") is None

        examples_path = tmp_path / "agent" / "few_shot_examples.json"
        examples_path.write_text(json.dumps({"user": "hi"}), encoding="utf-8")
        with pytest.raises(ValueError, match="JSON list"):
            manager.get_few_shot_examples("agent")

        examples_path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ValueError, match="decoding JSON"):
            manager.get_few_shot_examples("agent")

    @pytest.mark.parametrize("prompts_dir", ["research_assistant", "free_text_assistant"])
    def test_packaged_prompts_format_with_turn_variables(self, prompts_dir, generation_input_factory):
        manager = PromptManager(DEFAULT_PROMPTS_DIR)
        variables = build_prompt_variables(generation_input_factory(ranked_records=[make_record(1)]))

        system, user = manager.get_standard_prompts(prompts_dir)

        assert "{" not in system.format(**variables)
        assert variables["user_message"] in user.format(**variables)
        for example in manager.get_few_shot_examples(prompts_dir) or []:
            example["user"].format(**variables)
            example["assistant"].format(**variables)

    def test_packaged_summarizer_prompts(self):
        system, user = PromptManager(DEFAULT_PROMPTS_DIR).get_standard_prompts("summarizer")
        rendered = user.format(previous_summary="Nothing yet.", conversation_text="user: hi")
        assert "user: hi" in rendered
        assert system


class TestLLMService:
    @pytest.mark.asyncio
    async def test_generate_text_sends_system_examples_and_user_messages(self):
        client = FakeListChatModel(responses=["Plenty of eerie ones."])
        service = LLMService(
            llm_client=client,
            system_prompt_template="You are {assistant_name}.",
            human_prompt_template="Q: {user_message}",
            few_shot_examples=[{"user": "hello", "assistant": "Hey there."}, {"user": "ignored"}],
        )
        variables = {"assistant_name": "Jordi", "user_message": "missing people?"}

        messages = service._build_messages(variables)
        text = await service.generate_text(variables)

        assert [type(m) for m in messages] == [SystemMessage, HumanMessage, AIMessage, HumanMessage]
        assert messages[0].content == "You are Jordi."
        assert messages[-1].content == "Q: missing people?"
        assert text == "Plenty of eerie ones."

    @pytest.mark.asyncio
    async def test_override_template(self):
        service = LLMService(FakeListChatModel(responses=["ok"]), "sys", human_prompt_template=None)
        messages = service._build_messages({"x": "1"}, user_prompt_template_override="value {x}")
        assert messages[-1].content == "value 1"

    def test_missing_user_template(self):
        service = LLMService(FakeListChatModel(responses=["ok"]), "sys")
        with pytest.raises(ValueError, match="No user prompt template"):
            service._build_messages({})

    @pytest.mark.asyncio
    async def test_generate_structured(self):
        expected = make_response()
        structured_llm = MagicMock()
        structured_llm.ainvoke = AsyncMock(return_value=expected)
        client = MagicMock()
        client.with_structured_output = MagicMock(return_value=structured_llm)
        service = LLMService(client, "sys", "user {q}")

        result = await service.generate_structured({"q": "?"}, AgentResponse, method="function_calling")

        assert result is expected
        client.with_structured_output.assert_called_once_with(AgentResponse, method="function_calling")

    @pytest.mark.asyncio
    async def test_generate_structured_rejects_wrong_type(self):
        structured_llm = MagicMock()
        structured_llm.ainvoke = AsyncMock(return_value={"message": "a dict"})
        client = MagicMock()
        client.with_structured_output = MagicMock(return_value=structured_llm)

        with pytest.raises(TypeError):
            await LLMService(client, "sys", "user").generate_structured({}, AgentResponse)

    def test_from_config(self):
        llm_config = OmegaConf.create(
            {"llm_providers": {"fake": {"class": FAKE_CHAT_MODEL, "params": {"responses": ["hi"]}}}}
        )
        service = LLMService.from_config("research_assistant", "fake", llm_config, DEFAULT_PROMPTS_DIR)

        assert isinstance(service.llm_client, FakeListChatModel)
        assert service.human_prompt_template
        assert len(service.few_shot_examples) == 3


class TestHealthCheck:
    @pytest.mark.asyncio
    async def test_answering_provider_is_available(self):
        service = LLMService(FakeListChatModel(responses=["Hi."]), "sys", "user")

        report = await service.check_availability()

        assert report["available"] is True
        assert report["model"]
        assert "error" not in report
        assert await service.health_check() is True

    @pytest.mark.asyncio
    async def test_failing_provider_is_unavailable(self):
        client = MagicMock()
        client.ainvoke = AsyncMock(side_effect=ConnectionError("connection refused"))
        client.model = "mistral"
        service = LLMService(client, "sys", "user")

        report = await service.check_availability()

        assert report == {
            "available": False,
            "model": "mistral",
            "error": "ConnectionError: connection refused",
        }
        assert await service.health_check() is False

    @pytest.mark.asyncio
    async def test_slow_provider_times_out(self):
        async def never_answers(messages):
            await asyncio.sleep(5)

        client = MagicMock()
        client.ainvoke = never_answers
        service = LLMService(client, "sys", "user")

        report = await service.check_availability(timeout_seconds=0.01)

        assert report["available"] is False
        assert "Timed out" in report["error"]
