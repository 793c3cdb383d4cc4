import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Type

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import SystemMessage, HumanMessage, AIMessage, BaseMessage
from omegaconf import DictConfig
from pydantic import BaseModel

from storymine.llm.llm_factory import LLMFactory
from storymine.llm.prompt_manager import PromptManager

logger = logging.getLogger(__name__)

HEALTH_CHECK_PROMPT = "Hello"


class LLMService:
    """
    A high-level interface for the response strategies to interact with an LLM.
    """

    def __init__(
        self,
        llm_client: BaseChatModel,
        system_prompt_template: str,
        human_prompt_template: Optional[str] = None,
        few_shot_examples: Optional[List[Dict[str, str]]] = None,
    ):
        self.llm_client = llm_client
        self.system_prompt_template = system_prompt_template
        self.human_prompt_template = human_prompt_template
        self.few_shot_examples = few_shot_examples

    @classmethod
    def from_config(
        cls,
        agent_prompts_dir: str,
        provider_key: str,
        llm_config: DictConfig,
        prompts_base_path: Path,
    ) -> "LLMService":
        """Initializes the complete LLM stack for a specific agent."""
        llm_client = LLMFactory(llm_config=llm_config).create_llm_client(provider_key)
        prompt_manager = PromptManager(prompts_base_path=prompts_base_path)
        system_prompt, human_prompt = prompt_manager.get_standard_prompts(agent_prompts_dir)
        return cls(
            llm_client=llm_client,
            system_prompt_template=system_prompt,
            human_prompt_template=human_prompt,
            few_shot_examples=prompt_manager.get_few_shot_examples(agent_prompts_dir),
        )

    def _build_messages(
        self,
        variables: Dict[str, Any],
        user_prompt_template_override: Optional[str] = None
    ) -> List[BaseMessage]:
        """Helper to build the list of messages for the LLM."""
        messages: List[BaseMessage] = []

        system_content = self.system_prompt_template.format(**variables)
        messages.append(SystemMessage(content=system_content))

        # Few-shot prompts are formatted with the same variables in case they use them
        if self.few_shot_examples:
            for example in self.few_shot_examples:
                if "user" in example and "assistant" in example:
                    messages.append(HumanMessage(content=example["user"].format(**variables)))
                    messages.append(AIMessage(content=example["assistant"].format(**variables)))

        human_template = (
            user_prompt_template_override
            if user_prompt_template_override is not None
            else self.human_prompt_template
        )
        if human_template is None:
            raise ValueError(
                "No user prompt template available. "
                "Provide a default 'user.prompt' or supply a 'user_prompt_template_override'."
            )

        messages.append(HumanMessage(content=human_template.format(**variables)))
        return messages

    async def generate_text(self, variables: Dict[str, Any], user_prompt_template_override: Optional[str] = None) -> str:
        """Generates a raw text response from the LLM."""
        messages = self._build_messages(variables, user_prompt_template_override)
        response = await self.llm_client.ainvoke(messages)

        if not hasattr(response, "content"):
            response_type = type(response).__name__
            raise TypeError(
                f"The response from the LLM client (type: {response_type}) does not have a 'content' attribute. "
                "Ensure the LLM client returns a standard LangChain message object."
            )
        return str(response.content)

    async def generate_structured(
        self,
        variables: Dict[str, Any],
        response_model: Type[BaseModel],
        user_prompt_template_override: Optional[str] = None,
        **structured_output_kwargs: Any,
    ) -> BaseModel:
        """
        Generates a structured response from the LLM, parsed into a Pydantic model.
        """
        messages = self._build_messages(variables, user_prompt_template_override)
        structured_llm = self.llm_client.with_structured_output(response_model, **structured_output_kwargs)
        structured_response = await structured_llm.ainvoke(messages)
        if not isinstance(structured_response, response_model):
            raise TypeError(
                f"Structured output returned {type(structured_response).__name__}, "
                f"expected {response_model.__name__}."
            )
        return structured_response

    @property
    def model_name(self) -> str:
        """The provider's model identifier, or the client class name when it exposes none."""
        for attribute in ("model_name", "model"):
            value = getattr(self.llm_client, attribute, None)
            if isinstance(value, str) and value:
                return value
        return type(self.llm_client).__name__

    async def check_availability(self, timeout_seconds: Optional[float] = 10.0) -> Dict[str, Any]:
        """
        Sends a one-word prompt to the provider and reports whether it answered.

        Returns:
            A dict with 'available' and 'model', plus 'error' when the call failed.
        """
        messages = [HumanMessage(content=HEALTH_CHECK_PROMPT)]
        try:
            if timeout_seconds:
                await asyncio.wait_for(self.llm_client.ainvoke(messages), timeout=timeout_seconds)
            else:
                await self.llm_client.ainvoke(messages)
        except asyncio.TimeoutError:
            logger.error(f"Health check for '{self.model_name}' timed out after {timeout_seconds}s.")
            return {"available": False, "model": self.model_name, "error": f"Timed out after {timeout_seconds}s."}
        except Exception as e:
            logger.error(f"Health check for '{self.model_name}' failed: {e}")
            return {"available": False, "model": self.model_name, "error": f"{type(e).__name__}: {e}"}
        return {"available": True, "model": self.model_name}

    async def health_check(self, timeout_seconds: Optional[float] = 10.0) -> bool:
        """True when the provider answers a trivial prompt."""
        return (await self.check_availability(timeout_seconds))["available"]
