"""Function-calling chat clients for OpenAI and Anthropic models."""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any

import anthropic
import openai
from anthropic import Anthropic
from openai import OpenAI

from bookingdesk.core.models import BookingDeskConfig, FunctionCall, LLMReply, Turn
from bookingdesk.tools.functions import FUNCTION_DEFINITIONS, to_openai_tools
from bookingdesk.utils.exceptions import LLMError

logger = logging.getLogger(__name__)


def is_openai_model(model: str) -> bool:
    """Check if the model is an OpenAI model."""
    openai_prefixes = ("gpt-", "o1-", "o3-", "chatgpt-")
    return model.startswith(openai_prefixes)


class LLMClient(ABC):
    """A chat model that may answer with text or a single function call."""

    @abstractmethod
    def complete(
        self,
        system_prompt: str,
        turns: list[Turn],
        functions: list[dict[str, Any]] = FUNCTION_DEFINITIONS,
        allow_function_call: bool = True,
    ) -> LLMReply:
        """Ask the model for the next assistant message.

        Args:
            system_prompt: System instructions
            turns: Full transcript, oldest first
            functions: Declared functions (name, description, input_schema)
            allow_function_call: False forces a natural-language reply

        Returns:
            LLMReply with either content or a function call

        Raises:
            LLMError: If the model call fails
        """
        pass


class OpenAIChatClient(LLMClient):
    """OpenAI chat completions with ``tools``."""

    def __init__(
        self,
        model: str,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float = 60.0,
        max_retries: int = 2,
        client: OpenAI | None = None,
    ):
        self.model = model
        self._api_key = api_key
        self._base_url = base_url
        self._timeout = timeout
        self._max_retries = max_retries
        self._client = client

    @property
    def client(self) -> OpenAI:
        """Get or create the SDK client."""
        if self._client is None:
            self._client = OpenAI(
                api_key=self._api_key,
                base_url=self._base_url,
                timeout=self._timeout,
                max_retries=self._max_retries,
            )
        return self._client

    @staticmethod
    def render_messages(system_prompt: str, turns: list[Turn]) -> list[dict[str, Any]]:
        """Convert the transcript to OpenAI messages."""
        messages: list[dict[str, Any]] = [{"role": "system", "content": system_prompt}]
        for turn in turns:
            if turn.role == "function":
                messages.append({
                    "role": "assistant",
                    "content": None,
                    "tool_calls": [
                        {
                            "id": turn.call_id,
                            "type": "function",
                            "function": {
                                "name": turn.name,
                                "arguments": json.dumps(turn.arguments or {}),
                            },
                        }
                    ],
                })
                messages.append({
                    "role": "tool",
                    "tool_call_id": turn.call_id,
                    "content": turn.content,
                })
            else:
                messages.append({"role": turn.role, "content": turn.content})
        return messages

    def complete(
        self,
        system_prompt: str,
        turns: list[Turn],
        functions: list[dict[str, Any]] = FUNCTION_DEFINITIONS,
        allow_function_call: bool = True,
    ) -> LLMReply:
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                temperature=0,
                messages=self.render_messages(system_prompt, turns),
                tools=to_openai_tools(functions),
                tool_choice="auto" if allow_function_call else "none",
            )
        except openai.OpenAIError as e:
            raise LLMError(f"OpenAI request failed: {e}") from e

        message = response.choices[0].message

        if allow_function_call and message.tool_calls:
            if len(message.tool_calls) > 1:
                logger.warning("Model issued %d tool calls; only the first is run", len(message.tool_calls))
            tool_call = message.tool_calls[0]
            try:
                arguments = json.loads(tool_call.function.arguments or "{}")
            except json.JSONDecodeError:
                logger.warning("Unparseable arguments for %s", tool_call.function.name)
                arguments = {}
            return LLMReply(
                function_call=FunctionCall(
                    name=tool_call.function.name,
                    arguments=arguments if isinstance(arguments, dict) else {},
                    call_id=tool_call.id,
                )
            )

        return LLMReply(content=message.content or "")


class AnthropicChatClient(LLMClient):
    """Anthropic messages API with ``tools``."""

    def __init__(
        self,
        model: str,
        api_key: str | None = None,
        timeout: float = 60.0,
        max_retries: int = 2,
        max_tokens: int = 1024,
        client: Anthropic | None = None,
    ):
        self.model = model
        self.max_tokens = max_tokens
        self._api_key = api_key
        self._timeout = timeout
        self._max_retries = max_retries
        self._client = client

    @property
    def client(self) -> Anthropic:
        """Get or create the SDK client."""
        if self._client is None:
            self._client = Anthropic(
                api_key=self._api_key,
                timeout=self._timeout,
                max_retries=self._max_retries,
            )
        return self._client

    @staticmethod
    def render_messages(turns: list[Turn]) -> list[dict[str, Any]]:
        """Convert the transcript to Anthropic messages."""
        messages: list[dict[str, Any]] = []
        for turn in turns:
            if turn.role == "function":
                messages.append({
                    "role": "assistant",
                    "content": [
                        {
                            "type": "tool_use",
                            "id": turn.call_id,
                            "name": turn.name,
                            "input": turn.arguments or {},
                        }
                    ],
                })
                messages.append({
                    "role": "user",
                    "content": [
                        {
                            "type": "tool_result",
                            "tool_use_id": turn.call_id,
                            "content": turn.content,
                        }
                    ],
                })
            elif turn.content:
                messages.append({"role": turn.role, "content": turn.content})
        return messages

    def complete(
        self,
        system_prompt: str,
        turns: list[Turn],
        functions: list[dict[str, Any]] = FUNCTION_DEFINITIONS,
        allow_function_call: bool = True,
    ) -> LLMReply:
        try:
            response = self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=0,
                system=system_prompt,
                messages=self.render_messages(turns),
                tools=functions,
                tool_choice={"type": "auto" if allow_function_call else "none"},
            )
        except anthropic.AnthropicError as e:
            raise LLMError(f"Anthropic request failed: {e}") from e

        tool_uses = [block for block in response.content if block.type == "tool_use"]
        if allow_function_call and tool_uses:
            if len(tool_uses) > 1:
                logger.warning("Model issued %d tool calls; only the first is run", len(tool_uses))
            tool_use = tool_uses[0]
            return LLMReply(
                function_call=FunctionCall(
                    name=tool_use.name,
                    arguments=dict(tool_use.input or {}),
                    call_id=tool_use.id,
                )
            )

        text_blocks = [block.text for block in response.content if hasattr(block, "text")]
        return LLMReply(content="\n".join(text_blocks))


def build_llm_client(config: BookingDeskConfig) -> LLMClient:
    """Pick the provider from the configured model name."""
    if is_openai_model(config.model):
        return OpenAIChatClient(
            model=config.model,
            api_key=config.openai_api_key,
            base_url=config.openai_base_url,
            timeout=config.llm_timeout,
            max_retries=config.llm_max_retries,
        )
    return AnthropicChatClient(
        model=config.model,
        api_key=config.anthropic_api_key,
        timeout=config.llm_timeout,
        max_retries=config.llm_max_retries,
    )
