"""Unit tests for the chat model clients."""

import json
from types import SimpleNamespace
from unittest.mock import MagicMock

import anthropic
import httpx
import openai
import pytest

from bookingdesk.chains.llm import (
    AnthropicChatClient,
    OpenAIChatClient,
    build_llm_client,
    is_openai_model,
)
from bookingdesk.core.models import BookingDeskConfig, Turn
from bookingdesk.utils.exceptions import LLMError


@pytest.fixture
def transcript() -> list[Turn]:
    """A transcript with one function round trip."""
    return [
        Turn(role="user", content="Show me rooms"),
        Turn(role="function", name="get_rooms", arguments={}, call_id="call_1", content="[]"),
        Turn(role="assistant", content="Sorry, nothing is free."),
        Turn(role="user", content="Ok"),
    ]


def openai_response(content=None, tool_calls=None):
    message = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def openai_tool_call(call_id, name, arguments):
    return SimpleNamespace(id=call_id, function=SimpleNamespace(name=name, arguments=arguments))


class TestModelSelection:
    """Tests for picking the provider."""

    @pytest.mark.parametrize("model,expected", [
        ("gpt-4o-mini", True),
        ("o1-preview", True),
        ("claude-sonnet-4-20250514", False),
    ])
    def test_is_openai_model(self, model, expected):
        """Test provider detection by model name."""
        assert is_openai_model(model) is expected

    def test_build_openai_client(self):
        """Test that gpt-* models get the OpenAI client."""
        client = build_llm_client(BookingDeskConfig(model="gpt-4o-mini"))
        assert isinstance(client, OpenAIChatClient)
        assert client.model == "gpt-4o-mini"

    def test_build_anthropic_client(self):
        """Test that other models get the Anthropic client."""
        client = build_llm_client(BookingDeskConfig(model="claude-sonnet-4-20250514"))
        assert isinstance(client, AnthropicChatClient)


class TestOpenAIChatClient:
    """Tests for OpenAIChatClient."""

    def test_render_messages(self, transcript):
        """Test that function turns become a tool call and a tool message."""
        messages = OpenAIChatClient.render_messages("SYSTEM", transcript)

        assert messages[0] == {"role": "system", "content": "SYSTEM"}
        assert messages[1] == {"role": "user", "content": "Show me rooms"}
        assert messages[2]["role"] == "assistant"
        assert messages[2]["tool_calls"][0]["id"] == "call_1"
        assert messages[2]["tool_calls"][0]["function"] == {"name": "get_rooms", "arguments": "{}"}
        assert messages[3] == {"role": "tool", "tool_call_id": "call_1", "content": "[]"}
        assert [m["role"] for m in messages[4:]] == ["assistant", "user"]

    def test_text_reply(self):
        """Test a plain text answer."""
        sdk = MagicMock()
        sdk.chat.completions.create.return_value = openai_response(content="Hello!")
        client = OpenAIChatClient(model="gpt-4o-mini", client=sdk)

        reply = client.complete("SYSTEM", [Turn(role="user", content="Hi")])

        assert reply.content == "Hello!"
        assert reply.function_call is None
        kwargs = sdk.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["tool_choice"] == "auto"
        assert [t["function"]["name"] for t in kwargs["tools"]] == ["get_rooms", "book_room", "process_payment"]

    def test_function_call(self):
        """Test that the first tool call is returned as a function call."""
        sdk = MagicMock()
        sdk.chat.completions.create.return_value = openai_response(tool_calls=[
            openai_tool_call("call_9", "book_room", json.dumps({"roomId": 2, "nights": 1})),
            openai_tool_call("call_10", "get_rooms", "{}"),
        ])
        client = OpenAIChatClient(model="gpt-4o-mini", client=sdk)

        reply = client.complete("SYSTEM", [Turn(role="user", content="Book room 2")])

        assert reply.function_call.name == "book_room"
        assert reply.function_call.arguments == {"roomId": 2, "nights": 1}
        assert reply.function_call.call_id == "call_9"

    def test_unparseable_arguments(self):
        """Test that broken JSON arguments become an empty dict."""
        sdk = MagicMock()
        sdk.chat.completions.create.return_value = openai_response(tool_calls=[
            openai_tool_call("call_1", "book_room", "{not json"),
        ])
        client = OpenAIChatClient(model="gpt-4o-mini", client=sdk)

        reply = client.complete("SYSTEM", [Turn(role="user", content="Book")])

        assert reply.function_call.arguments == {}

    def test_function_call_disallowed(self):
        """Test that the follow-up call forbids tools."""
        sdk = MagicMock()
        sdk.chat.completions.create.return_value = openai_response(content="Booked.")
        client = OpenAIChatClient(model="gpt-4o-mini", client=sdk)

        reply = client.complete("SYSTEM", [Turn(role="user", content="Hi")], allow_function_call=False)

        assert reply.content == "Booked."
        assert sdk.chat.completions.create.call_args.kwargs["tool_choice"] == "none"

    def test_sdk_error(self):
        """Test that SDK errors become LLMError."""
        sdk = MagicMock()
        sdk.chat.completions.create.side_effect = openai.APIConnectionError(
            request=httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        )
        client = OpenAIChatClient(model="gpt-4o-mini", client=sdk)

        with pytest.raises(LLMError):
            client.complete("SYSTEM", [Turn(role="user", content="Hi")])


class TestAnthropicChatClient:
    """Tests for AnthropicChatClient."""

    def test_render_messages(self, transcript):
        """Test that function turns become tool_use and tool_result blocks."""
        messages = AnthropicChatClient.render_messages(transcript)

        assert messages[0] == {"role": "user", "content": "Show me rooms"}
        assert messages[1]["role"] == "assistant"
        assert messages[1]["content"][0] == {
            "type": "tool_use", "id": "call_1", "name": "get_rooms", "input": {},
        }
        assert messages[2]["role"] == "user"
        assert messages[2]["content"][0] == {
            "type": "tool_result", "tool_use_id": "call_1", "content": "[]",
        }
        assert [m["role"] for m in messages[3:]] == ["assistant", "user"]

    def test_render_skips_empty_text(self):
        """Test that empty assistant turns are dropped."""
        messages = AnthropicChatClient.render_messages([
            Turn(role="user", content="Hi"),
            Turn(role="assistant", content=""),
        ])
        assert messages == [{"role": "user", "content": "Hi"}]

    def test_text_reply(self):
        """Test joining text blocks."""
        sdk = MagicMock()
        sdk.messages.create.return_value = SimpleNamespace(content=[
            SimpleNamespace(type="text", text="Hello"),
            SimpleNamespace(type="text", text="there"),
        ])
        client = AnthropicChatClient(model="claude-sonnet-4-20250514", client=sdk)

        reply = client.complete("SYSTEM", [Turn(role="user", content="Hi")])

        assert reply.content == "Hello\nthere"
        kwargs = sdk.messages.create.call_args.kwargs
        assert kwargs["system"] == "SYSTEM"
        assert kwargs["tool_choice"] == {"type": "auto"}

    def test_function_call(self):
        """Test a tool_use block."""
        sdk = MagicMock()
        sdk.messages.create.return_value = SimpleNamespace(content=[
            SimpleNamespace(type="text", text="Let me check."),
            SimpleNamespace(type="tool_use", id="toolu_1", name="get_rooms", input={}),
        ])
        client = AnthropicChatClient(model="claude-sonnet-4-20250514", client=sdk)

        reply = client.complete("SYSTEM", [Turn(role="user", content="Rooms?")])

        assert reply.function_call.name == "get_rooms"
        assert reply.function_call.call_id == "toolu_1"

    def test_sdk_error(self):
        """Test that SDK errors become LLMError."""
        sdk = MagicMock()
        sdk.messages.create.side_effect = anthropic.APIConnectionError(
            request=httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        )
        client = AnthropicChatClient(model="claude-sonnet-4-20250514", client=sdk)

        with pytest.raises(LLMError):
            client.complete("SYSTEM", [Turn(role="user", content="Hi")])
