"""Model clients and prompts."""

from bookingdesk.chains.llm import (
    AnthropicChatClient,
    LLMClient,
    OpenAIChatClient,
    build_llm_client,
    is_openai_model,
)
from bookingdesk.chains.prompts import build_system_prompt

__all__ = [
    "AnthropicChatClient",
    "LLMClient",
    "OpenAIChatClient",
    "build_llm_client",
    "build_system_prompt",
    "is_openai_model",
]
