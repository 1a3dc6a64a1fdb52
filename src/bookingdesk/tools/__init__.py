"""Functions the model can call."""

from bookingdesk.tools.functions import (
    FUNCTION_DEFINITIONS,
    FunctionDispatcher,
    to_openai_tools,
)

__all__ = [
    "FUNCTION_DEFINITIONS",
    "FunctionDispatcher",
    "to_openai_tools",
]
