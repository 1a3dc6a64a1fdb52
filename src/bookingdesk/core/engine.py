"""Conversation engine: one chat turn from user message to persisted reply."""

import json
import logging
from collections.abc import Callable
from datetime import datetime

from bookingdesk.chains.llm import LLMClient
from bookingdesk.chains.prompts import build_system_prompt
from bookingdesk.core.locks import KeyedLock
from bookingdesk.core.models import Conversation, Turn, TurnResult, User, utcnow
from bookingdesk.ledger.base import ConversationRepository, UserRepository
from bookingdesk.tools.functions import FUNCTION_DEFINITIONS, FunctionDispatcher
from bookingdesk.utils.exceptions import (
    ChatProcessingFailed,
    Unauthenticated,
    ValidationFailure,
)
from bookingdesk.utils.ids import IdGenerator, UUIDGenerator

logger = logging.getLogger(__name__)


class ConversationEngine:
    """Owns the per-user transcript and drives the function-calling loop."""

    def __init__(
        self,
        llm: LLMClient,
        dispatcher: FunctionDispatcher,
        users: UserRepository,
        conversations: ConversationRepository,
        id_generator: IdGenerator | None = None,
        clock: Callable[[], datetime] = utcnow,
        locks: KeyedLock | None = None,
    ):
        """Initialize the engine.

        Args:
            llm: Chat model client
            dispatcher: Executes the model's function calls
            users: User repository
            conversations: Conversation repository
            id_generator: Supplies ids for function calls the model left unnamed
            clock: Returns the current time (injected for tests)
            locks: Per-user locks; turns for one user never interleave
        """
        self.llm = llm
        self.dispatcher = dispatcher
        self.users = users
        self.conversations = conversations
        self.id_generator = id_generator or UUIDGenerator()
        self.clock = clock
        self.locks = locks if locks is not None else KeyedLock()

    def handle_turn(self, user_id: str, text: str) -> TurnResult:
        """Process one user message and return the assistant's reply.

        The transcript is stored only once the reply exists; on failure the
        previously stored transcript is left as it was.

        Args:
            user_id: Caller identity
            text: User message

        Returns:
            TurnResult with the reply and the stored transcript

        Raises:
            Unauthenticated: Empty ``user_id``
            ValidationFailure: Empty message
            ChatProcessingFailed: Model, dispatch or storage error
        """
        if not user_id or not str(user_id).strip():
            raise Unauthenticated("userId is required")
        if not text or not str(text).strip():
            raise ValidationFailure("message is required")

        with self.locks.hold(user_id):
            try:
                user = self._touch_user(user_id)
                conversation = self.conversations.get(user_id) or Conversation(user_id=user_id)
                turns = list(conversation.messages)
                turns.append(Turn(role="user", content=text))

                reply = self._run_model(user, turns)
                turns.append(Turn(role="assistant", content=reply))

                self.conversations.save(Conversation(user_id=user_id, messages=turns))
            except Exception as e:
                logger.exception("Chat turn failed for user %s", user_id)
                raise ChatProcessingFailed("Error processing chat") from e

        return TurnResult(reply=reply, messages=turns)

    def _run_model(self, user: User, turns: list[Turn]) -> str:
        """Call the model, run at most one function, and return the final text.

        Appends the function turn (if any) to ``turns``.
        """
        system_prompt = build_system_prompt(user)
        reply = self.llm.complete(system_prompt, turns, FUNCTION_DEFINITIONS)

        if reply.function_call:
            call = reply.function_call
            result = self.dispatcher.dispatch(call, user_id=user.user_id)
            turns.append(Turn(
                role="function",
                name=call.name,
                arguments=call.arguments,
                call_id=call.call_id or self.id_generator.new_id("call_"),
                content=json.dumps(result, default=str),
            ))
            reply = self.llm.complete(
                system_prompt,
                turns,
                FUNCTION_DEFINITIONS,
                allow_function_call=False,
            )

        return reply.content or ""

    def _touch_user(self, user_id: str) -> User:
        """Load or create the user and stamp ``last_interaction``."""
        now = self.clock()
        user = self.users.get(user_id)
        if user is None:
            user = User(user_id=user_id, last_interaction=now)
        else:
            user = user.model_copy(update={"last_interaction": now})
        return self.users.save(user)

    def get_conversation(self, user_id: str) -> Conversation | None:
        """Return the stored transcript for ``user_id``."""
        return self.conversations.get(user_id)

    def reset_conversation(self, user_id: str) -> bool:
        """Start the user over with an empty transcript."""
        with self.locks.hold(user_id):
            return self.conversations.delete(user_id)
