"""Integration tests for ConversationEngine with the real dispatcher and ledger."""

import json
import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from bookingdesk.core.engine import ConversationEngine
from bookingdesk.core.models import FunctionCall, LLMReply, User
from bookingdesk.utils.exceptions import (
    ChatProcessingFailed,
    LLMError,
    Unauthenticated,
    ValidationFailure,
)


@pytest.fixture
def engine(fake_llm, dispatcher, ledger, id_generator, clock) -> ConversationEngine:
    return ConversationEngine(
        llm=fake_llm,
        dispatcher=dispatcher,
        users=ledger.users,
        conversations=ledger.conversations,
        id_generator=id_generator,
        clock=clock,
    )


class TestPlainTurns:
    """Tests for turns without function calls."""

    def test_reply_is_stored(self, engine, fake_llm, ledger):
        """Test that a turn stores the user message and the reply."""
        fake_llm.complete.return_value = LLMReply(content="Hello! How can I help?")

        result = engine.handle_turn("alice", "Hi")

        assert result.reply == "Hello! How can I help?"
        assert [(t.role, t.content) for t in result.messages] == [
            ("user", "Hi"),
            ("assistant", "Hello! How can I help?"),
        ]
        assert ledger.conversations.get("alice").messages == result.messages

    def test_transcript_grows_by_two_per_turn(self, engine, fake_llm):
        """Test that N plain turns leave 2N messages."""
        fake_llm.complete.return_value = LLMReply(content="Sure.")

        for i in range(3):
            engine.handle_turn("alice", f"message {i}")

        assert len(engine.get_conversation("alice").messages) == 6

    def test_users_have_separate_transcripts(self, engine, fake_llm):
        """Test that conversations are keyed by user."""
        fake_llm.complete.return_value = LLMReply(content="Hi.")

        engine.handle_turn("alice", "Hi")
        engine.handle_turn("bob", "Hi")
        engine.handle_turn("bob", "Again")

        assert len(engine.get_conversation("alice").messages) == 2
        assert len(engine.get_conversation("bob").messages) == 4

    def test_user_is_created_and_touched(self, engine, fake_llm, ledger, fixed_now):
        """Test that the first turn creates the user record."""
        fake_llm.complete.return_value = LLMReply(content="Hi.")

        engine.handle_turn("alice", "Hi")

        assert ledger.users.get("alice").last_interaction == fixed_now

    def test_existing_user_details_in_prompt(self, engine, fake_llm, ledger):
        """Test that stored user details reach the system prompt."""
        ledger.users.add(User(user_id="alice", full_name="Alice Smith"))
        fake_llm.complete.return_value = LLMReply(content="You are Alice Smith.")

        engine.handle_turn("alice", "Who am I?")

        system_prompt = fake_llm.complete.call_args.args[0]
        assert '"fullName": "Alice Smith"' in system_prompt
        assert ledger.users.get("alice").full_name == "Alice Smith"

    def test_reset_conversation(self, engine, fake_llm):
        """Test starting over."""
        fake_llm.complete.return_value = LLMReply(content="Hi.")
        engine.handle_turn("alice", "Hi")

        assert engine.reset_conversation("alice") is True
        assert engine.get_conversation("alice") is None


class TestConcurrentTurns:
    """Tests for simultaneous turns from one user."""

    def test_turns_are_serialized_per_user(self, engine, fake_llm):
        """Test that concurrent turns neither lose nor interleave messages."""
        guard = threading.Lock()
        active = [0]
        peak = [0]

        def slow_complete(system_prompt, turns, functions, **kwargs):
            with guard:
                active[0] += 1
                peak[0] = max(peak[0], active[0])
            time.sleep(0.02)
            with guard:
                active[0] -= 1
            return LLMReply(content=f"reply to {turns[-1].content}")

        fake_llm.complete.side_effect = slow_complete

        with ThreadPoolExecutor(max_workers=5) as pool:
            list(pool.map(lambda i: engine.handle_turn("alice", f"message {i}"), range(5)))

        messages = engine.get_conversation("alice").messages
        assert len(messages) == 10
        assert [t.role for t in messages] == ["user", "assistant"] * 5
        for question, answer in zip(messages[::2], messages[1::2]):
            assert answer.content == f"reply to {question.content}"
        assert sorted(t.content for t in messages[::2]) == [f"message {i}" for i in range(5)]
        assert peak[0] == 1


class TestFunctionCalls:
    """Tests for turns where the model calls a function."""

    def test_get_rooms_round_trip(self, engine, fake_llm, sample_rooms):
        """Test that the function result is recorded between user and reply."""
        fake_llm.complete.side_effect = [
            LLMReply(function_call=FunctionCall(name="get_rooms")),
            LLMReply(content="We have a Deluxe Room and a Suite."),
        ]

        result = engine.handle_turn("alice", "What rooms do you have?")

        assert [t.role for t in result.messages] == ["user", "function", "assistant"]
        function_turn = result.messages[1]
        assert function_turn.name == "get_rooms"
        assert function_turn.call_id == "call_1"
        assert json.loads(function_turn.content) == sample_rooms
        assert result.reply == "We have a Deluxe Room and a Suite."

    def test_follow_up_forbids_another_call(self, engine, fake_llm):
        """Test that the second model call must answer in text."""
        fake_llm.complete.side_effect = [
            LLMReply(function_call=FunctionCall(name="get_rooms", call_id="call_abc")),
            LLMReply(content="Here they are."),
        ]

        result = engine.handle_turn("alice", "Rooms?")

        assert fake_llm.complete.call_count == 2
        assert fake_llm.complete.call_args_list[0].kwargs.get("allow_function_call", True) is True
        assert fake_llm.complete.call_args_list[1].kwargs["allow_function_call"] is False
        assert result.messages[1].call_id == "call_abc"

    def test_booking_in_chat_belongs_to_user(self, engine, fake_llm, ledger):
        """Test that a booking made in chat is owned by the chatting user."""
        fake_llm.complete.side_effect = [
            LLMReply(function_call=FunctionCall(
                name="book_room",
                arguments={"roomId": 1, "fullName": "Alice Smith", "email": "alice@example.com", "nights": 3},
            )),
            LLMReply(content="Booked! Your booking id is BK-100."),
        ]

        engine.handle_turn("alice", "Book room 1 for 3 nights")

        assert [b.booking_id for b in ledger.bookings.list_by_user("alice")] == ["BK-100"]

    def test_function_error_is_given_to_model(self, engine, fake_llm):
        """Test that a failed function still produces a reply."""
        fake_llm.complete.side_effect = [
            LLMReply(function_call=FunctionCall(
                name="process_payment",
                arguments={"bookingId": "BK-404", "amount": 10, "method": "paypal"},
            )),
            LLMReply(content="I couldn't find that booking."),
        ]

        result = engine.handle_turn("alice", "Pay for BK-404")

        assert json.loads(result.messages[1].content) == {"error": "Booking not found: BK-404"}
        assert result.reply == "I couldn't find that booking."


class TestFailures:
    """Tests for rejected and failed turns."""

    def test_missing_user(self, engine, fake_llm):
        """Test that a turn needs a user id."""
        with pytest.raises(Unauthenticated):
            engine.handle_turn("", "Hi")
        fake_llm.complete.assert_not_called()

    def test_empty_message(self, engine, fake_llm):
        """Test that a turn needs text."""
        with pytest.raises(ValidationFailure):
            engine.handle_turn("alice", "   ")
        fake_llm.complete.assert_not_called()

    def test_model_failure_keeps_transcript(self, engine, fake_llm):
        """Test that a failed turn leaves the stored transcript unchanged."""
        fake_llm.complete.return_value = LLMReply(content="Hi.")
        engine.handle_turn("alice", "Hi")

        fake_llm.complete.side_effect = LLMError("rate limited")
        with pytest.raises(ChatProcessingFailed, match="Error processing chat"):
            engine.handle_turn("alice", "Are you there?")

        assert [t.content for t in engine.get_conversation("alice").messages] == ["Hi", "Hi."]

    def test_failure_in_follow_up_keeps_transcript(self, engine, fake_llm, ledger):
        """Test that a failure after a function call stores nothing new."""
        fake_llm.complete.side_effect = [
            LLMReply(function_call=FunctionCall(name="get_rooms")),
            LLMError("timeout"),
        ]

        with pytest.raises(ChatProcessingFailed):
            engine.handle_turn("alice", "Rooms?")

        assert ledger.conversations.get("alice") is None
