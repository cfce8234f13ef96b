"""
Tests for the conversation handler state machine.

These tests verify that:
1. Without NLU, the user gets the fallback notice (once) and a search with
   default constraints
2. With NLU, the first turn prompts and the next turn routes to a search
3. Unrecognized intents ask again
4. The caller's session object is never modified
"""
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from engine.dialog import (
    NLU_NOT_CONFIGURED_NOTICE,
    NOT_FOUND_MESSAGE,
    NOT_UNDERSTOOD_MESSAGE,
    WELCOME_PROMPT,
    ConversationHandler,
    DialogState,
    SessionState,
    format_match_message,
)
from engine.nlu import NluResult, NluService
from people.models import Constraints, MatchResult, PersonRecord


def person(name, expertise=(), languages=(), team="", location=0):
    return PersonRecord(
        name=name,
        expertise=frozenset(expertise),
        languages=frozenset(languages),
        team=team,
        location=location,
    )


DIRECTORY = (
    person("Ana", ["ml"], ["english"], "X", 10),
    person("Ben", ["ml"], ["spanish"], "X", 20),
    person("Cal", ["security"], ["english"], "Y", 30),
)


def mock_extraction_client(data):
    """Create a mock OpenAI client that returns one NLU JSON payload."""
    mock_response = MagicMock()
    mock_response.choices = [MagicMock()]
    mock_response.choices[0].message.content = json.dumps(data)
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=mock_response)
    return client


def handler_with_nlu(data, directory=DIRECTORY):
    return ConversationHandler(directory, nlu=NluService(mock_extraction_client(data)))


class TestFormatMatchMessage:
    def test_found(self):
        result = MatchResult(person=DIRECTORY[0], distance=2, eligible_count=1)
        assert format_match_message(result) == "You should talk to Ana in Building 10!"

    def test_not_found(self):
        assert format_match_message(MatchResult()) == NOT_FOUND_MESSAGE


class TestWithoutNlu:
    """NLU unavailable: notice + default constraints."""

    @pytest.mark.asyncio
    async def test_first_turn_sends_notice_and_searches_with_defaults(self):
        handler = ConversationHandler(DIRECTORY)
        assert handler.nlu_configured is False

        result = await handler.handle_turn(SessionState(), "hello")

        assert result.messages[0] == NLU_NOT_CONFIGURED_NOTICE
        assert result.constraints == Constraints(location=27)
        # Cal at 30 is closest to building 27
        assert result.match.person.name == "Cal"
        assert result.messages[1] == "You should talk to Cal in Building 30!"
        assert result.session.state == DialogState.DONE
        assert result.session.nlu_notice_sent is True
        assert result.transitions == [DialogState.START, DialogState.ROUTING, DialogState.DONE]
        assert result.nlu_result is None

    @pytest.mark.asyncio
    async def test_notice_sent_only_once(self):
        handler = ConversationHandler(DIRECTORY)

        first = await handler.handle_turn(SessionState(), "")
        second = await handler.handle_turn(first.session, "again")

        assert NLU_NOT_CONFIGURED_NOTICE in first.messages
        assert NLU_NOT_CONFIGURED_NOTICE not in second.messages
        assert second.messages == ["You should talk to Cal in Building 30!"]

    @pytest.mark.asyncio
    async def test_custom_default_location(self):
        handler = ConversationHandler(DIRECTORY, default_location=11)
        result = await handler.handle_turn(SessionState(), "")
        assert result.match.person.name == "Ana"

    @pytest.mark.asyncio
    async def test_stale_awaiting_input_runs_intro(self):
        handler = ConversationHandler(DIRECTORY)
        result = await handler.handle_turn(SessionState(state=DialogState.AWAITING_INPUT), "who knows ml")
        assert result.transitions[0] == DialogState.START
        assert result.session.state == DialogState.DONE

    @pytest.mark.asyncio
    async def test_empty_directory_reports_not_found(self):
        handler = ConversationHandler(())
        result = await handler.handle_turn(SessionState(), "")
        assert result.messages[-1] == NOT_FOUND_MESSAGE
        assert result.match.found is False


class TestWithNlu:
    """NLU configured: prompt, recognize, route, restart."""

    @pytest.mark.asyncio
    async def test_first_turn_prompts(self):
        handler = handler_with_nlu({"intent": "findPerson", "entities": {}})

        result = await handler.handle_turn(SessionState(), "")

        assert result.messages == [WELCOME_PROMPT]
        assert result.session.state == DialogState.AWAITING_INPUT
        assert result.match is None
        handler.nlu.client.chat.completions.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_find_person_routes_to_search(self):
        handler = handler_with_nlu({
            "intent": "findPerson",
            "entities": {"expertise": ["ml"], "language": ["Spanish"]},
        })

        result = await handler.handle_turn(
            SessionState(state=DialogState.AWAITING_INPUT),
            "someone who knows ml and speaks spanish",
        )

        assert result.intent == "findPerson"
        assert result.constraints == Constraints(expertise="ml", language="spanish", location=27)
        assert result.match.person.name == "Ben"
        assert result.messages == ["You should talk to Ben in Building 20!", WELCOME_PROMPT]
        assert result.transitions == [
            DialogState.ROUTING,
            DialogState.DONE,
            DialogState.START,
            DialogState.AWAITING_INPUT,
        ]
        assert result.session.state == DialogState.AWAITING_INPUT

    @pytest.mark.asyncio
    async def test_location_from_message_changes_best_match(self):
        handler = handler_with_nlu({"intent": "findPerson", "entities": {"expertise": "ml"}})

        result = await handler.handle_turn(
            SessionState(state=DialogState.AWAITING_INPUT),
            "ml person near building 12",
        )

        assert result.constraints.location == 12
        assert result.match.person.name == "Ana"

    @pytest.mark.asyncio
    async def test_no_match_message(self):
        handler = handler_with_nlu({"intent": "findPerson", "entities": {"team": ["Z"]}})

        result = await handler.handle_turn(SessionState(state=DialogState.AWAITING_INPUT), "team Z")

        assert result.match.found is False
        assert result.messages[0] == NOT_FOUND_MESSAGE

    @pytest.mark.asyncio
    async def test_unrecognized_intent_asks_again(self):
        handler = handler_with_nlu({"intent": "bookFlight", "entities": {}})

        result = await handler.handle_turn(SessionState(state=DialogState.AWAITING_INPUT), "fly me to Paris")

        assert result.intent == "None"
        assert result.match is None
        assert result.messages == [NOT_UNDERSTOOD_MESSAGE, WELCOME_PROMPT]
        assert result.session.state == DialogState.AWAITING_INPUT

    @pytest.mark.asyncio
    async def test_nlu_failure_asks_again(self):
        client = MagicMock()
        client.chat.completions.create = AsyncMock(side_effect=RuntimeError("timeout"))
        handler = ConversationHandler(DIRECTORY, nlu=NluService(client))

        result = await handler.handle_turn(SessionState(state=DialogState.AWAITING_INPUT), "who knows ml")

        assert result.messages == [NOT_UNDERSTOOD_MESSAGE, WELCOME_PROMPT]

    @pytest.mark.asyncio
    async def test_no_notice_with_nlu(self):
        handler = handler_with_nlu({"intent": "findPerson", "entities": {}})
        result = await handler.handle_turn(SessionState(), "")
        assert NLU_NOT_CONFIGURED_NOTICE not in result.messages
        assert result.session.nlu_notice_sent is False

    @pytest.mark.asyncio
    async def test_recognize_called_with_message(self):
        nlu = MagicMock()
        nlu.recognize = AsyncMock(return_value=NluResult(intent="findPerson", entities={"team": "Y"}))
        handler = ConversationHandler(DIRECTORY, nlu=nlu)

        result = await handler.handle_turn(SessionState(state=DialogState.AWAITING_INPUT), "someone on Y")

        nlu.recognize.assert_awaited_once_with("someone on Y")
        assert result.match.person.name == "Cal"


class TestSessionHandling:
    @pytest.mark.asyncio
    async def test_caller_session_not_mutated(self):
        handler = ConversationHandler(DIRECTORY)
        session = SessionState()

        result = await handler.handle_turn(session, "")

        assert session.state == DialogState.START
        assert session.nlu_notice_sent is False
        assert result.session is not session

    @pytest.mark.asyncio
    async def test_missing_session_starts_fresh(self):
        handler = handler_with_nlu({"intent": "findPerson", "entities": {}})
        result = await handler.handle_turn(None, "")
        assert result.session.state == DialogState.AWAITING_INPUT

    @pytest.mark.asyncio
    async def test_directory_unchanged_after_turns(self):
        directory = tuple(DIRECTORY)
        handler = handler_with_nlu({"intent": "findPerson", "entities": {"expertise": "ml"}}, directory)

        for _ in range(5):
            await handler.handle_turn(SessionState(state=DialogState.AWAITING_INPUT), "ml")

        assert directory == DIRECTORY
