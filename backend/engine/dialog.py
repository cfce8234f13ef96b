"""
Deterministic conversation handler.

This module is the SINGLE SOURCE OF TRUTH for conversation flow decisions.
One turn walks a small state machine:

    START -> AWAITING_INPUT -> ROUTING -> DONE

- START: greet (or, without NLU, explain the fallback and search right away)
- AWAITING_INPUT: run NLU on the user's message
- ROUTING: hand the constraints to the matching sub-dialog
- DONE: the answer was sent; the next turn starts over

The session state is echoed back by the client, so the handler keeps no
per-conversation storage. NO LLM calls are made here except through the
injected NluService.
"""
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Optional, Sequence
import logging

from dialogs.specs import Intent
from people.matcher import find_best_match
from people.models import (
    DEFAULT_LOCATION,
    Constraints,
    MatchResult,
    Number,
    PersonRecord,
    format_location,
    normalize_constraints,
)
from .nlu import NluResult, NluService

logger = logging.getLogger(__name__)


WELCOME_PROMPT = "Who do you want to find?"
NLU_NOT_CONFIGURED_NOTICE = (
    "NOTE: NLU is not configured. To enable all capabilities, "
    "add `OPENAI_API_KEY` to the .env file."
)
NOT_FOUND_MESSAGE = "I wasn't able to find anyone :( Try searching with different specs?"
NOT_UNDERSTOOD_MESSAGE = "Sorry, I didn't catch who you're looking for."


class DialogState(str, Enum):
    """States of the main dialog."""
    START = "START"
    AWAITING_INPUT = "AWAITING_INPUT"
    ROUTING = "ROUTING"
    DONE = "DONE"


@dataclass
class SessionState:
    """Per-conversation state carried by the client between turns."""
    state: DialogState = DialogState.START
    nlu_notice_sent: bool = False


@dataclass
class TurnResult:
    """Everything one turn produced."""
    messages: List[str] = field(default_factory=list)
    session: SessionState = field(default_factory=SessionState)
    transitions: List[DialogState] = field(default_factory=list)
    intent: Optional[str] = None
    constraints: Optional[Constraints] = None
    match: Optional[MatchResult] = None
    nlu_result: Optional[NluResult] = None

    @property
    def assistant_message(self) -> str:
        return "\n".join(self.messages)

    def enter(self, state: DialogState) -> None:
        self.session.state = state
        self.transitions.append(state)


# =============================================================================
# PERSON SUB-DIALOG
# =============================================================================

def format_match_message(result: MatchResult) -> str:
    """Render a match result as the reply sent to the user."""
    if not result.found:
        return NOT_FOUND_MESSAGE
    person = result.person
    return f"You should talk to {person.name} in Building {format_location(person.location)}!"


def run_person_dialog(
    directory: Sequence[PersonRecord],
    constraints: Constraints,
) -> MatchResult:
    """Find the best person for the constraints. Pure; never raises for no match."""
    return find_best_match(directory, constraints)


# =============================================================================
# MAIN DIALOG
# =============================================================================

class ConversationHandler:
    """
    Drives the main dialog for one turn at a time.

    Whether NLU is available is decided once, by passing an NluService (or
    None) at construction. The directory is shared, read-only state.
    """

    def __init__(
        self,
        directory: Sequence[PersonRecord],
        nlu: Optional[NluService] = None,
        default_location: Number = DEFAULT_LOCATION,
    ):
        self.directory = directory
        self.nlu = nlu
        self.default_location = default_location

    @property
    def nlu_configured(self) -> bool:
        return self.nlu is not None

    async def handle_turn(
        self,
        session: Optional[SessionState] = None,
        user_message: str = "",
    ) -> TurnResult:
        """
        Process one user turn.

        Rules:
        1. AWAITING_INPUT with NLU => recognize, then route
        2. Anything else => intro step (prompt, or fallback search without NLU)

        Args:
            session: State echoed back by the client (not modified)
            user_message: The user's message for this turn

        Returns:
            TurnResult with the messages to send and the next session state
        """
        session = replace(session) if session else SessionState()
        result = TurnResult(session=session)

        if session.state == DialogState.AWAITING_INPUT and self.nlu_configured:
            await self._act(result, user_message)
        else:
            self._intro(result)

        logger.info(
            f"[DIALOG] transitions={[s.value for s in result.transitions]} "
            f"intent={result.intent or 'none'} "
            f"found={result.match.found if result.match else None}"
        )
        return result

    def _intro(self, result: TurnResult) -> None:
        result.enter(DialogState.START)

        if not self.nlu_configured:
            if not result.session.nlu_notice_sent:
                result.messages.append(NLU_NOT_CONFIGURED_NOTICE)
                result.session.nlu_notice_sent = True
            logger.info("[DIALOG] NLU not configured, searching with default constraints")
            constraints = normalize_constraints({}, self.default_location)
            self._route(result, Intent.FIND_PERSON.value, constraints)
            return

        result.messages.append(WELCOME_PROMPT)
        result.enter(DialogState.AWAITING_INPUT)

    async def _act(self, result: TurnResult, user_message: str) -> None:
        nlu_result = await self.nlu.recognize(user_message)
        result.nlu_result = nlu_result

        constraints = normalize_constraints(nlu_result.entities, self.default_location)
        self._route(result, nlu_result.intent, constraints)

    def _route(self, result: TurnResult, intent: str, constraints: Constraints) -> None:
        result.enter(DialogState.ROUTING)
        result.intent = intent
        result.constraints = constraints

        if intent != Intent.FIND_PERSON.value:
            # Ask again
            logger.info(f"[DIALOG] Unhandled intent '{intent}', asking again")
            result.messages.append(NOT_UNDERSTOOD_MESSAGE)
            result.messages.append(WELCOME_PROMPT)
            result.enter(DialogState.AWAITING_INPUT)
            return

        match = run_person_dialog(self.directory, constraints)
        result.match = match
        result.messages.append(format_match_message(match))
        result.enter(DialogState.DONE)

        # The main dialog starts over once the answer is out
        if self.nlu_configured:
            result.enter(DialogState.START)
            result.messages.append(WELCOME_PROMPT)
            result.enter(DialogState.AWAITING_INPUT)
