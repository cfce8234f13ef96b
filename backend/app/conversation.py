"""
Conversation endpoint logic.

This module connects the /conversation/next endpoint to the engine:
1. Converts the API session model to engine SessionState
2. Runs one turn through ConversationHandler (NLU is only a parser)
3. Converts the TurnResult back to API models
4. Never fails the turn: unexpected errors produce a fallback response
"""
import logging
from typing import Optional

from engine.dialog import (
    WELCOME_PROMPT,
    ConversationHandler,
    DialogState as EngineDialogState,
    SessionState,
    TurnResult,
)
from people.models import Constraints, PersonRecord

from .models import (
    ConstraintsModel,
    ConversationRequest,
    ConversationResponse,
    DebugPayload,
    DialogState,
    Person,
    SessionStateModel,
)

logger = logging.getLogger(__name__)


def _log_turn_summary(
    conversation_id: str,
    state: str,
    intent: Optional[str],
    found: Optional[bool],
    nlu_used: bool,
) -> None:
    """
    Structured summary log for each conversation turn.

    - conversation_id: Unique conversation identifier
    - state: Dialog state after the turn
    - intent: Intent that was routed (if any)
    - found: Whether a person was matched (None if no search ran)
    - nlu_used: Whether the LLM was invoked
    """
    logger.info(
        "[TURN-SUMMARY] "
        f"id={conversation_id} "
        f"state={state} "
        f"intent={intent or 'none'} "
        f"found={found} "
        f"nlu_used={nlu_used}"
    )


def person_to_api(record: PersonRecord) -> Person:
    """Convert a directory record to the API Person model."""
    return Person(
        name=record.name,
        expertise=sorted(record.expertise),
        languages=sorted(record.languages),
        team=record.team,
        location=record.location,
    )


def constraints_to_api(constraints: Constraints) -> ConstraintsModel:
    return ConstraintsModel(
        expertise=constraints.expertise,
        language=constraints.language,
        team=constraints.team,
        location=constraints.location,
    )


def _session_from_api(model: SessionStateModel) -> SessionState:
    return SessionState(
        state=EngineDialogState(model.state.value),
        nlu_notice_sent=model.nluNoticeSent,
    )


def _session_to_api(session: SessionState) -> SessionStateModel:
    return SessionStateModel(
        state=DialogState(session.state.value),
        nluNoticeSent=session.nlu_notice_sent,
    )


def _build_response(result: TurnResult, debug: bool) -> ConversationResponse:
    nlu_result = result.nlu_result
    match = result.match

    debug_payload = None
    if debug:
        debug_payload = DebugPayload(
            transitions=[s.value for s in result.transitions],
            nluRawEntities=nlu_result.entities if nlu_result else None,
            nluConfidence=nlu_result.confidence if nlu_result else None,
            eligibleCount=match.eligible_count if match else None,
        )

    return ConversationResponse(
        assistantMessage=result.assistant_message,
        messages=result.messages,
        session=_session_to_api(result.session),
        intent=result.intent,
        constraints=constraints_to_api(result.constraints) if result.constraints else None,
        match=person_to_api(match.person) if match and match.found else None,
        distance=match.distance if match and match.found else None,
        nluUsed=bool(nlu_result and nlu_result.llm_used),
        aiModel=(nlu_result.llm_model if nlu_result and nlu_result.llm_model else "deterministic"),
        debugPayload=debug_payload,
    )


async def process_conversation(
    request: ConversationRequest,
    handler: ConversationHandler,
) -> ConversationResponse:
    """
    Process a conversation turn.

    Args:
        request: The conversation request
        handler: Configured ConversationHandler

    Returns:
        ConversationResponse with the reply and next session state
    """
    msg_preview = request.userMessage[:50] + "..." if len(request.userMessage) > 50 else request.userMessage
    logger.info(
        f"[CONVERSATION] Turn: id={request.conversationId}, "
        f"state={request.session.state.value}, "
        f"message='{msg_preview}'"
    )

    try:
        result = await handler.handle_turn(
            session=_session_from_api(request.session),
            user_message=request.userMessage,
        )
        response = _build_response(result, request.debug)

        _log_turn_summary(
            conversation_id=request.conversationId,
            state=result.session.state.value,
            intent=result.intent,
            found=result.match.found if result.match else None,
            nlu_used=response.nluUsed,
        )
        return response

    except Exception as e:
        logger.error(f"[CONVERSATION] Unexpected error: {e}", exc_info=True)
        return _create_fallback_response(request, handler)


def _create_fallback_response(
    request: ConversationRequest,
    handler: ConversationHandler,
) -> ConversationResponse:
    """Create a safe fallback response that asks again."""
    message = "I'm sorry, something went wrong. " + WELCOME_PROMPT
    state = DialogState.AWAITING_INPUT if handler.nlu_configured else DialogState.START

    logger.warning(f"METRIC conversation_fallback_used conversationId={request.conversationId}")

    return ConversationResponse(
        assistantMessage=message,
        messages=[message],
        session=SessionStateModel(
            state=state,
            nluNoticeSent=request.session.nluNoticeSent,
        ),
        nluUsed=False,
        aiModel="fallback",
    )
