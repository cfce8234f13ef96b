"""
Pydantic models for the People Finder API.
Python 3.9 compatible - uses typing.List, typing.Dict, typing.Optional
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field


class DialogState(str, Enum):
    START = "START"
    AWAITING_INPUT = "AWAITING_INPUT"
    ROUTING = "ROUTING"
    DONE = "DONE"


class SessionStateModel(BaseModel):
    """Session state the client echoes back on every turn."""
    state: DialogState = DialogState.START
    nluNoticeSent: bool = False


class Person(BaseModel):
    name: str
    expertise: List[str]
    languages: List[str]
    team: str
    location: float


class ConstraintsModel(BaseModel):
    expertise: Optional[str] = None
    language: Optional[str] = None
    team: Optional[str] = None
    location: float


class ConversationRequest(BaseModel):
    conversationId: str
    userMessage: str = ""
    session: SessionStateModel = Field(default_factory=SessionStateModel)
    debug: bool = False


class DebugPayload(BaseModel):
    """Debug information returned when debug=true."""
    transitions: List[str]
    nluRawEntities: Optional[Dict[str, Any]] = None
    nluConfidence: Optional[str] = None
    eligibleCount: Optional[int] = None


class ConversationResponse(BaseModel):
    assistantMessage: str
    messages: List[str]
    session: SessionStateModel
    intent: Optional[str] = None
    constraints: Optional[ConstraintsModel] = None
    match: Optional[Person] = None
    distance: Optional[float] = None
    nluUsed: bool = False
    aiModel: str = "deterministic"
    debugPayload: Optional[DebugPayload] = None  # Only present when debug=true


# ============================================================
# Direct matching models (NO NLU, deterministic)
# ============================================================

class PeopleMatchRequest(BaseModel):
    """Constraints for a direct search. Tag fields accept a string or a list."""
    expertise: Optional[Union[str, List[str]]] = None
    language: Optional[Union[str, List[str]]] = None
    team: Optional[Union[str, List[str]]] = None
    location: Optional[Union[float, str]] = None
    includeCandidates: bool = False
    limit: int = Field(default=10, ge=1, le=100)


class RankedPerson(BaseModel):
    person: Person
    distance: float


class PeopleMatchResponse(BaseModel):
    found: bool
    person: Optional[Person] = None
    distance: Optional[float] = None
    message: str
    constraints: ConstraintsModel
    candidates: List[RankedPerson] = Field(default_factory=list)


class PeopleListResponse(BaseModel):
    count: int
    people: List[Person]
