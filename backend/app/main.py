"""
People Finder Backend - FastAPI Application

Hosts the main dialog: prompt the user, recognize who they are looking for
(OpenAI as NLU, when configured) and answer with the closest matching person
from the static directory.

Python 3.9 compatible.
"""

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from openai import AsyncOpenAI

from engine.dialog import ConversationHandler, format_match_message
from engine.nlu import NluService
from people.loader import Directory, DirectoryLoadError, load_directory
from people.matcher import find_best_match, rank_candidates
from people.models import normalize_constraints

from .config import Settings, load_settings
from .conversation import constraints_to_api, person_to_api, process_conversation
from .models import (
    ConversationRequest,
    ConversationResponse,
    PeopleListResponse,
    PeopleMatchRequest,
    PeopleMatchResponse,
    RankedPerson,
)

APP_VERSION = "1.0.0"

# Load environment variables from backend/.env
# Try multiple paths to ensure we find .env
env_paths = [
    Path(__file__).parent.parent / ".env",  # backend/.env
    Path.cwd() / ".env",  # current working directory
]
for env_path in env_paths:
    if env_path.exists():
        load_dotenv(env_path)
        break
else:
    load_dotenv()  # fallback to default behavior

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if os.getenv("DEBUG", "false").lower() == "true" else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Service instances (Python 3.9 compatible type hints)
settings: Optional[Settings] = None
directory: Directory = ()
nlu_service: Optional[NluService] = None
conversation_handler: Optional[ConversationHandler] = None


def _mask_key(key: Optional[str]) -> str:
    """Mask API key showing only last 4 chars."""
    if not key:
        return "(not set)"
    if len(key) <= 4:
        return "****"
    return f"****{key[-4:]}"


def configure_services(app_settings: Settings, openai_client: Any = None) -> None:
    """
    Build the services from explicit settings.

    Args:
        app_settings: Settings to apply
        openai_client: Pre-built OpenAI client (tests); created from the
            API key when omitted and NLU is configured

    Raises:
        DirectoryLoadError: If the directory file can't be loaded
    """
    global settings, directory, nlu_service, conversation_handler

    logger.info(f"OPENAI_API_KEY present: {app_settings.nlu_configured} ({_mask_key(app_settings.openai_api_key)})")
    logger.info(f"OPENAI_MODEL: {app_settings.openai_model}")
    logger.info(f"PEOPLE_DIRECTORY_PATH: {app_settings.directory_path}")
    logger.info(f"DEFAULT_LOCATION: {app_settings.default_location}")

    loaded = load_directory(app_settings.directory_path)

    nlu = None
    if app_settings.nlu_configured:
        client = openai_client or AsyncOpenAI(api_key=app_settings.openai_api_key)
        nlu = NluService(client, model=app_settings.openai_model)
        logger.info("NLU service initialized successfully")
    else:
        logger.warning("NLU service NOT initialized - OPENAI_API_KEY missing, using default constraints")

    settings = app_settings
    directory = loaded
    nlu_service = nlu
    conversation_handler = ConversationHandler(
        directory=loaded,
        nlu=nlu,
        default_location=app_settings.default_location,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - initialize services."""
    logger.info("=" * 60)
    logger.info("Initializing People Finder Backend")
    logger.info("=" * 60)

    try:
        configure_services(load_settings())
    except DirectoryLoadError as e:
        # FAIL FAST - there is nothing to search without a directory
        logger.error(f"Failed to load people directory: {e}")
        raise

    logger.info("=" * 60)

    yield

    logger.info("Shutting down People Finder Backend")


app = FastAPI(
    title="People Finder Backend",
    description="Conversational search for the right person to talk to",
    version=APP_VERSION,
    lifespan=lifespan,
)

# CORS middleware for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _require_handler() -> ConversationHandler:
    if conversation_handler is None:
        raise HTTPException(status_code=503, detail="Services are not initialized")
    return conversation_handler


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": APP_VERSION,
        "nluConfigured": nlu_service is not None,
        "peopleLoaded": len(directory),
    }


@app.post("/conversation/next", response_model=ConversationResponse)
async def conversation_next(request: ConversationRequest) -> ConversationResponse:
    """Run one turn of the main dialog."""
    handler = _require_handler()
    return await process_conversation(request, handler)


@app.get("/people", response_model=PeopleListResponse)
async def list_people() -> PeopleListResponse:
    """List the directory in stored order."""
    _require_handler()
    return PeopleListResponse(
        count=len(directory),
        people=[person_to_api(record) for record in directory],
    )


@app.post("/people/match", response_model=PeopleMatchResponse)
async def people_match(request: PeopleMatchRequest) -> PeopleMatchResponse:
    """
    Find the closest person for explicit constraints.

    Deterministic - NO NLU call. Returns the same reply text the
    conversation would send.
    """
    handler = _require_handler()

    constraints = normalize_constraints(
        {
            "expertise": request.expertise,
            "language": request.language,
            "team": request.team,
            "location": request.location,
        },
        handler.default_location,
    )
    result = find_best_match(directory, constraints)

    candidates = []
    if request.includeCandidates:
        candidates = [
            RankedPerson(person=person_to_api(record), distance=distance)
            for record, distance in rank_candidates(directory, constraints, limit=request.limit)
        ]

    return PeopleMatchResponse(
        found=result.found,
        person=person_to_api(result.person) if result.found else None,
        distance=result.distance,
        message=format_match_message(result),
        constraints=constraints_to_api(constraints),
        candidates=candidates,
    )
