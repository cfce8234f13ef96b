"""
Runtime settings read from the environment once at startup.

Python 3.9 compatible - uses typing.Optional
"""
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from people.loader import DEFAULT_DIRECTORY_PATH
from people.models import DEFAULT_LOCATION, Number, parse_location

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Settings:
    """Explicit configuration handed to the services at startup."""
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    directory_path: Path = DEFAULT_DIRECTORY_PATH
    default_location: Number = DEFAULT_LOCATION
    debug: bool = False

    @property
    def nlu_configured(self) -> bool:
        return bool(self.openai_api_key)


def load_settings() -> Settings:
    """Build Settings from environment variables."""
    api_key = os.getenv("OPENAI_API_KEY", "").strip() or None

    raw_location = os.getenv("DEFAULT_LOCATION", "").strip()
    default_location = parse_location(raw_location) if raw_location else None
    if raw_location and default_location is None:
        logger.warning(f"Ignoring invalid DEFAULT_LOCATION={raw_location!r}")
    if default_location is None:
        default_location = DEFAULT_LOCATION

    directory_path = os.getenv("PEOPLE_DIRECTORY_PATH", "").strip()

    return Settings(
        openai_api_key=api_key,
        openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
        directory_path=Path(directory_path) if directory_path else DEFAULT_DIRECTORY_PATH,
        default_location=default_location,
        debug=os.getenv("DEBUG", "false").lower() == "true",
    )
