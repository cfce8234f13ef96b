"""
Load the static people directory from JSON.

The file is either a list of record objects or an object keyed by record id
(key ignored, insertion order kept). Loaded once at startup.
"""
import json
import logging
import math
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Tuple, Union

from .models import PersonRecord, normalize_tags

logger = logging.getLogger(__name__)

Directory = Tuple[PersonRecord, ...]

DEFAULT_DIRECTORY_PATH = Path(__file__).resolve().parent / "data" / "people.json"


class DirectoryLoadError(Exception):
    """Raised when the directory file is missing or malformed."""


def _parse_tags(value: Any, field_name: str, label: str):
    if value is None:
        return frozenset()
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise DirectoryLoadError(f"{label}: '{field_name}' must be a list of strings")
    return normalize_tags(value)


def parse_record(raw: Any, label: str = "record") -> PersonRecord:
    """
    Build a PersonRecord from one raw JSON object.

    Raises:
        DirectoryLoadError: If a required field is missing or has the wrong type
    """
    if not isinstance(raw, Mapping):
        raise DirectoryLoadError(f"{label}: expected an object, got {type(raw).__name__}")

    name = raw.get("name")
    if not isinstance(name, str) or not name.strip():
        raise DirectoryLoadError(f"{label}: 'name' is required")

    location = raw.get("location")
    if isinstance(location, bool) or not isinstance(location, (int, float)):
        raise DirectoryLoadError(f"{label} ({name}): 'location' must be a number")
    if isinstance(location, float) and not math.isfinite(location):
        raise DirectoryLoadError(f"{label} ({name}): 'location' must be a finite number")

    team = raw.get("team") or ""
    if not isinstance(team, str):
        raise DirectoryLoadError(f"{label} ({name}): 'team' must be a string")

    return PersonRecord(
        name=name.strip(),
        expertise=_parse_tags(raw.get("expertise"), "expertise", label),
        languages=_parse_tags(raw.get("languages"), "languages", label),
        team=team.strip(),
        location=location,
    )


def parse_directory(data: Union[List[Any], Mapping[str, Any]]) -> Directory:
    """Parse already-decoded JSON into an ordered directory."""
    entries: Iterable[Tuple[str, Any]]
    if isinstance(data, Mapping):
        entries = ((str(key), value) for key, value in data.items())
    elif isinstance(data, list):
        entries = ((f"record[{i}]", value) for i, value in enumerate(data))
    else:
        raise DirectoryLoadError(
            f"Directory must be a list or an object, got {type(data).__name__}"
        )

    return tuple(parse_record(raw, label) for label, raw in entries)


def load_directory(path: Union[str, Path] = DEFAULT_DIRECTORY_PATH) -> Directory:
    """
    Load the directory file.

    Args:
        path: Path to the JSON file

    Returns:
        Tuple of PersonRecord in file order

    Raises:
        DirectoryLoadError: If the file can't be read or parsed
    """
    path = Path(path)
    try:
        with path.open(encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise DirectoryLoadError(f"Directory file not found: {path}") from e
    except json.JSONDecodeError as e:
        raise DirectoryLoadError(f"Directory file is not valid JSON: {path}: {e}") from e

    directory = parse_directory(data)
    logger.info(f"Loaded {len(directory)} people from {path}")
    return directory
