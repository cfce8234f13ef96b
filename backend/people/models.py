"""
Directory data model.

PersonRecord is the immutable directory entry, Constraints is the per-query
filter and MatchResult is the outcome of a best-match search.

Python 3.9 compatible - uses typing.FrozenSet, typing.Optional, typing.Union
"""
import math
import re
from dataclasses import dataclass
from typing import Any, FrozenSet, Iterable, Mapping, Optional, Union

# Building used when nobody told us where the user is
DEFAULT_LOCATION = 27

Number = Union[int, float]


@dataclass(frozen=True)
class PersonRecord:
    """
    A single person in the directory.

    Attributes:
        name: Display name
        expertise: Lowercase expertise tags (e.g., "ml", "python")
        languages: Lowercase spoken language tags (e.g., "english")
        team: Team identifier, compared exactly
        location: Building number the person sits in
    """
    name: str
    expertise: FrozenSet[str]
    languages: FrozenSet[str]
    team: str
    location: Number


@dataclass(frozen=True)
class Constraints:
    """Optional filters for a single query. Location is always set."""
    expertise: Optional[str] = None
    language: Optional[str] = None
    team: Optional[str] = None
    location: Number = DEFAULT_LOCATION


@dataclass(frozen=True)
class MatchResult:
    """Result of a best-match search. person is None when nobody matched."""
    person: Optional[PersonRecord] = None
    distance: Optional[float] = None
    eligible_count: int = 0

    @property
    def found(self) -> bool:
        return self.person is not None


# =============================================================================
# NORMALIZATION
# =============================================================================

def normalize_tag(value: str) -> str:
    """Tags are compared lowercase with surrounding whitespace removed."""
    return value.strip().lower()


def normalize_tags(values: Iterable[str]) -> FrozenSet[str]:
    return frozenset(normalize_tag(v) for v in values if isinstance(v, str) and v.strip())


def _first_text(value: Any) -> Optional[str]:
    """
    Reduce an entity value to a single string.

    NLU services return entities as arrays, API clients send plain strings.
    The first non-empty string wins; anything else counts as absent.
    """
    if isinstance(value, (list, tuple)):
        for item in value:
            text = _first_text(item)
            if text:
                return text
        return None
    if isinstance(value, str):
        text = value.strip()
        return text or None
    return None


def parse_location(value: Any) -> Optional[Number]:
    """
    Parse a location from an entity value.

    Accepts numbers, numeric strings and text like "building 12".
    Returns None if no finite number can be found.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, (list, tuple)):
        for item in value:
            parsed = parse_location(item)
            if parsed is not None:
                return parsed
        return None
    if isinstance(value, str):
        match = re.search(r'-?\d+(?:\.\d+)?', value)
        if match:
            number = float(match.group())
            if not math.isfinite(number):
                return None
            return int(number) if number.is_integer() else number
    return None


def normalize_constraints(
    entities: Optional[Mapping[str, Any]],
    default_location: Number = DEFAULT_LOCATION,
) -> Constraints:
    """
    Build Constraints from loosely shaped input (NLU entities or API fields).

    Unknown keys are ignored and malformed values are treated as absent,
    so this never raises for odd input.

    Args:
        entities: Mapping with any of expertise, language, team, location
        default_location: Location used when none can be parsed

    Returns:
        Normalized Constraints
    """
    if not isinstance(entities, Mapping):
        entities = {}

    expertise = _first_text(entities.get("expertise"))
    language = _first_text(entities.get("language"))
    team = _first_text(entities.get("team"))
    location = parse_location(entities.get("location"))

    return Constraints(
        expertise=normalize_tag(expertise) if expertise else None,
        language=normalize_tag(language) if language else None,
        team=team,
        location=location if location is not None else default_location,
    )


def format_location(location: Number) -> str:
    """Render 12.0 as "12" and keep real fractions."""
    if isinstance(location, float) and location.is_integer():
        return str(int(location))
    return str(location)
