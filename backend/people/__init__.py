"""
People directory - records, loading and best-match search.
"""
from .models import (
    DEFAULT_LOCATION,
    PersonRecord,
    Constraints,
    MatchResult,
    normalize_constraints,
)
from .loader import (
    Directory,
    DirectoryLoadError,
    load_directory,
)
from .matcher import (
    find_best_match,
    rank_candidates,
)

__all__ = [
    "DEFAULT_LOCATION",
    "PersonRecord",
    "Constraints",
    "MatchResult",
    "normalize_constraints",
    "Directory",
    "DirectoryLoadError",
    "load_directory",
    "find_best_match",
    "rank_candidates",
]
