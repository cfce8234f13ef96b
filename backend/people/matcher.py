"""
Best-match search over the people directory.

This module is a pure function over an immutable directory:
- Filter candidates by every constraint that is present
- Score eligible candidates by distance from the requested location
- Pick the closest, earliest in directory order on ties

Distances are kept in local (record, distance) pairs. Records are never
written to, so concurrent turns can share one directory safely.
"""
import logging
from typing import Iterable, Iterator, List, Optional, Tuple

from .models import Constraints, MatchResult, PersonRecord

logger = logging.getLogger(__name__)


def is_eligible(record: PersonRecord, constraints: Constraints) -> bool:
    """
    Check a record against every present constraint.

    An absent constraint (None) matches everyone.
    """
    if constraints.expertise and constraints.expertise not in record.expertise:
        return False
    if constraints.language and constraints.language not in record.languages:
        return False
    if constraints.team and record.team != constraints.team:
        return False
    return True


def location_distance(record: PersonRecord, constraints: Constraints) -> float:
    """Absolute distance between a record's location and the requested one."""
    return abs(record.location - constraints.location)


def _scored_candidates(
    directory: Iterable[PersonRecord],
    constraints: Constraints,
) -> Iterator[Tuple[PersonRecord, float]]:
    for record in directory:
        eligible = is_eligible(record, constraints)
        logger.debug(f"[MATCH] checking {record.name}: eligible={eligible}")
        if eligible:
            yield record, location_distance(record, constraints)


def find_best_match(
    directory: Iterable[PersonRecord],
    constraints: Constraints,
) -> MatchResult:
    """
    Find the eligible person closest to the requested location.

    Ties on distance keep the first record in directory order, so the same
    directory and constraints always produce the same answer.

    Args:
        directory: Directory records in their stored order
        constraints: Normalized query constraints

    Returns:
        MatchResult with the best person, or an empty MatchResult
    """
    best: Optional[PersonRecord] = None
    best_distance: Optional[float] = None
    eligible_count = 0

    for record, distance in _scored_candidates(directory, constraints):
        eligible_count += 1
        # Strict comparison keeps the earlier record on ties
        if best_distance is None or distance < best_distance:
            best, best_distance = record, distance

    if best is None:
        logger.info(f"[MATCH] no match for {constraints}")
        return MatchResult(eligible_count=0)

    logger.info(
        f"[MATCH] matched {best.name} distance={best_distance} "
        f"eligible={eligible_count}"
    )
    return MatchResult(person=best, distance=best_distance, eligible_count=eligible_count)


def rank_candidates(
    directory: Iterable[PersonRecord],
    constraints: Constraints,
    limit: Optional[int] = None,
) -> List[Tuple[PersonRecord, float]]:
    """
    All eligible candidates ordered by distance.

    sorted() is stable, so equidistant records keep directory order and the
    first entry is always the find_best_match choice.
    """
    ranked = sorted(_scored_candidates(directory, constraints), key=lambda pair: pair[1])
    if limit is not None:
        ranked = ranked[:max(limit, 0)]
    return ranked
