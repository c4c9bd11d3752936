"""
Purpose: Ranking/selection model (the "who is best" layer).
What it does:
Takes candidates (already eligible and zone-filtered) and picks ONE driver
according to the tenant's MatchingStrategy, walking an explicit fallback chain:

    LONGEST_WAITING -> CLOSEST -> first remaining candidate

- LONGEST_WAITING: among candidates queued in the job's zone, the oldest
  joined_at wins (strict FIFO). No zone or no queued candidate falls through.
- CLOSEST: smallest great-circle distance to the pickup; drivers with no
  location sort last. No pickup coordinate falls through.
- first remaining candidate: deterministic for a stable snapshot order.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from drivers.models import Driver
from drivers.policy import MatchingPolicy, MatchingStrategy, default_matching_policy
from drivers.selection import QueueIndex, sort_by_distance
from geo.zones import Zone

LatLng = Tuple[float, float]


@dataclass(frozen=True)
class SelectionContext:
    candidates: List[Driver]
    pickup: Optional[LatLng]
    zone: Optional[Zone]
    queue_index: QueueIndex
    policy: MatchingPolicy = field(default_factory=default_matching_policy)


Selector = Callable[[SelectionContext], Optional[Driver]]


def select_longest_waiting(context: SelectionContext) -> Optional[Driver]:
    if context.zone is None:
        return None

    zone_queue = context.queue_index.get(context.zone.id, {})
    queued = [driver for driver in context.candidates if driver.id in zone_queue]
    if not queued:
        return None

    # min() keeps the first of equal timestamps, i.e. candidate order
    return min(queued, key=lambda driver: zone_queue[driver.id])


def select_closest(context: SelectionContext) -> Optional[Driver]:
    if context.pickup is None or not context.candidates:
        return None
    return sort_by_distance(context.candidates, context.pickup, context.policy)[0]


SELECTORS: Dict[MatchingStrategy, Selector] = {
    MatchingStrategy.LONGEST_WAITING: select_longest_waiting,
    MatchingStrategy.CLOSEST: select_closest,
}

FALLBACK_CHAIN: Dict[MatchingStrategy, Optional[MatchingStrategy]] = {
    MatchingStrategy.LONGEST_WAITING: MatchingStrategy.CLOSEST,
    MatchingStrategy.CLOSEST: None,
}


def select_driver(
    strategy: MatchingStrategy,
    context: SelectionContext,
) -> Tuple[Optional[Driver], Optional[MatchingStrategy]]:
    """
    Returns (driver, strategy that decided). The strategy is None when the
    chain was exhausted and the first remaining candidate was taken, and
    driver is None only when there are no candidates at all.
    """
    if not context.candidates:
        return None, None

    current: Optional[MatchingStrategy] = strategy
    while current is not None:
        driver = SELECTORS[current](context)
        if driver is not None:
            return driver, current
        current = FALLBACK_CHAIN[current]

    return context.candidates[0], None
