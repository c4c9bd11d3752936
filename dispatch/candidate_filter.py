#Purpose: Zone-aware candidate filtering (who may be offered this job).
#Builds the candidate set before a strategy picks one driver.
#Typical responsibilities:
#prefer drivers queued in the job's pickup zone
#else drivers whose last known location is inside that zone
#else the whole city-wide pool (zone restriction is advisory, never a block)
#Output: candidate drivers (not yet ranked) + where they came from.

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from drivers.models import Driver
from drivers.selection import QueueIndex
from geo.zones import Zone


class CandidateSource(str, Enum):
    ZONE_QUEUE = "ZONE_QUEUE"
    ZONE_GEOMETRY = "ZONE_GEOMETRY"
    GLOBAL = "GLOBAL"


@dataclass(frozen=True)
class CandidateSet:
    drivers: List[Driver]
    source: CandidateSource


def build_candidate_set(pool: List[Driver], zone: Optional[Zone], queue_index: QueueIndex) -> CandidateSet:
    """
    Narrow the eligible pool for a job whose pickup resolved to `zone`
    (or to no zone at all). Pool order is preserved at every step.
    """
    if zone is None:
        return CandidateSet(drivers=list(pool), source=CandidateSource.GLOBAL)

    zone_queue = queue_index.get(zone.id, {})
    queued = [driver for driver in pool if driver.id in zone_queue]
    if queued:
        return CandidateSet(drivers=queued, source=CandidateSource.ZONE_QUEUE)

    in_zone = [driver for driver in pool if zone.contains(driver.location)]
    if in_zone:
        return CandidateSet(drivers=in_zone, source=CandidateSource.ZONE_GEOMETRY)

    return CandidateSet(drivers=list(pool), source=CandidateSource.GLOBAL)
