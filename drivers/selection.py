"""
Purpose: Business rules and distance math for narrowing the driver pool.
What it does:
Filters out ineligible drivers, measures each driver's great-circle distance
to a pickup, and indexes zone-queue memberships for FIFO lookups.
"""

import logging
from datetime import datetime
from typing import Collection, Dict, Iterable, List, Optional, Tuple

from geo.distance import distance
from .models import Driver, ZoneQueueMembership
from .policy import MatchingPolicy, default_matching_policy

logger = logging.getLogger(__name__)

LatLng = Tuple[float, float]

# zone_id -> driver_id -> joined_at
QueueIndex = Dict[str, Dict[str, datetime]]


def filter_eligible_drivers(drivers: Iterable[Driver], excluded_ids: Collection[str] = ()) -> List[Driver]:
    """
    Returns only FREE drivers that have not already been taken
    earlier in the current pass. Input order is preserved.
    """
    eligible = []

    for driver in drivers:
        if not driver.is_free:
            continue

        if driver.id in excluded_ids:
            continue

        eligible.append(driver)

    return eligible


def driver_distance(driver: Driver, pickup: LatLng, policy: Optional[MatchingPolicy] = None) -> float:
    """
    Miles from the driver's last known location to the pickup.
    Drivers with no location get the policy's sentinel so they sort last.
    """
    policy = policy or default_matching_policy()
    if driver.location is None:
        return policy.unknown_distance_miles

    driver_latitude, driver_longitude = driver.location
    pickup_latitude, pickup_longitude = pickup
    return distance(driver_latitude, driver_longitude, pickup_latitude, pickup_longitude)


def sort_by_distance(drivers: Iterable[Driver], pickup: LatLng, policy: Optional[MatchingPolicy] = None) -> List[Driver]:
    """
    Closest first. The sort is stable, so equal distances keep input order.
    """
    policy = policy or default_matching_policy()
    return sorted(drivers, key=lambda current_driver: driver_distance(current_driver, pickup, policy))


def build_queue_index(memberships: Iterable[ZoneQueueMembership]) -> QueueIndex:
    """
    Index memberships by zone then driver.

    A driver holds at most one membership per zone; if the data layer hands
    back a duplicate, the earliest joined_at is kept.
    """
    index: QueueIndex = {}
    for membership in memberships:
        zone_queue = index.setdefault(membership.zone_id, {})
        existing = zone_queue.get(membership.driver_id)
        if existing is not None:
            logger.warning(
                f"Duplicate queue membership for driver {membership.driver_id} in zone {membership.zone_id}"
            )
            if existing <= membership.joined_at:
                continue
        zone_queue[membership.driver_id] = membership.joined_at
    return index
