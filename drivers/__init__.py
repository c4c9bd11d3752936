"""
Drivers domain package.

Public API:
- Domain models: Driver, DriverStatus, ZoneQueueMembership
- Matching configuration: MatchingPolicy, MatchingStrategy
- Pool helpers: filter_eligible_drivers, sort_by_distance, build_queue_index
"""
from .models import Driver, DriverStatus, ZoneQueueMembership
from .policy import MatchingPolicy, MatchingStrategy, default_matching_policy, matching_policy_from_env
from .selection import filter_eligible_drivers, driver_distance, sort_by_distance, build_queue_index

__all__ = [
    "Driver",
    "DriverStatus",
    "ZoneQueueMembership",
    "MatchingPolicy",
    "MatchingStrategy",
    "default_matching_policy",
    "matching_policy_from_env",
    "filter_eligible_drivers",
    "driver_distance",
    "sort_by_distance",
    "build_queue_index",
]
