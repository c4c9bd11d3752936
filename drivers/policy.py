"""
Purpose: Central configuration for driver matching.
What it does:

Stores all tunable thresholds for finding jobs and ranking drivers:

LOOKBACK_HOURS = 2
LOOKAHEAD_HOURS = 24
UNKNOWN_DISTANCE_MILES = 999999

and the MatchingStrategy a tenant can select.

Rule: No logic here, just parameters so you can tune without rewriting code.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


class MatchingStrategy(str, Enum):
    """
    How one driver is picked from a candidate set.

    Fallback chain: LONGEST_WAITING -> CLOSEST -> first remaining candidate.
    """
    CLOSEST = "CLOSEST"
    LONGEST_WAITING = "LONGEST_WAITING"

    @classmethod
    def parse(cls, value: Optional[str], default: Optional[MatchingStrategy] = None) -> MatchingStrategy:
        """
        Parse a stored configuration string. Missing or unknown values
        resolve to `default` (CLOSEST unless given).
        """
        default = default or cls.CLOSEST
        if value is None:
            return default
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            return default


@dataclass(frozen=True)
class MatchingPolicy:
    """
    Central configuration for the matching pass.
    """

    # --- Job window ---
    # Jobs whose pickup is older than this are considered stale and skipped.
    lookback_hours: float = 2
    # Jobs further in the future than this are not committed to a driver yet.
    lookahead_hours: float = 24

    # --- Ranking ---
    # Distance used for drivers with no known location so they sort last.
    unknown_distance_miles: float = 999999.0

    # Strategy used when a tenant has none configured.
    default_strategy: MatchingStrategy = MatchingStrategy.CLOSEST

    def validate(self) -> None:
        """
        Basic sanity checks.
        """
        if self.lookback_hours < 0:
            raise ValueError("lookback_hours must be >= 0")

        if self.lookahead_hours < 0:
            raise ValueError("lookahead_hours must be >= 0")

        if self.unknown_distance_miles <= 0:
            raise ValueError("unknown_distance_miles must be > 0")


def default_matching_policy() -> MatchingPolicy:
    """
    Convenience factory for the default policy.
    """
    p = MatchingPolicy()
    p.validate()
    return p


def matching_policy_from_env() -> MatchingPolicy:
    """
    Default policy with the window overridden from the environment
    (DISPATCH_LOOKBACK_HOURS / DISPATCH_LOOKAHEAD_HOURS), if set.
    """
    defaults = MatchingPolicy()
    p = MatchingPolicy(
        lookback_hours=float(os.getenv("DISPATCH_LOOKBACK_HOURS", defaults.lookback_hours)),
        lookahead_hours=float(os.getenv("DISPATCH_LOOKAHEAD_HOURS", defaults.lookahead_hours)),
    )
    p.validate()
    return p
