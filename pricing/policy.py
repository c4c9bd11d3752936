"""
Purpose: Central configuration for pricing behavior (single source of truth).
What it does:

Stores the documented fallbacks used when a tenant has no tariff:

DEFAULT_VEHICLE_CLASS = "Saloon"
FALLBACK_BASE = 3.00, FALLBACK_PER_MILE = 2.00, FALLBACK_MIN_FARE = 5.00
PREMIUM_MULTIPLIER = 1.2 (Executive)
LARGE_MULTIPLIER = 1.5 (MPV, MPV8, Minibus, Coach)
PER_STOP_CHARGE = 5.00

Rule: No logic here, just parameters so you can tune without rewriting code.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import FrozenSet


@dataclass(frozen=True)
class PricingPolicy:
    """
    Central configuration for quote calculation.

    Notes:
    - the vehicle class multipliers are applied ONLY to the fallback tariff,
      never on top of a tenant's own PricingRule.
    """

    default_vehicle_class: str = "Saloon"

    # --- Fallback tariff (no PricingRule for tenant + vehicle class) ---
    fallback_base_rate: Decimal = Decimal("3.00")
    fallback_per_mile: Decimal = Decimal("2.00")
    fallback_min_fare: Decimal = Decimal("5.00")
    fallback_wait_rate: Decimal = Decimal("0.00")

    premium_classes: FrozenSet[str] = field(default_factory=lambda: frozenset({"Executive"}))
    premium_multiplier: Decimal = Decimal("1.2")

    large_classes: FrozenSet[str] = field(default_factory=lambda: frozenset({"MPV", "MPV8", "Minibus", "Coach"}))
    large_multiplier: Decimal = Decimal("1.5")

    # --- Intermediate stops ---
    per_stop_charge: Decimal = Decimal("5.00")

    def validate(self) -> None:
        """
        Basic sanity checks.
        """
        for name in ("fallback_base_rate", "fallback_per_mile", "fallback_min_fare",
                     "fallback_wait_rate", "per_stop_charge"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0")

        if self.premium_multiplier < 1 or self.large_multiplier < 1:
            raise ValueError("vehicle class multipliers must be >= 1")

        if self.premium_classes & self.large_classes:
            raise ValueError("a vehicle class cannot be both premium and large")


def default_pricing_policy() -> PricingPolicy:
    """
    Convenience factory for the default policy.
    """
    p = PricingPolicy()
    p.validate()
    return p
