"""
Purpose: Domain models for the Pricing capability.
What it does:
- Defines tariff inputs:
- PricingRule (per tenant + vehicle class: base, per mile, min fare, wait rate)
- FixedPrice (route override by address text or by pickup/dropoff zone pair)
- Surcharge (PERCENT | FLAT, gated by date range / time of day / day of week)
- Defines the quote contract:
- QuoteRequest -> PriceResult(price, PriceBreakdown)

All money is Decimal; distance is miles; time is minutes.

Rule: No repository calls, no pricing logic. Models only.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, FrozenSet, Iterable, List, Optional, Sequence, Tuple

LatLng = Tuple[float, float]


def to_money(value: Any) -> Decimal:
    """
    Convert ints, floats and strings to Decimal without binary float noise.
    """
    if isinstance(value, Decimal):
        return value
    if value is None:
        return Decimal("0")
    return Decimal(str(value))


class SurchargeKind(str, Enum):
    PERCENT = "PERCENT"
    FLAT = "FLAT"


@dataclass(frozen=True)
class PricingRule:
    """
    Tariff for one (tenant, vehicle class). At most one per pair.
    """
    id: Optional[str]
    tenant_id: str
    vehicle_class: str
    base_rate: Decimal
    per_mile: Decimal
    min_fare: Decimal
    wait_rate: Decimal = Decimal("0")
    name: str = ""

    @classmethod
    def new(cls, rule_id, tenant_id, vehicle_class, *, base_rate, per_mile, min_fare, wait_rate=0, name="") -> PricingRule:
        return cls(
            id=rule_id,
            tenant_id=tenant_id,
            vehicle_class=vehicle_class,
            base_rate=to_money(base_rate),
            per_mile=to_money(per_mile),
            min_fare=to_money(min_fare),
            wait_rate=to_money(wait_rate),
            name=name,
        )


@dataclass(frozen=True)
class FixedPrice:
    """
    A flat route price for one vehicle class.

    Matches on address text (both ends, case-insensitive substring of the
    request's addresses, optionally in reverse) or on a configured
    (pickup zone, dropoff zone) pair.
    """
    id: str
    tenant_id: str
    vehicle_class: str
    price: Decimal
    pickup: Optional[str] = None
    dropoff: Optional[str] = None
    pickup_zone_id: Optional[str] = None
    dropoff_zone_id: Optional[str] = None
    is_reverse: bool = False
    name: str = ""

    @classmethod
    def new(cls, fixed_id, tenant_id, vehicle_class, price, **kwargs) -> FixedPrice:
        return cls(id=fixed_id, tenant_id=tenant_id, vehicle_class=vehicle_class, price=to_money(price), **kwargs)


@dataclass(frozen=True)
class Surcharge:
    """
    An addition to the metered fare.

    It applies when any of its gates matches; with no gates set it never
    applies. `days_of_week` uses 0 = Sunday ... 6 = Saturday and
    `start_time`/`end_time` are "HH:MM" (end before start wraps midnight).
    """
    id: str
    tenant_id: str
    name: str
    kind: SurchargeKind
    value: Decimal
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    days_of_week: FrozenSet[int] = frozenset()

    @classmethod
    def new(cls, surcharge_id, tenant_id, name, kind, value, *, days_of_week: Iterable[int] = (), **kwargs) -> Surcharge:
        return cls(
            id=surcharge_id,
            tenant_id=tenant_id,
            name=name,
            kind=SurchargeKind(kind),
            value=to_money(value),
            days_of_week=frozenset(int(day) for day in days_of_week),
            **kwargs,
        )


@dataclass(frozen=True)
class QuoteRequest:
    """
    Input to the pricing engine. Only tenant, pickup and dropoff are
    required; everything else degrades to a default.
    """
    tenant_id: str
    pickup: str
    dropoff: str
    distance_miles: Optional[float] = None
    vehicle_class: Optional[str] = None
    pickup_time: Optional[datetime] = None
    pickup_location: Optional[LatLng] = None
    dropoff_location: Optional[LatLng] = None
    vias: Sequence[str] = ()
    wait_and_return: bool = False
    waiting_minutes: float = 0


@dataclass(frozen=True)
class SurchargeLine:
    name: str
    amount: Decimal


@dataclass
class PriceBreakdown:
    """
    Itemized explanation of a price.
    """
    base: Decimal
    mileage: Decimal
    surcharges: List[SurchargeLine] = field(default_factory=list)
    is_fixed: bool = False
    matched_rule_id: Optional[str] = None

    distance_miles: Decimal = Decimal("0")
    waiting: Decimal = Decimal("0")
    minimum_fare_applied: bool = False


@dataclass(frozen=True)
class PriceResult:
    price: Decimal
    breakdown: PriceBreakdown
