"""
Purpose: Domain models for the Jobs capability.
What it does:
- Defines core data structures:
- Job (id, tenant, pickup/dropoff addresses + optional coordinates,
  vehicle class, pickup time, status, driver reference, fare)

Defines enums/constants:
- JobStatus = PENDING | DISPATCHED | EN_ROUTE | ARRIVED | POB | COMPLETED | CANCELLED | NO_SHOW

Rule: No geometry, no matching logic. Models only.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, List, Optional, Tuple

if TYPE_CHECKING:
    from pricing.models import PriceBreakdown

LatLng = Tuple[float, float]


class JobStatus(str, Enum):
    PENDING = "PENDING"
    DISPATCHED = "DISPATCHED"
    EN_ROUTE = "EN_ROUTE"
    ARRIVED = "ARRIVED"
    POB = "POB"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


#statuses that carry a driver reference
DRIVER_BOUND_STATUSES = frozenset({
    JobStatus.DISPATCHED,
    JobStatus.EN_ROUTE,
    JobStatus.ARRIVED,
    JobStatus.POB,
    JobStatus.COMPLETED,
})

TERMINAL_STATUSES = frozenset({
    JobStatus.COMPLETED,
    JobStatus.CANCELLED,
    JobStatus.NO_SHOW,
})


@dataclass
class Job:
    """
    A ride request.

    Invariant: driver_id is only set while status is one of
    DRIVER_BOUND_STATUSES.
    """
    id: str
    tenant_id: str
    pickup_address: str
    dropoff_address: str
    pickup_time: datetime

    pickup_location: Optional[LatLng] = None
    dropoff_location: Optional[LatLng] = None
    vehicle_class: str = "Saloon"
    vias: List[str] = field(default_factory=list)

    status: JobStatus = JobStatus.PENDING
    driver_id: Optional[str] = None
    # eligible for the automatic matching pass
    auto_dispatch: bool = True

    fare: Optional[Decimal] = None
    fare_breakdown: Optional[PriceBreakdown] = None

    def __post_init__(self) -> None:
        # naive pickup times are taken as UTC
        if self.pickup_time.tzinfo is None:
            self.pickup_time = self.pickup_time.replace(tzinfo=timezone.utc)
        if isinstance(self.status, str):
            self.status = JobStatus(self.status)
        if self.driver_id is not None and self.status not in DRIVER_BOUND_STATUSES:
            raise ValueError(f"Job {self.id} cannot hold a driver while {self.status.value}")

    @property
    def is_unassigned(self) -> bool:
        return self.driver_id is None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
