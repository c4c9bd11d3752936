"""
Purpose: Core data models for the drivers domain.
What it does:
Defines the structure of a Driver, their status and their zone-queue
memberships without relying on any ORM constraints.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Tuple

from geo.geofence import decode_location

LatLng = Tuple[float, float]


class DriverStatus(str, Enum):
    """
    Standardizes the state a driver can be in.
    Only FREE drivers are matching candidates.
    """
    FREE = "FREE"
    BUSY = "BUSY"
    POB = "POB"
    OFF_DUTY = "OFF_DUTY"


@dataclass(frozen=True)
class Driver:
    """
    A stateless snapshot of a Driver at a specific point in time.
    `location` is None when the last known position is missing or unreadable.
    """
    id: str
    tenant_id: str
    callsign: str
    status: DriverStatus
    location: Optional[LatLng] = None
    name: str = ""

    @property
    def is_free(self) -> bool:
        return self.status == DriverStatus.FREE

    @classmethod
    def new(
        cls,
        driver_id: str,
        tenant_id: str,
        callsign: str,
        status: str | DriverStatus = DriverStatus.OFF_DUTY,
        location: Any = None,
        name: str = "",
    ) -> Driver:
        """
        Build a Driver from persisted values. `location` may be the encoded
        structure stored by the data layer (JSON text, mapping or pair).
        """
        if isinstance(status, str):
            status = DriverStatus(status)

        return cls(
            id=driver_id,
            tenant_id=tenant_id,
            callsign=callsign,
            status=status,
            location=decode_location(location, label=f"driver {callsign} ({driver_id})"),
            name=name,
        )


@dataclass(frozen=True)
class ZoneQueueMembership:
    """
    A driver waiting in a zone's queue since `joined_at`.
    Used only by the LONGEST_WAITING strategy.
    """
    driver_id: str
    zone_id: str
    joined_at: datetime
