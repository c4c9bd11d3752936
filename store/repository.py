"""
Purpose: The data-access interface consumed by the matching and pricing engines.
What it does:
Declares read queries over tenants, zones, jobs, drivers, queue memberships,
pricing rules, fixed prices and surcharges, plus ONE conditional write:
commit_assignment (compare-and-swap on job + driver status), which reports
through CommitResult which side of the swap failed.

Rule: implementations decode persisted geometry at this boundary
(Zone.from_encoded / Driver.new) so the core never sees encoded rings.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from drivers.models import Driver, DriverStatus, ZoneQueueMembership
    from geo.zones import Zone
    from jobs.models import Job, JobStatus
    from pricing.models import FixedPrice, PricingRule, Surcharge
    from .models import TenantConfig


class RepositoryError(Exception):
    """Raised when the underlying data store cannot serve a request."""
    pass


class CommitStatus(str, Enum):
    COMMITTED = "COMMITTED"
    # job not found for the tenant, or no longer PENDING + unassigned
    JOB_UNAVAILABLE = "JOB_UNAVAILABLE"
    # driver not found for the tenant, or no longer FREE
    DRIVER_UNAVAILABLE = "DRIVER_UNAVAILABLE"


@dataclass(frozen=True)
class CommitResult:
    status: CommitStatus
    job: Optional[Job] = None
    driver: Optional[Driver] = None

    @property
    def committed(self) -> bool:
        return self.status == CommitStatus.COMMITTED


class DispatchRepository(ABC):
    """
    Abstract data access for one deployment (all tenants).
    Every list query returns entities in a stable order (insertion order).
    """

    @abstractmethod
    def list_tenant_ids(self) -> List[str]:
        ...

    @abstractmethod
    def get_tenant_config(self, tenant_id: str) -> Optional[TenantConfig]:
        ...

    @abstractmethod
    def list_zones(self, tenant_id: str) -> List[Zone]:
        ...

    @abstractmethod
    def list_jobs(
        self,
        tenant_id: str,
        *,
        status: Optional[JobStatus] = None,
        pickup_from: Optional[datetime] = None,
        pickup_to: Optional[datetime] = None,
    ) -> List[Job]:
        ...

    @abstractmethod
    def list_drivers(self, tenant_id: str, *, status: Optional[DriverStatus] = None) -> List[Driver]:
        ...

    @abstractmethod
    def list_queue_memberships(self, tenant_id: str) -> List[ZoneQueueMembership]:
        ...

    @abstractmethod
    def get_pricing_rule(self, tenant_id: str, vehicle_class: str) -> Optional[PricingRule]:
        ...

    @abstractmethod
    def list_fixed_prices(self, tenant_id: str, vehicle_class: str) -> List[FixedPrice]:
        ...

    @abstractmethod
    def list_surcharges(self, tenant_id: str) -> List[Surcharge]:
        ...

    @abstractmethod
    def commit_assignment(self, tenant_id: str, job_id: str, driver_id: str) -> CommitResult:
        """
        Atomically: job PENDING + unassigned -> DISPATCHED with driver_id,
        driver FREE -> BUSY.

        On success the result carries the updated job and driver. Otherwise
        nothing is written and the status names the failed precondition;
        DRIVER_UNAVAILABLE wins when both fail.
        """
        ...
