"""
Purpose: In-memory implementation of the data-access interface.
What it does:
- Owns dict/list storage per entity, keyed the way a database would index it
- Hands out snapshots (copies) so a matching pass never sees later writes
- Implements commit_assignment as a compare-and-swap under a single lock

Used by tests, by the simulation script, and as the reference behaviour for
database-backed repositories.
"""

from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from dispatch.state_machines.driver_state import can_assign, handle_driver_assignment
from dispatch.state_machines.job_state import can_dispatch, transition_job_to_dispatched
from drivers.models import Driver, DriverStatus, ZoneQueueMembership
from geo.zones import Zone
from jobs.models import Job, JobStatus
from pricing.models import FixedPrice, PricingRule, Surcharge
from .models import TenantConfig
from .repository import CommitResult, CommitStatus, DispatchRepository


def _copy_job(job: Job) -> Job:
    return replace(job, vias=list(job.vias))


class InMemoryRepository(DispatchRepository):
    """
    Thread-safe in-memory store. All reads and the conditional write
    take the same lock, so a commit is atomic with respect to other commits.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()

        self._tenants: Dict[str, TenantConfig] = {}
        self._zones: List[Zone] = []
        self._jobs: Dict[str, Job] = {}  # insertion ordered
        self._drivers: Dict[str, Driver] = {}
        self._memberships: List[ZoneQueueMembership] = []
        self._rules: Dict[Tuple[str, str], PricingRule] = {}
        self._fixed_prices: List[FixedPrice] = []
        self._surcharges: List[Surcharge] = []

    # --- Seeding / upserts ---

    def add_tenant(self, config: TenantConfig) -> None:
        with self._lock:
            self._tenants[config.tenant_id] = config

    def add_zone(self, zone: Zone) -> None:
        with self._lock:
            self._zones.append(zone)

    def save_job(self, job: Job) -> None:
        with self._lock:
            self._jobs[job.id] = _copy_job(job)

    def save_driver(self, driver: Driver) -> None:
        with self._lock:
            self._drivers[driver.id] = driver

    def add_queue_membership(self, membership: ZoneQueueMembership) -> None:
        """
        A driver may hold only one active membership per zone.
        """
        with self._lock:
            for existing in self._memberships:
                if existing.driver_id == membership.driver_id and existing.zone_id == membership.zone_id:
                    raise ValueError(
                        f"Driver {membership.driver_id} is already queued in zone {membership.zone_id}"
                    )
            self._memberships.append(membership)

    def remove_queue_membership(self, driver_id: str, zone_id: str) -> None:
        with self._lock:
            self._memberships = [
                m for m in self._memberships
                if not (m.driver_id == driver_id and m.zone_id == zone_id)
            ]

    def add_pricing_rule(self, rule: PricingRule) -> None:
        with self._lock:
            self._rules[(rule.tenant_id, rule.vehicle_class)] = rule

    def add_fixed_price(self, entry: FixedPrice) -> None:
        with self._lock:
            self._fixed_prices.append(entry)

    def add_surcharge(self, surcharge: Surcharge) -> None:
        with self._lock:
            self._surcharges.append(surcharge)

    def get_job(self, job_id: str) -> Optional[Job]:
        with self._lock:
            job = self._jobs.get(job_id)
            return _copy_job(job) if job else None

    def get_driver(self, driver_id: str) -> Optional[Driver]:
        with self._lock:
            return self._drivers.get(driver_id)

    # --- DispatchRepository ---

    def list_tenant_ids(self) -> List[str]:
        with self._lock:
            return list(self._tenants.keys())

    def get_tenant_config(self, tenant_id: str) -> Optional[TenantConfig]:
        with self._lock:
            return self._tenants.get(tenant_id)

    def list_zones(self, tenant_id: str) -> List[Zone]:
        with self._lock:
            return [zone for zone in self._zones if zone.tenant_id == tenant_id]

    def list_jobs(
        self,
        tenant_id: str,
        *,
        status: Optional[JobStatus] = None,
        pickup_from: Optional[datetime] = None,
        pickup_to: Optional[datetime] = None,
    ) -> List[Job]:
        with self._lock:
            jobs = []
            for job in self._jobs.values():
                if job.tenant_id != tenant_id:
                    continue
                if status is not None and job.status != status:
                    continue
                if pickup_from is not None and job.pickup_time < pickup_from:
                    continue
                if pickup_to is not None and job.pickup_time > pickup_to:
                    continue
                jobs.append(_copy_job(job))
            return jobs

    def list_drivers(self, tenant_id: str, *, status: Optional[DriverStatus] = None) -> List[Driver]:
        with self._lock:
            return [
                driver for driver in self._drivers.values()
                if driver.tenant_id == tenant_id and (status is None or driver.status == status)
            ]

    def list_queue_memberships(self, tenant_id: str) -> List[ZoneQueueMembership]:
        with self._lock:
            tenant_zone_ids = {zone.id for zone in self._zones if zone.tenant_id == tenant_id}
            return [m for m in self._memberships if m.zone_id in tenant_zone_ids]

    def get_pricing_rule(self, tenant_id: str, vehicle_class: str) -> Optional[PricingRule]:
        with self._lock:
            return self._rules.get((tenant_id, vehicle_class))

    def list_fixed_prices(self, tenant_id: str, vehicle_class: str) -> List[FixedPrice]:
        with self._lock:
            return [
                entry for entry in self._fixed_prices
                if entry.tenant_id == tenant_id and entry.vehicle_class == vehicle_class
            ]

    def list_surcharges(self, tenant_id: str) -> List[Surcharge]:
        with self._lock:
            return [s for s in self._surcharges if s.tenant_id == tenant_id]

    def commit_assignment(self, tenant_id: str, job_id: str, driver_id: str) -> CommitResult:
        with self._lock:
            job = self._jobs.get(job_id)
            driver = self._drivers.get(driver_id)

            #compare: both preconditions must still hold at commit time
            if driver is None or driver.tenant_id != tenant_id or not can_assign(driver):
                return CommitResult(CommitStatus.DRIVER_UNAVAILABLE)
            if job is None or job.tenant_id != tenant_id or not can_dispatch(job):
                return CommitResult(CommitStatus.JOB_UNAVAILABLE)

            #swap: both writes land together or not at all
            updated_job = transition_job_to_dispatched(job, driver_id)
            updated_driver = handle_driver_assignment(driver)
            self._jobs[job_id] = updated_job
            self._drivers[driver_id] = updated_driver

            return CommitResult(CommitStatus.COMMITTED, _copy_job(updated_job), updated_driver)
