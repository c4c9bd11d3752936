"""
Purpose: Orchestrator / decision pipeline (the "glue").
What it does:
Runs one matching pass for a tenant against a fresh snapshot of the data:

1. skip entirely unless the tenant has auto-dispatch enabled
2. load zones, matchable jobs (PENDING, in window, earliest pickup first),
   FREE drivers and zone-queue memberships
3. for each job: resolve the pickup zone, build the candidate set, let the
   tenant's strategy pick a driver, commit through the AssignmentTransaction
4. a driver committed earlier in the pass, or found claimed at commit time,
   is never offered again in that pass; a job that left PENDING is skipped
   and its driver stays available

Per-job problems (no driver, lost race, failed notification) never abort
the pass. A repository failure while loading the snapshot or committing is
fatal for that pass and propagates to the caller.
"""

from __future__ import annotations

import logging
from concurrent.futures import Executor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Set

from drivers.models import Driver, DriverStatus
from drivers.policy import MatchingPolicy, default_matching_policy
from drivers.selection import build_queue_index, filter_eligible_drivers
from geo.zones import resolve_zone
from jobs.models import Job, JobStatus
from jobs.queue import matching_window, select_matchable_jobs
from store.models import TenantConfig
from store.repository import DispatchRepository, RepositoryError
from .assignment import AssignmentTransaction
from .candidate_filter import build_candidate_set
from .notifier import Notifier
from .scoring import SelectionContext, select_driver

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class MatchingReport:
    """
    Outcome of one pass. `failed` counts both jobs with no candidate and
    jobs whose commit lost a race (the latter also counted in `race_lost`).
    """
    tenant_id: str
    total_pending: int = 0
    assigned: int = 0
    failed: int = 0
    race_lost: int = 0
    details: List[str] = field(default_factory=list)
    # job id -> driver id, for every committed assignment
    assignments: Dict[str, str] = field(default_factory=dict)


def describe_driver(driver: Driver) -> str:
    if driver.name:
        return f"{driver.callsign} ({driver.name})"
    return driver.callsign


class MatchingEngine:
    """
    Assigns pending jobs to free drivers, one tenant pass at a time.

    Passes for the same tenant may run concurrently (several workers or
    overlapping schedules); exclusivity is enforced by the repository's
    conditional write, never by this object.
    """

    def __init__(
        self,
        repository: DispatchRepository,
        transaction: Optional[AssignmentTransaction] = None,
        notifier: Optional[Notifier] = None,
        policy: Optional[MatchingPolicy] = None,
        clock: Optional[Clock] = None,
        executor: Optional[Executor] = None,
    ):
        self.repository = repository
        # with an executor, notifications leave the matching thread
        self.transaction = transaction or AssignmentTransaction(repository, notifier, executor)
        self.policy = policy or default_matching_policy()
        self.clock = clock or utc_now

    def run_matching_pass(self, tenant_id: str, now: Optional[datetime] = None) -> MatchingReport:
        now = now or self.clock()
        report = MatchingReport(tenant_id=tenant_id)

        config = self.repository.get_tenant_config(tenant_id)
        if config is None or not config.auto_dispatch:
            logger.info(f"Auto-dispatch disabled for tenant {tenant_id}; skipping pass")
            return report

        # 1) Snapshot
        zones = self.repository.list_zones(tenant_id)
        window = matching_window(now, self.policy)
        pending = self.repository.list_jobs(
            tenant_id,
            status=JobStatus.PENDING,
            pickup_from=window.earliest,
            pickup_to=window.latest,
        )
        jobs = select_matchable_jobs(pending, window)
        report.total_pending = len(jobs)

        if not jobs:
            logger.debug(f"No matchable jobs for tenant {tenant_id}")
            return report

        drivers = self.repository.list_drivers(tenant_id, status=DriverStatus.FREE)
        queue_index = build_queue_index(self.repository.list_queue_memberships(tenant_id))

        logger.info(
            f"Matching pass for tenant {tenant_id}: {len(jobs)} job(s), {len(drivers)} free driver(s), "
            f"strategy {config.dispatch_strategy.value}"
        )

        # 2) Match jobs in pickup order; taken drivers leave the pool
        taken: Set[str] = set()
        for job in jobs:
            self._match_job(job, drivers, taken, zones, queue_index, config, report)

        logger.info(
            f"Matching pass for tenant {tenant_id} done: {report.assigned} assigned, "
            f"{report.failed} failed ({report.race_lost} lost race)"
        )
        return report

    def _match_job(self, job: Job, drivers: List[Driver], taken: Set[str], zones, queue_index,
                   config: TenantConfig, report: MatchingReport) -> None:
        zone = resolve_zone(job.pickup_location, zones)
        pool = filter_eligible_drivers(drivers, taken)
        candidates = build_candidate_set(pool, zone, queue_index)

        context = SelectionContext(
            candidates=candidates.drivers,
            pickup=job.pickup_location,
            zone=zone,
            queue_index=queue_index,
            policy=self.policy,
        )
        driver, decided_by = select_driver(config.dispatch_strategy, context)

        if driver is None:
            report.failed += 1
            report.details.append(f"Job {job.id} could not find a driver.")
            logger.info(f"No candidate driver for job {job.id}")
            return

        logger.debug(
            f"Job {job.id}: zone {zone.name if zone else '-'}, candidates from {candidates.source.value}, "
            f"picked {driver.callsign} by {decided_by.value if decided_by else 'first candidate'}"
        )

        outcome = self.transaction.assign(job, driver, config)

        if not outcome.committed:
            report.failed += 1
            report.race_lost += 1
            if outcome.driver_lost:
                # claimed elsewhere or off duty; stays out for the rest of the pass
                taken.add(driver.id)
                report.details.append(f"Job {job.id} lost the race for driver {describe_driver(driver)}.")
            else:
                # the job left PENDING after the snapshot; the driver is still free
                report.details.append(f"Job {job.id} is no longer pending; skipped.")
            return

        taken.add(driver.id)

        report.assigned += 1
        report.assignments[job.id] = driver.id
        report.details.append(f"Job {job.id} assigned to {describe_driver(driver)}")

    def run_all_tenants(self, now: Optional[datetime] = None) -> List[MatchingReport]:
        """
        One pass per known tenant; only reports that saw matchable jobs are
        returned. A repository failure aborts only the affected tenant's pass,
        listing tenants itself may still raise.
        """
        now = now or self.clock()
        reports = []
        for tenant_id in self.repository.list_tenant_ids():
            try:
                report = self.run_matching_pass(tenant_id, now)
            except RepositoryError as e:
                logger.error(f"Matching pass for tenant {tenant_id} aborted: {e}")
                continue
            if report.total_pending:
                reports.append(report)
        return reports


def run_matching_pass(
    repository: DispatchRepository,
    tenant_id: str,
    *,
    notifier: Optional[Notifier] = None,
    policy: Optional[MatchingPolicy] = None,
    executor: Optional[Executor] = None,
    now: Optional[datetime] = None,
) -> MatchingReport:
    """
    Matching trigger: one-call convenience around MatchingEngine.
    """
    engine = MatchingEngine(repository, notifier=notifier, policy=policy, executor=executor)
    return engine.run_matching_pass(tenant_id, now)
