"""
Purpose: The Assignment Transaction.
What it does:
1. commits job -> DISPATCHED (+ driver reference) and driver -> BUSY through a
   single conditional write on the repository (compare-and-swap)
2. fires the assignment notification after the commit

A lost race (job no longer PENDING / driver no longer FREE) is a soft failure.
Notification failures are logged and never roll back the commit.
"""

import logging
from concurrent.futures import Executor
from dataclasses import dataclass
from typing import Optional

from drivers.models import Driver
from jobs.models import Job
from store.models import TenantConfig
from store.repository import CommitStatus, DispatchRepository
from .notifier import LoggingNotifier, Notifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AssignmentOutcome:
    status: CommitStatus
    job: Job
    driver: Driver

    @property
    def committed(self) -> bool:
        return self.status == CommitStatus.COMMITTED

    @property
    def driver_lost(self) -> bool:
        # the driver was claimed or went off duty; the job side says nothing about it
        return self.status == CommitStatus.DRIVER_UNAVAILABLE


class AssignmentTransaction:
    """
    Commits one (job, driver) pair. The atomicity unit is the single
    assignment, not the whole matching pass.
    """

    def __init__(
        self,
        repository: DispatchRepository,
        notifier: Optional[Notifier] = None,
        executor: Optional[Executor] = None,
    ):
        self.repository = repository
        self.notifier = notifier or LoggingNotifier()
        # when set, notifications are delivered off the caller's thread
        self.executor = executor

    def assign(self, job: Job, driver: Driver, tenant_config: Optional[TenantConfig] = None) -> AssignmentOutcome:
        result = self.repository.commit_assignment(job.tenant_id, job.id, driver.id)

        if not result.committed:
            logger.info(
                f"Race lost committing job {job.id} to driver {driver.callsign} "
                f"({result.status.value}); left for a later pass"
            )
            return AssignmentOutcome(status=result.status, job=job, driver=driver)

        if self.executor is not None:
            try:
                self.executor.submit(self._notify, result.job, result.driver, tenant_config)
            except RuntimeError as e:
                # executor already shut down; the commit stands
                logger.warning(f"Notification not scheduled for job {job.id} (driver {driver.callsign}): {e}")
        else:
            self._notify(result.job, result.driver, tenant_config)

        return AssignmentOutcome(status=result.status, job=result.job, driver=result.driver)

    def _notify(self, job: Job, driver: Driver, tenant_config: Optional[TenantConfig]) -> None:
        try:
            self.notifier.notify_driver_assigned(job, driver, tenant_config)
        except Exception as e:
            logger.warning(f"Notification failed for job {job.id} (driver {driver.callsign}): {e}")
