#Purpose: Periodic trigger for matching passes.
#Runs MatchingEngine.run_all_tenants every DISPATCH_INTERVAL_SECONDS.
#A failing tick is logged and the loop keeps going.
#Several schedulers may run against one repository: the conditional write
#in commit_assignment keeps assignments exclusive.
#Notifications are handed to a thread pool so a slow send never stalls a pass.

import logging
import os
import time
from concurrent.futures import Executor, ThreadPoolExecutor
from datetime import datetime
from typing import Callable, List, Optional

from dotenv import load_dotenv

from drivers.policy import MatchingPolicy
from store.repository import DispatchRepository, RepositoryError
from .dispatcher import MatchingEngine, MatchingReport
from .notifier import Notifier, notifier_from_env

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 30.0
DEFAULT_NOTIFY_WORKERS = 4


def interval_from_env() -> float:
    interval = float(os.getenv("DISPATCH_INTERVAL_SECONDS", DEFAULT_INTERVAL_SECONDS))
    if interval <= 0:
        raise ValueError("DISPATCH_INTERVAL_SECONDS must be > 0")
    return interval


def notify_workers_from_env() -> int:
    workers = int(os.getenv("DISPATCH_NOTIFY_WORKERS", DEFAULT_NOTIFY_WORKERS))
    if workers < 1:
        raise ValueError("DISPATCH_NOTIFY_WORKERS must be >= 1")
    return workers


class DispatchScheduler:

    def __init__(
        self,
        engine: MatchingEngine,
        interval_seconds: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
        executor: Optional[Executor] = None,
    ):
        self.engine = engine
        self.interval_seconds = interval_seconds if interval_seconds is not None else interval_from_env()
        self.sleep = sleep
        # notification pool owned by this scheduler, released by close()
        self.executor = executor

    @classmethod
    def for_repository(
        cls,
        repository: DispatchRepository,
        notifier: Optional[Notifier] = None,
        policy: Optional[MatchingPolicy] = None,
        interval_seconds: Optional[float] = None,
        notify_workers: Optional[int] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> "DispatchScheduler":
        """
        Production wiring: notifier from .env and a thread pool for delivery.
        """
        executor = ThreadPoolExecutor(
            max_workers=notify_workers or notify_workers_from_env(),
            thread_name_prefix="dispatch-notify",
        )
        engine = MatchingEngine(
            repository,
            notifier=notifier or notifier_from_env(),
            policy=policy,
            executor=executor,
        )
        return cls(engine, interval_seconds, sleep, executor=executor)

    def close(self) -> None:
        """Waits for queued notifications, then releases the pool."""
        if self.executor is not None:
            self.executor.shutdown(wait=True)

    def __enter__(self) -> "DispatchScheduler":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def tick(self, now: Optional[datetime] = None) -> List[MatchingReport]:
        try:
            reports = self.engine.run_all_tenants(now)
        except RepositoryError as e:
            logger.error(f"Dispatch tick failed: {e}")
            return []

        assigned = sum(report.assigned for report in reports)
        if assigned:
            logger.info(f"Dispatch tick assigned {assigned} job(s) across {len(reports)} tenant(s)")
        return reports

    def run(self, max_ticks: Optional[int] = None) -> int:
        """
        Blocks, ticking every interval. Returns the number of ticks run
        (only reachable when max_ticks is given).
        """
        ticks = 0
        while max_ticks is None or ticks < max_ticks:
            self.tick()
            ticks += 1
            if max_ticks is not None and ticks >= max_ticks:
                break
            self.sleep(self.interval_seconds)
        return ticks
