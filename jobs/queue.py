"""
Purpose: Decides which pending jobs a matching pass may touch, and in what order.
What it does:
- Computes the pickup-time window for a pass:
   - no more than `lookback_hours` in the past (stale jobs are skipped)
   - no more than `lookahead_hours` in the future (far-future jobs wait)
- Filters a job snapshot down to PENDING, auto-dispatch eligible, unassigned
  jobs inside that window
- Orders them by pickup time ascending so the earliest pickups get first
  pick of scarce drivers

Rule: Queue owns eligibility and ordering, the dispatcher owns matching.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, List, Optional

from drivers.policy import MatchingPolicy, default_matching_policy
from .models import Job, JobStatus


@dataclass(frozen=True)
class MatchingWindow:
    earliest: datetime
    latest: datetime

    def contains(self, moment: datetime) -> bool:
        return self.earliest <= moment <= self.latest


def matching_window(now: datetime, policy: Optional[MatchingPolicy] = None) -> MatchingWindow:
    policy = policy or default_matching_policy()
    return MatchingWindow(
        earliest=now - timedelta(hours=policy.lookback_hours),
        latest=now + timedelta(hours=policy.lookahead_hours),
    )


def is_matchable(job: Job, window: MatchingWindow) -> bool:
    """
    A job is matchable when it is PENDING, flagged for automatic matching,
    has no driver yet and its pickup falls inside the window.
    """
    if job.status != JobStatus.PENDING:
        return False
    if not job.auto_dispatch:
        return False
    if not job.is_unassigned:
        return False
    return window.contains(job.pickup_time)


def select_matchable_jobs(jobs: Iterable[Job], window: MatchingWindow) -> List[Job]:
    """
    Matchable jobs sorted by pickup time (earliest first).
    The sort is stable, so jobs with equal pickup times keep snapshot order.
    """
    eligible = [job for job in jobs if is_matchable(job, window)]
    eligible.sort(key=lambda job: job.pickup_time)
    return eligible
