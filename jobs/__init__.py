"""
Jobs domain package.

Public API:
- Domain models: Job, JobStatus
- Matching window: MatchingWindow, matching_window, select_matchable_jobs
"""
from .models import Job, JobStatus
from .queue import MatchingWindow, matching_window, select_matchable_jobs

__all__ = ["Job",
           "JobStatus",
             "MatchingWindow",
               "matching_window",
               "select_matchable_jobs",
               ]
