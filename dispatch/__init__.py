#Expose the high-level pipeline pieces:
#Candidate filtering (zone queue -> zone geometry -> city-wide)
#Strategy selection with fallback chain
#Assignment transaction + notification
#Matching engine orchestrator (the "one call" entry point)
#Periodic scheduler

from .candidate_filter import CandidateSet, CandidateSource, build_candidate_set
from .scoring import SelectionContext, select_driver
from .notifier import Notifier, LoggingNotifier, WebhookNotifier, notifier_from_env
from .assignment import AssignmentOutcome, AssignmentTransaction
from .dispatcher import MatchingEngine, MatchingReport, run_matching_pass #the main function to call to match jobs to drivers
from .scheduler import DispatchScheduler

__all__ = [
    "CandidateSet",
    "CandidateSource",
    "build_candidate_set",
    "SelectionContext",
    "select_driver",
    "Notifier",
    "LoggingNotifier",
    "WebhookNotifier",
    "notifier_from_env",
    "AssignmentOutcome",
    "AssignmentTransaction",
    "MatchingEngine",
    "MatchingReport",
    "run_matching_pass",
    "DispatchScheduler",
]
