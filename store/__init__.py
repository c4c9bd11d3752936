"""
Data-access package.

Public API:
- TenantConfig
- DispatchRepository (abstract), RepositoryError
- CommitResult, CommitStatus (outcome of the conditional write)
- InMemoryRepository
"""
# order matters: dispatch.state_machines (imported by memory) pulls in the
# dispatch package, which needs models and repository loaded first
from .models import TenantConfig
from .repository import CommitResult, CommitStatus, DispatchRepository, RepositoryError
from .memory import InMemoryRepository

__all__ = [
    "TenantConfig",
    "DispatchRepository",
    "RepositoryError",
    "CommitResult",
    "CommitStatus",
    "InMemoryRepository",
]
