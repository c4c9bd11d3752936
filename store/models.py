"""
Purpose: Tenant configuration entity.
What it does:
Holds the per-tenant switches the matching and pricing engines read.
Absent configuration resolves to the documented defaults, never an error.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from drivers.policy import MatchingStrategy


@dataclass(frozen=True)
class TenantConfig:
    tenant_id: str
    name: str = ""

    # --- Matching ---
    auto_dispatch: bool = False
    dispatch_strategy: MatchingStrategy = MatchingStrategy.CLOSEST

    # --- Pricing ---
    enable_zone_pricing: bool = False
    enable_surcharges: bool = False
    enable_wait_calculations: bool = False

    @classmethod
    def new(cls, tenant_id: str, *, dispatch_strategy: Optional[str] = None, **kwargs) -> TenantConfig:
        """
        Build from stored values; the strategy string is parsed leniently.
        """
        return cls(
            tenant_id=tenant_id,
            dispatch_strategy=MatchingStrategy.parse(dispatch_strategy),
            **kwargs,
        )

    @classmethod
    def defaults(cls, tenant_id: str) -> TenantConfig:
        return cls(tenant_id=tenant_id)
