"""
Pricing package.

Public API:
- calculate_price, PricingEngine, PriceUnavailableError
- QuoteRequest, PriceResult, PriceBreakdown, SurchargeLine
- PricingRule, FixedPrice, Surcharge, SurchargeKind
- PricingPolicy, default_pricing_policy
"""

from .models import (
    FixedPrice,
    PriceBreakdown,
    PriceResult,
    PricingRule,
    QuoteRequest,
    Surcharge,
    SurchargeKind,
    SurchargeLine,
)
from .policy import PricingPolicy, default_pricing_policy
from .engine import PricingEngine, PriceUnavailableError, calculate_price

__all__ = [
    "calculate_price",
    "PricingEngine",
    "PriceUnavailableError",
    "QuoteRequest",
    "PriceResult",
    "PriceBreakdown",
    "SurchargeLine",
    "PricingRule",
    "FixedPrice",
    "Surcharge",
    "SurchargeKind",
    "PricingPolicy",
    "default_pricing_policy",
]
