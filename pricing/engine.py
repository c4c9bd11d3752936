"""
Purpose: The pricing "orchestrator" (single entry point for quotes).
What it does:

Produces a fare and an itemized breakdown for a QuoteRequest, applying
the tariff cascade in strict precedence order:

1. distance back-fill from coordinates (haversine) when none was supplied
2. fixed-price override (address text, or zone pair when zone pricing is on)
   -> returned immediately, nothing metered applies
3. tariff lookup for (tenant, vehicle class), else the fallback tariff scaled
   by the vehicle class multiplier
4. base + distance x per mile
5. wait-and-return: distance doubled, waiting minutes x wait rate added
6. minimum fare floor
7. surcharges (when enabled for the tenant)
8. intermediate stops, one aggregated "<N> x Stops" line
9. round to 2 decimal places

Rule: Engine is the only file other modules should call directly for pricing.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from geo.distance import distance
from geo.zones import resolve_zone
from store.models import TenantConfig
from store.repository import DispatchRepository, RepositoryError
from .fixed import find_fixed_price
from .models import PriceBreakdown, PriceResult, PricingRule, QuoteRequest, SurchargeLine, to_money
from .policy import PricingPolicy, default_pricing_policy
from .surcharges import apply_surcharges

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


class PriceUnavailableError(Exception):
    """Raised when a quote cannot be produced because pricing data could not be read."""
    pass


def round_money(amount: Decimal) -> Decimal:
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


class PricingEngine:
    """
    Side-effect free quote calculation against a data-access interface.
    Safe to call concurrently.
    """

    def __init__(self, repository: DispatchRepository, policy: Optional[PricingPolicy] = None):
        self.repository = repository
        self.policy = policy or default_pricing_policy()

    def calculate_price(self, request: QuoteRequest) -> PriceResult:
        try:
            return self._calculate(request)
        except RepositoryError as exc:
            logger.error(f"Pricing data unavailable for tenant {request.tenant_id}: {exc}")
            raise PriceUnavailableError(f"Price unavailable: {exc}") from exc

    # ---- internal steps ----

    def resolve_distance(self, request: QuoteRequest) -> Decimal:
        if request.distance_miles is not None:
            return to_money(request.distance_miles)

        if request.pickup_location is not None and request.dropoff_location is not None:
            miles = distance(*request.pickup_location, *request.dropoff_location)
            return to_money(miles)

        return Decimal("0")

    def fallback_rule(self, tenant_id: str, vehicle_class: str) -> PricingRule:
        """
        Documented default tariff, scaled for premium / large classes.
        """
        multiplier = Decimal("1")
        if vehicle_class in self.policy.premium_classes:
            multiplier = self.policy.premium_multiplier
        elif vehicle_class in self.policy.large_classes:
            multiplier = self.policy.large_multiplier

        return PricingRule(
            id=None,
            tenant_id=tenant_id,
            vehicle_class=vehicle_class,
            base_rate=self.policy.fallback_base_rate * multiplier,
            per_mile=self.policy.fallback_per_mile * multiplier,
            min_fare=self.policy.fallback_min_fare * multiplier,
            wait_rate=self.policy.fallback_wait_rate,
            name="default",
        )

    def _calculate(self, request: QuoteRequest) -> PriceResult:
        vehicle_class = request.vehicle_class or self.policy.default_vehicle_class
        pickup_time = request.pickup_time or datetime.now(timezone.utc)
        config = self.repository.get_tenant_config(request.tenant_id) or TenantConfig.defaults(request.tenant_id)

        # 1) Distance back-fill
        miles = self.resolve_distance(request)

        # 2) Fixed price override
        fixed_result = self._fixed_price(request, vehicle_class, config, miles)
        if fixed_result is not None:
            return fixed_result

        # 3) Tariff lookup
        rule = self.repository.get_pricing_rule(request.tenant_id, vehicle_class)
        if rule is None:
            rule = self.fallback_rule(request.tenant_id, vehicle_class)

        # 4) Base computation
        mileage = miles * rule.per_mile
        waiting = Decimal("0")
        waiting_minutes = to_money(request.waiting_minutes)

        # 5) Wait and return: round trip plus waiting time
        if request.wait_and_return:
            mileage = (miles * 2) * rule.per_mile
            waiting = waiting_minutes * rule.wait_rate
        elif config.enable_wait_calculations and waiting_minutes > 0:
            waiting = waiting_minutes * rule.wait_rate

        total = rule.base_rate + mileage + waiting

        breakdown = PriceBreakdown(
            base=rule.base_rate,
            mileage=mileage,
            is_fixed=False,
            matched_rule_id=rule.id,
            distance_miles=miles,
            waiting=waiting,
        )

        # 6) Minimum fare floor
        if total < rule.min_fare:
            total = rule.min_fare
            breakdown.minimum_fare_applied = True

        # 7) Surcharges
        if config.enable_surcharges:
            surcharges = self.repository.list_surcharges(request.tenant_id)
            total, lines = apply_surcharges(total, surcharges, pickup_time)
            breakdown.surcharges.extend(lines)

        # 8) Intermediate stops
        stop_count = len(request.vias or ())
        if stop_count:
            stops_amount = self.policy.per_stop_charge * stop_count
            total += stops_amount
            breakdown.surcharges.append(SurchargeLine(name=f"{stop_count} x Stops", amount=stops_amount))

        # 9) Rounding
        return PriceResult(price=round_money(total), breakdown=breakdown)

    def _fixed_price(self, request: QuoteRequest, vehicle_class: str, config: TenantConfig,
                     miles: Decimal) -> Optional[PriceResult]:
        entries = self.repository.list_fixed_prices(request.tenant_id, vehicle_class)
        if not entries:
            return None

        pickup_zone_id = dropoff_zone_id = None
        if config.enable_zone_pricing and request.pickup_location and request.dropoff_location:
            zones = self.repository.list_zones(request.tenant_id)
            pickup_zone = resolve_zone(request.pickup_location, zones)
            dropoff_zone = resolve_zone(request.dropoff_location, zones)
            pickup_zone_id = pickup_zone.id if pickup_zone else None
            dropoff_zone_id = dropoff_zone.id if dropoff_zone else None

        matched = find_fixed_price(
            entries,
            request.pickup,
            request.dropoff,
            pickup_zone_id=pickup_zone_id,
            dropoff_zone_id=dropoff_zone_id,
        )
        if matched is None:
            return None

        price = round_money(matched.price)
        return PriceResult(
            price=price,
            breakdown=PriceBreakdown(
                base=price,
                mileage=Decimal("0"),
                is_fixed=True,
                matched_rule_id=matched.id,
                distance_miles=miles,
            ),
        )


def calculate_price(repository: DispatchRepository, request: QuoteRequest,
                    policy: Optional[PricingPolicy] = None) -> PriceResult:
    """
    Quote trigger: one-call convenience around PricingEngine.
    """
    return PricingEngine(repository, policy).calculate_price(request)
