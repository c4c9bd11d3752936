import argparse
import logging
import os
import random
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from typing import List

import pandas as pd

from dispatch.dispatcher import MatchingEngine
from dispatch.notifier import notifier_from_env
from drivers.models import Driver, DriverStatus, ZoneQueueMembership
from drivers.policy import MatchingStrategy, matching_policy_from_env
from geo.zones import Zone
from jobs.models import Job
from pricing.engine import PricingEngine
from pricing.models import FixedPrice, PricingRule, QuoteRequest
from store.memory import InMemoryRepository
from store.models import TenantConfig

TENANT = "demo-cars"

# Central London, roughly 3.5 x 3.5 miles
CENTER_LAT = 51.5155
CENTER_LNG = -0.1000
CENTRAL_RING = [[51.49, -0.14], [51.49, -0.06], [51.54, -0.06], [51.54, -0.14]]
AIRPORT_RING = [[51.46, -0.50], [51.46, -0.42], [51.49, -0.42], [51.49, -0.50]]


def scatter(rng: random.Random, spread: float = 0.12):
    return (
        round(CENTER_LAT + (rng.random() - 0.5) * spread, 6),
        round(CENTER_LNG + (rng.random() - 0.5) * spread, 6),
    )


def seed_repository(rng: random.Random, strategy: MatchingStrategy, driver_count: int, job_count: int,
                    now: datetime) -> InMemoryRepository:
    repository = InMemoryRepository()
    repository.add_tenant(TenantConfig.new(
        TENANT, name="Demo Cars", auto_dispatch=True, dispatch_strategy=strategy.value, enable_zone_pricing=True,
    ))

    central = Zone.from_encoded("zone-central", TENANT, "Central", CENTRAL_RING)
    airport = Zone.from_encoded("zone-airport", TENANT, "Heathrow", AIRPORT_RING)
    repository.add_zone(central)
    repository.add_zone(airport)

    repository.add_pricing_rule(PricingRule.new(
        "rule-saloon", TENANT, "Saloon", base_rate="4.50", per_mile="2.20", min_fare="8.00", wait_rate="0.40",
    ))
    repository.add_fixed_price(FixedPrice.new(
        "fp-central-airport", TENANT, "Saloon", "55.00",
        pickup_zone_id=central.id, dropoff_zone_id=airport.id, name="Central to Heathrow",
    ))

    for i in range(driver_count):
        # 80% chance of being free, the rest busy or off duty
        roll = rng.random()
        status = DriverStatus.FREE if roll < 0.8 else rng.choice([DriverStatus.BUSY, DriverStatus.OFF_DUTY])
        # some drivers never reported a position
        location = scatter(rng) if rng.random() < 0.9 else None
        driver = Driver.new(f"DRV-{str(i + 1).zfill(3)}", TENANT, f"{i + 1:03d}", status=status,
                            location=location, name=f"Driver {i + 1}")
        repository.save_driver(driver)

        if driver.is_free and central.contains(driver.location) and rng.random() < 0.5:
            repository.add_queue_membership(ZoneQueueMembership(
                driver_id=driver.id, zone_id=central.id, joined_at=now - timedelta(minutes=rng.randint(1, 90)),
            ))

    for i in range(job_count):
        pickup = scatter(rng, spread=0.08)
        dropoff = scatter(rng, spread=0.2)
        repository.save_job(Job(
            id=f"JOB-{str(i + 1).zfill(4)}",
            tenant_id=TENANT,
            pickup_address=f"{rng.randint(1, 200)} Pickup Street",
            dropoff_address=f"{rng.randint(1, 200)} Dropoff Road",
            pickup_time=now + timedelta(minutes=rng.randint(-90, 600)),
            pickup_location=pickup,
            dropoff_location=dropoff,
        ))

    return repository


def quote_jobs(repository: InMemoryRepository, jobs: List[Job]):
    engine = PricingEngine(repository)
    for job in jobs:
        result = engine.calculate_price(QuoteRequest(
            tenant_id=job.tenant_id,
            pickup=job.pickup_address,
            dropoff=job.dropoff_address,
            vehicle_class=job.vehicle_class,
            pickup_time=job.pickup_time,
            pickup_location=job.pickup_location,
            dropoff_location=job.dropoff_location,
        ))
        job.fare = result.price
        job.fare_breakdown = result.breakdown
        repository.save_job(job)


def run_simulation(driver_count: int, job_count: int, strategy: MatchingStrategy, seed: int):
    print("=== STARTING DISPATCH SIMULATION ===")
    rng = random.Random(seed)
    now = datetime.now(timezone.utc)

    # 1. Seed data
    repository = seed_repository(rng, strategy, driver_count, job_count, now)
    jobs = repository.list_jobs(TENANT)
    free = repository.list_drivers(TENANT, status=DriverStatus.FREE)
    print(f"Seeded {len(jobs)} Jobs and {driver_count} Drivers ({len(free)} free).\n")

    # 2. Price every job
    quote_jobs(repository, jobs)

    # 3. One matching pass
    start_time = time.time()
    with ThreadPoolExecutor(max_workers=4, thread_name_prefix="notify") as executor:
        engine = MatchingEngine(repository, notifier=notifier_from_env(), policy=matching_policy_from_env(),
                                executor=executor)
        report = engine.run_matching_pass(TENANT, now)
    print(f"Matching pass ({strategy.value}) finished in {time.time() - start_time:.3f}s.\n")

    # Save next to the script
    base_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    output_path = os.path.join(base_dir, "dispatch_results.csv")

    df = pd.DataFrame([
        {
            "job_id": job.id,
            "pickup_time": job.pickup_time.isoformat(),
            "fare": float(job.fare) if job.fare is not None else None,
            "fixed": job.fare_breakdown.is_fixed if job.fare_breakdown else None,
            "driver_id": job.driver_id or "UNASSIGNED",
            "status": job.status.value,
        }
        for job in repository.list_jobs(TENANT)
    ])
    df.to_csv(output_path, index=False)

    print("--- Pass Details ---")
    for line in report.details:
        print(f"  {line}")

    print("\n=== SIMULATION COMPLETE ===")
    print(f"Jobs in window: {report.total_pending}")
    print(f"Assigned: {report.assigned} | Failed: {report.failed} (lost race: {report.race_lost})")
    print(f"Fares by status:\n{df.groupby('status')['fare'].agg(['count', 'mean']).round(2)}")
    print(f"Results written to '{output_path}'.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed an in-memory fleet and run one matching pass.")
    parser.add_argument("--drivers", type=int, default=40)
    parser.add_argument("--jobs", type=int, default=25)
    parser.add_argument("--strategy", default="CLOSEST", help="CLOSEST or LONGEST_WAITING")
    parser.add_argument("--seed", type=int, default=42)
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    run_simulation(args.drivers, args.jobs, MatchingStrategy.parse(args.strategy), args.seed)
