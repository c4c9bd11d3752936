import random
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

from dispatch.dispatcher import MatchingEngine, run_matching_pass
from drivers.models import Driver, DriverStatus, ZoneQueueMembership
from drivers.policy import MatchingStrategy
from geo.distance import distance
from jobs.models import Job, JobStatus
from store.memory import InMemoryRepository
from store.models import TenantConfig

from conftest import CENTRAL_POINT, NOW, TENANT, RecordingNotifier

# ~3 miles north of the central pickup, outside the central zone
THREE_MILES_NORTH = (51.5684, -0.10)
# ~0.5 miles north of the central pickup, inside the central zone
HALF_MILE_NORTH = (51.5322, -0.10)
# ~1.8 miles north, just outside the central zone
JUST_OUTSIDE_NORTH = (51.551, -0.10)
# far corner of the central zone, ~2.7 miles from the pickup
ZONE_CORNER = (51.501, -0.149)


def use_strategy(repository, strategy):
    repository.add_tenant(TenantConfig.new(TENANT, auto_dispatch=True, dispatch_strategy=strategy))


def queue(repository, driver_id, zone, minutes_ago):
    repository.add_queue_membership(ZoneQueueMembership(
        driver_id=driver_id, zone_id=zone.id, joined_at=NOW - timedelta(minutes=minutes_ago),
    ))


def test_closest_picks_the_nearest_driver(repository, central_zone, add_job, add_driver, notifier):
    add_job("job-1")
    add_driver("x", location=THREE_MILES_NORTH)
    add_driver("y", location=HALF_MILE_NORTH)

    report = run_matching_pass(repository, TENANT, notifier=notifier, now=NOW)

    assert report.total_pending == 1
    assert report.assigned == 1
    assert report.assignments == {"job-1": "y"}
    assert repository.get_job("job-1").status == JobStatus.DISPATCHED
    assert repository.get_job("job-1").driver_id == "y"
    assert repository.get_driver("y").status == DriverStatus.BUSY
    assert repository.get_driver("x").status == DriverStatus.FREE
    assert notifier.sent == [("job-1", "y")]


def test_closest_over_a_scattered_fleet(repository, add_job, add_driver):
    rng = random.Random(7)
    pickup_lat, pickup_lng = CENTRAL_POINT
    drivers = []
    for i in range(40):
        location = (pickup_lat + (rng.random() - 0.5) * 0.2, pickup_lng + (rng.random() - 0.5) * 0.2)
        drivers.append(add_driver(f"d-{i}", location=location))
    add_job("job-1")

    report = run_matching_pass(repository, TENANT, now=NOW)

    nearest = min(drivers, key=lambda driver: distance(*driver.location, *CENTRAL_POINT))
    assert report.assignments == {"job-1": nearest.id}


def test_longest_waiting_is_fifo(repository, central_zone, add_job, add_driver):
    use_strategy(repository, "LONGEST_WAITING")
    add_job("job-1")
    add_driver("newest", location=HALF_MILE_NORTH)
    add_driver("oldest", location=ZONE_CORNER)
    add_driver("middle", location=ZONE_CORNER)
    queue(repository, "newest", central_zone, 5)
    queue(repository, "oldest", central_zone, 45)
    queue(repository, "middle", central_zone, 20)

    report = run_matching_pass(repository, TENANT, now=NOW)

    assert report.assignments == {"job-1": "oldest"}


def test_longest_waiting_serves_queue_in_order_across_jobs(repository, central_zone, add_job, add_driver):
    use_strategy(repository, "LONGEST_WAITING")
    add_job("job-early", minutes=10)
    add_job("job-late", minutes=50)
    add_driver("second", location=HALF_MILE_NORTH)
    add_driver("first", location=ZONE_CORNER)
    queue(repository, "second", central_zone, 5)
    queue(repository, "first", central_zone, 30)

    report = run_matching_pass(repository, TENANT, now=NOW)

    assert report.assignments == {"job-early": "first", "job-late": "second"}


def test_longest_waiting_without_queue_falls_back_to_closest(repository, central_zone, add_job, add_driver):
    use_strategy(repository, MatchingStrategy.LONGEST_WAITING)
    add_job("job-1")
    add_driver("far", location=ZONE_CORNER)
    add_driver("near", location=HALF_MILE_NORTH)

    report = run_matching_pass(repository, TENANT, now=NOW)

    assert report.assignments == {"job-1": "near"}


def test_queue_members_are_preferred_over_nearer_drivers(repository, central_zone, add_job, add_driver):
    add_job("job-1")
    add_driver("queued-far", location=THREE_MILES_NORTH)
    add_driver("unqueued-near", location=HALF_MILE_NORTH)
    queue(repository, "queued-far", central_zone, 10)

    report = run_matching_pass(repository, TENANT, now=NOW)

    assert report.assignments == {"job-1": "queued-far"}


def test_geometric_zone_fallback_before_global_pool(repository, central_zone, add_job, add_driver):
    add_job("job-1")
    add_driver("outside-nearer", location=JUST_OUTSIDE_NORTH)
    add_driver("inside-farther", location=ZONE_CORNER)

    report = run_matching_pass(repository, TENANT, now=NOW)

    assert report.assignments == {"job-1": "inside-farther"}


def test_zone_restriction_is_advisory(repository, central_zone, add_job, add_driver):
    add_job("job-1")
    add_driver("elsewhere", location=(52.2, 0.12))

    report = run_matching_pass(repository, TENANT, now=NOW)

    assert report.assigned == 1
    assert report.assignments == {"job-1": "elsewhere"}


def test_pickup_outside_every_zone_uses_whole_pool(repository, central_zone, add_job, add_driver):
    add_job("job-1", pickup_location=(52.2, 0.12))
    add_driver("in-zone", location=HALF_MILE_NORTH)
    add_driver("near-pickup", location=(52.21, 0.12))

    report = run_matching_pass(repository, TENANT, now=NOW)

    assert report.assignments == {"job-1": "near-pickup"}


def test_job_without_coordinates_takes_first_candidate(repository, add_job, add_driver):
    add_job("job-1", pickup_location=None)
    add_driver("first-listed", location=THREE_MILES_NORTH)
    add_driver("second-listed", location=HALF_MILE_NORTH)

    report = run_matching_pass(repository, TENANT, now=NOW)

    assert report.assignments == {"job-1": "first-listed"}


def test_driver_without_location_sorts_last(repository, add_job, add_driver):
    add_job("job-1")
    add_job("job-2", minutes=40)
    add_driver("unknown", location=None)
    add_driver("known", location=THREE_MILES_NORTH)

    report = run_matching_pass(repository, TENANT, now=NOW)

    assert report.assignments == {"job-1": "known", "job-2": "unknown"}


def test_each_driver_gets_at_most_one_job_per_pass(repository, add_job, add_driver):
    for i in range(4):
        add_job(f"job-{i}", minutes=10 + i)
        add_driver(f"d-{i}", location=HALF_MILE_NORTH)

    report = run_matching_pass(repository, TENANT, now=NOW)

    assert report.assigned == 4
    assert report.failed == 0
    assert sorted(report.assignments.values()) == ["d-0", "d-1", "d-2", "d-3"]
    for i in range(4):
        assert repository.get_driver(f"d-{i}").status == DriverStatus.BUSY


def test_earliest_pickups_win_scarce_drivers(repository, add_job, add_driver):
    add_job("job-late", minutes=90)
    add_job("job-early", minutes=15)
    add_job("job-middle", minutes=45)
    add_driver("d-1", location=HALF_MILE_NORTH)
    add_driver("d-2", location=HALF_MILE_NORTH)

    report = run_matching_pass(repository, TENANT, now=NOW)

    assert report.assigned == 2
    assert report.failed == 1
    assert set(report.assignments) == {"job-early", "job-middle"}
    assert "Job job-late could not find a driver." in report.details
    assert repository.get_job("job-late").status == JobStatus.PENDING


def test_no_free_drivers(repository, add_job, add_driver):
    add_job("job-1")
    add_job("job-2")
    add_driver("busy", location=HALF_MILE_NORTH, status=DriverStatus.BUSY)
    add_driver("off", location=HALF_MILE_NORTH, status=DriverStatus.OFF_DUTY)

    report = run_matching_pass(repository, TENANT, now=NOW)

    assert report.total_pending == 2
    assert report.assigned == 0
    assert report.failed == report.total_pending
    assert repository.get_job("job-1").status == JobStatus.PENDING
    assert repository.get_job("job-2").status == JobStatus.PENDING
    assert repository.get_driver("busy").status == DriverStatus.BUSY


def test_pass_is_a_no_op_when_auto_dispatch_is_off(repository, add_job, add_driver):
    repository.add_tenant(TenantConfig.new(TENANT, auto_dispatch=False))
    add_job("job-1")
    add_driver("d-1", location=HALF_MILE_NORTH)

    report = run_matching_pass(repository, TENANT, now=NOW)

    assert (report.total_pending, report.assigned, report.failed) == (0, 0, 0)
    assert repository.get_job("job-1").status == JobStatus.PENDING


def test_unknown_tenant_is_a_no_op():
    report = run_matching_pass(InMemoryRepository(), "ghost", now=NOW)
    assert report.total_pending == 0


def test_only_jobs_inside_the_window_are_matched(repository, add_job, add_driver):
    add_job("stale", minutes=-3 * 60)
    add_job("recent", minutes=-60)
    add_job("soon", minutes=20)
    add_job("far-future", minutes=25 * 60)
    add_job("manual", minutes=20, auto_dispatch=False)
    for i in range(5):
        add_driver(f"d-{i}", location=HALF_MILE_NORTH)

    report = run_matching_pass(repository, TENANT, now=NOW)

    assert report.total_pending == 2
    assert set(report.assignments) == {"recent", "soon"}
    assert repository.get_job("stale").status == JobStatus.PENDING
    assert repository.get_job("far-future").status == JobStatus.PENDING


def test_other_tenants_are_untouched(repository, add_job, add_driver):
    repository.add_tenant(TenantConfig.new("tenant-2", auto_dispatch=True))
    add_job("job-1")
    add_driver("theirs", location=HALF_MILE_NORTH, tenant_id="tenant-2")

    report = run_matching_pass(repository, TENANT, now=NOW)

    assert report.assigned == 0
    assert repository.get_driver("theirs").status == DriverStatus.FREE


def test_failed_notification_keeps_the_assignment(repository, add_job, add_driver):
    add_job("job-1")
    add_driver("d-1", location=HALF_MILE_NORTH)

    report = run_matching_pass(repository, TENANT, notifier=RecordingNotifier(fail=True), now=NOW)

    assert report.assigned == 1
    assert repository.get_job("job-1").status == JobStatus.DISPATCHED
    assert repository.get_driver("d-1").status == DriverStatus.BUSY


class StaleDriverSnapshot(InMemoryRepository):
    """Hands out a FREE snapshot of drivers that were claimed since."""

    def __init__(self):
        super().__init__()
        self.stale_drivers = []

    def list_drivers(self, tenant_id, *, status=None):
        return list(self.stale_drivers)


def test_lost_race_is_a_soft_failure():
    repository = StaleDriverSnapshot()
    repository.add_tenant(TenantConfig.new(TENANT, auto_dispatch=True))

    free = Driver.new("d-1", TENANT, "D1", status="FREE", location=HALF_MILE_NORTH)
    repository.stale_drivers = [free]
    repository.save_driver(Driver.new("d-1", TENANT, "D1", status="BUSY", location=HALF_MILE_NORTH))

    repository.save_job(Job(
        id="job-1", tenant_id=TENANT, pickup_address="A", dropoff_address="B",
        pickup_time=NOW + timedelta(minutes=30), pickup_location=CENTRAL_POINT,
    ))

    report = run_matching_pass(repository, TENANT, now=NOW)

    assert report.assigned == 0
    assert report.failed == 1
    assert report.race_lost == 1
    assert repository.get_job("job-1").status == JobStatus.PENDING
    assert repository.get_job("job-1").driver_id is None



class StaleJobSnapshot(InMemoryRepository):
    """Hands out a PENDING snapshot of jobs that may have moved on since."""

    def __init__(self):
        super().__init__()
        self.stale_jobs = []

    def list_jobs(self, tenant_id, *, status=None, pickup_from=None, pickup_to=None):
        return list(self.stale_jobs)


def test_cancelled_job_does_not_bench_its_driver():
    repository = StaleJobSnapshot()
    repository.add_tenant(TenantConfig.new(TENANT, auto_dispatch=True))
    repository.save_driver(Driver.new("d", TENANT, "D", status="FREE", location=HALF_MILE_NORTH))

    def job(job_id, minutes, status=JobStatus.PENDING):
        return Job(id=job_id, tenant_id=TENANT, pickup_address="A", dropoff_address="B",
                   pickup_time=NOW + timedelta(minutes=minutes), pickup_location=CENTRAL_POINT, status=status)

    repository.stale_jobs = [job("j1", 10), job("j2", 20)]
    repository.save_job(job("j1", 10, status=JobStatus.CANCELLED))
    repository.save_job(job("j2", 20))

    report = run_matching_pass(repository, TENANT, now=NOW)

    assert report.assignments == {"j2": "d"}
    assert report.race_lost == 1
    assert report.details[0] == "Job j1 is no longer pending; skipped."
    assert repository.get_job("j1").status == JobStatus.CANCELLED
    assert repository.get_driver("d").status == DriverStatus.BUSY


class BlockingNotifier(RecordingNotifier):
    """Holds every send until released."""

    def __init__(self):
        super().__init__()
        self.release = threading.Event()

    def notify_driver_assigned(self, job, driver, tenant_config):
        self.release.wait(timeout=5)
        super().notify_driver_assigned(job, driver, tenant_config)


def test_slow_notifications_do_not_hold_up_the_pass(repository, add_job, add_driver):
    for i in range(3):
        add_job(f"job-{i}", minutes=5 + i)
        add_driver(f"d-{i}", location=HALF_MILE_NORTH)
    notifier = BlockingNotifier()

    with ThreadPoolExecutor(max_workers=3) as executor:
        started = time.monotonic()
        report = run_matching_pass(repository, TENANT, notifier=notifier, executor=executor, now=NOW)
        elapsed = time.monotonic() - started

        # every commit landed while all three sends were still waiting
        assert report.assigned == 3
        assert notifier.sent == []
        notifier.release.set()

    assert elapsed < 2
    assert sorted(notifier.sent) == [("job-0", "d-0"), ("job-1", "d-1"), ("job-2", "d-2")]

def test_concurrent_passes_never_double_book(repository, add_job, add_driver):
    for i in range(12):
        add_job(f"job-{i}", minutes=5 + i)
    for i in range(6):
        add_driver(f"d-{i}", location=HALF_MILE_NORTH)

    barrier = threading.Barrier(3)
    reports = []
    lock = threading.Lock()

    def worker():
        engine = MatchingEngine(repository)
        barrier.wait()
        report = engine.run_matching_pass(TENANT, NOW)
        with lock:
            reports.append(report)

    threads = [threading.Thread(target=worker) for _ in range(3)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    committed = {}
    for report in reports:
        for job_id, driver_id in report.assignments.items():
            assert job_id not in committed
            committed[job_id] = driver_id

    # one job per driver, and every committed pair is what the store holds
    assert len(set(committed.values())) == len(committed)
    for job_id, driver_id in committed.items():
        assert repository.get_job(job_id).driver_id == driver_id
    busy = [d for d in repository.list_drivers(TENANT) if d.status == DriverStatus.BUSY]
    assert len(busy) == len(committed)
    assert 1 <= len(committed) <= 6


def test_run_all_tenants_reports_only_active_tenants(repository, add_job, add_driver):
    repository.add_tenant(TenantConfig.new("quiet", auto_dispatch=True))
    repository.add_tenant(TenantConfig.new("disabled", auto_dispatch=False))
    add_job("job-1")
    add_driver("d-1", location=HALF_MILE_NORTH)

    reports = MatchingEngine(repository, clock=lambda: NOW).run_all_tenants()

    assert [report.tenant_id for report in reports] == [TENANT]
    assert reports[0].assigned == 1
