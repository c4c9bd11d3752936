from datetime import datetime, timedelta, timezone

import pytest

from dispatch.notifier import Notifier
from drivers.models import Driver, DriverStatus
from geo.zones import Zone
from jobs.models import Job
from store.memory import InMemoryRepository
from store.models import TenantConfig

# Wednesday, midday
NOW = datetime(2026, 3, 4, 12, 0, tzinfo=timezone.utc)
TENANT = "tenant-1"

# Roughly central London: lat 51.50..51.55, lng -0.15..-0.05
CENTRAL_RING = [[51.50, -0.15], [51.50, -0.05], [51.55, -0.05], [51.55, -0.15]]
CENTRAL_POINT = (51.525, -0.10)

# A square further east, used as the dropoff zone for zone-pair pricing
EAST_RING = [[51.50, 0.00], [51.50, 0.10], [51.55, 0.10], [51.55, 0.00]]
EAST_POINT = (51.525, 0.05)


class RecordingNotifier(Notifier):
    """Keeps every (job id, driver id) it was asked to send; optionally fails."""

    def __init__(self, fail=False):
        self.sent = []
        self.fail = fail

    def notify_driver_assigned(self, job, driver, tenant_config):
        if self.fail:
            raise RuntimeError("SMS gateway unreachable")
        self.sent.append((job.id, driver.id))


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def repository():
    repo = InMemoryRepository()
    repo.add_tenant(TenantConfig.new(TENANT, name="Test Cars", auto_dispatch=True))
    return repo


@pytest.fixture
def central_zone(repository):
    zone = Zone.from_encoded("zone-central", TENANT, "Central", CENTRAL_RING)
    repository.add_zone(zone)
    return zone


@pytest.fixture
def east_zone(repository):
    zone = Zone.from_encoded("zone-east", TENANT, "East", EAST_RING)
    repository.add_zone(zone)
    return zone


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def add_job(repository):
    """
    Saves a PENDING job `minutes` after NOW, picking up at CENTRAL_POINT
    unless told otherwise.
    """
    def _add(job_id, minutes=30, pickup_location=CENTRAL_POINT, **kwargs):
        job = Job(
            id=job_id,
            tenant_id=kwargs.pop("tenant_id", TENANT),
            pickup_address=kwargs.pop("pickup_address", "1 High Street"),
            dropoff_address=kwargs.pop("dropoff_address", "2 Station Road"),
            pickup_time=NOW + timedelta(minutes=minutes),
            pickup_location=pickup_location,
            **kwargs,
        )
        repository.save_job(job)
        return job
    return _add


@pytest.fixture
def add_driver(repository):
    def _add(driver_id, location=None, status=DriverStatus.FREE, **kwargs):
        driver = Driver.new(
            driver_id,
            kwargs.pop("tenant_id", TENANT),
            kwargs.pop("callsign", driver_id.upper()),
            status=status,
            location=location,
            **kwargs,
        )
        repository.save_driver(driver)
        return driver
    return _add
