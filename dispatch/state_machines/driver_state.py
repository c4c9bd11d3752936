from dataclasses import replace

from drivers.models import Driver, DriverStatus


class DriverStateException(Exception):
    """Raised when an invalid driver transition is attempted."""
    pass


def can_assign(driver: Driver) -> bool:
    return driver.status == DriverStatus.FREE


def handle_driver_assignment(driver: Driver) -> Driver:
    """
    Called when a job is committed to the driver: FREE -> BUSY so the
    driver is blocked from further assignments until released.
    """
    if not can_assign(driver):
        raise DriverStateException(f"Driver {driver.id} is {driver.status.value}, not FREE")

    # Because Driver is a frozen dataclass, we must return a new instance via replace
    return replace(driver, status=DriverStatus.BUSY)
