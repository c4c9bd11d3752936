#Purpose: The notification adapter used after a job is committed to a driver.
#Sole responsibility: tell the customer and the driver about the assignment.
#Delivery is best-effort: callers log and swallow any exception raised here.
#Concrete senders:
#LoggingNotifier -> "mock send", writes the message to the log
#WebhookNotifier -> POSTs a JSON payload to NOTIFY_WEBHOOK_URL via requests

import logging
import os
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import requests
from dotenv import load_dotenv

from drivers.models import Driver
from jobs.models import Job
from store.models import TenantConfig

# Read webhook settings from environment
# Example in .env:
# NOTIFY_WEBHOOK_URL=https://hooks.example.com/dispatch
load_dotenv()

logger = logging.getLogger(__name__)


class Notifier(ABC):

    @abstractmethod
    def notify_driver_assigned(self, job: Job, driver: Driver, tenant_config: Optional[TenantConfig]) -> None:
        ...


def assignment_message(job: Job, driver: Driver) -> str:
    who = driver.name or driver.callsign
    return (
        f"Driver Assigned. {who} ({driver.callsign}) is on the way.\n"
        f"Pickup: {job.pickup_address} at {job.pickup_time:%d %b %H:%M}"
    )


class LoggingNotifier(Notifier):
    """
    Mock sender used when no delivery channel is configured.
    """

    def notify_driver_assigned(self, job, driver, tenant_config):
        logger.info(f"[MOCK NOTIFY] Job {job.id} -> driver {driver.callsign}: {assignment_message(job, driver)}")


class WebhookNotifier(Notifier):
    """
    Webhook adapter / client

    Sole responsibility:
    - build the assignment payload
    - POST it to the configured URL
    - raise on transport or HTTP errors (requests.RequestException)
    """

    def __init__(self, url: Optional[str] = None, timeout: float = 5, session: Optional[requests.Session] = None):
        self.url = url or os.getenv("NOTIFY_WEBHOOK_URL")
        self.timeout = timeout #the time to wait for the webhook before giving up
        self.session = session or requests.Session()

        if not self.url:
            raise ValueError("Notification webhook URL not set. Please set NOTIFY_WEBHOOK_URL in the .env file.")

    def build_payload(self, job: Job, driver: Driver, tenant_config: Optional[TenantConfig]) -> Dict[str, Any]:
        return {
            "event": "driver.assigned",
            "tenant_id": job.tenant_id,
            "tenant_name": tenant_config.name if tenant_config else "",
            "job": {
                "id": job.id,
                "status": job.status.value,
                "pickup_address": job.pickup_address,
                "dropoff_address": job.dropoff_address,
                "pickup_time": job.pickup_time.isoformat(),
            },
            "driver": {
                "id": driver.id,
                "callsign": driver.callsign,
                "name": driver.name,
            },
            "message": assignment_message(job, driver),
        }

    def notify_driver_assigned(self, job, driver, tenant_config):
        response = self.session.post(
            self.url,
            json=self.build_payload(job, driver, tenant_config),
            timeout=self.timeout,
        )
        response.raise_for_status()


def notifier_from_env() -> Notifier:
    """
    WebhookNotifier when NOTIFY_WEBHOOK_URL is set, else LoggingNotifier.
    """
    url = os.getenv("NOTIFY_WEBHOOK_URL")
    if url:
        return WebhookNotifier(url=url, timeout=float(os.getenv("NOTIFY_TIMEOUT_SECONDS", "5")))
    return LoggingNotifier()
