from dataclasses import replace

from jobs.models import Job, JobStatus


class JobStateException(Exception):
    """Raised when an invalid job transition is attempted."""
    pass


def can_dispatch(job: Job) -> bool:
    return job.status == JobStatus.PENDING and job.is_unassigned


def transition_job_to_dispatched(job: Job, driver_id: str) -> Job:
    """
    PENDING (unassigned) -> DISPATCHED with the driver reference set.
    The only job transition this core performs.
    """
    if not can_dispatch(job):
        raise JobStateException(
            f"Cannot dispatch job {job.id}: status {job.status.value}, driver {job.driver_id}"
        )

    return replace(job, status=JobStatus.DISPATCHED, driver_id=driver_id)
