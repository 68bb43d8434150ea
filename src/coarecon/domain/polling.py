"""Bounded polling of long-running jobs by job ID."""

import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from coarecon.domain.entities import JobState, JobStatus
from coarecon.domain.errors import ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """How often and how long to poll before giving up.

    The defaults poll every 5 seconds for at most 60 attempts (about five
    minutes).
    """

    interval_seconds: float = 5.0
    max_attempts: int = 60

    def __post_init__(self):
        if self.interval_seconds < 0:
            raise ValidationError("Polling interval must not be negative")
        if self.max_attempts < 1:
            raise ValidationError("Polling needs at least one attempt")


class PollResult(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"
    NOT_STARTED = "not_started"


@dataclass(frozen=True)
class PollOutcome:
    result: PollResult
    attempts: int
    status: Optional[JobStatus]


class JobStatusPoller:
    """Polls a status source until the job finishes, the policy runs out or
    the caller cancels.

    A job still processing after the last attempt is reported as
    ``TIMED_OUT``, never as a failure. A job that was staged but never
    imported is reported as ``NOT_STARTED`` on the first attempt.
    """

    def __init__(
        self,
        fetch_status: Callable[[str], JobStatus],
        policy: Optional[RetryPolicy] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        self.fetch_status = fetch_status
        self.policy = policy or RetryPolicy()
        self._cancelled = threading.Event()
        self._sleep = sleep or self._wait

    def _wait(self, seconds: float) -> None:
        # Event.wait returns early when cancel() is called
        self._cancelled.wait(seconds)

    def cancel(self) -> None:
        """Stop polling before the next attempt."""
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def poll(self, job_id: str) -> PollOutcome:
        status: Optional[JobStatus] = None
        for attempt in range(1, self.policy.max_attempts + 1):
            if self.cancelled:
                return PollOutcome(PollResult.CANCELLED, attempt - 1, status)

            status = self.fetch_status(job_id)
            if status.status in (JobState.COMPLETED, JobState.COMPLETED_WITH_ERRORS):
                return PollOutcome(PollResult.COMPLETED, attempt, status)
            if status.status in (JobState.FAILED, JobState.EXPIRED):
                return PollOutcome(PollResult.FAILED, attempt, status)
            if status.status is JobState.STAGED:
                return PollOutcome(PollResult.NOT_STARTED, attempt, status)

            logger.debug(
                "Job %s still %s (attempt %d/%d)",
                job_id,
                status.status.value,
                attempt,
                self.policy.max_attempts,
            )
            if attempt < self.policy.max_attempts:
                self._sleep(self.policy.interval_seconds)

        logger.warning("Gave up polling job %s after %d attempts", job_id, self.policy.max_attempts)
        return PollOutcome(PollResult.TIMED_OUT, self.policy.max_attempts, status)


def wait_for_job(
    fetch_status: Callable[[str], JobStatus],
    job_id: str,
    policy: Optional[RetryPolicy] = None,
) -> PollOutcome:
    """Poll a job with real sleeps until it finishes or the policy runs out."""
    return JobStatusPoller(fetch_status, policy=policy, sleep=time.sleep).poll(job_id)
