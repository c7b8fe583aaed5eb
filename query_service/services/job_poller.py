"""
Job completion poller.

Observes a query job through repeated status fetches until it reaches a
terminal state or the caller's deadline elapses.
"""

import asyncio
import time
from typing import Awaitable, Callable, Optional

from ..core.exceptions import JobError, JobTimeoutError
from ..models.job import JobState, JobStatus
from ..utils.logger import get_logger
from .backoff import PollBackoff

StatusFetcher = Callable[[str], Awaitable[JobStatus]]

DEFAULT_MAX_WAIT_TIME = 300.0


class JobPoller:
    """
    Waits for query jobs to finish.

    Every wait fetches the status before its first sleep, so even an already
    finished job costs one round trip and the returned snapshot is always fresh.
    Errors raised by the status fetcher propagate unchanged; only the absence
    of a terminal state is retried.
    """

    def __init__(
        self,
        fetch_status: StatusFetcher,
        backoff: Optional[PollBackoff] = None,
        max_wait_time: float = DEFAULT_MAX_WAIT_TIME,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize the poller.

        Args:
            fetch_status: Coroutine function returning a fresh JobStatus for a job ID
            backoff: Poll interval policy
            max_wait_time: Default deadline in seconds for a single wait
            clock: Monotonic time source in seconds
        """
        self.fetch_status = fetch_status
        self.backoff = backoff or PollBackoff()
        self.max_wait_time = max_wait_time
        self.clock = clock
        self.logger = get_logger(__name__)

    async def wait(
        self,
        job_id: str,
        max_wait_time: Optional[float] = None,
        backoff: Optional[PollBackoff] = None
    ) -> JobStatus:
        """
        Wait for a job to reach a terminal state.

        Args:
            job_id: Query job ID
            max_wait_time: Deadline in seconds, defaults to the poller's
            backoff: Poll interval policy for this wait only

        Returns:
            Final job status (completed or canceled)

        Raises:
            JobError: If the job failed
            JobTimeoutError: If the deadline elapsed first
        """
        deadline = self.max_wait_time if max_wait_time is None else max_wait_time
        intervals = (backoff or self.backoff).intervals()
        started = self.clock()
        polls = 0

        while True:
            status = await self.fetch_status(job_id)
            polls += 1

            if status.is_terminal:
                if status.status == JobState.FAILED:
                    raise self._job_error(job_id, status)

                self.logger.info(f"Job {job_id} finished as {status.status.value}", extra={
                    "job_id": job_id,
                    "polls": polls,
                    "elapsed_seconds": self.clock() - started
                })
                return status

            elapsed = self.clock() - started
            if elapsed >= deadline:
                self.logger.warning(f"Job {job_id} still {status.status.value} after {elapsed:.2f}s")
                raise JobTimeoutError(
                    f"Job did not complete within {deadline} seconds",
                    job_id,
                    max_wait_time=deadline
                )

            interval = next(intervals)
            self.logger.debug(f"Job {job_id} is {status.status.value}, next poll in {interval:.2f}s", extra={
                "job_id": job_id,
                "interval_seconds": interval
            })
            await asyncio.sleep(interval)

    def _job_error(self, job_id: str, status: JobStatus) -> JobError:
        failed = status.failed_statements()
        message = next((s.error for s in failed if s.error), "Job failed")

        self.logger.error(f"Job {job_id} failed: {message}", extra={
            "job_id": job_id,
            "failed_statements": [s.id for s in failed]
        })
        return JobError(message, job_id, failed)
