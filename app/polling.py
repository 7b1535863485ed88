"""Polling loop for asynchronous analysis jobs.

The loop is strictly sequential: one status call per attempt, then one page
fetch per continuation token, each waiting on the previous response. It
never cancels the remote job; running out of attempts only means we stop
waiting for it.
"""

import logging
import random
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Protocol

from app.errors import AnalysisFailed, AnalysisTimedOut
from app.models import JobId, JobStatus, JobStatusResponse, PollState, ResultPage

logger = logging.getLogger("medical_report.polling")


class JobStatusSource(Protocol):
    def get_job_status(self, job_id: JobId, next_token: Optional[str] = None) -> JobStatusResponse:
        ...


@dataclass
class RetryPolicy:
    """Bounded fixed-interval retry with optional jitter."""

    max_attempts: int = 30
    interval_seconds: float = 1.5
    jitter_seconds: float = 0.0
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.interval_seconds < 0 or self.jitter_seconds < 0:
            raise ValueError("interval and jitter must not be negative")

    def delay(self) -> float:
        if self.jitter_seconds:
            return self.interval_seconds + random.uniform(0, self.jitter_seconds)
        return self.interval_seconds

    def wait(self) -> None:
        self.sleep(self.delay())


class JobPoller:
    def __init__(self, provider: JobStatusSource, policy: RetryPolicy) -> None:
        self._provider = provider
        self._policy = policy
        self.state = PollState.SUBMITTED

    def poll(self, job_id: JobId) -> List[ResultPage]:
        """Block until the job is terminal and return its result pages in fetch order."""

        self.state = PollState.SUBMITTED
        for attempt in range(1, self._policy.max_attempts + 1):
            response = self._provider.get_job_status(job_id)

            if response.status.is_success:
                self.state = PollState.SUCCEEDED
                logger.info("Job %s succeeded after %s attempt(s)", job_id, attempt)
                return self._collect_pages(job_id, response)

            if response.status == JobStatus.FAILED:
                self.state = PollState.FAILED
                reason = response.status_message or "provider reported FAILED"
                logger.error("Job %s failed on attempt %s: %s", job_id, attempt, reason)
                raise AnalysisFailed(job_id, reason)

            self.state = PollState.IN_PROGRESS
            logger.debug("Job %s still in progress (attempt %s/%s)", job_id, attempt, self._policy.max_attempts)
            if attempt < self._policy.max_attempts:
                self._policy.wait()

        self.state = PollState.TIMED_OUT
        logger.error("Gave up on job %s after %s attempts", job_id, self._policy.max_attempts)
        raise AnalysisTimedOut(job_id, self._policy.max_attempts)

    def _collect_pages(self, job_id: JobId, first: JobStatusResponse) -> List[ResultPage]:
        pages = [first.to_page()]
        next_token = first.next_token
        while next_token:
            response = self._provider.get_job_status(job_id, next_token)
            pages.append(response.to_page())
            next_token = response.next_token
        logger.info("Fetched %s result page(s) for job %s", len(pages), job_id)
        return pages
