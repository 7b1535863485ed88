"""Unit tests for the job polling loop and retry policy."""

import unittest

from app.errors import AnalysisFailed, AnalysisTimedOut
from app.models import JobStatus, PollState
from app.polling import JobPoller, RetryPolicy
from stubs import StubAnalysisProvider, line, status


class _RecordingSleep:
    def __init__(self) -> None:
        self.delays = []

    def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class TestJobPoller(unittest.TestCase):
    def setUp(self) -> None:
        self.sleep = _RecordingSleep()
        self.policy = RetryPolicy(max_attempts=5, interval_seconds=0, sleep=self.sleep)

    def test_polls_until_success(self) -> None:
        in_progress = status(JobStatus.IN_PROGRESS)
        done = status(JobStatus.SUCCEEDED, [line("A")])
        provider = StubAnalysisProvider([in_progress, in_progress, in_progress, done])
        poller = JobPoller(provider, self.policy)

        pages = poller.poll("job-1")

        self.assertEqual(len(provider.status_calls), 4)
        self.assertEqual(len(self.sleep.delays), 3)
        self.assertEqual([block.text for block in pages[0].blocks], ["A"])
        self.assertEqual(poller.state, PollState.SUCCEEDED)

    def test_immediate_success_does_not_wait(self) -> None:
        provider = StubAnalysisProvider([status(JobStatus.SUCCEEDED, [line("A")])])

        JobPoller(provider, self.policy).poll("job-1")

        self.assertEqual(len(provider.status_calls), 1)
        self.assertEqual(self.sleep.delays, [])

    def test_partial_success_counts_as_success(self) -> None:
        provider = StubAnalysisProvider([status(JobStatus.PARTIAL_SUCCESS, [line("A")])])

        pages = JobPoller(provider, self.policy).poll("job-1")

        self.assertEqual(len(pages), 1)

    def test_times_out_after_max_attempts(self) -> None:
        provider = StubAnalysisProvider([status(JobStatus.IN_PROGRESS)])
        poller = JobPoller(provider, self.policy)

        with self.assertRaises(AnalysisTimedOut) as ctx:
            poller.poll("job-1")

        self.assertEqual(len(provider.status_calls), 5)
        self.assertEqual(ctx.exception.attempts, 5)
        self.assertEqual(ctx.exception.details["reason"], "timeout")
        self.assertEqual(poller.state, PollState.TIMED_OUT)

    def test_failure_aborts_without_further_calls(self) -> None:
        provider = StubAnalysisProvider([status(JobStatus.FAILED, message="Unsupported document")])
        poller = JobPoller(provider, self.policy)

        with self.assertRaises(AnalysisFailed) as ctx:
            poller.poll("job-1")

        self.assertEqual(len(provider.calls), 1)
        self.assertEqual(self.sleep.delays, [])
        self.assertEqual(ctx.exception.reason, "Unsupported document")
        self.assertEqual(poller.state, PollState.FAILED)

    def test_follows_continuation_tokens_in_sequence(self) -> None:
        provider = StubAnalysisProvider(
            [status(JobStatus.SUCCEEDED, [line("A"), line("B")], next_token="t1")],
            pages={
                "t1": status(JobStatus.SUCCEEDED, [line("C")], next_token="t2"),
                "t2": status(JobStatus.SUCCEEDED, [line("D")]),
            },
        )

        pages = JobPoller(provider, self.policy).poll("job-1")

        self.assertEqual([call[2] for call in provider.calls], [None, "t1", "t2"])
        self.assertEqual(
            [[block.text for block in page.blocks] for page in pages],
            [["A", "B"], ["C"], ["D"]],
        )


class TestRetryPolicy(unittest.TestCase):
    def test_delay_without_jitter_is_fixed(self) -> None:
        self.assertEqual(RetryPolicy(interval_seconds=2.0).delay(), 2.0)

    def test_jitter_stays_within_bounds(self) -> None:
        policy = RetryPolicy(interval_seconds=1.0, jitter_seconds=0.5)

        for _ in range(20):
            self.assertGreaterEqual(policy.delay(), 1.0)
            self.assertLessEqual(policy.delay(), 1.5)

    def test_wait_uses_injected_sleep(self) -> None:
        sleep = _RecordingSleep()

        RetryPolicy(interval_seconds=0.25, sleep=sleep).wait()

        self.assertEqual(sleep.delays, [0.25])

    def test_rejects_invalid_bounds(self) -> None:
        with self.assertRaises(ValueError):
            RetryPolicy(max_attempts=0)
        with self.assertRaises(ValueError):
            RetryPolicy(interval_seconds=-1)


if __name__ == "__main__":
    unittest.main()
