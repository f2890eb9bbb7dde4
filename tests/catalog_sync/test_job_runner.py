"""Tests for the in-process Job Runner."""

import unittest

from CatalogSync.errors import NotFoundError
from CatalogSync.orchestrator import CallableJobRunner, JobHandle, JobSpec, JobState


def _spec(*sample_ids):
    return JobSpec(study_id=1, sample_ids=tuple(sample_ids), tool="sample-index-build")


class TestCallableJobRunner(unittest.TestCase):
    def test_successful_job(self):
        runner = CallableJobRunner(lambda spec: None)
        handle = runner.submit(_spec(1, 2))

        result = runner.await_completion(handle)

        self.assertEqual(result.state, JobState.DONE)
        self.assertTrue(result.is_success())
        self.assertTrue(result.is_terminal())

    def test_exception_becomes_failed_result(self):
        def boom(spec):
            raise RuntimeError("disk full")

        runner = CallableJobRunner(boom)
        result = runner.await_completion(runner.submit(_spec(1)))

        self.assertEqual(result.state, JobState.ERROR)
        self.assertEqual(result.reason, "disk full")
        self.assertFalse(result.is_success())

    def test_job_runs_once(self):
        calls = []
        runner = CallableJobRunner(calls.append)
        handle = runner.submit(_spec(1))

        first = runner.await_completion(handle)
        second = runner.await_completion(handle)

        self.assertEqual(first, second)
        self.assertEqual(len(calls), 1)

    def test_job_ids_are_sequential(self):
        runner = CallableJobRunner(lambda spec: None, prefix="build")
        ids = [runner.submit(_spec(i)).job_id for i in range(3)]
        self.assertEqual(ids, ["build-1", "build-2", "build-3"])

    def test_unknown_handle(self):
        runner = CallableJobRunner(lambda spec: None)
        with self.assertRaises(NotFoundError):
            runner.await_completion(JobHandle(job_id="other-1", spec=_spec(1)))


if __name__ == "__main__":
    unittest.main()
