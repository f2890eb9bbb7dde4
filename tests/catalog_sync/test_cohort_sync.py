"""Tests for the cohort sweep of the synchronizer."""

from __future__ import annotations

import pytest

from CatalogSync.metadata.synchronizer import CatalogStorageSynchronizer
from CatalogSync.models import CohortStatus, TaskStatus


@pytest.fixture
def synchronizer(catalog, storage, config):
    return CatalogStorageSynchronizer(catalog, storage, config)


@pytest.fixture
def samples(study):
    return study.add_samples("s1", "s2", "s3")


class TestDefaultCohort:
    def test_membership_follows_storage(self, study, samples, synchronizer):
        study.add_cohort("ALL", storage_samples=["s1", "s2", "s3"], catalog_samples=["s1"])

        report = synchronizer.synchronize("study1")

        assert set(study.cohort("ALL").sample_ids) == {"s1", "s2", "s3"}
        assert study.cohort("ALL").status == CohortStatus.NONE
        assert report.cohort_members_updated == 1

    def test_ready_stats_promote_cohort(self, study, samples, synchronizer):
        study.add_cohort(
            "ALL",
            storage_samples=["s1", "s2"],
            catalog_samples=["s1"],
            stats_status=TaskStatus.READY,
        )

        synchronizer.synchronize("study1")

        assert study.cohort("ALL").status == CohortStatus.READY
        assert set(study.cohort("ALL").sample_ids) == {"s1", "s2"}

    @pytest.mark.parametrize(
        "stats_status,invalid,expected",
        [
            (TaskStatus.READY, False, CohortStatus.READY),
            (TaskStatus.READY, True, CohortStatus.INVALID),
            (TaskStatus.NONE, False, CohortStatus.NONE),
        ],
    )
    def test_calculating_cohort_is_resolved(
        self, study, samples, synchronizer, stats_status, invalid, expected
    ):
        study.add_cohort(
            "ALL",
            storage_samples=["s1", "s2"],
            catalog_samples=["s1"],
            catalog_status=CohortStatus.CALCULATING,
            stats_status=stats_status,
            invalid=invalid,
        )

        synchronizer.synchronize("study1")

        assert study.cohort("ALL").status == expected

    def test_invalid_cohort_with_disagreeing_members_stays_invalid(self, study, samples, catalog, synchronizer):
        study.add_cohort(
            "ALL",
            storage_samples=["s1", "s2", "s3"],
            catalog_samples=["s1"],
            catalog_status=CohortStatus.INVALID,
            stats_status=TaskStatus.READY,
        )

        first = synchronizer.synchronize("study1")
        second = synchronizer.synchronize("study1")

        assert study.cohort("ALL").status == CohortStatus.INVALID
        assert study.cohort("ALL").sample_ids == ("s1",)
        assert first.modified is False
        assert second.modified is False
        assert catalog.history == []

    def test_invalid_cohort_heals_when_members_match(self, study, samples, synchronizer):
        study.add_cohort(
            "ALL",
            storage_samples=["s1", "s2"],
            catalog_samples=["s2", "s1"],
            catalog_status=CohortStatus.INVALID,
            stats_status=TaskStatus.READY,
        )

        synchronizer.synchronize("study1")

        assert study.cohort("ALL").status == CohortStatus.READY

    def test_missing_in_catalog_is_tolerated(self, study, samples, synchronizer):
        study.add_cohort("ALL", storage_samples=["s1"])

        report = synchronizer.synchronize("study1")

        assert report.modified is False

    def test_missing_in_storage_is_a_no_op(self, study, samples, catalog, synchronizer):
        study.add_cohort("ALL", catalog_samples=["s1"])

        report = synchronizer.synchronize("study1")

        assert report.modified is False
        assert study.cohort("ALL").sample_ids == ("s1",)

    def test_cohort_sweep_can_be_skipped(self, study, samples, synchronizer):
        study.add_cohort("ALL", storage_samples=["s1", "s2"], catalog_samples=["s1"])

        synchronizer.synchronize("study1", sync_cohorts=False)

        assert study.cohort("ALL").sample_ids == ("s1",)


class TestCohortsWithStats:
    def test_calculated_cohort_becomes_ready(self, study, samples, synchronizer):
        study.add_cohort(
            "c1",
            storage_samples=["s1", "s2"],
            catalog_samples=["s1", "s2"],
            catalog_status=CohortStatus.CALCULATING,
            stats_status=TaskStatus.READY,
        )

        report = synchronizer.synchronize_cohorts("study1")

        assert study.cohort("c1").status == CohortStatus.READY
        assert report.cohorts_updated == 1

    def test_invalidated_cohort_becomes_invalid(self, study, samples, synchronizer):
        study.add_cohort(
            "c1",
            storage_samples=["s1"],
            catalog_samples=["s1"],
            catalog_status=CohortStatus.READY,
            stats_status=TaskStatus.READY,
            invalid=True,
        )

        synchronizer.synchronize("study1")

        assert study.cohort("c1").status == CohortStatus.INVALID

    def test_invalid_cohort_is_not_auto_healed(self, study, samples, synchronizer):
        study.add_cohort(
            "c1",
            storage_samples=["s1", "s2"],
            catalog_samples=["s1", "s3"],
            catalog_status=CohortStatus.INVALID,
            stats_status=TaskStatus.READY,
        )

        report = synchronizer.synchronize("study1")

        assert study.cohort("c1").status == CohortStatus.INVALID
        assert report.modified is False

    def test_membership_of_other_cohorts_is_never_rewritten(self, study, samples, synchronizer):
        study.add_cohort(
            "c1",
            storage_samples=["s1", "s2"],
            catalog_samples=["s3"],
            stats_status=TaskStatus.READY,
        )

        synchronizer.synchronize("study1")

        assert study.cohort("c1").sample_ids == ("s3",)

    def test_cohort_sweep_is_idempotent(self, study, samples, synchronizer):
        study.add_cohort(
            "ALL",
            storage_samples=["s1", "s2", "s3"],
            catalog_samples=["s1"],
            stats_status=TaskStatus.READY,
        )
        study.add_cohort(
            "c1",
            storage_samples=["s1"],
            catalog_samples=["s1"],
            catalog_status=CohortStatus.READY,
            invalid=True,
        )
        synchronizer.synchronize("study1")

        assert synchronizer.synchronize("study1").modified is False
