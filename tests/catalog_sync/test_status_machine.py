"""Tests for the file and cohort status state machine."""

import itertools

import pytest

from CatalogSync.metadata.status import (
    is_legal_cohort_transition,
    is_legal_file_transition,
    next_cohort_status,
    next_file_status,
)
from CatalogSync.models import CohortStatsState, CohortStatus, IndexStatus, TaskStatus

FILE_INPUTS = list(
    itertools.product(IndexStatus, [True, False], TaskStatus, [True, False], [True, False])
)


class TestNextFileStatus:
    """Decision table for file index status."""

    @pytest.mark.parametrize("current,indexed,task,transformed,running", FILE_INPUTS)
    def test_every_decision_is_a_legal_transition(self, current, indexed, task, transformed, running):
        new = next_file_status(current, indexed, task, transformed, running)
        assert new is None or is_legal_file_transition(current, new)
        assert new != current

    @pytest.mark.parametrize("current,indexed,task,transformed,running", FILE_INPUTS)
    def test_applying_the_decision_reaches_a_fixed_point(
        self, current, indexed, task, transformed, running
    ):
        new = next_file_status(current, indexed, task, transformed, running)
        settled = new or current
        assert next_file_status(settled, indexed, task, transformed, running) is None

    def test_indexed_file_becomes_ready(self):
        assert next_file_status(IndexStatus.NONE, True, TaskStatus.READY, False, False) == IndexStatus.READY

    def test_ready_file_is_unchanged_when_indexed(self):
        assert next_file_status(IndexStatus.READY, True, TaskStatus.READY, False, False) is None

    def test_stale_ready_without_artifact_resets_to_none(self):
        assert next_file_status(IndexStatus.READY, False, TaskStatus.NONE, False, False) == IndexStatus.NONE

    def test_stale_ready_with_artifact_resets_to_transformed(self):
        assert (
            next_file_status(IndexStatus.READY, False, TaskStatus.NONE, True, False)
            == IndexStatus.TRANSFORMED
        )

    def test_running_task_marks_loading_or_indexing(self):
        assert next_file_status(IndexStatus.NONE, False, TaskStatus.RUNNING, True, False) == IndexStatus.LOADING
        assert next_file_status(IndexStatus.NONE, False, TaskStatus.RUNNING, False, False) == IndexStatus.INDEXING

    def test_failed_load_resets_without_running_job(self):
        assert (
            next_file_status(IndexStatus.LOADING, False, TaskStatus.ERROR, True, False)
            == IndexStatus.TRANSFORMED
        )

    def test_failed_load_kept_while_job_runs(self):
        assert next_file_status(IndexStatus.LOADING, False, TaskStatus.ERROR, True, True) is None

    def test_loading_without_storage_evidence_is_kept(self):
        assert next_file_status(IndexStatus.INDEXING, False, TaskStatus.NONE, False, False) is None

    def test_error_status_recovers(self):
        assert next_file_status(IndexStatus.ERROR, False, TaskStatus.NONE, False, False) == IndexStatus.NONE
        assert next_file_status(IndexStatus.ERROR, True, TaskStatus.READY, False, False) == IndexStatus.READY


MEMBERS = [frozenset({"s1", "s2"}), frozenset({"s1"})]


class TestNextCohortStatus:
    """Decision table for cohort status."""

    @pytest.mark.parametrize(
        "current,catalog_members,storage_members,stats",
        list(itertools.product(CohortStatus, MEMBERS, MEMBERS, CohortStatsState)),
    )
    def test_every_decision_is_a_legal_transition(self, current, catalog_members, storage_members, stats):
        new = next_cohort_status(current, catalog_members, storage_members, stats)
        assert new is None or is_legal_cohort_transition(current, new)

    @pytest.mark.parametrize("current", list(CohortStatus))
    def test_invalid_stats_force_invalid(self, current):
        new = next_cohort_status(current, MEMBERS[0], MEMBERS[0], CohortStatsState.INVALID)
        expected = None if current == CohortStatus.INVALID else CohortStatus.INVALID
        assert new == expected

    def test_ready_stats_promote_calculating(self):
        assert (
            next_cohort_status(CohortStatus.CALCULATING, MEMBERS[0], MEMBERS[0], CohortStatsState.READY)
            == CohortStatus.READY
        )

    def test_invalid_cohort_with_disagreeing_members_stays_invalid(self):
        assert next_cohort_status(CohortStatus.INVALID, MEMBERS[0], MEMBERS[1], CohortStatsState.READY) is None

    def test_invalid_cohort_heals_with_matching_recomputation(self):
        assert (
            next_cohort_status(CohortStatus.INVALID, MEMBERS[0], MEMBERS[0], CohortStatsState.READY)
            == CohortStatus.READY
        )

    def test_calculating_with_stale_members_falls_back_to_none(self):
        assert (
            next_cohort_status(CohortStatus.CALCULATING, MEMBERS[0], MEMBERS[1], CohortStatsState.NONE)
            == CohortStatus.NONE
        )

    def test_no_stats_keeps_status(self):
        assert next_cohort_status(CohortStatus.READY, MEMBERS[0], MEMBERS[1], CohortStatsState.NONE) is None
