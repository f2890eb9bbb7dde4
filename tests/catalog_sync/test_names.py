"""Tests for Catalog/Storage name resolution."""

import logging

import pytest

from CatalogSync.metadata.names import NameResolver, to_uri
from CatalogSync.models import TaskStatus


def test_to_uri_absolute_path():
    assert to_uri("/data/a.vcf.gz") == "file:///data/a.vcf.gz"


def test_to_uri_keeps_existing_scheme():
    assert to_uri("hdfs://nn/data/a.vcf.gz") == "hdfs://nn/data/a.vcf.gz"
    assert to_uri("file:///data/a.vcf.gz") == "file:///data/a.vcf.gz"


def test_to_uri_relative_path_is_made_absolute():
    uri = to_uri("data/a.vcf.gz")
    assert uri.startswith("file:///")
    assert uri.endswith("/data/a.vcf.gz")


class TestNameResolver:
    def test_builds_bidirectional_file_tables(self, study, storage):
        study.add_samples("s1", "s2")
        f1 = study.add_file("a.vcf", samples=["s1", "s2"], indexed=True)
        f2 = study.add_file("b.vcf")

        tables = NameResolver(storage).build(storage.get_study("study1"))

        assert tables.file_names[f1] == "a.vcf"
        assert tables.file_ids["b.vcf"] == f2
        assert tables.indexed_file_ids == (f1,)
        assert tables.uri_for(f1) == "file:///data/study1/a.vcf"
        assert tables.file_samples["a.vcf"] == frozenset({"s1", "s2"})
        assert "b.vcf" not in tables.file_samples

    def test_tables_are_read_only(self, study, storage):
        study.add_file("a.vcf", indexed=True)
        tables = NameResolver(storage).build(storage.get_study("study1"))

        with pytest.raises(TypeError):
            tables.file_ids["x"] = 1  # type: ignore[index]

    def test_null_sample_list_degrades_to_empty_set(self, study, storage, caplog):
        study.add_file("a.vcf", indexed=True, storage_sample_ids=None)

        with caplog.at_level(logging.WARNING):
            tables = NameResolver(storage).build(storage.get_study("study1"))

        assert tables.file_samples["a.vcf"] == frozenset()
        assert "a.vcf" in tables.degraded_files
        assert "null samples" in caplog.text

    def test_unresolvable_sample_id_is_skipped(self, study, storage, caplog):
        study.add_samples("s1")
        study.add_file("a.vcf", indexed=True, storage_sample_ids=(1, 99, None))

        with caplog.at_level(logging.WARNING):
            tables = NameResolver(storage).build(storage.get_study("study1"))

        assert tables.file_samples["a.vcf"] == frozenset({"s1"})
        assert "Sample id 99" in caplog.text

    def test_subset_restricts_file_tables(self, study, storage):
        study.add_file("a.vcf", indexed=True)
        study.add_file("b.vcf", indexed=True, task_status=TaskStatus.READY)

        tables = NameResolver(storage).build(storage.get_study("study1"), ["b.vcf", "missing.vcf"])

        assert set(tables.file_ids) == {"b.vcf"}
        assert tables.indexed_file_ids == (tables.file_ids["b.vcf"],)
