"""
Tests for the metric descriptor set.

Tests cover:
- every metric family name and label set
- table_rows_count present only when enabled at construction
- custom namespace
- immutability
"""

import dataclasses

import pytest

from rethinkdb_exporter.descriptors import MetricDescriptor, MetricDescriptors


EXPECTED = {
    "rethinkdb_cluster_client_connections": (),
    "rethinkdb_cluster_docs_per_sec": ("operation",),
    "rethinkdb_server_client_connections": ("server",),
    "rethinkdb_server_queries_per_sec": ("server",),
    "rethinkdb_server_docs_per_sec": ("server", "operation"),
    "rethinkdb_table_docs_per_sec": ("database", "table", "operation"),
    "rethinkdb_table_replica_docs_per_sec": ("database", "table", "server", "operation"),
    "rethinkdb_table_replica_cache_bytes": ("database", "table", "server"),
    "rethinkdb_table_replica_io_bytes_per_sec": ("database", "table", "server", "operation"),
    "rethinkdb_table_replica_data_bytes": ("database", "table", "server"),
    "rethinkdb_scrape_errors": (),
    "rethinkdb_scrape_duration_seconds": (),
}


class TestMetricDescriptors:
    def test_default_set_names_and_labels(self):
        """Default set has every family except table_rows_count."""
        descriptors = MetricDescriptors.build()

        got = {d.name: d.labels for d in descriptors.all()}

        assert got == EXPECTED

    def test_table_rows_count_absent_by_default(self):
        descriptors = MetricDescriptors.build()

        assert descriptors.table_rows_count is None
        assert "rethinkdb_table_rows_count" not in {d.name for d in descriptors.all()}

    def test_table_rows_count_present_when_enabled(self):
        descriptors = MetricDescriptors.build(table_rows_count=True)

        assert descriptors.table_rows_count is not None
        assert descriptors.table_rows_count.name == "rethinkdb_table_rows_count"
        assert descriptors.table_rows_count.labels == ("database", "table")
        assert len(list(descriptors.all())) == len(EXPECTED) + 1

    def test_meta_metrics_are_last(self):
        """all() ends with the two meta-metrics."""
        names = [d.name for d in MetricDescriptors.build(table_rows_count=True).all()]

        assert names[-2:] == ["rethinkdb_scrape_errors", "rethinkdb_scrape_duration_seconds"]

    def test_custom_namespace(self):
        descriptors = MetricDescriptors.build(namespace="rdb")

        assert descriptors.cluster_client_connections.name == "rdb_cluster_client_connections"
        assert descriptors.scrape_errors.name == "rdb_scrape_errors"

    def test_every_descriptor_has_help(self):
        for desc in MetricDescriptors.build(table_rows_count=True).all():
            assert desc.help

    def test_build_is_deterministic(self):
        """Two builds with the same arguments produce equal sets."""
        assert MetricDescriptors.build(table_rows_count=True) == MetricDescriptors.build(
            table_rows_count=True
        )

    def test_descriptors_are_frozen(self):
        descriptors = MetricDescriptors.build()

        with pytest.raises(dataclasses.FrozenInstanceError):
            descriptors.table_rows_count = MetricDescriptor("x", "y")  # type: ignore[misc]
        with pytest.raises(dataclasses.FrozenInstanceError):
            descriptors.scrape_errors.name = "other"  # type: ignore[misc]
