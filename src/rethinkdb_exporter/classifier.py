"""
Classification of stats records into gauge samples.

StatClassifier turns one raw row of the rethinkdb.stats table into the
samples meaningful for its identity kind:

- cluster: client connections, docs/sec (read, written)
- server: client connections, queries/sec, docs/sec (read, written)
- table: docs/sec (read, written), plus a row-count lookup when enabled
- table_server: docs/sec, cache bytes, disk io (read, written), data bytes

Dispatch is on element 0 of the record id only. A record is decoded in full
before anything is emitted, so a rejected record contributes no samples.
"""

from typing import Any

from rethinkdb_exporter.descriptors import READ_OPERATION, WRITTEN_OPERATION, MetricDescriptors
from rethinkdb_exporter.enrichment import TableRowsFetcher
from rethinkdb_exporter.sink import MetricSink
from rethinkdb_exporter.types import (
    ClusterStat,
    ServerStat,
    StatKind,
    TableServerStat,
    TableStat,
    decode_stat,
)


class StatClassifier:
    """
    Emits samples for stats records according to their identity kind.

    Attributes:
        descriptors: Descriptor set the samples are emitted against.

    Example:
        classifier = StatClassifier(descriptors)
        kind = classifier.process(row, sink, fetcher)
    """

    def __init__(self, descriptors: MetricDescriptors) -> None:
        self.descriptors = descriptors

    def process(
        self,
        raw: Any,
        sink: MetricSink,
        fetcher: TableRowsFetcher | None = None,
    ) -> StatKind:
        """
        Classify one raw record and emit its samples.

        Args:
            raw: Row as returned by the stats cursor.
            sink: Output stream of the current cycle.
            fetcher: Row-count fetcher of the current cycle, or None when
                row-count collection is disabled.

        Returns:
            The identity kind of the record.

        Raises:
            UnrecognizedStatError: Empty id or unknown kind.
            StatDecodeError: Record fields do not match its kind.
        """
        kind, record = decode_stat(raw)

        if kind is StatKind.CLUSTER:
            self._emit_cluster(record, sink)
        elif kind is StatKind.SERVER:
            self._emit_server(record, sink)
        elif kind is StatKind.TABLE:
            self._emit_table(record, sink, fetcher)
        elif kind is StatKind.TABLE_SERVER:
            self._emit_table_server(record, sink)
        return kind

    def _emit_cluster(self, stat: ClusterStat, sink: MetricSink) -> None:
        d = self.descriptors
        qe = stat.query_engine

        sink.emit(d.cluster_client_connections, qe.client_connections)

        sink.emit(d.cluster_docs_per_sec, qe.read_docs_per_sec, READ_OPERATION)
        sink.emit(d.cluster_docs_per_sec, qe.written_docs_per_sec, WRITTEN_OPERATION)

    def _emit_server(self, stat: ServerStat, sink: MetricSink) -> None:
        d = self.descriptors
        qe = stat.query_engine

        sink.emit(d.server_client_connections, qe.client_connections, stat.server)
        sink.emit(d.server_queries_per_sec, qe.queries_per_sec, stat.server)

        sink.emit(d.server_docs_per_sec, qe.read_docs_per_sec, stat.server, READ_OPERATION)
        sink.emit(d.server_docs_per_sec, qe.written_docs_per_sec, stat.server, WRITTEN_OPERATION)

    def _emit_table(
        self,
        stat: TableStat,
        sink: MetricSink,
        fetcher: TableRowsFetcher | None,
    ) -> None:
        d = self.descriptors
        qe = stat.query_engine

        sink.emit(d.table_docs_per_sec, qe.read_docs_per_sec, stat.database, stat.table, READ_OPERATION)
        sink.emit(
            d.table_docs_per_sec, qe.written_docs_per_sec, stat.database, stat.table, WRITTEN_OPERATION
        )

        if fetcher is not None:
            fetcher.submit(stat.database, stat.table)

    def _emit_table_server(self, stat: TableServerStat, sink: MetricSink) -> None:
        d = self.descriptors
        qe = stat.query_engine
        se = stat.storage_engine
        keys = (stat.database, stat.table, stat.server)

        sink.emit(d.table_replica_docs_per_sec, qe.read_docs_per_sec, *keys, READ_OPERATION)
        sink.emit(d.table_replica_docs_per_sec, qe.written_docs_per_sec, *keys, WRITTEN_OPERATION)

        sink.emit(d.table_replica_cache_bytes, se.cache.in_use_bytes, *keys)

        sink.emit(d.table_replica_io_bytes_per_sec, se.disk.read_bytes_per_sec, *keys, READ_OPERATION)
        sink.emit(d.table_replica_io_bytes_per_sec, se.disk.written_bytes_per_sec, *keys, WRITTEN_OPERATION)

        sink.emit(d.table_replica_data_bytes, se.disk.space_usage.data_bytes, *keys)
