"""
Metric descriptor set for the RethinkDB exporter.

Every metric the exporter can emit is declared here once, at construction
time, with its help text and ordered label names. All metrics are gauges.

The optional table row-count metric is part of the set only when row-count
collection is enabled when the set is built. Deciding this at construction
keeps the metric families advertised to the registry stable for the
lifetime of the process.

Example:
    descriptors = MetricDescriptors.build(table_rows_count=True)
    for desc in descriptors.all():
        print(desc.name, desc.labels)
"""

from collections.abc import Iterator
from dataclasses import dataclass, field

DEFAULT_NAMESPACE = "rethinkdb"

# Values of the "operation" label
READ_OPERATION = "read"
WRITTEN_OPERATION = "written"


@dataclass(frozen=True)
class MetricDescriptor:
    """
    Name, help text and ordered label names of one metric family.

    Attributes:
        name: Fully qualified metric name (namespace included).
        help: Help text exposed with the metric family.
        labels: Label names in the order label values are passed on emission.
    """

    name: str
    help: str
    labels: tuple[str, ...] = field(default_factory=tuple)


def _fq_name(namespace: str, subsystem: str, name: str) -> str:
    return "_".join(part for part in (namespace, subsystem, name) if part)


@dataclass(frozen=True)
class MetricDescriptors:
    """
    Immutable catalog of every metric family the exporter emits.

    Build with MetricDescriptors.build(); table_rows_count is None when
    row-count collection was disabled at construction.
    """

    cluster_client_connections: MetricDescriptor
    cluster_docs_per_sec: MetricDescriptor

    server_client_connections: MetricDescriptor
    server_queries_per_sec: MetricDescriptor
    server_docs_per_sec: MetricDescriptor

    table_docs_per_sec: MetricDescriptor
    table_rows_count: MetricDescriptor | None

    table_replica_docs_per_sec: MetricDescriptor
    table_replica_cache_bytes: MetricDescriptor
    table_replica_io_bytes_per_sec: MetricDescriptor
    table_replica_data_bytes: MetricDescriptor

    scrape_errors: MetricDescriptor
    scrape_duration_seconds: MetricDescriptor

    @classmethod
    def build(
        cls,
        namespace: str = DEFAULT_NAMESPACE,
        table_rows_count: bool = False,
    ) -> "MetricDescriptors":
        """
        Build the descriptor set.

        Args:
            namespace: Prefix of every metric name (default "rethinkdb").
            table_rows_count: Include the table_rows_count family.

        Returns:
            MetricDescriptors with names such as
            "rethinkdb_cluster_client_connections".
        """
        ns = namespace

        rows_count = None
        if table_rows_count:
            rows_count = MetricDescriptor(
                _fq_name(ns, "table", "rows_count"),
                "Approximate number of rows in the table",
                ("database", "table"),
            )

        return cls(
            cluster_client_connections=MetricDescriptor(
                _fq_name(ns, "cluster", "client_connections"),
                "Total number of client connections to the cluster",
            ),
            cluster_docs_per_sec=MetricDescriptor(
                _fq_name(ns, "cluster", "docs_per_sec"),
                "Total number of reads and writes of documents per second from the cluster",
                ("operation",),
            ),
            server_client_connections=MetricDescriptor(
                _fq_name(ns, "server", "client_connections"),
                "Number of client connections to the server",
                ("server",),
            ),
            server_queries_per_sec=MetricDescriptor(
                _fq_name(ns, "server", "queries_per_sec"),
                "Number of queries per second from the server",
                ("server",),
            ),
            server_docs_per_sec=MetricDescriptor(
                _fq_name(ns, "server", "docs_per_sec"),
                "Total number of reads and writes of documents per second from the server",
                ("server", "operation"),
            ),
            table_docs_per_sec=MetricDescriptor(
                _fq_name(ns, "table", "docs_per_sec"),
                "Number of reads and writes of documents per second from the table",
                ("database", "table", "operation"),
            ),
            table_rows_count=rows_count,
            table_replica_docs_per_sec=MetricDescriptor(
                _fq_name(ns, "table_replica", "docs_per_sec"),
                "Number of reads and writes of documents per second from the table replica",
                ("database", "table", "server", "operation"),
            ),
            table_replica_cache_bytes=MetricDescriptor(
                _fq_name(ns, "table_replica", "cache_bytes"),
                "Table replica cache size in bytes",
                ("database", "table", "server"),
            ),
            table_replica_io_bytes_per_sec=MetricDescriptor(
                _fq_name(ns, "table_replica", "io_bytes_per_sec"),
                "Table replica reads and writes of bytes per second",
                ("database", "table", "server", "operation"),
            ),
            table_replica_data_bytes=MetricDescriptor(
                _fq_name(ns, "table_replica", "data_bytes"),
                "Table replica size in stored bytes",
                ("database", "table", "server"),
            ),
            scrape_errors=MetricDescriptor(
                _fq_name(ns, "", "scrape_errors"),
                "Number of errors while scraping rethinkdb",
            ),
            scrape_duration_seconds=MetricDescriptor(
                _fq_name(ns, "", "scrape_duration_seconds"),
                "How long the last scrape of rethinkdb took in seconds",
            ),
        )

    def all(self) -> Iterator[MetricDescriptor]:
        """Yield every registered descriptor in declaration order."""
        for desc in (
            self.cluster_client_connections,
            self.cluster_docs_per_sec,
            self.server_client_connections,
            self.server_queries_per_sec,
            self.server_docs_per_sec,
            self.table_docs_per_sec,
            self.table_rows_count,
            self.table_replica_docs_per_sec,
            self.table_replica_cache_bytes,
            self.table_replica_io_bytes_per_sec,
            self.table_replica_data_bytes,
            self.scrape_errors,
            self.scrape_duration_seconds,
        ):
            if desc is not None:
                yield desc
