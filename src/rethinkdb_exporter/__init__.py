"""
Prometheus exporter for RethinkDB statistics.

Reads the rethinkdb.stats system table on every scrape and re-exposes its
counters as labeled gauges. This package provides:

- MetricDescriptors: catalog of every metric family the exporter emits
- StatClassifier: turns stats records into samples by identity kind
- TableRowsFetcher: bounded concurrent row-count lookups per table
- Scraper: one scrape cycle with error accounting and a deadline
- RethinkdbCollector: prometheus_client collector running a cycle per collect()
- RethinkClient: StatsSource implementation on the rethinkdb driver
"""

__version__ = "0.1.0"

from rethinkdb_exporter.classifier import StatClassifier
from rethinkdb_exporter.collector import RethinkdbCollector
from rethinkdb_exporter.descriptors import (
    READ_OPERATION,
    WRITTEN_OPERATION,
    MetricDescriptor,
    MetricDescriptors,
)
from rethinkdb_exporter.enrichment import TableRowsFetcher
from rethinkdb_exporter.errors import (
    ConfigError,
    ExporterError,
    SourceUnavailableError,
    StatDecodeError,
    StatError,
    UnrecognizedStatError,
)
from rethinkdb_exporter.protocols import StatsCursor, StatsSource
from rethinkdb_exporter.scrape import ScrapeResult, Scraper, ScrapeState
from rethinkdb_exporter.sink import MetricSink, Sample
from rethinkdb_exporter.types import StatKind, TableInfo, decode_stat

__all__ = [
    "__version__",
    # Descriptors
    "MetricDescriptor",
    "MetricDescriptors",
    "READ_OPERATION",
    "WRITTEN_OPERATION",
    # Pipeline
    "StatClassifier",
    "TableRowsFetcher",
    "Scraper",
    "ScrapeResult",
    "ScrapeState",
    "MetricSink",
    "Sample",
    "RethinkdbCollector",
    # Records
    "StatKind",
    "TableInfo",
    "decode_stat",
    # Protocols
    "StatsSource",
    "StatsCursor",
    # Errors
    "ExporterError",
    "StatError",
    "UnrecognizedStatError",
    "StatDecodeError",
    "ConfigError",
    "SourceUnavailableError",
]
