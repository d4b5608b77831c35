"""
prometheus_client collector for RethinkDB statistics.

RethinkdbCollector is registered explicitly on a CollectorRegistry by the
application. Each call to collect() runs one scrape cycle and yields its
gauge families. collect() is synchronous, as the registry expects, while
the cycle itself runs on the event loop that owns the database
connections; the collector submits the cycle to that loop and blocks until
it finishes. Call it from a thread other than the loop's own thread (the
web layer serves the telemetry path from its threadpool).

Example:
    registry = CollectorRegistry()
    collector = RethinkdbCollector(scraper, descriptors, loop=asyncio.get_running_loop())
    registry.register(collector)
    body = generate_latest(registry)  # from a worker thread
"""

import asyncio
from collections.abc import Iterator

from prometheus_client.core import GaugeMetricFamily, Metric
from prometheus_client.registry import Collector

from rethinkdb_exporter.descriptors import MetricDescriptors
from rethinkdb_exporter.scrape import ScrapeResult, Scraper
from rethinkdb_exporter.sink import MetricSink


class RethinkdbCollector(Collector):
    """
    Custom collector running one scrape cycle per collect().

    Attributes:
        scraper: Scraper running the cycles.
        descriptors: Descriptor set advertised by describe().
        loop: Event loop the cycles run on.
        last_result: Result of the most recent cycle, None before the first.
    """

    def __init__(
        self,
        scraper: Scraper,
        descriptors: MetricDescriptors,
        loop: asyncio.AbstractEventLoop,
    ) -> None:
        self.scraper = scraper
        self.descriptors = descriptors
        self.loop = loop
        self.last_result: ScrapeResult | None = None

    def describe(self) -> Iterator[Metric]:
        """Yield one empty family per descriptor, used by the registry for name checks."""
        for desc in self.descriptors.all():
            yield GaugeMetricFamily(desc.name, desc.help, labels=list(desc.labels))

    def collect(self) -> Iterator[Metric]:
        """Run one scrape cycle and yield its gauge families."""
        sink = MetricSink()
        future = asyncio.run_coroutine_threadsafe(self.scraper.scrape(sink), self.loop)
        self.last_result = future.result()
        yield from sink.families(self.descriptors)
