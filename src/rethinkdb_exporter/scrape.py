"""
One scrape cycle of the RethinkDB stats table.

A cycle moves through these states:

    START -> BASE_QUERY_OPEN -> STREAMING -> AWAITING_ENRICHMENT -> DONE

- START -> BASE_QUERY_OPEN: open the stats query. On failure the cycle
  goes straight to DONE with one error.
- BASE_QUERY_OPEN -> STREAMING: classify every row. A row the classifier
  rejects counts one error and the loop moves on; an error raised by the
  cursor itself counts one error and ends the loop.
- STREAMING -> AWAITING_ENRICHMENT: wait for every row-count lookup
  scheduled while streaming, counting each failed lookup.
- AWAITING_ENRICHMENT -> DONE: emit scrape_errors and
  scrape_duration_seconds.

The cycle runs under a deadline. When it expires the base query and the
lookups in flight are cancelled; the expiry counts one error and each
abandoned lookup one more. The cursor is closed on every path out of
STREAMING, waiting at most close_timeout for the release, and the two
meta-metrics are always the last samples emitted.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum

from rethinkdb_exporter.classifier import StatClassifier
from rethinkdb_exporter.descriptors import MetricDescriptors
from rethinkdb_exporter.enrichment import DEFAULT_MAX_CONCURRENCY, TableRowsFetcher
from rethinkdb_exporter.errors import StatError
from rethinkdb_exporter.protocols import StatsCursor, StatsSource
from rethinkdb_exporter.sink import MetricSink

logger = logging.getLogger(__name__)

DEFAULT_SCRAPE_TIMEOUT = 10.0
DEFAULT_CLOSE_TIMEOUT = 1.0


class ScrapeState(str, Enum):
    """States of one scrape cycle."""

    START = "start"
    BASE_QUERY_OPEN = "base_query_open"
    STREAMING = "streaming"
    AWAITING_ENRICHMENT = "awaiting_enrichment"
    DONE = "done"


@dataclass
class ScrapeResult:
    """
    Outcome of one scrape cycle.

    Attributes:
        errors: Value emitted as scrape_errors.
        duration_seconds: Value emitted as scrape_duration_seconds.
        records: Rows read from the stats cursor.
        timed_out: Whether the cycle deadline expired.
        state: Last state reached before DONE.
    """

    errors: int
    duration_seconds: float
    records: int = 0
    timed_out: bool = False
    state: ScrapeState = ScrapeState.START


@dataclass
class _Cycle:
    """Mutable bookkeeping of a cycle in progress."""

    sink: MetricSink
    fetcher: TableRowsFetcher | None
    state: ScrapeState = ScrapeState.START
    errors: int = 0
    records: int = 0


class Scraper:
    """
    Runs scrape cycles against a StatsSource.

    The scraper holds no state between cycles; each call to scrape() gets
    its own sink, fetcher and error count.

    Example:
        descriptors = MetricDescriptors.build(table_rows_count=True)
        scraper = Scraper(source=client, descriptors=descriptors, timeout=10.0)
        sink = MetricSink()
        result = await scraper.scrape(sink)
        print(f"{result.errors} errors in {result.duration_seconds:.3f}s")
    """

    def __init__(
        self,
        source: StatsSource,
        descriptors: MetricDescriptors,
        timeout: float | None = DEFAULT_SCRAPE_TIMEOUT,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        close_timeout: float = DEFAULT_CLOSE_TIMEOUT,
    ) -> None:
        """
        Initialize scraper.

        Args:
            source: Database collaborator providing the stats feed.
            descriptors: Descriptor set; row counts are fetched only when it
                contains table_rows_count.
            timeout: Cycle deadline in seconds, None for no deadline.
            max_concurrency: Upper bound on concurrent row-count lookups.
            close_timeout: Seconds to wait for the cursor to be released,
                including after the deadline expired.
        """
        self.source = source
        self.descriptors = descriptors
        self.timeout = timeout
        self.max_concurrency = max_concurrency
        self.close_timeout = close_timeout
        self.classifier = StatClassifier(descriptors)

    async def scrape(self, sink: MetricSink) -> ScrapeResult:
        """
        Run one cycle and emit its samples onto sink.

        Never raises for database or data errors; they are counted in
        scrape_errors instead.
        """
        start = time.monotonic()

        fetcher = None
        if self.descriptors.table_rows_count is not None:
            fetcher = TableRowsFetcher(
                self.source,
                self.descriptors.table_rows_count,
                sink,
                max_concurrency=self.max_concurrency,
            )
        cycle = _Cycle(sink=sink, fetcher=fetcher)

        timed_out = False
        try:
            await asyncio.wait_for(self._run(cycle), timeout=self.timeout)
        except asyncio.TimeoutError:
            timed_out = True
            logger.error(f"Scrape deadline of {self.timeout}s exceeded in state {cycle.state.value}")
            cycle.errors += 1
            if fetcher is not None:
                cycle.errors += await fetcher.abort()
        except Exception as e:
            # Log but don't fail the scrape
            logger.exception(f"Scrape failed in state {cycle.state.value}: {e}")
            cycle.errors += 1
            if fetcher is not None:
                cycle.errors += await fetcher.abort()

        elapsed = time.monotonic() - start
        last_state = cycle.state
        cycle.state = ScrapeState.DONE

        sink.emit(self.descriptors.scrape_errors, cycle.errors)
        sink.emit(self.descriptors.scrape_duration_seconds, elapsed)

        logger.debug(
            f"Collect finished: {cycle.records} records, {cycle.errors} errors, {elapsed:.3f}s"
        )
        return ScrapeResult(
            errors=cycle.errors,
            duration_seconds=elapsed,
            records=cycle.records,
            timed_out=timed_out,
            state=last_state,
        )

    async def _run(self, cycle: _Cycle) -> None:
        cycle.state = ScrapeState.BASE_QUERY_OPEN
        try:
            cursor = await self.source.open_stats()
        except Exception as e:
            logger.error(f"Failed to query system stats table: {e}")
            cycle.errors += 1
            return

        cycle.state = ScrapeState.STREAMING
        try:
            await self._stream(cursor, cycle)
        finally:
            await self._close(cursor)

        if cycle.fetcher is not None:
            cycle.state = ScrapeState.AWAITING_ENRICHMENT
            cycle.errors += await cycle.fetcher.wait()

    async def _stream(self, cursor: StatsCursor, cycle: _Cycle) -> None:
        rows = aiter(cursor)
        while True:
            try:
                raw = await anext(rows)
            except StopAsyncIteration:
                return
            except Exception as e:
                logger.error(f"Query error from cursor: {e}")
                cycle.errors += 1
                return

            cycle.records += 1
            try:
                self.classifier.process(raw, cycle.sink, cycle.fetcher)
            except StatError as e:
                logger.warning(f"Error while processing stat: {e}")
                cycle.errors += 1

    async def _close(self, cursor: StatsCursor) -> None:
        try:
            await asyncio.wait_for(cursor.close(), timeout=self.close_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Cursor not released within {self.close_timeout}s, abandoning it")
        except Exception as e:
            logger.warning(f"Error while closing cursor: {e}")
