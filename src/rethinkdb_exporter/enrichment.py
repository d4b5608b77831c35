"""
Row-count enrichment for table stats records.

The stats table carries no row counts. When row-count collection is
enabled, every table record of a cycle schedules one table.info() lookup
whose per-shard document estimates are summed into a table_rows_count
sample. Lookups run as asyncio tasks alongside the classification loop,
bounded by a semaphore so clusters with many tables do not open an
unbounded number of concurrent queries.

A failed lookup is logged and counted once; that table gets no row-count
sample in the cycle.
"""

import asyncio
import logging

from rethinkdb_exporter.descriptors import MetricDescriptor
from rethinkdb_exporter.protocols import StatsSource
from rethinkdb_exporter.sink import MetricSink
from rethinkdb_exporter.types import TableInfo

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENCY = 8


class TableRowsFetcher:
    """
    Schedules and supervises row-count lookups for one scrape cycle.

    Example:
        fetcher = TableRowsFetcher(source, descriptors.table_rows_count, sink)
        fetcher.submit("app", "users")
        fetcher.submit("app", "orders")
        failed = await fetcher.wait()
    """

    def __init__(
        self,
        source: StatsSource,
        descriptor: MetricDescriptor,
        sink: MetricSink,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.source = source
        self.descriptor = descriptor
        self.sink = sink
        self.max_concurrency = max_concurrency
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._tasks: list[asyncio.Task[bool]] = []

    @property
    def submitted(self) -> int:
        return len(self._tasks)

    def submit(self, database: str, table: str) -> None:
        """Schedule a lookup for one table without waiting for it."""
        task = asyncio.create_task(
            self._fetch(database, table),
            name=f"table-rows:{database}.{table}",
        )
        self._tasks.append(task)

    async def _fetch(self, database: str, table: str) -> bool:
        async with self._semaphore:
            try:
                raw = await self.source.table_info(database, table)
                info = TableInfo.model_validate(raw)
            except Exception as e:
                logger.warning(f"Failed to get table info for {database}.{table}: {e}")
                return False

        self.sink.emit(self.descriptor, info.rows_count, database, table)
        return True

    async def wait(self) -> int:
        """
        Wait for every submitted lookup.

        Returns:
            Number of lookups that failed.
        """
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        return self._tally()

    async def abort(self) -> int:
        """
        Cancel lookups still in flight and wait for them to unwind.

        Returns:
            Number of lookups that failed plus the number that were
            cancelled before completing.
        """
        for task in self._tasks:
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        return self._tally()

    def _tally(self) -> int:
        failed = 0
        for task in self._tasks:
            if task.cancelled() or task.exception() is not None or not task.result():
                failed += 1
        return failed
