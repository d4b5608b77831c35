"""
Protocols for the database side of the exporter.

StatsSource is the interface the scrape cycle needs from RethinkDB: a
streaming read of the stats system table and a per-table info lookup.
RethinkClient implements it with the official driver; tests use fakes.
"""

from typing import Any, AsyncIterator, Protocol, runtime_checkable


@runtime_checkable
class StatsCursor(Protocol):
    """
    Open cursor over the rows of the stats system table.

    Iterating may raise the driver's errors; close() must be awaited on
    every exit path.
    """

    def __aiter__(self) -> AsyncIterator[dict[str, Any]]:
        ...

    async def close(self) -> None:
        ...


@runtime_checkable
class StatsSource(Protocol):
    """
    Protocol for the statistics feed of a RethinkDB cluster.

    Both calls may block on network I/O and may raise any exception on
    transport or query failure. Callers cancel them through asyncio task
    cancellation.
    """

    async def open_stats(self) -> StatsCursor:
        """Run r.db("rethinkdb").table("stats") and return the cursor."""
        ...

    async def table_info(self, database: str, table: str) -> dict[str, Any]:
        """Run r.db(database).table(table).info() and return the document."""
        ...
