"""
Fake StatsSource and stats rows for tests.

FakeSource implements the StatsSource protocol in memory. It records the
calls it receives and can be told to fail or block at each step.
"""

import asyncio
from typing import Any


def cluster_row(
    connections: float = 3, qps: float = 40, read: float = 12.5, written: float = 4
) -> dict[str, Any]:
    return {
        "id": ["cluster"],
        "query_engine": {
            "client_connections": connections,
            "clients_active": 1,
            "queries_per_sec": qps,
            "read_docs_per_sec": read,
            "written_docs_per_sec": written,
        },
    }


def server_row(
    server: str = "srv1",
    connections: float = 2,
    qps: float = 20,
    read: float = 6,
    written: float = 1,
) -> dict[str, Any]:
    return {
        "id": ["server", f"uuid-{server}"],
        "server": server,
        "query_engine": {
            "client_connections": connections,
            "clients_active": 1,
            "queries_per_sec": qps,
            "queries_total": 1000,
            "read_docs_per_sec": read,
            "read_docs_total": 500,
            "written_docs_per_sec": written,
            "written_docs_total": 300,
        },
    }


def table_row(
    db: str = "app", table: str = "users", read: float = 3, written: float = 1
) -> dict[str, Any]:
    return {
        "id": ["table", f"uuid-{db}-{table}"],
        "db": db,
        "table": table,
        "query_engine": {
            "read_docs_per_sec": read,
            "written_docs_per_sec": written,
        },
    }


def table_server_row(
    db: str = "app",
    table: str = "users",
    server: str = "srv1",
    read: float = 2,
    written: float = 1,
    cache: float = 4096,
    disk_read: float = 100,
    disk_written: float = 50,
    data: float = 8192,
) -> dict[str, Any]:
    return {
        "id": ["table_server", f"uuid-{db}-{table}", f"uuid-{server}"],
        "db": db,
        "table": table,
        "server": server,
        "query_engine": {
            "read_docs_per_sec": read,
            "read_docs_total": 10,
            "written_docs_per_sec": written,
            "written_docs_total": 5,
        },
        "storage_engine": {
            "cache": {"in_use_bytes": cache},
            "disk": {
                "read_bytes_per_sec": disk_read,
                "read_bytes_total": 1000,
                "written_bytes_per_sec": disk_written,
                "written_bytes_total": 500,
                "space_usage": {
                    "data_bytes": data,
                    "garbage_bytes": 0,
                    "metadata_bytes": 0,
                    "preallocated_bytes": 0,
                },
            },
        },
    }


class FakeCursor:
    """
    Cursor over a list of rows.

    Raises `error` when row number `error_at` would be read.
    """

    def __init__(
        self,
        rows: list[dict[str, Any]],
        error_at: int | None = None,
        error: Exception | None = None,
        hang_at: int | None = None,
        hang_on_close: bool = False,
    ) -> None:
        self.rows = rows
        self.error_at = error_at
        self.error = error or RuntimeError("cursor broken")
        self.hang_at = hang_at
        self.hang_on_close = hang_on_close
        self.read = 0
        self.closed = False

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for index, row in enumerate(self.rows + [None]):
            if index == self.error_at:
                raise self.error
            if index == self.hang_at:
                await asyncio.Event().wait()
            if row is None:
                return
            self.read += 1
            yield row

    async def close(self) -> None:
        if self.hang_on_close:
            await asyncio.Event().wait()
        self.closed = True


class FakeSource:
    """
    In-memory StatsSource.

    Attributes:
        rows: Rows returned by the stats cursor.
        infos: table_info results keyed by (database, table).
        info_errors: Exceptions raised by table_info, keyed by (database, table).
        hang_tables: Tables whose table_info never returns.
        open_error: Exception raised by open_stats.
        hang_open: open_stats never returns.
        info_delay: Seconds each table_info call sleeps.
        cursor_hang_on_close: Cursor close() never returns.
    """

    def __init__(
        self,
        rows: list[dict[str, Any]] | None = None,
        infos: dict[tuple[str, str], dict[str, Any]] | None = None,
        info_errors: dict[tuple[str, str], Exception] | None = None,
        hang_tables: set[tuple[str, str]] | None = None,
        open_error: Exception | None = None,
        hang_open: bool = False,
        info_delay: float = 0.0,
        cursor_error_at: int | None = None,
        cursor_hang_at: int | None = None,
        cursor_hang_on_close: bool = False,
    ) -> None:
        self.rows = rows or []
        self.infos = infos or {}
        self.info_errors = info_errors or {}
        self.hang_tables = hang_tables or set()
        self.open_error = open_error
        self.hang_open = hang_open
        self.info_delay = info_delay
        self.cursor_error_at = cursor_error_at
        self.cursor_hang_at = cursor_hang_at
        self.cursor_hang_on_close = cursor_hang_on_close

        self.cursors: list[FakeCursor] = []
        self.info_calls: list[tuple[str, str]] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.closed = False

    async def open_stats(self) -> FakeCursor:
        if self.hang_open:
            await asyncio.Event().wait()
        if self.open_error is not None:
            raise self.open_error
        cursor = FakeCursor(
            list(self.rows),
            error_at=self.cursor_error_at,
            hang_at=self.cursor_hang_at,
            hang_on_close=self.cursor_hang_on_close,
        )
        self.cursors.append(cursor)
        return cursor

    async def table_info(self, database: str, table: str) -> dict[str, Any]:
        key = (database, table)
        self.info_calls.append(key)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.info_delay:
                await asyncio.sleep(self.info_delay)
            if key in self.hang_tables:
                await asyncio.Event().wait()
            if key in self.info_errors:
                raise self.info_errors[key]
            return self.infos.get(key, {"doc_count_estimates": []})
        finally:
            self.in_flight -= 1

    async def close(self) -> None:
        self.closed = True
