"""
RethinkDB implementation of the StatsSource protocol.

RethinkClient wraps a small pool of connections made with the official
rethinkdb driver in asyncio mode. Queries are spread round-robin over the
pool; a connection found closed is reconnected before use so a restarted
server is picked up on the next scrape.

Connections must be created on the event loop that later runs the
queries. Use connect_rethinkdb() from inside that loop.

Example:
    client = await connect_rethinkdb(["db1:28015", "db2:28015"], username="admin")
    cursor = await client.open_stats()
    try:
        async for row in cursor:
            print(row["id"])
    finally:
        await cursor.close()
    await client.close()
"""

import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, AsyncIterator

from rethinkdb import RethinkDB

from rethinkdb_exporter.errors import SourceUnavailableError
from rethinkdb_exporter.protocols import StatsCursor

logger = logging.getLogger(__name__)

r = RethinkDB()
r.set_loop_type("asyncio")

SYSTEM_DATABASE = "rethinkdb"
STATS_TABLE = "stats"
DEFAULT_PORT = 28015


def parse_address(address: str, default_port: int = DEFAULT_PORT) -> tuple[str, int]:
    """
    Split "host:port" into host and port.

    Accepts bare hosts and bracketed IPv6 literals ("[::1]:28015").

    Raises:
        ValueError: If the host is empty or the port is not an integer in
            1-65535.
    """
    address = address.strip()
    if address.startswith("["):
        host, _, rest = address[1:].partition("]")
        port = rest.lstrip(":")
    elif address.count(":") == 1:
        host, _, port = address.partition(":")
    else:
        host, port = address, ""

    if not host:
        raise ValueError(f"missing host in address {address!r}")
    number = int(port) if port else default_port
    if not 0 < number <= 65535:
        raise ValueError(f"port out of range in address {address!r}")
    return host, number


class _DriverCursor:
    """
    Adapts a driver cursor to StatsCursor.

    The driver's close() returns an awaitable only while the connection is
    open, so it is awaited when there is something to await.
    """

    def __init__(self, cursor: Any) -> None:
        self._cursor = cursor

    def __aiter__(self) -> AsyncIterator[dict[str, Any]]:
        return self._cursor.__aiter__()

    async def close(self) -> None:
        result = self._cursor.close()
        if inspect.isawaitable(result):
            await result


@dataclass
class RethinkClient:
    """
    StatsSource backed by rethinkdb driver connections.

    Attributes:
        connections: Open driver connections, used round-robin.
    """

    connections: list[Any]
    _next: int = field(default=0, init=False, repr=False)

    async def _connection(self) -> Any:
        conn = self.connections[self._next % len(self.connections)]
        self._next += 1
        if not conn.is_open():
            logger.info(f"Reconnecting to rethinkdb at {conn.host}:{conn.port}")
            await conn.reconnect(noreply_wait=False)
        return conn

    async def open_stats(self) -> StatsCursor:
        """
        Query the stats system table.

        Raises:
            rethinkdb.errors.ReqlError: On driver or query errors.
        """
        conn = await self._connection()
        cursor = await r.db(SYSTEM_DATABASE).table(STATS_TABLE).run(conn)
        return _DriverCursor(cursor)

    async def table_info(self, database: str, table: str) -> dict[str, Any]:
        """
        Get table info, including doc_count_estimates.

        Raises:
            rethinkdb.errors.ReqlError: On driver or query errors.
        """
        conn = await self._connection()
        return await r.db(database).table(table).info().run(conn)

    async def close(self) -> None:
        """Close every open connection."""
        for conn in self.connections:
            if conn.is_open():
                try:
                    await conn.close(noreply_wait=False)
                except Exception as e:
                    logger.warning(f"Error while closing rethinkdb connection: {e}")


async def connect_rethinkdb(
    addresses: list[str],
    username: str = "admin",
    password: str = "",
    ca_file: str | None = None,
    pool_size: int = 5,
    timeout: float = 20.0,
) -> RethinkClient:
    """
    Open a pool of connections to a RethinkDB cluster.

    Each pool slot tries the addresses in order, starting at a different
    offset per slot so connections are spread across the given nodes.

    Args:
        addresses: "host:port" addresses of one or more cluster nodes.
        username: RethinkDB user.
        password: Password of the user.
        ca_file: CA certificate file; enables TLS when set.
        pool_size: Number of connections to open.
        timeout: Connect timeout in seconds per attempt.

    Returns:
        RethinkClient owning the opened connections.

    Raises:
        SourceUnavailableError: If a pool slot could not connect to any
            address.
        ValueError: If addresses is empty or pool_size is below 1.
    """
    if not addresses:
        raise ValueError("at least one rethinkdb address is required")
    if pool_size < 1:
        raise ValueError("pool_size must be at least 1")

    ssl = {"ca_certs": ca_file} if ca_file else {}
    connections = []
    for slot in range(pool_size):
        ordered = addresses[slot % len(addresses):] + addresses[: slot % len(addresses)]
        last_error: Exception | None = None
        for address in ordered:
            host, port = parse_address(address)
            try:
                conn = await r.connect(
                    host=host,
                    port=port,
                    user=username,
                    password=password,
                    timeout=timeout,
                    ssl=ssl,
                )
            except Exception as e:
                logger.warning(f"Failed to connect to rethinkdb at {address}: {e}")
                last_error = e
                continue
            connections.append(conn)
            break
        else:
            for conn in connections:
                await conn.close(noreply_wait=False)
            raise SourceUnavailableError(addresses, last_error)

    logger.info(f"Connected to rethinkdb with {len(connections)} connection(s)")
    return RethinkClient(connections=connections)
