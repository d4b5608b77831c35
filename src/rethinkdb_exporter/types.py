"""
Pydantic models for records read from RethinkDB.

This module provides models for:
- rows of the rethinkdb.stats system table, one model per identity kind
- the result of table.info(), used for row-count estimates

Decoding is strict: every field that feeds an emitted metric is required
and must be a non-negative number. A missing field fails validation
instead of defaulting to zero, so "counter is zero" and "counter is absent"
are never confused. Unknown fields are ignored.

Stats row shapes (from the rethinkdb.stats system table):
    {"id": ["cluster"], "query_engine": {...}}
    {"id": ["server", "<server uuid>"], "server": "srv1", "query_engine": {...}}
    {"id": ["table", "<table uuid>"], "db": "app", "table": "users", "query_engine": {...}}
    {"id": ["table_server", "<table uuid>", "<server uuid>"],
     "db": "app", "table": "users", "server": "srv1",
     "query_engine": {...}, "storage_engine": {...}}
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, NonNegativeFloat, ValidationError

from rethinkdb_exporter.errors import StatDecodeError, UnrecognizedStatError


class StatKind(str, Enum):
    """Identity kinds found in element 0 of a stats record id."""

    CLUSTER = "cluster"
    SERVER = "server"
    TABLE = "table"
    TABLE_SERVER = "table_server"


class StatIdentity(BaseModel):
    """Identity tuple of a stats record, read before the kind-specific model."""

    id: list[str]


# =============================================================================
# Query engine counters
# =============================================================================


class QueryEngineDocs(BaseModel):
    """Document throughput reported for tables and table replicas."""

    read_docs_per_sec: NonNegativeFloat
    written_docs_per_sec: NonNegativeFloat


class QueryEngineStats(QueryEngineDocs):
    """Query engine counters reported for the cluster and for each server."""

    client_connections: NonNegativeFloat
    queries_per_sec: NonNegativeFloat


# =============================================================================
# Storage engine counters (table_server records only)
# =============================================================================


class CacheStats(BaseModel):
    in_use_bytes: NonNegativeFloat


class SpaceUsage(BaseModel):
    data_bytes: NonNegativeFloat


class DiskStats(BaseModel):
    read_bytes_per_sec: NonNegativeFloat
    written_bytes_per_sec: NonNegativeFloat
    space_usage: SpaceUsage


class StorageEngineStats(BaseModel):
    cache: CacheStats
    disk: DiskStats


# =============================================================================
# Stats records
# =============================================================================


class ClusterStat(BaseModel):
    """Cluster-wide stats record."""

    id: list[str]
    query_engine: QueryEngineStats


class ServerStat(BaseModel):
    """Per-server stats record."""

    id: list[str]
    server: str
    query_engine: QueryEngineStats


class TableStat(BaseModel):
    """
    Per-table stats record.

    The feed names the database field "db"; it is exposed as `database`.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: list[str]
    database: str = Field(alias="db")
    table: str
    query_engine: QueryEngineDocs


class TableServerStat(BaseModel):
    """Stats record for one table replica on one server."""

    model_config = ConfigDict(populate_by_name=True)

    id: list[str]
    database: str = Field(alias="db")
    table: str
    server: str
    query_engine: QueryEngineDocs
    storage_engine: StorageEngineStats


StatRecord = ClusterStat | ServerStat | TableStat | TableServerStat

_MODELS: dict[StatKind, type[BaseModel]] = {
    StatKind.CLUSTER: ClusterStat,
    StatKind.SERVER: ServerStat,
    StatKind.TABLE: TableStat,
    StatKind.TABLE_SERVER: TableServerStat,
}


def identify(raw: Any) -> StatKind:
    """
    Return the identity kind of a raw stats row.

    Raises:
        StatDecodeError: If the row has no readable id list.
        UnrecognizedStatError: If the id is empty or its first element is
            not a known kind.
    """
    try:
        identity = StatIdentity.model_validate(raw)
    except ValidationError as e:
        raise StatDecodeError(None, str(e)) from e

    if not identity.id:
        raise UnrecognizedStatError(None)
    try:
        return StatKind(identity.id[0])
    except ValueError:
        raise UnrecognizedStatError(identity.id[0]) from None


def decode_stat(raw: Any) -> tuple[StatKind, StatRecord]:
    """
    Decode a raw stats row into the model of its kind.

    Args:
        raw: Mapping as returned by the database driver.

    Returns:
        Tuple of (kind, record).

    Raises:
        UnrecognizedStatError: Empty id or unknown kind.
        StatDecodeError: Missing or invalid fields for the kind.
    """
    kind = identify(raw)
    try:
        record = _MODELS[kind].model_validate(raw)
    except ValidationError as e:
        raise StatDecodeError(kind.value, str(e)) from e
    return kind, record


# =============================================================================
# Table info
# =============================================================================


class TableInfo(BaseModel):
    """
    Subset of r.db(db).table(table).info() used for row counts.

    doc_count_estimates holds one estimate per shard replica.
    """

    doc_count_estimates: list[NonNegativeFloat]

    @property
    def rows_count(self) -> float:
        """Sum of all per-shard estimates."""
        return float(sum(self.doc_count_estimates))
