"""
Relational record store.

`Database` owns the SQLAlchemy engine (and with it the connection pool) and
runs each statement in its own transaction. `RecordStore` sits on top of it
and turns a table name plus declarative filter / data mappings into
parameterised SQL, returning plain dict records.

Read paths only ever see live rows: a row is live while its `isDeleted`
column is NULL or 0. Rows are never physically deleted here; soft delete
sets `isDeleted = 1`.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from sqlalchemy import MetaData, bindparam, create_engine, inspect, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import IntegrityError
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

SOFT_DELETE_COLUMN = "isDeleted"
PRIMARY_KEY = "id"
MYSQL_DUP_ENTRY = 1062

Record = Dict[str, Any]
Filter = Union[Mapping[str, Any], Any]

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_ORDER_TERM = re.compile(r"^\s*(\S+?)(?:\s+(ASC|DESC))?\s*$", re.IGNORECASE)


class InvalidIdentifierError(ValueError):
    """A table or column name that may not be interpolated into SQL."""


def is_duplicate_key(exc: BaseException) -> bool:
    """True if `exc` is a unique / primary key violation (not e.g. a NOT NULL one)."""
    if not isinstance(exc, IntegrityError):
        return False
    orig = exc.orig
    args = getattr(orig, "args", ())
    if args and args[0] == MYSQL_DUP_ENTRY:
        return True
    message = str(orig)
    return "UNIQUE constraint failed" in message or "Duplicate entry" in message


def _is_sqlite_memory(url: str) -> bool:
    u = make_url(url)
    return u.get_backend_name() == "sqlite" and u.database in (None, "", ":memory:")


@dataclass
class QueryResult:
    rows: List[Record] = field(default_factory=list)
    rowcount: int = 0
    lastrowid: Optional[Any] = None


class Database:
    """Explicitly opened / closed handle around an SQLAlchemy engine."""

    def __init__(self, url: str, echo: bool = False, **engine_kwargs: Any):
        self.url = url
        self.echo = echo
        self._engine_kwargs = engine_kwargs
        self._engine: Optional[Engine] = None

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError("Database is not open")
        return self._engine

    def open(self) -> "Database":
        if self._engine is not None:
            return self
        kwargs = dict(self._engine_kwargs)
        if _is_sqlite_memory(self.url):
            # one shared connection, otherwise every checkout gets an empty db
            kwargs.setdefault("poolclass", StaticPool)
            kwargs.setdefault("connect_args", {"check_same_thread": False})
        else:
            kwargs.setdefault("pool_pre_ping", True)
        self._engine = create_engine(self.url, echo=self.echo, **kwargs)
        logger.info("Database opened: %s", self._engine.url.render_as_string(hide_password=True))
        return self

    def close(self) -> None:
        if self._engine is None:
            return
        self._engine.dispose()
        self._engine = None
        logger.info("Database closed")

    def __enter__(self) -> "Database":
        return self.open()

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def query(self, sql: Any, params: Optional[Mapping[str, Any]] = None) -> QueryResult:
        """Run one statement in its own transaction."""
        statement = text(sql) if isinstance(sql, str) else sql
        logger.debug("SQL %s | %s", statement, params)
        with self.engine.begin() as conn:
            result = conn.execute(statement, dict(params or {}))
            if result.returns_rows:
                return QueryResult(rows=[dict(r) for r in result.mappings().all()], rowcount=result.rowcount)
            return QueryResult(rowcount=result.rowcount, lastrowid=result.lastrowid)

    def ping(self) -> bool:
        self.query("SELECT 1")
        return True

    def quote(self, identifier: str) -> str:
        return self.engine.dialect.identifier_preparer.quote_identifier(identifier)

    def table_names(self) -> List[str]:
        return inspect(self.engine).get_table_names()


class PopulateDirective(BaseModel):
    """
    Replace the foreign key stored in `field` with the live record it points
    to in `table`, exposed under `alias` (default: `field` minus `_id`).
    """

    model_config = ConfigDict(frozen=True)

    field: str
    table: str = Field(validation_alias=AliasChoices("table", "relatedTable"))
    alias: Optional[str] = Field(default=None, validation_alias=AliasChoices("alias", "as"))

    @property
    def target(self) -> str:
        if self.alias:
            return self.alias
        if self.field.endswith("_id") and len(self.field) > 3:
            return self.field[:-3]
        return self.field


PopulateSpec = Union[PopulateDirective, Mapping[str, Any]]


def _as_filter(filter: Filter) -> Dict[str, Any]:
    # copy so the caller's mapping is never touched
    if filter is None:
        return {}
    if isinstance(filter, Mapping):
        return dict(filter)
    return {PRIMARY_KEY: filter}


def _as_directives(populate: Optional[Union[PopulateSpec, Sequence[PopulateSpec]]]) -> List[PopulateDirective]:
    if not populate:
        return []
    if isinstance(populate, (PopulateDirective, Mapping)):
        populate = [populate]
    return [p if isinstance(p, PopulateDirective) else PopulateDirective.model_validate(p) for p in populate]


class RecordStore:
    """
    Table-parametric CRUD over a `Database`.

    If `metadata` is given, table and column names must be declared in it;
    every name must in any case be a plain identifier.
    """

    def __init__(self, database: Database, metadata: Optional[MetaData] = None):
        self.db = database
        self.metadata = metadata

    # identifiers

    def _table(self, table: str) -> str:
        if not isinstance(table, str) or not _IDENTIFIER.match(table):
            raise InvalidIdentifierError(f"Invalid table name: {table!r}")
        if self.metadata is not None and table not in self.metadata.tables:
            raise InvalidIdentifierError(f"Unknown table: {table}")
        return self.db.quote(table)

    def _column(self, table: str, column: str) -> str:
        if not isinstance(column, str) or not _IDENTIFIER.match(column):
            raise InvalidIdentifierError(f"Invalid column name: {column!r}")
        if self.metadata is not None and column not in self.metadata.tables[table].c:
            raise InvalidIdentifierError(f"Unknown column: {table}.{column}")
        return self.db.quote(column)

    def _where(self, table: str, filter: Dict[str, Any], live: bool) -> Tuple[str, Dict[str, Any]]:
        clauses = []
        params: Dict[str, Any] = {}
        for i, (key, value) in enumerate(filter.items()):
            column = self._column(table, key)
            if value is None:
                clauses.append(f"{column} IS NULL")
            else:
                clauses.append(f"{column} = :w{i}")
                params[f"w{i}"] = value
        if live:
            flag = self._column(table, SOFT_DELETE_COLUMN)
            clauses.append(f"({flag} IS NULL OR {flag} = 0)")
        if not clauses:
            return "", params
        return " WHERE " + " AND ".join(clauses), params

    def _order_by(self, table: str, order_by: Optional[Union[str, Sequence[str]]]) -> str:
        if not order_by:
            return ""
        terms = order_by.split(",") if isinstance(order_by, str) else list(order_by)
        parts = []
        for term in terms:
            m = _ORDER_TERM.match(term)
            if not m:
                raise InvalidIdentifierError(f"Invalid order term: {term!r}")
            column = self._column(table, m.group(1))
            parts.append(f"{column} {(m.group(2) or 'ASC').upper()}")
        return " ORDER BY " + ", ".join(parts)

    # reads

    def fetch_many(
        self,
        table: str,
        filter: Filter = None,
        populate: Optional[Union[PopulateSpec, Sequence[PopulateSpec]]] = None,
        order_by: Optional[Union[str, Sequence[str]]] = None,
        limit: Optional[int] = None,
    ) -> List[Record]:
        quoted = self._table(table)
        directives = self._check_directives(populate)
        where, params = self._where(table, _as_filter(filter), live=True)
        sql = f"SELECT * FROM {quoted}{where}{self._order_by(table, order_by)}"
        if limit is not None:
            if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
                raise ValueError(f"limit must be a positive integer, got {limit!r}")
            sql += " LIMIT :limit"
            params["limit"] = limit
        rows = self.db.query(sql, params).rows
        for row in rows:
            self._populate(row, directives)
        return rows

    def fetch_one(
        self,
        table: str,
        filter: Filter,
        populate: Optional[Union[PopulateSpec, Sequence[PopulateSpec]]] = None,
    ) -> Optional[Record]:
        quoted = self._table(table)
        directives = self._check_directives(populate)
        where, params = self._where(table, _as_filter(filter), live=True)
        rows = self.db.query(f"SELECT * FROM {quoted}{where} LIMIT 1", params).rows
        if not rows:
            return None
        record = rows[0]
        self._populate(record, directives)
        return record

    def count(self, table: str, filter: Filter = None) -> int:
        quoted = self._table(table)
        where, params = self._where(table, _as_filter(filter), live=True)
        rows = self.db.query(f"SELECT COUNT(*) AS n FROM {quoted}{where}", params).rows
        return int(rows[0]["n"])

    def _check_directives(self, populate: Any) -> List[PopulateDirective]:
        directives = _as_directives(populate)
        for d in directives:
            self._table(d.table)
        return directives

    def _populate(self, record: Record, directives: List[PopulateDirective]) -> None:
        # one level only: the related record is fetched without populate
        for d in directives:
            value = record.get(d.field)
            if value is None:
                continue
            related = self.fetch_one(d.table, {PRIMARY_KEY: value})
            del record[d.field]
            record[d.target] = related

    # writes

    def create(self, table: str, data: Mapping[str, Any]) -> Any:
        """Insert one row; returns the store-assigned row id (meaningless for caller-supplied keys)."""
        if not data:
            raise ValueError(f"Cannot insert an empty row into {table}")
        quoted = self._table(table)
        columns = []
        params: Dict[str, Any] = {}
        for i, (key, value) in enumerate(data.items()):
            columns.append(self._column(table, key))
            params[f"v{i}"] = value
        placeholders = ", ".join(f":v{i}" for i in range(len(columns)))
        sql = f"INSERT INTO {quoted} ({', '.join(columns)}) VALUES ({placeholders})"
        return self.db.query(sql, params).lastrowid

    def update(self, table: str, filter: Filter, data: Mapping[str, Any]) -> bool:
        """Update every matching row, deleted or not. False if nothing matched."""
        return self._update(table, filter, data, live=False)

    def update_live(self, table: str, filter: Filter, data: Mapping[str, Any]) -> bool:
        """Like `update`, but soft-deleted rows never match."""
        return self._update(table, filter, data, live=True)

    def _update(self, table: str, filter: Filter, data: Mapping[str, Any], live: bool) -> bool:
        if not data:
            raise ValueError(f"Nothing to update in {table}")
        conditions = _as_filter(filter)
        if not conditions:
            raise ValueError(f"Refusing to update {table} without a filter")
        quoted = self._table(table)
        assignments = []
        params: Dict[str, Any] = {}
        for i, (key, value) in enumerate(data.items()):
            assignments.append(f"{self._column(table, key)} = :s{i}")
            params[f"s{i}"] = value
        where, where_params = self._where(table, conditions, live=live)
        params.update(where_params)
        sql = f"UPDATE {quoted} SET {', '.join(assignments)}{where}"
        return self.db.query(sql, params).rowcount > 0

    def soft_delete_one(self, table: str, id_or_filter: Filter) -> bool:
        return self.update(table, id_or_filter, {SOFT_DELETE_COLUMN: 1})

    def soft_delete_many(self, table: str, ids: Iterable[Any]) -> bool:
        if isinstance(ids, (str, bytes)) or not isinstance(ids, Iterable):
            raise TypeError(f"ids must be a collection of ids, got {type(ids).__name__}")
        ids = list(ids)
        if not ids:
            return False
        quoted = self._table(table)
        flag = self._column(table, SOFT_DELETE_COLUMN)
        pk = self._column(table, PRIMARY_KEY)
        statement = text(f"UPDATE {quoted} SET {flag} = 1 WHERE {pk} IN :ids").bindparams(
            bindparam("ids", expanding=True)
        )
        return self.db.query(statement, {"ids": ids}).rowcount > 0
