"""SQLite access layer: record CRUD, filter queries and transactions.

Records are plain dicts. Ids and foreign keys are exposed as strings even
though SQLite stores them as INTEGER, JSON columns are decoded, and 0/1 flag
columns come back as bools.

Failures are reported as:

- ``KeyError`` when a record id does not exist
- ``ValueError`` for an empty update payload, and from ``parse_filter`` for malformed filters
- ``RuntimeError`` for everything the driver raises
"""

import asyncio
import contextvars
import json
import logging
import re
import threading
import weakref
from collections.abc import AsyncIterator, Iterator, Sequence
from contextlib import asynccontextmanager, contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any

import aiosqlite

from typeb.core.config import settings
from typeb.core.date_utils import to_iso


logger = logging.getLogger(__name__)

FilterValue = str | int | float | bool | None

# Columns stored as JSON text
JSON_FIELDS = {"task_categories", "role_config", "category", "recurrence_pattern", "metadata", "data"}

# Columns stored as INTEGER 0/1
BOOL_FIELDS = {"is_premium", "notifications_enabled", "requires_photo", "is_recurring", "reminder_enabled", "read"}

# Integer columns that look like references by name but are counters
_COUNTER_FIELDS = {
    "points",
    "points_awarded",
    "point_cost",
    "total_points_earned",
    "tasks_completed",
    "escalation_level",
    "max_members",
    "session_version",
}

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_COMPARISON = re.compile(r"""^(\w+)\s*(!=|>=|<=|=|>|<|~)\s*(['"])([^'"]*)\3$""")
_SQL_OPERATORS = {"=": "=", "!=": "!=", ">": ">", "<": "<", ">=": ">=", "<=": "<=", "~": "LIKE"}


def _is_reference(field: str) -> bool:
    return field not in _COUNTER_FIELDS and (field == "id" or field.endswith(("_id", "_by", "_to")))


def _require_identifier(collection: str) -> None:
    if not _IDENTIFIER.match(collection):
        raise ValueError(
            f"Invalid collection name: {collection}. Only alphanumeric characters and underscores are allowed."
        )


def _primary_key(collection: str, record_id: str) -> int:
    """Parse an external id; ids that are not integers cannot exist."""
    try:
        return int(record_id)
    except (TypeError, ValueError):
        raise KeyError(f"Record not found in {collection}: {record_id}") from None


def sanitize_param(value: FilterValue) -> str:
    """Escape a value for embedding between double quotes in a filter string."""
    return json.dumps(str(value))[1:-1]


def _from_row(cursor: aiosqlite.Cursor, row: Sequence[Any]) -> dict[str, Any]:
    """Turn a result row into a record with public id, JSON and bool types."""
    columns = [description[0] for description in cursor.description]
    record: dict[str, Any] = {}
    for field, value in zip(columns, row, strict=True):
        if value is None:
            record[field] = None
        elif field in JSON_FIELDS and isinstance(value, str):
            try:
                record[field] = json.loads(value)
            except json.JSONDecodeError:
                logger.warning("json_decode_failed", extra={"field": field})
                record[field] = value
        elif field in BOOL_FIELDS:
            record[field] = bool(value)
        elif isinstance(value, int) and _is_reference(field):
            record[field] = str(value)
        else:
            record[field] = value
    return record


def _to_column(value: Any) -> Any:  # noqa: ANN401
    """Convert a Python value into what the column stores."""
    if isinstance(value, datetime):
        return to_iso(value)
    if isinstance(value, dict | list):
        return json.dumps(value)
    return value


def get_db_path(db_path: str | None = None) -> Path:
    """Resolve the database file, defaulting to ``settings.sqlite_db_path``."""
    return Path(db_path or settings.sqlite_db_path).resolve()


def _typed(raw: str, *, contains: bool) -> FilterValue:
    """Type a quoted filter value the way the column stores it."""
    if contains:
        return "%" + raw.replace("%", "\\%").replace("_", "\\_") + "%"
    if raw.isdigit():
        return int(raw)
    if raw.replace(".", "", 1).isdigit():
        return float(raw)
    if raw.lower() in ("true", "false"):
        return raw.lower() == "true"
    return raw


def _comparison(expression: str) -> tuple[str, FilterValue]:
    match = _COMPARISON.match(expression.strip())
    if not match:
        raise ValueError(f"Invalid filter syntax: {expression}")

    field, operator, _quote, raw = match.groups()
    sql_operator = _SQL_OPERATORS[operator]
    if sql_operator == "LIKE":
        return f"{field} LIKE ? ESCAPE '\\'", _typed(raw, contains=True)
    return f"{field} {sql_operator} ?", _typed(raw, contains=False)


def _top_level_terms(filter_query: str) -> list[str]:
    """Split on ``&&`` outside parentheses."""
    terms: list[str] = []
    depth = 0
    start = 0
    i = 0
    while i < len(filter_query):
        char = filter_query[i]
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        elif depth == 0 and filter_query.startswith("&&", i):
            terms.append(filter_query[start:i].strip())
            start = i + 2
            i += 1
        i += 1
    if filter_query[start:].strip():
        terms.append(filter_query[start:].strip())
    return terms


def parse_filter(filter_query: str) -> tuple[str, list[FilterValue]]:
    """Translate a filter string into a WHERE clause and its parameters.

    Filters are ``&&``-joined comparisons of the form ``field <op> "value"``,
    where one level of ``( ... || ... )`` grouping is allowed, e.g.::

        family_id = "3" && (status = "pending" || status = "in_progress")

    Operators are ``= != > < >= <=`` and ``~`` (case-insensitive contains).
    Digit-only values are bound as integers and ``true``/``false`` as booleans.

    Raises:
        ValueError: If any comparison is malformed
    """
    if not filter_query:
        return "", []

    conditions: list[str] = []
    params: list[FilterValue] = []
    for term in _top_level_terms(filter_query):
        if term.startswith("(") and term.endswith(")"):
            alternatives = [_comparison(part) for part in term[1:-1].split("||")]
            conditions.append("(" + " OR ".join(cond for cond, _ in alternatives) + ")")
            params.extend(value for _, value in alternatives)
        else:
            condition, value = _comparison(term)
            conditions.append(condition)
            params.append(value)

    return " AND ".join(conditions), params


def _order_by(sort: str) -> str:
    """Translate ``field,-other`` into ORDER BY, falling back to id order on bad input."""
    if not sort:
        return "id ASC"

    clauses = []
    for item in (part.strip() for part in sort.split(",")):
        field = item.lstrip("+-")
        if not _IDENTIFIER.match(field):
            logger.warning("invalid_sort_ignored", extra={"sort": sort})
            return "id ASC"
        clauses.append(f"{field} {'DESC' if item.startswith('-') else 'ASC'}")
    return ", ".join(clauses)


_db_connections: dict[tuple[int, int, str], aiosqlite.Connection] = {}
_db_lock = asyncio.Lock()

# Held by every writer; a transaction holds it for its whole block. One per event loop,
# like the connections it guards.
_write_locks: weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, asyncio.Lock] = weakref.WeakKeyDictionary()
_in_transaction: contextvars.ContextVar[bool] = contextvars.ContextVar("in_transaction", default=False)


def _write_lock() -> asyncio.Lock:
    return _write_locks.setdefault(asyncio.get_running_loop(), asyncio.Lock())


def _connection_key(db_path: str | None) -> tuple[int, int, str]:
    """Connections are cached per thread, event loop and file."""
    return (threading.get_ident(), id(asyncio.get_running_loop()), str(get_db_path(db_path)))


async def get_connection(*, db_path: str | None = None) -> aiosqlite.Connection:
    """Return the cached connection, opening it with foreign keys and WAL enabled."""
    key = _connection_key(db_path)
    if key in _db_connections:
        return _db_connections[key]

    async with _db_lock:
        if key in _db_connections:
            return _db_connections[key]

        path = Path(key[2])
        path.parent.mkdir(parents=True, exist_ok=True)
        conn = await aiosqlite.connect(str(path))
        await conn.execute("PRAGMA foreign_keys = ON")
        await conn.execute("PRAGMA journal_mode = WAL")
        _db_connections[key] = conn

        logger.info("sqlite_connection_opened", extra={"db_path": str(path)})
        return conn


async def close_connection(*, db_path: str | None = None) -> None:
    key = _connection_key(db_path)
    async with _db_lock:
        conn = _db_connections.pop(key, None)
        if conn is None:
            return
        try:
            await conn.close()
            logger.info("sqlite_connection_closed", extra={"db_path": key[2]})
        except aiosqlite.Error as e:
            logger.warning("sqlite_connection_close_failed", extra={"db_path": key[2], "error": str(e)})


async def init_db(*, db_path: str | None = None) -> None:
    """Create tables and indexes (see ``typeb.core.schema``)."""
    from typeb.core import schema

    await schema.init_db(db_path=db_path)


@asynccontextmanager
async def transaction() -> AsyncIterator[None]:
    """Run the enclosed db_client calls atomically.

    Writes in the block are committed together, or all rolled back if the
    block raises. A nested block joins the outer one.

    Usage:
        async with db_client.transaction():
            await db_client.update_record(...)
            await db_client.create_record(...)
    """
    if _in_transaction.get():
        yield
        return

    async with _write_lock():
        conn = await get_connection()
        await conn.execute("BEGIN IMMEDIATE")
        token = _in_transaction.set(True)
        try:
            yield
        except BaseException:
            await conn.rollback()
            logger.warning("transaction_rolled_back")
            raise
        else:
            await conn.commit()
        finally:
            _in_transaction.reset(token)


async def _write(sql: str, params: Sequence[Any]) -> aiosqlite.Cursor:
    """Execute one write, committing it unless a transaction is open."""
    conn = await get_connection()
    if _in_transaction.get():
        return await conn.execute(sql, params)
    async with _write_lock():
        cursor = await conn.execute(sql, params)
        await conn.commit()
        return cursor


@contextmanager
def _reported(failure: str, collection: str, **context: Any) -> Iterator[None]:  # noqa: ANN401
    """Log driver and query errors and re-raise them as RuntimeError.

    ``failure`` completes the message "Failed to ..."; KeyError passes through.
    """
    try:
        _require_identifier(collection)
        yield
    except KeyError:
        raise
    except Exception as e:
        if isinstance(e, aiosqlite.OperationalError) and "no such table" in str(e):
            logger.error("table_missing", extra={"collection": collection})
            raise RuntimeError(f"Table '{collection}' does not exist. Call init_db() first.") from e
        logger.error("db_operation_failed", extra={"collection": collection, "error": str(e), **context})
        raise RuntimeError(f"Failed to {failure}: {e}") from e


async def create_record(*, collection: str, data: dict[str, Any]) -> dict[str, Any]:
    """Insert a record and return it as stored, including its new id and defaults."""
    with _reported(f"create record in {collection}", collection):
        columns = ", ".join(data)
        placeholders = ", ".join("?" for _ in data)
        cursor = await _write(
            f"INSERT INTO {collection} ({columns}) VALUES ({placeholders})",  # noqa: S608
            [_to_column(value) for value in data.values()],
        )
        record_id = str(cursor.lastrowid)

    logger.info("record_created", extra={"collection": collection, "record_id": record_id})
    return await get_record(collection=collection, record_id=record_id)


async def get_record(*, collection: str, record_id: str) -> dict[str, Any]:
    """Fetch a record by id.

    Raises:
        KeyError: If no record has this id
    """
    pk = _primary_key(collection, record_id)
    with _reported(f"get record from {collection}", collection, record_id=record_id):
        conn = await get_connection()
        cursor = await conn.execute(f"SELECT * FROM {collection} WHERE id = ?", (pk,))  # noqa: S608
        row = await cursor.fetchone()
        if row is None:
            raise KeyError(f"Record not found in {collection}: {record_id}")
        return _from_row(cursor, row)


async def update_record(*, collection: str, record_id: str, data: dict[str, Any]) -> dict[str, Any]:
    """Apply a partial update, bump ``updated`` and return the new record.

    Raises:
        ValueError: If ``data`` is empty
        KeyError: If no record has this id
    """
    if not data:
        raise ValueError("Empty update payload")

    pk = _primary_key(collection, record_id)
    payload = {**data, "updated": datetime.now().astimezone()}
    with _reported(f"update record in {collection}", collection, record_id=record_id):
        assignments = ", ".join(f"{field} = ?" for field in payload)
        cursor = await _write(
            f"UPDATE {collection} SET {assignments} WHERE id = ?",  # noqa: S608
            [*(_to_column(value) for value in payload.values()), pk],
        )
        if cursor.rowcount == 0:
            raise KeyError(f"Record not found in {collection}: {record_id}")

    logger.info("record_updated", extra={"collection": collection, "record_id": record_id, "fields": list(data)})
    return await get_record(collection=collection, record_id=record_id)


async def delete_record(*, collection: str, record_id: str) -> None:
    """Delete a record by id; foreign keys cascade per the schema.

    Raises:
        KeyError: If no record has this id
    """
    pk = _primary_key(collection, record_id)
    with _reported(f"delete record from {collection}", collection, record_id=record_id):
        cursor = await _write(f"DELETE FROM {collection} WHERE id = ?", (pk,))  # noqa: S608
        if cursor.rowcount == 0:
            raise KeyError(f"Record not found in {collection}: {record_id}")

    logger.info("record_deleted", extra={"collection": collection, "record_id": record_id})


async def list_records(
    *,
    collection: str,
    page: int = 1,
    per_page: int = 50,
    filter_query: str = "",
    sort: str = "",
) -> list[dict[str, Any]]:
    """List records matching ``filter_query``, one page at a time.

    ``sort`` takes comma-separated fields, ``-`` prefixed for descending
    (e.g. ``"-created,-id"``).
    """
    with _reported(f"list records from {collection}", collection, filter_query=filter_query):
        where, params = parse_filter(filter_query)
        where_clause = f"WHERE {where}" if where else ""
        conn = await get_connection()
        cursor = await conn.execute(
            f"SELECT * FROM {collection} {where_clause} ORDER BY {_order_by(sort)} LIMIT ? OFFSET ?",  # noqa: S608
            [*params, per_page, (page - 1) * per_page],
        )
        rows = await cursor.fetchall()
        records = [_from_row(cursor, row) for row in rows]

    logger.debug("records_listed", extra={"collection": collection, "count": len(records)})
    return records


async def list_all_records(
    *,
    collection: str,
    filter_query: str = "",
    sort: str = "",
    page_size: int = 500,
) -> list[dict[str, Any]]:
    """List every record matching ``filter_query``, fetching page by page.

    ``sort`` should end with a unique field (e.g. ``"-created,-id"``) so pages
    do not overlap.
    """
    records: list[dict[str, Any]] = []
    page = 1
    while True:
        batch = await list_records(
            collection=collection, page=page, per_page=page_size, filter_query=filter_query, sort=sort
        )
        records.extend(batch)

        if len(batch) < page_size:
            break

        page += 1
    return records


async def get_first_record(*, collection: str, filter_query: str) -> dict[str, Any] | None:
    """Return the lowest-id record matching the filter, or None."""
    with _reported(f"get first record from {collection}", collection, filter_query=filter_query):
        where, params = parse_filter(filter_query)
        where_clause = f"WHERE {where}" if where else ""
        conn = await get_connection()
        cursor = await conn.execute(
            f"SELECT * FROM {collection} {where_clause} ORDER BY id ASC LIMIT 1",  # noqa: S608
            params,
        )
        row = await cursor.fetchone()
        return _from_row(cursor, row) if row is not None else None
