"""Pure Python in-memory database for unit testing."""

import copy
import re
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from typeb.core.date_utils import now_iso


_COMPARISON = re.compile(r"""^(\w+)\s*(!=|>=|<=|=|>|<|~)\s*(['"])(.*)\3$""", re.DOTALL)

# Collections removed along with their family, mirroring ON DELETE CASCADE
_FAMILY_CASCADE = ("tasks", "task_submissions", "activity_logs", "notifications", "rewards", "redemptions")


class InMemoryDBClient:
    """Pure Python in-memory database for unit testing.

    Mirrors the keyword-only interface of typeb.core.db_client, including the
    filter syntax (``&&``, parenthesized ``||`` groups and the operators
    ``= != > < >= <= ~``), comma-separated sorts and transactions that roll
    back every collection when the block raises.
    """

    def __init__(self):
        """Initialize empty in-memory database."""
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._id_counter = 1000
        self._transaction_depth = 0

    async def create_record(self, *, collection: str, data: dict[str, Any]) -> dict[str, Any]:
        """Create a new record with a string id and ISO timestamps."""
        if not isinstance(data, dict):
            raise RuntimeError(f"Data must be a dictionary, got {type(data)}")

        record_id = str(self._id_counter)
        self._id_counter += 1

        now = now_iso()
        record = {"id": record_id, "created": now, "updated": now, **copy.deepcopy(data)}
        self._collections.setdefault(collection, {})[record_id] = record
        return copy.deepcopy(record)

    async def get_record(self, *, collection: str, record_id: str) -> dict[str, Any]:
        """Get a record by ID.

        Raises:
            KeyError: If the record does not exist
        """
        record = self._collections.get(collection, {}).get(str(record_id))
        if record is None:
            raise KeyError(f"Record not found in {collection}: {record_id}")
        return copy.deepcopy(record)

    async def update_record(self, *, collection: str, record_id: str, data: dict[str, Any]) -> dict[str, Any]:
        """Update an existing record.

        Raises:
            ValueError: If the payload is empty
            KeyError: If the record does not exist
        """
        if not data:
            raise ValueError("Empty update payload")

        record = self._collections.get(collection, {}).get(str(record_id))
        if record is None:
            raise KeyError(f"Record not found in {collection}: {record_id}")

        record.update(copy.deepcopy(data))
        record["updated"] = now_iso()
        return copy.deepcopy(record)

    async def delete_record(self, *, collection: str, record_id: str) -> None:
        """Delete a record, cascading family-owned rows like the SQLite schema.

        Raises:
            KeyError: If the record does not exist
        """
        records = self._collections.get(collection, {})
        if str(record_id) not in records:
            raise KeyError(f"Record not found in {collection}: {record_id}")
        del records[str(record_id)]

        if collection == "families":
            for child in _FAMILY_CASCADE:
                rows = self._collections.get(child, {})
                for child_id in [k for k, v in rows.items() if v.get("family_id") == str(record_id)]:
                    del rows[child_id]
            for user in self._collections.get("users", {}).values():
                if user.get("family_id") == str(record_id):
                    user["family_id"] = None

    async def list_records(
        self,
        *,
        collection: str,
        page: int = 1,
        per_page: int = 50,
        filter_query: str = "",
        sort: str = "",
    ) -> list[dict[str, Any]]:
        """List records with optional filtering, sorting and pagination."""
        records = list(self._collections.get(collection, {}).values())

        if filter_query:
            records = [r for r in records if self._parse_filter(filter_query, r)]

        records = self._apply_sort(records, sort or "id")

        start_idx = (page - 1) * per_page
        return [copy.deepcopy(r) for r in records[start_idx : start_idx + per_page]]

    async def get_first_record(self, *, collection: str, filter_query: str) -> dict[str, Any] | None:
        """Get the first matching record (lowest id) or None."""
        records = await self.list_records(collection=collection, filter_query=filter_query, per_page=1)
        return records[0] if records else None

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """Snapshot every collection and restore it if the block raises."""
        if self._transaction_depth:
            self._transaction_depth += 1
            try:
                yield
            finally:
                self._transaction_depth -= 1
            return

        snapshot = copy.deepcopy(self._collections)
        counter = self._id_counter
        self._transaction_depth = 1
        try:
            yield
        except BaseException:
            self._collections = snapshot
            self._id_counter = counter
            raise
        finally:
            self._transaction_depth = 0

    def count(self, collection: str, **field_values: Any) -> int:
        """Count records whose fields equal the given values (test helper)."""
        return sum(
            1
            for record in self._collections.get(collection, {}).values()
            if all(record.get(k) == v for k, v in field_values.items())
        )

    def _parse_filter(self, filter_str: str, record: dict[str, Any]) -> bool:
        """Evaluate a filter expression against a record.

        Raises:
            ValueError: For invalid filter syntax
        """
        for raw_part in self._split_and(filter_str):
            part = raw_part.strip()
            if part.startswith("(") and part.endswith(")"):
                if not any(self._compare(p, record) for p in part[1:-1].split("||")):
                    return False
            elif not self._compare(part, record):
                return False
        return True

    @staticmethod
    def _split_and(filter_str: str) -> list[str]:
        parts = []
        current = ""
        depth = 0
        for char in filter_str:
            if char == "(":
                depth += 1
            elif char == ")":
                depth -= 1
            current += char
            if depth == 0 and current.endswith("&&"):
                parts.append(current[:-2])
                current = ""
        if current.strip():
            parts.append(current)
        return parts

    @staticmethod
    def _compare(comparison: str, record: dict[str, Any]) -> bool:
        """Evaluate one comparison with SQL NULL semantics."""
        match = _COMPARISON.match(comparison.strip())
        if not match:
            raise ValueError(f"Invalid filter syntax: {comparison}")

        field, op, _, value = match.groups()
        actual = record.get(field)
        if actual is None:
            return False

        if op == "~":
            return value.lower() in str(actual).lower()

        if isinstance(actual, bool) and value.lower() in ("true", "false"):
            expected: Any = value.lower() == "true"
        elif isinstance(actual, int | float) and not isinstance(actual, bool) and value.lstrip("-").isdigit():
            expected = int(value)
        else:
            actual = str(actual)
            expected = value

        if op == "=":
            return actual == expected
        if op == "!=":
            return actual != expected
        if op == ">":
            return actual > expected
        if op == "<":
            return actual < expected
        if op == ">=":
            return actual >= expected
        return actual <= expected

    @staticmethod
    def _apply_sort(records: list[dict], sort: str) -> list[dict]:
        """Sort by comma-separated fields, ``-`` prefix for descending, NULLs first."""
        ordered = list(records)
        for raw in reversed(sort.split(",")):
            item = raw.strip()
            reverse = item.startswith("-")
            field = item.lstrip("+-")
            ordered.sort(
                key=lambda r, f=field: (r.get(f) is not None, r.get(f) if r.get(f) is not None else ""),
                reverse=reverse,
            )
        return ordered
