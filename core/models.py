# ============================================================
# SQLDesk - Remote SQL Console
# core/models.py — Result, Schema, History & Assistant Records
# ============================================================

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from core.errors import MalformedResponse

Scalar = Union[str, int, float, None]
Row = Dict[str, Scalar]


class QueryResult:
    """
    Rows returned by the remote proxy for one statement.

    The column list is derived once from the keys of the first row; an empty
    result has no discoverable columns. Rows are expected to share that key
    set. With strict=True a diverging row is rejected, otherwise it is kept
    as-is and missing cells read as None.
    """

    def __init__(
        self,
        rows: Optional[List[Row]] = None,
        sql: str = "",
        execution_ms: int = 0,
        strict: bool = False,
    ):
        self.rows: List[Row] = list(rows or [])
        self.sql = sql
        self.execution_ms = execution_ms
        self.columns: List[str] = list(self.rows[0].keys()) if self.rows else []

        if strict:
            expected = set(self.columns)
            for index, row in enumerate(self.rows):
                if set(row.keys()) != expected:
                    raise MalformedResponse(
                        f"Row {index} has columns {sorted(row.keys())}, expected {self.columns}"
                    )

    # ── Grid Helpers ──────────────────────────────────────────

    def as_matrix(self) -> List[List[Scalar]]:
        """Rows as lists, ordered by self.columns."""
        return [[row.get(c) for c in self.columns] for row in self.rows]

    def filter(self, term: str) -> "QueryResult":
        """Keep rows where any cell contains term (case-insensitive)."""
        if not term:
            return self
        needle = term.lower()
        kept = [
            row for row in self.rows
            if any(v is not None and needle in str(v).lower() for v in row.values())
        ]
        return self._derive(kept)

    def sorted_by(self, column: str, descending: bool = False) -> "QueryResult":
        """Stable sort on one column. NULLs sort first; numbers before text."""

        def key(row: Row):
            value = row.get(column)
            if value is None:
                return (0, 0, "")
            if isinstance(value, (int, float)):
                return (1, value, "")
            return (2, 0, str(value))

        return self._derive(sorted(self.rows, key=key, reverse=descending))

    def page(self, index: int, size: int = 10) -> "QueryResult":
        start = max(index, 0) * size
        return self._derive(self.rows[start:start + size])

    def page_count(self, size: int = 10) -> int:
        return max(1, math.ceil(len(self.rows) / size))

    def _derive(self, rows: List[Row]) -> "QueryResult":
        derived = QueryResult(rows, sql=self.sql, execution_ms=self.execution_ms)
        # Keep the original column order even when the subset is empty
        derived.columns = list(self.columns)
        return derived

    # ── Dunder ────────────────────────────────────────────────

    def __len__(self) -> int:
        return len(self.rows)

    def __bool__(self) -> bool:
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sql": self.sql,
            "columns": self.columns,
            "rows": self.rows,
            "execution_ms": self.execution_ms,
        }

    def __repr__(self):
        return f"<QueryResult rows={len(self.rows)} cols={len(self.columns)} time={self.execution_ms}ms>"


@dataclass
class ColumnInfo:
    """One row of DESCRIBE / SHOW COLUMNS output."""
    field: str
    type: str
    nullable: bool = False
    is_primary_key: bool = False
    default: Optional[str] = None
    extra: str = ""

    @classmethod
    def from_row(cls, row: Row) -> "ColumnInfo":
        return cls(
            field=str(row.get("Field", "")),
            type=str(row.get("Type", "")),
            nullable=str(row.get("Null", "")).upper() == "YES",
            is_primary_key=str(row.get("Key", "")).upper() == "PRI",
            default=None if row.get("Default") is None else str(row.get("Default")),
            extra=str(row.get("Extra") or ""),
        )

    def describe(self) -> str:
        """Single-line rendering used in prompts and the schema browser."""
        text = f"{self.field} ({self.type})"
        if self.is_primary_key:
            text += " PRIMARY KEY"
        if self.nullable:
            text += " nullable"
        return text


@dataclass
class TableSchema:
    name: str
    columns: List[ColumnInfo] = field(default_factory=list)


@dataclass
class HistoryEntry:
    sql: str
    timestamp: str


@dataclass
class AssistantExchange:
    """One prompt → response round trip with the SQL split out."""
    prompt: str
    raw_response: str
    extracted_query: str = ""
    explanation: str = ""

    def has_query(self) -> bool:
        return self.extracted_query.strip() != ""
