# ============================================================
# SQLDesk - Remote SQL Console
# core/schema_cache.py — Lazy, Session-Long Schema Memoization
# ============================================================

from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, Iterable, List, Optional

from loguru import logger

from core.errors import QueryError
from core.gateway import RemoteQueryGateway
from core.models import ColumnInfo, TableSchema
from utils.helpers import quote_identifier

SHOW_TABLES_SQL = "SHOW TABLES;"
SELECT_LIMIT = 100


class SchemaCache:
    """
    Memoizes table names and per-table column metadata fetched through
    the gateway.

    Each memo cell is written at most once per fetch and never invalidated:
    if the schema changes on the server mid-session the cache silently
    goes stale. Failed fetches are not memoized.
    """

    def __init__(self, gateway: RemoteQueryGateway):
        self.gateway = gateway
        self._tables: Optional[List[str]] = None
        self._columns: Dict[str, List[ColumnInfo]] = {}

    # ── Introspection ─────────────────────────────────────────

    def list_tables(self) -> List[str]:
        """SHOW TABLES, once per session. A table name is the first value of each row."""
        if self._tables is not None:
            return self._tables

        result = self.gateway.execute(SHOW_TABLES_SQL)
        tables = [str(next(iter(row.values()))) for row in result.rows if row]
        self._tables = tables
        logger.info(f"Schema cache: {len(tables)} tables loaded")
        return tables

    def columns_of(self, table: str) -> List[ColumnInfo]:
        """SHOW COLUMNS FROM `table`, memoized per table name."""
        cached = self._columns.get(table)
        if cached is not None:
            return cached

        # Backticks only: a name containing backticks breaks the statement
        result = self.gateway.execute(f"SHOW COLUMNS FROM {quote_identifier(table)};")
        columns = [ColumnInfo.from_row(row) for row in result.rows]
        self._columns[table] = columns
        logger.debug(f"Schema cache: {table} → {len(columns)} columns")
        return columns

    def table_schema(self, table: str) -> TableSchema:
        return TableSchema(name=table, columns=self.columns_of(table))

    def preload_columns(
        self,
        tables: Optional[Iterable[str]] = None,
        max_workers: int = 8,
    ) -> Dict[str, QueryError]:
        """
        Fire an unordered burst of columns_of() calls.
        Returns {table: error} for the tables that failed; never raises.
        """
        targets = [t for t in (tables if tables is not None else self.list_tables())
                   if t not in self._columns]
        errors: Dict[str, QueryError] = {}
        if not targets:
            return errors

        with ThreadPoolExecutor(max_workers=max(1, max_workers)) as pool:
            futures = {pool.submit(self.columns_of, t): t for t in targets}
            for future in as_completed(futures):
                table = futures[future]
                try:
                    future.result()
                except QueryError as e:
                    logger.warning(f"Column preload failed for {table}: {e}")
                    errors[table] = e
        return errors

    def reset(self):
        """Drop everything. Only used for an explicit, operator-requested reload."""
        self._tables = None
        self._columns = {}
        logger.info("Schema cache reset")

    # ── Non-fetching Views ────────────────────────────────────

    def cached_tables(self) -> List[str]:
        return list(self._tables or [])

    def cached_columns(self, table: str) -> Optional[List[ColumnInfo]]:
        return self._columns.get(table)

    def search(self, term: str) -> List[str]:
        """Case-insensitive substring filter over the cached table list."""
        needle = term.lower()
        return [t for t in self.cached_tables() if needle in t.lower()]

    @staticmethod
    def select_statement(table: str) -> str:
        return f"SELECT * FROM {quote_identifier(table)} LIMIT {SELECT_LIMIT};"

    def describe_for_prompt(self, tables: Iterable[str]) -> str:
        """
        Schema text for the AI assistant's system prompt:

            Table llx_user structure:
            - rowid (int(11)) PRIMARY KEY
            - login (varchar(50))
        """
        blocks = []
        for table in tables:
            try:
                columns = self.columns_of(table)
            except QueryError as e:
                logger.warning(f"Skipping {table} in prompt schema: {e}")
                continue
            if not columns:
                continue
            lines = [f"Table {table} structure:"]
            lines.extend(f"- {c.describe()}" for c in columns)
            blocks.append("\n".join(lines))
        return "\n\n".join(blocks)
