# ============================================================
# SQLDesk - Remote SQL Console
# core/console.py — Console Controller (buffer, execution, history)
# ============================================================

import threading
from collections import deque
from enum import Enum
from pathlib import Path
from typing import Deque, List, Optional, Union

from loguru import logger

from config import app_config
from core.auth import SessionContext
from core.errors import NothingToExport, QueryError
from core.export import write_csv, write_xlsx
from core.gateway import RemoteQueryGateway
from core.models import HistoryEntry, QueryResult
from core.schema_cache import SchemaCache
from utils.helpers import format_sql, get_timestamp


class ConsoleState(Enum):
    IDLE = "idle"
    EXECUTING = "executing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class ActiveView(Enum):
    RESULTS = "results"
    HISTORY = "history"


class ConsoleController:
    """
    Owns the live SQL buffer and the outcome of the last execution.

    execute() is accepted from IDLE, SUCCEEDED or FAILED. While a request is
    in flight (EXECUTING) further calls are dropped, so one buffer never has
    two overlapping requests. The buffer itself stays editable during
    EXECUTING; the response still lands and may describe SQL that no longer
    matches what is on screen.

    Front ends call execute() from a worker thread, so the EXECUTING
    check-and-set is done under a lock. The gateway call is made outside it.
    """

    def __init__(
        self,
        gateway: RemoteQueryGateway,
        session: Optional[SessionContext] = None,
        max_history: Optional[int] = None,
    ):
        self.gateway = gateway
        self.session = session

        self.sql: str = ""
        self.state: ConsoleState = ConsoleState.IDLE
        self.result: Optional[QueryResult] = None
        self.error: Optional[QueryError] = None
        self.active_view: ActiveView = ActiveView.RESULTS

        self._history: Deque[HistoryEntry] = deque(
            maxlen=max_history or app_config.max_history
        )
        self._lock = threading.Lock()

    # ── Buffer ────────────────────────────────────────────────

    def set_sql(self, text: str):
        self.sql = text

    def apply_assistant_query(self, query: str):
        """Inject SQL extracted by the assistant. Allowed in any state."""
        self.sql = query

    def select_from_schema(self, table: str):
        """Replace the buffer with a SELECT over the table. Allowed in any state."""
        self.sql = SchemaCache.select_statement(table)

    def format(self) -> str:
        self.sql = format_sql(self.sql)
        return self.sql

    # ── Execution ─────────────────────────────────────────────

    @property
    def is_executing(self) -> bool:
        return self.state is ConsoleState.EXECUTING

    def execute(self) -> Optional[ConsoleState]:
        """
        Run the buffer through the gateway.

        Returns the resulting state, or None when the call was a no-op
        (blank buffer, or a request already in flight).
        """
        if self.session is not None:
            self.session.require_authenticated()

        with self._lock:
            sql = self.sql.strip()
            if not sql or self.state is ConsoleState.EXECUTING:
                return None
            self.state = ConsoleState.EXECUTING

        logger.info(f"Executing: {sql[:200]}")
        try:
            result = self.gateway.execute(sql)
        except QueryError as e:
            logger.warning(f"Query failed: {e}")
            with self._lock:
                self.result = None
                self.error = e
                self.state = ConsoleState.FAILED
                self._record(sql)
            return ConsoleState.FAILED
        except Exception:
            # Unexpected: never leave the buffer stuck in EXECUTING
            with self._lock:
                self.state = ConsoleState.IDLE
            raise

        with self._lock:
            self.result = result
            self.error = None
            self.state = ConsoleState.SUCCEEDED
            self.active_view = ActiveView.RESULTS
            self._record(sql)
        logger.info(f"Query OK: {len(result)} rows in {result.execution_ms}ms")
        return ConsoleState.SUCCEEDED

    @property
    def error_message(self) -> Optional[str]:
        return str(self.error) if self.error is not None else None

    # ── History ───────────────────────────────────────────────

    def _record(self, sql: str):
        self._history.appendleft(HistoryEntry(sql=sql, timestamp=get_timestamp()))

    @property
    def history(self) -> List[HistoryEntry]:
        """Newest first."""
        return list(self._history)

    def recall_history(self, index: int) -> str:
        entry = self._history[index]
        self.sql = entry.sql
        self.active_view = ActiveView.RESULTS
        return entry.sql

    def clear_history(self):
        self._history.clear()

    def show(self, view: ActiveView):
        self.active_view = view

    # ── Export ────────────────────────────────────────────────

    def export_csv(self, path: Union[str, Path]) -> Path:
        if self.result is None:
            raise NothingToExport()
        return write_csv(self.result, path)

    def export_xlsx(self, path: Union[str, Path]) -> Path:
        if self.result is None:
            raise NothingToExport()
        return write_xlsx(self.result, path)
