# ============================================================
# SQLDesk - Remote SQL Console
# core/errors.py — Error Taxonomy
# ============================================================

from typing import Optional


class SQLDeskError(Exception):
    """Base class for every error surfaced to the interaction layer."""


# ── Gateway / Query Errors ────────────────────────────────────

class QueryError(SQLDeskError):
    """Any failure of a call through the remote query gateway."""


class NetworkFailure(QueryError):
    """Transport-level failure, or a non-success HTTP status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        if status_code is not None:
            message = f"HTTP {status_code}: {message}"
        super().__init__(message)


class MalformedResponse(QueryError):
    """The proxy answered with something that is not the expected JSON shape."""

    def __init__(self, message: str, raw_text: str = ""):
        self.raw_text = raw_text
        super().__init__(message)


class QueryRejected(QueryError):
    """The proxy ran the statement and reported failure."""

    def __init__(self, message: str = "Query failed"):
        self.message = message
        super().__init__(message)


# ── Assistant Errors ──────────────────────────────────────────

class AssistantError(SQLDeskError):
    """Any failure of the AI query assistant round trip."""


class EmptyPrompt(AssistantError):
    def __init__(self):
        super().__init__("Prompt is required")


class AssistantUnavailable(AssistantError):
    """The upstream AI service is not configured (missing key/model/url)."""


class AssistantRequestFailed(AssistantError):
    def __init__(self, status: Optional[int], message: str):
        self.status = status
        self.message = message
        prefix = f"Assistant request failed ({status})" if status else "Assistant request failed"
        super().__init__(f"{prefix}: {message}")


# ── Session / Export Errors ───────────────────────────────────

class AuthenticationRequired(SQLDeskError):
    def __init__(self):
        super().__init__("Not authenticated, log in first")


class NothingToExport(SQLDeskError):
    def __init__(self):
        super().__init__("No query result to export")
