import re
from datetime import datetime, timezone


# Clause keywords that start a new line in format_sql(). Order matters only
# for readability; the pattern is an alternation.
_CLAUSE_PATTERN = re.compile(
    r" (SELECT|FROM|WHERE|GROUP BY|ORDER BY|HAVING|LIMIT)\b",
    re.IGNORECASE,
)
_JOIN_PATTERN = re.compile(r" (LEFT|RIGHT|INNER|OUTER) JOIN\b", re.IGNORECASE)


def format_sql(sql: str) -> str:
    """
    Cheap, regex-only SQL layout:
    collapse whitespace, then break before each top-level clause and join.

    No awareness of string literals or comments: a keyword inside a quoted
    string is still treated as a split point.
    """
    formatted = re.sub(r"\s+", " ", sql)
    formatted = _CLAUSE_PATTERN.sub(r"\n\1", formatted)
    formatted = _JOIN_PATTERN.sub(r"\n\1 JOIN", formatted)
    return formatted.strip()


def quote_identifier(name: str) -> str:
    """Wrap a table name in backticks. Does NOT escape embedded backticks."""
    return f"`{name}`"


def truncate_string(s: str, max_len: int = 80, suffix: str = "...") -> str:
    if len(s) <= max_len:
        return s
    return s[: max_len - len(suffix)] + suffix


def single_line(sql: str) -> str:
    return " ".join(sql.split())


def format_duration(milliseconds: int) -> str:
    if milliseconds < 1000:
        return f"{milliseconds}ms"
    elif milliseconds < 60000:
        return f"{milliseconds / 1000:.2f}s"
    else:
        minutes = milliseconds // 60000
        seconds = (milliseconds % 60000) / 1000
        return f"{minutes}m {seconds:.1f}s"


def get_timestamp() -> str:
    """ISO-8601 UTC timestamp used for history entries."""
    return datetime.now(timezone.utc).isoformat()


def format_timestamp(iso_timestamp: str) -> str:
    """Render a history timestamp in local time for display."""
    try:
        return datetime.fromisoformat(iso_timestamp).astimezone().strftime("%Y-%m-%d %H:%M:%S")
    except ValueError:
        return iso_timestamp
