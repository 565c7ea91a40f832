# ============================================================
# SQLDesk - Remote SQL Console
# core/renderer.py — MySQL-CLI-style Result Rendering
# ============================================================

from typing import List, Optional

from rich import box
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text
from tabulate import tabulate

from core.errors import QueryError
from core.models import HistoryEntry, QueryResult
from utils.helpers import format_timestamp, truncate_string


def _timing(result: QueryResult) -> str:
    return f"({result.execution_ms / 1000:.3f} sec)"


def row_count_line(result: QueryResult) -> str:
    """ "5 rows in set (0.002 sec)" / "Empty set (0.001 sec)" """
    if not result.rows:
        return f"Empty set {_timing(result)}"
    row_word = "row" if len(result.rows) == 1 else "rows"
    return f"{len(result.rows)} {row_word} in set {_timing(result)}"


def build_result_table(result: QueryResult, title: Optional[str] = None) -> Table:
    """
    Rich Table that mimics MySQL CLI output.
    NULL cells are rendered dim/italic like the mysql client does.
    """
    table = Table(
        box=box.SIMPLE_HEAVY,
        show_header=True,
        header_style="bold cyan",
        border_style="dim white",
        title=title,
        show_lines=False,
        pad_edge=False,
    )

    for col_name in result.columns:
        table.add_column(str(col_name), style="white", no_wrap=False)

    for row in result.as_matrix():
        cells = []
        for cell in row:
            if cell is None:
                cells.append(Text("NULL", style="dim italic yellow"))
            else:
                cells.append(str(cell))
        table.add_row(*cells)

    return table


def format_result_as_text(result: QueryResult) -> str:
    """
    Plain-text rendering for non-TTY output:

        +----+-------+
        | id | name  |
        +----+-------+
        | 1  | Alice |
        +----+-------+
        1 row in set (0.002 sec)
    """
    if not result.rows:
        return row_count_line(result)

    rows = [["NULL" if v is None else v for v in row] for row in result.as_matrix()]
    grid = tabulate(rows, headers=result.columns, tablefmt="psql", disable_numparse=True)
    return f"{grid}\n{row_count_line(result)}"


def format_error(error: QueryError) -> Text:
    text = Text()
    text.append("ERROR", style="bold red")
    text.append(f": {error}", style="red")
    return text


def format_sql_syntax(sql: str) -> Syntax:
    return Syntax(sql, "sql", theme="monokai", line_numbers=False, word_wrap=True)


def format_history(entries: List[HistoryEntry], width: int = 70) -> str:
    if not entries:
        return "No query history yet."
    lines = []
    for i, entry in enumerate(entries, 1):
        sql = truncate_string(" ".join(entry.sql.split()), width)
        lines.append(f"{i:>3}. [{format_timestamp(entry.timestamp)}] {sql}")
    return "\n".join(lines)
