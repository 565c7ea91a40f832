# ============================================================
# SQLDesk - Remote SQL Console
# core/export.py — CSV / XLSX Export of Query Results
# ============================================================

from pathlib import Path
from typing import Union

from loguru import logger
from openpyxl import Workbook

from core.models import QueryResult, Scalar


def _cell_text(value: Scalar) -> str:
    return "" if value is None else str(value)


def to_csv(result: QueryResult) -> str:
    """
    Naive comma-joined export: header line, then one line per row.
    Embedded commas, quotes and newlines are NOT escaped.
    """
    if not result.columns:
        return ""
    lines = [",".join(result.columns)]
    for row in result.as_matrix():
        lines.append(",".join(_cell_text(v) for v in row))
    return "\n".join(lines)


def write_csv(result: QueryResult, path: Union[str, Path]) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(to_csv(result), encoding="utf-8")
    logger.info(f"Exported {len(result)} rows to {path}")
    return path


def write_xlsx(result: QueryResult, path: Union[str, Path], sheet: str = "Data") -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    workbook = Workbook()
    worksheet = workbook.active
    worksheet.title = sheet
    if result.columns:
        worksheet.append(list(result.columns))
    for row in result.as_matrix():
        worksheet.append(row)
    workbook.save(path)

    logger.info(f"Exported {len(result)} rows to {path}")
    return path
