#!/usr/bin/env python3
"""Write a consolidated string table to a CSV or XLSX file."""

import csv
import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from openpyxl import Workbook

from consolidation import ConsolidationTable
from errors import ConfigurationError, ExportError

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ("csv", "xlsx")
MODULE_COLUMN = "Module"
KEY_COLUMN = "Key"
SHEET_TITLE = "Strings"
TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"


def build_rows(table: ConsolidationTable, group_label: str) -> List[List[str]]:
    """
    Lay the table out as rows: a header, then one row per key in sorted order.

    Locale columns use the full qualifier ("values-fr-rCA") and follow the
    default-first order. Missing cells are empty strings.
    """
    locales = table.sorted_locales()
    rows = [[MODULE_COLUMN, KEY_COLUMN] + locales]
    for key in table.keys():
        values = table.get(key)
        rows.append([group_label, key] + [values.get(locale, "") for locale in locales])
    return rows


def export_filename(group_label: str, fmt: str, now: Optional[datetime] = None) -> str:
    timestamp = (now or datetime.now()).strftime(TIMESTAMP_FORMAT)
    return f"{group_label}_exported_strings_{timestamp}.{fmt}"


def _write_csv(rows: List[List[str]], output_file: Path) -> None:
    with open(output_file, "w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
        writer.writerows(rows)


def _write_xlsx(rows: List[List[str]], output_file: Path) -> None:
    wb = Workbook()
    ws = wb.active
    ws.title = SHEET_TITLE
    for row in rows:
        ws.append(row)
    ws.freeze_panes = "C2"
    wb.save(str(output_file))


def export_table(
    table: ConsolidationTable,
    export_dir: str,
    group_label: str,
    fmt: str = "xlsx",
    now: Optional[datetime] = None,
) -> Path:
    """
    Export the table to ``<export_dir>/<group>_exported_strings_<timestamp>.<fmt>``.

    Returns:
        Path of the written file

    Raises:
        ValueError: For an unsupported format
        ConfigurationError: If the export directory does not exist
        ExportError: If the file cannot be written
    """
    if fmt not in EXPORT_FORMATS:
        raise ValueError(
            f"Unsupported export format '{fmt}'. Expected one of: {', '.join(EXPORT_FORMATS)}"
        )

    if not export_dir:
        raise ConfigurationError("Please select an export directory.")
    export_path = Path(export_dir)
    if not export_path.is_dir():
        raise ConfigurationError(f"Export directory {export_path} does not exist!")

    output_file = export_path / export_filename(group_label, fmt, now)
    rows = build_rows(table, group_label)

    try:
        if fmt == "csv":
            _write_csv(rows, output_file)
        else:
            _write_xlsx(rows, output_file)
    except OSError as e:
        raise ExportError(f"Error writing {output_file}: {e}") from e

    logger.info(f"Strings exported to: {output_file.resolve()} ({len(rows) - 1} keys)")
    return output_file
