"""
reportsonic/reports/parsing.py

Reads uploaded CSV and Excel files into a header row plus data rows using
pandas. Only the first worksheet of a workbook is read. Missing cells become
None and numpy scalars are converted to plain Python values so the result
can be serialized to JSON directly.
"""

import io
import logging
import math
import zipfile
from datetime import date, datetime
from typing import Any

import pandas as pd
import xlrd
from fastapi import status

from reportsonic.core.exceptions import APIError
from reportsonic.core.upload import INVALID_TYPE_MESSAGE, file_extension

logger = logging.getLogger(__name__)

CSV_EXTENSIONS = {".csv"}
READ_ERRORS = (
    pd.errors.ParserError,
    ValueError,
    UnicodeDecodeError,
    zipfile.BadZipFile,
    xlrd.XLRDError,
)


def _clean(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    if value is pd.NaT:
        return None
    if isinstance(value, pd.Timestamp):
        return value.isoformat()
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if hasattr(value, "item"):
        # numpy scalar
        return _clean(value.item())
    return value


def _read_frame(filename: str, content: bytes) -> pd.DataFrame:
    extension = file_extension(filename)
    buffer = io.BytesIO(content)
    if extension in CSV_EXTENSIONS:
        return pd.read_csv(buffer)
    if extension == ".xlsx":
        return pd.read_excel(buffer, sheet_name=0, engine="openpyxl")
    if extension == ".xls":
        return pd.read_excel(buffer, sheet_name=0, engine="xlrd")
    raise APIError(status_code=status.HTTP_400_BAD_REQUEST, message=INVALID_TYPE_MESSAGE)


def parse_tabular(filename: str, content: bytes) -> tuple[list[str], list[list[Any]]]:
    """
    Parse an uploaded file into (headers, rows).

    Raises:
        APIError 400: Unsupported extension, unreadable content or no header row.
    """
    try:
        frame = _read_frame(filename, content)
    except APIError:
        raise
    except pd.errors.EmptyDataError:
        raise APIError(status_code=status.HTTP_400_BAD_REQUEST, message="No data found in the uploaded file")
    except READ_ERRORS as e:
        logger.warning(f"[PARSING] Could not parse '{filename}': {e}")
        raise APIError(
            status_code=status.HTTP_400_BAD_REQUEST,
            message="Could not read the uploaded file. Please check its format.",
        )

    headers = [str(column) for column in frame.columns]
    rows = [[_clean(value) for value in record] for record in frame.itertuples(index=False, name=None)]
    logger.info(f"[PARSING] Parsed '{filename}': {len(rows)} rows x {len(headers)} columns")
    return headers, rows


def rows_to_records(headers: list[str], rows: list[list[Any]]) -> list[dict[str, Any]]:
    return [
        {header: (row[index] if index < len(row) else None) for index, header in enumerate(headers)}
        for row in rows
    ]


def records_to_rows(records: list[dict[str, Any]]) -> tuple[list[str], list[list[Any]]]:
    """Header order follows the first record; later keys missing from it are ignored."""
    if not records:
        return [], []
    headers = [str(key) for key in records[0].keys()]
    rows = [[record.get(header) for header in headers] for record in records]
    return headers, rows
