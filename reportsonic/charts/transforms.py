"""
reportsonic/charts/transforms.py

Per-chart-type field remapper: turns a list of records (dicts) into the
point lists chart renderers consume. Each transformer picks the columns it
needs by inspecting the first non-empty value of each column and returns an
empty list when the data has no suitable columns.
"""

import math
from collections import Counter, defaultdict
from collections.abc import Callable
from datetime import datetime
from typing import Any

import pandas as pd
from fastapi import status

from reportsonic.core.exceptions import APIError

Record = dict[str, Any]
Point = dict[str, Any]

MAX_SLICES = 10
RADAR_MAX_AXES = 6
LINE_FALLBACK_POINTS = 12


# ---------------------------------------------------
# Column Inspection Helpers
# ---------------------------------------------------
def is_missing(value: Any) -> bool:
    """Blank cells, NaN and infinity (as floats or as text like "nan") hold no value."""
    if value is None or value == "":
        return True
    if isinstance(value, float):
        return not math.isfinite(value)
    if isinstance(value, str):
        try:
            return not math.isfinite(float(value.replace(",", "")))
        except ValueError:
            return False
    return False


def _column_values(records: list[Record], column: str) -> list[Any]:
    return [row.get(column) for row in records if not is_missing(row.get(column))]


def to_number(value: Any) -> float | None:
    """Numeric value of a cell, or None for missing and non-numeric cells."""
    if isinstance(value, bool) or is_missing(value):
        return None
    try:
        if isinstance(value, (int, float)):
            number = float(value)
        else:
            number = float(str(value).replace(",", ""))
    except (ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def to_date(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or to_number(value) is not None:
        return None
    parsed = pd.to_datetime(value, errors="coerce")
    if pd.isna(parsed):
        return None
    return parsed.to_pydatetime()


def _columns(records: list[Record]) -> list[str]:
    return list(records[0].keys()) if records else []


def numeric_columns(records: list[Record]) -> list[str]:
    result = []
    for column in _columns(records):
        values = _column_values(records, column)
        if values and to_number(values[0]) is not None:
            result.append(column)
    return result


def categorical_column(records: list[Record], max_unique: int) -> str | None:
    """First text column with between 2 and max_unique-1 distinct values."""
    for column in _columns(records):
        values = _column_values(records, column)
        if not values or not isinstance(values[0], str) or to_number(values[0]) is not None:
            continue
        unique = len(set(values))
        if 1 < unique < max_unique:
            return column
    return None


def date_column(records: list[Record]) -> str | None:
    for column in _columns(records):
        values = _column_values(records, column)
        if values and to_date(values[0]) is not None:
            return column
    return None


# ---------------------------------------------------
# Transformers
# ---------------------------------------------------
def bar_points(records: list[Record]) -> list[Point]:
    """Sum of the first numeric column per category."""
    category = categorical_column(records, max_unique=10)
    numbers = numeric_columns(records)
    if not category or not numbers:
        return []
    value_col = numbers[0]
    totals: dict[str, float] = defaultdict(float)
    for row in records:
        key = row.get(category)
        if is_missing(key):
            continue
        totals[str(key)] += to_number(row.get(value_col)) or 0.0
    return [{"name": name, "value": value} for name, value in totals.items()]


def line_points(records: list[Record]) -> list[Point]:
    """Numeric series ordered by date; sequential periods when no date column exists."""
    numbers = numeric_columns(records)
    if not numbers:
        return []
    value_col = numbers[0]
    dated = date_column(records)

    if dated:
        series = []
        for row in records:
            when = to_date(row.get(dated))
            value = to_number(row.get(value_col))
            if when is not None and value is not None:
                series.append((when, value))
        if series:
            series.sort(key=lambda item: item[0])
            return [{"name": when.date().isoformat(), "value": value} for when, value in series]

    points = []
    for index, row in enumerate(records[:LINE_FALLBACK_POINTS]):
        points.append({"name": f"Period {index + 1}", "value": to_number(row.get(value_col)) or 0.0})
    return points


def _category_counts(records: list[Record], max_unique: int) -> list[Point]:
    category = categorical_column(records, max_unique=max_unique)
    if not category:
        return []
    counts = Counter(
        "Unknown" if is_missing(row.get(category)) else str(row.get(category)) for row in records
    )
    return [{"name": name, "value": count} for name, count in counts.most_common(MAX_SLICES)]


def pie_points(records: list[Record]) -> list[Point]:
    return _category_counts(records, max_unique=8)


def doughnut_points(records: list[Record]) -> list[Point]:
    return _category_counts(records, max_unique=6)


def scatter_points(records: list[Record]) -> list[Point]:
    numbers = numeric_columns(records)
    if len(numbers) < 2:
        return []
    x_col, y_col = numbers[0], numbers[1]
    return [
        {"x": to_number(row.get(x_col)) or 0.0, "y": to_number(row.get(y_col)) or 0.0}
        for row in records
    ]


def radar_points(records: list[Record]) -> list[Point]:
    """Average of up to six numeric columns; needs at least three axes."""
    numbers = numeric_columns(records)[:RADAR_MAX_AXES]
    if len(numbers) < 3:
        return []
    points = []
    for column in numbers:
        values = [v for v in (to_number(row.get(column)) for row in records) if v is not None]
        points.append({"name": column, "value": sum(values) / len(values) if values else 0.0})
    return points


def gauge_points(records: list[Record]) -> list[Point]:
    numbers = numeric_columns(records)
    if not numbers:
        return []
    column = numbers[0]
    values = [v for v in (to_number(row.get(column)) for row in records) if v is not None]
    if not values:
        return []
    average = sum(values) / len(values)
    return [{"value": round(average), "max": max(max(values), 100), "label": f"{column} Average"}]


TRANSFORMERS: dict[str, Callable[[list[Record]], list[Point]]] = {
    "bar": bar_points,
    "line": line_points,
    "area": line_points,
    "pie": pie_points,
    "doughnut": doughnut_points,
    "scatter": scatter_points,
    "radar": radar_points,
    "gauge": gauge_points,
}


def transform_for_chart(chart_type: str, records: list[Record]) -> list[Point]:
    """Dispatch to the transformer registered for chart_type."""
    transformer = TRANSFORMERS.get(chart_type.lower())
    if transformer is None:
        raise APIError(
            status_code=status.HTTP_400_BAD_REQUEST,
            message=f"Unsupported chart type: {chart_type}",
        )
    return transformer(records)
