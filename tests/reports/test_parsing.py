"""
tests/reports/test_parsing.py
"""

import io

import pandas as pd
import pytest
from fastapi import status

from reportsonic.core.exceptions import APIError
from reportsonic.reports.parsing import parse_tabular, records_to_rows, rows_to_records


def test_parse_csv_keeps_types_and_blanks() -> None:
    content = b"city,temp,note\nOslo,-3.5,cold\nLima,19,\n"
    headers, rows = parse_tabular("weather.csv", content)

    assert headers == ["city", "temp", "note"]
    assert rows == [["Oslo", -3.5, "cold"], ["Lima", 19.0, None]]
    assert all(type(row[1]) is float for row in rows)


def test_parse_xlsx_first_sheet_only() -> None:
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        pd.DataFrame({"product": ["A", "B"], "qty": [3, 4]}).to_excel(writer, sheet_name="Main", index=False)
        pd.DataFrame({"other": [1]}).to_excel(writer, sheet_name="Extra", index=False)

    headers, rows = parse_tabular("stock.XLSX", buffer.getvalue())

    assert headers == ["product", "qty"]
    assert rows == [["A", 3], ["B", 4]]


def test_parse_header_only_csv() -> None:
    headers, rows = parse_tabular("empty.csv", b"a,b,c\n")
    assert headers == ["a", "b", "c"]
    assert rows == []


def test_parse_rejects_unknown_extension() -> None:
    with pytest.raises(APIError) as exc:
        parse_tabular("data.json", b"{}")
    assert exc.value.status_code == status.HTTP_400_BAD_REQUEST


def test_parse_unreadable_workbook() -> None:
    with pytest.raises(APIError) as exc:
        parse_tabular("broken.xlsx", b"definitely not a zip archive")
    assert exc.value.detail["error"] == "Could not read the uploaded file. Please check its format."


def test_rows_to_records_pads_short_rows() -> None:
    assert rows_to_records(["a", "b"], [[1, 2], [3]]) == [{"a": 1, "b": 2}, {"a": 3, "b": None}]


def test_records_to_rows_follows_first_record() -> None:
    headers, rows = records_to_rows([{"x": 1, "y": 2}, {"y": 5, "z": 9}])
    assert headers == ["x", "y"]
    assert rows == [[1, 2], [None, 5]]
    assert records_to_rows([]) == ([], [])
