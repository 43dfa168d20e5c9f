import pytest

from payroll_import.core.exceptions import WorkbookFormatError
from payroll_import.services.column_detector import detect_columns, detect_header


def test_detects_distinct_trimmed_headers_in_order(xlsx):
    content = xlsx([
        ["Mã NV", "Tháng Lương", None, "Mã NV", "  Lương  Thực Nhận "],
        ["DB01234", "2024-05", None, "x", 1000],
    ])

    assert detect_columns(content, "payroll.xlsx") == ["Mã NV", "Tháng Lương", "Lương  Thực Nhận"]


def test_header_is_first_non_empty_row(csv_file):
    content = csv_file([
        [None, None],
        ["Employee", "Month"],
        ["DB01234", "2024-05"],
    ])

    header = detect_header(content, "payroll.csv")

    assert header.header_index == 1
    assert header.columns == ["Employee", "Month"]
    assert header.first_data_row_number == 3


def test_empty_sheet_has_no_header(xlsx):
    with pytest.raises(WorkbookFormatError) as exc_info:
        detect_columns(xlsx([]), "empty.xlsx")

    assert exc_info.value.filename == "empty.xlsx"


def test_unreadable_buffer_raises_format_error():
    with pytest.raises(WorkbookFormatError):
        detect_columns(b"definitely not a spreadsheet", "broken.xlsx")


def test_unsupported_extension_raises_format_error():
    with pytest.raises(WorkbookFormatError):
        detect_columns(b"a,b\n1,2\n", "payroll.txt")
