from datetime import datetime

import pytest

from payroll_import.schemas.column_mapping import ColumnMapping
from payroll_import.schemas.field_schema import FieldSpec, FieldValueType
from payroll_import.services.field_schema import NET_SALARY
from payroll_import.services.payroll_parser import (
    WorkbookUpload,
    coerce_month,
    coerce_number,
    parse_files,
)

SCHEMA = [
    FieldSpec(key="employee_id", label="Mã NV", value_type=FieldValueType.text, required=True),
    FieldSpec(key="salary_month", label="Tháng Lương", value_type=FieldValueType.date, required=True),
    FieldSpec(key=NET_SALARY, label="Lương Thực Nhận", value_type=FieldValueType.number),
]

MAPPING = ColumnMapping.from_dict({
    "employee_id": "Mã NV",
    "salary_month": "Tháng Lương",
    NET_SALARY: "Lương Thực Nhận",
})

HEADER = ["Mã NV", "Tháng Lương", "Lương Thực Nhận"]


def test_rows_are_coerced_by_field_type(xlsx):
    content = xlsx([
        HEADER,
        ["DB01234", "2024-05", "1,234,000"],
        [None, None, None],
        ["DB01235", datetime(2024, 6, 1), 5000000],
        [None, "2024-05", 100],
        ["DB01236", "May 2024", "abc"],
    ])

    result = parse_files([WorkbookUpload("may.xlsx", content)], MAPPING, SCHEMA)

    assert result.skipped_count == 1
    assert result.total_rows == 4
    first, second, third, fourth = result.records
    assert first.fields == {"employee_id": "DB01234", "salary_month": "2024-05", NET_SALARY: 1234000}
    assert first.source_row == 2
    assert second.salary_month == "2024-06"
    assert second.fields[NET_SALARY] == 5000000
    assert second.source_row == 4
    assert third.employee_id == ""
    assert third.source_row == 5
    assert fourth.salary_month == "May 2024"
    assert fourth.unparsed_fields == ["salary_month"]
    assert fourth.fields[NET_SALARY] == 0
    assert first.original_data["Lương Thực Nhận"] == "1,234,000"
    assert result.original_headers == HEADER


def test_integral_float_ids_render_without_fraction(xlsx):
    content = xlsx([HEADER, [1234.0, "2024-05", 1]])

    result = parse_files([WorkbookUpload("ids.xlsx", content)], MAPPING, SCHEMA)

    assert result.records[0].employee_id == "1234"


def test_files_merge_in_upload_order(xlsx):
    first = xlsx([HEADER, ["DB01234", "2024-05", 1], ["DB01235", "2024-05", 2]])
    second = xlsx([HEADER, ["DB01234", "2024-05", 3]])

    result = parse_files(
        [WorkbookUpload("a.xlsx", first), WorkbookUpload("b.xlsx", second)],
        MAPPING,
        SCHEMA,
        max_workers=2,
    )

    assert [(r.source_file, r.source_row) for r in result.records] == [
        ("a.xlsx", 2), ("a.xlsx", 3), ("b.xlsx", 2)
    ]
    assert result.files_processed == 2


def test_records_carry_upload_position(xlsx):
    content = xlsx([HEADER, ["DB01234", "2024-05", 1]])

    result = parse_files(
        [WorkbookUpload("payroll.xlsx", content), WorkbookUpload("payroll.xlsx", content)],
        MAPPING,
        SCHEMA,
        max_workers=2,
    )

    assert [(r.file_index, r.source_file, r.source_row) for r in result.records] == [
        (0, "payroll.xlsx", 2), (1, "payroll.xlsx", 2)
    ]


def test_unreadable_file_only_aborts_itself(xlsx):
    good = xlsx([HEADER, ["DB01234", "2024-05", 1]])

    result = parse_files(
        [WorkbookUpload("broken.xlsx", b"garbage"), WorkbookUpload("good.xlsx", good)],
        MAPPING,
        SCHEMA,
    )

    assert len(result.file_errors) == 1
    assert result.file_errors[0].filename == "broken.xlsx"
    assert result.files_processed == 1
    assert [r.source_file for r in result.records] == ["good.xlsx"]


def test_per_file_mappings(csv_file):
    first = csv_file([["Mã NV", "Tháng Lương"], ["DB01234", "2024-05"]])
    second = csv_file([["Employee", "Month"], ["DB01235", "2024-06"]])
    mappings = [
        MAPPING,
        ColumnMapping.from_dict({"employee_id": "Employee", "salary_month": "Month"}),
    ]

    result = parse_files(
        [WorkbookUpload("a.csv", first), WorkbookUpload("b.csv", second)],
        mappings,
        SCHEMA,
    )

    assert [r.employee_id for r in result.records] == ["DB01234", "DB01235"]
    # Net salary column is missing from both files
    assert all(r.fields[NET_SALARY] == 0 for r in result.records)


def test_mapping_count_must_match_file_count(csv_file):
    content = csv_file([HEADER, ["DB01234", "2024-05", 1]])

    with pytest.raises(ValueError):
        parse_files([WorkbookUpload("a.csv", content)], [MAPPING, MAPPING], SCHEMA)


def test_no_files_gives_empty_result():
    result = parse_files([], MAPPING, SCHEMA)

    assert result.records == []
    assert result.files_processed == 0


@pytest.mark.parametrize("value, expected", [
    (None, 0),
    ("", 0),
    ("12.5", 12.5),
    ("1,000", 1000),
    ("n/a", 0),
    (float("nan"), 0),
    (42, 42),
])
def test_coerce_number(value, expected):
    assert coerce_number(value) == expected


def test_coerce_month():
    assert coerce_month(datetime(2024, 1, 31)) == ("2024-01", True)
    assert coerce_month("2024-12") == ("2024-12", True)
    assert coerce_month("12/2024") == ("12/2024", False)
    assert coerce_month(None) == ("", True)
