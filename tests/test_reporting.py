import io
from datetime import date
from types import SimpleNamespace

import pandas as pd
import pytest

from payroll_import.schemas.column_mapping import FieldMapping
from payroll_import.schemas.payroll_import import ErrorType, PayrollRecord, Severity
from payroll_import.services.payroll_parser import ParseResult
from payroll_import.services.reporting import (
    CORRECTED_VALUE_COLUMN,
    build_configuration_template,
    build_import_result,
    export_findings,
    filter_findings,
    summarize,
)
from payroll_import.services.validation import make_finding


def record(employee_id, row, salary_month="2024-05", file_index=0):
    return PayrollRecord(
        employee_id=employee_id,
        salary_month=salary_month,
        fields={"employee_id": employee_id, "salary_month": salary_month},
        source_file="may.xlsx",
        source_row=row,
        file_index=file_index,
        original_data={"Mã NV": employee_id, "Tháng": salary_month},
    )


def test_import_result_counts_records_by_worst_severity():
    clean, warned, failed = record("A", 2), record("B", 3, "2024-5"), record("C", 4)
    parsed = ParseResult(records=[clean, warned, failed], skipped_count=2, files_processed=1)
    findings = [
        make_finding(warned, ErrorType.format, "bad month"),
        make_finding(failed, ErrorType.format, "bad month"),
        make_finding(failed, ErrorType.employee_not_found, "unknown"),
    ]

    result = build_import_result(parsed, findings)

    assert not result.succeeded
    assert (result.success_count, result.warning_count, result.error_count) == (1, 1, 1)
    assert result.total_rows == 3
    assert result.skipped_count == 2
    assert result.summary.files_processed == 1
    assert result.summary.missing_employees == 1
    assert result.summary.data_inconsistencies == 2


def test_import_without_findings_succeeds():
    parsed = ParseResult(records=[record("A", 2)], files_processed=1)

    result = build_import_result(parsed, [])

    assert result.succeeded
    assert result.success_count == 1


def test_same_named_files_are_counted_separately():
    first, second = record("ZZ9", 2, file_index=0), record("A", 2, file_index=1)
    parsed = ParseResult(records=[first, second], files_processed=2)

    result = build_import_result(parsed, [make_finding(first, ErrorType.employee_not_found, "unknown")])

    assert (result.success_count, result.error_count) == (1, 1)
    assert result.findings[0].file_index == 0


def test_summarize_groups_validation_and_format():
    rec = record("A", 2)
    findings = [
        make_finding(rec, ErrorType.validation, "x"),
        make_finding(rec, ErrorType.format, "x"),
        make_finding(rec, ErrorType.duplicate, "x"),
        make_finding(rec, ErrorType.database, "x"),
    ]

    summary = summarize(findings, files_processed=2)

    assert summary.data_inconsistencies == 2
    assert summary.duplicates_found == 1
    assert summary.missing_employees == 0
    assert summary.files_processed == 2


def test_filter_findings_paginates_by_twenty():
    findings = [make_finding(record(f"E{i}", i + 2), ErrorType.duplicate, "dup") for i in range(45)]

    page = filter_findings(findings, page=3)

    assert page.total == 45
    assert page.total_pages == 3
    assert page.page_size == 20
    assert len(page.items) == 5


def test_filter_findings_by_type_severity_and_search():
    findings = [
        make_finding(record("DB01234", 2), ErrorType.employee_not_found, "unknown"),
        make_finding(record("DB05678", 3), ErrorType.employee_not_found, "unknown"),
        make_finding(record("DB01234", 4), ErrorType.format, "bad month"),
    ]

    assert filter_findings(findings, error_type=ErrorType.format).total == 1
    assert filter_findings(findings, severity=Severity.critical).total == 2
    assert filter_findings(findings, search="db01234").total == 2
    assert filter_findings(findings, search="  ").total == 3


def test_xlsx_export_has_findings_and_statistics():
    findings = [make_finding(record("ZZ1", 5), ErrorType.employee_not_found, "unknown")]

    artifact = export_findings(findings, ["Mã NV", "Tháng"])

    assert artifact.filename.endswith(".xlsx")
    sheets = pd.read_excel(io.BytesIO(artifact.content), sheet_name=None)
    assert set(sheets) == {"Errors", "Statistics"}
    errors = sheets["Errors"]
    assert errors.loc[0, "Row"] == 5
    assert errors.loc[0, "Mã NV"] == "ZZ1"
    assert errors[CORRECTED_VALUE_COLUMN].isna().all()
    stats = sheets["Statistics"].set_index("Metric")["Value"]
    assert stats["Total findings"] == 1
    assert stats["Missing employees"] == 1


def test_export_without_findings_writes_statistics_only():
    artifact = export_findings([], ["Mã NV"])

    sheets = pd.read_excel(io.BytesIO(artifact.content), sheet_name=None)
    assert list(sheets) == ["Statistics"]


def test_csv_export():
    findings = [make_finding(record("ZZ1", 5), ErrorType.employee_not_found, "unknown")]

    artifact = export_findings(findings, ["Mã NV"], fmt="csv", file_name="errors")

    assert artifact.media_type == "text/csv"
    assert artifact.filename.startswith("errors_")
    text = artifact.content.decode("utf-8-sig")
    header = text.splitlines()[0]
    assert CORRECTED_VALUE_COLUMN in header
    assert "Mã NV" in header


def template_config(*mappings, name="Bảng lương tháng"):
    return SimpleNamespace(
        id=7,
        name=name,
        field_mappings=[
            FieldMapping(field_key=key, column_name=column, confidence_score=score)
            for key, column, score in mappings
        ],
    )


def test_configuration_template_follows_confidence_order():
    config = template_config(
        ("tien_luong_thuc_nhan_cuoi_ky", "Thực nhận", 60),
        ("employee_id", "Mã NV", 100),
        ("salary_month", "Tháng", 90),
    )

    artifact = build_configuration_template(config, ["DB01234"], today=date(2024, 1, 15))

    assert artifact.filename == "import-template-bang-luong-thang-2024-01-15.xlsx"
    frame = pd.read_excel(io.BytesIO(artifact.content), sheet_name="Import Template", dtype=str)
    assert list(frame.columns) == ["Mã NV", "Tháng", "Thực nhận"]
    assert list(frame["Mã NV"]) == ["DB01234", "EMP002", "EMP003"]
    assert set(frame["Tháng"]) == {"2023-12"}
    assert list(frame["Thực nhận"]) == ["19800000", "21600000", "23400000"]


def test_configuration_template_needs_mappings():
    with pytest.raises(ValueError):
        build_configuration_template(template_config())
