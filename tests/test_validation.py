from payroll_import.schemas.payroll_import import ErrorType, PayrollRecord, Severity
from payroll_import.services.collaborators import PersistenceOutcome, StaticEmployeeDirectory
from payroll_import.services.validation import (
    SUGGESTION_BY_TYPE,
    persistence_findings,
    validate,
)


def record(employee_id, salary_month, row, source_file="may.xlsx"):
    return PayrollRecord(
        employee_id=employee_id,
        salary_month=salary_month,
        fields={"employee_id": employee_id, "salary_month": salary_month},
        source_file=source_file,
        source_row=row,
    )


KNOWN = {"A", "B", "DB01234"}


def test_only_later_duplicate_is_flagged():
    records = [record("A", "2024-05", 3), record("B", "2024-05", 5), record("A", "2024-05", 7)]

    report = validate(records, KNOWN)

    duplicates = [f for f in report.findings if f.error_type == ErrorType.duplicate]
    assert [f.row for f in duplicates] == [7]
    assert duplicates[0].severity == Severity.medium
    assert report.summary.duplicates_found == 1


def test_duplicates_across_files_flag_the_later_file():
    records = [
        record("DB01234", "2024-05", 2, source_file="first.xlsx"),
        record("DB01234", "2024-05", 2, source_file="second.xlsx"),
    ]

    report = validate(records, KNOWN)

    assert len(report.findings) == 1
    assert report.findings[0].error_type == ErrorType.duplicate
    assert report.findings[0].source_file == "second.xlsx"


def test_blank_employee_id_is_a_validation_finding():
    report = validate([record("", "2024-05", 4)], KNOWN)

    assert len(report.findings) == 1
    finding = report.findings[0]
    assert finding.error_type == ErrorType.validation
    assert finding.severity == Severity.medium
    assert finding.field_key == "employee_id"


def test_month_format_is_checked():
    records = [record("A", "2024-13", 2), record("B", "May 2024", 3), record("DB01234", "2024-12", 4)]

    report = validate(records, KNOWN)

    assert [(f.row, f.error_type, f.severity) for f in report.findings] == [
        (2, ErrorType.format, Severity.low),
        (3, ErrorType.format, Severity.low),
    ]
    assert report.summary.data_inconsistencies == 2


def test_blank_month_is_not_also_a_format_error():
    report = validate([record("A", "", 2)], KNOWN)

    assert [f.error_type for f in report.findings] == [ErrorType.validation]


def test_unknown_employee_is_critical():
    report = validate([record("ZZ999", "2024-05", 2), record("", "2024-05", 3)], KNOWN)

    missing = [f for f in report.findings if f.error_type == ErrorType.employee_not_found]
    assert [f.employee_id for f in missing] == ["ZZ999"]
    assert missing[0].severity == Severity.critical
    assert report.summary.missing_employees == 1


def test_employee_directory_can_be_passed_instead_of_a_set():
    directory = StaticEmployeeDirectory(["A"])

    report = validate([record("A", "2024-05", 2), record("B", "2024-05", 3)], directory)

    assert [f.employee_id for f in report.findings] == ["B"]


def test_record_collects_findings_from_several_stages():
    records = [record("ZZ999", "2024-5", 2), record("ZZ999", "2024-5", 3)]

    report = validate(records, KNOWN)

    second_row = {f.error_type for f in report.findings if f.row == 3}
    assert second_row == {ErrorType.format, ErrorType.duplicate, ErrorType.employee_not_found}


def test_suggestions_depend_only_on_error_type():
    records = [record("X1", "2024-05", 2), record("X2", "2024-06", 3)]

    report = validate(records, KNOWN)

    assert {f.suggestion for f in report.findings} == {SUGGESTION_BY_TYPE[ErrorType.employee_not_found]}


def test_persistence_failures_become_database_findings():
    ok = record("A", "2024-05", 2)
    failed = record("B", "2024-05", 3)

    findings = persistence_findings([
        PersistenceOutcome(record=ok, saved=True),
        PersistenceOutcome(record=failed, saved=False, error="disk full"),
    ])

    assert len(findings) == 1
    assert findings[0].row == 3
    assert findings[0].error_type == ErrorType.database
    assert findings[0].severity == Severity.high
    assert "disk full" in findings[0].message
