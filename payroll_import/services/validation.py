"""
Validation of merged payroll records.

Stages run in a fixed order and independently of each other, so one record
can collect findings from several stages. Severity and remediation hints
are looked up by error type; they never depend on the row.
"""
import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple, Union

from payroll_import.core.logging_config import logger
from payroll_import.schemas.field_schema import FieldSpec
from payroll_import.schemas.payroll_import import (
    ErrorType,
    ImportFinding,
    ImportSummary,
    PayrollRecord,
    Severity,
)
from payroll_import.services.collaborators import (
    EmployeeDirectory,
    PersistenceOutcome,
    StaticEmployeeDirectory,
)
from payroll_import.services.field_schema import SALARY_MONTH, get_field_schema, required_fields

MONTH_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")

SEVERITY_BY_TYPE: Dict[ErrorType, Severity] = {
    ErrorType.validation: Severity.medium,
    ErrorType.format: Severity.low,
    ErrorType.duplicate: Severity.medium,
    ErrorType.employee_not_found: Severity.critical,
    ErrorType.database: Severity.high,
}

SUGGESTION_BY_TYPE: Dict[ErrorType, str] = {
    ErrorType.validation: "Fill in the missing required value in the source file and import the row again.",
    ErrorType.format: "Enter the salary month as YYYY-MM (for example 2024-05).",
    ErrorType.duplicate: "Remove the repeated row or correct its employee ID or salary month.",
    ErrorType.employee_not_found: "Check the employee ID, or add the employee to the directory before importing.",
    ErrorType.database: "Retry the import; contact the administrator if the problem persists.",
}

ERROR_TYPE_LABELS: Dict[ErrorType, str] = {
    ErrorType.validation: "Missing data",
    ErrorType.format: "Invalid format",
    ErrorType.duplicate: "Duplicate",
    ErrorType.employee_not_found: "Employee not found",
    ErrorType.database: "Database error",
}

SEVERITY_RANK: Dict[Severity, int] = {
    Severity.low: 0,
    Severity.medium: 1,
    Severity.high: 2,
    Severity.critical: 3,
}


@dataclass
class ValidationReport:
    findings: List[ImportFinding] = field(default_factory=list)
    summary: ImportSummary = field(default_factory=ImportSummary)


def make_finding(
    record: PayrollRecord,
    error_type: ErrorType,
    message: str,
    field_key: Optional[str] = None,
) -> ImportFinding:
    return ImportFinding(
        row=record.source_row,
        source_file=record.source_file,
        file_index=record.file_index,
        employee_id=record.employee_id or None,
        salary_month=record.salary_month or None,
        field_key=field_key,
        message=message,
        error_type=error_type,
        severity=SEVERITY_BY_TYPE[error_type],
        suggestion=SUGGESTION_BY_TYPE[error_type],
        original_data=dict(record.original_data) or None,
    )


def _is_default(spec: FieldSpec, value) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    return value == spec.default_value


def check_required(records: Sequence[PayrollRecord], field_schema: Sequence[FieldSpec]) -> List[ImportFinding]:
    required = required_fields(field_schema)
    findings = []
    for record in records:
        for spec in required:
            if _is_default(spec, record.fields.get(spec.key)):
                findings.append(make_finding(
                    record,
                    ErrorType.validation,
                    f"Required field '{spec.label}' is empty",
                    field_key=spec.key,
                ))
    return findings


def check_month_format(records: Sequence[PayrollRecord]) -> List[ImportFinding]:
    """Non-blank salary months must be YYYY-MM (blank ones are the required check's job)"""
    findings = []
    for record in records:
        month = record.salary_month
        if month and not MONTH_PATTERN.match(month):
            findings.append(make_finding(
                record,
                ErrorType.format,
                f"Salary month '{month}' is not in YYYY-MM format",
                field_key=SALARY_MONTH,
            ))
    return findings


def check_duplicates(records: Sequence[PayrollRecord]) -> List[ImportFinding]:
    """Flag every record after the first for the same (employee_id, salary_month)"""
    first_seen: Dict[Tuple[str, str], PayrollRecord] = {}
    findings = []
    for record in records:
        if not record.employee_id or not record.salary_month:
            continue
        key = (record.employee_id, record.salary_month)
        first = first_seen.get(key)
        if first is None:
            first_seen[key] = record
            continue
        findings.append(make_finding(
            record,
            ErrorType.duplicate,
            f"Employee {record.employee_id} already has a row for {record.salary_month} "
            f"({first.source_file}, row {first.source_row})",
        ))
    return findings


def _as_directory(known_employees: Union[EmployeeDirectory, Iterable[str]]) -> EmployeeDirectory:
    if hasattr(known_employees, "known_ids"):
        return known_employees
    return StaticEmployeeDirectory(known_employees)


def check_employees(
    records: Sequence[PayrollRecord],
    known_employees: Union[EmployeeDirectory, Iterable[str]],
) -> List[ImportFinding]:
    directory = _as_directory(known_employees)
    known: Set[str] = directory.known_ids({r.employee_id for r in records if r.employee_id})
    return [
        make_finding(
            record,
            ErrorType.employee_not_found,
            f"Employee ID '{record.employee_id}' does not exist in the employee directory",
        )
        for record in records
        if record.employee_id and record.employee_id not in known
    ]


def persistence_findings(outcomes: Iterable[PersistenceOutcome]) -> List[ImportFinding]:
    """Re-wrap record store failures as database findings"""
    return [
        make_finding(
            outcome.record,
            ErrorType.database,
            f"Could not save row: {outcome.error or 'unknown storage error'}",
        )
        for outcome in outcomes
        if not outcome.saved
    ]


def summarize(findings: Iterable[ImportFinding], files_processed: int = 0) -> ImportSummary:
    summary = ImportSummary(files_processed=files_processed)
    for finding in findings:
        if finding.error_type == ErrorType.duplicate:
            summary.duplicates_found += 1
        elif finding.error_type == ErrorType.employee_not_found:
            summary.missing_employees += 1
        elif finding.error_type in (ErrorType.validation, ErrorType.format):
            summary.data_inconsistencies += 1
    return summary


def validate(
    records: Sequence[PayrollRecord],
    known_employees: Union[EmployeeDirectory, Iterable[str]],
    field_schema: Optional[Sequence[FieldSpec]] = None,
    files_processed: int = 0,
) -> ValidationReport:
    """
    Run every validation stage over the merged record set.
    
    Args:
        records: Records in merge order
        known_employees: Employee ids, or an EmployeeDirectory
        field_schema: Schema whose required fields are checked
        files_processed: Carried into the summary
    """
    field_schema = list(field_schema) if field_schema is not None else get_field_schema()
    findings: List[ImportFinding] = []
    findings.extend(check_required(records, field_schema))
    findings.extend(check_month_format(records))
    findings.extend(check_duplicates(records))
    findings.extend(check_employees(records, known_employees))
    
    summary = summarize(findings, files_processed)
    logger.info(
        f"Validated {len(records)} records: {len(findings)} findings "
        f"({summary.duplicates_found} duplicates, {summary.missing_employees} unknown employees, "
        f"{summary.data_inconsistencies} data issues)"
    )
    return ValidationReport(findings=findings, summary=summary)
