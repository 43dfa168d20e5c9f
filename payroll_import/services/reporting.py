import io
import math
from dataclasses import dataclass
from datetime import date, datetime
from typing import List, Optional, Sequence

import pandas as pd

from payroll_import.core.config import settings
from payroll_import.core.logging_config import logger
from payroll_import.schemas.payroll_import import (
    ErrorType,
    FindingPage,
    ImportFinding,
    ImportResult,
    ImportSummary,
    Severity,
)
from payroll_import.services.field_schema import EMPLOYEE_ID, NET_SALARY, SALARY_MONTH, get_field
from payroll_import.services.payroll_parser import ParseResult
from payroll_import.services.validation import ERROR_TYPE_LABELS, SEVERITY_RANK, summarize
from payroll_import.utils.headers import fold_header

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
CSV_MEDIA_TYPE = "text/csv"

FINDINGS_SHEET = "Errors"
STATISTICS_SHEET = "Statistics"
CORRECTED_VALUE_COLUMN = "Corrected Value"

__all__ = [
    "ExportArtifact",
    "summarize",
    "build_import_result",
    "filter_findings",
    "export_findings",
    "build_configuration_template",
]


@dataclass(frozen=True)
class ExportArtifact:
    filename: str
    media_type: str
    content: bytes


def record_key(file_index: Optional[int], source_file: Optional[str], row: int):
    return (file_index or 0, source_file or "", row)


def build_import_result(
    parse_result: ParseResult,
    findings: Sequence[ImportFinding],
    committed_count: int = 0,
    config_id: Optional[int] = None,
) -> ImportResult:
    """
    Aggregate a parsed batch and its findings.
    
    A record counts as an error when any of its findings is medium or
    worse, as a warning when all of them are low, and as a success when it
    has none.
    """
    worst = {}
    for finding in findings:
        key = record_key(finding.file_index, finding.source_file, finding.row)
        rank = SEVERITY_RANK[finding.severity]
        worst[key] = max(worst.get(key, rank), rank)
    
    success = error = warning = 0
    for record in parse_result.records:
        rank = worst.get(record_key(record.file_index, record.source_file, record.source_row))
        if rank is None:
            success += 1
        elif rank >= SEVERITY_RANK[Severity.medium]:
            error += 1
        else:
            warning += 1
    
    return ImportResult(
        succeeded=not findings and not parse_result.file_errors,
        total_rows=parse_result.total_rows,
        success_count=success,
        error_count=error,
        warning_count=warning,
        skipped_count=parse_result.skipped_count,
        records=parse_result.records,
        findings=list(findings),
        file_errors=parse_result.file_errors,
        summary=summarize(findings, parse_result.files_processed),
        committed_count=committed_count,
        config_id=config_id,
        original_headers=parse_result.original_headers,
    )


def _matches_search(finding: ImportFinding, needle: str) -> bool:
    haystack = [
        finding.message,
        finding.employee_id or "",
        finding.salary_month or "",
        finding.source_file or "",
        finding.field_key or "",
        str(finding.row),
    ]
    return any(needle in value.casefold() for value in haystack)


def filter_findings(
    findings: Sequence[ImportFinding],
    error_type: Optional[ErrorType] = None,
    severity: Optional[Severity] = None,
    search: Optional[str] = None,
    page: int = 1,
    page_size: Optional[int] = None,
) -> FindingPage:
    """Filter by type, severity and free text, then return one page"""
    page_size = page_size or settings.FINDINGS_PAGE_SIZE
    items = list(findings)
    if error_type is not None:
        items = [f for f in items if f.error_type == error_type]
    if severity is not None:
        items = [f for f in items if f.severity == severity]
    if search and search.strip():
        needle = search.strip().casefold()
        items = [f for f in items if _matches_search(f, needle)]
    
    total = len(items)
    total_pages = max(1, math.ceil(total / page_size))
    page = max(1, page)
    start = (page - 1) * page_size
    return FindingPage(
        items=items[start:start + page_size],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=total_pages,
    )


def _findings_frame(findings: Sequence[ImportFinding], original_headers: Sequence[str]) -> pd.DataFrame:
    rows = []
    for number, finding in enumerate(findings, start=1):
        row = {
            "No.": number,
            "Row": finding.row,
            "File": finding.source_file or "",
            "Employee ID": finding.employee_id or "",
            "Salary Month": finding.salary_month or "",
            "Field": finding.field_key or "",
            "Error Type": ERROR_TYPE_LABELS[finding.error_type],
            "Severity": finding.severity.value,
            "Message": finding.message,
            "Suggestion": finding.suggestion,
            CORRECTED_VALUE_COLUMN: "",
        }
        original = finding.original_data or {}
        for header in original_headers:
            # Original headers may collide with the report's own columns
            column = header if header not in row else f"{header} (original)"
            row[column] = original.get(header, "")
        rows.append(row)
    return pd.DataFrame(rows)


def _statistics_frame(findings: Sequence[ImportFinding], summary: ImportSummary) -> pd.DataFrame:
    rows = [
        {"Metric": "Total findings", "Value": len(findings)},
        {"Metric": "Files processed", "Value": summary.files_processed},
        {"Metric": "Duplicates found", "Value": summary.duplicates_found},
        {"Metric": "Missing employees", "Value": summary.missing_employees},
        {"Metric": "Data inconsistencies", "Value": summary.data_inconsistencies},
    ]
    for error_type in ErrorType:
        rows.append({
            "Metric": f"Type: {ERROR_TYPE_LABELS[error_type]}",
            "Value": sum(1 for f in findings if f.error_type == error_type),
        })
    for severity in Severity:
        rows.append({
            "Metric": f"Severity: {severity.value}",
            "Value": sum(1 for f in findings if f.severity == severity),
        })
    return pd.DataFrame(rows)


def export_findings(
    findings: Sequence[ImportFinding],
    original_headers: Sequence[str] = (),
    fmt: str = "xlsx",
    summary: Optional[ImportSummary] = None,
    file_name: str = "import_errors",
) -> ExportArtifact:
    """
    Render findings as a downloadable, fixable error report.
    
    Args:
        findings: Findings to export (may be empty)
        original_headers: Source headers whose row values are appended
        fmt: "xlsx" (findings and statistics sheets) or "csv"
        summary: Counters for the statistics view (computed when omitted)
        file_name: Base name of the artifact
        
    Returns:
        ExportArtifact; with no findings only the statistics are written
    """
    if fmt not in ("xlsx", "csv"):
        raise ValueError(f"Unsupported export format '{fmt}'")
    
    findings = list(findings)
    summary = summary or summarize(findings)
    statistics = _statistics_frame(findings, summary)
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    filename = f"{file_name}_{stamp}.{fmt}"
    
    if fmt == "csv":
        frame = _findings_frame(findings, original_headers) if findings else statistics
        content = frame.to_csv(index=False).encode("utf-8-sig")
        media_type = CSV_MEDIA_TYPE
    else:
        buffer = io.BytesIO()
        with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
            if findings:
                _findings_frame(findings, original_headers).to_excel(writer, index=False, sheet_name=FINDINGS_SHEET)
            statistics.to_excel(writer, index=False, sheet_name=STATISTICS_SHEET)
        content = buffer.getvalue()
        media_type = XLSX_MEDIA_TYPE
    
    logger.info(f"Exported {len(findings)} findings as {filename}")
    return ExportArtifact(filename=filename, media_type=media_type, content=content)


TEMPLATE_SHEET = "Import Template"
FALLBACK_EMPLOYEE_IDS = ("EMP001", "EMP002", "EMP003")

# Plausible figures for the sample rows; other number fields get 0
SAMPLE_AMOUNTS = {
    "he_so_lam_viec": 1.0,
    "he_so_phu_cap_ket_qua": 0.3,
    "he_so_luong_co_ban": 2.34,
    "luong_toi_thieu_cty": 4680000,
    "ngay_cong_trong_gio": 22,
    "gio_cong_tang_ca": 8,
    "gio_an_ca": 22,
    "tong_gio_lam_viec": 198,
    "tong_he_so_quy_doi": 22,
    "ngay_cong_phep_le": 1,
    "tien_phep_le": 300000,
    "tam_ung": 5000000,
    "bhxh_bhtn_bhyt_total": 1500000,
}
# Amounts that grow with the sample row number: (base, step)
SAMPLE_SERIES = {
    "tong_luong_san_pham_cong_doan": (15000000, 1000000),
    "tien_luong_san_pham_trong_gio": (15000000, 1000000),
    "tien_luong_tang_ca": (500000, 100000),
    "tong_cong_tien_luong": (20000000, 2000000),
    "thue_tncn": (800000, 100000),
    NET_SALARY: (18000000, 1800000),
}


def _previous_month(today: date) -> str:
    if today.month == 1:
        return f"{today.year - 1}-12"
    return f"{today.year}-{today.month - 1:02d}"


def _sample_value(field_key: str, number: int, employee_id: str, salary_month: str):
    if field_key == EMPLOYEE_ID:
        return employee_id
    if field_key == SALARY_MONTH:
        return salary_month
    if field_key in SAMPLE_SERIES:
        base, step = SAMPLE_SERIES[field_key]
        return base + number * step
    if field_key in SAMPLE_AMOUNTS:
        return SAMPLE_AMOUNTS[field_key]
    spec = get_field(field_key)
    return spec.default_value if spec else ""


def build_configuration_template(
    config,
    employee_ids: Sequence[str] = (),
    today: Optional[date] = None,
) -> ExportArtifact:
    """
    Sample workbook laid out the way a saved configuration expects.
    
    The header row holds the configuration's column names, highest
    confidence first; three sample rows follow, using real employee ids
    when some are given and last month as the salary month.
    
    Raises:
        ValueError: the configuration has no field mappings
    """
    mappings = sorted(config.field_mappings, key=lambda m: m.confidence_score, reverse=True)
    if not mappings:
        raise ValueError(f"Configuration '{config.name}' has no field mappings")
    
    today = today or date.today()
    salary_month = _previous_month(today)
    ids = list(employee_ids)[:len(FALLBACK_EMPLOYEE_IDS)]
    ids += FALLBACK_EMPLOYEE_IDS[len(ids):]
    
    rows = [
        [_sample_value(m.field_key, number, employee_id, salary_month) for m in mappings]
        for number, employee_id in enumerate(ids, start=1)
    ]
    frame = pd.DataFrame(rows, columns=[m.column_name for m in mappings])
    
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        frame.to_excel(writer, index=False, sheet_name=TEMPLATE_SHEET)
        sheet = writer.sheets[TEMPLATE_SHEET]
        for cell in sheet[1]:
            sheet.column_dimensions[cell.column_letter].width = 20
    
    # Content-Disposition must stay ASCII
    slug = "".join(
        ch for ch in "-".join(fold_header(config.name).split())
        if ch.isascii() and (ch.isalnum() or ch in "-_")
    ) or "configuration"
    filename = f"import-template-{slug}-{today.isoformat()}.xlsx"
    logger.info(f"Built import template for configuration id={config.id} ({len(mappings)} columns)")
    return ExportArtifact(filename=filename, media_type=XLSX_MEDIA_TYPE, content=buffer.getvalue())
