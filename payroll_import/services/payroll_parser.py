"""
Multi-file payroll parser.

Each workbook is read in its own worker thread; results are merged after
every file has finished, in upload order then row order. Merge order is
what duplicate detection later relies on.
"""
import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, date
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import pandas as pd

from payroll_import.core.config import settings
from payroll_import.core.exceptions import WorkbookFormatError
from payroll_import.core.logging_config import logger
from payroll_import.schemas.column_mapping import ColumnMapping
from payroll_import.schemas.field_schema import FieldSpec, FieldValueType
from payroll_import.schemas.payroll_import import FileError, PayrollRecord
from payroll_import.services.column_detector import DetectedHeader, find_header
from payroll_import.services.field_schema import EMPLOYEE_ID, SALARY_MONTH, get_field_schema
from payroll_import.services.workbook_reader import read_sheet, is_blank, cell_text, raw_value

MONTH_KEY_PATTERN = re.compile(r"^\d{4}-\d{2}$")


@dataclass
class WorkbookUpload:
    filename: str
    content: bytes


@dataclass
class ParseResult:
    records: List[PayrollRecord] = field(default_factory=list)
    skipped_count: int = 0
    files_processed: int = 0
    file_errors: List[FileError] = field(default_factory=list)
    original_headers: List[str] = field(default_factory=list)  # Union of headers, first-seen order

    @property
    def total_rows(self) -> int:
        return len(self.records)


@dataclass
class _FileParse:
    records: List[PayrollRecord]
    skipped_count: int
    headers: List[str]


def coerce_number(value: Any) -> Union[int, float]:
    """Blank or unparseable cells count as 0"""
    if is_blank(value) or isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip().replace(",", "").replace(" ", "")
        try:
            number = float(text)
        except ValueError:
            return 0
    if number != number or number in (float("inf"), float("-inf")):
        return 0
    return int(number) if number.is_integer() else number


def coerce_month(value: Any) -> Tuple[str, bool]:
    """
    Coerce a cell to a YYYY-MM month key.
    
    Returns:
        Tuple of (value, parsed); unparsed values are returned as raw text
    """
    if is_blank(value):
        return "", True
    if isinstance(value, (datetime, date, pd.Timestamp)):
        return value.strftime("%Y-%m"), True
    text = cell_text(value)
    return text, bool(MONTH_KEY_PATTERN.match(text))


def coerce_value(spec: FieldSpec, value: Any) -> Tuple[Any, bool]:
    if spec.value_type == FieldValueType.number:
        return coerce_number(value), True
    if spec.value_type == FieldValueType.date:
        return coerce_month(value)
    return cell_text(value), True


def _parse_rows(
    header: DetectedHeader,
    mapping: ColumnMapping,
    field_schema: Sequence[FieldSpec],
    file_index: int = 0,
) -> _FileParse:
    frame = header.frame
    positions = {name: position for position, name in header.positions}
    targets = []
    for spec in field_schema:
        column = mapping.column_for(spec.key)
        position = positions.get(column) if column else None
        if column and position is None:
            logger.warning(f"'{header.filename}': mapped column '{column}' for '{spec.key}' is missing")
        targets.append((spec, position))
    
    records = []
    skipped = 0
    for idx in range(header.header_index + 1, len(frame)):
        row = frame.iloc[idx].tolist()
        fields: Dict[str, Any] = {}
        unparsed: List[str] = []
        for spec, position in targets:
            if position is None or position >= len(row):
                fields[spec.key] = spec.default_value
                continue
            value, parsed = coerce_value(spec, row[position])
            fields[spec.key] = value
            if not parsed:
                unparsed.append(spec.key)
        
        employee_id = str(fields.get(EMPLOYEE_ID, "") or "")
        salary_month = str(fields.get(SALARY_MONTH, "") or "")
        if not employee_id and not salary_month:
            skipped += 1
            continue
        
        records.append(PayrollRecord(
            employee_id=employee_id,
            salary_month=salary_month,
            fields=fields,
            source_file=header.filename,
            source_row=idx + 1,
            file_index=file_index,
            unparsed_fields=unparsed,
            original_data={
                name: raw_value(row[position]) if position < len(row) else ""
                for position, name in header.positions
            },
        ))
    return _FileParse(records=records, skipped_count=skipped, headers=list(header.columns))


def parse_workbook(
    upload: WorkbookUpload,
    mapping: ColumnMapping,
    field_schema: Optional[Sequence[FieldSpec]] = None,
    file_index: int = 0,
) -> _FileParse:
    """
    Parse the rows of one workbook under a mapping.
    
    file_index is the workbook's position in its batch; records carry it
    so two uploads with the same filename stay distinguishable.
    
    Raises:
        WorkbookFormatError: The file cannot be read or has no header
    """
    field_schema = list(field_schema) if field_schema is not None else get_field_schema()
    header = find_header(read_sheet(upload.content, upload.filename), upload.filename)
    result = _parse_rows(header, mapping, field_schema, file_index)
    logger.info(
        f"Parsed '{upload.filename}': {len(result.records)} rows kept, "
        f"{result.skipped_count} blank rows skipped"
    )
    return result


def parse_files(
    files: Sequence[WorkbookUpload],
    mapping: Union[ColumnMapping, Sequence[ColumnMapping]],
    field_schema: Optional[Sequence[FieldSpec]] = None,
    max_workers: Optional[int] = None,
) -> ParseResult:
    """
    Parse and merge several workbooks.
    
    Args:
        files: Uploaded workbooks, in merge order
        mapping: One shared mapping, or one mapping per file
        field_schema: Fields to extract (defaults to the payroll registry)
        max_workers: Thread pool size (defaults to PARSE_MAX_WORKERS)
        
    Returns:
        ParseResult; a file that cannot be read contributes a FileError
        instead of records
    """
    if isinstance(mapping, ColumnMapping):
        mappings = [mapping] * len(files)
    else:
        mappings = list(mapping)
        if len(mappings) != len(files):
            raise ValueError(f"Expected {len(files)} mappings (one per file), got {len(mappings)}")
    
    field_schema = list(field_schema) if field_schema is not None else get_field_schema()
    result = ParseResult()
    if not files:
        return result
    
    workers = max(1, min(max_workers or settings.PARSE_MAX_WORKERS, len(files)))
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [
            executor.submit(parse_workbook, upload, file_mapping, field_schema, index)
            for index, (upload, file_mapping) in enumerate(zip(files, mappings))
        ]
        # Merge only after every file has been parsed, in upload order
        outcomes = []
        for upload, future in zip(files, futures):
            try:
                outcomes.append((upload, future.result(), None))
            except WorkbookFormatError as e:
                logger.error(f"Skipping file '{upload.filename}': {e.message}")
                outcomes.append((upload, None, FileError(filename=upload.filename, message=e.message)))
    
    for upload, parsed, error in outcomes:
        if error is not None:
            result.file_errors.append(error)
            continue
        result.files_processed += 1
        result.records.extend(parsed.records)
        result.skipped_count += parsed.skipped_count
        for name in parsed.headers:
            if name not in result.original_headers:
                result.original_headers.append(name)
    
    logger.info(
        f"Merged {result.files_processed}/{len(files)} files: {result.total_rows} records, "
        f"{result.skipped_count} skipped, {len(result.file_errors)} file errors"
    )
    return result
