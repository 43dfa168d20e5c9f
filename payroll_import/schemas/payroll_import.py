import enum
from pydantic import BaseModel, Field
from typing import List, Dict, Any, Optional
from payroll_import.schemas.column_mapping import ColumnMapping, FieldMapping


class ErrorType(str, enum.Enum):
    validation = "validation"
    duplicate = "duplicate"
    employee_not_found = "employee_not_found"
    database = "database"
    format = "format"


class Severity(str, enum.Enum):
    low = "low"
    medium = "medium"
    high = "high"
    critical = "critical"


class PayrollRecord(BaseModel):
    """One spreadsheet row coerced to the field schema"""
    employee_id: str = ""
    salary_month: str = ""
    fields: Dict[str, Any] = {}  # {field_key: typed value}
    source_file: str
    source_row: int  # 1-based spreadsheet row number
    file_index: int = 0  # Position of the source file in the upload batch
    unparsed_fields: List[str] = []  # Fields kept raw because coercion failed
    original_data: Dict[str, Any] = {}  # {header: raw cell value}

    model_config = {"frozen": True}


class ImportFinding(BaseModel):
    """One classified problem with one record"""
    row: int
    source_file: Optional[str] = None
    file_index: Optional[int] = None
    employee_id: Optional[str] = None
    salary_month: Optional[str] = None
    field_key: Optional[str] = None
    message: str
    error_type: ErrorType
    severity: Severity
    suggestion: str
    original_data: Optional[Dict[str, Any]] = None

    model_config = {"frozen": True}


class FileError(BaseModel):
    """Parse-time failure that aborted a whole file"""
    filename: str
    message: str


class ImportSummary(BaseModel):
    files_processed: int = 0
    duplicates_found: int = 0
    missing_employees: int = 0
    data_inconsistencies: int = 0  # validation + format findings


class ImportResult(BaseModel):
    succeeded: bool
    total_rows: int = 0
    success_count: int = 0
    error_count: int = 0
    warning_count: int = 0
    skipped_count: int = 0
    records: List[PayrollRecord] = []
    findings: List[ImportFinding] = []
    file_errors: List[FileError] = []
    summary: ImportSummary = ImportSummary()
    committed_count: int = 0
    config_id: Optional[int] = None
    original_headers: List[str] = []  # Union of source headers, for the error export


class FindingPage(BaseModel):
    items: List[ImportFinding]
    total: int
    page: int
    page_size: int
    total_pages: int


class FindingsQuery(BaseModel):
    """Filter/search/paginate request for the on-screen findings list"""
    findings: List[ImportFinding]
    error_type: Optional[ErrorType] = None
    severity: Optional[Severity] = None
    search: Optional[str] = None
    page: int = Field(1, ge=1)
    page_size: Optional[int] = Field(None, ge=1, le=500)


class ExportFindingsRequest(BaseModel):
    findings: List[ImportFinding] = []
    original_headers: List[str] = []
    format: str = Field("xlsx", pattern="^(xlsx|csv)$")
    file_name: str = "import_errors"
    summary: Optional[ImportSummary] = None


class ImportOptions(BaseModel):
    """Form options accompanying an import upload (sent as JSON string)"""
    column_mapping: Optional[Dict[str, str]] = None  # Shared {field_key: column}
    file_mappings: Optional[List[Dict[str, str]]] = None  # One per file
    config_id: Optional[int] = None
    save_configuration: bool = False
    configuration_name: Optional[str] = None
    set_default: bool = False
    learn_aliases: bool = False
    created_by: Optional[str] = None

    def shared_mapping(self) -> Optional[ColumnMapping]:
        if self.column_mapping is None:
            return None
        return ColumnMapping.from_dict(self.column_mapping)

    def confirmed_field_mappings(self) -> List[FieldMapping]:
        """Assignments the reviewer supplied, shared or per file; never a guess"""
        if self.file_mappings is not None:
            return [
                field_mapping
                for mapping in self.file_mappings
                for field_mapping in ColumnMapping.from_dict(mapping).field_mappings()
            ]
        mapping = self.shared_mapping()
        return mapping.field_mappings() if mapping else []
