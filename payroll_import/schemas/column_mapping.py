from datetime import datetime
from pydantic import BaseModel, Field, model_validator
from typing import Any, List, Dict, Optional
from payroll_import.models.column_alias import AliasOrigin
from payroll_import.models.mapping_configuration import MappingType


class FieldMapping(BaseModel):
    """Assignment of one spreadsheet column to one canonical field"""
    field_key: str
    column_name: str
    confidence_score: int = Field(80, ge=0, le=100)
    mapping_type: MappingType = MappingType.manual
    validation_passed: bool = True

    class Config:
        from_attributes = True


class ColumnMapping(BaseModel):
    """
    Field -> column assignment for one file or one configuration.
    
    At most one column maps to each field and no column is shared
    between two fields.
    """
    assignments: Dict[str, FieldMapping] = {}  # {field_key: FieldMapping}

    @model_validator(mode="after")
    def check_injective(self):
        seen = {}
        for field_key, mapping in self.assignments.items():
            if mapping.field_key != field_key:
                raise ValueError(f"Assignment key '{field_key}' does not match field '{mapping.field_key}'")
            if mapping.column_name in seen:
                raise ValueError(
                    f"Column '{mapping.column_name}' is mapped to both "
                    f"'{seen[mapping.column_name]}' and '{field_key}'"
                )
            seen[mapping.column_name] = field_key
        return self

    @classmethod
    def from_dict(cls, mapping: Dict[str, str], mapping_type: MappingType = MappingType.manual) -> "ColumnMapping":
        """Build from a plain {field_key: column_name} dict (manual review output)"""
        return cls(assignments={
            field_key: FieldMapping(
                field_key=field_key,
                column_name=column,
                confidence_score=100 if mapping_type == MappingType.manual else 80,
                mapping_type=mapping_type,
            )
            for field_key, column in mapping.items() if column
        })

    def column_for(self, field_key: str) -> Optional[str]:
        mapping = self.assignments.get(field_key)
        return mapping.column_name if mapping else None

    def as_dict(self) -> Dict[str, str]:
        return {key: m.column_name for key, m in self.assignments.items()}

    def field_mappings(self) -> List[FieldMapping]:
        return list(self.assignments.values())


class ConfidenceSummary(BaseModel):
    high_confidence: int = 0  # >= 80
    medium_confidence: int = 0  # 50-79
    low_confidence: int = 0  # < 50


class MappingConflict(BaseModel):
    type: str  # "required_field_missing"
    field_key: Optional[str] = None
    message: str
    severity: str = "error"


class AutoMapResult(BaseModel):
    """Proposed mapping plus what was left over"""
    mapping: ColumnMapping
    detected_columns: List[str]
    unmapped_fields: List[str] = []
    unmapped_columns: List[str] = []
    confidence_summary: ConfidenceSummary = ConfidenceSummary()
    conflicts: List[MappingConflict] = []


class AutoMapRequest(BaseModel):
    columns: List[str]
    use_aliases: bool = True


class DetectedFile(BaseModel):
    """Columns found in one uploaded file"""
    filename: str
    columns: List[str] = []
    error: Optional[str] = None


class DetectColumnsResponse(BaseModel):
    files: List[DetectedFile]
    suggested: Optional[AutoMapResult] = None  # For the first readable file
    config_id: Optional[int] = None  # Configuration used to seed the suggestion


# ---------------------------------------------------------------------------
# Column aliases
# ---------------------------------------------------------------------------

class ColumnAliasCreate(BaseModel):
    field_key: str
    alias_text: str = Field(..., min_length=1)
    confidence_score: int = Field(100, ge=0, le=100)
    origin: AliasOrigin = AliasOrigin.manual
    is_active: bool = True
    config_id: Optional[int] = None


class ColumnAliasUpdate(BaseModel):
    alias_text: Optional[str] = Field(None, min_length=1)
    confidence_score: Optional[int] = Field(None, ge=0, le=100)
    is_active: Optional[bool] = None


class ColumnAliasResponse(BaseModel):
    id: int
    field_key: str
    alias_text: str
    confidence_score: int
    origin: AliasOrigin
    is_active: bool
    config_id: Optional[int] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ---------------------------------------------------------------------------
# Mapping configurations
# ---------------------------------------------------------------------------

class MappingConfigurationCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    field_mappings: List[FieldMapping] = []
    is_default: bool = False
    learn_aliases: bool = False  # Persist manual assignments as aliases


class MappingConfigurationUpdate(BaseModel):
    """Full replacement of a configuration's content"""
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    field_mappings: List[FieldMapping] = []
    is_default: bool = False
    is_active: bool = True


class MappingConfigurationResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    field_mappings: List[FieldMapping] = []
    is_default: bool
    is_active: bool
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ApplyConfigurationRequest(BaseModel):
    columns: List[str]


class ColumnAliasPage(BaseModel):
    items: List[ColumnAliasResponse]
    total: int
    skip: int
    limit: int


class BulkColumnAliasCreate(BaseModel):
    aliases: List[ColumnAliasCreate] = Field(..., min_length=1)


class BulkColumnAliasResponse(BaseModel):
    created: List[ColumnAliasResponse] = []
    errors: List[Dict[str, Any]] = []  # [{"index": 0, "error": "..."}]


class MappingConfigurationPage(BaseModel):
    items: List[MappingConfigurationResponse]
    total: int
    skip: int
    limit: int
