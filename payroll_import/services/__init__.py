from payroll_import.services.column_detector import detect_columns
from payroll_import.services.auto_mapper import auto_map_columns
from payroll_import.services.mapping_configuration import apply_configuration, mapping_configuration_service
from payroll_import.services.column_alias import column_alias_service
from .payroll_parser import parse_files
from .validation import validate
from .reporting import export_findings
from .payroll_import import payroll_import_service

save_configuration = mapping_configuration_service.save_configuration

__all__ = [
    "detect_columns",
    "auto_map_columns",
    "apply_configuration",
    "parse_files",
    "validate",
    "save_configuration",
    "export_findings",
    "mapping_configuration_service",
    "column_alias_service",
    "payroll_import_service",
]
