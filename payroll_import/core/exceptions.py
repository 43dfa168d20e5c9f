"""Payroll import exception hierarchy.

Services raise these; routers translate them into HTTP responses.
"""


class PayrollImportError(Exception):
    """Base exception for all payroll import errors."""


class WorkbookFormatError(PayrollImportError):
    """A workbook could not be read or has no identifiable header row."""

    def __init__(self, filename: str, message: str) -> None:
        self.filename = filename
        self.message = message
        super().__init__(f"{filename}: {message}")


class ConfigurationNotFoundError(PayrollImportError):
    """Mapping configuration does not exist."""

    def __init__(self, config_id: int) -> None:
        self.config_id = config_id
        super().__init__(f"Mapping configuration {config_id} not found")


class ConfigurationConflictError(PayrollImportError):
    """A mapping configuration with the same name already exists."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Mapping configuration '{name}' already exists")


class AliasNotFoundError(PayrollImportError):
    """Column alias does not exist."""

    def __init__(self, alias_id: int) -> None:
        self.alias_id = alias_id
        super().__init__(f"Column alias {alias_id} not found")


class UnknownFieldError(PayrollImportError, ValueError):
    """A mapping references a field key that is not in the field schema."""

    def __init__(self, field_key: str) -> None:
        self.field_key = field_key
        super().__init__(f"Unknown payroll field '{field_key}'")
