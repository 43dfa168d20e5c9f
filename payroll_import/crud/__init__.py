from payroll_import.crud.base import CRUDBase
from payroll_import.crud.column_alias import column_alias_crud
from .employee import employee_crud
from .mapping_configuration import mapping_configuration_crud
from .payroll import payroll_crud

__all__ = ["CRUDBase", "column_alias_crud", "employee_crud", "mapping_configuration_crud", "payroll_crud"]
