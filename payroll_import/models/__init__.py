from .column_alias import ColumnAlias
from .employee import Employee
from .mapping_configuration import MappingConfiguration, ConfigurationFieldMapping
from .payroll import Payroll
