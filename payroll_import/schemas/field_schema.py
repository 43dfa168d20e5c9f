import enum
from pydantic import BaseModel


class FieldValueType(str, enum.Enum):
    number = "number"
    text = "text"
    date = "date"  # month key, YYYY-MM


class FieldSpec(BaseModel):
    """One canonical payroll field"""
    key: str  # Globally unique; the join key everywhere else
    label: str  # Display label, matched against spreadsheet headers
    value_type: FieldValueType
    required: bool = False
    category: str = ""
    description: str = ""

    model_config = {"frozen": True}

    @property
    def default_value(self):
        """Value a cell coerces to when blank"""
        return 0 if self.value_type == FieldValueType.number else ""
