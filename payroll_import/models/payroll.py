from sqlalchemy import Column, Integer, String, UniqueConstraint
from payroll_import.database import Base, TimestampMixin, JSONType


class Payroll(Base, TimestampMixin):
    """Committed payroll row, one per (employee_id, salary_month)."""
    __tablename__ = "payroll"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(String, nullable=False, index=True)
    salary_month = Column(String, nullable=False, index=True)
    fields = Column(JSONType, nullable=False)  # {"field_key": value}
    source_file = Column(String, nullable=True)
    source_row = Column(Integer, nullable=True)
    import_batch_id = Column(String, nullable=True, index=True)

    __table_args__ = (
        UniqueConstraint('employee_id', 'salary_month', name='uix_payroll_employee_month'),
    )
