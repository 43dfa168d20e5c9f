from sqlalchemy import Column, Integer, String, Boolean
from payroll_import.database import Base, TimestampMixin


class Employee(Base, TimestampMixin):
    """
    Known-employee directory used to cross-reference imported payroll rows.
    
    Maintained by the HR side of the application; the import engine only reads it.
    """
    __tablename__ = "employee"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(String, nullable=False, unique=True, index=True)
    full_name = Column(String, nullable=True)
    department = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
