from typing import Iterable, List, Set
from sqlalchemy import select
from sqlalchemy.orm import Session
from payroll_import.models.employee import Employee


class EmployeeCRUD:
    """Read-only lookups against the employee directory table"""
    
    def existing_ids(self, db: Session, employee_ids: Iterable[str]) -> Set[str]:
        """Subset of employee_ids present in the directory"""
        ids = sorted({employee_id for employee_id in employee_ids if employee_id})
        found: Set[str] = set()
        # Chunk to stay under bind-parameter limits
        for start in range(0, len(ids), 500):
            chunk = ids[start:start + 500]
            stmt = select(Employee.employee_id).where(Employee.employee_id.in_(chunk))
            found.update(db.execute(stmt).scalars().all())
        return found
    
    def exists(self, db: Session, employee_id: str) -> bool:
        stmt = select(Employee.id).where(Employee.employee_id == employee_id)
        return db.execute(stmt).first() is not None
    
    def sample_ids(self, db: Session, limit: int = 3) -> List[str]:
        stmt = select(Employee.employee_id).order_by(Employee.employee_id).limit(limit)
        return list(db.execute(stmt).scalars().all())


employee_crud = EmployeeCRUD()
