from typing import Optional
from sqlalchemy import select
from sqlalchemy.orm import Session
from payroll_import.models.payroll import Payroll


class PayrollCRUD:
    """Storage for committed payroll rows"""
    
    def get_by_employee_month(self, db: Session, employee_id: str, salary_month: str) -> Optional[Payroll]:
        stmt = select(Payroll).where(
            Payroll.employee_id == employee_id,
            Payroll.salary_month == salary_month
        )
        return db.execute(stmt).scalar_one_or_none()
    
    def stage_upsert(
        self,
        db: Session,
        *,
        employee_id: str,
        salary_month: str,
        fields: dict,
        source_file: Optional[str],
        source_row: Optional[int],
        import_batch_id: Optional[str]
    ) -> Payroll:
        """Insert or overwrite the row for (employee_id, salary_month) without committing"""
        existing = self.get_by_employee_month(db, employee_id, salary_month)
        row = existing or Payroll(employee_id=employee_id, salary_month=salary_month)
        row.fields = fields
        row.source_file = source_file
        row.source_row = source_row
        row.import_batch_id = import_batch_id
        db.add(row)
        db.flush()
        return row


payroll_crud = PayrollCRUD()
