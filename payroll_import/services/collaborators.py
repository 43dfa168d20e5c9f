"""Interfaces to the systems around the import engine, with SQL implementations."""
import uuid
from dataclasses import dataclass
from typing import Iterable, List, Optional, Protocol, Sequence, Set

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from payroll_import.core.logging_config import logger
from payroll_import.crud.employee import employee_crud
from payroll_import.crud.payroll import payroll_crud
from payroll_import.schemas.payroll_import import PayrollRecord


class EmployeeDirectory(Protocol):
    def exists(self, employee_id: str) -> bool:
        ...

    def known_ids(self, employee_ids: Iterable[str]) -> Set[str]:
        ...


@dataclass(frozen=True)
class PersistenceOutcome:
    record: PayrollRecord
    saved: bool
    error: Optional[str] = None


class PayrollRecordStore(Protocol):
    def save(self, records: Sequence[PayrollRecord]) -> List[PersistenceOutcome]:
        ...


class StaticEmployeeDirectory:
    """Directory backed by a fixed set of ids"""

    def __init__(self, employee_ids: Iterable[str]):
        self._ids = set(employee_ids)

    def exists(self, employee_id: str) -> bool:
        return employee_id in self._ids

    def known_ids(self, employee_ids: Iterable[str]) -> Set[str]:
        return {employee_id for employee_id in employee_ids if employee_id in self._ids}


class SqlEmployeeDirectory:
    """Directory backed by the employee table"""

    def __init__(self, db: Session):
        self.db = db

    def exists(self, employee_id: str) -> bool:
        return employee_crud.exists(self.db, employee_id)

    def known_ids(self, employee_ids: Iterable[str]) -> Set[str]:
        return employee_crud.existing_ids(self.db, employee_ids)


class SqlPayrollRecordStore:
    """
    Upserts records into the payroll table.
    
    Each record is written inside a savepoint so one failing row is
    reported without undoing the others; the batch is committed once.
    """

    def __init__(self, db: Session):
        self.db = db

    def save(self, records: Sequence[PayrollRecord]) -> List[PersistenceOutcome]:
        batch_id = uuid.uuid4().hex
        outcomes = []
        for record in records:
            try:
                with self.db.begin_nested():
                    payroll_crud.stage_upsert(
                        self.db,
                        employee_id=record.employee_id,
                        salary_month=record.salary_month,
                        fields=record.fields,
                        source_file=record.source_file,
                        source_row=record.source_row,
                        import_batch_id=batch_id,
                    )
                outcomes.append(PersistenceOutcome(record=record, saved=True))
            except SQLAlchemyError as e:
                logger.error(
                    f"Failed to store payroll row {record.source_file}:{record.source_row} "
                    f"({record.employee_id}/{record.salary_month}): {str(e)}"
                )
                outcomes.append(PersistenceOutcome(record=record, saved=False, error=str(e.__cause__ or e)))
        
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Payroll batch {batch_id} commit failed: {str(e)}")
            return [
                PersistenceOutcome(record=o.record, saved=False, error=o.error or str(e))
                for o in outcomes
            ]
        
        saved = sum(1 for o in outcomes if o.saved)
        logger.info(f"Stored {saved}/{len(records)} payroll rows (batch {batch_id})")
        return outcomes
