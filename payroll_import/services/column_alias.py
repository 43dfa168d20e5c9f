from typing import Iterable, List, Optional, Tuple
from sqlalchemy.orm import Session
from payroll_import.core.exceptions import AliasNotFoundError, UnknownFieldError
from payroll_import.core.logging_config import logger
from payroll_import.crud.column_alias import column_alias_crud
from payroll_import.models.column_alias import ColumnAlias, AliasOrigin
from payroll_import.schemas.column_mapping import ColumnAliasCreate, ColumnAliasUpdate, FieldMapping
from payroll_import.services.auto_mapper import KnownAlias, as_known_aliases, ExactMatcher
from payroll_import.services.field_schema import get_field

LEARNED_ALIAS_CONFIDENCE = 100


class ColumnAliasService:
    """Service for the learned alias table"""
    
    def __init__(self):
        self.crud = column_alias_crud
    
    def known_aliases(self, db: Session) -> List[KnownAlias]:
        """Active aliases in the shape the auto-mapper consumes"""
        return as_known_aliases(self.crud.get_active(db))
    
    def get_alias(self, db: Session, alias_id: int) -> ColumnAlias:
        alias = self.crud.get(db=db, id=alias_id)
        if not alias:
            raise AliasNotFoundError(alias_id)
        return alias
    
    def search_aliases(self, db: Session, **filters) -> Tuple[List[ColumnAlias], int]:
        return self.crud.search(db, **filters)
    
    def create_alias(
        self,
        db: Session,
        alias_in: ColumnAliasCreate,
        created_by: Optional[str] = None
    ) -> ColumnAlias:
        if get_field(alias_in.field_key) is None:
            raise UnknownFieldError(alias_in.field_key)
        alias = self.crud.upsert(
            db,
            field_key=alias_in.field_key,
            alias_text=alias_in.alias_text,
            confidence_score=alias_in.confidence_score,
            origin=alias_in.origin,
            created_by=created_by,
            config_id=alias_in.config_id,
        )
        if not alias_in.is_active:
            alias = self.crud.update(db, db_obj=alias, obj_in={"is_active": False})
        return alias
    
    def bulk_create_aliases(
        self,
        db: Session,
        aliases_in: List[ColumnAliasCreate],
        created_by: Optional[str] = None
    ) -> Tuple[List[ColumnAlias], List[dict]]:
        """
        Create many aliases in one transaction.
        
        Returns:
            Tuple of (saved aliases, errors) where errors are {index, error}
        """
        saved = []
        errors = []
        for idx, alias_in in enumerate(aliases_in):
            if get_field(alias_in.field_key) is None:
                errors.append({"index": idx, "error": f"Unknown payroll field '{alias_in.field_key}'"})
                continue
            saved.append(self.crud.stage_upsert(
                db,
                field_key=alias_in.field_key,
                alias_text=alias_in.alias_text,
                confidence_score=alias_in.confidence_score,
                origin=alias_in.origin,
                created_by=created_by,
                config_id=alias_in.config_id,
            ))
        db.commit()
        for alias in saved:
            db.refresh(alias)
        logger.info(f"Bulk saved {len(saved)} aliases ({len(errors)} rejected)")
        return saved, errors
    
    def update_alias(self, db: Session, alias_id: int, alias_in: ColumnAliasUpdate) -> ColumnAlias:
        alias = self.get_alias(db, alias_id)
        return self.crud.update(db, db_obj=alias, obj_in=alias_in)
    
    def delete_alias(self, db: Session, alias_id: int) -> ColumnAlias:
        alias = self.crud.delete(db=db, id=alias_id)
        if not alias:
            raise AliasNotFoundError(alias_id)
        logger.info(f"Deleted alias id={alias_id} ('{alias.alias_text}' -> {alias.field_key})")
        return alias
    
    def stage_learned_aliases(
        self,
        db: Session,
        assignments: Iterable[FieldMapping],
        created_by: Optional[str] = None,
        config_id: Optional[int] = None
    ) -> List[ColumnAlias]:
        """
        Stage manual aliases for reviewer-confirmed assignments.
        
        Assignments the engine already recognizes (exact label match or an
        existing alias at full confidence) are skipped. Nothing is committed.
        """
        exact = ExactMatcher()
        learned = []
        for mapping in assignments:
            field = get_field(mapping.field_key)
            if field is None:
                raise UnknownFieldError(mapping.field_key)
            if exact.match(field, mapping.column_name) is not None:
                continue
            existing = self.crud.get_by_field_and_text(db, mapping.field_key, mapping.column_name)
            if existing and existing.is_active and existing.confidence_score >= LEARNED_ALIAS_CONFIDENCE:
                continue
            learned.append(self.crud.stage_upsert(
                db,
                field_key=mapping.field_key,
                alias_text=mapping.column_name,
                confidence_score=LEARNED_ALIAS_CONFIDENCE,
                origin=AliasOrigin.manual,
                created_by=created_by,
                config_id=config_id,
            ))
        return learned
    
    def learn_aliases(
        self,
        db: Session,
        assignments: Iterable[FieldMapping],
        created_by: Optional[str] = None,
        config_id: Optional[int] = None
    ) -> List[ColumnAlias]:
        """Persist reviewer-confirmed assignments as manual aliases (opt-in)"""
        learned = self.stage_learned_aliases(db, assignments, created_by=created_by, config_id=config_id)
        db.commit()
        for alias in learned:
            db.refresh(alias)
        logger.info(f"Learned {len(learned)} new aliases")
        return learned


column_alias_service = ColumnAliasService()
