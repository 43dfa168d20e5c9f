from typing import Optional, List, Tuple
from sqlalchemy import select, func, asc, desc
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from payroll_import.crud.base import CRUDBase
from payroll_import.models.column_alias import ColumnAlias, AliasOrigin
from payroll_import.schemas.column_mapping import ColumnAliasCreate, ColumnAliasUpdate
from payroll_import.utils.headers import normalize_header
from payroll_import.core.logging_config import logger

SORTABLE_COLUMNS = {
    "alias_text": ColumnAlias.alias_text,
    "confidence_score": ColumnAlias.confidence_score,
    "created_at": ColumnAlias.created_at,
    "field_key": ColumnAlias.field_key,
}


class CRUDColumnAlias(CRUDBase[ColumnAlias, ColumnAliasCreate, ColumnAliasUpdate]):
    """CRUD operations for ColumnAlias"""
    
    def get_by_field_and_text(
        self,
        db: Session,
        field_key: str,
        alias_text: str
    ) -> Optional[ColumnAlias]:
        return db.query(ColumnAlias).filter(
            ColumnAlias.field_key == field_key,
            ColumnAlias.alias_key == normalize_header(alias_text)
        ).first()
    
    def get_active(self, db: Session) -> List[ColumnAlias]:
        stmt = select(ColumnAlias).where(ColumnAlias.is_active.is_(True)).order_by(ColumnAlias.id)
        return list(db.execute(stmt).scalars().all())
    
    def search(
        self,
        db: Session,
        *,
        field_key: Optional[str] = None,
        alias_text: Optional[str] = None,
        is_active: Optional[bool] = None,
        created_by: Optional[str] = None,
        confidence_min: Optional[int] = None,
        confidence_max: Optional[int] = None,
        sort_by: str = "alias_text",
        sort_order: str = "asc",
        skip: int = 0,
        limit: int = 50
    ) -> Tuple[List[ColumnAlias], int]:
        """
        Filter aliases for the management screen.
        
        Returns:
            Tuple of (page of aliases, total matching count)
        """
        stmt = select(ColumnAlias)
        if field_key:
            stmt = stmt.where(ColumnAlias.field_key == field_key)
        if alias_text:
            stmt = stmt.where(ColumnAlias.alias_text.ilike(f"%{alias_text}%"))
        if is_active is not None:
            stmt = stmt.where(ColumnAlias.is_active.is_(is_active))
        if created_by:
            stmt = stmt.where(ColumnAlias.created_by == created_by)
        if confidence_min is not None:
            stmt = stmt.where(ColumnAlias.confidence_score >= confidence_min)
        if confidence_max is not None:
            stmt = stmt.where(ColumnAlias.confidence_score <= confidence_max)
        
        total = db.execute(select(func.count()).select_from(stmt.subquery())).scalar_one()
        
        column = SORTABLE_COLUMNS.get(sort_by, ColumnAlias.alias_text)
        order = asc(column) if sort_order == "asc" else desc(column)
        stmt = stmt.order_by(order, ColumnAlias.id).offset(skip).limit(limit)
        return list(db.execute(stmt).scalars().all()), total
    
    def stage_upsert(
        self,
        db: Session,
        *,
        field_key: str,
        alias_text: str,
        confidence_score: int,
        origin: AliasOrigin,
        created_by: Optional[str] = None,
        config_id: Optional[int] = None
    ) -> ColumnAlias:
        """
        Insert or replace an alias without committing.
        
        The whole alias row is rewritten (confidence, origin, link), so the
        caller's commit publishes it in one step.
        """
        alias_text = alias_text.strip()
        existing = self.get_by_field_and_text(db, field_key, alias_text)
        if existing:
            existing.alias_text = alias_text
            existing.confidence_score = confidence_score
            existing.origin = origin
            existing.is_active = True
            existing.config_id = config_id if config_id is not None else existing.config_id
            if created_by:
                existing.created_by = created_by
            db.add(existing)
            db.flush()
            return existing
        
        new_alias = ColumnAlias(
            field_key=field_key,
            alias_text=alias_text,
            alias_key=normalize_header(alias_text),
            confidence_score=confidence_score,
            origin=origin,
            is_active=True,
            created_by=created_by,
            config_id=config_id,
        )
        db.add(new_alias)
        db.flush()
        return new_alias
    
    def upsert(
        self,
        db: Session,
        *,
        field_key: str,
        alias_text: str,
        confidence_score: int,
        origin: AliasOrigin,
        created_by: Optional[str] = None,
        config_id: Optional[int] = None
    ) -> ColumnAlias:
        """Create or update an alias (last write wins on confidence)"""
        try:
            alias = self.stage_upsert(
                db,
                field_key=field_key,
                alias_text=alias_text,
                confidence_score=confidence_score,
                origin=origin,
                created_by=created_by,
                config_id=config_id,
            )
            db.commit()
            db.refresh(alias)
            logger.info(f"Saved alias '{alias_text}' for field={field_key} ({confidence_score})")
            return alias
        except IntegrityError:
            # Race condition: another request inserted the same alias between check and insert
            db.rollback()
            existing = self.get_by_field_and_text(db, field_key, alias_text)
            if existing is None:
                raise
            existing.confidence_score = confidence_score
            existing.origin = origin
            existing.is_active = True
            db.commit()
            db.refresh(existing)
            logger.info(f"Updated alias (race) '{alias_text}' for field={field_key}")
            return existing
    
    def update(self, db: Session, *, db_obj: ColumnAlias, obj_in: ColumnAliasUpdate | dict) -> ColumnAlias:
        """Update an alias, keeping alias_key in sync with alias_text"""
        if isinstance(obj_in, dict):
            update_data = dict(obj_in)
        else:
            update_data = obj_in.model_dump(exclude_unset=True, exclude_none=True)
        if update_data.get("alias_text"):
            update_data["alias_text"] = update_data["alias_text"].strip()
            update_data["alias_key"] = normalize_header(update_data["alias_text"])
        return super().update(db=db, db_obj=db_obj, obj_in=update_data)


column_alias_crud = CRUDColumnAlias(ColumnAlias)
