from typing import Optional, List, Tuple
from sqlalchemy import select, update, func, desc
from sqlalchemy.orm import Session, selectinload
from payroll_import.crud.base import CRUDBase
from payroll_import.models.mapping_configuration import MappingConfiguration, ConfigurationFieldMapping
from payroll_import.schemas.column_mapping import (
    FieldMapping,
    MappingConfigurationCreate,
    MappingConfigurationUpdate,
)
from payroll_import.core.logging_config import logger


class CRUDMappingConfiguration(CRUDBase[MappingConfiguration, MappingConfigurationCreate, MappingConfigurationUpdate]):
    """
    CRUD operations for MappingConfiguration.
    
    Methods prefixed with stage_ only flush; the service commits them
    together with related writes (aliases, default flag) as one transaction.
    """
    
    def get(self, db: Session, id: int) -> Optional[MappingConfiguration]:
        stmt = select(MappingConfiguration).where(
            MappingConfiguration.id == id
        ).options(selectinload(MappingConfiguration.field_mappings))
        return db.execute(stmt).scalar_one_or_none()
    
    def get_by_name(self, db: Session, name: str) -> Optional[MappingConfiguration]:
        stmt = select(MappingConfiguration).where(MappingConfiguration.name == name.strip())
        return db.execute(stmt).scalar_one_or_none()
    
    def get_default(self, db: Session) -> Optional[MappingConfiguration]:
        stmt = select(MappingConfiguration).where(
            MappingConfiguration.is_default.is_(True),
            MappingConfiguration.is_active.is_(True)
        ).options(selectinload(MappingConfiguration.field_mappings))
        return db.execute(stmt).scalars().first()
    
    def search(
        self,
        db: Session,
        *,
        name: Optional[str] = None,
        is_active: Optional[bool] = None,
        is_default: Optional[bool] = None,
        created_by: Optional[str] = None,
        skip: int = 0,
        limit: int = 20
    ) -> Tuple[List[MappingConfiguration], int]:
        stmt = select(MappingConfiguration)
        if name:
            stmt = stmt.where(MappingConfiguration.name.ilike(f"%{name}%"))
        if is_active is not None:
            stmt = stmt.where(MappingConfiguration.is_active.is_(is_active))
        if is_default is not None:
            stmt = stmt.where(MappingConfiguration.is_default.is_(is_default))
        if created_by:
            stmt = stmt.where(MappingConfiguration.created_by == created_by)
        
        total = db.execute(select(func.count()).select_from(stmt.subquery())).scalar_one()
        stmt = stmt.options(selectinload(MappingConfiguration.field_mappings)).order_by(
            desc(MappingConfiguration.created_at), desc(MappingConfiguration.id)
        ).offset(skip).limit(limit)
        return list(db.execute(stmt).scalars().all()), total
    
    def stage_clear_default(self, db: Session, *, except_id: Optional[int] = None) -> None:
        """Unset the default flag everywhere (optionally sparing one configuration)"""
        stmt = update(MappingConfiguration).where(MappingConfiguration.is_default.is_(True))
        if except_id is not None:
            stmt = stmt.where(MappingConfiguration.id != except_id)
        db.execute(stmt.values(is_default=False).execution_options(synchronize_session="fetch"))
    
    def stage_create(
        self,
        db: Session,
        *,
        name: str,
        description: Optional[str],
        field_mappings: List[FieldMapping],
        is_default: bool,
        created_by: Optional[str]
    ) -> MappingConfiguration:
        config = MappingConfiguration(
            name=name.strip(),
            description=description.strip() if description else None,
            is_default=is_default,
            is_active=True,
            created_by=created_by,
        )
        config.field_mappings = self._build_field_mappings(field_mappings)
        db.add(config)
        db.flush()
        return config
    
    def stage_replace(
        self,
        db: Session,
        *,
        db_obj: MappingConfiguration,
        obj_in: MappingConfigurationUpdate
    ) -> MappingConfiguration:
        """Replace name, flags and the full field-mapping list of a configuration"""
        db_obj.name = obj_in.name.strip()
        db_obj.description = obj_in.description.strip() if obj_in.description else None
        db_obj.is_default = obj_in.is_default and obj_in.is_active
        db_obj.is_active = obj_in.is_active
        db_obj.field_mappings.clear()
        db.flush()  # Drop old rows before re-inserting (uix_config_field)
        db_obj.field_mappings.extend(self._build_field_mappings(obj_in.field_mappings))
        db.add(db_obj)
        db.flush()
        return db_obj
    
    def _build_field_mappings(self, field_mappings: List[FieldMapping]) -> List[ConfigurationFieldMapping]:
        rows = []
        seen = set()
        for position, mapping in enumerate(field_mappings):
            if mapping.field_key in seen:
                logger.warning(f"Ignoring repeated mapping for field '{mapping.field_key}'")
                continue
            seen.add(mapping.field_key)
            rows.append(ConfigurationFieldMapping(
                position=position,
                field_key=mapping.field_key,
                column_name=mapping.column_name.strip(),
                confidence_score=mapping.confidence_score,
                mapping_type=mapping.mapping_type,
                validation_passed=mapping.validation_passed,
            ))
        return rows


mapping_configuration_crud = CRUDMappingConfiguration(MappingConfiguration)
