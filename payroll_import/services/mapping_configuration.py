from datetime import datetime
from pathlib import PurePath
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from payroll_import.core.exceptions import (
    ConfigurationConflictError,
    ConfigurationNotFoundError,
    UnknownFieldError,
)
from payroll_import.core.logging_config import logger
from payroll_import.crud.mapping_configuration import mapping_configuration_crud
from payroll_import.models.mapping_configuration import MappingConfiguration, MappingType
from payroll_import.schemas.column_mapping import (
    AutoMapResult,
    ColumnMapping,
    FieldMapping,
    MappingConfigurationUpdate,
)
from payroll_import.schemas.field_schema import FieldSpec
from payroll_import.services.auto_mapper import (
    FUZZY_CONFIDENCE,
    MIN_FUZZY_LENGTH,
    KnownAlias,
    build_matchers,
    build_result,
    propose_assignments,
    auto_map_columns,
)
from payroll_import.services.column_alias import column_alias_service
from payroll_import.services.field_schema import get_field_schema, get_field
from payroll_import.utils.headers import normalize_header, contains_either_way


def _stored_mappings(config, field_schema: Sequence[FieldSpec]) -> List[FieldMapping]:
    known = {field.key for field in field_schema}
    mappings = []
    for row in config.field_mappings:
        mapping = FieldMapping.model_validate(row, from_attributes=True)
        if mapping.field_key not in known:
            logger.warning(f"Configuration references unknown field '{mapping.field_key}', skipping")
            continue
        mappings.append(mapping)
    return mappings


def apply_configuration(
    columns: Sequence[str],
    config,
    field_schema: Optional[Sequence[FieldSpec]] = None,
    aliases: Iterable[KnownAlias] = (),
) -> AutoMapResult:
    """
    Re-target a saved configuration onto freshly detected columns.
    
    Stored column names are matched exactly first, then case-insensitively
    (stored score and type kept). Whatever is still unmatched is tried by
    containment either way and downgraded to fuzzy. Fields the
    configuration does not cover are left to the auto-mapper, restricted
    to columns nobody claimed.
    
    Args:
        columns: Detected header names
        config: MappingConfiguration row or response schema
        field_schema: Fields to map (defaults to the payroll registry)
        aliases: Learned aliases for the auto-map fallback
    """
    field_schema = list(field_schema) if field_schema is not None else get_field_schema()
    assigned: Dict[str, FieldMapping] = {}
    claimed = set()
    
    def claim(stored: FieldMapping, column: str, **changes):
        assigned[stored.field_key] = stored.model_copy(update={"column_name": column, **changes})
        claimed.add(column)
    
    pending = _stored_mappings(config, field_schema)
    
    # Pass 1: exact string, then case-insensitive equality
    for equal in (
        lambda stored, column: stored == column,
        lambda stored, column: normalize_header(stored) == normalize_header(column),
    ):
        remaining = []
        for stored in pending:
            column = next(
                (c for c in columns if c not in claimed and equal(stored.column_name, c)),
                None
            )
            if column is None:
                remaining.append(stored)
            else:
                claim(stored, column)
        pending = remaining
    
    # Pass 2: containment either way
    for stored in pending:
        column = next(
            (
                c for c in columns
                if c not in claimed and contains_either_way(stored.column_name, c, MIN_FUZZY_LENGTH)
            ),
            None
        )
        if column is None:
            logger.debug(f"Stored column '{stored.column_name}' for '{stored.field_key}' not found")
            continue
        claim(
            stored,
            column,
            mapping_type=MappingType.fuzzy,
            confidence_score=min(stored.confidence_score, FUZZY_CONFIDENCE),
        )
    
    uncovered = [field for field in field_schema if field.key not in assigned]
    free_columns = [column for column in columns if column not in claimed]
    if uncovered and free_columns:
        assigned.update(propose_assignments(free_columns, uncovered, build_matchers(aliases)))
    
    result = build_result(columns, assigned, field_schema)
    logger.info(
        f"Applied configuration '{getattr(config, 'name', '?')}': "
        f"{len(result.mapping.assignments)} fields mapped"
    )
    return result


class MappingConfigurationService:
    """Service for saved mapping configurations"""
    
    def __init__(self):
        self.crud = mapping_configuration_crud
    
    def get_configuration(self, db: Session, config_id: int) -> MappingConfiguration:
        config = self.crud.get(db=db, id=config_id)
        if not config:
            raise ConfigurationNotFoundError(config_id)
        return config
    
    def get_default(self, db: Session) -> Optional[MappingConfiguration]:
        return self.crud.get_default(db)
    
    def list_configurations(self, db: Session, **filters) -> Tuple[List[MappingConfiguration], int]:
        return self.crud.search(db, **filters)
    
    def check_mappings(self, field_mappings: List[FieldMapping]) -> None:
        """
        Raises:
            UnknownFieldError: a key is not in the field registry
            ValueError: a column is shared by two fields
        """
        for mapping in field_mappings:
            if get_field(mapping.field_key) is None:
                raise UnknownFieldError(mapping.field_key)
        ColumnMapping(assignments={m.field_key: m for m in field_mappings})
    
    def stage_configuration(
        self,
        db: Session,
        name: str,
        field_mappings: List[FieldMapping],
        is_default: bool = False,
        description: Optional[str] = None,
        created_by: Optional[str] = None
    ) -> MappingConfiguration:
        """
        Validate and flush a new configuration; the caller commits.
        
        Raises:
            ConfigurationConflictError: name already taken
            UnknownFieldError: mapping references a field not in the schema
        """
        self.check_mappings(field_mappings)
        if self.crud.get_by_name(db, name):
            raise ConfigurationConflictError(name.strip())
        
        try:
            if is_default:
                self.crud.stage_clear_default(db)
            return self.crud.stage_create(
                db,
                name=name,
                description=description,
                field_mappings=field_mappings,
                is_default=is_default,
                created_by=created_by,
            )
        except IntegrityError:
            db.rollback()
            raise ConfigurationConflictError(name.strip())
    
    def save_configuration(
        self,
        db: Session,
        name: str,
        field_mappings: List[FieldMapping],
        is_default: bool = False,
        description: Optional[str] = None,
        created_by: Optional[str] = None,
        learn_aliases: bool = False
    ) -> MappingConfiguration:
        """
        Create a named configuration.
        
        Clearing the previous default, inserting the configuration and
        (when asked) learning aliases from its manual assignments are
        committed together.
        
        Raises:
            ConfigurationConflictError: name already taken
            UnknownFieldError: mapping references a field not in the schema
        """
        config = self.stage_configuration(
            db,
            name=name,
            field_mappings=field_mappings,
            is_default=is_default,
            description=description,
            created_by=created_by,
        )
        try:
            if learn_aliases:
                column_alias_service.stage_learned_aliases(
                    db,
                    [m for m in field_mappings if m.mapping_type == MappingType.manual],
                    created_by=created_by,
                    config_id=config.id,
                )
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ConfigurationConflictError(name.strip())
        
        db.refresh(config)
        logger.info(f"Saved mapping configuration '{config.name}' (id={config.id}, default={config.is_default})")
        return config
    
    def generate_name(self, db: Session, source_filename: Optional[str] = None) -> str:
        """Free "Auto-saved <file> <timestamp>" name, suffixed " (n)" on collision"""
        stem = PurePath(source_filename).stem if source_filename else "import"
        base_name = f"Auto-saved {stem} {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}"
        name = base_name
        suffix = 2
        while self.crud.get_by_name(db, name):
            name = f"{base_name} ({suffix})"
            suffix += 1
        return name
    
    def save_from_mapping(
        self,
        db: Session,
        mapping: ColumnMapping,
        source_filename: Optional[str] = None,
        created_by: Optional[str] = None,
        is_default: bool = False,
        learn_aliases: bool = False
    ) -> MappingConfiguration:
        """Save a confirmed mapping under a generated "Auto-saved" name"""
        return self.save_configuration(
            db,
            name=self.generate_name(db, source_filename),
            field_mappings=mapping.field_mappings(),
            is_default=is_default,
            description=f"Saved during import of {source_filename}" if source_filename else None,
            created_by=created_by,
            learn_aliases=learn_aliases,
        )
    
    def update_configuration(
        self,
        db: Session,
        config_id: int,
        obj_in: MappingConfigurationUpdate
    ) -> MappingConfiguration:
        """Replace a configuration's content in one transaction (aliases untouched)"""
        config = self.get_configuration(db, config_id)
        self.check_mappings(obj_in.field_mappings)
        other = self.crud.get_by_name(db, obj_in.name)
        if other and other.id != config.id:
            raise ConfigurationConflictError(obj_in.name.strip())
        
        try:
            if obj_in.is_default and obj_in.is_active:
                self.crud.stage_clear_default(db, except_id=config.id)
            self.crud.stage_replace(db, db_obj=config, obj_in=obj_in)
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ConfigurationConflictError(obj_in.name.strip())
        
        db.refresh(config)
        logger.info(f"Updated mapping configuration id={config.id}")
        return config
    
    def set_default(self, db: Session, config_id: int) -> MappingConfiguration:
        config = self.get_configuration(db, config_id)
        if not config.is_active:
            raise ValueError(f"Configuration {config_id} is inactive and cannot be the default")
        self.crud.stage_clear_default(db, except_id=config.id)
        config.is_default = True
        db.add(config)
        db.commit()
        db.refresh(config)
        logger.info(f"Configuration id={config.id} is now the default")
        return config
    
    def delete_configuration(self, db: Session, config_id: int) -> MappingConfiguration:
        """Delete a configuration; if it was the default, no other one is promoted"""
        config = self.crud.delete(db=db, id=config_id)
        if not config:
            raise ConfigurationNotFoundError(config_id)
        logger.info(f"Deleted mapping configuration id={config_id}")
        return config
    
    def suggest_mapping(
        self,
        db: Session,
        columns: Sequence[str],
        config_id: Optional[int] = None,
        use_aliases: bool = True
    ) -> Tuple[AutoMapResult, Optional[int]]:
        """
        Seed a mapping for detected columns.
        
        Uses the selected configuration, else the default one, else plain
        auto-mapping.
        
        Returns:
            Tuple of (result, id of the configuration applied or None)
        """
        aliases = column_alias_service.known_aliases(db) if use_aliases else []
        config = self.get_configuration(db, config_id) if config_id is not None else self.get_default(db)
        if config is None:
            return auto_map_columns(columns, aliases=aliases), None
        return apply_configuration(columns, config, aliases=aliases), config.id


mapping_configuration_service = MappingConfigurationService()
