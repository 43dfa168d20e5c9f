from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session
from typing import Optional

from payroll_import.database import get_db
from payroll_import.core.exceptions import (
    ConfigurationConflictError,
    ConfigurationNotFoundError,
)
from payroll_import.core.logging_config import logger
from payroll_import.crud.employee import employee_crud
from payroll_import.schemas.column_mapping import (
    ApplyConfigurationRequest,
    AutoMapResult,
    MappingConfigurationCreate,
    MappingConfigurationPage,
    MappingConfigurationResponse,
    MappingConfigurationUpdate,
)
from payroll_import.services.column_alias import column_alias_service
from payroll_import.services.mapping_configuration import (
    apply_configuration,
    mapping_configuration_service,
)
from payroll_import.services.reporting import build_configuration_template


router = APIRouter()


def _not_found(e: ConfigurationNotFoundError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("", response_model=MappingConfigurationPage)
def list_configurations(
    name: Optional[str] = None,
    is_active: Optional[bool] = None,
    is_default: Optional[bool] = None,
    created_by: Optional[str] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db)
):
    """
    List saved mapping configurations, newest first.
    
    Args:
        name: Case-insensitive substring of the name
        is_active: Filter on the active flag
        is_default: Filter on the default flag
        skip: Number of records to skip
        limit: Maximum number of records to return
    """
    items, total = mapping_configuration_service.list_configurations(
        db,
        name=name,
        is_active=is_active,
        is_default=is_default,
        created_by=created_by,
        skip=skip,
        limit=limit,
    )
    return MappingConfigurationPage(items=items, total=total, skip=skip, limit=limit)


@router.post("", response_model=MappingConfigurationResponse, status_code=status.HTTP_201_CREATED)
def create_configuration(
    config_in: MappingConfigurationCreate,
    created_by: Optional[str] = Query(None),
    db: Session = Depends(get_db)
):
    """
    Save a named mapping configuration.
    
    With is_default the previous default loses its flag; with
    learn_aliases the manual assignments are also stored as aliases.
    """
    try:
        logger.info(f"Creating mapping configuration '{config_in.name}'")
        return mapping_configuration_service.save_configuration(
            db,
            name=config_in.name,
            field_mappings=config_in.field_mappings,
            is_default=config_in.is_default,
            description=config_in.description,
            created_by=created_by,
            learn_aliases=config_in.learn_aliases,
        )
    except ConfigurationConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except ValueError as e:
        logger.error(f"Invalid mapping configuration: {str(e)}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/default", response_model=MappingConfigurationResponse)
def get_default_configuration(db: Session = Depends(get_db)):
    config = mapping_configuration_service.get_default(db)
    if not config:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No default mapping configuration"
        )
    return config


@router.get("/{config_id}", response_model=MappingConfigurationResponse)
def get_configuration(config_id: int, db: Session = Depends(get_db)):
    try:
        return mapping_configuration_service.get_configuration(db, config_id)
    except ConfigurationNotFoundError as e:
        raise _not_found(e)


@router.put("/{config_id}", response_model=MappingConfigurationResponse)
def update_configuration(
    config_id: int,
    config_in: MappingConfigurationUpdate,
    db: Session = Depends(get_db)
):
    """Replace a configuration's name, flags and complete field-mapping list"""
    try:
        return mapping_configuration_service.update_configuration(db, config_id, config_in)
    except ConfigurationNotFoundError as e:
        raise _not_found(e)
    except ConfigurationConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except ValueError as e:
        logger.error(f"Invalid mapping configuration update: {str(e)}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.delete("/{config_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_configuration(config_id: int, db: Session = Depends(get_db)):
    """Delete a configuration; deleting the default leaves no default"""
    try:
        mapping_configuration_service.delete_configuration(db, config_id)
    except ConfigurationNotFoundError as e:
        raise _not_found(e)


@router.post("/{config_id}/default", response_model=MappingConfigurationResponse)
def set_default_configuration(config_id: int, db: Session = Depends(get_db)):
    try:
        return mapping_configuration_service.set_default(db, config_id)
    except ConfigurationNotFoundError as e:
        raise _not_found(e)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/{config_id}/apply", response_model=AutoMapResult)
def apply_saved_configuration(
    config_id: int,
    request: ApplyConfigurationRequest,
    db: Session = Depends(get_db)
):
    """Match a saved configuration against freshly detected columns"""
    try:
        config = mapping_configuration_service.get_configuration(db, config_id)
    except ConfigurationNotFoundError as e:
        raise _not_found(e)
    return apply_configuration(
        request.columns,
        config,
        aliases=column_alias_service.known_aliases(db),
    )


@router.get("/{config_id}/template")
def download_template(config_id: int, db: Session = Depends(get_db)):
    """
    Download an xlsx import template for a configuration
    
    Columns follow the configuration (highest confidence first) with three
    sample rows built from real employee ids where available.
    """
    try:
        config = mapping_configuration_service.get_configuration(db, config_id)
    except ConfigurationNotFoundError as e:
        raise _not_found(e)
    if not config.is_active:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Mapping configuration {config_id} is inactive"
        )
    
    try:
        artifact = build_configuration_template(config, employee_crud.sample_ids(db))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return Response(
        content=artifact.content,
        media_type=artifact.media_type,
        headers={
            "Content-Disposition": f'attachment; filename="{artifact.filename}"',
            "X-Config-Id": str(config.id),
            "X-Field-Count": str(len(config.field_mappings)),
        },
    )
