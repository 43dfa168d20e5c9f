from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import Optional

from payroll_import.database import get_db
from payroll_import.core.exceptions import AliasNotFoundError, UnknownFieldError
from payroll_import.core.logging_config import logger
from payroll_import.schemas.column_mapping import (
    BulkColumnAliasCreate,
    BulkColumnAliasResponse,
    ColumnAliasCreate,
    ColumnAliasPage,
    ColumnAliasResponse,
    ColumnAliasUpdate,
)
from payroll_import.services.column_alias import column_alias_service


router = APIRouter()


@router.get("", response_model=ColumnAliasPage)
def list_aliases(
    field_key: Optional[str] = None,
    alias_text: Optional[str] = None,
    is_active: Optional[bool] = None,
    created_by: Optional[str] = None,
    confidence_min: Optional[int] = Query(None, ge=0, le=100),
    confidence_max: Optional[int] = Query(None, ge=0, le=100),
    sort_by: str = "alias_text",
    sort_order: str = Query("asc", pattern="^(asc|desc)$"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db)
):
    """
    Search learned aliases.
    
    Args:
        field_key: Only aliases of this field
        alias_text: Case-insensitive substring of the alias
        confidence_min: Lowest confidence to include
        confidence_max: Highest confidence to include
        sort_by: alias_text, confidence_score, created_at or field_key
    """
    items, total = column_alias_service.search_aliases(
        db,
        field_key=field_key,
        alias_text=alias_text,
        is_active=is_active,
        created_by=created_by,
        confidence_min=confidence_min,
        confidence_max=confidence_max,
        sort_by=sort_by,
        sort_order=sort_order,
        skip=skip,
        limit=limit,
    )
    return ColumnAliasPage(items=items, total=total, skip=skip, limit=limit)


@router.post("", response_model=ColumnAliasResponse, status_code=status.HTTP_201_CREATED)
def create_alias(
    alias_in: ColumnAliasCreate,
    created_by: Optional[str] = Query(None),
    db: Session = Depends(get_db)
):
    """Create an alias, or replace the confidence of an existing one"""
    try:
        return column_alias_service.create_alias(db, alias_in, created_by=created_by)
    except UnknownFieldError as e:
        logger.error(f"Rejected alias: {str(e)}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/bulk", response_model=BulkColumnAliasResponse, status_code=status.HTTP_201_CREATED)
def bulk_create_aliases(
    request: BulkColumnAliasCreate,
    created_by: Optional[str] = Query(None),
    db: Session = Depends(get_db)
):
    created, errors = column_alias_service.bulk_create_aliases(db, request.aliases, created_by=created_by)
    return BulkColumnAliasResponse(created=created, errors=errors)


@router.put("/{alias_id}", response_model=ColumnAliasResponse)
def update_alias(
    alias_id: int,
    alias_in: ColumnAliasUpdate,
    db: Session = Depends(get_db)
):
    try:
        return column_alias_service.update_alias(db, alias_id, alias_in)
    except AliasNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.delete("/{alias_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_alias(alias_id: int, db: Session = Depends(get_db)):
    try:
        column_alias_service.delete_alias(db, alias_id)
    except AliasNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
