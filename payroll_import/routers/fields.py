from fastapi import APIRouter
from typing import List, Optional

from payroll_import.schemas.field_schema import FieldSpec
from payroll_import.services.field_schema import get_field_schema, fields_by_category, categories


router = APIRouter()


@router.get("", response_model=List[FieldSpec])
def list_fields(category: Optional[str] = None):
    """
    Canonical payroll fields every import maps onto.
    
    Args:
        category: Optional category to filter by (e.g. "Thông tin cơ bản")
    """
    if category:
        return fields_by_category(category)
    return get_field_schema()


@router.get("/categories", response_model=List[str])
def list_categories():
    """Field categories in registry order"""
    return categories()
