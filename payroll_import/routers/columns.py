from fastapi import APIRouter, Depends, UploadFile, File, Form, HTTPException, status
from sqlalchemy.orm import Session
from typing import List, Optional

from payroll_import.database import get_db
from payroll_import.core.config import settings
from payroll_import.core.exceptions import WorkbookFormatError, ConfigurationNotFoundError
from payroll_import.core.logging_config import logger
from payroll_import.schemas.column_mapping import (
    AutoMapRequest,
    AutoMapResult,
    DetectColumnsResponse,
    DetectedFile,
)
from payroll_import.services.auto_mapper import auto_map_columns
from payroll_import.services.column_alias import column_alias_service
from payroll_import.services.column_detector import detect_columns
from payroll_import.services.mapping_configuration import mapping_configuration_service


router = APIRouter()


@router.post("/detect", response_model=DetectColumnsResponse)
async def detect_file_columns(
    files: List[UploadFile] = File(...),
    config_id: Optional[int] = Form(None),
    db: Session = Depends(get_db)
):
    """
    Step 1: Upload workbooks and detect their header columns
    
    Returns the columns of every file plus a suggested mapping for the
    first readable one, seeded by the selected configuration, else the
    default configuration, else auto-mapping.
    """
    if len(files) > settings.MAX_UPLOAD_FILES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"At most {settings.MAX_UPLOAD_FILES} files can be uploaded at once"
        )
    
    detected = []
    for upload in files:
        content = await upload.read()
        try:
            columns = detect_columns(content, upload.filename)
            detected.append(DetectedFile(filename=upload.filename, columns=columns))
        except WorkbookFormatError as e:
            logger.warning(f"Column detection failed: {str(e)}")
            detected.append(DetectedFile(filename=upload.filename, error=e.message))
    
    first = next((f for f in detected if f.error is None), None)
    if first is None:
        return DetectColumnsResponse(files=detected)
    
    try:
        suggested, used_config_id = mapping_configuration_service.suggest_mapping(
            db, first.columns, config_id=config_id
        )
    except ConfigurationNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    
    return DetectColumnsResponse(files=detected, suggested=suggested, config_id=used_config_id)


@router.post("/auto-map", response_model=AutoMapResult)
def auto_map(
    request: AutoMapRequest,
    db: Session = Depends(get_db)
):
    """Propose a field -> column mapping for already-detected columns"""
    aliases = column_alias_service.known_aliases(db) if request.use_aliases else []
    return auto_map_columns(request.columns, aliases=aliases)
