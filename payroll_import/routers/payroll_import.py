from fastapi import APIRouter, Depends, UploadFile, File, Form, HTTPException, Response, status
from pydantic import ValidationError
from sqlalchemy.orm import Session
from typing import List

from payroll_import.database import get_db
from payroll_import.core.config import settings
from payroll_import.core.exceptions import ConfigurationConflictError, ConfigurationNotFoundError
from payroll_import.core.logging_config import logger
from payroll_import.schemas.payroll_import import (
    ExportFindingsRequest,
    FindingPage,
    FindingsQuery,
    ImportOptions,
    ImportResult,
)
from payroll_import.services.payroll_import import payroll_import_service
from payroll_import.services.payroll_parser import WorkbookUpload
from payroll_import.services.reporting import export_findings, filter_findings


router = APIRouter()


async def _read_uploads(files: List[UploadFile]) -> List[WorkbookUpload]:
    if len(files) > settings.MAX_UPLOAD_FILES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"At most {settings.MAX_UPLOAD_FILES} files can be uploaded at once"
        )
    return [WorkbookUpload(filename=f.filename, content=await f.read()) for f in files]


def _parse_options(options: str) -> ImportOptions:
    try:
        return ImportOptions.model_validate_json(options or "{}")
    except ValidationError as e:
        logger.error(f"Invalid import options: {str(e)}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid import options: {str(e)}")


@router.post("/preview", response_model=ImportResult)
async def preview_import(
    files: List[UploadFile] = File(...),
    options: str = Form("{}"),  # ImportOptions sent as JSON string
    db: Session = Depends(get_db)
):
    """
    Step 2: Parse and validate the uploaded workbooks without saving
    
    Returns every kept record with its findings so the reviewer can fix
    the mapping or the source files before importing.
    """
    uploads = await _read_uploads(files)
    import_options = _parse_options(options)
    try:
        logger.info(f"Previewing import of {len(uploads)} files")
        result, _ = payroll_import_service.preview(db, uploads, import_options)
        return result
    except ConfigurationNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        logger.error(f"Import preview rejected: {str(e)}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/import", response_model=ImportResult)
async def run_import(
    files: List[UploadFile] = File(...),
    options: str = Form("{}"),  # ImportOptions sent as JSON string
    db: Session = Depends(get_db)
):
    """
    Step 3: Parse, validate and store every record without findings
    
    Optionally saves the confirmed mapping as a configuration and learns
    aliases from it.
    """
    uploads = await _read_uploads(files)
    import_options = _parse_options(options)
    try:
        logger.info(f"Importing {len(uploads)} files")
        result, _ = payroll_import_service.run_import(db, uploads, import_options)
        return result
    except ConfigurationNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ConfigurationConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except ValueError as e:
        logger.error(f"Import rejected: {str(e)}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/findings", response_model=FindingPage)
def list_findings(query: FindingsQuery):
    """Filter, search and paginate findings for on-screen review"""
    return filter_findings(
        query.findings,
        error_type=query.error_type,
        severity=query.severity,
        search=query.search,
        page=query.page,
        page_size=query.page_size,
    )


@router.post("/export-errors")
def export_errors(request: ExportFindingsRequest):
    """Download the findings as a fixable xlsx/csv report (statistics only when empty)"""
    artifact = export_findings(
        request.findings,
        request.original_headers,
        fmt=request.format,
        summary=request.summary,
        file_name=request.file_name,
    )
    return Response(
        content=artifact.content,
        media_type=artifact.media_type,
        headers={"Content-Disposition": f'attachment; filename="{artifact.filename}"'},
    )
