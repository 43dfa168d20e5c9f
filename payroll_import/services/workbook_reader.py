import io
import math
from datetime import datetime, date
from typing import Any

import pandas as pd

from payroll_import.core.exceptions import WorkbookFormatError
from payroll_import.core.logging_config import logger

EXCEL_EXTENSIONS = ('.xlsx', '.xlsm', '.xls')
CSV_EXTENSIONS = ('.csv',)


def read_sheet(content: bytes, filename: str) -> pd.DataFrame:
    """
    Read the first worksheet of an uploaded workbook as a raw grid.
    
    No header inference is done here: row 0 of the returned frame is the
    first spreadsheet row, so callers can locate the header themselves.
    
    Args:
        content: Raw file bytes
        filename: Original filename, used to pick the reader
        
    Returns:
        DataFrame with positional integer columns
        
    Raises:
        WorkbookFormatError: Unsupported extension or unreadable buffer
    """
    name = (filename or "").lower()
    if not name:
        raise WorkbookFormatError(filename or "<unnamed>", "No filename provided")
    if not content:
        raise WorkbookFormatError(filename, "File is empty")
    
    try:
        if name.endswith(CSV_EXTENSIONS):
            df = pd.read_csv(
                io.BytesIO(content),
                header=None,
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=False,
                encoding="utf-8-sig",
            )
        elif name.endswith(EXCEL_EXTENSIONS):
            df = pd.read_excel(io.BytesIO(content), header=None, dtype=object, sheet_name=0)
        else:
            raise WorkbookFormatError(filename, "Unsupported file format (expected .xlsx, .xls or .csv)")
    except WorkbookFormatError:
        raise
    except Exception as e:
        logger.error(f"Error reading workbook '{filename}': {str(e)}")
        raise WorkbookFormatError(filename, f"Failed to read file: {str(e)}")
    
    logger.info(f"Read workbook '{filename}': {len(df)} rows, {len(df.columns)} columns")
    return df


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if value is pd.NaT:
        return True
    if isinstance(value, str) and value.strip() == "":
        return True
    return False


def cell_text(value: Any) -> str:
    """
    Render a cell as trimmed text.
    
    Excel stores integer-looking codes as floats (e.g. 1234.0), so integral
    floats are rendered without the fractional part.
    """
    if is_blank(value):
        return ""
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value).strip()


def raw_value(value: Any) -> Any:
    """Cell value safe for JSON (original row data in reports)"""
    if is_blank(value):
        return ""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if hasattr(value, "item"):  # numpy scalars
        return value.item()
    return value
