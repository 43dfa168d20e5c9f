from dataclasses import dataclass, field
from typing import List, Tuple

import pandas as pd

from payroll_import.core.exceptions import WorkbookFormatError
from payroll_import.core.logging_config import logger
from payroll_import.services.workbook_reader import read_sheet, is_blank, cell_text


@dataclass
class DetectedHeader:
    """Header row of one worksheet and where each column sits"""
    filename: str
    header_index: int  # 0-based row index of the header in the raw grid
    columns: List[str] = field(default_factory=list)  # Distinct names, sheet order
    positions: List[Tuple[int, str]] = field(default_factory=list)  # (grid column, name), first occurrence only
    frame: pd.DataFrame = None

    @property
    def first_data_row_number(self) -> int:
        """1-based spreadsheet row number of the first row below the header"""
        return self.header_index + 2


def locate_header(df: pd.DataFrame) -> int:
    """Index of the first row with at least one non-empty cell, or -1"""
    for idx in range(len(df)):
        if any(not is_blank(value) for value in df.iloc[idx].tolist()):
            return idx
    return -1


def find_header(df: pd.DataFrame, filename: str) -> DetectedHeader:
    """
    Read the header row of an already-loaded sheet.
    
    Raises:
        WorkbookFormatError: The sheet has no non-empty row
    """
    header_index = locate_header(df)
    if header_index < 0:
        raise WorkbookFormatError(filename, "No header row found (sheet is empty)")
    
    columns: List[str] = []
    positions: List[Tuple[int, str]] = []
    for position, value in enumerate(df.iloc[header_index].tolist()):
        name = cell_text(value)
        if not name or name in columns:
            continue
        columns.append(name)
        positions.append((position, name))
    
    return DetectedHeader(
        filename=filename,
        header_index=header_index,
        columns=columns,
        positions=positions,
        frame=df,
    )


def detect_header(content: bytes, filename: str) -> DetectedHeader:
    return find_header(read_sheet(content, filename), filename)


def detect_columns(content: bytes, filename: str) -> List[str]:
    """
    Return the distinct, non-empty header names of a workbook in sheet order.
    
    Original casing and inner whitespace are preserved; only leading and
    trailing whitespace is trimmed.
    
    Raises:
        WorkbookFormatError: Unreadable file or no header row
    """
    header = detect_header(content, filename)
    logger.info(f"Detected {len(header.columns)} columns in '{filename}' (header row {header.header_index + 1})")
    return header.columns
