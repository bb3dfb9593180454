"""Row source: read CSV / Excel files into per-sheet raw rows."""
import math
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd
from loguru import logger

from datadash.config import ProfilerConfig
from datadash.data.analyzer import build_tables
from datadash.data.dataset import Row, TableCollection
from datadash.errors import UnsupportedFileError

EXCEL_SUFFIXES = {'.xlsx', '.xlsm', '.xls'}
CSV_SUFFIXES = {'.csv'}


def _to_cell(value: Any) -> Any:
    """Convert pandas scalars to plain Python cell values."""
    if value is None or value is pd.NaT:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if hasattr(value, 'item') and not isinstance(value, (str, bytes, datetime)):
        # numpy scalar
        return value.item()
    return value


def frame_to_rows(df: pd.DataFrame) -> List[Row]:
    """DataFrame -> list of row dicts with None for missing cells."""
    columns = [str(c) for c in df.columns]
    rows = []
    for record in df.itertuples(index=False, name=None):
        rows.append({col: _to_cell(val) for col, val in zip(columns, record)})
    return rows


def load_table(path: str) -> pd.DataFrame:
    """Load a single CSV file."""
    if not os.path.exists(path):
        logger.error(f"Table not found: {path}")
        raise FileNotFoundError(path)
    df = pd.read_csv(path)

    missing_total = int(df.isnull().sum().sum())
    logger.info(f"Loaded table: {path}")
    logger.info(f"  Shape: {len(df)} rows × {len(df.columns)} cols")
    logger.info(f"  Missing values: {missing_total} total "
                f"({missing_total / df.size * 100 if df.size else 0:.1f}%)")
    return df


def load_workbook(path: str) -> Dict[str, List[Row]]:
    """
    Read every sheet of a file into raw rows.

    CSV files yield one sheet named after the file stem; Excel files yield
    one entry per worksheet, in workbook order.
    """
    file_path = Path(path)
    if not file_path.exists():
        logger.error(f"File not found: {path}")
        raise FileNotFoundError(path)

    suffix = file_path.suffix.lower()
    if suffix in CSV_SUFFIXES:
        frames = {file_path.stem: load_table(str(file_path))}
    elif suffix in EXCEL_SUFFIXES:
        frames = pd.read_excel(file_path, sheet_name=None)
        logger.info(f"Loaded workbook: {path} ({len(frames)} sheet(s))")
    else:
        logger.error(f"Unsupported file type: {suffix}")
        raise UnsupportedFileError(f"Unsupported file type '{suffix}' for {path}")

    sheets = {str(name): frame_to_rows(df) for name, df in frames.items()}
    for name, rows in sheets.items():
        logger.debug(f"  Sheet {name}: {len(rows)} rows")
    return sheets


def load_tables(path: str, config: Optional[ProfilerConfig] = None) -> TableCollection:
    """Read a file and profile each of its sheets."""
    return build_tables(load_workbook(path), config)
