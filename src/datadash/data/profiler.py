"""Column type inference and statistical profiling over raw rows."""
import math
import numbers
from datetime import date, datetime, timezone
from typing import Any, Dict, Hashable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from dateutil import parser as dateparser
from loguru import logger

from datadash.config import ProfilerConfig
from datadash.data.dataset import CellValue, ColumnProfile, ColumnType, Row

# Majority-type rules, evaluated in order. A date-like string can also look
# numeric-adjacent, so DATE must stay ahead of NUMBER.
TYPE_RULES: Tuple[Tuple[ColumnType, str], ...] = (
    (ColumnType.DATE, 'date_threshold'),
    (ColumnType.NUMBER, 'number_threshold'),
    (ColumnType.BOOLEAN, 'boolean_threshold'),
)


def is_absent(value: Any) -> bool:
    """None, empty text and NaN all count as a missing cell."""
    if value is None or value is pd.NaT:
        return True
    if isinstance(value, str):
        return value == ''
    if isinstance(value, float):
        return math.isnan(value)
    return False


def parse_number(text: str) -> Optional[float]:
    """Parse a string that is entirely a finite number, else None."""
    text = text.strip()
    if not text or '_' in text:
        return None
    try:
        number = float(text)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


# dateutil fills missing fields from its default; parsing against two
# defaults that differ in every date field exposes partial dates
_PARSE_DEFAULTS = (datetime(2000, 1, 1), datetime(2001, 2, 2))


def parse_date(text: str) -> Optional[datetime]:
    """Parse a full calendar date; weekday names, bare times and "March 3rd" are rejected."""
    try:
        first, second = (dateparser.parse(text, default=d) for d in _PARSE_DEFAULTS)
    except (ValueError, OverflowError):
        return None
    if first != second:
        return None
    return _normalize_datetime(first)


def _normalize_datetime(value: datetime) -> datetime:
    if isinstance(value, pd.Timestamp):
        value = value.to_pydatetime()
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def classify_value(value: CellValue, config: Optional[ProfilerConfig] = None) -> ColumnType:
    """
    Classify one present cell value.

    Native dates and booleans are taken as-is. Anything else is tried as a
    number, then (only when longer than ``min_date_string_length``) as a
    date, and falls back to STRING.
    """
    config = config or ProfilerConfig()

    if isinstance(value, (datetime, date)):
        return ColumnType.DATE
    # bool is a subclass of int, so it has to be checked before numbers
    if isinstance(value, (bool, np.bool_)):
        return ColumnType.BOOLEAN
    if isinstance(value, numbers.Number):
        return ColumnType.NUMBER

    text = str(value)
    if parse_number(text) is not None:
        return ColumnType.NUMBER
    if len(text) > config.min_date_string_length and parse_date(text) is not None:
        return ColumnType.DATE
    return ColumnType.STRING


def resolve_column_type(type_counts: Dict[ColumnType, int], present_count: int,
                        config: Optional[ProfilerConfig] = None) -> ColumnType:
    """Pick the column type from per-type counts using the ordered threshold rules."""
    config = config or ProfilerConfig()

    if present_count == 0:
        return ColumnType.STRING

    for column_type, threshold_name in TYPE_RULES:
        if type_counts.get(column_type, 0) / present_count >= getattr(config, threshold_name):
            return column_type

    return ColumnType.STRING


def _distinct_key(value: Any) -> Hashable:
    # 1 and 1.0 are the same number, but True and 1 are different values
    if isinstance(value, (bool, np.bool_)):
        return ('bool', bool(value))
    if isinstance(value, numbers.Number):
        return ('number', value)
    if isinstance(value, (datetime, date)):
        return ('date', to_datetime(value))
    try:
        hash(value)
    except TypeError:
        return (type(value).__name__, repr(value))
    return (type(value).__name__, value)


def to_number(value: Any) -> Optional[float]:
    if isinstance(value, (bool, np.bool_)):
        return float(value)
    if isinstance(value, numbers.Number):
        number = float(value)
        return number if math.isfinite(number) else None
    if isinstance(value, str):
        return parse_number(value)
    return None


def to_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return _normalize_datetime(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        return parse_date(value)
    return None


def count_outliers(values: Sequence[float], multiplier: float = 1.5) -> int:
    """Number of values outside the Tukey fences ``[Q1 - k*IQR, Q3 + k*IQR]``."""
    if not values:
        return 0
    arr = np.asarray(values, dtype=float)
    q1, q3 = np.percentile(arr, [25, 75])
    iqr = q3 - q1
    lower, upper = q1 - multiplier * iqr, q3 + multiplier * iqr
    return int(((arr < lower) | (arr > upper)).sum())


def profile_column(name: str, rows: Sequence[Row], total_row_count: Optional[int] = None,
                   config: Optional[ProfilerConfig] = None) -> ColumnProfile:
    """
    Profile one column over the full row set.

    Args:
        name: Column name to read from every row
        rows: All rows of the table (not a sample; counts must be exact)
        total_row_count: Expected row count, checked against ``len(rows)``
        config: Type inference thresholds

    Returns:
        ColumnProfile for the column
    """
    config = config or ProfilerConfig()

    if total_row_count is not None and total_row_count != len(rows):
        raise ValueError(
            f"Row count mismatch for column '{name}': expected {total_row_count}, got {len(rows)}"
        )

    null_count = 0
    present: List[Any] = []
    distinct: Dict[Hashable, Any] = {}
    type_counts = {column_type: 0 for column_type in (
        ColumnType.STRING, ColumnType.NUMBER, ColumnType.DATE, ColumnType.BOOLEAN
    )}

    for row in rows:
        value = row.get(name)
        if is_absent(value):
            null_count += 1
            continue

        present.append(value)
        distinct.setdefault(_distinct_key(value), value)
        type_counts[classify_value(value, config)] += 1

    inferred_type = resolve_column_type(type_counts, len(present), config)

    stats: Dict[str, Any] = {}
    if inferred_type == ColumnType.NUMBER:
        numeric = [n for n in (to_number(v) for v in present) if n is not None]
        if numeric:
            total = math.fsum(numeric)
            stats = {
                'min': min(numeric),
                'max': max(numeric),
                'sum': total,
                'mean': total / len(numeric),
                'outlier_count': count_outliers(numeric, config.outlier_iqr_multiplier),
            }
    elif inferred_type == ColumnType.DATE:
        dates = [d for d in (to_datetime(v) for v in present) if d is not None]
        if dates:
            stats = {'min': min(dates), 'max': max(dates)}

    profile = ColumnProfile(
        name=name,
        inferred_type=inferred_type,
        null_count=null_count,
        unique_count=len(distinct),
        example_values=list(distinct.values())[:config.example_limit],
        **stats,
    )

    counts = {t.value: c for t, c in type_counts.items()}
    logger.debug(f"Column {name}: type={inferred_type.value}, nulls={null_count}, "
                 f"unique={profile.unique_count}, counts={counts}")
    return profile
