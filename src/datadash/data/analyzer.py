"""Sheet-level analysis: profile every column and pick date, measure and dimension columns."""
from typing import List, Mapping, Optional, Sequence

from loguru import logger

from datadash.config import ProfilerConfig
from datadash.data.dataset import ColumnProfile, ColumnType, Row, Table, TableCollection
from datadash.data.profiler import profile_column
from datadash.errors import EmptyWorkbookError


def detect_primary_date_column(columns: Sequence[ColumnProfile]) -> Optional[str]:
    """First DATE column with more than one distinct value."""
    for col in columns:
        if col.inferred_type == ColumnType.DATE and col.unique_count > 1:
            return col.name
    return None


def measure_score(col: ColumnProfile, row_count: int) -> float:
    """Cardinality weighted by completeness."""
    if row_count == 0:
        return 0.0
    return col.unique_count * (1 - col.null_count / row_count)


def detect_primary_measure_column(columns: Sequence[ColumnProfile], row_count: int) -> Optional[str]:
    number_cols = [c for c in columns if c.inferred_type == ColumnType.NUMBER]
    if not number_cols:
        return None
    # max() keeps the first of equal scores, so ties go to column order
    return max(number_cols, key=lambda c: measure_score(c, row_count)).name


def detect_dimensions(columns: Sequence[ColumnProfile], row_count: int,
                      config: Optional[ProfilerConfig] = None) -> List[str]:
    """STRING columns usable for grouping, lowest cardinality first."""
    config = config or ProfilerConfig()

    candidates = [
        c for c in columns
        if c.inferred_type == ColumnType.STRING
        and 1 < c.unique_count <= config.max_dimension_cardinality
        and c.unique_count < row_count * config.dimension_row_ratio
    ]
    return [c.name for c in sorted(candidates, key=lambda c: c.unique_count)]


def analyze_sheet(raw_rows: Sequence[Row], sheet_name: str,
                  config: Optional[ProfilerConfig] = None) -> Table:
    """
    Turn one sheet's raw rows into a profiled Table.

    The column set is taken from the first row; every row is expected to
    share it. The returned table owns shallow copies of the input rows.
    """
    config = config or ProfilerConfig()

    if not raw_rows:
        logger.error(f"Sheet '{sheet_name}' has no rows")
        raise ValueError(f"Sheet '{sheet_name}' has no rows")

    rows = [dict(r) for r in raw_rows]
    row_count = len(rows)
    keys = list(rows[0].keys())

    columns = [profile_column(key, rows, row_count, config) for key in keys]

    date_col = detect_primary_date_column(columns)
    measure_col = detect_primary_measure_column(columns, row_count)
    dimensions = detect_dimensions(columns, row_count, config)

    logger.info(f"Analyzed sheet: {sheet_name}")
    logger.info(f"  Shape: {row_count} rows × {len(columns)} cols")
    logger.info(f"  Date column: {date_col}, measure column: {measure_col}")
    logger.debug(f"  Dimensions: {dimensions}")

    return Table(
        file_name=sheet_name,
        rows=rows,
        columns=columns,
        row_count=row_count,
        primary_date_column=date_col,
        primary_measure_column=measure_col,
        dimensions=dimensions,
        id=sheet_name,
        table_name=sheet_name,
    )


def build_tables(sheets: Mapping[str, Sequence[Row]],
                 config: Optional[ProfilerConfig] = None) -> TableCollection:
    """Analyze every non-empty sheet; at least one sheet must have rows."""
    tables: TableCollection = {}

    for sheet_name, raw_rows in sheets.items():
        if not raw_rows:
            logger.warning(f"Skipping empty sheet: {sheet_name}")
            continue
        tables[sheet_name] = analyze_sheet(raw_rows, sheet_name, config)

    if not tables:
        logger.error("No valid data found in any sheet")
        raise EmptyWorkbookError("No valid data found in any sheet.")

    logger.info(f"Built {len(tables)} table(s): {list(tables.keys())}")
    return tables
