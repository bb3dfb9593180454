"""Per-column data quality report for a profiled or unified dataset."""
from datetime import datetime
from typing import Any, List, Optional, Union

from loguru import logger
from pydantic import BaseModel, Field

from datadash.data.dataset import ColumnProfile, ColumnType, Dataset


class ColumnQuality(BaseModel):
    name: str
    inferred_type: ColumnType
    unique_count: int
    null_count: int
    completeness: float  # percentage of rows with a value
    is_complete: bool
    min: Optional[Union[float, datetime]] = None
    max: Optional[Union[float, datetime]] = None
    mean: Optional[float] = None
    outlier_count: Optional[int] = None
    example_values: List[Any] = Field(default_factory=list)


class QualityReport(BaseModel):
    """Completeness and summary statistics for every column of a dataset."""
    file_name: str
    row_count: int
    column_count: int
    completeness: float
    columns: List[ColumnQuality] = Field(default_factory=list)

    @property
    def incomplete_columns(self) -> List[str]:
        return [c.name for c in self.columns if not c.is_complete]


def completeness(null_count: int, row_count: int) -> float:
    if row_count == 0:
        return 100.0
    # joined-in columns carry null counts from their source table
    return min(100.0, max(0.0, (1 - null_count / row_count) * 100))


def column_quality(col: ColumnProfile, row_count: int) -> ColumnQuality:
    stats = {}
    if col.inferred_type == ColumnType.NUMBER:
        stats = {'min': col.min, 'max': col.max, 'mean': col.mean, 'outlier_count': col.outlier_count}
    elif col.inferred_type == ColumnType.DATE:
        stats = {'min': col.min, 'max': col.max}

    return ColumnQuality(
        name=col.name,
        inferred_type=col.inferred_type,
        unique_count=col.unique_count,
        null_count=col.null_count,
        completeness=completeness(col.null_count, row_count),
        is_complete=col.null_count == 0,
        example_values=list(col.example_values),
        **stats,
    )


def build_quality_report(dataset: Dataset) -> QualityReport:
    """
    Summarize completeness per column.

    Joined-in columns keep the profile of their source table, so their null
    counts are measured against the dataset's current row count as-is.
    """
    columns = [column_quality(col, dataset.row_count) for col in dataset.columns]
    overall = sum(c.completeness for c in columns) / len(columns) if columns else 100.0

    report = QualityReport(
        file_name=dataset.file_name,
        row_count=dataset.row_count,
        column_count=len(columns),
        completeness=overall,
        columns=columns,
    )

    logger.info(f"Quality report for {dataset.file_name}: {report.column_count} columns, "
                f"{overall:.1f}% complete, {len(report.incomplete_columns)} with missing values")
    return report
