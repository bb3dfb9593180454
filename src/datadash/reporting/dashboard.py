"""Aggregations behind the dashboard view: time series, category totals, distribution and KPIs."""
from datetime import datetime
from typing import List, Optional

import numpy as np
import pandas as pd
from loguru import logger
from pydantic import BaseModel, Field

from datadash.data.dataset import Dataset, Row
from datadash.data.profiler import is_absent, to_datetime, to_number

TOP_CATEGORIES = 10
DISTRIBUTION_BUCKETS = 10


class FilterState(BaseModel):
    """Row filters applied before any aggregation."""
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    selected_dimension: Optional[str] = None
    selected_category: Optional[str] = None


class TimePoint(BaseModel):
    date: str  # YYYY-MM-DD
    value: float


class CategoryTotal(BaseModel):
    name: str
    value: float


class DistributionBucket(BaseModel):
    lower: float
    upper: float
    count: int


class DashboardData(BaseModel):
    measure: Optional[str] = None
    dimension: Optional[str] = None
    total_rows: int = 0
    measure_total: float = 0.0
    measure_average: float = 0.0
    time_series: List[TimePoint] = Field(default_factory=list)
    category_totals: List[CategoryTotal] = Field(default_factory=list)
    distribution: List[DistributionBucket] = Field(default_factory=list)


def apply_filters(dataset: Dataset, filters: Optional[FilterState]) -> List[Row]:
    if filters is None:
        return dataset.rows

    rows = dataset.rows
    date_col = dataset.primary_date_column
    if date_col and (filters.start or filters.end):
        start, end = to_datetime(filters.start), to_datetime(filters.end)
        kept = []
        for row in rows:
            when = to_datetime(row.get(date_col))
            if when is None:
                continue
            if start and when < start:
                continue
            if end and when > end:
                continue
            kept.append(row)
        rows = kept

    if filters.selected_dimension and filters.selected_category is not None:
        dim = filters.selected_dimension
        rows = [r for r in rows if not is_absent(r.get(dim)) and str(r.get(dim)) == filters.selected_category]

    return rows


def time_series(rows: List[Row], date_col: Optional[str], measure: Optional[str]) -> List[TimePoint]:
    """Measure summed per calendar day, oldest first."""
    if not date_col or not measure:
        return []

    records = []
    for row in rows:
        when = to_datetime(row.get(date_col))
        if when is None:
            continue
        records.append({'date': when.strftime('%Y-%m-%d'), 'value': to_number(row.get(measure)) or 0.0})

    if not records:
        return []

    grouped = pd.DataFrame.from_records(records).groupby('date')['value'].sum().sort_index()
    return [TimePoint(date=d, value=float(v)) for d, v in grouped.items()]


def category_totals(rows: List[Row], dimension: Optional[str], measure: Optional[str],
                    limit: int = TOP_CATEGORIES) -> List[CategoryTotal]:
    """Measure sum (or row count without a measure) per dimension value, largest first."""
    if not dimension:
        return []

    records = []
    for row in rows:
        raw = row.get(dimension)
        name = 'Unknown' if is_absent(raw) else str(raw)
        value = (to_number(row.get(measure)) or 0.0) if measure else 1.0
        records.append({'name': name, 'value': value})

    if not records:
        return []

    grouped = pd.DataFrame.from_records(records).groupby('name', sort=False)['value'].sum()
    grouped = grouped.sort_values(ascending=False, kind='mergesort').head(limit)
    return [CategoryTotal(name=n, value=float(v)) for n, v in grouped.items()]


def distribution(values: List[float], buckets: int = DISTRIBUTION_BUCKETS) -> List[DistributionBucket]:
    """Equal-width histogram between the smallest and largest value."""
    if not values:
        return []

    arr = np.asarray(values, dtype=float)
    low, high = float(arr.min()), float(arr.max())
    step = (high - low) / buckets

    if step == 0:
        counts = np.zeros(buckets, dtype=int)
        counts[0] = len(arr)
    else:
        idx = np.minimum(((arr - low) // step).astype(int), buckets - 1)
        counts = np.bincount(idx, minlength=buckets)

    return [
        DistributionBucket(lower=low + i * step, upper=low + (i + 1) * step, count=int(c))
        for i, c in enumerate(counts)
    ]


def build_dashboard(dataset: Dataset, measure: Optional[str] = None, dimension: Optional[str] = None,
                    filters: Optional[FilterState] = None) -> DashboardData:
    """
    Compute the dashboard aggregates for a dataset.

    Args:
        dataset: Table or unified dataset
        measure: Numeric column to aggregate (defaults to the primary measure)
        dimension: Grouping column (defaults to the first dimension)
        filters: Optional date range / category filter

    Returns:
        DashboardData with time series, category totals, distribution and KPIs
    """
    measure = measure or dataset.primary_measure_column
    dimension = dimension or (dataset.dimensions[0] if dataset.dimensions else None)

    for name in (measure, dimension):
        if name and dataset.column(name) is None:
            logger.error(f"Column not found in dataset: {name}")
            raise KeyError(f"Column '{name}' not found in dataset")

    rows = apply_filters(dataset, filters)

    values: List[float] = []
    if measure:
        values = [n for n in (to_number(r.get(measure)) for r in rows) if n is not None]
    measure_total = float(sum(values))
    measure_average = measure_total / len(values) if values else 0.0

    data = DashboardData(
        measure=measure,
        dimension=dimension,
        total_rows=len(rows),
        measure_total=measure_total,
        measure_average=measure_average,
        time_series=time_series(rows, dataset.primary_date_column, measure),
        category_totals=category_totals(rows, dimension, measure),
        distribution=distribution(values),
    )

    logger.info(f"Dashboard for {dataset.file_name}: {len(rows)} rows, measure={measure}, "
                f"dimension={dimension}, {len(data.time_series)} time points")
    return data


def export_csv(dataset: Dataset, path: str) -> str:
    """Write the dataset rows to CSV in column order."""
    df = dataset.to_frame()
    df.to_csv(path, index=False)
    logger.info(f"Exported {len(df)} rows to: {path}")
    return path
