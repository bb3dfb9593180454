"""Shared table structures passed between profiling, suggestion and join execution."""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field

# None is the absent variant; "" is kept as a distinct value
CellValue = Union[str, int, float, bool, datetime, None]
Row = Dict[str, CellValue]


class ColumnType(str, Enum):
    STRING = 'String'
    NUMBER = 'Number'
    DATE = 'Date'
    BOOLEAN = 'Boolean'
    UNKNOWN = 'Unknown'


class ColumnProfile(BaseModel):
    """Immutable summary of one column within one table snapshot."""
    model_config = ConfigDict(frozen=True)

    name: str
    inferred_type: ColumnType = ColumnType.STRING
    null_count: int = 0
    unique_count: int = 0
    min: Optional[Union[float, datetime]] = None   # NUMBER or DATE only
    max: Optional[Union[float, datetime]] = None   # NUMBER or DATE only
    sum: Optional[float] = None                    # NUMBER only
    mean: Optional[float] = None                   # NUMBER only
    outlier_count: Optional[int] = None            # NUMBER only
    example_values: List[Any] = Field(default_factory=list)

    def renamed(self, prefix: str) -> 'ColumnProfile':
        """Copy of this profile named ``<prefix>.<name>``."""
        return self.model_copy(update={'name': f"{prefix}.{self.name}"})


@dataclass
class Dataset:
    """
    Flat, analysis-ready table.

    Produced directly by sheet analysis (as a Table) or by the join engine
    after flattening a data model.
    """
    file_name: str
    rows: List[Row]
    columns: List[ColumnProfile]
    row_count: int
    primary_date_column: Optional[str] = None
    primary_measure_column: Optional[str] = None
    dimensions: List[str] = field(default_factory=list)

    @property
    def column_names(self) -> List[str]:
        return [c.name for c in self.columns]

    def column(self, name: str) -> Optional[ColumnProfile]:
        for col in self.columns:
            if col.name == name:
                return col
        return None

    def to_frame(self) -> pd.DataFrame:
        """Rows as a DataFrame with columns in profile order."""
        return pd.DataFrame.from_records(self.rows, columns=self.column_names)


@dataclass
class Table(Dataset):
    """One profiled sheet."""
    id: str = ''
    table_name: str = ''


TableCollection = Dict[str, Table]
