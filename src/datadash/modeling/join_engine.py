"""
Execute a DataModel: flatten a base table and its joined tables into one Dataset.

Joins run sequentially as hash joins against a growing accumulator. The
right side of every join is treated as the "one" side: when a key repeats,
the last right row wins and no fan-out happens.
"""
from typing import Dict, List, Optional

from loguru import logger

from datadash.config import DataModel, JoinConfig
from datadash.data.dataset import ColumnProfile, Dataset, Row, Table, TableCollection
from datadash.errors import MissingBaseTableError, ModelValidationError


def join_key(value) -> str:
    """Keys compare by their string form, so 7 and "7" match."""
    if isinstance(value, bool):
        # spreadsheet text spells booleans in lower case
        return 'true' if value else 'false'
    if isinstance(value, float) and value.is_integer():
        # 7.0 prints as "7" on the other side of a spreadsheet join
        return str(int(value))
    return str(value)


def build_lookup(table: Table, column: str) -> Dict[str, Row]:
    """Index rows by stringified key; later rows overwrite earlier ones."""
    lookup: Dict[str, Row] = {}
    duplicates = 0
    for row in table.rows:
        key = join_key(row.get(column))
        if key in lookup:
            duplicates += 1
        lookup[key] = row

    if duplicates:
        logger.warning(f"Join key {table.table_name}.{column} is not unique: "
                       f"{duplicates} duplicate row(s), keeping the last occurrence")
    return lookup


def validate_data_model(tables: TableCollection, model: DataModel,
                        strict: bool = False) -> List[str]:
    """
    List the references in ``model`` that do not resolve.

    Execution itself tolerates missing right tables; this is the opt-in
    check for callers that want to reject stale configuration up front.
    """
    problems = []

    base = tables.get(model.base_table_id)
    if base is None:
        problems.append(f"Base table '{model.base_table_id}' not found")
        available = set()
    else:
        available = set(base.column_names)

    for join in model.joins:
        right = tables.get(join.right_table_id)
        if right is None:
            problems.append(f"Join {join.id}: right table '{join.right_table_id}' not found")
            continue
        if base is not None and join.left_column not in available:
            problems.append(f"Join {join.id}: left column '{join.left_column}' not available")
        if join.right_column not in right.column_names:
            problems.append(f"Join {join.id}: column '{join.right_column}' "
                            f"not found in '{right.table_name}'")
        available.update(f"{right.table_name}.{name}" for name in right.column_names)

    if problems and strict:
        for problem in problems:
            logger.error(problem)
        raise ModelValidationError(problems)

    return problems


def apply_join(rows: List[Row], right: Table, join: JoinConfig) -> List[Row]:
    """Join one right table onto the accumulated rows, returning new row dicts."""
    lookup = build_lookup(right, join.right_column)
    prefix = right.table_name
    right_names = right.column_names
    renamed = [(f"{prefix}.{name}", name) for name in right_names]

    joined = []
    unmatched = 0
    for left_row in rows:
        right_row = lookup.get(join_key(left_row.get(join.left_column)))

        if right_row is None:
            unmatched += 1
            if join.join_type == 'INNER':
                continue
            merged = dict(left_row)
            for new_name, _ in renamed:
                merged[new_name] = None
        else:
            merged = dict(left_row)
            for new_name, name in renamed:
                merged[new_name] = right_row.get(name)

        joined.append(merged)

    logger.info(f"Joined {prefix} on {join.left_column} = {join.right_column} "
                f"({join.join_type}): {len(rows)} -> {len(joined)} rows, {unmatched} unmatched")
    return joined


def execute_data_model(tables: TableCollection, model: DataModel) -> Dataset:
    """
    Execute the base table plus its joins and return one flat Dataset.

    Args:
        tables: Profiled tables keyed by id
        model: Base table id and ordered joins

    Returns:
        Dataset whose joined-in columns and dimensions carry a
        ``<tableName>.`` prefix. Date and measure columns come from the base
        table and are not recomputed.

    Raises:
        MissingBaseTableError: if ``model.base_table_id`` is not in ``tables``
    """
    base = tables.get(model.base_table_id)
    if base is None:
        logger.error(f"Base table not found: {model.base_table_id}")
        raise MissingBaseTableError(model.base_table_id)

    logger.info(f"Executing data model: base={base.table_name} ({base.row_count} rows), "
                f"joins={len(model.joins)}")

    # Shallow copies so the source table's rows are never touched
    rows: List[Row] = [dict(r) for r in base.rows]
    columns: List[ColumnProfile] = list(base.columns)
    dimensions: List[str] = list(base.dimensions)

    for join in model.joins:
        right: Optional[Table] = tables.get(join.right_table_id)
        if right is None:
            logger.warning(f"Skipping join {join.id}: right table '{join.right_table_id}' not found")
            continue

        rows = apply_join(rows, right, join)
        columns.extend(col.renamed(right.table_name) for col in right.columns)
        dimensions.extend(f"{right.table_name}.{d}" for d in right.dimensions)

    logger.info(f"Unified dataset: {len(rows)} rows × {len(columns)} cols")

    return Dataset(
        file_name=f"Model: {base.table_name} + {len(model.joins)} joins",
        rows=rows,
        columns=columns,
        row_count=len(rows),
        primary_date_column=base.primary_date_column,
        primary_measure_column=base.primary_measure_column,
        dimensions=dimensions,
    )
