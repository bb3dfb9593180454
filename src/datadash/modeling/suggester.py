"""Heuristic join suggestions between a base table and the other loaded tables."""
from typing import List, Optional

from loguru import logger

from datadash.config import JoinConfig, SuggesterConfig
from datadash.data.dataset import ColumnProfile, Table, TableCollection


def uniqueness_ratio(col: ColumnProfile, table: Table) -> float:
    """Distinct values per row; close to 1.0 means the column looks like a key."""
    if table.row_count == 0:
        return 0.0
    return col.unique_count / table.row_count


def singular_name(table_name: str) -> str:
    """Naive singular form: drop the trailing character ("customers" -> "customer")."""
    return table_name.lower()[:-1]


def foreign_key_name(table_name: str) -> str:
    return f"{singular_name(table_name)}_id"


def match_by_name(base: Table, right: Table,
                  config: Optional[SuggesterConfig] = None) -> Optional[JoinConfig]:
    """
    Strategy A: columns with the same name (case-insensitive) where the right
    column is near-unique.

    With the default 'last' policy every qualifying pair overwrites the
    previous one, so the last pair in column iteration order wins. The 'best'
    policy keeps the pair with the highest uniqueness ratio instead (earliest
    pair on ties).
    """
    config = config or SuggesterConfig()

    best_pair = None
    best_ratio = -1.0
    for base_col in base.columns:
        for right_col in right.columns:
            if base_col.name.lower() != right_col.name.lower():
                continue
            ratio = uniqueness_ratio(right_col, right)
            if ratio <= config.key_uniqueness_threshold:
                continue
            if config.name_match_policy == 'last' or ratio > best_ratio:
                best_pair = (base_col.name, right_col.name)
                best_ratio = ratio

    if best_pair is None:
        return None

    return JoinConfig(
        right_table_id=right.id,
        left_column=best_pair[0],
        right_column=best_pair[1],
        join_type=config.default_join_type,
    )


def match_by_foreign_key(base: Table, right: Table,
                         config: Optional[SuggesterConfig] = None) -> Optional[JoinConfig]:
    """
    Strategy B: the right table has an ``id``-style key and the base table has
    a column that refers to it by name (``customer_id`` -> ``Customers.id``).
    """
    config = config or SuggesterConfig()

    table_name = right.table_name.lower()
    fk_name = foreign_key_name(right.table_name)
    key_names = {'id', f"{table_name}_id", fk_name}

    key_col = next((c for c in right.columns if c.name.lower() in key_names), None)
    if key_col is None or uniqueness_ratio(key_col, right) <= config.key_uniqueness_threshold:
        return None

    base_col = next(
        (c for c in base.columns if table_name in c.name.lower() or c.name.lower() == fk_name),
        None,
    )
    if base_col is None:
        return None

    return JoinConfig(
        right_table_id=right.id,
        left_column=base_col.name,
        right_column=key_col.name,
        join_type=config.default_join_type,
    )


def suggest_joins(base_table_id: str, tables: TableCollection,
                  config: Optional[SuggesterConfig] = None) -> List[JoinConfig]:
    """
    Propose at most one join per non-base table.

    Name matching is tried first, then the foreign-key naming convention.
    Tables with no confident match are left out. An unknown base table yields
    no suggestions.
    """
    config = config or SuggesterConfig()

    base = tables.get(base_table_id)
    if base is None:
        logger.warning(f"Cannot suggest joins: base table '{base_table_id}' not found")
        return []

    suggestions = []
    for right in tables.values():
        if right.id == base_table_id:
            continue

        join = match_by_name(base, right, config) or match_by_foreign_key(base, right, config)
        if join is None:
            logger.debug(f"No join found between {base.table_name} and {right.table_name}")
            continue

        logger.info(f"Suggested join: {base.table_name}.{join.left_column} -> "
                    f"{right.table_name}.{join.right_column} ({join.join_type})")
        suggestions.append(join)

    return suggestions
