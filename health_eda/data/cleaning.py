"""
Generic cleaning helpers shared by the write-ups.

Each helper returns a new DataFrame; inputs are never mutated.
"""
import pandas as pd
from typing import Dict, Iterable, List, Optional, Sequence

from health_eda.common.logging_utils import get_logger

logger = get_logger(__name__)


def rename_columns(df: pd.DataFrame, mapping: Dict[str, str]) -> pd.DataFrame:
    """Rename columns, ignoring mapping keys that are absent."""
    present = {k: v for k, v in mapping.items() if k in df.columns}
    return df.rename(columns=present)


def recode_levels(
    df: pd.DataFrame,
    column: str,
    mapping: Dict,
    ordered: Optional[Sequence[str]] = None
) -> pd.DataFrame:
    """
    Recode the levels of a categorical column.

    Values not in `mapping` become NaN (so they can be dropped explicitly).

    Args:
        df: Input DataFrame
        column: Column to recode
        mapping: Old level -> new level
        ordered: If given, store the result as a Categorical with these
                 categories in this order (the first is the reference level)

    Returns:
        DataFrame with the recoded column
    """
    if column not in df.columns:
        raise ValueError(f"Column not found: {column}")

    df = df.copy()
    df[column] = df[column].map(mapping)

    if ordered is not None:
        df[column] = pd.Categorical(df[column], categories=list(ordered))

    return df


def recode_binary(
    df: pd.DataFrame,
    columns: Iterable[str],
    positive: Dict[str, str]
) -> pd.DataFrame:
    """
    Recode two-level string columns to 0/1 integers.

    Args:
        df: Input DataFrame
        columns: Columns to recode
        positive: Column -> level that maps to 1 (every other non-null level maps to 0)

    Returns:
        DataFrame with integer columns (nullable Int64 where input had NaN)
    """
    df = df.copy()
    for col in columns:
        if col not in positive:
            raise ValueError(f"No positive level given for {col}")
        values = df[col].astype('string').str.strip().str.lower()
        df[col] = (values == positive[col].lower()).astype('Int64').where(values.notna())
    return df


def drop_missing(df: pd.DataFrame, subset: Optional[List[str]] = None) -> pd.DataFrame:
    """Drop rows with missing values in `subset` (all columns if None), logging the loss."""
    cleaned = df.dropna(subset=subset).reset_index(drop=True)
    n_dropped = len(df) - len(cleaned)
    if n_dropped > 0:
        pct = 100 * n_dropped / len(df)
        logger.info(f"Dropped {n_dropped} rows with missing values ({pct:.1f}%)")
    return cleaned


def to_long(
    df: pd.DataFrame,
    id_vars: List[str],
    value_vars: List[str],
    var_name: str = 'variable',
    value_name: str = 'value'
) -> pd.DataFrame:
    """
    Reshape wide to long (one row per id x value column).

    Returns:
        Long DataFrame sorted by the id columns then `var_name`
    """
    missing = [c for c in id_vars + value_vars if c not in df.columns]
    if missing:
        raise ValueError(f"Columns not found: {missing}")

    long_df = df.melt(
        id_vars=id_vars,
        value_vars=value_vars,
        var_name=var_name,
        value_name=value_name,
    )
    return long_df.sort_values(id_vars + [var_name]).reset_index(drop=True)
