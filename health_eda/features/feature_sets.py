"""Feature set definitions.

Shared helper to select a named subset of predictors and turn a clean frame
into a numeric design matrix.

The "core" Medicaid set drops the two composite health scores and the
enrollment indicators, leaving demographic and coverage predictors only.
"""

from __future__ import annotations

from typing import Iterable, List, Literal, Optional, Sequence, Tuple

import numpy as np
import pandas as pd


FeatureSetName = Literal["full", "core"]


MEDICAID_CORE_FEATURE_SET: Sequence[str] = (
    "exposure",
    "children",
    "age",
    "income",
    "access",
    "married",
    "female",
    "nonwhite",
    "school",
    "ssi",
)


def select_feature_columns(
    all_columns: Iterable[str],
    feature_set: FeatureSetName = "full",
    target: Optional[str] = None,
) -> List[str]:
    columns = [c for c in all_columns if c != target]

    if feature_set == "full":
        return columns

    if feature_set != "core":
        raise ValueError(f"Unknown feature_set: {feature_set}")

    present = set(columns)
    selected = [c for c in MEDICAID_CORE_FEATURE_SET if c in present]
    if not selected:
        selected = columns

    return selected


def build_design_matrix(
    df: pd.DataFrame,
    target: str,
    feature_cols: Sequence[str],
) -> Tuple[pd.DataFrame, pd.Series]:
    """One-hot encode categorical predictors (first level dropped) and split off the target.

    Returns:
        (X, y) with X all-float and named columns
    """
    missing = [c for c in list(feature_cols) + [target] if c not in df.columns]
    if missing:
        raise ValueError(f"Columns not found: {missing}")

    X = df[list(feature_cols)]
    categorical = [
        c for c in X.columns
        if isinstance(X[c].dtype, pd.CategoricalDtype) or X[c].dtype == object
    ]
    if categorical:
        X = pd.get_dummies(X, columns=categorical, drop_first=True, dtype=float)

    X = X.astype(np.float64)
    y = df[target].astype(np.float64)
    return X, y
