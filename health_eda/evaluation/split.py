"""
Train/test splitting for held-out evaluation.

A single random split (half the observations for training by default) gives
the held-out set on which test MSE is computed.
"""
import pandas as pd
import numpy as np
from typing import List, Tuple
from dataclasses import dataclass


@dataclass
class SplitResult:
    """Row positions of one train/test split."""
    train_idx: np.ndarray
    test_idx: np.ndarray
    random_state: int

    @property
    def n_train(self) -> int:
        return len(self.train_idx)

    @property
    def n_test(self) -> int:
        return len(self.test_idx)


def train_test_split_frame(
    df: pd.DataFrame,
    train_fraction: float = 0.5,
    random_state: int = 1
) -> SplitResult:
    """
    Randomly split row positions into train and test sets.

    Args:
        df: DataFrame to split
        train_fraction: Share of rows used for training (0 < f < 1)
        random_state: Seed for reproducibility

    Returns:
        SplitResult with sorted, disjoint positional indices
    """
    if not 0.0 < train_fraction < 1.0:
        raise ValueError(f"train_fraction must be in (0, 1), got {train_fraction}")

    n = len(df)
    n_train = int(round(n * train_fraction))
    if n_train == 0 or n_train == n:
        raise ValueError(f"Cannot split {n} rows with train_fraction={train_fraction}")

    rng = np.random.default_rng(random_state)
    permutation = rng.permutation(n)

    return SplitResult(
        train_idx=np.sort(permutation[:n_train]),
        test_idx=np.sort(permutation[n_train:]),
        random_state=random_state,
    )


def prepare_train_test(
    train_df: pd.DataFrame,
    test_df: pd.DataFrame,
    feature_cols: List[str],
    target_col: str
) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """
    Prepare X, y arrays for training and testing.

    Args:
        train_df: Training DataFrame
        test_df: Test DataFrame
        feature_cols: List of feature column names
        target_col: Target column name

    Returns:
        Tuple of (X_train, y_train, X_test, y_test)
    """
    # dtype=float avoids object arrays from pandas nullable dtypes
    X_train = train_df[feature_cols].to_numpy(dtype=float)
    y_train = train_df[target_col].to_numpy(dtype=float)
    X_test = test_df[feature_cols].to_numpy(dtype=float)
    y_test = test_df[target_col].to_numpy(dtype=float)

    return X_train, y_train, X_test, y_test
