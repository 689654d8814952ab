"""
Evaluation Metrics for the regression write-ups

Test MSE is the headline metric; RMSE, MAE and R^2 are reported alongside.
The null model (predict the training mean) gives the reference MSE.
"""
import numpy as np
import pandas as pd
from typing import Dict
from sklearn.metrics import (
    mean_squared_error,
    mean_absolute_error,
    r2_score
)


def test_mse(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """
    Mean squared prediction error on held-out data.

    Args:
        y_true: Observed test targets
        y_pred: Predictions for the same rows

    Returns:
        MSE
    """
    y_true = np.asarray(y_true, dtype=np.float64)
    y_pred = np.asarray(y_pred, dtype=np.float64)
    if y_true.shape != y_pred.shape:
        raise ValueError(f"Shape mismatch: {y_true.shape} vs {y_pred.shape}")
    if len(y_true) == 0:
        raise ValueError("Cannot compute MSE of an empty test set")
    return float(mean_squared_error(y_true, y_pred))


# pytest would otherwise collect the metric as a test function
test_mse.__test__ = False


def null_model_mse(y_train: np.ndarray, y_test: np.ndarray) -> float:
    """Test MSE of always predicting the training mean."""
    baseline = float(np.mean(np.asarray(y_train, dtype=np.float64)))
    return test_mse(y_test, np.full(len(y_test), baseline))


def compute_regression_metrics(y_true: np.ndarray, y_pred: np.ndarray) -> Dict[str, float]:
    """
    Compute all regression metrics.

    Returns:
        Dictionary with mse, rmse, mae, r2, n_samples
    """
    y_true = np.asarray(y_true, dtype=np.float64)
    y_pred = np.asarray(y_pred, dtype=np.float64)

    mse = test_mse(y_true, y_pred)
    return {
        'mse': mse,
        'rmse': float(np.sqrt(mse)),
        'mae': float(mean_absolute_error(y_true, y_pred)),
        'r2': float(r2_score(y_true, y_pred)) if len(y_true) > 1 else np.nan,
        'n_samples': int(len(y_true)),
    }


def compare_models(results: Dict[str, Dict[str, float]]) -> pd.DataFrame:
    """
    Tabulate per-model metrics, best (lowest MSE) first.

    Args:
        results: model name -> metrics dict (must contain 'mse')

    Returns:
        DataFrame indexed by model name
    """
    table = pd.DataFrame.from_dict(results, orient='index')
    table.index.name = 'model'
    return table.sort_values('mse')


def print_metrics(metrics: Dict[str, float], title: str = "Metrics") -> None:
    """Pretty print metrics."""
    print(f"\n{title}")
    print("-" * 40)
    print(f"  Test MSE:     {metrics.get('mse', np.nan):.3f}")
    print(f"  RMSE:         {metrics.get('rmse', np.nan):.3f}")
    print(f"  MAE:          {metrics.get('mae', np.nan):.3f}")
    print(f"  R^2:          {metrics.get('r2', np.nan):.3f}")
    print(f"  Samples:      {metrics.get('n_samples', 0)}")
