"""
Plotting utilities for the write-ups.

Every function draws one figure, saves it as PNG under `out_path` and returns
the path. Figures are closed after saving.
"""
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import matplotlib.dates as mdates
import seaborn as sns
from sklearn.tree import plot_tree

from health_eda.common.logging_utils import get_logger

logger = get_logger(__name__)

sns.set_style("whitegrid")
FIGSIZE = (10, 6)
DPI = 150


def _save(fig, out_path: Path) -> Path:
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    fig.tight_layout()
    fig.savefig(out_path, dpi=DPI, bbox_inches='tight')
    plt.close(fig)
    logger.info(f"Saved plot: {out_path.name}")
    return out_path


def plot_tree_structure(
    tree,
    feature_names: List[str],
    out_path: Path,
    max_depth: Optional[int] = 3,
    title: str = "Regression tree"
) -> Path:
    """Draw a fitted sklearn tree (top levels only when `max_depth` is set)."""
    fig, ax = plt.subplots(figsize=(16, 8))
    plot_tree(
        tree,
        feature_names=feature_names,
        max_depth=max_depth,
        filled=True,
        rounded=True,
        impurity=False,
        precision=2,
        fontsize=8,
        ax=ax,
    )
    ax.set_title(title, fontsize=14, fontweight='bold')
    return _save(fig, out_path)


def plot_feature_importance(
    importance: Dict[str, float],
    out_path: Path,
    title: str = "Variable importance",
    top_n: int = 15
) -> Path:
    items = sorted(importance.items(), key=lambda kv: kv[1], reverse=True)[:top_n]
    names = [k for k, _ in items][::-1]
    values = [v for _, v in items][::-1]

    fig, ax = plt.subplots(figsize=FIGSIZE)
    ax.barh(names, values, color='#1f77b4', alpha=0.8)
    ax.set_xlabel('Importance', fontsize=12, fontweight='bold')
    ax.set_title(title, fontsize=14, fontweight='bold')
    ax.grid(True, axis='x', alpha=0.3, linestyle='--')
    return _save(fig, out_path)


def plot_test_mse(
    comparison: pd.DataFrame,
    out_path: Path,
    null_mse: Optional[float] = None,
    title: str = "Test MSE by model"
) -> Path:
    """Bar chart of test MSE per model (`comparison` indexed by model, with an `mse` column)."""
    ordered = comparison.sort_values('mse')

    fig, ax = plt.subplots(figsize=FIGSIZE)
    bars = ax.bar(ordered.index.astype(str), ordered['mse'], color='#2ca02c', alpha=0.8)
    for bar, value in zip(bars, ordered['mse']):
        ax.annotate(f"{value:.2f}", (bar.get_x() + bar.get_width() / 2, bar.get_height()),
                    ha='center', va='bottom', fontsize=9)

    if null_mse is not None:
        ax.axhline(null_mse, color='red', linestyle='--', linewidth=2,
                   label=f'Null model (train mean) = {null_mse:.2f}')
        ax.legend(loc='upper left', framealpha=0.95)

    ax.set_ylabel('Test MSE', fontsize=12, fontweight='bold')
    ax.set_title(title, fontsize=14, fontweight='bold')
    plt.setp(ax.get_xticklabels(), rotation=30, ha='right')
    return _save(fig, out_path)


def plot_predicted_vs_observed(
    y_true: np.ndarray,
    y_pred: np.ndarray,
    out_path: Path,
    title: str = "Predicted vs observed"
) -> Path:
    y_true = np.asarray(y_true, dtype=float)
    y_pred = np.asarray(y_pred, dtype=float)

    fig, ax = plt.subplots(figsize=(7, 7))
    ax.scatter(y_true, y_pred, alpha=0.5, s=20)
    low = min(y_true.min(), y_pred.min())
    high = max(y_true.max(), y_pred.max())
    ax.plot([low, high], [low, high], 'r--', lw=2, label='y = x')

    ax.set_xlabel('Observed', fontsize=12)
    ax.set_ylabel('Predicted', fontsize=12)
    ax.set_title(title, fontsize=14, fontweight='bold')
    ax.legend()
    return _save(fig, out_path)


def plot_time_series_by_group(
    df: pd.DataFrame,
    x: str,
    y: str,
    group: str,
    out_path: Path,
    title: str = "",
    ylabel: Optional[str] = None
) -> Path:
    """Line per group level over time."""
    fig, ax = plt.subplots(figsize=(14, 6))
    for level, g in df.groupby(group, observed=True):
        g = g.sort_values(x)
        ax.plot(g[x], g[y], 'o-', linewidth=2, markersize=3, label=str(level), alpha=0.8)

    if pd.api.types.is_datetime64_any_dtype(df[x]):
        ax.xaxis.set_major_formatter(mdates.DateFormatter('%Y-%m'))
        ax.xaxis.set_major_locator(mdates.MonthLocator(interval=6))
        plt.setp(ax.get_xticklabels(), rotation=45, ha='right')

    ax.set_xlabel(x.replace('_', ' ').title(), fontsize=12, fontweight='bold')
    ax.set_ylabel(ylabel or y, fontsize=12, fontweight='bold')
    ax.set_title(title, fontsize=14, fontweight='bold', pad=15)
    ax.grid(True, alpha=0.3, linestyle='--')
    ax.legend(loc='upper right', framealpha=0.95, fontsize=10)
    return _save(fig, out_path)


def plot_box_by_group(
    df: pd.DataFrame,
    value: str,
    group: str,
    out_path: Path,
    hue: Optional[str] = None,
    title: str = "",
    order: Optional[Sequence] = None
) -> Path:
    fig, ax = plt.subplots(figsize=FIGSIZE)
    sns.boxplot(data=df, x=group, y=value, hue=hue, order=order, ax=ax)
    if hue is None:
        sns.stripplot(data=df, x=group, y=value, order=order, color='black',
                      alpha=0.3, size=3, ax=ax)
    ax.set_title(title, fontsize=14, fontweight='bold')
    plt.setp(ax.get_xticklabels(), rotation=30, ha='right')
    return _save(fig, out_path)


def plot_coefficients(
    coefficients: pd.DataFrame,
    out_path: Path,
    title: str = "Coefficients",
    transform=None,
    reference: float = 0.0,
    xlabel: str = "Estimate (95% CI)"
) -> Path:
    """
    Forest plot of coefficient estimates with confidence intervals.

    Args:
        coefficients: Indexed by term, with estimate, ci_low, ci_high columns
        transform: Optional function applied to estimate and CI (e.g. np.exp)
        reference: Where to draw the null line (after transform)
    """
    table = coefficients.drop(index=[i for i in coefficients.index if i == 'Intercept'])
    est = table['estimate'].to_numpy(dtype=float)
    low = table['ci_low'].to_numpy(dtype=float)
    high = table['ci_high'].to_numpy(dtype=float)
    if transform is not None:
        est, low, high = transform(est), transform(low), transform(high)

    positions = np.arange(len(table))[::-1]
    fig, ax = plt.subplots(figsize=(9, max(3, 0.5 * len(table) + 1)))
    ax.errorbar(est, positions, xerr=[est - low, high - est], fmt='o', color='#1f77b4',
                ecolor='gray', capsize=3)
    ax.axvline(reference, color='red', linestyle='--', linewidth=1)
    ax.set_yticks(positions)
    ax.set_yticklabels(table.index)
    ax.set_xlabel(xlabel, fontsize=12)
    ax.set_title(title, fontsize=14, fontweight='bold')
    return _save(fig, out_path)


def plot_trends_by_region(
    summary: pd.DataFrame,
    out_path: Path,
    value: str = 'median',
    title: str = "",
    ylabel: str = ""
) -> Path:
    """Regional trend lines from a (region, year, <value>) summary with optional q25/q75 bands."""
    fig, ax = plt.subplots(figsize=(12, 6))
    for region, g in summary.groupby('region'):
        g = g.sort_values('year')
        line, = ax.plot(g['year'].astype(float), g[value], 'o-', linewidth=2, markersize=4, label=str(region))
        if {'q25', 'q75'} <= set(g.columns):
            ax.fill_between(g['year'].astype(float), g['q25'], g['q75'],
                            color=line.get_color(), alpha=0.12)

    ax.set_xlabel('Year', fontsize=12, fontweight='bold')
    ax.set_ylabel(ylabel or value, fontsize=12, fontweight='bold')
    ax.set_title(title, fontsize=14, fontweight='bold')
    ax.grid(True, alpha=0.3, linestyle='--')
    ax.legend(loc='upper left', framealpha=0.95, fontsize=9)
    return _save(fig, out_path)
