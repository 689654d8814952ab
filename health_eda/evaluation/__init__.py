"""Evaluation module - train/test split, test MSE, and rank tests."""

from health_eda.evaluation.split import (
    SplitResult,
    train_test_split_frame,
    prepare_train_test
)

from health_eda.evaluation.metrics import (
    test_mse,
    null_model_mse,
    compute_regression_metrics,
    compare_models,
    print_metrics
)

from health_eda.evaluation.rank_tests import (
    RankTestResult,
    signed_rank_test,
    rank_sum_test,
    kruskal_test,
    pairwise_rank_sum,
    rank_tests_to_frame
)

__all__ = [
    # Split module
    'SplitResult',
    'train_test_split_frame',
    'prepare_train_test',
    # Metrics module
    'test_mse',
    'null_model_mse',
    'compute_regression_metrics',
    'compare_models',
    'print_metrics',
    # Rank tests module
    'RankTestResult',
    'signed_rank_test',
    'rank_sum_test',
    'kruskal_test',
    'pairwise_rank_sum',
    'rank_tests_to_frame'
]
