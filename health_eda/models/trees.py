"""
Tree models: single regression tree, bagging and random forests.

The single tree can be pruned by cost-complexity: candidate alphas come from
the tree's pruning path, and the alpha with the lowest k-fold CV MSE wins.
Bagging is a random forest that considers every feature at each split.
"""
import numpy as np
from typing import Dict, List, Optional, Union
from sklearn.ensemble import RandomForestRegressor
from sklearn.model_selection import KFold, cross_val_score
from sklearn.tree import DecisionTreeRegressor

from health_eda.models.base import BaseModel, importance_dict
from health_eda.common.logging_utils import get_logger

logger = get_logger(__name__)


class DecisionTreeModel(BaseModel):
    """Regression tree, optionally pruned by cross-validated cost-complexity."""

    def __init__(self, config: Optional[Dict] = None, name: str = "decision_tree"):
        super().__init__(name=name, config=config)

        cfg = config or {}
        self.max_depth = cfg.get('max_depth')
        self.min_samples_leaf = cfg.get('min_samples_leaf', 5)
        self.prune = cfg.get('prune', False)
        self.cv_folds = cfg.get('cv_folds', 10)
        self.max_alphas = cfg.get('max_alphas', 50)
        self.random_state = cfg.get('random_state', 42)

        self.ccp_alpha_ = 0.0
        self.cv_results_: Optional[Dict[str, List[float]]] = None
        self.model = self._make_tree(0.0)

    def _make_tree(self, ccp_alpha: float) -> DecisionTreeRegressor:
        return DecisionTreeRegressor(
            max_depth=self.max_depth,
            min_samples_leaf=self.min_samples_leaf,
            ccp_alpha=ccp_alpha,
            random_state=self.random_state,
        )

    def _select_alpha(self, X: np.ndarray, y: np.ndarray) -> float:
        path = self._make_tree(0.0).cost_complexity_pruning_path(X, y)
        # last alpha prunes to the root
        alphas = np.unique(np.clip(path.ccp_alphas[:-1], 0.0, None))
        if len(alphas) == 0:
            return 0.0
        if len(alphas) > self.max_alphas:
            idx = np.unique(np.linspace(0, len(alphas) - 1, self.max_alphas).round().astype(int))
            alphas = alphas[idx]

        folds = KFold(n_splits=min(self.cv_folds, len(y)), shuffle=True,
                      random_state=self.random_state)
        cv_mse = []
        for alpha in alphas:
            scores = cross_val_score(self._make_tree(alpha), X, y, cv=folds,
                                     scoring='neg_mean_squared_error')
            cv_mse.append(float(-scores.mean()))

        best = int(np.argmin(cv_mse))
        self.cv_results_ = {'ccp_alpha': alphas.tolist(), 'cv_mse': cv_mse}
        logger.info(f"Pruning: {len(alphas)} candidate alphas, best={alphas[best]:.4g} "
                    f"(CV MSE {cv_mse[best]:.3f})")
        return float(alphas[best])

    def fit(self, X: np.ndarray, y: np.ndarray) -> 'DecisionTreeModel':
        """Fit the tree (after choosing ccp_alpha when pruning is enabled)."""
        X = np.nan_to_num(np.asarray(X, dtype=np.float64), nan=0.0)
        y = np.asarray(y, dtype=np.float64)

        if self.prune:
            self.ccp_alpha_ = self._select_alpha(X, y)
        self.model = self._make_tree(self.ccp_alpha_)
        self.model.fit(X, y)
        self.is_fitted = True

        return self

    def predict(self, X: np.ndarray) -> np.ndarray:
        self._check_fitted()
        X = np.nan_to_num(np.asarray(X, dtype=np.float64), nan=0.0)
        return self.model.predict(X)

    @property
    def n_leaves(self) -> int:
        self._check_fitted()
        return int(self.model.get_n_leaves())

    def get_feature_importance(self, feature_names: Optional[List[str]] = None) -> Dict[str, float]:
        self._check_fitted()
        return importance_dict(self.model.feature_importances_, feature_names)


class RandomForestModel(BaseModel):
    """Random forest regressor; `max_features: all` gives bagging."""

    def __init__(self, config: Optional[Dict] = None, name: str = "random_forest"):
        super().__init__(name=name, config=config)

        cfg = config or {}
        self.n_estimators = cfg.get('n_estimators', 500)
        self.max_features = self._parse_max_features(cfg.get('max_features', 0.33))
        self.min_samples_leaf = cfg.get('min_samples_leaf', 1)
        self.n_jobs = cfg.get('n_jobs', -1)
        self.random_state = cfg.get('random_state', 42)

        self.model = RandomForestRegressor(
            n_estimators=self.n_estimators,
            max_features=self.max_features,
            min_samples_leaf=self.min_samples_leaf,
            n_jobs=self.n_jobs,
            random_state=self.random_state,
            oob_score=True,
        )

    @staticmethod
    def _parse_max_features(value) -> Union[float, int, str]:
        if value in (None, 'all'):
            return 1.0
        if isinstance(value, str):
            if value not in ('sqrt', 'log2'):
                raise ValueError(f"Unknown max_features: {value}")
            return value
        if isinstance(value, float) and not 0.0 < value <= 1.0:
            raise ValueError(f"max_features fraction must be in (0, 1], got {value}")
        return value

    def fit(self, X: np.ndarray, y: np.ndarray) -> 'RandomForestModel':
        X = np.nan_to_num(np.asarray(X, dtype=np.float64), nan=0.0)
        y = np.asarray(y, dtype=np.float64)
        self.model.fit(X, y)
        # out-of-bag MSE on the training data
        self.oob_mse_ = float(np.nanmean((self.model.oob_prediction_ - y) ** 2))
        self.is_fitted = True
        return self

    def predict(self, X: np.ndarray) -> np.ndarray:
        self._check_fitted()
        X = np.nan_to_num(np.asarray(X, dtype=np.float64), nan=0.0)
        return self.model.predict(X)

    def get_feature_importance(self, feature_names: Optional[List[str]] = None) -> Dict[str, float]:
        """Impurity-based importances (mean decrease in node MSE)."""
        self._check_fitted()
        return importance_dict(self.model.feature_importances_, feature_names)
