"""
Gradient boosting with XGBoost.

Many shallow trees, small learning rate, row subsampling - the usual
boosting recipe for a few hundred tabular observations.
"""
import numpy as np
from typing import Dict, List, Optional
from xgboost import XGBRegressor

from health_eda.models.base import BaseModel, importance_dict


class XGBoostModel(BaseModel):
    """XGBoost regressor (squared-error objective)."""

    def __init__(self, config: Optional[Dict] = None, name: str = "xgboost"):
        super().__init__(name=name, config=config)

        # Default parameters
        cfg = config or {}
        self.n_estimators = cfg.get('n_estimators', 1000)
        self.max_depth = cfg.get('max_depth', 4)
        self.learning_rate = cfg.get('learning_rate', 0.01)
        self.subsample = cfg.get('subsample', 0.8)
        self.colsample_bytree = cfg.get('colsample_bytree', 1.0)
        self.reg_lambda = cfg.get('reg_lambda', 1.0)
        self.random_state = cfg.get('random_state', 42)

        self.model = XGBRegressor(
            n_estimators=self.n_estimators,
            max_depth=self.max_depth,
            learning_rate=self.learning_rate,
            subsample=self.subsample,
            colsample_bytree=self.colsample_bytree,
            reg_lambda=self.reg_lambda,
            random_state=self.random_state,
            objective='reg:squarederror',
            verbosity=0
        )

    def fit(self, X: np.ndarray, y: np.ndarray) -> 'XGBoostModel':
        """Fit XGBoost model."""
        # XGBoost handles NaN natively, but ensure float type
        X = np.asarray(X, dtype=np.float32)

        self.model.fit(X, np.asarray(y, dtype=np.float32))
        self.is_fitted = True

        return self

    def predict(self, X: np.ndarray) -> np.ndarray:
        self._check_fitted()
        X = np.asarray(X, dtype=np.float32)
        return self.model.predict(X).astype(np.float64)

    def get_feature_importance(self, feature_names: Optional[List[str]] = None) -> Dict[str, float]:
        """Gain-based importances, normalised to sum to 1."""
        self._check_fitted()
        return importance_dict(self.model.feature_importances_, feature_names)
