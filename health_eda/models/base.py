"""
Base Model Interface

Abstract base class that all regression models implement.
Ensures a consistent API across trees, ensembles and BART.
"""
from abc import ABC, abstractmethod
import numpy as np
from typing import Dict, List, Optional
import pickle
from pathlib import Path


class BaseModel(ABC):
    """Abstract base class for all write-up models."""

    def __init__(self, name: str, config: Optional[Dict] = None):
        """
        Initialize model.

        Args:
            name: Model identifier
            config: Model-specific configuration
        """
        self.name = name
        self.config = config or {}
        self.is_fitted = False
        self.feature_names: Optional[List[str]] = None

    @abstractmethod
    def fit(self, X: np.ndarray, y: np.ndarray) -> 'BaseModel':
        """
        Fit model to training data.

        Args:
            X: Feature matrix (n_samples, n_features)
            y: Continuous target (n_samples,)

        Returns:
            self
        """
        pass

    @abstractmethod
    def predict(self, X: np.ndarray) -> np.ndarray:
        """
        Predict the target.

        Args:
            X: Feature matrix (n_samples, n_features)

        Returns:
            Predictions (n_samples,)
        """
        pass

    def _check_fitted(self) -> None:
        if not self.is_fitted:
            raise ValueError("Model not fitted. Call fit() first.")

    def get_feature_importance(self, feature_names: Optional[List[str]] = None) -> Dict[str, float]:
        """Get feature importances (models without them raise NotImplementedError)."""
        raise NotImplementedError(f"{self.__class__.__name__} has no feature importances")

    def save(self, path: str) -> None:
        """Save model to disk."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'wb') as f:
            pickle.dump(self, f)

    @classmethod
    def load(cls, path: str) -> 'BaseModel':
        """Load model from disk."""
        with open(path, 'rb') as f:
            return pickle.load(f)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name='{self.name}', fitted={self.is_fitted})"


def importance_dict(importances: np.ndarray, feature_names: Optional[List[str]]) -> Dict[str, float]:
    """Pair importances with names (or positional keys), sorted descending."""
    names = feature_names or [f"x{i}" for i in range(len(importances))]
    pairs = sorted(zip(names, (float(v) for v in importances)), key=lambda kv: kv[1], reverse=True)
    return dict(pairs)
