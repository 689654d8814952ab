"""Models - tree ensembles, BART and survey-weighted GLMs."""
from typing import Dict, Optional

from health_eda.models.base import BaseModel
from health_eda.models.trees import DecisionTreeModel, RandomForestModel
from health_eda.models.boosting import XGBoostModel


def _make_bart(cfg: Dict, name: str) -> BaseModel:
    # pymc is slow to import; only pay for it when BART is enabled
    from health_eda.models.bart import BARTModel
    return BARTModel(cfg, name=name)


MODEL_FACTORIES = {
    'decision_tree': lambda cfg, name: DecisionTreeModel(cfg, name=name),
    'bagging': lambda cfg, name: RandomForestModel({**cfg, 'max_features': 'all'}, name=name),
    'random_forest': lambda cfg, name: RandomForestModel(cfg, name=name),
    'xgboost': lambda cfg, name: XGBoostModel(cfg, name=name),
    'bart': _make_bart,
}


def build_models(models_cfg: Dict, random_state: Optional[int] = None) -> Dict[str, BaseModel]:
    """
    Create every enabled model, in config order.

    Args:
        models_cfg: Mapping model key -> parameters (with an `enabled` flag)
        random_state: Seed applied to models that do not set their own

    Returns:
        Ordered dict of model key -> unfitted model
    """
    models = {}
    for key, params in (models_cfg or {}).items():
        params = dict(params or {})
        if not params.pop('enabled', True):
            continue
        if key not in MODEL_FACTORIES:
            raise ValueError(f"Unknown model: {key}. Known: {sorted(MODEL_FACTORIES)}")
        if random_state is not None:
            params.setdefault('random_state', random_state)
        models[key] = MODEL_FACTORIES[key](params, key)
    return models


__all__ = [
    'BaseModel',
    'DecisionTreeModel',
    'RandomForestModel',
    'XGBoostModel',
    'MODEL_FACTORIES',
    'build_models',
]
