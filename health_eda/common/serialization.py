"""JSON helpers for results files (numpy / pandas aware)."""

from __future__ import annotations

import json
import math
from datetime import date, datetime
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd


def to_serializable(obj: Any) -> Any:
    """Convert numpy / pandas scalars and containers to JSON-native types.

    NaN and infinities become None so the output stays valid JSON.
    """
    if isinstance(obj, dict):
        return {str(k): to_serializable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_serializable(v) for v in obj]
    if isinstance(obj, pd.DataFrame):
        return to_serializable(obj.to_dict(orient='records'))
    if isinstance(obj, pd.Series):
        return to_serializable(obj.to_dict())
    if isinstance(obj, np.ndarray):
        return to_serializable(obj.tolist())
    if obj is pd.NA or obj is pd.NaT:
        return None
    if isinstance(obj, np.bool_):
        return bool(obj)
    if isinstance(obj, np.integer):
        return int(obj)
    if isinstance(obj, (np.floating, float)):
        value = float(obj)
        return None if math.isnan(value) or math.isinf(value) else value
    if isinstance(obj, (datetime, date, pd.Timestamp)):
        return obj.isoformat()
    if isinstance(obj, Path):
        return str(obj)
    return obj


def save_json(payload: Any, path: Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        json.dump(to_serializable(payload), f, indent=2)
    return path
