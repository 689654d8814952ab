"""
Configuration loader for the public-health write-ups.
Loads YAML config and provides typed access to settings.
"""
import os
import yaml
from pathlib import Path
from typing import Any, Dict, Optional

from health_eda.common.paths import find_project_root, resolve_path


ENV_OVERRIDES = {
    'HEALTH_EDA_LOG_LEVEL': ('logging', 'level', str),
    'HEALTH_EDA_RANDOM_SEED': ('project', 'random_seed', int),
    'HEALTH_EDA_CACHE_DIR': ('data', 'cache_dir', str),
}


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to config file. Defaults to config/config_default.yaml

    Returns:
        Dictionary containing all configuration settings, with environment
        overrides applied
    """
    if config_path is None:
        config_path = get_project_root() / "config" / "config_default.yaml"
    else:
        config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, 'r') as f:
        config = yaml.safe_load(f) or {}

    return apply_env_overrides(config)


def apply_env_overrides(config: Dict[str, Any]) -> Dict[str, Any]:
    """Apply HEALTH_EDA_* environment variable overrides in place."""
    for env_var, (section, key, cast) in ENV_OVERRIDES.items():
        value = os.getenv(env_var)
        if value:
            config.setdefault(section, {})
            config[section][key] = cast(value)
    return config


def require(config: Dict[str, Any], dotted_key: str) -> Any:
    """
    Read a required config value by dotted key (e.g. "data.nhanes.cycle").

    Raises:
        ValueError: if any part of the key is missing or the value is None
    """
    node: Any = config
    for part in dotted_key.split('.'):
        if not isinstance(node, dict) or node.get(part) is None:
            raise ValueError(f"Missing {dotted_key} in config.")
        node = node[part]
    return node


def get_project_root() -> Path:
    """Get the project root directory."""
    return find_project_root(Path(__file__).parent.parent)


def get_data_path(relative_path: str) -> Path:
    """
    Get absolute path for a data file.

    Args:
        relative_path: Path relative to project root (e.g., "data/raw/DEMO_I.xpt")

    Returns:
        Absolute Path object
    """
    return resolve_path(get_project_root(), relative_path)


def get_cache_dir(config: Dict[str, Any]) -> Path:
    """Download cache directory (created if missing)."""
    cache_dir = get_data_path(config.get('data', {}).get('cache_dir', 'data/raw'))
    cache_dir.mkdir(parents=True, exist_ok=True)
    return cache_dir


def get_results_dir(config: Dict[str, Any], name: str) -> Path:
    """Output directory for one write-up: <results_dir>/<name>."""
    results_dir = config.get('output', {}).get('results_dir', 'results')
    return get_data_path(results_dir) / name
