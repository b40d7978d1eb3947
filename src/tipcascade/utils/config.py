"""
YAML configuration for tipcascade.

User files only need the keys they change; everything else comes from
:data:`DEFAULT_CONFIG`.
"""

from typing import Dict, Any, Optional
from pathlib import Path
import copy
import logging
import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".tipcascade" / "config.yaml"


DEFAULT_CONFIG: Dict[str, Any] = {
    "scenarios": {
        "default": "current",
    },
    "model": {
        # Global interaction-strength scale K
        "interaction_strength": 0.35,
    },
    "simulation": {
        "start_year": 2025,
        "baseline_temp": 1.1,
        # Real seconds between ticks when driven live
        "tick_interval": 0.6,
        # Headless runs stop here if not every element has tipped
        "max_years": 500,
        "seed": None,
    },
    "ensemble": {
        "n_runs": 200,
    },
    "outputs": {
        "formats": ["csv", "png"],
        "base_dir": "./outputs",
        "subdirs": {
            "csv": "csv",
            "png": "png",
        },
    },
    "logging": {
        "level": "INFO",
        "log_dir": "./logs",
        "format_style": "detailed",
    },
    "visualization": {
        "dpi": 150,
    },
}

# Settings that must be > 0
_POSITIVE_KEYS = [
    ("simulation", "tick_interval"),
    ("simulation", "max_years"),
    ("ensemble", "n_runs"),
    ("visualization", "dpi"),
]

_KNOWN_FORMATS = {"csv", "png"}


def load_config(
    config_path: Optional[str | Path] = None,
    create_default: bool = True,
) -> Dict[str, Any]:
    """
    Load configuration, merging the file over the defaults.
    
    Parameters
    ----------
    config_path : str or Path, optional
        Config file. Defaults to ~/.tipcascade/config.yaml
    create_default : bool, optional
        Write the defaults to ``config_path`` if it does not exist.
        Default is True.
    
    Returns
    -------
    dict
        Validated configuration.
    
    Raises
    ------
    ValueError
        If the file is not a mapping or a value is out of range.
    """
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    config = copy.deepcopy(DEFAULT_CONFIG)
    
    if path.exists():
        logger.info(f"Loading config from: {path}")
        overrides = yaml.safe_load(path.read_text()) or {}
        if not isinstance(overrides, dict):
            raise ValueError(f"Config file {path} must contain a mapping, got {type(overrides).__name__}")
        config = merge_config(config, overrides)
        validate_config(config)
    elif create_default:
        try:
            save_config(config, path)
        except OSError as e:
            logger.warning(f"Could not write default config to {path}: {e}")
    
    return config


def save_config(
    config: Dict[str, Any],
    config_path: Optional[str | Path] = None,
) -> None:
    """Write ``config`` as YAML, creating parent directories."""
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        yaml.safe_dump(config, default_flow_style=False, sort_keys=False, allow_unicode=True)
    )
    logger.info(f"Config saved to: {path}")


def merge_config(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Return ``base`` with ``overrides`` applied section by section."""
    merged = dict(base)
    for key, value in overrides.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = merge_config(current, value)
        else:
            merged[key] = value
    return merged


def validate_config(config: Dict[str, Any]) -> None:
    """Raise ValueError for settings the simulator cannot run with."""
    for section, key in _POSITIVE_KEYS:
        value = config[section][key]
        if not isinstance(value, (int, float)) or value <= 0:
            raise ValueError(f"{section}.{key} must be positive, got {value!r}")
    
    unknown = set(config["outputs"]["formats"]) - _KNOWN_FORMATS
    if unknown:
        raise ValueError(
            f"outputs.formats has unknown entries {sorted(unknown)}; "
            f"choose from {sorted(_KNOWN_FORMATS)}"
        )
    
    k = config["model"]["interaction_strength"]
    if k < 0:
        logger.warning(f"Negative interaction_strength={k} inverts every interaction")
