"""
Configuration Module
====================

Default settings for the segmentation pipeline and YAML overrides.

Usage:
    from rfm_segmentation.common import load_config

    config = load_config("config/settings.yaml")
    k = config['clustering']['kmeans']['n_clusters']
"""

import copy
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from loguru import logger


DEFAULT_CONFIG: Dict[str, Any] = {
    'data': {
        'cancellation_prefix': 'C',
        'supported_formats': ['.csv', '.xlsx', '.xls', '.parquet'],
        'date_format': 'mixed',
        'column_map': {},
    },
    'normalization': {
        'ddof': 1,
    },
    'clustering': {
        'kmeans': {
            'n_clusters': 5,
            'n_init': 25,
            'max_iter': 300,
            'random_state': 123,
            'init': 'random',
        },
        'hierarchical': {
            'metric': 'euclidean',
            'method': 'ward',
            'cut_height': 35.0,
            'n_clusters': None,
        },
    },
    'output': {
        'dir': 'outputs',
        'formats': ['csv', 'json', 'html'],
    },
}


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(
    config_path: Optional[Union[str, Path]] = None,
    overrides: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    Load configuration from a YAML file layered over the defaults.

    Args:
        config_path: Path to YAML configuration file (optional)
        overrides: Extra values merged last, e.g. from CLI flags

    Returns:
        Configuration dictionary

    Raises:
        ValueError: If the file does not contain a YAML mapping
    """
    config = copy.deepcopy(DEFAULT_CONFIG)

    if config_path and Path(config_path).exists():
        with open(config_path, 'r') as f:
            loaded = yaml.safe_load(f) or {}
        if not isinstance(loaded, dict):
            raise ValueError(f"Config file {config_path} must contain a mapping")
        config = _deep_merge(config, loaded)
        logger.info(f"Loaded configuration from {config_path}")
    elif config_path:
        logger.warning(f"Config file not found: {config_path}, using defaults")

    if overrides:
        config = _deep_merge(config, overrides)

    return config
