"""
Common utilities for the segmentation pipeline.
"""

from .config import DEFAULT_CONFIG, load_config
from .data_loader import DataLoader
from .preprocessing import Preprocessor
from .reporting import Reporter
from .exceptions import (
    SegmentationError,
    EmptyDatasetError,
    MissingColumnsError,
    ConstantFeatureError,
    InvalidClusterCountError,
)

__all__ = [
    "DEFAULT_CONFIG",
    "load_config",
    "DataLoader",
    "Preprocessor",
    "Reporter",
    "SegmentationError",
    "EmptyDatasetError",
    "MissingColumnsError",
    "ConstantFeatureError",
    "InvalidClusterCountError",
]
