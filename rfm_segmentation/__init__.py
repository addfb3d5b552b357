"""
RFM Customer Segmentation
=========================

Customer segmentation for online retail transaction exports:
- Transaction cleaning and RFM feature engineering
- Z-score standardization
- K-Means and hierarchical (Ward) clustering
- Cluster profiling and comparison reports

Version: 1.0.0
"""

__version__ = "1.0.0"
__author__ = "Retail Analytics Team"

from .common import DataLoader, Preprocessor, Reporter, load_config
from .customer_segmentation import (
    RFMFeatureEngineer,
    KMeansSegmenter,
    HierarchicalSegmenter,
    SegmentAnalyzer,
    SegmentationPipeline,
)

__all__ = [
    "DataLoader",
    "Preprocessor",
    "Reporter",
    "load_config",
    "RFMFeatureEngineer",
    "KMeansSegmenter",
    "HierarchicalSegmenter",
    "SegmentAnalyzer",
    "SegmentationPipeline",
]
