"""
Customer Segmentation Module
============================

RFM feature engineering with K-Means and hierarchical clustering.
"""

from .rfm_features import RFMFeatureEngineer, RFM_COLUMNS
from .clustering_backend import ClusteringBackend, SklearnScipyBackend
from .kmeans_clustering import KMeansSegmenter
from .hierarchical_clustering import HierarchicalSegmenter
from .segment_analysis import SegmentAnalyzer, ClusteringComparison
from .pipeline import SegmentationPipeline, SegmentationResult

__all__ = [
    "RFMFeatureEngineer",
    "RFM_COLUMNS",
    "ClusteringBackend",
    "SklearnScipyBackend",
    "KMeansSegmenter",
    "HierarchicalSegmenter",
    "SegmentAnalyzer",
    "ClusteringComparison",
    "SegmentationPipeline",
    "SegmentationResult",
]
