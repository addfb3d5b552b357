"""
Hierarchical Clustering Module
==============================

Agglomerative clustering of standardized RFM features. Fitting builds
the merge tree (dendrogram); flat segments come from cutting the tree
at a height or a cluster count.

Usage:
    from rfm_segmentation.customer_segmentation import HierarchicalSegmenter

    segmenter = HierarchicalSegmenter(method='ward')
    segmenter.fit(normalized_rfm)
    labels = segmenter.cut(height=35)
"""

from typing import List, Optional

import numpy as np
import pandas as pd
from loguru import logger

from ..common.exceptions import SegmentationError
from .clustering_backend import ClusteringBackend, SklearnScipyBackend, check_linkage_metric
from .kmeans_clustering import validate_cluster_count


class HierarchicalSegmenter:
    """
    Agglomerative clustering with a configurable distance and linkage.

    The default (Euclidean distance, Ward linkage) merges at each step
    the pair of clusters with the smallest increase in within-cluster
    variance.

    Example:
        >>> segmenter = HierarchicalSegmenter().fit(normalized)
        >>> labels = segmenter.cut(n_clusters=4)
    """

    def __init__(
        self,
        metric: str = 'euclidean',
        method: str = 'ward',
        backend: Optional[ClusteringBackend] = None
    ):
        """
        Initialize Hierarchical Segmenter.

        Args:
            metric: Pairwise distance metric
            method: Linkage criterion ('ward', 'single', 'complete', 'average'
                or 'weighted')
            backend: Clustering backend (default: SciPy)
        """
        check_linkage_metric(metric, method)

        self.metric = metric
        self.method = method
        self.backend = backend or SklearnScipyBackend()

        self.feature_columns = None
        self.linkage_ = None
        self.labels_ = None
        self.n_samples_ = 0

        logger.info(f"HierarchicalSegmenter initialized (metric={metric}, method={method})")

    def fit(
        self,
        df: pd.DataFrame,
        feature_columns: Optional[List[str]] = None
    ) -> 'HierarchicalSegmenter':
        """
        Compute the distance matrix and the merge tree.

        Args:
            df: DataFrame with standardized customer features
            feature_columns: Feature columns (None for all columns)

        Returns:
            Self for method chaining
        """
        self.feature_columns = feature_columns or df.columns.tolist()
        X = df[self.feature_columns].to_numpy(dtype=float)

        if len(X) < 2:
            raise SegmentationError(
                f"Hierarchical clustering needs at least 2 customers, got {len(X)}"
            )

        distances = self.backend.distance_matrix(X, self.metric)
        self.linkage_ = np.asarray(self.backend.hierarchical_merge(distances, self.method))
        self.n_samples_ = len(X)
        self.labels_ = None

        logger.info(
            f"Built merge tree for {len(X)} customers "
            f"(max merge height {self.linkage_[-1, 2]:.2f})"
        )
        return self

    def cut(
        self,
        n_clusters: Optional[int] = None,
        height: Optional[float] = None
    ) -> np.ndarray:
        """
        Flatten the merge tree into cluster labels.

        Args:
            n_clusters: Number of clusters to keep
            height: Merge height at which to cut

        Returns:
            Array of cluster labels (1..k), one per fitted row

        Raises:
            ValueError: If neither or both of n_clusters/height are given
            InvalidClusterCountError: If n_clusters is out of range
        """
        if self.linkage_ is None:
            raise ValueError("Model not fitted. Call fit() first.")
        if (n_clusters is None) == (height is None):
            raise ValueError("Specify exactly one of n_clusters or height")

        if n_clusters is not None:
            n_clusters = validate_cluster_count(n_clusters, self.n_samples_)
            labels = self.backend.cut_tree(self.linkage_, n_clusters=n_clusters)
        else:
            if height < 0:
                raise ValueError(f"Cut height must be non-negative, got {height}")
            labels = self.backend.cut_tree(self.linkage_, height=height)

        self.labels_ = np.asarray(labels)
        logger.info(f"Cut merge tree into {len(np.unique(self.labels_))} clusters")
        return self.labels_

    def get_merge_heights(self) -> np.ndarray:
        """Merge distances in merge order (useful to choose a cut)."""
        if self.linkage_ is None:
            raise ValueError("Model not fitted. Call fit() first.")
        return self.linkage_[:, 2].copy()

    def n_clusters_at(self, height: float) -> int:
        """Number of clusters obtained by cutting at the given height."""
        return int((self.get_merge_heights() > height).sum()) + 1
