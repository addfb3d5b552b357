"""
Clustering Backend Module
=========================

Narrow interface between the segmentation pipeline and the numerical
library that actually clusters. The pipeline only needs four
operations: partition, distance_matrix, hierarchical_merge and cut_tree.

The default backend delegates to scikit-learn (k-means) and SciPy
(pairwise distances, agglomerative linkage, tree cutting).

Usage:
    from rfm_segmentation.customer_segmentation import SklearnScipyBackend

    backend = SklearnScipyBackend(n_init=25)
    labels = backend.partition(X, k=5, seed=123)
    tree = backend.hierarchical_merge(backend.distance_matrix(X), 'ward')
    flat = backend.cut_tree(tree, height=35)
"""

from abc import ABC, abstractmethod
from typing import Optional

import numpy as np
from scipy.cluster import hierarchy
from scipy.spatial.distance import pdist
from sklearn.cluster import KMeans


# Linkages whose merge heights never decrease; cut_tree needs a monotonic tree
SUPPORTED_LINKAGES = ('ward', 'single', 'complete', 'average', 'weighted')

# Linkage criteria that are only meaningful on Euclidean distances
_EUCLIDEAN_ONLY = {'ward'}


class ClusteringBackend(ABC):
    """Clustering operations the pipeline depends on. Labels are 1..k."""

    @abstractmethod
    def partition(self, features: np.ndarray, k: int, seed: int) -> np.ndarray:
        """Partition rows into k clusters; deterministic for a fixed seed."""

    @abstractmethod
    def distance_matrix(self, features: np.ndarray, metric: str = 'euclidean') -> np.ndarray:
        """Pairwise distances between rows (condensed form)."""

    @abstractmethod
    def hierarchical_merge(self, distances: np.ndarray, linkage: str = 'ward') -> np.ndarray:
        """Build a merge tree from condensed distances."""

    @abstractmethod
    def cut_tree(
        self,
        merge_tree: np.ndarray,
        n_clusters: Optional[int] = None,
        height: Optional[float] = None
    ) -> np.ndarray:
        """Flatten a merge tree at a cluster count or height."""


class SklearnScipyBackend(ClusteringBackend):
    """
    Backend built on scikit-learn KMeans and scipy.cluster.hierarchy.

    Args:
        n_init: Number of random restarts; the run with the lowest
            within-cluster sum of squares is kept
        max_iter: Maximum iterations per k-means run
        init: Initialization method ('random' or 'k-means++')
    """

    def __init__(self, n_init: int = 25, max_iter: int = 300, init: str = 'random'):
        self.n_init = n_init
        self.max_iter = max_iter
        self.init = init

    def partition(self, features: np.ndarray, k: int, seed: int) -> np.ndarray:
        model = KMeans(
            n_clusters=k,
            init=self.init,
            n_init=self.n_init,
            max_iter=self.max_iter,
            random_state=seed
        )
        return model.fit_predict(np.asarray(features, dtype=float)) + 1

    def distance_matrix(self, features: np.ndarray, metric: str = 'euclidean') -> np.ndarray:
        return pdist(np.asarray(features, dtype=float), metric=metric)

    def hierarchical_merge(self, distances: np.ndarray, linkage: str = 'ward') -> np.ndarray:
        # On Euclidean distances SciPy's ward equals R's ward.D2
        return hierarchy.linkage(distances, method=linkage)

    def cut_tree(
        self,
        merge_tree: np.ndarray,
        n_clusters: Optional[int] = None,
        height: Optional[float] = None
    ) -> np.ndarray:
        if (n_clusters is None) == (height is None):
            raise ValueError("Specify exactly one of n_clusters or height")

        if n_clusters is not None:
            return hierarchy.cut_tree(merge_tree, n_clusters=n_clusters).ravel() + 1

        return hierarchy.fcluster(merge_tree, t=height, criterion='distance')


def check_linkage_metric(metric: str, method: str) -> None:
    """Reject linkage/metric pairs that SciPy would silently miscompute."""
    if method not in SUPPORTED_LINKAGES:
        raise ValueError(
            f"Unsupported linkage '{method}', expected one of {list(SUPPORTED_LINKAGES)}"
        )
    if method in _EUCLIDEAN_ONLY and metric != 'euclidean':
        raise ValueError(
            f"Linkage '{method}' requires euclidean distances, got '{metric}'"
        )
