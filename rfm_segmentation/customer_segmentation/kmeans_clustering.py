"""
K-Means Clustering Module
=========================

Partitional segmentation of standardized RFM features with a fixed,
analyst-chosen number of clusters.

Usage:
    from rfm_segmentation.customer_segmentation import KMeansSegmenter

    segmenter = KMeansSegmenter(n_clusters=5, random_state=123)
    segmenter.fit(normalized_rfm)
    labels = segmenter.labels_
"""

import pandas as pd
import numpy as np
from typing import Optional, List, Dict, Any, Tuple
from sklearn.metrics import silhouette_score, calinski_harabasz_score, davies_bouldin_score
from loguru import logger
import warnings

from ..common.exceptions import InvalidClusterCountError
from .clustering_backend import ClusteringBackend, SklearnScipyBackend

warnings.filterwarnings('ignore', module='sklearn')


def validate_cluster_count(k: Any, n_samples: int) -> int:
    """Return k as int if 1 <= k <= n_samples, otherwise raise."""
    if isinstance(k, bool) or not isinstance(k, (int, np.integer)):
        raise InvalidClusterCountError(k, n_samples)
    if k < 1 or k > n_samples:
        raise InvalidClusterCountError(int(k), n_samples)
    return int(k)


class KMeansSegmenter:
    """
    K-Means clustering for customer segmentation.

    Features:
    - Fixed K with many random restarts (best run by inertia is kept)
    - Reproducible labels for a fixed random_state
    - Cluster centres in standardized and original units
    - Quality metrics and elbow/silhouette curve data

    Example:
        >>> segmenter = KMeansSegmenter(n_clusters=5)
        >>> segmenter.fit(normalized)
        >>> segmenter.labels_[:5]
        array([2, 2, 5, 1, 2])
    """

    def __init__(
        self,
        n_clusters: int = 5,
        n_init: int = 25,
        max_iter: int = 300,
        random_state: int = 123,
        init: str = 'random',
        backend: Optional[ClusteringBackend] = None
    ):
        """
        Initialize K-Means Segmenter.

        Args:
            n_clusters: Number of clusters
            n_init: Number of random restarts
            max_iter: Maximum iterations
            random_state: Random seed for reproducibility
            init: Initialization method ('random' or 'k-means++')
            backend: Clustering backend (default: scikit-learn)
        """
        self.n_clusters = n_clusters
        self.n_init = n_init
        self.max_iter = max_iter
        self.random_state = random_state
        self.init = init
        self.backend = backend or SklearnScipyBackend(
            n_init=n_init, max_iter=max_iter, init=init
        )

        self.feature_columns = None
        self.cluster_centers_ = None
        self.labels_ = None
        self.inertia_ = None

        logger.info("KMeansSegmenter initialized")

    def fit(
        self,
        df: pd.DataFrame,
        feature_columns: Optional[List[str]] = None
    ) -> 'KMeansSegmenter':
        """
        Fit K-Means to standardized features.

        Args:
            df: DataFrame with standardized customer features
            feature_columns: Feature columns (None for all columns)

        Returns:
            Self for method chaining

        Raises:
            InvalidClusterCountError: If n_clusters is outside [1, n_customers]

        Example:
            >>> segmenter.fit(normalized, ['recency', 'frequency', 'monetary'])
        """
        self.feature_columns = feature_columns or df.columns.tolist()
        X = df[self.feature_columns].to_numpy(dtype=float)

        k = validate_cluster_count(self.n_clusters, len(X))

        self.labels_ = np.asarray(self.backend.partition(X, k, self.random_state))
        self.cluster_centers_, self.inertia_ = self._centers_and_inertia(X, self.labels_)

        logger.info(f"Fitted K-Means with {k} clusters on {len(X)} customers")
        logger.info(f"Inertia: {self.inertia_:.2f}")

        return self

    def fit_predict(
        self,
        df: pd.DataFrame,
        feature_columns: Optional[List[str]] = None
    ) -> np.ndarray:
        """
        Fit model and return cluster labels.

        Args:
            df: DataFrame with standardized features
            feature_columns: Feature column names

        Returns:
            Array of cluster labels (1..k)
        """
        self.fit(df, feature_columns)
        return self.labels_

    def _centers_and_inertia(
        self,
        X: np.ndarray,
        labels: np.ndarray
    ) -> Tuple[pd.DataFrame, float]:
        """Cluster means and total within-cluster sum of squares."""
        frame = pd.DataFrame(X, columns=self.feature_columns)
        centers = frame.groupby(labels).mean().sort_index()
        centers.index.name = 'cluster'

        assigned = centers.loc[labels].to_numpy()
        inertia = float(((X - assigned) ** 2).sum())
        return centers, inertia

    def get_cluster_metrics(self, df: pd.DataFrame) -> Dict[str, float]:
        """
        Calculate clustering quality metrics.

        Silhouette, Calinski-Harabasz and Davies-Bouldin are only defined
        for 2 <= k < n_customers and are NaN otherwise.

        Args:
            df: DataFrame with the standardized features used for fitting

        Returns:
            Dictionary of clustering metrics

        Example:
            >>> metrics = segmenter.get_cluster_metrics(normalized)
            >>> print(f"Silhouette: {metrics['silhouette_score']:.3f}")
        """
        if self.labels_ is None:
            raise ValueError("Model not fitted. Call fit() first.")

        X = df[self.feature_columns].to_numpy(dtype=float)
        n_labels = len(np.unique(self.labels_))

        metrics = {
            'n_clusters': n_labels,
            'inertia': self.inertia_,
            'silhouette_score': np.nan,
            'calinski_harabasz': np.nan,
            'davies_bouldin': np.nan
        }

        if 2 <= n_labels < len(X):
            metrics['silhouette_score'] = float(silhouette_score(X, self.labels_))
            metrics['calinski_harabasz'] = float(calinski_harabasz_score(X, self.labels_))
            metrics['davies_bouldin'] = float(davies_bouldin_score(X, self.labels_))

        return metrics

    def get_cluster_centers_original(self, preprocessor) -> pd.DataFrame:
        """
        Get cluster centers in original (unscaled) feature space.

        Args:
            preprocessor: Preprocessor that standardized the features

        Returns:
            DataFrame with cluster centers
        """
        if self.cluster_centers_ is None:
            raise ValueError("Model not fitted. Call fit() first.")

        return preprocessor.inverse_standardize(self.cluster_centers_)

    def get_selection_curve(
        self,
        df: pd.DataFrame,
        k_range: Tuple[int, int] = (1, 10)
    ) -> pd.DataFrame:
        """
        Within-cluster sum of squares and silhouette for a range of K.

        This is diagnostic data for choosing K by eye (elbow or silhouette
        peak); it does not pick K.

        Args:
            df: DataFrame with standardized features
            k_range: Inclusive (min_k, max_k); max_k is capped at n_customers

        Returns:
            DataFrame with columns k, wss and silhouette
        """
        columns = self.feature_columns or df.columns.tolist()
        X = df[columns].to_numpy(dtype=float)

        k_min = validate_cluster_count(k_range[0], len(X))
        k_max = min(k_range[1], len(X))

        rows = []
        for k in range(k_min, k_max + 1):
            labels = np.asarray(self.backend.partition(X, k, self.random_state))
            frame = pd.DataFrame(X)
            centers = frame.groupby(labels).mean()
            wss = float(((X - centers.loc[labels].to_numpy()) ** 2).sum())
            silhouette = np.nan
            if 2 <= len(np.unique(labels)) < len(X):
                silhouette = float(silhouette_score(X, labels))
            rows.append({'k': k, 'wss': wss, 'silhouette': silhouette})

        logger.info(f"Computed selection curve for K={k_min}..{k_max}")
        return pd.DataFrame(rows)
