"""
Segmentation Pipeline Module
============================

Runs the full segmentation pass: load, clean, aggregate RFM,
standardize, cluster with k-means and hierarchical clustering, profile
and compare.

Usage:
    from rfm_segmentation.customer_segmentation import SegmentationPipeline

    pipeline = SegmentationPipeline(load_config("config/settings.yaml"))
    result = pipeline.run_file("data/Online_Retail.xlsx")
    print(result.kmeans_profile)
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Union

import numpy as np
import pandas as pd
from loguru import logger

from ..common.config import DEFAULT_CONFIG, load_config
from ..common.data_loader import DataLoader
from ..common.preprocessing import Preprocessor
from .clustering_backend import ClusteringBackend, SklearnScipyBackend
from .hierarchical_clustering import HierarchicalSegmenter
from .kmeans_clustering import KMeansSegmenter
from .rfm_features import RFM_COLUMNS, RFMFeatureEngineer
from .segment_analysis import ClusteringComparison, SegmentAnalyzer


@dataclass
class SegmentationResult:
    """Everything produced by one pipeline run."""

    rfm: pd.DataFrame
    normalized: pd.DataFrame
    kmeans_labels: np.ndarray
    hierarchical_labels: np.ndarray
    linkage: np.ndarray
    kmeans_profile: pd.DataFrame
    hierarchical_profile: pd.DataFrame
    comparison: ClusteringComparison
    reference_date: pd.Timestamp
    metrics: Dict[str, Any] = field(default_factory=dict)
    cleaning_report: Dict[str, int] = field(default_factory=dict)
    transactions: Optional[pd.DataFrame] = None

    def segments(self) -> pd.DataFrame:
        """RFM table with both cluster assignments joined by position."""
        segments = self.rfm.copy()
        segments['kmeans_cluster'] = self.kmeans_labels
        segments['hierarchical_cluster'] = self.hierarchical_labels
        return segments


class SegmentationPipeline:
    """
    End-to-end RFM segmentation.

    Example:
        >>> pipeline = SegmentationPipeline()
        >>> result = pipeline.run(transactions_df)
        >>> result.segments().head()
    """

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        backend: Optional[ClusteringBackend] = None
    ):
        """
        Initialize the pipeline.

        Args:
            config: Configuration dictionary (see common.config)
            backend: Clustering backend shared by both segmenters
        """
        self.config = config or load_config()
        clustering = self.config.get('clustering', DEFAULT_CONFIG['clustering'])
        self.kmeans_config = clustering.get('kmeans', DEFAULT_CONFIG['clustering']['kmeans'])
        self.hierarchical_config = clustering.get(
            'hierarchical', DEFAULT_CONFIG['clustering']['hierarchical']
        )

        self.backend = backend or SklearnScipyBackend(
            n_init=self.kmeans_config.get('n_init', 25),
            max_iter=self.kmeans_config.get('max_iter', 300),
            init=self.kmeans_config.get('init', 'random')
        )

        data_config = self.config.get('data', DEFAULT_CONFIG['data'])
        norm_config = self.config.get('normalization', DEFAULT_CONFIG['normalization'])

        self.loader = DataLoader(self.config)
        self.preprocessor = Preprocessor(
            cancellation_prefix=data_config.get('cancellation_prefix', 'C'),
            ddof=norm_config.get('ddof', 1)
        )
        self.engineer = RFMFeatureEngineer()
        self.analyzer = SegmentAnalyzer()

    def run_file(
        self,
        filepath: Union[str, Path],
        chunk_size: Optional[int] = None
    ) -> SegmentationResult:
        """
        Run the pipeline on a transaction export.

        Args:
            filepath: CSV, Excel or Parquet export
            chunk_size: If set (CSV only), aggregate RFM chunk by chunk

        Returns:
            SegmentationResult
        """
        if chunk_size:
            logger.info("Starting Customer Segmentation Pipeline (chunked)")
            totals: Dict[str, int] = {}
            rfm = self.engineer.calculate_rfm_streaming(
                self._clean_chunks(filepath, chunk_size, totals)
            )
            return self._segment(rfm, transactions=None, cleaning_report=totals)

        transactions = self.loader.load_transactions(filepath)
        return self.run(transactions)

    def _clean_chunks(
        self,
        filepath: Union[str, Path],
        chunk_size: int,
        totals: Dict[str, int]
    ) -> Iterator[pd.DataFrame]:
        """Clean each chunk, summing the per-rule drop counts into totals."""
        for chunk in self.loader.iter_transactions(filepath, chunk_size=chunk_size):
            clean = self.preprocessor.clean_transactions(chunk, allow_empty=True)
            for key, count in self.preprocessor.get_cleaning_report().items():
                totals[key] = totals.get(key, 0) + count
            yield clean

    def run(self, transactions: pd.DataFrame) -> SegmentationResult:
        """
        Run the pipeline on an in-memory transaction table.

        Args:
            transactions: Raw or prepared transaction DataFrame

        Returns:
            SegmentationResult
        """
        logger.info("Starting Customer Segmentation Pipeline")

        prepared = self.loader.prepare_transactions(transactions)
        clean = self.preprocessor.clean_transactions(prepared)
        rfm = self.engineer.calculate_rfm(clean)

        return self._segment(rfm, transactions=clean)

    def _segment(
        self,
        rfm: pd.DataFrame,
        transactions: Optional[pd.DataFrame],
        cleaning_report: Optional[Dict[str, int]] = None
    ) -> SegmentationResult:
        reference_date = self.engineer.reference_date_
        normalized = self.preprocessor.standardize(rfm, columns=RFM_COLUMNS)

        kmeans = KMeansSegmenter(
            n_clusters=self.kmeans_config.get('n_clusters', 5),
            n_init=self.kmeans_config.get('n_init', 25),
            max_iter=self.kmeans_config.get('max_iter', 300),
            random_state=self.kmeans_config.get('random_state', 123),
            init=self.kmeans_config.get('init', 'random'),
            backend=self.backend
        )
        kmeans.fit(normalized)

        hierarchical = HierarchicalSegmenter(
            metric=self.hierarchical_config.get('metric', 'euclidean'),
            method=self.hierarchical_config.get('method', 'ward'),
            backend=self.backend
        )
        hierarchical.fit(normalized)

        n_clusters = self.hierarchical_config.get('n_clusters')
        if n_clusters is not None:
            hierarchical_labels = hierarchical.cut(n_clusters=n_clusters)
        else:
            hierarchical_labels = hierarchical.cut(
                height=self.hierarchical_config.get('cut_height', 35.0)
            )

        kmeans_profile = self.analyzer.profile_clusters(rfm, kmeans.labels_)
        hierarchical_profile = self.analyzer.profile_clusters(rfm, hierarchical_labels)
        comparison = self.analyzer.compare_clusterings(kmeans.labels_, hierarchical_labels)

        metrics = {
            'n_customers': len(rfm),
            'kmeans': kmeans.get_cluster_metrics(normalized),
            'hierarchical': {
                'n_clusters': int(len(np.unique(hierarchical_labels))),
                'cut_height': None if n_clusters is not None else self.hierarchical_config.get('cut_height'),
                'max_merge_height': float(hierarchical.get_merge_heights()[-1]),
            },
        }

        logger.info(
            f"Segmentation complete: {len(rfm)} customers, "
            f"k-means={kmeans.n_clusters} clusters, "
            f"hierarchical={metrics['hierarchical']['n_clusters']} clusters"
        )

        return SegmentationResult(
            rfm=rfm,
            normalized=normalized,
            kmeans_labels=kmeans.labels_,
            hierarchical_labels=hierarchical_labels,
            linkage=hierarchical.linkage_,
            kmeans_profile=kmeans_profile,
            hierarchical_profile=hierarchical_profile,
            comparison=comparison,
            reference_date=reference_date,
            metrics=metrics,
            cleaning_report=cleaning_report or self.preprocessor.get_cleaning_report(),
            transactions=transactions,
        )
