"""
Segment Analysis Module
=======================

Cluster profiling on the original RFM scale and comparison of two
clusterings of the same customers.

Usage:
    from rfm_segmentation.customer_segmentation import SegmentAnalyzer

    analyzer = SegmentAnalyzer()
    profile = analyzer.profile_clusters(rfm, kmeans_labels)
    comparison = analyzer.compare_clusterings(kmeans_labels, hierarchical_labels)
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from sklearn.metrics import adjusted_rand_score, normalized_mutual_info_score
from loguru import logger

from .rfm_features import RFM_COLUMNS


VALUE_LABELS = [
    'Premium', 'High Value', 'Medium Value',
    'Low Value', 'Budget', 'Minimal'
]


@dataclass
class ClusteringComparison:
    """Agreement between two labelings of the same customers."""

    contingency: pd.DataFrame
    adjusted_rand: float
    normalized_mutual_info: float
    n_clusters: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'adjusted_rand': self.adjusted_rand,
            'normalized_mutual_info': self.normalized_mutual_info,
            'n_clusters': dict(self.n_clusters),
            'contingency': {
                str(row): {str(col): int(v) for col, v in values.items()}
                for row, values in self.contingency.to_dict(orient='index').items()
            },
        }


class SegmentAnalyzer:
    """
    Analysis toolkit for customer clusters.

    Example:
        >>> analyzer = SegmentAnalyzer()
        >>> profile = analyzer.profile_clusters(rfm, labels)
        >>> profile.index[0]  # highest average spend first
        3
    """

    def __init__(self, feature_columns: Optional[Sequence[str]] = None):
        """
        Initialize SegmentAnalyzer.

        Args:
            feature_columns: Columns to average per cluster (default RFM)
        """
        self.feature_columns = list(feature_columns or RFM_COLUMNS)
        logger.info("SegmentAnalyzer initialized")

    def profile_clusters(
        self,
        rfm: pd.DataFrame,
        labels: Sequence[int],
        sort_by: str = 'monetary'
    ) -> pd.DataFrame:
        """
        Mean RFM values per cluster, highest monetary mean first.

        Labels are joined to the RFM rows by position.

        Args:
            rfm: Unscaled RFM table
            labels: One cluster label per RFM row
            sort_by: Column to sort the profile by (descending)

        Returns:
            DataFrame indexed by cluster with mean features,
            n_customers and pct_customers

        Raises:
            ValueError: If labels and rows differ in length

        Example:
            >>> profile = analyzer.profile_clusters(rfm, segmenter.labels_)
        """
        labels = np.asarray(labels)
        if len(labels) != len(rfm):
            raise ValueError(
                f"Got {len(labels)} labels for {len(rfm)} customers"
            )

        data = rfm[self.feature_columns].reset_index(drop=True)
        data['cluster'] = labels

        grouped = data.groupby('cluster')
        profile = grouped[self.feature_columns].mean()
        profile['n_customers'] = grouped.size()
        profile['pct_customers'] = profile['n_customers'] / len(data) * 100

        profile = profile.sort_values(sort_by, ascending=False)

        logger.info(f"Profiled {len(profile)} clusters over {len(data)} customers")
        return profile

    def compare_clusterings(
        self,
        labels_a: Sequence[int],
        labels_b: Sequence[int],
        names: Tuple[str, str] = ('kmeans', 'hierarchical')
    ) -> ClusteringComparison:
        """
        Compare two labelings of the same customers.

        Args:
            labels_a: First label vector
            labels_b: Second label vector (same order)
            names: Names used for the contingency table axes

        Returns:
            ClusteringComparison with contingency table, adjusted Rand
            index and normalized mutual information
        """
        labels_a = np.asarray(labels_a)
        labels_b = np.asarray(labels_b)
        if len(labels_a) != len(labels_b):
            raise ValueError(
                f"Label vectors differ in length: {len(labels_a)} vs {len(labels_b)}"
            )

        contingency = pd.crosstab(
            pd.Series(labels_a, name=names[0]),
            pd.Series(labels_b, name=names[1])
        )

        comparison = ClusteringComparison(
            contingency=contingency,
            adjusted_rand=float(adjusted_rand_score(labels_a, labels_b)),
            normalized_mutual_info=float(normalized_mutual_info_score(labels_a, labels_b)),
            n_clusters={
                names[0]: int(len(np.unique(labels_a))),
                names[1]: int(len(np.unique(labels_b))),
            },
        )

        logger.info(
            f"Compared {names[0]} vs {names[1]}: "
            f"ARI={comparison.adjusted_rand:.3f}, NMI={comparison.normalized_mutual_info:.3f}"
        )
        return comparison

    def assign_segment_names(self, profile: pd.DataFrame) -> Dict[int, str]:
        """
        Name clusters by value rank (profile must be sorted by value).

        Args:
            profile: Output of profile_clusters()

        Returns:
            Dictionary mapping cluster label to name
        """
        names = {}
        for i, cluster_id in enumerate(profile.index):
            if i < len(VALUE_LABELS):
                names[cluster_id] = VALUE_LABELS[i]
            else:
                names[cluster_id] = f'Segment_{cluster_id}'
        return names

    def generate_summary(
        self,
        profiles: Dict[str, pd.DataFrame],
        comparison: Optional[ClusteringComparison] = None
    ) -> str:
        """Generate a plain-text summary of cluster profiles and their agreement."""
        summary_parts = [
            "Customer Segmentation Summary",
            "=" * 40,
        ]

        for name, profile in profiles.items():
            n_customers = int(profile['n_customers'].sum())
            summary_parts.append(
                f"{name}: {len(profile)} clusters over {n_customers:,} customers"
            )
            for cluster_id, row in profile.iterrows():
                summary_parts.append(
                    f"  Cluster {cluster_id}: {int(row['n_customers']):,} customers "
                    f"({row['pct_customers']:.1f}%), recency {row['recency']:.1f} days, "
                    f"frequency {row['frequency']:.2f}, monetary {row['monetary']:.2f}"
                )
            summary_parts.append("")

        if comparison is not None:
            summary_parts.append("Agreement between clusterings:")
            summary_parts.append(f"  Adjusted Rand index: {comparison.adjusted_rand:.3f}")
            summary_parts.append(
                f"  Normalized mutual information: {comparison.normalized_mutual_info:.3f}"
            )

        return "\n".join(summary_parts)
