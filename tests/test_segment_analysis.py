"""Tests for cluster profiling and clustering comparison."""

import numpy as np
import pandas as pd
import pytest

from rfm_segmentation.customer_segmentation import SegmentAnalyzer


@pytest.fixture
def rfm():
    return pd.DataFrame(
        {
            'recency': [10, 20, 300, 200, 5],
            'frequency': [5, 3, 1, 1, 8],
            'monetary': [500.0, 300.0, 20.0, 40.0, 900.0],
        },
        index=pd.Index(['a', 'b', 'c', 'd', 'e'], name='customer_id'),
    )


@pytest.fixture
def analyzer():
    return SegmentAnalyzer()


class TestProfileClusters:
    """Cluster means on the original scale."""

    def test_means_per_cluster(self, analyzer, rfm):
        profile = analyzer.profile_clusters(rfm, [1, 1, 2, 2, 3])

        assert profile.loc[1, 'recency'] == pytest.approx(15.0)
        assert profile.loc[2, 'monetary'] == pytest.approx(30.0)
        assert profile.loc[3, 'frequency'] == pytest.approx(8.0)

    def test_sorted_by_descending_monetary(self, analyzer, rfm):
        profile = analyzer.profile_clusters(rfm, [1, 1, 2, 2, 3])

        assert list(profile.index) == [3, 1, 2]
        assert profile['monetary'].is_monotonic_decreasing

    def test_one_row_per_distinct_label(self, analyzer, rfm):
        labels = [2, 2, 5, 5, 2]

        profile = analyzer.profile_clusters(rfm, labels)

        assert len(profile) == len(set(labels))

    def test_sizes(self, analyzer, rfm):
        profile = analyzer.profile_clusters(rfm, [1, 1, 2, 2, 3])

        assert profile['n_customers'].sum() == len(rfm)
        assert profile.loc[1, 'pct_customers'] == pytest.approx(40.0)

    def test_weighted_means_recover_overall_mean(self, analyzer, rfm):
        profile = analyzer.profile_clusters(rfm, [1, 2, 1, 2, 2])

        weighted = (profile['monetary'] * profile['n_customers']).sum() / len(rfm)

        assert weighted == pytest.approx(rfm['monetary'].mean())

    def test_labels_join_by_position(self, analyzer, rfm):
        """The customer index is not used to align labels."""
        shuffled = rfm.iloc[::-1]

        profile = analyzer.profile_clusters(shuffled, np.array([1, 2, 2, 2, 2]))

        assert profile.loc[1, 'monetary'] == pytest.approx(900.0)

    def test_custom_sort_column(self, analyzer, rfm):
        profile = analyzer.profile_clusters(rfm, [1, 1, 2, 2, 3], sort_by='recency')

        assert list(profile.index) == [2, 1, 3]

    def test_length_mismatch_raises(self, analyzer, rfm):
        with pytest.raises(ValueError, match="labels"):
            analyzer.profile_clusters(rfm, [1, 2])


class TestCompareClusterings:

    def test_identical_up_to_relabeling(self, analyzer):
        comparison = analyzer.compare_clusterings([1, 1, 2, 2, 3], [3, 3, 1, 1, 2])

        assert comparison.adjusted_rand == pytest.approx(1.0)
        assert comparison.normalized_mutual_info == pytest.approx(1.0)
        assert comparison.n_clusters == {'kmeans': 3, 'hierarchical': 3}

    def test_contingency_counts(self, analyzer):
        comparison = analyzer.compare_clusterings([1, 1, 2, 2], [1, 2, 2, 2])

        table = comparison.contingency
        assert table.loc[1, 1] == 1
        assert table.loc[1, 2] == 1
        assert table.loc[2, 2] == 2
        assert table.values.sum() == 4

    def test_to_dict(self, analyzer):
        comparison = analyzer.compare_clusterings([1, 1, 2], [1, 2, 2], names=('a', 'b'))

        data = comparison.to_dict()

        assert data['n_clusters'] == {'a': 2, 'b': 2}
        assert data['contingency']['1'] == {'1': 1, '2': 1}

    def test_length_mismatch_raises(self, analyzer):
        with pytest.raises(ValueError):
            analyzer.compare_clusterings([1, 2], [1])


class TestNamingAndSummary:

    def test_names_follow_profile_order(self, analyzer, rfm):
        profile = analyzer.profile_clusters(rfm, [1, 1, 2, 2, 3])

        names = analyzer.assign_segment_names(profile)

        assert names == {3: 'Premium', 1: 'High Value', 2: 'Medium Value'}

    def test_summary_lists_each_cluster(self, analyzer, rfm):
        profile = analyzer.profile_clusters(rfm, [1, 1, 2, 2, 3])
        comparison = analyzer.compare_clusterings([1, 1, 2, 2, 3], [1, 1, 2, 2, 2])

        summary = analyzer.generate_summary({'K-Means': profile}, comparison)

        assert "K-Means: 3 clusters over 5 customers" in summary
        assert summary.count("Cluster ") == 3
        assert "Adjusted Rand index" in summary
