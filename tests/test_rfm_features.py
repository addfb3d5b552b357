"""Tests for per-customer RFM aggregation."""

import pandas as pd
import pytest

from rfm_segmentation.common import Preprocessor
from rfm_segmentation.common.exceptions import EmptyDatasetError, MissingColumnsError
from rfm_segmentation.customer_segmentation import RFM_COLUMNS, RFMFeatureEngineer


class TestCalculateRFM:
    """Batch aggregation."""

    def test_cleaned_export(self, clean_transactions):
        engineer = RFMFeatureEngineer()

        rfm = engineer.calculate_rfm(clean_transactions)

        assert list(rfm.columns) == RFM_COLUMNS
        assert rfm.index.name == 'customer_id'
        assert engineer.reference_date_ == pd.Timestamp('2011-01-04')
        assert rfm.loc['17850'].tolist() == [1, 2, 22.0]
        assert rfm.loc['13047'].tolist() == [2, 1, 4.5]

    def test_reference_date_is_deterministic(self, clean_transactions):
        engineer = RFMFeatureEngineer()

        first = engineer.reference_date(clean_transactions)
        second = engineer.reference_date(clean_transactions)

        assert first == second == clean_transactions['invoice_date'].max().normalize() + pd.Timedelta(days=1)

    def test_one_row_per_customer(self, clean_transactions):
        rfm = RFMFeatureEngineer().calculate_rfm(clean_transactions)

        assert sorted(rfm.index) == sorted(clean_transactions['customer_id'].unique())

    def test_two_invoices(self, two_invoice_customer):
        """Recency counts whole days from the latest purchase to the reference date."""
        rfm = RFMFeatureEngineer().calculate_rfm(two_invoice_customer)

        assert rfm.loc['A', 'recency'] == 1
        assert rfm.loc['A', 'frequency'] == 2
        assert rfm.loc['A', 'monetary'] == pytest.approx(20.0)

    def test_frequency_counts_distinct_invoices(self):
        """Several lines on one invoice are one purchase occasion."""
        df = pd.DataFrame({
            'invoice_id': ['1', '1', '1'],
            'customer_id': ['A', 'A', 'A'],
            'invoice_date': pd.to_datetime(['2011-05-01 10:00'] * 3),
            'line_total': [1.0, 2.0, 3.0],
        })

        rfm = RFMFeatureEngineer().calculate_rfm(df)

        assert rfm.loc['A', 'frequency'] == 1
        assert rfm.loc['A', 'monetary'] == pytest.approx(6.0)

    def test_latest_customer_has_recency_one(self, synthetic_export, loader):
        clean = Preprocessor().clean_transactions(loader.prepare_transactions(synthetic_export))

        rfm = RFMFeatureEngineer().calculate_rfm(clean)

        assert rfm['recency'].min() == 1
        assert (rfm['frequency'] >= 1).all()
        assert (rfm['monetary'] > 0).all()
        assert rfm['monetary'].sum() == pytest.approx(clean['line_total'].sum())

    def test_dtypes(self, clean_transactions):
        rfm = RFMFeatureEngineer().calculate_rfm(clean_transactions)

        assert rfm['recency'].dtype == 'int64'
        assert rfm['frequency'].dtype == 'int64'
        assert rfm['monetary'].dtype == 'float64'

    def test_explicit_reference_date(self, two_invoice_customer):
        rfm = RFMFeatureEngineer().calculate_rfm(two_invoice_customer, reference_date='2011-03-13')

        assert rfm.loc['A', 'recency'] == 10

    def test_reference_date_before_purchase_raises(self, two_invoice_customer):
        with pytest.raises(ValueError, match="precedes"):
            RFMFeatureEngineer().calculate_rfm(two_invoice_customer, reference_date='2011-03-02')

    def test_line_total_computed_when_absent(self, two_invoice_customer):
        rfm = RFMFeatureEngineer().calculate_rfm(two_invoice_customer.drop(columns='line_total'))

        assert rfm.loc['A', 'monetary'] == pytest.approx(20.0)

    def test_empty_raises(self, two_invoice_customer):
        with pytest.raises(EmptyDatasetError):
            RFMFeatureEngineer().calculate_rfm(two_invoice_customer.iloc[0:0])

    def test_missing_columns_raise(self, two_invoice_customer):
        with pytest.raises(MissingColumnsError):
            RFMFeatureEngineer().calculate_rfm(two_invoice_customer.drop(columns='invoice_id'))


class TestStreamingRFM:
    """Chunked aggregation."""

    def test_matches_batch(self, synthetic_export, loader):
        clean = Preprocessor().clean_transactions(loader.prepare_transactions(synthetic_export))
        chunks = [clean.iloc[i:i + 50] for i in range(0, len(clean), 50)]

        batch = RFMFeatureEngineer().calculate_rfm(clean)
        streamed = RFMFeatureEngineer().calculate_rfm_streaming(chunks)

        pd.testing.assert_frame_equal(
            streamed.sort_index(), batch.sort_index(), check_index_type=False
        )

    def test_invoice_split_across_chunks_counts_once(self):
        df = pd.DataFrame({
            'invoice_id': ['1', '1', '2'],
            'customer_id': ['A', 'A', 'A'],
            'invoice_date': pd.to_datetime(['2011-05-01', '2011-05-01', '2011-05-04']),
            'line_total': [1.0, 2.0, 4.0],
        })

        rfm = RFMFeatureEngineer().calculate_rfm_streaming([df.iloc[:1], df.iloc[1:]])

        assert rfm.loc['A'].tolist() == [1, 2, 7.0]

    def test_skips_empty_chunks(self, two_invoice_customer):
        rfm = RFMFeatureEngineer().calculate_rfm_streaming(
            [two_invoice_customer.iloc[0:0], two_invoice_customer]
        )

        assert rfm.loc['A', 'frequency'] == 2

    def test_no_rows_raises(self, two_invoice_customer):
        with pytest.raises(EmptyDatasetError):
            RFMFeatureEngineer().calculate_rfm_streaming([two_invoice_customer.iloc[0:0]])


class TestFeatureSummary:

    def test_one_row_per_feature(self, clean_transactions):
        engineer = RFMFeatureEngineer()
        summary = engineer.get_feature_summary(engineer.calculate_rfm(clean_transactions))

        assert list(summary.index) == RFM_COLUMNS
        assert 'mean' in summary.columns
