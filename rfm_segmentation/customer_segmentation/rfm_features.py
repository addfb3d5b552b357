"""
RFM Feature Engineering Module
==============================

Calculates Recency, Frequency and Monetary value per customer from
cleaned transaction lines.

Usage:
    from rfm_segmentation.customer_segmentation import RFMFeatureEngineer

    engineer = RFMFeatureEngineer()
    rfm_df = engineer.calculate_rfm(clean_transactions)
"""

import pandas as pd
import numpy as np
from typing import Dict, Iterable, Optional, Union
from datetime import datetime
from loguru import logger

from ..common.exceptions import EmptyDatasetError, MissingColumnsError


RFM_COLUMNS = ['recency', 'frequency', 'monetary']


class RFMFeatureEngineer:
    """
    RFM feature engineering for customer segmentation.

    The output table is indexed by customer_id, which serves only as a
    join key; the feature columns are recency, frequency and monetary.

    Example:
        >>> engineer = RFMFeatureEngineer()
        >>> rfm = engineer.calculate_rfm(transactions)
        >>> rfm.columns.tolist()
        ['recency', 'frequency', 'monetary']
    """

    def __init__(
        self,
        customer_id: str = 'customer_id',
        invoice_column: str = 'invoice_id',
        date_column: str = 'invoice_date',
        amount_column: str = 'line_total'
    ):
        """
        Initialize RFM Feature Engineer.

        Args:
            customer_id: Column name for customer ID
            invoice_column: Column name for invoice identifier
            date_column: Column name for invoice timestamp
            amount_column: Column name for line total
        """
        self.customer_id = customer_id
        self.invoice_column = invoice_column
        self.date_column = date_column
        self.amount_column = amount_column
        self.reference_date_ = None

        logger.info("RFMFeatureEngineer initialized")

    def reference_date(self, df: pd.DataFrame) -> pd.Timestamp:
        """
        Day after the latest invoice date in the data.

        Args:
            df: Cleaned transaction DataFrame

        Returns:
            Reference date (midnight) used to measure recency
        """
        if df.empty:
            raise EmptyDatasetError()
        latest = pd.to_datetime(df[self.date_column]).max()
        return latest.normalize() + pd.Timedelta(days=1)

    def calculate_rfm(
        self,
        df: pd.DataFrame,
        reference_date: Optional[Union[datetime, pd.Timestamp]] = None
    ) -> pd.DataFrame:
        """
        Calculate RFM metrics for each customer.

        Args:
            df: Cleaned transaction DataFrame
            reference_date: Reference date for recency (default: day after
                the latest invoice)

        Returns:
            DataFrame indexed by customer_id with recency, frequency and
            monetary columns

        Raises:
            EmptyDatasetError: If there are no transactions
            ValueError: If reference_date precedes an invoice

        Example:
            >>> rfm = engineer.calculate_rfm(transactions)
        """
        df = self._prepare(df)

        if reference_date is None:
            reference_date = self.reference_date(df)
        reference_date = pd.Timestamp(reference_date).normalize()

        grouped = df.groupby(self.customer_id)
        last_purchase = grouped[self.date_column].max().dt.normalize()

        rfm = pd.DataFrame({
            'recency': (reference_date - last_purchase).dt.days,
            'frequency': grouped[self.invoice_column].nunique(),
            'monetary': grouped[self.amount_column].sum()
        })
        rfm.index.name = self.customer_id

        self._check_recency(rfm, reference_date)
        self.reference_date_ = reference_date

        logger.info(f"Calculated RFM for {len(rfm)} customers (reference date {reference_date.date()})")
        return rfm.astype({'recency': 'int64', 'frequency': 'int64', 'monetary': 'float64'})

    def calculate_rfm_streaming(
        self,
        chunks: Iterable[pd.DataFrame],
        reference_date: Optional[Union[datetime, pd.Timestamp]] = None
    ) -> pd.DataFrame:
        """
        Calculate RFM metrics by folding over cleaned transaction chunks.

        Keeps one running accumulator per customer (distinct invoices,
        spend, last purchase date), so the export never needs to be held
        in memory at once. Produces the same table as ``calculate_rfm``
        on the concatenated chunks.

        Args:
            chunks: Iterable of cleaned transaction DataFrames
            reference_date: Reference date for recency (default: day after
                the latest invoice across all chunks)

        Returns:
            DataFrame indexed by customer_id with RFM columns
        """
        accumulators: Dict[str, Dict] = {}
        latest = None
        n_rows = 0

        for chunk in chunks:
            if chunk.empty:
                continue
            chunk = self._prepare(chunk)
            n_rows += len(chunk)

            chunk_latest = chunk[self.date_column].max()
            latest = chunk_latest if latest is None else max(latest, chunk_latest)

            grouped = chunk.groupby(self.customer_id)
            last_dates = grouped[self.date_column].max()
            spend = grouped[self.amount_column].sum()
            invoices = grouped[self.invoice_column].unique()

            for customer in last_dates.index:
                acc = accumulators.setdefault(
                    customer, {'invoices': set(), 'monetary': 0.0, 'last': last_dates[customer]}
                )
                acc['invoices'].update(invoices[customer])
                acc['monetary'] += float(spend[customer])
                acc['last'] = max(acc['last'], last_dates[customer])

        if not accumulators:
            raise EmptyDatasetError()

        if reference_date is None:
            reference_date = latest.normalize() + pd.Timedelta(days=1)
        reference_date = pd.Timestamp(reference_date).normalize()

        rfm = pd.DataFrame.from_dict(
            {
                customer: {
                    'recency': (reference_date - acc['last'].normalize()).days,
                    'frequency': len(acc['invoices']),
                    'monetary': acc['monetary'],
                }
                for customer, acc in accumulators.items()
            },
            orient='index',
            columns=RFM_COLUMNS
        ).sort_index()
        rfm.index.name = self.customer_id

        self._check_recency(rfm, reference_date)
        self.reference_date_ = reference_date

        logger.info(f"Calculated RFM for {len(rfm)} customers from {n_rows} streamed rows")
        return rfm.astype({'recency': 'int64', 'frequency': 'int64', 'monetary': 'float64'})

    def _prepare(self, df: pd.DataFrame) -> pd.DataFrame:
        """Check columns and make sure dates and line totals are present."""
        if df.empty:
            raise EmptyDatasetError()

        required = {self.customer_id, self.invoice_column, self.date_column}
        missing = required - set(df.columns)
        if missing:
            raise MissingColumnsError(missing)

        df = df.copy()
        df[self.date_column] = pd.to_datetime(df[self.date_column])

        if self.amount_column not in df.columns:
            if not {'quantity', 'unit_price'} <= set(df.columns):
                raise MissingColumnsError({self.amount_column})
            df[self.amount_column] = df['quantity'] * df['unit_price']

        return df

    def _check_recency(self, rfm: pd.DataFrame, reference_date: pd.Timestamp) -> None:
        if (rfm['recency'] < 0).any():
            n_bad = int((rfm['recency'] < 0).sum())
            raise ValueError(
                f"Reference date {reference_date.date()} precedes the last purchase "
                f"of {n_bad} customers"
            )

    def get_feature_summary(self, rfm: pd.DataFrame) -> pd.DataFrame:
        """
        Get summary statistics for RFM features.

        Args:
            rfm: DataFrame with RFM metrics

        Returns:
            Summary statistics DataFrame (one row per feature)
        """
        summary = rfm.select_dtypes(include=[np.number]).describe()
        return summary.T
