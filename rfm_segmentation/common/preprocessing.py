"""
Data Preprocessing Module
=========================

Transaction cleaning and feature standardization for RFM segmentation.

Usage:
    from rfm_segmentation.common import Preprocessor

    preprocessor = Preprocessor()
    clean = preprocessor.clean_transactions(transactions)
    normalized = preprocessor.standardize(rfm)
"""

import pandas as pd
import numpy as np
from typing import Optional, List, Dict, Any
from loguru import logger

from .exceptions import ConstantFeatureError, EmptyDatasetError, MissingColumnsError


# Relative tolerance below which a column's spread counts as zero
_ZERO_STD_TOLERANCE = 1e-12


class Preprocessor:
    """
    Cleaning and scaling steps of the segmentation pipeline.

    Provides methods for:
    - Removing cancelled, anonymous and inconsistent transactions
    - Z-score standardization of customer features
    - Mapping standardized values back to original units

    Example:
        >>> preprocessor = Preprocessor()
        >>> clean = preprocessor.clean_transactions(df)
        >>> scaled = preprocessor.standardize(rfm)
    """

    def __init__(self, cancellation_prefix: str = 'C', ddof: int = 1):
        """
        Initialize Preprocessor.

        Args:
            cancellation_prefix: Invoice id prefix marking cancellations
            ddof: Delta degrees of freedom for the standard deviation
                (1 = sample, 0 = population)
        """
        self.cancellation_prefix = cancellation_prefix
        self.ddof = ddof
        self.scaling_params_: Dict[str, Dict[str, float]] = {}
        self.cleaning_report_: Dict[str, int] = {}
        logger.info("Preprocessor initialized")

    def clean_transactions(
        self,
        df: pd.DataFrame,
        allow_empty: bool = False
    ) -> pd.DataFrame:
        """
        Drop transactions that cannot be attributed to a valid purchase.

        A row is kept only when it parsed correctly, its invoice is not a
        cancellation, it has a customer_id, and both quantity and unit
        price are positive. A ``line_total`` column is added.

        Args:
            df: Prepared transaction DataFrame (see DataLoader)
            allow_empty: Return an empty frame instead of raising, for
                cleaning one chunk of a larger export

        Returns:
            Cleaned DataFrame

        Raises:
            MissingColumnsError: If required columns are absent
            EmptyDatasetError: If no rows survive cleaning

        Example:
            >>> clean = preprocessor.clean_transactions(transactions)
        """
        required = {'invoice_id', 'customer_id', 'quantity', 'unit_price', 'invoice_date'}
        missing = required - set(df.columns)
        if missing:
            raise MissingColumnsError(missing)

        df = df.copy()
        n_input = len(df)
        report = {'input_rows': n_input}

        logger.info(f"Starting transaction cleaning. Rows: {n_input}")

        # Unparseable values were coerced to missing by the loader
        quantity = pd.to_numeric(df['quantity'], errors='coerce')
        unit_price = pd.to_numeric(df['unit_price'], errors='coerce')
        invoice_date = pd.to_datetime(df['invoice_date'], errors='coerce')
        well_formed = (
            df['invoice_id'].notna()
            & quantity.notna()
            & unit_price.notna()
            & invoice_date.notna()
        )
        report['malformed'] = int((~well_formed).sum())
        df['quantity'] = quantity
        df['unit_price'] = unit_price
        df['invoice_date'] = invoice_date
        df = df[well_formed]

        cancelled = df['invoice_id'].astype(str).str.startswith(self.cancellation_prefix)
        report['cancelled'] = int(cancelled.sum())
        df = df[~cancelled]

        customer = df['customer_id'].astype(object)
        has_customer = customer.notna() & (customer.astype(str).str.strip() != '')
        report['missing_customer'] = int((~has_customer).sum())
        df = df[has_customer]

        positive = (df['quantity'] > 0) & (df['unit_price'] > 0)
        report['non_positive'] = int((~positive).sum())
        df = df[positive].copy()

        df['line_total'] = df['quantity'] * df['unit_price']

        report['output_rows'] = len(df)
        self.cleaning_report_ = report

        logger.info(
            f"Cleaning complete. {n_input} -> {len(df)} rows "
            f"(malformed={report['malformed']}, cancelled={report['cancelled']}, "
            f"missing_customer={report['missing_customer']}, "
            f"non_positive={report['non_positive']})"
        )

        if df.empty and not allow_empty:
            raise EmptyDatasetError()

        return df

    def standardize(
        self,
        df: pd.DataFrame,
        columns: Optional[List[str]] = None,
        ddof: Optional[int] = None
    ) -> pd.DataFrame:
        """
        Z-score standardize columns: ``(x - mean) / std``.

        Args:
            df: Input DataFrame (e.g. the RFM table)
            columns: Columns to scale (None for all numeric columns)
            ddof: Override the instance's degrees of freedom

        Returns:
            New DataFrame with the same index and standardized columns

        Raises:
            EmptyDatasetError: If the DataFrame has no rows
            ConstantFeatureError: If a column has zero standard deviation

        Example:
            >>> normalized = preprocessor.standardize(rfm)
        """
        if df.empty:
            raise EmptyDatasetError()

        if columns is None:
            columns = df.select_dtypes(include=[np.number]).columns.tolist()
        ddof = self.ddof if ddof is None else ddof

        values = df[columns].astype(float)
        means = values.mean()
        stds = values.std(ddof=ddof)

        for col in columns:
            std = stds[col]
            if not np.isfinite(std) or std <= _ZERO_STD_TOLERANCE * max(1.0, abs(means[col])):
                raise ConstantFeatureError(col, float(std))

        scaled = (values - means) / stds

        self.scaling_params_ = {
            col: {'mean': float(means[col]), 'std': float(stds[col])}
            for col in columns
        }

        logger.info(f"Standardized {len(columns)} columns over {len(df)} rows (ddof={ddof})")
        return scaled

    def inverse_standardize(
        self,
        df: pd.DataFrame,
        columns: Optional[List[str]] = None
    ) -> pd.DataFrame:
        """
        Map standardized values back to original units.

        Args:
            df: DataFrame with standardized features
            columns: Columns to transform (None for all fitted columns)

        Returns:
            DataFrame in original scale
        """
        if not self.scaling_params_:
            raise ValueError("Scaler not fitted. Call standardize() first.")

        df = df.copy()
        columns = columns or [c for c in df.columns if c in self.scaling_params_]

        for col in columns:
            if col not in self.scaling_params_:
                raise ValueError(f"Column '{col}' was not standardized")
            params = self.scaling_params_[col]
            df[col] = df[col] * params['std'] + params['mean']

        return df

    def get_cleaning_report(self) -> Dict[str, Any]:
        """Return drop counts per cleaning rule from the last run."""
        return dict(self.cleaning_report_)
