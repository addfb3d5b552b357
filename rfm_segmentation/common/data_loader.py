"""
Transaction Loading Module
==========================

Loads raw retail transaction exports (CSV, Excel, Parquet), maps the
export's column names onto canonical names and coerces column types.

Usage:
    from rfm_segmentation.common import DataLoader

    loader = DataLoader()
    df = loader.load_transactions("data/Online_Retail.xlsx")

    # Validate data
    is_valid, report = loader.validate_transactions(df)
"""

import re
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

import pandas as pd
from loguru import logger

from .config import DEFAULT_CONFIG
from .exceptions import EmptyDatasetError, MissingColumnsError


# Normalized header (lowercase, alphanumerics only) -> canonical column
COLUMN_ALIASES: Dict[str, str] = {
    'invoiceno': 'invoice_id',
    'invoice': 'invoice_id',
    'invoiceid': 'invoice_id',
    'invoicenumber': 'invoice_id',
    'stockcode': 'stock_code',
    'productcode': 'stock_code',
    'description': 'description',
    'quantity': 'quantity',
    'qty': 'quantity',
    'invoicedate': 'invoice_date',
    'invoicetimestamp': 'invoice_date',
    'date': 'invoice_date',
    'unitprice': 'unit_price',
    'price': 'unit_price',
    'customerid': 'customer_id',
    'customer': 'customer_id',
    'country': 'country',
}

REQUIRED_COLUMNS: List[str] = [
    'invoice_id', 'customer_id', 'quantity', 'unit_price', 'invoice_date'
]

# Unparseable values quoted in the warning per column
_MAX_LOGGED_FAILURES = 5


def _header_key(name: Any) -> str:
    return re.sub(r'[^a-z0-9]', '', str(name).lower())


def _normalize_identifier(value: Any) -> Optional[str]:
    """Render an identifier as a clean string, keeping missing values as None."""
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    # Nullable integer columns come back from pandas as floats (17850.0)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    text = str(value).strip()
    return text or None


class DataLoader:
    """
    Loader for raw transaction exports.

    Attributes:
        config (dict): Data section of the pipeline configuration
        supported_formats (list): List of supported file suffixes

    Example:
        >>> loader = DataLoader()
        >>> df = loader.load_transactions("online_retail.csv")
        >>> print(f"Loaded {len(df)} records")
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """
        Initialize DataLoader.

        Args:
            config: Pipeline configuration dictionary (uses defaults if None)
        """
        config = config or DEFAULT_CONFIG
        self.config = config.get('data', DEFAULT_CONFIG['data'])
        self.supported_formats = self.config.get(
            'supported_formats', DEFAULT_CONFIG['data']['supported_formats']
        )
        self.date_format = self.config.get('date_format') or 'mixed'
        self.column_aliases = dict(COLUMN_ALIASES)
        for source, target in (self.config.get('column_map') or {}).items():
            self.column_aliases[_header_key(source)] = target
        logger.info("DataLoader initialized")

    def load_transactions(
        self,
        filepath: Union[str, Path],
        sheet_name: Union[str, int] = 0,
        **kwargs
    ) -> pd.DataFrame:
        """
        Load a transaction export and return it with canonical columns.

        Args:
            filepath: Path to CSV, Excel or Parquet file
            sheet_name: Sheet name or index for Excel files
            **kwargs: Additional arguments passed to the pandas reader

        Returns:
            DataFrame with canonical, type-coerced columns

        Raises:
            FileNotFoundError: If file doesn't exist
            ValueError: If file format is unsupported
            EmptyDatasetError: If the file holds no records
            MissingColumnsError: If required columns are absent

        Example:
            >>> df = loader.load_transactions("Online_Retail.xlsx")
        """
        filepath = Path(filepath)

        if not filepath.exists():
            raise FileNotFoundError(f"File not found: {filepath}")

        suffix = filepath.suffix.lower()
        if suffix not in self.supported_formats:
            raise ValueError(f"Unsupported format: {filepath.suffix}")

        logger.info(f"Loading transactions from {filepath}")

        if suffix == '.csv':
            df = pd.read_csv(filepath, low_memory=False, **kwargs)
        elif suffix in ('.xlsx', '.xls'):
            df = pd.read_excel(filepath, sheet_name=sheet_name, **kwargs)
        else:
            df = pd.read_parquet(filepath, **kwargs)

        if df.empty:
            raise EmptyDatasetError(f"No records found in {filepath}")

        logger.info(f"Loaded {len(df)} records with {len(df.columns)} columns")
        return self.prepare_transactions(df, source=str(filepath))

    def iter_transactions(
        self,
        filepath: Union[str, Path],
        chunk_size: int = 100_000,
        **kwargs
    ) -> Iterator[pd.DataFrame]:
        """
        Read a CSV export in chunks, yielding prepared DataFrames.

        Args:
            filepath: Path to CSV file
            chunk_size: Number of rows per chunk
            **kwargs: Additional arguments passed to pd.read_csv

        Yields:
            Prepared transaction chunks
        """
        filepath = Path(filepath)

        if not filepath.exists():
            raise FileNotFoundError(f"File not found: {filepath}")
        if filepath.suffix.lower() != '.csv':
            raise ValueError(f"Chunked reading only supports CSV, got {filepath.suffix}")

        logger.info(f"Streaming transactions from {filepath} ({chunk_size} rows per chunk)")
        for chunk in pd.read_csv(filepath, chunksize=chunk_size, low_memory=False, **kwargs):
            yield self.prepare_transactions(chunk, source=str(filepath))

    def prepare_transactions(
        self,
        df: pd.DataFrame,
        source: Optional[str] = None
    ) -> pd.DataFrame:
        """
        Rename columns to canonical names and coerce their types.

        Values that cannot be parsed become missing; the cleaning stage
        drops those rows.

        Args:
            df: Raw transaction DataFrame
            source: Label used in error messages

        Returns:
            DataFrame with canonical columns
        """
        df = self.standardize_columns(df)

        missing = set(REQUIRED_COLUMNS) - set(df.columns)
        if missing:
            raise MissingColumnsError(missing, source)

        df = df.copy()
        df['invoice_id'] = df['invoice_id'].map(_normalize_identifier).astype(object)
        df['customer_id'] = df['customer_id'].map(_normalize_identifier).astype(object)

        for col in ('quantity', 'unit_price'):
            df[col] = self._coerce(df[col], pd.to_numeric, col)

        if not pd.api.types.is_datetime64_any_dtype(df['invoice_date']):
            # 'mixed' infers the format per value, not once per column or chunk
            df['invoice_date'] = self._coerce(
                df['invoice_date'], pd.to_datetime, 'invoice_date', format=self.date_format
            )

        return df

    def standardize_columns(self, df: pd.DataFrame) -> pd.DataFrame:
        """Map export headers onto canonical column names."""
        mapping = {}
        for col in df.columns:
            target = self.column_aliases.get(_header_key(col))
            if target and target not in mapping.values():
                mapping[col] = target
        if mapping:
            df = df.rename(columns=mapping)
            logger.debug(f"Renamed columns: {mapping}")
        return df

    def _coerce(self, series: pd.Series, parser, column: str, **kwargs) -> pd.Series:
        """Apply a pandas parser with errors='coerce' and log the failing rows."""
        parsed = parser(series, errors='coerce', **kwargs)
        failed = parsed.isna() & series.notna()
        n_failed = int(failed.sum())
        if n_failed:
            examples = ", ".join(
                f"row {idx}: {value!r}"
                for idx, value in series[failed].head(_MAX_LOGGED_FAILURES).items()
            )
            logger.warning(f"{n_failed} values in '{column}' could not be parsed ({examples})")
        return parsed

    def validate_transactions(
        self,
        df: pd.DataFrame
    ) -> Tuple[bool, Dict[str, Any]]:
        """
        Validate a prepared transaction DataFrame and generate a quality report.

        Args:
            df: DataFrame to validate

        Returns:
            Tuple of (is_valid, validation_report)

        Example:
            >>> is_valid, report = loader.validate_transactions(df)
            >>> if not is_valid:
            ...     print(report['errors'])
        """
        report = {
            'is_valid': True,
            'errors': [],
            'warnings': [],
            'statistics': {}
        }

        if df.empty:
            report['errors'].append("No records")
            report['is_valid'] = False

        missing = set(REQUIRED_COLUMNS) - set(df.columns)
        if missing:
            report['errors'].append(f"Missing required columns: {sorted(missing)}")
            report['is_valid'] = False

        if 'customer_id' in df.columns and len(df) > 0:
            missing_ratio = df['customer_id'].isna().mean()
            if missing_ratio > 0:
                report['warnings'].append(
                    f"{missing_ratio:.2%} of records have no customer_id"
                )

        if 'invoice_id' in df.columns and len(df) > 0:
            prefix = self.config.get('cancellation_prefix', 'C')
            cancelled = df['invoice_id'].astype(str).str.startswith(prefix).sum()
            if cancelled:
                report['warnings'].append(f"{cancelled} cancelled invoice lines")

        for col in ('quantity', 'unit_price'):
            if col in df.columns and not pd.api.types.is_numeric_dtype(df[col]):
                report['warnings'].append(f"Column '{col}' should be numeric")

        if 'invoice_date' in df.columns and not pd.api.types.is_datetime64_any_dtype(df['invoice_date']):
            report['warnings'].append("Column 'invoice_date' should be datetime")

        report['statistics'] = {
            'n_rows': len(df),
            'n_columns': len(df.columns),
            'n_customers': int(df['customer_id'].nunique()) if 'customer_id' in df.columns else 0,
            'n_invoices': int(df['invoice_id'].nunique()) if 'invoice_id' in df.columns else 0,
            'missing_values': df.isna().sum().to_dict(),
        }

        return report['is_valid'], report
