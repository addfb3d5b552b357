"""
Segmentation Errors
===================

Exceptions raised by the segmentation pipeline for data and
configuration problems. All of them subclass ``ValueError`` so callers
that already guard against ``ValueError`` keep working.
"""

from typing import Iterable, Optional


class SegmentationError(ValueError):
    """Base class for segmentation data/configuration errors."""


class EmptyDatasetError(SegmentationError):
    """Raised when there is no data left to segment."""

    def __init__(self, message: str = "no data after cleaning"):
        super().__init__(message)


class MissingColumnsError(SegmentationError):
    """Raised when required transaction columns are absent."""

    def __init__(self, columns: Iterable[str], source: Optional[str] = None):
        self.columns = sorted(columns)
        where = f" in {source}" if source else ""
        super().__init__(f"Missing required columns{where}: {self.columns}")


class ConstantFeatureError(SegmentationError):
    """Raised when a feature cannot be standardized (zero spread)."""

    def __init__(self, column: str, std: float):
        self.column = column
        self.std = std
        super().__init__(
            f"Cannot standardize column '{column}': standard deviation is {std}"
        )


class InvalidClusterCountError(SegmentationError):
    """Raised when the requested number of clusters is out of range."""

    def __init__(self, k: int, n_samples: int):
        self.k = k
        self.n_samples = n_samples
        super().__init__(
            f"Invalid number of clusters k={k}: must be between 1 and "
            f"the number of customers ({n_samples})"
        )
