"""
Synthetic transaction exports for demos and tests.
"""

from .generate_sample_data import generate_online_retail_data

__all__ = ["generate_online_retail_data"]
