"""Shared fixtures for segmentation tests."""

import numpy as np
import pandas as pd
import pytest

from rfm_segmentation.common import DataLoader, Preprocessor, load_config
from rfm_segmentation.data import generate_online_retail_data


@pytest.fixture
def raw_export():
    """Small export in Online Retail layout covering every cleaning rule.

    Rows:
        0-1  customer 17850, invoice 1 (two lines)
        2    customer 17850, invoice 2
        3    cancellation of invoice 1 (dropped)
        4    customer 13047, invoice 4
        5    customer 13047, negative quantity (dropped)
        6    no customer (dropped)
        7    customer 12583, zero price (dropped)
    """
    return pd.DataFrame({
        'InvoiceNo': ['1', '1', '2', 'C3', '4', '5', '6', '7'],
        'StockCode': ['85123A', '71053', '84406B', '85123A', '22752', '21730', '22633', '22632'],
        'Description': ['HEART T-LIGHT', 'LANTERN', 'COAT RACK', 'HEART T-LIGHT',
                        'NESTING BOXES', 'GLASS STAR', 'HAND WARMER', 'HAND WARMER RED'],
        'Quantity': [2, 1, 1, 5, 3, -1, 4, 2],
        'InvoiceDate': [
            '2011-01-01 10:00', '2011-01-01 10:00', '2011-01-03 12:00', '2011-01-02 09:00',
            '2011-01-02 11:00', '2011-01-03 08:00', '2011-01-02 15:00', '2011-01-03 09:00',
        ],
        'UnitPrice': [5.0, 2.0, 10.0, 4.0, 1.5, 3.0, 2.5, 0.0],
        'CustomerID': [17850.0, 17850.0, 17850.0, 17850.0, 13047.0, 13047.0, np.nan, 12583.0],
        'Country': ['United Kingdom'] * 8,
    })


@pytest.fixture
def loader():
    return DataLoader()


@pytest.fixture
def prepared_export(loader, raw_export):
    return loader.prepare_transactions(raw_export)


@pytest.fixture
def clean_transactions(prepared_export):
    return Preprocessor().clean_transactions(prepared_export)


@pytest.fixture
def two_invoice_customer():
    """Customer A: invoice 1 (2 x 5.00) on day 1, invoice 2 (1 x 10.00) on day 3."""
    return pd.DataFrame({
        'invoice_id': ['1', '2'],
        'customer_id': ['A', 'A'],
        'quantity': [2, 1],
        'unit_price': [5.0, 10.0],
        'invoice_date': pd.to_datetime(['2011-03-01 09:30', '2011-03-03 17:45']),
        'line_total': [10.0, 10.0],
    })


@pytest.fixture
def blobs():
    """Three well separated groups of 20 points in three dimensions."""
    rng = np.random.RandomState(0)
    centers = np.array([[0.0, 0.0, 0.0], [8.0, 8.0, 0.0], [0.0, 8.0, 8.0]])
    points = np.vstack([c + rng.normal(0, 0.5, size=(20, 3)) for c in centers])
    truth = np.repeat([1, 2, 3], 20)
    frame = pd.DataFrame(points, columns=['recency', 'frequency', 'monetary'])
    return frame, truth


@pytest.fixture(scope="session")
def synthetic_export():
    return generate_online_retail_data(n_customers=60, n_invoices=200, seed=7)


@pytest.fixture
def synthetic_csv(tmp_path, synthetic_export):
    path = tmp_path / "online_retail.csv"
    synthetic_export.to_csv(path, index=False)
    return path


@pytest.fixture
def small_config():
    """Configuration that yields several clusters on the synthetic export."""
    return load_config(overrides={
        'clustering': {
            'kmeans': {'n_clusters': 4, 'n_init': 10},
            'hierarchical': {'n_clusters': 4},
        }
    })
