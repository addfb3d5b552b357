#!/usr/bin/env python3
"""
Sample Data Generator
=====================

Generates a synthetic transaction export with the same layout as the
UCI Online Retail dataset, for trying out and testing the pipeline.

Usage:
    python -m rfm_segmentation.data.generate_sample_data [output_dir]

This will create:
    - sample_online_retail.csv: ~13k invoice lines for 500 customers
    - test_online_retail_small.csv: ~900 invoice lines for 60 customers
"""

import os
import sys
from datetime import timedelta

import numpy as np
import pandas as pd


COUNTRIES = ['United Kingdom', 'Germany', 'France', 'EIRE', 'Spain', 'Netherlands']


def _build_catalog(rng: np.random.RandomState, n_products: int) -> pd.DataFrame:
    """Random product catalog with lognormal unit prices."""
    return pd.DataFrame({
        'StockCode': [f"{85000 + i}" for i in range(n_products)],
        'Description': [f"PRODUCT {i:04d}" for i in range(n_products)],
        'UnitPrice': np.round(rng.lognormal(1.0, 0.8, n_products), 2) + 0.1,
    })


def generate_online_retail_data(
    n_customers: int = 500,
    n_invoices: int = 3000,
    n_products: int = 200,
    start_date: str = '2010-12-01',
    end_date: str = '2011-12-09',
    cancellation_rate: float = 0.03,
    anonymous_rate: float = 0.1,
    invalid_price_rate: float = 0.005,
    seed: int = 42
) -> pd.DataFrame:
    """
    Generate synthetic Online Retail style invoice lines.

    Customers differ in activity (a few heavy buyers, many occasional
    ones) so the RFM table has realistic skew. The export also contains
    the records the cleaning stage must drop:
    - cancellation invoices ("C" prefix, negative quantity)
    - lines without CustomerID
    - lines with a zero unit price

    Args:
        n_customers: Number of identified customers
        n_invoices: Number of purchase invoices
        n_products: Catalog size
        start_date: First invoice date
        end_date: Last invoice date
        cancellation_rate: Share of invoices followed by a cancellation
        anonymous_rate: Share of invoices without a customer
        invalid_price_rate: Share of lines with a zero unit price
        seed: Random seed

    Returns:
        DataFrame with InvoiceNo, StockCode, Description, Quantity,
        InvoiceDate, UnitPrice, CustomerID and Country columns
    """
    rng = np.random.RandomState(seed)
    catalog = _build_catalog(rng, n_products)

    start = pd.Timestamp(start_date)
    span_minutes = int((pd.Timestamp(end_date) - start).total_seconds() // 60)

    customer_ids = np.arange(12346, 12346 + n_customers)
    activity = rng.lognormal(0, 1.2, n_customers)
    activity = activity / activity.sum()
    home_country = rng.choice(COUNTRIES, size=n_customers, p=[0.8, 0.05, 0.05, 0.04, 0.03, 0.03])

    records = []
    invoice_no = 536365

    for _ in range(n_invoices):
        customer_idx = rng.choice(n_customers, p=activity)
        customer = customer_ids[customer_idx]
        if rng.rand() < anonymous_rate:
            customer = np.nan
        timestamp = start + timedelta(minutes=int(rng.randint(0, span_minutes)))
        country = home_country[customer_idx]

        n_lines = rng.randint(1, 9)
        lines = catalog.sample(n=n_lines, random_state=rng)

        for _, product in lines.iterrows():
            price = product['UnitPrice']
            if rng.rand() < invalid_price_rate:
                price = 0.0
            records.append({
                'InvoiceNo': str(invoice_no),
                'StockCode': product['StockCode'],
                'Description': product['Description'],
                'Quantity': int(rng.choice([1, 2, 3, 4, 6, 12, 24])),
                'InvoiceDate': timestamp,
                'UnitPrice': price,
                'CustomerID': customer,
                'Country': country,
            })

        if rng.rand() < cancellation_rate:
            product = lines.iloc[0]
            records.append({
                'InvoiceNo': f"C{invoice_no + 1}",
                'StockCode': product['StockCode'],
                'Description': product['Description'],
                'Quantity': -int(rng.randint(1, 5)),
                'InvoiceDate': timestamp + timedelta(hours=int(rng.randint(1, 48))),
                'UnitPrice': product['UnitPrice'],
                'CustomerID': customer,
                'Country': country,
            })
            invoice_no += 1

        invoice_no += 1

    df = pd.DataFrame(records)
    df = df.sort_values('InvoiceDate', kind='stable').reset_index(drop=True)

    return df


def main():
    """Generate sample datasets."""
    output_dir = sys.argv[1] if len(sys.argv) > 1 else os.getcwd()
    os.makedirs(output_dir, exist_ok=True)

    print("Generating sample datasets...")

    df = generate_online_retail_data()
    path = os.path.join(output_dir, 'sample_online_retail.csv')
    df.to_csv(path, index=False)
    print(f"  Saved {len(df)} records ({df['CustomerID'].nunique()} customers) to {path}")

    small = generate_online_retail_data(n_customers=60, n_invoices=200, seed=7)
    small_path = os.path.join(output_dir, 'test_online_retail_small.csv')
    small.to_csv(small_path, index=False)
    print(f"  Saved {len(small)} records to {small_path}")

    print("\nSample data generation complete!")


if __name__ == '__main__':
    main()
