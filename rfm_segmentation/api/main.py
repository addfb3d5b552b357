"""
RFM Segmentation API
====================

FastAPI endpoints for customer segmentation.

Usage:
    uvicorn rfm_segmentation.api.main:app --reload

Endpoints:
    POST /segment - Segment customers from an uploaded transaction CSV
    GET /health - Health check
"""

import os
from io import StringIO
from typing import Optional

import pandas as pd
from fastapi import FastAPI, File, HTTPException, Query, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from pydantic import BaseModel

from .. import __version__
from ..common import load_config
from ..common.exceptions import SegmentationError
from ..common.reporting import to_serializable
from ..customer_segmentation import SegmentationPipeline

# Initialize FastAPI
app = FastAPI(
    title="RFM Segmentation API",
    description="RFM customer segmentation with K-Means and hierarchical clustering",
    version=__version__
)

# Add CORS middleware with environment-based configuration
cors_origins = os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:8080").split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class HealthResponse(BaseModel):
    status: str
    version: str


# Health check
@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(status="healthy", version=__version__)


@app.post("/segment")
async def segment_customers(
    file: UploadFile = File(...),
    n_clusters: Optional[int] = Query(None, ge=1, description="Number of K-Means clusters"),
    cut_height: Optional[float] = Query(None, ge=0, description="Merge-tree cut height"),
    hierarchical_clusters: Optional[int] = Query(
        None, ge=1, description="Cut the merge tree into this many clusters"
    ),
    seed: Optional[int] = Query(None, description="K-Means random seed"),
):
    """
    Segment customers from an uploaded transaction CSV.

    Expected CSV columns (export names or snake_case):
    - InvoiceNo / invoice_id
    - CustomerID / customer_id
    - Quantity / quantity
    - UnitPrice / unit_price
    - InvoiceDate / invoice_date
    """
    if cut_height is not None and hierarchical_clusters is not None:
        raise HTTPException(
            status_code=422,
            detail="Use either cut_height or hierarchical_clusters, not both"
        )

    overrides = {'clustering': {'kmeans': {}, 'hierarchical': {}}}
    if n_clusters is not None:
        overrides['clustering']['kmeans']['n_clusters'] = n_clusters
    if seed is not None:
        overrides['clustering']['kmeans']['random_state'] = seed
    if cut_height is not None:
        overrides['clustering']['hierarchical'].update({'cut_height': cut_height, 'n_clusters': None})
    if hierarchical_clusters is not None:
        overrides['clustering']['hierarchical']['n_clusters'] = hierarchical_clusters

    try:
        # Read uploaded file
        contents = await file.read()
        df = pd.read_csv(StringIO(contents.decode('utf-8')))
    except (UnicodeDecodeError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise HTTPException(status_code=400, detail=f"Could not read CSV: {e}")

    try:
        pipeline = SegmentationPipeline(load_config(overrides=overrides))
        result = pipeline.run(df)
    except SegmentationError as e:
        logger.warning(f"Segmentation rejected: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Segmentation error: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    return {
        "status": "success",
        "n_customers": len(result.rfm),
        "reference_date": str(result.reference_date.date()),
        "kmeans_profile": to_serializable(result.kmeans_profile.reset_index()),
        "hierarchical_profile": to_serializable(result.hierarchical_profile.reset_index()),
        "comparison": to_serializable(result.comparison.to_dict()),
        "metrics": to_serializable(result.metrics),
        "cleaning": to_serializable(result.cleaning_report),
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
