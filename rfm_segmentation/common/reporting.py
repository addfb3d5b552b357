"""
Reporting Module
================

Writes segmentation results to CSV, JSON and HTML.

Usage:
    from rfm_segmentation.common import Reporter

    reporter = Reporter(output_dir="outputs/reports")
    paths = reporter.generate_segmentation_report(result, "customer_segments")
"""

import pandas as pd
import numpy as np
from pathlib import Path
from typing import List, Dict, Any, Optional
from datetime import datetime
import json
from loguru import logger


def to_serializable(obj: Any) -> Any:
    """Convert numpy/pandas types to JSON serializable."""
    if isinstance(obj, dict):
        return {str(k): to_serializable(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [to_serializable(v) for v in obj]
    elif isinstance(obj, (bool, np.bool_)):
        return bool(obj)
    elif isinstance(obj, np.integer):
        return int(obj)
    elif isinstance(obj, (np.floating, float)):
        return None if np.isnan(obj) else float(obj)
    elif isinstance(obj, np.ndarray):
        return to_serializable(obj.tolist())
    elif isinstance(obj, pd.DataFrame):
        return to_serializable(obj.to_dict('records'))
    elif isinstance(obj, pd.Series):
        return to_serializable(obj.to_dict())
    elif isinstance(obj, pd.Timestamp):
        return obj.isoformat()
    elif obj is None or isinstance(obj, (str, int)):
        return obj
    elif pd.isna(obj):
        return None
    else:
        return obj


class Reporter:
    """
    Report generation for segmentation results.

    Example:
        >>> reporter = Reporter(output_dir="outputs/reports")
        >>> reporter.generate_segmentation_report(result, "customer_segments")
    """

    def __init__(self, output_dir: str = "outputs/reports"):
        """
        Initialize Reporter.

        Args:
            output_dir: Directory for saving reports
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"Reporter initialized. Output: {self.output_dir}")

    def generate_segmentation_report(
        self,
        result: Any,
        report_name: str,
        formats: Optional[List[str]] = None,
        summary: Optional[str] = None
    ) -> Dict[str, Path]:
        """
        Generate customer segmentation report.

        Args:
            result: SegmentationResult from the pipeline
            report_name: Base name for report files
            formats: Output formats ('csv', 'json', 'html')
            summary: Optional plain-text summary to embed

        Returns:
            Dictionary of format -> file path

        Example:
            >>> paths = reporter.generate_segmentation_report(result, "segments")
            >>> paths['csv']
            PosixPath('outputs/reports/segments_20250101_120000.csv')
        """
        formats = formats or ['csv', 'json', 'html']
        output_paths = {}
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")

        segments = result.segments()

        # CSV Export
        if 'csv' in formats:
            csv_path = self.output_dir / f"{report_name}_{timestamp}.csv"
            segments.reset_index().to_csv(csv_path, index=False)
            output_paths['csv'] = csv_path
            logger.info(f"Saved CSV report: {csv_path}")

        # JSON Export
        if 'json' in formats:
            json_path = self.output_dir / f"{report_name}_{timestamp}.json"

            json_data = {
                'generated_at': timestamp,
                'reference_date': str(pd.Timestamp(result.reference_date).date()),
                'n_customers': len(segments),
                'cleaning': self._convert_to_serializable(result.cleaning_report),
                'metrics': self._convert_to_serializable(result.metrics),
                'kmeans_profile': self._profile_records(result.kmeans_profile),
                'hierarchical_profile': self._profile_records(result.hierarchical_profile),
                'comparison': self._convert_to_serializable(result.comparison.to_dict()),
            }

            with open(json_path, 'w') as f:
                json.dump(json_data, f, indent=2)
            output_paths['json'] = json_path
            logger.info(f"Saved JSON report: {json_path}")

        # HTML Report
        if 'html' in formats:
            html_path = self.output_dir / f"{report_name}_{timestamp}.html"
            html_content = self._generate_segmentation_html(result, report_name, summary)

            with open(html_path, 'w') as f:
                f.write(html_content)
            output_paths['html'] = html_path
            logger.info(f"Saved HTML report: {html_path}")

        logger.info(f"Generated segmentation report: {report_name}")
        return output_paths

    def _profile_records(self, profile: pd.DataFrame) -> List[Dict[str, Any]]:
        return self._convert_to_serializable(profile.reset_index().to_dict('records'))

    def _convert_to_serializable(self, obj: Any) -> Any:
        return to_serializable(obj)

    def _generate_segmentation_html(
        self,
        result: Any,
        report_name: str,
        summary: Optional[str]
    ) -> str:
        """Generate HTML report for segmentation results."""
        kmeans_metrics = result.metrics.get('kmeans', {})
        silhouette = kmeans_metrics.get('silhouette_score')
        silhouette_text = (
            f"{silhouette:.3f}" if silhouette is not None and not np.isnan(silhouette) else "N/A"
        )
        float_format = lambda x: f"{x:,.2f}"

        summary_block = f"<pre>{summary}</pre>" if summary else ""

        return f"""
<!DOCTYPE html>
<html>
<head>
    <title>{report_name} - Segmentation Report</title>
    <style>
        body {{ font-family: Arial, sans-serif; margin: 40px; background: #f5f5f5; }}
        .container {{ max-width: 1200px; margin: 0 auto; background: white; padding: 30px; border-radius: 10px; box-shadow: 0 2px 10px rgba(0,0,0,0.1); }}
        h1 {{ color: #2c3e50; border-bottom: 3px solid #27ae60; padding-bottom: 10px; }}
        h2 {{ color: #34495e; margin-top: 30px; }}
        .metrics {{ display: grid; grid-template-columns: repeat(auto-fit, minmax(200px, 1fr)); gap: 20px; margin: 20px 0; }}
        .metric-card {{ background: #ecf0f1; padding: 20px; border-radius: 8px; text-align: center; }}
        .metric-value {{ font-size: 2em; font-weight: bold; color: #27ae60; }}
        .metric-label {{ color: #7f8c8d; margin-top: 5px; }}
        table {{ width: 100%; border-collapse: collapse; margin: 20px 0; }}
        th, td {{ padding: 12px; text-align: left; border-bottom: 1px solid #ddd; }}
        th {{ background: #27ae60; color: white; }}
        tr:hover {{ background: #f5f5f5; }}
        .timestamp {{ color: #95a5a6; font-size: 0.9em; }}
    </style>
</head>
<body>
    <div class="container">
        <h1>Customer Segmentation Report</h1>
        <p class="timestamp">Generated: {datetime.now().strftime("%Y-%m-%d %H:%M:%S")}</p>
        <p class="timestamp">Reference date: {pd.Timestamp(result.reference_date).date()}</p>

        <h2>Overview</h2>
        <div class="metrics">
            <div class="metric-card">
                <div class="metric-value">{len(result.rfm):,}</div>
                <div class="metric-label">Customers</div>
            </div>
            <div class="metric-card">
                <div class="metric-value">{len(result.kmeans_profile)}</div>
                <div class="metric-label">K-Means Clusters</div>
            </div>
            <div class="metric-card">
                <div class="metric-value">{len(result.hierarchical_profile)}</div>
                <div class="metric-label">Hierarchical Clusters</div>
            </div>
            <div class="metric-card">
                <div class="metric-value">{silhouette_text}</div>
                <div class="metric-label">K-Means Silhouette</div>
            </div>
            <div class="metric-card">
                <div class="metric-value">{result.comparison.adjusted_rand:.3f}</div>
                <div class="metric-label">Adjusted Rand Index</div>
            </div>
        </div>

        <h2>K-Means Cluster Profiles</h2>
        {result.kmeans_profile.to_html(float_format=float_format)}

        <h2>Hierarchical Cluster Profiles</h2>
        {result.hierarchical_profile.to_html(float_format=float_format)}

        <h2>K-Means vs Hierarchical</h2>
        {result.comparison.contingency.to_html()}

        {summary_block}
    </div>
</body>
</html>
"""
