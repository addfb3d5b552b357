#!/usr/bin/env python3
"""
RFM Segmentation - Main Runner
==============================

Command-line interface for running the customer segmentation pipeline.

Usage:
    rfm-segment --data data/Online_Retail.xlsx
    rfm-segment --data data/online_retail.csv --n-clusters 4 --cut-height 30
    rfm-segment --data data/online_retail.csv --hierarchical-clusters 4
    rfm-segment --data data/online_retail.csv --config config/settings.yaml

Examples:
    # K-Means with 5 clusters, hierarchical tree cut at height 35
    rfm-segment --data Online_Retail.xlsx --n-clusters 5 --cut-height 35

    # Large CSV export aggregated in chunks
    rfm-segment --data online_retail.csv --chunk-size 200000
"""

import argparse
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from loguru import logger

from .common import Reporter, load_config
from .common.exceptions import SegmentationError
from .customer_segmentation import SegmentationPipeline, SegmentAnalyzer


def setup_logging(log_level: str = "INFO"):
    """Configure logging."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=log_level,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{message}</cyan>"
    )


def build_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """Translate CLI flags into configuration overrides."""
    kmeans: Dict[str, Any] = {}
    hierarchical: Dict[str, Any] = {}

    if args.n_clusters is not None:
        kmeans['n_clusters'] = args.n_clusters
    if args.seed is not None:
        kmeans['random_state'] = args.seed
    if args.cut_height is not None:
        hierarchical['cut_height'] = args.cut_height
        hierarchical['n_clusters'] = None
    if args.hierarchical_clusters is not None:
        hierarchical['n_clusters'] = args.hierarchical_clusters

    overrides: Dict[str, Any] = {'clustering': {'kmeans': kmeans, 'hierarchical': hierarchical}}
    if args.output:
        overrides['output'] = {'dir': args.output}
    return overrides


def run_segmentation(args: argparse.Namespace, config: Dict[str, Any]):
    """Run customer segmentation pipeline and write the report."""
    logger.info("Starting Customer Segmentation Pipeline")

    pipeline = SegmentationPipeline(config)
    result = pipeline.run_file(args.data, chunk_size=args.chunk_size)

    analyzer = SegmentAnalyzer()
    summary = analyzer.generate_summary(
        {'K-Means': result.kmeans_profile, 'Hierarchical': result.hierarchical_profile},
        result.comparison
    )
    for line in summary.splitlines():
        logger.info(line)

    output_config = config.get('output', {})
    reporter = Reporter(output_dir=output_config.get('dir', 'outputs'))
    paths = reporter.generate_segmentation_report(
        result,
        'customer_segments',
        formats=output_config.get('formats'),
        summary=summary
    )

    logger.info(f"Segmentation complete. Results saved to {reporter.output_dir}")
    return result, paths


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description='RFM Customer Segmentation',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )

    parser.add_argument(
        '--data',
        type=str,
        required=True,
        help='Path to transaction export (CSV, Excel or Parquet)'
    )

    parser.add_argument(
        '--config',
        type=str,
        default='config/settings.yaml',
        help='Path to configuration file'
    )

    parser.add_argument(
        '--output',
        type=str,
        default=None,
        help='Output directory for results'
    )

    parser.add_argument(
        '--log-level',
        type=str,
        default='INFO',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level'
    )

    parser.add_argument(
        '--n-clusters',
        type=int,
        default=None,
        help='Number of K-Means clusters'
    )

    cut = parser.add_mutually_exclusive_group()
    cut.add_argument(
        '--cut-height',
        type=float,
        default=None,
        help='Height at which to cut the hierarchical merge tree'
    )
    cut.add_argument(
        '--hierarchical-clusters',
        type=int,
        default=None,
        help='Cut the merge tree into this many clusters instead of by height'
    )

    parser.add_argument(
        '--seed',
        type=int,
        default=None,
        help='Random seed for K-Means initialization'
    )

    parser.add_argument(
        '--chunk-size',
        type=int,
        default=None,
        help='Aggregate a CSV export in chunks of this many rows'
    )

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    setup_logging(args.log_level)
    config = load_config(args.config, overrides=build_overrides(args))

    Path(config['output']['dir']).mkdir(parents=True, exist_ok=True)

    try:
        run_segmentation(args, config)
    except (SegmentationError, FileNotFoundError) as e:
        logger.error(f"Segmentation failed: {e}")
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
