"""Tests for the command-line runner."""

import json

import pytest

from rfm_segmentation.run_segmentation import build_overrides, main, parse_args


class TestParseArgs:

    def test_defaults(self):
        args = parse_args(['--data', 'export.csv'])

        assert args.config == 'config/settings.yaml'
        assert args.n_clusters is None
        assert args.cut_height is None
        assert args.chunk_size is None

    def test_cut_options_are_exclusive(self):
        with pytest.raises(SystemExit):
            parse_args(['--data', 'x.csv', '--cut-height', '30', '--hierarchical-clusters', '4'])

    def test_data_required(self):
        with pytest.raises(SystemExit):
            parse_args([])


class TestBuildOverrides:

    def test_flags_map_to_config(self):
        args = parse_args([
            '--data', 'x.csv', '--n-clusters', '3', '--seed', '7',
            '--cut-height', '20', '--output', 'out',
        ])

        overrides = build_overrides(args)

        assert overrides['clustering']['kmeans'] == {'n_clusters': 3, 'random_state': 7}
        assert overrides['clustering']['hierarchical'] == {'cut_height': 20.0, 'n_clusters': None}
        assert overrides['output'] == {'dir': 'out'}

    def test_no_flags_no_overrides(self):
        overrides = build_overrides(parse_args(['--data', 'x.csv']))

        assert overrides == {'clustering': {'kmeans': {}, 'hierarchical': {}}}


class TestMain:

    def test_writes_reports(self, synthetic_csv, tmp_path):
        output = tmp_path / "reports"

        exit_code = main([
            '--data', str(synthetic_csv),
            '--config', str(tmp_path / "missing.yaml"),
            '--output', str(output),
            '--n-clusters', '4',
            '--hierarchical-clusters', '3',
            '--log-level', 'WARNING',
        ])

        assert exit_code == 0
        assert len(list(output.glob("customer_segments_*.csv"))) == 1
        assert len(list(output.glob("customer_segments_*.html"))) == 1

        report = json.loads(next(output.glob("customer_segments_*.json")).read_text())
        assert len(report['kmeans_profile']) == 4
        assert len(report['hierarchical_profile']) == 3

    def test_chunked_run(self, synthetic_csv, tmp_path):
        exit_code = main([
            '--data', str(synthetic_csv),
            '--config', str(tmp_path / "missing.yaml"),
            '--output', str(tmp_path / "out"),
            '--n-clusters', '3',
            '--chunk-size', '250',
            '--log-level', 'ERROR',
        ])

        assert exit_code == 0

    def test_missing_data_file(self, tmp_path):
        exit_code = main([
            '--data', str(tmp_path / "missing.csv"),
            '--config', str(tmp_path / "missing.yaml"),
            '--output', str(tmp_path / "out"),
            '--log-level', 'ERROR',
        ])

        assert exit_code == 1

    def test_too_many_clusters(self, raw_export, tmp_path):
        path = tmp_path / "export.csv"
        raw_export.to_csv(path, index=False)

        exit_code = main([
            '--data', str(path),
            '--config', str(tmp_path / "missing.yaml"),
            '--output', str(tmp_path / "out"),
            '--log-level', 'ERROR',
        ])

        assert exit_code == 1
