"""Tests for MetricsLog: file creation, row format, appending."""

import csv
from pathlib import Path

from storycatalog.infrastructure.metrics_log import HEADER, MetricsLog, get_metrics_log


def read_rows(filepath: Path) -> list[list[str]]:
    with open(filepath) as f:
        return list(csv.reader(f))


class TestMetricsLog:
    """Tests for MetricsLog file operations."""

    def test_creates_directory_on_init(self, tmp_path):
        """Log creates parent directories if they don't exist."""
        filepath = tmp_path / "nested" / "deep" / "metrics.csv"
        MetricsLog(filepath)
        assert filepath.parent.exists()

    def test_writes_header_on_first_record(self, tmp_path):
        filepath = tmp_path / "test.csv"
        log = MetricsLog(filepath)

        log.record("refresh_cached_rating", 100.0, 5)

        assert read_rows(filepath)[0] == HEADER
        assert HEADER == ["timestamp", "operation", "duration_ms", "item_count", "outcome"]

    def test_appends_data_rows(self, tmp_path):
        filepath = tmp_path / "test.csv"
        log = MetricsLog(filepath)

        log.record("op1", 100.0, 5)
        log.record("op2", 200.0, 10, outcome="refresh_failed")

        rows = read_rows(filepath)
        assert len(rows) == 3  # header + 2 data rows
        assert rows[1][1] == "op1"
        assert rows[2][1] == "op2"
        assert rows[2][4] == "refresh_failed"

    def test_formats_duration_to_two_decimals(self, tmp_path):
        filepath = tmp_path / "test.csv"
        log = MetricsLog(filepath)

        log.record("op", 123.456789)

        assert read_rows(filepath)[1][2] == "123.46"

    def test_defaults(self, tmp_path):
        filepath = tmp_path / "test.csv"
        log = MetricsLog(filepath)

        log.record("op", 50.0)

        row = read_rows(filepath)[1]
        assert row[3] == "0"
        assert row[4] == "ok"

    def test_existing_file_not_overwritten(self, tmp_path):
        filepath = tmp_path / "test.csv"
        MetricsLog(filepath).record("op1", 100.0)
        MetricsLog(filepath).record("op2", 200.0)

        rows = read_rows(filepath)
        # Header + op1 + op2
        assert len(rows) == 3

    def test_empty_file_gets_header(self, tmp_path):
        filepath = tmp_path / "test.csv"
        filepath.touch()

        MetricsLog(filepath).record("op", 1.0)

        assert read_rows(filepath)[0] == HEADER


class TestGetMetricsLog:
    def test_returns_process_wide_log(self, metrics_log):
        assert get_metrics_log() is metrics_log
