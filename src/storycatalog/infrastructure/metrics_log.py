"""CSV metrics log for catalog operations."""

import csv
import threading
from datetime import UTC, datetime
from pathlib import Path

HEADER = ["timestamp", "operation", "duration_ms", "item_count", "outcome"]


class MetricsLog:
    """Thread-safe CSV log of operation timings and outcomes."""

    def __init__(self, filepath: str | Path) -> None:
        """Initialize metrics log.

        Args:
            filepath: Path to CSV file (will be created if doesn't exist)
        """
        self.filepath = Path(filepath)
        self._lock = threading.Lock()
        self.filepath.parent.mkdir(parents=True, exist_ok=True)

    def _write_header_if_needed(self) -> None:
        if not self.filepath.exists() or self.filepath.stat().st_size == 0:
            with open(self.filepath, "w", newline="") as f:
                csv.writer(f).writerow(HEADER)

    def record(
        self,
        operation: str,
        duration_ms: float,
        item_count: int = 0,
        outcome: str = "ok",
    ) -> None:
        """Append one row.

        Args:
            operation: Name of the operation (e.g., "refresh_cached_rating")
            duration_ms: Duration in milliseconds
            item_count: Number of rows involved (optional)
            outcome: "ok" or a short failure label such as "refresh_failed"
        """
        with self._lock:
            self._write_header_if_needed()
            with open(self.filepath, "a", newline="") as f:
                csv.writer(f).writerow([
                    datetime.now(UTC).isoformat(),
                    operation,
                    f"{duration_ms:.2f}",
                    item_count,
                    outcome,
                ])


_metrics_log: MetricsLog | None = None


def get_metrics_log() -> MetricsLog:
    """Get or create the process-wide metrics log."""
    global _metrics_log
    if _metrics_log is None:
        from storycatalog.config import get_settings

        _metrics_log = MetricsLog(get_settings().metrics_log_path)
    return _metrics_log
