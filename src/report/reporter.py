"""
Streaming Report Writer Module.

Receives batches of inventory records from concurrently running organization
tasks and writes them, split into five recency buckets by last access, either
to one file per bucket or to a single stream.
"""

import asyncio
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Sequence, TextIO, Tuple

from config import OutputFormat, logger
from miners.models import RepositoryData
from report.formatters import (
    CSV_HEADER,
    STREAM_COLUMN_WIDTHS,
    format_csv_row,
    format_json_row,
    format_table_row,
    record_values,
    table_header_lines,
    table_separator,
)

# Bucket name and the maximum age in days it holds; None holds the rest
BUCKETS: Tuple[Tuple[str, Optional[int]], ...] = (
    ("30d", 30),
    ("60d", 60),
    ("120d", 120),
    ("240d", 240),
    ("gt-240d", None),
)
SLOWEST_BUCKET = BUCKETS[-1][0]
RESULTS_DIR = "results"
LAST_ACCESSED_FORMAT = "%Y-%m-%d %H:%M:%S"


def days_since(last_accessed: str, now: Optional[datetime] = None) -> Optional[int]:
    """
    Whole days elapsed since a formatted last-accessed timestamp.

    Args:
        last_accessed (str): ``YYYY-MM-DD HH:MM:SS UTC`` or "N/A"
        now (Optional[datetime]): Reference time, defaults to current UTC time

    Returns:
        Optional[int]: Elapsed days, or None if the value cannot be parsed
    """
    try:
        accessed = datetime.strptime(
            last_accessed.replace(" UTC", ""), LAST_ACCESSED_FORMAT
        ).replace(tzinfo=timezone.utc)
    except ValueError:
        return None
    now = now or datetime.now(timezone.utc)
    return int((now - accessed).total_seconds() / 86400)


def bucket_for(last_accessed: str, now: Optional[datetime] = None) -> str:
    """Name of the recency bucket a last-accessed value belongs to."""
    days = days_since(last_accessed, now)
    if days is None:
        return SLOWEST_BUCKET
    for name, max_days in BUCKETS:
        if max_days is not None and days <= max_days:
            return name
    return SLOWEST_BUCKET


def bucket_paths(output_file: str) -> Dict[str, Path]:
    """
    Per-bucket output paths derived from a base output path.

    ``reports/inventory.csv`` maps to ``reports/results/inventory-30d.csv``
    and so on.
    """
    base = Path(output_file)
    results_dir = base.parent / RESULTS_DIR
    return {
        name: results_dir / f"{base.stem}-{name}{base.suffix}" for name, _ in BUCKETS
    }


class Reporter:
    """
    Writes inventory batches to per-bucket destinations.

    Without an output file every bucket writes to the same stream. Bucket
    files are opened on first use and stay open until ``close``. Concurrent
    ``report_batch`` calls are serialized.
    """

    def __init__(
        self,
        output_format: OutputFormat = "table",
        output_file: Optional[str] = None,
        stream: Optional[TextIO] = None,
    ):
        """Initialize the reporter.

        Args:
            output_format (OutputFormat): table, json or csv.
            output_file (Optional[str]): Base path for bucket files.
            stream (Optional[TextIO]): Destination without an output file,
                defaults to stdout.
        """
        self.output_format = output_format
        self.output_file = output_file
        self.stream = stream or sys.stdout
        self.paths = bucket_paths(output_file) if output_file else {}
        self._files: Dict[str, TextIO] = {}
        self._headers_written: set = set()
        self._lock = asyncio.Lock()

    def __enter__(self) -> "Reporter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _writer(self, bucket: str) -> TextIO:
        if not self.output_file:
            return self.stream

        if bucket not in self._files:
            path = self.paths[bucket]
            path.parent.mkdir(parents=True, exist_ok=True)
            self._files[bucket] = open(path, "w", encoding="utf-8")
            logger.debug({"message": "Opened report file", "file_path": str(path)})
        return self._files[bucket]

    def _header_lines(self) -> List[str]:
        if self.output_format == "csv":
            return [CSV_HEADER]
        # The stdout table frame is written by the caller around the run
        if self.output_format == "table" and self.output_file:
            return table_header_lines()
        return []

    def _format_row(self, item: RepositoryData) -> str:
        if self.output_format == "csv":
            return format_csv_row(item)
        if self.output_format == "json":
            return format_json_row(item)
        return format_table_row(record_values(item), STREAM_COLUMN_WIDTHS)

    def _write_bucket(self, bucket: str, items: Sequence[RepositoryData]) -> None:
        writer = self._writer(bucket)

        # Headers are tracked per bucket, also when buckets share one stream
        lines: List[str] = []
        if bucket not in self._headers_written:
            self._headers_written.add(bucket)
            lines.extend(self._header_lines())
        lines.extend(self._format_row(item) for item in items)

        writer.write("\n".join(lines) + "\n")
        writer.flush()

    async def report_batch(
        self,
        batch: Sequence[RepositoryData],
        org_label: str,
        now: Optional[datetime] = None,
    ) -> Dict[str, int]:
        """
        Split a batch into recency buckets and write each non-empty bucket.

        Args:
            batch (Sequence[RepositoryData]): Completed records.
            org_label (str): Organization the batch came from, for logging.
            now (Optional[datetime]): Reference time for bucketing.

        Returns:
            Dict[str, int]: Number of records written per bucket.
        """
        async with self._lock:
            partitions: Dict[str, List[RepositoryData]] = {
                name: [] for name, _ in BUCKETS
            }
            for item in batch:
                partitions[bucket_for(item.last_accessed, now)].append(item)

            for name, items in partitions.items():
                if items:
                    self._write_bucket(name, items)

            counts = {name: len(items) for name, items in partitions.items()}
            logger.info(
                {
                    "message": f"Processed {len(batch)} repositories from {org_label}",
                    "organization": org_label,
                    "buckets": counts,
                }
            )
            return counts

    def write_table_header(self) -> None:
        """Write the table frame top to the output stream."""
        self.stream.write("\n".join(table_header_lines()) + "\n")
        self.stream.flush()

    def write_table_footer(self) -> None:
        """Write the closing table separator to the output stream."""
        self.stream.write(table_separator(STREAM_COLUMN_WIDTHS) + "\n")
        self.stream.flush()

    def close(self) -> None:
        """Flush and close bucket files, closing table frames first."""
        for bucket, f in self._files.items():
            if self.output_format == "table":
                f.write(table_separator(STREAM_COLUMN_WIDTHS) + "\n")
            f.flush()
            f.close()
            logger.info(
                {"message": "Report saved", "file_path": str(self.paths[bucket])}
            )
        self._files = {}
