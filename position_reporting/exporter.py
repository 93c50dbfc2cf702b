"""
Position Reporting - CSV Exporter.

Writes one report per file:

    <output_directory>/PowerPosition_report.YYYYMMDD_HHMM.csv

    Local Time,Volume
    23:00,150
    00:00,80
    ...

Volumes are rounded half to even.
"""

import asyncio
import csv
import logging
from pathlib import Path

from core.constants import CSV_HEADER, REPORT_FILENAME_TEMPLATE
from core.exceptions import ExportError, require

from .config import ExporterConfig
from .models import PositionReport


logger = logging.getLogger(__name__)


class CsvReportExporter:
    """Persists position reports as CSV files."""

    def __init__(self, config: ExporterConfig):
        self._config = require(config, "config")
        self._output_directory = Path(self._config.output_directory)

    @property
    def output_directory(self) -> Path:
        return self._output_directory

    def file_path_for(self, report: PositionReport) -> Path:
        """Destination file of a report."""
        return self._output_directory / REPORT_FILENAME_TEMPLATE.format(
            timestamp=report.timestamp
        )

    async def export(self, report: PositionReport) -> Path:
        """
        Write the report and return the path of the file.

        Raises:
            ExportError: If the directory or file cannot be written
        """
        path = self.file_path_for(report)

        try:
            await asyncio.to_thread(self._write, report, path)
        except OSError as e:
            raise ExportError(
                f"Failed to write report to {path}: {e}",
                path=str(path),
                cause=e,
            ) from e

        logger.info(f"Report exported to {path}")
        return path

    def _write(self, report: PositionReport, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f, lineterminator="\n")
            writer.writerow(CSV_HEADER)
            for period in report.periods:
                writer.writerow([period.label, round(period.volume)])


__all__ = ["CsvReportExporter"]
