"""
Record Exporter - TSV and JSON Output Files

Writes flattened records to `<stem>.tsv` and `<stem>.json`.

Both formats are written independently: each goes to a temporary file in the
target directory and is renamed into place, so a failed write never leaves a
partial file behind and never prevents the other format from being written.

Usage:
    from apps.saver.exporter import RecordExporter

    result = RecordExporter().export(records, "exports/output")
    print(result.tsv_path, result.json_path)
"""

import csv
import logging
import os
import tempfile
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional

import orjson

from utils.errors import ExportError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExportResult:
    """Paths of the files written by one export."""

    tsv_path: str
    json_path: str
    record_count: int


def _header(records: Sequence[dict[str, Any]]) -> list[str]:
    """Union of all record keys, in first-seen order."""
    seen: dict[str, None] = {}
    for record in records:
        for key in record:
            seen.setdefault(key, None)
    return list(seen)


def _cell(value: Any) -> Any:
    if isinstance(value, (dict, list)):
        return orjson.dumps(value).decode("utf-8")
    if isinstance(value, bool):
        return "true" if value else "false"
    return value


class RecordExporter:
    """Writes record sets to TSV and JSON files."""

    def __init__(self, delimiter: str = "\t") -> None:
        self.delimiter = delimiter

    def write_tsv(
        self, records: Sequence[dict[str, Any]], path: str, columns: Optional[Sequence[str]] = None
    ) -> None:
        """Write records as delimited text with a header row.

        With `columns`, the header is exactly those columns in that order and
        other keys are left out; otherwise it is the union of record keys.
        """
        fieldnames = list(columns) if columns is not None else _header(records)

        def write(f) -> None:
            writer = csv.DictWriter(
                f,
                fieldnames=fieldnames,
                delimiter=self.delimiter,
                restval="",
                extrasaction="ignore",
                lineterminator="\n",
            )
            writer.writeheader()
            for record in records:
                writer.writerow({key: _cell(value) for key, value in record.items()})

        _atomic_write(path, write, mode="w")

    def write_json(self, records: Sequence[dict[str, Any]], path: str) -> None:
        """Write records as a JSON array indented by two spaces."""
        data = orjson.dumps(list(records), option=orjson.OPT_INDENT_2)
        _atomic_write(path, lambda f: f.write(data), mode="wb")

    def export(
        self, records: Sequence[dict[str, Any]], stem: str, columns: Optional[Sequence[str]] = None
    ) -> ExportResult:
        """
        Write records to `<stem>.tsv` and `<stem>.json`.

        Both files are always attempted.

        Args:
            records: Flat records to export
            stem: Output path without extension
            columns: Fixed TSV column order, e.g. the declared warehouse fields

        Returns:
            ExportResult with both paths

        Raises:
            ExportError: If either write failed (raised after both were attempted)
        """
        tsv_path = f"{stem}.tsv"
        json_path = f"{stem}.json"
        Path(tsv_path).parent.mkdir(parents=True, exist_ok=True)

        failures: dict[str, Exception] = {}

        for fmt, path, write in (
            ("tsv", tsv_path, lambda: self.write_tsv(records, tsv_path, columns)),
            ("json", json_path, lambda: self.write_json(records, json_path)),
        ):
            try:
                write()
                logger.info("Export written: format=%s, path=%s, records=%d", fmt, path, len(records))
            except (OSError, TypeError, ValueError, csv.Error) as e:
                logger.error(
                    "Failed to write export",
                    extra={"format": fmt, "file_path": path, "error": str(e)},
                )
                failures[fmt] = e

        if failures:
            raise ExportError(failures)

        return ExportResult(tsv_path=tsv_path, json_path=json_path, record_count=len(records))


def _atomic_write(path: str, write: Callable[[Any], Any], mode: str) -> None:
    """Write through a temporary sibling file, then rename it over `path`."""
    target = Path(path)
    encoding = None if "b" in mode else "utf-8"
    newline = None if "b" in mode else ""

    fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, mode, encoding=encoding, newline=newline) as f:
            write(f)
        os.replace(tmp_name, target)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
