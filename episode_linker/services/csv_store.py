# episode_linker/services/csv_store.py

from __future__ import annotations

import asyncio
import csv
import os
from dataclasses import dataclass, field
from typing import Any, Iterable

from ..config import logger
from ..models import OUTPUT_COLUMNS, OutputRecord, SearchRecord


def read_rows(file_path: str) -> list[dict[str, Any]]:
    """Reads every row of a CSV into dictionaries. Errors propagate to the caller."""
    with open(file_path, newline="", encoding="utf-8-sig") as f:
        return [dict(row) for row in csv.DictReader(f)]


def read_records(file_path: str) -> list[SearchRecord]:
    rows = read_rows(file_path)
    records = [SearchRecord.from_row(row) for row in rows]
    logger.info(f"[PIPELINE] Read {len(records)} records from '{file_path}'.")
    return records


def error_log_path(output_file: str) -> str:
    root, ext = os.path.splitext(output_file)
    return f"{root}-error-log{ext or '.csv'}"


class OutputWriter:
    """
    Appends output rows one at a time.

    Writes are serialised with an ``asyncio.Lock`` so concurrent workers never
    interleave partial lines. The header is written once when the file is new
    or empty.
    """

    def __init__(self, file_path: str) -> None:
        self.file_path = file_path
        self.rows_written = 0
        self._lock = asyncio.Lock()
        self._header_checked = False

    def _ensure_header(self) -> None:
        if self._header_checked:
            return
        self._header_checked = True
        if os.path.exists(self.file_path) and os.path.getsize(self.file_path) > 0:
            return
        with open(self.file_path, "a", encoding="utf-8") as f:
            f.write(",".join(OUTPUT_COLUMNS) + "\n")

    async def write(self, output: OutputRecord) -> None:
        async with self._lock:
            self._ensure_header()
            with open(self.file_path, "a", encoding="utf-8") as f:
                f.write(output.to_csv_line() + "\n")
            self.rows_written += 1


@dataclass
class ErrorLog:
    """Per-record failures, written as ``URL,error`` at the end of a run."""

    entries: list[tuple[str, str]] = field(default_factory=list)

    def add(self, url: str, error: str) -> None:
        self.entries.append((url, error))

    def __len__(self) -> int:
        return len(self.entries)

    def write(self, file_path: str) -> None:
        if not self.entries:
            return
        write_rows(file_path, ["URL", "error"], self.entries)
        count = len(self.entries)
        logger.error(
            f"[PIPELINE] {count} error{'s' if count > 1 else ''} found. "
            f"Error log saved to '{file_path}'"
        )


def write_rows(
    file_path: str, header: list[str], rows: Iterable[Iterable[Any]]
) -> None:
    with open(file_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for row in rows:
            writer.writerow(["" if value is None else value for value in row])
