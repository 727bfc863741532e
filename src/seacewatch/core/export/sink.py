"""
Side-file export of extracted processes.

Every job gets three files in the export directory, extended as each batch
arrives: a readable text listing, a JSON array and a CSV table. Appending a
batch only writes that batch; earlier content is left in place.
"""

from __future__ import annotations

import csv
import json
import os
import textwrap
from dataclasses import fields
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Sequence

from seacewatch.core.logging import LoggerLike, get_logger
from seacewatch.core.normalize.record import ProcessRecord

if TYPE_CHECKING:
    from seacewatch.core.config.models import ExportConfig

EXPORT_PREFIX = "processes_"
EXPORT_SUFFIXES = (".txt", ".json", ".csv")

CSV_COLUMNS = [f.name for f in fields(ProcessRecord)]

# closing "\n]\n" of a non-empty JSON export
_JSON_TAIL = 3


class ExportSink:
    """Write batches of `ProcessRecord` to per-job side files."""

    def __init__(self, directory: Path | str, log: LoggerLike | None = None):
        self.directory = Path(directory)
        self.log = log or get_logger("export")
        self._written: dict[str, int] = {}

    @classmethod
    def from_config(cls, config: ExportConfig, log: LoggerLike | None = None) -> ExportSink:
        return cls(config.directory, log=log)

    def paths_for(self, job_id: str) -> list[Path]:
        return [self.directory / f"{EXPORT_PREFIX}{job_id}{suffix}" for suffix in EXPORT_SUFFIXES]

    def write(self, job_id: str, records: Sequence[ProcessRecord]) -> list[Path]:
        """Write `records` to the job's three files, replacing earlier content.

        Raises:
            OSError: A file could not be written
        """
        self._written.pop(job_id, None)
        return self.append(job_id, records)

    def append(self, job_id: str, records: Sequence[ProcessRecord]) -> list[Path]:
        """Add a batch to the job's files.

        The first batch this sink sees for `job_id` starts the files over.

        Raises:
            OSError: A file could not be written
        """
        self.directory.mkdir(parents=True, exist_ok=True)
        txt_path, json_path, csv_path = self.paths_for(job_id)
        start = self._written.get(job_id, 0)

        self._append_text(txt_path, job_id, records, start)
        self._append_json(json_path, records, start)
        self._append_csv(csv_path, records, start)

        self._written[job_id] = start + len(records)
        self.log.debug(f"Exported {len(records)} processes ({self._written[job_id]} total) to {self.directory}")
        return [txt_path, json_path, csv_path]

    def _append_text(self, path: Path, job_id: str, records: Sequence[ProcessRecord], start: int) -> None:
        lines = []
        if start == 0:
            lines += [
                f"SEACE processes - job {job_id}",
                f"Generated: {datetime.now().isoformat(timespec='seconds')}",
                "",
            ]
        for i, record in enumerate(records, start + 1):
            lines.append(f"{i}. {record.process_id}")
            lines.append(f"   Entity: {record.entity_name}")
            if record.published_text:
                lines.append(f"   Published: {record.published_text}")
            if record.contract_object:
                lines.append(f"   Object: {record.contract_object}")
            if record.description:
                lines.append(f"   Description: {record.description}")
            if record.reference_amount is not None:
                lines.append(f"   Amount: {record.reference_amount} {record.currency}")
            lines.append("")
        with path.open("w" if start == 0 else "a", encoding="utf-8") as f:
            f.write("".join(line + "\n" for line in lines))

    def _append_json(self, path: Path, records: Sequence[ProcessRecord], start: int) -> None:
        items = ",\n".join(
            textwrap.indent(json.dumps(record.to_dict(), indent=2, ensure_ascii=False, default=str), "  ")
            for record in records
        )
        if start == 0:
            with path.open("w", encoding="utf-8", newline="\n") as f:
                f.write(f"[\n{items}\n]\n" if records else "[]\n")
            return
        if not records:
            return
        with path.open("r+b") as f:
            f.seek(-_JSON_TAIL, os.SEEK_END)
            f.write(f",\n{items}\n]\n".encode("utf-8"))
            f.truncate()

    def _append_csv(self, path: Path, records: Sequence[ProcessRecord], start: int) -> None:
        with path.open("w" if start == 0 else "a", encoding="utf-8", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=CSV_COLUMNS)
            if start == 0:
                writer.writeheader()
            for record in records:
                row = record.to_dict()
                writer.writerow({k: "" if v is None else v for k, v in row.items()})

    def list_exports(self, pattern: str | None = None) -> list[Path]:
        """Existing export files, newest first.

        Args:
            pattern: Substring the file name must contain (e.g. a job id or ".csv")
        """
        if not self.directory.is_dir():
            return []
        files = [
            p
            for p in self.directory.iterdir()
            if p.is_file() and p.name.startswith(EXPORT_PREFIX) and p.suffix in EXPORT_SUFFIXES
        ]
        if pattern:
            files = [p for p in files if pattern in p.name]
        return sorted(files, key=lambda p: (p.stat().st_mtime, p.name), reverse=True)
