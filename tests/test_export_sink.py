"""
Tests for per-job export files.
"""

import csv
import json
from decimal import Decimal

from seacewatch.core.export import CSV_COLUMNS, ExportSink
from seacewatch.core.normalize.record import ProcessRecord


def _records(n: int) -> list[ProcessRecord]:
    return [
        ProcessRecord(
            process_id=f"AS-SM-{i}-2025",
            entity_name="GOBIERNO REGIONAL DE CUSCO",
            published_text="2025-10-09 14:30",
            description="Adquisición de licencias de software",
            reference_amount=Decimal("1500.50") if i % 2 else None,
        )
        for i in range(1, n + 1)
    ]


class TestExportSink:
    def test_writes_three_files(self, tmp_path):
        sink = ExportSink(tmp_path / "exports")

        paths = sink.write("job-1", _records(3))

        assert [p.suffix for p in paths] == [".txt", ".json", ".csv"]
        assert all(p.exists() for p in paths)
        assert paths == sink.paths_for("job-1")

    def test_json_content(self, tmp_path):
        sink = ExportSink(tmp_path)

        _, json_path, _ = sink.write("job-1", _records(2))
        data = json.loads(json_path.read_text(encoding="utf-8"))

        assert [d["process_id"] for d in data] == ["AS-SM-1-2025", "AS-SM-2-2025"]
        assert data[0]["reference_amount"] == "1500.50"
        assert data[1]["reference_amount"] is None
        assert "Adquisición" in json_path.read_text(encoding="utf-8")

    def test_csv_content(self, tmp_path):
        sink = ExportSink(tmp_path)

        _, _, csv_path = sink.write("job-1", _records(2))
        with csv_path.open(encoding="utf-8", newline="") as f:
            rows = list(csv.DictReader(f))

        assert list(rows[0]) == CSV_COLUMNS
        assert rows[1]["reference_amount"] == ""
        assert rows[0]["currency"] == "Soles"

    def test_rewrite_replaces_content(self, tmp_path):
        sink = ExportSink(tmp_path)
        sink.write("job-1", _records(1))

        txt_path, json_path, _ = sink.write("job-1", _records(4))

        assert len(json.loads(json_path.read_text(encoding="utf-8"))) == 4
        assert txt_path.read_text(encoding="utf-8").count("SEACE processes - job job-1") == 1
        assert "4. AS-SM-4-2025" in txt_path.read_text(encoding="utf-8")

    def test_append_extends_each_file(self, tmp_path):
        sink = ExportSink(tmp_path)
        batches = [_records(3), _records(2), [], _records(1)]

        for batch in batches:
            txt_path, json_path, csv_path = sink.append("job-1", batch)

        data = json.loads(json_path.read_text(encoding="utf-8"))
        assert len(data) == 6
        assert data[3]["process_id"] == "AS-SM-1-2025"

        with csv_path.open(encoding="utf-8", newline="") as f:
            rows = list(csv.reader(f))
        assert len(rows) == 7
        assert rows.count(CSV_COLUMNS) == 1

        text = txt_path.read_text(encoding="utf-8")
        assert text.count("SEACE processes") == 1
        assert "6. AS-SM-1-2025" in text

    def test_new_sink_starts_job_files_over(self, tmp_path):
        ExportSink(tmp_path).append("job-1", _records(3))

        _, json_path, _ = ExportSink(tmp_path).append("job-1", _records(1))

        assert len(json.loads(json_path.read_text(encoding="utf-8"))) == 1

    def test_jobs_are_tracked_separately(self, tmp_path):
        sink = ExportSink(tmp_path)
        sink.append("job-a", _records(2))

        _, json_path, _ = sink.append("job-b", _records(1))
        sink.append("job-a", _records(2))

        assert len(json.loads(json_path.read_text(encoding="utf-8"))) == 1
        a_json = sink.paths_for("job-a")[1]
        assert len(json.loads(a_json.read_text(encoding="utf-8"))) == 4

    def test_empty_batch(self, tmp_path):
        _, json_path, _ = ExportSink(tmp_path).write("job-1", [])

        assert json.loads(json_path.read_text(encoding="utf-8")) == []

    def test_list_exports(self, tmp_path):
        sink = ExportSink(tmp_path)
        sink.write("job-a", _records(1))
        sink.write("job-b", _records(1))
        (tmp_path / "notes.txt").write_text("x", encoding="utf-8")

        assert len(sink.list_exports()) == 6
        assert {p.name for p in sink.list_exports("job-b")} == {
            "processes_job-b.txt",
            "processes_job-b.json",
            "processes_job-b.csv",
        }
        assert len(sink.list_exports(".csv")) == 2

    def test_missing_directory_lists_nothing(self, tmp_path):
        assert ExportSink(tmp_path / "absent").list_exports() == []
