"""
Tests for savescribe.export
===========================
Run with:  pytest tests/test_export.py -v
"""

from __future__ import annotations

import csv
import json

import pytest

from savescribe.export import CSV_COLUMNS, export_csv, export_json, export_txt
from savescribe.models import AnalysisResult, Candidate, Category, DataType, DetectedStructure


@pytest.fixture
def result():
    return AnalysisResult(
        structure  = DetectedStructure.key_value({"gold": "500"}),
        encoding   = "utf-8",
        candidates = [
            Candidate("gold", "500", DataType.INTEGER, Category.CURRENCY, 0.87654, "Line 1",
                      "Game currency"),
            Candidate("note", "a, b", DataType.STRING, Category.UNKNOWN, 0.25, "Line 2"),
        ],
        name       = "save.ini",
    )


class TestExportTxt:
    def test_one_line_per_candidate(self, result, tmp_path):
        path = tmp_path / "out.txt"
        export_txt(result, path)
        lines = path.read_text(encoding="utf-8").splitlines()
        assert lines == ["[0.88] gold = 500  @Line 1", "[0.25] note = a, b  @Line 2"]


class TestExportJson:
    def test_payload(self, result, tmp_path):
        path = tmp_path / "out.json"
        export_json(result, path)
        payload = json.loads(path.read_text(encoding="utf-8"))
        assert payload["source"] == "save.ini"
        assert payload["structure"] == "key_value"
        assert payload["encoding"] == "utf-8"
        assert payload["count"] == 2
        first = payload["candidates"][0]
        assert first["confidence"] == 0.8765
        assert first["type"] == "integer"
        assert first["source"] == "text"


class TestExportCsv:
    def test_rows(self, result, tmp_path):
        path = tmp_path / "out.csv"
        export_csv(result, path)
        with path.open(newline="", encoding="utf-8") as fh:
            rows = list(csv.reader(fh))
        assert rows[0] == CSV_COLUMNS
        assert rows[1][:5] == ["gold", "500", "integer", "currency", "0.88"]
        assert rows[2][1] == "a, b"
