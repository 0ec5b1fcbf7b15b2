"""
savescribe.export
=================
Export helpers for saving analysis results in multiple formats.
"""

from __future__ import annotations

import csv
import io
import json
import logging
from pathlib import Path

from savescribe.models import AnalysisResult

logger = logging.getLogger(__name__)

CSV_COLUMNS = ["key", "value", "type", "category", "confidence", "location", "description"]


def export_txt(result: AnalysisResult, path: Path) -> None:
    """Write candidates as plain text, one per line."""
    path.write_text("\n".join(str(c) for c in result.candidates), encoding="utf-8")
    logger.info("Exported %d candidates → %s (txt)", len(result.candidates), path)


def export_json(result: AnalysisResult, path: Path) -> None:
    """Write the full result as structured JSON."""
    payload = {
        "source": result.name,
        "structure": result.structure_kind.value,
        "encoding": result.encoding,
        "count": len(result.candidates),
        "candidates": [
            {
                "key": c.key,
                "value": c.raw_value,
                "type": c.data_type.value,
                "category": c.category.value,
                "confidence": round(c.confidence, 4),
                "location": c.location,
                "source": c.source.value,
                "description": c.description,
            }
            for c in result.candidates
        ],
    }
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info("Exported %d candidates → %s (json)", len(result.candidates), path)


def export_csv(result: AnalysisResult, path: Path) -> None:
    """Write candidates as CSV, one row per candidate."""
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(CSV_COLUMNS)
    for c in result.candidates:
        writer.writerow([
            c.key, c.raw_value, c.data_type.value, c.category.value,
            f"{c.confidence:.2f}", c.location, c.description,
        ])
    path.write_text(buf.getvalue(), encoding="utf-8")
    logger.info("Exported %d candidates → %s (csv)", len(result.candidates), path)
