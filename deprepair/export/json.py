"""JSON export for repair reports."""

import json
import logging
from pathlib import Path

from deprepair.runtime.report import RepairReport

logger = logging.getLogger("deprepair.export.json")


def export_json(report: RepairReport, output_path: Path) -> None:
    """Export a repair report to JSON format.

    Args:
        report: Report to export.
        output_path: Output file path.
    """
    logger.info("Exporting report to JSON: %s", output_path)

    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(report.to_dict(), f, indent=2, ensure_ascii=False)

    logger.info(
        "JSON export completed: %d added, %d removed, %d failed",
        len(report.added),
        len(report.removed),
        len(report.failed_removals),
    )
