"""
Module for persisting the summary of an upload run.
"""
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict

from .errors import classify
from .models import RunReport

logger = logging.getLogger(__name__)


def report_to_dict(report: RunReport) -> Dict[str, Any]:
    """Convert a run report to a JSON-serializable dictionary."""
    return {
        "timestamp": datetime.now().isoformat(),
        "bucket": report.bucket,
        "signal": report.signal.value,
        "total_files": report.total_files,
        "successful_uploads": report.successful_uploads,
        "failed_uploads": report.failed_uploads,
        "error": _error_to_dict(report.error),
        "results": [
            {
                "file_path": o.file_path,
                "object_key": o.object_key,
                "success": o.success,
                "size_bytes": o.size_bytes,
                "error": _error_to_dict(o.error),
            }
            for o in report.outcomes
        ],
    }


def _error_to_dict(error) -> Any:
    if error is None:
        return None
    return {"kind": classify(error).value, "message": str(error)}


def write_report(report: RunReport, path: Path) -> None:
    """Write a run report as JSON.

    Args:
        report: Report of the finished run
        path: Destination file, parent directories are created
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(report_to_dict(report), f, indent=2)

    logger.debug(f"Wrote upload report to {path}")
