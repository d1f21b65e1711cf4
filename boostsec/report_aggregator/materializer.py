"""Write test reports to disk."""

import json
import logging
import os
import tempfile
from collections.abc import Mapping
from pathlib import Path

from boostsec.report_aggregator.models.test_report import TestReport

logger = logging.getLogger(__name__)

DIRECTORY_MODE = 0o755


def strip_logs(report: TestReport) -> TestReport:
    """Return a copy of report with every test output removed."""
    stripped = report.model_copy(deep=True)
    for result in stripped.results:
        result.passed_outputs = {}
        result.failed_outputs = {}
        result.package_outputs = {}
    return stripped


def serialize_report(report: TestReport) -> str:
    """Serialize a report to JSON with a stable key order."""
    return json.dumps(report.model_dump(mode="json"), indent=2, sort_keys=True) + "\n"


def load_report(path: Path) -> TestReport:
    """Load a report previously written by save_report.

    Raises:
        ValueError: If the file isn't a valid report

    """
    try:
        return TestReport.model_validate_json(path.read_bytes())
    except ValueError as e:
        raise ValueError(f"Invalid test report in {path}: {e}") from e


def _ensure_directory(directory: Path) -> None:
    try:
        directory.mkdir(mode=DIRECTORY_MODE, parents=True, exist_ok=True)
    except OSError as e:
        raise OSError(f"Failed to create output directory {directory}: {e}") from e


def _stage(path: Path, report: TestReport) -> Path:
    """Write report to a temporary file next to path and return its path."""
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
    )
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(serialize_report(report))
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_path, 0o644)
    except OSError:
        tmp_path.unlink(missing_ok=True)
        raise
    return tmp_path


def save_report(path: Path, report: TestReport) -> None:
    """Atomically write a single report.

    Args:
        path: Destination file
        report: Report to write

    Raises:
        OSError: If the directory can't be created or the write fails

    """
    save_reports({path: report})


def save_reports(artifacts: Mapping[Path, TestReport]) -> None:
    """Atomically write a set of reports, all of them or none.

    Every report is first staged to a temporary file. Only when all of them
    are staged are they renamed into place. On failure staged files and
    reports already renamed by this call are removed.

    Args:
        artifacts: Reports by destination path

    Raises:
        OSError: If a directory can't be created or a write fails

    """
    staged: dict[Path, Path] = {}
    committed: list[Path] = []
    current: Path | None = None

    try:
        for path, report in artifacts.items():
            current = path
            _ensure_directory(path.parent)
            staged[path] = _stage(path, report)

        for path, tmp_path in staged.items():
            current = path
            os.replace(tmp_path, path)
            committed.append(path)
    except OSError as e:
        for tmp_path in staged.values():
            tmp_path.unlink(missing_ok=True)
        for path in committed:
            path.unlink(missing_ok=True)
        raise OSError(f"Failed to write test report {current}: {e}") from e

    for path in committed:
        logger.debug(f"Report saved: {path}")
