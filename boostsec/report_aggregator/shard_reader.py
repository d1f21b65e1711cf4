"""Load and parse test report shards from JSON files."""

import asyncio
import hashlib
import json
import logging
from collections.abc import Sequence
from pathlib import Path

from pydantic import BaseModel, Field

from boostsec.report_aggregator.models.test_report import TestReport

logger = logging.getLogger(__name__)


class Shard(BaseModel):
    """A parsed shard together with where it came from."""

    path: Path = Field(..., description="Shard file path")
    digest: str = Field(..., description="SHA-256 of the file content")
    report: TestReport = Field(..., description="Partial report parsed from file")


def _default_run_id(path: Path, results_path: Path | None) -> str:
    relative = path.relative_to(results_path) if results_path else Path(path.name)
    return relative.with_suffix("").as_posix()


def find_shard_files(results_path: Path, recursive: bool = True) -> list[Path]:
    """Find JSON shard files under a results directory.

    Args:
        results_path: Directory containing JSON test reports
        recursive: Also search subdirectories

    Returns:
        JSON file paths sorted by path

    Raises:
        FileNotFoundError: If results_path doesn't exist
        NotADirectoryError: If results_path is not a directory

    """
    if not results_path.exists():
        raise FileNotFoundError(f"Results path not found: {results_path}")
    if not results_path.is_dir():
        raise NotADirectoryError(f"Results path is not a directory: {results_path}")

    pattern = "**/*.json" if recursive else "*.json"
    return sorted(p for p in results_path.glob(pattern) if p.is_file())


async def load_shard(path: Path, results_path: Path | None = None) -> Shard:
    """Load a single shard report.

    Plain output lists are keyed by the shard's own id, or else by the shard
    path relative to results_path without its suffix.

    Args:
        path: Path to a JSON test report
        results_path: Directory the shard was found in

    Returns:
        Parsed shard

    Raises:
        ValueError: If the file is unreadable, not JSON, or not a test report

    """
    try:
        content = await asyncio.to_thread(path.read_bytes)
    except OSError as e:
        raise ValueError(f"Unable to read test report {path}: {e}") from e

    try:
        data = json.loads(content)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ValueError(f"Invalid JSON in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(
            f"Invalid test report in {path}: expected a JSON object, "
            f"got {type(data).__name__}"
        )

    run_id = data.get("id") or _default_run_id(path, results_path)
    try:
        report = TestReport.model_validate(data, context={"run_id": str(run_id)})
    except Exception as e:
        raise ValueError(f"Invalid test report schema in {path}: {e}") from e

    return Shard(
        path=path,
        digest=hashlib.sha256(content).hexdigest(),
        report=report,
    )


async def load_shards(
    paths: Sequence[Path], results_path: Path | None = None
) -> tuple[list[Shard], dict[Path, BaseException]]:
    """Load many shards concurrently.

    Args:
        paths: Shard file paths
        results_path: Directory the shards were found in

    Returns:
        Tuple of (loaded shards in path order, failures by path)

    """
    loaded = await asyncio.gather(
        *(load_shard(path, results_path) for path in paths), return_exceptions=True
    )

    shards: list[Shard] = []
    failures: dict[Path, BaseException] = {}
    for path, result in zip(paths, loaded):
        if isinstance(result, Shard):
            shards.append(result)
        else:
            failures[path] = result

    logger.info(f"Loaded {len(shards)} of {len(paths)} test reports")
    return shards, failures
