"""Locate the source files that define tests in a repository."""

import logging
import os
import re
from collections import defaultdict
from pathlib import Path, PurePosixPath

logger = logging.getLogger(__name__)

IGNORED_DIRS = {".git", ".venv", "node_modules", "vendor", "__pycache__"}

# File name predicate and the regex matching test definitions inside it
TEST_FILE_PATTERNS: list[tuple[re.Pattern[str], re.Pattern[str]]] = [
    (
        re.compile(r".*_test\.go$"),
        re.compile(r"^func\s+(Test\w+|Fuzz\w+)\s*\(", re.MULTILINE),
    ),
    (
        re.compile(r"^(test_.*|.*_test)\.py$"),
        re.compile(r"^\s*(?:async\s+)?def\s+(test\w*)\s*\(", re.MULTILINE),
    ),
]


def base_test_name(test_name: str) -> str:
    """Strip subtest, class and parametrization parts from a test name.

    Examples:
        "TestFoo/case_1" -> "TestFoo"
        "TestSuite::test_bar[param]" -> "test_bar"

    """
    name = test_name.split("/", 1)[0]
    name = name.rsplit("::", 1)[-1]
    return name.split("[", 1)[0]


def _package_parts(test_package: str) -> list[str]:
    return [part for part in re.split(r"[/.]", test_package) if part]


def _suffix_score(directory: PurePosixPath, package_parts: list[str]) -> int:
    """Count trailing path components shared by a directory and a package."""
    score = 0
    for dir_part, pkg_part in zip(reversed(directory.parts), reversed(package_parts)):
        if dir_part != pkg_part:
            break
        score += 1
    return score


class TestSourceIndex:
    """Index of test function names to the files defining them."""

    __test__ = False

    def __init__(self, definitions: dict[str, list[str]]) -> None:
        """Initialize index from test name to relative file paths."""
        self.definitions = definitions

    @classmethod
    def build(cls, repo_path: Path) -> "TestSourceIndex":
        """Scan a repository for test definitions.

        Args:
            repo_path: Path to the repository root

        Returns:
            Index of every test definition found

        """
        definitions: dict[str, list[str]] = defaultdict(list)
        scanned = 0

        for root, dirs, files in os.walk(repo_path):
            dirs[:] = sorted(d for d in dirs if d not in IGNORED_DIRS)
            for file_name in sorted(files):
                for name_pattern, def_pattern in TEST_FILE_PATTERNS:
                    if not name_pattern.match(file_name):
                        continue

                    file_path = Path(root) / file_name
                    try:
                        content = file_path.read_text(errors="replace")
                    except OSError as e:
                        logger.warning(f"Unable to read test file {file_path}: {e}")
                        break

                    relative = file_path.relative_to(repo_path).as_posix()
                    for match in def_pattern.finditer(content):
                        definitions[match.group(1)].append(relative)
                    scanned += 1
                    break

        logger.info(f"Indexed {len(definitions)} test definitions in {scanned} files")
        return cls(dict(definitions))

    def locate(self, test_package: str, test_name: str) -> str | None:
        """Find the file defining a test.

        When several files define the same test name, prefer the one whose
        directory shares the longest suffix with the package path, then the
        smallest path.

        Args:
            test_package: Package or module of the test
            test_name: Test name, possibly including subtest parts

        Returns:
            File path relative to the repository root, or None if not found

        """
        candidates = self.definitions.get(base_test_name(test_name))
        if not candidates:
            return None

        package_parts = _package_parts(test_package)
        module_stem = package_parts[-1] if package_parts else ""

        def rank(candidate: str) -> tuple[int, str]:
            path = PurePosixPath(candidate)
            # Python packages name the module itself, Go packages the directory
            if path.stem == module_stem:
                score = _suffix_score(path.with_suffix(""), package_parts)
            else:
                score = _suffix_score(path.parent, package_parts)
            return (-score, candidate)

        return min(candidates, key=rank)
