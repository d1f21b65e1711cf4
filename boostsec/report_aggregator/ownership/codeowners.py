"""CODEOWNERS-based ownership resolver."""

import logging
import re
from collections.abc import Sequence
from pathlib import Path

from boostsec.report_aggregator.ownership.base import OwnershipResolver

logger = logging.getLogger(__name__)


def _translate_pattern(pattern: str) -> re.Pattern[str]:
    """Translate a CODEOWNERS pattern into a regular expression.

    Follows gitignore-style rules:
    1. A leading "/" or a slash inside the pattern anchors it to the root
    2. A pattern without a slash matches at any depth
    3. A trailing "/" only matches directory contents
    4. "*" stays within a path segment, "**" crosses segments
    5. A trailing "/*" only matches direct children
    """
    if pattern.startswith("!"):
        raise ValueError(f"Negated patterns are not supported: {pattern}")
    if "[" in pattern or "]" in pattern:
        raise ValueError(f"Character ranges are not supported: {pattern}")

    body = pattern.strip("/")
    if not body:
        return re.compile(".*")

    directory_only = pattern.endswith("/")
    anchored = pattern.startswith("/") or "/" in body

    translated = []
    i = 0
    while i < len(body):
        if body.startswith("**/", i):
            translated.append("(?:.*/)?")
            i += 3
        elif body.startswith("**", i):
            translated.append(".*")
            i += 2
        elif body[i] == "*":
            translated.append("[^/]*")
            i += 1
        elif body[i] == "?":
            translated.append("[^/]")
            i += 1
        else:
            translated.append(re.escape(body[i]))
            i += 1

    prefix = "" if anchored else "(?:.*/)?"
    if directory_only:
        suffix = "/.*"
    elif body.endswith("/*"):
        suffix = ""
    else:
        suffix = "(?:/.*)?"

    return re.compile(f"^{prefix}{''.join(translated)}{suffix}$")


class CodeOwnerRule:
    """Single CODEOWNERS line."""

    def __init__(self, pattern: str, owners: Sequence[str]) -> None:
        """Initialize rule from a pattern and its owners."""
        self.pattern = pattern
        self.owners = list(owners)
        self._regex = _translate_pattern(pattern)

    def matches(self, file_path: str) -> bool:
        return self._regex.match(file_path) is not None


class CodeOwnersResolver(OwnershipResolver):
    """Resolve owners from CODEOWNERS rules, where the last match wins."""

    def __init__(self, rules: Sequence[CodeOwnerRule]) -> None:
        """Initialize resolver with parsed rules."""
        self.rules = list(rules)

    @classmethod
    def parse(cls, content: str) -> "CodeOwnersResolver":
        """Parse CODEOWNERS file content.

        Args:
            content: Text of a CODEOWNERS file

        Returns:
            Resolver for the parsed rules

        Raises:
            ValueError: If a line contains an unsupported pattern

        """
        rules = []
        for line_number, raw_line in enumerate(content.splitlines(), start=1):
            line = raw_line.strip()
            if not line or line.startswith("#"):
                continue

            # Inline comments start at an unescaped "#"
            line = re.split(r"(?<!\\)#", line, maxsplit=1)[0].strip()
            pattern, *owners = line.split()
            pattern = pattern.replace("\\#", "#")

            try:
                rules.append(CodeOwnerRule(pattern, owners))
            except ValueError as e:
                raise ValueError(f"Line {line_number}: {e}") from e

        return cls(rules)

    def resolve_owners(self, file_path: str) -> list[str]:
        """Return the owners of the last rule matching file_path."""
        normalized = file_path.replace("\\", "/").removeprefix("./").lstrip("/")
        for rule in reversed(self.rules):
            if rule.matches(normalized):
                return list(rule.owners)
        return []


def load_codeowners(codeowners_path: Path) -> CodeOwnersResolver | None:
    """Load a CODEOWNERS file.

    Args:
        codeowners_path: Path to the CODEOWNERS file

    Returns:
        Resolver, or None if the file is missing or malformed

    """
    try:
        content = codeowners_path.read_text()
    except OSError as e:
        logger.warning(f"Unable to read CODEOWNERS file {codeowners_path}: {e}")
        return None

    try:
        resolver = CodeOwnersResolver.parse(content)
    except ValueError as e:
        logger.warning(f"Ignoring malformed CODEOWNERS file {codeowners_path}: {e}")
        return None

    logger.info(f"Loaded {len(resolver.rules)} CODEOWNERS rules")
    return resolver
