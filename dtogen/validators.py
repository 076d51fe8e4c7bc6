# File: dtogen/validators.py
"""
dtogen - Input Validation
==========================
Checks run before anything touches the database or the output directory:

    1. Target directory exists and its name is a valid package identifier.
    2. ``db.json`` selects a supported DBMS and language.
    3. Custom queries have usable function names and SQL bodies.

Each check returns a ``ValidationResult``; errors stop the run, warnings
are logged.  Nothing here raises.
"""

from __future__ import annotations

import keyword
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Set

from dtogen.backends import BACKENDS
from dtogen.models import Cardinality, Config, CustomQuery
from dtogen.resolver import METADATA_READERS

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("dtogen.validators")


# ---------------------------------------------------------------------------
# Validation result container
# ---------------------------------------------------------------------------


class ValidationIssue:
    """One error / warning with a stable code."""

    __slots__ = ("level", "code", "message", "context")

    def __init__(
        self,
        level: str,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.level: str = level  # "error" | "warning"
        self.code: str = code
        self.message: str = message
        self.context: Dict[str, Any] = context or {}

    @property
    def is_error(self) -> bool:
        return self.level == "error"

    def __str__(self) -> str:
        return f"[{self.level.upper()}] {self.code}: {self.message}"

    __repr__ = __str__


class ValidationResult:
    """Accumulates ``ValidationIssue`` items."""

    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: List[ValidationIssue] = []

    def add_error(self, code: str, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        self._items.append(ValidationIssue("error", code, message, context))

    def add_warning(self, code: str, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        self._items.append(ValidationIssue("warning", code, message, context))

    def merge(self, other: "ValidationResult") -> None:
        self._items.extend(other._items)

    @property
    def errors(self) -> List[ValidationIssue]:
        return [i for i in self._items if i.is_error]

    @property
    def warnings(self) -> List[ValidationIssue]:
        return [i for i in self._items if not i.is_error]

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def summary(self) -> str:
        return f"Validation: {len(self.errors)} error(s), {len(self.warnings)} warning(s)."

    def __repr__(self) -> str:
        return f"<ValidationResult {self.summary()}>"

    def __bool__(self) -> bool:
        """Truthy when there are no errors."""
        return self.is_valid

    def __len__(self) -> int:
        return len(self._items)


# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

PACKAGE_NAME_RE: re.Pattern[str] = re.compile(r"^[a-z0-9]+$")
_IDENTIFIER_RE: re.Pattern[str] = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_GO_PLACEHOLDER_RE: re.Pattern[str] = re.compile(r"\$(\d+)")


# ---------------------------------------------------------------------------
# Checks
# ---------------------------------------------------------------------------


def validate_target_directory(target_dir: Path) -> ValidationResult:
    """The directory must exist and its basename must match ``^[a-z0-9]+$``."""
    result = ValidationResult()
    if not target_dir.exists():
        result.add_error("DIR_MISSING", f"directory not found: {target_dir}")
        return result
    if not target_dir.is_dir():
        result.add_error("DIR_NOT_DIRECTORY", f"not a directory: {target_dir}")
        return result
    if not PACKAGE_NAME_RE.match(target_dir.name):
        result.add_error(
            "DIR_BAD_NAME",
            f"directory name '{target_dir.name}' must match {PACKAGE_NAME_RE.pattern}",
            {"name": target_dir.name},
        )
    return result


def validate_config(config: Config) -> ValidationResult:
    """DBMS and language must be supported; schema names must be usable."""
    result = ValidationResult()

    if config.connection.dbms.lower() not in METADATA_READERS:
        result.add_error(
            "CONFIG_DBMS",
            f"unsupported DBMS: {config.connection.dbms}",
            {"supported": sorted(METADATA_READERS)},
        )
    if config.language.lower() not in BACKENDS:
        result.add_error(
            "CONFIG_LANGUAGE",
            f"unsupported language: {config.language}",
            {"supported": sorted(BACKENDS)},
        )

    seen: Set[str] = set()
    for schema in config.connection.schemas:
        if not schema.strip():
            result.add_error("CONFIG_SCHEMA_EMPTY", "schema names must not be empty")
        elif schema in seen:
            result.add_warning("CONFIG_SCHEMA_DUPLICATE", f"schema '{schema}' is listed twice")
        seen.add(schema)

    if not config.connection.password:
        result.add_warning(
            "CONFIG_NO_PASSWORD", "connection has no password; relying on server trust/peer auth"
        )
    return result


def validate_custom_queries(queries: Sequence[CustomQuery], language: str) -> ValidationResult:
    """Function names must be identifiers in the target language."""
    result = ValidationResult()
    for query in queries:
        if not _IDENTIFIER_RE.match(query.name):
            result.add_error(
                "QUERY_BAD_NAME", f"query name '{query.name}' is not a valid identifier"
            )
        elif language == "python" and keyword.iskeyword(query.name):
            result.add_error(
                "QUERY_KEYWORD_NAME", f"query name '{query.name}' is a Python keyword"
            )

        if not query.sql_text.strip():
            result.add_warning("QUERY_NO_SQL", f"query '{query.name}' has an empty sql= section")

        if query.cardinality == Cardinality.NONE and query.projection:
            result.add_warning(
                "QUERY_PROJECTION_IGNORED",
                f"query '{query.name}' has cardinality 0; its projection is never read",
            )

        if language == "go":
            indexes: List[int] = [int(n) for n in _GO_PLACEHOLDER_RE.findall(query.sql_text)]
            if indexes and max(indexes) > len(query.parameters):
                result.add_warning(
                    "QUERY_PLACEHOLDERS",
                    f"query '{query.name}' uses ${max(indexes)} but declares "
                    f"{len(query.parameters)} parameter(s)",
                )
    return result


def log_result(result: ValidationResult) -> None:
    for issue in result.warnings:
        logger.warning("%s", issue)
    for issue in result.errors:
        logger.error("%s", issue)


__all__: List[str] = [
    "ValidationIssue",
    "ValidationResult",
    "PACKAGE_NAME_RE",
    "validate_target_directory",
    "validate_config",
    "validate_custom_queries",
    "log_result",
]

logger.debug("dtogen.validators loaded.")
