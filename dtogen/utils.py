# File: dtogen/utils.py
"""
dtogen - Utility Functions & Helpers
=====================================
Identifier re-casing, timing and file I/O helpers used throughout the
generation pipeline.

Naming rules are part of the output contract: identifiers are split on
``_`` and each segment is re-cased.  Segments keep their inner casing
(``user_ID`` → ``UserID``), and empty segments produced by consecutive
underscores are skipped.
"""

from __future__ import annotations

import functools
import hashlib
import keyword
import logging
import os
import tempfile
import time
from pathlib import Path
from typing import List, Optional

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("dtogen.utils")


# ---------------------------------------------------------------------------
# Cached string transformation functions
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=None)
def to_pascal_case(name: str) -> str:
    """
    Convert a snake_case identifier to PascalCase.

    Examples:
        >>> to_pascal_case("created_at")
        'CreatedAt'
        >>> to_pascal_case("user__id")
        'UserId'
        >>> to_pascal_case("userID")
        'UserID'
    """
    parts: List[str] = [part for part in name.split("_") if part]
    return "".join(part[0].upper() + part[1:] for part in parts)


@functools.lru_cache(maxsize=None)
def to_camel_case(name: str) -> str:
    """
    Convert a snake_case identifier to camelCase.

    The first segment is kept verbatim, every later segment is capitalised.

    Examples:
        >>> to_camel_case("created_at")
        'createdAt'
        >>> to_camel_case("id")
        'id'
    """
    parts: List[str] = name.split("_")
    result: List[str] = []
    for index, part in enumerate(parts):
        if not part:
            continue
        if index > 0:
            result.append(part[0].upper() + part[1:])
        else:
            result.append(part)
    return "".join(result)


@functools.lru_cache(maxsize=None)
def parameter_name(name: str) -> str:
    """
    Local/parameter name for a column or declared query parameter.

    A parameter literally named ``type`` becomes ``type1``; generated code
    relies on this exact spelling.
    """
    local: str = to_camel_case(name)
    if local == "type":
        return "type1"
    return local


@functools.lru_cache(maxsize=None)
def safe_python_identifier(name: str) -> str:
    """Append ``_`` to names that are Python keywords (``class`` → ``class_``)."""
    if keyword.iskeyword(name):
        return f"{name}_"
    return name


# ---------------------------------------------------------------------------
# Checksum & metrics
# ---------------------------------------------------------------------------


def sha256_hex(content: str) -> str:
    """Return SHA-256 hex digest of a string."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def count_lines(content: str) -> int:
    """Count the number of lines in a string."""
    if not content:
        return 0
    return content.count("\n") + (1 if not content.endswith("\n") else 0)


# ---------------------------------------------------------------------------
# File I/O helpers
# ---------------------------------------------------------------------------


def atomic_write(target_path: Path, content: str) -> int:
    """
    Write *content* to *target_path* through a temporary file and
    ``os.replace``.

    The target is either the previous file or the complete new one, never
    a truncated mix.  Errors propagate to the caller after the temporary
    file is removed.

    Returns the number of bytes written.
    """
    data: bytes = content.encode("utf-8")
    fd, tmp_path = tempfile.mkstemp(
        dir=str(target_path.parent),
        prefix=f".{target_path.name}.",
        suffix=".tmp",
    )
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, str(target_path))
    except BaseException:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise

    logger.debug("Wrote %d bytes to %s", len(data), target_path)
    return len(data)


def remove_files_with_extension(directory: Path, extension: str) -> List[Path]:
    """
    Delete every regular file ending in *extension* directly inside
    *directory* (sub-directories are left alone).

    Returns the removed paths in sorted order.
    """
    removed: List[Path] = []
    for path in sorted(directory.iterdir()):
        if path.is_file() and path.suffix == extension:
            logger.debug("Removing %s", path)
            path.unlink()
            removed.append(path)
    return removed


# ---------------------------------------------------------------------------
# Timer context manager
# ---------------------------------------------------------------------------


class Timer:
    """
    Simple context-manager timer for profiling generation steps.

    Usage:
        with Timer("resolve metadata") as t:
            ...
        print(t.elapsed)
    """

    __slots__ = ("label", "start_time", "end_time", "elapsed")

    def __init__(self, label: str = "operation") -> None:
        self.label: str = label
        self.start_time: float = 0.0
        self.end_time: float = 0.0
        self.elapsed: float = 0.0

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[object],
    ) -> None:
        self.end_time = time.perf_counter()
        self.elapsed = self.end_time - self.start_time
        logger.debug("Timer [%s]: %.4f seconds", self.label, self.elapsed)

    def __repr__(self) -> str:
        return f"<Timer {self.label}: {self.elapsed:.4f}s>"


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "to_pascal_case",
    "to_camel_case",
    "parameter_name",
    "safe_python_identifier",
    "sha256_hex",
    "count_lines",
    "atomic_write",
    "remove_files_with_extension",
    "Timer",
]

logger.debug("dtogen.utils loaded, %d public symbols.", len(__all__))
