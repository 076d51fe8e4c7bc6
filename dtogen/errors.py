# File: dtogen/errors.py
"""
dtogen - Error Types
=====================

Every failure in the pipeline is a hard stop.  Each phase raises its own
subclass so the orchestrator and the CLI can report the failing phase and
pick the matching exit code::

    DtoGenError
    ├── ConfigurationError    - bad directory name, db.json, dbms, language
    ├── IntrospectionError    - a catalog query failed (carries the stage)
    ├── DescriptorParseError  - malformed custom_queries.conf
    ├── GenerationError       - unresolvable custom-query reference
    └── ExportError           - output directory cleanup / write failure
"""

from __future__ import annotations

import logging
from typing import List, Optional

logger: logging.Logger = logging.getLogger("dtogen.errors")


class DtoGenError(Exception):
    """Base class for all dtogen failures."""


class ConfigurationError(DtoGenError):
    """Invalid target directory, configuration file or selection."""


class IntrospectionError(DtoGenError):
    """A schema introspection query failed."""

    def __init__(self, stage: str, cause: BaseException) -> None:
        self.stage: str = stage
        self.cause: BaseException = cause
        super().__init__(f"failed to read {stage}: {cause}")


class DescriptorParseError(DtoGenError):
    """The custom query descriptor file is malformed."""

    def __init__(
        self,
        message: str,
        *,
        chunk: Optional[int] = None,
        line: Optional[str] = None,
    ) -> None:
        self.chunk: Optional[int] = chunk
        self.line: Optional[str] = line
        location: str = f"query #{chunk}: " if chunk is not None else ""
        super().__init__(f"{location}{message}")


class GenerationError(DtoGenError):
    """Source generation could not complete."""


class ExportError(DtoGenError):
    """Generated files could not be written."""


__all__: List[str] = [
    "DtoGenError",
    "ConfigurationError",
    "IntrospectionError",
    "DescriptorParseError",
    "GenerationError",
    "ExportError",
]
