# File: dtogen/exporters.py
"""
dtogen - Source Exporter (File-System Writer)
==============================================

Responsible for:
    1. Removing every previously generated file of the target extension
       directly inside the output directory.
    2. Writing each rendered file atomically (temp file + ``os.replace``).
    3. Recording a manifest entry (size, lines, checksum) per file.

Regeneration is a full replace.  A failure stops the export at once and
raises ``ExportError``; files already written stay on disk and are not
rolled back.  No individual file is ever left half-written.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping

from dtogen.errors import ExportError
from dtogen.utils import Timer, atomic_write, count_lines, remove_files_with_extension, sha256_hex

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("dtogen.exporters")


# ---------------------------------------------------------------------------
# Data classes for export results
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FileRecord:
    """Immutable record of a single exported file."""

    file_name: str
    absolute_path: str
    size_bytes: int
    line_count: int
    sha256: str


@dataclass(frozen=False, slots=True)
class ExportManifest:
    """Every file removed and written by one export."""

    output_directory: str = ""
    extension: str = ""
    removed_files: List[str] = field(default_factory=list)
    files: List[FileRecord] = field(default_factory=list)
    elapsed_seconds: float = 0.0

    @property
    def total_files(self) -> int:
        return len(self.files)

    @property
    def total_bytes(self) -> int:
        return sum(f.size_bytes for f in self.files)

    @property
    def total_lines(self) -> int:
        return sum(f.line_count for f in self.files)

    def to_dict(self) -> Dict[str, Any]:
        """Convert manifest to a JSON-serialisable dictionary."""
        return {
            "output_directory": self.output_directory,
            "extension": self.extension,
            "removed_files": list(self.removed_files),
            "total_files": self.total_files,
            "total_bytes": self.total_bytes,
            "total_lines": self.total_lines,
            "files": [
                {
                    "file_name": f.file_name,
                    "size_bytes": f.size_bytes,
                    "line_count": f.line_count,
                    "sha256": f.sha256,
                }
                for f in self.files
            ],
        }


# ---------------------------------------------------------------------------
# SourceExporter
# ---------------------------------------------------------------------------


class SourceExporter:
    """
    Writes rendered sources into one output directory.

    Usage::

        exporter = SourceExporter(Path("./shop"), ".go")
        manifest = exporter.export({"users.go": "...", "db_connector.go": "..."})

    Not thread-safe.  Use one exporter per output directory.
    """

    def __init__(self, output_dir: Path, extension: str) -> None:
        if not extension.startswith("."):
            raise ValueError(f"extension must start with '.', got {extension!r}")
        self._output_dir: Path = Path(output_dir).resolve()
        self._extension: str = extension

    @property
    def output_dir(self) -> Path:
        return self._output_dir

    def export(self, rendered: Mapping[str, str]) -> ExportManifest:
        """
        Replace every ``*<extension>`` file in the output directory with
        *rendered* (file name → content), in mapping order.
        """
        for name in rendered:
            if Path(name).name != name or not name.endswith(self._extension):
                raise ExportError(f"refusing to write '{name}' into {self._output_dir}")

        manifest = ExportManifest(
            output_directory=str(self._output_dir), extension=self._extension
        )

        with Timer("export") as timer:
            try:
                removed: List[Path] = remove_files_with_extension(self._output_dir, self._extension)
            except OSError as exc:
                raise ExportError(f"cannot clean {self._output_dir}: {exc}") from exc
            manifest.removed_files = [p.name for p in removed]
            logger.info("Removed %d old %s file(s).", len(removed), self._extension)

            for name, content in rendered.items():
                manifest.files.append(self._write_single_file(name, content))

        manifest.elapsed_seconds = timer.elapsed
        logger.info(
            "Export completed: %d files, %d bytes, %.3fs.",
            manifest.total_files,
            manifest.total_bytes,
            timer.elapsed,
        )
        return manifest

    def _write_single_file(self, name: str, content: str) -> FileRecord:
        target: Path = self._output_dir / name
        try:
            size_bytes: int = atomic_write(target, content)
        except OSError as exc:
            logger.error("Failed to write %s: %s", target, exc)
            raise ExportError(f"failed to write {target}: {exc}") from exc

        record = FileRecord(
            file_name=name,
            absolute_path=str(target),
            size_bytes=size_bytes,
            line_count=count_lines(content),
            sha256=sha256_hex(content),
        )
        logger.debug("Wrote file: %s (%d bytes, %d lines).", name, size_bytes, record.line_count)
        return record


__all__: List[str] = [
    "FileRecord",
    "ExportManifest",
    "SourceExporter",
]

logger.debug("dtogen.exporters loaded.")
