# File: dtogen/generator.py
"""
dtogen - Generation Pipeline (Orchestrator)
============================================

Connects every phase together::

    db.json → Metadata → custom queries → IR → text → files

Workflow::

    1. Validate the target directory and load ``db.json`` (models.py).
    2. Resolve schema metadata through the configured reader (resolver.py).
    3. Parse ``custom_queries.conf`` when present (custom_queries.py).
    4. Build the IR of every output file in memory (backends.py).
    5. Render each IR file to text (renderers.py).
    6. Replace the generated files in the target directory (exporters.py).
    7. Return a ``GenerationReport`` with timings and counts.

Error handling strategy:
    - Every phase raises its own ``DtoGenError`` subclass.
    - The first failure stops the run; nothing is retried.
    - Steps 1-5 touch no files, so a bad descriptor or an unknown
      custom-query reference leaves the previous output untouched.
    - A write failure in step 6 leaves the files written so far in place.
"""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence

from pydantic import ValidationError

from dtogen.backends import Backend, get_backend
from dtogen.custom_queries import DESCRIPTOR_FILENAME, read_custom_queries
from dtogen.errors import ConfigurationError, DescriptorParseError, DtoGenError, GenerationError
from dtogen.exporters import ExportManifest, SourceExporter
from dtogen.ir import SourceFile
from dtogen.models import Config, CustomQuery, Metadata
from dtogen.resolver import MetadataReader, read_metadata
from dtogen.utils import Timer
from dtogen.validators import (
    ValidationResult,
    log_result,
    validate_config,
    validate_custom_queries,
    validate_target_directory,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("dtogen.generator")

CONFIG_FILENAME: str = "db.json"


# ---------------------------------------------------------------------------
# Generation report
# ---------------------------------------------------------------------------


@dataclass(frozen=False, slots=True)
class GenerationStepMetric:
    """Timing and outcome for a single pipeline step."""

    step_name: str = ""
    success: bool = True
    elapsed_seconds: float = 0.0
    detail: str = ""


@dataclass(frozen=False, slots=True)
class GenerationReport:
    """
    Report produced by ``DtoGenerator.run()``.

    ``error`` holds the exception that stopped the run, if any.
    """

    success: bool = False
    package_name: str = ""
    language: str = ""
    output_directory: str = ""

    total_tables: int = 0
    total_custom_queries: int = 0
    total_files: int = 0
    total_bytes: int = 0
    total_lines: int = 0
    total_elapsed_seconds: float = 0.0

    step_metrics: List[GenerationStepMetric] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    error: Optional[DtoGenError] = None

    manifest: Optional[ExportManifest] = None

    def summary(self) -> str:
        """Return a human-readable summary string."""
        lines: List[str] = []
        status: str = "SUCCESS" if self.success else "FAILED"
        lines.append("=" * 60)
        lines.append("  dtogen - Generation Report")
        lines.append("=" * 60)
        lines.append(f"  Status:           {status}")
        lines.append(f"  Package:          {self.package_name}")
        lines.append(f"  Language:         {self.language}")
        lines.append(f"  Output:           {self.output_directory}")
        lines.append(f"  Tables:           {self.total_tables}")
        lines.append(f"  Custom queries:   {self.total_custom_queries}")
        lines.append(f"  Files generated:  {self.total_files}")
        lines.append(f"  Total lines:      {self.total_lines:,}")
        lines.append(f"  Total bytes:      {self.total_bytes:,}")
        lines.append(f"  Total time:       {self.total_elapsed_seconds:.3f}s")
        lines.append("-" * 60)

        if self.step_metrics:
            lines.append("  Pipeline Steps:")
            for step in self.step_metrics:
                icon: str = "✓" if step.success else "✗"
                lines.append(
                    f"    {icon} {step.step_name:<16s} "
                    f"{step.elapsed_seconds:>7.3f}s  "
                    f"{step.detail}"
                )

        if self.warnings:
            lines.append("-" * 60)
            lines.append(f"  Warnings ({len(self.warnings)}):")
            for warn in self.warnings:
                lines.append(f"    ⚠ {warn}")

        if self.errors:
            lines.append("-" * 60)
            lines.append(f"  Errors ({len(self.errors)}):")
            for err in self.errors:
                lines.append(f"    ✗ {err}")

        lines.append("=" * 60)
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Configuration loading
# ---------------------------------------------------------------------------


def _load_json_file(path: Path) -> Dict[str, Any]:
    """Load and parse a JSON object. Raises ConfigurationError."""
    try:
        text: str = path.read_text(encoding="utf-8")
        data: Any = json.loads(text)
    except OSError as exc:
        raise ConfigurationError(f"cannot read {path}: {exc}") from exc
    except UnicodeDecodeError as exc:
        raise ConfigurationError(f"{path} is not valid UTF-8: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"invalid JSON in {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigurationError(
            f"expected a JSON object at top level of {path}, got {type(data).__name__}"
        )
    return data


def load_config(path: Path) -> Config:
    """Load ``db.json`` and validate it through the ``Config`` model."""
    if not path.is_file():
        raise ConfigurationError(f"configuration file not found: {path}")

    raw: Dict[str, Any] = _load_json_file(path)
    try:
        config: Config = Config.model_validate(raw)
    except ValidationError as exc:
        raise ConfigurationError(f"invalid configuration in {path}: {exc}") from exc

    logger.info("Loaded %s: language=%s %r", path.name, config.language, config.connection)
    return config


def _raise_on_errors(result: ValidationResult, error_type: type) -> None:
    log_result(result)
    if not result.is_valid:
        raise error_type("; ".join(issue.message for issue in result.errors))


# ---------------------------------------------------------------------------
# In-memory generation
# ---------------------------------------------------------------------------


def build_sources(
    backend: Backend,
    config: Config,
    metadata: Metadata,
    queries: Sequence[CustomQuery],
) -> List[SourceFile]:
    """IR for every output file; file names must be unique."""
    sources: List[SourceFile] = backend.build_sources(config.connection, metadata, queries)

    seen: Dict[str, SourceFile] = {}
    for source in sources:
        if source.name in seen:
            raise GenerationError(
                f"two generated files are named '{source.name}{backend.extension}'"
            )
        seen[source.name] = source
    return sources


def render_sources(backend: Backend, package: str, sources: Sequence[SourceFile]) -> Dict[str, str]:
    """Render IR files to ``{file name: text}`` in generation order."""
    renderer = backend.make_renderer(package)
    return {f"{source.name}{backend.extension}": renderer.render(source) for source in sources}


def generate_sources(
    config: Config,
    metadata: Metadata,
    queries: Sequence[CustomQuery],
    package: str,
) -> Dict[str, str]:
    """Build and render every output file without touching the file system."""
    backend: Backend = get_backend(config.language)
    return render_sources(backend, package, build_sources(backend, config, metadata, queries))


# ---------------------------------------------------------------------------
# DtoGenerator - pipeline orchestrator
# ---------------------------------------------------------------------------


class DtoGenerator:
    """
    Runs the whole pipeline against one target directory.

    Usage::

        report = DtoGenerator().run(Path("./shop"))
        print(report.summary())

    ``metadata_reader`` turns a ``ConnectionInfo`` into ``Metadata``; the
    default connects to the live database.
    """

    def __init__(self, *, metadata_reader: MetadataReader = read_metadata) -> None:
        self._metadata_reader: MetadataReader = metadata_reader

    @contextmanager
    def _step(self, report: GenerationReport, name: str) -> Iterator[GenerationStepMetric]:
        metric = GenerationStepMetric(step_name=name)
        report.step_metrics.append(metric)
        logger.info("Step '%s' started.", name)
        try:
            with Timer(name) as timer:
                yield metric
        except DtoGenError:
            metric.success = False
            raise
        finally:
            metric.elapsed_seconds = timer.elapsed
        logger.info("Step '%s' finished in %.3fs.", name, metric.elapsed_seconds)

    def run(self, target_dir: Path) -> GenerationReport:
        """Generate into *target_dir*; failures are recorded, not raised."""
        target: Path = Path(target_dir).resolve()
        report = GenerationReport(package_name=target.name, output_directory=str(target))

        with Timer("generation") as total:
            try:
                self._run_steps(target, report)
                report.success = True
            except DtoGenError as exc:
                report.error = exc
                report.errors.append(str(exc))
                logger.error("Generation failed: %s", exc)

        report.total_elapsed_seconds = total.elapsed
        return report

    def _run_steps(self, target: Path, report: GenerationReport) -> None:
        with self._step(report, "configuration") as step:
            _raise_on_errors(validate_target_directory(target), ConfigurationError)
            config: Config = load_config(target / CONFIG_FILENAME)
            config_result: ValidationResult = validate_config(config)
            report.warnings.extend(issue.message for issue in config_result.warnings)
            _raise_on_errors(config_result, ConfigurationError)
            backend: Backend = get_backend(config.language)
            report.language = backend.language
            step.detail = f"{backend.language}, {config.connection.dbms}"

        with self._step(report, "introspection") as step:
            metadata: Metadata = self._metadata_reader(config.connection)
            report.total_tables = len(metadata.tables)
            step.detail = f"{len(metadata.tables)} table(s)"

        with self._step(report, "descriptor") as step:
            queries: List[CustomQuery] = read_custom_queries(target / DESCRIPTOR_FILENAME)
            query_result: ValidationResult = validate_custom_queries(queries, backend.language)
            report.warnings.extend(issue.message for issue in query_result.warnings)
            _raise_on_errors(query_result, DescriptorParseError)
            report.total_custom_queries = len(queries)
            step.detail = f"{len(queries)} quer{'y' if len(queries) == 1 else 'ies'}"

        with self._step(report, "generation") as step:
            sources: List[SourceFile] = build_sources(backend, config, metadata, queries)
            step.detail = f"{len(sources)} file(s)"

        with self._step(report, "rendering") as step:
            rendered: Dict[str, str] = render_sources(backend, target.name, sources)
            step.detail = f"{sum(len(text) for text in rendered.values()):,} chars"

        with self._step(report, "export") as step:
            manifest: ExportManifest = SourceExporter(target, backend.extension).export(rendered)
            report.manifest = manifest
            report.total_files = manifest.total_files
            report.total_bytes = manifest.total_bytes
            report.total_lines = manifest.total_lines
            step.detail = (
                f"{len(manifest.removed_files)} removed, {manifest.total_files} written"
            )


__all__: List[str] = [
    "CONFIG_FILENAME",
    "GenerationStepMetric",
    "GenerationReport",
    "load_config",
    "build_sources",
    "render_sources",
    "generate_sources",
    "DtoGenerator",
]

logger.debug("dtogen.generator loaded.")
