# File: dtogen/__init__.py
"""
dtogen - Schema-Driven Data-Access Code Generator
==================================================

Reads a live PostgreSQL schema and a small custom-query descriptor, then
generates a data-access package (entities, CRUD functions, connector,
custom queries) in Go or Python.

Architecture overview::

    ┌──────────────┐     ┌───────────────┐     ┌───────────────────┐
    │  CLI / Entry │────▶│  DtoGenerator │────▶│ backends / emit_* │
    │   (cli.py)   │     │ (generator.py)│     │  → ir → renderers │
    └──────────────┘     └───────┬───────┘     └───────────────────┘
                                 │
                ┌────────────────┼────────────────┐
                ▼                ▼                ▼
         ┌────────────┐  ┌───────────────┐  ┌───────────┐
         │  resolver  │  │custom_queries │  │ exporters │
         └────────────┘  └───────────────┘  └───────────┘

Usage::

    # As a library
    from dtogen import DtoGenerator
    report = DtoGenerator().run(Path("./shop"))
    print(report.summary())

    # From the command line
    python -m dtogen ./shop -v
"""

from __future__ import annotations

from typing import List

__version__: str = "1.0.0"

from dtogen.errors import (
    ConfigurationError,
    DescriptorParseError,
    DtoGenError,
    ExportError,
    GenerationError,
    IntrospectionError,
)
from dtogen.models import (
    Cardinality,
    Column,
    Config,
    ConnectionInfo,
    CustomQuery,
    ForeignKeyTarget,
    Metadata,
    ProjectionColumn,
    QueryParameter,
    Table,
)
from dtogen.custom_queries import parse_custom_queries, read_custom_queries
from dtogen.resolver import join_metadata, read_metadata, resolve_metadata
from dtogen.generator import DtoGenerator, GenerationReport, generate_sources, load_config

__all__: List[str] = [
    "__version__",
    # Orchestrator
    "DtoGenerator",
    "GenerationReport",
    "generate_sources",
    "load_config",
    # Models
    "Cardinality",
    "Column",
    "Config",
    "ConnectionInfo",
    "CustomQuery",
    "ForeignKeyTarget",
    "Metadata",
    "ProjectionColumn",
    "QueryParameter",
    "Table",
    # Resolver / parser
    "join_metadata",
    "read_metadata",
    "resolve_metadata",
    "parse_custom_queries",
    "read_custom_queries",
    # Errors
    "DtoGenError",
    "ConfigurationError",
    "IntrospectionError",
    "DescriptorParseError",
    "GenerationError",
    "ExportError",
]
