# File: dtogen/type_mapping.py
"""
dtogen - Type Mapping Table
============================
Static mapping from PostgreSQL catalog type names (``information_schema``
``data_type`` values) to target-language type names, plus the imports a
mapped type drags into a generated file.

Unknown catalog types pass through unchanged.  That is a best-effort
fallback: the generated file may not compile, but generation does not
fail.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Tuple

from dtogen.ir import Import

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("dtogen.type_mapping")


# ---------------------------------------------------------------------------
# PostgreSQL → Go (pgx v5 scan targets)
# ---------------------------------------------------------------------------

POSTGRES_TO_GO: Dict[str, str] = {
    "smallint": "int16",
    "integer": "int32",
    "bigint": "int64",
    "smallserial": "int16",
    "serial": "int32",
    "bigserial": "int64",
    "real": "float32",
    "double precision": "float64",
    "numeric": "float64",
    "decimal": "float64",
    "money": "string",
    "boolean": "bool",
    "text": "string",
    "character varying": "string",
    "varchar": "string",
    "character": "string",
    "char": "string",
    "name": "string",
    "citext": "string",
    "uuid": "string",
    "bytea": "[]byte",
    "json": "[]byte",
    "jsonb": "[]byte",
    "xml": "string",
    "inet": "string",
    "cidr": "string",
    "macaddr": "string",
    "date": "time.Time",
    "timestamp without time zone": "time.Time",
    "timestamp with time zone": "time.Time",
    "time without time zone": "pgtype.Time",
    "time with time zone": "pgtype.Time",
    "interval": "pgtype.Interval",
    "USER-DEFINED": "string",
    "ARRAY": "[]string",
}

# Go type prefix → import path
_GO_TYPE_IMPORTS: Tuple[Tuple[str, str], ...] = (
    ("time.", "time"),
    ("pgtype.", "github.com/jackc/pgx/v5/pgtype"),
)


# ---------------------------------------------------------------------------
# PostgreSQL → Python (psycopg2 adaptation)
# ---------------------------------------------------------------------------

POSTGRES_TO_PYTHON: Dict[str, str] = {
    "smallint": "int",
    "integer": "int",
    "bigint": "int",
    "smallserial": "int",
    "serial": "int",
    "bigserial": "int",
    "real": "float",
    "double precision": "float",
    "numeric": "Decimal",
    "decimal": "Decimal",
    "money": "str",
    "boolean": "bool",
    "text": "str",
    "character varying": "str",
    "varchar": "str",
    "character": "str",
    "char": "str",
    "name": "str",
    "citext": "str",
    "uuid": "str",
    "bytea": "bytes",
    "json": "Any",
    "jsonb": "Any",
    "xml": "str",
    "inet": "str",
    "cidr": "str",
    "macaddr": "str",
    "date": "datetime.date",
    "timestamp without time zone": "datetime.datetime",
    "timestamp with time zone": "datetime.datetime",
    "time without time zone": "datetime.time",
    "time with time zone": "datetime.time",
    "interval": "datetime.timedelta",
    "USER-DEFINED": "str",
    "ARRAY": "List[Any]",
}

# Python type fragment → import
_PYTHON_TYPE_IMPORTS: Tuple[Tuple[str, Import], ...] = (
    ("datetime.", Import("datetime")),
    ("Decimal", Import("decimal", "Decimal")),
    ("Any", Import("typing", "Any")),
    ("List[", Import("typing", "List")),
    ("Dict[", Import("typing", "Dict")),
    ("Optional[", Import("typing", "Optional")),
    ("Sequence[", Import("typing", "Sequence")),
    ("Iterable[", Import("typing", "Iterable")),
    ("Tuple[", Import("typing", "Tuple")),
    ("Union[", Import("typing", "Union")),
)

_TABLES: Dict[str, Dict[str, str]] = {
    "go": POSTGRES_TO_GO,
    "python": POSTGRES_TO_PYTHON,
}


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


def map_type(language: str, db_type: str) -> str:
    """
    Map a catalog type name to the *language* type name.

    Unknown catalog types are returned unchanged.
    """
    table: Dict[str, str] = _TABLES[language]
    mapped: str = table.get(db_type, db_type)
    if db_type not in table:
        logger.debug("No %s mapping for type '%s'; passing it through.", language, db_type)
    return mapped


def go_type(db_type: str) -> str:
    return map_type("go", db_type)


def python_type(db_type: str) -> str:
    return map_type("python", db_type)


def go_imports_for(type_name: str) -> List[Import]:
    """Imports needed by a Go type name (``*time.Time`` → ``time``)."""
    bare: str = type_name.lstrip("*[]")
    return [Import(path) for prefix, path in _GO_TYPE_IMPORTS if bare.startswith(prefix)]


def python_imports_for(type_name: str) -> List[Import]:
    """Imports needed by a Python annotation (``Optional[Decimal]`` → typing, decimal)."""
    return [imp for fragment, imp in _PYTHON_TYPE_IMPORTS if fragment in type_name]


__all__: List[str] = [
    "POSTGRES_TO_GO",
    "POSTGRES_TO_PYTHON",
    "map_type",
    "go_type",
    "python_type",
    "go_imports_for",
    "python_imports_for",
]
