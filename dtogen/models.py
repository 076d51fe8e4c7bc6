# File: dtogen/models.py
"""
dtogen - Core Data Models
==========================
Pydantic V2 models for everything that flows through the pipeline:

    db.json            → ``Config`` / ``ConnectionInfo``
    catalog queries    → ``Metadata`` / ``Table`` / ``Column``
    custom_queries.conf → ``CustomQuery`` / ``ProjectionColumn`` / ``QueryParameter``

Schema and query models are frozen: the resolver and the descriptor
parser build them once, and every emitter only reads them.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import List, Optional, Set, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("dtogen.models")


# ---------------------------------------------------------------------------
# Shared model configuration
# ---------------------------------------------------------------------------

_CONFIG_MODEL: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    extra="forbid",
)

_FROZEN_MODEL: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    use_enum_values=True,
    frozen=True,
    extra="forbid",
)


# ---------------------------------------------------------------------------
# Configuration (db.json)
# ---------------------------------------------------------------------------


class ConnectionInfo(BaseModel):
    """The ``connection`` object of ``db.json``."""

    model_config = _CONFIG_MODEL

    dbms: str = Field(..., min_length=1, description="Introspection backend, e.g. 'PostgreSQL'.")
    host: str = Field(..., min_length=1, description="Database host name.")
    port: int = Field(..., ge=1, le=65535, description="Database port.")
    username: str = Field(..., description="Login role.")
    password: str = Field(default="", description="Login password.")
    database: str = Field(..., min_length=1, description="Database name.")
    schemas: List[str] = Field(
        ..., min_length=1, description="Schemas whose tables are generated."
    )

    def __repr__(self) -> str:
        return (
            f"<ConnectionInfo {self.dbms} {self.username}@{self.host}:{self.port}"
            f"/{self.database} schemas={self.schemas}>"
        )


class Config(BaseModel):
    """Root of ``db.json``."""

    model_config = _CONFIG_MODEL

    language: str = Field(..., min_length=1, description="Target language, e.g. 'go'.")
    connection: ConnectionInfo = Field(..., description="Database connection settings.")


# ---------------------------------------------------------------------------
# Schema metadata
# ---------------------------------------------------------------------------


class ForeignKeyTarget(BaseModel):
    """The (schema, table, column) a foreign-key column refers to."""

    model_config = _FROZEN_MODEL

    schema_name: str
    table: str
    column: str

    def __str__(self) -> str:
        return f"{self.schema_name}.{self.table}->{self.column}"


class Column(BaseModel):
    """One table attribute, as resolved from the catalog."""

    model_config = _FROZEN_MODEL

    ordinal: int = Field(..., ge=1, description="1-based declaration position.")
    name: str = Field(..., min_length=1)
    data_type: str = Field(..., min_length=1, description="Catalog type name.")
    nullable: bool = False
    default_value: Optional[str] = None
    is_primary_key: bool = False
    is_auto_increment: bool = False
    fk_target: Optional[ForeignKeyTarget] = None

    def describe(self) -> str:
        parts: List[str] = [f"[{self.ordinal}] {self.name} {self.data_type}"]
        parts.append("NULL" if self.nullable else "NOT NULL")
        if self.is_primary_key:
            parts.append("PRIMARY KEY")
        if self.is_auto_increment:
            parts.append("AUTOINCREMENT")
        if self.fk_target is not None:
            parts.append(f"FOREIGN KEY ({self.fk_target})")
        if self.default_value is not None:
            parts.append(f"DEFAULT {self.default_value}")
        return " ".join(parts)

    def __repr__(self) -> str:
        return f"<Column {self.describe()}>"


class Table(BaseModel):
    """A base table or view with its columns in ordinal order."""

    model_config = _FROZEN_MODEL

    schema_name: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    columns: Tuple[Column, ...] = ()

    @model_validator(mode="after")
    def _validate_ordinals(self) -> "Table":
        ordinals: List[int] = [c.ordinal for c in self.columns]
        expected: List[int] = list(range(1, len(self.columns) + 1))
        if ordinals != expected:
            raise ValueError(
                f"Columns of '{self.qualified_name}' must be numbered 1..n in order, "
                f"got {ordinals}."
            )
        return self

    @property
    def qualified_name(self) -> str:
        return f"{self.schema_name}.{self.name}"

    @property
    def primary_key_columns(self) -> Tuple[Column, ...]:
        return tuple(c for c in self.columns if c.is_primary_key)

    @property
    def non_primary_key_columns(self) -> Tuple[Column, ...]:
        return tuple(c for c in self.columns if not c.is_primary_key)

    @property
    def auto_increment_columns(self) -> Tuple[Column, ...]:
        return tuple(c for c in self.columns if c.is_auto_increment)

    @property
    def insertable_columns(self) -> Tuple[Column, ...]:
        """Columns listed in INSERT statements (everything but auto-increment)."""
        return tuple(c for c in self.columns if not c.is_auto_increment)

    @property
    def has_auto_increment(self) -> bool:
        return any(c.is_auto_increment for c in self.columns)

    def get_column(self, name: str) -> Optional[Column]:
        """Linear lookup of a column by name."""
        for column in self.columns:
            if column.name == name:
                return column
        return None

    def describe(self) -> str:
        lines: List[str] = [f"  {self.qualified_name}"]
        lines.extend(f"    {c.describe()}" for c in self.columns)
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"<Table {self.qualified_name} ({len(self.columns)} cols)>"


class Metadata(BaseModel):
    """
    The resolved schema graph for one run.

    Tables keep the order in which the catalog returned them; that order
    is carried into generation unchanged.
    """

    model_config = _FROZEN_MODEL

    database: str = Field(..., min_length=1)
    tables: Tuple[Table, ...] = ()

    @model_validator(mode="after")
    def _validate_unique_tables(self) -> "Metadata":
        seen: Set[Tuple[str, str]] = set()
        for table in self.tables:
            key: Tuple[str, str] = (table.schema_name, table.name)
            if key in seen:
                raise ValueError(f"Duplicate table '{table.qualified_name}'.")
            seen.add(key)
        return self

    def get_table(self, name: str) -> Optional[Table]:
        """Linear lookup of a table by (unqualified) name."""
        for table in self.tables:
            if table.name == name:
                return table
        return None

    def describe(self) -> str:
        lines: List[str] = [self.database]
        lines.extend(t.describe() for t in self.tables)
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"<Metadata {self.database} ({len(self.tables)} tables)>"


# ---------------------------------------------------------------------------
# Custom queries
# ---------------------------------------------------------------------------


class Cardinality(str, Enum):
    """Declared result shape of a custom query."""

    NONE = "0"
    ONE = "1"
    MANY = "N"


class ProjectionColumn(BaseModel):
    """
    One projected result column of a custom query.

    Either a reference into the metadata (``table`` + ``column``, where
    ``column`` may be ``*``) or a locally declared computed column
    (``column`` + ``sql_type``).
    """

    model_config = _FROZEN_MODEL

    table: Optional[str] = None
    column: str = Field(..., min_length=1)
    sql_type: Optional[str] = None
    nullable: bool = False

    @model_validator(mode="after")
    def _validate_kind(self) -> "ProjectionColumn":
        if (self.table is None) == (self.sql_type is None):
            raise ValueError(
                "A projection column is either 'table.column' or 'name type'."
            )
        return self

    @property
    def is_reference(self) -> bool:
        return self.table is not None

    @property
    def is_wildcard(self) -> bool:
        return self.is_reference and self.column == "*"

    def __str__(self) -> str:
        text: str = (
            f"{self.table}.{self.column}" if self.is_reference
            else f"{self.column} {self.sql_type}"
        )
        return f"{text} NULL" if self.nullable else text


class QueryParameter(BaseModel):
    """A typed input of a custom query, in target-language terms."""

    model_config = _FROZEN_MODEL

    name: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1)


class CustomQuery(BaseModel):
    """A hand-authored query parsed from ``custom_queries.conf``."""

    model_config = _FROZEN_MODEL

    name: str = Field(..., min_length=1)
    cardinality: Cardinality
    projection: Tuple[ProjectionColumn, ...] = ()
    parameters: Tuple[QueryParameter, ...] = ()
    sql: Tuple[str, ...] = ()

    @property
    def sql_text(self) -> str:
        return "\n".join(self.sql)

    def __repr__(self) -> str:
        return (
            f"<CustomQuery {self.name} cardinality={self.cardinality} "
            f"{len(self.projection)} cols, {len(self.parameters)} params>"
        )


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "ConnectionInfo",
    "Config",
    "ForeignKeyTarget",
    "Column",
    "Table",
    "Metadata",
    "Cardinality",
    "ProjectionColumn",
    "QueryParameter",
    "CustomQuery",
]

logger.debug("dtogen.models loaded, %d public symbols.", len(__all__))
