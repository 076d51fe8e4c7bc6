# File: dtogen/resolver.py
"""
dtogen - Schema Metadata Resolver
==================================
Reads the live catalog through SQLAlchemy and reconciles five independent
result sets into one ``Metadata`` graph.

Stages (each one a single catalog query, restricted to the configured
schemas through an expanding bind parameter)::

    tables          base tables and views
    columns         ordered by ordinal position
    constraints     column → constraint name / type
    foreign keys    constraint → referenced schema / table / column, composite
                    keys paired column by column from ``pg_constraint``
    auto increment  identity column, serial sequence, or neither

The join (``join_metadata``) is a pure function of those five lists, so
it is tested without a database.  Keyed lookups are built once inside
the join and discarded with it; nothing downstream sees the composite
keys.

Any failing query aborts the whole resolution with an
``IntrospectionError`` naming the stage.  A table with no matching
columns is kept with an empty column list.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable, Dict, List, NamedTuple, Sequence, Set, Type, TypeVar

from pydantic import ValidationError
from sqlalchemy import bindparam, create_engine, text
from sqlalchemy.engine import URL, Connection, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql.elements import TextClause

from dtogen.errors import ConfigurationError, IntrospectionError
from dtogen.models import Column, ConnectionInfo, ForeignKeyTarget, Metadata, Table
from dtogen.utils import Timer

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("dtogen.resolver")

NOT_AUTO_INCREMENT: str = "not auto increment"

# ---------------------------------------------------------------------------
# Fetched row shapes
# ---------------------------------------------------------------------------


class TableRow(NamedTuple):
    schema: str
    table: str


class ColumnRow(NamedTuple):
    schema: str
    table: str
    column: str
    data_type: str
    is_nullable: str
    default_value: Any
    ordinal_position: int


class ConstraintRow(NamedTuple):
    schema: str
    table: str
    column: str
    constraint_name: str
    constraint_type: str


class ForeignKeyRow(NamedTuple):
    constraint_name: str
    schema: str
    table: str
    column: str
    referenced_schema: str
    referenced_table: str
    referenced_column: str


class AutoIncrementRow(NamedTuple):
    schema: str
    table: str
    column: str
    classification: str


class _TableKey(NamedTuple):
    schema: str
    table: str


class _ColumnKey(NamedTuple):
    schema: str
    table: str
    column: str


# ---------------------------------------------------------------------------
# Catalog queries
# ---------------------------------------------------------------------------

_SCHEMAS = bindparam("schemas", expanding=True)

TABLES_QUERY: TextClause = text(
    """
    SELECT table_schema, table_name
    FROM information_schema.tables
    WHERE table_schema IN :schemas
      AND table_type IN ('BASE TABLE', 'VIEW')
    ORDER BY table_schema, table_name
    """
).bindparams(_SCHEMAS)

COLUMNS_QUERY: TextClause = text(
    """
    SELECT table_schema, table_name, column_name, data_type,
           is_nullable, column_default, ordinal_position
    FROM information_schema.columns
    WHERE table_schema IN :schemas
    ORDER BY table_schema, table_name, ordinal_position
    """
).bindparams(_SCHEMAS)

CONSTRAINTS_QUERY: TextClause = text(
    """
    SELECT kcu.table_schema, kcu.table_name, kcu.column_name,
           kcu.constraint_name, tc.constraint_type
    FROM information_schema.key_column_usage kcu
    JOIN information_schema.table_constraints tc
      ON kcu.constraint_name = tc.constraint_name
     AND kcu.constraint_schema = tc.constraint_schema
     AND kcu.table_schema = tc.table_schema
     AND kcu.table_name = tc.table_name
    WHERE kcu.table_schema IN :schemas
    ORDER BY kcu.table_schema, kcu.table_name, kcu.ordinal_position
    """
).bindparams(_SCHEMAS)

FOREIGN_KEYS_QUERY: TextClause = text(
    """
    SELECT con.conname,
           src_ns.nspname, src.relname, src_att.attname,
           ref_ns.nspname, ref.relname, ref_att.attname
    FROM pg_catalog.pg_constraint con
    CROSS JOIN LATERAL unnest(con.conkey, con.confkey)
         WITH ORDINALITY AS pair(src_attnum, ref_attnum, ord)
    JOIN pg_catalog.pg_class src ON src.oid = con.conrelid
    JOIN pg_catalog.pg_namespace src_ns ON src_ns.oid = src.relnamespace
    JOIN pg_catalog.pg_attribute src_att
      ON src_att.attrelid = con.conrelid AND src_att.attnum = pair.src_attnum
    JOIN pg_catalog.pg_class ref ON ref.oid = con.confrelid
    JOIN pg_catalog.pg_namespace ref_ns ON ref_ns.oid = ref.relnamespace
    JOIN pg_catalog.pg_attribute ref_att
      ON ref_att.attrelid = con.confrelid AND ref_att.attnum = pair.ref_attnum
    WHERE con.contype = 'f'
      AND src_ns.nspname IN :schemas
    ORDER BY src_ns.nspname, src.relname, con.conname, pair.ord
    """
).bindparams(_SCHEMAS)

AUTO_INCREMENT_QUERY: TextClause = text(
    """
    SELECT table_schema, table_name, column_name,
           CASE
             WHEN is_identity = 'YES' THEN 'identity'
             WHEN pg_get_serial_sequence(
                    quote_ident(table_schema) || '.' || quote_ident(table_name),
                    column_name) IS NOT NULL THEN 'serial'
             ELSE 'not auto increment'
           END
    FROM information_schema.columns
    WHERE table_schema IN :schemas
    ORDER BY table_schema, table_name, ordinal_position
    """
).bindparams(_SCHEMAS)


# ---------------------------------------------------------------------------
# Fetch stages
# ---------------------------------------------------------------------------

_RowT = TypeVar("_RowT", bound=tuple)


def _fetch(
    connection: Connection,
    stage: str,
    statement: TextClause,
    schemas: Sequence[str],
    row_type: Type[_RowT],
) -> List[_RowT]:
    try:
        result = connection.execute(statement, {"schemas": list(schemas)})
        rows: List[_RowT] = [row_type(*row) for row in result]
    except SQLAlchemyError as exc:
        logger.error("Introspection stage '%s' failed: %s", stage, exc)
        raise IntrospectionError(stage, exc) from exc

    logger.info("Read %d %s row(s).", len(rows), stage)
    return rows


def fetch_tables(connection: Connection, schemas: Sequence[str]) -> List[TableRow]:
    return _fetch(connection, "tables", TABLES_QUERY, schemas, TableRow)


def fetch_columns(connection: Connection, schemas: Sequence[str]) -> List[ColumnRow]:
    return _fetch(connection, "columns", COLUMNS_QUERY, schemas, ColumnRow)


def fetch_constraints(connection: Connection, schemas: Sequence[str]) -> List[ConstraintRow]:
    return _fetch(connection, "constraints", CONSTRAINTS_QUERY, schemas, ConstraintRow)


def fetch_foreign_keys(connection: Connection, schemas: Sequence[str]) -> List[ForeignKeyRow]:
    return _fetch(connection, "foreign keys", FOREIGN_KEYS_QUERY, schemas, ForeignKeyRow)


def fetch_auto_increments(
    connection: Connection, schemas: Sequence[str]
) -> List[AutoIncrementRow]:
    return _fetch(connection, "auto increment", AUTO_INCREMENT_QUERY, schemas, AutoIncrementRow)


# ---------------------------------------------------------------------------
# Join
# ---------------------------------------------------------------------------


def join_metadata(
    database: str,
    tables: Sequence[TableRow],
    columns: Sequence[ColumnRow],
    constraints: Sequence[ConstraintRow],
    foreign_keys: Sequence[ForeignKeyRow],
    auto_increments: Sequence[AutoIncrementRow],
) -> Metadata:
    """
    Reconcile the fetched result sets into a ``Metadata`` graph.

    * columns attach to their table in ``ordinal_position`` order and are
      re-numbered 1..n;
    * a ``PRIMARY KEY`` constraint row sets the primary-key flag;
    * a ``FOREIGN KEY`` constraint row sets the target only when the
      foreign-key list has a row for the same (schema, table, column);
    * an auto-increment row with any classification other than
      ``not auto increment`` sets the auto-increment flag.

    Table order is the fetch order.
    """
    columns_by_table: Dict[_TableKey, List[ColumnRow]] = defaultdict(list)
    for row in columns:
        columns_by_table[_TableKey(row.schema, row.table)].append(row)

    constraint_types: Dict[_ColumnKey, Set[str]] = defaultdict(set)
    for row in constraints:
        constraint_types[_ColumnKey(row.schema, row.table, row.column)].add(row.constraint_type)

    fk_targets: Dict[_ColumnKey, ForeignKeyTarget] = {}
    for row in foreign_keys:
        key: _ColumnKey = _ColumnKey(row.schema, row.table, row.column)
        fk_targets.setdefault(
            key,
            ForeignKeyTarget(
                schema_name=row.referenced_schema,
                table=row.referenced_table,
                column=row.referenced_column,
            ),
        )

    auto_increment_keys: Set[_ColumnKey] = {
        _ColumnKey(row.schema, row.table, row.column)
        for row in auto_increments
        if row.classification != NOT_AUTO_INCREMENT
    }

    resolved: List[Table] = []
    for table_row in tables:
        table_key: _TableKey = _TableKey(table_row.schema, table_row.table)
        table_columns: List[ColumnRow] = sorted(
            columns_by_table.get(table_key, []), key=lambda r: r.ordinal_position
        )
        if not table_columns:
            logger.warning("Table %s.%s has no columns.", table_row.schema, table_row.table)

        built: List[Column] = []
        for ordinal, row in enumerate(table_columns, start=1):
            column_key: _ColumnKey = _ColumnKey(row.schema, row.table, row.column)
            types: Set[str] = constraint_types.get(column_key, set())
            fk_target = fk_targets.get(column_key) if "FOREIGN KEY" in types else None
            built.append(
                Column(
                    ordinal=ordinal,
                    name=row.column,
                    data_type=row.data_type,
                    nullable=row.is_nullable == "YES",
                    default_value=None if row.default_value is None else str(row.default_value),
                    is_primary_key="PRIMARY KEY" in types,
                    is_auto_increment=column_key in auto_increment_keys,
                    fk_target=fk_target,
                )
            )

        resolved.append(
            Table(schema_name=table_row.schema, name=table_row.table, columns=tuple(built))
        )

    try:
        return Metadata(database=database, tables=tuple(resolved))
    except ValidationError as exc:
        raise IntrospectionError("metadata join", exc) from exc


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def resolve_metadata(
    connection: Connection,
    database: str,
    schemas: Sequence[str],
) -> Metadata:
    """Run every introspection stage on *connection* and join the results."""
    if not schemas:
        raise ConfigurationError("At least one schema name is required.")

    tables: List[TableRow] = fetch_tables(connection, schemas)
    columns: List[ColumnRow] = fetch_columns(connection, schemas)
    constraints: List[ConstraintRow] = fetch_constraints(connection, schemas)
    foreign_keys: List[ForeignKeyRow] = fetch_foreign_keys(connection, schemas)
    auto_increments: List[AutoIncrementRow] = fetch_auto_increments(connection, schemas)

    with Timer("metadata join"):
        metadata: Metadata = join_metadata(
            database, tables, columns, constraints, foreign_keys, auto_increments
        )

    logger.info(
        "Resolved %d table(s) from schema(s) %s.", len(metadata.tables), ", ".join(schemas)
    )
    logger.debug("Metadata:\n%s", metadata.describe())
    return metadata


def build_postgres_url(conn_info: ConnectionInfo) -> URL:
    return URL.create(
        "postgresql+psycopg2",
        username=conn_info.username,
        password=conn_info.password or None,
        host=conn_info.host,
        port=conn_info.port,
        database=conn_info.database,
    )


def read_postgres_metadata(conn_info: ConnectionInfo) -> Metadata:
    """Connect to PostgreSQL, resolve the configured schemas, disconnect."""
    url: URL = build_postgres_url(conn_info)
    logger.info("Connecting to %s", url.render_as_string(hide_password=True))

    try:
        engine: Engine = create_engine(url, echo=False)
    except (SQLAlchemyError, ImportError) as exc:
        raise IntrospectionError("connection", exc) from exc

    try:
        try:
            connection: Connection = engine.connect()
        except SQLAlchemyError as exc:
            raise IntrospectionError("connection", exc) from exc
        with connection:
            return resolve_metadata(connection, conn_info.database, conn_info.schemas)
    finally:
        engine.dispose()


MetadataReader = Callable[[ConnectionInfo], Metadata]

METADATA_READERS: Dict[str, MetadataReader] = {
    "postgresql": read_postgres_metadata,
}


def read_metadata(conn_info: ConnectionInfo) -> Metadata:
    """Pick the introspection backend from ``conn_info.dbms`` and run it."""
    reader = METADATA_READERS.get(conn_info.dbms.lower())
    if reader is None:
        raise ConfigurationError(f"unsupported DBMS: {conn_info.dbms}")
    return reader(conn_info)


__all__: List[str] = [
    "TableRow",
    "ColumnRow",
    "ConstraintRow",
    "ForeignKeyRow",
    "AutoIncrementRow",
    "TABLES_QUERY",
    "COLUMNS_QUERY",
    "CONSTRAINTS_QUERY",
    "FOREIGN_KEYS_QUERY",
    "AUTO_INCREMENT_QUERY",
    "NOT_AUTO_INCREMENT",
    "fetch_tables",
    "fetch_columns",
    "fetch_constraints",
    "fetch_foreign_keys",
    "fetch_auto_increments",
    "join_metadata",
    "resolve_metadata",
    "build_postgres_url",
    "read_postgres_metadata",
    "read_metadata",
    "METADATA_READERS",
    "MetadataReader",
]

logger.debug("dtogen.resolver loaded.")
