# File: dtogen/emit_go.py
"""
dtogen - Go Emitter
====================
Builds Go IR for the pgx v5 driver:

* ``db_connector``   - ``Connect`` / ``Disconnect``
* ``<table>``        - entity struct plus ``<Entity>ScanRow``,
  ``<Entity>ScanRows``, ``<Entity>SelectAll``, ``<Entity>SelectByPK``,
  ``<Entity>SelectBy<Column>``, ``<Entity>Insert``, ``<Entity>Update``,
  ``<Entity>Delete`` and, for tables without auto-increment columns,
  ``<Entity>Exists`` / ``<Entity>Upsert``
* ``custom_queries`` - one function per declared query

Every SELECT lists the columns in ordinal order, the same order the scan
function assigns them in.
"""

from __future__ import annotations

import logging
from typing import FrozenSet, List, Optional, Sequence

from dtogen.ir import Field, Function, Import, Parameter, SourceFile, Struct
from dtogen.models import Cardinality, Column, ConnectionInfo, CustomQuery, Metadata, Table
from dtogen.renderers import go_quote, go_sql_literal, sql_identifier, sql_table_name
from dtogen.shapes import ResultKind, ResultShape, resolve_result_shape
from dtogen.type_mapping import go_imports_for, go_type
from dtogen.utils import parameter_name, to_pascal_case

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("dtogen.emit_go")

CONTEXT: Import = Import("context")
FMT: Import = Import("fmt")
PGX: Import = Import("github.com/jackc/pgx/v5")

CONN_PARAM: Parameter = Parameter("conn", "*pgx.Conn")
_CTX: str = "context.Background()"

# Go keywords plus the names generated bodies refer to.
_BOUND_NAMES: FrozenSet[str] = frozenset(
    {
        "break", "case", "chan", "const", "continue", "default", "defer", "else",
        "fallthrough", "for", "func", "go", "goto", "if", "import", "interface",
        "map", "package", "range", "return", "select", "struct", "switch", "var",
        "context", "fmt", "conn", "entity", "entities", "err", "exists", "result", "results",
        "row", "rows",
    }
)


# ---------------------------------------------------------------------------
# Small helpers
# ---------------------------------------------------------------------------


def go_parameter_name(name: str) -> str:
    """
    Column / query parameter name as a Go parameter.

    ``type`` becomes ``type1``; keywords and the names generated bodies
    refer to (``conn``, ``err``, ``row`` ...) get a trailing ``_``.
    """
    local: str = parameter_name(name)
    if local in _BOUND_NAMES:
        return f"{local}_"
    return local


def _field_type(column: Column) -> str:
    return go_type(column.data_type)


def _value_type(type_name: str, nullable: bool) -> str:
    return f"*{type_name}" if nullable else type_name


def _type_imports(source: SourceFile, type_names: Sequence[str]) -> SourceFile:
    for type_name in type_names:
        source = source.with_import(*go_imports_for(type_name))
    return source


def _column_list(columns: Sequence[Column]) -> str:
    return ", ".join(sql_identifier(c.name) for c in columns)


def _conditions(columns: Sequence[Column], start: int = 1) -> str:
    return " AND ".join(
        f"{sql_identifier(c.name)} = ${i}" for i, c in enumerate(columns, start=start)
    )


def _table_sql(table: Table) -> str:
    return sql_table_name(table.schema_name, table.name)


def _unique_name(name: str, taken: Sequence[str]) -> str:
    while name in taken:
        name += "_"
    return name


def _call(method: str, sql: str, args: Sequence[str]) -> str:
    parts: List[str] = [_CTX, go_sql_literal(sql)]
    parts.extend(args)
    return f"conn.{method}({', '.join(parts)})"


def _wrap_error(label: str) -> str:
    return f"fmt.Errorf({go_quote(label + ': %w')}, err)"


def _entity_args(columns: Sequence[Column]) -> List[str]:
    return [f"entity.{to_pascal_case(c.name)}" for c in columns]


def _key_params(columns: Sequence[Column]) -> List[Parameter]:
    return [Parameter(go_parameter_name(c.name), _field_type(c)) for c in columns]


# ---------------------------------------------------------------------------
# Connector
# ---------------------------------------------------------------------------


def emit_connector(conn_info: ConnectionInfo) -> SourceFile:
    """``db_connector``: connect with a caller URL or the configured default."""
    default_url: str = (
        f"host={conn_info.host} port={conn_info.port} user={conn_info.username} "
        f"password={conn_info.password} dbname={conn_info.database}"
    )

    connect = (
        Function("Connect")
        .with_parameter("connectionUrl", "*string")
        .with_return("*pgx.Conn")
        .with_return("error")
        .with_body(
            "if connectionUrl == nil {",
            f"    defaultUrl := {go_quote(default_url)}",
            "    connectionUrl = &defaultUrl",
            "}",
            f"conn, err := pgx.Connect({_CTX}, *connectionUrl)",
            "if err != nil {",
            f"    return nil, {_wrap_error('error connecting to postgres')}",
            "}",
            "return conn, nil",
        )
    )
    disconnect = (
        Function("Disconnect")
        .with_parameter("connection", "*pgx.Conn")
        .with_body(f"connection.Close({_CTX})")
    )

    return (
        SourceFile("db_connector")
        .with_import(CONTEXT, FMT, PGX)
        .with_function(connect)
        .with_function(disconnect)
    )


# ---------------------------------------------------------------------------
# Per-table file
# ---------------------------------------------------------------------------


def emit_entity(table: Table) -> Struct:
    """Entity struct: one field per column, in ordinal order."""
    return Struct(to_pascal_case(table.name)).with_fields(
        Field(
            name=to_pascal_case(c.name),
            type=_field_type(c),
            nullable=c.nullable,
            serialization_key=c.name,
        )
        for c in table.columns
    )


def _scan_row(entity: str, table: Table) -> Function:
    body: List[str] = [f"var entity {entity}", "err := row.Scan("]
    body.extend(f"    &entity.{to_pascal_case(c.name)}," for c in table.columns)
    body.extend(
        [
            ")",
            "if err != nil {",
            f"    return nil, {_wrap_error(entity + 'ScanRow')}",
            "}",
            "return &entity, nil",
        ]
    )
    return (
        Function(f"{entity}ScanRow")
        .with_parameter("row", "pgx.Row")
        .with_return(f"*{entity}")
        .with_return("error")
        .with_body(*body)
    )


def _scan_rows(entity: str) -> Function:
    return (
        Function(f"{entity}ScanRows")
        .with_parameter("rows", "pgx.Rows")
        .with_return(f"[]{entity}")
        .with_return("error")
        .with_body(
            "defer rows.Close()",
            f"entities := make([]{entity}, 0)",
            "for rows.Next() {",
            f"    entity, err := {entity}ScanRow(rows)",
            "    if err != nil {",
            "        return nil, err",
            "    }",
            "    entities = append(entities, *entity)",
            "}",
            "if err := rows.Err(); err != nil {",
            f"    return nil, {_wrap_error(entity + 'ScanRows')}",
            "}",
            "return entities, nil",
        )
    )


def _query_many(name: str, entity: str, sql: str, args: Sequence[str]) -> List[str]:
    return [
        f"rows, err := {_call('Query', sql, args)}",
        "if err != nil {",
        f"    return nil, {_wrap_error(name)}",
        "}",
        f"return {entity}ScanRows(rows)",
    ]


def _select_all(entity: str, table: Table) -> Function:
    name: str = f"{entity}SelectAll"
    sql: str = f"SELECT {_column_list(table.columns)} FROM {_table_sql(table)}"
    if table.primary_key_columns:
        sql += f" ORDER BY {_column_list(table.primary_key_columns)}"
    sql += " LIMIT $1 OFFSET $2"
    return (
        Function(name, parameters=(CONN_PARAM,))
        .with_parameter("limit", "int")
        .with_parameter("offset", "int")
        .with_return(f"[]{entity}")
        .with_return("error")
        .with_body(*_query_many(name, entity, sql, ["limit", "offset"]))
    )


def _select_by_pk(entity: str, table: Table) -> Function:
    pk: Sequence[Column] = table.primary_key_columns
    params: List[Parameter] = _key_params(pk)
    sql: str = (
        f"SELECT {_column_list(table.columns)} FROM {_table_sql(table)} "
        f"WHERE {_conditions(pk)}"
    )
    return (
        Function(f"{entity}SelectByPK", parameters=(CONN_PARAM,))
        .with_parameters(params)
        .with_return(f"*{entity}")
        .with_return("error")
        .with_body(
            f"row := {_call('QueryRow', sql, [p.name for p in params])}",
            f"return {entity}ScanRow(row)",
        )
    )


def _select_by_column(entity: str, table: Table, column: Column, taken: Sequence[str]) -> Function:
    name: str = _unique_name(f"{entity}SelectBy{to_pascal_case(column.name)}", taken)
    param: Parameter = Parameter(go_parameter_name(column.name), _field_type(column))
    sql: str = (
        f"SELECT {_column_list(table.columns)} FROM {_table_sql(table)} "
        f"WHERE {sql_identifier(column.name)} = $1"
    )
    return (
        Function(name, parameters=(CONN_PARAM, param))
        .with_return(f"[]{entity}")
        .with_return("error")
        .with_body(*_query_many(name, entity, sql, [param.name]))
    )


def _insert(entity: str, table: Table) -> Function:
    name: str = f"{entity}Insert"
    columns: Sequence[Column] = table.insertable_columns
    auto: Sequence[Column] = table.auto_increment_columns

    if columns:
        placeholders: str = ", ".join(f"${i}" for i in range(1, len(columns) + 1))
        sql: str = (
            f"INSERT INTO {_table_sql(table)} ({_column_list(columns)}) "
            f"VALUES ({placeholders})"
        )
    else:
        sql = f"INSERT INTO {_table_sql(table)} DEFAULT VALUES"

    function = (
        Function(name, parameters=(CONN_PARAM,))
        .with_parameter("entity", f"*{entity}")
        .with_return("error")
    )

    if len(auto) == 1:
        sql += f" RETURNING {sql_identifier(auto[0].name)}"
        target: str = f"&entity.{to_pascal_case(auto[0].name)}"
        return function.with_body(
            f"err := {_call('QueryRow', sql, _entity_args(columns))}.Scan({target})",
            "if err != nil {",
            f"    return {_wrap_error(name)}",
            "}",
            "return nil",
        )

    return function.with_body(*_exec(name, sql, _entity_args(columns)))


def _exec(name: str, sql: str, args: Sequence[str]) -> List[str]:
    return [
        f"_, err := {_call('Exec', sql, args)}",
        "if err != nil {",
        f"    return {_wrap_error(name)}",
        "}",
        "return nil",
    ]


def _update(entity: str, table: Table) -> Function:
    name: str = f"{entity}Update"
    values: Sequence[Column] = table.non_primary_key_columns
    pk: Sequence[Column] = table.primary_key_columns
    assignments: str = ", ".join(
        f"{sql_identifier(c.name)} = ${i}" for i, c in enumerate(values, start=1)
    )
    sql: str = (
        f"UPDATE {_table_sql(table)} SET {assignments} "
        f"WHERE {_conditions(pk, start=len(values) + 1)}"
    )
    return (
        Function(name, parameters=(CONN_PARAM,))
        .with_parameter("entity", f"*{entity}")
        .with_return("error")
        .with_body(*_exec(name, sql, _entity_args(list(values) + list(pk))))
    )


def _delete(entity: str, table: Table) -> Function:
    name: str = f"{entity}Delete"
    pk: Sequence[Column] = table.primary_key_columns
    params: List[Parameter] = _key_params(pk)
    sql: str = f"DELETE FROM {_table_sql(table)} WHERE {_conditions(pk)}"
    return (
        Function(name, parameters=(CONN_PARAM,))
        .with_parameters(params)
        .with_return("error")
        .with_body(*_exec(name, sql, [p.name for p in params]))
    )


def _exists(entity: str, table: Table) -> Function:
    name: str = f"{entity}Exists"
    pk: Sequence[Column] = table.primary_key_columns
    params: List[Parameter] = _key_params(pk)
    sql: str = f"SELECT EXISTS(SELECT 1 FROM {_table_sql(table)} WHERE {_conditions(pk)})"
    return (
        Function(name, parameters=(CONN_PARAM,))
        .with_parameters(params)
        .with_return("bool")
        .with_return("error")
        .with_body(
            "var exists bool",
            f"err := {_call('QueryRow', sql, [p.name for p in params])}.Scan(&exists)",
            "if err != nil {",
            f"    return false, {_wrap_error(name)}",
            "}",
            "return exists, nil",
        )
    )


def _upsert(entity: str, table: Table) -> Function:
    pk_args: str = ", ".join(_entity_args(table.primary_key_columns))
    existing: List[str] = (
        [f"    return {entity}Update(conn, entity)"] if table.non_primary_key_columns
        else ["    return nil"]
    )
    return (
        Function(f"{entity}Upsert", parameters=(CONN_PARAM,))
        .with_parameter("entity", f"*{entity}")
        .with_return("error")
        .with_body(
            f"exists, err := {entity}Exists(conn, {pk_args})",
            "if err != nil {",
            "    return err",
            "}",
            "if exists {",
            *existing,
            "}",
            f"return {entity}Insert(conn, entity)",
        )
    )


def emit_table(table: Table) -> SourceFile:
    """
    The per-table file.

    A table without columns gets only its (empty) entity.  Without a
    primary key there is no SelectByPK, Update, Delete, Exists or Upsert.
    """
    entity: Struct = emit_entity(table)
    source: SourceFile = _type_imports(
        SourceFile(table.name), [f.type for f in entity.fields]
    ).with_struct(entity)

    if not table.columns:
        logger.warning("Table %s has no columns; emitting the entity only.", table.qualified_name)
        return source

    name: str = entity.name
    functions: List[Function] = [
        _scan_row(name, table),
        _scan_rows(name),
        _select_all(name, table),
    ]
    if table.primary_key_columns:
        functions.append(_select_by_pk(name, table))
    for column in table.non_primary_key_columns:
        functions.append(_select_by_column(name, table, column, [f.name for f in functions]))
    functions.append(_insert(name, table))
    if table.primary_key_columns:
        if table.non_primary_key_columns:
            functions.append(_update(name, table))
        functions.append(_delete(name, table))
        if not table.has_auto_increment:
            functions.append(_exists(name, table))
            functions.append(_upsert(name, table))

    source = source.with_import(CONTEXT, FMT, PGX)
    for function in functions:
        source = source.with_function(function)

    logger.debug("Go table %s: %d function(s).", table.qualified_name, len(functions))
    return source


# ---------------------------------------------------------------------------
# Custom queries
# ---------------------------------------------------------------------------


def _record_struct(shape: ResultShape) -> Struct:
    return Struct(shape.record_name or "").with_fields(
        Field(
            name=to_pascal_case(c.key),
            type=go_type(c.db_type),
            nullable=c.nullable,
            serialization_key=c.key,
        )
        for c in shape.columns
    )


def _custom_query_function(query: CustomQuery, shape: ResultShape) -> Function:
    sql: str = query.sql_text
    params: List[Parameter] = [Parameter(go_parameter_name(p.name), p.type) for p in query.parameters]
    args: List[str] = [p.name for p in params]
    function = Function(query.name, parameters=(CONN_PARAM,)).with_parameters(params)
    label: str = query.name

    if shape.kind is ResultKind.NONE:
        return function.with_return("error").with_body(*_exec(label, sql, args))

    if shape.kind is ResultKind.ENTITY:
        entity: str = to_pascal_case(shape.table.name)
        if query.cardinality == Cardinality.ONE:
            return (
                function.with_return(f"*{entity}")
                .with_return("error")
                .with_body(
                    f"row := {_call('QueryRow', sql, args)}",
                    f"return {entity}ScanRow(row)",
                )
            )
        return (
            function.with_return(f"[]{entity}")
            .with_return("error")
            .with_body(*_query_many(label, entity, sql, args))
        )

    if shape.kind is ResultKind.SCALAR:
        column = shape.scalar
        value_type: str = _value_type(go_type(column.db_type), column.nullable)
        targets: str = "&result"
    else:
        value_type = shape.record_name or ""
        targets = ", ".join(f"&result.{to_pascal_case(c.key)}" for c in shape.columns)

    if query.cardinality == Cardinality.ONE:
        if shape.kind is ResultKind.SCALAR:
            return (
                function.with_return(value_type)
                .with_return("error")
                .with_body(
                    f"var result {value_type}",
                    f"err := {_call('QueryRow', sql, args)}.Scan({targets})",
                    "if err != nil {",
                    f"    return result, {_wrap_error(label)}",
                    "}",
                    "return result, nil",
                )
            )
        return (
            function.with_return(f"*{value_type}")
            .with_return("error")
            .with_body(
                f"var result {value_type}",
                f"err := {_call('QueryRow', sql, args)}.Scan({targets})",
                "if err != nil {",
                f"    return nil, {_wrap_error(label)}",
                "}",
                "return &result, nil",
            )
        )

    return (
        function.with_return(f"[]{value_type}")
        .with_return("error")
        .with_body(
            f"rows, err := {_call('Query', sql, args)}",
            "if err != nil {",
            f"    return nil, {_wrap_error(label)}",
            "}",
            "defer rows.Close()",
            f"results := make([]{value_type}, 0)",
            "for rows.Next() {",
            f"    var result {value_type}",
            f"    if err := rows.Scan({targets}); err != nil {{",
            f"        return nil, {_wrap_error(label)}",
            "    }",
            "    results = append(results, result)",
            "}",
            "if err := rows.Err(); err != nil {",
            f"    return nil, {_wrap_error(label)}",
            "}",
            "return results, nil",
        )
    )


def emit_custom_queries(queries: Sequence[CustomQuery], metadata: Metadata) -> Optional[SourceFile]:
    """``custom_queries``: one function per query, ``None`` when there are none."""
    if not queries:
        return None

    structs: List[Struct] = []
    functions: List[Function] = []
    type_names: List[str] = []
    for query in queries:
        shape: ResultShape = resolve_result_shape(query, metadata)
        if shape.kind is ResultKind.RECORD:
            record: Struct = _record_struct(shape)
            structs.append(record)
            type_names.extend(f.type for f in record.fields)
        elif shape.kind is ResultKind.SCALAR:
            type_names.append(go_type(shape.scalar.db_type))

        function: Function = _custom_query_function(query, shape)
        type_names.extend(p.type for p in function.parameters)
        functions.append(function)

    uses_fmt: bool = any("fmt." in line for f in functions for line in f.body)
    source: SourceFile = SourceFile("custom_queries").with_import(CONTEXT)
    if uses_fmt:
        source = source.with_import(FMT)
    source = _type_imports(source.with_import(PGX), type_names)
    for struct in structs:
        source = source.with_struct(struct)
    for function in functions:
        source = source.with_function(function)

    logger.info("Go custom queries: %d function(s).", len(functions))
    return source


__all__: List[str] = [
    "go_parameter_name",
    "emit_connector",
    "emit_entity",
    "emit_table",
    "emit_custom_queries",
]

logger.debug("dtogen.emit_go loaded.")
