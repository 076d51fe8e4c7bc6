# File: dtogen/emit_python.py
"""
dtogen - Python Emitter
========================
Builds Python IR for the psycopg2 driver.

Generated package layout::

    __init__.py
    db_connector.py      connect() / disconnect()
    <table>.py           @dataclass entity + scan_row, scan_rows, select_all,
                         select_by_pk, select_by_<column>, insert, update,
                         delete, exists, upsert
    custom_queries.py    one function per declared query

Errors surface as psycopg2 exceptions, so functions return only their
value.  Statements use ``%s`` placeholders and run inside
``with conn.cursor() as cur:``; committing is left to the caller.
"""

from __future__ import annotations

import logging
from typing import FrozenSet, List, Optional, Sequence

from dtogen.ir import Field, Function, Import, Parameter, SourceFile, Struct
from dtogen.models import Cardinality, Column, ConnectionInfo, CustomQuery, Metadata, Table
from dtogen.renderers import python_quote, python_sql_literal, sql_identifier, sql_table_name
from dtogen.shapes import ResultKind, ResultShape, resolve_result_shape
from dtogen.type_mapping import python_imports_for, python_type
from dtogen.utils import safe_python_identifier, to_pascal_case

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("dtogen.emit_python")

DATACLASS: Import = Import("dataclasses", "dataclass")
DATACLASSES: Import = Import("dataclasses")
PSYCOPG2: Import = Import("psycopg2")
CONNECTION: Import = Import("psycopg2.extensions", "connection")

CONN_PARAM: Parameter = Parameter("conn", "connection")
_ROW_TYPE: str = "Sequence[Any]"

# Names the generated bodies bind themselves.
_BOUND_NAMES: FrozenSet[str] = frozenset({"conn", "cur", "entity"})


# ---------------------------------------------------------------------------
# Small helpers
# ---------------------------------------------------------------------------


def python_parameter_name(name: str) -> str:
    """
    Column / query parameter name as a Python parameter.

    ``type`` becomes ``type1``; keywords and the names generated bodies
    use (``conn``, ``cur``, ``entity``) get a trailing ``_``.
    """
    if name == "type":
        return "type1"
    if name in _BOUND_NAMES:
        return f"{name}_"
    return safe_python_identifier(name)


def _optional(type_name: str, nullable: bool) -> str:
    return f"Optional[{type_name}]" if nullable else type_name


def _with_annotation_imports(source: SourceFile) -> SourceFile:
    """Add the imports every annotation in *source* needs."""
    annotations: List[str] = []
    for struct in source.structs:
        annotations.extend(_optional(f.type, f.nullable) for f in struct.fields)
    for function in source.functions:
        annotations.extend(p.type for p in function.parameters)
        annotations.extend(r.type for r in function.returns)

    for annotation in annotations:
        source = source.with_import(*python_imports_for(annotation))
    return source


def _column_list(columns: Sequence[Column]) -> str:
    return ", ".join(sql_identifier(c.name) for c in columns)


def _conditions(columns: Sequence[Column]) -> str:
    return " AND ".join(f"{sql_identifier(c.name)} = %s" for c in columns)


def _execute(sql: str, args: Sequence[str]) -> str:
    literal: str = python_sql_literal(sql)
    if not args:
        return f"cur.execute({literal})"
    if len(args) == 1:
        return f"cur.execute({literal}, ({args[0]},))"
    return f"cur.execute({literal}, ({', '.join(args)}))"


def _entity_args(columns: Sequence[Column]) -> List[str]:
    return [f"entity.{safe_python_identifier(c.name)}" for c in columns]


def _key_params(columns: Sequence[Column]) -> List[Parameter]:
    return [Parameter(python_parameter_name(c.name), python_type(c.data_type)) for c in columns]


def _table_sql(table: Table) -> str:
    return sql_table_name(table.schema_name, table.name)


def _unique_name(name: str, taken: Sequence[str]) -> str:
    while name in taken:
        name += "_"
    return name


def _constructor(class_name: str, keys: Sequence[str], indent: str = "") -> List[str]:
    lines: List[str] = [f"{indent}{class_name}("]
    lines.extend(f"{indent}    {key}=row[{i}]," for i, key in enumerate(keys))
    lines.append(f"{indent})")
    return lines


# ---------------------------------------------------------------------------
# Package files
# ---------------------------------------------------------------------------


def emit_init() -> SourceFile:
    """Empty ``__init__`` so the output directory is an importable package."""
    return SourceFile("__init__")


def emit_connector(conn_info: ConnectionInfo) -> SourceFile:
    """``db_connector``: psycopg2 connect with a caller config or the configured default."""
    connect = (
        Function("connect")
        .with_parameter("db_config", "Optional[Dict[str, Union[str, int]]]", default="None")
        .with_return("connection")
        .with_body(
            "if db_config is None:",
            "    db_config = {",
            f"        \"dbname\": {python_quote(conn_info.database)},",
            f"        \"user\": {python_quote(conn_info.username)},",
            f"        \"password\": {python_quote(conn_info.password)},",
            f"        \"host\": {python_quote(conn_info.host)},",
            f"        \"port\": {conn_info.port},",
            "    }",
            "return psycopg2.connect(**db_config)",
        )
    )
    disconnect = (
        Function("disconnect")
        .with_parameter("conn", "connection")
        .with_body("conn.close()")
    )

    source: SourceFile = (
        SourceFile("db_connector")
        .with_import(PSYCOPG2, CONNECTION)
        .with_function(connect)
        .with_function(disconnect)
    )
    return _with_annotation_imports(source)


# ---------------------------------------------------------------------------
# Per-table module
# ---------------------------------------------------------------------------


def emit_entity(table: Table) -> Struct:
    """``@dataclass`` entity: one field per column, in ordinal order."""
    return Struct(to_pascal_case(table.name)).with_fields(
        Field(
            name=safe_python_identifier(c.name),
            type=python_type(c.data_type),
            nullable=c.nullable,
            serialization_key=c.name,
        )
        for c in table.columns
    )


def _scan_row(entity: Struct) -> Function:
    return (
        Function("scan_row")
        .with_parameter("row", _ROW_TYPE)
        .with_return(entity.name)
        .with_body(
            *_constructor(f"return {entity.name}", [f.name for f in entity.fields]),
        )
    )


def _scan_rows(entity: Struct) -> Function:
    return (
        Function("scan_rows")
        .with_parameter("rows", f"Iterable[{_ROW_TYPE}]")
        .with_return(f"List[{entity.name}]")
        .with_body("return [scan_row(row) for row in rows]")
    )


def _fetch_many(sql: str, args: Sequence[str]) -> List[str]:
    return [
        "with conn.cursor() as cur:",
        f"    {_execute(sql, args)}",
        "    return scan_rows(cur.fetchall())",
    ]


def _select_all(entity: Struct, table: Table) -> Function:
    sql: str = f"SELECT {_column_list(table.columns)} FROM {_table_sql(table)}"
    if table.primary_key_columns:
        sql += f" ORDER BY {_column_list(table.primary_key_columns)}"
    sql += " LIMIT %s OFFSET %s"
    return (
        Function("select_all", parameters=(CONN_PARAM,))
        .with_parameter("limit", "int")
        .with_parameter("offset", "int")
        .with_return(f"List[{entity.name}]")
        .with_body(*_fetch_many(sql, ["limit", "offset"]))
    )


def _select_by_pk(entity: Struct, table: Table) -> Function:
    params: List[Parameter] = _key_params(table.primary_key_columns)
    sql: str = (
        f"SELECT {_column_list(table.columns)} FROM {_table_sql(table)} "
        f"WHERE {_conditions(table.primary_key_columns)}"
    )
    return (
        Function("select_by_pk", parameters=(CONN_PARAM,))
        .with_parameters(params)
        .with_return(f"Optional[{entity.name}]")
        .with_body(
            "with conn.cursor() as cur:",
            f"    {_execute(sql, [p.name for p in params])}",
            "    row = cur.fetchone()",
            "return scan_row(row) if row is not None else None",
        )
    )


def _select_by_column(entity: Struct, table: Table, column: Column, taken: Sequence[str]) -> Function:
    param: Parameter = Parameter(python_parameter_name(column.name), python_type(column.data_type))
    sql: str = (
        f"SELECT {_column_list(table.columns)} FROM {_table_sql(table)} "
        f"WHERE {sql_identifier(column.name)} = %s"
    )
    return (
        Function(_unique_name(f"select_by_{column.name}", taken), parameters=(CONN_PARAM, param))
        .with_return(f"List[{entity.name}]")
        .with_body(*_fetch_many(sql, [param.name]))
    )


def _insert(entity: Struct, table: Table) -> Function:
    columns: Sequence[Column] = table.insertable_columns
    auto: Sequence[Column] = table.auto_increment_columns

    if columns:
        placeholders: str = ", ".join("%s" for _ in columns)
        sql: str = (
            f"INSERT INTO {_table_sql(table)} ({_column_list(columns)}) "
            f"VALUES ({placeholders})"
        )
    else:
        sql = f"INSERT INTO {_table_sql(table)} DEFAULT VALUES"

    body: List[str] = ["with conn.cursor() as cur:"]
    if len(auto) == 1:
        sql += f" RETURNING {sql_identifier(auto[0].name)}"
        body.append(f"    {_execute(sql, _entity_args(columns))}")
        body.append(f"    entity.{safe_python_identifier(auto[0].name)} = cur.fetchone()[0]")
    else:
        body.append(f"    {_execute(sql, _entity_args(columns))}")

    return (
        Function("insert", parameters=(CONN_PARAM,))
        .with_parameter("entity", entity.name)
        .with_body(*body)
    )


def _update(entity: Struct, table: Table) -> Function:
    values: Sequence[Column] = table.non_primary_key_columns
    pk: Sequence[Column] = table.primary_key_columns
    assignments: str = ", ".join(f"{sql_identifier(c.name)} = %s" for c in values)
    sql: str = f"UPDATE {_table_sql(table)} SET {assignments} WHERE {_conditions(pk)}"
    return (
        Function("update", parameters=(CONN_PARAM,))
        .with_parameter("entity", entity.name)
        .with_body(
            "with conn.cursor() as cur:",
            f"    {_execute(sql, _entity_args(list(values) + list(pk)))}",
        )
    )


def _delete(table: Table) -> Function:
    params: List[Parameter] = _key_params(table.primary_key_columns)
    sql: str = f"DELETE FROM {_table_sql(table)} WHERE {_conditions(table.primary_key_columns)}"
    return (
        Function("delete", parameters=(CONN_PARAM,))
        .with_parameters(params)
        .with_body(
            "with conn.cursor() as cur:",
            f"    {_execute(sql, [p.name for p in params])}",
        )
    )


def _exists(table: Table) -> Function:
    params: List[Parameter] = _key_params(table.primary_key_columns)
    sql: str = (
        f"SELECT EXISTS(SELECT 1 FROM {_table_sql(table)} "
        f"WHERE {_conditions(table.primary_key_columns)})"
    )
    return (
        Function("exists", parameters=(CONN_PARAM,))
        .with_parameters(params)
        .with_return("bool")
        .with_body(
            "with conn.cursor() as cur:",
            f"    {_execute(sql, [p.name for p in params])}",
            "    return bool(cur.fetchone()[0])",
        )
    )


def _upsert(entity: Struct, table: Table) -> Function:
    pk_args: str = ", ".join(_entity_args(table.primary_key_columns))
    existing: str = "    update(conn, entity)" if table.non_primary_key_columns else "    pass"
    return (
        Function("upsert", parameters=(CONN_PARAM,))
        .with_parameter("entity", entity.name)
        .with_body(
            f"if exists(conn, {pk_args}):",
            existing,
            "else:",
            "    insert(conn, entity)",
        )
    )


def emit_table(table: Table) -> SourceFile:
    """
    The per-table module.

    Same function set as the Go backend, in snake_case and without the
    entity prefix (the module name already carries the table).
    """
    entity: Struct = emit_entity(table)
    imports: List[Import] = [DATACLASS]
    if entity.fields:
        imports.append(DATACLASSES)
    source: SourceFile = SourceFile(table.name).with_import(*imports).with_struct(entity)

    if not table.columns:
        logger.warning("Table %s has no columns; emitting the entity only.", table.qualified_name)
        return source

    functions: List[Function] = [
        _scan_row(entity),
        _scan_rows(entity),
        _select_all(entity, table),
    ]
    if table.primary_key_columns:
        functions.append(_select_by_pk(entity, table))
    for column in table.non_primary_key_columns:
        functions.append(_select_by_column(entity, table, column, [f.name for f in functions]))
    functions.append(_insert(entity, table))
    if table.primary_key_columns:
        if table.non_primary_key_columns:
            functions.append(_update(entity, table))
        functions.append(_delete(table))
        if not table.has_auto_increment:
            functions.append(_exists(table))
            functions.append(_upsert(entity, table))

    source = source.with_import(CONNECTION)
    for function in functions:
        source = source.with_function(function)

    logger.debug("Python table %s: %d function(s).", table.qualified_name, len(functions))
    return _with_annotation_imports(source)


# ---------------------------------------------------------------------------
# Custom queries
# ---------------------------------------------------------------------------


def _record_struct(shape: ResultShape) -> Struct:
    return Struct(shape.record_name or "").with_fields(
        Field(
            name=safe_python_identifier(c.key),
            type=python_type(c.db_type),
            nullable=c.nullable,
            serialization_key=c.key,
        )
        for c in shape.columns
    )


def _custom_query_function(query: CustomQuery, shape: ResultShape) -> Function:
    params: List[Parameter] = [
        Parameter(python_parameter_name(p.name), p.type) for p in query.parameters
    ]
    function = Function(query.name, parameters=(CONN_PARAM,)).with_parameters(params)
    execute: str = f"    {_execute(query.sql_text, [p.name for p in params])}"

    if shape.kind is ResultKind.NONE:
        return function.with_body("with conn.cursor() as cur:", execute)

    one: bool = query.cardinality == Cardinality.ONE
    fetch: List[str] = [
        "with conn.cursor() as cur:",
        execute,
        "    row = cur.fetchone()" if one else "    rows = cur.fetchall()",
    ]

    if shape.kind is ResultKind.ENTITY:
        module: str = shape.table.name
        entity: str = f"{module}.{to_pascal_case(module)}"
        if one:
            return (
                function.with_return(f"Optional[{entity}]")
                .with_body(*fetch, f"return {module}.scan_row(row) if row is not None else None")
            )
        return function.with_return(f"List[{entity}]").with_body(
            *fetch, f"return {module}.scan_rows(rows)"
        )

    if shape.kind is ResultKind.SCALAR:
        value_type: str = python_type(shape.scalar.db_type)
        if one:
            return function.with_return(f"Optional[{value_type}]").with_body(
                *fetch, "return row[0] if row is not None else None"
            )
        value_type = _optional(value_type, shape.scalar.nullable)
        return function.with_return(f"List[{value_type}]").with_body(
            *fetch, "return [row[0] for row in rows]"
        )

    record: str = shape.record_name or ""
    keys: List[str] = [safe_python_identifier(c.key) for c in shape.columns]
    if one:
        return function.with_return(f"Optional[{record}]").with_body(
            *fetch,
            "if row is None:",
            "    return None",
            *_constructor(f"return {record}", keys),
        )
    return function.with_return(f"List[{record}]").with_body(
        *fetch,
        "return [",
        *_constructor(record, keys, indent="    "),
        "    for row in rows",
        "]",
    )


def emit_custom_queries(queries: Sequence[CustomQuery], metadata: Metadata) -> Optional[SourceFile]:
    """``custom_queries``: one function per query, ``None`` when there are none."""
    if not queries:
        return None

    source: SourceFile = SourceFile("custom_queries")
    structs: List[Struct] = []
    functions: List[Function] = []
    for query in queries:
        shape: ResultShape = resolve_result_shape(query, metadata)
        if shape.kind is ResultKind.RECORD:
            structs.append(_record_struct(shape))
        elif shape.kind is ResultKind.ENTITY:
            source = source.with_import(Import(".", shape.table.name))
        functions.append(_custom_query_function(query, shape))

    if structs:
        source = source.with_import(DATACLASS)
        if any(s.fields for s in structs):
            source = source.with_import(DATACLASSES)
    source = source.with_import(CONNECTION)
    for struct in structs:
        source = source.with_struct(struct)
    for function in functions:
        source = source.with_function(function)

    logger.info("Python custom queries: %d function(s).", len(functions))
    return _with_annotation_imports(source)


__all__: List[str] = [
    "python_parameter_name",
    "emit_init",
    "emit_connector",
    "emit_entity",
    "emit_table",
    "emit_custom_queries",
]

logger.debug("dtogen.emit_python loaded.")
