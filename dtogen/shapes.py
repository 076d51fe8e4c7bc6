# File: dtogen/shapes.py
"""
dtogen - Custom Query Result Shapes
====================================
Infers what a custom query returns, independent of the target language.

    cardinality 0                        → NONE    (nothing is read)
    projection ``table.*`` alone         → ENTITY  (that table's entity)
    exactly one resolved column          → SCALAR
    empty projection, cardinality 1 / N  → SCALAR  (first column, bigint)
    anything else                        → RECORD  (``<Name>Result`` type)

Table references are resolved through ``Metadata`` and must exist; an
unknown table or column raises ``GenerationError``.  References are
checked for every cardinality, including ``0``.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from dtogen.errors import GenerationError
from dtogen.models import Cardinality, CustomQuery, Metadata, ProjectionColumn, Table
from dtogen.utils import to_pascal_case

logger: logging.Logger = logging.getLogger("dtogen.shapes")

# Type of the implicit column read by an empty projection (``count(*)``).
IMPLICIT_SCALAR_TYPE: str = "bigint"


class ResultKind(str, Enum):
    NONE = "none"
    SCALAR = "scalar"
    ENTITY = "entity"
    RECORD = "record"


@dataclass(frozen=True, slots=True)
class ResultColumn:
    """
    One resolved result column.

    ``key`` is unique within the shape: the column name, or
    ``<table>_<column>`` when two projected columns share a name.
    ``db_type`` is a catalog type for table references and the declared
    type for computed columns; both go through the type mapping table.
    """

    key: str
    column: str
    db_type: str
    nullable: bool
    table: Optional[str] = None


@dataclass(frozen=True, slots=True)
class ResultShape:
    kind: ResultKind
    columns: Tuple[ResultColumn, ...] = ()
    table: Optional[Table] = None
    record_name: Optional[str] = None

    @property
    def scalar(self) -> ResultColumn:
        return self.columns[0]


def record_name_for(query: CustomQuery) -> str:
    return f"{to_pascal_case(query.name)}Result"


def _lookup_table(query: CustomQuery, metadata: Metadata, name: str) -> Table:
    table: Optional[Table] = metadata.get_table(name)
    if table is None:
        raise GenerationError(f"custom query '{query.name}': unknown table '{name}'")
    return table


def _expand(query: CustomQuery, metadata: Metadata, item: ProjectionColumn) -> List[ResultColumn]:
    if not item.is_reference:
        return [
            ResultColumn(
                key=item.column,
                column=item.column,
                db_type=item.sql_type or "",
                nullable=item.nullable,
            )
        ]

    table: Table = _lookup_table(query, metadata, item.table or "")
    if item.is_wildcard:
        columns = table.columns
    else:
        column = table.get_column(item.column)
        if column is None:
            raise GenerationError(
                f"custom query '{query.name}': unknown column '{item.table}.{item.column}'"
            )
        columns = (column,)

    return [
        ResultColumn(
            key=c.name,
            column=c.name,
            db_type=c.data_type,
            nullable=c.nullable or item.nullable,
            table=table.name,
        )
        for c in columns
    ]


def _disambiguate(query: CustomQuery, columns: List[ResultColumn]) -> Tuple[ResultColumn, ...]:
    counts: Counter = Counter(c.key for c in columns)
    renamed: List[ResultColumn] = []
    for c in columns:
        if counts[c.key] > 1 and c.table is not None:
            c = ResultColumn(
                key=f"{c.table}_{c.column}",
                column=c.column,
                db_type=c.db_type,
                nullable=c.nullable,
                table=c.table,
            )
        renamed.append(c)

    duplicates = [key for key, n in Counter(c.key for c in renamed).items() if n > 1]
    if duplicates:
        raise GenerationError(
            f"custom query '{query.name}': duplicate result column(s) {', '.join(duplicates)}"
        )
    return tuple(renamed)


def resolve_result_shape(query: CustomQuery, metadata: Metadata) -> ResultShape:
    """Resolve *query*'s projection against *metadata* and classify it."""
    resolved: List[ResultColumn] = []
    for item in query.projection:
        resolved.extend(_expand(query, metadata, item))

    if query.cardinality == Cardinality.NONE:
        return ResultShape(kind=ResultKind.NONE)

    if not query.projection:
        implicit = ResultColumn(
            key="value", column="value", db_type=IMPLICIT_SCALAR_TYPE, nullable=False
        )
        return ResultShape(kind=ResultKind.SCALAR, columns=(implicit,))

    if len(query.projection) == 1 and query.projection[0].is_wildcard:
        table: Table = _lookup_table(query, metadata, query.projection[0].table or "")
        if not table.columns:
            raise GenerationError(
                f"custom query '{query.name}': table '{table.name}' has no columns"
            )
        return ResultShape(kind=ResultKind.ENTITY, columns=tuple(resolved), table=table)

    if len(resolved) == 1:
        return ResultShape(kind=ResultKind.SCALAR, columns=tuple(resolved))

    if not resolved:
        raise GenerationError(f"custom query '{query.name}': projection resolves to no columns")

    shape = ResultShape(
        kind=ResultKind.RECORD,
        columns=_disambiguate(query, resolved),
        record_name=record_name_for(query),
    )
    logger.debug("Query %s returns %s with %d field(s).", query.name, shape.record_name, len(shape.columns))
    return shape


__all__: List[str] = [
    "IMPLICIT_SCALAR_TYPE",
    "ResultKind",
    "ResultColumn",
    "ResultShape",
    "record_name_for",
    "resolve_result_shape",
]
