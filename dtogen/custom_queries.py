# File: dtogen/custom_queries.py
"""
dtogen - Custom Query Descriptor Parser
========================================
Parses ``custom_queries.conf``: hand-authored, parameterised SQL with
declared inputs and outputs.

File format::

    [query]
    name=users_by_domain
    cardinality=N
    projection=
    users.*
    END
    parameters=
    domain string
    END
    sql=
    SELECT * FROM users WHERE email LIKE '%' || $1
    END

Blank lines are dropped, the remaining lines are split into chunks at
each ``[query]`` header, and each chunk is parsed on its own by a small
state machine (top level, projection, parameters, SQL).  Lines inside
``sql=`` are kept verbatim; every other line is compared after trimming.

The parser is strict: an unknown top-level line, a bad cardinality, or a
malformed projection/parameter line fails the whole file.  A missing
file is not an error and yields no queries.
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Optional, Set

from dtogen.errors import DescriptorParseError
from dtogen.models import Cardinality, CustomQuery, ProjectionColumn, QueryParameter

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("dtogen.custom_queries")

DESCRIPTOR_FILENAME: str = "custom_queries.conf"
QUERY_HEADER: str = "[query]"
SECTION_END: str = "END"
NULL_MARKER: str = "NULL"

_VALID_CARDINALITIES: Set[str] = {c.value for c in Cardinality}


class _State(Enum):
    TOP = "top"
    PROJECTION = "projection"
    PARAMETERS = "parameters"
    SQL = "sql"


_SECTION_KEYS = {
    "projection": _State.PROJECTION,
    "parameters": _State.PARAMETERS,
    "sql": _State.SQL,
}


# ---------------------------------------------------------------------------
# Chunking
# ---------------------------------------------------------------------------


def split_chunks(lines: Iterable[str]) -> List[List[str]]:
    """
    Group non-blank lines into chunks that start at a ``[query]`` header.

    Lines before the first header form a chunk of their own.  A chunk
    holding nothing but its header is dropped.
    """
    chunks: List[List[str]] = []
    current: List[str] = []
    for line in lines:
        if not line.strip():
            continue
        if line.strip().startswith(QUERY_HEADER):
            if current:
                chunks.append(current)
            current = [line]
        else:
            current.append(line)
    if current:
        chunks.append(current)

    return [chunk for chunk in chunks if any(not _is_header(line) for line in chunk)]


def _is_header(line: str) -> bool:
    return line.strip().startswith(QUERY_HEADER)


# ---------------------------------------------------------------------------
# Line parsers
# ---------------------------------------------------------------------------


def parse_projection_line(line: str, *, chunk: Optional[int] = None) -> ProjectionColumn:
    """
    ``table.column`` / ``table.*`` or ``name sql type``, optionally
    followed by a ``NULL`` token.
    """
    text: str = line.strip()
    nullable: bool = False

    tokens: List[str] = text.split()
    if len(tokens) > 1 and tokens[-1] == NULL_MARKER:
        nullable = True
        text = text[: -len(NULL_MARKER)].rstrip()

    parts: List[str] = text.split(None, 1)
    if len(parts) == 1:
        table, dot, column = parts[0].partition(".")
        if not dot or not table or not column or "." in column:
            raise DescriptorParseError(
                f"invalid projection column: {line}", chunk=chunk, line=line
            )
        return ProjectionColumn(table=table, column=column, nullable=nullable)
    if len(parts) == 2:
        return ProjectionColumn(column=parts[0], sql_type=parts[1], nullable=nullable)

    raise DescriptorParseError(f"invalid projection column: {line}", chunk=chunk, line=line)


def parse_parameter_line(line: str, *, chunk: Optional[int] = None) -> QueryParameter:
    """``name type``; the type is everything after the first whitespace run."""
    parts: List[str] = line.strip().split(None, 1)
    if len(parts) != 2:
        raise DescriptorParseError(f"invalid parameter value: {line}", chunk=chunk, line=line)
    return QueryParameter(name=parts[0], type=parts[1].strip())


# ---------------------------------------------------------------------------
# Chunk parser
# ---------------------------------------------------------------------------


def parse_query(chunk: List[str], index: int) -> CustomQuery:
    """Run the state machine over one chunk (``index`` is 1-based)."""
    name: Optional[str] = None
    cardinality: Optional[str] = None
    projection: List[ProjectionColumn] = []
    parameters: List[QueryParameter] = []
    sql: List[str] = []

    state: _State = _State.TOP
    for line in chunk:
        trimmed: str = line.strip()

        if state is not _State.TOP:
            if trimmed == SECTION_END:
                state = _State.TOP
            elif state is _State.PROJECTION:
                projection.append(parse_projection_line(line, chunk=index))
            elif state is _State.PARAMETERS:
                parameters.append(parse_parameter_line(line, chunk=index))
            else:
                sql.append(line)
            continue

        if trimmed.startswith(QUERY_HEADER):
            continue

        key, sep, value = trimmed.partition("=")
        if not sep:
            raise DescriptorParseError(f"unexpected line: {line}", chunk=index, line=line)

        if key == "name":
            name = value.strip()
            if not name:
                raise DescriptorParseError("empty query name", chunk=index, line=line)
        elif key == "cardinality":
            cardinality = value.strip()
            if cardinality not in _VALID_CARDINALITIES:
                raise DescriptorParseError(
                    f"invalid cardinality value: {cardinality}", chunk=index, line=line
                )
        elif key in _SECTION_KEYS:
            state = _SECTION_KEYS[key]
        else:
            raise DescriptorParseError(f"unexpected line: {line}", chunk=index, line=line)

    if state is not _State.TOP:
        logger.warning("Query #%d: '%s' section is not closed by END.", index, state.value)

    if name is None:
        raise DescriptorParseError("missing 'name=' directive", chunk=index)
    if cardinality is None:
        raise DescriptorParseError(f"missing 'cardinality=' directive for '{name}'", chunk=index)

    query = CustomQuery(
        name=name,
        cardinality=Cardinality(cardinality),
        projection=tuple(projection),
        parameters=tuple(parameters),
        sql=tuple(sql),
    )
    logger.debug("Parsed %r", query)
    return query


# ---------------------------------------------------------------------------
# File-level entry points
# ---------------------------------------------------------------------------


def parse_custom_queries(text: str) -> List[CustomQuery]:
    """Parse descriptor *text* into queries, in file order."""
    queries: List[CustomQuery] = []
    seen: Set[str] = set()
    for index, chunk in enumerate(split_chunks(text.splitlines()), start=1):
        query: CustomQuery = parse_query(chunk, index)
        if query.name in seen:
            raise DescriptorParseError(f"duplicate query name: {query.name}", chunk=index)
        seen.add(query.name)
        queries.append(query)

    logger.info("Parsed %d custom quer%s.", len(queries), "y" if len(queries) == 1 else "ies")
    return queries


def read_custom_queries(path: Path) -> List[CustomQuery]:
    """Read and parse *path*; a missing file yields an empty list."""
    path = Path(path)
    if not path.is_file():
        logger.info("No custom query descriptor at %s.", path)
        return []

    try:
        text: str = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise DescriptorParseError(f"cannot read {path}: {exc}") from exc
    except UnicodeDecodeError as exc:
        raise DescriptorParseError(f"{path} is not valid UTF-8: {exc}") from exc

    return parse_custom_queries(text)


__all__: List[str] = [
    "DESCRIPTOR_FILENAME",
    "split_chunks",
    "parse_projection_line",
    "parse_parameter_line",
    "parse_query",
    "parse_custom_queries",
    "read_custom_queries",
]

logger.debug("dtogen.custom_queries loaded.")
