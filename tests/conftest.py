"""
tests/conftest.py
Shared fixtures for the dtogen test suite.

No database is needed: catalog rows are plain tuples, fed either straight
into ``join_metadata`` or through ``FakeConnection``, which answers the
resolver's SQLAlchemy ``text()`` statements by identity.  Real file I/O
happens inside pytest's ``tmp_path`` directories.
"""

from __future__ import annotations

import json
import pathlib
import textwrap
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pytest
from sqlalchemy.exc import SQLAlchemyError

from dtogen import resolver
from dtogen.models import Column, Config, ConnectionInfo, ForeignKeyTarget, Metadata, Table


# ---------------------------------------------------------------------------
# Catalog rows (schema "public")
# ---------------------------------------------------------------------------
#
#   users  (id serial pk, email text not null, created_at timestamp null)
#   tags   (name text pk)
#   posts  (id identity pk, user_id int fk → users.id, type text, body text null)
#   audit  (no columns)


TABLE_ROWS: List[Tuple[Any, ...]] = [
    ("public", "users"),
    ("public", "tags"),
    ("public", "posts"),
    ("public", "audit"),
]

# (schema, table, column, data_type, is_nullable, default, ordinal_position)
COLUMN_ROWS: List[Tuple[Any, ...]] = [
    ("public", "users", "id", "integer", "NO", "nextval('users_id_seq'::regclass)", 1),
    ("public", "users", "email", "text", "NO", None, 2),
    ("public", "users", "created_at", "timestamp without time zone", "YES", None, 3),
    ("public", "tags", "name", "text", "NO", None, 1),
    # posts has a gap at ordinal 3 (dropped column)
    ("public", "posts", "id", "bigint", "NO", None, 1),
    ("public", "posts", "user_id", "integer", "NO", None, 2),
    ("public", "posts", "type", "text", "NO", None, 4),
    ("public", "posts", "body", "text", "YES", None, 5),
]

# (schema, table, column, constraint_name, constraint_type)
CONSTRAINT_ROWS: List[Tuple[Any, ...]] = [
    ("public", "users", "id", "users_pkey", "PRIMARY KEY"),
    ("public", "tags", "name", "tags_pkey", "PRIMARY KEY"),
    ("public", "posts", "id", "posts_pkey", "PRIMARY KEY"),
    ("public", "posts", "user_id", "posts_user_id_fkey", "FOREIGN KEY"),
]

# (constraint, schema, table, column, ref schema, ref table, ref column)
FOREIGN_KEY_ROWS: List[Tuple[Any, ...]] = [
    ("posts_user_id_fkey", "public", "posts", "user_id", "public", "users", "id"),
]

# (schema, table, column, classification)
AUTO_INCREMENT_ROWS: List[Tuple[Any, ...]] = [
    ("public", "users", "id", "serial"),
    ("public", "users", "email", "not auto increment"),
    ("public", "users", "created_at", "not auto increment"),
    ("public", "tags", "name", "not auto increment"),
    ("public", "posts", "id", "identity"),
    ("public", "posts", "user_id", "not auto increment"),
    ("public", "posts", "type", "not auto increment"),
    ("public", "posts", "body", "not auto increment"),
]


@pytest.fixture()
def catalog_rows() -> Dict[str, List[Tuple[Any, ...]]]:
    """Fresh copies of every catalog result set, keyed by stage."""
    return {
        "tables": list(TABLE_ROWS),
        "columns": list(COLUMN_ROWS),
        "constraints": list(CONSTRAINT_ROWS),
        "foreign keys": list(FOREIGN_KEY_ROWS),
        "auto increment": list(AUTO_INCREMENT_ROWS),
    }


# ---------------------------------------------------------------------------
# Fake SQLAlchemy connection
# ---------------------------------------------------------------------------


class FakeConnection:
    """
    Minimal stand-in for ``sqlalchemy.engine.Connection``.

    ``execute`` matches the statement object against the resolver's query
    constants and returns the configured rows.  ``fail_stage`` makes the
    matching query raise ``SQLAlchemyError``.
    """

    def __init__(
        self,
        rows: Dict[str, List[Tuple[Any, ...]]],
        fail_stage: Optional[str] = None,
    ) -> None:
        self._rows = rows
        self._fail_stage = fail_stage
        self.executed: List[Tuple[str, Dict[str, Any]]] = []

    def execute(self, statement: Any, parameters: Dict[str, Any]) -> List[Tuple[Any, ...]]:
        stages: Sequence[Tuple[Any, str]] = (
            (resolver.TABLES_QUERY, "tables"),
            (resolver.COLUMNS_QUERY, "columns"),
            (resolver.CONSTRAINTS_QUERY, "constraints"),
            (resolver.FOREIGN_KEYS_QUERY, "foreign keys"),
            (resolver.AUTO_INCREMENT_QUERY, "auto increment"),
        )
        for query, stage in stages:
            if statement is query:
                self.executed.append((stage, dict(parameters)))
                if stage == self._fail_stage:
                    raise SQLAlchemyError(f"relation for {stage} does not exist")
                return list(self._rows[stage])
        raise AssertionError(f"unexpected statement: {statement}")


@pytest.fixture()
def fake_connection(catalog_rows: Dict[str, List[Tuple[Any, ...]]]) -> FakeConnection:
    return FakeConnection(catalog_rows)


@pytest.fixture()
def failing_connection_factory(catalog_rows: Dict[str, List[Tuple[Any, ...]]]):
    """Build a connection whose query for the given stage fails."""

    def factory(stage: str) -> FakeConnection:
        return FakeConnection(catalog_rows, fail_stage=stage)

    return factory


# ---------------------------------------------------------------------------
# Metadata fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def users_table() -> Table:
    """Scenario A: id serial pk, email text not null, created_at timestamp null."""
    return Table(
        schema_name="public",
        name="users",
        columns=(
            Column(ordinal=1, name="id", data_type="integer", is_primary_key=True, is_auto_increment=True),
            Column(ordinal=2, name="email", data_type="text"),
            Column(ordinal=3, name="created_at", data_type="timestamp without time zone", nullable=True),
        ),
    )


@pytest.fixture()
def tags_table() -> Table:
    """Scenario B: name text pk, no auto-increment."""
    return Table(
        schema_name="public",
        name="tags",
        columns=(Column(ordinal=1, name="name", data_type="text", is_primary_key=True),),
    )


@pytest.fixture()
def posts_table() -> Table:
    return Table(
        schema_name="public",
        name="posts",
        columns=(
            Column(ordinal=1, name="id", data_type="bigint", is_primary_key=True, is_auto_increment=True),
            Column(
                ordinal=2,
                name="user_id",
                data_type="integer",
                fk_target=ForeignKeyTarget(schema_name="public", table="users", column="id"),
            ),
            Column(ordinal=3, name="type", data_type="text"),
            Column(ordinal=4, name="body", data_type="text", nullable=True),
        ),
    )


@pytest.fixture()
def metadata(users_table: Table, tags_table: Table, posts_table: Table) -> Metadata:
    return Metadata(database="shop", tables=(users_table, tags_table, posts_table))


@pytest.fixture()
def connection_info() -> ConnectionInfo:
    return ConnectionInfo(
        dbms="PostgreSQL",
        host="localhost",
        port=5432,
        username="shop",
        password="secret",
        database="shop",
        schemas=["public"],
    )


# ---------------------------------------------------------------------------
# Descriptor texts
# ---------------------------------------------------------------------------

COUNT_USERS_DESCRIPTOR: str = textwrap.dedent(
    """\
    [query]
    name=count_users
    cardinality=1
    sql=
    SELECT count(*) FROM users
    END
    """
)

FULL_DESCRIPTOR: str = textwrap.dedent(
    """\
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
    SELECT id, email, created_at
      FROM users
     WHERE email LIKE '%' || $1
    END

    [query]
    name=user_post_titles
    cardinality=N
    projection=
    users.id
    posts.id
    posts.body
    post_count bigint NULL
    END
    parameters=
    type string
    END
    sql=
    SELECT u.id, p.id, p.body, count(*) OVER () FROM users u JOIN posts p ON p.user_id = u.id WHERE p.type = $1
    END

    [query]
    name=touch_user
    cardinality=0
    parameters=
    id int32
    END
    sql=
    UPDATE users SET created_at = now() WHERE id = $1
    END
    """
)


# ---------------------------------------------------------------------------
# Target directory fixtures
# ---------------------------------------------------------------------------


def make_config_dict(language: str = "go", **connection: Any) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "language": language,
        "connection": {
            "dbms": "PostgreSQL",
            "host": "localhost",
            "port": 5432,
            "username": "shop",
            "password": "secret",
            "database": "shop",
            "schemas": ["public"],
        },
    }
    data["connection"].update(connection)
    return data


@pytest.fixture()
def config_dict() -> Dict[str, Any]:
    return make_config_dict()


@pytest.fixture()
def go_config() -> Config:
    return Config.model_validate(make_config_dict("go"))


@pytest.fixture()
def python_config() -> Config:
    return Config.model_validate(make_config_dict("python"))


@pytest.fixture()
def shop_dir(tmp_path: pathlib.Path, config_dict: Dict[str, Any]) -> pathlib.Path:
    """``<tmp>/shop`` holding a Go ``db.json``."""
    path = tmp_path / "shop"
    path.mkdir()
    (path / "db.json").write_text(json.dumps(config_dict, indent=2), encoding="utf-8")
    return path


@pytest.fixture()
def config_factory():
    """``make_config_dict`` for tests that need a variant of ``db.json``."""
    return make_config_dict


@pytest.fixture()
def count_users_descriptor() -> str:
    return COUNT_USERS_DESCRIPTOR


@pytest.fixture()
def full_descriptor() -> str:
    return FULL_DESCRIPTOR
