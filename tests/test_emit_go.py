"""
tests/test_emit_go.py
Unit tests for dtogen.emit_go, checked through the rendered Go text.

Tests cover:
- entity structs and per-table function sets
- INSERT / UPDATE / EXISTS / UPSERT variants by key shape
- the connector file
- custom query signatures per result shape and cardinality
"""

from __future__ import annotations

import re
from typing import List

import pytest

from dtogen.custom_queries import parse_custom_queries
from dtogen.emit_go import FMT, emit_connector, emit_custom_queries, emit_table, go_parameter_name
from dtogen.errors import GenerationError
from dtogen.ir import Import, SourceFile
from dtogen.models import Column, ConnectionInfo, Metadata, Table
from dtogen.renderers import GoRenderer


def _render(source: SourceFile) -> str:
    return GoRenderer("shop").render(source)


def _function_names(source: SourceFile) -> List[str]:
    return [f.name for f in source.functions]


# ===========================================================================
# Per-table files
# ===========================================================================


class TestAutoIncrementTable:
    """users: id serial pk, email, created_at nullable."""

    def test_entity(self, users_table: Table) -> None:
        text = _render(emit_table(users_table))
        assert (
            "type Users struct {\n"
            '    Id int32 `json:"id"`\n'
            '    Email string `json:"email"`\n'
            '    CreatedAt *time.Time `json:"created_at"`\n'
            "}"
        ) in text

    def test_function_set(self, users_table: Table) -> None:
        assert _function_names(emit_table(users_table)) == [
            "UsersScanRow",
            "UsersScanRows",
            "UsersSelectAll",
            "UsersSelectByPK",
            "UsersSelectByEmail",
            "UsersSelectByCreatedAt",
            "UsersInsert",
            "UsersUpdate",
            "UsersDelete",
        ]

    def test_insert_skips_auto_increment_and_returns_it(self, users_table: Table) -> None:
        text = _render(emit_table(users_table))
        assert (
            "err := conn.QueryRow(context.Background(), "
            "`INSERT INTO public.users (email, created_at) VALUES ($1, $2) RETURNING id`, "
            "entity.Email, entity.CreatedAt).Scan(&entity.Id)"
        ) in text

    def test_update_sets_non_key_columns(self, users_table: Table) -> None:
        text = _render(emit_table(users_table))
        assert (
            "`UPDATE public.users SET email = $1, created_at = $2 WHERE id = $3`, "
            "entity.Email, entity.CreatedAt, entity.Id)"
        ) in text

    def test_select_all_is_paged_and_ordered(self, users_table: Table) -> None:
        text = _render(emit_table(users_table))
        assert "func UsersSelectAll(conn *pgx.Conn, limit int, offset int) ([]Users, error) {" in text
        assert "`SELECT id, email, created_at FROM public.users ORDER BY id LIMIT $1 OFFSET $2`" in text

    def test_select_by_pk(self, users_table: Table) -> None:
        text = _render(emit_table(users_table))
        assert "func UsersSelectByPK(conn *pgx.Conn, id int32) (*Users, error) {" in text
        assert "return UsersScanRow(row)" in text

    def test_imports(self, users_table: Table) -> None:
        imports = emit_table(users_table).imports
        assert Import("time") in imports
        assert Import("context") in imports
        assert Import("github.com/jackc/pgx/v5") in imports

    def test_scan_order_matches_select_order(self, posts_table: Table) -> None:
        text = _render(emit_table(posts_table))
        scanned = re.findall(r"&entity\.(\w+),", text)
        assert scanned == ["Id", "UserId", "Type", "Body"]
        assert "SELECT id, user_id, type, body FROM public.posts" in text

    def test_type_parameter_renamed(self, posts_table: Table) -> None:
        text = _render(emit_table(posts_table))
        assert "func PostsSelectByType(conn *pgx.Conn, type1 string) ([]Posts, error) {" in text
        assert "func PostsSelectByUserId(conn *pgx.Conn, userId int32) ([]Posts, error) {" in text

    def test_errors_are_wrapped(self, users_table: Table) -> None:
        assert 'fmt.Errorf("UsersInsert: %w", err)' in _render(emit_table(users_table))


class TestNaturalKeyTable:
    """tags: name text pk, nothing auto-incremented."""

    def test_function_set(self, tags_table: Table) -> None:
        assert _function_names(emit_table(tags_table)) == [
            "TagsScanRow",
            "TagsScanRows",
            "TagsSelectAll",
            "TagsSelectByPK",
            "TagsInsert",
            "TagsDelete",
            "TagsExists",
            "TagsUpsert",
        ]

    def test_insert_lists_every_column(self, tags_table: Table) -> None:
        text = _render(emit_table(tags_table))
        assert (
            "_, err := conn.Exec(context.Background(), "
            "`INSERT INTO public.tags (name) VALUES ($1)`, entity.Name)"
        ) in text

    def test_exists(self, tags_table: Table) -> None:
        text = _render(emit_table(tags_table))
        assert "func TagsExists(conn *pgx.Conn, name string) (bool, error) {" in text
        assert "`SELECT EXISTS(SELECT 1 FROM public.tags WHERE name = $1)`" in text

    def test_upsert_without_other_columns(self, tags_table: Table) -> None:
        text = _render(emit_table(tags_table))
        assert "exists, err := TagsExists(conn, entity.Name)" in text
        assert "if exists {\n        return nil\n    }\n    return TagsInsert(conn, entity)" in text

    def test_upsert_updates_when_row_exists(self) -> None:
        labels = Table(
            schema_name="public",
            name="labels",
            columns=(
                Column(ordinal=1, name="code", data_type="text", is_primary_key=True),
                Column(ordinal=2, name="title", data_type="text"),
            ),
        )
        text = _render(emit_table(labels))
        assert "if exists {\n        return LabelsUpdate(conn, entity)\n    }" in text
        assert "func LabelsUpdate(conn *pgx.Conn, entity *Labels) error {" in text


class TestOtherTableShapes:

    def test_no_primary_key(self) -> None:
        events = Table(
            schema_name="public",
            name="events",
            columns=(Column(ordinal=1, name="payload", data_type="jsonb"),),
        )
        source = emit_table(events)
        assert _function_names(source) == [
            "EventsScanRow",
            "EventsScanRows",
            "EventsSelectAll",
            "EventsSelectByPayload",
            "EventsInsert",
        ]
        assert "`SELECT payload FROM public.events LIMIT $1 OFFSET $2`" in _render(source)

    def test_composite_primary_key(self) -> None:
        memberships = Table(
            schema_name="public",
            name="memberships",
            columns=(
                Column(ordinal=1, name="user_id", data_type="integer", is_primary_key=True),
                Column(ordinal=2, name="group_id", data_type="integer", is_primary_key=True),
                Column(ordinal=3, name="role", data_type="text"),
            ),
        )
        text = _render(emit_table(memberships))
        assert "func MembershipsDelete(conn *pgx.Conn, userId int32, groupId int32) error {" in text
        assert "WHERE user_id = $1 AND group_id = $2" in text
        assert "`UPDATE public.memberships SET role = $1 WHERE user_id = $2 AND group_id = $3`" in text

    def test_only_auto_increment_column(self) -> None:
        counters = Table(
            schema_name="public",
            name="counters",
            columns=(
                Column(ordinal=1, name="id", data_type="bigint", is_primary_key=True, is_auto_increment=True),
            ),
        )
        source = emit_table(counters)
        assert "CountersUpdate" not in _function_names(source)
        assert "CountersDelete" in _function_names(source)
        assert "`INSERT INTO public.counters DEFAULT VALUES RETURNING id`" in _render(source)

    def test_table_without_columns(self) -> None:
        source = emit_table(Table(schema_name="public", name="audit"))
        assert source.functions == ()
        assert _render(source) == "package shop\n\ntype Audit struct {\n}\n"

    def test_unknown_type_passes_through(self) -> None:
        docs = Table(
            schema_name="public",
            name="docs",
            columns=(Column(ordinal=1, name="body", data_type="tsvector"),),
        )
        assert '    Body tsvector `json:"body"`' in _render(emit_table(docs))

    def test_pgtype_import(self) -> None:
        slots = Table(
            schema_name="public",
            name="slots",
            columns=(Column(ordinal=1, name="starts", data_type="time without time zone"),),
        )
        assert Import("github.com/jackc/pgx/v5/pgtype") in emit_table(slots).imports


def _text_table(name: str, *columns: str) -> Table:
    return Table(
        schema_name="public",
        name=name,
        columns=tuple(
            Column(ordinal=i, name=column, data_type="text", is_primary_key=(i == 1))
            for i, column in enumerate(columns, start=1)
        ),
    )


class TestAwkwardColumnNames:

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("type", "type1"),
            ("user_id", "userId"),
            ("conn", "conn_"),
            ("err", "err_"),
            ("row", "row_"),
            ("select", "select_"),
            ("fmt", "fmt_"),
        ],
    )
    def test_go_parameter_name(self, name: str, expected: str) -> None:
        assert go_parameter_name(name) == expected

    def test_reserved_and_mixed_case_columns_are_quoted(self) -> None:
        orders = Table(
            schema_name="public",
            name="orders",
            columns=(
                Column(ordinal=1, name="id", data_type="integer", is_primary_key=True),
                Column(ordinal=2, name="order", data_type="integer"),
                Column(ordinal=3, name="createdAt", data_type="text"),
            ),
        )
        text = _render(emit_table(orders))
        assert '`SELECT id, "order", "createdAt" FROM public.orders ORDER BY id LIMIT $1 OFFSET $2`' in text
        assert '`SELECT id, "order", "createdAt" FROM public.orders WHERE "order" = $1`' in text
        assert '`UPDATE public.orders SET "order" = $1, "createdAt" = $2 WHERE id = $3`' in text
        assert "func OrdersSelectByOrder(conn *pgx.Conn, order int32) ([]Orders, error) {" in text

    def test_reserved_table_name_is_quoted(self) -> None:
        text = _render(emit_table(_text_table("user", "id", "name")))
        assert '`DELETE FROM public."user" WHERE id = $1`' in text

    def test_parameter_does_not_shadow_conn(self) -> None:
        text = _render(emit_table(_text_table("sessions", "id", "conn")))
        assert "func SessionsSelectByConn(conn *pgx.Conn, conn_ string) ([]Sessions, error) {" in text
        assert "WHERE conn = $1`, conn_)" in text

    def test_primary_key_named_err(self) -> None:
        text = _render(emit_table(_text_table("codes", "err", "label")))
        assert "func CodesDelete(conn *pgx.Conn, err_ string) error {" in text
        assert "func CodesExists(conn *pgx.Conn, err_ string) (bool, error) {" in text

    def test_select_by_column_names_stay_unique(self) -> None:
        names = _function_names(emit_table(_text_table("keys", "id", "p_k")))
        assert len(names) == len(set(names))
        assert names[3:5] == ["KeysSelectByPK", "KeysSelectByPK_"]

    def test_custom_query_parameter_named_row(self, metadata: Metadata) -> None:
        descriptor = (
            "[query]\nname=by_row\ncardinality=1\nprojection=\nusers.*\nEND\n"
            "parameters=\nrow int64\nEND\nsql=\nSELECT * FROM users WHERE id = $1\nEND\n"
        )
        text = _render(emit_custom_queries(parse_custom_queries(descriptor), metadata))
        assert "func by_row(conn *pgx.Conn, row_ int64) (*Users, error) {" in text
        assert "row := conn.QueryRow(context.Background(), `SELECT * FROM users WHERE id = $1`, row_)" in text


# ===========================================================================
# Connector
# ===========================================================================


class TestConnector:

    def test_connect_and_disconnect(self, connection_info: ConnectionInfo) -> None:
        text = _render(emit_connector(connection_info))
        assert "func Connect(connectionUrl *string) (*pgx.Conn, error) {" in text
        assert 'defaultUrl := "host=localhost port=5432 user=shop password=secret dbname=shop"' in text
        assert "conn, err := pgx.Connect(context.Background(), *connectionUrl)" in text
        assert "func Disconnect(connection *pgx.Conn) {\n    connection.Close(context.Background())\n}" in text

    def test_file_name(self, connection_info: ConnectionInfo) -> None:
        assert emit_connector(connection_info).name == "db_connector"


# ===========================================================================
# Custom queries
# ===========================================================================


class TestCustomQueries:

    def test_none_when_no_queries(self, metadata: Metadata) -> None:
        assert emit_custom_queries([], metadata) is None

    def test_count_users(self, metadata: Metadata, count_users_descriptor: str) -> None:
        source = emit_custom_queries(parse_custom_queries(count_users_descriptor), metadata)
        text = _render(source)
        assert source.name == "custom_queries"
        assert "func count_users(conn *pgx.Conn) (int64, error) {" in text
        assert "var result int64" in text
        assert "err := conn.QueryRow(context.Background(), `SELECT count(*) FROM users`).Scan(&result)" in text

    def test_full_descriptor_signatures(self, metadata: Metadata, full_descriptor: str) -> None:
        text = _render(emit_custom_queries(parse_custom_queries(full_descriptor), metadata))
        assert "func users_by_domain(conn *pgx.Conn, domain string) ([]Users, error) {" in text
        assert "return UsersScanRows(rows)" in text
        assert "func user_post_titles(conn *pgx.Conn, type1 string) ([]UserPostTitlesResult, error) {" in text
        assert "func touch_user(conn *pgx.Conn, id int32) error {" in text

    def test_record_struct(self, metadata: Metadata, full_descriptor: str) -> None:
        text = _render(emit_custom_queries(parse_custom_queries(full_descriptor), metadata))
        assert (
            "type UserPostTitlesResult struct {\n"
            '    UsersId int32 `json:"users_id"`\n'
            '    PostsId int64 `json:"posts_id"`\n'
            '    Body *string `json:"body"`\n'
            '    PostCount *int64 `json:"post_count"`\n'
            "}"
        ) in text
        assert "rows.Scan(&result.UsersId, &result.PostsId, &result.Body, &result.PostCount)" in text

    def test_sql_is_verbatim(self, metadata: Metadata, full_descriptor: str) -> None:
        text = _render(emit_custom_queries(parse_custom_queries(full_descriptor), metadata))
        assert "`SELECT id, email, created_at\n  FROM users\n WHERE email LIKE '%' || $1`, domain)" in text

    @pytest.mark.parametrize(
        "cardinality, projection, signature",
        [
            ("1", "users.*", "(*Users, error)"),
            ("N", "users.*", "([]Users, error)"),
            ("1", "users.email", "(string, error)"),
            ("N", "users.email", "([]string, error)"),
            ("1", "users.created_at", "(*time.Time, error)"),
            ("1", "users.id\nusers.email", "(*FindResult, error)"),
            ("0", "users.*", "error"),
        ],
    )
    def test_signature_per_shape(
        self, metadata: Metadata, cardinality: str, projection: str, signature: str
    ) -> None:
        text = (
            "[query]\nname=find\ncardinality=" + cardinality
            + "\nprojection=\n" + projection + "\nEND\nsql=\nSELECT 1\nEND\n"
        )
        rendered = _render(emit_custom_queries(parse_custom_queries(text), metadata))
        assert f"func find(conn *pgx.Conn) {signature} {{" in rendered

    def test_fmt_only_imported_when_used(self, metadata: Metadata) -> None:
        text = "[query]\nname=one_user\ncardinality=1\nprojection=\nusers.*\nEND\nsql=\nSELECT 1\nEND\n"
        source = emit_custom_queries(parse_custom_queries(text), metadata)
        assert FMT not in source.imports

    def test_unknown_reference(self, metadata: Metadata) -> None:
        text = "[query]\nname=ghosts\ncardinality=N\nprojection=\nghost.*\nEND\n"
        with pytest.raises(GenerationError, match="unknown table 'ghost'"):
            emit_custom_queries(parse_custom_queries(text), metadata)

    def test_declared_parameter_type_passes_through(self, metadata: Metadata) -> None:
        text = "[query]\nname=by_ids\ncardinality=N\nprojection=\nusers.*\nEND\nparameters=\nids []int32\nEND\n"
        rendered = _render(emit_custom_queries(parse_custom_queries(text), metadata))
        assert "func by_ids(conn *pgx.Conn, ids []int32) ([]Users, error) {" in rendered
