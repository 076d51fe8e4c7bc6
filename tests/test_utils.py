"""
tests/test_utils.py
Unit tests for dtogen.utils.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from dtogen.utils import (
    Timer,
    atomic_write,
    count_lines,
    parameter_name,
    remove_files_with_extension,
    safe_python_identifier,
    sha256_hex,
    to_camel_case,
    to_pascal_case,
)


class TestNaming:

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("users", "Users"),
            ("created_at", "CreatedAt"),
            ("user__id", "UserId"),
            ("_leading", "Leading"),
            ("userID", "UserID"),
            ("order_line_item", "OrderLineItem"),
        ],
    )
    def test_pascal_case(self, name: str, expected: str) -> None:
        assert to_pascal_case(name) == expected

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("id", "id"),
            ("created_at", "createdAt"),
            ("user_ID", "userID"),
            ("a__b", "aB"),
        ],
    )
    def test_camel_case(self, name: str, expected: str) -> None:
        assert to_camel_case(name) == expected

    def test_type_parameter_renamed(self) -> None:
        assert parameter_name("type") == "type1"

    def test_other_parameters_camel_cased(self) -> None:
        assert parameter_name("user_id") == "userId"
        assert parameter_name("types") == "types"

    def test_python_keywords(self) -> None:
        assert safe_python_identifier("class") == "class_"
        assert safe_python_identifier("email") == "email"


class TestMetrics:

    def test_count_lines(self) -> None:
        assert count_lines("") == 0
        assert count_lines("a") == 1
        assert count_lines("a\nb\n") == 2
        assert count_lines("a\nb") == 2

    def test_sha256_is_stable(self) -> None:
        assert sha256_hex("abc") == sha256_hex("abc")
        assert len(sha256_hex("abc")) == 64

    def test_timer(self) -> None:
        with Timer("noop") as timer:
            pass
        assert timer.elapsed >= 0.0
        assert "noop" in repr(timer)


class TestFileHelpers:

    def test_atomic_write(self, tmp_path: Path) -> None:
        target = tmp_path / "out.go"
        size = atomic_write(target, "package shop\n")
        assert size == len(b"package shop\n")
        assert target.read_text(encoding="utf-8") == "package shop\n"
        assert [p.name for p in tmp_path.iterdir()] == ["out.go"]

    def test_atomic_write_replaces(self, tmp_path: Path) -> None:
        target = tmp_path / "out.go"
        target.write_text("old", encoding="utf-8")
        atomic_write(target, "new")
        assert target.read_text(encoding="utf-8") == "new"

    def test_atomic_write_missing_directory(self, tmp_path: Path) -> None:
        with pytest.raises(OSError):
            atomic_write(tmp_path / "missing" / "out.go", "x")

    def test_remove_files_with_extension(self, tmp_path: Path) -> None:
        (tmp_path / "b.go").write_text("", encoding="utf-8")
        (tmp_path / "a.go").write_text("", encoding="utf-8")
        (tmp_path / "db.json").write_text("{}", encoding="utf-8")
        nested = tmp_path / "sub"
        nested.mkdir()
        (nested / "c.go").write_text("", encoding="utf-8")

        removed = remove_files_with_extension(tmp_path, ".go")

        assert [p.name for p in removed] == ["a.go", "b.go"]
        assert (tmp_path / "db.json").exists()
        assert (nested / "c.go").exists()
