"""
tests/test_exporters.py
Unit tests for dtogen.exporters.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from dtogen.errors import ExportError
from dtogen.exporters import SourceExporter
from dtogen.utils import sha256_hex


class TestSourceExporter:

    def test_extension_must_start_with_dot(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError):
            SourceExporter(tmp_path, "go")

    def test_export_writes_files_in_order(self, tmp_path: Path) -> None:
        manifest = SourceExporter(tmp_path, ".go").export(
            {"users.go": "package shop\n", "db_connector.go": "package shop\n\nfunc Connect() {\n}\n"}
        )
        assert [f.file_name for f in manifest.files] == ["users.go", "db_connector.go"]
        assert manifest.total_files == 2
        assert manifest.total_lines == 5
        assert manifest.files[0].sha256 == sha256_hex("package shop\n")
        assert (tmp_path / "users.go").read_text(encoding="utf-8") == "package shop\n"

    def test_removes_previous_files_of_extension(self, tmp_path: Path) -> None:
        (tmp_path / "old.go").write_text("x", encoding="utf-8")
        (tmp_path / "keep.py").write_text("x", encoding="utf-8")

        manifest = SourceExporter(tmp_path, ".go").export({"new.go": "package shop\n"})

        assert manifest.removed_files == ["old.go"]
        assert not (tmp_path / "old.go").exists()
        assert (tmp_path / "keep.py").exists()

    def test_rejects_paths(self, tmp_path: Path) -> None:
        (tmp_path / "old.go").write_text("x", encoding="utf-8")
        with pytest.raises(ExportError):
            SourceExporter(tmp_path, ".go").export({"../escape.go": "x"})
        assert (tmp_path / "old.go").exists()

    def test_rejects_wrong_extension(self, tmp_path: Path) -> None:
        with pytest.raises(ExportError):
            SourceExporter(tmp_path, ".go").export({"users.py": "x"})

    def test_missing_directory(self, tmp_path: Path) -> None:
        with pytest.raises(ExportError):
            SourceExporter(tmp_path / "absent", ".go").export({"users.go": "x"})

    def test_manifest_to_dict(self, tmp_path: Path) -> None:
        manifest = SourceExporter(tmp_path, ".py").export({"__init__.py": ""})
        data = manifest.to_dict()
        assert data["extension"] == ".py"
        assert data["total_files"] == 1
        assert data["files"][0] == {
            "file_name": "__init__.py",
            "size_bytes": 0,
            "line_count": 0,
            "sha256": sha256_hex(""),
        }
