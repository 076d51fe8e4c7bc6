# File: dtogen/renderers.py
"""
dtogen - IR Renderers
======================
Serialise a ``SourceFile`` into target-language text.

Renderers only print declarations and paste function bodies; they never
add imports or statements on their own.  Output is deterministic: the
same IR always renders to the same bytes, which makes regeneration
idempotent.

String assembly follows the ``List[str]`` + ``"\\n".join()`` pattern.
"""

from __future__ import annotations

import json
import logging
from typing import Dict, List, Tuple

from sqlalchemy.dialects.postgresql.base import PGDialect

from dtogen.ir import Field, Function, Import, Parameter, SourceFile, Struct

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("dtogen.renderers")

_INDENT: str = "    "

_PG_PREPARER = PGDialect().identifier_preparer


# ---------------------------------------------------------------------------
# Literal helpers used by the emitters
# ---------------------------------------------------------------------------


def sql_identifier(name: str) -> str:
    """
    PostgreSQL identifier, double-quoted only when it has to be.

    Reserved words such as ``order`` and anything that is not a plain
    lower-case name (``createdAt``) get quotes.
    """
    return _PG_PREPARER.quote(name)


def sql_table_name(schema: str, name: str) -> str:
    """``schema.table`` with each part passed through :func:`sql_identifier`."""
    return f"{sql_identifier(schema)}.{sql_identifier(name)}"


def go_quote(text: str) -> str:
    """Go interpreted string literal (``"..."``)."""
    return json.dumps(text, ensure_ascii=False)


def go_sql_literal(text: str) -> str:
    """Raw (backtick) literal for SQL, unless the SQL itself holds a backtick."""
    if "`" in text:
        return go_quote(text)
    return f"`{text}`"


def python_quote(text: str) -> str:
    """Python string literal, double-quoted."""
    return json.dumps(text, ensure_ascii=False)


def python_sql_literal(text: str) -> str:
    """Triple-quoted literal for multi-line SQL, a plain literal otherwise."""
    if "\n" not in text:
        return python_quote(text)
    if '"""' in text or "\\" in text or text.endswith('"'):
        return python_quote(text)
    return f'"""{text}"""'


# ---------------------------------------------------------------------------
# Go
# ---------------------------------------------------------------------------


class GoRenderer:
    """Renders IR as a Go source file belonging to ``package``."""

    extension: str = ".go"

    def __init__(self, package: str) -> None:
        self._package: str = package

    def render(self, source: SourceFile) -> str:
        blocks: List[str] = [f"package {self._package}"]

        if source.imports:
            lines: List[str] = ["import ("]
            for imp in source.imports:
                if imp.name:
                    lines.append(f'{_INDENT}{imp.name} "{imp.module}"')
                else:
                    lines.append(f'{_INDENT}"{imp.module}"')
            lines.append(")")
            blocks.append("\n".join(lines))

        blocks.extend(self._render_struct(s) for s in source.structs)
        blocks.extend(self._render_function(f) for f in source.functions)

        logger.debug(
            "Rendered %s.go: %d structs, %d funcs.",
            source.name,
            len(source.structs),
            len(source.functions),
        )
        return "\n\n".join(blocks) + "\n"

    @staticmethod
    def _field_type(field: Field) -> str:
        return f"*{field.type}" if field.nullable else field.type

    def _render_struct(self, struct: Struct) -> str:
        lines: List[str] = [f"type {struct.name} struct {{"]
        for field in struct.fields:
            line: str = f"{_INDENT}{field.name} {self._field_type(field)}"
            if field.serialization_key is not None:
                line += f' `json:"{field.serialization_key}"`'
            lines.append(line)
        lines.append("}")
        return "\n".join(lines)

    def _render_function(self, function: Function) -> str:
        params: str = ", ".join(f"{p.name} {p.type}" for p in function.parameters)
        signature: str = f"func {function.name}({params})"

        returns: List[str] = [r.type for r in function.returns]
        if len(returns) == 1:
            signature += f" {returns[0]}"
        elif returns:
            signature += f" ({', '.join(returns)})"

        lines: List[str] = [f"{signature} {{"]
        lines.extend(f"{_INDENT}{stmt}" if stmt else "" for stmt in function.body)
        lines.append("}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Python
# ---------------------------------------------------------------------------


class PythonRenderer:
    """
    Renders IR as a Python module.

    Structs become ``@dataclass`` classes.  Functions return nothing,
    a single value, or a ``Tuple[...]`` of their return slots.
    """

    extension: str = ".py"

    def render(self, source: SourceFile) -> str:
        blocks: List[str] = []

        import_block: str = self._render_imports(source.imports)
        if import_block:
            blocks.append(import_block)

        blocks.extend(self._render_struct(s) for s in source.structs)
        blocks.extend(self._render_function(f) for f in source.functions)

        logger.debug(
            "Rendered %s.py: %d classes, %d funcs.",
            source.name,
            len(source.structs),
            len(source.functions),
        )
        if not blocks:
            return ""
        return "\n\n\n".join(blocks) + "\n"

    @staticmethod
    def _render_imports(imports: Tuple[Import, ...]) -> str:
        """
        ``import m`` lines first, then one ``from m import a, b`` line per
        module, both in first-appearance order.
        """
        plain: List[str] = []
        grouped: Dict[str, List[str]] = {}
        for imp in imports:
            if imp.name is None:
                if imp.module not in plain:
                    plain.append(imp.module)
            else:
                names: List[str] = grouped.setdefault(imp.module, [])
                if imp.name not in names:
                    names.append(imp.name)

        lines: List[str] = [f"import {module}" for module in plain]
        lines.extend(
            f"from {module} import {', '.join(sorted(names))}"
            for module, names in grouped.items()
        )
        return "\n".join(lines)

    @staticmethod
    def _render_struct(struct: Struct) -> str:
        lines: List[str] = ["@dataclass", f"class {struct.name}:"]
        for field in struct.fields:
            annotation: str = f"Optional[{field.type}]" if field.nullable else field.type
            line: str = f"{_INDENT}{field.name}: {annotation}"
            if field.serialization_key is not None:
                line += f" = dataclasses.field(metadata={{{python_quote('column')}: {python_quote(field.serialization_key)}}})"
            lines.append(line)
        if not struct.fields:
            lines.append(f"{_INDENT}pass")
        return "\n".join(lines)

    @staticmethod
    def _render_parameter(param: Parameter) -> str:
        text: str = f"{param.name}: {param.type}"
        if param.default is not None:
            text += f" = {param.default}"
        return text

    def _render_function(self, function: Function) -> str:
        params: str = ", ".join(self._render_parameter(p) for p in function.parameters)
        returns: List[str] = [r.type for r in function.returns]
        if not returns:
            annotation: str = "None"
        elif len(returns) == 1:
            annotation = returns[0]
        else:
            annotation = f"Tuple[{', '.join(returns)}]"

        lines: List[str] = [f"def {function.name}({params}) -> {annotation}:"]
        lines.extend(f"{_INDENT}{stmt}" if stmt else "" for stmt in function.body)
        if not function.body:
            lines.append(f"{_INDENT}pass")
        return "\n".join(lines)


__all__: List[str] = [
    "GoRenderer",
    "PythonRenderer",
    "go_quote",
    "go_sql_literal",
    "python_quote",
    "python_sql_literal",
    "sql_identifier",
    "sql_table_name",
]
