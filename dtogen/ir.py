# File: dtogen/ir.py
"""
dtogen - Source Intermediate Representation
============================================
A small, language-agnostic description of one generated source file::

    SourceFile
    ├── imports    (ordered, duplicates ignored)
    ├── structs    → Struct → Field
    └── functions  → Function → Parameter / Return / body lines

Declarations are modelled precisely so that renderers can print correct
types and signatures.  Function bodies are opaque, pre-rendered statement
lines: driver calls differ per target language and are the emitters'
business.

Every node is a frozen dataclass.  The ``with_*`` methods return a new
value instead of mutating, so one fragment can be shared between files
without aliasing surprises::

    entity = Struct("Users").with_field(Field("Id", "int32"))
    source = SourceFile("users").with_import(Import("context")).with_struct(entity)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Iterable, List, Optional, Tuple

logger: logging.Logger = logging.getLogger("dtogen.ir")


@dataclass(frozen=True, slots=True)
class Import:
    """``module`` alone (``import x`` / ``"x"``) or ``from module import name``."""

    module: str
    name: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Field:
    """A struct / class field."""

    name: str
    type: str
    nullable: bool = False
    serialization_key: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Struct:
    name: str
    fields: Tuple[Field, ...] = ()

    def with_field(self, field: Field) -> "Struct":
        return replace(self, fields=self.fields + (field,))

    def with_fields(self, fields: Iterable[Field]) -> "Struct":
        return replace(self, fields=self.fields + tuple(fields))


@dataclass(frozen=True, slots=True)
class Parameter:
    name: str
    type: str
    default: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Return:
    type: str


@dataclass(frozen=True, slots=True)
class Function:
    """
    A function declaration.

    ``body`` holds statement lines relative to the function's own
    indentation; nested blocks carry their extra indentation inline.
    """

    name: str
    parameters: Tuple[Parameter, ...] = ()
    returns: Tuple[Return, ...] = ()
    body: Tuple[str, ...] = ()

    def with_parameter(self, name: str, type_: str, default: Optional[str] = None) -> "Function":
        return replace(self, parameters=self.parameters + (Parameter(name, type_, default),))

    def with_parameters(self, parameters: Iterable[Parameter]) -> "Function":
        return replace(self, parameters=self.parameters + tuple(parameters))

    def with_return(self, type_: str) -> "Function":
        return replace(self, returns=self.returns + (Return(type_),))

    def with_body(self, *lines: str) -> "Function":
        return replace(self, body=self.body + lines)


@dataclass(frozen=True, slots=True)
class SourceFile:
    """One output file; ``name`` carries no extension."""

    name: str
    imports: Tuple[Import, ...] = ()
    structs: Tuple[Struct, ...] = ()
    functions: Tuple[Function, ...] = ()

    def with_import(self, *imports: Import) -> "SourceFile":
        merged: List[Import] = list(self.imports)
        for imp in imports:
            if imp not in merged:
                merged.append(imp)
        return replace(self, imports=tuple(merged))

    def with_struct(self, struct: Struct) -> "SourceFile":
        return replace(self, structs=self.structs + (struct,))

    def with_function(self, function: Function) -> "SourceFile":
        return replace(self, functions=self.functions + (function,))

    def get_struct(self, name: str) -> Optional[Struct]:
        for struct in self.structs:
            if struct.name == name:
                return struct
        return None

    def get_function(self, name: str) -> Optional[Function]:
        for function in self.functions:
            if function.name == name:
                return function
        return None


__all__: List[str] = [
    "Import",
    "Field",
    "Struct",
    "Parameter",
    "Return",
    "Function",
    "SourceFile",
]
