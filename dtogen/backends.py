# File: dtogen/backends.py
"""
dtogen - Output Backends
=========================
Maps the ``language`` value of ``db.json`` to the pieces that produce
code for it: file extension, renderer and emitters.

A backend is a plain record of callables.  Adding a language means
writing an emitter module and registering one more ``Backend`` here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Protocol, Sequence

from dtogen import emit_go, emit_python
from dtogen.errors import ConfigurationError
from dtogen.ir import SourceFile
from dtogen.models import ConnectionInfo, CustomQuery, Metadata, Table
from dtogen.renderers import GoRenderer, PythonRenderer

logger: logging.Logger = logging.getLogger("dtogen.backends")


class Renderer(Protocol):
    extension: str

    def render(self, source: SourceFile) -> str: ...


@dataclass(frozen=True, slots=True)
class Backend:
    """Everything needed to turn metadata and queries into one language."""

    language: str
    extension: str
    make_renderer: Callable[[str], Renderer]
    emit_connector: Callable[[ConnectionInfo], SourceFile]
    emit_table: Callable[[Table], SourceFile]
    emit_custom_queries: Callable[[Sequence[CustomQuery], Metadata], Optional[SourceFile]]
    emit_extras: Callable[[], List[SourceFile]] = lambda: []

    def build_sources(
        self,
        conn_info: ConnectionInfo,
        metadata: Metadata,
        queries: Sequence[CustomQuery],
    ) -> List[SourceFile]:
        """
        IR for every output file: extras, one per table (catalog order),
        the connector, then custom queries when any are declared.
        """
        sources: List[SourceFile] = list(self.emit_extras())
        sources.extend(self.emit_table(table) for table in metadata.tables)
        sources.append(self.emit_connector(conn_info))

        custom: Optional[SourceFile] = self.emit_custom_queries(queries, metadata)
        if custom is not None:
            sources.append(custom)

        logger.info("%s backend built %d source file(s).", self.language, len(sources))
        return sources


BACKENDS: Dict[str, Backend] = {
    "go": Backend(
        language="go",
        extension=GoRenderer.extension,
        make_renderer=GoRenderer,
        emit_connector=emit_go.emit_connector,
        emit_table=emit_go.emit_table,
        emit_custom_queries=emit_go.emit_custom_queries,
    ),
    "python": Backend(
        language="python",
        extension=PythonRenderer.extension,
        make_renderer=lambda package: PythonRenderer(),
        emit_connector=emit_python.emit_connector,
        emit_table=emit_python.emit_table,
        emit_custom_queries=emit_python.emit_custom_queries,
        emit_extras=lambda: [emit_python.emit_init()],
    ),
}


def supported_languages() -> List[str]:
    return sorted(BACKENDS)


def get_backend(language: str) -> Backend:
    """Look up the backend for *language* (case-insensitive)."""
    backend: Optional[Backend] = BACKENDS.get(language.lower())
    if backend is None:
        raise ConfigurationError(
            f"unsupported language: {language} (expected one of {', '.join(supported_languages())})"
        )
    return backend


__all__: List[str] = [
    "Renderer",
    "Backend",
    "BACKENDS",
    "supported_languages",
    "get_backend",
]
