"""
Graph Serializer - Save and load graph documents.

Handles format detection and the conversion between graph stores and
the JSON documents of every supported format.
"""

import json
import logging
from pathlib import Path
from typing import Any, Optional

from graphnest.core.config import GraphnestConfig, get_config
from graphnest.core.graph_store import GraphStore
from graphnest.serialization.full_format import export_full, import_full
from graphnest.serialization.legacy_format import import_legacy
from graphnest.serialization.readable_format import export_readable, import_readable
from graphnest.serialization.schema import (
    GraphFormat,
    SchemaValidationError,
    detect_format,
    safe_file_stem,
)

logger = logging.getLogger(__name__)


class GraphSerializer:
    """
    Serializer for graph documents.

    Writes the full-fidelity and readable formats; reads those two plus
    the legacy story format, detected automatically.
    """

    def __init__(self, config: Optional[GraphnestConfig] = None):
        self._config = config

    @property
    def config(self) -> GraphnestConfig:
        return self._config or get_config()

    def file_name_for(self, project_name: str, fmt: GraphFormat = GraphFormat.FULL) -> str:
        """
        Derive the export file name from a project name.

        Raises:
            ValueError: If asked for the legacy format, which is never written
        """
        stem = safe_file_stem(project_name)
        if fmt is GraphFormat.FULL:
            return f"{stem}{self.config.paths.full_suffix}"
        if fmt is GraphFormat.READABLE:
            return f"{stem}{self.config.paths.readable_suffix}"
        raise ValueError(f"Cannot write {fmt.value} documents")

    # -------------------------------------------------------------------------
    # Writing
    # -------------------------------------------------------------------------

    def to_document(self, store: GraphStore, fmt: GraphFormat = GraphFormat.FULL) -> dict[str, Any]:
        """Convert a store to the document for `fmt`."""
        if fmt is GraphFormat.FULL:
            return export_full(store)
        if fmt is GraphFormat.READABLE:
            return export_readable(store)
        raise ValueError(f"Cannot write {fmt.value} documents")

    def dumps(self, store: GraphStore, fmt: GraphFormat = GraphFormat.FULL, indent: int = 2) -> str:
        """Convert a store to a JSON string."""
        return json.dumps(self.to_document(store, fmt), indent=indent, ensure_ascii=False)

    def save(
        self,
        directory: Path,
        store: GraphStore,
        fmt: GraphFormat = GraphFormat.FULL,
    ) -> Path:
        """
        Write a store into `directory` under the derived file name.

        Args:
            directory: Target directory (created if missing)
            store: The store to save
            fmt: Output format

        Returns:
            Path of the written file
        """
        path = Path(directory) / self.file_name_for(store.root.name, fmt)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w", encoding="utf-8") as f:
            f.write(self.dumps(store, fmt))

        logger.info(f"Saved {fmt.value} graph to {path}")
        return path

    # -------------------------------------------------------------------------
    # Reading
    # -------------------------------------------------------------------------

    def read_text(self, path: Path) -> str:
        """
        Read a document's text.

        Raises:
            FileNotFoundError: If the file doesn't exist
            PermissionError: If the file cannot be read
            SchemaValidationError: On encoding errors, other OS errors or
                an empty file
        """
        try:
            with open(path, encoding="utf-8") as f:
                content = f.read()
        except FileNotFoundError:
            logger.error(f"Graph file not found: {path}")
            raise
        except PermissionError:
            logger.error(f"Permission denied reading graph file: {path}")
            raise
        except UnicodeDecodeError as e:
            logger.error(f"Encoding error reading {path}: {e}")
            raise SchemaValidationError(
                f"File encoding error: {e}. Ensure the file is UTF-8 encoded.",
                path=str(path),
            ) from e
        except OSError as e:
            logger.error(f"Error reading graph file {path}: {e}")
            raise SchemaValidationError(f"Error reading file: {e}", path=str(path)) from e

        if not content.strip():
            raise SchemaValidationError("File is empty", path=str(path))
        return content

    def from_document(self, data: Any) -> tuple[GraphStore, GraphFormat]:
        """
        Build a new store from a parsed document of any supported format.

        The live store is never touched: a fresh store is returned and the
        caller swaps it in.

        Raises:
            SchemaValidationError: If the format is unrecognized or the
                document is invalid
        """
        fmt = detect_format(data)
        logger.debug(f"Detected {fmt.value} document")

        if fmt is GraphFormat.READABLE:
            store = import_readable(data, self.config.layout, self.config.grid)
        elif fmt is GraphFormat.FULL:
            store = import_full(data, self.config.view)
        else:
            store = import_legacy(data, self.config.grid, self.config.legacy)
        return store, fmt

    def loads(self, text: str, source: Optional[Path] = None) -> tuple[GraphStore, GraphFormat]:
        """
        Parse JSON text and build a store from it.

        Args:
            text: Document text
            source: File the text came from, attached to errors as context

        Raises:
            SchemaValidationError: If the text is not valid JSON or not a
                supported document
        """
        path = str(source) if source is not None else None
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in {source or 'document'}: line {e.lineno}, column {e.colno}")
            raise SchemaValidationError(
                f"Invalid JSON at line {e.lineno}, column {e.colno}: {e.msg}",
                path=path,
            ) from e

        try:
            return self.from_document(data)
        except SchemaValidationError as e:
            if e.path or path is None:
                raise
            raise SchemaValidationError(e.message, path=path) from e

    def load(self, path: Path) -> tuple[GraphStore, GraphFormat]:
        """
        Load a graph document from a file.

        Raises:
            FileNotFoundError: If the file doesn't exist
            PermissionError: If the file cannot be read
            SchemaValidationError: If the file is malformed or invalid
        """
        store, fmt = self.loads(self.read_text(path), source=path)

        logger.info(f"Loaded {fmt.value} graph from {path}")
        return store, fmt


# Global serializer instance
_serializer: Optional[GraphSerializer] = None


def get_serializer() -> GraphSerializer:
    """Get the global serializer instance."""
    global _serializer
    if _serializer is None:
        _serializer = GraphSerializer()
    return _serializer
