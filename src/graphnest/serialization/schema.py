"""
File Schema - Format identifiers and detection for graph documents.

Three on-disk shapes are understood:

- full:     {"version": "1.0.0", "graphs": {graph_id: graph_record}}
- readable: {"format": "node-graph-v2-readable", "title": ..., "graph": {...}}
- legacy:   {"title": ..., "story": [legacy_node, ...]}   (import only)
"""

import re
from enum import Enum
from typing import Any

from graphnest.core.model import SchemaValidationError

# Current full-fidelity schema version
SCHEMA_VERSION = "1.0.0"

READABLE_FORMAT = "node-graph-v2-readable"

# Readable documents are recognized by this prefix so later minor
# revisions of the readable format still load
READABLE_FORMAT_PREFIX = "node-graph-v2"

_FILENAME_UNSAFE = re.compile(r"[^a-z0-9_ -]", re.IGNORECASE)

__all__ = [
    "SCHEMA_VERSION",
    "READABLE_FORMAT",
    "READABLE_FORMAT_PREFIX",
    "GraphFormat",
    "SchemaValidationError",
    "detect_format",
    "safe_file_stem",
]


class GraphFormat(Enum):
    """On-disk encodings of a graph store."""
    FULL = "full"
    READABLE = "readable"
    LEGACY = "legacy"


def _present(data: dict[str, Any], key: str) -> bool:
    """Whether a top-level field is set (empty containers count as set)."""
    value = data.get(key)
    if value is None or value is False or value == "":
        return False
    return not (isinstance(value, (int, float)) and value == 0)


def detect_format(data: Any) -> GraphFormat:
    """
    Identify the encoding of a parsed document.

    Checked in priority order: readable, full, legacy.

    Raises:
        SchemaValidationError: If the document matches none of them
    """
    if not isinstance(data, dict) or not data:
        raise SchemaValidationError("File is empty or invalid.")

    format_tag = data.get("format")
    if (
        isinstance(format_tag, str)
        and format_tag.startswith(READABLE_FORMAT_PREFIX)
        and _present(data, "graph")
    ):
        return GraphFormat.READABLE
    if _present(data, "graphs") and _present(data, "version"):
        return GraphFormat.FULL
    if _present(data, "story") and _present(data, "title"):
        return GraphFormat.LEGACY

    raise SchemaValidationError("Invalid or unsupported file format.")


def safe_file_stem(name: str) -> str:
    """File name stem for a project name: unsafe characters become '_'."""
    return _FILENAME_UNSAFE.sub("_", name).strip()
