"""
graphnest Serialization - JSON-based graph file handling.

Provides save/load for the full-fidelity and readable formats and
import of the legacy story format, with automatic format detection.
"""

from graphnest.serialization.schema import (
    READABLE_FORMAT,
    SCHEMA_VERSION,
    GraphFormat,
    SchemaValidationError,
    detect_format,
)
from graphnest.serialization.serializer import GraphSerializer, get_serializer

__all__ = [
    "READABLE_FORMAT",
    "SCHEMA_VERSION",
    "GraphFormat",
    "SchemaValidationError",
    "detect_format",
    "GraphSerializer",
    "get_serializer",
]
