"""
graphnest Core - The headless graph editing engine.

The core holds the graph store, hierarchy navigation, auto-layout and the
editor session that ties them together. It has no UI dependencies and
can back any front end or run from the command line.
"""

from graphnest.core.config import GraphnestConfig, get_config, set_config
from graphnest.core.editor import EditorSession, PinRef
from graphnest.core.graph_store import (
    GraphError,
    GraphNotFoundError,
    GraphStore,
    NodeNotFoundError,
)
from graphnest.core.ids import IdGenerator, generate_handle
from graphnest.core.layout import AutoLayout
from graphnest.core.model import (
    Connection,
    Endpoint,
    Graph,
    Node,
    Pin,
    SchemaValidationError,
)
from graphnest.core.navigator import Navigator
from graphnest.core.types import NodeKind

__all__ = [
    "EditorSession",
    "PinRef",
    "GraphStore",
    "Navigator",
    "AutoLayout",
    "IdGenerator",
    "generate_handle",
    "NodeKind",
    "Pin",
    "Endpoint",
    "Connection",
    "Node",
    "Graph",
    "GraphError",
    "GraphNotFoundError",
    "NodeNotFoundError",
    "SchemaValidationError",
    "GraphnestConfig",
    "get_config",
    "set_config",
]
