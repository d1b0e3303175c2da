"""
graphnest - Hierarchical node graph editing

A headless data model for node-graph editors: nested subgraphs, interface
pins derived from graph-input/graph-output nodes, and JSON documents in a
full-fidelity, a readable and a legacy format.
"""

__version__ = "1.0.0"

from graphnest.core.editor import EditorSession
from graphnest.core.graph_store import GraphStore

__all__ = ["EditorSession", "GraphStore", "__version__"]
