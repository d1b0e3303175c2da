"""
Hierarchy Navigator - The path from the root graph to the viewed subgraph.

Also owns interface sync: the pins of the node that owns a subgraph are
a derived view of that subgraph's graph-input/graph-output nodes and are
recomputed explicitly after every change that could affect them.
"""

import logging
from typing import Optional

from graphnest.core.graph_store import GraphStore
from graphnest.core.ids import ROOT_GRAPH_ID
from graphnest.core.model import Graph, Pin
from graphnest.core.types import NodeKind, resolve_color

logger = logging.getLogger(__name__)


def interface_pins(graph: Graph) -> tuple[list[Pin], list[Pin]]:
    """
    Compute the (inputs, outputs) a subgraph exposes to its owning node.

    Each graph-input node contributes one input pin and each graph-output
    node one output pin, named after the node title and colored with the
    node's resolved color, in node order.
    """
    inputs = [
        Pin(name=node.title, color=resolve_color(node.color))
        for node in graph.nodes_of_kind(NodeKind.GRAPH_INPUT)
    ]
    outputs = [
        Pin(name=node.title, color=resolve_color(node.color))
        for node in graph.nodes_of_kind(NodeKind.GRAPH_OUTPUT)
    ]
    return inputs, outputs


class Navigator:
    """
    Navigation stack over a GraphStore.

    The stack always starts at the root graph; its last entry is the
    graph currently being viewed and edited.
    """

    def __init__(self, store: GraphStore):
        self._store = store
        self._stack: list[str] = [ROOT_GRAPH_ID]

    @property
    def store(self) -> GraphStore:
        return self._store

    @property
    def stack(self) -> list[str]:
        """Copy of the graph id path from root to the current graph."""
        return list(self._stack)

    @property
    def depth(self) -> int:
        return len(self._stack)

    @property
    def at_root(self) -> bool:
        return len(self._stack) == 1

    @property
    def current_graph_id(self) -> str:
        return self._stack[-1]

    def current_graph(self) -> Graph:
        return self._store.require_graph(self._stack[-1])

    def parent_graph(self) -> Optional[Graph]:
        """The graph one level up, or None at the root."""
        if len(self._stack) < 2:
            return None
        return self._store.get_graph(self._stack[-2])

    def reset(self, store: Optional[GraphStore] = None) -> None:
        """Return to the root, optionally rebinding to a new store."""
        if store is not None:
            self._store = store
        self._stack = [ROOT_GRAPH_ID]

    def enter(self, node_id: str) -> bool:
        """
        Descend into the subgraph of a node in the current graph.

        Returns:
            True if the stack changed, False if the node has no subgraph
        """
        node = self.current_graph().find_node(node_id)
        if node is None or not node.subgraph_id or node.subgraph_id not in self._store:
            return False

        self._stack.append(node.subgraph_id)
        logger.debug(f"Entered graph {node.subgraph_id} (depth {len(self._stack)})")
        return True

    def navigate_to_level(self, index: int) -> bool:
        """
        Truncate the stack so that entry `index` becomes the current graph.

        Returns:
            True if the stack changed; False when `index` is the current
            level or beyond it, or negative
        """
        if index < 0 or index >= len(self._stack) - 1:
            return False
        self._stack = self._stack[: index + 1]
        return True

    def breadcrumbs(self) -> list[tuple[str, str]]:
        """(graph_id, name) pairs from the root to the current graph."""
        crumbs = []
        for graph_id in self._stack:
            graph = self._store.get_graph(graph_id)
            crumbs.append((graph_id, graph.name if graph else graph_id))
        return crumbs

    def sync_parent_interface(self) -> bool:
        """
        Mirror the current graph's I/O nodes onto its owning node.

        No-op at the root or when no owner is found in the parent graph.

        Returns:
            True if an owning node was updated
        """
        parent = self.parent_graph()
        if parent is None:
            return False

        current = self.current_graph()
        owner = self._store.find_owner(current.id, parent_id=parent.id)
        if owner is None:
            return False

        owner.inputs, owner.outputs = interface_pins(current)

        # Wires into pins that no longer exist go away with the pins
        parent.connections = [
            c for c in parent.connections
            if not (c.start.node_id == owner.id and c.start.index >= len(owner.outputs))
            and not (c.end.node_id == owner.id and c.end.index >= len(owner.inputs))
        ]
        logger.debug(
            f"Synced interface of {owner.id}: "
            f"{len(owner.inputs)} input(s), {len(owner.outputs)} output(s)"
        )
        return True
