"""
Graph Store - Flat, keyed storage for every graph at every nesting level.

Ownership is expressed only through `Node.subgraph_id`; the store never
holds pointers from a graph to its owner. Deleting a node or graph
cascades through every subgraph it owns.
"""

import logging
from collections.abc import Iterator
from typing import Optional

from graphnest.core.ids import ROOT_GRAPH_ID, IdGenerator
from graphnest.core.model import Connection, Endpoint, Graph, Node

logger = logging.getLogger(__name__)


class GraphError(Exception):
    """Base exception for graph store errors."""
    pass


class GraphNotFoundError(GraphError):
    """Raised when a referenced graph is not in the store."""
    pass


class NodeNotFoundError(GraphError):
    """Raised when a referenced node is not in the expected graph."""
    pass


class GraphStore:
    """
    In-memory mapping of graph id to graph record.

    Each store carries its own IdGenerator so that a store built in
    isolation (e.g. during an import) can be swapped in together with the
    counter that produced its ids.
    """

    def __init__(self, ids: Optional[IdGenerator] = None):
        self._graphs: dict[str, Graph] = {}
        self.ids = ids or IdGenerator()

    @classmethod
    def with_root(cls, name: str = "Root", ids: Optional[IdGenerator] = None) -> "GraphStore":
        """Create a store holding only an empty root graph."""
        store = cls(ids)
        store.create_graph(ROOT_GRAPH_ID, name)
        return store

    @classmethod
    def from_graphs(cls, graphs: dict[str, Graph], ids: Optional[IdGenerator] = None) -> "GraphStore":
        """Wrap already-built graph records (used by the loaders)."""
        store = cls(ids)
        store._graphs = dict(graphs)
        return store

    def __contains__(self, graph_id: str) -> bool:
        return graph_id in self._graphs

    def __len__(self) -> int:
        return len(self._graphs)

    def __iter__(self) -> Iterator[Graph]:
        return iter(list(self._graphs.values()))

    @property
    def graphs(self) -> dict[str, Graph]:
        """Copy of the id -> graph mapping."""
        return self._graphs.copy()

    @property
    def root(self) -> Graph:
        return self.require_graph(ROOT_GRAPH_ID)

    # -------------------------------------------------------------------------
    # Graphs
    # -------------------------------------------------------------------------

    def create_graph(self, graph_id: str, name: str, owner_node_id: Optional[str] = None) -> Graph:
        """
        Create an empty graph with zero pan and unit zoom.

        Args:
            graph_id: Id of the new graph
            name: Display name
            owner_node_id: Node that will own the graph (informational; the
                relationship itself lives on the node's subgraph_id)

        Raises:
            GraphError: If a graph with this id already exists
        """
        if graph_id in self._graphs:
            raise GraphError(f"Graph already exists: {graph_id}")

        graph = Graph(id=graph_id, name=name)
        self._graphs[graph_id] = graph
        logger.debug(f"Created graph {graph_id} (owner={owner_node_id})")
        return graph

    def get_graph(self, graph_id: str) -> Optional[Graph]:
        return self._graphs.get(graph_id)

    def require_graph(self, graph_id: str) -> Graph:
        graph = self._graphs.get(graph_id)
        if graph is None:
            raise GraphNotFoundError(f"Graph not found: {graph_id}")
        return graph

    def delete_graph(self, graph_id: str) -> int:
        """
        Delete a graph and, recursively, every subgraph its nodes own.

        Returns:
            Number of graphs removed
        """
        removed = 0
        pending = [graph_id]
        seen: set[str] = set()
        while pending:
            current_id = pending.pop()
            if current_id in seen:
                continue
            seen.add(current_id)
            graph = self._graphs.pop(current_id, None)
            if graph is None:
                continue
            removed += 1
            pending.extend(n.subgraph_id for n in graph.nodes if n.subgraph_id)

        if removed:
            logger.debug(f"Deleted graph {graph_id} and {removed - 1} descendant graph(s)")
        return removed

    def descendant_ids(self, graph_id: str) -> list[str]:
        """Ids of every graph nested below `graph_id`, depth first."""
        result: list[str] = []
        seen = {graph_id}
        pending = [graph_id]
        while pending:
            graph = self._graphs.get(pending.pop())
            if graph is None:
                continue
            for node in graph.nodes:
                sub_id = node.subgraph_id
                if sub_id and sub_id not in seen and sub_id in self._graphs:
                    seen.add(sub_id)
                    result.append(sub_id)
                    pending.append(sub_id)
        return result

    def reachable_ids(self) -> set[str]:
        """Graph ids reachable from the root through subgraph ownership."""
        if ROOT_GRAPH_ID not in self._graphs:
            return set()
        return {ROOT_GRAPH_ID, *self.descendant_ids(ROOT_GRAPH_ID)}

    def find_owner(self, graph_id: str, parent_id: Optional[str] = None) -> Optional[Node]:
        """
        Find the node whose subgraph_id is `graph_id`.

        Scans only `parent_id` when given, otherwise every graph.
        """
        candidates = [self._graphs.get(parent_id)] if parent_id else self._graphs.values()
        for graph in candidates:
            if graph is None:
                continue
            for node in graph.nodes:
                if node.subgraph_id == graph_id:
                    return node
        return None

    def iter_nodes(self) -> Iterator[tuple[Graph, Node]]:
        """Every (graph, node) pair in the store."""
        for graph in list(self._graphs.values()):
            for node in graph.nodes:
                yield graph, node

    # -------------------------------------------------------------------------
    # Nodes
    # -------------------------------------------------------------------------

    def add_node(self, graph_id: str, node: Node) -> Node:
        """
        Append a node to a graph.

        Raises:
            GraphNotFoundError: If the graph does not exist
            GraphError: If the graph already holds a node with this id
        """
        graph = self.require_graph(graph_id)
        if graph.find_node(node.id) is not None:
            raise GraphError(f"Node {node.id} already exists in graph {graph_id}")
        graph.nodes.append(node)
        logger.debug(f"Added node {node.id} ({node.kind.value}) to graph {graph_id}")
        return node

    def remove_node(self, graph_id: str, node_id: str) -> Optional[Node]:
        """
        Remove a node, its connections and its owned subgraph tree.

        Returns:
            The removed node, or None if it was not in the graph
        """
        graph = self.require_graph(graph_id)
        node = graph.find_node(node_id)
        if node is None:
            return None

        graph.nodes.remove(node)
        graph.connections = [c for c in graph.connections if not c.touches(node_id)]
        if node.subgraph_id:
            self.delete_graph(node.subgraph_id)

        logger.debug(f"Removed node {node_id} from graph {graph_id}")
        return node

    # -------------------------------------------------------------------------
    # Connections
    # -------------------------------------------------------------------------

    def can_connect(self, graph_id: str, start: Endpoint, end: Endpoint) -> bool:
        """
        Whether start (an output pin) may be wired to end (an input pin).

        Rejects self-loops, missing nodes, out-of-range pin indexes and
        exact duplicates of an existing connection.
        """
        graph = self.get_graph(graph_id)
        if graph is None or start.node_id == end.node_id:
            return False

        start_node = graph.find_node(start.node_id)
        end_node = graph.find_node(end.node_id)
        if start_node is None or end_node is None:
            return False
        if not 0 <= start.index < len(start_node.outputs):
            return False
        if not 0 <= end.index < len(end_node.inputs):
            return False

        key = (start.node_id, start.index, end.node_id, end.index)
        return all(c.key != key for c in graph.connections)

    def add_connection(
        self,
        graph_id: str,
        start: Endpoint,
        end: Endpoint,
        connection_id: Optional[str] = None,
    ) -> Optional[Connection]:
        """
        Wire an output pin to an input pin within one graph.

        Invalid or duplicate connections are silently rejected.

        Returns:
            The new connection, or None if it was rejected
        """
        if not self.can_connect(graph_id, start, end):
            logger.debug(f"Rejected connection {start} -> {end} in graph {graph_id}")
            return None

        connection = Connection(
            id=connection_id or self.ids.next_connection_id(),
            start=start,
            end=end,
        )
        self._graphs[graph_id].connections.append(connection)
        return connection

    def remove_connection(self, graph_id: str, connection_id: str) -> bool:
        graph = self.require_graph(graph_id)
        connection = graph.find_connection(connection_id)
        if connection is None:
            return False
        graph.connections.remove(connection)
        return True
