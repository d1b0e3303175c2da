"""
Auto-Layout Engine - Deterministic layered placement.

Used for graphs loaded without coordinates. Nodes are layered by a
breadth-first walk from every node without incoming connections; each
layer becomes a column and nodes stack top to bottom in the order they
were reached.
"""

import logging
from collections import deque
from typing import Optional

from graphnest.core.config import LayoutConfig
from graphnest.core.model import Graph

logger = logging.getLogger(__name__)


def assign_layers(graph: Graph) -> dict[str, int]:
    """
    Compute a layer index for every node in the graph.

    Roots are the nodes with in-degree zero, in node order. A node gets
    the layer of whichever node first reaches it plus one. Nodes left
    unvisited (cycles with no rooted entry) are promoted, in node order,
    to extra layer-0 roots and the walk continues from them.

    Returns:
        Mapping of node id to layer, ordered by assignment
    """
    node_ids = [node.id for node in graph.nodes]
    known = set(node_ids)

    in_degree = dict.fromkeys(node_ids, 0)
    successors: dict[str, list[str]] = {node_id: [] for node_id in node_ids}
    for connection in graph.connections:
        source = connection.start.node_id
        target = connection.end.node_id
        if source not in known or target not in known:
            continue
        in_degree[target] += 1
        successors[source].append(target)

    layers: dict[str, int] = {}
    queue: deque[str] = deque()

    def walk() -> None:
        while queue:
            current = queue.popleft()
            for target in successors[current]:
                if target not in layers:
                    layers[target] = layers[current] + 1
                    queue.append(target)

    for node_id in node_ids:
        if in_degree[node_id] == 0:
            layers[node_id] = 0
            queue.append(node_id)
    walk()

    for node_id in node_ids:
        if node_id not in layers:
            logger.debug(f"Node {node_id} unreachable from a root; placing it at layer 0")
            layers[node_id] = 0
            queue.append(node_id)
            walk()

    return layers


class AutoLayout:
    """Assigns grid positions to the nodes of a graph."""

    def __init__(self, config: Optional[LayoutConfig] = None):
        self._config = config or LayoutConfig()

    def layout(self, graph: Graph) -> None:
        """
        Position every node of `graph` and reset its view.

        Node (x, y) becomes (layer * padding_x, slot * padding_y), where
        slot is the node's position within its layer. Pan is reset to the
        configured offset and zoom to 1.
        """
        layers = assign_layers(graph)

        slots: dict[int, int] = {}
        positions: dict[str, tuple[int, int]] = {}
        for node_id, layer in layers.items():
            slot = slots.get(layer, 0)
            slots[layer] = slot + 1
            positions[node_id] = (layer * self._config.padding_x, slot * self._config.padding_y)

        for node in graph.nodes:
            node.x, node.y = positions[node.id]

        graph.pan = {"x": self._config.pan_offset_x, "y": self._config.pan_offset_y}
        graph.zoom = 1.0

        logger.debug(
            f"Laid out graph {graph.id}: {len(graph.nodes)} node(s) in "
            f"{len(slots)} layer(s)"
        )
