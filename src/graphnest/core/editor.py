"""
Editor Session - The per-instance context every editing operation runs in.

An EditorSession owns one graph store together with its navigation stack,
selection, clipboard and change callbacks. Views read the store and call
these operations; nothing here depends on a UI toolkit.
"""

import asyncio
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Callable, NamedTuple, Optional, Union

from graphnest.core.config import GraphnestConfig, get_config
from graphnest.core.graph_store import GraphError, GraphStore, NodeNotFoundError
from graphnest.core.ids import graph_id_for, node_id_number
from graphnest.core.layout import AutoLayout
from graphnest.core.model import Connection, Endpoint, Graph, Node, Pin
from graphnest.core.navigator import Navigator
from graphnest.core.types import NodeKind, resolve_color

if TYPE_CHECKING:
    from graphnest.serialization.schema import GraphFormat
    from graphnest.serialization.serializer import GraphSerializer

logger = logging.getLogger(__name__)


class PinRef(NamedTuple):
    """A pin addressed by node, side ("input" or "output") and index."""
    node_id: str
    side: str
    index: int


class ClipboardEntry(NamedTuple):
    """A copied node plus a snapshot of every graph nested below it."""
    node: Node
    graphs: dict[str, Graph]


class EditorSession:
    """
    Explicit editor state replacing page-global state.

    Every mutating operation runs to completion synchronously and then
    notifies the change callbacks so views can re-read the store.
    Graph-edit operations that would break an invariant (self-loops,
    duplicate wires, ...) are silent no-ops.
    """

    def __init__(
        self,
        config: Optional[GraphnestConfig] = None,
        serializer: Optional["GraphSerializer"] = None,
    ):
        """
        Initialize the session with an empty root graph.

        Args:
            config: Editor configuration (defaults to the global config)
            serializer: Serializer used for save/load (defaults to the
                global serializer)
        """
        self._config = config or get_config()
        self._serializer = serializer
        self._store = GraphStore.with_root(self._config.view.default_root_name)
        self._navigator = Navigator(self._store)
        self._selected: set[str] = set()
        self._clipboard: list[ClipboardEntry] = []
        self._selected_connection_id: Optional[str] = None

        self._change_callbacks: list[Callable[["EditorSession"], None]] = []

    # -------------------------------------------------------------------------
    # State access
    # -------------------------------------------------------------------------

    @property
    def config(self) -> GraphnestConfig:
        return self._config

    @property
    def store(self) -> GraphStore:
        return self._store

    @property
    def navigator(self) -> Navigator:
        return self._navigator

    @property
    def serializer(self) -> "GraphSerializer":
        if self._serializer is None:
            from graphnest.serialization.serializer import GraphSerializer

            self._serializer = GraphSerializer(self._config)
        return self._serializer

    @property
    def root(self) -> Graph:
        return self._store.root

    @property
    def selected_node_ids(self) -> set[str]:
        return self._selected.copy()

    @property
    def selected_connection_id(self) -> Optional[str]:
        return self._selected_connection_id

    @property
    def clipboard_size(self) -> int:
        return len(self._clipboard)

    def current_graph(self) -> Graph:
        return self._navigator.current_graph()

    def find_node(self, node_id: str) -> Optional[Node]:
        """Look up a node in the current graph."""
        return self.current_graph().find_node(node_id)

    def _require_node(self, node_id: str) -> Node:
        node = self.find_node(node_id)
        if node is None:
            raise NodeNotFoundError(f"Node {node_id} is not in graph {self.current_graph().id}")
        return node

    def on_change(self, callback: Callable[["EditorSession"], None]) -> None:
        """Register a callback invoked after every mutation."""
        self._change_callbacks.append(callback)

    def _notify_change(self) -> None:
        for callback in self._change_callbacks:
            try:
                callback(self)
            except Exception as e:
                logger.error(f"Change callback error: {e}")

    def _snap(self, value: float) -> int:
        return self._config.grid.snap(value)

    # -------------------------------------------------------------------------
    # Nodes
    # -------------------------------------------------------------------------

    def add_node(
        self,
        kind: Union[NodeKind, str] = NodeKind.DEFAULT,
        position: Optional[tuple[float, float]] = None,
    ) -> Node:
        """
        Add a node to the current graph.

        Args:
            kind: Node kind (enum or its string value)
            position: Canvas position, grid-snapped; defaults to the origin

        Returns:
            The new node

        Raises:
            GraphError: When adding a graph-input/graph-output node to the
                root graph
        """
        if isinstance(kind, str):
            kind = NodeKind.from_string(kind)
        if kind.is_io and self._navigator.at_root:
            raise GraphError(f"{kind.value} nodes can only be added inside a subgraph")

        graph = self.current_graph()
        x, y = position if position is not None else (0, 0)
        grid = self._config.grid

        node_id = self._store.ids.next_node_id()
        node = Node(
            id=node_id,
            x=self._snap(x),
            y=self._snap(y),
            width=grid.node_min_width,
            height=grid.node_min_height,
            kind=kind,
        )

        if kind is NodeKind.DEFAULT:
            node.title = f"Node {node_id_number(node_id)}"
            subgraph = self._store.create_graph(graph_id_for(node_id), node.title, owner_node_id=node_id)
            node.subgraph_id = subgraph.id
        elif kind is NodeKind.GRAPH_INPUT:
            node.title = "Input"
            node.color = "cyan"
            node.outputs = [Pin("Value", resolve_color("cyan"))]
        elif kind is NodeKind.GRAPH_OUTPUT:
            node.title = "Output"
            node.color = "orange"
            node.inputs = [Pin("Value", resolve_color("orange"))]

        self._store.add_node(graph.id, node)
        if kind.is_io:
            self._navigator.sync_parent_interface()

        logger.debug(f"Added {kind.value} node {node_id} to {graph.id}")
        self._notify_change()
        return node

    def delete_node(self, node_id: str) -> bool:
        """Delete one node of the current graph, with its subgraph tree."""
        graph = self.current_graph()
        node = self._store.remove_node(graph.id, node_id)
        if node is None:
            return False

        self._selected.discard(node_id)
        if node.kind.is_io:
            self._navigator.sync_parent_interface()
        self._notify_change()
        return True

    def delete_selected(self) -> int:
        """
        Delete every selected node of the current graph.

        Returns:
            Number of nodes removed
        """
        if not self._selected:
            return 0

        graph = self.current_graph()
        io_removed = False
        removed = 0
        for node in list(graph.nodes):
            if node.id not in self._selected:
                continue
            self._store.remove_node(graph.id, node.id)
            io_removed = io_removed or node.kind.is_io
            removed += 1

        self._selected.clear()
        if io_removed:
            self._navigator.sync_parent_interface()

        logger.debug(f"Deleted {removed} node(s) from {graph.id}")
        self._notify_change()
        return removed

    def rename_node(self, node_id: str, title: str) -> None:
        """Retitle a node; its subgraph takes the same name."""
        node = self._require_node(node_id)
        node.title = title

        if node.subgraph_id:
            subgraph = self._store.get_graph(node.subgraph_id)
            if subgraph is not None:
                subgraph.name = title

        if node.kind.is_io:
            self._navigator.sync_parent_interface()
        self._notify_change()

    def set_node_text(self, node_id: str, text: str) -> None:
        """
        Replace a node's text content.

        Raises:
            GraphError: If the node is not a default node
        """
        node = self._require_node(node_id)
        if node.kind is not NodeKind.DEFAULT:
            raise GraphError(f"{node.kind.value} nodes have no editable text")
        node.text = text
        self._notify_change()

    def set_node_color(self, node_id: str, color_name: str) -> None:
        """Recolor a node; an I/O node's pin follows the node color."""
        node = self._require_node(node_id)
        node.color = color_name
        pin_color = resolve_color(color_name)

        if node.kind is NodeKind.GRAPH_INPUT and node.outputs:
            node.outputs[0].color = pin_color
        elif node.kind is NodeKind.GRAPH_OUTPUT and node.inputs:
            node.inputs[0].color = pin_color

        if node.kind.is_io:
            self._navigator.sync_parent_interface()
        self._notify_change()

    def move_node(self, node_id: str, x: float, y: float) -> None:
        node = self._require_node(node_id)
        node.x = self._snap(x)
        node.y = self._snap(y)
        self._notify_change()

    def move_selected(self, dx: float, dy: float) -> None:
        """Move every selected node by (dx, dy), snapping each to the grid."""
        graph = self.current_graph()
        for node in graph.nodes:
            if node.id in self._selected:
                node.x = self._snap(node.x + dx)
                node.y = self._snap(node.y + dy)
        self._notify_change()

    def resize_node(self, node_id: str, width: float, height: float) -> None:
        """
        Resize a default node, clamped to the minimum size and snapped.

        Raises:
            GraphError: If the node is not a default node
        """
        node = self._require_node(node_id)
        if node.kind is not NodeKind.DEFAULT:
            raise GraphError(f"{node.kind.value} nodes cannot be resized")

        grid = self._config.grid
        node.width = self._snap(max(grid.node_min_width, width))
        node.height = self._snap(max(grid.node_min_height, height))
        self._notify_change()

    # -------------------------------------------------------------------------
    # Connections
    # -------------------------------------------------------------------------

    def connect(self, a: PinRef, b: PinRef) -> Optional[Connection]:
        """
        Wire two pins of the current graph, in either order.

        Rejected (returning None) when both pins are on the same node or
        the same side, when a pin does not exist, or when the wire already
        exists.
        """
        if a.node_id == b.node_id or a.side == b.side:
            return None

        output_ref, input_ref = (a, b) if a.side == "output" else (b, a)
        if output_ref.side != "output" or input_ref.side != "input":
            return None

        connection = self._store.add_connection(
            self.current_graph().id,
            Endpoint(output_ref.node_id, int(output_ref.index)),
            Endpoint(input_ref.node_id, int(input_ref.index)),
        )
        if connection is not None:
            self._notify_change()
        return connection

    def disconnect(self, connection_id: str) -> bool:
        removed = self._store.remove_connection(self.current_graph().id, connection_id)
        if removed:
            if self._selected_connection_id == connection_id:
                self._selected_connection_id = None
            self._notify_change()
        return removed

    def select_connection(self, connection_id: Optional[str]) -> None:
        self._selected_connection_id = connection_id

    def delete_selected_connection(self) -> bool:
        if self._selected_connection_id is None:
            return False
        return self.disconnect(self._selected_connection_id)

    # -------------------------------------------------------------------------
    # View
    # -------------------------------------------------------------------------

    def zoom_at(self, direction: int, anchor_x: float, anchor_y: float) -> float:
        """
        Step the current graph's zoom, keeping the anchor point fixed.

        Args:
            direction: Positive to zoom in, negative to zoom out
            anchor_x: Anchor in view coordinates
            anchor_y: Anchor in view coordinates

        Returns:
            The new zoom level
        """
        view = self._config.view
        graph = self.current_graph()
        old_zoom = graph.zoom
        step = view.zoom_sensitivity if direction > 0 else -view.zoom_sensitivity
        graph.zoom = view.clamp_zoom(old_zoom + step)

        ratio = graph.zoom / old_zoom
        graph.pan = {
            "x": anchor_x - (anchor_x - graph.pan["x"]) * ratio,
            "y": anchor_y - (anchor_y - graph.pan["y"]) * ratio,
        }
        self._notify_change()
        return graph.zoom

    def pan_by(self, dx: float, dy: float) -> None:
        graph = self.current_graph()
        graph.pan = {"x": graph.pan["x"] + dx, "y": graph.pan["y"] + dy}
        self._notify_change()

    def to_canvas(self, view_x: float, view_y: float) -> tuple[float, float]:
        """Convert view coordinates to canvas coordinates of the current graph."""
        graph = self.current_graph()
        return (
            (view_x - graph.pan["x"]) / graph.zoom,
            (view_y - graph.pan["y"]) / graph.zoom,
        )

    def auto_layout(self, recursive: bool = False) -> int:
        """
        Run the auto-layout on the current graph (and its subgraphs).

        Returns:
            Number of graphs laid out
        """
        layout = AutoLayout(self._config.layout)
        graph = self.current_graph()
        graph_ids = [graph.id]
        if recursive:
            graph_ids.extend(self._store.descendant_ids(graph.id))

        for graph_id in graph_ids:
            layout.layout(self._store.require_graph(graph_id))
        self._notify_change()
        return len(graph_ids)

    # -------------------------------------------------------------------------
    # Selection
    # -------------------------------------------------------------------------

    def select(self, node_id: str, additive: bool = False) -> None:
        if self.find_node(node_id) is None:
            return
        if not additive:
            self._selected.clear()
        self._selected.add(node_id)
        self._notify_change()

    def select_all(self) -> None:
        self._selected = {node.id for node in self.current_graph().nodes}
        self._notify_change()

    def clear_selection(self) -> None:
        if self._selected:
            self._selected.clear()
            self._notify_change()

    def select_in_box(self, left: float, top: float, right: float, bottom: float) -> set[str]:
        """
        Add every node overlapping the box to the selection.

        Returns:
            Ids of the nodes that overlapped
        """
        hits = {
            node.id
            for node in self.current_graph().nodes
            if right > node.x and left < node.x + node.width
            and bottom > node.y and top < node.y + node.height
        }
        self._selected |= hits
        self._notify_change()
        return hits

    def selected_nodes(self) -> list[Node]:
        """Selected nodes of the current graph, in node order."""
        return [n for n in self.current_graph().nodes if n.id in self._selected]

    # -------------------------------------------------------------------------
    # Clipboard
    # -------------------------------------------------------------------------

    def copy_selected(self) -> int:
        """
        Snapshot the selected nodes and their subgraph trees.

        Returns:
            Number of nodes copied
        """
        nodes = self.selected_nodes()
        if not nodes:
            return 0

        entries = []
        for node in nodes:
            graphs: dict[str, Graph] = {}
            if node.subgraph_id and node.subgraph_id in self._store:
                for graph_id in [node.subgraph_id, *self._store.descendant_ids(node.subgraph_id)]:
                    graphs[graph_id] = self._store.require_graph(graph_id).clone()
            entries.append(ClipboardEntry(node.clone(), graphs))

        self._clipboard = entries
        logger.debug(f"Copied {len(entries)} node(s)")
        return len(entries)

    def _clone_node(self, node: Node, graphs: dict[str, Graph]) -> Node:
        """Copy a node with a fresh id, recursively re-id'ing its subgraph."""
        clone = node.clone()
        clone.id = self._store.ids.next_node_id()
        clone.subgraph_id = None

        source = graphs.get(node.subgraph_id) if node.subgraph_id else None
        if node.kind.owns_subgraph:
            subgraph = self._store.create_graph(graph_id_for(clone.id), clone.title, owner_node_id=clone.id)
            clone.subgraph_id = subgraph.id
            if source is not None:
                subgraph.pan = dict(source.pan)
                subgraph.zoom = source.zoom
                id_map: dict[str, str] = {}
                for child in source.nodes:
                    child_clone = self._clone_node(child, graphs)
                    id_map[child.id] = child_clone.id
                    subgraph.nodes.append(child_clone)
                for connection in source.connections:
                    if connection.start.node_id in id_map and connection.end.node_id in id_map:
                        self._store.add_connection(
                            subgraph.id,
                            Endpoint(id_map[connection.start.node_id], connection.start.index),
                            Endpoint(id_map[connection.end.node_id], connection.end.index),
                        )
        return clone

    def paste(self) -> list[Node]:
        """
        Paste the clipboard into the current graph.

        Each copy gets a fresh id, is offset by one grid step and brings a
        deep clone of its subgraph tree. The pasted nodes become the
        selection. I/O nodes are skipped at the root graph.

        Returns:
            The pasted nodes
        """
        if not self._clipboard:
            return []

        graph = self.current_graph()
        grid_size = self._config.grid.grid_size
        self._selected.clear()

        pasted = []
        for entry in self._clipboard:
            if entry.node.kind.is_io and self._navigator.at_root:
                logger.debug(f"Skipping {entry.node.kind.value} node at the root graph")
                continue
            node = self._clone_node(entry.node, entry.graphs)
            node.x += grid_size
            node.y += grid_size
            self._store.add_node(graph.id, node)
            self._selected.add(node.id)
            pasted.append(node)

        if any(node.kind.is_io for node in pasted):
            self._navigator.sync_parent_interface()

        logger.debug(f"Pasted {len(pasted)} node(s) into {graph.id}")
        self._notify_change()
        return pasted

    # -------------------------------------------------------------------------
    # Navigation
    # -------------------------------------------------------------------------

    def enter(self, node_id: str) -> bool:
        """Open the subgraph of a node in the current graph."""
        if not self._navigator.enter(node_id):
            return False
        self._selected.clear()
        self._selected_connection_id = None
        self._notify_change()
        return True

    def navigate_to_level(self, index: int) -> bool:
        if not self._navigator.navigate_to_level(index):
            return False
        self._selected.clear()
        self._selected_connection_id = None
        self._notify_change()
        return True

    def breadcrumbs(self) -> list[tuple[str, str]]:
        return self._navigator.breadcrumbs()

    def rename_root(self, name: str) -> str:
        """Rename the root graph; blank names revert to the default name."""
        name = (name or "").strip() or self._config.view.default_root_name
        self.root.name = name
        self._notify_change()
        return name

    # -------------------------------------------------------------------------
    # Save / load
    # -------------------------------------------------------------------------

    def needs_project_name(self) -> bool:
        name = self.root.name
        return name == self._config.view.default_root_name or not name.strip()

    def save(
        self,
        directory: Path,
        readable: bool = False,
        prompt: Optional[Callable[[], Optional[str]]] = None,
    ) -> Optional[Path]:
        """
        Save the store into `directory`.

        While the root graph still holds the default name, `prompt` is
        asked once for a project name; no answer cancels the save.

        Args:
            directory: Target directory
            readable: Write the readable format instead of the full format
            prompt: Callable returning a project name, or None to decline

        Returns:
            Path of the written file, or None if the save was cancelled
        """
        from graphnest.serialization.schema import GraphFormat

        if self.needs_project_name():
            answer = prompt() if prompt is not None else None
            if not answer or not answer.strip():
                logger.warning("Save cancelled. A valid project name is required.")
                return None
            self.root.name = answer.strip()
            self._notify_change()

        fmt = GraphFormat.READABLE if readable else GraphFormat.FULL
        return self.serializer.save(Path(directory), self._store, fmt)

    def _replace_store(self, store: GraphStore) -> None:
        self._store = store
        self._navigator.reset(store)
        self._selected.clear()
        self._clipboard = []
        self._selected_connection_id = None
        self._notify_change()

    def load_text(self, text: str, source: Optional[Path] = None) -> "GraphFormat":
        """
        Replace the session's store with a parsed document.

        The new store is built in isolation; on any error the session is
        left untouched.

        Raises:
            SchemaValidationError: If the document is malformed
        """
        store, fmt = self.serializer.loads(text, source=source)
        self._replace_store(store)
        logger.info(f"Loaded {fmt.value} graph '{store.root.name}' ({len(store)} graph(s))")
        return fmt

    async def load_file(self, path: Path) -> "GraphFormat":
        """
        Load a document from disk.

        Only the file read leaves the event loop thread; parsing and the
        store swap run synchronously once the text is available.
        """
        text = await asyncio.to_thread(self.serializer.read_text, Path(path))
        return self.load_text(text, source=Path(path))
