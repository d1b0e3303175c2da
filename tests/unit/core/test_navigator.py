"""
Tests for graphnest.core.navigator module.

Tests the navigation stack and interface sync.
"""

import pytest

from graphnest.core.graph_store import GraphStore
from graphnest.core.ids import ROOT_GRAPH_ID, graph_id_for
from graphnest.core.model import Endpoint, Node, Pin
from graphnest.core.navigator import Navigator, interface_pins
from graphnest.core.types import NodeKind, resolve_color


def add_default(store: GraphStore, graph_id: str, title: str) -> Node:
    node_id = store.ids.next_node_id()
    store.create_graph(graph_id_for(node_id), title)
    node = Node(id=node_id, title=title, subgraph_id=graph_id_for(node_id))
    return store.add_node(graph_id, node)


def add_io(store: GraphStore, graph_id: str, kind: NodeKind, title: str, color: str = "default") -> Node:
    node = Node(id=store.ids.next_node_id(), title=title, kind=kind, color=color)
    return store.add_node(graph_id, node)


@pytest.fixture
def store():
    return GraphStore.with_root("Root")


class TestInterfacePins:
    """Tests for interface_pins."""

    def test_pins_follow_io_nodes_in_order(self, store):
        """Test that pins mirror I/O nodes by title and resolved color."""
        owner = add_default(store, ROOT_GRAPH_ID, "Owner")
        add_io(store, owner.subgraph_id, NodeKind.GRAPH_INPUT, "a", "red")
        add_io(store, owner.subgraph_id, NodeKind.GRAPH_OUTPUT, "out", "blue")
        add_io(store, owner.subgraph_id, NodeKind.GRAPH_INPUT, "b")
        add_default(store, owner.subgraph_id, "Inner")

        inputs, outputs = interface_pins(store.require_graph(owner.subgraph_id))

        assert inputs == [Pin("a", resolve_color("red")), Pin("b", resolve_color("default"))]
        assert outputs == [Pin("out", resolve_color("blue"))]

    def test_empty_graph_has_no_pins(self, store):
        """Test a graph without I/O nodes."""
        assert interface_pins(store.root) == ([], [])


class TestNavigation:
    """Tests for the navigation stack."""

    def test_starts_at_root(self, store):
        """Test the initial stack."""
        nav = Navigator(store)

        assert nav.stack == [ROOT_GRAPH_ID]
        assert nav.at_root
        assert nav.parent_graph() is None
        assert nav.current_graph() is store.root

    def test_enter_and_breadcrumbs(self, store):
        """Test descending two levels."""
        outer = add_default(store, ROOT_GRAPH_ID, "Outer")
        inner = add_default(store, outer.subgraph_id, "Inner")
        nav = Navigator(store)

        assert nav.enter(outer.id)
        assert nav.enter(inner.id)

        assert nav.depth == 3
        assert nav.current_graph_id == inner.subgraph_id
        assert nav.breadcrumbs() == [
            (ROOT_GRAPH_ID, "Root"),
            (outer.subgraph_id, "Outer"),
            (inner.subgraph_id, "Inner"),
        ]

    def test_enter_rejects_unknown_or_io(self, store):
        """Test that only subgraph-owning nodes of the current graph can be entered."""
        owner = add_default(store, ROOT_GRAPH_ID, "Owner")
        io = add_io(store, owner.subgraph_id, NodeKind.GRAPH_INPUT, "x")
        nav = Navigator(store)

        assert not nav.enter("node_99")
        assert not nav.enter(io.id)
        assert nav.stack == [ROOT_GRAPH_ID]

    def test_navigate_to_level(self, store):
        """Test truncating the stack."""
        outer = add_default(store, ROOT_GRAPH_ID, "Outer")
        inner = add_default(store, outer.subgraph_id, "Inner")
        nav = Navigator(store)
        nav.enter(outer.id)
        nav.enter(inner.id)

        assert nav.navigate_to_level(1)
        assert nav.stack == [ROOT_GRAPH_ID, outer.subgraph_id]

    def test_navigate_to_current_or_beyond_is_noop(self, store):
        """Test that only strictly shallower levels are accepted."""
        outer = add_default(store, ROOT_GRAPH_ID, "Outer")
        nav = Navigator(store)
        nav.enter(outer.id)

        assert not nav.navigate_to_level(1)
        assert not nav.navigate_to_level(5)
        assert not nav.navigate_to_level(-1)
        assert nav.depth == 2

    def test_reset_rebinds_store(self, store):
        """Test resetting onto a new store."""
        outer = add_default(store, ROOT_GRAPH_ID, "Outer")
        nav = Navigator(store)
        nav.enter(outer.id)
        other = GraphStore.with_root("Other")

        nav.reset(other)

        assert nav.store is other
        assert nav.stack == [ROOT_GRAPH_ID]


class TestInterfaceSync:
    """Tests for sync_parent_interface."""

    def test_noop_at_root(self, store):
        """Test that the root has no owner to update."""
        assert not Navigator(store).sync_parent_interface()

    def test_sync_updates_owner(self, store):
        """Test that the owner's pins mirror the subgraph."""
        owner = add_default(store, ROOT_GRAPH_ID, "Owner")
        nav = Navigator(store)
        nav.enter(owner.id)
        add_io(store, owner.subgraph_id, NodeKind.GRAPH_INPUT, "Input", "cyan")
        add_io(store, owner.subgraph_id, NodeKind.GRAPH_OUTPUT, "Output", "orange")

        assert nav.sync_parent_interface()

        assert owner.inputs == [Pin("Input", "#44ffff")]
        assert owner.outputs == [Pin("Output", "#ff8844")]

    def test_sync_prunes_wires_to_removed_pins(self, store):
        """Test that wires into vanished pins are dropped."""
        owner = add_default(store, ROOT_GRAPH_ID, "Owner")
        other = add_default(store, ROOT_GRAPH_ID, "Other")
        other.outputs = [Pin("o", "#666666")]
        nav = Navigator(store)
        nav.enter(owner.id)
        io = add_io(store, owner.subgraph_id, NodeKind.GRAPH_INPUT, "Input")
        nav.sync_parent_interface()
        store.add_connection(ROOT_GRAPH_ID, Endpoint(other.id, 0), Endpoint(owner.id, 0))
        assert len(store.root.connections) == 1

        store.remove_node(owner.subgraph_id, io.id)
        nav.sync_parent_interface()

        assert owner.inputs == []
        assert store.root.connections == []
