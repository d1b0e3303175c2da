"""
Tests for graphnest.serialization.readable_format module.

Tests handle assignment, pin references and readable import/export.
"""

import pytest

from graphnest.core.editor import PinRef
from graphnest.core.model import Pin
from graphnest.core.types import NodeKind
from graphnest.serialization.readable_format import (
    export_readable,
    import_readable,
    pin_reference,
    resolve_pin,
)
from graphnest.serialization.schema import READABLE_FORMAT, SchemaValidationError


def pins(*names: str) -> list[Pin]:
    return [Pin(name, "#666666") for name in names]


class TestPinReferences:
    """Tests for pin_reference and resolve_pin."""

    def test_unique_name(self):
        """Test that unique names are written bare."""
        assert pin_reference(pins("a", "b"), 1, "output") == "b"

    def test_duplicate_name_gets_index(self):
        """Test that repeated names carry their index."""
        assert pin_reference(pins("v", "v"), 1, "input") == "v:1"

    def test_out_of_range_fallback(self):
        """Test the positional fallback reference."""
        assert pin_reference(pins("a"), 3, "output") == "output_3"

    def test_resolve_by_name(self):
        """Test resolving a bare name."""
        assert resolve_pin(pins("a", "b"), "b") == 1

    def test_resolve_indexed(self):
        """Test that a matching index selects among duplicates."""
        assert resolve_pin(pins("v", "v"), "v:1") == 1

    def test_resolve_name_containing_colon(self):
        """Test that a literal name with a colon still resolves."""
        assert resolve_pin(pins("a", "time:10"), "time:10") == 1

    def test_resolve_bare_index_fallback(self):
        """Test that an in-range index is used when no name matches."""
        assert resolve_pin(pins("x", "y"), "renamed:1") == 1

    def test_name_ending_in_digits_gets_index(self):
        """Test that a unique name shaped like name:index is written indexed."""
        assert pin_reference(pins("x", "x:0"), 1, "output") == "x:0:1"
        assert pin_reference(pins("x", "x:0"), 0, "output") == "x"

    def test_resolve_indexed_name_ending_in_digits(self):
        """Test that an indexed reference to a name:index pin resolves to it."""
        assert resolve_pin(pins("x", "x:0"), "x:0:1") == 1

    def test_resolve_unknown(self):
        """Test that unknown references resolve to None."""
        assert resolve_pin(pins("a"), "zzz") is None
        assert resolve_pin(pins("a"), "zzz:4") is None
        assert resolve_pin(pins("a"), None) is None


class TestExportReadable:
    """Tests for export_readable."""

    def test_document_shape(self, populated_session):
        """Test the nested structure and handles."""
        session = populated_session
        session.rename_root("Demo")

        data = export_readable(session.store)

        assert data["format"] == READABLE_FORMAT
        assert data["title"] == "Demo"
        root = data["graph"]
        assert [n["id"] for n in root["nodes"]] == ["node-1", "node-2"]
        assert "x" not in root["nodes"][0]
        sub = root["nodes"][0]["subgraph"]
        assert [n["type"] for n in sub["nodes"]] == ["graph-input", "graph-output"]
        assert root["connections"] == [
            {"from": "node-1", "from_pin": "Output", "to": "node-2", "to_pin": "Input"}
        ]

    def test_handles_unique_across_levels(self, populated_session):
        """Test that handles never repeat within one export."""
        data = export_readable(populated_session.store)

        handles = []

        def collect(graph):
            for node in graph["nodes"]:
                handles.append(node["id"])
                if "subgraph" in node:
                    collect(node["subgraph"])

        collect(data["graph"])
        assert len(handles) == len(set(handles)) == 5

    def test_io_nodes_have_no_subgraph(self, populated_session):
        """Test that only default nodes carry a subgraph entry."""
        data = export_readable(populated_session.store)

        sub_nodes = data["graph"]["nodes"][0]["subgraph"]["nodes"]
        assert all("subgraph" not in n for n in sub_nodes)


class TestImportReadable:
    """Tests for import_readable."""

    def test_builds_store(self, sample_readable_document):
        """Test nodes, subgraphs and connections of the sample."""
        store = import_readable(sample_readable_document)

        root = store.root
        assert root.name == "Story"
        assert [n.title for n in root.nodes] == ["Intro", "Ending"]
        intro, ending = root.nodes
        assert intro.text == "Once upon a time"
        assert store.get_graph(intro.subgraph_id).nodes[0].kind is NodeKind.GRAPH_OUTPUT
        assert store.get_graph(ending.subgraph_id).nodes == []
        assert len(root.connections) == 1
        connection = root.connections[0]
        assert (connection.start.node_id, connection.end.node_id) == (intro.id, ending.id)

    def test_fresh_ids(self, sample_readable_document):
        """Test that handles are not reused as internal ids."""
        store = import_readable(sample_readable_document)

        ids = [node.id for _, node in store.iter_nodes()]
        assert all(node_id.startswith("node_") for node_id in ids)
        assert len(set(ids)) == len(ids)

    def test_layout_applied(self, sample_readable_document):
        """Test that graphs without coordinates are laid out."""
        store = import_readable(sample_readable_document)

        intro, ending = store.root.nodes
        assert (intro.x, intro.y) == (0, 0)
        assert (ending.x, ending.y) == (384, 0)
        assert store.root.pan == {"x": 64, "y": 64}

    def test_explicit_positions_kept(self, sample_readable_document):
        """Test that a fully positioned graph skips layout."""
        for i, node in enumerate(sample_readable_document["graph"]["nodes"]):
            node["x"], node["y"] = 1000 + i, 2000

        store = import_readable(sample_readable_document)

        assert [(n.x, n.y) for n in store.root.nodes] == [(1000, 2000), (1001, 2000)]
        assert store.root.pan == {"x": 0, "y": 0}

    def test_unknown_handle_dropped(self, sample_readable_document):
        """Test that connections to unknown handles are skipped."""
        sample_readable_document["graph"]["connections"].append(
            {"from": "intro", "from_pin": "next", "to": "nowhere", "to_pin": "in"}
        )

        store = import_readable(sample_readable_document)

        assert len(store.root.connections) == 1

    def test_unknown_pin_dropped(self, sample_readable_document):
        """Test that connections to unknown pins are skipped."""
        sample_readable_document["graph"]["connections"][0]["to_pin"] = "missing"

        store = import_readable(sample_readable_document)

        assert store.root.connections == []

    def test_default_title(self, sample_readable_document):
        """Test the root name when the document has no title."""
        del sample_readable_document["title"]

        assert import_readable(sample_readable_document).root.name == "Loaded Graph"

    def test_bad_node_type(self, sample_readable_document):
        """Test that unknown node types are rejected."""
        sample_readable_document["graph"]["nodes"][0]["type"] = "widget"

        with pytest.raises(SchemaValidationError):
            import_readable(sample_readable_document)

    def test_round_trip_preserves_structure(self, populated_session):
        """Test that readable export then import keeps titles, pins and wires."""
        session = populated_session
        session.enter("node_1")
        session.add_node(NodeKind.GRAPH_INPUT)
        session.navigate_to_level(0)

        store = import_readable(export_readable(session.store))

        assert len(store) == len(session.store)
        for original, loaded in zip(session.root.nodes, store.root.nodes):
            assert loaded.title == original.title
            assert loaded.inputs == original.inputs
            assert loaded.outputs == original.outputs
        assert len(store.root.connections) == 1

    def test_duplicate_pin_names_round_trip(self, session):
        """Test that wires on same-named pins keep their index."""
        owner = session.add_node()
        target = session.add_node()
        session.enter(owner.id)
        session.add_node(NodeKind.GRAPH_OUTPUT)
        session.add_node(NodeKind.GRAPH_OUTPUT)
        session.navigate_to_level(0)
        session.enter(target.id)
        session.add_node(NodeKind.GRAPH_INPUT)
        session.navigate_to_level(0)
        session.connect(PinRef(owner.id, "output", 1), PinRef(target.id, "input", 0))

        store = import_readable(export_readable(session.store))

        assert store.root.connections[0].start.index == 1

    def test_name_ending_in_digits_round_trip(self, session):
        """Test that a wire from a pin named like name:index keeps its pin."""
        owner = session.add_node()
        target = session.add_node()
        session.enter(owner.id)
        first = session.add_node(NodeKind.GRAPH_OUTPUT)
        second = session.add_node(NodeKind.GRAPH_OUTPUT)
        session.rename_node(first.id, "x")
        session.rename_node(second.id, "x:0")
        session.navigate_to_level(0)
        session.enter(target.id)
        session.add_node(NodeKind.GRAPH_INPUT)
        session.navigate_to_level(0)
        session.connect(PinRef(owner.id, "output", 1), PinRef(target.id, "input", 0))

        store = import_readable(export_readable(session.store))

        assert [p.name for p in store.root.nodes[0].outputs] == ["x", "x:0"]
        assert store.root.connections[0].start.index == 1

    def test_empty_subgraph_view_reset(self, sample_readable_document):
        """Test that an empty subgraph still gets the layout pan and zoom."""
        store = import_readable(sample_readable_document)

        ending = store.root.nodes[1]
        subgraph = store.get_graph(ending.subgraph_id)
        assert subgraph.nodes == []
        assert subgraph.pan == {"x": 64, "y": 64}
        assert subgraph.zoom == 1.0


class TestReadableNodeSize:
    """Tests for width and height handling on readable import."""

    def test_missing_size_uses_minimum(self, sample_readable_document):
        """Test the default node size."""
        store = import_readable(sample_readable_document)

        intro = store.root.nodes[0]
        assert (intro.width, intro.height) == (256, 128)

    def test_small_size_clamped(self, sample_readable_document):
        """Test that sizes below the minimum are raised to it."""
        sample_readable_document["graph"]["nodes"][0]["width"] = 10
        sample_readable_document["graph"]["nodes"][0]["height"] = -5

        intro = import_readable(sample_readable_document).root.nodes[0]

        assert (intro.width, intro.height) == (256, 128)

    def test_size_snapped_to_grid(self, sample_readable_document):
        """Test that sizes are snapped to the grid."""
        sample_readable_document["graph"]["nodes"][0]["width"] = 300
        sample_readable_document["graph"]["nodes"][0]["height"] = 145

        intro = import_readable(sample_readable_document).root.nodes[0]

        assert (intro.width, intro.height) == (288, 160)

    def test_non_numeric_size_rejected(self, sample_readable_document):
        """Test that a non-numeric size reports its path."""
        sample_readable_document["graph"]["nodes"][0]["height"] = "tall"

        with pytest.raises(SchemaValidationError) as exc_info:
            import_readable(sample_readable_document)

        assert exc_info.value.path == "graph.nodes[0].height"
