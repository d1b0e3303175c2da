"""
Centralized Type Definitions for graphnest.

This module provides the node kind enum and the named color palette used
for nodes and pins, replacing stringly-typed checks throughout the
codebase.
"""

from enum import Enum


class NodeKind(Enum):
    """
    Closed set of node kinds.

    Behavior that differs per kind (default pins, text editability,
    subgraph ownership) is dispatched on this tag rather than through a
    class hierarchy.
    """
    DEFAULT = "default"
    GRAPH_INPUT = "graph-input"
    GRAPH_OUTPUT = "graph-output"

    @property
    def is_io(self) -> bool:
        """Whether this kind exposes a pin on the owning node one level up."""
        return self is not NodeKind.DEFAULT

    @property
    def owns_subgraph(self) -> bool:
        return self is NodeKind.DEFAULT

    @classmethod
    def from_string(cls, type_str: str) -> "NodeKind":
        """
        Convert a string to NodeKind enum.

        Args:
            type_str: The node kind string (e.g., "default", "graph-input")

        Returns:
            Corresponding NodeKind enum value

        Raises:
            ValueError: If the string doesn't match any known node kind
        """
        normalized = (type_str or "").strip().lower().replace("_", "-")

        for member in cls:
            if member.value == normalized:
                return member

        raise ValueError(f"Unknown node kind: {type_str}")

    @classmethod
    def from_string_safe(cls, type_str: str) -> "NodeKind | None":
        """Convert a string to NodeKind enum, returning None if not found."""
        try:
            return cls.from_string(type_str)
        except ValueError:
            return None


# Named colors available to nodes; pins store the resolved hex value
PIN_COLORS: dict[str, str] = {
    "default": "#666666",
    "red": "#ff4444",
    "green": "#44ff44",
    "blue": "#4444ff",
    "yellow": "#ffff44",
    "purple": "#ff44ff",
    "orange": "#ff8844",
    "cyan": "#44ffff",
}

DEFAULT_COLOR = "default"


def resolve_color(color_name: str) -> str:
    """Return the hex value for a named color, falling back to the default."""
    return PIN_COLORS.get(color_name, PIN_COLORS[DEFAULT_COLOR])
