"""
Centralized Configuration for graphnest.

This module provides a single source of truth for the editor constants:
grid and node sizing, zoom limits, auto-layout pitch and the legacy
import grid.
"""

import json
import logging
import math
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)


@dataclass
class GridConfig:
    """Grid and node sizing values (canvas units)."""

    grid_size: int = 32
    node_min_width: int = 256
    node_min_height: int = 128

    def snap(self, value: float) -> int:
        """Snap a coordinate to the nearest grid line (halves round up)."""
        return math.floor(value / self.grid_size + 0.5) * self.grid_size


@dataclass
class ViewConfig:
    """Pan/zoom related values."""

    min_zoom: float = 0.25
    max_zoom: float = 4.0
    zoom_sensitivity: float = 0.1

    # Name the root graph reverts to when cleared
    default_root_name: str = "Root"

    def clamp_zoom(self, zoom: float) -> float:
        return max(self.min_zoom, min(self.max_zoom, zoom))


@dataclass
class LayoutConfig:
    """Auto-layout pitch and the pan applied after a layout pass."""

    padding_x: int = 384
    padding_y: int = 192
    pan_offset_x: float = 64.0
    pan_offset_y: float = 64.0


@dataclass
class LegacyConfig:
    """Fixed grid used when importing the legacy story format."""

    origin_x: int = 50
    origin_y: int = 50
    column_gutter: int = 80
    row_gutter: int = 60
    max_columns: int = 4


@dataclass
class PathConfig:
    """Path-related configuration values."""

    user_config_dir: Path = field(default_factory=lambda: Path.home() / ".graphnest")

    # File suffixes for the two export encodings
    full_suffix: str = ".json"
    readable_suffix: str = "_readable.json"


@dataclass
class GraphnestConfig:
    """Main configuration container for graphnest."""

    grid: GridConfig = field(default_factory=GridConfig)
    view: ViewConfig = field(default_factory=ViewConfig)
    layout: LayoutConfig = field(default_factory=LayoutConfig)
    legacy: LegacyConfig = field(default_factory=LegacyConfig)
    paths: PathConfig = field(default_factory=PathConfig)

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            "grid": asdict(self.grid),
            "view": asdict(self.view),
            "layout": asdict(self.layout),
            "legacy": asdict(self.legacy),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GraphnestConfig":
        """Create configuration from dictionary, ignoring unknown keys."""
        config = cls()

        for section_name in ("grid", "view", "layout", "legacy"):
            section_data = data.get(section_name)
            if not isinstance(section_data, dict):
                continue
            section = getattr(config, section_name)
            for key, value in section_data.items():
                if hasattr(section, key):
                    setattr(section, key, value)

        return config

    def save(self, path: Optional[Path] = None) -> None:
        """Save configuration to file."""
        if path is None:
            path = self.paths.user_config_dir / "config.json"

        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)

        logger.info(f"Configuration saved to {path}")

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "GraphnestConfig":
        """Load configuration from file, using defaults if not found."""
        config = cls()

        if path is None:
            path = config.paths.user_config_dir / "config.json"

        if path.exists():
            try:
                with open(path, encoding="utf-8") as f:
                    data = json.load(f)
                config = cls.from_dict(data)
                logger.info(f"Configuration loaded from {path}")
            except (OSError, ValueError, AttributeError) as e:
                logger.warning(f"Failed to load configuration from {path}: {e}")
                logger.info("Using default configuration")

        return config


# Global configuration instance - lazy loaded
_config: Optional[GraphnestConfig] = None


def get_config() -> GraphnestConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = GraphnestConfig.load()
    return _config


def set_config(config: Optional[GraphnestConfig]) -> None:
    """Set the global configuration instance (None resets to lazy loading)."""
    global _config
    _config = config
