"""
graphnest Main Entry Point

Command line access to graph documents without an editor front end.

Usage:
    python -m graphnest info FILE
    python -m graphnest convert FILE --to readable [--output DIR] [--name NAME]
    python -m graphnest layout FILE [--output DIR]
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

# Configure logging before importing graphnest modules
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[
        logging.StreamHandler(sys.stderr),
    ],
)

logger = logging.getLogger("graphnest")

from graphnest.core.editor import EditorSession  # noqa: E402
from graphnest.core.layout import AutoLayout  # noqa: E402
from graphnest.serialization.schema import GraphFormat, SchemaValidationError  # noqa: E402


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="graphnest",
        description="graphnest - hierarchical node graph documents",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    info = subparsers.add_parser("info", help="Show the format and size of a graph file")
    info.add_argument("file", type=Path)

    convert = subparsers.add_parser("convert", help="Re-save a graph file in another format")
    convert.add_argument("file", type=Path)
    convert.add_argument(
        "--to",
        choices=[GraphFormat.FULL.value, GraphFormat.READABLE.value],
        default=GraphFormat.FULL.value,
        help="Output format",
    )
    convert.add_argument(
        "--output",
        "-o",
        type=Path,
        help="Output directory (defaults to the input file's directory; never overwrites the input)",
    )
    convert.add_argument(
        "--name",
        help="Project name to use when the graph still has the default name",
    )

    layout = subparsers.add_parser("layout", help="Auto-layout every graph and save as full format")
    layout.add_argument("file", type=Path)
    layout.add_argument("--output", "-o", type=Path)
    layout.add_argument("--name")

    return parser.parse_args(argv)


def setup_logging(debug: bool = False) -> None:
    """Configure logging level."""
    level = logging.DEBUG if debug else logging.INFO
    logging.getLogger("graphnest").setLevel(level)


def cmd_info(session: EditorSession, fmt: GraphFormat) -> int:
    store = session.store
    nodes = sum(len(graph.nodes) for graph in store)
    connections = sum(len(graph.connections) for graph in store)

    print(f"Format:      {fmt.value}")
    print(f"Project:     {store.root.name}")
    print(f"Graphs:      {len(store)}")
    print(f"Nodes:       {nodes}")
    print(f"Connections: {connections}")
    return 0


def _would_overwrite_input(session: EditorSession, args: argparse.Namespace, output: Path, readable: bool) -> bool:
    name = args.name if session.needs_project_name() else session.root.name
    if not name or not name.strip():
        return False
    fmt = GraphFormat.READABLE if readable else GraphFormat.FULL
    target = output / session.serializer.file_name_for(name.strip(), fmt)
    return target.resolve() == args.file.resolve()


def cmd_save(session: EditorSession, args: argparse.Namespace, readable: bool) -> int:
    output = args.output or args.file.parent
    if _would_overwrite_input(session, args, output, readable):
        logger.error(f"Refusing to overwrite the input file {args.file}; pass --output")
        return 1
    path = session.save(output, readable=readable, prompt=lambda: args.name)
    if path is None:
        return 1
    print(path)
    return 0


def cmd_layout(session: EditorSession, args: argparse.Namespace) -> int:
    layout = AutoLayout(session.config.layout)
    for graph in session.store:
        layout.layout(graph)
    logger.info(f"Laid out {len(session.store)} graph(s)")
    return cmd_save(session, args, readable=False)


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    setup_logging(args.debug)

    session = EditorSession()
    try:
        fmt = asyncio.run(session.load_file(args.file))

        if args.command == "info":
            return cmd_info(session, fmt)
        if args.command == "convert":
            return cmd_save(session, args, readable=args.to == GraphFormat.READABLE.value)
        if args.command == "layout":
            return cmd_layout(session, args)
    except (FileNotFoundError, PermissionError) as e:
        logger.error(f"Cannot open {args.file}: {e}")
        return 1
    except SchemaValidationError as e:
        logger.error(f"Invalid graph file: {e}")
        return 1

    return 1


if __name__ == "__main__":
    sys.exit(main())
