"""advisor-tree MCP server: tools for laying out and rendering advisor trees."""

from __future__ import annotations

import json
import logging
import os
import uuid
from pathlib import Path

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, ImageContent, Tool

from .highlight import compute_hover
from .models import AdvisorTree
from .parser import DatasetValidationError, parse_dataset, parse_file
from .renderer import TreeRenderer
from .session import GraphSession

logger = logging.getLogger(__name__)

# --- Constants ---
OUTPUT_DIR = Path(os.environ.get("ADVISOR_TREE_OUTPUT_DIR", Path.home() / ".advisor_tree" / "renders"))
MAX_FRAMES = 2000

server = Server("advisor-tree")


def _ensure_output_dir():
    OUTPUT_DIR.mkdir(parents=True, exist_ok=True)


_DATASET_PROPERTIES = {
    "dataset_path": {
        "type": "string",
        "description": "Path to the advisor-tree JSON dataset.",
    },
    "dataset_json": {
        "type": "string",
        "description": "The dataset itself, as a JSON string (alternative to dataset_path).",
    },
}


# --- Tool definitions ---

@server.list_tools()
async def list_tools() -> list[Tool]:
    return [
        Tool(
            name="render_advisor_tree",
            description=(
                "Lay out an advisor tree with the force simulation and render it to PNG. "
                "Optionally select a node (highlights its lineage to the root) and/or "
                "hover a node (highlights its advisor and advisees). "
                "Returns the path to the rendered PNG file."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    **_DATASET_PROPERTIES,
                    "select": {"type": "string", "description": "Node id to select."},
                    "focus": {
                        "type": "boolean",
                        "description": "Centre the camera on the selected node instead of fitting the whole tree.",
                        "default": False,
                    },
                    "hover": {"type": "string", "description": "Node id to hover."},
                    "width": {"type": "number", "description": "Viewport width (default 960).", "default": 960},
                    "height": {"type": "number", "description": "Viewport height (default 720).", "default": 720},
                    "scale": {"type": "number", "description": "Render scale factor (default 2.0).", "default": 2.0},
                    "theme": {"type": "string", "enum": ["light", "dark"], "default": "light"},
                    "filename": {
                        "type": "string",
                        "description": "Output filename (without extension). Default: auto-generated.",
                    },
                },
            },
        ),
        Tool(
            name="get_lineage",
            description="Return the preferred-parent chain from a node up to the root.",
            inputSchema={
                "type": "object",
                "properties": {
                    **_DATASET_PROPERTIES,
                    "node_id": {"type": "string", "description": "Node to trace."},
                },
                "required": ["node_id"],
            },
        ),
        Tool(
            name="get_neighborhood",
            description="Return a node's preferred parent and direct advisees (the hover neighbourhood).",
            inputSchema={
                "type": "object",
                "properties": {
                    **_DATASET_PROPERTIES,
                    "node_id": {"type": "string", "description": "Node to inspect."},
                },
                "required": ["node_id"],
            },
        ),
        Tool(
            name="get_layout",
            description="Run the layout to rest and return node positions and clusters as JSON.",
            inputSchema={
                "type": "object",
                "properties": {
                    **_DATASET_PROPERTIES,
                    "width": {"type": "number", "default": 960},
                    "height": {"type": "number", "default": 720},
                },
            },
        ),
    ]


@server.call_tool()
async def call_tool(name: str, arguments: dict) -> list[TextContent | ImageContent]:
    if name == "render_advisor_tree":
        return await _render_advisor_tree(arguments)
    elif name == "get_lineage":
        return await _get_lineage(arguments)
    elif name == "get_neighborhood":
        return await _get_neighborhood(arguments)
    elif name == "get_layout":
        return await _get_layout(arguments)
    else:
        return [TextContent(type="text", text=f"Unknown tool: {name}")]


def _load_tree(args: dict) -> AdvisorTree:
    """Load the dataset named by the tool arguments."""
    if args.get("dataset_json"):
        return parse_dataset(args["dataset_json"])
    if args.get("dataset_path"):
        return parse_file(args["dataset_path"])
    raise DatasetValidationError("Provide dataset_path or dataset_json")


def _text(payload: dict) -> list[TextContent]:
    return [TextContent(type="text", text=json.dumps(payload))]


def _unknown_node(tree: AdvisorTree, node_id: str) -> bool:
    return tree.get_node(node_id) is None


async def _render_advisor_tree(args: dict) -> list[TextContent]:
    """Lay out, highlight and render a tree to PNG."""
    _ensure_output_dir()

    try:
        tree = _load_tree(args)
    except (DatasetValidationError, OSError) as e:
        return [TextContent(type="text", text=f"Failed to load dataset: {e}")]

    session = GraphSession(
        tree,
        width=float(args.get("width", 960)),
        height=float(args.get("height", 720)),
    )
    try:
        session.run_until_stable(MAX_FRAMES)

        selected = args.get("select")
        if selected and not session.select(selected, focus=bool(args.get("focus", False))):
            return [TextContent(type="text", text=f"Unknown node: {selected}")]
        if args.get("hover"):
            session.hover(args["hover"])
        session.run_until_stable(MAX_FRAMES)

        filename = args.get("filename", f"{tree.root}-{str(uuid.uuid4())[:8]}")
        output_path = str(OUTPUT_DIR / f"{filename}.png")
        renderer = TreeRenderer(scale=float(args.get("scale", 2.0)), theme=args.get("theme", "light"))
        snapshot = session.snapshot()
        try:
            renderer.render(snapshot, output_path=output_path)
        except (OSError, ValueError) as e:
            logger.error("Rendering failed: %s", e)
            return [TextContent(type="text", text=f"Rendering failed: {e}")]
    finally:
        session.close()

    return _text({
        "status": "success",
        "path": output_path,
        "root": tree.root,
        "nodes": len(tree.nodes),
        "edges": len(tree.edges),
        "selected": snapshot.selected_id,
        "hovered": snapshot.hovered_id,
        "stabilized": snapshot.stabilized,
    })


async def _get_lineage(args: dict) -> list[TextContent]:
    try:
        tree = _load_tree(args)
    except (DatasetValidationError, OSError) as e:
        return [TextContent(type="text", text=f"Failed to load dataset: {e}")]

    node_id = args["node_id"]
    if _unknown_node(tree, node_id):
        return [TextContent(type="text", text=f"Unknown node: {node_id}")]

    session = GraphSession(tree)
    try:
        path = session.resolver.lineage_path(node_id)
        return _text({
            "node_id": node_id,
            "path": path,
            "names": [tree.get_node(step).get_label() for step in path],
            "cluster": session.resolver.cluster_of(node_id),
        })
    finally:
        session.close()


async def _get_neighborhood(args: dict) -> list[TextContent]:
    try:
        tree = _load_tree(args)
    except (DatasetValidationError, OSError) as e:
        return [TextContent(type="text", text=f"Failed to load dataset: {e}")]

    node_id = args["node_id"]
    if _unknown_node(tree, node_id):
        return [TextContent(type="text", text=f"Unknown node: {node_id}")]

    session = GraphSession(tree)
    try:
        overlay = compute_hover(node_id, session.resolver)
        return _text({
            "node_id": node_id,
            "preferred_parent": session.resolver.preferred_parent(node_id),
            "children": session.resolver.children(node_id),
            "nodes": sorted(overlay.nodes),
            "edges": sorted([list(edge) for edge in overlay.edges]),
        })
    finally:
        session.close()


async def _get_layout(args: dict) -> list[TextContent]:
    try:
        tree = _load_tree(args)
    except (DatasetValidationError, OSError) as e:
        return [TextContent(type="text", text=f"Failed to load dataset: {e}")]

    session = GraphSession(
        tree,
        width=float(args.get("width", 960)),
        height=float(args.get("height", 720)),
    )
    try:
        frames = session.run_until_stable(MAX_FRAMES)
        snapshot = session.snapshot()
    finally:
        session.close()

    return _text({
        "root": tree.root,
        "frames": frames,
        "stabilized": snapshot.stabilized,
        "camera": snapshot.camera.model_dump(),
        "nodes": [
            {
                "id": node.id,
                "x": node.x,
                "y": node.y,
                "radius": node.radius,
                "depth": node.depth,
                "cluster": node.cluster_id,
            }
            for node in snapshot.nodes
        ],
    })


def main():
    """Entry point for the MCP server."""
    import asyncio
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    asyncio.run(_run())


async def _run():
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())


if __name__ == "__main__":
    main()
