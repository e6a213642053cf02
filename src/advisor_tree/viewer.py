#!/usr/bin/env python3
"""
Tree Viewer - web interface onto a live graph session

A lightweight aiohttp server that owns one GraphSession, ticks it at 60 fps
and exposes it to browser-side collaborators (roster list, profile card,
homepage preview):

    GET  /api/graph    current snapshot (positions, overlays, camera)
    GET  /api/node/ID  the dataset record for one node
    POST /api/select   {"id": ..., "focus": bool}
    POST /api/hover    {"id": ... | null}
    POST /api/click    {"x": ..., "y": ...}  (screen coords)
    POST /api/resize   {"width": ..., "height": ...}
    GET  /graph.png    the current frame rendered with Pillow

Usage:
    python -m advisor_tree.viewer dataset.json [--port 8765] [--host 0.0.0.0]
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging

from aiohttp import web

from .parser import DatasetValidationError, parse_file
from .renderer import TreeRenderer
from .session import FRAME_INTERVAL, GraphSession

logger = logging.getLogger(__name__)

SESSION_KEY = web.AppKey("session", GraphSession)
RENDERER_KEY = web.AppKey("renderer", TreeRenderer)
TICKER_KEY = web.AppKey("ticker", asyncio.Task)


async def _read_json(request: web.Request) -> dict:
    try:
        data = await request.json()
    except ValueError:
        raise web.HTTPBadRequest(text="Request body must be JSON")
    if not isinstance(data, dict):
        raise web.HTTPBadRequest(text="Request body must be a JSON object")
    return data


async def handle_graph(request: web.Request) -> web.Response:
    session = request.app[SESSION_KEY]
    return web.json_response(session.snapshot().model_dump())


async def handle_node(request: web.Request) -> web.Response:
    session = request.app[SESSION_KEY]
    node = session.tree.get_node(request.match_info["node_id"])
    if node is None:
        raise web.HTTPNotFound(text="Unknown node")
    payload = node.model_dump()
    payload["cluster"] = session.resolver.cluster_of(node.id)
    payload["preferred_parent"] = session.resolver.preferred_parent(node.id)
    return web.json_response(payload)


async def handle_select(request: web.Request) -> web.Response:
    session = request.app[SESSION_KEY]
    data = await _read_json(request)
    node_id = data.get("id")
    if node_id is None:
        session.dispatcher.background_click()
        return web.json_response({"selected": None})
    if not session.select(str(node_id), focus=bool(data.get("focus", False))):
        raise web.HTTPNotFound(text="Unknown node")
    return web.json_response({
        "selected": session.selected_id,
        "lineage": sorted(session.highlight.lineage.nodes),
    })


async def handle_hover(request: web.Request) -> web.Response:
    session = request.app[SESSION_KEY]
    data = await _read_json(request)
    node_id = data.get("id")
    session.hover(str(node_id) if node_id is not None else None)
    return web.json_response({
        "hovered": session.hovered_id,
        "related": sorted(session.highlight.hover_overlay.nodes),
    })


async def handle_click(request: web.Request) -> web.Response:
    session = request.app[SESSION_KEY]
    data = await _read_json(request)
    try:
        x, y = float(data["x"]), float(data["y"])
    except (KeyError, TypeError, ValueError):
        raise web.HTTPBadRequest(text="x and y are required numbers")
    node_id = session.dispatcher.click_at(x, y)
    return web.json_response({"node": node_id, "selected": session.selected_id})


async def handle_resize(request: web.Request) -> web.Response:
    session = request.app[SESSION_KEY]
    data = await _read_json(request)
    try:
        width, height = float(data["width"]), float(data["height"])
    except (KeyError, TypeError, ValueError):
        raise web.HTTPBadRequest(text="width and height are required numbers")
    if not session.resize(width, height):
        raise web.HTTPBadRequest(text="width and height must be non-zero")
    return web.json_response({"width": session.width, "height": session.height})


async def handle_png(request: web.Request) -> web.Response:
    session = request.app[SESSION_KEY]
    renderer = request.app[RENDERER_KEY]
    png = renderer.render(session.snapshot())
    return web.Response(body=png, content_type="image/png")


async def _tick(session: GraphSession):
    """Drive the session's frame loop from the event loop."""
    loop = asyncio.get_running_loop()
    while not session.closed:
        session.frame(loop.time())
        await asyncio.sleep(FRAME_INTERVAL)


async def _start_ticker(app: web.Application):
    app[TICKER_KEY] = asyncio.create_task(_tick(app[SESSION_KEY]))


async def _stop_ticker(app: web.Application):
    task = app.get(TICKER_KEY)
    if task is not None:
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task


async def _close_session(app: web.Application):
    app[SESSION_KEY].close()


def create_app(session: GraphSession, animate: bool = True, theme: str = "light") -> web.Application:
    """Build the web app around an existing session."""
    app = web.Application()
    app[SESSION_KEY] = session
    app[RENDERER_KEY] = TreeRenderer(scale=1.0, theme=theme)

    app.router.add_get("/api/graph", handle_graph)
    app.router.add_get("/api/node/{node_id}", handle_node)
    app.router.add_post("/api/select", handle_select)
    app.router.add_post("/api/hover", handle_hover)
    app.router.add_post("/api/click", handle_click)
    app.router.add_post("/api/resize", handle_resize)
    app.router.add_get("/graph.png", handle_png)

    if animate:
        app.on_startup.append(_start_ticker)
        app.on_cleanup.append(_stop_ticker)
    app.on_cleanup.append(_close_session)
    return app


def main():
    parser = argparse.ArgumentParser(description="Serve a live advisor-tree layout")
    parser.add_argument("dataset", help="Path to the advisor-tree JSON dataset")
    parser.add_argument("--port", type=int, default=8765, help="Port to listen on")
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    parser.add_argument("--width", type=float, default=0, help="Initial viewport width")
    parser.add_argument("--height", type=float, default=0, help="Initial viewport height")
    parser.add_argument("--theme", default="light", choices=["light", "dark"])
    args = parser.parse_args()

    # Configure logging
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        tree = parse_file(args.dataset)
    except (DatasetValidationError, OSError) as e:
        logger.error("Failed to load dataset: %s", e)
        raise SystemExit(1)

    session = GraphSession(tree, width=args.width, height=args.height)
    logger.info("Starting Tree Viewer on http://%s:%s", args.host, args.port)
    web.run_app(create_app(session, theme=args.theme), host=args.host, port=args.port)


if __name__ == "__main__":
    main()
