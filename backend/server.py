#!/usr/bin/env python3
"""
HTTP query interface for sign records, centerlines and blockface lines.

Usage:
    python server.py [--host HOST] [--port PORT] [--tiles DIR | --origin URL]

Endpoints (all take west, south, east, north in degrees):
    GET /api/asp          sign records      {ok, points, partial?, note?}
    GET /api/centerline   centerlines       FeatureCollection, or 502 {error, failedTiles}
    GET /api/blockfaces   blockface lines   {ok, lines, partial?, note?}, or 502
"""
import argparse
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from aiohttp import web

from blockfaces import build_blockfaces
from config import NO_STORE_HEADERS, SERVER_HOST, SERVER_PORT, TILE_ORIGIN, TILE_STORE_DIR
from errors import CenterlineUnavailable, InvalidQuery
from fetchers.pointer_resolver import HttpPointerResolver, LocalPointerResolver, PointerResolver
from fetchers.tile_fetcher import TileFetchOrchestrator
from validators import parse_bbox

logger = logging.getLogger(__name__)

ORCHESTRATOR_KEY = web.AppKey("orchestrator", TileFetchOrchestrator)


def _json(body: Dict[str, Any], status: int = 200) -> web.Response:
    return web.json_response(body, status=status, headers=NO_STORE_HEADERS)


def _invalid_query(error: InvalidQuery, **empty) -> web.Response:
    return _json({"ok": False, "error": "InvalidQuery", "message": str(error), **empty}, status=400)


def _centerline_failed(error: CenterlineUnavailable, **empty) -> web.Response:
    return _json(
        {
            "ok": False,
            "error": "Centerline tile fetch failed",
            "failedTiles": error.failed_tiles,
            "reasons": error.reasons,
            **empty,
        },
        status=502,
    )


async def handle_signs(request: web.Request) -> web.Response:
    try:
        bbox = parse_bbox(request.query)
    except InvalidQuery as e:
        return _invalid_query(e, points=[])

    result = await request.app[ORCHESTRATOR_KEY].fetch_sign_records(bbox)
    return _json(result.to_response())


async def handle_centerlines(request: web.Request) -> web.Response:
    try:
        bbox = parse_bbox(request.query)
    except InvalidQuery as e:
        return _invalid_query(e)

    try:
        features = await request.app[ORCHESTRATOR_KEY].fetch_centerlines(bbox)
    except CenterlineUnavailable as e:
        return _centerline_failed(e)

    return _json({"type": "FeatureCollection", "features": [f.to_geojson() for f in features]})


async def handle_blockfaces(request: web.Request) -> web.Response:
    try:
        bbox = parse_bbox(request.query)
    except InvalidQuery as e:
        return _invalid_query(e, lines=[])

    try:
        result = await build_blockfaces(request.app[ORCHESTRATOR_KEY], bbox)
    except CenterlineUnavailable as e:
        return _centerline_failed(e, lines=[])

    return _json(result.to_response())


@web.middleware
async def error_middleware(request: web.Request, handler):
    """Unexpected errors still come back as structured, uncached JSON"""
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unhandled error on {request.path}: {e}")
        return _json({"ok": False, "error": str(e)[:180] or type(e).__name__}, status=500)


def make_resolver(tiles_dir: Optional[Path] = None, origin: str = "") -> PointerResolver:
    if origin:
        return HttpPointerResolver(origin)
    return LocalPointerResolver(tiles_dir or TILE_STORE_DIR)


def create_app(resolver: Optional[PointerResolver] = None, **orchestrator_kwargs) -> web.Application:
    """Build the application around a resolver (local tile store by default)"""
    resolver = resolver or make_resolver(origin=TILE_ORIGIN)

    app = web.Application(middlewares=[error_middleware])
    app[ORCHESTRATOR_KEY] = TileFetchOrchestrator(resolver, **orchestrator_kwargs)
    app.router.add_get("/api/asp", handle_signs)
    app.router.add_get("/api/centerline", handle_centerlines)
    app.router.add_get("/api/blockfaces", handle_blockfaces)

    if isinstance(resolver, HttpPointerResolver):
        async def http_session(app):
            async with resolver:
                yield

        app.cleanup_ctx.append(http_session)

    return app


def main():
    parser = argparse.ArgumentParser(description="Serve blockface lines from tile stores")
    parser.add_argument("--host", default=SERVER_HOST)
    parser.add_argument("--port", type=int, default=SERVER_PORT)
    parser.add_argument("--tiles", type=Path, default=None, help="Local tile store directory")
    parser.add_argument("--origin", default=TILE_ORIGIN, help="HTTP origin serving pointer files")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    resolver = make_resolver(args.tiles, args.origin)
    logger.info(f"Serving tiles via {type(resolver).__name__} on {args.host}:{args.port}")
    web.run_app(create_app(resolver), host=args.host, port=args.port)


if __name__ == "__main__":
    main()
