"""Fuse sign tiles and centerline tiles into blockface lines for one viewport"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from fetchers.tile_fetcher import TileFetchOrchestrator
from transformers import BBox, BlockfaceLine, BlockfaceMatcher

logger = logging.getLogger(__name__)


@dataclass
class BlockfaceResult:
    lines: List[BlockfaceLine]
    ok: bool = True
    partial: bool = False
    note: Optional[str] = None
    failed_tiles: List[str] = field(default_factory=list)

    def to_response(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"ok": self.ok, "lines": [line.to_dict() for line in self.lines]}
        if self.partial:
            body["partial"] = True
            body["note"] = self.note
            body["failedTiles"] = self.failed_tiles
        return body


async def build_blockfaces(orchestrator: TileFetchOrchestrator, bbox: BBox) -> BlockfaceResult:
    """
    Fetch both datasets for bbox and build the blockface lines.

    Raises CenterlineUnavailable when any centerline tile failed; sign tile
    failures only make the result partial.
    """
    sign_task = asyncio.ensure_future(orchestrator.fetch_sign_records(bbox))
    try:
        centerlines = await orchestrator.fetch_centerlines(bbox)
    except BaseException:
        sign_task.cancel()
        await asyncio.gather(sign_task, return_exceptions=True)
        raise
    signs = await sign_task

    lines = BlockfaceMatcher().build_lines(signs.points, centerlines)
    logger.info(
        f"{len(lines)} blockface lines from {len(signs.points)} signs and "
        f"{len(centerlines)} centerlines"
    )
    return BlockfaceResult(
        lines=lines,
        ok=signs.ok,
        partial=signs.partial,
        note=signs.note,
        failed_tiles=signs.failed_tiles,
    )
