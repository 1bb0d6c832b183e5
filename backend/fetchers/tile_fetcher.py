"""Concurrent tile fetching with per-dataset partial-failure policy"""
import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from shapely.geometry import LineString, box

from config import (
    CENTERLINE_DATASET,
    MAX_CONCURRENCY,
    REQUEST_TIMEOUT_SECONDS,
    SIGN_DATASET,
)
from errors import CenterlineUnavailable, TileFetchFailed
from transformers.records import CenterlineFeature, SignRecord
from transformers.tile_grid import TILE_GRID, BBox, TileGrid, tile_name
from validators import DataValidator
from .pointer_resolver import PointerResolver

logger = logging.getLogger(__name__)


class FetchState(Enum):
    IDLE = "idle"
    TILE_SET_RESOLVED = "tile_set_resolved"
    FETCHING = "fetching"
    ALL_SUCCEEDED = "all_succeeded"
    PARTIALLY_FAILED = "partially_failed"


@dataclass(frozen=True)
class TileFetchPolicy:
    """How one dataset kind treats failed tiles"""
    dataset: str
    allow_partial: bool
    validate: str  # DataValidator method name


# A missing sign tile only hides some signs. A missing centerline tile would
# look exactly like "no rule here", so it fails the whole request.
SIGN_POLICY = TileFetchPolicy(dataset=SIGN_DATASET, allow_partial=True, validate="validate_sign_tile")
CENTERLINE_POLICY = TileFetchPolicy(
    dataset=CENTERLINE_DATASET, allow_partial=False, validate="validate_centerline_tile"
)


@dataclass
class TileResult:
    tile: str
    payload: Any = None
    error: Optional[TileFetchFailed] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class TileFetchReport:
    """Outcome of fetching every tile one query needs"""
    dataset: str
    tiles: List[str] = field(default_factory=list)
    results: List[TileResult] = field(default_factory=list)
    state: FetchState = FetchState.IDLE

    @property
    def failed(self) -> List[TileResult]:
        return [r for r in self.results if not r.ok]

    @property
    def failed_tiles(self) -> List[str]:
        return [r.tile for r in self.failed]

    @property
    def payloads(self) -> List[Any]:
        return [r.payload for r in self.results if r.ok]


@dataclass
class SignRecordResult:
    """Sign records in view, plus whether any tile failed to load"""
    points: List[SignRecord]
    partial: bool = False
    note: Optional[str] = None
    failed_tiles: List[str] = field(default_factory=list)
    tiles_requested: int = 0

    @property
    def ok(self) -> bool:
        # Nothing loaded at all is a failure, not an empty view
        return not self.tiles_requested or len(self.failed_tiles) < self.tiles_requested

    def to_response(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"ok": self.ok, "points": [p.to_dict() for p in self.points]}
        if self.partial:
            body["partial"] = True
            body["note"] = self.note
            body["failedTiles"] = self.failed_tiles
        return body


def failure_note(report: TileFetchReport) -> str:
    details = "; ".join(f"{r.tile} ({r.error.reason})" for r in report.failed)
    return f"{len(report.failed)} of {len(report.tiles)} {report.dataset} tiles failed: {details}"


def apply_policy(policy: TileFetchPolicy, report: TileFetchReport) -> List[Any]:
    """
    The single place where failed tiles are judged.

    Returns the payloads of the tiles that loaded, or raises
    CenterlineUnavailable when the policy forbids partial data.
    """
    if report.failed:
        logger.warning(failure_note(report))
        if not policy.allow_partial:
            raise CenterlineUnavailable(
                report.failed_tiles, [r.error.reason for r in report.failed]
            )
    return report.payloads


class TileFetchOrchestrator:
    """
    Resolves a query box into grid tiles and loads them concurrently.

    Tiles go through a PointerResolver, are checked by DataValidator, and
    are then filtered back down to the (unclamped) query box since tiles are
    much coarser than a viewport.
    """

    def __init__(
        self,
        resolver: PointerResolver,
        grid: TileGrid = TILE_GRID,
        max_concurrency: int = MAX_CONCURRENCY,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        validator: Optional[DataValidator] = None,
    ):
        self.resolver = resolver
        self.grid = grid
        self.max_concurrency = max_concurrency
        self.timeout = timeout
        self.validator = validator or DataValidator()

    def resolve_tiles(self, bbox: BBox) -> List[str]:
        clamped = self.grid.clamp_bbox(bbox)
        return [tile_name(t) for t in self.grid.tiles_for_bbox(clamped)]

    async def _fetch_one(self, policy: TileFetchPolicy, tile: str) -> TileResult:
        try:
            payload = await self.resolver.load_tile(policy.dataset, tile)
        except TileFetchFailed as e:
            return TileResult(tile=tile, error=e)

        validation = getattr(self.validator, policy.validate)(payload)
        if not validation.is_valid:
            return TileResult(tile=tile, error=TileFetchFailed(tile, "; ".join(validation.errors)))
        return TileResult(tile=tile, payload=payload)

    async def fetch_tiles(self, policy: TileFetchPolicy, tiles: List[str]) -> List[TileResult]:
        """
        Fetch tiles with a bounded worker pool.

        Each worker pulls (index, tile) from a shared queue and writes into
        its slot of a preallocated list. Workers still running when the
        timeout expires are cancelled and their tiles count as failed.
        Cancelling the fetch itself cancels every worker.
        """
        results: List[Optional[TileResult]] = [None] * len(tiles)
        if not tiles:
            return []

        queue: asyncio.Queue = asyncio.Queue()
        for item in enumerate(tiles):
            queue.put_nowait(item)

        async def worker():
            while True:
                try:
                    idx, tile = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return
                results[idx] = await self._fetch_one(policy, tile)

        workers = [
            asyncio.ensure_future(worker())
            for _ in range(min(self.max_concurrency, len(tiles)))
        ]
        try:
            done, pending = await asyncio.wait(workers, timeout=self.timeout)
        except asyncio.CancelledError:
            for task in workers:
                task.cancel()
            await asyncio.gather(*workers, return_exceptions=True)
            raise

        if pending:
            logger.warning(f"{policy.dataset} tile fetch timed out after {self.timeout}s")
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

        for task in done:
            task.result()

        return [
            r if r is not None else TileResult(tile=t, error=TileFetchFailed(t, "timeout"))
            for t, r in zip(tiles, results)
        ]

    async def fetch_report(self, policy: TileFetchPolicy, bbox: BBox) -> TileFetchReport:
        report = TileFetchReport(dataset=policy.dataset)
        report.tiles = self.resolve_tiles(bbox)
        report.state = FetchState.TILE_SET_RESOLVED

        report.state = FetchState.FETCHING
        report.results = await self.fetch_tiles(policy, report.tiles)
        report.state = FetchState.PARTIALLY_FAILED if report.failed else FetchState.ALL_SUCCEEDED

        logger.info(
            f"Fetched {len(report.tiles) - len(report.failed)}/{len(report.tiles)} "
            f"{policy.dataset} tiles ({report.state.value})"
        )
        return report

    async def fetch_sign_records(self, bbox: BBox) -> SignRecordResult:
        """Sign records inside bbox. Failed tiles mark the result partial."""
        report = await self.fetch_report(SIGN_POLICY, bbox)
        points = []
        for payload in apply_policy(SIGN_POLICY, report):
            for entry in payload:
                record = SignRecord.from_dict(entry)
                if record is not None and bbox.contains(record.lon, record.lat):
                    points.append(record)

        partial = bool(report.failed)
        return SignRecordResult(
            points=points,
            partial=partial,
            note=failure_note(report) if partial else None,
            failed_tiles=report.failed_tiles,
            tiles_requested=len(report.tiles),
        )

    async def fetch_centerlines(self, bbox: BBox) -> List[CenterlineFeature]:
        """
        Centerline features intersecting bbox.

        Raises CenterlineUnavailable if any required tile failed.
        """
        report = await self.fetch_report(CENTERLINE_POLICY, bbox)
        query = box(bbox.west, bbox.south, bbox.east, bbox.north)

        features = []
        for payload in apply_policy(CENTERLINE_POLICY, report):
            for raw in payload["features"]:
                feature = CenterlineFeature.from_geojson(raw)
                if feature is None:
                    continue
                line = LineString([(lon, lat) for lat, lon in feature.coordinates])
                if line.intersects(query):
                    features.append(feature)
        return features
