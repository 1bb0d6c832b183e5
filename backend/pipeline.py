"""
Offline tile builder for the Brooklyn street-cleaning sign and centerline stores.

Fetches every broom sign from NYC Open Data, converts it to lon/lat, buckets
it into the shared tile grid and writes one JSON array per tile plus a
pointer file naming it. Centerline GeoJSON can be tiled into the same grid.

Usage:
    python pipeline.py [--out DIR] [--max-pages N] [--centerlines PATH] [--skip-signs]
"""
import argparse
import asyncio
import json
import logging
from collections import Counter
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from config import CENTERLINE_DATASET, POINTER_SCHEME, SIGN_DATASET, TILE_STORE_DIR
from errors import UpstreamFetchFailed
from fetchers import SignRecordFetcher
from fetchers.pointer_resolver import pointer_path
from transformers import BBox, CenterlineFeature, Projection, SignRecord, TILE_GRID, TileGrid
from transformers.tile_grid import tile_name

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


class TileBuildPipeline:
    """
    Builds the read-only tile stores consumed by TileFetchOrchestrator.

    Layout under out_dir:
        asp/tile_<c>_<r>.json                 JSON array of sign records
        asp/pointers/tile_<c>_<r>.txt         "v0blob:///asp/tile_<c>_<r>.json"
        centerline/tile_<c>_<r>.json          GeoJSON FeatureCollection
        centerline/pointers/tile_<c>_<r>.txt
    """

    def __init__(
        self,
        out_dir: Path = TILE_STORE_DIR,
        grid: TileGrid = TILE_GRID,
        projection: Optional[Projection] = None,
        fetcher_factory=SignRecordFetcher,
    ):
        self.out_dir = Path(out_dir)
        self.grid = grid
        self.projection = projection or Projection()
        self.fetcher_factory = fetcher_factory
        self.run_stats = {
            "start_time": None,
            "end_time": None,
            "rows": 0,
            "kept": 0,
            "skipped": Counter(),
            "tiles": {},
        }

    async def run(self, max_pages: Optional[int] = None) -> bool:
        """
        Run the sign tile build.

        Returns True on success. An upstream page that keeps failing aborts
        the whole build before anything is written.
        """
        self.run_stats["start_time"] = datetime.utcnow()
        logger.info("=" * 60)
        logger.info("Building street-cleaning sign tiles (Brooklyn)")
        logger.info(f"Grid: {self.grid.cols}x{self.grid.rows} over {self.grid.bbox}")
        logger.info(f"Output: {self.out_dir}")
        logger.info("=" * 60)

        try:
            logger.info("\n[Step 1/3] Fetching sign rows...")
            kwargs = {"max_pages": max_pages} if max_pages else {}
            async with self.fetcher_factory(**kwargs) as fetcher:
                rows = await fetcher.fetch()

            logger.info("\n[Step 2/3] Converting and tiling...")
            buckets = self.bucket_sign_rows(rows)

            logger.info("\n[Step 3/3] Writing tiles...")
            self.write_tiles(SIGN_DATASET, {
                name: [record.to_dict() for record in records]
                for name, records in buckets.items()
            })
        except UpstreamFetchFailed as e:
            logger.error(f"Build aborted: {e}")
            return False
        except Exception as e:
            logger.exception(f"Pipeline failed with error: {e}")
            return False

        self.run_stats["end_time"] = datetime.utcnow()
        duration = (self.run_stats["end_time"] - self.run_stats["start_time"]).total_seconds()
        skipped = self.run_stats["skipped"]

        logger.info("\n" + "=" * 60)
        logger.info("Build completed successfully!")
        logger.info(f"Duration: {duration:.1f} seconds")
        logger.info(f"Rows fetched: {self.run_stats['rows']:,}")
        logger.info(f"Points kept: {self.run_stats['kept']:,}")
        logger.info(f"Skipped (no sign text): {skipped['no_text']:,}")
        logger.info(f"Skipped (bad XY): {skipped['bad_xy']:,}")
        logger.info(f"Skipped (bad lat/lon): {skipped['bad_latlon']:,}")
        logger.info("=" * 60)
        return True

    def bucket_sign_rows(self, rows: Iterable[Dict[str, Any]]) -> Dict[str, List[SignRecord]]:
        """Convert rows to SignRecords and assign each to its grid tile"""
        buckets: Dict[str, List[SignRecord]] = {tile_name(t): [] for t in self.grid.all_tiles()}

        for row in rows:
            self.run_stats["rows"] += 1
            record, skip_reason = SignRecord.parse_upstream_row(row, self.projection)
            if record is None:
                self.run_stats["skipped"][skip_reason] += 1
                continue

            buckets[tile_name(self.grid.tile_index_for(record.lon, record.lat))].append(record)
            self.run_stats["kept"] += 1

        return buckets

    def bucket_centerlines(self, collection: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
        """
        Split a centerline FeatureCollection into per-tile collections.

        A feature is written to every tile its bounding box touches, so a
        street crossing a tile edge can be found from either side.
        """
        buckets = {
            tile_name(t): {"type": "FeatureCollection", "features": []}
            for t in self.grid.all_tiles()
        }

        for raw in collection.get("features", []):
            feature = CenterlineFeature.from_geojson(raw)
            if feature is None:
                self.run_stats["skipped"]["bad_centerline"] += 1
                continue
            lats = [lat for lat, _ in feature.coordinates]
            lons = [lon for _, lon in feature.coordinates]
            extent = BBox(west=min(lons), south=min(lats), east=max(lons), north=max(lats))
            if not self.grid.bbox.intersects(extent):
                self.run_stats["skipped"]["outside_grid"] += 1
                continue
            for tile in self.grid.tiles_for_bbox(extent):
                buckets[tile_name(tile)]["features"].append(feature.to_geojson())

        return buckets

    def run_centerlines(self, geojson_path: Path) -> bool:
        """Tile a local centerline GeoJSON file into the centerline store"""
        try:
            with open(geojson_path) as f:
                collection = json.load(f)
            self.write_tiles(CENTERLINE_DATASET, self.bucket_centerlines(collection))
        except (OSError, ValueError) as e:
            logger.error(f"Centerline build failed for {geojson_path}: {e}")
            return False
        return True

    def write_tiles(self, dataset: str, tiles: Dict[str, Any]):
        """Write every tile payload and its pointer file"""
        dataset_dir = self.out_dir / dataset
        (dataset_dir / "pointers").mkdir(parents=True, exist_ok=True)

        for name, payload in tiles.items():
            with open(dataset_dir / f"{name}.json", "w") as f:
                json.dump(payload, f)

            location = f"{POINTER_SCHEME}/{dataset}/{name}.json"
            (self.out_dir / pointer_path(dataset, name)).write_text(location + "\n")

            count = len(payload["features"]) if isinstance(payload, dict) else len(payload)
            self.run_stats["tiles"][f"{dataset}/{name}"] = count
            logger.info(f"Wrote {dataset}/{name}.json ({count} items)")


async def run_pipeline(out_dir: Path = TILE_STORE_DIR, max_pages: Optional[int] = None) -> bool:
    """Entry point for running the sign tile build"""
    pipeline = TileBuildPipeline(out_dir=out_dir)
    return await pipeline.run(max_pages=max_pages)


def main():
    parser = argparse.ArgumentParser(description="Build sign and centerline tile stores")
    parser.add_argument("--out", type=Path, default=TILE_STORE_DIR)
    parser.add_argument("--max-pages", type=int, default=None)
    parser.add_argument("--centerlines", type=Path, default=None, help="Centerline GeoJSON to tile")
    parser.add_argument("--skip-signs", action="store_true")
    args = parser.parse_args()

    success = True
    if not args.skip_signs:
        success = asyncio.run(run_pipeline(args.out, args.max_pages))
    if success and args.centerlines:
        success = TileBuildPipeline(out_dir=args.out).run_centerlines(args.centerlines)
    return 0 if success else 1


if __name__ == "__main__":
    import sys

    sys.exit(main())
