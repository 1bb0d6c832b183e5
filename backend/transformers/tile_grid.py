"""Fixed spatial tile grid shared by the sign and centerline tile stores"""
import math
from dataclasses import dataclass
from typing import List, Tuple

from config import TILE_BBOX, TILE_COLS, TILE_ROWS

TileId = Tuple[int, int]


@dataclass(frozen=True)
class BBox:
    """Geographic bounding box in degrees"""
    west: float
    south: float
    east: float
    north: float

    def contains(self, lon: float, lat: float) -> bool:
        return self.west <= lon <= self.east and self.south <= lat <= self.north

    def intersects(self, other: "BBox") -> bool:
        return not (
            other.east < self.west
            or other.west > self.east
            or other.north < self.south
            or other.south > self.north
        )


def _clamp(n: float, low: float, high: float) -> float:
    return max(low, min(high, n))


def tile_name(tile: TileId) -> str:
    """(col, row) -> 'tile_<col>_<row>'"""
    return f"tile_{tile[0]}_{tile[1]}"


@dataclass(frozen=True)
class TileGrid:
    """
    A cols x rows grid laid over a fixed bounding box.

    Every dataset that takes part in matching must be tiled with the same
    grid, otherwise sign tiles and centerline tiles stop lining up.
    """
    bbox: BBox
    cols: int
    rows: int

    def tile_index_for(self, lon: float, lat: float) -> TileId:
        """Grid cell for a point. Points outside the grid clamp to the edge."""
        x = _clamp((lon - self.bbox.west) / (self.bbox.east - self.bbox.west), 0.0, 1.0)
        y = _clamp((lat - self.bbox.south) / (self.bbox.north - self.bbox.south), 0.0, 1.0)
        col = min(math.floor(x * self.cols), self.cols - 1)
        row = min(math.floor(y * self.rows), self.rows - 1)
        return col, row

    def clamp_bbox(self, bbox: BBox) -> BBox:
        g = self.bbox
        return BBox(
            west=_clamp(bbox.west, g.west, g.east),
            south=_clamp(bbox.south, g.south, g.north),
            east=_clamp(bbox.east, g.west, g.east),
            north=_clamp(bbox.north, g.south, g.north),
        )

    def tiles_for_bbox(self, bbox: BBox) -> List[TileId]:
        """
        Every tile in the rectangular span between the two corners of bbox.

        Tiles that merely touch the box are included; over-fetching is fine,
        under-fetching is not.
        """
        a = self.tile_index_for(bbox.west, bbox.south)
        b = self.tile_index_for(bbox.east, bbox.north)

        c0, c1 = min(a[0], b[0]), max(a[0], b[0])
        r0, r1 = min(a[1], b[1]), max(a[1], b[1])

        return [(c, r) for c in range(c0, c1 + 1) for r in range(r0, r1 + 1)]

    def all_tiles(self) -> List[TileId]:
        return [(c, r) for c in range(self.cols) for r in range(self.rows)]


TILE_GRID = TileGrid(bbox=BBox(**TILE_BBOX), cols=TILE_COLS, rows=TILE_ROWS)
