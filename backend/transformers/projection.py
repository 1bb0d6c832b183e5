"""EPSG:2263 (NY Long Island state plane, US feet) <-> WGS84 conversion"""
import logging
import math
from typing import Optional, Tuple

from pyproj import Transformer
from pyproj.exceptions import ProjError

from config import EPSG2263, PLAUSIBLE_BOUNDS, PROJECTED_MARGIN
from errors import ProjectionOutOfBounds
from .tile_grid import BBox

logger = logging.getLogger(__name__)


class Projection:
    """
    Bidirectional state-plane <-> lon/lat conversion with a sanity box.

    to_geographic() refuses to return points outside the plausibility box so
    that a bad transform never renders a sign miles away from Brooklyn.
    to_projected() is only a coarse prefilter for upstream queries.
    """

    def __init__(self, definition: str = EPSG2263, plausible: Optional[BBox] = None):
        self.definition = definition
        self.plausible = plausible or BBox(**PLAUSIBLE_BOUNDS)
        self._inverse = Transformer.from_crs(definition, "EPSG:4326", always_xy=True)
        self._forward = Transformer.from_crs("EPSG:4326", definition, always_xy=True)

    def locate(self, x: float, y: float) -> Tuple[float, float]:
        """
        Projected (x, y) -> (lat, lon).

        Raises ProjectionOutOfBounds when the point cannot be placed inside
        the plausibility box.
        """
        if not (math.isfinite(x) and math.isfinite(y)):
            raise ProjectionOutOfBounds(f"Non-finite input ({x}, {y})")
        try:
            lon, lat = self._inverse.transform(x, y, errcheck=True)
        except ProjError as e:
            raise ProjectionOutOfBounds(f"Transform failed for ({x}, {y}): {e}") from e

        if not (math.isfinite(lat) and math.isfinite(lon)):
            raise ProjectionOutOfBounds(f"Non-finite result for ({x}, {y})")
        if not self.plausible.contains(lon, lat):
            raise ProjectionOutOfBounds(f"({lat:.5f}, {lon:.5f}) is outside {self.plausible}")
        return lat, lon

    def to_geographic(self, x: float, y: float) -> Optional[Tuple[float, float]]:
        """Like locate(), but implausible points come back as None"""
        try:
            return self.locate(x, y)
        except ProjectionOutOfBounds as e:
            logger.debug(str(e))
            return None

    def to_projected(self, lon: float, lat: float) -> Tuple[float, float]:
        """(lon, lat) -> projected (x, y)"""
        x, y = self._forward.transform(lon, lat)
        return x, y

    def projected_bounds(
        self, bbox: BBox, margin: float = PROJECTED_MARGIN
    ) -> Tuple[int, int, int, int]:
        """
        Inflated projected-space bounds (xmin, ymin, xmax, ymax) of a lon/lat box.

        Not a precision guarantee: callers must still filter the converted
        points against the original box.
        """
        corners = [
            (bbox.west, bbox.south),
            (bbox.west, bbox.north),
            (bbox.east, bbox.south),
            (bbox.east, bbox.north),
        ]
        projected = [self.to_projected(lon, lat) for lon, lat in corners]
        xs = [p[0] for p in projected if math.isfinite(p[0])]
        ys = [p[1] for p in projected if math.isfinite(p[1])]
        if not xs or not ys:
            raise ValueError(f"Could not project bbox {bbox}")

        return (
            math.floor(min(xs) - margin),
            math.floor(min(ys) - margin),
            math.ceil(max(xs) + margin),
            math.ceil(max(ys) + margin),
        )
