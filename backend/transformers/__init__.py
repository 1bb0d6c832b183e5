"""Projection, tiling, matching and geometry for blockface lines"""
from .blockface_matcher import BlockfaceMatcher, group_records
from .projection import Projection
from .records import BlockfaceLine, CenterlineFeature, SignRecord
from .street_names import normalize_street_name
from .tile_grid import TILE_GRID, BBox, TileGrid

__all__ = [
    "BBox",
    "BlockfaceLine",
    "BlockfaceMatcher",
    "CenterlineFeature",
    "Projection",
    "SignRecord",
    "TILE_GRID",
    "TileGrid",
    "group_records",
    "normalize_street_name",
]
