"""Validate bbox queries and tile payloads"""
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from errors import InvalidQuery
from transformers.tile_grid import BBox

logger = logging.getLogger(__name__)

BBOX_PARAMS = ("west", "south", "east", "north")


def _to_number(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    try:
        n = float(value)
    except (TypeError, ValueError):
        return None
    return n if math.isfinite(n) else None


def parse_bbox(params: Mapping[str, Any]) -> BBox:
    """
    Parse west/south/east/north query parameters.

    Raises InvalidQuery if any value is missing or not a finite number, or
    if west >= east or south >= north.
    """
    values = {name: _to_number(params.get(name)) for name in BBOX_PARAMS}
    missing = [name for name, value in values.items() if value is None]
    if missing:
        raise InvalidQuery(f"Missing bbox params: {','.join(missing)}")

    bbox = BBox(**values)
    if not (bbox.west < bbox.east) or not (bbox.south < bbox.north):
        raise InvalidQuery("Invalid bbox")
    return bbox


@dataclass
class ValidationResult:
    """Result of data validation"""
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    stats: Dict[str, Any] = field(default_factory=dict)

    def add_error(self, message: str):
        self.errors.append(message)
        self.is_valid = False

    def add_warning(self, message: str):
        self.warnings.append(message)


class DataValidator:
    """
    Checks that tile payloads have the shape the orchestrator expects.

    Sign tiles are JSON arrays of record objects; centerline tiles are
    GeoJSON FeatureCollections. Individual malformed entries are only
    warnings since they are skipped when parsed.
    """

    def validate_sign_tile(self, payload: Any) -> ValidationResult:
        result = ValidationResult(is_valid=True)

        if not isinstance(payload, list):
            result.add_error(f"Sign tile must be a JSON array, got {type(payload).__name__}")
            return result

        bad = sum(1 for entry in payload if not isinstance(entry, dict))
        if bad:
            result.add_warning(f"{bad} sign entries are not objects")

        result.stats = {"records_count": len(payload)}
        return result

    @staticmethod
    def _is_feature(feature: Any) -> bool:
        # geometry and properties may be null, but never another JSON type
        if not isinstance(feature, dict):
            return False
        return all(
            feature.get(key) is None or isinstance(feature.get(key), dict)
            for key in ("geometry", "properties")
        )

    def validate_centerline_tile(self, payload: Any) -> ValidationResult:
        result = ValidationResult(is_valid=True)

        if not isinstance(payload, dict):
            result.add_error(f"Centerline tile must be a JSON object, got {type(payload).__name__}")
            return result
        if payload.get("type") != "FeatureCollection":
            result.add_error("Missing or wrong 'type' (expected FeatureCollection)")
        if not isinstance(payload.get("features"), list):
            result.add_error("Missing 'features' array")

        if not result.is_valid:
            return result

        features = payload["features"]
        malformed = sum(1 for f in features if not self._is_feature(f))
        if malformed:
            result.add_error(f"{malformed} entries are not GeoJSON Feature objects")
            return result

        not_lines = sum(
            1 for f in features
            if (f.get("geometry") or {}).get("type") != "LineString"
        )
        if not_lines:
            result.add_warning(f"{not_lines} features are not LineStrings")

        result.stats = {"features_count": len(features)}
        return result
