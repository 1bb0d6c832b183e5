"""Sign records, centerline features and blockface lines"""
import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .projection import Projection

LatLon = Tuple[float, float]

# Reasons an upstream row does not become a SignRecord
SKIP_NO_TEXT = "no_text"
SKIP_BAD_XY = "bad_xy"
SKIP_BAD_LATLON = "bad_latlon"

_CURLY_APOSTROPHE = re.compile(r"[’']")
_BROOM_MARKER = re.compile(r"\bSANITATION\s+BROOM\s+SYMBOL\b", re.IGNORECASE)
_SUPERSEDES = re.compile(r"\bSUPERSEDES\b.*$", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")


def clean_rule_text(raw: Any) -> str:
    """
    Clean sign text as it comes from the upstream dataset.

    "NO PARKING (SANITATION BROOM SYMBOL) 8AM-9AM TUES SUPERSEDES R7-85"
        -> "NO PARKING () 8AM-9AM TUES"
    """
    if not raw:
        return ""
    t = _CURLY_APOSTROPHE.sub("'", str(raw))
    t = _WHITESPACE.sub(" ", t).strip()
    t = _BROOM_MARKER.sub("", t).strip()
    t = _SUPERSEDES.sub("", t).strip()
    return _WHITESPACE.sub(" ", t).strip()


def clean_rule_for_display(raw: str) -> str:
    """Strip leftover '<->' arrows and empty or stray parentheses"""
    t = str(raw or "")
    t = t.replace("<->", " ")
    t = re.sub(r"\(\s*\)", " ", t)
    t = re.sub(r"[()]", " ", t)
    return _WHITESPACE.sub(" ", t).strip()


def normalize_side_letter(value: Any) -> str:
    """'North' -> 'N', 'w' -> 'W', '' -> ''"""
    s = str(value or "").strip().upper()
    for letter in ("N", "S", "E", "W"):
        if s.startswith(letter):
            return letter
    return s[0] if s else ""


def _finite(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        n = float(value)
    except (TypeError, ValueError):
        return None
    return n if math.isfinite(n) else None


@dataclass(frozen=True)
class SignRecord:
    """One street-cleaning sign, already converted to lon/lat"""
    lat: float
    lon: float
    on_street: str
    from_street: str
    to_street: str
    side: str  # N, S, E, W or ""
    rule_text: str

    @classmethod
    def from_upstream_row(cls, row: Dict[str, Any], projection: Projection) -> Optional["SignRecord"]:
        """
        Build a record from one raw dataset row.

        Returns None when the sign has no usable text, its coordinates are
        not numbers, or they project outside the plausibility box.
        """
        return cls.parse_upstream_row(row, projection)[0]

    @classmethod
    def parse_upstream_row(
        cls, row: Dict[str, Any], projection: Projection
    ) -> Tuple[Optional["SignRecord"], Optional[str]]:
        """Like from_upstream_row, but also says why a row was skipped"""
        rule_text = clean_rule_text(row.get("sign_description"))
        if not rule_text:
            return None, SKIP_NO_TEXT

        x = _finite(row.get("sign_x_coord"))
        y = _finite(row.get("sign_y_coord"))
        if x is None or y is None:
            return None, SKIP_BAD_XY

        latlon = projection.to_geographic(x, y)
        if latlon is None:
            return None, SKIP_BAD_LATLON

        record = cls(
            lat=latlon[0],
            lon=latlon[1],
            on_street=str(row.get("on_street") or "").strip(),
            from_street=str(row.get("from_street") or "").strip(),
            to_street=str(row.get("to_street") or "").strip(),
            side=normalize_side_letter(row.get("side_of_street")),
            rule_text=rule_text,
        )
        return record, None

    @classmethod
    def from_dict(cls, data: Any) -> Optional["SignRecord"]:
        """Parse a record as stored in a sign tile"""
        if not isinstance(data, dict):
            return None
        lat = _finite(data.get("lat"))
        lon = _finite(data.get("lon"))
        rule_text = str(data.get("signText") or "").strip()
        if lat is None or lon is None or not rule_text:
            return None
        return cls(
            lat=lat,
            lon=lon,
            on_street=str(data.get("onStreet") or ""),
            from_street=str(data.get("fromStreet") or ""),
            to_street=str(data.get("toStreet") or ""),
            side=normalize_side_letter(data.get("side")),
            rule_text=rule_text,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lat": self.lat,
            "lon": self.lon,
            "onStreet": self.on_street,
            "fromStreet": self.from_street,
            "toStreet": self.to_street,
            "side": self.side,
            "signText": self.rule_text,
        }


@dataclass(frozen=True)
class CenterlineFeature:
    """A named street centerline, vertices stored as (lat, lon)"""
    name: str
    coordinates: Tuple[LatLon, ...]

    @classmethod
    def from_geojson(cls, feature: Any) -> Optional["CenterlineFeature"]:
        """GeoJSON LineString Feature ([lon, lat] order) -> CenterlineFeature"""
        if not isinstance(feature, dict):
            return None
        geometry = feature.get("geometry")
        properties = feature.get("properties")
        if not isinstance(geometry, dict) or geometry.get("type") != "LineString":
            return None
        if not isinstance(properties, dict):
            return None
        name = str(properties.get("name") or "").strip()
        if not name:
            return None

        positions = geometry.get("coordinates")
        if not isinstance(positions, list):
            return None

        coords = []
        for position in positions:
            if not isinstance(position, (list, tuple)) or len(position) < 2:
                continue
            lon, lat = _finite(position[0]), _finite(position[1])
            if lon is None or lat is None:
                continue
            coords.append((lat, lon))

        if len(coords) < 2:
            return None
        return cls(name=name, coordinates=tuple(coords))

    def to_geojson(self) -> Dict[str, Any]:
        return {
            "type": "Feature",
            "properties": {"name": self.name},
            "geometry": {
                "type": "LineString",
                "coordinates": [[lon, lat] for lat, lon in self.coordinates],
            },
        }


@dataclass
class BlockfaceGroup:
    """Sign records that describe one physical curb segment"""
    key: Tuple[str, ...]
    records: List[SignRecord] = field(default_factory=list)

    @property
    def first(self) -> SignRecord:
        return self.records[0]

    @property
    def centroid(self) -> LatLon:
        n = len(self.records)
        return (
            sum(r.lat for r in self.records) / n,
            sum(r.lon for r in self.records) / n,
        )


@dataclass
class BlockfaceLine:
    """A renderable, side-offset street segment carrying one rule"""
    id: str
    polyline: List[LatLon]
    street: str
    from_street: str
    to_street: str
    side_label: str
    rule: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "polyline": [[lat, lon] for lat, lon in self.polyline],
            "street": self.street,
            "from": self.from_street,
            "to": self.to_street,
            "sideLabel": self.side_label,
            "rule": self.rule,
        }
