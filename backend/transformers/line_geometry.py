"""
Blockface line geometry: projection onto centerlines, slicing and side offsets.

All distances are computed in a locally linearized metres space
(longitude scaled by cos(latitude)), which is accurate enough at the scale of
a city block and avoids the east-west distortion of raw degrees.
Lines are sequences of (lat, lon).
"""
import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from config import (
    EARTH_RADIUS_METERS,
    METERS_PER_DEG_LAT,
    OFFSET_METERS,
    SLICE_PADDING_METERS,
)
from .records import (
    BlockfaceGroup,
    BlockfaceLine,
    CenterlineFeature,
    LatLon,
    clean_rule_for_display,
)
from .street_names import normalize_street_name

# Consecutive sliced vertices closer than this (degrees) are merged
DUPLICATE_TOLERANCE = 1e-8

# Unit compass vectors (east, north) for side letters
COMPASS_VECTORS = {
    "N": (0.0, 1.0),
    "S": (0.0, -1.0),
    "E": (1.0, 0.0),
    "W": (-1.0, 0.0),
}


@dataclass(frozen=True)
class LineProjection:
    """Where a point lands on a line: arc length from the start, and offset"""
    along: float
    dist: float


def meters_per_deg_lon(lat: float) -> float:
    return METERS_PER_DEG_LAT * math.cos(math.radians(lat))


def haversine_meters(a: LatLon, b: LatLon) -> float:
    lat1, lon1 = a
    lat2, lon2 = b
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    return 2 * EARTH_RADIUS_METERS * math.asin(math.sqrt(h))


def _closest_on_segment(p: LatLon, a: LatLon, b: LatLon) -> Tuple[float, float, float]:
    """
    Closest approach of p to segment ab in local metres.

    Returns (t, distance, segment_length) where t in [0, 1] is the
    parameter of the closest point. The scale is derived from the three
    latitudes involved.
    """
    lat0 = (a[0] + b[0] + p[0]) / 3
    mx = meters_per_deg_lon(lat0)
    my = METERS_PER_DEG_LAT

    px, py = p[1] * mx, p[0] * my
    ax, ay = a[1] * mx, a[0] * my
    bx, by = b[1] * mx, b[0] * my

    abx, aby = bx - ax, by - ay
    ab2 = abx * abx + aby * aby
    if ab2 == 0:
        return 0.0, math.hypot(px - ax, py - ay), 0.0

    t = ((px - ax) * abx + (py - ay) * aby) / ab2
    t = max(0.0, min(1.0, t))
    cx, cy = ax + t * abx, ay + t * aby
    return t, math.hypot(px - cx, py - cy), math.sqrt(ab2)


def point_to_segment_meters(p: LatLon, a: LatLon, b: LatLon) -> float:
    """Distance in metres from p to segment ab"""
    return _closest_on_segment(p, a, b)[1]


def min_distance_to_line(p: LatLon, line: Sequence[LatLon]) -> float:
    """Smallest point-to-segment distance over every segment of line"""
    best = math.inf
    for i in range(len(line) - 1):
        d = point_to_segment_meters(p, line[i], line[i + 1])
        if d < best:
            best = d
    return best


def project_point_to_line(p: LatLon, line: Sequence[LatLon]) -> Optional[LineProjection]:
    """
    Project p onto the whole line.

    along is the cumulative arc length (metres) at the closest point and
    dist the perpendicular distance there. Zero-length segments are
    skipped. Returns None for lines with fewer than two vertices.
    """
    if len(line) < 2:
        return None

    best_dist = math.inf
    best_along = 0.0
    accum = 0.0

    for i in range(len(line) - 1):
        t, d, seg_len = _closest_on_segment(p, line[i], line[i + 1])
        if seg_len == 0:
            continue
        if d < best_dist:
            best_dist = d
            best_along = accum + t * seg_len
        accum += seg_len

    return LineProjection(along=best_along, dist=best_dist)


def slice_bounds(
    projections: Iterable[LineProjection], padding: float = SLICE_PADDING_METERS
) -> Optional[Tuple[float, float]]:
    """Padded (start, end) arc-length range covering every projection"""
    alongs = [p.along for p in projections]
    if not alongs:
        return None
    return max(0.0, min(alongs) - padding), max(alongs) + padding


def cumulative_lengths(line: Sequence[LatLon]) -> List[float]:
    cum = [0.0]
    for i in range(len(line) - 1):
        cum.append(cum[-1] + haversine_meters(line[i], line[i + 1]))
    return cum


def _interpolate(line: Sequence[LatLon], i: int, t: float) -> LatLon:
    a, b = line[i], line[i + 1]
    return a[0] + (b[0] - a[0]) * t, a[1] + (b[1] - a[1]) * t


def slice_line_by_meters(line: Sequence[LatLon], start: float, end: float) -> List[LatLon]:
    """
    Sub-polyline between two arc lengths (metres) along line.

    Bounds are clamped into [0, total length] and may be given in either
    order. Interior vertices are kept; both ends are interpolated.
    """
    if len(line) < 2:
        return list(line)

    s = max(0.0, min(start, end))
    e = max(0.0, max(start, end))

    cum = cumulative_lengths(line)
    total = cum[-1]
    s = min(s, total)
    e = min(e, total)

    def point_at(i: int, target: float) -> LatLon:
        seg_len = cum[i + 1] - cum[i]
        t = 0.0 if seg_len == 0 else (target - cum[i]) / seg_len
        return _interpolate(line, i, t)

    i = 0
    while i < len(cum) - 2 and cum[i + 1] < s:
        i += 1
    out = [point_at(i, s)]

    while i < len(cum) - 2 and cum[i + 1] < e:
        out.append(line[i + 1])
        i += 1
    out.append(point_at(i, e))

    cleaned: List[LatLon] = []
    for p in out:
        if cleaned:
            last = cleaned[-1]
            if abs(last[0] - p[0]) <= DUPLICATE_TOLERANCE and abs(last[1] - p[1]) <= DUPLICATE_TOLERANCE:
                continue
        cleaned.append(p)
    return cleaned


def offset_polyline_meters(line: Sequence[LatLon], meters_signed: float) -> List[LatLon]:
    """
    Shift every vertex sideways by meters_signed.

    Positive values move to the left of the direction of travel. The local
    tangent at each vertex comes from its neighbours.
    """
    if len(line) < 2:
        return list(line)

    out = []
    last = len(line) - 1
    for i, cur in enumerate(line):
        prev = line[max(0, i - 1)]
        nxt = line[min(last, i + 1)]

        mx = meters_per_deg_lon(cur[0])
        my = METERS_PER_DEG_LAT

        vx = (nxt[1] - prev[1]) * mx
        vy = (nxt[0] - prev[0]) * my
        length = math.hypot(vx, vy) or 1.0

        nx, ny = -vy / length, vx / length
        out.append((cur[0] + ny * meters_signed / my, cur[1] + nx * meters_signed / mx))
    return out


def heading(line: Sequence[LatLon]) -> Tuple[float, float]:
    """First-to-last travel vector (east metres, north metres)"""
    a, b = line[0], line[-1]
    mx = meters_per_deg_lon((a[0] + b[0]) / 2)
    return (b[1] - a[1]) * mx, (b[0] - a[0]) * METERS_PER_DEG_LAT


def signed_offset_for_side(
    side: str, heading_dx: float, heading_dy: float, magnitude: float = OFFSET_METERS
) -> float:
    """
    Signed offset that puts a curb on its compass side of the centerline.

    The block is treated as east-west when |dx| >= |dy| (so an exact
    diagonal counts as east-west), and N/S letters pick the side; otherwise
    E/W letters do. The sign accounts for the direction of travel, since
    offset_polyline_meters shifts to the left of it. A letter that does not
    fit the block's axis falls back to whichever side of the line faces
    that compass direction. Unknown sides get the positive offset.
    """
    s = (side or "").strip().upper()[:1]
    east_west = abs(heading_dx) >= abs(heading_dy)

    if east_west and s in ("N", "S"):
        towards = 1 if s == "N" else -1
        return towards * (1 if heading_dx >= 0 else -1) * magnitude
    if not east_west and s in ("E", "W"):
        towards = 1 if s == "E" else -1
        return -towards * (1 if heading_dy >= 0 else -1) * magnitude

    if s in COMPASS_VECTORS:
        cx, cy = COMPASS_VECTORS[s]
        facing = -heading_dy * cx + heading_dx * cy
        return magnitude if facing >= 0 else -magnitude
    return magnitude


def side_label(side: str) -> str:
    s = (side or "").strip().upper()
    return f"{s} side" if s else "Side unknown"


def build_blockface_line(
    group: BlockfaceGroup,
    centerline: CenterlineFeature,
    index: int,
    padding: float = SLICE_PADDING_METERS,
    offset: float = OFFSET_METERS,
) -> Optional[BlockfaceLine]:
    """
    Slice the matched centerline to the group's extent and offset it to the curb.

    Every member sign is projected individually; the slice spans the
    smallest to largest projection, padded on both ends.
    """
    line = centerline.coordinates
    projections = [project_point_to_line((r.lat, r.lon), line) for r in group.records]
    bounds = slice_bounds([p for p in projections if p is not None], padding)
    if bounds is None:
        return None

    sliced = slice_line_by_meters(line, *bounds)
    if len(sliced) < 2:
        return None

    first = group.first
    dx, dy = heading(sliced)
    polyline = offset_polyline_meters(sliced, signed_offset_for_side(first.side, dx, dy, offset))

    street_key = normalize_street_name(first.on_street)
    return BlockfaceLine(
        id=f"{index}-{street_key}-{first.side.upper()}",
        polyline=polyline,
        street=first.on_street or street_key,
        from_street=first.from_street,
        to_street=first.to_street,
        side_label=side_label(first.side),
        rule=clean_rule_for_display(first.rule_text),
    )
