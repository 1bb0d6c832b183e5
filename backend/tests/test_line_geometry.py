"""Tests for blockface line geometry"""
import pytest

# Add parent directory to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from transformers import CenterlineFeature, SignRecord
from transformers.blockface_matcher import group_records
from transformers.line_geometry import (
    build_blockface_line,
    cumulative_lengths,
    heading,
    meters_per_deg_lon,
    offset_polyline_meters,
    point_to_segment_meters,
    project_point_to_line,
    side_label,
    signed_offset_for_side,
    slice_bounds,
    slice_line_by_meters,
    LineProjection,
)

LAT = 40.65
EAST_WEST = [(LAT, -73.96), (LAT, -73.95)]
NORTH_SOUTH = [(40.64, -73.95), (40.65, -73.95)]
BENT = [(LAT, -73.96), (LAT, -73.955), (40.655, -73.955)]


class TestDistances:
    """Tests for point-to-segment and point-to-line projection"""

    def test_point_north_of_segment(self):
        """0.001 deg of latitude is ~111 m"""
        d = point_to_segment_meters((LAT + 0.001, -73.955), *EAST_WEST)
        assert d == pytest.approx(111.32, rel=1e-6)

    def test_point_beyond_segment_end(self):
        """Past the end of a segment, distance is to the endpoint"""
        d = point_to_segment_meters((LAT, -73.94), *EAST_WEST)
        assert d == pytest.approx(0.01 * meters_per_deg_lon(LAT), rel=1e-3)

    def test_degenerate_segment(self):
        a = (LAT, -73.95)
        d = point_to_segment_meters((LAT + 0.001, -73.95), a, a)
        assert d == pytest.approx(111.32, rel=1e-6)

    def test_east_west_distances_use_cos_latitude(self):
        """0.001 deg of longitude is shorter than 0.001 deg of latitude here"""
        d_lon = point_to_segment_meters((LAT, -73.949), *NORTH_SOUTH)
        d_lat = point_to_segment_meters((LAT + 0.001, -73.955), *EAST_WEST)
        assert d_lon < d_lat
        assert d_lon == pytest.approx(111.32 * 0.7585, rel=1e-2)

    def test_project_point_midway(self):
        """A point over the middle of a segment projects to half its length"""
        proj = project_point_to_line((LAT + 0.0001, -73.955), EAST_WEST)
        half = 0.005 * meters_per_deg_lon(LAT)

        assert proj.along == pytest.approx(half, rel=1e-3)
        assert proj.dist == pytest.approx(11.132, rel=1e-3)

    def test_project_point_uses_whole_line(self):
        """Projection finds the closest segment anywhere on the line"""
        proj = project_point_to_line((40.654, -73.9549), BENT)
        first_leg = 0.005 * meters_per_deg_lon(LAT)

        assert proj.along > first_leg
        assert proj.dist == pytest.approx(0.0001 * meters_per_deg_lon(40.654), rel=1e-2)

    def test_project_point_skips_zero_length_segments(self):
        line = [(LAT, -73.96), (LAT, -73.96), (LAT, -73.95)]
        proj = project_point_to_line((LAT, -73.955), line)
        assert proj.along == pytest.approx(0.005 * meters_per_deg_lon(LAT), rel=1e-3)

    def test_project_point_short_line(self):
        assert project_point_to_line((LAT, -73.95), [(LAT, -73.95)]) is None


class TestSlicing:
    """Tests for slice bounds and sliceLineByMeters"""

    def test_slice_bounds_padding(self):
        bounds = slice_bounds([LineProjection(50, 1), LineProjection(120, 2)], padding=20)
        assert bounds == (30, 140)

    def test_slice_bounds_clamps_start(self):
        bounds = slice_bounds([LineProjection(5, 1)], padding=20)
        assert bounds == (0.0, 25)

    def test_slice_bounds_empty(self):
        assert slice_bounds([]) is None

    def test_full_slice_returns_endpoints(self):
        """slice(line, 0, total) keeps both endpoints"""
        total = cumulative_lengths(BENT)[-1]
        sliced = slice_line_by_meters(BENT, 0, total)

        assert sliced[0] == pytest.approx(BENT[0], abs=1e-9)
        assert sliced[-1] == pytest.approx(BENT[-1], abs=1e-9)
        assert len(sliced) == 3

    def test_slice_clamps_and_swaps(self):
        """Out-of-range and reversed bounds are tolerated"""
        total = cumulative_lengths(EAST_WEST)[-1]
        sliced = slice_line_by_meters(EAST_WEST, total + 500, -100)

        assert sliced[0] == pytest.approx(EAST_WEST[0], abs=1e-9)
        assert sliced[-1] == pytest.approx(EAST_WEST[-1], abs=1e-9)

    def test_slice_interpolates_interior(self):
        """An interior slice interpolates both ends and keeps inner vertices"""
        first_leg = cumulative_lengths(BENT)[1]
        sliced = slice_line_by_meters(BENT, first_leg / 2, first_leg + 100)

        assert len(sliced) == 3
        assert sliced[0][1] == pytest.approx(-73.9575, abs=1e-6)
        assert sliced[1] == BENT[1]
        assert sliced[2][1] == pytest.approx(-73.955, abs=1e-9)
        assert sliced[2][0] == pytest.approx(LAT + 100 / 111_195, abs=1e-5)

    def test_slice_within_one_segment(self):
        sliced = slice_line_by_meters(EAST_WEST, 100, 200)
        assert len(sliced) == 2
        assert sliced[0][1] < sliced[1][1]

    def test_zero_length_slice_collapses(self):
        """Identical bounds give a single point, which callers discard"""
        assert len(slice_line_by_meters(EAST_WEST, 100, 100)) == 1


class TestOffsets:
    """Tests for lateral offsets and side selection"""

    @pytest.mark.parametrize("line", [EAST_WEST, NORTH_SOUTH, list(reversed(EAST_WEST))])
    def test_offset_symmetry(self, line):
        """Offsetting a straight line by d and then -d returns it unchanged"""
        back = offset_polyline_meters(offset_polyline_meters(line, 6), -6)
        for original, result in zip(line, back):
            assert result == pytest.approx(original, abs=1e-9)

    def test_positive_offset_is_left_of_travel(self):
        """Eastbound lines move north, northbound lines move west"""
        north = offset_polyline_meters(EAST_WEST, 6)
        west = offset_polyline_meters(NORTH_SOUTH, 6)

        assert all(p[0] > LAT for p in north)
        assert north[0][0] - LAT == pytest.approx(6 / 111_320, rel=1e-9)
        assert all(p[1] < -73.95 for p in west)

    def test_offset_short_line_unchanged(self):
        assert offset_polyline_meters([(LAT, -73.95)], 6) == [(LAT, -73.95)]

    def test_heading(self):
        dx, dy = heading(EAST_WEST)
        assert dx > 0 and dy == 0
        dx, dy = heading(NORTH_SOUTH)
        assert dx == 0 and dy > 0

    @pytest.mark.parametrize("side,dx,dy,expected", [
        ("N", 100, 5, 6),     # eastbound, north is left
        ("S", 100, 5, -6),
        ("N", -100, 5, -6),   # westbound, north is right
        ("S", -100, 5, 6),
        ("E", 5, 100, -6),    # northbound, east is right
        ("W", 5, 100, 6),
        ("E", 5, -100, 6),    # southbound, east is left
        ("W", 5, -100, -6),
        ("N", 100, 100, 6),   # exact diagonal counts as east-west
        ("", 100, 0, 6),
        ("X", 0, 100, 6),
    ])
    def test_signed_offset_for_side(self, side, dx, dy, expected):
        assert signed_offset_for_side(side, dx, dy, 6) == expected

    @pytest.mark.parametrize("line,side", [
        (EAST_WEST, "N"), (EAST_WEST, "S"),
        (list(reversed(EAST_WEST)), "N"), (list(reversed(EAST_WEST)), "S"),
        (NORTH_SOUTH, "E"), (NORTH_SOUTH, "W"),
        (list(reversed(NORTH_SOUTH)), "E"), (list(reversed(NORTH_SOUTH)), "W"),
    ])
    def test_offset_lands_on_named_side(self, line, side):
        """Whatever the digitized direction, the curb ends up on its compass side"""
        dx, dy = heading(line)
        shifted = offset_polyline_meters(line, signed_offset_for_side(side, dx, dy))
        lat_shift = shifted[0][0] - line[0][0]
        lon_shift = shifted[0][1] - line[0][1]

        expected = {
            "N": lat_shift > 0, "S": lat_shift < 0,
            "E": lon_shift > 0, "W": lon_shift < 0,
        }
        assert expected[side]

    def test_mismatched_side_uses_facing_side(self):
        """An E letter on an east-west street still goes east of the line"""
        diagonalish = [(LAT, -73.96), (LAT + 0.002, -73.95)]
        dx, dy = heading(diagonalish)
        shifted = offset_polyline_meters(diagonalish, signed_offset_for_side("E", dx, dy))
        assert shifted[0][1] > diagonalish[0][1]

    def test_side_label(self):
        assert side_label("n") == "N side"
        assert side_label("W") == "W side"
        assert side_label("") == "Side unknown"


class TestBuildBlockfaceLine:
    """Tests for build_blockface_line"""

    def test_builds_padded_offset_line(self):
        records = [
            SignRecord(LAT + 0.00005, -73.957, "Dean Street", "Bond St", "Nevins St", "N", "NO PARKING () 8AM-9AM"),
            SignRecord(LAT + 0.00005, -73.954, "Dean Street", "Bond St", "Nevins St", "N", "NO PARKING () 8AM-9AM"),
        ]
        group = group_records(records)[0]
        feature = CenterlineFeature(name="DEAN ST", coordinates=tuple(EAST_WEST))

        line = build_blockface_line(group, feature, index=0, padding=20, offset=6)

        mx = meters_per_deg_lon(LAT)
        assert line.id == "0-DEAN ST-N"
        assert line.street == "Dean Street"
        assert line.side_label == "N side"
        assert line.rule == "NO PARKING 8AM-9AM"
        assert all(p[0] == pytest.approx(LAT + 6 / 111_320, rel=1e-9) for p in line.polyline)
        assert line.polyline[0][1] == pytest.approx(-73.957 - 20 / mx, abs=1e-5)
        assert line.polyline[-1][1] == pytest.approx(-73.954 + 20 / mx, abs=1e-5)

    def test_single_sign_still_gets_length(self):
        """Padding keeps one-sign groups from collapsing to a point"""
        records = [SignRecord(LAT - 0.00005, -73.955, "Dean St", "", "", "S", "NO PARKING")]
        group = group_records(records)[0]
        feature = CenterlineFeature(name="DEAN ST", coordinates=tuple(EAST_WEST))

        line = build_blockface_line(group, feature, index=3)

        assert len(line.polyline) == 2
        assert all(p[0] < LAT for p in line.polyline)
        assert line.id == "3-DEAN ST-S"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
