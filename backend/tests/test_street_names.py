"""Tests for street name normalization"""
import pytest

# Add parent directory to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from transformers import normalize_street_name

NAMES = [
    "East 34th Street",
    "E 34 ST",
    "Ocean Pkwy.",
    "OCEAN PARKWAY",
    "St. John's Place",
    "Flatbush Avenue Extension",
    "  west   9th   st ",
    "Dr. Martin Luther King Jr. Boulevard",
    "1st Place",
    "Avenue J",
    "South Portland Ave",
    "",
]


class TestNormalizeStreetName:
    """Tests for normalize_street_name"""

    @pytest.mark.parametrize("raw,expected", [
        ("East 34th Street", "E 34 ST"),
        ("Ocean Parkway", "OCEAN PKWY"),
        ("St. John's Place", "ST JOHNS PL"),
        ("St John’s Pl", "ST JOHNS PL"),
        ("  west   9th   st ", "W 9 ST"),
        ("Flatbush Avenue", "FLATBUSH AVE"),
        ("Eastern Parkway", "EASTERN PKWY"),
        ("Bay Ridge Boulevard", "BAY RIDGE BLVD"),
        ("72nd Street", "72 ST"),
        ("3rd Avenue", "3 AVE"),
        ("Avenue J", "AVE J"),
        ("Kings Highway", "KINGS HWY"),
        ("Dean Street", "DEAN ST"),
    ])
    def test_examples(self, raw, expected):
        assert normalize_street_name(raw) == expected

    def test_abbreviated_and_spelled_out_match(self):
        """Spelled-out and abbreviated forms of the same street agree"""
        assert normalize_street_name("EAST 34 STREET") == normalize_street_name("E. 34th St")
        assert normalize_street_name("Ocean Pkwy.") == normalize_street_name("OCEAN PARKWAY")

    def test_different_streets_stay_different(self):
        """Compass prefixes and numbers are not merged away"""
        assert normalize_street_name("East 9th Street") != normalize_street_name("West 9th Street")
        assert normalize_street_name("9th Street") != normalize_street_name("19th Street")
        assert normalize_street_name("Dean Street") != normalize_street_name("Dean Place")

    def test_words_containing_compass_names(self):
        """Only whole compass words are abbreviated"""
        assert normalize_street_name("Eastern Parkway") == "EASTERN PKWY"
        assert normalize_street_name("Westminster Road") == "WESTMINSTER RD"

    @pytest.mark.parametrize("name", NAMES)
    def test_idempotent(self, name):
        """normalize(normalize(x)) == normalize(x)"""
        once = normalize_street_name(name)
        assert normalize_street_name(once) == once

    def test_empty(self):
        assert normalize_street_name("") == ""
        assert normalize_street_name(None) == ""


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
