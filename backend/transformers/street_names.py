"""Canonical street-name keys shared by record grouping and centerline lookup"""
import re

COMPASS_WORDS = {
    "NORTH": "N",
    "SOUTH": "S",
    "EAST": "E",
    "WEST": "W",
}

SUFFIX_WORDS = {
    "STREET": "ST",
    "AVENUE": "AVE",
    "BOULEVARD": "BLVD",
    "PLACE": "PL",
    "ROAD": "RD",
    "DRIVE": "DR",
    "COURT": "CT",
    "PARKWAY": "PKWY",
    "LANE": "LN",
    "TERRACE": "TER",
    "HIGHWAY": "HWY",
}

_APOSTROPHES = re.compile(r"['‘’`]")
_PUNCTUATION = re.compile(r"[^\w\s]")
_ORDINAL = re.compile(r"\b(\d+)(ST|ND|RD|TH)\b")
_WHITESPACE = re.compile(r"\s+")


def _word_pattern(mapping):
    return re.compile(r"\b(" + "|".join(mapping) + r")\b")


_COMPASS = _word_pattern(COMPASS_WORDS)
_SUFFIX = _word_pattern(SUFFIX_WORDS)


def normalize_street_name(name: str) -> str:
    """
    Normalize a street name into a matching key.

    Examples:
        "East 34th Street" -> "E 34 ST"
        "Ocean Pkwy."      -> "OCEAN PKWY"
        "St. John's Place" -> "ST JOHNS PL"

    Two names normalize identically iff they should match the same street,
    so this must stay the only normalizer used for grouping and lookup.
    """
    if not name:
        return ""

    t = name.strip().upper()
    t = _APOSTROPHES.sub("", t)
    t = _PUNCTUATION.sub(" ", t)

    t = _COMPASS.sub(lambda m: COMPASS_WORDS[m.group(1)], t)
    t = _SUFFIX.sub(lambda m: SUFFIX_WORDS[m.group(1)], t)

    t = _ORDINAL.sub(r"\1", t)
    return _WHITESPACE.sub(" ", t).strip()
