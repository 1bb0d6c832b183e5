"""Shared fixtures: on-disk tile stores and small Brooklyn geometries"""
import json
import pytest

# Add parent directory to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))


def write_tile(root: Path, dataset: str, tile: str, payload, pointer: str = None):
    """Write one tile and its pointer file the way the tile builder does"""
    (root / dataset / "pointers").mkdir(parents=True, exist_ok=True)
    (root / dataset / f"{tile}.json").write_text(json.dumps(payload))
    if pointer is None:
        pointer = f"v0blob:///{dataset}/{tile}.json"
    (root / dataset / "pointers" / f"{tile}.txt").write_text(pointer + "\n")


def sign(lat, lon, on="Dean Street", frm="Bond Street", to="Nevins Street", side="N",
         text="NO PARKING 8AM-9AM TUES"):
    return {
        "lat": lat,
        "lon": lon,
        "onStreet": on,
        "fromStreet": frm,
        "toStreet": to,
        "side": side,
        "signText": text,
    }


def centerline(name, coords_latlon):
    return {
        "type": "Feature",
        "properties": {"name": name},
        "geometry": {"type": "LineString", "coordinates": [[lon, lat] for lat, lon in coords_latlon]},
    }


def collection(*features):
    return {"type": "FeatureCollection", "features": list(features)}


@pytest.fixture
def tile_store(tmp_path):
    """Empty tile store directory plus a writer bound to it"""
    def write(dataset, tile, payload, pointer=None):
        write_tile(tmp_path, dataset, tile, payload, pointer)
    write.root = tmp_path
    return write


# Query box spanning tile_0_2 and tile_1_2 of the shared grid
# (column edge at lon -73.995, row 2 covers lat 40.65 - 40.695)
QUERY = {"west": -74.00, "south": 40.66, "east": -73.99, "north": 40.67}

# An east-west street crossing both tiles
STREET_LAT = 40.665
STREET = [(STREET_LAT, -74.005), (STREET_LAT, -73.995), (STREET_LAT, -73.985)]


@pytest.fixture
def populated_store(tile_store):
    """Sign and centerline tiles for the QUERY box"""
    north_side = STREET_LAT + 0.00005
    tile_store("asp", "tile_0_2", [
        sign(north_side, -73.998),
        sign(north_side, -73.9965),
    ])
    tile_store("asp", "tile_1_2", [
        sign(north_side, -73.993),
        sign(north_side, -73.992),
        sign(40.69, -73.992),  # inside the tile, outside the query box
    ])
    street = centerline("DEAN ST", STREET)
    tile_store("centerline", "tile_0_2", collection(street))
    tile_store("centerline", "tile_1_2", collection(street))
    return tile_store
