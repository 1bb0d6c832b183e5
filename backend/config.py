"""Configuration for the Brooklyn blockface tile pipeline"""
import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

# Base paths
BASE_DIR = Path(__file__).parent
DATA_DIR = BASE_DIR / "data"

# Tile store written by the offline builder, read by the orchestrator
TILE_STORE_DIR = Path(os.getenv("TILE_STORE_DIR", str(DATA_DIR / "tiles")))
SIGN_DATASET = "asp"
CENTERLINE_DATASET = "centerline"

# Remote origin for pointer files (empty -> serve from TILE_STORE_DIR)
TILE_ORIGIN = os.getenv("TILE_ORIGIN", "")
POINTER_SCHEME = "v0blob://"

# Shared tile grid. Sign and centerline stores must be rebuilt together
# whenever this changes.
TILE_BBOX = {"west": -74.05, "south": 40.56, "east": -73.83, "north": 40.74}
TILE_COLS = 4
TILE_ROWS = 4

# EPSG:2263 (NAD83 / New York Long Island, US feet)
EPSG2263 = (
    "+proj=lcc +lat_1=40.66666666666666 +lat_2=41.03333333333333 "
    "+lat_0=40.16666666666666 +lon_0=-74 +x_0=300000 +y_0=0 "
    "+datum=NAD83 +units=us-ft +no_defs"
)
PLAUSIBLE_BOUNDS = {"west": -74.6, "south": 40.3, "east": -73.4, "north": 41.2}
PROJECTED_MARGIN = 25  # feet

# NYC Open Data (Socrata) sign locations
SOCRATA_DATASET_URL = "https://data.cityofnewyork.us/resource/2x64-6f34.json"
SOCRATA_APP_TOKEN = os.getenv("SOCRATA_APP_TOKEN", "")
SOCRATA_PAGE_SIZE = 5000
SOCRATA_MAX_PAGES = 80
SOCRATA_SELECT = [
    "on_street",
    "from_street",
    "to_street",
    "side_of_street",
    "sign_description",
    "sign_x_coord",
    "sign_y_coord",
]
SOCRATA_WHERE = (
    "upper(borough) like 'BROOKLYN%'"
    " AND record_type='Current'"
    " AND upper(sign_description) like '%BROOM%'"
)

# API settings
REQUEST_TIMEOUT = 20         # per upstream page
REQUEST_TIMEOUT_SECONDS = 25  # whole tile fan-out for one query
MAX_RETRIES = 5
RETRY_DELAY = 0.35
MAX_CONCURRENCY = 6

# Blockface geometry
METERS_PER_DEG_LAT = 111_320
EARTH_RADIUS_METERS = 6_371_000
OFFSET_METERS = 6
SLICE_PADDING_METERS = 20

# HTTP server
SERVER_HOST = os.getenv("SERVER_HOST", "127.0.0.1")
SERVER_PORT = int(os.getenv("SERVER_PORT", "8080"))
NO_STORE_HEADERS = {"Cache-Control": "no-store, max-age=0"}

# Schedule settings
UPDATE_SCHEDULE = "weekly"  # daily, weekly
UPDATE_DAY = "sunday"
UPDATE_HOUR = 3  # 3 AM
