"""Error kinds raised across the blockface pipeline"""
from typing import List, Optional


class BlockfaceError(Exception):
    """Base class for all pipeline errors"""


class InvalidQuery(BlockfaceError):
    """Malformed bounding-box query. Rejected before any fetch happens."""


class ProjectionOutOfBounds(BlockfaceError):
    """A projected point landed outside the plausibility box"""


class TileFetchFailed(BlockfaceError):
    """A tile pointer or payload could not be loaded"""

    def __init__(self, tile: str, reason: str):
        super().__init__(f"{tile}: {reason}")
        self.tile = tile
        self.reason = reason


class CenterlineUnavailable(BlockfaceError):
    """One or more required centerline tiles failed; no partial data is returned"""

    def __init__(self, failed_tiles: List[str], reasons: Optional[List[str]] = None):
        super().__init__(f"Centerline tile fetch failed: {', '.join(failed_tiles)}")
        self.failed_tiles = failed_tiles
        self.reasons = reasons or []


class NoMatch(BlockfaceError):
    """A blockface group has no same-named centerline candidate"""


class UpstreamFetchFailed(BlockfaceError):
    """Upstream dataset page could not be fetched after all retries"""

    def __init__(self, url: str, status: Optional[int] = None, detail: str = ""):
        message = f"Upstream fetch failed (status {status}) for {url}"
        if detail:
            message = f"{message}: {detail[:240]}"
        super().__init__(message)
        self.url = url
        self.status = status
