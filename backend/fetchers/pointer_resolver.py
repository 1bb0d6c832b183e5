"""Resolve per-tile pointer files to tile payloads"""
import asyncio
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional
import aiohttp

from config import POINTER_SCHEME, REQUEST_TIMEOUT
from errors import TileFetchFailed

logger = logging.getLogger(__name__)

NO_CACHE_HEADERS = {"Cache-Control": "no-cache", "Pragma": "no-cache"}


def pointer_path(dataset: str, tile: str) -> str:
    """Store-relative location of a tile's pointer file"""
    return f"{dataset}/pointers/{tile}.txt"


def strip_pointer(text: str, scheme: str = POINTER_SCHEME) -> str:
    """'v0blob:///asp/tile_0_0.json\\n' -> '/asp/tile_0_0.json'"""
    t = (text or "").strip()
    if t.startswith(scheme):
        t = t[len(scheme):]
    return t


def is_remote(location: str) -> bool:
    return location.startswith("http://") or location.startswith("https://")


class PointerResolver(ABC):
    """
    One level of indirection between a tile id and its payload.

    A pointer is a small text file naming where the tile actually lives:
    an http(s) URL, or an absolute path that is rebased onto the backend's
    own root. Anything else is a failed tile.
    """

    @abstractmethod
    async def read_pointer(self, dataset: str, tile: str) -> str:
        """Raw pointer text. Raises TileFetchFailed if it is missing."""

    @abstractmethod
    async def read_payload(self, tile: str, location: str) -> Any:
        """Parsed JSON at a resolved location. Raises TileFetchFailed."""

    async def load_tile(self, dataset: str, tile: str) -> Any:
        location = strip_pointer(await self.read_pointer(dataset, tile))
        if not location:
            raise TileFetchFailed(tile, "empty pointer")
        if not is_remote(location) and not location.startswith("/"):
            raise TileFetchFailed(tile, f"unrecognized pointer {location[:80]!r}")
        logger.debug(f"{dataset}/{tile} -> {location}")
        return await self.read_payload(tile, location)


class LocalPointerResolver(PointerResolver):
    """Tile store on the local filesystem, as written by the tile builder"""

    def __init__(self, root: Path):
        self.root = Path(root)

    async def read_pointer(self, dataset: str, tile: str) -> str:
        path = self.root / pointer_path(dataset, tile)
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            raise TileFetchFailed(tile, f"pointer missing: {e.strerror or e}") from e
        except UnicodeDecodeError as e:
            raise TileFetchFailed(tile, "pointer is not text") from e

    async def read_payload(self, tile: str, location: str) -> Any:
        if is_remote(location):
            raise TileFetchFailed(tile, "remote pointer in a local tile store")

        path = self.root / location.lstrip("/")
        try:
            with open(path, encoding="utf-8") as f:
                return json.load(f)
        except OSError as e:
            raise TileFetchFailed(tile, f"payload missing: {e.strerror or e}") from e
        except ValueError as e:
            raise TileFetchFailed(tile, f"payload is not JSON: {e}") from e


class HttpPointerResolver(PointerResolver):
    """
    Pointers and tiles served over HTTP.

    Pointer files live under the origin; absolute-path pointers are
    rebased onto it. Requests always ask to bypass caches so that a
    transient failure is never pinned.
    """

    def __init__(self, origin: str, session: Optional[aiohttp.ClientSession] = None):
        self.origin = origin.rstrip("/")
        self.session = session
        self._owns_session = session is None

    async def __aenter__(self):
        if self.session is None:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=REQUEST_TIMEOUT)
            )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self._owns_session and self.session:
            await self.session.close()
            self.session = None

    async def _get(self, tile: str, url: str, what: str) -> str:
        try:
            async with self.session.get(url, headers=NO_CACHE_HEADERS) as response:
                if response.status >= 400:
                    raise TileFetchFailed(tile, f"{what} HTTP {response.status}")
                return await response.text()
        except UnicodeDecodeError as e:
            raise TileFetchFailed(tile, f"{what} is not text") from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TileFetchFailed(tile, f"{what} unreachable: {str(e) or type(e).__name__}") from e

    async def read_pointer(self, dataset: str, tile: str) -> str:
        return await self._get(tile, f"{self.origin}/{pointer_path(dataset, tile)}", "pointer")

    async def read_payload(self, tile: str, location: str) -> Any:
        url = location if is_remote(location) else f"{self.origin}{location}"
        text = await self._get(tile, url, "payload")
        try:
            return json.loads(text)
        except ValueError as e:
            raise TileFetchFailed(tile, f"payload is not JSON: {e}") from e
