"""Fetcher for NYC Open Data parking sign locations (street-cleaning signs)"""
import logging
from typing import Any, Dict, List, Optional

from config import (
    SOCRATA_DATASET_URL,
    SOCRATA_APP_TOKEN,
    SOCRATA_PAGE_SIZE,
    SOCRATA_MAX_PAGES,
    SOCRATA_SELECT,
    SOCRATA_WHERE,
)
from transformers.projection import Projection
from transformers.tile_grid import BBox
from .base_fetcher import BaseFetcher

logger = logging.getLogger(__name__)


class SignRecordFetcher(BaseFetcher):
    """
    Fetches street-cleaning ("broom") sign rows from the NYC Parking
    Regulation Locations and Signs dataset.

    Dataset: https://data.cityofnewyork.us/resource/2x64-6f34.json

    Rows carry on/from/to street names, side_of_street, sign_description and
    sign_x_coord / sign_y_coord in EPSG:2263 (US feet). Conversion to
    lon/lat happens downstream in SignRecord.from_upstream_row.
    """

    def __init__(
        self,
        base_url: str = SOCRATA_DATASET_URL,
        page_size: int = SOCRATA_PAGE_SIZE,
        max_pages: int = SOCRATA_MAX_PAGES,
        app_token: str = SOCRATA_APP_TOKEN,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.base_url = base_url
        self.page_size = page_size
        self.max_pages = max_pages
        self.app_token = app_token

    def get_source_name(self) -> str:
        return "NYC Open Data Parking Signs (Brooklyn street cleaning)"

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.app_token:
            headers["X-App-Token"] = self.app_token
        return headers

    async def fetch(self, where: str = SOCRATA_WHERE) -> List[Dict[str, Any]]:
        """
        Fetch every matching row, one page at a time.

        Stops on an empty or short page, or at max_pages. Any page that
        still fails after retries raises UpstreamFetchFailed.
        """
        logger.info(f"Starting fetch from {self.get_source_name()}")

        all_records = []
        for page in range(self.max_pages):
            offset = page * self.page_size
            params = {
                "$select": ",".join(SOCRATA_SELECT),
                "$where": where,
                "$limit": self.page_size,
                "$offset": offset,
                "$order": ":id",  # Consistent ordering for pagination
            }

            logger.info(f"Fetching page {page + 1} (offset {offset})...")
            records = await self.fetch_with_retry(self.base_url, params=params, headers=self._headers())
            if not isinstance(records, list):
                records = []

            if not records:
                break

            all_records.extend(records)
            logger.info(f"Fetched {len(records)} records (total: {len(all_records)})")

            if len(records) < self.page_size:
                break
        else:
            logger.warning(f"Stopped at page cap ({self.max_pages} pages)")

        logger.info(f"Completed fetch: {len(all_records)} total records")
        return all_records

    async def fetch_bbox(
        self, bbox: BBox, projection: Optional[Projection] = None
    ) -> List[Dict[str, Any]]:
        """
        Fetch rows near a lon/lat box.

        The box is turned into inflated state-plane bounds for the upstream
        filter only; callers still have to filter converted points.
        """
        projection = projection or Projection()
        xmin, ymin, xmax, ymax = projection.projected_bounds(bbox)
        where = (
            f"{SOCRATA_WHERE}"
            f" AND sign_x_coord BETWEEN {xmin} AND {xmax}"
            f" AND sign_y_coord BETWEEN {ymin} AND {ymax}"
        )
        return await self.fetch(where=where)

    async def fetch_sample(self, limit: int = 100) -> List[Dict[str, Any]]:
        """Fetch a sample of records for testing/inspection"""
        params = {"$where": SOCRATA_WHERE, "$limit": limit}
        return await self.fetch_with_retry(self.base_url, params=params, headers=self._headers())
