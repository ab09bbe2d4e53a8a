from functools import partial
from typing import Any, Callable, Dict, List, Optional

from loguru import logger

from nhl_ingest.config.settings import settings

from .http_client import RetryingHTTPClient, ScraperError
from .rate_limiter import RateLimitedScheduler

# (start, limit) -> URL of that page
PageUrlBuilder = Callable[[int, int], str]


class PaginatedCollector:
    """Drains an offset/limit paged resource into one ordered list."""

    def __init__(
        self,
        client: RetryingHTTPClient,
        scheduler: RateLimitedScheduler,
        page_size: Optional[int] = None,
    ):
        self.client = client
        self.scheduler = scheduler
        self.page_size = page_size or settings.page_size

    async def collect(
        self,
        resource_id: str,
        page_url: PageUrlBuilder,
        page_size: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Fetches pages at increasing offsets until one comes back short.

        A failing page ends pagination for this resource: the items gathered so
        far are returned and the error is only logged.

        Args:
            resource_id: Label used in log messages (e.g. "skater/franchise=6").
            page_url: Builds the URL for a given start offset and limit.
            page_size: Items requested per page; defaults to the configured size.

        Returns:
            Items of every page fetched, in page order.
        """
        limit = page_size or self.page_size
        items: List[Dict[str, Any]] = []
        start = 0

        while True:
            url = page_url(start, limit)
            try:
                payload = await self.scheduler.admit(partial(self.client.fetch_json, url))
            except ScraperError as e:
                logger.error(
                    f"Error fetching {resource_id} at start={start}, keeping {len(items)} items: {e}"
                )
                break

            page = payload.get("data") if isinstance(payload, dict) else None
            if not isinstance(page, list):
                logger.warning(f"Page for {resource_id} at start={start} has no 'data' list")
                page = []

            items.extend(page)
            if page:
                logger.debug(
                    f"Fetched {len(page)} items for {resource_id} ({start + 1}-{start + len(page)})"
                )
            if len(page) < limit:
                break
            start += limit

        logger.info(f"Total items fetched for {resource_id}: {len(items)}")
        return items
