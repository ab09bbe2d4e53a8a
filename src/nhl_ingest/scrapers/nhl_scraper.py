import asyncio
from functools import partial
from typing import Any, Dict, List, Optional

from loguru import logger

from nhl_ingest.config.settings import settings
from nhl_ingest.models.enums import PlayerCategory
from nhl_ingest.models.team import TeamSummary
from nhl_ingest.utils.misc_utils import first_present

from .http_client import ClientError, RetryingHTTPClient
from .paginator import PaginatedCollector
from .rate_limiter import RateLimitedScheduler


class NHLScraper:
    """Upstream NHL endpoints. Every request goes through the shared scheduler."""

    def __init__(
        self,
        client: Optional[RetryingHTTPClient] = None,
        scheduler: Optional[RateLimitedScheduler] = None,
        collector: Optional[PaginatedCollector] = None,
        stats_api_base_url: Optional[str] = None,
        web_api_base_url: Optional[str] = None,
    ):
        self.client = client or RetryingHTTPClient()
        self.scheduler = scheduler or RateLimitedScheduler()
        self.collector = collector or PaginatedCollector(self.client, self.scheduler)
        self.stats_api_base_url = (stats_api_base_url or settings.stats_api_base_url).rstrip("/")
        self.web_api_base_url = (web_api_base_url or settings.web_api_base_url).rstrip("/")

    async def _get_json(self, url: str) -> Any:
        return await self.scheduler.admit(partial(self.client.fetch_json, url))

    async def fetch_teams(self) -> List[TeamSummary]:
        """Fetches the full team list. Errors propagate; the caller cannot continue without it."""
        url = f"{self.stats_api_base_url}/team"
        logger.info("Fetching team list...")
        payload = await self._get_json(url)
        raw_teams = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(raw_teams, list):
            raise ClientError(f"Team list from {url} has no 'data' list", url)

        teams = [
            TeamSummary(
                franchise_id=raw.get("franchiseId"),
                full_name=first_present(raw, "fullName", default=""),
                abbreviation=first_present(
                    raw, "abbreviation", "triCode", "rawTricode", "teamName.abbreviation", default=""
                ),
                active=raw.get("active"),
            )
            for raw in raw_teams
            if isinstance(raw, dict)
        ]
        logger.info(f"Found {len(teams)} teams.")
        return teams

    def _summary_url(self, category: PlayerCategory, franchise_id: int, start: int, limit: int) -> str:
        return (
            f"{self.stats_api_base_url}/{category.value}/summary"
            f"?cayenneExp=franchiseId={franchise_id}&limit={limit}&start={start}"
        )

    async def fetch_player_summaries(self, franchise_id: int) -> List[Dict[str, Any]]:
        """Skater then goalie summaries for one franchise.

        Both categories are submitted together; the scheduler still dispatches
        their pages one at a time.
        """
        skaters, goalies = await asyncio.gather(
            *(
                self.collector.collect(
                    f"{category.value}/franchise={franchise_id}",
                    partial(self._summary_url, category, franchise_id),
                )
                for category in (PlayerCategory.SKATER, PlayerCategory.GOALIE)
            )
        )
        logger.info(
            f"Franchise {franchise_id}: {len(skaters)} skaters, {len(goalies)} goalies"
        )
        return [*skaters, *goalies]

    async def fetch_player_landing(self, player_id: int) -> Dict[str, Any]:
        """Player detail page (name, draft, career and season totals)."""
        url = f"{self.web_api_base_url}/player/{player_id}/landing"
        payload = await self._get_json(url)
        if not isinstance(payload, dict):
            raise ClientError(f"Unexpected player payload from {url}", url)
        return payload

    async def close(self):
        await self.scheduler.close()
        await self.client.close()
