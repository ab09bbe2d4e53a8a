# src/nhl_ingest/storage/supabase_client.py
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set

import httpx
from loguru import logger
from postgrest import APIResponse
from postgrest.exceptions import APIError
from supabase import AsyncClient, create_async_client

from nhl_ingest.config.settings import settings
from nhl_ingest.models.player import PlayerRecord
from nhl_ingest.models.summary import UpsertResult

# PostgREST caps a single select at 1000 rows by default
ID_PAGE_SIZE = 1000

# Module-level storage for the async client instance
_async_supabase_client: Optional[AsyncClient] = None


class StorageUnavailableError(Exception):
    """The document store could not be reached or rejected a request. Fatal to a run."""

    pass


async def initialize_supabase() -> AsyncClient:
    """Initializes the global ASYNC Supabase client and returns it."""
    global _async_supabase_client
    if _async_supabase_client:
        logger.debug("Async Supabase client already initialized.")
        return _async_supabase_client

    if not settings.supabase_url or not settings.supabase_key:
        logger.critical("Supabase URL or Key not configured in settings.")
        raise StorageUnavailableError("Supabase configuration missing.")

    logger.debug(f"Initializing Async Supabase client with URL: {settings.supabase_url}")
    try:
        client: AsyncClient = await create_async_client(
            settings.supabase_url, settings.supabase_key
        )
    except Exception as e:
        logger.exception(f"Failed to initialize Async Supabase client: {e}")
        raise StorageUnavailableError(f"Failed to initialize Supabase client: {e}") from e

    _async_supabase_client = client
    logger.success("Async Supabase client initialized successfully.")
    return client


async def execute(query, description: str) -> APIResponse:
    """Runs a PostgREST query, converting any failure into StorageUnavailableError."""
    try:
        return await query.execute()
    except APIError as e:
        logger.error(f"Error during {description}: {e.message}")
        logger.debug(f"Full APIError details: {e}")
        raise StorageUnavailableError(f"{description} failed: {e.message}") from e
    except httpx.HTTPError as e:
        logger.error(f"Storage unreachable during {description}: {e}")
        raise StorageUnavailableError(f"{description} failed: {e}") from e


def player_to_row(player: PlayerRecord, stamp: datetime) -> Dict[str, Any]:
    """Flattens a PlayerRecord into a row of the players table."""
    return {
        "id": player.id,
        "name": player.name,
        "sweaterNumber": player.sweater_number,
        "position": player.position,
        "silhouette": player.silhouette_url,
        "draft": player.draft_info.to_document(),
        "teams": [tenure.to_document() for tenure in player.tenures],
        "isActive": player.is_active,
        "stats": player.stats.to_document(),
        "lastUpdated": stamp.isoformat(),
        "lastScraped": stamp.isoformat(),
    }


class SupabasePlayerSink:
    """Batched, idempotent writes of player documents keyed by id."""

    def __init__(self, client: AsyncClient, table: Optional[str] = None):
        self.client = client
        self.table = table or settings.players_table

    async def find_all_ids(self) -> Set[int]:
        """Ids of every stored player, read page by page."""
        ids: Set[int] = set()
        start = 0
        while True:
            query = (
                self.client.table(self.table)
                .select("id")
                .order("id")
                .range(start, start + ID_PAGE_SIZE - 1)
            )
            response = await execute(query, f"id scan of {self.table}")
            rows = response.data or []
            ids.update(row["id"] for row in rows)
            if len(rows) < ID_PAGE_SIZE:
                break
            start += ID_PAGE_SIZE
        logger.info(f"Loaded {len(ids)} existing player ids from {self.table}")
        return ids

    async def _existing_ids(self, ids: List[int]) -> Set[int]:
        query = self.client.table(self.table).select("id").in_("id", ids)
        response = await execute(query, f"existence check on {self.table}")
        return {row["id"] for row in response.data or []}

    async def upsert(self, players: List[PlayerRecord]) -> UpsertResult:
        """Replace-or-insert each player by id, stamping the ingestion time.

        Re-sending an identical record only refreshes its timestamps.
        """
        if not players:
            logger.debug(f"No data provided for upsert to table {self.table}. Skipping.")
            return UpsertResult()

        stamp = datetime.now(timezone.utc)
        rows = [player_to_row(player, stamp) for player in players]
        ids = [row["id"] for row in rows]
        existing = await self._existing_ids(ids)

        query = self.client.table(self.table).upsert(rows, on_conflict="id")
        await execute(query, f"upsert to {self.table}")

        result = UpsertResult(
            inserted_count=len(set(ids) - existing),
            modified_count=len(existing),
        )
        logger.success(
            f"Upserted {len(rows)} records to {self.table}: "
            f"{result.inserted_count} inserted, {result.modified_count} modified."
        )
        return result
