from datetime import datetime, timezone
from typing import Optional

from loguru import logger
from supabase import AsyncClient

from nhl_ingest.config.settings import settings
from nhl_ingest.models.checkpoint import Checkpoint

from .supabase_client import execute

CHECKPOINT_ID = "scraper_progress"


class SupabaseCheckpointStore:
    """The singleton resume checkpoint, kept as one row of the progress table."""

    def __init__(self, client: AsyncClient, table: Optional[str] = None):
        self.client = client
        self.table = table or settings.progress_table

    async def get(self) -> Checkpoint:
        """Returns the stored checkpoint, or a fresh one if none exists."""
        query = self.client.table(self.table).select("*").eq("id", CHECKPOINT_ID).limit(1)
        response = await execute(query, f"checkpoint read from {self.table}")
        if not response.data:
            logger.info("No checkpoint found, starting from the first team")
            return Checkpoint()

        row = response.data[0]
        checkpoint = Checkpoint(
            last_team_index=row.get("last_team_index") or 0,
            processed_team_ids=row.get("processed_teams") or [],
            timestamp=row.get("timestamp"),
        )
        logger.info(
            f"Resuming from team index {checkpoint.last_team_index} "
            f"({len(checkpoint.processed_team_ids)} teams already processed)"
        )
        return checkpoint

    async def put(self, checkpoint: Checkpoint) -> Checkpoint:
        """Atomically replaces the stored checkpoint, stamping it with the current time."""
        stamped = checkpoint.model_copy(update={"timestamp": datetime.now(timezone.utc)})
        row = {
            "id": CHECKPOINT_ID,
            "last_team_index": stamped.last_team_index,
            "processed_teams": list(stamped.processed_team_ids),
            "timestamp": stamped.timestamp.isoformat(),
        }
        query = self.client.table(self.table).upsert(row, on_conflict="id")
        await execute(query, f"checkpoint write to {self.table}")
        logger.debug(f"Checkpoint saved at team index {stamped.last_team_index}")
        return stamped

    async def clear(self) -> None:
        query = self.client.table(self.table).delete().eq("id", CHECKPOINT_ID)
        await execute(query, f"checkpoint delete from {self.table}")
        logger.info("Checkpoint cleared")
