from pydantic import BaseModel


class UpsertResult(BaseModel):
    inserted_count: int = 0
    modified_count: int = 0


class IngestionSummary(BaseModel):
    """Counters reported at the end of a run."""

    teams_total: int = 0
    teams_processed: int = 0
    teams_failed: int = 0
    players_written: int = 0
    players_skipped_known: int = 0
    players_failed: int = 0
    players_dropped: int = 0
    inserted: int = 0
    modified: int = 0

    def add_upsert(self, result: UpsertResult) -> None:
        self.inserted += result.inserted_count
        self.modified += result.modified_count
