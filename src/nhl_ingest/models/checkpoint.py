from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class Checkpoint(BaseModel):
    """Durable resume cursor over the active team list."""

    last_team_index: int = Field(0, ge=0)
    processed_team_ids: List[int] = []
    timestamp: Optional[datetime] = None
