from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict


class TeamIdentity(BaseModel):
    """A resolved team: franchise id, modern abbreviation, logo and display name."""

    model_config = ConfigDict(frozen=True)

    team_id: Optional[int] = None  # Franchise id, None when upstream gave none
    team_abbrev: str = ""
    team_logo_url: str = ""
    canonical_name: str

    @property
    def key(self) -> Tuple[Optional[int], str]:
        """Identity used to decide whether two seasons belong to one tenure."""
        return (self.team_id, self.canonical_name)


class TeamSummary(BaseModel):
    """An entry of the upstream team list."""

    franchise_id: Optional[int] = None
    full_name: str = ""
    abbreviation: str = ""
    active: Optional[bool] = None

    @property
    def is_active_franchise(self) -> bool:
        return bool(self.franchise_id) and self.active is not False
