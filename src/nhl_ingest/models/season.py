from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict

from nhl_ingest.utils.misc_utils import first_present


class SeasonRecord(BaseModel):
    """One row of a player's season-by-season totals, as sent upstream."""

    model_config = ConfigDict(frozen=True)

    game_type_id: Optional[int] = None
    league_abbrev: Optional[str] = None
    team_name: Optional[str] = None
    team_id: Optional[int] = None
    season: str = ""  # YYYYYYYY, e.g. "20152016"

    @classmethod
    def from_raw(cls, raw: Dict[str, Any]) -> "SeasonRecord":
        season = raw.get("season")
        team_id = first_present(raw, "franchiseId", "teamId")
        return cls(
            game_type_id=raw.get("gameTypeId"),
            league_abbrev=raw.get("leagueAbbrev"),
            team_name=first_present(raw, "teamFullName", "teamName", "team"),
            team_id=team_id if isinstance(team_id, int) else None,
            season=str(season) if season is not None else "",
        )

    @property
    def has_valid_season(self) -> bool:
        return (
            len(self.season) == 8
            and self.season.isdigit()
            and self.season[:4] <= self.season[4:]
        )

    @property
    def start_year(self) -> int:
        return int(self.season[:4])

    @property
    def end_year(self) -> int:
        return int(self.season[4:])
