from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field

from .tenure import Tenure


class DraftInfo(BaseModel):
    """Draft selection; every field is None for undrafted players."""

    year: Optional[int] = None
    round: Optional[int] = None
    pick: Optional[int] = None
    overall: Optional[int] = None
    team: Optional[str] = None
    team_abbrev: Optional[str] = None
    team_logo_url: Optional[str] = None

    @classmethod
    def undrafted(cls) -> "DraftInfo":
        return cls()

    def to_document(self) -> Dict[str, Any]:
        return {
            "year": self.year,
            "round": self.round,
            "pick": self.pick,
            "overall": self.overall,
            "team": self.team,
            "teamAbbrev": self.team_abbrev,
            "teamLogo": self.team_logo_url,
        }


class SkaterStats(BaseModel):
    goals: int = 0
    assists: int = 0
    points: int = 0
    games: int = 0

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump()


class GoalieStats(BaseModel):
    games: int = 0
    wins: int = 0
    losses: int = 0
    ot: int = 0
    save_percentage: float = 0
    goals_against_average: float = 0

    @property
    def record(self) -> str:
        return f"{self.wins}-{self.losses}-{self.ot}"

    def to_document(self) -> Dict[str, Any]:
        return {
            "games": self.games,
            "wins": self.wins,
            "losses": self.losses,
            "ot": self.ot,
            "record": self.record,
            "savePercentage": self.save_percentage,
            "goalsAgainstAverage": self.goals_against_average,
        }


class PlayerRecord(BaseModel):
    """The materialized player document, rebuilt wholesale on every fetch."""

    id: int
    name: str
    sweater_number: Union[int, str] = "N/A"
    position: str = "N/A"
    silhouette_url: str
    draft_info: DraftInfo = Field(default_factory=DraftInfo.undrafted)
    tenures: List[Tenure]
    stats: Union[GoalieStats, SkaterStats]

    @property
    def is_active(self) -> bool:
        """Mirrors the most recent tenure."""
        return bool(self.tenures) and self.tenures[-1].is_active
