from typing import Any, Dict

from pydantic import BaseModel, model_validator

from .team import TeamIdentity


class Tenure(BaseModel):
    """A contiguous span a player spent with one team identity."""

    team: TeamIdentity
    start_year: int
    end_year: int
    is_active: bool = False

    @model_validator(mode="after")
    def _check_span(self) -> "Tenure":
        if self.start_year > self.end_year:
            raise ValueError(
                f"Tenure for {self.team.canonical_name} starts after it ends "
                f"({self.start_year} > {self.end_year})"
            )
        return self

    def to_document(self) -> Dict[str, Any]:
        return {
            "teamName": self.team.canonical_name,
            "teamId": self.team.team_id,
            "teamAbbrev": self.team.team_abbrev,
            "teamLogo": self.team.team_logo_url,
            "startYear": self.start_year,
            "endYear": self.end_year,
            "isActive": self.is_active,
        }
