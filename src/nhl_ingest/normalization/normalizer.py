from typing import Any, Dict, Optional, Union

from loguru import logger
from pydantic import ValidationError

from nhl_ingest.config.settings import settings
from nhl_ingest.models.player import GoalieStats, PlayerRecord, SkaterStats
from nhl_ingest.utils.misc_utils import first_present

from .team_resolver import TeamIdentityResolver
from .tenures import TenureReconciler

GOALIE_POSITION = "G"


class NormalizationError(Exception):
    """Raised when a player detail payload cannot be turned into a PlayerRecord."""

    pass


class PlayerNormalizer:
    """Builds PlayerRecord documents from player detail payloads."""

    def __init__(
        self,
        resolver: TeamIdentityResolver,
        reconciler: TenureReconciler,
        assets_base_url: Optional[str] = None,
    ):
        self.resolver = resolver
        self.reconciler = reconciler
        self.assets_base_url = (assets_base_url or settings.assets_base_url).rstrip("/")

    def silhouette_url(self, player_id: int, landing: Dict[str, Any]) -> str:
        return first_present(
            landing,
            "headshot",
            default=f"{self.assets_base_url}/mugs/nhl/20232024/{player_id}.png",
        )

    @staticmethod
    def build_stats(position: str, career: Dict[str, Any]) -> Union[GoalieStats, SkaterStats]:
        """Career regular season totals, shaped by position. Missing values are 0."""
        if position == GOALIE_POSITION:
            return GoalieStats(
                games=career.get("gamesPlayed") or 0,
                wins=career.get("wins") or 0,
                losses=career.get("losses") or 0,
                ot=career.get("otLosses") or 0,
                save_percentage=career.get("savePctg") or 0,
                goals_against_average=career.get("goalsAgainstAvg") or 0,
            )
        return SkaterStats(
            goals=career.get("goals") or 0,
            assists=career.get("assists") or 0,
            points=career.get("points") or 0,
            games=career.get("gamesPlayed") or 0,
        )

    def normalize(self, player_id: int, landing: Dict[str, Any]) -> Optional[PlayerRecord]:
        """Returns the player's record, or None when no tenure survives reconciliation.

        Raises:
            NormalizationError: If the payload has values of the wrong shape.
        """
        try:
            tenures = self.reconciler.reconcile(landing.get("seasonTotals") or [])
            if not tenures:
                logger.debug(f"Player {player_id} has no tenures in the target league")
                return None

            first_name = first_present(landing, "firstName", default="Unknown")
            last_name = first_present(landing, "lastName", default="")
            position = first_present(landing, "position", default="N/A")
            career = (landing.get("careerTotals") or {}).get("regularSeason") or {}

            return PlayerRecord(
                id=player_id,
                name=f"{first_name} {last_name}".strip(),
                sweater_number=first_present(landing, "sweaterNumber", default="N/A"),
                position=position,
                silhouette_url=self.silhouette_url(player_id, landing),
                draft_info=self.resolver.resolve_draft(landing.get("draftDetails")),
                tenures=tenures,
                stats=self.build_stats(position, career),
            )
        except (ValidationError, TypeError, AttributeError, KeyError) as e:
            raise NormalizationError(f"Invalid detail payload for player {player_id}: {e}") from e
