from datetime import date
from typing import Any, Iterable, List, Mapping, NamedTuple, Optional

from loguru import logger

from nhl_ingest.config.settings import settings
from nhl_ingest.models.enums import GameType
from nhl_ingest.models.season import SeasonRecord
from nhl_ingest.models.team import TeamIdentity
from nhl_ingest.models.tenure import Tenure

from .team_resolver import TeamIdentityResolver

COUNTED_GAME_TYPES = {GameType.REGULAR_SEASON, GameType.PLAYOFFS}


class _SeasonEntry(NamedTuple):
    team: TeamIdentity
    start_year: int
    end_year: int


class TenureReconciler:
    """Turns a player's season-by-season totals into chronological team tenures.

    Seasons are filtered to regular season and playoff games of the target
    league, resolved to a team identity and stably sorted by start year. A walk
    over the sorted entries then merges runs of the same identity. Only
    adjacent entries merge: a player who leaves a team and later returns gets a
    separate tenure for each stint.

    A tenure is active when its end year falls within ``grace_years`` of the
    current year.
    """

    def __init__(
        self,
        resolver: TeamIdentityResolver,
        target_league: Optional[str] = None,
        grace_years: Optional[int] = None,
        current_year: Optional[int] = None,
    ):
        self.resolver = resolver
        self.target_league = target_league or settings.target_league
        self.grace_years = settings.active_grace_years if grace_years is None else grace_years
        self._current_year = current_year

    @property
    def current_year(self) -> int:
        return self._current_year or date.today().year

    def is_active(self, end_year: int) -> bool:
        return self.current_year - self.grace_years <= end_year <= self.current_year

    def _keep(self, season: SeasonRecord) -> bool:
        return (
            season.game_type_id in COUNTED_GAME_TYPES
            and season.league_abbrev == self.target_league
            and season.has_valid_season
            and bool(season.team_name)
        )

    def _entries(self, raw_seasons: Iterable[Mapping[str, Any]]) -> List[_SeasonEntry]:
        entries = []
        for raw in raw_seasons:
            if not isinstance(raw, Mapping):
                continue
            season = SeasonRecord.from_raw(raw)
            if not self._keep(season):
                continue
            entries.append(
                _SeasonEntry(self.resolver.resolve(season), season.start_year, season.end_year)
            )
        # sorted() is stable: same-year entries keep their upstream order
        return sorted(entries, key=lambda e: e.start_year)

    def _close(self, current: _SeasonEntry) -> Tenure:
        return Tenure(
            team=current.team,
            start_year=current.start_year,
            end_year=current.end_year,
            is_active=self.is_active(current.end_year),
        )

    def reconcile(self, raw_seasons: Optional[Iterable[Mapping[str, Any]]]) -> List[Tenure]:
        """Reconciles raw season records into tenures ordered by start year."""
        if not raw_seasons:
            return []

        tenures: List[Tenure] = []
        current: Optional[_SeasonEntry] = None
        for entry in self._entries(raw_seasons):
            if current is not None and current.team.key == entry.team.key:
                current = current._replace(end_year=max(current.end_year, entry.end_year))
                continue
            if current is not None:
                tenures.append(self._close(current))
            current = entry
        if current is not None:
            tenures.append(self._close(current))

        logger.trace(f"Reconciled {len(tenures)} tenures")
        return tenures
