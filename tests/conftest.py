"""Shared fixtures and in-memory fakes for the ingestion tests."""

from typing import Any, Dict, Iterable, List, Optional

import pytest

from nhl_ingest.models.checkpoint import Checkpoint
from nhl_ingest.models.summary import UpsertResult
from nhl_ingest.models.team import TeamSummary
from nhl_ingest.normalization.team_resolver import TeamIdentityResolver, load_team_tables
from nhl_ingest.scrapers.http_client import RetryExhaustedError, ServerError

ASSETS = "https://assets.test"


# =============================================================================
# Payload builders
# =============================================================================


def make_season(
    season: str,
    team_name: Optional[str],
    team_id: Optional[int] = None,
    game_type: int = 2,
    league: str = "NHL",
) -> Dict[str, Any]:
    raw: Dict[str, Any] = {"season": int(season), "gameTypeId": game_type, "leagueAbbrev": league}
    if team_name is not None:
        raw["teamName"] = {"default": team_name}
    if team_id is not None:
        raw["teamId"] = team_id
    return raw


def make_landing(
    first: str = "Test",
    last: str = "Player",
    position: str = "C",
    seasons: Optional[List[Dict[str, Any]]] = None,
    career: Optional[Dict[str, Any]] = None,
    draft: Optional[Dict[str, Any]] = None,
    headshot: Optional[str] = None,
    sweater: Optional[int] = 10,
) -> Dict[str, Any]:
    landing: Dict[str, Any] = {
        "firstName": {"default": first},
        "lastName": {"default": last},
        "position": position,
        "seasonTotals": seasons
        if seasons is not None
        else [make_season("20222023", "Boston Bruins", 6)],
        "careerTotals": {"regularSeason": career or {}},
    }
    if sweater is not None:
        landing["sweaterNumber"] = sweater
    if draft is not None:
        landing["draftDetails"] = draft
    if headshot is not None:
        landing["headshot"] = headshot
    return landing


def make_team(franchise_id: int, full_name: str, abbreviation: str = "", active=True) -> TeamSummary:
    return TeamSummary(
        franchise_id=franchise_id, full_name=full_name, abbreviation=abbreviation, active=active
    )


# =============================================================================
# Fakes
# =============================================================================


class FakeClock:
    """Monotonic clock advanced only by its own sleep."""

    def __init__(self):
        self.now = 0.0
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class ImmediateScheduler:
    """Runs admitted operations straight away."""

    def __init__(self):
        self.admitted = 0

    async def admit(self, operation):
        self.admitted += 1
        return await operation()

    async def close(self):
        pass


class FakeScraper:
    def __init__(
        self,
        teams: List[TeamSummary],
        rosters: Dict[int, List[int]],
        landings: Optional[Dict[int, Dict[str, Any]]] = None,
        failing_teams: Iterable[int] = (),
        failing_players: Iterable[int] = (),
        teams_error: Optional[Exception] = None,
    ):
        self.teams = teams
        self.rosters = rosters
        self.landings = landings or {}
        self.failing_teams = set(failing_teams)
        self.failing_players = set(failing_players)
        self.teams_error = teams_error
        self.summary_calls: List[int] = []
        self.landing_calls: List[int] = []

    async def fetch_teams(self) -> List[TeamSummary]:
        if self.teams_error:
            raise self.teams_error
        return self.teams

    async def fetch_player_summaries(self, franchise_id: int) -> List[Dict[str, Any]]:
        self.summary_calls.append(franchise_id)
        if franchise_id in self.failing_teams:
            raise ServerError(f"Server error (500) for franchise {franchise_id}", status_code=500)
        return [{"playerId": pid} for pid in self.rosters.get(franchise_id, [])]

    async def fetch_player_landing(self, player_id: int) -> Dict[str, Any]:
        self.landing_calls.append(player_id)
        if player_id in self.failing_players:
            raise RetryExhaustedError(f"https://api.test/player/{player_id}/landing", 3)
        return self.landings.get(player_id) or make_landing(last=str(player_id))


class FakePlayerSink:
    def __init__(self, existing_ids: Iterable[int] = (), error: Optional[Exception] = None):
        self.stored = set(existing_ids)
        self.batches: List[List[Any]] = []
        self.error = error

    async def find_all_ids(self):
        return set(self.stored)

    async def upsert(self, players) -> UpsertResult:
        if self.error:
            raise self.error
        batch = list(players)
        self.batches.append(batch)
        ids = {p.id for p in batch}
        result = UpsertResult(
            inserted_count=len(ids - self.stored), modified_count=len(ids & self.stored)
        )
        self.stored |= ids
        return result


class FakeCheckpointStore:
    def __init__(self, checkpoint: Optional[Checkpoint] = None):
        self.checkpoint = checkpoint
        self.puts: List[Checkpoint] = []
        self.cleared = False

    async def get(self) -> Checkpoint:
        return self.checkpoint or Checkpoint()

    async def put(self, checkpoint: Checkpoint) -> Checkpoint:
        stored = checkpoint.model_copy(deep=True)
        self.puts.append(stored)
        self.checkpoint = stored
        return stored

    async def clear(self) -> None:
        self.cleared = True
        self.checkpoint = None


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def team_tables():
    return load_team_tables()


@pytest.fixture
def league_teams():
    return [
        make_team(6, "Boston Bruins", "BOS"),
        make_team(10, "New York Rangers", "NYR"),
        make_team(26, "Carolina Hurricanes", "CAR"),
        make_team(5, "Toronto Maple Leafs", "TOR"),
    ]


@pytest.fixture
def resolver(team_tables, league_teams):
    return TeamIdentityResolver.from_teams(league_teams, team_tables, ASSETS)


@pytest.fixture
def empty_resolver(team_tables):
    return TeamIdentityResolver({}, {}, team_tables, ASSETS)


@pytest.fixture
def fake_clock():
    return FakeClock()
