# src/nhl_ingest/normalization/team_resolver.py
import json
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, NamedTuple, Optional

from loguru import logger

from nhl_ingest.config.settings import settings
from nhl_ingest.models.player import DraftInfo
from nhl_ingest.models.season import SeasonRecord
from nhl_ingest.models.team import TeamIdentity, TeamSummary
from nhl_ingest.utils.misc_utils import first_present

FRANCHISE_TABLES_PATH = Path(__file__).resolve().parent.parent / "data" / "franchises.json"


class TeamTables(NamedTuple):
    """Static franchise data, read-only once loaded."""

    franchise_abbrevs: Mapping[int, str]  # franchise id -> current abbreviation
    abbrev_to_franchise: Mapping[str, int]  # current abbreviation -> franchise id
    display_names: Mapping[str, str]  # current abbreviation -> display name


def load_team_tables(path: Optional[Path] = None) -> TeamTables:
    """Loads the franchise tables shipped with the package."""
    path = path or FRANCHISE_TABLES_PATH
    with open(path, encoding="utf-8") as f:
        raw = json.load(f)
    tables = TeamTables(
        franchise_abbrevs=MappingProxyType(
            {int(fid): abbrev for fid, abbrev in raw["franchise_abbrevs"].items()}
        ),
        abbrev_to_franchise=MappingProxyType(dict(raw["abbrev_to_franchise"])),
        display_names=MappingProxyType(dict(raw["display_names"])),
    )
    logger.debug(
        f"Loaded {len(tables.franchise_abbrevs)} franchise abbreviations and "
        f"{len(tables.display_names)} display names from {path}"
    )
    return tables


def normalize_team_name(name: str) -> str:
    return name.strip().lower()


def team_logo_url(assets_base_url: str, abbrev: str) -> str:
    return f"{assets_base_url.rstrip('/')}/logos/nhl/svg/{abbrev}_light.svg"


class TeamIdentityResolver:
    """Maps raw team references to a TeamIdentity. Pure; no I/O after construction."""

    def __init__(
        self,
        by_id: Mapping[int, TeamIdentity],
        by_name: Mapping[str, TeamIdentity],
        tables: TeamTables,
        assets_base_url: Optional[str] = None,
    ):
        self.by_id = MappingProxyType(dict(by_id))
        self.by_name = MappingProxyType(dict(by_name))
        self.tables = tables
        self.assets_base_url = (assets_base_url or settings.assets_base_url).rstrip("/")

    @classmethod
    def from_teams(
        cls,
        teams: Iterable[TeamSummary],
        tables: TeamTables,
        assets_base_url: Optional[str] = None,
    ) -> "TeamIdentityResolver":
        """Builds the id and name lookups from the active entries of the team list."""
        base_url = assets_base_url or settings.assets_base_url
        by_id: Dict[int, TeamIdentity] = {}
        by_name: Dict[str, TeamIdentity] = {}
        for team in teams:
            if not team.is_active_franchise:
                continue
            abbrev = tables.franchise_abbrevs.get(team.franchise_id) or team.abbreviation
            identity = TeamIdentity(
                team_id=team.franchise_id,
                team_abbrev=abbrev,
                team_logo_url=team_logo_url(base_url, abbrev),
                canonical_name=team.full_name,
            )
            by_id[team.franchise_id] = identity
            name = normalize_team_name(team.full_name)
            if name:
                by_name[name] = identity
        logger.info(f"Team lookups built: {len(by_id)} franchises, {len(by_name)} names")
        return cls(by_id, by_name, tables, base_url)

    def logo_url(self, abbrev: str) -> str:
        return team_logo_url(self.assets_base_url, abbrev)

    def resolve(self, season: SeasonRecord) -> TeamIdentity:
        """Resolves the team of one season entry.

        Lookup order: franchise id, then lowercased and trimmed team name,
        then an identity synthesized from the franchise fallback table. The
        display name is the table's name for the resolved abbreviation when it
        has one, else the upstream name exactly as sent.
        """
        upstream_name = season.team_name or ""
        identity = None
        if season.team_id is not None:
            identity = self.by_id.get(season.team_id)
        if identity is None:
            identity = self.by_name.get(normalize_team_name(upstream_name))
        if identity is None:
            abbrev = ""
            if season.team_id is not None:
                abbrev = self.tables.franchise_abbrevs.get(season.team_id, "")
            identity = TeamIdentity(
                team_id=season.team_id,
                team_abbrev=abbrev,
                team_logo_url=self.logo_url(abbrev) if abbrev else "",
                canonical_name=upstream_name,
            )

        canonical_name = self.tables.display_names.get(identity.team_abbrev) or upstream_name
        if canonical_name != identity.canonical_name:
            identity = identity.model_copy(update={"canonical_name": canonical_name})
        return identity

    def resolve_draft(self, draft_details: Optional[Dict[str, Any]]) -> DraftInfo:
        """Maps a draft entry to the drafting team's current identity.

        An abbreviation without a display name (e.g. a relocated franchise) is
        routed through its franchise id to the current abbreviation.
        """
        if not isinstance(draft_details, Mapping) or not draft_details.get("year"):
            return DraftInfo.undrafted()

        drafted_abbrev = first_present(draft_details, "teamAbbrev", default="")
        abbrev = drafted_abbrev
        if drafted_abbrev and drafted_abbrev not in self.tables.display_names:
            franchise_id = self.tables.abbrev_to_franchise.get(drafted_abbrev)
            if franchise_id is not None:
                abbrev = self.tables.franchise_abbrevs.get(franchise_id, drafted_abbrev)

        team_name = self.tables.display_names.get(abbrev) or first_present(
            draft_details, "teamName", default=""
        )
        return DraftInfo(
            year=draft_details.get("year"),
            round=draft_details.get("round"),
            pick=draft_details.get("pickInRound"),
            overall=draft_details.get("overallPick"),
            team=team_name,
            team_abbrev=abbrev,
            team_logo_url=self.logo_url(abbrev) if abbrev else None,
        )
