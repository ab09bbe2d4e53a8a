from typing import Any, Dict, Iterable, List, Optional, Set

from loguru import logger

from nhl_ingest.config.settings import settings
from nhl_ingest.models.checkpoint import Checkpoint
from nhl_ingest.models.enums import IngestionState
from nhl_ingest.models.player import PlayerRecord
from nhl_ingest.models.summary import IngestionSummary
from nhl_ingest.models.team import TeamSummary
from nhl_ingest.normalization.normalizer import NormalizationError, PlayerNormalizer
from nhl_ingest.normalization.team_resolver import (
    TeamIdentityResolver,
    TeamTables,
    load_team_tables,
)
from nhl_ingest.normalization.tenures import TenureReconciler
from nhl_ingest.scrapers.http_client import ScraperError
from nhl_ingest.scrapers.nhl_scraper import NHLScraper
from nhl_ingest.storage.checkpoints import SupabaseCheckpointStore
from nhl_ingest.storage.supabase_client import SupabasePlayerSink


class IngestionOrchestrator:
    """Drives one ingestion run over every active team.

    States move ``IDLE -> RESUMING -> ITERATING_TEAMS -> ITERATING_PLAYERS ->
    FLUSHING -> COMPLETED``; any unexpected error ends in ``FAILED``.

    The checkpoint is only written once a team's players are flushed, so a
    crash repeats at most one team. Players already in storage are never
    fetched again: their ids are loaded into ``known_ids`` at start-up and
    every successfully fetched id is added as the run goes.

    A team whose summaries cannot be fetched is skipped and left for the next
    run: ``last_team_index`` stays at the first such team and the checkpoint is
    kept at the end of the run.
    """

    def __init__(
        self,
        scraper: NHLScraper,
        sink: SupabasePlayerSink,
        checkpoints: SupabaseCheckpointStore,
        tables: Optional[TeamTables] = None,
        batch_size: Optional[int] = None,
        assets_base_url: Optional[str] = None,
        target_league: Optional[str] = None,
        grace_years: Optional[int] = None,
        current_year: Optional[int] = None,
    ):
        self.scraper = scraper
        self.sink = sink
        self.checkpoints = checkpoints
        self.tables = tables or load_team_tables()
        self.batch_size = batch_size or settings.batch_size
        self.assets_base_url = assets_base_url or settings.assets_base_url
        self.target_league = target_league
        self.grace_years = grace_years
        self.current_year = current_year

        self.state = IngestionState.IDLE
        self.transitions: List[IngestionState] = [self.state]
        self.known_ids: Set[int] = set()
        self.pending: List[PlayerRecord] = []
        self.summary = IngestionSummary()
        self.normalizer: Optional[PlayerNormalizer] = None

    def _transition(self, state: IngestionState) -> None:
        if state is self.state:
            return
        logger.debug(f"Ingestion state {self.state.value} -> {state.value}")
        self.state = state
        self.transitions.append(state)

    def _build_normalizer(self, teams: Iterable[TeamSummary]) -> PlayerNormalizer:
        resolver = TeamIdentityResolver.from_teams(teams, self.tables, self.assets_base_url)
        reconciler = TenureReconciler(
            resolver,
            target_league=self.target_league,
            grace_years=self.grace_years,
            current_year=self.current_year,
        )
        return PlayerNormalizer(resolver, reconciler, self.assets_base_url)

    async def run(self) -> IngestionSummary:
        """Runs ingestion to completion and returns its counters.

        Raises:
            Exception: Whatever aborted the run, after moving to ``FAILED``.
        """
        try:
            await self._run()
        except Exception:
            self._transition(IngestionState.FAILED)
            logger.exception("Ingestion aborted")
            logger.critical(
                "The checkpoint only covers fully completed teams; rerun to resume safely."
            )
            raise
        return self.summary

    async def _run(self) -> None:
        self._transition(IngestionState.RESUMING)
        checkpoint = await self.checkpoints.get()
        self.known_ids = set(await self.sink.find_all_ids())

        teams = await self.scraper.fetch_teams()
        active_teams = [team for team in teams if team.is_active_franchise]
        logger.info(f"Active teams: {len(active_teams)}")
        self.summary.teams_total = len(active_teams)
        self.normalizer = self._build_normalizer(active_teams)

        processed_ids = list(checkpoint.processed_team_ids)
        first_failed_index: Optional[int] = None

        self._transition(IngestionState.ITERATING_TEAMS)
        for index in range(checkpoint.last_team_index, len(active_teams)):
            team = active_teams[index]
            label = f"team {index + 1}/{len(active_teams)}: {team.full_name or 'Unknown'}"
            if team.franchise_id in processed_ids:
                logger.info(f"Skipping {label}, already processed")
                continue

            logger.info(f"Processing {label} (franchiseId: {team.franchise_id})")
            try:
                summaries = await self.scraper.fetch_player_summaries(team.franchise_id)
            except ScraperError as e:
                logger.error(f"Failed to fetch players for {team.full_name}: {e}")
                self.summary.teams_failed += 1
                if first_failed_index is None:
                    first_failed_index = index
                continue

            await self._process_players(summaries)
            await self._flush()

            processed_ids.append(team.franchise_id)
            next_index = first_failed_index if first_failed_index is not None else index + 1
            await self.checkpoints.put(
                Checkpoint(last_team_index=next_index, processed_team_ids=processed_ids)
            )
            self.summary.teams_processed += 1
            self._transition(IngestionState.ITERATING_TEAMS)
            logger.success(
                f"Completed {team.full_name} ({self.summary.players_written} players written so far)"
            )

        if first_failed_index is None:
            await self.checkpoints.clear()
            logger.success("Scraping complete, checkpoint cleared")
        else:
            logger.warning(
                f"{self.summary.teams_failed} team(s) failed; checkpoint kept at team index "
                f"{first_failed_index} so the next run retries them"
            )
        self._transition(IngestionState.COMPLETED)

    async def _process_players(self, summaries: List[Dict[str, Any]]) -> None:
        self._transition(IngestionState.ITERATING_PLAYERS)
        for summary in summaries:
            if not isinstance(summary, dict):
                logger.warning(f"Malformed player summary skipped: {summary!r}")
                continue
            player_id = summary.get("playerId")
            if not player_id:
                logger.debug(f"Summary without playerId skipped: {summary}")
                continue
            if player_id in self.known_ids:
                self.summary.players_skipped_known += 1
                continue

            try:
                landing = await self.scraper.fetch_player_landing(player_id)
            except ScraperError as e:
                logger.warning(f"Failed to fetch player {player_id}: {e}")
                self.summary.players_failed += 1
                continue
            self.known_ids.add(player_id)

            try:
                record = self.normalizer.normalize(player_id, landing)
            except NormalizationError as e:
                logger.warning(str(e))
                self.summary.players_failed += 1
                continue
            if record is None:
                self.summary.players_dropped += 1
                continue

            self.pending.append(record)
            logger.info(
                f"Processed player: {record.name} ({record.position}, Active: {record.is_active})"
            )
            if len(self.pending) >= self.batch_size:
                await self._flush()
                self._transition(IngestionState.ITERATING_PLAYERS)

    async def _flush(self) -> None:
        if not self.pending:
            return
        self._transition(IngestionState.FLUSHING)
        result = await self.sink.upsert(self.pending)
        self.summary.add_upsert(result)
        self.summary.players_written += len(self.pending)
        logger.info(f"Flushed batch of {len(self.pending)} players")
        self.pending = []
