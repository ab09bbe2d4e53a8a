import argparse
import asyncio
import sys
from typing import List, Optional

from loguru import logger
from rich import print
from rich.panel import Panel

from nhl_ingest.config.settings import settings
from nhl_ingest.ingestion.orchestrator import IngestionOrchestrator
from nhl_ingest.logging.setup import setup_logging
from nhl_ingest.models.summary import IngestionSummary
from nhl_ingest.scrapers.http_client import RetryingHTTPClient
from nhl_ingest.scrapers.nhl_scraper import NHLScraper
from nhl_ingest.scrapers.rate_limiter import RateLimitedScheduler
from nhl_ingest.storage.checkpoints import SupabaseCheckpointStore
from nhl_ingest.storage.supabase_client import SupabasePlayerSink, initialize_supabase


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Ingest NHL player careers into the players table."
    )
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Delete the checkpoint and start again from the first team.",
    )
    parser.add_argument(
        "--requests-per-minute",
        type=int,
        default=None,
        help=f"Upstream requests per minute (default: {settings.requests_per_minute}).",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
        help=f"Console log level (default: {settings.log_level}).",
    )
    return parser.parse_args(argv)


def render_summary(summary: IngestionSummary) -> Panel:
    lines = [
        f"Teams processed: [bold]{summary.teams_processed}[/bold] / {summary.teams_total}",
        f"Teams failed: [bold red]{summary.teams_failed}[/bold red]",
        f"Players written: [bold green]{summary.players_written}[/bold green] "
        f"({summary.inserted} inserted, {summary.modified} modified)",
        f"Players already stored: {summary.players_skipped_known}",
        f"Players without tenures: {summary.players_dropped}",
        f"Players failed: [bold red]{summary.players_failed}[/bold red]",
    ]
    return Panel("\n".join(lines), title="NHL Career Ingestion", expand=False)


async def main(args: argparse.Namespace) -> IngestionSummary:
    """Main entry point for the application."""
    logger.info("Starting NHL career ingestion")

    supabase_client = await initialize_supabase()
    checkpoints = SupabaseCheckpointStore(supabase_client)
    if args.reset:
        logger.info("--reset given, clearing checkpoint")
        await checkpoints.clear()

    scraper = NHLScraper(
        client=RetryingHTTPClient(),
        scheduler=RateLimitedScheduler(requests_per_minute=args.requests_per_minute),
    )
    orchestrator = IngestionOrchestrator(
        scraper=scraper,
        sink=SupabasePlayerSink(supabase_client),
        checkpoints=checkpoints,
    )
    try:
        return await orchestrator.run()
    finally:
        await scraper.close()


if __name__ == "__main__":
    cli_args = parse_args()
    setup_logging(cli_args.log_level)
    try:
        result = asyncio.run(main(cli_args))
        print(render_summary(result))
    except KeyboardInterrupt:
        logger.info("Execution interrupted by user (KeyboardInterrupt). Rerun to resume.")
        sys.exit(0)
    except Exception as e:
        logger.error(f"Ingestion failed: {e}")
        sys.exit(1)
