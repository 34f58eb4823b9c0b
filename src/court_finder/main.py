"""Entry point for the court finder command line."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from datetime import date
from typing import Optional, Sequence

import httpx
import structlog

from .browser_provider import TaipeiBrowserProvider
from .config import Settings
from .factory import create_provider
from .matching import find_best_match, suggest
from .models import Availability, VenueInfo
from .provider import CourtProvider, EngineUnavailableError
from .report import court_matches, filter_slots, format_availability, format_header, format_venue
from .utils import parse_date, parse_time_range, today_in_timezone
from .web_provider import TaipeiWebProvider

EXIT_OK = 0
EXIT_USAGE = 2
EXIT_ENGINE_UNAVAILABLE = 3


def configure_logging(level: int = logging.INFO) -> None:
    """Configure structlog + stdlib logging; logs go to stderr, results to stdout."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        stream=sys.stderr,
    )
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


LOGGER = structlog.get_logger(__name__)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """CLI argument parsing."""
    parser = argparse.ArgumentParser(prog="court-finder", description="Find tennis court availability in Taipei.")
    parser.add_argument("--show-provider", action="store_true", help="Print the active provider name.")
    parser.add_argument("--probe", action="store_true", help="Probe data sources before running the command.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    commands = parser.add_subparsers(dest="command", required=True)

    list_cmd = commands.add_parser("list", help="List courts.")
    list_cmd.add_argument("--district", help="Only courts whose district contains this text.")
    list_cmd.add_argument("--strict-name", action="store_true", help="Only names containing 網球/tennis.")
    list_cmd.add_argument("--exclude", help="Comma-separated terms; drop names containing any of them.")

    search_cmd = commands.add_parser("search", help="Search courts by name.")
    search_cmd.add_argument("--name", required=True, help="Keyword to look for.")

    status_cmd = commands.add_parser("status", help="Show availability for one venue.")
    status_cmd.add_argument("--k", dest="venue_id", help="Venue id (K) on the booking site.")
    status_cmd.add_argument(
        "--court",
        help="Venue name matched loosely; with --k, a court label or number within that venue.",
    )
    status_cmd.add_argument("--date", help="Date (YYYY-MM-DD); defaults to today.")
    status_cmd.add_argument("--time", dest="time_range", help="Time window HH:mm-HH:mm.")
    status_cmd.add_argument("--available", action="store_true", help="Only show free slots.")

    commands.add_parser("health", help="Probe connectivity to the data sources.")
    return parser.parse_args(argv)


def resolve_date(text: Optional[str], settings: Settings) -> date:
    if not text:
        return today_in_timezone(settings.timezone)
    parsed = parse_date(text)
    if parsed is None:
        raise SystemExit(f"Invalid --date: {text}")
    return parsed


async def list_courts(provider: CourtProvider, args: argparse.Namespace) -> int:
    venues = await provider.list_courts()
    if args.district:
        venues = [venue for venue in venues if args.district.lower() in venue.district.lower()]
    if args.strict_name:
        venues = [venue for venue in venues if "網球" in venue.name or "tennis" in venue.name.lower()]
    if args.exclude:
        terms = [term.strip().lower() for term in args.exclude.split(",") if term.strip()]
        venues = [venue for venue in venues if not any(term in venue.name.lower() for term in terms)]

    if not venues:
        print("No courts returned. If using live data, check network or try a broader filter.")
        return EXIT_OK
    for venue in sorted(venues, key=lambda venue: (venue.district, venue.name)):
        print(format_venue(venue))
    return EXIT_OK


async def search_courts(provider: CourtProvider, args: argparse.Namespace) -> int:
    venues = await provider.list_courts()
    matches = [venue for venue in venues if args.name.lower() in venue.name.lower()] or suggest(venues, args.name)
    if not matches:
        print(f"No courts matched '{args.name}'. Try a different keyword or use 'list'.")
        return EXIT_OK
    for venue in sorted(matches, key=lambda venue: venue.name):
        print(format_venue(venue))
    return EXIT_OK


async def venue_availability(settings: Settings, venue_id: str, day: date) -> tuple[Availability, Optional[VenueInfo], bool]:
    """Browser lookup first, HTTP scraper as fallback when it yields nothing."""
    availability: Optional[Availability] = None
    info: Optional[VenueInfo] = None
    engine_missing = False

    try:
        async with TaipeiBrowserProvider(settings) as browser:
            availability = await browser.get_availability(venue_id, day)
            info = await browser.get_venue_info(venue_id)
    except EngineUnavailableError as exc:
        engine_missing = True
        LOGGER.error("status.engine_unavailable", error=str(exc))
        print(f"Browser engine unavailable: {exc}", file=sys.stderr)

    if availability is None or not availability.slots:
        print("No data via browser path; trying HTTP fallback...", file=sys.stderr)
        web = TaipeiWebProvider(settings)
        try:
            fallback = await web.get_availability(venue_id, day)
            if fallback.slots or availability is None:
                availability = fallback
                info = info or await web.get_venue_info(venue_id)
        finally:
            await web.aclose()

    return availability, info, engine_missing


async def status_by_venue(settings: Settings, args: argparse.Namespace, day: date) -> int:
    availability, info, engine_missing = await venue_availability(settings, args.venue_id, day)
    slots = filter_slots(
        availability.slots,
        time_range=parse_time_range(args.time_range) if args.time_range else None,
        available_only=args.available,
    )

    if args.court:
        matched = [slot for slot in slots if court_matches(slot.label, args.court)]
        if not matched:
            print(f"No slot data matched court '{args.court}'. Available courts:")
            names = sorted({slot.label or "Court" for slot in availability.slots}, key=str.lower)
            for name in names:
                print(f"  - {name}")
            return EXIT_OK
        slots = matched

    print(format_availability(format_header(args.venue_id, info), availability, slots))
    if availability.degraded and not availability.slots:
        print("TIP: set COURTFINDER_HEADLESS=false and retry, then pass the check in the opened browser.")
    if engine_missing and not availability.slots:
        return EXIT_ENGINE_UNAVAILABLE
    return EXIT_OK


async def status_by_name(provider: CourtProvider, args: argparse.Namespace, day: date) -> int:
    venues = await provider.list_courts()
    venue = find_best_match(venues, args.court)
    if venue is None:
        print("Court not found. Try 'list' or 'search'.")
        suggestions = suggest(venues, args.court)[:5]
        if suggestions:
            print("Did you mean:")
            for candidate in suggestions:
                print(f"  - {candidate.name} [{candidate.id}]")
        return EXIT_OK

    availability = await provider.get_availability(venue.id, day)
    slots = filter_slots(
        availability.slots,
        time_range=parse_time_range(args.time_range) if args.time_range else None,
        available_only=args.available,
    )
    print(format_availability(format_venue(venue), availability, slots))
    return EXIT_OK


async def probe(settings: Settings, timeout: float = 3.0) -> None:
    """Print reachability of the live endpoints or the sample data."""
    if settings.provider == "mock":
        courts = settings.sample_data_dir / "courts.json"
        print(f"{courts}: {'OK' if courts.is_file() else 'MISSING'}")
        return

    print("Probing network connectivity (Taipei endpoints)...")
    async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
        for url in (settings.opendata_url, f"{settings.origin}/venues/"):
            try:
                response = await client.head(url)
                if response.status_code == 405:
                    response = await client.get(url)
                print(f"  {url} -> {response.status_code} {response.reason_phrase}")
            except httpx.HTTPError as exc:
                print(f"  {url} -> FAIL ({type(exc).__name__}: {exc})")


async def run(settings: Settings, args: argparse.Namespace) -> int:
    """Dispatch a parsed command."""
    if args.command == "health":
        await probe(settings)
        return EXIT_OK
    if args.probe:
        await probe(settings)
    if args.show_provider or settings.provider == "mock":
        suffix = " (sample data)" if settings.provider == "mock" else ""
        print(f"Provider: {settings.provider}{suffix}")

    if args.command == "status":
        if args.venue_id:
            return await status_by_venue(settings, args, resolve_date(args.date, settings))
        if not args.court:
            print("Provide --court NAME or --k VENUE_ID.", file=sys.stderr)
            return EXIT_USAGE

    provider = create_provider(settings)
    try:
        if args.command == "list":
            return await list_courts(provider, args)
        if args.command == "search":
            return await search_courts(provider, args)
        if args.command == "status":
            return await status_by_name(provider, args, resolve_date(args.date, settings))
    finally:
        await provider.aclose()
    return EXIT_USAGE


def cli(argv: Optional[Sequence[str]] = None) -> int:
    """Console script entrypoint."""
    args = parse_args(argv)
    configure_logging(logging.DEBUG if args.verbose else logging.WARNING)

    try:
        settings = Settings()
    except Exception as exc:  # pragma: no cover - startup validation
        LOGGER.exception("settings.error", error=str(exc))
        return EXIT_USAGE

    try:
        return asyncio.run(run(settings, args))
    except EngineUnavailableError as exc:
        LOGGER.error("cli.engine_unavailable", error=str(exc))
        return EXIT_ENGINE_UNAVAILABLE


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(cli())
