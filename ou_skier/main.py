"""Main orchestrator for the resort ranking CLI."""

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional
from zoneinfo import ZoneInfo

import yaml

from .config import resolve_weights
from .fetch import WeatherCache, WeatherFetchError, fetch_weather_for_resorts
from .ranking import clamp_day_index, score_all_days, score_resorts_for_day
from .report import format_rankings, format_resort_detail
from .resorts import REGIONS, LoadResult, get_resort_by_id, get_resorts_by_region, load_resorts

logger = logging.getLogger(__name__)

TZ = ZoneInfo("Europe/Zurich")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Rank Swiss ski resorts for the next 5 days")
    parser.add_argument(
        "--day",
        type=int,
        default=0,
        help="Forecast day 0-4 (0 = today); out-of-range values are clamped",
    )
    parser.add_argument("--top", type=int, default=3, help="Number of podium resorts to detail")
    parser.add_argument("--profile", help="Weight profile name (default: $OU_SKIER_WEIGHTS or file default)")
    parser.add_argument("--weights-file", type=Path, help="YAML file with weight profiles")
    parser.add_argument("--resorts-file", type=Path, help="YAML file with resort data")
    parser.add_argument("--region", choices=REGIONS, help="Only rank resorts in this region")
    parser.add_argument("--resort", help="Show the 5-day detail of a single resort id")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    try:
        weights = resolve_weights(args.profile, args.weights_file)
        load_result: LoadResult = load_resorts(args.resorts_file)
    except (KeyError, ValueError, OSError, yaml.YAMLError) as e:
        logger.error(f"CRITICAL: Failed to load configuration: {e}")
        sys.exit(1)

    resorts = load_result.resorts
    if args.region:
        resorts = get_resorts_by_region(resorts, args.region)

    if load_result.n_skipped > 0:
        logger.info(f"Loaded {len(resorts)} resorts ({load_result.n_skipped} skipped)")
    else:
        logger.info(f"Loaded {len(resorts)} resorts")

    if not resorts:
        logger.error("CRITICAL: No valid resorts loaded")
        sys.exit(1)

    target = None
    if args.resort:
        target = get_resort_by_id(resorts, args.resort)
        if target is None:
            logger.error(f"Unknown resort '{args.resort}'")
            sys.exit(1)

    cache = WeatherCache()
    try:
        weather = fetch_weather_for_resorts(resorts, cache=cache)
    except WeatherFetchError as e:
        logger.error(f"Failed to fetch weather data: {e}")
        sys.exit(1)

    multi_day = score_all_days(resorts, weather, weights)
    today = datetime.now(TZ).date()

    if target is not None:
        entry = next(m for m in multi_day if m.resort.id == target.id)
        print(format_resort_detail(entry, today))
        return

    day = clamp_day_index(args.day)
    if day != args.day:
        logger.warning(f"Day {args.day} out of range, using {day}")

    rankings = score_resorts_for_day(multi_day, day)
    print(format_rankings(rankings, today, top_n=args.top))


if __name__ == "__main__":
    main()
