#!/usr/bin/env python
"""
Command-line interface for cached weather lookups.

Looks up current weather for one or more cities (or a coordinate pair)
through a single WeatherLookupCache, so repeated names are served from
cache.

Usage:
    python -m weather_proxy.cli London Paris london
    python -m weather_proxy.cli --lat 51.5 --lon -0.13 --format json
    python -m weather_proxy.cli Tokyo --units imperial --format csv --output out/tokyo.csv
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from dotenv import load_dotenv

from config.settings import get_settings
from weather_proxy.api.errors import InvalidInputError, WeatherProxyError
from weather_proxy.api.lookup import WeatherLookupCache
from weather_proxy.data.models import NormalizedWeather
from weather_proxy.data.processor import export_to_csv, weather_to_dataframe

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INVALID_INPUT = 2


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        description="Look up current weather through the caching weather proxy.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Two cities, the second "london" is served from cache
  python -m weather_proxy.cli London Paris london

  # Coordinates
  python -m weather_proxy.cli --lat 51.5 --lon -0.13

  # CSV export in imperial units
  python -m weather_proxy.cli Tokyo --units imperial --format csv --output tokyo.csv
        """
    )

    parser.add_argument(
        'cities',
        nargs='*',
        help='City names to look up'
    )

    coord_group = parser.add_argument_group('Coordinates')
    coord_group.add_argument(
        '--lat',
        type=float,
        default=None,
        help='Latitude (requires --lon)'
    )
    coord_group.add_argument(
        '--lon',
        type=float,
        default=None,
        help='Longitude (requires --lat)'
    )

    output_group = parser.add_argument_group('Output Options')
    output_group.add_argument(
        '--units',
        choices=['metric', 'imperial'],
        default='metric',
        help='Unit system for table and CSV output. Default: metric'
    )
    output_group.add_argument(
        '--format',
        choices=['table', 'json', 'csv'],
        default='table',
        help='Output format. Default: table'
    )
    output_group.add_argument(
        '--output',
        type=Path,
        default=None,
        help='Write CSV output to this file instead of stdout'
    )
    output_group.add_argument(
        '--stats',
        action='store_true',
        help='Print cache statistics after the lookups'
    )
    output_group.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        type=str.upper,
        default=None,
        help='Override LOG_LEVEL from settings'
    )

    return parser


def run_lookups(
    lookups: WeatherLookupCache,
    cities: List[str],
    coordinates: Optional[Tuple[float, float]] = None,
) -> List[NormalizedWeather]:
    """
    Run every requested lookup in order.

    Args:
        lookups: Shared lookup cache
        cities: City names, looked up in the given order
        coordinates: Optional (lat, lon) looked up after the cities

    Returns:
        Results in request order
    """
    results = []

    for city in cities:
        weather = lookups.lookup(city)
        source = "cache" if weather.from_cache else "upstream"
        logger.info(f"{weather.location_label}: {weather.main.temp}°C ({source})")
        results.append(weather)

    if coordinates is not None:
        weather = lookups.lookup_coordinates(*coordinates)
        logger.info(f"{weather.location_label}: {weather.main.temp}°C")
        results.append(weather)

    return results


def render(results: List[NormalizedWeather], output_format: str, units: str, output: Optional[Path]) -> str:
    """Render results in the requested format; writes a file for csv with --output."""
    if output_format == 'json':
        return json.dumps([r.to_dict() for r in results], indent=2)

    df = weather_to_dataframe(results, units=units)

    if output_format == 'csv':
        if output is not None:
            path = export_to_csv(df, output)
            return f"Saved: {path}"
        return df.to_csv(index=False)

    return df.to_string(index=False)


def main(argv: Optional[list] = None) -> int:
    """Main entry point for CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    load_dotenv()
    settings = get_settings()

    logging.basicConfig(
        level=(args.log_level or settings.log_level).upper(),
        format='%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    if (args.lat is None) != (args.lon is None):
        logger.error("--lat and --lon must be given together")
        return EXIT_INVALID_INPUT

    coordinates = (args.lat, args.lon) if args.lat is not None else None
    if not args.cities and coordinates is None:
        parser.print_usage(sys.stderr)
        logger.error("Provide at least one city or a --lat/--lon pair")
        return EXIT_INVALID_INPUT

    try:
        lookups = WeatherLookupCache.from_settings(settings)
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        return EXIT_FAILURE

    try:
        results = run_lookups(lookups, args.cities, coordinates)
    except InvalidInputError as e:
        logger.error(e.message)
        return EXIT_INVALID_INPUT
    except WeatherProxyError as e:
        logger.error(f"Lookup failed ({e.status_code}): {e.message}")
        return EXIT_FAILURE
    finally:
        lookups.close()

    print(render(results, args.format, args.units, args.output))

    if args.stats:
        stats = lookups.cache_stats()
        print(f"\nCache: {stats['entries']}/{stats['max_entries']} entries, "
              f"{stats['hits']} hits, {stats['misses']} misses, "
              f"{stats['evictions']} evictions")

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
