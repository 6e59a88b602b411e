"""Command-line entry point for searching listing stores."""

import argparse
import asyncio
import logging
import sys

from listing_finder.agencies import find_agency
from listing_finder.aggregator import SearchService
from listing_finder.config import Settings
from listing_finder.deltas import property_deltas
from listing_finder.diagnostics import diagnose
from listing_finder.logging import configure_logging, get_logger
from listing_finder.models import Property, SearchFilters, SearchResults
from listing_finder.search.query import WILDCARD

logger = get_logger(__name__)


def _print_property(prop: Property) -> None:
    print(f"{prop.title} [{prop.id}]")
    print(f"  Price: €{prop.price:,} | Beds: {prop.bedrooms} | Baths: {prop.bathrooms}")
    print(f"  Address: {prop.address}")
    if prop.eircode:
        print(f"  Eircode: {prop.eircode}")
    print(f"  Agency: {prop.agency.name}")
    if prop.images:
        print(f"  Photos: {len(prop.images)}")
    if prop.has_multiple_sources:
        feeds = ", ".join(src.source.display_name for src in prop.sources)
        print(f"  Listed on: {feeds}")
        for delta in property_deltas(prop):
            marker = "!" if delta.has_difference else " "
            values = "; ".join(f"{v.source.value}={v.value}" for v in delta.values)
            print(f"   {marker} {delta.field}: {values}")
    print()


def _print_results(results: SearchResults) -> None:
    for prop in results.properties:
        _print_property(prop)
    tally = results.sources
    print(
        f"{len(results.properties)} properties, {len(results.agencies)} agencies "
        f"(daft {tally.daft}, myhome {tally.myhome}, "
        f"wordpress {tally.wordpress}, others {tally.others})"
    )


async def run_search(settings: Settings, query: str, filters: SearchFilters) -> SearchResults:
    """Search every configured store and print the results."""
    service = SearchService(settings.build_stores(), row_limit=settings.row_limit)
    try:
        results = await service.search(query, filters)
    finally:
        await service.close()
    _print_results(results)
    return results


async def run_diagnose(settings: Settings) -> None:
    """Print the detected layout of each configured store."""
    service = SearchService(settings.build_stores(), row_limit=settings.row_limit)
    try:
        reports = await diagnose(service.stores, service.cache)
    finally:
        await service.close()

    for report in reports:
        if report.error:
            print(f"{report.store}: error: {report.error}")
        elif not report.detected:
            print(f"{report.store}: no known layout detected")
        else:
            print(
                f"{report.store}: {report.properties_table} ({report.property_rows} rows sampled), "
                f"{report.agencies_table} ({report.agency_rows} rows sampled)"
            )


async def run_agency(settings: Settings, name: str) -> None:
    """Print an agency's details and its properties across all stores."""
    service = SearchService(settings.build_stores(), row_limit=settings.row_limit)
    try:
        for store in service.stores:
            agency = await find_agency(store, name, service.cache)
            if agency is not None:
                print(f"{agency.name} ({store.name})")
                for label, value in (
                    ("Address", agency.address),
                    ("Phone", agency.phone),
                    ("Email", agency.email),
                    ("Website", agency.website),
                ):
                    if value:
                        print(f"  {label}: {value}")
                print()
        results = await service.properties_by_agency(name)
    finally:
        await service.close()
    _print_results(results)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Listing Finder - search listings across heterogeneous property databases"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug-level logging for troubleshooting",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    search = sub.add_parser("search", help="Search all configured stores")
    search.add_argument("query", nargs="?", default=WILDCARD, help="Text to match ('*' for all)")
    search.add_argument("--min-price", type=float, default=None)
    search.add_argument("--max-price", type=float, default=None)
    search.add_argument("--min-bedrooms", type=int, default=None)
    search.add_argument("--max-bedrooms", type=int, default=None)
    search.add_argument("--type", dest="property_type", default=None, help="Exact property type")
    search.add_argument("--location", default=None, help="Substring of the address")

    sub.add_parser("diagnose", help="Re-detect and report each store's table layout")

    agency = sub.add_parser("agency", help="Show an agency and its properties")
    agency.add_argument("name", help="Agency name (substring, case-insensitive)")
    return parser


def main() -> None:
    """Main entry point."""
    args = _build_parser().parse_args()

    try:
        settings = Settings()
    except Exception as e:
        print(f"Error: Failed to load settings. {e}")
        print("Set LISTING_FINDER_DATABASE_PATHS to a comma-separated list of SQLite files.")
        sys.exit(1)

    configure_logging(
        json_output=settings.log_json,
        level=logging.DEBUG if args.debug else logging.INFO,
    )
    logger.info(
        "starting_listing_finder",
        command=args.command,
        stores=settings.get_database_paths(),
    )

    if args.command == "search":
        filters = SearchFilters(
            min_price=args.min_price,
            max_price=args.max_price,
            min_bedrooms=args.min_bedrooms,
            max_bedrooms=args.max_bedrooms,
            property_type=args.property_type,
            location=args.location,
        )
        asyncio.run(run_search(settings, args.query, filters))
    elif args.command == "diagnose":
        asyncio.run(run_diagnose(settings))
    else:
        asyncio.run(run_agency(settings, args.name))


if __name__ == "__main__":
    main()
