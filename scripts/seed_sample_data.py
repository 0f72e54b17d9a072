#!/usr/bin/env python
"""Sample sales data seeder.

Generates daily revenue for the demo brands across the dashboard channels
and writes it through the sales DataService in batches.

Usage:
    # Seed 2025 to date with the default seed
    uv run python scripts/seed_sample_data.py --confirm

    # Explicit range and seed, smaller batches
    uv run python scripts/seed_sample_data.py --start-date 2025-01-01 --end-date 2025-03-31 \
        --seed 7 --batch-size 500 --confirm

    # Preview without writing
    uv run python scripts/seed_sample_data.py --dry-run
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from datetime import date, timedelta

from app.core.config import get_settings
from app.core.database import dispose_engine, get_session_maker
from app.core.exceptions import ChaiVisionError
from app.core.logging import configure_logging
from app.features.sales_data.config import DataServiceConfig
from app.features.sales_data.schemas import BatchProgress
from app.features.sales_data.service import DataService
from app.features.sales_data.store import SqlAlchemyDataStore
from app.shared.sample_data import (
    BRAND_MULTIPLIERS,
    CHANNEL_BASE_REVENUE,
    SampleDataConfig,
    generate_sales_rows,
)


def parse_date(date_str: str) -> date:
    """Parse date string in YYYY-MM-DD format.

    Raises:
        argparse.ArgumentTypeError: If date format is invalid.
    """
    try:
        return date.fromisoformat(date_str)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"Invalid date format: {date_str}. Use YYYY-MM-DD") from e


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        description="Seed the dashboard database with sample sales data",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--start-date",
        type=parse_date,
        default=date(2025, 1, 1),
        help="First day to generate (default: 2025-01-01)",
    )
    parser.add_argument(
        "--end-date",
        type=parse_date,
        default=None,
        help="Last day to generate (default: two days ago)",
    )
    parser.add_argument(
        "--brands",
        nargs="+",
        default=list(BRAND_MULTIPLIERS),
        help="Brand names (default: %(default)s)",
    )
    parser.add_argument(
        "--channels",
        nargs="+",
        default=list(CHANNEL_BASE_REVENUE),
        help="Channel names (default: the six dashboard channels)",
    )
    parser.add_argument("--seed", type=int, default=42, help="Random seed (default: 42)")
    parser.add_argument(
        "--batch-size", type=int, default=None, help="Rows per write batch (default: config)"
    )
    parser.add_argument("--dry-run", action="store_true", help="Show what would be written")
    parser.add_argument("--confirm", action="store_true", help="Confirm writing to the database")
    return parser


def print_progress(progress: BatchProgress) -> None:
    """Print one line per finished batch."""
    status = "ok" if progress.succeeded else f"FAILED ({progress.error})"
    print(
        f"  Batch {progress.batch_number:>4}/{progress.total_batches:<4} "
        f"{progress.rows_processed:>9,}/{progress.total_rows:,} rows  {status}"
    )


async def run_seed(args: argparse.Namespace) -> int:
    """Generate and write the sample rows."""
    settings = get_settings()
    if settings.is_production and not settings.seeder_allow_production:
        print("ERROR: Cannot run seeder in production environment.")
        return 1

    end_date = args.end_date or date.today() - timedelta(days=2)
    try:
        config = SampleDataConfig(
            start_date=args.start_date,
            end_date=end_date,
            brands=args.brands,
            channels=args.channels,
            seed=args.seed,
        )
    except ValueError as e:
        print(f"ERROR: {e}")
        return 1

    rows = list(generate_sales_rows(config))
    print(f"Date range: {config.start_date} to {config.end_date}")
    print(f"Brands:     {', '.join(config.brands)}")
    print(f"Channels:   {', '.join(config.channels)}")
    print(f"Rows:       {len(rows):,}")
    print()

    if args.dry_run:
        print("DRY RUN - No data written")
        return 0
    if not args.confirm:
        print("ERROR: Pass --confirm to write to the database.")
        return 1

    service_config = DataServiceConfig.from_settings(settings)
    store = SqlAlchemyDataStore(get_session_maker(), row_cap=service_config.server_row_cap)
    service = DataService(store, service_config)
    try:
        summary = await service.batch_save_sales_data(
            rows, batch_size=args.batch_size, on_progress=print_progress
        )
    except ChaiVisionError as e:
        print(f"ERROR: {e.message}")
        return 1
    finally:
        await service.aclose()
        await dispose_engine()

    print("\nSeed Complete!")
    print("-" * 40)
    print(f"  Batches succeeded:  {summary.success:>8,}")
    print(f"  Batches failed:     {summary.failed:>8,}")
    print(f"  Rows written:       {summary.inserted + summary.updated:>8,}")
    print(f"  Duplicates:         {summary.duplicates:>8,}")
    print("-" * 40)

    if summary.errors:
        print("Errors:")
        for error in summary.errors:
            print(f"  - {error}")
        return 1
    return 0


async def main() -> int:
    """Main entry point."""
    configure_logging()
    args = create_parser().parse_args()
    return await run_seed(args)


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
