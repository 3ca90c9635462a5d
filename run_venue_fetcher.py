#!/usr/bin/env python3
"""
Venue Fetcher CLI - Download venue records from Foursquare.

Credentials are read from FOURSQUARE_CLIENT_ID / FOURSQUARE_CLIENT_SECRET
(a .env file is honoured) unless given on the command line.

Usage:
    # Fetch every venue listed in a file (one id per line)
    python run_venue_fetcher.py \\
        --venue-id-file data/cities/Chicago.ids.filtered \\
        --output-dir data/venues

    # Refetch everything, slowly
    python run_venue_fetcher.py \\
        --venue-id-file data/rated.ids \\
        --output-dir data/venues \\
        --no-skip-existing --delay 0.5
"""

import argparse
import os
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from core import load_located_ids
from venue_fetcher import FoursquareVenueFetcher


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Download Foursquare venue records, one JSON file per venue id",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--venue-id-file",
        type=Path,
        required=True,
        help="File with venue ids to fetch, one per line",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        required=True,
        help="Directory where venue records are written",
    )
    parser.add_argument(
        "--client-id",
        type=str,
        default=None,
        help="Foursquare client id (default: $FOURSQUARE_CLIENT_ID)",
    )
    parser.add_argument(
        "--client-secret",
        type=str,
        default=None,
        help="Foursquare client secret (default: $FOURSQUARE_CLIENT_SECRET)",
    )
    parser.add_argument(
        "--delay",
        type=float,
        default=0.0,
        help="Delay between requests in seconds (default: 0)",
    )
    parser.add_argument(
        "--no-skip-existing",
        action="store_true",
        help="Fetch venues again even if a record file exists",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress output",
    )

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    args = parse_args(argv)

    client_id = args.client_id or os.getenv("FOURSQUARE_CLIENT_ID")
    client_secret = args.client_secret or os.getenv("FOURSQUARE_CLIENT_SECRET")
    if not client_id or not client_secret:
        print("Error: FOURSQUARE_CLIENT_ID and FOURSQUARE_CLIENT_SECRET are required", file=sys.stderr)
        return 1

    if not args.venue_id_file.is_file():
        print(f"Error: Venue id file not found: {args.venue_id_file}", file=sys.stderr)
        return 1

    venue_ids = load_located_ids(args.venue_id_file)
    if not args.quiet:
        print(f"Loaded {len(venue_ids)} venue ids from {args.venue_id_file}")

    fetcher = FoursquareVenueFetcher(client_id, client_secret)
    summary = fetcher.fetch_to_directory(
        venue_ids,
        args.output_dir,
        skip_existing=not args.no_skip_existing,
        delay_seconds=args.delay,
        show_progress=not args.quiet,
    )

    if not args.quiet:
        print(f"\n{'='*60}")
        print("FETCH SUMMARY")
        print(f"{'='*60}")
        print(f"Fetched: {len(summary.fetched)}")
        print(f"Skipped (existing): {len(summary.skipped)}")
        print(f"Failed: {len(summary.failed)}")
        for venue_id, reason in summary.failed.items():
            print(f"  {venue_id}: {reason}")
        print(f"Output directory: {args.output_dir}")

    return 1 if summary.failed and not (summary.fetched or summary.skipped) else 0


if __name__ == "__main__":
    sys.exit(main())
