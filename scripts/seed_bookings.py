#!/usr/bin/env python3
"""
Seed the bookings table from a YAML file.

Usage examples:
    python scripts/seed_bookings.py --dry-run
    python scripts/seed_bookings.py --file config/sample_bookings.yaml --table anmc-bookings-dev
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from src.config.settings import Settings  # noqa: E402
from src.database.dynamodb_client import DynamoRecordStore  # noqa: E402
from src.domain.booking import Booking  # noqa: E402
from src.utils.logger import get_logger, log_operation  # noqa: E402

logger = get_logger(__name__)

DEFAULT_FILE = Path(__file__).resolve().parent.parent / "config" / "sample_bookings.yaml"


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed the ANMC bookings table from YAML.")
    parser.add_argument("--file", default=str(DEFAULT_FILE), help="YAML file with a 'bookings' list")
    parser.add_argument("--table", help="Target table (default: BOOKINGS_TABLE_NAME or anmc-bookings-{env})")
    parser.add_argument("--region", help="AWS region (default: AWS_REGION or ap-southeast-2)")
    parser.add_argument(
        "--dry-run", action="store_true", help="Validate and print the records without writing"
    )
    return parser.parse_args(argv)


def load_records(path: str) -> List[Dict[str, Any]]:
    """
    Read and normalize booking records.

    Raises:
        ValueError: If the file has no 'bookings' list or a record has no id
    """
    with open(path, "r", encoding="utf-8") as f:
        content = yaml.safe_load(f) or {}

    raw = content.get("bookings")
    if not isinstance(raw, list):
        raise ValueError(f"{path} must contain a 'bookings' list")
    return [Booking.from_dict(item).to_dict() for item in raw]


@log_operation("seed_bookings")
def seed(store: DynamoRecordStore, records: List[Dict[str, Any]]) -> int:
    return store.batch_put("bookings", records)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    settings = Settings()
    table = args.table or settings.bookings_table
    region = args.region or settings.region_name

    try:
        records = load_records(args.file)
    except (OSError, ValueError, yaml.YAMLError) as e:
        print(f"Failed to load {args.file}: {e}", file=sys.stderr)
        return 1

    if args.dry_run:
        for record in records:
            print(f"  {record['id']}: {record.get('preferredDate') or '-'} [{record.get('status')}]")
        print(f"{len(records)} records would be written to {table}")
        return 0

    store = DynamoRecordStore({"bookings": table}, region_name=region)
    written = seed(store, records)
    print(f"Wrote {written} records to {table} ({region})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
