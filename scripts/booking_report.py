#!/usr/bin/env python3
"""
Print the grouped booking list and stats panel from the admin REST API.

Usage examples:
    python scripts/booking_report.py --base-url https://api.example.org/api
    python scripts/booking_report.py --approve bk-1001
    python scripts/booking_report.py --no-auth --stats-only
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional, Sequence

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from src.api.record_store_client import RestRecordStoreClient  # noqa: E402
from src.api.stats_client import StatsClient, StatsPanel  # noqa: E402
from src.auth.permissions import Role, allowed_actions  # noqa: E402
from src.bookings.approval import BookingApprovalService  # noqa: E402
from src.bookings.view import BookingListController, BookingListView, SectionView  # noqa: E402
from src.config.settings import ConfigurationError, Settings  # noqa: E402
from src.notifications.notifier import NotificationCollector  # noqa: E402
from src.utils.timezone import today_local  # noqa: E402


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Booking list and stats report.")
    parser.add_argument("--base-url", help="Admin API root (default: API_BASE_URL)")
    parser.add_argument("--token", help="Bearer token (default: api_token from the API secret)")
    parser.add_argument("--no-auth", action="store_true", help="Send requests without a token")
    parser.add_argument("--approve", metavar="BOOKING_ID", help="Approve a pending booking first")
    parser.add_argument("--stats-only", action="store_true", help="Print only the stats panel")
    return parser.parse_args(argv)


def print_section(section: SectionView) -> None:
    print("\n" + "=" * 80)
    print(f"{section.title.upper()} ({section.count})")
    print("=" * 80)
    if not section.groups:
        print(f"  {section.empty_message}")
        return

    for group in section.groups:
        badges = ", ".join(badge.label for badge in group.date_cell.badges)
        print(f"\n{group.date_cell.header}  [{badges}]")
        for row in group.rows:
            marker = " *" if row.show_approve else ""
            print(
                f"  {row.status_label:<10} {row.time:>8}  {row.service:<24} "
                f"{row.people:>4}  {row.email:<28} {row.total:>9}{marker}"
            )


def print_view(view: BookingListView) -> None:
    print_section(view.upcoming)
    print_section(view.past)
    print("\n(* = awaiting approval)")


def print_stats(panel: StatsPanel) -> None:
    print("\n" + "-" * 80)
    print("STATS")
    print("-" * 80)
    if panel.error:
        print(f"  Error loading stats: {panel.error}")
        return

    stats = panel.stats
    low = "  (low inventory)" if stats.is_low_inventory else ""
    print(f"  Sold:      {stats.total_sold} / {stats.max_inventory} ({stats.percent_sold}%)")
    print(f"  Remaining: {stats.remaining_inventory}{low}")
    print(f"  Revenue:   ${stats.total_revenue:.2f}")
    print(f"  Paid:      {stats.paid} of {stats.total} bookings")


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    settings = Settings()
    base_url = args.base_url or settings.api_base_url
    if not base_url:
        print("No API base URL; pass --base-url or set API_BASE_URL", file=sys.stderr)
        return 1

    token = args.token
    if not token and not args.no_auth:
        try:
            token = settings.load_api_credentials().get("api_token")
        except ConfigurationError as e:
            print(f"Could not load API credentials: {e}", file=sys.stderr)
            return 1

    panel = StatsPanel(StatsClient(base_url), token=token)
    panel.load()
    if args.stats_only:
        print_stats(panel)
        return 0 if panel.error is None else 1

    store = RestRecordStoreClient(base_url, token=token)
    controller = BookingListController(
        store,
        today=lambda: today_local(settings.timezone),
        capabilities=allowed_actions(Role.MANAGER),
    )

    exit_code = 0
    if args.approve:
        collector = NotificationCollector()
        service = BookingApprovalService(store, collector, refresh=controller.load)
        result = service.approve_by_id(args.approve)
        for notification in collector.drain():
            print(f"[{notification.level.value}] {notification.message}")
        if not result.approved:
            exit_code = 1

    if controller.view is None and controller.error is None:
        controller.load()

    if controller.error:
        print(controller.error, file=sys.stderr)
        return 1

    print_view(controller.view)
    print_stats(panel)
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
