"""Server-side aggregates behind /stats and /bookings/stats."""

from typing import Any, Dict, Iterable

from src.domain.booking import BookingStatus
from src.domain.stats import BookingStats

DEFAULT_MAX_INVENTORY = 700


def _as_number(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def summarize_bookings(records: Iterable[Dict[str, Any]]) -> Dict[str, int]:
    """Counts by status and payment status over raw store records."""
    records = list(records)
    summary = {"total": len(records)}
    for status in BookingStatus:
        summary[status.value] = sum(1 for r in records if r.get("status") == status.value)
    summary["paid"] = sum(1 for r in records if r.get("paymentStatus") == "paid")
    summary["unpaid"] = sum(1 for r in records if r.get("paymentStatus") == "unpaid")
    return summary


def inventory_stats(
    records: Iterable[Dict[str, Any]],
    max_inventory: int = DEFAULT_MAX_INVENTORY,
    quantity_field: str = "numberOfKalash",
    amount_field: str = "amount",
) -> BookingStats:
    """
    Inventory statistics over paid records.

    Sold units and revenue count only paid records; remaining inventory
    never goes below zero.
    """
    records = list(records)
    paid = [r for r in records if r.get("paymentStatus") == "paid"]
    total_sold = int(sum(_as_number(r.get(quantity_field)) for r in paid))
    revenue = sum(_as_number(r.get(amount_field)) for r in paid)

    return BookingStats(
        max_inventory=max_inventory,
        total_sold=total_sold,
        remaining_inventory=max(0, max_inventory - total_sold),
        total_revenue=round(revenue, 2),
        paid=len(paid),
        total=len(records),
    )
