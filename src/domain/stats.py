"""Statistics payload served by the /stats endpoint."""

from dataclasses import dataclass
from typing import Any, Dict

LOW_INVENTORY_THRESHOLD = 50


def _number(value: Any, default: float = 0) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class BookingStats:
    """
    Inventory and payment aggregate for the stats panel.

    Attributes:
        max_inventory: Total sellable units
        total_sold: Units on paid bookings
        remaining_inventory: max_inventory - total_sold, never negative
        total_revenue: Sum of paid booking amounts
        paid: Number of paid bookings
        total: Number of bookings
    """

    max_inventory: int
    total_sold: int
    remaining_inventory: int
    total_revenue: float
    paid: int
    total: int

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BookingStats":
        """Parse the endpoint payload; `totalKalashSold` is the legacy name for totalSold."""
        total_sold = data.get("totalSold", data.get("totalKalashSold"))
        return cls(
            max_inventory=int(_number(data.get("maxInventory"))),
            total_sold=int(_number(total_sold)),
            remaining_inventory=int(_number(data.get("remainingInventory"))),
            total_revenue=_number(data.get("totalRevenue")),
            paid=int(_number(data.get("paid"))),
            total=int(_number(data.get("total"))),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "maxInventory": self.max_inventory,
            "totalSold": self.total_sold,
            "remainingInventory": self.remaining_inventory,
            "totalRevenue": self.total_revenue,
            "paid": self.paid,
            "total": self.total,
        }

    @property
    def percent_sold(self) -> float:
        """Share of inventory sold, rounded to one decimal; 0 when inventory is unknown."""
        if not self.max_inventory:
            return 0.0
        return round(self.total_sold / self.max_inventory * 100, 1)

    @property
    def is_low_inventory(self) -> bool:
        return self.remaining_inventory < LOW_INVENTORY_THRESHOLD
