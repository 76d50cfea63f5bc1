"""
Record store contract shared by the DynamoDB store and the REST client.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

SORT_ASC = "ASC"
SORT_DESC = "DESC"


@dataclass
class ListParams:
    """
    Parameters for a list call.

    Attributes:
        sort_field: Record key to sort on (None keeps store order)
        sort_order: "ASC" or "DESC"
        filters: Equality filters; the special key "q" is a free-text search
        page: 1-based page number
        per_page: Page size
    """

    sort_field: Optional[str] = None
    sort_order: str = SORT_ASC
    filters: Dict[str, Any] = field(default_factory=dict)
    page: int = 1
    per_page: int = 100

    def __post_init__(self) -> None:
        self.sort_order = (self.sort_order or SORT_ASC).upper()
        if self.sort_order not in (SORT_ASC, SORT_DESC):
            raise ValueError(f"sort_order must be ASC or DESC, got {self.sort_order!r}")
        if self.page < 1:
            raise ValueError("page must be >= 1")
        if self.per_page < 1:
            raise ValueError("per_page must be >= 1")


@dataclass
class ListResult:
    """One page of records plus the filtered total."""

    data: List[Dict[str, Any]]
    total: int


class RecordStore(ABC):
    """Collection-oriented record store."""

    @abstractmethod
    def list(self, collection: str, params: Optional[ListParams] = None) -> ListResult:
        """Return a filtered, sorted page of records."""

    @abstractmethod
    def get_one(self, collection: str, record_id: str) -> Optional[Dict[str, Any]]:
        """Return a record, or None if it does not exist."""

    @abstractmethod
    def update(self, collection: str, record_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Apply a partial update and return the record as now stored."""
