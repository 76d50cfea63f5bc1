"""
Client-side list semantics: free-text search, equality filters, sorting and
pagination over a full collection.

The bookings table is small enough to scan, so both store implementations
fetch everything and apply ListParams here. The order of steps matters:
search, then filters, then sort, then paginate; `total` counts the
filtered records before pagination.
"""

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .base import ListParams, ListResult, SORT_DESC

# Fields compared chronologically rather than as strings
DATE_FIELDS = {
    "date",
    "startDate",
    "endDate",
    "publishDate",
    "preferredDate",
    "createdAt",
    "updatedAt",
    "paidAt",
}


def _matches_query(record: Dict[str, Any], query: str) -> bool:
    needle = query.lower()
    for value in record.values():
        if isinstance(value, dict):
            if any(needle in str(nested).lower() for nested in value.values()):
                return True
        elif needle in str(value).lower():
            return True
    return False


def _resolve(record: Dict[str, Any], field_path: str) -> Any:
    """Resolve dotted paths such as "address.city"."""
    value: Any = record
    for part in field_path.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def _parse_datetime(value: Any) -> Optional[datetime]:
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    # Compare naive and aware values on the same footing
    return parsed.replace(tzinfo=None)


def _sort_key(record: Dict[str, Any], field_path: str) -> Tuple[int, int, Any]:
    """(missing, type rank, value) so mixed value types never compare directly."""
    value = _resolve(record, field_path)

    if field_path.split(".")[-1] in DATE_FIELDS:
        parsed = _parse_datetime(value)
        return (0, 0, parsed) if parsed is not None else (1, 0, datetime.min)

    if value is None:
        return (1, 0, "")
    if isinstance(value, (bool, int, float)):
        return (0, 0, float(value))
    return (0, 1, str(value).lower())


def apply_list_params(records: Iterable[Dict[str, Any]], params: ListParams) -> ListResult:
    """
    Filter, sort and paginate records according to params.

    Missing or unparseable sort values go last in both directions.
    """
    filtered: List[Dict[str, Any]] = list(records)
    filters = dict(params.filters)

    query = filters.pop("q", None)
    if query:
        filtered = [r for r in filtered if _matches_query(r, str(query))]

    for key, expected in filters.items():
        if expected is None or expected == "":
            continue
        filtered = [r for r in filtered if _resolve(r, key) == expected]

    if params.sort_field:
        present = [r for r in filtered if _sort_key(r, params.sort_field)[0] == 0]
        missing = [r for r in filtered if _sort_key(r, params.sort_field)[0] == 1]
        present.sort(
            key=lambda r: _sort_key(r, params.sort_field)[1:],
            reverse=params.sort_order == SORT_DESC,
        )
        filtered = present + missing

    start = (params.page - 1) * params.per_page
    return ListResult(data=filtered[start : start + params.per_page], total=len(filtered))
