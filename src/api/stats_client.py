"""
Statistics endpoint client and the stats panel state that wraps it.
"""

from dataclasses import dataclass
from typing import Optional

import requests

from src.domain.stats import BookingStats
from src.utils.logger import get_logger

logger = get_logger(__name__)


class StatsFetchError(RuntimeError):
    """Raised when the stats endpoint cannot be read."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class StatsClient:
    """
    Reads `GET {base_url}/stats`.

    The credential is optional: without one the endpoint may still answer
    with public aggregate data.
    """

    def __init__(
        self,
        base_url: str,
        session: Optional[requests.Session] = None,
        path: str = "/stats",
        timeout: float = 10.0,
    ):
        self.url = f"{base_url.rstrip('/')}{path}"
        self.session = session or requests.Session()
        self.timeout = timeout

    def get_stats(self, token: Optional[str] = None) -> BookingStats:
        """
        Fetch statistics.

        Args:
            token: Bearer credential, sent only when present

        Raises:
            StatsFetchError: On network failure, HTTP error or invalid JSON
        """
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            response = self.session.get(self.url, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error("Stats request failed", operation="get_stats", error=str(e))
            raise StatsFetchError(f"Stats request failed: {e}") from e

        if response.status_code >= 400:
            logger.error(
                "Stats endpoint returned an error",
                operation="get_stats",
                context={"status_code": response.status_code},
            )
            raise StatsFetchError(
                f"HTTP error! status: {response.status_code}", status_code=response.status_code
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise StatsFetchError("Stats endpoint returned invalid JSON") from e

        if not isinstance(payload, dict):
            raise StatsFetchError("Stats payload must be a JSON object")

        stats = BookingStats.from_dict(payload)
        logger.info(
            "Stats received",
            operation="get_stats",
            context={"total": stats.total, "remaining": stats.remaining_inventory},
        )
        return stats


@dataclass
class StatsPanel:
    """
    Stats panel state: one fetch, shown inline, no retry.

    After load(), exactly one of `stats` or `error` is set.
    """

    client: StatsClient
    token: Optional[str] = None
    stats: Optional[BookingStats] = None
    error: Optional[str] = None

    def load(self) -> Optional[BookingStats]:
        self.stats = None
        self.error = None
        try:
            self.stats = self.client.get_stats(self.token)
        except StatsFetchError as e:
            self.error = str(e)
        return self.stats
