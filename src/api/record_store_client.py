"""
REST record store client.

Talks to the admin API (`GET /{resource}`, `GET/PUT /{resource}/{id}`) with
a bearer credential, and applies list semantics client-side because the API
returns whole collections.
"""

from typing import Any, Dict, Optional

import requests

from src.database.base import ListParams, ListResult, RecordStore
from src.database.exceptions import (
    RecordStoreError,
    NotFoundError,
    ConflictError,
    ThrottlingError,
    NetworkError,
    AccessDeniedError,
)
from src.database.query import apply_list_params
from src.utils.logger import get_logger

logger = get_logger(__name__)

# Collection name -> API path where they differ
DEFAULT_ENDPOINTS: Dict[str, str] = {
    "about_us": "/about-us",
    "master_plan": "/master-plan",
    "project_achievements": "/achievements",
    "hero_slides": "/hero-slides",
    "kalash_bookings": "/kalash-bookings",
}


class RestRecordStoreClient(RecordStore):
    """
    RecordStore over the admin REST API.

    Attributes:
        base_url: API root, e.g. "https://api.example.org/api"
        token: Optional bearer credential
        timeout: Per-request timeout in seconds
    """

    def __init__(
        self,
        base_url: str,
        session: Optional[requests.Session] = None,
        token: Optional[str] = None,
        endpoints: Optional[Dict[str, str]] = None,
        timeout: float = 10.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.token = token
        self.endpoints = {**DEFAULT_ENDPOINTS, **(endpoints or {})}
        self.timeout = timeout

    def _url(self, collection: str, record_id: Optional[str] = None) -> str:
        path = self.endpoints.get(collection, f"/{collection}")
        url = f"{self.base_url}{path}"
        return f"{url}/{record_id}" if record_id is not None else url

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _request(self, method: str, url: str, operation: str, **kwargs) -> Any:
        """
        Send a request and decode the JSON body.

        Raises:
            NetworkError: Connection failure or timeout
            NotFoundError / AccessDeniedError / ConflictError / ThrottlingError:
                Mapped from 404 / 401,403 / 409 / 429
            RecordStoreError: Any other HTTP error or a non-JSON body
        """
        context = {"method": method, "url": url}
        try:
            response = self.session.request(
                method, url, headers=self._headers(), timeout=self.timeout, **kwargs
            )
        except (requests.ConnectionError, requests.Timeout) as e:
            logger.error("Network error", operation=operation, context=context, error=str(e))
            raise NetworkError(f"Network error: {e}") from e
        except requests.RequestException as e:
            logger.error("Request failed", operation=operation, context=context, error=str(e))
            raise RecordStoreError(f"Request failed: {e}") from e

        status = response.status_code
        if status >= 400:
            context["status_code"] = status
            logger.error("API error", operation=operation, context=context, error=response.text[:200])
            if status == 404:
                raise NotFoundError(f"Not found: {url}")
            if status in (401, 403):
                raise AccessDeniedError(f"Access denied (HTTP {status})")
            if status == 409:
                raise ConflictError(f"Conflict (HTTP {status})")
            if status == 429:
                raise ThrottlingError("Rate limited by API")
            raise RecordStoreError(f"API responded with HTTP {status}")

        try:
            return response.json()
        except ValueError as e:
            raise RecordStoreError(f"Invalid JSON from {url}") from e

    def list(self, collection: str, params: Optional[ListParams] = None) -> ListResult:
        params = params or ListParams()
        payload = self._request("GET", self._url(collection), operation="list")

        if isinstance(payload, dict) and isinstance(payload.get("data"), list):
            records = payload["data"]
        elif isinstance(payload, list):
            records = payload
        else:
            records = [payload]

        return apply_list_params(records, params)

    def get_one(self, collection: str, record_id: str) -> Optional[Dict[str, Any]]:
        try:
            return self._request("GET", self._url(collection, record_id), operation="get_one")
        except NotFoundError:
            return None

    def update(self, collection: str, record_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """PUT only the changed fields and return the API's view of the record."""
        return self._request(
            "PUT", self._url(collection, record_id), operation="update", json=fields
        )
