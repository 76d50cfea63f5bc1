"""HTTP clients for the admin REST API and the statistics endpoint."""

from .record_store_client import RestRecordStoreClient
from .stats_client import StatsClient, StatsFetchError, StatsPanel

__all__ = ["RestRecordStoreClient", "StatsClient", "StatsFetchError", "StatsPanel"]
