# price_tracker/data/factory.py

"""Build the configured data client."""

import logging

from price_tracker.config.settings import Settings
from price_tracker.data.client import DataClient, DataClientError

logger = logging.getLogger("price_tracker.data")


def create_client(backend: str | None = None) -> DataClient:
    """Return a client for ``local`` (SQLite) or ``remote`` (REST)."""
    kind = (backend or Settings.DATA_BACKEND).strip().lower()
    if kind == "local":
        from price_tracker.storage.local_backend import LocalDataClient

        logger.info("Using local data platform at %s", Settings.DB_PATH)
        return LocalDataClient()
    if kind == "remote":
        from price_tracker.data.rest_client import RestDataClient

        logger.info("Using remote data platform at %s", Settings.SUPABASE_URL)
        return RestDataClient()
    msg = f"Unknown DATA_BACKEND '{kind}' (expected 'local' or 'remote')"
    raise DataClientError(msg)
