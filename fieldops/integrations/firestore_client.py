"""Firestore client factory and connection check."""

from __future__ import annotations

import logging
from typing import Any, Optional

from google.api_core.exceptions import GoogleAPIError
from google.auth.exceptions import GoogleAuthError

from fieldops.config import FirestoreConfig, get_firestore_config
from fieldops.errors import ConfigurationError, RemoteConnectionError

logger = logging.getLogger(__name__)


def create_firestore_client(
    config: Optional[FirestoreConfig] = None,
    credentials: Any = None,
):
    """
    Build a ``google.cloud.firestore.Client`` for the configured project.

    ``credentials`` is a google-auth credential from the host's sign-in
    flow; when omitted the client falls back to application default
    credentials (GOOGLE_APPLICATION_CREDENTIALS).
    """
    from google.cloud import firestore

    cfg = config or get_firestore_config()
    if not cfg.project_id:
        raise ConfigurationError("GCP_PROJECT_ID is not set")

    if credentials is None and cfg.credentials_path:
        from google.oauth2 import service_account
        credentials = service_account.Credentials.from_service_account_file(
            cfg.credentials_path
        )

    try:
        client = firestore.Client(
            project=cfg.project_id, database=cfg.database, credentials=credentials
        )
    except (GoogleAuthError, GoogleAPIError) as exc:
        raise RemoteConnectionError(f"Firestore client init failed: {exc}") from exc

    logger.info("Firestore client ready: project=%s database=%s", cfg.project_id, cfg.database)
    return client


def check_connection(client: Any) -> None:
    """Issue one cheap read so auth and network problems surface at connect time."""
    try:
        list(client.collections())
    except (GoogleAuthError, GoogleAPIError) as exc:
        raise RemoteConnectionError(f"Firestore connection test failed: {exc}") from exc
    logger.info("Firestore connection test passed")
