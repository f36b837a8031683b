"""Google Sheets v4 REST client (values + spreadsheet metadata).

Auth is a google-auth credential (authorized-user token or service account)
refreshed on demand, plus the application's API key as a query parameter.
Calls are made once; there is no retry layer here.
"""

from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import quote

import requests
from google.auth.credentials import Credentials
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request

from fieldops.config import SheetsConfig, get_sheets_config
from fieldops.errors import ConfigurationError, RemoteStoreError

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]


def load_credentials(config: Optional[SheetsConfig] = None) -> Credentials:
    """Build credentials from the token file or service account in config."""
    cfg = config or get_sheets_config()
    if cfg.token_file:
        from google.oauth2.credentials import Credentials as UserCredentials
        return UserCredentials.from_authorized_user_file(cfg.token_file, SCOPES)
    if cfg.service_account_file:
        from google.oauth2 import service_account
        return service_account.Credentials.from_service_account_file(
            cfg.service_account_file, scopes=SCOPES
        )
    raise ConfigurationError(
        "Sheets credentials missing: set SHEETS_TOKEN_FILE or SHEETS_SERVICE_ACCOUNT_FILE"
    )


class SheetsClient:
    """Minimal wrapper over the spreadsheet values endpoints."""

    def __init__(
        self,
        credentials: Credentials,
        spreadsheet_id: Optional[str] = None,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: int = 30,
    ):
        cfg = get_sheets_config()
        self.spreadsheet_id = spreadsheet_id or cfg.spreadsheet_id
        if not self.spreadsheet_id:
            raise ConfigurationError("SHEETS_SPREADSHEET_ID is not set")
        self._credentials = credentials
        self._api_key = api_key if api_key is not None else cfg.api_key
        self._base_url = (base_url or cfg.base_url).rstrip("/")
        self._timeout = timeout

    # -- auth ------------------------------------------------------------------

    def _get_headers(self) -> dict[str, str]:
        if not self._credentials.valid:
            try:
                self._credentials.refresh(Request())
            except GoogleAuthError as exc:
                raise RemoteStoreError(f"Sheets token refresh failed: {exc}") from exc
        return {
            "Authorization": f"Bearer {self._credentials.token}",
            "Content-Type": "application/json",
        }

    def _request(self, method: str, endpoint: str, **kwargs: Any) -> dict[str, Any]:
        url = f"{self._base_url}/spreadsheets/{self.spreadsheet_id}{endpoint}"
        params = kwargs.pop("params", {}) or {}
        if self._api_key:
            params["key"] = self._api_key
        try:
            resp = requests.request(
                method, url, headers=self._get_headers(), params=params,
                timeout=self._timeout, **kwargs,
            )
        except requests.RequestException as exc:
            raise RemoteStoreError(f"Sheets request failed: {exc}", details={"endpoint": endpoint}) from exc

        if resp.status_code >= 400:
            try:
                error = resp.json().get("error", {})
                message = error.get("message", resp.text)
            except ValueError:
                message = resp.text
            raise RemoteStoreError(
                f"Sheets API error: {message} (HTTP {resp.status_code}, endpoint: {endpoint})",
                details={"status": resp.status_code},
            )
        return resp.json() if resp.content else {}

    # -- spreadsheet metadata --------------------------------------------------

    def sheet_titles(self) -> list[str]:
        data = self._request("GET", "", params={"fields": "sheets.properties.title"})
        return [s["properties"]["title"] for s in data.get("sheets", [])]

    def add_sheet(self, title: str) -> None:
        self._request(
            "POST", ":batchUpdate",
            json={"requests": [{"addSheet": {"properties": {"title": title}}}]},
        )
        logger.info("Created sheet %s", title)

    # -- values ----------------------------------------------------------------

    def get_values(self, a1_range: str) -> list[list[Any]]:
        data = self._request("GET", f"/values/{quote(a1_range)}")
        return data.get("values", [])

    def update_values(self, a1_range: str, rows: list[list[Any]]) -> None:
        self._request(
            "PUT", f"/values/{quote(a1_range)}",
            params={"valueInputOption": "RAW"},
            json={"range": a1_range, "majorDimension": "ROWS", "values": rows},
        )

    def append_values(self, a1_range: str, rows: list[list[Any]]) -> None:
        self._request(
            "POST", f"/values/{quote(a1_range)}:append",
            params={"valueInputOption": "RAW", "insertDataOption": "INSERT_ROWS"},
            json={"majorDimension": "ROWS", "values": rows},
        )

    def clear_values(self, a1_range: str) -> None:
        self._request("POST", f"/values/{quote(a1_range)}:clear", json={})
