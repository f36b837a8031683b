"""
Central configuration loader.
Reads from environment variables (via .env); validates required keys.
NEVER prints secret values.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


# ---------------------------------------------------------------------------
# Load .env from repo root (if present)
# ---------------------------------------------------------------------------
_REPO_ROOT = Path(__file__).resolve().parents[1]
load_dotenv(_REPO_ROOT / ".env")


def _get(key: str, default: Optional[str] = None, required: bool = False) -> Optional[str]:
    val = os.getenv(key, default)
    if required and not val:
        raise EnvironmentError(f"Missing required environment variable: {key}")
    return val


def _get_bool(key: str, default: str = "false") -> bool:
    return (_get(key, default) or "").lower() in ("1", "true", "yes")


# ---------------------------------------------------------------------------
# Local device storage
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class LocalStoreConfig:
    db_path: Path
    key_prefix: str


def get_local_store_config() -> LocalStoreConfig:
    return LocalStoreConfig(
        db_path=get_db_path(),
        key_prefix=_get("FIELDOPS_KEY_PREFIX", default="BS_OPS_"),  # type: ignore[arg-type]
    )


# ---------------------------------------------------------------------------
# Remote backend selection
# ---------------------------------------------------------------------------
REMOTE_BACKENDS = ("sheets", "firestore")


def get_remote_backend() -> str:
    backend = (_get("REMOTE_BACKEND", default="sheets") or "sheets").lower()
    if backend not in REMOTE_BACKENDS:
        raise EnvironmentError(
            f"REMOTE_BACKEND must be one of {', '.join(REMOTE_BACKENDS)}, got {backend!r}"
        )
    return backend


# ---------------------------------------------------------------------------
# Google Sheets (tabular remote)
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class SheetsConfig:
    spreadsheet_id: Optional[str]
    api_key: Optional[str]
    # Authorized-user token file produced by the host's consent flow
    token_file: Optional[str]
    service_account_file: Optional[str]
    base_url: str = "https://sheets.googleapis.com/v4"


def get_sheets_config() -> SheetsConfig:
    return SheetsConfig(
        spreadsheet_id=_get("SHEETS_SPREADSHEET_ID"),
        api_key=_get("SHEETS_API_KEY"),
        token_file=_get("SHEETS_TOKEN_FILE"),
        service_account_file=_get("SHEETS_SERVICE_ACCOUNT_FILE"),
        base_url=_get("SHEETS_BASE_URL", default="https://sheets.googleapis.com/v4"),  # type: ignore[arg-type]
    )


# ---------------------------------------------------------------------------
# Firestore (document remote)
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class FirestoreConfig:
    project_id: Optional[str]
    database: str
    credentials_path: Optional[str]


def get_firestore_config() -> FirestoreConfig:
    return FirestoreConfig(
        project_id=_get("GCP_PROJECT_ID"),
        database=_get("FIRESTORE_DATABASE", default="(default)"),  # type: ignore[arg-type]
        credentials_path=_get("GOOGLE_APPLICATION_CREDENTIALS"),
    )


# ---------------------------------------------------------------------------
# LLM config (AI assist gateway)
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class LLMConfig:
    api_key: Optional[str]
    base_url: str
    model_fast: str
    model_smart: str
    timeout: int
    max_retries: int
    backoff_seconds: float


def get_llm_config() -> LLMConfig:
    return LLMConfig(
        api_key=_get("LLM_API_KEY"),
        base_url=_get("LLM_BASE_URL", default="https://api.openai.com/v1"),  # type: ignore[arg-type]
        model_fast=_get("DEFAULT_LLM", default="gpt-4o-mini"),  # type: ignore[arg-type]
        model_smart=_get("SMART_LLM", default=_get("DEFAULT_LLM", default="gpt-4o-mini")),  # type: ignore[arg-type]
        timeout=int(_get("LLM_TIMEOUT", default="60")),  # type: ignore[arg-type]
        max_retries=int(_get("LLM_MAX_RETRIES", default="3")),  # type: ignore[arg-type]
        backoff_seconds=float(_get("LLM_BACKOFF_SECONDS", default="1.5")),  # type: ignore[arg-type]
    )


# ---------------------------------------------------------------------------
# HTTP server
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class ServerConfig:
    host: str
    port: int
    reload: bool


def get_server_config() -> ServerConfig:
    return ServerConfig(
        host=_get("SERVER_HOST", default="0.0.0.0"),  # type: ignore[arg-type]
        port=int(_get("SERVER_PORT", default="8000")),  # type: ignore[arg-type]
        reload=_get_bool("SERVER_RELOAD", default="false"),
    )


def get_log_level() -> str:
    return (_get("LOG_LEVEL", default="INFO") or "INFO").upper()


# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------
def get_repo_root() -> Path:
    return _REPO_ROOT


def get_db_path() -> Path:
    raw = _get("FIELDOPS_DB_PATH")
    return Path(raw) if raw else _REPO_ROOT / "data" / "fieldops.db"
