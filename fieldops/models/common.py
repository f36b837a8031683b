"""Shared enums and helpers for the record models."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, TypeVar

ISO_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

E = TypeVar("E", bound=Enum)


class Division(str, Enum):
    OPS = "Operations"
    FINANCE = "Finance"
    IT = "IT"
    NETWORK = "Network"
    CS = "Customer Service"
    PM = "Partner Management"
    OTHER = "Other"


class CollectionKind(str, Enum):
    """The three synced collections."""

    TASKS = "tasks"
    ISSUES = "issues"
    VISITS = "visits"


def new_id() -> str:
    return uuid.uuid4().hex


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).strftime(ISO_FORMAT)


def parse_timestamp(raw: str) -> datetime:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    value = raw.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def coerce_enum(enum_cls: type[E], raw: Any, default: E) -> E:
    if isinstance(raw, enum_cls):
        return raw
    try:
        return enum_cls(raw)
    except ValueError:
        return default


def to_float(raw: Any, default: float = 0.0) -> float:
    if raw in (None, ""):
        return default
    try:
        return float(raw)
    except (TypeError, ValueError):
        return default


def optional_str(raw: Any) -> Optional[str]:
    if raw in (None, ""):
        return None
    return str(raw)


class PartnerHealth(str, Enum):
    GROWTH = "GROWTH"
    STAGNANT = "STAGNANT"
    AT_RISK = "AT_RISK"
