"""Pure-function SLA evaluation for issues.

Every call reads the clock (or the injected ``now``); nothing is cached, so
callers re-evaluate on each render or poll. An issue whose ``created_at``
cannot be parsed has no SLA clock: it is never breached and never overdue.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Iterable, NamedTuple, Optional

from fieldops.models.common import parse_timestamp
from fieldops.models.issue import Issue, IssueStatus

SLA_HOURS = 24
NO_ANCHOR_LABEL = "No start time"


class SlaStatus(NamedTuple):
    breached: bool
    label: str


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def sla_anchor(created_at: Optional[str]) -> Optional[datetime]:
    """The SLA start time, or None when ``created_at`` is missing or malformed."""
    if not created_at:
        return None
    try:
        return parse_timestamp(created_at)
    except (AttributeError, ValueError):
        return None


def hours_elapsed(created_at: str, now: Optional[datetime] = None) -> float:
    now = now or datetime.now(timezone.utc)
    return (now - parse_timestamp(created_at)).total_seconds() / 3600


def sla_status(
    created_at: str, status: IssueStatus | str, now: Optional[datetime] = None
) -> SlaStatus:
    """Classify an issue against the 24h SLA window."""
    if IssueStatus(status) is IssueStatus.DONE:
        return SlaStatus(False, "Solved")
    if sla_anchor(created_at) is None:
        return SlaStatus(False, NO_ANCHOR_LABEL)

    hours = hours_elapsed(created_at, now)
    if hours > SLA_HOURS:
        # a breach is never reported as "Overdue 0h"
        overdue = max(1, _round_half_up(hours - SLA_HOURS))
        return SlaStatus(True, f"Overdue {overdue}h")
    return SlaStatus(False, f"{_round_half_up(SLA_HOURS - hours)}h left")


def is_overdue(issue: Issue, now: Optional[datetime] = None) -> bool:
    if issue.status is IssueStatus.DONE or sla_anchor(issue.created_at) is None:
        return False
    return hours_elapsed(issue.created_at, now) > SLA_HOURS


def overdue_issues(issues: Iterable[Issue], now: Optional[datetime] = None) -> list[Issue]:
    """Fleet-level alert set: open issues past the SLA window."""
    now = now or datetime.now(timezone.utc)
    return [i for i in issues if is_overdue(i, now)]
