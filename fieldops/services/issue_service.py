"""Issue helpers: creation, escalation log and SLA-annotated views."""

from __future__ import annotations

import dataclasses
import logging
from datetime import datetime
from typing import Any, Optional

from fieldops.errors import InvalidRecordError
from fieldops.models.common import CollectionKind, Division, utc_now_iso
from fieldops.models.issue import EscalationLog, Issue, IssueStatus
from fieldops.rules.sla import overdue_issues, sla_anchor, sla_status
from fieldops.services.sync_coordinator import SyncCoordinator, SyncOutcome

logger = logging.getLogger(__name__)


def new_issue(
    awb: str,
    partner_name: str = "",
    issue_type: str = "",
    opcode: str = "",
    sop_related: str = "",
    chronology: str = "",
    division: Division = Division.OPS,
    screenshot_url: Optional[str] = None,
) -> Issue:
    return Issue(
        awb=awb.strip(),
        partner_name=partner_name,
        issue_type=issue_type,
        opcode=opcode,
        sop_related=sop_related,
        chronology=chronology,
        division=division,
        status=IssueStatus.OPEN,
        screenshot_url=screenshot_url or None,
    )


def log_escalation(issue: Issue, actor: str, action: str, note: str = "") -> Issue:
    entry = EscalationLog(actor=actor, action=action, note=note)
    return dataclasses.replace(issue, escalation_log=[*issue.escalation_log, entry])


def resolve(issue: Issue) -> Issue:
    return dataclasses.replace(issue, status=IssueStatus.DONE)


def with_sla(issue: Issue, now: Optional[datetime] = None) -> dict[str, Any]:
    """Issue dict plus its SLA evaluation at ``now``; never cache the result."""
    status = sla_status(issue.created_at, issue.status, now)
    data = issue.to_dict()
    data["sla"] = {"breached": status.breached, "label": status.label}
    return data


def check_issue(issue: Issue) -> None:
    """The SLA clock needs a parseable ``created_at``; refuse to store one without it."""
    if sla_anchor(issue.created_at) is None:
        raise InvalidRecordError(
            f"Issue {issue.id} has no valid created_at",
            details={"id": issue.id, "created_at": issue.created_at},
        )


def merge_issue(existing: Optional[Issue], issue_id: str, body: dict[str, Any]) -> Issue:
    """Full-record body for a PUT; an omitted ``created_at`` keeps the stored anchor."""
    data = {**body, "id": issue_id}
    if not data.get("created_at"):
        data["created_at"] = existing.created_at if existing else utc_now_iso()
    return Issue.from_dict(data)


class IssueService:
    def __init__(self, coordinator: SyncCoordinator):
        self._sync = coordinator

    def list(self) -> list[Issue]:
        return self._sync.issues  # type: ignore[return-value]

    def get(self, issue_id: str) -> Optional[Issue]:
        return next((i for i in self.list() if i.id == issue_id), None)

    def save(self, issue: Issue) -> SyncOutcome:
        """Escalate and resolve skip the anchor check; they never touch created_at."""
        check_issue(issue)
        return self._sync.save(issue)

    def update(self, issue_id: str, body: dict[str, Any]) -> tuple[Issue, SyncOutcome]:
        issue = merge_issue(self.get(issue_id), issue_id, body)
        return issue, self.save(issue)

    def escalate(self, issue_id: str, actor: str, action: str, note: str = "") -> Optional[SyncOutcome]:
        issue = self.get(issue_id)
        if issue is None:
            return None
        logger.info("Escalating issue %s: %s", issue.awb, action)
        return self._sync.save(log_escalation(issue, actor, action, note))

    def resolve(self, issue_id: str) -> Optional[SyncOutcome]:
        issue = self.get(issue_id)
        if issue is None:
            return None
        return self._sync.save(resolve(issue))

    def delete(self, issue_id: str) -> SyncOutcome:
        return self._sync.delete(issue_id, CollectionKind.ISSUES)

    def board(self, now: Optional[datetime] = None) -> list[dict[str, Any]]:
        return [with_sla(i, now) for i in self.list()]

    def overdue(self, now: Optional[datetime] = None) -> list[Issue]:
        return overdue_issues(self.list(), now)
