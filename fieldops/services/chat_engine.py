"""
Operational chat assistant.

Each turn sends the running history plus a system prompt carrying the date
and a read-only snapshot of the data. The model answers with JSON
``{reply, suggestedActions, action?}``; an action creates a task or a
visit through the sync coordinator when the caller applies it.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Callable, Optional

from pydantic import ValidationError

from fieldops.errors import AIServiceError, ConfigurationError
from fieldops.models.ai import AIOptions, ChatMessage, ChatReply
from fieldops.models.common import to_float
from fieldops.models.issue import IssueStatus
from fieldops.models.partner import Partner
from fieldops.models.reference import SOP
from fieldops.models.task import TaskStatus
from fieldops.models.visit import VisitStatus
from fieldops.services.ai_gateway import AIGateway
from fieldops.services.sync_coordinator import SyncCoordinator, SyncOutcome
from fieldops.services.task_service import task_from_draft
from fieldops.services.visit_service import new_visit
from fieldops.stores.local import LocalCollection

logger = logging.getLogger(__name__)

APOLOGY = "Sorry, the AI connection failed. Please try again."

SYSTEM_PROMPT = """You are the Field Ops Assistant, an operational bot for business success specialists.
You can read the database (tasks, issues, visits, partners, SOPs) and EXECUTE ACTIONS.

ROLE & BEHAVIOR
1. Assist and execute: when asked to create or schedule something, return a JSON action.
2. Data aware: you know each partner's health status and the available SOPs.
3. Be concise and professional.

KNOWLEDGE BASE ACCESS
- Questions about SOPs (e.g. "how do I handle opcode 59?"): read the SOP section below.
- Questions about partners (e.g. "is Store A growing?"): read the partner section below.

HOW TO EXECUTE ACTIONS
1. Creating a task ("create a task", "remind me"):
   {"action": {"type": "CREATE_TASK", "data": {"title": ..., "description": ..., "deadline": "YYYY-MM-DD", "category": ..., "priority": ..., "division": ...}}}
2. Scheduling a visit ("schedule a visit", "plan a visit"):
   {"action": {"type": "CREATE_VISIT", "data": {"partnerName": ..., "visitDatePlan": "YYYY-MM-DD", "nia": ...}}}

RESPONSE FORMAT
Return JSON with "reply", "suggestedActions" (list of short strings) and an optional "action"."""


def date_context(today: date) -> str:
    tomorrow = today + timedelta(days=1)
    next_monday = today + timedelta(days=(7 - today.weekday()) % 7 or 7)
    return (
        "CURRENT DATE:\n"
        f"- Today: {today.strftime('%A')}, {today.isoformat()}\n"
        f"- Tomorrow: {tomorrow.isoformat()}\n"
        f"- Next Monday: {next_monday.isoformat()}"
    )


class ChatSession:
    def __init__(
        self,
        coordinator: SyncCoordinator,
        gateway: Optional[AIGateway] = None,
        partners: Optional[LocalCollection[Partner]] = None,
        sops: Optional[LocalCollection[SOP]] = None,
        today: Callable[[], date] = date.today,
    ):
        self._sync = coordinator
        self.gateway = gateway or AIGateway()
        self._partners = partners
        self._sops = sops
        self._today = today
        self.history: list[ChatMessage] = []

    def clear(self) -> None:
        self.history = []

    # -- context ---------------------------------------------------------------

    def database_context(self) -> str:
        tasks = sorted(
            (t for t in self._sync.tasks if t.status is not TaskStatus.CLOSED),
            key=lambda t: t.deadline or "9999",
        )
        visits = sorted(
            (v for v in self._sync.visits if v.status is not VisitStatus.DONE),
            key=lambda v: v.visit_date_plan or "9999",
        )
        issues = [i for i in self._sync.issues if i.status is not IssueStatus.DONE]
        partners = self._partners.list() if self._partners else []
        sops = self._sops.list() if self._sops else []

        sections = [
            ("ACTIVE TASKS", [f"- [{t.deadline or '-'}] {t.title}" for t in tasks]),
            ("OPEN ISSUES", [f"- {i.awb}: {i.issue_type}" for i in issues]),
            ("PLANNED VISITS", [f"- [{v.visit_date_plan}] {v.partner_name}" for v in visits]),
            ("PARTNER STATUS", [f"- {p.name} ({p.status.value}): vol {p.volume_m1:g}" for p in partners]),
            ("AVAILABLE SOPs", [f"- {s.title} [{s.category}]" for s in sops]),
        ]
        body = "\n\n".join(f"[{title}]\n" + ("\n".join(lines) or "- none") for title, lines in sections)
        return "=== DATABASE CONTENTS (READ ONLY) ===\n\n" + body

    def system_prompt(self) -> str:
        return "\n\n".join([SYSTEM_PROMPT, date_context(self._today()), self.database_context()])

    # -- turns -----------------------------------------------------------------

    def send(self, text: str) -> Optional[ChatReply]:
        """
        Send one user turn. On any AI failure an apology is appended to the
        history and None is returned.
        """
        self.history.append(ChatMessage(role="user", content=text))
        messages = [ChatMessage(role="system", content=self.system_prompt()), *self.history]
        try:
            raw = self.gateway.call(messages, AIOptions(model="smart", json_mode=True))
            reply = ChatReply.model_validate(raw)
        except (AIServiceError, ConfigurationError, ValidationError) as exc:
            logger.error("Chat turn failed: %s", exc)
            self.history.append(ChatMessage(role="assistant", content=APOLOGY))
            return None

        self.history.append(ChatMessage(role="assistant", content=reply.reply))
        return reply

    def apply_action(self, reply: ChatReply) -> Optional[SyncOutcome]:
        """Persist the record an action describes; None when there is no action."""
        action = reply.action
        if action is None:
            return None
        data = action.data
        if action.type == "CREATE_TASK":
            record = task_from_draft(data)
        else:
            record = new_visit(
                partner_name=str(data.get("partnerName") or data.get("partner_name") or "Unknown partner"),
                visit_date_plan=str(data.get("visitDatePlan") or data.get("visit_date_plan") or ""),
                nia=str(data.get("nia") or ""),
                orders_last_month=to_float(data.get("ordersLastMonth") or data.get("orders_last_month")),
            )
        outcome = self._sync.save(record)
        logger.info("Chat action %s applied: %s", action.type, outcome.message)
        return outcome
