"""
AI skills: prompt templates layered on the gateway, each with a typed reply.

json-mode skills validate the parsed object against a pydantic schema; a
mismatch raises ``MalformedAIOutputError``. Skills never swallow errors;
``autofill_or_keep`` is the form-filling helper that turns any AI failure
into "leave the form as it was".
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from fieldops.errors import AIServiceError, ConfigurationError, MalformedAIOutputError
from fieldops.models.ai import (
    AIOptions,
    IssueAutofill,
    IssueClassification,
    PriorityScore,
    TaskAutofill,
    VisitAutofill,
)
from fieldops.models.issue import Issue
from fieldops.models.visit import VisitNote
from fieldops.services.ai_gateway import AIGateway

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

DIVISIONS = "Operations | Finance | IT | Network | Customer Service | Partner Management"

CLASSIFY_PROMPT = """Analyze the following logistics issue description from the field operations team.
Predict the Opcode, SOP reference and Division.

Knowledge base:
- First-mile: pickup delay, cancelled pickup.
- Mid-mile: hub sorting, stuck at hub, wrong routing (Opcode 285/286).
- Last-mile: delivery delay, courier issues, fake POD (Opcode 59/60).
- SOP references often imply TAB QMS 287 (Drop Off), 285 (Return), etc.

Input text: "{text}"

Return JSON:
{{
  "opcode": "code as string",
  "sop": "name of the SOP",
  "division": "{divisions}",
  "confidence": number between 0 and 1,
  "reasoning": "short explanation"
}}"""

ISSUE_AUTOFILL_PROMPT = """Extract issue details from this text: "{text}".
Return JSON:
{{
  "awb": "tracking number",
  "partnerName": "string",
  "issueType": "string",
  "chronology": "the story, tidied up"
}}"""

PRIORITY_PROMPT = """Evaluate priority (1-100) for this task:
Title: {title}
Description: {description}
Division: {division}

Rules:
- Score > 80 for SLA breach, stuck package, urgent, escalation from a superior, network down (PRIORITY_1).
- Score > 50 for a specific deadline, report or visit plan (PRIORITY_2).
- Score < 50 for nice-to-have work or documentation (PRIORITY_3).

Return JSON:
{{
  "score": number,
  "priorityLevel": "PRIORITY_1" | "PRIORITY_2" | "PRIORITY_3",
  "reasoning": "short reason"
}}"""

TASK_AUTOFILL_PROMPT = """Extract task details from: "{text}".
Return JSON:
{{
  "title": "string",
  "description": "string",
  "division": "{divisions}",
  "category": "TODAY | THIS_WEEK | WAITING_UPDATE"
}}"""

VISIT_SUMMARY_PROMPT = """Write a professional visit summary (bullet points) for the supervisor based on:
Partner: {partner}
Findings: {findings}
Issues: {issues}
Suggestions: {suggestions}
Orders: {orders} (daily avg: {daily_avg})

Format:
- **Highlight**: main point
- **Action Item**: what needs to be done
- **Status**: Positive / Negative / Neutral"""

VISIT_AUTOFILL_PROMPT = """Extract visit data from the raw text below.

Raw text: "{text}"

Return JSON:
{{
  "partnerName": "business/partner name",
  "googleMapsLink": "URL starting with https://maps",
  "coordinates": "lat,long if present",
  "ordersLastMonth": number of orders per month,
  "findings": "observations, potential, conditions",
  "operationalIssues": "problems, complaints, broken items",
  "suggestions": "action items or future plans"
}}
If a value is missing use an empty string or 0."""

SOLUTION_PROMPT = """Give a technical and tactical solution for this problem:
Issue: {issue_type}
Opcode: {opcode}
Chronology: {chronology}

List 3 concrete corrective steps for the partner or the ops team."""

IMPROVEMENT_PROMPT = """Based on the visit findings at {partner}:
"{findings}"
"{issues}"

Recommend a strategy to grow parcel volume and service quality at this location."""

CHRONOLOGY_PROMPT = """Rewrite the following incident chronology so it reads as a professional,
easy-to-follow operational report (bullet points if helpful). Do not change any
facts; only fix grammar and structure.

Original text:
{text}"""


class AISkills:
    def __init__(self, gateway: Optional[AIGateway] = None):
        self.gateway = gateway or AIGateway()

    # -- plumbing --------------------------------------------------------------

    def _ask_json(self, system: str, prompt: str, schema: type[M], model: str = "fast") -> M:
        raw = self.gateway.call(
            [{"role": "system", "content": system}, {"role": "user", "content": prompt}],
            AIOptions(model=model, json_mode=True),
        )
        try:
            return schema.model_validate(raw)
        except ValidationError as exc:
            raise MalformedAIOutputError(
                f"AI reply does not match {schema.__name__}: {exc.error_count()} error(s)",
                raw=str(raw),
            ) from exc

    def _ask_text(self, system: str, prompt: str, model: str = "smart") -> str:
        reply = self.gateway.call(
            [{"role": "system", "content": system}, {"role": "user", "content": prompt}],
            AIOptions(model=model),
        )
        return str(reply).strip()

    # -- issues ----------------------------------------------------------------

    def classify_issue(self, text: str) -> IssueClassification:
        return self._ask_json(
            "You are an expert logistics operations AI.",
            CLASSIFY_PROMPT.format(text=text, divisions=DIVISIONS),
            IssueClassification,
        )

    def autofill_issue(self, text: str) -> IssueAutofill:
        return self._ask_json(
            "You are a data extraction assistant.",
            ISSUE_AUTOFILL_PROMPT.format(text=text),
            IssueAutofill,
        )

    def suggest_solution(self, issue: Issue) -> str:
        return self._ask_text(
            "You are a senior logistics operations manager.",
            SOLUTION_PROMPT.format(
                issue_type=issue.issue_type, opcode=issue.opcode, chronology=issue.chronology
            ),
        )

    def refine_chronology(self, text: str) -> str:
        return self._ask_text(
            "You are an operations report editor.",
            CHRONOLOGY_PROMPT.format(text=text),
            model="fast",
        )

    # -- tasks -----------------------------------------------------------------

    def score_priority(self, title: str, description: str, division: str) -> PriorityScore:
        return self._ask_json(
            "You are an automated task manager.",
            PRIORITY_PROMPT.format(title=title, description=description, division=division),
            PriorityScore,
            model="smart",
        )

    def autofill_task(self, text: str) -> TaskAutofill:
        return self._ask_json(
            "You are a task parser.",
            TASK_AUTOFILL_PROMPT.format(text=text, divisions=DIVISIONS),
            TaskAutofill,
        )

    # -- visits ----------------------------------------------------------------

    def summarize_visit(self, visit: VisitNote) -> str:
        return self._ask_text(
            "You are a business success specialist assistant.",
            VISIT_SUMMARY_PROMPT.format(
                partner=visit.partner_name,
                findings=visit.findings,
                issues=visit.operational_issues,
                suggestions=visit.suggestions,
                orders=visit.orders_last_month,
                daily_avg=visit.orders_daily_avg,
            ),
        )

    def autofill_visit(self, text: str) -> VisitAutofill:
        return self._ask_json(
            "You are a data extractor.",
            VISIT_AUTOFILL_PROMPT.format(text=text),
            VisitAutofill,
            model="smart",
        )

    def suggest_improvement(self, visit: VisitNote) -> str:
        return self._ask_text(
            "You are a business consultant for logistics.",
            IMPROVEMENT_PROMPT.format(
                partner=visit.partner_name,
                findings=visit.findings,
                issues=visit.operational_issues,
            ),
        )


def autofill_or_keep(
    form: dict[str, Any],
    skill: Callable[[str], BaseModel],
    text: str,
) -> dict[str, Any]:
    """
    Merge a skill's extracted fields into ``form``.

    Empty extracted values do not overwrite what is already there. On any AI
    failure the original form is returned unchanged.
    """
    try:
        result = skill(text)
    except (AIServiceError, ConfigurationError) as exc:
        logger.warning("AI autofill skipped: %s", exc)
        return dict(form)

    merged = dict(form)
    for key, value in result.model_dump(mode="json").items():
        if value in (None, "", 0, []):
            continue
        merged[key] = value
    return merged
