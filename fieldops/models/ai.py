"""Typed request/response schemas for the AI skills and chat."""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from fieldops.models.common import Division
from fieldops.models.task import TaskCategory, TaskPriority


class ChatMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class AIOptions(BaseModel):
    """Per-call options; ``None`` fields fall back to LLMConfig."""

    model: Optional[str] = None
    temperature: float = 0.7
    json_mode: bool = False
    max_retries: Optional[int] = None


class _Lenient(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class IssueClassification(_Lenient):
    opcode: str
    sop: str = ""
    division: Division = Division.OPS
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    reasoning: str = ""

    @field_validator("opcode", mode="before")
    @classmethod
    def _opcode_as_text(cls, v: Any) -> Any:
        return str(v) if isinstance(v, (int, float)) else v


class IssueAutofill(_Lenient):
    awb: str = ""
    partner_name: str = Field(default="", alias="partnerName")
    issue_type: str = Field(default="", alias="issueType")
    chronology: str = ""


class PriorityScore(_Lenient):
    score: int = Field(ge=1, le=100)
    priority_level: TaskPriority = Field(alias="priorityLevel")
    reasoning: str = ""


class TaskAutofill(_Lenient):
    title: str = ""
    description: str = ""
    division: Division = Division.OPS
    category: TaskCategory = TaskCategory.TODAY


class VisitAutofill(_Lenient):
    partner_name: str = Field(default="", alias="partnerName")
    google_maps_link: str = Field(default="", alias="googleMapsLink")
    coordinates: str = ""
    orders_last_month: float = Field(default=0, alias="ordersLastMonth")
    findings: str = ""
    operational_issues: str = Field(default="", alias="operationalIssues")
    suggestions: str = ""


class ChatAction(_Lenient):
    type: Literal["CREATE_TASK", "CREATE_VISIT"]
    data: dict[str, Any] = Field(default_factory=dict)


class ChatReply(_Lenient):
    reply: str
    suggested_actions: list[str] = Field(default_factory=list, alias="suggestedActions")
    action: Optional[ChatAction] = None
