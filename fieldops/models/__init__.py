"""Domain models for the field operations dashboard."""

from fieldops.models.common import CollectionKind, Division, PartnerHealth
from fieldops.models.task import Task, TaskCategory, TaskPriority, TaskStatus
from fieldops.models.issue import EscalationLog, Issue, IssueStatus
from fieldops.models.visit import VisitNote, VisitStatus
from fieldops.models.partner import Partner
from fieldops.models.reference import SOP, Contact

__all__ = [
    "CollectionKind", "Division", "PartnerHealth",
    "Task", "TaskCategory", "TaskPriority", "TaskStatus",
    "EscalationLog", "Issue", "IssueStatus",
    "VisitNote", "VisitStatus",
    "Partner",
    "SOP", "Contact",
]
