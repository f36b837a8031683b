"""Offline keyword fallback for task priority."""

from __future__ import annotations

from fieldops.models.task import TaskPriority

P1_KEYWORDS = ("stuck", "sla", "komplain", "urgent", "jaringan", "atasan", "emergency")
P2_KEYWORDS = ("report", "laporan", "visit", "mapping", "weekly", "deadline")


def determine_priority(title: str, description: str = "") -> TaskPriority:
    """Keyword match over title and description, P1 keywords first."""
    text = f"{title} {description}".lower()
    if any(k in text for k in P1_KEYWORDS):
        return TaskPriority.P1
    if any(k in text for k in P2_KEYWORDS):
        return TaskPriority.P2
    return TaskPriority.P3
