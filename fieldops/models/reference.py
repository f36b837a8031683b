"""Knowledge-base reference records: SOPs and contacts."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any

from fieldops.models.common import Division, coerce_enum, new_id


@dataclass
class SOP:
    title: str
    id: str = field(default_factory=new_id)
    category: str = ""
    tags: list[str] = field(default_factory=list)
    content: str = ""
    last_updated: str = field(default_factory=lambda: date.today().isoformat())

    def matches(self, term: str) -> bool:
        needle = term.lower()
        haystack = [self.title, self.category, self.content, *self.tags]
        return any(needle in h.lower() for h in haystack)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "category": self.category,
            "tags": list(self.tags),
            "content": self.content,
            "last_updated": self.last_updated,
        }

    @classmethod
    def from_dict(cls, row: dict[str, Any]) -> "SOP":
        tags = row.get("tags") or []
        if isinstance(tags, str):
            tags = [t.strip() for t in tags.split(",") if t.strip()]
        return cls(
            id=str(row.get("id") or new_id()),
            title=row.get("title") or "",
            category=row.get("category") or "",
            tags=list(tags),
            content=row.get("content") or "",
            last_updated=str(row.get("last_updated") or ""),
        )


@dataclass
class Contact:
    name: str
    id: str = field(default_factory=new_id)
    role: str = ""
    division: Division = Division.OPS
    phone: str = ""
    email: str = ""

    def matches(self, term: str) -> bool:
        needle = term.lower()
        haystack = [self.name, self.role, self.division.value, self.email]
        return any(needle in h.lower() for h in haystack)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "role": self.role,
            "division": self.division.value,
            "phone": self.phone,
            "email": self.email,
        }

    @classmethod
    def from_dict(cls, row: dict[str, Any]) -> "Contact":
        return cls(
            id=str(row.get("id") or new_id()),
            name=row.get("name") or "",
            role=row.get("role") or "",
            division=coerce_enum(Division, row.get("division"), Division.OTHER),
            phone=str(row.get("phone") or ""),
            email=row.get("email") or "",
        )
