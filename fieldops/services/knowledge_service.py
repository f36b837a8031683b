"""Knowledge base: SOPs and the contact directory, both kept locally."""

from __future__ import annotations

from datetime import date
from typing import Optional

from fieldops.models.common import Division
from fieldops.models.reference import SOP, Contact
from fieldops.stores.local import LocalCollection


class KnowledgeService:
    def __init__(self, sops: LocalCollection[SOP], contacts: LocalCollection[Contact]):
        self._sops = sops
        self._contacts = contacts

    # -- SOPs ------------------------------------------------------------------

    def sops(self, category: Optional[str] = None) -> list[SOP]:
        items = self._sops.list()
        if category:
            items = [s for s in items if s.category.lower() == category.lower()]
        return items

    def search_sops(self, term: str) -> list[SOP]:
        if not term.strip():
            return self._sops.list()
        return [s for s in self._sops.list() if s.matches(term.strip())]

    def save_sop(self, sop: SOP) -> bool:
        sop.last_updated = date.today().isoformat()
        return self._sops.upsert(sop)

    def delete_sop(self, sop_id: str) -> bool:
        return self._sops.delete(sop_id)

    # -- contacts --------------------------------------------------------------

    def contacts(self, division: Optional[Division] = None) -> list[Contact]:
        items = self._contacts.list()
        if division:
            items = [c for c in items if c.division is division]
        return items

    def search_contacts(self, term: str) -> list[Contact]:
        if not term.strip():
            return self._contacts.list()
        return [c for c in self._contacts.list() if c.matches(term.strip())]

    def save_contact(self, contact: Contact) -> bool:
        return self._contacts.upsert(contact)

    def delete_contact(self, contact_id: str) -> bool:
        return self._contacts.delete(contact_id)
