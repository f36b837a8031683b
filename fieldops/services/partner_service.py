"""Partner records (local store only) with health recomputed on every boundary."""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any, Optional

from fieldops.models.common import PartnerHealth
from fieldops.models.partner import Partner
from fieldops.stores.local import LocalCollection

logger = logging.getLogger(__name__)


class PartnerService:
    def __init__(self, collection: LocalCollection[Partner]):
        self._partners = collection

    def list(self) -> list[Partner]:
        return self._partners.list()

    def get(self, partner_id: str) -> Optional[Partner]:
        return self._partners.get(partner_id)

    def save(self, partner: Partner) -> bool:
        ok = self._partners.upsert(partner)
        if ok:
            logger.info("Saved partner %s (%s)", partner.name, partner.status.value)
        return ok

    def delete(self, partner_id: str) -> bool:
        return self._partners.delete(partner_id)

    def by_health(self, health: PartnerHealth) -> list[Partner]:
        return [p for p in self.list() if p.status is health]

    def health_counts(self) -> dict[str, int]:
        counts = Counter(p.status.value for p in self.list())
        return {h.value: counts.get(h.value, 0) for h in PartnerHealth}

    def map_points(self) -> list[dict[str, Any]]:
        """Partners with parseable coordinates, as map markers."""
        points = []
        for p in self.list():
            latlng = p.lat_lng()
            if latlng is None:
                continue
            points.append({
                "id": p.id,
                "name": p.name,
                "lat": latlng[0],
                "lng": latlng[1],
                "status": p.status.value,
                "volume": p.volume_m1,
            })
        return points
