"""Partner domain model: a merchant/agent outlet with a derived health trend."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from fieldops.models.common import PartnerHealth, new_id, to_float
from fieldops.rules.trend import partner_trend


@dataclass
class Partner:
    """
    An outlet tracked by the field team.

    ``status`` is not a stored field: it is recomputed from the current and
    previous month volumes whenever it is read, and any persisted value is
    ignored on load.
    """

    name: str
    id: str = field(default_factory=new_id)
    nia: str = ""
    nik: str = ""
    service_type: str = ""
    owner_name: str = ""
    phone: str = ""
    address: str = ""
    city: str = ""
    district: str = ""
    province: str = ""
    zip_code: str = ""
    coordinates: str = ""
    google_maps_link: str = ""
    joined_date: str = ""
    volume_m3: float = 0
    volume_m2: float = 0
    volume_m1: float = 0

    @property
    def status(self) -> PartnerHealth:
        return partner_trend(self.volume_m1, self.volume_m2)

    def lat_lng(self) -> tuple[float, float] | None:
        """Parse ``"lat, lng"`` coordinates; None when absent or malformed."""
        parts = [p.strip() for p in self.coordinates.split(",")]
        if len(parts) != 2:
            return None
        try:
            return float(parts[0]), float(parts[1])
        except ValueError:
            return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "nia": self.nia,
            "nik": self.nik,
            "service_type": self.service_type,
            "owner_name": self.owner_name,
            "phone": self.phone,
            "address": self.address,
            "city": self.city,
            "district": self.district,
            "province": self.province,
            "zip_code": self.zip_code,
            "coordinates": self.coordinates,
            "google_maps_link": self.google_maps_link,
            "joined_date": self.joined_date,
            "volume_m3": self.volume_m3,
            "volume_m2": self.volume_m2,
            "volume_m1": self.volume_m1,
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, row: dict[str, Any]) -> "Partner":
        # status is derived, a persisted value is ignored
        return cls(
            id=str(row["id"]),
            name=row.get("name") or "",
            nia=str(row.get("nia") or ""),
            nik=str(row.get("nik") or ""),
            service_type=row.get("service_type") or "",
            owner_name=row.get("owner_name") or "",
            phone=str(row.get("phone") or ""),
            address=row.get("address") or "",
            city=row.get("city") or "",
            district=row.get("district") or "",
            province=row.get("province") or "",
            zip_code=str(row.get("zip_code") or ""),
            coordinates=row.get("coordinates") or "",
            google_maps_link=row.get("google_maps_link") or "",
            joined_date=row.get("joined_date") or "",
            volume_m3=to_float(row.get("volume_m3")),
            volume_m2=to_float(row.get("volume_m2")),
            volume_m1=to_float(row.get("volume_m1")),
        )
