"""Partner health trend from two trailing volume figures."""

from __future__ import annotations

from fieldops.models.common import PartnerHealth

GROWTH_FACTOR = 1.1
AT_RISK_FACTOR = 0.8


def partner_trend(current: float, prev: float) -> PartnerHealth:
    """
    Classify month-over-month volume.

    The comparison is multiplicative, so ``prev == 0`` needs no special case:
    any positive current volume is growth and zero stays stagnant.
    """
    if current > prev * GROWTH_FACTOR:
        return PartnerHealth.GROWTH
    if current < prev * AT_RISK_FACTOR:
        return PartnerHealth.AT_RISK
    return PartnerHealth.STAGNANT
