"""Weighted confidence aggregation over contradiction findings."""

import math
from datetime import datetime, timezone
from typing import Iterable, Optional

from ..domain.models import Finding

VERIFIED_WEIGHT = 1.5
RECENT_WEIGHT = 1.3
STALE_WEIGHT = 0.8
RECENT_DAYS = 30
STALE_DAYS = 365


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def finding_weight(finding: Finding, now: datetime) -> float:
    """Weight of one finding.

    Starts at 1, then x1.5 when verified, x1.3 when the midpoint of its two
    dates is under 30 days old or x0.8 when over 365, and finally scaled by
    the finding's own confidence / 100.
    """
    weight = 1.0

    if finding.verified:
        weight *= VERIFIED_WEIGHT

    if finding.dates and len(finding.dates) >= 2:
        first, second = (_as_utc(d).timestamp() for d in finding.dates[:2])
        midpoint = (first + second) / 2
        age_days = (now.timestamp() - midpoint) / 86400
        if age_days < RECENT_DAYS:
            weight *= RECENT_WEIGHT
        elif age_days > STALE_DAYS:
            weight *= STALE_WEIGHT

    # an explicit score of 0 stays 0; only a missing score counts as 50
    return weight * (finding.effective_confidence / 100)


def calculate_weighted_confidence(
    findings: Iterable[Finding],
    now: Optional[datetime] = None
) -> int:
    """Aggregate finding confidences into one 0-100 score.

    The result is sum(confidence * weight) / sum(weight), rounded half up.
    Because each weight already includes confidence / 100, confident
    findings pull the score up more than their count alone would.
    """
    now = _as_utc(now) if now is not None else datetime.now(timezone.utc)

    total_weight = 0.0
    weighted_sum = 0.0
    for finding in findings:
        weight = finding_weight(finding, now)
        weighted_sum += finding.effective_confidence * weight
        total_weight += weight

    if total_weight <= 0:
        return 0

    score = math.floor(weighted_sum / total_weight + 0.5)
    return min(max(score, 0), 100)
