"""
Freshness evaluation for data sources.

A source is classified from the age of its most recent record against a
threshold derived from its declared update frequency.
"""

import math
from dataclasses import dataclass
from typing import Any, Optional

from record_utils import age_in_days, frequency_threshold_days
from sanctions_law.models import FreshnessStatus


@dataclass
class FreshnessEvaluation:
    """Result of classifying one source"""
    age_days: float
    threshold_days: int
    status: FreshnessStatus

    @property
    def known_age(self) -> Optional[int]:
        """Age in whole days, or None when the dates could not be read."""
        return None if math.isinf(self.age_days) else int(self.age_days)


def classify_age(age_days: float, threshold_days: int) -> FreshnessStatus:
    """
    Classify an age against a threshold.

    Up to the threshold is fresh, up to twice the threshold is a warning,
    beyond that is stale. A non-finite age means the source has never been
    ingested.
    """
    if not math.isfinite(age_days):
        return FreshnessStatus.PLANNED
    if age_days <= threshold_days:
        return FreshnessStatus.FRESH
    if age_days <= threshold_days * 2:
        return FreshnessStatus.WARNING
    return FreshnessStatus.STALE


def evaluate_freshness(last_updated: Any, check_frequency: Optional[str], as_of: Any) -> FreshnessEvaluation:
    """
    Evaluate one source's freshness as of a reference date.

    Args:
        last_updated: ISO date of the source's most recent record
        check_frequency: daily, weekly, monthly or on_change
        as_of: ISO reference date

    Returns:
        FreshnessEvaluation with age, threshold and status
    """
    age = age_in_days(last_updated, as_of)
    threshold = frequency_threshold_days(check_frequency)
    return FreshnessEvaluation(
        age_days=age,
        threshold_days=threshold,
        status=classify_age(age, threshold),
    )
