"""Rating aggregation over snapshots of review records."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List, Optional

from ..models import RATING_FIELDS, LearningEnvironment, YesNo

_ONE_DECIMAL = Decimal("0.1")


def _value(review: Any, name: str) -> Any:
    if isinstance(review, dict):
        return review.get(name)
    return getattr(review, name, None)


def _enum_value(raw: Any) -> Optional[str]:
    if raw is None:
        return None
    return raw.value if hasattr(raw, "value") else str(raw)


def mean_to_one_decimal(values: List[float]) -> Optional[float]:
    """Mean rounded half-up to one decimal (3.25 -> 3.3)."""

    if not values:
        return None
    mean = Decimal(str(sum(values))) / Decimal(len(values))
    return float(mean.quantize(_ONE_DECIMAL, rounding=ROUND_HALF_UP))


def rating_means(reviews: Iterable[Any]) -> Dict[str, Optional[float]]:
    """Mean per rating field, skipping reviews that lack the field."""

    collected: Dict[str, List[float]] = {name: [] for name in RATING_FIELDS}
    for review in reviews:
        for name in RATING_FIELDS:
            value = _value(review, name)
            if value is not None:
                collected[name].append(float(value))
    return {name: mean_to_one_decimal(values) for name, values in collected.items()}


def compute_group_averages(reviews: Iterable[Any]) -> Dict[str, Any]:
    """Return rubric means for a group plus the number of reviews considered."""

    snapshot = list(reviews)
    summary: Dict[str, Any] = rating_means(snapshot)
    summary["review_count"] = len(snapshot)
    return summary


def compute_user_aggregates(reviews: Iterable[Any]) -> Dict[str, Any]:
    """Summarise the reviews a single student received.

    Attendance and punctuality are counted, not averaged. ``environment``
    maps every learning environment value to the number of reviews
    reporting it.
    """

    snapshot = list(reviews)
    summary: Dict[str, Any] = rating_means(snapshot)
    environment = {choice.value: 0 for choice in LearningEnvironment}
    present = absent = punctual = unpunctual = 0

    for review in snapshot:
        attendance = _enum_value(_value(review, "attendance"))
        if attendance == YesNo.YES.value:
            present += 1
        elif attendance == YesNo.NO.value:
            absent += 1

        punctuality = _enum_value(_value(review, "punctuality"))
        if punctuality == YesNo.YES.value:
            punctual += 1
        elif punctuality == YesNo.NO.value:
            unpunctual += 1

        env = _enum_value(_value(review, "environment"))
        if env in environment:
            environment[env] += 1

    summary.update(
        {
            "present": present,
            "absent": absent,
            "punctual": punctual,
            "unpunctual": unpunctual,
            "total_reviews": len(snapshot),
            "environment": environment,
        }
    )
    return summary
