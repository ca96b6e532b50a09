"""CSV rendering of review records."""

from __future__ import annotations

import csv
import io
from typing import Iterable, Mapping, Optional

from ..models import RATING_FIELDS, Review

CSV_HEADER = (
    "reviewer",
    "reviewee",
    "date",
    "attendance",
    "punctuality",
    "environment",
    *RATING_FIELDS,
    "areas_for_improvement",
    "suggestions",
    "additional_feedback",
)


def _text(value) -> str:
    if value is None:
        return ""
    return value.value if hasattr(value, "value") else str(value)


def reviews_to_csv(reviews: Iterable[Review], names: Optional[Mapping[str, str]] = None) -> str:
    """Render reviews as a comma-separated table with a fixed header row.

    ``names`` maps user ids to display names; unknown ids are written as-is.
    Fields containing separators or quotes are quoted, with embedded quotes
    doubled.
    """

    names = names or {}
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for review in reviews:
        if review.review_day is not None:
            day = review.review_day.isoformat()
        elif review.timestamp is not None:
            day = review.timestamp.date().isoformat()
        else:
            day = (review.created_at_iso or "")[:10]
        writer.writerow(
            [
                review.reviewer_name or names.get(review.reviewer_id, review.reviewer_id),
                names.get(review.reviewed_user_id, review.reviewed_user_id),
                day,
                _text(review.attendance),
                _text(review.punctuality),
                _text(review.environment),
                *(_text(getattr(review, name)) for name in RATING_FIELDS),
                _text(review.areas_for_improvement),
                _text(review.suggestions),
                _text(review.additional_feedback),
            ]
        )
    return buffer.getvalue()
