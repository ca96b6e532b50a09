"""Tests for CSV rendering of reviews."""

import csv
import io
from datetime import date, datetime

from peer_review.models import LearningEnvironment, Review, YesNo
from peer_review.utils.csv_export import CSV_HEADER, reviews_to_csv


def test_csv_has_fixed_header_and_doubles_quotes():
    review = Review(
        reviewer_id="u1",
        reviewed_user_id="u2",
        reviewer_name="Ana",
        attendance=YesNo.YES,
        punctuality=YesNo.NO,
        environment=LearningEnvironment.CONDUCIVE,
        quality_of_contribution=4,
        level_of_participation=5,
        collaboration=3,
        overall_contribution=4,
        areas_for_improvement='say "hi" first',
        suggestions="plan, then build",
        timestamp=datetime(2025, 3, 4, 15, 0),
        created_at_iso="2025-03-04T15:00:00Z",
    )

    output = reviews_to_csv([review], {"u2": "Ben"})
    lines = output.splitlines()

    assert lines[0] == ",".join(CSV_HEADER)
    assert '"say ""hi"" first"' in lines[1]
    assert '"plan, then build"' in lines[1]

    row = next(csv.DictReader(io.StringIO(output)))
    assert row["reviewer"] == "Ana"
    assert row["reviewee"] == "Ben"
    assert row["date"] == "2025-03-04"
    assert row["environment"] == "conducive"
    assert row["additional_feedback"] == ""


def test_absent_review_leaves_rubric_columns_empty():
    review = Review(
        reviewer_id="u1",
        reviewed_user_id="u2",
        attendance=YesNo.NO,
        timestamp=None,
        created_at_iso="2025-03-01T10:00:00Z",
    )

    row = next(csv.DictReader(io.StringIO(reviews_to_csv([review]))))

    assert row["reviewer"] == "u1"
    assert row["date"] == "2025-03-01"
    assert row["attendance"] == "no"
    assert row["quality_of_contribution"] == ""


def test_date_column_uses_stored_local_day():
    review = Review(
        reviewer_id="u1",
        reviewed_user_id="u2",
        attendance=YesNo.NO,
        timestamp=datetime(2025, 3, 4, 23, 30),
        created_at_iso="2025-03-04T23:30:00Z",
        review_day=date(2025, 3, 5),
    )

    row = next(csv.DictReader(io.StringIO(reviews_to_csv([review]))))

    assert row["date"] == "2025-03-05"
