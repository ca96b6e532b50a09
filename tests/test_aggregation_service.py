"""Tests for rating aggregation."""

from peer_review.models import Review, YesNo
from peer_review.services import aggregation_service


def test_group_mean_rounds_to_one_decimal():
    reviews = [
        {"quality_of_contribution": 5},
        {"quality_of_contribution": 3},
        {"quality_of_contribution": 4},
    ]

    averages = aggregation_service.compute_group_averages(reviews)

    assert averages["quality_of_contribution"] == 4.0
    assert averages["review_count"] == 3


def test_absent_reviews_are_excluded_from_denominator():
    reviews = [
        {"attendance": "yes", "collaboration": 5},
        {"attendance": "yes", "collaboration": 4},
        {"attendance": "no"},
    ]

    averages = aggregation_service.compute_group_averages(reviews)

    assert averages["collaboration"] == 4.5
    assert averages["overall_contribution"] is None


def test_fields_are_averaged_independently():
    reviews = [
        {"level_of_participation": 2, "overall_contribution": 5},
        {"level_of_participation": 3},
        {"level_of_participation": 3},
    ]

    averages = aggregation_service.compute_group_averages(reviews)

    assert averages["level_of_participation"] == 2.7
    assert averages["overall_contribution"] == 5.0


def test_user_aggregates_count_categorical_answers():
    reviews = [
        Review(attendance=YesNo.YES, punctuality=YesNo.YES, environment="conducive", quality_of_contribution=4),
        Review(attendance=YesNo.YES, punctuality=YesNo.NO, environment="not_conducive", quality_of_contribution=2),
        Review(attendance=YesNo.NO),
    ]

    summary = aggregation_service.compute_user_aggregates(reviews)

    assert summary["present"] == 2
    assert summary["absent"] == 1
    assert summary["punctual"] == 1
    assert summary["unpunctual"] == 1
    assert summary["total_reviews"] == 3
    assert summary["quality_of_contribution"] == 3.0
    assert summary["environment"] == {"conducive": 1, "somewhat_conducive": 0, "not_conducive": 1}


def test_empty_snapshot():
    summary = aggregation_service.compute_user_aggregates([])

    assert summary["total_reviews"] == 0
    assert summary["collaboration"] is None
    assert set(summary["environment"].values()) == {0}


def test_means_round_half_up():
    reviews = [{"collaboration": 3}, {"collaboration": 3}, {"collaboration": 3}, {"collaboration": 4}]
    low = [{"collaboration": 1}, {"collaboration": 1}, {"collaboration": 1}, {"collaboration": 2}]

    assert aggregation_service.compute_group_averages(reviews)["collaboration"] == 3.3
    assert aggregation_service.compute_user_aggregates(low)["collaboration"] == 1.3
    assert aggregation_service.mean_to_one_decimal([2, 3]) == 2.5
