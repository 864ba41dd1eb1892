"""
Tests for attempt statistics and the per-company breakdown.
"""

import pytest

from formapro.evaluations.statistics import (
    calculate_enterprise_stats,
    calculate_evaluation_stats,
    score_bucket,
)


def attempt(pourcentage, termine=True, temps=60, entreprise=None):
    return {
        "pourcentage": pourcentage,
        "termine": termine,
        "temps_utilise": temps,
        "entreprise_nom": entreprise,
    }


def test_empty_input_returns_zeroed_structure():
    stats = calculate_evaluation_stats([])

    assert stats == {
        "totalAttempts": 0,
        "completedAttempts": 0,
        "averageScore": 0,
        "passRate": 0,
        "completionRate": 0,
        "averageTime": 0,
        "scoreDistribution": {"excellent": 0, "good": 0, "average": 0, "poor": 0},
    }


def test_only_in_progress_attempts():
    stats = calculate_evaluation_stats([attempt(0, termine=False), attempt(0, termine=False)])

    assert stats["totalAttempts"] == 2
    assert stats["completedAttempts"] == 0
    assert stats["averageScore"] == 0
    assert stats["passRate"] == 0
    assert stats["completionRate"] == 0
    assert stats["averageTime"] == 0
    assert sum(stats["scoreDistribution"].values()) == 0


def test_aggregates_over_completed_attempts():
    attempts = [
        attempt(95, temps=100),
        attempt(75, temps=200),
        attempt(55, temps=301),
        attempt(10, temps=0),
        attempt(0, termine=False, temps=999),
    ]

    stats = calculate_evaluation_stats(attempts)

    assert stats["totalAttempts"] == 5
    assert stats["completedAttempts"] == 4
    assert stats["averageScore"] == 58.75
    assert stats["passRate"] == 50
    assert stats["completionRate"] == 80
    assert stats["averageTime"] == 150
    assert stats["scoreDistribution"] == {"excellent": 1, "good": 1, "average": 1, "poor": 1}


def test_rates_are_rounded_to_two_decimals():
    stats = calculate_evaluation_stats([attempt(70), attempt(69), attempt(68)])

    assert stats["passRate"] == 33.33
    assert stats["averageScore"] == 69
    assert stats["completionRate"] == 100


def test_average_time_rounds_half_up():
    stats = calculate_evaluation_stats([attempt(80, temps=2), attempt(80, temps=3)])
    assert stats["averageTime"] == 3


def test_missing_elapsed_time_counts_as_zero():
    stats = calculate_evaluation_stats([attempt(80, temps=None), attempt(80, temps=10)])
    assert stats["averageTime"] == 5


@pytest.mark.parametrize("pourcentage,bucket", [
    (100, "excellent"),
    (90, "excellent"),
    (89.99, "good"),
    (70, "good"),
    (69.99, "average"),
    (50, "average"),
    (49.99, "poor"),
    (0, "poor"),
])
def test_bucket_thresholds(pourcentage, bucket):
    assert score_bucket(pourcentage) == bucket


def test_distribution_partitions_completed_attempts():
    percentages = [0, 12.5, 49.99, 50, 60, 69.99, 70, 80, 89.99, 90, 99, 100]
    attempts = [attempt(p) for p in percentages] + [attempt(95, termine=False)]

    stats = calculate_evaluation_stats(attempts)

    assert sum(stats["scoreDistribution"].values()) == stats["completedAttempts"] == len(percentages)


def test_enterprise_breakdown_groups_by_name():
    attempts = [
        attempt(90, entreprise="Acme"),
        attempt(40, entreprise="Globex"),
        attempt(70, entreprise="Acme"),
        attempt(60, entreprise=None),
    ]

    breakdown = calculate_enterprise_stats(attempts)

    assert [group["entrepriseName"] for group in breakdown] == ["Acme", "Globex", "Unknown"]
    acme = breakdown[0]
    assert acme["totalAttempts"] == 2
    assert acme["averageScore"] == 80
    assert acme["passRate"] == 100
    assert breakdown[1]["scoreDistribution"]["poor"] == 1
    assert breakdown[2]["scoreDistribution"]["average"] == 1


def test_enterprise_breakdown_of_nothing():
    assert calculate_enterprise_stats([]) == []
