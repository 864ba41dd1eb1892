"""
Evaluation Statistics

Aggregates over attempt records (mappings with at least ``termine``,
``pourcentage`` and ``temps_utilise``; ``entreprise_nom`` for the
per-company breakdown).
"""

import math
from collections import OrderedDict
from typing import Any, Dict, Iterable, List, Mapping

PASS_THRESHOLD = 70.0
EXCELLENT_THRESHOLD = 90.0
AVERAGE_THRESHOLD = 50.0
UNKNOWN_ENTREPRISE = "Unknown"


def empty_distribution() -> Dict[str, int]:
    return {"excellent": 0, "good": 0, "average": 0, "poor": 0}


def score_bucket(pourcentage: float) -> str:
    """Distribution bucket of a completed attempt; every percentage maps to exactly one."""
    if pourcentage >= EXCELLENT_THRESHOLD:
        return "excellent"
    if pourcentage >= PASS_THRESHOLD:
        return "good"
    if pourcentage >= AVERAGE_THRESHOLD:
        return "average"
    return "poor"


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_evaluation_stats(attempts: Iterable[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Compute aggregate statistics over a collection of attempts.

    Averages, pass rate and the distribution only consider completed
    attempts. Rates are percentages rounded to 2 dp; the average time is
    rounded to whole seconds.

    Args:
        attempts: Attempt records

    Returns:
        Dictionary with totalAttempts, completedAttempts, averageScore,
        passRate, completionRate, averageTime and scoreDistribution
    """
    attempts = list(attempts)
    if not attempts:
        return {
            "totalAttempts": 0,
            "completedAttempts": 0,
            "averageScore": 0,
            "passRate": 0,
            "completionRate": 0,
            "averageTime": 0,
            "scoreDistribution": empty_distribution(),
        }

    completed = [a for a in attempts if a.get("termine")]
    percentages = [float(a.get("pourcentage") or 0) for a in completed]

    distribution = empty_distribution()
    for pourcentage in percentages:
        distribution[score_bucket(pourcentage)] += 1

    if completed:
        average_score = sum(percentages) / len(completed)
        pass_rate = len([p for p in percentages if p >= PASS_THRESHOLD]) / len(completed) * 100
        average_time = sum(int(a.get("temps_utilise") or 0) for a in completed) / len(completed)
    else:
        average_score = pass_rate = average_time = 0.0

    return {
        "totalAttempts": len(attempts),
        "completedAttempts": len(completed),
        "averageScore": round(average_score, 2),
        "passRate": round(pass_rate, 2),
        "completionRate": round(len(completed) / len(attempts) * 100, 2),
        "averageTime": _round_half_up(average_time),
        "scoreDistribution": distribution,
    }


def calculate_enterprise_stats(attempts: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """
    Group attempts by company name and compute statistics per group.

    Attempts without a resolvable company fall into the "Unknown" group.
    Groups keep the order in which their first attempt appears.
    """
    groups: "OrderedDict[str, List[Mapping[str, Any]]]" = OrderedDict()
    for attempt in attempts:
        name = attempt.get("entreprise_nom") or UNKNOWN_ENTREPRISE
        groups.setdefault(name, []).append(attempt)

    return [
        {"entrepriseName": name, **calculate_evaluation_stats(group)}
        for name, group in groups.items()
    ]
