"""Historical sunset summaries: best days and score statistics."""

from __future__ import annotations

import statistics
from collections.abc import Sequence

from .models import ForecastDay, HistoricalStatistics

SCORE_BANDS: tuple[tuple[str, int, int], ...] = (
    ("0-24", 0, 24),
    ("25-49", 25, 49),
    ("50-74", 50, 74),
    ("75-100", 75, 100),
)


def top_sunsets(days: Sequence[ForecastDay], top_n: int = 5) -> list[ForecastDay]:
    """Return the ``top_n`` highest-scoring days; earlier dates win ties."""
    if top_n <= 0:
        return []
    ranked = sorted(days, key=lambda day: (-day.sunset_score, day.date))
    return ranked[:top_n]


def compute_statistics(days: Sequence[ForecastDay]) -> HistoricalStatistics:
    """Aggregate scores over ``days``; empty input yields zeroed statistics."""
    distribution = {label: 0 for label, _, _ in SCORE_BANDS}
    if not days:
        return HistoricalStatistics(distribution=distribution)

    scores = [day.sunset_score for day in days]
    for value in scores:
        for label, low, high in SCORE_BANDS:
            if low <= value <= high:
                distribution[label] += 1
                break

    best = top_sunsets(days, top_n=1)[0]
    return HistoricalStatistics(
        day_count=len(scores),
        average_score=round(statistics.fmean(scores), 1),
        median_score=float(statistics.median(scores)),
        best_score=max(scores),
        worst_score=min(scores),
        best_date=best.date,
        distribution=distribution,
    )


def summarize(
    days: Sequence[ForecastDay], top_n: int = 5
) -> tuple[list[ForecastDay], HistoricalStatistics]:
    """Return the best days and aggregate statistics for a historical run."""
    return top_sunsets(days, top_n=top_n), compute_statistics(days)
