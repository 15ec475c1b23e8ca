"""Resort ranking and multi-day score precomputation."""

import logging
from dataclasses import dataclass, replace
from typing import List, Optional, Sequence

from .config import DEFAULT_WEIGHTS, ScoringWeights
from .fetch import WeatherResponse
from .metrics import extract_day_metrics
from .resorts import Resort
from .score import ScoreBreakdown, ScoredResort, calculate_resort_score, calculate_score

logger = logging.getLogger(__name__)

N_FORECAST_DAYS = 5


class ResortWeatherMismatchError(ValueError):
    """Resort count does not match weather response count."""
    pass


@dataclass(frozen=True)
class DayScore:
    """Score of one resort on one forecast day."""
    day: int  # 0-4
    date: str  # ISO date from daily.time
    score: int
    breakdown: ScoreBreakdown


@dataclass(frozen=True)
class MultiDayScoredResort:
    """Resort with all 5 day scores precomputed."""
    resort: Resort
    day_scores: List[DayScore]
    weather: WeatherResponse


@dataclass(frozen=True)
class DayRankings:
    """Resorts ranked by a single day's score."""
    day: int
    date: Optional[str]  # None when there are no resorts
    resorts: List[ScoredResort]


def rank_resorts(scored: Sequence[ScoredResort]) -> List[ScoredResort]:
    """Sort by score descending and assign ranks 1..N.

    Equal scores keep their input order.
    """
    ordered = sorted(scored, key=lambda r: -r.score)
    return [replace(r, rank=i + 1) for i, r in enumerate(ordered)]


def top_resorts(ranked: Sequence[ScoredResort], count: int = 3) -> List[ScoredResort]:
    """Return the first ``count`` ranked resorts."""
    return list(ranked[:count])


def score_resorts(
    resorts: Sequence[Resort],
    weather: Sequence[WeatherResponse],
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> List[ScoredResort]:
    """Score each resort against the response at the same index, then rank.

    Raises:
        ResortWeatherMismatchError: If the two sequences differ in length.
    """
    if len(resorts) != len(weather):
        raise ResortWeatherMismatchError(
            f"Mismatch between number of resorts ({len(resorts)}) "
            f"and weather responses ({len(weather)})"
        )

    scored = [calculate_resort_score(r, w, weights) for r, w in zip(resorts, weather)]
    return rank_resorts(scored)


def calculate_resort_scores_for_all_days(
    resort: Resort,
    weather: WeatherResponse,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> MultiDayScoredResort:
    """Precompute the score of every forecast day for one resort."""
    daily = weather.daily
    day_scores = []
    for day in range(N_FORECAST_DAYS):
        metrics = extract_day_metrics(weather, day)
        day_snowfall = daily.snowfall_sum[day] if day < len(daily.snowfall_sum) else None
        result = calculate_score(resort, metrics, [day_snowfall or 0.0], weights)
        day_scores.append(DayScore(
            day=day,
            date=daily.time[day] if day < len(daily.time) else "",
            score=result.total,
            breakdown=result.breakdown,
        ))

    return MultiDayScoredResort(resort=resort, day_scores=day_scores, weather=weather)


def score_all_days(
    resorts: Sequence[Resort],
    weather: Sequence[WeatherResponse],
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> List[MultiDayScoredResort]:
    """Precompute day scores for a batch of resorts.

    Raises:
        ResortWeatherMismatchError: If the two sequences differ in length.
    """
    if len(resorts) != len(weather):
        raise ResortWeatherMismatchError(
            f"Mismatch between number of resorts ({len(resorts)}) "
            f"and weather responses ({len(weather)})"
        )
    return [calculate_resort_scores_for_all_days(r, w, weights) for r, w in zip(resorts, weather)]


def clamp_day_index(day: int) -> int:
    """Clamp a requested day into [0, 4]. Callers apply this before ranking."""
    return max(0, min(N_FORECAST_DAYS - 1, day))


def score_resorts_for_day(
    multi_day_resorts: Sequence[MultiDayScoredResort],
    day_index: int,
) -> DayRankings:
    """Rank resorts by their precomputed score on ``day_index``.

    ``day_index`` is not validated; pass it through ``clamp_day_index`` first.
    """
    for_day = []
    for entry in multi_day_resorts:
        day_score = entry.day_scores[day_index]
        for_day.append(ScoredResort(
            resort=entry.resort,
            score=day_score.score,
            breakdown=day_score.breakdown,
            weather=entry.weather,
        ))

    date = multi_day_resorts[0].day_scores[day_index].date if multi_day_resorts else None
    logger.debug(f"Ranking {len(for_day)} resorts for day {day_index} ({date})")
    return DayRankings(day=day_index, date=date, resorts=rank_resorts(for_day))
