"""Scoring engine for ski conditions."""

import math
from dataclasses import dataclass
from typing import Optional, Sequence

from .config import DEFAULT_WEIGHTS, ScoringWeights
from .fetch import WeatherResponse
from .metrics import WeatherMetrics, extract_weather_metrics
from .resorts import Resort, open_piste_percentage, round_half_up

# Saturation points for the linear factors
SNOWFALL_FULL_CM = 50.0
SNOW_DEPTH_FULL_CM = 300.0
FORECAST_SNOWFALL_FULL_CM = 100.0
WIND_ZERO_MS = 20.0
SUNSHINE_FULL_HOURS = 40.0

# Temperature curve: Gaussian peaking at the best snow temperature
TEMPERATURE_OPTIMAL_C = -6.0
TEMPERATURE_STD_DEV = 3.0


@dataclass(frozen=True)
class ScoreBreakdown:
    """Per-factor sub-scores, each in [0, 100]."""
    recent_snowfall: float
    snow_depth: float
    forecast_snowfall: float
    piste_openings: float
    wind: float
    temperature: float
    sunshine: float


@dataclass(frozen=True)
class ScoreResult:
    """Weighted total and the breakdown it came from."""
    total: int  # 0-100
    breakdown: ScoreBreakdown


@dataclass(frozen=True)
class ScoredResort:
    """Resort with its score. rank 0 means not ranked yet."""
    resort: Resort
    score: int
    breakdown: ScoreBreakdown
    weather: WeatherResponse
    rank: int = 0


def clamp(value: float, min_val: float, max_val: float) -> float:
    """Clamp value to [min_val, max_val]."""
    return max(min_val, min(max_val, value))


def snowfall_score(snowfall_cm: float) -> float:
    """0cm = 0 points, 50cm+ = 100 points."""
    return min(100.0, snowfall_cm / SNOWFALL_FULL_CM * 100)


def snow_depth_score(snow_depth_cm: float) -> float:
    """0cm = 0 points, 300cm+ = 100 points."""
    return min(100.0, snow_depth_cm / SNOW_DEPTH_FULL_CM * 100)


def forecast_snowfall_score(snowfall_cm: Sequence[Optional[float]]) -> float:
    """Linear over the summed window, 100cm total = 100 points."""
    total = sum(v for v in snowfall_cm if v is not None)
    return min(100.0, total / FORECAST_SNOWFALL_FULL_CM * 100)


def wind_score(wind_speed_ms: float) -> float:
    """Inverse linear: 0 m/s = 100 points, 20+ m/s = 0 points."""
    return max(0.0, 100 - wind_speed_ms / WIND_ZERO_MS * 100)


def temperature_score(temperature_c: float) -> float:
    """Gaussian around -6°C; -6 gives 100, 0 gives ~13.5."""
    exponent = -((temperature_c - TEMPERATURE_OPTIMAL_C) ** 2) / (2 * TEMPERATURE_STD_DEV ** 2)
    return min(100.0, 100 * math.exp(exponent))


def sunshine_score(sunshine_hours: float) -> float:
    """0h = 0 points, 40h+ = 100 points."""
    return min(100.0, sunshine_hours / SUNSHINE_FULL_HOURS * 100)


def calculate_score(
    resort: Resort,
    metrics: WeatherMetrics,
    forecast_snowfall: Sequence[Optional[float]],
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> ScoreResult:
    """Combine metrics and resort data into a 0-100 score.

    ``forecast_snowfall`` is the full daily snowfall array for the 5-day
    view, or a single day's value wrapped in a list for day scoring.
    """
    breakdown = ScoreBreakdown(
        recent_snowfall=clamp(snowfall_score(metrics.snowfall), 0, 100),
        snow_depth=clamp(snow_depth_score(metrics.snow_depth), 0, 100),
        forecast_snowfall=clamp(forecast_snowfall_score(forecast_snowfall), 0, 100),
        piste_openings=clamp(open_piste_percentage(resort), 0, 100),
        wind=clamp(wind_score(metrics.wind_speed_avg), 0, 100),
        temperature=clamp(temperature_score(metrics.temperature_avg), 0, 100),
        sunshine=clamp(sunshine_score(metrics.sunshine_hours), 0, 100),
    )

    weighted = sum(
        getattr(breakdown, factor) * weight
        for factor, weight in weights.as_dict().items()
    )
    total = int(clamp(round_half_up(weighted), 0, 100))

    return ScoreResult(total=total, breakdown=breakdown)


def calculate_resort_score(
    resort: Resort,
    weather: WeatherResponse,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> ScoredResort:
    """Score a resort over the whole 5-day forecast (unranked)."""
    metrics = extract_weather_metrics(weather)
    result = calculate_score(resort, metrics, weather.daily.snowfall_sum, weights)
    return ScoredResort(
        resort=resort,
        score=result.total,
        breakdown=result.breakdown,
        weather=weather,
    )
