"""Reduce raw forecast arrays into the metrics used for scoring."""

from dataclasses import dataclass
from typing import List, Optional, Sequence

from .fetch import WeatherResponse

HOURS_PER_DAY = 24
SNOWFALL_WINDOW_HOURS = 48
SECONDS_PER_HOUR = 3600


@dataclass(frozen=True)
class WeatherMetrics:
    """Compact weather summary for one scoring window."""
    snowfall: float  # cm, first 48h or one day's sum
    snow_depth: float  # cm
    temperature_avg: float  # °C
    wind_speed_avg: float  # m/s
    sunshine_hours: float  # h


def _present(values: Sequence[Optional[float]]) -> List[float]:
    return [v for v in values if v is not None]


def _mean(values: Sequence[Optional[float]]) -> float:
    """Arithmetic mean ignoring gaps; 0 for an empty window."""
    present = _present(values)
    return sum(present) / len(present) if present else 0.0


def _at(values: Sequence[Optional[float]], index: int) -> float:
    """Value at index, 0 when absent or out of range."""
    if 0 <= index < len(values) and values[index] is not None:
        return values[index]
    return 0.0


def extract_weather_metrics(data: WeatherResponse) -> WeatherMetrics:
    """Metrics over the whole 5-day response.

    Snowfall covers the first 48 hours, temperature and wind the first 24,
    snow depth is the latest value and sunshine the sum of all days.
    """
    hourly = data.hourly
    return WeatherMetrics(
        snowfall=sum(_present(hourly.snowfall[:SNOWFALL_WINDOW_HOURS])),
        snow_depth=_at(hourly.snow_depth, len(hourly.snow_depth) - 1),
        temperature_avg=_mean(hourly.temperature_2m[:HOURS_PER_DAY]),
        wind_speed_avg=_mean(hourly.windspeed_10m[:HOURS_PER_DAY]),
        sunshine_hours=sum(_present(data.daily.sunshine_duration)) / SECONDS_PER_HOUR,
    )


def extract_day_metrics(data: WeatherResponse, day: int) -> WeatherMetrics:
    """Metrics for a single forecast day (0 = soonest).

    Uses hours [day*24, day*24+24); snowfall is the day's daily sum and snow
    depth the first hour of the day.
    """
    hourly = data.hourly
    daily = data.daily
    start = day * HOURS_PER_DAY
    end = start + HOURS_PER_DAY
    return WeatherMetrics(
        snowfall=_at(daily.snowfall_sum, day),
        snow_depth=_at(hourly.snow_depth[start:end], 0),
        temperature_avg=_mean(hourly.temperature_2m[start:end]),
        wind_speed_avg=_mean(hourly.windspeed_10m[start:end]),
        sunshine_hours=_at(daily.sunshine_duration, day) / SECONDS_PER_HOUR,
    )


def extract_metrics(data: WeatherResponse, day: Optional[int] = None) -> WeatherMetrics:
    """Whole-response metrics when ``day`` is None, otherwise one day's."""
    if day is None:
        return extract_weather_metrics(data)
    return extract_day_metrics(data, day)
