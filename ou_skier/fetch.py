"""Open-Meteo API client for 5-day resort forecasts with batch support."""

import logging
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import requests
from cachetools import TTLCache

from .resorts import Resort

# Configure logging
logger = logging.getLogger(__name__)

# Constants
OPEN_METEO_URL = "https://api.open-meteo.com/v1/forecast"
TIMEZONE = "Europe/Zurich"
FORECAST_DAYS = 5
HOURLY_FIELDS = "temperature_2m,snowfall,snow_depth,windspeed_10m"
DAILY_FIELDS = "snowfall_sum,sunshine_duration,temperature_2m_max,temperature_2m_min"

# Retry settings
MAX_RETRIES = 5
CONNECT_TIMEOUT = 10.0
READ_TIMEOUT = 60.0
BACKOFF_BASE = 1.0  # seconds

# HTTP codes that trigger retry
RETRY_STATUS_CODES = {408, 429, 500, 502, 503, 504}

# Cache settings
CACHE_TTL_SECONDS = 3600
CACHE_MAXSIZE = 32
MIN_REQUEST_INTERVAL = 0.5  # seconds between upstream calls


class WeatherFetchError(RuntimeError):
    """Raised when weather data cannot be fetched or fails validation."""
    pass


@dataclass(frozen=True)
class HourlySeries:
    """Hourly forecast arrays, up to 120 points (5 days x 24h)."""
    time: List[str]
    temperature_2m: List[Optional[float]]
    snowfall: List[Optional[float]]  # cm
    snow_depth: List[Optional[float]]  # cm (converted from API unit)
    windspeed_10m: List[Optional[float]]  # m/s
    apparent_temperature: Optional[List[Optional[float]]] = None
    windgusts_10m: Optional[List[Optional[float]]] = None
    direct_radiation: Optional[List[Optional[float]]] = None


@dataclass(frozen=True)
class DailySeries:
    """Daily forecast arrays, one point per forecast day."""
    time: List[str]  # ISO dates
    snowfall_sum: List[Optional[float]]  # cm
    sunshine_duration: List[Optional[float]]  # seconds
    temperature_2m_max: List[Optional[float]]
    temperature_2m_min: List[Optional[float]]


@dataclass(frozen=True)
class WeatherResponse:
    """Forecast for a single resort location."""
    latitude: float
    longitude: float
    timezone: str
    hourly: HourlySeries
    daily: DailySeries
    elevation: Optional[float] = None
    generationtime_ms: Optional[float] = None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _convert_to_cm(value: Optional[float], unit: str) -> Optional[float]:
    """Convert snow values to cm based on unit from API."""
    if value is None:
        return None
    if unit == "m":
        return value * 100
    elif unit == "cm":
        return value
    elif unit == "mm":
        return value / 10
    else:
        return value


def _parse_series(block: Dict[str, Any], name: str, section: str, required: bool = True) -> Optional[List[Optional[float]]]:
    """Validate a numeric series; None entries are kept as gaps."""
    if name not in block:
        if required:
            raise WeatherFetchError(f"Invalid weather data: missing {section}.{name}")
        return None
    values = block[name]
    if not isinstance(values, list):
        raise WeatherFetchError(f"Invalid weather data: {section}.{name} is not a list")
    for v in values:
        if v is not None and not _is_number(v):
            raise WeatherFetchError(f"Invalid weather data: {section}.{name} contains {v!r}")
    return [float(v) if v is not None else None for v in values]


def _parse_times(block: Dict[str, Any], section: str) -> List[str]:
    times = block.get("time")
    if not isinstance(times, list) or not all(isinstance(t, str) for t in times):
        raise WeatherFetchError(f"Invalid weather data: {section}.time must be a list of strings")
    return list(times)


def parse_weather_response(data: Dict[str, Any]) -> WeatherResponse:
    """Validate one location's JSON payload and build a WeatherResponse.

    Snow depth is normalised to cm using ``hourly_units``.

    Raises:
        WeatherFetchError: If required fields are missing or mistyped.
    """
    if not isinstance(data, dict):
        raise WeatherFetchError(f"Invalid weather data: expected object, got {type(data).__name__}")

    for key in ("latitude", "longitude"):
        if not _is_number(data.get(key)):
            raise WeatherFetchError(f"Invalid weather data: missing {key}")
    if not isinstance(data.get("timezone"), str):
        raise WeatherFetchError("Invalid weather data: missing timezone")

    hourly = data.get("hourly")
    daily = data.get("daily")
    if not isinstance(hourly, dict) or not isinstance(daily, dict):
        raise WeatherFetchError("Invalid weather data: missing hourly or daily block")

    hourly_units = data.get("hourly_units", {})
    depth_unit = hourly_units.get("snow_depth", "m")
    snowfall_unit = hourly_units.get("snowfall", "cm")

    snow_depth = _parse_series(hourly, "snow_depth", "hourly")
    snowfall = _parse_series(hourly, "snowfall", "hourly")

    return WeatherResponse(
        latitude=float(data["latitude"]),
        longitude=float(data["longitude"]),
        timezone=data["timezone"],
        elevation=data.get("elevation"),
        generationtime_ms=data.get("generationtime_ms"),
        hourly=HourlySeries(
            time=_parse_times(hourly, "hourly"),
            temperature_2m=_parse_series(hourly, "temperature_2m", "hourly"),
            snowfall=[_convert_to_cm(v, snowfall_unit) for v in snowfall],
            snow_depth=[_convert_to_cm(v, depth_unit) for v in snow_depth],
            windspeed_10m=_parse_series(hourly, "windspeed_10m", "hourly"),
            apparent_temperature=_parse_series(hourly, "apparent_temperature", "hourly", required=False),
            windgusts_10m=_parse_series(hourly, "windgusts_10m", "hourly", required=False),
            direct_radiation=_parse_series(hourly, "direct_radiation", "hourly", required=False),
        ),
        daily=DailySeries(
            time=_parse_times(daily, "daily"),
            snowfall_sum=_parse_series(daily, "snowfall_sum", "daily"),
            sunshine_duration=_parse_series(daily, "sunshine_duration", "daily"),
            temperature_2m_max=_parse_series(daily, "temperature_2m_max", "daily"),
            temperature_2m_min=_parse_series(daily, "temperature_2m_min", "daily"),
        ),
    )


def _should_retry(response: Optional[requests.Response] = None,
                  exception: Optional[Exception] = None) -> bool:
    """Check if request should be retried."""
    if exception is not None:
        # Retry on timeout and connection errors
        if isinstance(exception, (requests.Timeout, requests.ConnectionError)):
            return True
    if response is not None:
        return response.status_code in RETRY_STATUS_CODES
    return False


def _http_get_with_retry(
    url: str,
    params: dict,
    max_retries: int = MAX_RETRIES,
    connect_timeout: float = CONNECT_TIMEOUT,
    read_timeout: float = READ_TIMEOUT,
) -> requests.Response:
    """HTTP GET with exponential backoff and retries.

    Raises:
        WeatherFetchError: If all retries exhausted or non-retryable error.
    """
    last_error: Optional[str] = None

    for attempt in range(max_retries):
        try:
            resp = requests.get(
                url,
                params=params,
                timeout=(connect_timeout, read_timeout)
            )
        except requests.RequestException as e:
            if not _should_retry(exception=e):
                raise WeatherFetchError(f"Open-Meteo request failed: {e}") from e
            last_error = f"{e.__class__.__name__}: {e}"
            wait_time = BACKOFF_BASE * (2 ** attempt)
            logger.warning(
                f"Request failed with {e.__class__.__name__}, "
                f"retry {attempt + 1}/{max_retries} in {wait_time:.1f}s"
            )
            time.sleep(wait_time)
            continue

        if _should_retry(response=resp):
            last_error = f"HTTP {resp.status_code}"
            wait_time = BACKOFF_BASE * (2 ** attempt)
            logger.warning(
                f"Request failed with {resp.status_code}, "
                f"retry {attempt + 1}/{max_retries} in {wait_time:.1f}s"
            )
            time.sleep(wait_time)
            continue

        if resp.status_code != 200:
            raise WeatherFetchError(f"Open-Meteo returned {resp.status_code}: {resp.text}")

        return resp

    raise WeatherFetchError(
        f"Open-Meteo request failed after {max_retries} retries: {last_error}"
    )


def _build_params(resorts: List[Resort]) -> Dict[str, Any]:
    return {
        "latitude": ",".join(str(r.coordinates.lat) for r in resorts),
        "longitude": ",".join(str(r.coordinates.lon) for r in resorts),
        "hourly": HOURLY_FIELDS,
        "daily": DAILY_FIELDS,
        "timezone": TIMEZONE,
        "forecast_days": FORECAST_DAYS,
        "wind_speed_unit": "ms",
    }


def _fetch_batch(resorts: List[Resort]) -> List[WeatherResponse]:
    """Fetch and validate forecasts for all resorts in a single request."""
    resp = _http_get_with_retry(OPEN_METEO_URL, _build_params(resorts))
    try:
        data = resp.json()
    except ValueError as e:
        raise WeatherFetchError(f"Open-Meteo returned invalid JSON: {e}") from e

    # Multiple locations: list. Single location: the object itself.
    if isinstance(data, list):
        items = data
    elif isinstance(data, dict) and isinstance(data.get("results"), list):
        items = data["results"]
    else:
        items = [data]

    if len(items) != len(resorts):
        raise WeatherFetchError(
            f"Response length mismatch: got {len(items)}, expected {len(resorts)}"
        )

    return [parse_weather_response(item) for item in items]


def coordinates_key(resorts: List[Resort]) -> str:
    """Serialized coordinate list identifying a batch request."""
    return ";".join(f"{r.coordinates.lat},{r.coordinates.lon}" for r in resorts)


class WeatherCache:
    """Request cache for batched forecasts.

    - concurrent requests for the same coordinate set share one upstream call
    - upstream calls are spaced at least ``min_interval`` seconds apart
    - completed responses are kept for ``ttl`` seconds

    The owner decides the lifetime (one per process, one per test).
    """

    def __init__(
        self,
        ttl: float = CACHE_TTL_SECONDS,
        min_interval: float = MIN_REQUEST_INTERVAL,
        maxsize: int = CACHE_MAXSIZE,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.ttl = ttl
        self.min_interval = min_interval
        self.maxsize = maxsize
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._throttle_lock = threading.Lock()
        self._results: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl, timer=clock)
        self._in_flight: Dict[str, Future] = {}
        self._last_request: Optional[float] = None

    def clear(self) -> None:
        """Drop cached results and the throttle checkpoint."""
        with self._lock:
            self._results.clear()
            self._in_flight.clear()
        with self._throttle_lock:
            self._last_request = None

    def _throttle(self) -> None:
        with self._throttle_lock:
            if self._last_request is not None:
                wait = self._last_request + self.min_interval - self._clock()
                if wait > 0:
                    logger.debug(f"Throttling upstream call for {wait:.2f}s")
                    self._sleep(wait)
            self._last_request = self._clock()

    def get(
        self,
        resorts: List[Resort],
        fetcher: Callable[[List[Resort]], List[WeatherResponse]],
    ) -> List[WeatherResponse]:
        """Return cached responses or call ``fetcher`` once for this batch."""
        key = coordinates_key(resorts)
        with self._lock:
            cached = self._results.get(key)
            if cached is not None:
                logger.debug(f"Weather cache hit ({len(resorts)} resorts)")
                return cached
            future = self._in_flight.get(key)
            owner = future is None
            if owner:
                future = Future()
                self._in_flight[key] = future

        if not owner:
            logger.debug("Joining in-flight weather request")
            return future.result()

        logger.debug(f"Weather cache miss ({len(resorts)} resorts)")
        try:
            self._throttle()
            result = fetcher(resorts)
        except BaseException as e:
            with self._lock:
                self._in_flight.pop(key, None)
            future.set_exception(e)
            raise

        with self._lock:
            self._results[key] = result
            self._in_flight.pop(key, None)
        future.set_result(result)
        return result


def fetch_weather_for_resorts(
    resorts: List[Resort],
    cache: Optional[WeatherCache] = None,
) -> List[WeatherResponse]:
    """Fetch 5-day forecasts for all resorts, aligned by index.

    Args:
        resorts: Resorts to fetch weather for.
        cache: Optional request cache; without one every call hits the API.

    Returns:
        One WeatherResponse per resort, same order as ``resorts``.

    Raises:
        WeatherFetchError: On HTTP failure or invalid payload.
    """
    if not resorts:
        return []

    logger.info(f"Fetching weather for {len(resorts)} resorts")
    if cache is None:
        return _fetch_batch(resorts)
    return cache.get(resorts, _fetch_batch)
