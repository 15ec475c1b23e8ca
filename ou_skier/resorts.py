"""Resort data loader from YAML (schema_version: 1)."""

import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import yaml

# Configure logging
logger = logging.getLogger(__name__)

REGIONS = ("Valais", "Vaud", "Bern")

# Swiss Alps bounding box
LAT_RANGE = (45.0, 48.0)
LON_RANGE = (5.0, 11.0)


class ResortDataError(ValueError):
    """Raised when the resort file itself is unusable."""
    pass


@dataclass(frozen=True)
class Coordinates:
    """Geographic coordinates of a resort."""
    lat: float
    lon: float


@dataclass(frozen=True)
class PisteInfo:
    """Piste length in km. open <= total is expected but not enforced."""
    total: float
    open: float


@dataclass(frozen=True)
class Resort:
    """Swiss ski resort with static metadata."""
    id: str
    name: str
    region: str  # one of REGIONS
    coordinates: Coordinates
    elevation: float  # m
    piste_info: PisteInfo


@dataclass
class LoadResult:
    """Result of loading resorts from YAML."""
    resorts: List[Resort]
    n_skipped: int
    skipped_ids: List[str]


def _is_valid_coordinates(lat: float, lon: float) -> bool:
    """Check if coordinates fall inside the Swiss Alps bounding box."""
    return LAT_RANGE[0] <= lat <= LAT_RANGE[1] and LON_RANGE[0] <= lon <= LON_RANGE[1]


def _parse_resort(data: dict) -> Resort:
    """Parse and validate a single resort entry.

    Raises:
        ValueError: If any field is missing, non-numeric or out of range.
    """
    try:
        resort_id = str(data["id"])
        coords = data["coordinates"]
        piste = data["piste_info"]
        lat = float(coords["lat"])
        lon = float(coords["lon"])
        elevation = float(data["elevation"])
        total = float(piste["total"])
        open_km = float(piste["open"])
        name = str(data["name"])
        region = data["region"]
    except (KeyError, TypeError, ValueError) as e:
        raise ValueError(f"malformed entry ({e!r})") from e

    if region not in REGIONS:
        raise ValueError(f"unknown region {region!r}")
    if not _is_valid_coordinates(lat, lon):
        raise ValueError(f"coordinates outside Swiss Alps (lat={lat}, lon={lon})")
    if elevation <= 0:
        raise ValueError(f"elevation must be positive, got {elevation}")
    if total <= 0:
        raise ValueError(f"piste total must be positive, got {total}")
    if open_km < 0:
        raise ValueError(f"open pistes must be non-negative, got {open_km}")

    return Resort(
        id=resort_id,
        name=name,
        region=region,
        coordinates=Coordinates(lat=lat, lon=lon),
        elevation=elevation,
        piste_info=PisteInfo(total=total, open=open_km),
    )


def load_resorts(yaml_path: Optional[Path] = None) -> LoadResult:
    """Load resorts from YAML file (schema_version: 1).

    Invalid entries are skipped with a warning rather than failing the load.

    Args:
        yaml_path: Path to YAML file. Defaults to resorts.yaml in same directory.

    Returns:
        LoadResult with resorts and skip statistics.

    Raises:
        ResortDataError: If the file has no ``resorts`` list.
    """
    if yaml_path is None:
        yaml_path = Path(__file__).parent / "resorts.yaml"

    with open(yaml_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    entries = data.get("resorts")
    if not isinstance(entries, list):
        raise ResortDataError(f"{yaml_path}: missing 'resorts' list")

    resorts = []
    skipped_ids = []

    for r in entries:
        if not isinstance(r, dict):
            logger.warning(f"Skipping resort entry {r!r}: not a mapping")
            skipped_ids.append(str(r))
            continue
        resort_id = r.get("id", r.get("name", "unknown"))
        try:
            resorts.append(_parse_resort(r))
        except ValueError as e:
            logger.warning(f"Skipping resort '{resort_id}': {e}")
            skipped_ids.append(resort_id)

    if skipped_ids:
        logger.info(f"Skipped {len(skipped_ids)} invalid resorts: {skipped_ids}")

    return LoadResult(
        resorts=resorts,
        n_skipped=len(skipped_ids),
        skipped_ids=skipped_ids,
    )


def get_resort_by_id(resorts: List[Resort], resort_id: str) -> Optional[Resort]:
    """Return the resort with the given id, or None."""
    return next((r for r in resorts if r.id == resort_id), None)


def get_resorts_by_region(resorts: List[Resort], region: str) -> List[Resort]:
    """Return resorts in a region, keeping input order."""
    return [r for r in resorts if r.region == region]


def open_piste_percentage(resort: Resort) -> int:
    """Percentage of open pistes, rounded half-up. 0 when total is 0."""
    total = resort.piste_info.total
    if total <= 0:
        return 0
    return round_half_up(resort.piste_info.open / total * 100)


def round_half_up(value: float) -> int:
    """Round to nearest integer, .5 going up (12.5 -> 13)."""
    return math.floor(value + 0.5)
