"""Scoring weight configuration."""

import logging
import math
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Dict, Optional

import yaml

logger = logging.getLogger(__name__)

WEIGHTS_PATH = Path(__file__).parent / "weights.yaml"

# Environment overrides
ENV_PROFILE = "OU_SKIER_WEIGHTS"
ENV_WEIGHTS_FILE = "OU_SKIER_WEIGHTS_FILE"

WEIGHT_SUM_TOLERANCE = 1e-6


@dataclass(frozen=True)
class ScoringWeights:
    """Fractional weight per scoring factor.

    Validated on construction: every weight is non-negative and the seven
    weights sum to 1.0.
    """
    recent_snowfall: float
    snow_depth: float
    forecast_snowfall: float
    piste_openings: float
    wind: float
    temperature: float
    sunshine: float

    def __post_init__(self):
        for name, value in self.as_dict().items():
            if value < 0:
                raise ValueError(f"Weight '{name}' must be non-negative, got {value}")
        total = self.total()
        if not math.isclose(total, 1.0, abs_tol=WEIGHT_SUM_TOLERANCE):
            raise ValueError(f"Scoring weights must sum to 1.0, got {total:.4f}")

    def as_dict(self) -> Dict[str, float]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def total(self) -> float:
        return sum(self.as_dict().values())

    @classmethod
    def from_dict(cls, data: Dict[str, float]) -> "ScoringWeights":
        """Build weights from a factor -> fraction mapping.

        Raises:
            ValueError: If a factor is missing or unknown, or values are invalid.
        """
        expected = {f.name for f in fields(cls)}
        missing = expected - set(data)
        unknown = set(data) - expected
        if missing or unknown:
            raise ValueError(
                f"Weights must cover exactly {sorted(expected)}; "
                f"missing={sorted(missing)}, unknown={sorted(unknown)}"
            )
        return cls(**{name: float(value) for name, value in data.items()})


# Sunshine-leaning table; forecast snowfall is not used in daily scoring.
DEFAULT_WEIGHTS = ScoringWeights(
    recent_snowfall=0.25,
    snow_depth=0.15,
    forecast_snowfall=0.0,
    piste_openings=0.20,
    wind=0.10,
    temperature=0.05,
    sunshine=0.25,
)


@dataclass
class WeightProfiles:
    """Named weight tables loaded from YAML."""
    profiles: Dict[str, ScoringWeights]
    default_profile: str

    def get(self, name: Optional[str] = None) -> ScoringWeights:
        """Return a profile by name (default profile when name is None).

        Raises:
            KeyError: If the profile does not exist.
        """
        key = name or self.default_profile
        if key not in self.profiles:
            raise KeyError(f"Unknown weight profile '{key}'. Available: {sorted(self.profiles)}")
        return self.profiles[key]


def load_weight_profiles(yaml_path: Optional[Path] = None) -> WeightProfiles:
    """Load and validate every weight profile from YAML.

    Args:
        yaml_path: Path to YAML file. Defaults to $OU_SKIER_WEIGHTS_FILE,
            then weights.yaml in same directory.
    """
    if yaml_path is None:
        env_path = os.environ.get(ENV_WEIGHTS_FILE)
        yaml_path = Path(env_path) if env_path else WEIGHTS_PATH

    with open(yaml_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    raw_profiles = data.get("profiles", {})
    if not raw_profiles:
        raise ValueError(f"{yaml_path}: no weight profiles defined")

    profiles = {}
    for name, table in raw_profiles.items():
        try:
            profiles[name] = ScoringWeights.from_dict(table)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid weight profile '{name}': {e}") from e

    default_profile = data.get("default_profile", next(iter(profiles)))
    if default_profile not in profiles:
        raise ValueError(f"{yaml_path}: default_profile '{default_profile}' is not defined")

    logger.debug(f"Loaded {len(profiles)} weight profiles from {yaml_path}")
    return WeightProfiles(profiles=profiles, default_profile=default_profile)


def resolve_weights(
    profile: Optional[str] = None,
    yaml_path: Optional[Path] = None,
) -> ScoringWeights:
    """Pick the weight table for this run.

    Precedence: explicit profile, then $OU_SKIER_WEIGHTS, then the file's
    default profile.
    """
    profiles = load_weight_profiles(yaml_path)
    name = profile or os.environ.get(ENV_PROFILE)
    weights = profiles.get(name)
    logger.info(f"Using weight profile '{name or profiles.default_profile}'")
    return weights
