"""
epigeo/config.py

All configuration dataclasses for two-view geometry.
ALL default values live here - no hardcoded numbers elsewhere.
"""

from __future__ import annotations
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any, Mapping, Union

from epigeo.utils.parsing import load_data


@dataclass
class VerificationConfig:
    """Parameters for accepting/rejecting a view pair."""
    match_count_min: int = 8               # Min unique pairs AND min RANSAC inliers
    ransac_thresh_px: float = 3.0          # Max distance (px) from the epipolar line
    ransac_confidence: float = 0.99        # Probability the estimate is outlier-free


@dataclass
class TriangulationConfig:
    """Parameters for iterative reweighted triangulation."""
    max_iterations: int = 10               # Hartley suggests 10 at most
    epsilon: float = 1e-4                  # Weight change that stops reweighting


@dataclass
class PoseConfig:
    """Parameters for projection-matrix recovery from F."""
    # Flip the last singular vector of U / V when det < 0 so the
    # rotation candidates U W V^T are proper rotations.
    enforce_proper_rotation: bool = True


# Flat parameter keys understood by EpipolarConfig.apply_parameters()
PARAM_MATCH_COUNT_MIN = "VhEp/MatchCountMin"
PARAM_RANSAC_PARAM1 = "VhEp/RansacParam1"
PARAM_RANSAC_PARAM2 = "VhEp/RansacParam2"


@dataclass
class EpipolarConfig:
    """
    Master configuration.

    Usage:
        # Default config
        config = EpipolarConfig()

        # Modify specific values
        config.verification.match_count_min = 20
        config.triangulation.epsilon = 1e-6

        # From a flat parameter map (string values are parsed)
        config.apply_parameters({"VhEp/MatchCountMin": "12"})
    """
    verification: VerificationConfig = field(default_factory=VerificationConfig)
    triangulation: TriangulationConfig = field(default_factory=TriangulationConfig)
    pose: PoseConfig = field(default_factory=PoseConfig)

    # Logging
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "EpipolarConfig":
        """Create config from dictionary (e.g., loaded from YAML/JSON)."""
        if d is None:
            d = {}
        return cls(
            verification=VerificationConfig(**d.get("verification", {})),
            triangulation=TriangulationConfig(**d.get("triangulation", {})),
            pose=PoseConfig(**d.get("pose", {})),
            log_level=d.get("log_level", "INFO"),
        )

    def to_dict(self) -> dict:
        """Convert config to dictionary (for saving to YAML/JSON)."""
        return asdict(self)

    def apply_parameters(self, parameters: Mapping[str, Any]) -> None:
        """
        Override verification thresholds from a flat key/value map.
        Unknown keys are ignored; values may be strings.
        """
        if not parameters:
            return
        if PARAM_MATCH_COUNT_MIN in parameters:
            self.verification.match_count_min = _parse_int(parameters[PARAM_MATCH_COUNT_MIN], PARAM_MATCH_COUNT_MIN)
        if PARAM_RANSAC_PARAM1 in parameters:
            self.verification.ransac_thresh_px = _parse_float(parameters[PARAM_RANSAC_PARAM1], PARAM_RANSAC_PARAM1)
        if PARAM_RANSAC_PARAM2 in parameters:
            self.verification.ransac_confidence = _parse_float(parameters[PARAM_RANSAC_PARAM2], PARAM_RANSAC_PARAM2)


def _parse_int(value: Any, key: str) -> int:
    try:
        return int(str(value).strip())
    except ValueError as e:
        raise ValueError(f"Parameter {key} expects an int, got {value!r}") from e


def _parse_float(value: Any, key: str) -> float:
    try:
        return float(str(value).strip())
    except ValueError as e:
        raise ValueError(f"Parameter {key} expects a float, got {value!r}") from e


def load_config(path: Union[str, Path]) -> EpipolarConfig:
    """Load an EpipolarConfig from a .json/.yaml file."""
    obj = load_data(path)
    if not isinstance(obj, dict):
        raise ValueError(f"Config file must contain a mapping, got {type(obj).__name__}: {path}")
    return EpipolarConfig.from_dict(obj)


# ============================================================
# PRESET CONFIGURATIONS
# ============================================================

def get_default_config() -> EpipolarConfig:
    """Defaults used for loop-closure style pair verification."""
    return EpipolarConfig()


def get_strict_config() -> EpipolarConfig:
    """Tighter epipolar gate and more required inliers, for wide-baseline pairs."""
    return EpipolarConfig(
        verification=VerificationConfig(
            match_count_min=20,
            ransac_thresh_px=1.0,
            ransac_confidence=0.999,
        ),
        triangulation=TriangulationConfig(
            max_iterations=10,
            epsilon=1e-6,
        ),
    )
