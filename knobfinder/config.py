"""
Configuration management for knobfinder
"""

import copy
from dataclasses import dataclass, asdict, fields, replace as dc_replace
from pathlib import Path
from typing import Dict, Any, Tuple, Union

import yaml


DEFAULT_CONFIG = {
    "detection": {
        "max_side": 900,
        "min_radius": 8,
        "max_radius": 64,
        "radius_step": 2,
        "edge_percentile": 0.65,
        "vote_threshold_fraction": 0.45,
        "max_results": 96,
        "nms_radius": 12,
        "enable_angle_fallback": True
    },
    "preprocessing": {
        "contrast": 1.05,
        "blur_sigma": 1.6
    },
    "presets": {
        "standard": {},
        "band": {
            "radius_step": 4,
            "edge_percentile": 0.53,
            "vote_threshold_fraction": 0.32,
            "max_results": 64,
            "nms_radius": 18
        },
        "relaxed": {
            "radius_step": 2,
            "edge_percentile": 0.40,
            "vote_threshold_fraction": 0.22,
            "max_results": 128,
            "nms_radius": 12
        }
    }
}

_DETECTION = DEFAULT_CONFIG["detection"]


@dataclass(frozen=True)
class DetectorConfig:
    """
    Tuning surface of the circle detector.

    Attributes:
        max_side: Long edge (px) the image is downscaled to before processing
        min_radius: Smallest radius searched, in working pixels
        max_radius: Largest radius searched, in working pixels
        radius_step: Radius increment used while voting
        edge_percentile: Documents the intended edge density; the adaptive
            threshold itself is derived from the magnitude distribution
        vote_threshold_fraction: Vote acceptance fraction kept for callers
            that tune per-pass strictness
        max_results: Upper bound on returned circles
        nms_radius: Centers closer than this (px) are merged
        enable_angle_fallback: Run the isotropic angle-sweep pass when the
            directional pass finds nothing
    """
    max_side: float = _DETECTION["max_side"]
    min_radius: float = _DETECTION["min_radius"]
    max_radius: float = _DETECTION["max_radius"]
    radius_step: float = _DETECTION["radius_step"]
    edge_percentile: float = _DETECTION["edge_percentile"]
    vote_threshold_fraction: float = _DETECTION["vote_threshold_fraction"]
    max_results: int = _DETECTION["max_results"]
    nms_radius: float = _DETECTION["nms_radius"]
    enable_angle_fallback: bool = _DETECTION["enable_angle_fallback"]

    def __post_init__(self):
        if self.max_side <= 0:
            raise ValueError(f"max_side must be positive, got {self.max_side}")
        if self.min_radius < 1:
            raise ValueError(f"min_radius must be >= 1, got {self.min_radius}")
        if self.min_radius > self.max_radius:
            raise ValueError(
                f"min_radius ({self.min_radius}) exceeds max_radius ({self.max_radius})"
            )
        if self.radius_step <= 0:
            raise ValueError(f"radius_step must be positive, got {self.radius_step}")
        if self.max_results < 0:
            raise ValueError(f"max_results must be >= 0, got {self.max_results}")
        if self.nms_radius < 0:
            raise ValueError(f"nms_radius must be >= 0, got {self.nms_radius}")

    @property
    def radius_range(self) -> Tuple[int, int, int]:
        """Integer (r_min, r_max, r_step) used by the voting and sampling stages."""
        r_min = int(_round_half_away(self.min_radius))
        r_max = int(_round_half_away(self.max_radius))
        r_step = max(1, int(_round_half_away(self.radius_step)))
        return r_min, r_max, r_step

    def replace(self, **changes) -> "DetectorConfig":
        """Return a copy with the given fields changed."""
        return dc_replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> "DetectorConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ValueError(f"Unknown detector config keys: {', '.join(unknown)}")
        return cls(**values)

    @classmethod
    def from_preset(cls, name: str, **overrides) -> "DetectorConfig":
        """
        Build a config from a named preset.

        Args:
            name: One of the keys of DEFAULT_CONFIG["presets"]
            **overrides: Fields to change on top of the preset

        Returns:
            DetectorConfig
        """
        presets = DEFAULT_CONFIG["presets"]
        if name not in presets:
            raise KeyError(f"Unknown preset '{name}', expected one of {sorted(presets)}")
        values = dict(presets[name])
        values.update(overrides)
        return cls.from_dict(values)


def _round_half_away(value: float) -> float:
    if value >= 0:
        return float(int(value + 0.5))
    return -float(int(-value + 0.5))


def suggest_radius_range(width: int, height: int) -> Tuple[float, float]:
    """Radius window scaled to the working image, as used for faceplate scans."""
    ref = max(80.0, float(min(width, height)))
    min_radius = max(8.0, ref * 0.08)
    max_radius = min(120.0, ref * 0.22)
    return min_radius, max_radius


def get_preprocessing_config() -> Dict[str, float]:
    return copy.deepcopy(DEFAULT_CONFIG["preprocessing"])


def load_config(config_path: Union[str, Path]) -> DetectorConfig:
    """
    Load a detector config from a YAML file.

    The file may hold the config fields at top level or under a
    ``detection`` section, and may name a ``preset`` to start from.

    Args:
        config_path: Path to the YAML file

    Returns:
        DetectorConfig
    """
    with open(config_path, 'r') as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Config file {config_path} must contain a mapping")

    values = dict(data.get("detection", data))
    preset = values.pop("preset", data.get("preset", "standard"))
    values.pop("detection", None)
    return DetectorConfig.from_preset(preset, **values)
