"""Configuration helpers for the residence patch pipeline.

Provides YAML loading, nested lookups with defaults, and typed parameter sets
for the cleaning, gap-inference and patch-construction stages.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml


def load_config(path: str | Path) -> Dict[str, Any]:
    """Load a YAML configuration file."""

    with Path(path).open("r", encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


def get_nested(config: Dict[str, Any], keys: list[str], default: Any) -> Any:
    """Retrieve a nested value from a config dict with a default."""

    current: Any = config
    for key in keys:
        if not isinstance(current, dict) or key not in current:
            return default
        current = current[key]
    return current


@dataclass(frozen=True)
class CleaningParams:
    """Quality-filter and smoothing settings for raw fixes."""

    moving_window: int = 3
    nbs_min: int = 0
    sd_threshold: float = 2000.0
    filter_speed: bool = True
    speed_cutoff: float = 150.0
    tag_prefix: int = 31001000000
    aggregate_interval: Optional[float] = None

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "CleaningParams":
        section = cfg.get("cleaning", {}) or {}
        interval = get_nested(cfg, ["aggregation", "interval"], None)
        return cls(
            moving_window=int(section.get("moving_window", cls.moving_window)),
            nbs_min=int(section.get("nbs_min", cls.nbs_min)),
            sd_threshold=float(section.get("sd_threshold", cls.sd_threshold)),
            filter_speed=bool(section.get("filter_speed", cls.filter_speed)),
            speed_cutoff=float(section.get("speed_cutoff", cls.speed_cutoff)),
            tag_prefix=int(section.get("tag_prefix", cls.tag_prefix)),
            aggregate_interval=float(interval) if interval else None,
        )


@dataclass(frozen=True)
class InferenceParams:
    """Gap-inference and classification settings."""

    inf_patch_time_diff: float = 30.0
    inf_patch_spat_diff: float = 100.0
    res_time_limit: float = 2.0
    travel_seg: Optional[int] = None

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "InferenceParams":
        inference = cfg.get("inference", {}) or {}
        classification = cfg.get("classification", {}) or {}
        travel_seg = classification.get("travel_seg")
        return cls(
            inf_patch_time_diff=float(inference.get("inf_patch_time_diff", cls.inf_patch_time_diff)),
            inf_patch_spat_diff=float(inference.get("inf_patch_spat_diff", cls.inf_patch_spat_diff)),
            res_time_limit=float(classification.get("res_time_limit", cls.res_time_limit)),
            travel_seg=int(travel_seg) if travel_seg else None,
        )


@dataclass(frozen=True)
class PatchParams:
    """Patch construction and independence limits."""

    buffer_size: float = 10.0
    spat_indep_lim: float = 100.0
    temp_indep_lim: float = 30.0
    rest_indep_lim: Optional[float] = None
    min_fixes: int = 3
    tide_limits: Optional[Tuple[float, float]] = None

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "PatchParams":
        section = cfg.get("patches", {}) or {}
        rest = section.get("rest_indep_lim")
        limits = section.get("tide_limits")
        return cls(
            buffer_size=float(section.get("buffer_size", cls.buffer_size)),
            spat_indep_lim=float(section.get("spat_indep_lim", cls.spat_indep_lim)),
            temp_indep_lim=float(section.get("temp_indep_lim", cls.temp_indep_lim)),
            rest_indep_lim=float(rest) if rest is not None else None,
            min_fixes=int(section.get("min_fixes", cls.min_fixes)),
            tide_limits=(float(limits[0]), float(limits[1])) if limits else None,
        )
