"""Configuration dataclasses for the detection filter pipeline."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Type, TypeVar

from lingualens.io_utils import load_yaml, resolve_path

LOGGER = logging.getLogger("lingualens.config")

T = TypeVar("T")


@dataclass
class FilterConfig:
    """Thresholds for the stateless per-frame filter."""

    score_floor: float = 0.45
    nms_threshold: float = 0.35
    confusion_threshold: float = 0.3
    # Aspect scoring
    aspect_floor: float = 0.3
    aspect_penalty: float = 3.0
    zero_width_multiplier: float = 0.5
    # Size validation tolerance applied to the class-dictionary ranges
    size_min_tolerance: float = 0.5
    size_max_tolerance: float = 2.0

    def validate(self) -> None:
        for name in ("score_floor", "nms_threshold", "confusion_threshold", "aspect_floor", "zero_width_multiplier"):
            _check_unit(name, getattr(self, name))
        if self.aspect_penalty < 0:
            raise ValueError(f"aspect_penalty must be >= 0, got {self.aspect_penalty}")
        if self.size_min_tolerance < 0 or self.size_max_tolerance <= 0:
            raise ValueError("size tolerances must be positive")


@dataclass
class TrackerConfig:
    """Hysteresis settings for the candidate tracker."""

    confirm_frames: int = 8
    class_lock_frames: int = 12
    decay_rate: int = 2
    exact_iou: float = 0.25
    spatial_iou: float = 0.4
    # Exponential blend weight kept from the previous score
    score_blend: float = 0.6
    locked_score_blend: float = 0.7
    # Challenger fit must reach existing fit times this to break a class lock
    lock_margin: float = 1.3

    def validate(self) -> None:
        if self.confirm_frames < 1:
            raise ValueError(f"confirm_frames must be >= 1, got {self.confirm_frames}")
        if self.class_lock_frames < self.confirm_frames:
            raise ValueError(
                f"class_lock_frames ({self.class_lock_frames}) must be >= confirm_frames ({self.confirm_frames})"
            )
        if self.decay_rate < 1:
            raise ValueError(f"decay_rate must be >= 1, got {self.decay_rate}")
        for name in ("exact_iou", "spatial_iou", "score_blend", "locked_score_blend"):
            _check_unit(name, getattr(self, name))
        if self.lock_margin <= 0:
            raise ValueError(f"lock_margin must be > 0, got {self.lock_margin}")


@dataclass
class PipelineConfig:
    """Combined configuration for a ``DetectionPipeline``."""

    filter: FilterConfig = field(default_factory=FilterConfig)
    tracker: TrackerConfig = field(default_factory=TrackerConfig)
    class_dictionary: Optional[Path] = None

    def validate(self) -> None:
        self.filter.validate()
        self.tracker.validate()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], base_dir: Optional[Path] = None) -> "PipelineConfig":
        known = {"filter", "tracker", "class_dictionary"}
        for key in data:
            if key not in known:
                LOGGER.warning("Ignoring unknown pipeline config key %r", key)
        class_dictionary = data.get("class_dictionary")
        config = cls(
            filter=_section(FilterConfig, data.get("filter") or {}, "filter"),
            tracker=_section(TrackerConfig, data.get("tracker") or {}, "tracker"),
            class_dictionary=resolve_path(class_dictionary, base_dir) if class_dictionary else None,
        )
        config.validate()
        return config

    @classmethod
    def load(cls, path: Path) -> "PipelineConfig":
        """Load a YAML pipeline config; relative paths resolve against its directory."""
        path = Path(path)
        config = cls.from_dict(load_yaml(path), base_dir=path.parent)
        LOGGER.info(
            "Loaded pipeline config %s confirm_frames=%d class_lock_frames=%d nms=%.2f",
            path,
            config.tracker.confirm_frames,
            config.tracker.class_lock_frames,
            config.filter.nms_threshold,
        )
        return config

    def to_dict(self) -> Dict[str, Any]:
        return {
            "filter": asdict(self.filter),
            "tracker": asdict(self.tracker),
            "class_dictionary": str(self.class_dictionary) if self.class_dictionary else None,
        }


def _section(kind: Type[T], values: Mapping[str, Any], name: str) -> T:
    if not isinstance(values, Mapping):
        raise ValueError(f"config section {name!r} must be a mapping")
    allowed = {f.name for f in fields(kind)}  # type: ignore[arg-type]
    kwargs = {}
    for key, value in values.items():
        if key not in allowed:
            LOGGER.warning("Ignoring unknown %s config key %r", name, key)
            continue
        kwargs[key] = value
    return kind(**kwargs)  # type: ignore[call-arg]


def _check_unit(name: str, value: float) -> None:
    if not 0.0 <= float(value) <= 1.0:
        raise ValueError(f"{name} must be within [0, 1], got {value}")
