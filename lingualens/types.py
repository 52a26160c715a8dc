"""Common dataclasses and type aliases used across the lingualens package."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

# Bounding box order: x, y, w, h (source-frame pixel coordinates, unmirrored)
BBox = Tuple[float, float, float, float]

# Identity keys bin coordinates into a coarse grid of this many pixels
KEY_BIN_PX = 40.0


class MalformedDetectionError(ValueError):
    """Raised when a single detector item cannot be interpreted."""


def _coerce_bbox(value: Any) -> BBox:
    if value is None:
        raise MalformedDetectionError("bbox is missing")
    if isinstance(value, (str, bytes)):
        raise MalformedDetectionError(f"bbox must be a sequence of numbers, got {value!r}")
    try:
        coords = [float(v) for v in value]
    except (TypeError, ValueError, OverflowError) as exc:
        raise MalformedDetectionError(f"bbox is not numeric: {value!r}") from exc
    if len(coords) != 4:
        raise MalformedDetectionError(f"bbox must have 4 values, got {len(coords)}")
    if not all(math.isfinite(c) for c in coords):
        raise MalformedDetectionError(f"bbox is not finite: {coords}")
    x, y, w, h = coords
    if w < 0 or h < 0:
        raise MalformedDetectionError(f"bbox has negative size: {coords}")
    if w == 0 and h == 0:
        raise MalformedDetectionError("bbox is empty")
    return x, y, w, h


def _coerce_score(value: Any) -> float:
    if value is None:
        raise MalformedDetectionError("score is missing")
    try:
        score = float(value)
    except (TypeError, ValueError, OverflowError) as exc:
        raise MalformedDetectionError(f"score is not numeric: {value!r}") from exc
    if not math.isfinite(score):
        raise MalformedDetectionError(f"score is not finite: {score}")
    if score < 0.0 or score > 1.0:
        raise MalformedDetectionError(f"score outside [0, 1]: {score}")
    return score


@dataclass(frozen=True)
class RawDetection:
    """Single detector output for one frame."""

    label: str
    bbox: BBox
    score: float

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "RawDetection":
        """Build from the detector wire format ``{"class", "bbox", "score"}``."""
        if not isinstance(data, Mapping):
            raise MalformedDetectionError(f"expected a mapping, got {type(data).__name__}")
        label = data.get("class", data.get("label"))
        if not isinstance(label, str) or not label:
            raise MalformedDetectionError(f"class label is missing: {label!r}")
        return cls(label=label, bbox=_coerce_bbox(data.get("bbox")), score=_coerce_score(data.get("score")))

    def validated(self) -> "RawDetection":
        """Return a normalised copy, raising ``MalformedDetectionError`` if unusable."""
        if not isinstance(self.label, str) or not self.label:
            raise MalformedDetectionError(f"class label is missing: {self.label!r}")
        return RawDetection(self.label, _coerce_bbox(self.bbox), _coerce_score(self.score))


@dataclass
class ScoredDetection:
    """Detection annotated with its aspect plausibility for one pipeline pass."""

    label: str
    bbox: BBox
    adjusted_score: float
    orig_score: float
    aspect_score: float

    @property
    def fit(self) -> float:
        """Aspect-weighted raw confidence used for tie-breaks."""
        return self.aspect_score * self.orig_score


@dataclass
class Candidate:
    """Tracked identity persisted across frames by the candidate tracker."""

    candidate_id: int
    label: str
    bbox: BBox
    score: float
    streak: int = 1

    @property
    def key(self) -> str:
        x, y = self.bbox[0], self.bbox[1]
        return f"{self.label}_{round(x / KEY_BIN_PX)}_{round(y / KEY_BIN_PX)}_{self.candidate_id}"

    def is_confirmed(self, confirm_frames: int) -> bool:
        return self.streak >= confirm_frames

    def is_locked(self, class_lock_frames: int) -> bool:
        return self.streak >= class_lock_frames


@dataclass(frozen=True)
class ConfirmedDetection:
    """Stable detection handed to the renderer."""

    label: str
    bbox: BBox
    score: float
    candidate_id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "class": self.label,
            "bbox": [float(v) for v in self.bbox],
            "score": float(self.score),
            "candidate_id": self.candidate_id,
        }


def iou(box_a: BBox, box_b: BBox) -> float:
    """Compute intersection-over-union between two ``(x, y, w, h)`` boxes."""
    ax, ay, aw, ah = box_a
    bx, by, bw, bh = box_b
    inter_x1 = max(ax, bx)
    inter_y1 = max(ay, by)
    inter_x2 = min(ax + aw, bx + bw)
    inter_y2 = min(ay + ah, by + bh)
    if inter_x2 <= inter_x1 or inter_y2 <= inter_y1:
        return 0.0
    inter_area = (inter_x2 - inter_x1) * (inter_y2 - inter_y1)
    union = aw * ah + bw * bh - inter_area
    if union <= 0:
        return 0.0
    return inter_area / union


def bbox_area(box: BBox) -> float:
    """Compute area of a bounding box."""
    _, _, w, h = box
    return max(0.0, w) * max(0.0, h)


def aspect_ratio(box: BBox) -> Optional[float]:
    """Height over width, or ``None`` for a zero-width box."""
    _, _, w, h = box
    if w == 0:
        return None
    return h / w
