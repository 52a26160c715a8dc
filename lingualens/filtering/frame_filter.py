"""Stateless per-frame filter: aspect scoring, size checks, NMS and confusion resolution."""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Union

from lingualens.config import FilterConfig
from lingualens.filtering.confusion import ConfusionResolver
from lingualens.knowledge import KnowledgeTables
from lingualens.types import MalformedDetectionError, RawDetection, ScoredDetection, bbox_area, iou

LOGGER = logging.getLogger("lingualens.filtering.frame")

DetectionInput = Union[RawDetection, Mapping[str, Any]]


class FrameFilter:
    """Turns one frame of raw detector output into a resolved detection list."""

    def __init__(
        self,
        tables: KnowledgeTables,
        config: Optional[FilterConfig] = None,
        resolver: Optional[ConfusionResolver] = None,
    ) -> None:
        self.tables = tables
        self.config = config or FilterConfig()
        self.resolver = resolver or ConfusionResolver(tables, filter_config=self.config)

    def filter(
        self,
        raw_detections: Iterable[DetectionInput],
        frame_width: int,
        frame_height: int,
    ) -> List[ScoredDetection]:
        if frame_width <= 0 or frame_height <= 0:
            raise ValueError(f"frame size must be positive, got {frame_width}x{frame_height}")
        frame_area = float(frame_width) * float(frame_height)

        raw_items = list(raw_detections)
        detections = self.sanitize(raw_items)
        scored = [self.score(det) for det in detections]
        scored.sort(key=lambda det: det.adjusted_score, reverse=True)
        sized = [det for det in scored if self.size_ok(det, frame_area)]
        confident = [det for det in sized if det.adjusted_score >= self.config.score_floor]
        kept = self.suppress(confident)
        resolved = self.resolver.resolve(kept)
        LOGGER.debug(
            "Frame filter raw=%d valid=%d sized=%d confident=%d nms=%d resolved=%d",
            len(raw_items),
            len(detections),
            len(sized),
            len(confident),
            len(kept),
            len(resolved),
        )
        return resolved

    def sanitize(self, raw_detections: Iterable[DetectionInput]) -> List[RawDetection]:
        """Drop malformed items one by one."""
        valid: List[RawDetection] = []
        for item in raw_detections:
            try:
                if isinstance(item, RawDetection):
                    valid.append(item.validated())
                else:
                    valid.append(RawDetection.from_mapping(item))
            except MalformedDetectionError as exc:
                LOGGER.debug("Dropping malformed detection %r: %s", item, exc)
        return valid

    def score(self, det: RawDetection) -> ScoredDetection:
        multiplier = self.resolver.aspect_score(det.label, det.bbox)
        return ScoredDetection(
            label=det.label,
            bbox=det.bbox,
            adjusted_score=det.score * multiplier,
            orig_score=det.score,
            aspect_score=multiplier,
        )

    def size_ok(self, det: ScoredDetection, frame_area: float) -> bool:
        size_range = self.tables.size_range(det.label)
        if size_range is None:
            return True
        ratio = bbox_area(det.bbox) / frame_area
        lower = size_range.min * self.config.size_min_tolerance
        upper = size_range.max * self.config.size_max_tolerance
        if lower <= ratio <= upper:
            return True
        LOGGER.debug("Size check rejected %s ratio=%.5f window=[%.5f, %.5f]", det.label, ratio, lower, upper)
        return False

    def suppress(self, detections: Sequence[ScoredDetection]) -> List[ScoredDetection]:
        """Greedy non-maximum suppression over score-ordered detections."""
        kept: List[ScoredDetection] = []
        for det in detections:
            if any(iou(det.bbox, other.bbox) > self.config.nms_threshold for other in kept):
                continue
            kept.append(det)
        return kept
