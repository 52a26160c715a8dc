"""Aspect-plausibility scoring and tie-breaks between confusable classes."""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from lingualens.config import FilterConfig, TrackerConfig
from lingualens.knowledge import AspectHint, KnowledgeTables
from lingualens.types import BBox, ScoredDetection, aspect_ratio, iou

LOGGER = logging.getLogger("lingualens.filtering.confusion")


def aspect_multiplier(
    hint: Optional[AspectHint],
    bbox: BBox,
    floor: float = 0.3,
    penalty: float = 3.0,
    zero_width: float = 0.5,
) -> float:
    """Score how plausible the box proportions are for a class (1.0 = inside window)."""
    if hint is None:
        return 1.0
    aspect = aspect_ratio(bbox)
    if aspect is None:
        return zero_width
    if hint.min <= aspect <= hint.max:
        return 1.0
    if aspect < hint.min:
        distance = (hint.min - aspect) / hint.min
    else:
        distance = (aspect - hint.max) / hint.max
    return max(floor, 1.0 - distance * hint.weight * penalty)


class ConfusionResolver:
    """Prefers the interpretation with the higher aspect-weighted raw confidence."""

    def __init__(
        self,
        tables: KnowledgeTables,
        filter_config: Optional[FilterConfig] = None,
        tracker_config: Optional[TrackerConfig] = None,
    ) -> None:
        self.tables = tables
        self.filter_config = filter_config or FilterConfig()
        self.tracker_config = tracker_config or TrackerConfig()

    def aspect_score(self, label: str, bbox: BBox) -> float:
        cfg = self.filter_config
        return aspect_multiplier(
            self.tables.aspect_hint(label),
            bbox,
            floor=cfg.aspect_floor,
            penalty=cfg.aspect_penalty,
            zero_width=cfg.zero_width_multiplier,
        )

    def fit(self, label: str, bbox: BBox, confidence: float) -> float:
        return self.aspect_score(label, bbox) * confidence

    def conflicts(self, a: ScoredDetection, b: ScoredDetection) -> bool:
        return (
            self.tables.same_group(a.label, b.label)
            and iou(a.bbox, b.bbox) > self.filter_config.confusion_threshold
        )

    def resolve(self, kept: Sequence[ScoredDetection]) -> List[ScoredDetection]:
        """Keep at most one member of each confusion group per overlapping region.

        ``kept`` is expected in descending adjusted-score order. A later
        detection only displaces an earlier one when its fit is strictly
        higher; the winner takes the loser's slot so output order is stable.
        """
        resolved: List[ScoredDetection] = []
        for det in kept:
            if self.tables.group_of(det.label) is None:
                resolved.append(det)
                continue
            rival_idx = None
            for idx, other in enumerate(resolved):
                if self.conflicts(det, other):
                    rival_idx = idx
                    break
            if rival_idx is None:
                resolved.append(det)
                continue
            rival = resolved[rival_idx]
            if det.fit > rival.fit:
                LOGGER.debug(
                    "Confusion: %s (fit=%.3f) replaces %s (fit=%.3f)",
                    det.label,
                    det.fit,
                    rival.label,
                    rival.fit,
                )
                resolved[rival_idx] = det
            else:
                LOGGER.debug(
                    "Confusion: dropping %s (fit=%.3f) in favour of %s (fit=%.3f)",
                    det.label,
                    det.fit,
                    rival.label,
                    rival.fit,
                )
        return resolved

    def challenger_wins(self, existing_fit: float, new_fit: float) -> bool:
        """Whether a challenger is decisively better than a locked identity."""
        return new_fit >= existing_fit * self.tracker_config.lock_margin
