"""Temporal voting over resolved detections with confirm/decay/class-lock hysteresis."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence, Set, Tuple

from lingualens.config import TrackerConfig
from lingualens.filtering.confusion import ConfusionResolver
from lingualens.types import Candidate, ConfirmedDetection, ScoredDetection, iou

LOGGER = logging.getLogger("lingualens.tracking.candidates")


class CandidateTracker:
    """Owns the candidate map that persists across frames.

    Matching is a linear scan over live candidates for every detection. With
    at most a few dozen detections and candidates per frame this stays cheap;
    an index would only pay off for much larger taxonomies.
    """

    def __init__(self, resolver: ConfusionResolver, config: Optional[TrackerConfig] = None) -> None:
        self.resolver = resolver
        self.config = config or TrackerConfig()
        self._candidates: Dict[int, Candidate] = {}
        self._next_id = 1

    def __len__(self) -> int:
        return len(self._candidates)

    @property
    def candidates(self) -> List[Candidate]:
        """Snapshot of live candidates in ascending id order."""
        return [self._candidates[cid] for cid in sorted(self._candidates)]

    def reset(self) -> None:
        if self._candidates:
            LOGGER.debug("Resetting tracker, dropping %d candidates", len(self._candidates))
        self._candidates.clear()

    def update(self, resolved: Sequence[ScoredDetection]) -> List[ConfirmedDetection]:
        cfg = self.config
        seen: Set[int] = set()
        confirmed: List[ConfirmedDetection] = []

        for det in resolved:
            exact, spatial = self._match(det)

            if exact is not None:
                exact.streak += 1
                exact.score = exact.score * cfg.score_blend + det.adjusted_score * (1.0 - cfg.score_blend)
                exact.bbox = det.bbox
                seen.add(exact.candidate_id)
                candidate = exact
            elif spatial is not None and spatial.is_locked(cfg.class_lock_frames) and not self._challenger_wins(
                spatial, det
            ):
                spatial.bbox = det.bbox
                spatial.score = spatial.score * cfg.locked_score_blend + det.orig_score * (
                    1.0 - cfg.locked_score_blend
                )
                seen.add(spatial.candidate_id)
                LOGGER.debug(
                    "Class lock held %s against %s (score=%.3f streak=%d)",
                    spatial.key,
                    det.label,
                    spatial.score,
                    spatial.streak,
                )
                if spatial.is_confirmed(cfg.confirm_frames):
                    confirmed.append(
                        ConfirmedDetection(
                            label=spatial.label,
                            bbox=spatial.bbox,
                            score=spatial.score,
                            candidate_id=spatial.candidate_id,
                        )
                    )
                continue
            else:
                candidate = self._create(det)
                seen.add(candidate.candidate_id)

            if candidate.is_confirmed(cfg.confirm_frames):
                confirmed.append(
                    ConfirmedDetection(
                        label=det.label,
                        bbox=det.bbox,
                        score=det.orig_score,
                        candidate_id=candidate.candidate_id,
                    )
                )

        self._decay(seen)
        return confirmed

    def _match(self, det: ScoredDetection) -> Tuple[Optional[Candidate], Optional[Candidate]]:
        """Return the lowest-id exact match and, failing that, the lowest-id spatial match."""
        spatial: Optional[Candidate] = None
        for cid in sorted(self._candidates):
            candidate = self._candidates[cid]
            overlap = iou(candidate.bbox, det.bbox)
            if candidate.label == det.label and overlap > self.config.exact_iou:
                return candidate, None
            if spatial is None and overlap > self.config.spatial_iou:
                spatial = candidate
        return None, spatial

    def _challenger_wins(self, locked: Candidate, det: ScoredDetection) -> bool:
        existing_fit = self.resolver.fit(locked.label, det.bbox, locked.score)
        new_fit = self.resolver.fit(det.label, det.bbox, det.adjusted_score)
        return self.resolver.challenger_wins(existing_fit, new_fit)

    def _create(self, det: ScoredDetection) -> Candidate:
        candidate = Candidate(
            candidate_id=self._next_id,
            label=det.label,
            bbox=det.bbox,
            score=det.adjusted_score,
            streak=1,
        )
        self._next_id += 1
        self._candidates[candidate.candidate_id] = candidate
        LOGGER.debug("New candidate %s score=%.3f", candidate.key, candidate.score)
        return candidate

    def _decay(self, seen: Set[int]) -> None:
        for cid in list(self._candidates):
            if cid in seen:
                continue
            candidate = self._candidates[cid]
            candidate.streak -= self.config.decay_rate
            if candidate.streak <= 0:
                LOGGER.debug("Evicting candidate %s", candidate.key)
                del self._candidates[cid]
