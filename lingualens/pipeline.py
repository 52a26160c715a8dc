"""Facade combining the per-frame filter with the candidate tracker."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Optional

from lingualens.config import PipelineConfig
from lingualens.filtering import ConfusionResolver, FrameFilter
from lingualens.filtering.frame_filter import DetectionInput
from lingualens.knowledge import KnowledgeTables
from lingualens.tracking import CandidateTracker
from lingualens.types import ConfirmedDetection, ScoredDetection

LOGGER = logging.getLogger("lingualens.pipeline")


class DetectionPipeline:
    """Stabilises detector output frame by frame.

    Each instance owns its own tracker state, so independent pipelines can
    run side by side. Calls to ``filter`` and ``reset`` must be serialised by
    the caller; nothing here takes a lock.
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        tables: Optional[KnowledgeTables] = None,
    ) -> None:
        self.config = config or PipelineConfig()
        self.config.validate()
        self.tables = tables or KnowledgeTables.load(self.config.class_dictionary)
        self.resolver = ConfusionResolver(
            self.tables,
            filter_config=self.config.filter,
            tracker_config=self.config.tracker,
        )
        self.frame_filter = FrameFilter(self.tables, config=self.config.filter, resolver=self.resolver)
        self.tracker = CandidateTracker(self.resolver, config=self.config.tracker)
        self.frame_count = 0
        LOGGER.info(
            "Initialised DetectionPipeline confirm_frames=%d class_lock_frames=%d decay_rate=%d",
            self.config.tracker.confirm_frames,
            self.config.tracker.class_lock_frames,
            self.config.tracker.decay_rate,
        )

    @classmethod
    def from_config_file(cls, path: Path, class_dictionary: Optional[Path] = None) -> "DetectionPipeline":
        config = PipelineConfig.load(path)
        if class_dictionary is not None:
            config.class_dictionary = Path(class_dictionary)
        return cls(config)

    def resolve(
        self,
        raw_detections: Iterable[DetectionInput],
        frame_width: int,
        frame_height: int,
    ) -> List[ScoredDetection]:
        """Run only the stateless frame stage; tracker state is untouched."""
        return self.frame_filter.filter(raw_detections, frame_width, frame_height)

    def filter(
        self,
        raw_detections: Iterable[DetectionInput],
        frame_width: int,
        frame_height: int,
    ) -> List[ConfirmedDetection]:
        resolved = self.resolve(raw_detections, frame_width, frame_height)
        confirmed = self.tracker.update(resolved)
        self.frame_count += 1
        return confirmed

    def reset(self) -> None:
        """Forget every tracked identity, e.g. after a context switch."""
        self.tracker.reset()
        self.frame_count = 0
