"""
Core package init for LinguaLens detection filtering.

Turns noisy per-frame detector output into a stable stream of confirmed
detections.
"""

from .config import FilterConfig, PipelineConfig, TrackerConfig
from .pipeline import DetectionPipeline
from .types import ConfirmedDetection, RawDetection

__all__ = [
    "ConfirmedDetection",
    "DetectionPipeline",
    "FilterConfig",
    "PipelineConfig",
    "RawDetection",
    "TrackerConfig",
    "config",
    "detectors",
    "filtering",
    "io_utils",
    "knowledge",
    "pipeline",
    "tracking",
    "types",
]
