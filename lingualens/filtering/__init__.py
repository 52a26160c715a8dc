"""Per-frame detection filtering."""

from .confusion import ConfusionResolver, aspect_multiplier
from .frame_filter import FrameFilter

__all__ = ["ConfusionResolver", "FrameFilter", "aspect_multiplier"]
