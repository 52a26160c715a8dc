"""Static knowledge tables: confusion groups, aspect hints and size ranges."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, Mapping, Optional, Sequence

from lingualens.io_utils import load_yaml

LOGGER = logging.getLogger("lingualens.knowledge")

DEFAULT_CLASS_DICTIONARY = Path(__file__).with_name("classes.yaml")

# Classes the detector commonly mistakes for one another
CONFUSION_GROUPS: Sequence[Sequence[str]] = (
    ("cell phone", "remote", "mouse", "hair drier"),
    ("cup", "bowl", "vase", "bottle"),
    ("knife", "scissors", "fork"),
    ("couch", "bed"),
    ("skateboard", "surfboard"),
    ("laptop", "tv", "book"),
    ("backpack", "handbag", "suitcase"),
)


@dataclass(frozen=True)
class AspectHint:
    """Expected height/width window for a class."""

    min: float
    max: float
    weight: float


@dataclass(frozen=True)
class SizeRange:
    """Expected box-area / frame-area window for a size category."""

    min: float
    max: float


ASPECT_HINTS: Mapping[str, AspectHint] = {
    "person": AspectHint(1.2, 4.0, 0.5),
    "bottle": AspectHint(1.4, 4.5, 0.8),
    "wine glass": AspectHint(1.2, 3.0, 0.6),
    "cup": AspectHint(0.6, 1.6, 0.6),
    "bowl": AspectHint(0.3, 0.9, 0.8),
    "vase": AspectHint(1.0, 3.0, 0.6),
    "cell phone": AspectHint(0.4, 2.5, 0.4),
    "remote": AspectHint(0.2, 5.0, 0.3),
    "mouse": AspectHint(0.4, 1.2, 0.5),
    "hair drier": AspectHint(0.6, 1.8, 0.4),
    "laptop": AspectHint(0.5, 1.1, 0.5),
    "tv": AspectHint(0.4, 0.95, 0.6),
    "book": AspectHint(0.5, 1.7, 0.3),
    "couch": AspectHint(0.3, 0.8, 0.6),
    "bed": AspectHint(0.3, 1.0, 0.5),
    "chair": AspectHint(0.9, 2.2, 0.5),
    "refrigerator": AspectHint(1.3, 2.8, 0.7),
    "clock": AspectHint(0.8, 1.25, 0.5),
    "keyboard": AspectHint(0.1, 0.5, 0.6),
    "backpack": AspectHint(1.0, 1.8, 0.4),
    "handbag": AspectHint(0.6, 1.4, 0.3),
    "suitcase": AspectHint(0.9, 1.8, 0.3),
    "toilet": AspectHint(0.9, 1.8, 0.4),
    "dining table": AspectHint(0.3, 1.0, 0.4),
    "skateboard": AspectHint(0.15, 0.6, 0.5),
    "surfboard": AspectHint(0.15, 4.0, 0.2),
}


class KnowledgeTables:
    """Immutable lookup tables shared by the filter and the tracker."""

    def __init__(
        self,
        size_ranges: Mapping[str, SizeRange],
        class_sizes: Mapping[str, str],
        confusion_groups: Iterable[Iterable[str]] = CONFUSION_GROUPS,
        aspect_hints: Mapping[str, AspectHint] = ASPECT_HINTS,
    ) -> None:
        self._groups: Dict[str, FrozenSet[str]] = {}
        for members in confusion_groups:
            group = frozenset(members)
            for label in group:
                if label in self._groups:
                    raise ValueError(f"class {label!r} belongs to more than one confusion group")
                self._groups[label] = group
        self._aspect_hints = dict(aspect_hints)
        self._size_ranges = dict(size_ranges)
        self._class_sizes: Dict[str, str] = {}
        for label, category in class_sizes.items():
            if category not in self._size_ranges:
                LOGGER.warning("Class %r references unknown size category %r; skipping size check", label, category)
                continue
            self._class_sizes[label] = category

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "KnowledgeTables":
        """Load the class dictionary (bundled COCO dictionary by default)."""
        path = Path(path) if path is not None else DEFAULT_CLASS_DICTIONARY
        data = load_yaml(path)
        size_ranges = {
            name: SizeRange(min=float(bounds["min"]), max=float(bounds["max"]))
            for name, bounds in (data.get("size_ranges") or {}).items()
        }
        class_sizes = {
            label: entry["size"]
            for label, entry in (data.get("classes") or {}).items()
            if isinstance(entry, Mapping) and entry.get("size")
        }
        tables = cls(size_ranges=size_ranges, class_sizes=class_sizes)
        LOGGER.info(
            "Loaded class dictionary %s classes=%d size_categories=%d",
            path,
            len(class_sizes),
            len(size_ranges),
        )
        return tables

    def group_of(self, label: str) -> Optional[FrozenSet[str]]:
        return self._groups.get(label)

    def same_group(self, label_a: str, label_b: str) -> bool:
        group = self._groups.get(label_a)
        return group is not None and label_b in group

    def aspect_hint(self, label: str) -> Optional[AspectHint]:
        return self._aspect_hints.get(label)

    def size_range(self, label: str) -> Optional[SizeRange]:
        category = self._class_sizes.get(label)
        if category is None:
            return None
        return self._size_ranges[category]
