"""Static knowledge tables for class disambiguation."""

from .tables import (
    ASPECT_HINTS,
    CONFUSION_GROUPS,
    DEFAULT_CLASS_DICTIONARY,
    AspectHint,
    KnowledgeTables,
    SizeRange,
)

__all__ = [
    "ASPECT_HINTS",
    "CONFUSION_GROUPS",
    "DEFAULT_CLASS_DICTIONARY",
    "AspectHint",
    "KnowledgeTables",
    "SizeRange",
]
