"""Upstream detector adapters."""


# Lazy import keeps ultralytics optional for the filtering core
def __getattr__(name):
    if name == "YOLOObjectDetector":
        from .coco_yolo import YOLOObjectDetector
        return YOLOObjectDetector
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["YOLOObjectDetector"]
