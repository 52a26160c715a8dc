"""YOLO-based COCO object detector wrapper producing raw detections."""

from __future__ import annotations

import logging
from typing import List, Optional

import numpy as np

from lingualens.types import RawDetection

LOGGER = logging.getLogger("lingualens.detectors.coco_yolo")


class YOLOObjectDetector:
    """Thin wrapper around Ultralytics YOLO returning ``(x, y, w, h)`` detections."""

    def __init__(
        self,
        weights: str,
        device: Optional[str] = None,
        conf_thres: float = 0.25,
        iou_thres: float = 0.5,
        max_detections: int = 20,
    ) -> None:
        try:
            from ultralytics import YOLO
        except ImportError as exc:  # pragma: no cover - import guard
            raise RuntimeError(
                "ultralytics is required for YOLOObjectDetector. "
                "Install it via `pip install ultralytics`."
            ) from exc

        self.model = YOLO(weights)
        resolved_device = device
        if resolved_device is None:
            try:
                import torch  # type: ignore

                if hasattr(torch.backends, "mps") and torch.backends.mps.is_available():
                    resolved_device = "mps"
                elif torch.cuda.is_available():
                    resolved_device = "cuda"
            except ImportError:  # pragma: no cover - optional dependency
                resolved_device = None
        if resolved_device is not None:
            try:
                self.model.to(resolved_device)
            except Exception as exc:  # pragma: no cover - device probing
                LOGGER.warning(
                    "YOLO detector could not use device=%s (%s); falling back to auto.",
                    resolved_device,
                    exc,
                )
                resolved_device = None
        self.device = resolved_device or "auto"
        self.conf_thres = conf_thres
        self.iou_thres = iou_thres
        self.max_detections = max_detections
        self.class_names = dict(getattr(self.model, "names", {}) or {})
        LOGGER.info(
            "Loaded YOLO object detector weights=%s device=%s conf=%.2f classes=%d",
            weights,
            self.device,
            conf_thres,
            len(self.class_names),
        )

    def detect(self, image: np.ndarray) -> List[RawDetection]:
        """Run inference on a single frame."""
        results = self.model.predict(
            source=image,
            conf=self.conf_thres,
            iou=self.iou_thres,
            max_det=self.max_detections,
            verbose=False,
        )
        detections: List[RawDetection] = []
        for result in results:
            if result.boxes is None:
                continue
            names = getattr(result, "names", None) or self.class_names
            for box in result.boxes:
                cls = int(box.cls.item()) if box.cls is not None else -1
                label = names.get(cls)
                if label is None:
                    continue
                score = float(box.conf.item()) if box.conf is not None else 0.0
                x1, y1, x2, y2 = (float(v) for v in box.xyxy.cpu().numpy().flatten()[:4])
                detections.append(RawDetection(label=label, bbox=(x1, y1, x2 - x1, y2 - y1), score=score))
        return detections
