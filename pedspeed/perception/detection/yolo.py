from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import numpy as np
import torch
from ultralytics import YOLO

from pedspeed.runtime.interfaces import Detector
from pedspeed.utils.logger import get_logger
from pedspeed.utils.types import Detection, DetectorResult


class YOLODetector(Detector):
    """
    Ultralytics YOLO wrapper returning normalized (x1, y1, x2, y2) boxes.
    Class filtering to the tracked label happens in the orchestrator; this
    only drops classes outside `allowed_classes` when one is given.
    """

    def __init__(
        self,
        model_name: str = "yolo11n.pt",
        device: str | None = None,
        conf_thres: float = 0.25,
        allowed_classes: Optional[List[str]] = None,
    ):
        self.logger = get_logger(__name__)
        self.device = device or ("mps" if torch.backends.mps.is_available() else "cpu")
        # Bare names ("yolo11n.pt") are fetched by ultralytics; explicit paths must exist.
        weights = Path(model_name)
        if weights.parent != Path(".") and not weights.exists():
            raise FileNotFoundError(f"Detector weights not found: {weights.resolve()}")
        self.model = YOLO(model_name)
        self.model.to(self.device)
        self.conf_thres = conf_thres
        self.allowed_classes = {c.lower() for c in allowed_classes} if allowed_classes else None
        self.logger.info("YOLO detector ready: model=%s device=%s", model_name, self.device)

    def detect(self, frame: np.ndarray) -> DetectorResult:
        """
        Run YOLO inference on a single frame.
        """
        h, w = frame.shape[:2]
        if h == 0 or w == 0:
            return DetectorResult.failed("empty frame")

        results = self.model(
            frame,
            device=self.device,
            conf=self.conf_thres,
            verbose=False,
        )[0]

        detections: List[Detection] = []
        if results.boxes is None:
            return DetectorResult.ok(detections)

        names = results.names
        for box in results.boxes:
            cls_id = int(box.cls.item())
            label = str(names.get(cls_id, cls_id) if isinstance(names, dict) else names[cls_id])
            if self.allowed_classes is not None and label.lower() not in self.allowed_classes:
                continue

            x1, y1, x2, y2 = box.xyxy[0].tolist()
            detections.append(
                Detection(
                    label=label,
                    confidence=float(box.conf.item()),
                    bbox=(x1 / w, y1 / h, x2 / w, y2 / h),
                )
            )

        return DetectorResult.ok(detections)
