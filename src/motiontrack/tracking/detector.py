import logging
import math
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import override

import cv2
import numpy as np
from jaxtyping import Float

from .types import BoundingBox, Candidate, DetectionError, Image

logger = logging.getLogger(__name__)


class RoiDetector(ABC):
    """Detection capability injected into the tracker.

    Subclasses holding a backend session acquire it in open() and release it
    in close(); use the detector as a context manager to scope the session
    to one tracking run.
    """

    def open(self) -> None:
        """Acquire backend resources. No-op by default."""

    def close(self) -> None:
        """Release backend resources. No-op by default."""

    @abstractmethod
    def detect(self, region: Image, hint: BoundingBox) -> list[Candidate]:
        """
        Return candidate boxes inside `region`, in the region's pixel space.

        `hint` is the previous box, already expressed in region coordinates.
        An empty list means "nothing found"; DetectionError is reserved for
        operational failures (backend unavailable, inference crash).
        """

    def __enter__(self) -> "RoiDetector":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def search_window(
    hint: BoundingBox,
    width_px: int,
    height_px: int,
    padding_px: float,
) -> tuple[int, int, int, int]:
    """Padded hint clipped to the image, as integer (x0, y0, x1, y1) slice bounds."""
    region = hint.expanded(padding_px).clipped(width_px, height_px)
    x0 = int(math.floor(region.x))
    y0 = int(math.floor(region.y))
    x1 = int(math.ceil(region.x + region.w))
    y1 = int(math.ceil(region.y + region.h))
    return x0, y0, x1, y1


def candidate_score(
    candidate: Candidate,
    hint: BoundingBox,
    distance_scale_px: float = 100.0,
) -> float:
    """Confidence damped by how far the candidate center moved from the hint center."""
    distance = candidate.box.distance_to(hint)
    return candidate.confidence / (1.0 + distance / distance_scale_px)


def select_candidate(
    candidates: Sequence[Candidate],
    hint: BoundingBox,
    acceptance_threshold: float = 0.25,
    distance_scale_px: float = 100.0,
) -> Candidate | None:
    """Best-scoring candidate above the threshold; ties keep the first seen."""
    best: Candidate | None = None
    best_score = -math.inf
    for cand in candidates:
        if cand.confidence <= acceptance_threshold:
            continue
        score = candidate_score(cand, hint, distance_scale_px)
        if score > best_score:
            best = cand
            best_score = score
    return best


@dataclass(slots=True)
class DetectorConfig:
    model_path: str
    input_size: int = 640
    conf_threshold: float = 0.25
    # Restrict to these class ids; None keeps every class.
    class_ids: tuple[int, ...] | None = None

    def validate(self) -> None:
        if self.input_size <= 0:
            raise DetectionError("input_size must be positive")
        if not 0.0 <= self.conf_threshold < 1.0:
            raise DetectionError("conf_threshold must be in [0, 1)")
        if self.class_ids is not None and any(c < 0 for c in self.class_ids):
            raise DetectionError("class_ids must be non-negative")


def decode_yolo_output(
    output: Float[np.ndarray, "..."],
    region_width_px: int,
    region_height_px: int,
    input_size: int,
    conf_threshold: float,
    class_ids: tuple[int, ...] | None = None,
) -> list[Candidate]:
    """
    Decode a YOLOv8 head of shape (1, 4 + num_classes, num_proposals).

    Each proposal column is (cx, cy, w, h, class scores...) in network input
    pixels; boxes are rescaled to the region and returned top-left based, in
    proposal order.
    """
    preds = np.asarray(output, dtype=float)
    if preds.ndim == 3:
        preds = preds[0]
    if preds.ndim != 2 or preds.shape[0] < 5:
        raise DetectionError(f"Unexpected YOLO output shape: {np.shape(output)}")

    boxes = preds[:4]
    scores = preds[4:]
    if class_ids is not None:
        if any(c >= scores.shape[0] for c in class_ids):
            raise DetectionError("class_ids exceed the model's class count")
        scores = scores[list(class_ids)]
    if scores.shape[0] == 0:
        return []

    confidences = scores.max(axis=0)
    keep = np.flatnonzero(confidences > conf_threshold)

    sx = region_width_px / input_size
    sy = region_height_px / input_size
    candidates: list[Candidate] = []
    for idx in keep:
        cx, cy, w, h = boxes[:, idx]
        candidates.append(
            Candidate(
                box=BoundingBox(
                    x=float((cx - w / 2.0) * sx),
                    y=float((cy - h / 2.0) * sy),
                    w=float(w * sx),
                    h=float(h * sy),
                ),
                confidence=float(confidences[idx]),
            )
        )
    return candidates


class OnnxYoloDetector(RoiDetector):
    """YOLOv8 ONNX export run through OpenCV's DNN module."""

    def __init__(self, cfg: DetectorConfig):
        cfg.validate()
        self._cfg: DetectorConfig = cfg
        self._net: cv2.dnn.Net | None = None

    @override
    def open(self) -> None:
        if self._net is not None:
            return
        path = Path(self._cfg.model_path)
        if not path.is_file():
            raise DetectionError(f"Model file not found: {path}")
        try:
            self._net = cv2.dnn.readNetFromONNX(str(path))
        except cv2.error as exc:  # pragma: no cover - depends on the model file
            raise DetectionError(f"Cannot load ONNX model {path}: {exc}") from exc
        logger.debug("Loaded detector model %s", path)

    @override
    def close(self) -> None:
        if self._net is not None:
            logger.debug("Released detector model %s", self._cfg.model_path)
        self._net = None

    @override
    def detect(self, region: Image, hint: BoundingBox) -> list[Candidate]:
        if self._net is None:
            raise DetectionError("Detector not opened")
        height_px, width_px = region.shape[:2]
        if width_px == 0 or height_px == 0:
            return []

        size = self._cfg.input_size
        try:
            # Frames are already RGB, which is what YOLOv8 expects.
            blob = cv2.dnn.blobFromImage(
                region,
                scalefactor=1.0 / 255.0,
                size=(size, size),
                swapRB=False,
                crop=False,
            )
            self._net.setInput(blob)
            output = self._net.forward()
        except cv2.error as exc:  # pragma: no cover
            raise DetectionError(f"Inference failed: {exc}") from exc

        return decode_yolo_output(
            output,
            region_width_px=width_px,
            region_height_px=height_px,
            input_size=size,
            conf_threshold=self._cfg.conf_threshold,
            class_ids=self._cfg.class_ids,
        )
