import math
from dataclasses import dataclass, field
from enum import Enum

import numpy as np
from jaxtyping import UInt8

Image = UInt8[np.ndarray, "height width 3"]  # RGB frame


@dataclass(frozen=True, slots=True)
class BoundingBox:
    """Axis-aligned box in pixel space; (x, y) is the top-left corner."""

    x: float
    y: float
    w: float
    h: float

    @property
    def center(self) -> tuple[float, float]:
        return self.x + self.w / 2.0, self.y + self.h / 2.0

    @property
    def area(self) -> float:
        return max(self.w, 0.0) * max(self.h, 0.0)

    @property
    def is_valid(self) -> bool:
        return self.w > 0 and self.h > 0

    def expanded(self, margin: float) -> "BoundingBox":
        return BoundingBox(
            x=self.x - margin,
            y=self.y - margin,
            w=self.w + 2.0 * margin,
            h=self.h + 2.0 * margin,
        )

    def clipped(self, width: float, height: float) -> "BoundingBox":
        """Intersect with the image rectangle [0, width) x [0, height)."""
        x_min = min(max(self.x, 0.0), width)
        y_min = min(max(self.y, 0.0), height)
        x_max = min(max(self.x + self.w, 0.0), width)
        y_max = min(max(self.y + self.h, 0.0), height)
        return BoundingBox(x=x_min, y=y_min, w=x_max - x_min, h=y_max - y_min)

    def translated(self, dx: float, dy: float) -> "BoundingBox":
        return BoundingBox(x=self.x + dx, y=self.y + dy, w=self.w, h=self.h)

    def distance_to(self, other: "BoundingBox") -> float:
        """Euclidean distance between the two box centers."""
        cx, cy = self.center
        ox, oy = other.center
        return math.hypot(cx - ox, cy - oy)


@dataclass(frozen=True, slots=True)
class Candidate:
    box: BoundingBox
    confidence: float


class DetectionStatus(str, Enum):
    DETECTED = "detected"
    CARRIED_FORWARD = "carried_forward"  # soft miss, hint reused
    MANUAL = "manual"  # drawn by the user


@dataclass(frozen=True, slots=True)
class TrackedBox:
    box: BoundingBox
    confidence: float
    status: DetectionStatus = DetectionStatus.DETECTED

    @property
    def is_detection(self) -> bool:
        return self.status is DetectionStatus.DETECTED

    @classmethod
    def carried_forward(cls, box: BoundingBox) -> "TrackedBox":
        return cls(box=box, confidence=0.0, status=DetectionStatus.CARRIED_FORWARD)

    @classmethod
    def manual(cls, box: BoundingBox) -> "TrackedBox":
        return cls(box=box, confidence=1.0, status=DetectionStatus.MANUAL)


@dataclass(slots=True)
class TrackerConfig:
    padding_px: float = 50.0
    acceptance_threshold: float = 0.25
    distance_scale_px: float = 100.0
    # Overwrite the re-detected anchor entry with the user's box.
    preserve_anchor: bool = False
    parallel_passes: bool = False

    def validate(self) -> None:
        if self.padding_px < 0:
            raise TrackingError("padding_px must be non-negative")
        if not 0.0 <= self.acceptance_threshold < 1.0:
            raise TrackingError("acceptance_threshold must be in [0, 1)")
        if self.distance_scale_px <= 0:
            raise TrackingError("distance_scale_px must be positive")


@dataclass(slots=True)
class TrackingProgress:
    completed: int = 0
    total: int = 0

    @property
    def fraction(self) -> float:
        if self.total <= 0:
            return 0.0
        return self.completed / self.total


@dataclass(frozen=True, slots=True)
class DetectorFailure:
    frame_index: int
    pass_name: str
    message: str


@dataclass(slots=True)
class TrackingStatus:
    """Pollable state of the most recent track() call.

    Forward and backward progress are kept apart: the backward counter
    restarts from the anchor, so the two are not one monotonic sweep.
    """

    forward: TrackingProgress = field(default_factory=TrackingProgress)
    backward: TrackingProgress = field(default_factory=TrackingProgress)
    failures: list[DetectorFailure] = field(default_factory=list)
    running: bool = False
    cancelled: bool = False


class DetectionError(RuntimeError):
    pass


class TrackingError(RuntimeError):
    pass
