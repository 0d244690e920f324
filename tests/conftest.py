from collections.abc import Callable

import numpy as np
import pytest

from motiontrack.tracking import (
    BoundingBox,
    Candidate,
    DetectionError,
    RoiDetector,
)

FRAME_HEIGHT_PX = 240
FRAME_WIDTH_PX = 320


def blank_frames(count: int) -> list[np.ndarray]:
    return [
        np.zeros((FRAME_HEIGHT_PX, FRAME_WIDTH_PX, 3), dtype=np.uint8)
        for _ in range(count)
    ]


def frames_with_square(
    positions: list[tuple[int, int]], size: int = 10
) -> list[np.ndarray]:
    """One frame per (x, y) top-left position, a white square on black."""
    frames = blank_frames(len(positions))
    for frame, (x, y) in zip(frames, positions):
        frame[y : y + size, x : x + size] = 255
    return frames


class EmptyDetector(RoiDetector):
    def __init__(self):
        self.calls = 0

    def detect(self, region, hint):
        self.calls += 1
        return []


class EchoDetector(RoiDetector):
    """Returns the hint itself, optionally shifted, with a fixed confidence."""

    def __init__(self, confidence: float = 1.0, dx: float = 0.0, dy: float = 0.0):
        self.confidence = confidence
        self.dx = dx
        self.dy = dy
        self.calls = 0
        self.opened = 0
        self.closed = 0

    def open(self):
        self.opened += 1

    def close(self):
        self.closed += 1

    def detect(self, region, hint):
        self.calls += 1
        return [Candidate(hint.translated(self.dx, self.dy), self.confidence)]


class BrightBlobDetector(RoiDetector):
    """Bounding box of all non-black pixels in the region."""

    def __init__(self, confidence: float = 0.9):
        self.confidence = confidence

    def detect(self, region, hint):
        ys, xs = np.nonzero(region[..., 0])
        if xs.size == 0:
            return []
        box = BoundingBox(
            x=float(xs.min()),
            y=float(ys.min()),
            w=float(xs.max() - xs.min() + 1),
            h=float(ys.max() - ys.min() + 1),
        )
        return [Candidate(box, self.confidence)]


class ScriptedDetector(RoiDetector):
    """Delegates to a callable receiving (call_number, region, hint)."""

    def __init__(self, script: Callable[[int, np.ndarray, BoundingBox], list[Candidate]]):
        self._script = script
        self.calls = 0

    def detect(self, region, hint):
        self.calls += 1
        return self._script(self.calls, region, hint)


def failing_on(call_numbers: set[int], confidence: float = 0.9):
    def script(call, region, hint):
        if call in call_numbers:
            raise DetectionError(f"backend unavailable (call {call})")
        return [Candidate(hint, confidence)]

    return script


@pytest.fixture
def initial_box() -> BoundingBox:
    return BoundingBox(x=100.0, y=100.0, w=20.0, h=20.0)
