import logging
from collections.abc import Mapping

import numpy as np
from jaxtyping import Float, Int

from motiontrack.tracking.sequence import TrackedSequence
from motiontrack.tracking.types import BoundingBox, TrackedBox

from .types import KinematicsConfig, MotionSample

logger = logging.getLogger(__name__)

BoxMapping = TrackedSequence | Mapping[int, BoundingBox | TrackedBox]


def _sorted_boxes(sequence: BoxMapping) -> list[tuple[int, BoundingBox]]:
    """Ascending (frame_index, box) pairs; insertion order is ignored."""
    if isinstance(sequence, TrackedSequence):
        return sequence.boxes()
    items: list[tuple[int, BoundingBox]] = []
    for frame_index in sorted(sequence):
        value = sequence[frame_index]
        box = value.box if isinstance(value, TrackedBox) else value
        items.append((int(frame_index), box))
    return items


def _velocities(
    positions_m: Float[np.ndarray, "N 2"],
    frames: Int[np.ndarray, "N"],
    fps: float,
) -> Float[np.ndarray, "N 2"]:
    """
    Finite differences over the true gap between neighbouring keys:
    - interior samples: central difference k[i-1] -> k[i+1]
    - first sample: forward difference to k[1]
    - last sample: backward difference from k[n-2]
    """
    dt_s = np.diff(frames) / fps
    vel = np.empty_like(positions_m)
    vel[0] = (positions_m[1] - positions_m[0]) / dt_s[0]
    vel[-1] = (positions_m[-1] - positions_m[-2]) / dt_s[-1]
    if len(frames) > 2:
        span_s = (frames[2:] - frames[:-2]) / fps
        vel[1:-1] = (positions_m[2:] - positions_m[:-2]) / span_s[:, None]
    return vel


def _accelerations(
    velocities: Float[np.ndarray, "N 2"],
    frames: Int[np.ndarray, "N"],
    fps: float,
) -> Float[np.ndarray, "N 2"]:
    """Backward difference of velocity; the first sample has no predecessor and stays 0."""
    dt_s = np.diff(frames) / fps
    acc = np.zeros_like(velocities)
    acc[1:] = np.diff(velocities, axis=0) / dt_s[:, None]
    return acc


def estimate(
    sequence: BoxMapping,
    fps: float,
    pixels_per_meter: float = 100.0,
) -> list[MotionSample]:
    """
    Turn per-frame boxes into position/velocity/acceleration samples.

    One sample per key, ascending by frame index, no resampling: a gap in the
    keys widens the dt of the differences that straddle it. Returns an empty
    list when fewer than two frames are available.
    """
    cfg = KinematicsConfig(fps=fps, pixels_per_meter=pixels_per_meter)
    cfg.validate()

    items = _sorted_boxes(sequence)
    if len(items) < 2:
        logger.warning(
            "Kinematics need at least 2 tracked frames, got %d", len(items)
        )
        return []

    frames = np.array([k for k, _ in items], dtype=np.int64)
    centers_px = np.array([box.center for _, box in items], dtype=float)
    positions_m = centers_px / cfg.pixels_per_meter

    vel = _velocities(positions_m, frames, cfg.fps)
    acc = _accelerations(vel, frames, cfg.fps)
    speed = np.linalg.norm(vel, axis=1)
    acc_norm = np.linalg.norm(acc, axis=1)

    samples = [
        MotionSample(
            frame=int(frames[i]),
            time=int(frames[i]) / cfg.fps,
            x=float(positions_m[i, 0]),
            y=float(positions_m[i, 1]),
            vx=float(vel[i, 0]),
            vy=float(vel[i, 1]),
            speed=float(speed[i]),
            ax=float(acc[i, 0]),
            ay=float(acc[i, 1]),
            acceleration=float(acc_norm[i]),
        )
        for i in range(len(items))
    ]
    logger.debug(
        "Estimated %d motion samples over frames %d..%d at %.2f fps",
        len(samples),
        samples[0].frame,
        samples[-1].frame,
        cfg.fps,
    )
    return samples
